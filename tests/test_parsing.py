"""Tests for JSON extraction from free-form LLM replies."""

from __future__ import annotations

import pytest

from agents.errors import ValidationError
from agents.parsing import extract_json, parse_json_object


class TestExtractJson:
    def test_fenced_block(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```\nThanks'
        assert extract_json(text) == '{"a": 1}'

    def test_plain_fence(self):
        assert extract_json('```\n{"a": 2}\n```') == '{"a": 2}'

    def test_embedded_object(self):
        assert extract_json('Answer: {"a": {"b": 1}} done') == '{"a": {"b": 1}}'

    def test_braces_inside_strings(self):
        text = 'prefix {"text": "use } and { freely", "n": 1} suffix'
        assert extract_json(text) == '{"text": "use } and { freely", "n": 1}'

    def test_nothing_found(self):
        assert extract_json("  no json here  ") == "no json here"


class TestParseJsonObject:
    def test_direct(self):
        assert parse_json_object('{"category": "meta-prompt"}') == {"category": "meta-prompt"}

    def test_repaired(self):
        assert parse_json_object('Sure! {"ok": true} Hope that helps.') == {"ok": True}

    @pytest.mark.parametrize("text", ["", "plain prose", '{"broken": '])
    def test_invalid(self, text):
        with pytest.raises(ValidationError, match="not valid JSON"):
            parse_json_object(text)

    def test_array_rejected(self):
        with pytest.raises(ValidationError, match="not a JSON object"):
            parse_json_object("[1, 2, 3]")
