"""Verification integration – deciding, invoking and recovering plan checks.

The real verifier is a JSON-RPC ``tools/call`` of ``verify_plan``; any
failure there falls back to the deterministic local mock so a debate run
never dies on verification.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal

import httpx

from agents.errors import IntegrationError
from orchestration.outcome import CallOutcome

logger = logging.getLogger(__name__)

VerificationStatus = Literal["pass", "fail", "skipped", "error"]
VerificationMode = Literal["real", "mock"]

DEFAULT_CODE_KEYWORDS: tuple[str, ...] = (
    "code",
    "bug",
    "error",
    "stack",
    "test",
    "build",
    "deploy",
    "api",
    "repo",
    "typescript",
    "javascript",
    "python",
    "rust",
    "java",
    "compile",
    "runtime",
    "exception",
)

PASS_RELIABILITY = 0.9
FAIL_RELIABILITY = 0.75
FALLBACK_RELIABILITY = 0.2

AUTO_ENABLED_WARNING = "Verification was auto-enabled for code-related scenarios."
NOT_CODE_WARNING = "Verification skipped: scenario is not code-related."
FALLBACK_WARNING = "MCP verification failed; fell back to mock."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return _utcnow()
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return _utcnow()


def default_reliability(status: str) -> float:
    return PASS_RELIABILITY if status == "pass" else FAIL_RELIABILITY


# ---------------------------------------------------------------------------
# Code-scenario detection
# ---------------------------------------------------------------------------

class CodeScenarioDetector:
    """Case-insensitive substring match against an allow-list of keywords."""

    def __init__(self, keywords: Iterable[str] = DEFAULT_CODE_KEYWORDS) -> None:
        self.keywords = tuple(k.lower() for k in keywords if k)

    def is_code_related(self, scenario: str) -> bool:
        lowered = scenario.lower()
        return any(word in lowered for word in self.keywords)

    __call__ = is_code_related


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VerificationResult:
    status: VerificationStatus
    summary: str
    logs: tuple[str, ...] = ()
    exit_code: int | None = None
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime = field(default_factory=_utcnow)
    reliability: float = FAIL_RELIABILITY
    evidence_id: str = ""
    adapter: str = "mcp"
    warning: str | None = None

    @property
    def passed(self) -> bool:
        return self.status == "pass"

    @property
    def output(self) -> str:
        return "\n".join(self.logs)

    @property
    def duration_ms(self) -> float:
        return (self.finished_at - self.started_at).total_seconds() * 1000


# ---------------------------------------------------------------------------
# Verifiers
# ---------------------------------------------------------------------------

class Verifier(ABC):
    """Runs a verification of one plan."""

    name: str

    @abstractmethod
    async def verify(
        self,
        session_id: str,
        plan_id: str,
        mode: VerificationMode,
        fixture_path: str | None = None,
        command: str | None = None,
    ) -> VerificationResult:
        ...


class McpVerifier(Verifier):
    """Calls the ``verify_plan`` tool over JSON-RPC."""

    name = "mcp"

    def __init__(
        self,
        url: str | None,
        api_key: str | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    async def verify(
        self,
        session_id: str,
        plan_id: str,
        mode: VerificationMode,
        fixture_path: str | None = None,
        command: str | None = None,
    ) -> VerificationResult:
        arguments: dict[str, Any] = {"sessionId": session_id, "planId": plan_id, "mode": mode}
        if fixture_path:
            arguments["fixturePath"] = fixture_path
        if command:
            arguments["command"] = command
        result = await self.call_tool("verify_plan", arguments)
        return self._to_result(result)

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        if not self.url:
            raise IntegrationError("MCP_URL is not configured.")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            arguments = {**arguments, "apiKey": self.api_key}
        body = {
            "jsonrpc": "2.0",
            "id": int(time.time() * 1000),
            "method": "tools/call",
            "params": {"name": name, "arguments": arguments},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.url, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise IntegrationError(f"MCP request timed out after {self.timeout}s.") from exc
        except httpx.HTTPError as exc:
            raise IntegrationError(f"MCP request failed: {exc}") from exc

        if resp.status_code != 200:
            raise IntegrationError(f"MCP request failed ({resp.status_code}): {resp.text[:300]}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise IntegrationError("MCP response was not valid JSON.") from exc

        if not isinstance(payload, dict):
            raise IntegrationError("MCP response was not a JSON object.")
        error = payload.get("error")
        if error:
            if isinstance(error, dict):
                raise IntegrationError(str(error.get("message") or "MCP tool call failed."))
            raise IntegrationError(str(error))
        result = payload.get("result")
        if not isinstance(result, dict):
            raise IntegrationError("MCP tool response missing result.")
        return result

    def _to_result(self, result: dict[str, Any]) -> VerificationResult:
        status = result.get("status")
        if status not in ("pass", "fail", "skipped", "error"):
            raise IntegrationError(f"MCP verification returned unknown status {status!r}.")
        logs = result.get("logs")
        if logs is None:
            logs = []
        elif not isinstance(logs, list):
            raise IntegrationError("MCP verification logs must be a list.")
        exit_code = result.get("exitCode")
        if exit_code is not None and (isinstance(exit_code, bool) or not isinstance(exit_code, int)):
            raise IntegrationError(f"MCP verification returned invalid exit code {exit_code!r}.")
        reliability = result.get("reliability")
        if reliability is None:
            reliability = default_reliability(status)
        elif (
            isinstance(reliability, bool)
            or not isinstance(reliability, (int, float))
            or not 0.0 <= reliability <= 1.0
        ):
            raise IntegrationError(f"MCP verification returned invalid reliability {reliability!r}.")
        return VerificationResult(
            status=status,
            summary=str(result.get("summary") or ""),
            logs=tuple(str(line) for line in logs),
            exit_code=exit_code,
            started_at=_parse_time(result.get("startedAt")),
            finished_at=_parse_time(result.get("finishedAt")),
            reliability=float(reliability),
            evidence_id=str(result.get("evidenceId") or ""),
            adapter=self.name,
        )


_MOCK_OUTPUTS: dict[str, tuple[VerificationStatus, str, tuple[str, ...]]] = {
    "plan-a": (
        "fail",
        "Two tests still failing after change.",
        (
            " RUNS  test/userService.test.ts",
            " FAIL  test/userService.test.ts",
            "  ● UserService › returns default role",
            '    Expected: "viewer"',
            "    Received: undefined",
            "  ● UserService › maps roles",
            "    TypeError: cannot read properties of undefined (reading 'role')",
            "",
            "Test Suites: 1 failed, 4 passed, 5 total",
            "Tests:       2 failed, 18 passed, 20 total",
            "Snapshots:   0 total",
            "Time:        4.21 s",
        ),
    ),
    "plan-b": (
        "pass",
        "All tests passing after role fallback fix.",
        (
            " RUNS  test/userService.test.ts",
            " PASS  test/userService.test.ts",
            " PASS  test/roles.test.ts",
            "",
            "Test Suites: 5 passed, 5 total",
            "Tests:       20 passed, 20 total",
            "Snapshots:   0 total",
            "Time:        3.97 s",
        ),
    ),
    "plan-c": (
        "fail",
        "Mocks updated but integration still failing.",
        (
            " RUNS  test/userService.test.ts",
            " FAIL  test/userService.test.ts",
            "  ● UserService › maps roles",
            '    Expected: "admin"',
            '    Received: "viewer"',
            "",
            "Test Suites: 1 failed, 4 passed, 5 total",
            "Tests:       1 failed, 19 passed, 20 total",
            "Snapshots:   0 total",
            "Time:        4.02 s",
        ),
    ),
    "plan-d": (
        "fail",
        "Input validation changed but tests still failing.",
        (
            " RUNS  test/userService.test.ts",
            " FAIL  test/userService.test.ts",
            "  ● UserService › returns default role",
            '    Expected: "viewer"',
            '    Received: "guest"',
            "",
            "Test Suites: 1 failed, 4 passed, 5 total",
            "Tests:       1 failed, 19 passed, 20 total",
            "Snapshots:   0 total",
            "Time:        4.08 s",
        ),
    ),
}


class MockVerifier(Verifier):
    """Deterministic canned test output keyed by plan id."""

    name = "mock"

    async def verify(
        self,
        session_id: str,
        plan_id: str,
        mode: VerificationMode = "mock",
        fixture_path: str | None = None,
        command: str | None = None,
    ) -> VerificationResult:
        status, summary, logs = _MOCK_OUTPUTS.get(plan_id, _MOCK_OUTPUTS["plan-a"])
        now = _utcnow()
        return VerificationResult(
            status=status,
            summary=summary,
            logs=logs,
            exit_code=0 if status == "pass" else 1,
            started_at=now,
            finished_at=now,
            reliability=default_reliability(status),
            evidence_id=f"evidence-{session_id}-{plan_id}",
            adapter=self.name,
        )


# ---------------------------------------------------------------------------
# Settings and integration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VerificationSettings:
    url: str | None = None
    api_key: str | None = None
    mode: VerificationMode | None = None
    timeout: float = 15.0
    fixture_path: str | None = None
    command: str | None = None
    code_keywords: tuple[str, ...] = DEFAULT_CODE_KEYWORDS

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> VerificationSettings:
        """Merge the ``verification`` config section with the environment."""
        cfg = dict(config or {})
        env = os.environ if env is None else env

        mode = str(env.get("VERIFICATION_MODE") or cfg.get("mode") or "auto").lower()
        return cls(
            url=env.get(cfg.get("url_env", "MCP_URL")) or cfg.get("url"),
            api_key=env.get(cfg.get("api_key_env", "MCP_API_KEY")),
            mode=mode if mode in ("real", "mock") else None,
            timeout=float(cfg.get("timeout", 15.0)),
            fixture_path=env.get("VERIFICATION_FIXTURE_PATH") or cfg.get("fixture_path"),
            command=env.get("VERIFICATION_COMMAND") or cfg.get("command"),
            code_keywords=tuple(cfg.get("code_keywords") or DEFAULT_CODE_KEYWORDS),
        )


@dataclass(frozen=True)
class VerificationDecision:
    execute: bool
    warning: str | None = None


class VerificationIntegrator:
    """Decides whether verification runs and recovers every failure."""

    def __init__(
        self,
        verifier: Verifier | None = None,
        fallback: Verifier | None = None,
        settings: VerificationSettings | None = None,
    ) -> None:
        self.settings = settings or VerificationSettings()
        self.verifier = verifier or McpVerifier(
            self.settings.url, self.settings.api_key, self.settings.timeout
        )
        self.fallback = fallback or MockVerifier()
        self.detector = CodeScenarioDetector(self.settings.code_keywords)

    def is_code_related(self, scenario: str) -> bool:
        return self.detector(scenario)

    @staticmethod
    def decide(code_related: bool, requested: bool | None) -> VerificationDecision:
        """Verification runs exactly for code-related scenarios."""
        if code_related:
            return VerificationDecision(True, AUTO_ENABLED_WARNING if requested is False else None)
        return VerificationDecision(False, NOT_CODE_WARNING if requested is True else None)

    def mode(self, code_related: bool) -> VerificationMode:
        if self.settings.mode:
            return self.settings.mode
        return "real" if code_related else "mock"

    async def run(
        self, session_id: str, plan_id: str, code_related: bool
    ) -> CallOutcome[VerificationResult]:
        mode = self.mode(code_related)
        logger.info("Verifying %s via %s (%s mode)", plan_id, self.verifier.name, mode)
        try:
            result = await asyncio.wait_for(
                self.verifier.verify(
                    session_id,
                    plan_id,
                    mode,
                    fixture_path=self.settings.fixture_path,
                    command=self.settings.command,
                ),
                timeout=self.settings.timeout,
            )
        except asyncio.TimeoutError:
            message = f"Verification timed out after {self.settings.timeout}s."
        except IntegrationError as exc:
            message = str(exc)
        else:
            if result.status != "error":
                return CallOutcome.success(result)
            message = result.summary or "Verification returned an error status."

        logger.warning("Verification of %s failed (%s); using mock", plan_id, message)
        fallback = await self.fallback.verify(session_id, plan_id, "mock")
        fallback = replace(
            fallback,
            reliability=FALLBACK_RELIABILITY,
            adapter=self.fallback.name,
            warning=FALLBACK_WARNING,
        )
        return CallOutcome.recovered(fallback, f"{FALLBACK_WARNING} {message}")
