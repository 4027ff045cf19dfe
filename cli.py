#!/usr/bin/env python3
"""Command-line interface for the Probability Parliament debate engine.

Usage examples:
    python cli.py run --scenario "Debug the failing Python test in checkout.py"
    python cli.py run --scenario "Plan a team offsite" --weight skeptic=0.8 --no-verify
    python cli.py run --llm-provider ollama --json
    python cli.py latest
    python cli.py list-sessions --limit 5
    python cli.py visualize --session-id session-1718000000000
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
import yaml
from dotenv import load_dotenv

from agents.errors import DebateError
from data.database import SessionStore
from data.models import DebateSession, RunRequest
from evaluation.metrics import compute_session_metrics
from orchestration.debate_manager import DebateManager
from viz.visualize import SessionVisualizer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session display
# ---------------------------------------------------------------------------

# Role labels and ANSI colour codes for terminal output
_ROLE_STYLES: dict[str, tuple[str, str]] = {
    # role -> (label, ANSI colour code)
    "planner":     ("PLANNER",     "\033[1;34m"),   # bold blue
    "skeptic":     ("SKEPTIC",     "\033[1;31m"),   # bold red
    "security":    ("SECURITY",    "\033[1;33m"),   # bold yellow
    "cost":        ("COST",        "\033[1;35m"),   # bold magenta
    "synthesizer": ("SYNTHESIZER", "\033[1;32m"),   # bold green
}
_RESET = "\033[0m"
_DIM = "\033[2m"


def _print_session(session: DebateSession) -> None:
    """Pretty-print a finished session to the terminal."""
    click.echo(f"\n\033[1m{'=' * 60}")
    click.echo(f"  {session.id}")
    click.echo(f"{'=' * 60}{_RESET}")
    click.echo(f"  Scenario : {session.scenario}")
    click.echo(f"  Category : {session.prompt_category or 'unknown'}")
    click.echo(f"  Model    : {session.model or 'n/a'} ({session.prompt_version or 'n/a'})")
    click.echo(f"  Adapter  : {session.adapter}  •  verification {'on' if session.run_verification else 'off'}")

    for message in session.transcript:
        role = message.agent.value
        label, colour = _ROLE_STYLES.get(role, (role.upper(), "\033[1m"))
        click.echo(f"\n{colour}{'─' * 60}")
        click.echo(f"  [{label}]  → {message.preferred_plan_id}  •  confidence {message.confidence:.2f}")
        click.echo(f"{'─' * 60}{_RESET}")
        for paragraph in message.content.strip().split("\n"):
            click.echo(f"  {paragraph}")

    final = session.final_snapshot
    click.echo(f"\n{'=' * 60}")
    click.echo("  FINAL BELIEFS")
    click.echo(f"{'=' * 60}")
    for plan in session.plans:
        marker = "*" if plan.id == session.final_plan_id else " "
        click.echo(f"  {marker} {plan.id}  {final.probability_of(plan.id):.3f}  {plan.title}")
    click.echo(f"\n  {session.uncertainty_summary}")
    click.echo(f"  Variance : {session.belief.variance}")

    if session.generation_warnings:
        click.echo("\n  Warnings:")
        for warning in session.generation_warnings:
            click.echo(f"{_DIM}    - {warning}{_RESET}")

    click.echo("\n  Response:\n")
    for line in session.action.response.split("\n"):
        click.echo(f"    {line}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_config(config_path: str = "config/default.yaml") -> dict[str, Any]:
    """Load and return the YAML config."""
    p = Path(config_path)
    if not p.exists():
        click.echo(f"Config not found: {p}. Using defaults.", err=True)
        return {}
    with open(p) as f:
        return yaml.safe_load(f) or {}


def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _open_store(cfg: dict[str, Any]) -> SessionStore:
    db_cfg = cfg.get("database", {}) or {}
    return SessionStore(
        db_cfg.get("path", "data/sessions.db"),
        max_sessions=int(db_cfg.get("max_sessions", 25)),
    )


def _parse_weights(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, float] | None:
    """Turn repeated ``role=value`` options into a weights mapping."""
    if not values:
        return None
    weights: dict[str, float] = {}
    for item in values:
        role, sep, raw = item.partition("=")
        role = role.strip().lower()
        if not sep or role not in ("planner", "skeptic", "security", "cost", "synthesizer"):
            raise click.BadParameter(f"Expected role=value with a known role, got {item!r}")
        try:
            weights[role] = float(raw)
        except ValueError:
            raise click.BadParameter(f"Weight for {role!r} is not a number: {raw!r}") from None
    return weights


def _fail(exc: Exception) -> NoReturn:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", default="config/default.yaml", help="Path to YAML config")
@click.option("--log-level", default="INFO", help="Logging level")
@click.pass_context
def cli(ctx: click.Context, config: str, log_level: str) -> None:
    """Probability Parliament – multi-agent debate with belief revision."""
    load_dotenv()
    _setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = _load_config(config)
    ctx.obj["config_path"] = config


# ---- run ------------------------------------------------------------------

@cli.command()
@click.option("--scenario", default=None, help="Scenario to debate")
@click.option(
    "--weight",
    "weights",
    multiple=True,
    callback=_parse_weights,
    help="Per-role influence, e.g. --weight skeptic=0.8 (repeatable)",
)
@click.option("--verify/--no-verify", default=None, help="Request verification")
@click.option(
    "--llm-provider",
    type=click.Choice(["groq", "ollama"]),
    default=None,
    help="Override the configured LLM provider",
)
@click.option("--no-db", is_flag=True, help="Skip session persistence")
@click.option("--json", "as_json", is_flag=True, help="Print the session as JSON")
@click.pass_context
def run(
    ctx: click.Context,
    scenario: str | None,
    weights: dict[str, float] | None,
    verify: bool | None,
    llm_provider: str | None,
    no_db: bool,
    as_json: bool,
) -> None:
    """Run one debate and print the resulting session."""
    cfg = ctx.obj["config"]
    request = RunRequest(
        scenario=scenario,
        weights=weights,
        run_verification=verify,
        llm_provider=llm_provider,
    )

    async def _run() -> DebateSession:
        store: SessionStore | None = None
        if not no_db:
            store = _open_store(cfg)
            await store.connect()
        try:
            manager = DebateManager(store=store, config=cfg)
            return await manager.run_debate(request)
        finally:
            if store:
                await store.close()

    try:
        session = asyncio.run(_run())
    except DebateError as exc:
        logger.error("Run failed: %s", exc)
        _fail(exc)

    if as_json:
        click.echo(session.model_dump_json(indent=2))
    else:
        _print_session(session)


# ---- latest ---------------------------------------------------------------

@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the session as JSON")
@click.pass_context
def latest(ctx: click.Context, as_json: bool) -> None:
    """Show the most recent stored session."""
    cfg = ctx.obj["config"]

    async def _run() -> DebateSession | None:
        store = _open_store(cfg)
        await store.connect()
        try:
            return await store.latest_session()
        finally:
            await store.close()

    session = asyncio.run(_run())
    if session is None:
        click.echo("No sessions found.")
        return
    if as_json:
        click.echo(session.model_dump_json(indent=2))
    else:
        _print_session(session)


# ---- list-sessions --------------------------------------------------------

@cli.command("list-sessions")
@click.option("--limit", default=25, type=int, help="Number of sessions to list")
@click.pass_context
def list_sessions(ctx: click.Context, limit: int) -> None:
    """List stored sessions, most recent first."""
    cfg = ctx.obj["config"]

    async def _run() -> list[DebateSession]:
        store = _open_store(cfg)
        await store.connect()
        try:
            return await store.list_sessions(limit=limit)
        finally:
            await store.close()

    sessions = asyncio.run(_run())
    if not sessions:
        click.echo("No sessions found.")
        return

    click.echo(f"{'Session':<22} {'Plan':<8} {'P':>5}  {'Var':<7} {'Scenario'}")
    click.echo(f"{'─' * 22} {'─' * 8} {'─' * 5}  {'─' * 7} {'─' * 40}")
    for s in sessions:
        click.echo(
            f"{s.id:<22} {s.final_plan_id:<8} {s.belief.probability:>5.2f}  "
            f"{s.belief.variance:<7} {s.scenario[:40]}"
        )


# ---- visualize ------------------------------------------------------------

@cli.command()
@click.option("--session-id", default=None, help="Session to visualize (default: latest)")
@click.option("--output-dir", default="viz/output", help="Directory for charts and report")
@click.pass_context
def visualize(ctx: click.Context, session_id: str | None, output_dir: str) -> None:
    """Generate belief charts and a text report for a stored session."""
    cfg = ctx.obj["config"]

    async def _run() -> DebateSession | None:
        store = _open_store(cfg)
        await store.connect()
        try:
            if session_id:
                return await store.get_session(session_id)
            return await store.latest_session()
        finally:
            await store.close()

    session = asyncio.run(_run())
    if session is None:
        click.echo(f"Session {session_id or '(latest)'} not found.", err=True)
        sys.exit(1)

    metrics = compute_session_metrics(session)
    viz = SessionVisualizer(output_dir)
    paths = viz.generate_all(session)

    click.echo(f"Generated {len(paths)} files in {viz.output_dir}/:")
    for p in paths:
        click.echo(f"  - {p.name}")
    click.echo()
    for section, values in metrics.to_dict().items():
        click.echo(f"  {section}:")
        for k, v in values.items():
            click.echo(f"    {k:22s}: {v}")


# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
