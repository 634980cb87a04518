"""CLI entry point for aumos-input-gate.

Invoked as::

    input-gate [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m aumos_input_gate.cli.main

Commands
--------
- version        Show version information
- check-formula  Parse and evaluate a submitter expression
- serve          Start the configured gates and serve them over HTTP
- audit show     Display recent audit entries
"""
from __future__ import annotations

import logging
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("input_gate.yaml")
_TRUE_WORDS = {"true", "yes", "1", "on"}
_FALSE_WORDS = {"false", "no", "0", "off"}


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="aumos-input-gate")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Input Gate CLI: human approval gates for paused executions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from aumos_input_gate import __version__

    console.print(
        Panel(
            f"[bold]aumos-input-gate[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Human-in-the-loop approval gates for paused executions.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# check-formula
# ---------------------------------------------------------------------------


def _parse_vote(raw: str) -> tuple[str, bool]:
    name, sep, flag = raw.rpartition("=")
    if not sep or not name:
        raise click.BadParameter(f"Expected NAME=true|false, got {raw!r}", param_hint="--vote")
    word = flag.strip().lower()
    if word in _TRUE_WORDS:
        return name.strip(), True
    if word in _FALSE_WORDS:
        return name.strip(), False
    raise click.BadParameter(f"Expected true or false for {name!r}, got {flag!r}", param_hint="--vote")


@cli.command(name="check-formula")
@click.argument("expression")
@click.option(
    "--vote",
    "votes",
    multiple=True,
    metavar="NAME=true|false",
    help="Approval state of one approver (repeatable). Unset approvers are false.",
)
def check_formula_command(expression: str, votes: tuple[str, ...]) -> None:
    """Parse EXPRESSION as a submitter formula and evaluate it."""
    from aumos_input_gate.errors import FormulaError
    from aumos_input_gate.expressions.formula import Formula, is_simple_name

    if is_simple_name(expression):
        console.print(
            f"[cyan]{expression.strip()!r}[/cyan] is a single submitter name; "
            "no approval ledger is used."
        )
        return

    bindings = dict(_parse_vote(v) for v in votes)
    try:
        formula = Formula.parse(expression)
        values = {name: bindings.get(name, False) for name in formula.variables}
        unknown = sorted(set(bindings) - set(values))
        if unknown:
            err_console.print(f"[yellow]Ignoring votes for names not in the formula: {unknown}[/yellow]")
        result = formula.evaluate(values)
    except FormulaError as exc:
        err_console.print(f"[red]Invalid formula:[/red] {exc}")
        raise SystemExit(1) from exc

    table = Table(title="Approval ledger", box=box.SIMPLE)
    table.add_column("Approver", style="cyan")
    table.add_column("Approved")
    for name, approved in values.items():
        table.add_row(name, "[green]yes[/green]" if approved else "[dim]no[/dim]")
    console.print(table)

    verdict = "[bold green]SATISFIED[/bold green]" if result else "[bold yellow]WAITING[/bold yellow]"
    console.print(f"Expression: [cyan]{formula.expression}[/cyan]  ->  {verdict}")


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


class _ConsoleSink:
    """Text stream writing execution output lines through the rich console."""

    def write(self, text: str) -> int:
        from aumos_input_gate.engine.output import to_rich

        for line in text.splitlines():
            console.print(f"[dim]│[/dim] {to_rich(line)}")
        return len(text)

    def flush(self) -> None:
        pass


@cli.command(name="serve")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    type=click.Path(),
    help="Path to input_gate.yaml.",
)
@click.option("--host", "-h", "host", default=None, help="Bind address (overrides the config).")
@click.option("--port", "-p", default=None, type=int, help="Port to listen on (overrides the config).")
def serve_command(config_path: str, host: str | None, port: int | None) -> None:
    """Start every configured gate and serve the input endpoints."""
    from aumos_input_gate.approval.gate import PauseGate
    from aumos_input_gate.audit.logger import AuditLogger
    from aumos_input_gate.config.loader import ConfigLoader
    from aumos_input_gate.engine import worker
    from aumos_input_gate.engine.context import CallbackStepContext
    from aumos_input_gate.engine.execution import ExecutionRecord, FlowNode
    from aumos_input_gate.engine.output import ExecutionOutput
    from aumos_input_gate.permissions.provider import ContextIdentityProvider
    from aumos_input_gate.server.api import InputGateApi
    from aumos_input_gate.server.crumb import CrumbIssuer
    from aumos_input_gate.server.http import InputGateServer

    loader = ConfigLoader()
    cfg_path = Path(config_path)
    config = loader.load(cfg_path) if cfg_path.exists() else loader.defaults()
    if not config.gates:
        err_console.print(f"[yellow]No gates configured in {cfg_path}; nothing to serve.[/yellow]")
        raise SystemExit(1)

    worker.configure(config.workers.max_workers)
    audit = (
        AuditLogger(log_path=config.audit.log_path, execution=config.execution.url)
        if config.audit.enabled
        else None
    )
    record = ExecutionRecord(
        config.execution.name,
        url=config.execution.url,
        root_dir=config.execution.root_dir,
        output=ExecutionOutput(sink=_ConsoleSink()),  # type: ignore[arg-type]
        audit=audit,
    )
    identity = ContextIdentityProvider(
        cancel_users=config.security.cancel_users,
        cancel_groups=config.security.cancel_groups,
    )
    api = InputGateApi(identity=identity, crumbs=CrumbIssuer(config.server.crumb_secret))
    api.add_record(record)

    gates: list[PauseGate] = []
    for index, gate_config in enumerate(config.gates):
        request = gate_config.to_request()

        def _resumed(value: object, gate_id: str = request.id) -> None:
            console.print(f"[green]Input {gate_id} accepted[/green] with value: {value!r}")

        def _aborted(error: BaseException, gate_id: str = request.id) -> None:
            console.print(f"[red]Input {gate_id} aborted:[/red] {error}")

        gate = PauseGate(
            request,
            record=record,
            node=FlowNode(str(index + 1)),
            context=CallbackStepContext(success=_resumed, failure=_aborted),
            identity=identity,
        )
        gate.start()
        gates.append(gate)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    server = InputGateServer(api=api, host=bind_host, port=bind_port)

    console.print(
        Panel(
            f"Serving {len(gates)} input(s) of [bold]{record.name}[/bold] at "
            f"[link={server.url}{record.url}input/]{server.url}{record.url}input/[/link]\n"
            "Press Ctrl-C to stop; pending inputs are aborted.",
            title="Input Gate",
            border_style="green",
        )
    )
    try:
        server.start()
    finally:
        futures = [gate.stop(KeyboardInterrupt()) for gate in gates if not gate.is_settled()]
        for future in futures:
            future.result(timeout=10)
        worker.shutdown()


# ---------------------------------------------------------------------------
# audit group
# ---------------------------------------------------------------------------


@cli.group(name="audit")
def audit_group() -> None:
    """Audit trail commands."""


@audit_group.command(name="show")
@click.option("--last", "-n", default=20, show_default=True, type=int, help="Number of recent entries to show.")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    type=click.Path(),
    help="Path to input_gate.yaml.",
)
def audit_show_command(last: int, config_path: str) -> None:
    """Show recent audit log entries."""
    from aumos_input_gate.audit.logger import AuditLogger
    from aumos_input_gate.config.loader import ConfigLoader

    loader = ConfigLoader()
    cfg_path = Path(config_path)
    config = loader.load(cfg_path) if cfg_path.exists() else loader.defaults()

    audit = AuditLogger(log_path=config.audit.log_path)
    records = audit.last_n(last)

    if not records:
        console.print("[yellow]No audit entries found.[/yellow]")
        return

    table = Table(title=f"Last {last} Audit Events", box=box.SIMPLE)
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column("Event", style="cyan")
    table.add_column("Input", style="magenta")
    table.add_column("Principal")
    table.add_column("Execution", style="dim")

    for record in records:
        ts = str(record.get("timestamp", ""))[:19].replace("T", " ")
        table.add_row(
            ts,
            str(record.get("event", "")),
            str(record.get("gate_id", "")),
            str(record.get("principal") or ""),
            str(record.get("execution") or ""),
        )

    console.print(table)
    console.print(f"  Total audit records: [cyan]{audit.count()}[/cyan]")


if __name__ == "__main__":
    cli()
