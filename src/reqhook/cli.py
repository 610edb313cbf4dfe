"""reqhook CLI for inspecting configured interceptors - Tyro implementation."""

import json
import logging
import os
import sys
from builtins import print as builtin_print
from pathlib import Path
from typing import Annotated

import attrs
import tyro
from rich import print
from rich.console import Console
from rich.panel import Panel
from rich.markup import escape
from rich.table import Table

from reqhook.config import CONFIG_FILENAME, ReqhookConfig
from reqhook.pipeline import InterceptorRegistry, RegisteredInterceptor, RequestView
from reqhook.pipeline.patterns import describe


# Subcommand definitions using attrs
@attrs.define
class Patterns:
    """List the path patterns the host should route through the pipeline."""

    json: bool = False
    """Output patterns as a JSON array."""


@attrs.define
class Order:
    """Show interceptors in dispatch order."""

    json: bool = False
    """Output as JSON."""


@attrs.define
class Check:
    """Dry-run a request and show which interceptors would run.

    Exits with code 1 when no interceptor matches.

    Examples:
        reqhook check /admin/x --cookie session=valid-123
        reqhook check "/search?debug=1" --header x-role=admin
    """

    path: Annotated[str, tyro.conf.Positional]
    """Request path, optionally with a query string."""

    header: Annotated[list[str], tyro.conf.UseAppendAction, tyro.conf.arg(aliases=["-H"])] = attrs.Factory(list)
    """Header as name=value (repeatable)."""

    query: Annotated[list[str], tyro.conf.UseAppendAction, tyro.conf.arg(aliases=["-q"])] = attrs.Factory(list)
    """Query parameter as key=value (repeatable)."""

    cookie: Annotated[list[str], tyro.conf.UseAppendAction, tyro.conf.arg(aliases=["-c"])] = attrs.Factory(list)
    """Cookie as name=value (repeatable)."""

    json: bool = False
    """Output as JSON."""


# Type alias for all subcommands
Command = (
    Annotated[Patterns, tyro.conf.subcommand(name="patterns")]
    | Annotated[Order, tyro.conf.subcommand(name="order")]
    | Annotated[Check, tyro.conf.subcommand(name="check")]
)


def setup_logging() -> None:
    """Configure logging with 100-character text width."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)-20s - %(levelname)-8s - %(message).100s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_registry(config_dir: Path) -> InterceptorRegistry:
    """Build a registry from the reqhook.yaml in config_dir.

    Exits with code 1 if the configuration file is missing.
    """
    config_path = config_dir / CONFIG_FILENAME
    if not config_path.exists():
        print(f"Error: Configuration not found at {config_path}", file=sys.stderr)
        sys.exit(1)

    config = ReqhookConfig.from_yaml(config_path)
    registry = InterceptorRegistry()
    config.load_interceptors(registry)
    return registry


def parse_pairs(values: list[str], label: str) -> dict[str, str]:
    """Parse name=value arguments.

    Exits with code 1 on a malformed pair.
    """
    pairs: dict[str, str] = {}
    for value in values:
        name, sep, rest = value.partition("=")
        if not sep or not name:
            print(f"Error: Invalid {label} '{value}', expected name=value", file=sys.stderr)
            sys.exit(1)
        pairs[name] = rest
    return pairs


def build_request(cmd: Check) -> RequestView:
    """Build the request view for a check command."""
    view = RequestView.from_url(
        cmd.path,
        headers=parse_pairs(cmd.header, "header"),
        cookies=parse_pairs(cmd.cookie, "cookie"),
    )
    view.query.update(parse_pairs(cmd.query, "query parameter"))
    return view


def _conditions_summary(entry: RegisteredInterceptor) -> str:
    conditions = entry.config.conditions
    if conditions is None:
        return "-"

    parts = []
    for category in ("headers", "query", "cookies"):
        mapping = getattr(conditions, category)
        if mapping:
            rendered = ", ".join(f"{k}={describe(v)}" for k, v in mapping.items())
            parts.append(f"{category}: {rendered}")
    return "; ".join(parts) or "-"


def _handler_name(entry: RegisteredInterceptor) -> str:
    handler = getattr(entry.handler, "func", entry.handler)
    return f"{getattr(handler, '__module__', '?')}.{getattr(handler, '__qualname__', repr(handler))}"


def _entry_dict(entry: RegisteredInterceptor) -> dict:
    return {
        "id": entry.id,
        "priority": entry.priority,
        "patterns": [describe(p) for p in entry.config.patterns],
        "conditions": _conditions_summary(entry),
        "handler": _handler_name(entry),
    }


def render_table(entries: list[RegisteredInterceptor], console: Console) -> None:
    """Render interceptors as a rich table."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim")
    table.add_column("Interceptor", style="cyan")
    table.add_column("Priority", style="magenta", justify="right")
    table.add_column("Patterns", style="green")
    table.add_column("Conditions", style="yellow")
    table.add_column("Handler")

    for i, entry in enumerate(entries, start=1):
        data = _entry_dict(entry)
        table.add_row(
            str(i),
            escape(data["id"]),
            str(data["priority"]),
            escape(", ".join(data["patterns"])),
            escape(data["conditions"]),
            escape(data["handler"]),
        )
    console.print(table)


def handle_patterns(registry: InterceptorRegistry, cmd: Patterns) -> None:
    """Handle patterns subcommand."""
    patterns = [describe(p) for p in registry.list_patterns()]
    if cmd.json:
        builtin_print(json.dumps(patterns, indent=2))
        return
    if not patterns:
        print("[yellow]No interceptors configured[/yellow]")
        return
    for pattern in patterns:
        print(f"  • {escape(pattern)}")


def handle_order(registry: InterceptorRegistry, cmd: Order) -> None:
    """Handle order subcommand."""
    entries = registry.sorted_interceptors()
    if cmd.json:
        builtin_print(json.dumps([_entry_dict(e) for e in entries], indent=2))
        return
    if not entries:
        print("[yellow]No interceptors configured[/yellow]")
        return

    console = Console()
    console.print(Panel("[bold cyan]Interceptor Dispatch Order[/bold cyan]", expand=False))
    render_table(entries, console)


def handle_check(registry: InterceptorRegistry, cmd: Check) -> None:
    """Handle check subcommand."""
    view = build_request(cmd)
    matched = registry.explain(view)

    if cmd.json:
        builtin_print(json.dumps({"path": view.path, "matched": [_entry_dict(e) for e in matched]}, indent=2))
    elif matched:
        console = Console()
        console.print(f"[bold]{len(matched)}[/bold] interceptor(s) match [cyan]{escape(view.path)}[/cyan]:")
        render_table(matched, console)
    else:
        print(f"[yellow]No interceptor matches {escape(view.path)}[/yellow] (fallthrough)")

    sys.exit(0 if matched else 1)


def main(
    cmd: Annotated[Command, tyro.conf.arg(name="")],
    *,
    config_dir: Annotated[Path | None, tyro.conf.arg(help="Configuration directory")] = None,
) -> None:
    """reqhook - Priority-ordered request interceptors.

    Inspect the interceptors declared in reqhook.yaml: exported patterns,
    dispatch order, and which interceptors a given request would reach.
    """
    if config_dir is None:
        env_config_dir = os.environ.get("REQHOOK_CONFIG_DIR")
        config_dir = Path(env_config_dir) if env_config_dir else Path.cwd()

    setup_logging()
    registry = load_registry(config_dir)

    if isinstance(cmd, Patterns):
        handle_patterns(registry, cmd)
    elif isinstance(cmd, Order):
        handle_order(registry, cmd)
    elif isinstance(cmd, Check):
        handle_check(registry, cmd)


def entry_point() -> None:
    """Entry point for the reqhook command."""
    tyro.cli(main)


if __name__ == "__main__":
    entry_point()
