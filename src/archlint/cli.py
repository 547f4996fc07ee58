"""Archlint CLI entry point."""

from __future__ import annotations

import json
import logging
import signal
import sys
import threading
from pathlib import Path

import click

from archlint import __version__

EXIT_VIOLATIONS = 1
EXIT_CONFIG_ERROR = 2
EXIT_PARTIAL = 3


@click.group()
@click.version_option(version=__version__, prog_name="archlint")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Archlint - declarative architectural-boundary linter."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("archlint").setLevel(level)


def _resolve_config(project_root: Path, config: Path | None) -> Path:
    from archlint.engine.config import find_config
    from archlint.engine.errors import ConfigurationError

    if config is not None:
        return config
    found = find_config(project_root)
    if found is None:
        msg = f"No archlint configuration found in {project_root}"
        raise ConfigurationError(msg)
    return found


@main.command("lint")
@click.argument("paths", nargs=-1)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
@click.option(
    "--config",
    "config",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: archlint.yml in the project root).",
)
@click.option(
    "--jobs",
    "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Worker threads (default: CPU count).",
)
def lint_cmd(
    paths: tuple[str, ...],
    *,
    fmt: str | None,
    project: Path | None,
    config: Path | None,
    jobs: int | None,
) -> None:
    """Lint source files against the configured policy blocks.

    PATHS may be files, directories or globs relative to the project root.
    Exit codes: 0 = no error diagnostics, 1 = error diagnostics,
    2 = configuration error, 3 = partial (interrupted) run.
    """
    from archlint.engine.coordinator import lint as run_lint
    from archlint.engine.errors import ConfigurationError
    from archlint.engine.report import format_json, format_porcelain, format_rich

    project_root = project or Path.cwd()

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    cancel_event = threading.Event()
    previous_handler = _install_interrupt_handler(cancel_event)
    try:
        result = run_lint(
            project_root,
            config_path=_resolve_config(project_root, config),
            paths=list(paths) or None,
            jobs=jobs,
            cancel_event=cancel_event,
        )
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    finally:
        _restore_interrupt_handler(previous_handler)

    formatters = {
        "rich": format_rich,
        "json": format_json,
        "porcelain": format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    if result.partial:
        click.echo("Warning: run was interrupted, results are partial.", err=True)
        sys.exit(EXIT_PARTIAL)
    if result.has_errors:
        sys.exit(EXIT_VIOLATIONS)


def _install_interrupt_handler(cancel_event: threading.Event) -> object:
    """Route Ctrl-C to *cancel_event* so an interrupted run reports partial results."""
    if threading.current_thread() is not threading.main_thread():
        return None

    def _handler(signum: int, frame: object) -> None:
        cancel_event.set()

    return signal.signal(signal.SIGINT, _handler)


def _restore_interrupt_handler(previous: object) -> None:
    if previous is not None:
        signal.signal(signal.SIGINT, previous)  # type: ignore[arg-type]


@main.command("rules")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def rules_cmd(*, as_json: bool) -> None:
    """List the registered rule ids."""
    from archlint.rules import default_registry

    registry = default_registry()
    if as_json:
        data = [
            {"rule_id": module.rule_id, "description": module.description}
            for module in registry.modules()
        ]
        click.echo(json.dumps(data, indent=2))
        return

    width = max(len(rule_id) for rule_id in registry.ids())
    for module in registry.modules():
        click.echo(f"{module.rule_id:<{width}}  {module.description}")


@main.command("check-config")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
@click.option(
    "--config",
    "config",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: archlint.yml in the project root).",
)
@click.pass_context
def check_config_cmd(ctx: click.Context, *, project: Path | None, config: Path | None) -> None:
    """Validate the configuration without analyzing any file."""
    from archlint.engine.config import load_config
    from archlint.engine.errors import ConfigurationError
    from archlint.rules import default_registry

    project_root = project or Path.cwd()
    try:
        config_path = _resolve_config(project_root, config)
        lint_config = load_config(config_path, default_registry())
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    if ctx.obj.get("quiet"):
        return
    click.echo(
        f"{config_path.name}: OK ({len(lint_config.blocks)} blocks, "
        f"{lint_config.rule_count} rule entries)"
    )
    if ctx.obj.get("verbose"):
        for block in lint_config.blocks:
            rule_ids = ", ".join(entry.rule_id for entry in block.rules) or "-"
            click.echo(f"  {block.name}: {', '.join(block.files.patterns)} -> {rule_ids}")
