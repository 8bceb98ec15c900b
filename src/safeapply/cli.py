"""Command-line interface for SafeApply.

Commands:
- safeapply apply <batch_file>: Apply a batch of file operations and diffs
- safeapply undo [count]: Undo the most recent operations
- safeapply history: Show the undo ledger
- safeapply clear: Drop all undo history
- safeapply check <path>: Check a path against the sandbox
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import yaml

from .config import DEFAULT_JOURNAL_PATH, SafeApplyConfig, load_config
from .errors import IntegrityError
from .safe_paths import validate_path
from .session import MutationSession

HISTORY_LIMIT = 10

base_option = click.option(
    "--base",
    "-b",
    "base",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="Sandbox directory; all paths must stay inside it.",
)
config_option = click.option(
    "--config", "-c", type=click.Path(exists=True), help="Config file path"
)


def _load_config(base: Path, config: str | None) -> SafeApplyConfig:
    if config:
        cfg = SafeApplyConfig.load_from_file(config)
        cfg.apply_env_overrides()
    else:
        cfg = load_config(base)
    # Undo across invocations needs the journal.
    if not cfg.ledger.journal_path:
        cfg.ledger.journal_path = DEFAULT_JOURNAL_PATH
    return cfg


def _open_session(base: str, config: str | None, *, dry_run: bool = False) -> MutationSession:
    base_path = Path(base).resolve()
    return MutationSession(base_path, _load_config(base_path, config), dry_run=dry_run)


def _read_batch(batch_file: str) -> dict[str, Any]:
    try:
        text = Path(batch_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"Cannot read {batch_file}: {e}") from e
    try:
        if batch_file.endswith(".json"):
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise click.ClickException(f"Cannot parse {batch_file}: {e}") from e
    if not isinstance(data, dict):
        raise click.ClickException(f"{batch_file} must contain a mapping")
    return data


@click.group()
@click.version_option(version="1.0.0", prog_name="safeapply")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """SafeApply - sandboxed, atomic, reversible file changes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("batch_file", type=click.Path(exists=True, dir_okay=False))
@base_option
@config_option
@click.option("--dry-run", is_flag=True, help="Check every operation without writing.")
@click.option("--output", "-o", type=click.Path(), help="Save results to JSON file")
def apply(batch_file: str, base: str, config: str | None, dry_run: bool, output: str | None) -> None:
    """Apply a batch of file operations and diffs.

    BATCH_FILE is JSON or YAML with "files" and/or "diffs" lists.

    Example:
        safeapply apply changes.json --base ./project
        safeapply apply changes.yml --dry-run
    """
    session = _open_session(base, config, dry_run=dry_run)
    response = _read_batch(batch_file)

    if dry_run:
        click.echo("Mode: DRY RUN (no changes will be written)")

    result = session.apply_response(response)

    for label in result.applied:
        click.echo(f"  ✓ {label}")
    for failed in result.failed:
        click.echo(f"  ✗ {failed.path}: {failed.error}")

    click.echo()
    click.echo(f"Applied: {len(result.applied)}  Failed: {len(result.failed)}")
    if result.failed and not dry_run and result.applied:
        click.echo("Use 'safeapply undo' to roll back applied changes.")

    if output:
        Path(output).write_text(json.dumps(result.to_dict(), indent=2))
        click.echo(f"Results saved to: {output}")

    sys.exit(0 if result.ok else 1)


@cli.command()
@click.argument("count", type=click.IntRange(min=1), default=1)
@base_option
@config_option
def undo(count: int, base: str, config: str | None) -> None:
    """Undo the last COUNT operations (default 1).

    Example:
        safeapply undo
        safeapply undo 3 --base ./project
    """
    session = _open_session(base, config)
    result = session.undo_n(count)

    for msg in result.messages:
        click.echo(msg)
    click.echo(f"Undone: {result.undone} operation(s)")

    if result.error_kind == IntegrityError.__name__:
        click.echo("Undo ledger is corrupted; inspect 'safeapply history'.", err=True)
        sys.exit(2)
    sys.exit(0 if result.ok else 1)


@cli.command()
@base_option
@config_option
@click.option("--limit", "-n", type=click.IntRange(min=1), default=HISTORY_LIMIT, show_default=True)
def history(base: str, config: str | None, limit: int) -> None:
    """Show undo history, most recent first."""
    session = _open_session(base, config)
    entries = session.history()

    if not entries:
        click.echo("No undo history.")
        return

    click.echo(f"Undo history ({len(entries)} entries):")
    recent = list(reversed(entries))[:limit]
    for i, entry in enumerate(recent, start=1):
        try:
            shown = str(Path(entry.path).relative_to(session.base_path))
        except ValueError:
            shown = entry.path
        click.echo(f"  {i}. {entry.operation}: {shown}  ({entry.timestamp})")
    if len(entries) > limit:
        click.echo(f"  ... and {len(entries) - limit} more")


@cli.command()
@base_option
@config_option
def clear(base: str, config: str | None) -> None:
    """Drop all undo history."""
    session = _open_session(base, config)
    session.reset()
    click.echo("Undo history cleared.")


@cli.command()
@click.argument("path")
@base_option
@click.option("--resolve-symlinks", is_flag=True, help="Also check the real path.")
def check(path: str, base: str, resolve_symlinks: bool) -> None:
    """Check whether PATH stays inside the sandbox."""
    res = validate_path(path, Path(base).resolve(), resolve_symlinks=resolve_symlinks)
    if res.valid:
        click.echo(f"✓ {res.resolved_path}")
        return
    click.echo(f"✗ {res.error}")
    sys.exit(1)


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
