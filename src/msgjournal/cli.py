#!/usr/bin/env python3
"""
msgjournal CLI - inspect and feed a worker message journal.

This module provides the `msgjournal` command-line interface.
"""

import asyncio
import json
import sys
from typing import Dict, List, Optional

import click
from pydantic import ValidationError

from msgjournal.core.entry import JournalEntry
from msgjournal.core.filter import Filter
from msgjournal.core.journal import Journal, JournalConfig
from msgjournal.utility.exceptions import ConfigError, MsgJournalError
from msgjournal.utility.logger import get_logger
from msgjournal.utility.settings import settings
from msgjournal.utility.timestamps import parse_timestamp

TABLE_HEADERS = (
    "MESSAGE #",
    "MESSAGE ID",
    "SENT",
    "WORKER NAME",
    "RESPONSE TO",
    "WORKER EVENT",
    "WORKER MESSAGE",
)


def _resolve_config(database: Optional[str], config: Optional[str]) -> JournalConfig:
    """Build the journal configuration from --config and/or --database."""
    if config:
        journal_config = JournalConfig.from_yaml(config)
        if database:
            journal_config = journal_config.model_copy(update={"path": database})
        return journal_config
    if database:
        return JournalConfig(path=database)
    raise ConfigError(
        "No journal database given. Use --database, --config or MSGJOURNAL_DATABASE"
    )


def _entry_message(entry: Dict[str, str]) -> str:
    return entry.get("worker_message") or entry.get("worker_data") or ""


def _render_text(entries: List[Dict[str, str]]) -> str:
    lines = []
    for entry in entries:
        lines.append(
            " : ".join(
                [
                    entry["message_id"],
                    entry["sent"],
                    entry["worker_name"],
                    entry["response_to"] or "...",
                    entry["worker_event"] or "...",
                    _entry_message(entry) or "...",
                ]
            )
        )
    return "\n".join(lines)


def _render_table(entries: List[Dict[str, str]]) -> str:
    rows = [list(TABLE_HEADERS)]
    for idx, entry in enumerate(entries):
        rows.append(
            [
                str(idx),
                entry["message_id"],
                entry["sent"],
                entry["worker_name"],
                entry["response_to"],
                entry["worker_event"],
                _entry_message(entry),
            ]
        )
    widths = [max(len(row[col]) for row in rows) for col in range(len(TABLE_HEADERS))]
    return "\n".join(
        "  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
        for row in rows
    )


def database_options(func):
    """Shared --database/--config options."""
    func = click.option(
        "--config",
        "-c",
        type=click.Path(dir_okay=False),
        help="YAML file with a 'journal' section (path, timeout, text_field)",
    )(func)
    func = click.option(
        "--database",
        "-d",
        envvar="MSGJOURNAL_DATABASE",
        help="Path to the journal database (env: MSGJOURNAL_DATABASE)",
    )(func)
    return func


@click.group()
@click.version_option(package_name="msgjournal")
def msgjournal():
    """
    msgjournal - worker message journal

    Record and display worker messages and emitted events.
    """
    pass


@msgjournal.command()
@database_options
@click.option(
    "--truncate-message",
    "-t",
    type=click.IntRange(min=0),
    default=settings.journal.truncate_length,
    show_default=True,
    help="Truncate worker messages that exceed this many characters (0 disables)",
)
@click.option(
    "--worker",
    "-w",
    help="Only display entries for the specified worker",
)
@click.option(
    "--message-id",
    "-m",
    help="Only display entries with the specified message id",
)
@click.option(
    "--since",
    "--from-time",
    help="Only display entries sent at or after this timestamp",
)
@click.option(
    "--until",
    "--to-time",
    help="Only display entries sent at or before this timestamp",
)
@click.option(
    "--session-start",
    help=(
        "Only display entries from the session that started at this timestamp. "
        "Without it, entries from all sessions are displayed"
    ),
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json", "table"]),
    default="text",
    show_default=True,
    help="Print output in FORMAT",
)
def show(
    database: Optional[str],
    config: Optional[str],
    truncate_message: int,
    worker: Optional[str],
    message_id: Optional[str],
    since: Optional[str],
    until: Optional[str],
    session_start: Optional[str],
    output_format: str,
):
    """Display worker messages and emitted events from the journal."""
    logger = get_logger("msgjournal.cli.show")

    try:
        journal_config = _resolve_config(database, config)
        opened_at = None
        if session_start:
            try:
                opened_at = parse_timestamp(session_start)
            except ValueError as e:
                raise ConfigError(f"Invalid --session-start: {e}") from e

        entry_filter = Filter(
            persistent=session_start is None,
            truncate_length=truncate_message,
            message_id=message_id,
            worker=worker,
            since=since,
            until=until,
        )
        entries = asyncio.run(_show(journal_config, entry_filter, opened_at))
    except MsgJournalError as e:
        click.echo(f"Error: cannot list message journal entries: {e}", err=True)
        logger.debug(f"show failed: {e!r}")
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(entries))
    elif output_format == "table":
        click.echo(_render_table(entries))
    elif entries:
        click.echo(_render_text(entries))


async def _show(journal_config: JournalConfig, entry_filter: Filter, opened_at):
    journal = await Journal.open(journal_config, name="cli", opened_at=opened_at)
    try:
        return await journal.get_entries(entry_filter)
    finally:
        await journal.close()


@msgjournal.command()
@database_options
@click.option(
    "--input",
    "-i",
    "input_file",
    type=click.File("r"),
    default="-",
    help="JSON-lines file of worker messages (default: stdin)",
)
def record(database: Optional[str], config: Optional[str], input_file):
    """Append worker messages (one JSON object per line) to the journal."""
    logger = get_logger("msgjournal.cli.record")

    entries = []
    for line_number, line in enumerate(input_file, start=1):
        if not line.strip():
            continue
        try:
            entries.append(JournalEntry.from_worker_message(json.loads(line)))
        except (json.JSONDecodeError, ValidationError, AttributeError) as e:
            click.echo(f"Error: invalid worker message on line {line_number}: {e}", err=True)
            sys.exit(1)

    try:
        journal_config = _resolve_config(database, config)
        asyncio.run(_record(journal_config, entries))
    except MsgJournalError as e:
        click.echo(f"Error: cannot record journal entries: {e}", err=True)
        logger.debug(f"record failed: {e!r}")
        sys.exit(1)

    click.echo(f"Recorded {len(entries)} journal entries")


async def _record(journal_config: JournalConfig, entries: List[JournalEntry]) -> None:
    journal = await Journal.open(journal_config, name="cli")
    try:
        for entry in entries:
            await journal.add_entry(entry)
    finally:
        await journal.close()


@msgjournal.command()
@database_options
def migrate(database: Optional[str], config: Optional[str]):
    """Create or upgrade the journal database schema."""
    try:
        journal_config = _resolve_config(database, config)
        applied, version, count = asyncio.run(_migrate(journal_config))
    except MsgJournalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if applied:
        for migration in applied:
            click.echo(f"Applied migration {migration.version:04d}_{migration.name}")
    else:
        click.echo("Journal schema is up to date")
    click.echo(f"Schema version: {version}")
    click.echo(f"Entries: {count}")


async def _migrate(journal_config: JournalConfig):
    journal = await Journal.open(journal_config, name="cli")
    try:
        version = await journal.schema_version()
        count = await journal.count_entries()
        return journal.applied_migrations, version, count
    finally:
        await journal.close()


if __name__ == "__main__":
    msgjournal()
