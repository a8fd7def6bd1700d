"""Ephemeral CLI - one mood a day."""

import asyncio
import json
import sys
from datetime import date, datetime

import click

from .config import load_config
from .core.moods import MOODS, Mood
from .core.timeline import format_entry, format_month, format_today_header
from .errors import EphemeralError
from .journal import Journal
from .workflows import open_journal


def _run(coro):
    """Run a coroutine, turning package errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except EphemeralError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


async def _open() -> Journal:
    return await open_journal(load_config())


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Expected YYYY-MM-DD, got {value!r}")


@click.group()
@click.version_option(package_name="ephemeral")
def main():
    """Ephemeral - a daily mood journal."""
    pass


# ============== Session ==============


@main.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Sign in with email and password."""

    async def run():
        journal = await _open()
        error = await journal.sign_in(email, password)
        if error:
            click.echo(f"Error: {error}", err=True)
            sys.exit(1)
        click.echo(f"Signed in as {journal.identity.email}. {len(journal.entries())} entries synced.")

    _run(run())


@main.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
def signup(email: str, password: str):
    """Create an account."""

    async def run():
        journal = await _open()
        error = await journal.sign_up(email, password)
        if error:
            click.echo(f"Error: {error}", err=True)
            sys.exit(1)
        if journal.identity is None:
            click.echo("Account created. Check your inbox to confirm it, then run 'ephemeral login'.")
        else:
            click.echo(f"Welcome, {journal.identity.display_name}.")

    _run(run())


@main.command()
def logout():
    """End the current session."""

    async def run():
        journal = await _open()
        if journal.identity is None:
            click.echo("Not logged in.")
            return
        await journal.sign_out()
        click.echo("Logged out.")

    _run(run())


@main.command()
def whoami():
    """Show the signed-in identity."""

    async def run():
        journal = await _open()
        if journal.identity is None:
            click.echo("Not logged in.")
            return
        identity = journal.identity
        click.echo(f"[{identity.initial.upper()}] {identity.email} ({identity.id})")

    _run(run())


# ============== Entries ==============


@main.command()
def moods():
    """List the moods you can record."""
    for mood in Mood:
        info = MOODS[mood]
        click.echo(f"  {mood.value:9} {info.label:16} {info.desc}")


@main.command()
def today():
    """Show today's entry, if any."""

    async def run():
        journal = await _open()
        await journal.ensure_loaded()
        day = journal.today()
        click.echo(format_today_header(day, datetime.now().hour))
        click.echo()
        entry = journal.entry_for(day)
        if entry is None:
            click.echo("No entry yet for today. Use 'ephemeral write --mood <mood>'.")
        else:
            click.echo(format_entry(entry))

    _run(run())


@main.command()
@click.option("--mood", "-m", type=click.Choice([m.value for m in Mood]), default=None,
              help="Mood for the day")
@click.option("--note", "-n", default=None, help="Note text (replaces the existing note)")
@click.option("--image", "-i", "images", multiple=True, type=click.Path(exists=True, dir_okay=False),
              help="Attach an image (up to 3 per entry)")
@click.option("--remove-image", "remove", multiple=True, type=int,
              help="Remove an attached image by position (1-based)")
@click.option("--date", "-d", "target_date", default=None,
              help="Edit an existing past entry (YYYY-MM-DD)")
def write(mood: str | None, note: str | None, images: tuple[str, ...],
          remove: tuple[int, ...], target_date: str | None):
    """Record or update today's entry."""

    async def run():
        journal = await _open()
        await journal.ensure_loaded()
        if target_date is not None:
            journal.edit_entry(_parse_date(target_date))

        # Highest position first so earlier removals don't shift later ones
        for position in sorted(set(remove), reverse=True):
            journal.drafts.remove_attachment(position - 1)
        if mood is not None:
            journal.drafts.set_mood(mood)
        if note is not None:
            journal.drafts.set_note(note)
        if images:
            await journal.drafts.add_attachments(images)

        entry = await journal.save()
        if journal.drafts.is_saved:
            click.echo(f"Saved to cloud: {entry.date.isoformat()} - {MOODS[entry.mood].label}")

    _run(run())


@main.command()
@click.option("--month", "month_str", default=None, help="Month to show (YYYY-MM), defaults to this month")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def history(month_str: str | None, as_json: bool):
    """Show the timeline for a month."""

    async def run():
        journal = await _open()
        await journal.ensure_loaded()

        if month_str:
            try:
                year, month = (int(p) for p in month_str.split("-"))
            except ValueError:
                raise click.BadParameter(f"Expected YYYY-MM, got {month_str!r}")
        else:
            current = journal.today()
            year, month = current.year, current.month

        entries = journal.month(year, month)
        if as_json:
            click.echo(
                json.dumps(
                    [
                        {
                            "date": e.date.isoformat(),
                            "mood": e.mood.value,
                            "tile": e.tile_class,
                            "note": e.note,
                            "images": len(e.images),
                        }
                        for e in entries
                    ],
                    indent=2,
                )
            )
            return
        click.echo(format_month(entries, year, month))

    _run(run())


@main.command()
@click.argument("target_date")
def show(target_date: str):
    """Show the entry for a date (YYYY-MM-DD)."""

    async def run():
        journal = await _open()
        await journal.ensure_loaded()
        day = _parse_date(target_date)
        entry = journal.entry_for(day)
        if entry is None:
            click.echo(f"No entry for {day.strftime('%A, %b %d')}.")
            return
        click.echo(format_entry(entry))

    _run(run())


@main.command()
@click.argument("target_date")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def delete(target_date: str, yes: bool):
    """Delete the entry for a date (YYYY-MM-DD)."""

    async def run():
        journal = await _open()
        await journal.ensure_loaded()
        day = _parse_date(target_date)
        if not yes and not click.confirm(f"Delete the entry for {day.isoformat()} from the cloud forever?"):
            click.echo("Cancelled.")
            return
        await journal.delete_entry(day)
        click.echo(f"Deleted {day.isoformat()}.")

    _run(run())


@main.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def bot(debug: bool):
    """Run the Telegram bot."""
    import logging

    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )

    try:
        from .telegram_bot import run_bot
        click.echo("Starting Ephemeral Telegram bot...")
        click.echo("Press Ctrl+C to stop")
        run_bot()
    except ValueError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nBot stopped.")
