"""Streem Realm CLI.

Commands:
- stats: Whole-build dashboard numbers
- zones / structures / sessions / materials: Build records (``--kids`` for the kids' view)
- log-session: Record a build session
- zone-status / zone-toggle / zone-teaser: Zone edits
- chat / chat-clear: Talk to the Claude build assistant
- overrides: Zone changes held on this device
- set-token: Save the Airtable token or Claude API key locally
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import NoReturn

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from streemrealm.airtable.client import AirtableClient
from streemrealm.airtable.errors import AirtableError
from streemrealm.assistant.service import AssistantError, BuildAssistant
from streemrealm.config import AppConfig, StorageConfig, get_config
from streemrealm.core.logging import configure_logging
from streemrealm.models import BuildMood, BuildSession, Zone, ZoneStatus
from streemrealm.storage.local_store import ChatHistoryStore, LocalOverrideStore, TokenStore
from streemrealm.sync.reconciler import Reconciler, WriteOutcome
from streemrealm.sync.snapshot import Snapshot

app = typer.Typer(
    name="streemrealm",
    help="Team Streem Realm - Minecraft mega-build tracker",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def _setup() -> None:
    configure_logging()


def parse_mood(value: str) -> BuildMood:
    """Accept the full label ("🔥 On Fire") or just its name ("on fire", "fire")."""
    needle = value.strip().lower()
    for mood in BuildMood:
        if needle in (mood.value.lower(), mood.short_name.lower()):
            return mood
    for mood in BuildMood:
        if needle and needle in mood.short_name.lower():
            return mood
    raise typer.BadParameter(
        f"Unknown mood '{value}'. Choose from: "
        + ", ".join(m.short_name for m in BuildMood)
    )


def _fail(message: str) -> NoReturn:
    console.print(f"[red]✗ {message}[/red]")
    raise typer.Exit(1)


def _run(coro) -> None:
    """Run a command coroutine, turning known failures into an error line."""
    try:
        asyncio.run(coro)
    except AirtableError as e:
        _fail(str(e))
    except AssistantError as e:
        _fail(str(e))


def _config() -> AppConfig:
    try:
        return get_config()
    except KeyError as e:
        _fail(f"Configuration error: {e.args[0] if e.args else e}")


@asynccontextmanager
async def _open_reconciler(kids: bool = False) -> AsyncIterator[Reconciler]:
    """Loaded reconciler bound to the configured base."""
    config = _config()
    async with AirtableClient.from_config(config.airtable) as client:
        reconciler = Reconciler(
            client,
            LocalOverrideStore(config.storage.overrides_path),
            tables=config.airtable.tables,
            kids_session_limit=config.kids_session_limit,
        )
        if kids:
            await reconciler.load_filtered()
        else:
            await reconciler.load_all()
        yield reconciler


def _view(reconciler: Reconciler, kids: bool) -> Snapshot:
    snapshot = reconciler.snapshot
    return snapshot.for_kids() if kids else snapshot


def _layers(zone: Zone) -> str:
    if not zone.total_layers:
        return "-"
    done = zone.layer_progress_count or 0
    return f"{done}/{zone.total_layers} ({zone.layer_progress * 100:.0f}%)"


def _pace(session: BuildSession) -> str:
    pace = session.blocks_per_minute
    return f"{pace:.1f}/min" if pace is not None else "-"


def _print_outcome(outcome: WriteOutcome, what: str) -> None:
    if outcome == WriteOutcome.LOCALLY_COMMITTED:
        console.print(
            f"[bold green]✓[/bold green] {what} "
            "[yellow](saved on this device; Airtable is missing a column)[/yellow]"
        )
    else:
        console.print(f"[bold green]✓[/bold green] {what}")


@app.command()
def stats():
    """Show whole-build statistics."""

    async def _stats():
        async with _open_reconciler() as reconciler:
            snapshot = reconciler.snapshot
            s = snapshot.stats

            table = Table(title="Team Streem Realm")
            table.add_column("Metric", style="cyan")
            table.add_column("Value", justify="right", style="green")

            table.add_row("Zones", f"{s.completed_zones}/{s.zone_count} complete")
            table.add_row("Blocks placed", f"{s.total_blocks_placed:,}")
            table.add_row("Blocks planned", f"{s.total_blocks_planned:,}")
            table.add_row("Progress", f"{s.progress_percent:.1f}%")
            table.add_row("Build time", s.formatted_build_time)

            active = snapshot.zone(s.active_zone_id) if s.active_zone_id else None
            table.add_row("Now building", active.full_display_name if active else "-")

            console.print(table)

    _run(_stats())


@app.command()
def zones(
    kids: bool = typer.Option(False, "--kids", help="Only what the kids can see"),
):
    """List zones in build order."""

    async def _zones():
        async with _open_reconciler(kids=kids) as reconciler:
            view = _view(reconciler, kids)

            table = Table(title="Zones")
            table.add_column("#", justify="right")
            table.add_column("Zone", style="cyan")
            table.add_column("Status")
            table.add_column("Progress", justify="right", style="green")
            table.add_column("Layers", justify="right")
            if not kids:
                table.add_column("Visible")
                table.add_column("ID", style="dim")

            for zone in view.zones:
                if kids and zone.is_locked:
                    name = zone.teaser_message or "???"
                else:
                    name = zone.display_name
                row = [
                    str(zone.zone_number) if zone.zone_number is not None else "-",
                    name,
                    zone.status.display_text,
                    f"{zone.progress * 100:.0f}%",
                    _layers(zone),
                ]
                if not kids:
                    row += ["yes" if zone.is_visible_to_kids else "no", zone.id]
                table.add_row(*row)

            console.print(table)

    _run(_zones())


@app.command()
def structures(
    kids: bool = typer.Option(False, "--kids", help="Only what the kids can see"),
    zone: str | None = typer.Option(None, "--zone", help="Only structures in this zone"),
):
    """List structures, optionally for one zone."""

    async def _structures():
        async with _open_reconciler(kids=kids) as reconciler:
            rows = _view(reconciler, kids).structures
            if zone is not None:
                rows = tuple(s for s in rows if zone in s.zone_ids)

            table = Table(title="Structures")
            table.add_column("Structure", style="cyan")
            table.add_column("Story" if kids else "Type")
            table.add_column("Progress", justify="right", style="green")
            table.add_column("Blocks left", justify="right")
            if not kids:
                table.add_column("What really happens")
                table.add_column("Visible")
                table.add_column("ID", style="dim")

            for structure in rows:
                row = [
                    f"{structure.icon} {structure.display_name}",
                    structure.kids_description if kids else structure.structure_type.value,
                    f"{structure.progress * 100:.0f}%",
                    f"{structure.blocks_remaining_count:,}",
                ]
                if not kids:
                    row += [
                        structure.what_really_happens or "",
                        "yes" if structure.is_visible_to_kids else "no",
                        structure.id,
                    ]
                table.add_row(*row)

            console.print(table)

    _run(_structures())


@app.command()
def sessions(
    kids: bool = typer.Option(False, "--kids", help="Only what the kids can see"),
    limit: int | None = typer.Option(None, "--limit", help="Max sessions shown"),
):
    """List build sessions, newest first."""

    async def _sessions():
        async with _open_reconciler(kids=kids) as reconciler:
            rows = _view(reconciler, kids).sessions
            if limit is not None:
                rows = rows[:limit]

            table = Table(title="Build Sessions")
            table.add_column("Date")
            table.add_column("Duration", justify="right")
            table.add_column("Blocks", justify="right", style="green")
            table.add_column("Pace", justify="right")
            table.add_column("Mood")
            table.add_column("Notes")

            for session in rows:
                table.add_row(
                    session.formatted_date,
                    session.formatted_duration,
                    str(session.blocks_placed or 0),
                    _pace(session),
                    f"[{session.mood.color}]{session.mood.value}[/{session.mood.color}]",
                    session.notes_display or "",
                )

            console.print(table)

    _run(_sessions())


@app.command()
def materials():
    """List materials with their block catalog entry."""

    async def _materials():
        async with _open_reconciler() as reconciler:
            table = Table(title="Materials")
            table.add_column("Block")
            table.add_column("Rarity", style="magenta")
            table.add_column("Placed", justify="right", style="green")
            table.add_column("Planned", justify="right")
            table.add_column("Progress", justify="right")

            for material in reconciler.snapshot.materials:
                table.add_row(
                    f"{material.emoji} {material.material_name}",
                    material.rarity.label,
                    f"{material.qty_placed:,}",
                    f"{material.qty_planned:,}",
                    "✅" if material.is_complete else f"{material.progress * 100:.0f}%",
                )

            console.print(table)

    _run(_materials())


@app.command(name="log-session")
def log_session_cmd(
    blocks: int = typer.Option(..., "--blocks", min=0, help="Blocks placed"),
    minutes: int = typer.Option(..., "--minutes", min=0, help="Duration in minutes"),
    mood: str = typer.Option("Brick by Brick", "--mood", help="Session mood"),
    notes: str | None = typer.Option(None, "--notes", help="Notes for the kids"),
    zone: list[str] = typer.Option([], "--zone", help="Zone record ID (repeatable)"),
):
    """Record a build session."""
    session = BuildSession.new(
        blocks_placed=blocks,
        duration_minutes=minutes,
        mood=parse_mood(mood),
        notes_display=notes,
        zone_ids=list(zone),
    )

    async def _log():
        async with _open_reconciler() as reconciler:
            created = await reconciler.create_session(session)
            console.print(
                f"[bold green]✓[/bold green] Session logged: {created.blocks_placed} blocks "
                f"in {created.formatted_duration} {created.mood.value}"
            )
            console.print(
                f"  Total build time: {reconciler.snapshot.stats.formatted_build_time}"
            )

    _run(_log())


@app.command(name="zone-status")
def zone_status_cmd(
    zone_id: str = typer.Argument(..., help="Zone record ID"),
    status: ZoneStatus = typer.Argument(..., help="locked, building or complete"),
):
    """Set a zone's status."""

    async def _status():
        async with _open_reconciler() as reconciler:
            outcome = await reconciler.set_zone_status(zone_id, status)
            _print_outcome(outcome, f"Zone status set to {status.display_text}")

    _run(_status())


@app.command(name="zone-toggle")
def zone_toggle_cmd(
    zone_id: str = typer.Argument(..., help="Zone record ID"),
):
    """Show or hide a zone from the kids."""

    async def _toggle():
        async with _open_reconciler() as reconciler:
            outcome = await reconciler.toggle_zone_visibility(zone_id)
            zone = reconciler.snapshot.zone(zone_id)
            state = "visible" if zone and zone.is_visible_to_kids else "hidden"
            _print_outcome(outcome, f"Zone is now {state} to the kids")

    _run(_toggle())


@app.command(name="zone-teaser")
def zone_teaser_cmd(
    zone_id: str = typer.Argument(..., help="Zone record ID"),
    text: str = typer.Argument(..., help="Teaser shown while the zone is locked"),
):
    """Set the mystery teaser of a zone."""

    async def _teaser():
        async with _open_reconciler() as reconciler:
            outcome = await reconciler.update_teaser_message(zone_id, text or None)
            _print_outcome(outcome, "Teaser updated")

    _run(_teaser())


@app.command()
def chat(
    message: str = typer.Argument(..., help="Message for the build assistant"),
):
    """Send one message to the Claude build assistant."""

    async def _chat():
        config = _config()
        async with _open_reconciler() as reconciler:
            assistant = BuildAssistant.from_config(
                config.claude, reconciler, ChatHistoryStore(config.storage.chat_history_path)
            )
            try:
                turn = await assistant.send_message(message)
            finally:
                await assistant.close()
            console.print(Markdown(turn.content))

    _run(_chat())


@app.command(name="chat-clear")
def chat_clear_cmd():
    """Forget the build assistant conversation."""
    ChatHistoryStore(_storage().chat_history_path).clear()
    console.print("[bold green]✓[/bold green] Chat history cleared")


@app.command()
def overrides():
    """List zone changes held on this device."""
    store = LocalOverrideStore(_storage().overrides_path)
    held = store.get_all()
    if not held:
        console.print("No local zone overrides.")
        return

    table = Table(title="Local zone overrides")
    table.add_column("Zone ID", style="cyan")
    table.add_column("Status")
    table.add_column("Visible")
    table.add_column("Teaser")
    table.add_column("Reason", style="dim")
    table.add_column("Recorded", style="dim")

    for zone_id, state in sorted(held.items()):
        table.add_row(
            zone_id,
            state.status,
            "yes" if state.is_visible_to_kids else "no",
            state.teaser_message or "",
            state.reason.value,
            f"{state.recorded_at:%Y-%m-%d %H:%M}",
        )
    console.print(table)


@app.command(name="set-token")
def set_token_cmd(
    token: str = typer.Option(..., prompt=True, hide_input=True, help="Secret to save"),
    claude: bool = typer.Option(False, "--claude", help="Save a Claude API key instead"),
):
    """Save the Airtable token (or Claude API key) on this device."""
    storage = _storage()
    path = storage.claude_token_path if claude else storage.airtable_token_path
    if not token.strip():
        _fail("Token must not be empty")
    TokenStore(path).set(token)
    console.print(f"[bold green]✓[/bold green] Saved to {path}")


def _storage() -> StorageConfig:
    """Local storage locations; available even before Airtable is configured."""
    try:
        return get_config().storage
    except KeyError:
        return StorageConfig.from_env()


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
