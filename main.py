import sys
import asyncio
from typing import List

from fixture_bot.logging.setup import setup_logging
from fixture_bot.config.settings import settings

setup_logging()

from loguru import logger

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fixture_bot.models.match import Match
from fixture_bot.sync.orchestrator import SyncError, SyncReport
from fixture_bot.sync.service import FixtureService

app = typer.Typer(help="Football fixture sync for the Discord bot", no_args_is_help=True)
console = Console()


def _report_table(report: SyncReport) -> Table:
    table = Table(title="Club results")
    table.add_column("Club")
    table.add_column("Found", justify="right")
    table.add_column("Written", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Error", style="red")
    for result in sorted(report.results, key=lambda r: r.club):
        table.add_row(
            result.club,
            str(result.fixtures_found),
            str(result.matches_upserted),
            str(result.fixtures_failed),
            result.error or "",
        )
    return table


def _matches_table(matches: List[Match]) -> Table:
    table = Table(title="Upcoming matches")
    table.add_column("Kickoff (UTC+3)")
    table.add_column("League")
    table.add_column("Home")
    table.add_column("Away")
    table.add_column("1 / X / 2", justify="center")
    for match in matches:
        odds = "-"
        if match.home_win_probability is not None:
            odds = f"{match.home_win_probability} / {match.draw_probability} / {match.away_win_probability}"
        table.add_row(
            match.date.strftime("%a %d.%m %H:%M"),
            match.league,
            match.home_team.name if match.home_team else str(match.home_team_id),
            match.away_team.name if match.away_team else str(match.away_team_id),
            odds,
        )
    return table


async def _sync_once() -> SyncReport:
    service = await FixtureService.build()
    try:
        return await service.run_once()
    finally:
        await service.stop()


async def _serve() -> None:
    service = await FixtureService.build()
    try:
        await service.start()
    finally:
        await service.stop()


async def _upcoming(days: int) -> List[Match]:
    service = await FixtureService.build()
    try:
        return await service.get_upcoming_matches(days)
    finally:
        await service.stop()


@app.command()
def sync() -> None:
    """Run a single fixture sync cycle and print a summary."""
    logger.info(f"Syncing {len(settings.tracked_clubs)} tracked clubs")
    try:
        report = asyncio.run(_sync_once())
    except SyncError as e:
        console.print(Panel(str(e), title="Sync failed", border_style="red"))
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"Clubs ok: {len(report.succeeded)}/{len(report.results)}\n"
            f"Matches written: {report.matches_upserted}\n"
            f"Rows wiped: {report.wiped_rows}, flags restored: {report.flags_restored}",
            title="Fixture sync",
            border_style="green" if not report.failed else "yellow",
        )
    )
    console.print(_report_table(report))


@app.command()
def serve() -> None:
    """Run the periodic sync loop until interrupted."""
    logger.info(f"Starting sync loop, interval {settings.sync_interval_hours}h")
    asyncio.run(_serve())


@app.command()
def upcoming(
    days: int = typer.Option(7, "--days", min=1, help="How many days ahead to list"),
) -> None:
    """List scheduled matches for the coming days."""
    matches = asyncio.run(_upcoming(days))
    if not matches:
        console.print(Panel("No scheduled matches in this window.", title="Fixtures"))
        return
    console.print(_matches_table(matches))


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        sys.exit(0)
