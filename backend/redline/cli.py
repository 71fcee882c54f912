"""
Redline CLI - terminal front-end for the CRIMSON-REDLINE engine.

Usage:
    redline register      Create a new agent
    redline login         Log in and open the terminal (alias: play)
    redline users         List registered agents
    redline db init       Create the database tables
    redline db path       Show where data is stored
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from redline import __version__
from redline.config import (
    APP_NAME,
    CONFIG_FILE,
    LOG_FILE,
    LOG_LEVEL,
    get_data_dir,
    get_database_url,
    load_settings,
)
from redline.db import create_engine, create_session_factory, init_db
from redline.engine.engine import GameEngine
from redline.engine.state import AgentProfile
from redline.engine.systems.randomness import SeededRandomSource
from redline.engine.systems.router import CommandResult
from redline.errors import CorruptRecord, RedlineError, WeakPassword

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _configure_logging(data_dir: Path, level: str) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=data_dir / LOG_FILE,
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _open_engine(obj: dict):
    """Create tables if needed and build a GameEngine over the data directory."""
    data_dir: Path = obj["data_dir"]
    try:
        settings = load_settings(data_dir / CONFIG_FILE)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    db_engine = create_engine(get_database_url(data_dir))
    await init_db(db_engine)
    game = GameEngine.from_session_factory(
        create_session_factory(db_engine),
        settings=settings,
        random_source=SeededRandomSource(obj["seed"]),
    )
    return game, db_engine


def _error(message: str) -> None:
    click.echo(click.style(f"[!] {message}", fg="red"))


@click.group()
@click.version_option(version=__version__, prog_name="redline")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Where the database, config and log live",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=LOG_LEVEL,
    show_default=True,
    help="Log level for redline.log",
)
@click.option("--seed", type=int, default=None, help="Seed outcome rolls for a replayable run")
@click.pass_context
def main(ctx: click.Context, data_dir: Path | None, log_level: str, seed: int | None):
    """CRIMSON-REDLINE - a terminal hacking simulation."""
    data_dir = data_dir or get_data_dir()
    _configure_logging(data_dir, log_level)
    ctx.obj = {"data_dir": data_dir, "seed": seed}


# ---------- Accounts ----------


@main.command()
@click.option("--username", "-u", prompt="Agent name", help="3-20 letters, numbers or _")
@click.password_option("--password", "-p", prompt="Password", help="Password for the new agent")
@click.pass_obj
def register(obj: dict, username: str, password: str):
    """Create a new agent account."""

    async def _run():
        game, db_engine = await _open_engine(obj)
        try:
            await game.register(username, password)
        finally:
            await db_engine.dispose()

    try:
        asyncio.run(_run())
    except WeakPassword as e:
        _error("Password rejected:")
        for failure in e.failures:
            click.echo(f"    - {failure}")
        sys.exit(1)
    except RedlineError as e:
        _error(e.message)
        sys.exit(1)

    click.echo(click.style(f"[+] AGENT {username} CREATED - PROCEED TO LOGIN", fg="green"))


@main.command()
@click.option("--username", "-u", prompt="Agent name")
@click.option("--password", "-p", prompt="Password", hide_input=True)
@click.pass_obj
def login(obj: dict, username: str, password: str):
    """Log in and open the terminal."""

    async def _run():
        game, db_engine = await _open_engine(obj)
        name, secret = username, password
        try:
            while True:
                try:
                    session = await game.login(name, secret)
                except CorruptRecord as e:
                    logger.error(f"Corrupt record for {name}: {e}")
                    _error(e.message)
                else:
                    if await _terminal(game, session):
                        return
                # Back to the login screen
                try:
                    name = click.prompt("Agent name")
                    secret = click.prompt("Password", hide_input=True)
                except click.Abort:
                    click.echo()
                    return
        finally:
            await db_engine.dispose()

    try:
        asyncio.run(_run())
    except RedlineError as e:
        _error(e.message)
        sys.exit(1)


main.add_command(login, name="play")


@main.command()
@click.pass_obj
def users(obj: dict):
    """List registered agents."""

    async def _run():
        game, db_engine = await _open_engine(obj)
        try:
            return await game.auth.list_usernames()
        finally:
            await db_engine.dispose()

    try:
        names = asyncio.run(_run())
    except RedlineError as e:
        _error(e.message)
        sys.exit(1)
    if not names:
        click.echo("No agents registered.")
        return
    for name in names:
        click.echo(f"  {name}")


# ---------- Terminal loop ----------


async def _terminal(game: GameEngine, session) -> bool:
    """Run one session; False when a corrupt record cut it short."""
    click.echo(click.style(f"=== {APP_NAME} ===", fg="red", bold=True))
    click.echo(f"Welcome back, agent {session.username}. Type 'help' for commands.")
    profile = await game.refresh(session)
    _render_prompt_header(profile)

    while session.active:
        try:
            line = click.prompt(
                click.style(f"{session.username}@redline", fg="red"),
                prompt_suffix="$ ",
                default="",
                show_default=False,
            )
        except click.Abort:
            await game.logout(session)
            click.echo()
            return True

        try:
            if session.pending_event is not None and line.strip().isdigit():
                result = await game.resolve_event(session, int(line.strip()) - 1)
            else:
                result = await game.execute(session, line)
        except CorruptRecord as e:
            # Ends this session; other agents are unaffected
            logger.error(f"Corrupt profile for {session.username}: {e}")
            _error(e.message)
            session.active = False
            return False
        except RedlineError as e:
            _error(e.message)
            continue

        _render_result(result)
    return True


def _render_prompt_header(profile: AgentProfile) -> None:
    click.echo(
        f"[{profile.level.display_name}] rep {profile.reputation} | "
        f"heat {profile.heat}% | credits {profile.credits}"
    )


def _render_result(result: CommandResult) -> None:
    if result.clear_screen:
        click.clear()
    for line in result.lines:
        color = None
        if line.startswith("[+]"):
            color = "green"
        elif line.startswith("[x]"):
            color = "red"
        elif line.startswith("[!]"):
            color = "yellow"
        click.echo(click.style(line, fg=color) if color else line)

    for event in result.events:
        if event["type"] == "mission_complete":
            click.echo(
                click.style(
                    f"[+] MISSION COMPLETE: {event['name']} "
                    f"(+{event['reward_reputation']} rep, +{event['reward_credits']} credits)",
                    fg="green",
                    bold=True,
                )
            )
        elif event["type"] == "achievement_unlocked":
            click.echo(
                click.style(
                    f"[*] ACHIEVEMENT UNLOCKED: {event['name']} ({event['rarity']}, {event['points']} pts)",
                    fg="magenta",
                )
            )
        elif event["type"] == "level_up":
            click.echo(
                click.style(f"[*] LEVEL UP: {event['new_level']}", fg="cyan", bold=True)
            )

    if result.outcome is not None and result.profile is not None:
        _render_prompt_header(result.profile)

    if result.random_event is not None:
        event = result.random_event
        click.echo(click.style(f"\n!!! {event.title} !!!", fg="yellow", bold=True))
        click.echo(f"    {event.description}")
        for index, choice in enumerate(event.choices, start=1):
            cost = ""
            if choice.cost is not None:
                parts = []
                if choice.cost.credits:
                    parts.append(f"{choice.cost.credits} credits")
                if choice.cost.reputation:
                    parts.append(f"{choice.cost.reputation} rep")
                if choice.cost.heat:
                    parts.append(f"+{choice.cost.heat} heat")
                cost = f" [cost: {', '.join(parts)}]"
            click.echo(f"    {index}. {choice.label}{cost}")
        click.echo("    Enter a number to choose, or any command to ignore.")


# ---------- Database ----------


@main.group()
def db():
    """Database management commands."""
    pass


@db.command(name="init")
@click.pass_obj
def db_init(obj: dict):
    """Create the credential and profile tables."""

    async def _run():
        db_engine = create_engine(get_database_url(obj["data_dir"]))
        try:
            await init_db(db_engine)
        finally:
            await db_engine.dispose()

    asyncio.run(_run())
    click.echo(click.style("[+] Database initialized", fg="green"))


@db.command(name="path")
@click.pass_obj
def db_path(obj: dict):
    """Show the data directory and database URL."""
    click.echo(f"Data directory: {obj['data_dir']}")
    click.echo(f"Database:       {get_database_url(obj['data_dir'])}")
    click.echo(f"Config:         {obj['data_dir'] / CONFIG_FILE}")
    click.echo(f"Log:            {obj['data_dir'] / LOG_FILE}")


if __name__ == "__main__":
    main()
