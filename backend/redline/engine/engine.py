"""
GameEngine - session orchestration.

Wires the systems together and runs one command at a time:

    parse -> dispatch -> ProgressionEngine.apply -> persist -> random event roll

A command's profile change is committed before its CommandResult is
returned, so nothing shown to the player can be lost.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..commands import DarkwebCommand, InfoCommands, OperationCommands
from ..config import Settings
from ..errors import NoPendingEvent, PersistenceFailure, SessionClosed
from .state import AgentProfile, CredentialRecord, Session
from .stores import CredentialStore, ProfileStore
from .systems.auth import AuthSystem
from .systems.context import Clock, GameContext
from .systems.events import EventManager
from .systems.progression import ProgressionEngine
from .systems.randomness import RandomSource
from .systems.router import CommandResult, CommandRouter, parse_command_line

logger = logging.getLogger(__name__)


class GameEngine:
    """Owns the systems and turns command lines into persisted results."""

    def __init__(self, ctx: GameContext) -> None:
        self.ctx = ctx
        settings = ctx.settings

        self.progression = ProgressionEngine(settings.heat_decay_per_minute)
        self.ctx.progression = self.progression
        self.event_manager = EventManager(
            ctx.random_source,
            event_chance=settings.event_chance,
            enabled=settings.enable_random_events,
        )
        self.ctx.event_manager = self.event_manager
        self.auth = AuthSystem(ctx)
        self.ctx.auth = self.auth

        self.command_router = CommandRouter(self)
        self.ctx.router = self.command_router
        self.operations = OperationCommands(ctx)
        self.darkweb = DarkwebCommand(ctx)
        self.info = InfoCommands(ctx)
        self._register_command_handlers()

        logger.info("GameEngine initialized")

    @classmethod
    def from_session_factory(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
        random_source: RandomSource | None = None,
        clock: Clock | None = None,
    ) -> "GameEngine":
        """Build an engine whose stores share ``session_factory``."""
        ctx = GameContext(
            settings or Settings(),
            CredentialStore(session_factory),
            ProfileStore(session_factory),
            random_source=random_source,
            clock=clock,
        )
        return cls(ctx)

    def _register_command_handlers(self) -> None:
        """Register every terminal command with the router."""
        router = self.command_router
        ops = self.operations

        # Operations
        router.register_handler(
            "scan",
            ops.handle_scan,
            aliases=["nmap", "recon"],
            category="operations",
            description="Scan a target or the local network",
            usage="[target]",
            mutating=True,
        )
        router.register_handler(
            "exploit",
            ops.handle_exploit,
            aliases=["pwn", "attack"],
            category="operations",
            description="Run an exploit against a target",
            usage="<target> [exploit|CVE]",
            mutating=True,
        )
        router.register_handler(
            "decrypt",
            ops.handle_decrypt,
            aliases=["decode", "decipher"],
            category="operations",
            description="Decrypt an encrypted file",
            usage="[file]",
            mutating=True,
        )
        router.register_handler(
            "inject",
            ops.handle_inject,
            aliases=["payload", "implant"],
            category="operations",
            description="Inject a payload into a target",
            usage="<target> [payload]",
            mutating=True,
        )
        router.register_handler(
            "trace",
            ops.handle_trace,
            aliases=["traceroute", "track"],
            category="operations",
            description="Trace the route to a target",
            usage="[target]",
            mutating=True,
        )
        router.register_handler(
            "firewall",
            ops.handle_firewall,
            aliases=["fw", "barrier"],
            category="operations",
            description="Analyze, bypass or disable a firewall",
            usage="<target> [analyze|bypass|disable]",
            mutating=True,
        )

        # Market
        router.register_handler(
            "darkweb",
            self.darkweb.handle_darkweb,
            aliases=["market", "underground"],
            category="market",
            description="Browse or buy from the dark web marketplace",
            usage="[browse|buy <item>]",
            mutating=True,
        )

        # Info
        router.register_handler(
            "status",
            self.info.handle_status,
            aliases=["stats", "info"],
            category="info",
            description="Show your agent profile",
        )
        router.register_handler(
            "mission",
            self.info.handle_mission,
            aliases=["objective", "task"],
            category="info",
            description="List missions or view one",
            usage="[list|view <id>]",
        )
        router.register_handler(
            "help",
            self.info.handle_help,
            aliases=["?", "h"],
            category="system",
            description="Show this help",
            usage="[category]",
        )
        router.register_handler(
            "clear",
            self.info.handle_clear,
            aliases=["cls", "cl"],
            category="system",
            description="Clear the screen",
        )
        router.register_handler(
            "logout",
            self.info.handle_logout,
            aliases=["exit", "quit", "disconnect"],
            category="system",
            description="End the session",
        )

    # ---------- Accounts ----------

    async def register(self, username: str, password: str) -> CredentialRecord:
        return await self.auth.register(username, password)

    async def login(self, username: str, password: str) -> Session:
        return await self.auth.login(username, password)

    async def logout(self, session: Session) -> AgentProfile:
        profile = await self._load_profile(session.username)
        return await self.auth.logout(session, profile)

    # ---------- Commands ----------

    async def execute(self, session: Session, line: str) -> CommandResult:
        """
        Run one command line for ``session``.

        Raises:
            SessionClosed: If the session has ended
            UnknownCommand / InvalidArguments / InsufficientCredits: With no state change
            CorruptRecord / PersistenceFailure: If the profile cannot be read or written
        """
        self._require_active(session)
        parsed = parse_command_line(line)
        if parsed is None:
            return CommandResult(command="")

        meta = self.command_router.resolve(parsed.name)
        if session.pending_event is not None:
            logger.warning(
                f"Discarding unresolved event '{session.pending_event.id}' for {session.username}"
            )
            session.pending_event = None

        profile = await self._load_profile(session.username)
        now = self.ctx.now()
        current = self.progression.decay(profile, now)

        _, result = await self.command_router.dispatch(session, current, parsed)

        if result.ends_session:
            result.profile = await self.auth.logout(session, profile)
            return result

        if result.outcome is None:
            result.profile = current
            return result

        progression = self.progression.apply(profile, result.outcome, now)
        await self.ctx.profile_store.save(progression.profile)
        result.profile = progression.profile
        result.events = progression.events

        if meta.mutating:
            event = self.event_manager.maybe_trigger(progression.profile)
            if event is not None:
                session.pending_event = event
                result.random_event = event
        return result

    async def resolve_event(self, session: Session, choice_index: int) -> CommandResult:
        """
        Apply the chosen option of the pending random event.

        Raises:
            NoPendingEvent: If there is nothing to resolve
            InvalidArguments: If the choice index is out of range
            InsufficientCredits: If the choice costs more than the balance
                (the event stays pending)
        """
        self._require_active(session)
        event = session.pending_event
        if event is None:
            raise NoPendingEvent("No event awaiting a decision")

        profile = await self._load_profile(session.username)
        now = self.ctx.now()
        effect = self.event_manager.resolve(event, choice_index, self.progression.decay(profile, now))
        progression = self.progression.apply_event_effect(profile, effect, now)
        await self.ctx.profile_store.save(progression.profile)
        session.pending_event = None

        return CommandResult(
            command="event",
            lines=[f"[>] {effect.description}"],
            profile=progression.profile,
            events=progression.events,
        )

    async def refresh(self, session: Session) -> AgentProfile:
        """
        Current profile for display (heat decayed to now, nothing persisted).

        A PersistenceFailure is retried once before it is raised.
        """
        self._require_active(session)
        try:
            profile = await self._load_profile(session.username)
        except PersistenceFailure as e:
            logger.warning(f"Refresh for {session.username} failed, retrying: {e}")
            profile = await self._load_profile(session.username)
        return self.progression.decay(profile, self.ctx.now())

    # ---------- Helpers ----------

    async def _load_profile(self, username: str) -> AgentProfile:
        profile = await self.ctx.profile_store.load(username)
        if profile is None:
            raise SessionClosed(f"No agent profile for {username}")
        return profile

    @staticmethod
    def _require_active(session: Session) -> None:
        if not session.active:
            raise SessionClosed("Session is closed")
