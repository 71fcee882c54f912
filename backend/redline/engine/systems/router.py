"""
CommandRouter: name and alias routing for terminal commands.

Provides:
- register_handler() for handler registration
- Command line parsing into name, positional args and --flags
- Unified dispatch with alias support
- Command metadata and help system

Handlers receive ``(engine, session, profile, parsed)`` and return a
CommandResult. Mutating handlers put an ActionOutcome on the result; they
never touch the profile themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from ...errors import UnknownCommand
from ..state import ActionOutcome, AgentProfile, Session

if TYPE_CHECKING:
    from .events import RandomEvent

logger = logging.getLogger(__name__)

Event = dict[str, Any]
CommandHandler = Callable[..., Any]  # (engine, session, profile, parsed)


@dataclass(frozen=True)
class ParsedCommand:
    """One command line split into its parts."""

    name: str
    args: tuple[str, ...] = ()
    flags: frozenset[str] = frozenset()

    def arg(self, index: int, default: str | None = None) -> str | None:
        if index < len(self.args):
            return self.args[index]
        return default

    def has_flag(self, flag: str) -> bool:
        return flag.lstrip("-").lower() in self.flags


def parse_command_line(line: str) -> ParsedCommand | None:
    """
    Split ``command [arg]* [--flag]*``.

    Returns None for a blank line. The command name is lower-cased;
    arguments keep their case.
    """
    parts = line.split()
    if not parts:
        return None
    args = []
    flags = set()
    for token in parts[1:]:
        if token.startswith("--") and len(token) > 2:
            flags.add(token[2:].lower())
        else:
            args.append(token)
    return ParsedCommand(name=parts[0].lower(), args=tuple(args), flags=frozenset(flags))


@dataclass
class CommandResult:
    """
    What a command produced.

    ``lines`` is display text; ``profile`` and ``events`` are filled in by the
    GameEngine after the outcome (if any) has been applied and persisted.
    """

    command: str
    lines: list[str] = field(default_factory=list)
    outcome: ActionOutcome | None = None
    profile: AgentProfile | None = None
    events: list[Event] = field(default_factory=list)
    random_event: "RandomEvent | None" = None
    ends_session: bool = False
    clear_screen: bool = False


@dataclass
class CommandMeta:
    """Metadata for a registered command."""

    name: str  # Primary command name
    aliases: list[str]
    handler: CommandHandler
    category: str  # operations, market, info, system
    description: str
    usage: str  # e.g. "<target> [exploit|CVE]"
    mutating: bool = False


class CommandRouter:
    """
    Routes command lines to handlers.

    Supports:
    - One primary name plus aliases per command
    - Command categorization and help
    """

    def __init__(self, engine: Any) -> None:
        """
        Initialize command router.

        Args:
            engine: The GameEngine instance handed to every handler
        """
        self.engine = engine
        self.commands: dict[str, CommandMeta] = {}  # name or alias -> meta
        self.categories: dict[str, list[str]] = {}  # category -> [primary names]

    def register_handler(
        self,
        name: str,
        handler: CommandHandler,
        aliases: list[str] | None = None,
        category: str = "misc",
        description: str = "",
        usage: str = "",
        mutating: bool = False,
    ) -> None:
        """Register a command handler under its name and aliases."""
        meta = CommandMeta(
            name=name,
            aliases=list(aliases or []),
            handler=handler,
            category=category,
            description=description,
            usage=usage,
            mutating=mutating,
        )
        for key in [name, *meta.aliases]:
            if key in self.commands and self.commands[key].name != name:
                raise ValueError(f"Command name '{key}' is already registered")
            self.commands[key] = meta

        if category not in self.categories:
            self.categories[category] = []
        if name not in self.categories[category]:
            self.categories[category].append(name)

    def resolve(self, name: str) -> CommandMeta:
        """
        Look up a command by name or alias.

        Raises:
            UnknownCommand: If nothing is registered under ``name``
        """
        meta = self.commands.get(name.lower())
        if meta is None:
            raise UnknownCommand(name)
        return meta

    async def dispatch(
        self, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> tuple[CommandMeta, CommandResult]:
        """
        Run the handler for an already-parsed command.

        Errors raised by handlers propagate unchanged.
        """
        meta = self.resolve(parsed.name)
        logger.debug(f"Dispatching '{parsed.name}' -> {meta.name} for {session.username}")

        result = meta.handler(self.engine, session, profile, parsed)
        if hasattr(result, "__await__"):
            result = await result
        return meta, result

    def get_help(self, category: str | None = None) -> str:
        """
        Get help text for commands.

        Args:
            category: Specific category to list, or None for all
        """
        lines = ["=== Available Commands ===", ""]

        cats = [category] if category else sorted(self.categories)
        for cat in cats:
            if cat not in self.categories:
                continue

            lines.append(f"{cat.upper()}:")
            for cmd_name in sorted(self.categories[cat]):
                meta = self.commands[cmd_name]
                usage = f"{cmd_name} {meta.usage}" if meta.usage else cmd_name
                aliases_str = f" (aliases: {', '.join(meta.aliases)})" if meta.aliases else ""
                lines.append(f"  {usage}{aliases_str}")
                if meta.description:
                    lines.append(f"    {meta.description}")
            lines.append("")

        return "\n".join(lines)
