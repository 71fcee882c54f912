"""
Read-only commands: status, mission, help, clear, logout.

None of these produce an ActionOutcome, so they never change the profile
(logout's bookkeeping is done by the GameEngine when it sees ends_session).
"""

from typing import TYPE_CHECKING, Any

from ..engine.state import MAX_HEAT, AgentProfile, Session
from ..engine.systems.achievements import ACHIEVEMENTS, achievement_points
from ..engine.systems.missions import MISSIONS, get_mission
from ..engine.systems.router import CommandResult, ParsedCommand
from ..errors import InvalidArguments

if TYPE_CHECKING:
    from ..engine.systems.context import GameContext

HEAT_BAR_WIDTH = 20


def heat_bar(heat: int, width: int = HEAT_BAR_WIDTH) -> str:
    """Render heat as ``[#####---------------]``."""
    filled = round(heat / MAX_HEAT * width)
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def format_duration(seconds: int) -> str:
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class InfoCommands:
    """Handlers for status and navigation commands."""

    def __init__(self, ctx: "GameContext"):
        self.ctx = ctx

    def handle_status(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        stats = profile.stats
        to_next = profile.reputation_to_next_level
        next_line = "MAX LEVEL" if to_next is None else f"{to_next} to next level"
        lines = [
            "=== AGENT STATUS ===",
            f"  Agent:       {profile.username}",
            f"  Level:       {profile.level.display_name} ({profile.level_progress:.0f}%, {next_line})",
            f"  Reputation:  {profile.reputation}",
            f"  Credits:     {profile.credits}",
            f"  Heat:        {heat_bar(profile.heat)} {profile.heat}%",
            f"  Streak:      {profile.streak}",
            "",
            f"  Operations:  {stats.successful_ops} ok / {stats.failed_ops} failed "
            f"({stats.success_rate:.1f}%)",
            f"  Scans:       {stats.total_scans} ({len(stats.scanned_targets)} targets)",
            f"  Compromised: {stats.systems_compromised}",
            f"  Decrypted:   {stats.files_decrypted}",
            f"  Missions:    {len(profile.completed_missions)}/{len(MISSIONS)}",
            f"  Achievements: {len(profile.unlocked_achievements)}/{len(ACHIEVEMENTS)} "
            f"({achievement_points(profile)} pts)",
            f"  Time played: {format_duration(stats.time_played_seconds)}",
        ]
        if profile.inventory:
            lines.append(f"  Tools:       {', '.join(sorted(profile.inventory))}")
        if profile.is_in_danger:
            lines.append("[!] WARNING: heat critical - lay low")
        return CommandResult(command="status", lines=lines)

    def handle_mission(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        action = parsed.arg(0, "list").lower()
        if action == "list":
            lines = ["=== MISSIONS ==="]
            for mission in MISSIONS:
                done = mission.id in profile.completed_missions
                marker = "[x]" if done else "[ ]"
                progress = 100.0 if done else mission.completion_percentage(profile)
                lines.append(
                    f"  {marker} {mission.id:<15} {mission.name:<24} "
                    f"{mission.difficulty.value:<10} {progress:5.1f}%"
                )
            return CommandResult(command="mission", lines=lines)

        if action == "view":
            mission_id = parsed.arg(1)
            mission = get_mission(mission_id) if mission_id else None
            if mission is None:
                raise InvalidArguments("mission view <id>")
            lines = [
                f"=== {mission.id}: {mission.name} ===",
                f"  {mission.description}",
                f"  Difficulty: {mission.difficulty.value}",
                f"  Reward: {mission.reward_reputation} reputation, {mission.reward_credits} credits",
                "  Objectives:",
            ]
            for objective in mission.objectives:
                marker = "[x]" if objective.is_complete(profile) else "[ ]"
                lines.append(
                    f"    {marker} {objective.description} "
                    f"({objective.current(profile)}/{objective.required})"
                )
            if mission.id in profile.completed_missions:
                lines.append("  COMPLETED")
            return CommandResult(command="mission", lines=lines)

        raise InvalidArguments("mission [list|view <id>]")

    def handle_help(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        category = parsed.arg(0)
        text = engine.command_router.get_help(category.lower() if category else None)
        return CommandResult(command="help", lines=text.splitlines())

    def handle_clear(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        return CommandResult(command="clear", clear_screen=True)

    def handle_logout(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        return CommandResult(
            command="logout",
            lines=["[>] Disconnecting from the grid..."],
            ends_session=True,
        )
