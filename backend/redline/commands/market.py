"""
Dark web marketplace command.

Commands:
- darkweb              - browse the catalog
- darkweb browse       - same
- darkweb buy <item>   - purchase a tool (one of each)
"""

from typing import TYPE_CHECKING, Any

from ..engine.state import ActionKind, ActionOutcome, AgentProfile, Session
from ..engine.systems.router import CommandResult, ParsedCommand
from ..engine.targets import MARKET_ITEMS, find_market_item
from ..errors import InsufficientCredits, InvalidArguments

if TYPE_CHECKING:
    from ..engine.systems.context import GameContext

USAGE = "darkweb [browse|buy <item>]"


class DarkwebCommand:
    """Handler for the marketplace."""

    def __init__(self, ctx: "GameContext"):
        self.ctx = ctx

    def handle_darkweb(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        action = parsed.arg(0, "browse").lower()
        if action == "browse":
            return self._browse(profile)
        if action == "buy":
            item_id = parsed.arg(1)
            if item_id is None:
                raise InvalidArguments(USAGE)
            return self._buy(profile, item_id)
        raise InvalidArguments(USAGE)

    def _browse(self, profile: AgentProfile) -> CommandResult:
        lines = ["[>] Connecting to dark web...", "=== DARK WEB MARKETPLACE ==="]
        for item in MARKET_ITEMS:
            owned = " [OWNED]" if item.id in profile.inventory else ""
            lines.append(f"  {item.id:<18} {item.name:<30} {item.price:>6} cr{owned}")
            lines.append(
                f"    +{item.success_bonus:.0%} success on {item.kind.value} operations"
            )
        lines.append(f"Balance: {profile.credits} credits")

        return CommandResult(
            command="darkweb",
            lines=lines,
            outcome=ActionOutcome(
                command="darkweb",
                kind=ActionKind.OTHER,
                success=True,
                detail="browse",
            ),
        )

    def _buy(self, profile: AgentProfile, item_id: str) -> CommandResult:
        item = find_market_item(item_id)
        if item is None:
            known = "|".join(i.id for i in MARKET_ITEMS)
            raise InvalidArguments(f"darkweb buy <{known}>")

        if item.id in profile.inventory:
            # Nothing bought, nothing changes
            return CommandResult(
                command="darkweb",
                lines=[f"[!] You already own {item.name}"],
            )

        if item.price > profile.credits:
            raise InsufficientCredits(item.price, profile.credits)

        return CommandResult(
            command="darkweb",
            lines=[f"[+] Purchased {item.name} for {item.price} credits"],
            outcome=ActionOutcome(
                command="darkweb",
                kind=ActionKind.OTHER,
                success=True,
                detail=item.id,
                credit_cost=item.price,
                acquired_item=item.id,
            ),
        )
