"""
Operation commands: scan, exploit, decrypt, inject, trace, firewall.

Each handler makes exactly one success roll (when the action can fail) and
returns a CommandResult carrying the ActionOutcome. Heat, rewards and stats
are applied afterwards by the ProgressionEngine.

Commands:
- scan [target]                        - map a host or the local network
- exploit <target> [exploit|CVE]       - run an exploit against a host
- decrypt [file]                       - crack an encrypted file
- inject <target> [payload]            - plant a payload
- trace [target]                       - trace the route to a host
- firewall <target> [analyze|bypass|disable]
"""

from __future__ import annotations

import zlib
from typing import TYPE_CHECKING, Any

from ..engine.state import ActionKind, ActionOutcome, AgentProfile, Difficulty, Session
from ..engine.systems.randomness import roll_succeeds
from ..engine.systems.router import CommandResult, ParsedCommand
from ..engine.targets import (
    DEFAULT_EXPLOIT,
    DEFAULT_TARGET_DIFFICULTY,
    classify_file,
    classify_target,
    exploit_difficulty,
    find_exploit,
    success_probability,
)
from ..errors import InvalidArguments

if TYPE_CHECKING:
    from ..engine.systems.context import GameContext

DEFAULT_SCAN_TARGET = "network"
DEFAULT_PAYLOAD = "trojan"
PAYLOADS = ("trojan", "backdoor", "keylogger", "rootkit", "ransomware", "worm")
FIREWALL_MODES = ("analyze", "bypass", "disable")


class OperationCommands:
    """Handlers for the simulated hacking operations."""

    def __init__(self, ctx: "GameContext"):
        self.ctx = ctx

    def _succeeds(
        self,
        difficulty: Difficulty | None,
        kind: ActionKind,
        profile: AgentProfile,
    ) -> bool:
        probability = success_probability(difficulty, kind, profile.inventory)
        return roll_succeeds(self.ctx.random_source, probability)

    def handle_scan(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        target = parsed.arg(0)
        if target is None:
            # Untargeted scans roll at the base probability
            target = DEFAULT_SCAN_TARGET
            difficulty = DEFAULT_TARGET_DIFFICULTY
            success = self._succeeds(None, ActionKind.SCAN, profile)
        else:
            difficulty = classify_target(target)
            success = self._succeeds(difficulty, ActionKind.SCAN, profile)

        lines = [f"[>] Scanning {target} ({difficulty.value})..."]
        if success:
            ports = _open_ports(target)
            lines.append(f"[+] Scan complete: {target} mapped")
            lines.append(f"    Open ports: {', '.join(str(p) for p in ports)}")
        else:
            lines.append(f"[x] Scan of {target} blocked by intrusion detection")

        return CommandResult(
            command="scan",
            lines=lines,
            outcome=ActionOutcome(
                command="scan",
                kind=ActionKind.SCAN,
                success=success,
                difficulty=difficulty,
                target=target,
            ),
        )

    def handle_exploit(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        target = parsed.arg(0)
        if target is None:
            raise InvalidArguments("exploit <target> [exploit|CVE]")

        # Names outside the catalog fall back to automatic selection
        requested = parsed.arg(1, DEFAULT_EXPLOIT)
        exploit = find_exploit(requested)
        difficulty = exploit_difficulty(target, requested)
        success = self._succeeds(difficulty, ActionKind.EXPLOIT, profile)

        label = exploit.title if exploit else "automatic vulnerability selection"
        lines = [f"[>] Launching {label} against {target} ({difficulty.value})..."]
        if success:
            lines.append(f"[+] Exploit successful! Shell opened on {target}")
        else:
            lines.append("[x] Exploit failed!")

        return CommandResult(
            command="exploit",
            lines=lines,
            outcome=ActionOutcome(
                command="exploit",
                kind=ActionKind.EXPLOIT,
                success=success,
                difficulty=difficulty,
                target=target,
                detail=exploit.name if exploit else DEFAULT_EXPLOIT,
            ),
        )

    def handle_decrypt(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        filename = parsed.arg(0)
        if filename is None:
            file_type, difficulty = "intercepted", DEFAULT_TARGET_DIFFICULTY
            success = self._succeeds(None, ActionKind.DECRYPT, profile)
            filename = "intercepted transmission"
        else:
            file_type, difficulty = classify_file(filename)
            success = self._succeeds(difficulty, ActionKind.DECRYPT, profile)

        lines = [f"[>] Decrypting {filename} [{file_type}, {difficulty.value}]..."]
        if success:
            lines.append(f"[+] Decrypted {filename}")
        else:
            lines.append("[x] Decryption failed - key space exhausted")

        return CommandResult(
            command="decrypt",
            lines=lines,
            outcome=ActionOutcome(
                command="decrypt",
                kind=ActionKind.DECRYPT,
                success=success,
                difficulty=difficulty,
                target=filename,
                detail=file_type,
            ),
        )

    def handle_inject(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        target = parsed.arg(0)
        if target is None:
            raise InvalidArguments(f"inject <target> [{'|'.join(PAYLOADS)}]")
        payload = parsed.arg(1, DEFAULT_PAYLOAD).lower()
        if payload not in PAYLOADS:
            raise InvalidArguments(f"inject <target> [{'|'.join(PAYLOADS)}]")

        difficulty = classify_target(target)
        success = self._succeeds(difficulty, ActionKind.INJECT, profile)

        lines = [f"[>] Preparing {payload} payload for {target}..."]
        if success:
            lines.append(f"[+] {payload} successfully injected into {target}")
        else:
            lines.append("[x] Injection failed - target secured")

        return CommandResult(
            command="inject",
            lines=lines,
            outcome=ActionOutcome(
                command="inject",
                kind=ActionKind.INJECT,
                success=success,
                difficulty=difficulty,
                target=target,
                detail=payload,
            ),
        )

    def handle_trace(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        target = parsed.arg(0, DEFAULT_SCAN_TARGET)
        hops = _hop_count(target)
        lines = [f"[>] Tracing route to {target}..."]
        lines.append(f"[+] Trace complete: {hops} hops to target")

        # Tracing never fails and is not an operation
        return CommandResult(
            command="trace",
            lines=lines,
            outcome=ActionOutcome(
                command="trace",
                kind=ActionKind.OTHER,
                success=True,
                target=target,
            ),
        )

    def handle_firewall(
        self, engine: Any, session: Session, profile: AgentProfile, parsed: ParsedCommand
    ) -> CommandResult:
        target = parsed.arg(0)
        usage = f"firewall <target> [{'|'.join(FIREWALL_MODES)}]"
        if target is None:
            raise InvalidArguments(usage)
        mode = parsed.arg(1, "analyze").lower()
        if mode not in FIREWALL_MODES:
            raise InvalidArguments(usage)

        lines = [f"[>] Analyzing firewall on {target}..."]
        if mode == "analyze":
            lines.extend(
                [
                    "    Type: Next-Gen Enterprise Firewall",
                    f"    Rules: {_rule_count(target)} active",
                    "    IDS/IPS: Enabled",
                ]
            )
            outcome = ActionOutcome(
                command="firewall",
                kind=ActionKind.OTHER,
                success=True,
                target=target,
                detail=mode,
            )
            return CommandResult(command="firewall", lines=lines, outcome=outcome)

        difficulty = classify_target(target)
        if mode == "disable":
            difficulty = difficulty.step_up()
        success = self._succeeds(difficulty, ActionKind.OTHER, profile)

        if success and mode == "bypass":
            lines.append("[+] Firewall bypassed successfully")
        elif success:
            lines.append("[!] Firewall temporarily disabled")
        else:
            lines.append(f"[x] Firewall {mode} attempt detected and blocked")

        return CommandResult(
            command="firewall",
            lines=lines,
            outcome=ActionOutcome(
                command="firewall",
                kind=ActionKind.OTHER,
                success=success,
                difficulty=difficulty,
                target=target,
                detail=mode,
            ),
        )


def _digest(text: str) -> int:
    return zlib.crc32(text.lower().encode("utf-8"))


def _open_ports(target: str) -> list[int]:
    common = [21, 22, 23, 25, 53, 80, 110, 143, 443, 445, 3306, 3389, 5432, 8080]
    seed = _digest(target)
    count = 2 + seed % 4
    return sorted({common[(seed >> (i * 4)) % len(common)] for i in range(count)})


def _hop_count(target: str) -> int:
    return 5 + _digest(target) % 10


def _rule_count(target: str) -> int:
    return 100 + _digest(target) % 400
