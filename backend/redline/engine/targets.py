"""
Fixed target, exploit, file and marketplace tables.

Difficulty resolution for targeted commands:
- Hostname keywords first (quantum/nsa > .gov/.mil > bank/corp)
- Then IPv4 class: loopback = trivial, private = easy, public = medium
- Anything else = medium

Exploits are matched by name or CVE id; the effective difficulty of an
exploit run is the harder of the target and the exploit.
"""

import ipaddress
from dataclasses import dataclass
from pathlib import PurePosixPath

from .state import ActionKind, Difficulty

# Success probability per difficulty tier
SUCCESS_PROBABILITY: dict[Difficulty, float] = {
    Difficulty.TRIVIAL: 0.95,
    Difficulty.EASY: 0.85,
    Difficulty.MEDIUM: 0.70,
    Difficulty.HARD: 0.50,
    Difficulty.EXTREME: 0.30,
    Difficulty.IMPOSSIBLE: 0.10,
}

# Used when a command runs without a target
BASE_SUCCESS_PROBABILITY = 0.75

MAX_SUCCESS_PROBABILITY = 0.99

DEFAULT_TARGET_DIFFICULTY = Difficulty.MEDIUM

# Ordered: first match wins
HOSTNAME_KEYWORDS: list[tuple[str, Difficulty]] = [
    ("quantum", Difficulty.IMPOSSIBLE),
    ("nsa.", Difficulty.IMPOSSIBLE),
    (".gov", Difficulty.EXTREME),
    (".mil", Difficulty.EXTREME),
    ("bank", Difficulty.HARD),
    ("corp", Difficulty.HARD),
]


@dataclass(frozen=True)
class Exploit:
    name: str
    cve: str
    title: str
    difficulty: Difficulty


EXPLOITS: list[Exploit] = [
    Exploit("eternalblue", "CVE-2017-0144", "EternalBlue SMBv1 RCE", Difficulty.EASY),
    Exploit("bluekeep", "CVE-2019-0708", "BlueKeep RDP RCE", Difficulty.MEDIUM),
    Exploit("smbghost", "CVE-2020-0796", "SMBGhost", Difficulty.MEDIUM),
    Exploit("mysql-rce", "CVE-2021-2471", "MySQL Server RCE", Difficulty.MEDIUM),
    Exploit("scp-inject", "CVE-2020-15778", "OpenSSH Command Injection", Difficulty.HARD),
    Exploit("log4shell", "CVE-2021-44228", "Log4Shell RCE", Difficulty.HARD),
    Exploit("printnightmare", "CVE-2021-34527", "PrintNightmare", Difficulty.HARD),
    Exploit("openssh-privesc", "CVE-2021-28041", "OpenSSH Privilege Escalation", Difficulty.EXTREME),
]

DEFAULT_EXPLOIT = "auto"


# File extension -> (file type, difficulty)
FILE_TYPES: dict[str, tuple[str, Difficulty]] = {
    ".txt": ("document", Difficulty.EASY),
    ".doc": ("document", Difficulty.EASY),
    ".pdf": ("document", Difficulty.EASY),
    ".log": ("log", Difficulty.EASY),
    ".conf": ("config", Difficulty.MEDIUM),
    ".cfg": ("config", Difficulty.MEDIUM),
    ".ini": ("config", Difficulty.MEDIUM),
    ".db": ("database", Difficulty.HARD),
    ".sql": ("database", Difficulty.HARD),
    ".bin": ("binary", Difficulty.HARD),
    ".exe": ("binary", Difficulty.HARD),
    ".qnt": ("quantum", Difficulty.IMPOSSIBLE),
}

DEFAULT_FILE_TYPE = ("unknown", Difficulty.MEDIUM)


@dataclass(frozen=True)
class MarketItem:
    id: str
    name: str
    price: int
    kind: ActionKind  # actions that get the bonus
    success_bonus: float


MARKET_ITEMS: list[MarketItem] = [
    MarketItem("credentials_pack", "Stolen Credentials Pack", 500, ActionKind.INJECT, 0.05),
    MarketItem("zero_day_kit", "Zero-Day Exploit Kit", 1000, ActionKind.EXPLOIT, 0.10),
    MarketItem("database_dump", "Database Dump (Fortune 500)", 2500, ActionKind.DECRYPT, 0.10),
    MarketItem("malware_framework", "Custom Malware Framework", 3000, ActionKind.INJECT, 0.10),
    MarketItem("botnet_access", "Botnet Access (10k nodes)", 5000, ActionKind.SCAN, 0.05),
]


def classify_target(target: str) -> Difficulty:
    """Resolve the declared difficulty of a host or address."""
    lowered = target.strip().lower()
    for keyword, difficulty in HOSTNAME_KEYWORDS:
        if keyword in lowered:
            return difficulty

    try:
        address = ipaddress.ip_address(lowered)
    except ValueError:
        return DEFAULT_TARGET_DIFFICULTY

    if address.is_loopback:
        return Difficulty.TRIVIAL
    if address.is_private:
        return Difficulty.EASY
    return Difficulty.MEDIUM


def find_exploit(name_or_cve: str) -> Exploit | None:
    """Look up an exploit by name or CVE id (case-insensitive)."""
    key = name_or_cve.strip().lower()
    for exploit in EXPLOITS:
        if key in (exploit.name, exploit.cve.lower()):
            return exploit
    return None


def exploit_difficulty(target: str, name_or_cve: str) -> Difficulty:
    """Effective difficulty of running an exploit against a target."""
    target_difficulty = classify_target(target)
    exploit = find_exploit(name_or_cve)
    if exploit is None:
        return target_difficulty
    return target_difficulty.harder(exploit.difficulty)


def classify_file(filename: str) -> tuple[str, Difficulty]:
    """Return (file type, difficulty) for an encrypted file name."""
    suffix = PurePosixPath(filename.strip().lower()).suffix
    return FILE_TYPES.get(suffix, DEFAULT_FILE_TYPE)


def find_market_item(item_id: str) -> MarketItem | None:
    key = item_id.strip().lower()
    for item in MARKET_ITEMS:
        if item.id == key:
            return item
    return None


def success_probability(
    difficulty: Difficulty | None,
    kind: ActionKind,
    inventory: set[str] | frozenset[str] = frozenset(),
) -> float:
    """
    Probability that an action succeeds.

    Args:
        difficulty: Target difficulty, or None for untargeted commands
        kind: Action kind (for marketplace tool bonuses)
        inventory: Item ids owned by the agent

    Returns:
        Probability in [0, MAX_SUCCESS_PROBABILITY]
    """
    base = BASE_SUCCESS_PROBABILITY if difficulty is None else SUCCESS_PROBABILITY[difficulty]
    bonus = sum(
        item.success_bonus
        for item in MARKET_ITEMS
        if item.id in inventory and item.kind is kind
    )
    return min(MAX_SUCCESS_PROBABILITY, base + bonus)
