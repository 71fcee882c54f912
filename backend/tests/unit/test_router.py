"""
Unit tests for command line parsing and the CommandRouter.
"""

import pytest

from redline.engine.state import Session
from redline.engine.systems.router import CommandResult, CommandRouter, parse_command_line
from redline.errors import UnknownCommand

from conftest import START


@pytest.mark.unit
class TestParseCommandLine:
    def test_blank_line(self):
        assert parse_command_line("") is None
        assert parse_command_line("   \t ") is None

    def test_name_args_and_flags(self):
        parsed = parse_command_line("  EXPLOIT 10.0.0.1 Log4Shell --Verbose ")

        assert parsed.name == "exploit"
        assert parsed.args == ("10.0.0.1", "Log4Shell")
        assert parsed.has_flag("verbose")
        assert parsed.has_flag("--VERBOSE")

    def test_arg_default(self):
        parsed = parse_command_line("scan")

        assert parsed.arg(0) is None
        assert parsed.arg(0, "local") == "local"

    def test_bare_double_dash_is_an_argument(self):
        assert parse_command_line("scan --").args == ("--",)


@pytest.fixture
def router():
    return CommandRouter(engine="engine")


@pytest.mark.unit
class TestCommandRouter:
    def test_registration_and_aliases(self, router):
        def handle_scan(engine, session, profile, parsed):
            return CommandResult(command="scan")

        router.register_handler(
            "scan", handle_scan, aliases=["nmap"], category="operations", mutating=True
        )

        assert router.resolve("scan") is router.resolve("NMAP")
        assert router.resolve("nmap").mutating

    def test_unknown_command(self, router):
        with pytest.raises(UnknownCommand) as exc_info:
            router.resolve("hack")
        assert exc_info.value.name == "hack"

    def test_duplicate_name_rejected(self, router):
        router.register_handler("scan", lambda *a: None, aliases=["s"])

        with pytest.raises(ValueError):
            router.register_handler("status", lambda *a: None, aliases=["s"])

    def test_reregistering_same_command_is_allowed(self, router):
        router.register_handler("scan", lambda *a: None, category="operations")
        router.register_handler("scan", lambda *a: None, category="operations")

        assert router.categories["operations"] == ["scan"]

    async def test_dispatch_sync_and_async_handlers(self, router, make_profile):
        calls = []

        def handle_sync(engine, session, profile, parsed):
            calls.append((engine, parsed.args))
            return CommandResult(command="sync")

        async def handle_async(engine, session, profile, parsed):
            return CommandResult(command="async")

        router.register_handler("sync", handle_sync)
        router.register_handler("async", handle_async)
        session = Session("neo", START)

        meta, result = await router.dispatch(session, make_profile(), parse_command_line("sync a b"))
        assert meta.name == "sync"
        assert result.command == "sync"
        assert calls == [("engine", ("a", "b"))]

        _, result = await router.dispatch(session, make_profile(), parse_command_line("async"))
        assert result.command == "async"

    def test_help_lists_categories_and_aliases(self, router):
        router.register_handler(
            "scan", lambda *a: None, aliases=["nmap"], category="operations",
            description="Scan a target", usage="[target]",
        )
        router.register_handler("help", lambda *a: None, category="system")

        text = router.get_help()

        assert text.startswith("=== Available Commands ===")
        assert "OPERATIONS:" in text
        assert "SYSTEM:" in text
        assert "scan [target] (aliases: nmap)" in text
        assert "Scan a target" in text

    def test_help_for_one_category(self, router):
        router.register_handler("scan", lambda *a: None, category="operations")
        router.register_handler("help", lambda *a: None, category="system")

        text = router.get_help("system")

        assert "SYSTEM:" in text
        assert "OPERATIONS:" not in text
