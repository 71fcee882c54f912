"""Terminal command handlers, grouped by category."""

from .info import InfoCommands
from .market import DarkwebCommand
from .operations import OperationCommands

__all__ = ["InfoCommands", "DarkwebCommand", "OperationCommands"]
