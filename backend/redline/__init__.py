"""
CRIMSON-REDLINE - terminal hacking simulation.

Authentication and a persistent game-state engine behind a small click
front-end.
"""

__version__ = "0.1.0"
