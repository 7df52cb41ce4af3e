"""Rules engine for a two-player Entity/Action/Condition card duel."""

__version__ = "0.1.0"
