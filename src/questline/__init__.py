"""Progression engine for quests, quest chains and achievements."""

__version__ = "0.3.0"
