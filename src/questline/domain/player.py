"""Player profile as seen by the progression engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class PlayerProfile:
    """Level, experience and skill levels owned by the player module."""

    player_id: str
    name: str
    level: int = 1
    exp: int = 0
    skills: Dict[str, int] = field(default_factory=dict)

    def skill_level(self, skill: str) -> int:
        return self.skills.get(skill, 0)
