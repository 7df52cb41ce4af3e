from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .steps import Condition, Step

Hook = tuple[Step, ...]


@dataclass(frozen=True)
class CardBehavior:
    on_summon: Hook | None = None
    on_activate: Hook | None = None
    can_activate: tuple[Condition, ...] | None = None


NO_BEHAVIOR = CardBehavior()


@dataclass(frozen=True)
class EffectRegistry:
    """Card id -> behavior. Built once by the content loader, read-only after."""

    behaviors: dict[str, CardBehavior]

    def get(self, card_id: str) -> CardBehavior:
        return self.behaviors[card_id]

    def all_ids(self) -> Sequence[str]:
        return list(self.behaviors.keys())
