from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .types import ZoneType

SummonMode = Literal["normal", "hidden", "tribute"]


@dataclass(frozen=True)
class TargetRef:
    player: int
    zone: ZoneType
    index: int

    @staticmethod
    def entity(player: int, index: int) -> "TargetRef":
        return TargetRef(player=player, zone="entity", index=index)

    @staticmethod
    def action(player: int, index: int) -> "TargetRef":
        return TargetRef(player=player, zone="action", index=index)


@dataclass(frozen=True)
class SummonAction:
    instance_id: str
    mode: SummonMode = "normal"
    tributes: tuple[int, ...] = ()
    target: TargetRef | None = None
    discard_index: int | None = None
    hand_index: int | None = None


@dataclass(frozen=True)
class SetCardAction:
    instance_id: str


@dataclass(frozen=True)
class ActivateFromHandAction:
    instance_id: str
    target: TargetRef | None = None
    discard_index: int | None = None
    hand_index: int | None = None


@dataclass(frozen=True)
class ActivateOnFieldAction:
    zone: ZoneType
    index: int
    target: TargetRef | None = None
    discard_index: int | None = None
    hand_index: int | None = None


@dataclass(frozen=True)
class AttackAction:
    attacker_index: int
    defender_index: int | Literal["direct"]


@dataclass(frozen=True)
class ChangePositionAction:
    index: int


@dataclass(frozen=True)
class NextPhaseAction:
    pass


Action = (
    SummonAction
    | SetCardAction
    | ActivateFromHandAction
    | ActivateOnFieldAction
    | AttackAction
    | ChangePositionAction
    | NextPhaseAction
)

# Actions that may suspend and be re-issued with a selection filled in.
ResumableAction = SummonAction | ActivateFromHandAction | ActivateOnFieldAction
