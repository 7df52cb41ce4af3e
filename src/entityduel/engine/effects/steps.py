"""Step kinds that make up a card's hook, plus the values and predicates they use.

Every record is plain frozen data discriminated by `type`, so hooks can be
loaded from content files, compared and inspected without running them. The
only interpreter is `entityduel.engine.effects.resolver`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ..types import Attribute, CardFilter, Position, Stat

TargetKind = Literal["entity", "action", "any"]
PlayerScope = Literal["self", "opponent", "both"]
PlayerRef = Literal["self", "opponent", "target"]
Subject = Literal["self", "target"]
CompareOp = Literal[">=", "<=", "==", ">", "<"]
QuerySource = Literal["count_set_cards", "count_face_up_attribute", "player_lp", "hand_size"]
OnFail = Literal["halt", "reprompt"]


@dataclass(frozen=True)
class Query:
    type: Literal["query"]
    source: QuerySource
    scope: PlayerScope = "self"
    attribute: Attribute | None = None
    multiplier: int = 1


Value = int | Query


# --- costs -----------------------------------------------------------------


@dataclass(frozen=True)
class PayLP:
    type: Literal["pay_lp"]
    amount: Value


@dataclass(frozen=True)
class DiscardFromHand:
    type: Literal["discard_from_hand"]
    prompt: str
    filter: CardFilter | None = None


@dataclass(frozen=True)
class SelectFromDiscard:
    type: Literal["select_from_discard"]
    prompt: str
    filter: CardFilter


# --- requirements ----------------------------------------------------------


@dataclass(frozen=True)
class RequireTarget:
    type: Literal["require_target"]
    kind: TargetKind
    prompt: str = "Select a target."


@dataclass(frozen=True)
class RequireTargetScope:
    type: Literal["require_target_scope"]
    scope: Literal["self", "opponent"]
    message: str = "Invalid target player."


@dataclass(frozen=True)
class RequireTargetPosition:
    """Checks the chosen target's position.

    `on_fail="reprompt"` asks for another target among the slots that pass,
    `"halt"` ends the hook.
    """

    type: Literal["require_target_position"]
    position: Position
    invert: bool = False
    message: str = "Invalid target position."
    on_fail: OnFail = "halt"


@dataclass(frozen=True)
class Compare:
    """Numeric check. Halts a hook when used as a step; false as a precondition."""

    type: Literal["compare"]
    left: Value
    op: CompareOp
    right: Value
    message: str = "Requirement not met."


# --- effects ---------------------------------------------------------------


@dataclass(frozen=True)
class ModifyStats:
    type: Literal["modify_stats"]
    subject: Subject
    attack: int = 0
    defense: int = 0


@dataclass(frozen=True)
class ChangePosition:
    type: Literal["change_position"]
    subject: Subject
    position: Position


@dataclass(frozen=True)
class DealDamage:
    type: Literal["deal_damage"]
    player: PlayerRef
    amount: Value
    label: str = ""


@dataclass(frozen=True)
class RestoreLP:
    type: Literal["restore_lp"]
    player: PlayerRef
    amount: Value
    label: str = ""


@dataclass(frozen=True)
class DrawCards:
    type: Literal["draw_cards"]
    count: Value


@dataclass(frozen=True)
class BanishTarget:
    type: Literal["banish_target"]


@dataclass(frozen=True)
class DestroyTarget:
    type: Literal["destroy_target"]


@dataclass(frozen=True)
class RecoverFromDiscard:
    type: Literal["recover_from_discard"]


@dataclass(frozen=True)
class ScheduleReset:
    type: Literal["schedule_reset"]
    subject: Subject
    stat: Stat
    delay: int = 0
    value: int | None = None  # None: the card's printed stat


Step = (
    PayLP
    | DiscardFromHand
    | SelectFromDiscard
    | RequireTarget
    | RequireTargetScope
    | RequireTargetPosition
    | Compare
    | ModifyStats
    | ChangePosition
    | DealDamage
    | RestoreLP
    | DrawCards
    | BanishTarget
    | DestroyTarget
    | RecoverFromDiscard
    | ScheduleReset
)


# --- activation preconditions ----------------------------------------------


@dataclass(frozen=True)
class EntityExists:
    type: Literal["entity_exists"]
    scope: PlayerScope
    position: Position | None = None
    exclude_position: Position | None = None
    filter: CardFilter | None = None


@dataclass(frozen=True)
class ActionExists:
    type: Literal["action_exists"]
    scope: PlayerScope
    position: Position | None = None
    exclude_position: Position | None = None


@dataclass(frozen=True)
class DiscardContains:
    type: Literal["discard_contains"]
    scope: Literal["self", "opponent"]
    filter: CardFilter


@dataclass(frozen=True)
class SelfPosition:
    type: Literal["self_position"]
    position: Position


Condition = Compare | EntityExists | ActionExists | DiscardContains | SelfPosition
