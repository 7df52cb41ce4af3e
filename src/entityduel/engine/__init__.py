"""Deterministic, headless rules engine for Entity Duel.

Every operation takes a `MatchState` and returns a new one; inputs are never
mutated.
"""

from .actions import (
    ActivateFromHandAction,
    ActivateOnFieldAction,
    AttackAction,
    ChangePositionAction,
    NextPhaseAction,
    SetCardAction,
    SummonAction,
    TargetRef,
)
from .executor import (
    ActionResult,
    activate_from_hand,
    activate_on_field,
    attack,
    change_position,
    set_card,
    step,
    summon,
)
from .match import MatchConfig, MatchState, RulesError, new_match, start_match
from .phases import advance_phase
from .serialize import snapshot

__all__ = [
    "ActionResult",
    "ActivateFromHandAction",
    "ActivateOnFieldAction",
    "AttackAction",
    "ChangePositionAction",
    "MatchConfig",
    "MatchState",
    "NextPhaseAction",
    "RulesError",
    "SetCardAction",
    "SummonAction",
    "TargetRef",
    "activate_from_hand",
    "activate_on_field",
    "advance_phase",
    "attack",
    "change_position",
    "new_match",
    "set_card",
    "snapshot",
    "start_match",
    "step",
    "summon",
]
