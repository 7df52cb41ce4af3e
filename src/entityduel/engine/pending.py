from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from .types import Stat

if TYPE_CHECKING:
    from .match import MatchState

PendingKind = Literal["reset_attack", "reset_defense"]

STAT_RESET_KINDS: dict[PendingKind, Stat] = {
    "reset_attack": "attack",
    "reset_defense": "defense",
}


@dataclass(frozen=True)
class PendingEffect:
    kind: PendingKind
    target_instance_id: str
    value: int
    due_turn: int


def reset_kind_for(stat: Stat) -> PendingKind:
    return "reset_attack" if stat == "attack" else "reset_defense"


def schedule(state: MatchState, effect: PendingEffect) -> None:
    state.pending_effects.append(effect)


def sweep_due(state: MatchState) -> int:
    """Apply and drop every stat reset due this turn. Returns how many fired.

    A reset whose card has left the field is dropped without effect.
    """
    from .match import RulesError

    due = [e for e in state.pending_effects if e.due_turn == state.turn and e.kind in STAT_RESET_KINDS]
    if not due:
        return 0
    state.pending_effects = [e for e in state.pending_effects if e not in due]

    for eff in due:
        loc = state.find_placed(eff.target_instance_id)
        if loc is None:
            continue
        player, zone, index = loc
        placed = state.players[player].zones(zone)[index]
        if placed is None:
            raise RulesError(f"Reset target {eff.target_instance_id} vanished from {zone} zone {index}.")
        if STAT_RESET_KINDS[eff.kind] == "attack":
            placed.card = placed.card.with_stats(attack=eff.value)
        else:
            placed.card = placed.card.with_stats(defense=eff.value)
        state.record(f"{placed.card.name} returns to {eff.value} {STAT_RESET_KINDS[eff.kind][:3].upper()}.")
    return len(due)
