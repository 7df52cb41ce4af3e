from __future__ import annotations

from dataclasses import asdict

from .actions import (
    Action,
    ActivateFromHandAction,
    ActivateOnFieldAction,
    AttackAction,
    ChangePositionAction,
    NextPhaseAction,
    SetCardAction,
    SummonAction,
    TargetRef,
)
from .effects.resolver import DiscardRequirement, HandRequirement, Requirement, TargetRequirement
from .match import MatchState, PlacedCard, PlayerState
from .types import Card


def _target_to_dict(t: TargetRef | None) -> dict[str, object] | None:
    if t is None:
        return None
    return {"player": t.player, "zone": t.zone, "index": t.index}


def _selection(a: SummonAction | ActivateFromHandAction | ActivateOnFieldAction) -> dict[str, object]:
    return {
        "target": _target_to_dict(a.target),
        "discard_index": a.discard_index,
        "hand_index": a.hand_index,
    }


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, SummonAction):
        return {
            "type": "summon",
            "instance_id": a.instance_id,
            "mode": a.mode,
            "tributes": list(a.tributes),
            **_selection(a),
        }
    if isinstance(a, SetCardAction):
        return {"type": "set", "instance_id": a.instance_id}
    if isinstance(a, ActivateFromHandAction):
        return {"type": "activate_from_hand", "instance_id": a.instance_id, **_selection(a)}
    if isinstance(a, ActivateOnFieldAction):
        return {"type": "activate_on_field", "zone": a.zone, "index": a.index, **_selection(a)}
    if isinstance(a, AttackAction):
        return {"type": "attack", "attacker_index": a.attacker_index, "defender_index": a.defender_index}
    if isinstance(a, ChangePositionAction):
        return {"type": "change_position", "index": a.index}
    if isinstance(a, NextPhaseAction):
        return {"type": "next_phase"}
    # should be unreachable
    return {"type": "unknown"}


def requirement_to_dict(r: Requirement | None) -> dict[str, object] | None:
    if r is None:
        return None
    if isinstance(r, TargetRequirement):
        return {
            "type": "target",
            "kind": r.kind,
            "prompt": r.prompt,
            "options": [_target_to_dict(t) for t in r.options],
        }
    kind = "discard" if isinstance(r, DiscardRequirement) else "hand"
    assert isinstance(r, (DiscardRequirement, HandRequirement))
    return {"type": kind, "player": r.player, "prompt": r.prompt, "options": list(r.options)}


def _card_to_dict(c: Card) -> dict[str, object]:
    return {
        "instance_id": c.instance_id,
        "card_id": c.card_id,
        "owner": c.owner,
        "attack": c.attack,
        "defense": c.defense,
    }


def _placed_to_dict(z: PlacedCard | None) -> dict[str, object] | None:
    if z is None:
        return None
    return {
        "card": _card_to_dict(z.card),
        "position": z.position,
        "placed_turn": z.placed_turn,
        "set_placement": z.set_placement,
        "has_attacked": z.has_attacked,
        "changed_position": z.changed_position,
        "activated_this_turn": z.activated_this_turn,
    }


def _player_to_dict(p: PlayerState) -> dict[str, object]:
    return {
        "id": p.id,
        "name": p.name,
        "lp": p.lp,
        "deck": [c.instance_id for c in p.deck],
        "hand": [_card_to_dict(c) for c in p.hand],
        "entity_zones": [_placed_to_dict(z) for z in p.entity_zones],
        "action_zones": [_placed_to_dict(z) for z in p.action_zones],
        "discard": [_card_to_dict(c) for c in p.discard],
        "void": [_card_to_dict(c) for c in p.void],
        "normal_summon_used": p.normal_summon_used,
        "hidden_summon_used": p.hidden_summon_used,
    }


def snapshot(state: MatchState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current match state."""
    return {
        "seed": state.seed,
        "turn": state.turn,
        "phase": state.phase,
        "active_player": state.active_player,
        "winner": state.winner,
        "players": [_player_to_dict(p) for p in state.players],
        "pending_effects": [asdict(e) for e in state.pending_effects],
        "log": list(state.log),
    }
