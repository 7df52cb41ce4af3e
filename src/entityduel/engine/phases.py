from __future__ import annotations

from .match import MatchState, draw_cards
from .pending import sweep_due
from .types import Phase

_NEXT_PHASE: dict[Phase, Phase] = {
    "draw": "standby",
    "standby": "main1",
    "main1": "battle",
    "battle": "main2",
    "main2": "end",
}

PHASE_LABELS: dict[Phase, str] = {
    "draw": "Draw Phase",
    "standby": "Standby Phase",
    "main1": "Main Phase 1",
    "battle": "Battle Phase",
    "main2": "Main Phase 2",
    "end": "End Phase",
}


def _start_turn(state: MatchState) -> None:
    state.active_player = state.opponent(state.active_player)
    state.turn += 1
    state.phase = "draw"
    ps = state.active
    state.record(f"Turn {state.turn}: {ps.name}'s turn.")

    for p in state.players:
        p.normal_summon_used = False
        p.hidden_summon_used = False
    for z in ps.entity_zones:
        if z is None:
            continue
        z.has_attacked = False
        z.changed_position = False

    target = state.config.hand_target
    want = 1 if len(ps.hand) >= target else target - len(ps.hand)
    drawn = draw_cards(state, state.active_player, want)
    if drawn < want:
        state.record(f"{ps.name} drew {drawn} card(s); the deck is empty.")
    else:
        state.record(f"{ps.name} drew {drawn} card(s).")


def _enter_end(state: MatchState) -> None:
    sweep_due(state)
    for p in state.players:
        for z in (*p.entity_zones, *p.action_zones):
            if z is not None:
                z.activated_this_turn = False


def advance_phase(state: MatchState) -> MatchState:
    """Move to the next phase, rolling over to the other player after End.

    Returns `state` itself once the duel has a winner.
    """
    if state.winner is not None:
        return state

    work = state.clone()
    if work.phase == "end":
        _start_turn(work)
        return work

    nxt = _NEXT_PHASE[work.phase]
    # No battle on the opening turn.
    if work.turn == 1 and work.phase == "main1":
        nxt = "end"
    work.phase = nxt
    work.record(f"{PHASE_LABELS[nxt]}.")
    if nxt == "end":
        _enter_end(work)
    return work
