from __future__ import annotations

from entityduel.engine.actions import Action, AttackAction, NextPhaseAction, SummonAction
from entityduel.engine.executor import step
from entityduel.engine.match import MatchState, start_match
from entityduel.engine.serialize import snapshot

from conftest import load_content


def _choose_action(state: MatchState) -> Action:
    ps = state.active
    opp = state.players[state.opponent(state.active_player)]

    # Prefer a plain summon of a low-level Entity.
    if state.phase == "main1" and not ps.normal_summon_used and any(z is None for z in ps.entity_zones):
        for c in ps.hand:
            if c.category == "entity" and c.level <= 4:
                return SummonAction(instance_id=c.instance_id)

    # Then attacks.
    if state.phase == "battle":
        for i, z in enumerate(ps.entity_zones):
            if z is None or z.position != "attack" or z.has_attacked:
                continue
            for j, d in enumerate(opp.entity_zones):
                if d is not None:
                    return AttackAction(attacker_index=i, defender_index=j)
            return AttackAction(attacker_index=i, defender_index="direct")

    return NextPhaseAction()


def _play(seed: int, limit: int) -> tuple[MatchState, list[Action]]:
    cards, effects = load_content()
    state = start_match(cards, effects, seed=seed)
    actions: list[Action] = []
    for _ in range(limit):
        if state.winner is not None:
            break
        a = _choose_action(state)
        res = step(state, a)
        if not res.ok or res.suspended:
            a = NextPhaseAction()
            res = step(state, a)
        actions.append(a)
        state = res.state
    return state, actions


def test_engine_determinism_replay() -> None:
    seed = 424242
    state1, actions = _play(seed, limit=200)
    assert state1.turn > 3

    cards, effects = load_content()
    state2 = start_match(cards, effects, seed=seed)
    for a in actions:
        state2 = step(state2, a).state

    assert snapshot(state1) == snapshot(state2)


def test_same_seed_same_deal_different_seed_different_deal() -> None:
    cards, effects = load_content()
    a = start_match(cards, effects, seed=7)
    b = start_match(cards, effects, seed=7)
    c = start_match(cards, effects, seed=8)

    assert snapshot(a) == snapshot(b)
    assert [x.instance_id for x in a.players[0].deck] != [x.instance_id for x in c.players[0].deck]


def test_step_never_mutates_its_input() -> None:
    cards, effects = load_content()
    state = start_match(cards, effects, seed=11)
    before = snapshot(state)
    for _ in range(12):
        res = step(state, _choose_action(state))
        assert snapshot(state) == before
        state = res.state if res.ok and not res.suspended else step(state, NextPhaseAction()).state
        before = snapshot(state)
