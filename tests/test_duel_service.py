from __future__ import annotations

import pytest

from entityduel.engine.actions import AttackAction, NextPhaseAction, SummonAction, TargetRef
from entityduel.engine.match import PlacedCard
from entityduel.engine.types import Card
from entityduel.services.duel import DuelError, DuelService
from entityduel.services.telemetry import TelemetryService, default_telemetry

from conftest import load_content


def _service(tmp_path) -> tuple[DuelService, TelemetryService]:
    cards, effects = load_content()
    telemetry = TelemetryService(tmp_path / "telemetry.jsonl")
    return DuelService(cards, effects, telemetry=telemetry), telemetry


def _arrange(svc: DuelService) -> Card:
    """Turn 3 main phase: a tribute on the field, High King in hand, one target."""
    state = svc.state
    state.phase = "main1"
    state.turn = 3
    p0, p1 = state.players
    p0.hand.clear()
    king = Card.from_definition(state.cards.get("entity_02"), instance_id="svc_king", owner=0)
    p0.hand.append(king)
    fodder = Card.from_definition(state.cards.get("entity_06"), instance_id="svc_fodder", owner=0)
    p0.entity_zones[0] = PlacedCard(card=fodder, position="attack", placed_turn=1)
    target = Card.from_definition(state.cards.get("entity_01"), instance_id="svc_target", owner=1)
    p1.entity_zones[0] = PlacedCard(card=target, position="attack", placed_turn=2)
    return king


def test_state_before_start_raises(tmp_path) -> None:
    svc, _ = _service(tmp_path)
    with pytest.raises(DuelError):
        _ = svc.state


def test_resume_without_pending_raises(tmp_path) -> None:
    svc, _ = _service(tmp_path)
    svc.start(seed=5)
    with pytest.raises(DuelError):
        svc.resume(target=TargetRef.entity(1, 0))


def test_suspend_and_resume_flow_is_recorded(tmp_path) -> None:
    svc, telemetry = _service(tmp_path)
    svc.start(seed=5)
    king = _arrange(svc)

    first = svc.perform(SummonAction(instance_id=king.instance_id, tributes=(0,)))
    assert first.suspended
    assert svc.pending is not None
    assert svc.requirement is not None
    assert svc.state.players[0].hand == [king]

    done = svc.resume(target=TargetRef.entity(1, 0))
    assert done.ok
    assert not done.suspended
    assert svc.pending is None
    assert svc.state.players[1].entity_zones[0].card.attack == 120
    assert svc.state.players[0].entity_zones[0].card.card_id == "entity_02"

    records = telemetry.read()
    assert [r["type"] for r in records] == ["match_started", "action", "action"]
    assert records[0]["payload"]["seed"] == 5
    assert records[1]["payload"]["suspended"] is True
    assert records[1]["payload"]["requirement"]["type"] == "target"
    assert records[2]["payload"]["action"]["target"] == {"player": 1, "zone": "entity", "index": 0}
    assert records[2]["payload"]["ok"] is True


def test_cancel_drops_pending_action(tmp_path) -> None:
    svc, _ = _service(tmp_path)
    svc.start(seed=5)
    king = _arrange(svc)
    before = svc.state

    svc.perform(SummonAction(instance_id=king.instance_id, tributes=(0,)))
    svc.cancel()
    assert svc.pending is None
    assert svc.state is before
    with pytest.raises(DuelError):
        svc.resume(target=TargetRef.entity(1, 0))


def test_failed_action_is_logged_and_keeps_state(tmp_path) -> None:
    svc, telemetry = _service(tmp_path)
    state = svc.start(seed=5)

    res = svc.perform(AttackAction(attacker_index=0, defender_index="direct"))
    assert not res.ok
    assert svc.state is state
    last = telemetry.read()[-1]
    assert last["payload"]["ok"] is False
    assert last["payload"]["error"] == res.error


def test_winning_attack_records_match_end(tmp_path) -> None:
    svc, telemetry = _service(tmp_path)
    svc.start(seed=5)
    state = svc.state
    state.phase = "battle"
    state.turn = 3
    state.players[1].lp = 100
    striker = Card.from_definition(state.cards.get("entity_01"), instance_id="svc_striker", owner=0)
    state.players[0].entity_zones[2] = PlacedCard(card=striker, position="attack", placed_turn=1)

    res = svc.perform(AttackAction(attacker_index=2, defender_index="direct"))
    assert res.ok
    assert svc.state.winner == 0

    idle = svc.perform(NextPhaseAction())
    assert idle.state is svc.state

    types = [r["type"] for r in telemetry.read()]
    assert types == ["match_started", "action", "match_ended", "action"]


def test_default_telemetry_lives_under_userdata() -> None:
    telemetry = default_telemetry()
    assert telemetry.path.name == "telemetry.jsonl"
    assert telemetry.path.parent.name == "userdata"
