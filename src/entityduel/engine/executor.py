from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from .actions import (
    Action,
    ActivateFromHandAction,
    ActivateOnFieldAction,
    AttackAction,
    ChangePositionAction,
    NextPhaseAction,
    SetCardAction,
    SummonAction,
    SummonMode,
    TargetRef,
)
from .effects.resolver import CardContext, EffectResult, Requirement, check_precondition, resolve
from .match import MatchState, PlacedCard, RulesError, check_winner, find_empty_zone
from .phases import advance_phase
from .types import MAIN_PHASES, Phase, ZoneType

FIELD_ACTIVATION_PHASES: tuple[Phase, ...] = ("main1", "battle", "main2")


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    state: MatchState
    log: str = ""
    error: str | None = None
    requirement: Requirement | None = None

    @property
    def suspended(self) -> bool:
        return self.requirement is not None


def tributes_required(level: int) -> int:
    if level >= 8:
        return 2
    if level >= 5:
        return 1
    return 0


def _fail(state: MatchState, error: str) -> ActionResult:
    return ActionResult(ok=False, state=state, log=f"ERROR: {error}", error=error)


def _suspend(state: MatchState, effect: EffectResult) -> ActionResult:
    return ActionResult(ok=True, state=state, log=effect.log, requirement=effect.requirement)


def _commit(work: MatchState, lines: Sequence[str]) -> ActionResult:
    lines = [ln for ln in lines if ln]
    for ln in lines:
        work.record(ln)
    check_winner(work)
    return ActionResult(ok=True, state=work, log=" ".join(lines))


def _not_main_phase(state: MatchState) -> bool:
    return state.phase not in MAIN_PHASES


def _occupied(slot: PlacedCard | None, where: str) -> PlacedCard:
    if slot is None:
        raise RulesError(f"Expected a card in {where}.")
    return slot


# --- summon / set ------------------------------------------------------------


def summon(
    state: MatchState,
    instance_id: str,
    mode: SummonMode = "normal",
    tributes: Sequence[int] = (),
    target: TargetRef | None = None,
    discard_index: int | None = None,
    hand_index: int | None = None,
) -> ActionResult:
    if state.winner is not None:
        return _fail(state, "The duel is already over.")
    if _not_main_phase(state):
        return _fail(state, "Entities can only be summoned during a Main Phase.")
    player = state.active_player
    ps = state.players[player]
    h = ps.hand_index_of(instance_id)
    if h is None:
        return _fail(state, "That card is not in your hand.")
    card = ps.hand[h]
    if card.category != "entity":
        return _fail(state, "Only Entities can be summoned.")

    needed = tributes_required(card.level)
    if needed == 0:
        if mode == "tribute":
            return _fail(state, f"{card.name} does not need tributes.")
        if tributes:
            return _fail(state, f"{card.name} does not need tributes.")
        if mode == "normal" and ps.normal_summon_used:
            return _fail(state, "You have already Normal Summoned this turn.")
        if mode == "hidden" and ps.hidden_summon_used:
            return _fail(state, "You have already Hidden Summoned this turn.")
    else:
        if len(tributes) != needed:
            return _fail(state, f"{card.name} needs exactly {needed} tribute(s).")
        if len(set(tributes)) != len(tributes):
            return _fail(state, "Tributes must be different Entities.")
        for i in tributes:
            if state.placed_at(player, "entity", i) is None:
                return _fail(state, f"No Entity to tribute in zone {i + 1}.")

    work = state.clone()
    wps = work.players[player]
    lines: list[str] = []
    for i in sorted(tributes):
        tribute = _occupied(wps.entity_zones[i], f"entity zone {i}")
        wps.discard.append(tribute.card)
        wps.entity_zones[i] = None
        lines.append(f"{tribute.card.name} is tributed.")

    slot = find_empty_zone(wps.entity_zones)
    if slot is None:
        return _fail(state, "No empty Entity zone.")

    hidden = mode == "hidden"
    wps.hand.pop(h)
    wps.entity_zones[slot] = PlacedCard(
        card=card,
        position="hidden" if hidden else "attack",
        placed_turn=work.turn,
        set_placement=hidden,
    )
    if needed == 0:
        if hidden:
            wps.hidden_summon_used = True
        else:
            wps.normal_summon_used = True

    if hidden:
        lines.append(f"{wps.name} sets an Entity face-down.")
        return _commit(work, lines)

    lines.append(f"{wps.name} summons {card.name}.")
    hook = work.effects.get(card.card_id).on_summon
    if hook:
        ctx = CardContext(
            card=card, player=player, target=target, discard_index=discard_index, hand_index=hand_index
        )
        if not check_precondition(work, ctx):
            lines.append(f"{card.name}'s effect could not activate.")
        else:
            effect = resolve(work, hook, ctx)
            if effect.suspended:
                return _suspend(state, effect)
            work = effect.state
            lines.append(effect.log)
    return _commit(work, lines)


def set_card(state: MatchState, instance_id: str) -> ActionResult:
    if state.winner is not None:
        return _fail(state, "The duel is already over.")
    if _not_main_phase(state):
        return _fail(state, "Cards can only be set during a Main Phase.")
    player = state.active_player
    ps = state.players[player]
    h = ps.hand_index_of(instance_id)
    if h is None:
        return _fail(state, "That card is not in your hand.")
    card = ps.hand[h]
    if card.category == "entity":
        return summon(state, instance_id, mode="hidden")

    slot = find_empty_zone(ps.action_zones)
    if slot is None:
        return _fail(state, "No empty Action zone.")
    work = state.clone()
    wps = work.players[player]
    wps.hand.pop(h)
    wps.action_zones[slot] = PlacedCard(card=card, position="hidden", placed_turn=work.turn, set_placement=True)
    return _commit(work, [f"{wps.name} sets a card face-down."])


# --- activation --------------------------------------------------------------


def activate_from_hand(
    state: MatchState,
    instance_id: str,
    target: TargetRef | None = None,
    discard_index: int | None = None,
    hand_index: int | None = None,
) -> ActionResult:
    if state.winner is not None:
        return _fail(state, "The duel is already over.")
    if _not_main_phase(state):
        return _fail(state, "Cards can only be activated from the hand during a Main Phase.")
    player = state.active_player
    ps = state.players[player]
    h = ps.hand_index_of(instance_id)
    if h is None:
        return _fail(state, "That card is not in your hand.")
    card = ps.hand[h]
    if card.category == "condition":
        return _fail(state, "Conditions must be Set first.")
    if card.category == "entity":
        return _fail(state, "Entities are summoned, not activated from the hand.")

    hook = state.effects.get(card.card_id).on_activate
    if hook is None:
        raise RulesError(f"Action card {card.card_id} has no on_activate hook.")
    ctx = CardContext(card=card, player=player, target=target, discard_index=discard_index, hand_index=hand_index)
    if not check_precondition(state, ctx):
        return _fail(state, f"{card.name} cannot be activated right now.")

    work = state.clone()
    wps = work.players[player]
    wps.hand.pop(h)
    wps.discard.append(card)
    effect = resolve(work, hook, ctx)
    if effect.suspended:
        return _suspend(state, effect)
    return _commit(effect.state, [f"{wps.name} activates {card.name}.", effect.log])


def activate_on_field(
    state: MatchState,
    zone: ZoneType,
    index: int,
    target: TargetRef | None = None,
    discard_index: int | None = None,
    hand_index: int | None = None,
) -> ActionResult:
    if state.winner is not None:
        return _fail(state, "The duel is already over.")
    player = state.active_player
    placed = state.placed_at(player, zone, index)
    if placed is None:
        return _fail(state, "There is no card in that zone.")
    card = placed.card
    hook = state.effects.get(card.card_id).on_activate

    if zone == "entity":
        if _not_main_phase(state):
            return _fail(state, "Entity effects can only be activated during a Main Phase.")
        if not placed.face_up:
            return _fail(state, "Face-down Entities cannot activate effects.")
        if hook is None:
            return _fail(state, f"{card.name} has no effect to activate.")
    else:
        if state.phase not in FIELD_ACTIVATION_PHASES:
            return _fail(state, "Set cards can only be activated during Main or Battle Phase.")
        if card.category == "condition" and placed.placed_turn == state.turn:
            return _fail(state, "A Condition cannot be activated the turn it was Set.")
        if hook is None:
            raise RulesError(f"{card.category} card {card.card_id} has no on_activate hook.")
    if card.definition.once_per_turn and placed.activated_this_turn:
        return _fail(state, f"{card.name} has already been activated this turn.")

    work = state.clone()
    lines = [f"{work.players[player].name} activates {card.name}."]
    wp = _occupied(work.players[player].zones(zone)[index], f"{zone} zone {index}")
    if not wp.face_up:
        wp.position = "attack"
        lines.insert(0, f"{card.name} is flipped face-up.")

    ctx = CardContext(card=card, player=player, target=target, discard_index=discard_index, hand_index=hand_index)
    if not check_precondition(work, ctx):
        return _fail(state, f"{card.name} cannot be activated right now.")
    effect = resolve(work, hook, ctx)
    if effect.suspended:
        return _suspend(state, effect)
    work = effect.state
    lines.append(effect.log)

    loc = work.find_placed(card.instance_id)
    if loc is not None:
        owner, where, i = loc
        done = _occupied(work.players[owner].zones(where)[i], f"{where} zone {i}")
        done.activated_this_turn = True
        if where == "action" and not card.definition.lingering:
            work.players[owner].zones(where)[i] = None
            work.players[owner].discard.append(done.card)
    return _commit(work, lines)


# --- battle / position -------------------------------------------------------


def _destroy(state: MatchState, player: int, index: int, lines: list[str]) -> None:
    ps = state.players[player]
    placed = _occupied(ps.entity_zones[index], f"entity zone {index}")
    ps.entity_zones[index] = None
    ps.discard.append(placed.card)
    lines.append(f"{placed.card.name} is destroyed.")


def _damage(state: MatchState, player: int, amount: int, lines: list[str]) -> None:
    ps = state.players[player]
    ps.lp -= amount
    lines.append(f"{ps.name} takes {amount} damage.")


def attack(state: MatchState, attacker_index: int, defender_index: int | Literal["direct"]) -> ActionResult:
    if state.winner is not None:
        return _fail(state, "The duel is already over.")
    if state.phase != "battle":
        return _fail(state, "Attacks can only be declared during the Battle Phase.")
    if state.turn <= 1:
        return _fail(state, "No attacks on the first turn.")
    player = state.active_player
    opp = state.opponent(player)
    attacker = state.placed_at(player, "entity", attacker_index)
    if attacker is None:
        return _fail(state, "There is no Entity in that zone.")
    if attacker.position != "attack":
        return _fail(state, "Only Entities in Attack Position can attack.")
    if attacker.has_attacked:
        return _fail(state, f"{attacker.card.name} has already attacked this turn.")

    lines: list[str] = []
    if defender_index == "direct":
        if state.players[opp].entity_count() > 0:
            return _fail(state, "You cannot attack directly while your opponent controls an Entity.")
        work = state.clone()
        wa = _occupied(work.players[player].entity_zones[attacker_index], "the attacker zone")
        lines.append(f"{wa.card.name} attacks directly.")
        _damage(work, opp, wa.card.attack, lines)
        wa.has_attacked = True
        return _commit(work, lines)

    if state.placed_at(opp, "entity", defender_index) is None:
        return _fail(state, "There is no Entity to attack in that zone.")

    work = state.clone()
    wa = _occupied(work.players[player].entity_zones[attacker_index], "the attacker zone")
    wd = _occupied(work.players[opp].entity_zones[defender_index], "the defender zone")
    lines.append(f"{wa.card.name} attacks {wd.card.name if wd.face_up else 'a face-down Entity'}.")
    if wd.position == "hidden":
        wd.position = "defense"
        lines.append(f"{wd.card.name} is flipped face-up in Defense Position.")

    atk = wa.card.attack
    survived = True
    if wd.position == "attack":
        other = wd.card.attack
        if atk > other:
            _destroy(work, opp, defender_index, lines)
            _damage(work, opp, atk - other, lines)
        elif atk < other:
            _destroy(work, player, attacker_index, lines)
            _damage(work, player, other - atk, lines)
            survived = False
        else:
            _destroy(work, opp, defender_index, lines)
            _destroy(work, player, attacker_index, lines)
            survived = False
    else:
        guard = wd.card.defense
        if atk > guard:
            _destroy(work, opp, defender_index, lines)
        elif atk < guard:
            _damage(work, player, guard - atk, lines)
        else:
            lines.append("Neither Entity is destroyed.")

    if survived:
        wa.has_attacked = True
    return _commit(work, lines)


def change_position(state: MatchState, index: int) -> ActionResult:
    if state.winner is not None:
        return _fail(state, "The duel is already over.")
    if _not_main_phase(state):
        return _fail(state, "Battle positions can only be changed during a Main Phase.")
    player = state.active_player
    placed = state.placed_at(player, "entity", index)
    if placed is None:
        return _fail(state, "There is no Entity in that zone.")
    if placed.placed_turn == state.turn:
        return _fail(state, f"{placed.card.name} was placed this turn.")
    if placed.changed_position:
        return _fail(state, f"{placed.card.name} has already changed position this turn.")

    work = state.clone()
    wp = _occupied(work.players[player].entity_zones[index], f"entity zone {index}")
    wp.position = "defense" if wp.position == "attack" else "attack"
    wp.changed_position = True
    return _commit(work, [f"{wp.card.name} changes to {wp.position} position."])


def step(state: MatchState, action: Action) -> ActionResult:
    """Apply one action record. Never mutates `state`."""
    if state.winner is not None:
        if isinstance(action, NextPhaseAction):
            return ActionResult(ok=True, state=state)
        return _fail(state, "The duel is already over.")

    if isinstance(action, SummonAction):
        return summon(
            state,
            action.instance_id,
            mode=action.mode,
            tributes=action.tributes,
            target=action.target,
            discard_index=action.discard_index,
            hand_index=action.hand_index,
        )
    if isinstance(action, SetCardAction):
        return set_card(state, action.instance_id)
    if isinstance(action, ActivateFromHandAction):
        return activate_from_hand(
            state,
            action.instance_id,
            target=action.target,
            discard_index=action.discard_index,
            hand_index=action.hand_index,
        )
    if isinstance(action, ActivateOnFieldAction):
        return activate_on_field(
            state,
            action.zone,
            action.index,
            target=action.target,
            discard_index=action.discard_index,
            hand_index=action.hand_index,
        )
    if isinstance(action, AttackAction):
        return attack(state, action.attacker_index, action.defender_index)
    if isinstance(action, ChangePositionAction):
        return change_position(state, action.index)
    if isinstance(action, NextPhaseAction):
        nxt = advance_phase(state)
        return ActionResult(ok=True, state=nxt, log=nxt.log[0] if nxt.log else "")
    return _fail(state, "Unknown action.")
