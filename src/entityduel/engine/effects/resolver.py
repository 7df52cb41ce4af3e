"""Single evaluator for card hooks.

A hook runs against a clone of the match. Each step may do nothing, add a log
fragment, suspend (ask the caller for a target or a pile selection) or halt.
A suspended run hands back the caller's state untouched; a halted or finished
run hands back the clone. Resuming means calling `resolve` again from the
first step with the missing selection present in the context.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Callable

from ..actions import TargetRef
from ..match import MatchState, PlacedCard, RulesError, draw_cards
from ..pending import PendingEffect, reset_kind_for, schedule
from ..types import Card
from .registry import Hook
from .steps import (
    ActionExists,
    BanishTarget,
    ChangePosition,
    Compare,
    CompareOp,
    Condition,
    DealDamage,
    DestroyTarget,
    DiscardContains,
    DiscardFromHand,
    DrawCards,
    EntityExists,
    ModifyStats,
    PayLP,
    PlayerRef,
    PlayerScope,
    RecoverFromDiscard,
    RequireTarget,
    RequireTargetPosition,
    RequireTargetScope,
    RestoreLP,
    ScheduleReset,
    SelectFromDiscard,
    SelfPosition,
    Step,
    Subject,
    TargetKind,
    Value,
)

_OPS: dict[CompareOp, Callable[[int, int], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    ">": operator.gt,
    "<": operator.lt,
}


@dataclass(frozen=True)
class CardContext:
    card: Card
    player: int
    target: TargetRef | None = None
    discard_index: int | None = None
    hand_index: int | None = None


@dataclass(frozen=True)
class TargetRequirement:
    kind: TargetKind
    prompt: str
    options: tuple[TargetRef, ...] = ()


@dataclass(frozen=True)
class DiscardRequirement:
    player: int
    prompt: str
    options: tuple[int, ...] = ()


@dataclass(frozen=True)
class HandRequirement:
    player: int
    prompt: str
    options: tuple[int, ...] = ()


Requirement = TargetRequirement | DiscardRequirement | HandRequirement


@dataclass(frozen=True)
class EffectResult:
    state: MatchState
    log: str = ""
    require_target: TargetRequirement | None = None
    require_discard: DiscardRequirement | None = None
    require_hand: HandRequirement | None = None

    def __post_init__(self) -> None:
        populated = [r for r in (self.require_target, self.require_discard, self.require_hand) if r is not None]
        if len(populated) > 1:
            raise RulesError("EffectResult may carry at most one requirement.")

    @property
    def requirement(self) -> Requirement | None:
        return self.require_target or self.require_discard or self.require_hand

    @property
    def suspended(self) -> bool:
        return self.requirement is not None


@dataclass(frozen=True)
class _Outcome:
    log: str = ""
    requirement: Requirement | None = None
    halt: bool = False


def _suspended(state: MatchState, log: str, req: Requirement) -> EffectResult:
    if isinstance(req, TargetRequirement):
        return EffectResult(state=state, log=log, require_target=req)
    if isinstance(req, DiscardRequirement):
        return EffectResult(state=state, log=log, require_discard=req)
    return EffectResult(state=state, log=log, require_hand=req)


def resolve(state: MatchState, hook: Hook, context: CardContext) -> EffectResult:
    """Run `hook` for `context`. Never mutates `state`."""
    work = state.clone()
    logs: list[str] = []
    for step in hook:
        outcome = _apply(work, context, step)
        if outcome is None:
            continue
        if outcome.requirement is not None:
            return _suspended(state, outcome.log, outcome.requirement)
        if outcome.log:
            logs.append(outcome.log)
        if outcome.halt:
            break
    return EffectResult(state=work, log=" ".join(logs))


def check_precondition(state: MatchState, context: CardContext) -> bool:
    behavior = state.effects.get(context.card.card_id)
    if behavior.can_activate is None:
        return True
    return all(_holds(state, context, cond) for cond in behavior.can_activate)


# --- values ------------------------------------------------------------------


def _scope_players(state: MatchState, context: CardContext, scope: PlayerScope) -> list[int]:
    if scope == "self":
        return [context.player]
    if scope == "opponent":
        return [state.opponent(context.player)]
    return [0, 1]


def evaluate(state: MatchState, value: Value, context: CardContext) -> int:
    if isinstance(value, int):
        return value
    total = 0
    for p in _scope_players(state, context, value.scope):
        ps = state.players[p]
        if value.source == "count_set_cards":
            total += sum(1 for z in ps.action_zones if z is not None and z.position == "hidden")
        elif value.source == "count_face_up_attribute":
            total += sum(
                1
                for z in ps.entity_zones
                if z is not None and z.face_up and z.card.definition.attribute == value.attribute
            )
        elif value.source == "player_lp":
            total += ps.lp
        elif value.source == "hand_size":
            total += len(ps.hand)
        else:
            raise RulesError(f"Unknown query source: {value.source}")
    return total * value.multiplier


# --- slot helpers ------------------------------------------------------------


def _target_slot(state: MatchState, context: CardContext) -> PlacedCard | None:
    t = context.target
    if t is None:
        return None
    return state.placed_at(t.player, t.zone, t.index)


def _self_slot(state: MatchState, context: CardContext) -> PlacedCard | None:
    loc = state.find_placed(context.card.instance_id)
    if loc is None:
        return None
    player, zone, index = loc
    return state.players[player].zones(zone)[index]


def _subject_slot(state: MatchState, context: CardContext, subject: Subject) -> PlacedCard | None:
    if subject == "self":
        return _self_slot(state, context)
    return _target_slot(state, context)


def _player_index(state: MatchState, context: CardContext, ref: PlayerRef) -> int:
    if ref == "self":
        return context.player
    if ref == "opponent":
        return state.opponent(context.player)
    return context.target.player if context.target is not None else context.player


def _target_options(state: MatchState, kind: TargetKind) -> tuple[TargetRef, ...]:
    zones = ("entity", "action") if kind == "any" else (kind,)
    return tuple(
        TargetRef(player=p_i, zone=zone, index=i)
        for p_i, ps in enumerate(state.players)
        for zone in zones
        for i, z in enumerate(ps.zones(zone))
        if z is not None
    )


def _position_passes(placed: PlacedCard | None, step: RequireTargetPosition) -> bool:
    return placed is not None and (placed.position == step.position) != step.invert


def _stat_text(attack: int, defense: int) -> str:
    parts = []
    if attack:
        parts.append(f"{abs(attack)} ATK")
    if defense:
        parts.append(f"{abs(defense)} DEF")
    return " & ".join(parts)


# --- step evaluator ----------------------------------------------------------


def _apply(work: MatchState, ctx: CardContext, step: Step) -> _Outcome | None:
    if isinstance(step, PayLP):
        amount = evaluate(work, step.amount, ctx)
        work.players[ctx.player].lp -= amount
        return _Outcome(log=f"Paid {amount} LP.")

    if isinstance(step, DiscardFromHand):
        ps = work.players[ctx.player]
        options = tuple(i for i, c in enumerate(ps.hand) if step.filter is None or step.filter.matches(c))
        if ctx.hand_index is None:
            return _Outcome(
                log=step.prompt,
                requirement=HandRequirement(player=ctx.player, prompt=step.prompt, options=options),
            )
        if ctx.hand_index not in options:
            return _Outcome(log="Could not discard the selected card.", halt=True)
        card = ps.hand.pop(ctx.hand_index)
        ps.discard.append(card)
        return _Outcome(log=f"Discarded {card.name}.")

    if isinstance(step, SelectFromDiscard):
        ps = work.players[ctx.player]
        options = tuple(i for i, c in enumerate(ps.discard) if step.filter.matches(c))
        if ctx.discard_index is None:
            return _Outcome(
                log=step.prompt,
                requirement=DiscardRequirement(player=ctx.player, prompt=step.prompt, options=options),
            )
        if ctx.discard_index not in options:
            return _Outcome(log="Invalid discard selection.", halt=True)
        return None

    if isinstance(step, RequireTarget):
        t = ctx.target
        fits = (
            t is not None
            and (step.kind == "any" or t.zone == step.kind)
            and work.placed_at(t.player, t.zone, t.index) is not None
        )
        if not fits:
            log = step.prompt if t is None else f"Invalid target. {step.prompt}"
            req = TargetRequirement(kind=step.kind, prompt=step.prompt, options=_target_options(work, step.kind))
            return _Outcome(log=log, requirement=req)
        return None

    if isinstance(step, RequireTargetScope):
        if ctx.target is not None:
            is_opponent = ctx.target.player != ctx.player
            if is_opponent != (step.scope == "opponent"):
                return _Outcome(log=step.message, halt=True)
        return None

    if isinstance(step, RequireTargetPosition):
        t = ctx.target
        if t is None or _position_passes(_target_slot(work, ctx), step):
            return None
        if step.on_fail == "halt":
            return _Outcome(log=step.message, halt=True)
        options = tuple(
            ref
            for ref in _target_options(work, t.zone)
            if _position_passes(work.placed_at(ref.player, ref.zone, ref.index), step)
        )
        req = TargetRequirement(kind=t.zone, prompt=step.message, options=options)
        return _Outcome(log=step.message, requirement=req)

    if isinstance(step, Compare):
        if not _compare(work, ctx, step):
            return _Outcome(log=step.message, halt=True)
        return None

    if isinstance(step, ModifyStats):
        placed = _subject_slot(work, ctx, step.subject)
        if placed is None:
            return None
        placed.card = placed.card.with_stats(
            attack=max(0, placed.card.attack + step.attack),
            defense=max(0, placed.card.defense + step.defense),
        )
        verb = "gains" if step.attack > 0 or step.defense > 0 else "loses"
        return _Outcome(log=f"{placed.card.name} {verb} {_stat_text(step.attack, step.defense)}.")

    if isinstance(step, ChangePosition):
        placed = _subject_slot(work, ctx, step.subject)
        if placed is None or placed.position == step.position:
            return None
        placed.position = step.position
        return _Outcome(log=f"{placed.card.name} changes to {step.position} position.")

    if isinstance(step, DealDamage):
        amount = evaluate(work, step.amount, ctx)
        prefix = f"{step.label} " if step.label else ""
        if amount <= 0:
            return _Outcome(log=f"{prefix}0 Damage.")
        work.players[_player_index(work, ctx, step.player)].lp -= amount
        return _Outcome(log=f"{prefix}Dealt {amount} Damage.")

    if isinstance(step, RestoreLP):
        amount = evaluate(work, step.amount, ctx)
        if amount <= 0:
            return None
        work.players[_player_index(work, ctx, step.player)].lp += amount
        prefix = f"{step.label} " if step.label else ""
        return _Outcome(log=f"{prefix}Restored {amount} LP.")

    if isinstance(step, DrawCards):
        count = evaluate(work, step.count, ctx)
        if count <= 0:
            return None
        drawn = draw_cards(work, ctx.player, count)
        return _Outcome(log=f"Drew {drawn} card(s).")

    if isinstance(step, (BanishTarget, DestroyTarget)):
        t = ctx.target
        if t is None:
            return None
        placed = work.placed_at(t.player, t.zone, t.index)
        if placed is None:
            return None
        owner = work.players[t.player]
        owner.zones(t.zone)[t.index] = None
        if isinstance(step, BanishTarget):
            owner.void.append(placed.card)
            return _Outcome(log=f"Banished {placed.card.name} to the Void.")
        owner.discard.append(placed.card)
        return _Outcome(log=f"Destroyed {placed.card.name}.")

    if isinstance(step, RecoverFromDiscard):
        ps = work.players[ctx.player]
        idx = ctx.discard_index
        if idx is None or idx < 0 or idx >= len(ps.discard):
            return None
        card = ps.discard.pop(idx)
        ps.hand.append(card)
        return _Outcome(log=f"Returned {card.name} to hand.")

    if isinstance(step, ScheduleReset):
        placed = _subject_slot(work, ctx, step.subject)
        if placed is None:
            return None
        value = step.value if step.value is not None else placed.card.base(step.stat)
        schedule(
            work,
            PendingEffect(
                kind=reset_kind_for(step.stat),
                target_instance_id=placed.card.instance_id,
                value=value,
                due_turn=work.turn + step.delay,
            ),
        )
        return _Outcome(log="(Resets during End Phase).")

    raise RulesError(f"Unknown step kind: {step!r}")


# --- preconditions -----------------------------------------------------------


def _compare(state: MatchState, ctx: CardContext, cmp: Compare) -> bool:
    return _OPS[cmp.op](evaluate(state, cmp.left, ctx), evaluate(state, cmp.right, ctx))


def _position_ok(placed: PlacedCard, position: str | None, exclude: str | None) -> bool:
    if position is not None and placed.position != position:
        return False
    if exclude is not None and placed.position == exclude:
        return False
    return True


def _holds(state: MatchState, ctx: CardContext, cond: Condition) -> bool:
    if isinstance(cond, Compare):
        return _compare(state, ctx, cond)
    if isinstance(cond, EntityExists):
        return any(
            z is not None
            and _position_ok(z, cond.position, cond.exclude_position)
            and (cond.filter is None or cond.filter.matches(z.card))
            for p in _scope_players(state, ctx, cond.scope)
            for z in state.players[p].entity_zones
        )
    if isinstance(cond, ActionExists):
        return any(
            z is not None and _position_ok(z, cond.position, cond.exclude_position)
            for p in _scope_players(state, ctx, cond.scope)
            for z in state.players[p].action_zones
        )
    if isinstance(cond, DiscardContains):
        p = _scope_players(state, ctx, cond.scope)[0]
        return any(cond.filter.matches(c) for c in state.players[p].discard)
    if isinstance(cond, SelfPosition):
        placed = _self_slot(state, ctx)
        return placed is not None and placed.position == cond.position
    raise RulesError(f"Unknown condition kind: {cond!r}")
