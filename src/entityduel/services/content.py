from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from entityduel.engine.effects.registry import NO_BEHAVIOR, CardBehavior, EffectRegistry, Hook
from entityduel.engine.effects.steps import (
    ActionExists,
    BanishTarget,
    ChangePosition,
    Compare,
    Condition,
    DealDamage,
    DestroyTarget,
    DiscardContains,
    DiscardFromHand,
    DrawCards,
    EntityExists,
    ModifyStats,
    PayLP,
    Query,
    RecoverFromDiscard,
    RequireTarget,
    RequireTargetPosition,
    RequireTargetScope,
    RestoreLP,
    ScheduleReset,
    SelectFromDiscard,
    SelfPosition,
    Step,
    Value,
)
from entityduel.engine.types import CardCatalog, CardDefinition, CardFilter


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: e.path)
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContentError(f"Expected int for {key}")
    return v


def _optional_str(obj: Mapping[str, object], key: str) -> str | None:
    v = obj.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _optional_int(obj: Mapping[str, object], key: str) -> int | None:
    if obj.get(key) is None:
        return None
    return _require_int(obj, key)


def _require_obj(obj: Mapping[str, object], key: str) -> Mapping[str, object]:
    v = obj.get(key)
    if not isinstance(v, dict):
        raise ContentError(f"Expected object for {key}")
    return v


# --- behavior parsing --------------------------------------------------------


def _parse_value(raw: object) -> Value:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if not isinstance(raw, dict):
        raise ContentError(f"Invalid value: {raw!r}")
    multiplier = _optional_int(raw, "multiplier")
    return Query(
        type="query",
        source=_require_str(raw, "source"),  # type: ignore[arg-type]
        scope=_optional_str(raw, "scope") or "self",  # type: ignore[arg-type]
        attribute=_optional_str(raw, "attribute"),  # type: ignore[arg-type]
        multiplier=1 if multiplier is None else multiplier,
    )


def _parse_filter(raw: Mapping[str, object]) -> CardFilter:
    return CardFilter(
        card_id=_optional_str(raw, "card_id"),
        category=_optional_str(raw, "category"),  # type: ignore[arg-type]
        max_level=_optional_int(raw, "max_level"),
        attribute=_optional_str(raw, "attribute"),  # type: ignore[arg-type]
    )


def _parse_compare(raw: Mapping[str, object]) -> Compare:
    return Compare(
        type="compare",
        left=_parse_value(raw.get("left")),
        op=_require_str(raw, "op"),  # type: ignore[arg-type]
        right=_parse_value(raw.get("right")),
        message=_optional_str(raw, "message") or "Requirement not met.",
    )


def _parse_step(raw: Mapping[str, object]) -> Step:
    t = raw.get("type")
    if not isinstance(t, str):
        raise ContentError("Step missing type")
    if t == "pay_lp":
        return PayLP(type="pay_lp", amount=_parse_value(raw.get("amount")))
    if t == "discard_from_hand":
        flt = raw.get("filter")
        return DiscardFromHand(
            type="discard_from_hand",
            prompt=_require_str(raw, "prompt"),
            filter=_parse_filter(flt) if isinstance(flt, dict) else None,
        )
    if t == "select_from_discard":
        return SelectFromDiscard(
            type="select_from_discard",
            prompt=_require_str(raw, "prompt"),
            filter=_parse_filter(_require_obj(raw, "filter")),
        )
    if t == "require_target":
        return RequireTarget(
            type="require_target",
            kind=_require_str(raw, "kind"),  # type: ignore[arg-type]
            prompt=_optional_str(raw, "prompt") or "Select a target.",
        )
    if t == "require_target_scope":
        return RequireTargetScope(
            type="require_target_scope",
            scope=_require_str(raw, "scope"),  # type: ignore[arg-type]
            message=_optional_str(raw, "message") or "Invalid target player.",
        )
    if t == "require_target_position":
        return RequireTargetPosition(
            type="require_target_position",
            position=_require_str(raw, "position"),  # type: ignore[arg-type]
            invert=bool(raw.get("invert", False)),
            message=_optional_str(raw, "message") or "Invalid target position.",
            on_fail=_optional_str(raw, "on_fail") or "halt",  # type: ignore[arg-type]
        )
    if t == "compare":
        return _parse_compare(raw)
    if t == "modify_stats":
        return ModifyStats(
            type="modify_stats",
            subject=_require_str(raw, "subject"),  # type: ignore[arg-type]
            attack=_optional_int(raw, "attack") or 0,
            defense=_optional_int(raw, "defense") or 0,
        )
    if t == "change_position":
        return ChangePosition(
            type="change_position",
            subject=_require_str(raw, "subject"),  # type: ignore[arg-type]
            position=_require_str(raw, "position"),  # type: ignore[arg-type]
        )
    if t == "deal_damage":
        return DealDamage(
            type="deal_damage",
            player=_require_str(raw, "player"),  # type: ignore[arg-type]
            amount=_parse_value(raw.get("amount")),
            label=_optional_str(raw, "label") or "",
        )
    if t == "restore_lp":
        return RestoreLP(
            type="restore_lp",
            player=_require_str(raw, "player"),  # type: ignore[arg-type]
            amount=_parse_value(raw.get("amount")),
            label=_optional_str(raw, "label") or "",
        )
    if t == "draw_cards":
        return DrawCards(type="draw_cards", count=_parse_value(raw.get("count")))
    if t == "banish_target":
        return BanishTarget(type="banish_target")
    if t == "destroy_target":
        return DestroyTarget(type="destroy_target")
    if t == "recover_from_discard":
        return RecoverFromDiscard(type="recover_from_discard")
    if t == "schedule_reset":
        return ScheduleReset(
            type="schedule_reset",
            subject=_require_str(raw, "subject"),  # type: ignore[arg-type]
            stat=_require_str(raw, "stat"),  # type: ignore[arg-type]
            delay=_optional_int(raw, "delay") or 0,
            value=_optional_int(raw, "value"),
        )
    raise ContentError(f"Unknown step type: {t}")


def _parse_condition(raw: Mapping[str, object]) -> Condition:
    t = raw.get("type")
    if t == "compare":
        return _parse_compare(raw)
    if t == "entity_exists":
        flt = raw.get("filter")
        return EntityExists(
            type="entity_exists",
            scope=_require_str(raw, "scope"),  # type: ignore[arg-type]
            position=_optional_str(raw, "position"),  # type: ignore[arg-type]
            exclude_position=_optional_str(raw, "exclude_position"),  # type: ignore[arg-type]
            filter=_parse_filter(flt) if isinstance(flt, dict) else None,
        )
    if t == "action_exists":
        return ActionExists(
            type="action_exists",
            scope=_require_str(raw, "scope"),  # type: ignore[arg-type]
            position=_optional_str(raw, "position"),  # type: ignore[arg-type]
            exclude_position=_optional_str(raw, "exclude_position"),  # type: ignore[arg-type]
        )
    if t == "discard_contains":
        return DiscardContains(
            type="discard_contains",
            scope=_require_str(raw, "scope"),  # type: ignore[arg-type]
            filter=_parse_filter(_require_obj(raw, "filter")),
        )
    if t == "self_position":
        return SelfPosition(type="self_position", position=_require_str(raw, "position"))  # type: ignore[arg-type]
    raise ContentError(f"Unknown condition type: {t}")


def _parse_hook(raw: object) -> Hook | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ContentError("A hook must be a list of steps")
    return tuple(_parse_step(s) for s in raw if isinstance(s, dict))


def _parse_behavior(raw: object) -> CardBehavior:
    if raw is None:
        return NO_BEHAVIOR
    if not isinstance(raw, dict):
        raise ContentError("behavior must be an object")
    conds = raw.get("can_activate")
    can_activate = None
    if isinstance(conds, list):
        can_activate = tuple(_parse_condition(c) for c in conds if isinstance(c, dict))
    return CardBehavior(
        on_summon=_parse_hook(raw.get("on_summon")),
        on_activate=_parse_hook(raw.get("on_activate")),
        can_activate=can_activate,
    )


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def _load_cards_raw(self) -> list[dict[str, object]]:
        cards_path = self._data_dir / "cards.json"
        raw = _load_json(cards_path)
        schema = _load_json(self._schema_dir / "cards.schema.json")
        validate_json(raw, schema, context=str(cards_path))

        if not isinstance(raw, dict):
            raise ContentError("cards.json must be an object")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")
        items = [c for c in raw_cards if isinstance(c, dict)]
        seen: set[str] = set()
        for item in items:
            card_id = _require_str(item, "id")
            if card_id in seen:
                raise ContentError(f"Duplicate card id: {card_id}")
            seen.add(card_id)
        return items

    def load_catalog(self) -> CardCatalog:
        cards: dict[str, CardDefinition] = {}
        for item in self._load_cards_raw():
            card = CardDefinition(
                id=_require_str(item, "id"),
                name=_require_str(item, "name"),
                category=_require_str(item, "category"),  # type: ignore[arg-type]
                level=_require_int(item, "level"),
                attack=_require_int(item, "attack"),
                defense=_require_int(item, "defense"),
                text=_require_str(item, "text"),
                attribute=_optional_str(item, "attribute"),  # type: ignore[arg-type]
                lingering=bool(item.get("lingering", False)),
                once_per_turn=bool(item.get("once_per_turn", False)),
            )
            cards[card.id] = card
        return CardCatalog(cards=cards)

    def load_registry(self) -> EffectRegistry:
        behaviors: dict[str, CardBehavior] = {}
        for item in self._load_cards_raw():
            card_id = _require_str(item, "id")
            category = _require_str(item, "category")
            behavior = _parse_behavior(item.get("behavior"))
            if category != "entity" and behavior.on_activate is None:
                raise ContentError(f"{category} card {card_id} needs an on_activate hook")
            behaviors[card_id] = behavior
        return EffectRegistry(behaviors=behaviors)

    def load(self) -> tuple[CardCatalog, EffectRegistry]:
        return self.load_catalog(), self.load_registry()

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        _ = self.load()
