from __future__ import annotations

import json
import shutil

import pytest

from entityduel.paths import get_paths
from entityduel.services.content import ContentError, ContentService


def _copy_content(tmp_path):
    paths = get_paths()
    data_dir = tmp_path / "data"
    schema_dir = data_dir / "schemas"
    shutil.copytree(paths.data_dir, data_dir)
    return data_dir, schema_dir


def test_content_schemas_validate() -> None:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    content.validate_all()


def test_catalog_and_registry_cover_the_same_cards() -> None:
    paths = get_paths()
    cards, effects = ContentService(paths.data_dir, paths.schema_dir).load()

    assert len(cards.all_ids()) == 12
    assert list(cards.all_ids()) == list(effects.all_ids())
    assert cards.get("condition_01").lingering
    assert cards.get("condition_01").once_per_turn
    assert cards.get("entity_05").attribute == "electric"
    assert effects.get("entity_01").on_summon is not None
    assert effects.get("entity_01").on_activate is None
    assert effects.get("action_01").can_activate is None
    with pytest.raises(KeyError):
        effects.get("missing_card")


def test_behaviors_parse_preconditions_and_position_fallbacks() -> None:
    paths = get_paths()
    effects = ContentService(paths.data_dir, paths.schema_dir).load_registry()

    void_call = effects.get("condition_02")
    assert void_call.can_activate is not None
    assert [c.type for c in void_call.can_activate] == ["action_exists"]
    assert void_call.on_activate[1].on_fail == "reprompt"
    assert effects.get("condition_01").on_activate[1].on_fail == "reprompt"
    assert effects.get("entity_02").on_summon[1].on_fail == "halt"


def test_unknown_on_fail_is_rejected(tmp_path) -> None:
    data_dir, schema_dir = _copy_content(tmp_path)
    raw = json.loads((data_dir / "cards.json").read_text(encoding="utf-8"))
    raw["cards"][1]["behavior"]["on_summon"][1]["on_fail"] = "retry"
    (data_dir / "cards.json").write_text(json.dumps(raw), encoding="utf-8")

    with pytest.raises(ContentError, match="Schema validation failed"):
        ContentService(data_dir, schema_dir).load_registry()


def test_schema_violation_is_reported(tmp_path) -> None:
    data_dir, schema_dir = _copy_content(tmp_path)
    raw = json.loads((data_dir / "cards.json").read_text(encoding="utf-8"))
    raw["cards"][0]["behavior"]["on_summon"][0]["type"] = "explode"
    (data_dir / "cards.json").write_text(json.dumps(raw), encoding="utf-8")

    with pytest.raises(ContentError, match="Schema validation failed"):
        ContentService(data_dir, schema_dir).load_registry()


def test_duplicate_card_id_is_rejected(tmp_path) -> None:
    data_dir, schema_dir = _copy_content(tmp_path)
    raw = json.loads((data_dir / "cards.json").read_text(encoding="utf-8"))
    raw["cards"].append(dict(raw["cards"][0]))
    (data_dir / "cards.json").write_text(json.dumps(raw), encoding="utf-8")

    with pytest.raises(ContentError, match="Duplicate card id"):
        ContentService(data_dir, schema_dir).load_catalog()


def test_missing_or_broken_file(tmp_path) -> None:
    data_dir, schema_dir = _copy_content(tmp_path)
    (data_dir / "cards.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ContentError, match="Invalid JSON"):
        ContentService(data_dir, schema_dir).load_catalog()

    with pytest.raises(ContentError, match="Missing content file"):
        ContentService(tmp_path / "nowhere", schema_dir).load_catalog()
