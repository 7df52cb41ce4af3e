from __future__ import annotations

import itertools

import pytest

from entityduel.engine.effects.registry import EffectRegistry
from entityduel.engine.match import MatchState, PlacedCard, start_match
from entityduel.engine.types import Card, CardCatalog, Position, ZoneType
from entityduel.paths import get_paths
from entityduel.services.content import ContentService


def load_content() -> tuple[CardCatalog, EffectRegistry]:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load()


class Table:
    """Arranges hands, piles and zones on a real match for rules tests."""

    def __init__(self, state: MatchState) -> None:
        self.state = state
        self._serial = itertools.count()

    def card(self, player: int, card_id: str) -> Card:
        return Card.from_definition(
            self.state.cards.get(card_id), instance_id=f"test{player}_{next(self._serial):03d}", owner=player
        )

    def give(self, player: int, card_id: str) -> Card:
        c = self.card(player, card_id)
        self.state.players[player].hand.append(c)
        return c

    def bury(self, player: int, card_id: str) -> Card:
        c = self.card(player, card_id)
        self.state.players[player].discard.append(c)
        return c

    def place(
        self,
        player: int,
        card_id: str,
        index: int,
        position: Position = "attack",
        zone: ZoneType = "entity",
        placed_turn: int = 1,
        attack: int | None = None,
        defense: int | None = None,
    ) -> PlacedCard:
        c = self.card(player, card_id).with_stats(attack=attack, defense=defense)
        placed = PlacedCard(card=c, position=position, placed_turn=placed_turn, set_placement=position == "hidden")
        self.state.players[player].zones(zone)[index] = placed
        return placed


@pytest.fixture
def table() -> Table:
    # Player 1 (index 0) to act in Main Phase 1 of turn 3, both hands empty.
    cards, effects = load_content()
    state = start_match(cards, effects, seed=1234)
    for ps in state.players:
        ps.hand.clear()
    state.phase = "main1"
    state.turn = 3
    return Table(state)
