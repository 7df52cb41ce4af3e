from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Literal

CardCategory = Literal["entity", "action", "condition"]
Attribute = Literal["light", "dark", "fire", "electric", "earth", "normal"]
Position = Literal["attack", "defense", "hidden"]
Phase = Literal["draw", "standby", "main1", "battle", "main2", "end"]
ZoneType = Literal["entity", "action"]
Stat = Literal["attack", "defense"]

MAIN_PHASES: tuple[Phase, ...] = ("main1", "main2")


@dataclass(frozen=True)
class CardDefinition:
    id: str
    name: str
    category: CardCategory
    level: int
    attack: int
    defense: int
    text: str
    attribute: Attribute | None = None
    lingering: bool = False
    once_per_turn: bool = False


@dataclass(frozen=True)
class CardCatalog:
    """Immutable card catalog used by the engine."""

    cards: dict[str, CardDefinition]

    def get(self, card_id: str) -> CardDefinition:
        return self.cards[card_id]

    def all_ids(self) -> Sequence[str]:
        return list(self.cards.keys())


@dataclass(frozen=True)
class Card:
    """One physical copy of a catalog card inside a match.

    Stat changes never touch the definition: a modified card is a new
    instance (see `with_stats`) swapped into the zone that holds it.
    """

    instance_id: str
    owner: int
    definition: CardDefinition
    attack: int
    defense: int

    @staticmethod
    def from_definition(definition: CardDefinition, instance_id: str, owner: int) -> "Card":
        return Card(
            instance_id=instance_id,
            owner=owner,
            definition=definition,
            attack=definition.attack,
            defense=definition.defense,
        )

    @property
    def card_id(self) -> str:
        return self.definition.id

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def category(self) -> CardCategory:
        return self.definition.category

    @property
    def level(self) -> int:
        return self.definition.level

    def base(self, stat: Stat) -> int:
        return self.definition.attack if stat == "attack" else self.definition.defense

    def with_stats(self, attack: int | None = None, defense: int | None = None) -> "Card":
        return replace(
            self,
            attack=self.attack if attack is None else attack,
            defense=self.defense if defense is None else defense,
        )


@dataclass(frozen=True)
class CardFilter:
    """Static predicate over a card, used by discard/hand selections."""

    card_id: str | None = None
    category: CardCategory | None = None
    max_level: int | None = None
    attribute: Attribute | None = None

    def matches(self, card: Card) -> bool:
        if self.card_id is not None and card.card_id != self.card_id:
            return False
        if self.category is not None and card.category != self.category:
            return False
        if self.max_level is not None and card.level > self.max_level:
            return False
        if self.attribute is not None and card.definition.attribute != self.attribute:
            return False
        return True
