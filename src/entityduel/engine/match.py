from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from typing import Sequence

from .effects.registry import EffectRegistry
from .pending import PendingEffect
from .types import Card, CardCatalog, Phase, Position, ZoneType


class RulesError(RuntimeError):
    """Raised on broken engine invariants (never on bad player input)."""


@dataclass(frozen=True)
class MatchConfig:
    starting_lp: int = 800
    starting_hand: int = 5
    deck_size: int = 40
    entity_zones: int = 5
    action_zones: int = 5
    hand_target: int = 5
    log_limit: int = 50


@dataclass
class PlacedCard:
    card: Card
    position: Position
    placed_turn: int
    set_placement: bool = False
    has_attacked: bool = False
    changed_position: bool = False
    activated_this_turn: bool = False

    @property
    def face_up(self) -> bool:
        return self.position != "hidden"


@dataclass
class PlayerState:
    id: str
    name: str
    lp: int
    deck: list[Card]
    hand: list[Card]
    entity_zones: list[PlacedCard | None]
    action_zones: list[PlacedCard | None]
    discard: list[Card] = field(default_factory=list)
    void: list[Card] = field(default_factory=list)
    normal_summon_used: bool = False
    hidden_summon_used: bool = False

    def zones(self, zone: ZoneType) -> list[PlacedCard | None]:
        return self.entity_zones if zone == "entity" else self.action_zones

    def entity_count(self) -> int:
        return sum(1 for z in self.entity_zones if z is not None)

    def hand_index_of(self, instance_id: str) -> int | None:
        for i, c in enumerate(self.hand):
            if c.instance_id == instance_id:
                return i
        return None

    def clone(self) -> PlayerState:
        return replace(
            self,
            deck=list(self.deck),
            hand=list(self.hand),
            discard=list(self.discard),
            void=list(self.void),
            entity_zones=[replace(z) if z is not None else None for z in self.entity_zones],
            action_zones=[replace(z) if z is not None else None for z in self.action_zones],
        )


@dataclass
class MatchState:
    cards: CardCatalog
    effects: EffectRegistry
    config: MatchConfig
    seed: int
    players: tuple[PlayerState, PlayerState]
    active_player: int = 0
    phase: Phase = "draw"
    turn: int = 1
    winner: int | None = None
    log: list[str] = field(default_factory=list)
    pending_effects: list[PendingEffect] = field(default_factory=list)

    def opponent(self, player: int) -> int:
        return 1 - player

    @property
    def active(self) -> PlayerState:
        return self.players[self.active_player]

    def clone(self) -> MatchState:
        """Copy every mutable part; catalog, registry and cards are shared."""
        return replace(
            self,
            players=(self.players[0].clone(), self.players[1].clone()),
            log=list(self.log),
            pending_effects=list(self.pending_effects),
        )

    def record(self, line: str) -> None:
        if not line:
            return
        self.log.insert(0, line)
        del self.log[self.config.log_limit :]

    def placed_at(self, player: int, zone: ZoneType, index: int) -> PlacedCard | None:
        slots = self.players[player].zones(zone)
        if index < 0 or index >= len(slots):
            raise RulesError(f"{zone} zone index {index} out of range (0..{len(slots) - 1}).")
        return slots[index]

    def find_placed(self, instance_id: str) -> tuple[int, ZoneType, int] | None:
        for p_i, ps in enumerate(self.players):
            for zone in ("entity", "action"):
                for i, z in enumerate(ps.zones(zone)):
                    if z is not None and z.card.instance_id == instance_id:
                        return p_i, zone, i
        return None


def find_empty_zone(slots: Sequence[PlacedCard | None]) -> int | None:
    for i, z in enumerate(slots):
        if z is None:
            return i
    return None


def draw_cards(state: MatchState, player: int, count: int) -> int:
    ps = state.players[player]
    drawn = 0
    while drawn < count and ps.deck:
        ps.hand.append(ps.deck.pop(0))
        drawn += 1
    return drawn


def check_winner(state: MatchState) -> None:
    if state.winner is not None:
        return
    # Opponent first: if both sides are at 0 or below, the active player wins.
    opp = state.opponent(state.active_player)
    for loser in (opp, state.active_player):
        if state.players[loser].lp <= 0:
            state.winner = state.opponent(loser)
            state.record(f"{state.players[state.winner].name} wins the duel.")
            return


def build_deck(cards: CardCatalog, size: int) -> list[str]:
    """Cycle through the catalog in order until `size` card ids are listed."""
    ids = cards.all_ids()
    if not ids:
        raise ValueError("Card catalog is empty.")
    return [ids[i % len(ids)] for i in range(size)]


def _new_player(
    index: int, cards: CardCatalog, deck_ids: Sequence[str], cfg: MatchConfig, rng: random.Random
) -> PlayerState:
    player_id = f"player{index + 1}"
    deck = [
        Card.from_definition(cards.get(cid), instance_id=f"{player_id}_{i:02d}", owner=index)
        for i, cid in enumerate(deck_ids)
    ]
    rng.shuffle(deck)
    return PlayerState(
        id=player_id,
        name=f"Player {index + 1}",
        lp=cfg.starting_lp,
        deck=deck[cfg.starting_hand :],
        hand=deck[: cfg.starting_hand],
        entity_zones=[None for _ in range(cfg.entity_zones)],
        action_zones=[None for _ in range(cfg.action_zones)],
    )


def new_match(
    cards: CardCatalog,
    effects: EffectRegistry,
    deck0: Sequence[str],
    deck1: Sequence[str],
    seed: int,
    config: MatchConfig | None = None,
) -> MatchState:
    cfg = config or MatchConfig()
    if len(deck0) != cfg.deck_size or len(deck1) != cfg.deck_size:
        raise ValueError(f"Decks must be exactly {cfg.deck_size} cards.")

    rng = random.Random(seed)
    p0 = _new_player(0, cards, deck0, cfg, rng)
    p1 = _new_player(1, cards, deck1, cfg, rng)
    state = MatchState(cards=cards, effects=effects, config=cfg, seed=seed, players=(p0, p1))
    state.record("Duel initialized.")
    return state


def start_match(
    cards: CardCatalog,
    effects: EffectRegistry,
    seed: int | None = None,
    config: MatchConfig | None = None,
) -> MatchState:
    cfg = config or MatchConfig()
    if seed is None:
        seed = random.randrange(2**31)
    deck = build_deck(cards, cfg.deck_size)
    return new_match(cards, effects, deck, deck, seed=seed, config=cfg)
