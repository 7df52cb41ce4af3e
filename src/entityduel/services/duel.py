from __future__ import annotations

from dataclasses import replace

from entityduel.engine.actions import Action, ResumableAction, TargetRef
from entityduel.engine.effects.registry import EffectRegistry
from entityduel.engine.effects.resolver import Requirement
from entityduel.engine.executor import ActionResult, step
from entityduel.engine.match import MatchConfig, MatchState, start_match
from entityduel.engine.serialize import action_to_dict, requirement_to_dict
from entityduel.engine.types import CardCatalog
from entityduel.services.telemetry import TelemetryService


class DuelError(RuntimeError):
    pass


class DuelService:
    """Holds one match for one caller, plus the action waiting on a selection.

    A suspended action is remembered so the caller can answer the prompt with
    `resume(...)` instead of rebuilding the whole action.
    """

    def __init__(
        self,
        cards: CardCatalog,
        effects: EffectRegistry,
        telemetry: TelemetryService | None = None,
        config: MatchConfig | None = None,
    ) -> None:
        self._cards = cards
        self._effects = effects
        self._telemetry = telemetry
        self._config = config or MatchConfig()
        self._state: MatchState | None = None
        self._pending: ResumableAction | None = None
        self._requirement: Requirement | None = None

    def _log(self, event_type: str, payload: dict[str, object]) -> None:
        if self._telemetry is not None:
            self._telemetry.log(event_type, payload)

    def start(self, seed: int | None = None) -> MatchState:
        self._state = start_match(self._cards, self._effects, seed=seed, config=self._config)
        self._pending = None
        self._requirement = None
        self._log("match_started", {"seed": self._state.seed, "deck_size": self._config.deck_size})
        return self._state

    @property
    def state(self) -> MatchState:
        if self._state is None:
            raise DuelError("No duel in progress. Call start() first.")
        return self._state

    @property
    def pending(self) -> ResumableAction | None:
        return self._pending

    @property
    def requirement(self) -> Requirement | None:
        return self._requirement

    def perform(self, action: Action) -> ActionResult:
        before = self.state
        result = step(before, action)
        if result.suspended:
            self._pending = action  # type: ignore[assignment]
            self._requirement = result.requirement
        else:
            self._pending = None
            self._requirement = None
        self._state = result.state

        self._log(
            "action",
            {
                "turn": before.turn,
                "phase": before.phase,
                "player": before.active_player,
                "action": action_to_dict(action),
                "ok": result.ok,
                "error": result.error,
                "suspended": result.suspended,
                "requirement": requirement_to_dict(result.requirement),
            },
        )
        if before.winner is None and result.state.winner is not None:
            self._log("match_ended", {"winner": result.state.winner, "turn": result.state.turn})
        return result

    def resume(
        self,
        target: TargetRef | None = None,
        discard_index: int | None = None,
        hand_index: int | None = None,
    ) -> ActionResult:
        """Re-issue the suspended action with the given selection merged in."""
        if self._pending is None:
            raise DuelError("No action is waiting for a selection.")
        pending = self._pending
        merged = replace(
            pending,
            target=target if target is not None else pending.target,
            discard_index=discard_index if discard_index is not None else pending.discard_index,
            hand_index=hand_index if hand_index is not None else pending.hand_index,
        )
        return self.perform(merged)

    def cancel(self) -> None:
        self._pending = None
        self._requirement = None
