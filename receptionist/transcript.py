"""Immutable prompt transcript."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from receptionist.models import Turn


@dataclass(frozen=True, slots=True)
class Transcript:
    """Prompt sent to the model: system turn, prior history, then this exchange.

    ``base`` counts the turns that came from outside the exchange (the system
    turn plus history); everything after it is new and gets committed.
    """

    turns: tuple[Turn, ...]
    base: int

    @classmethod
    def compose(cls, system_prompt: str, history: Iterable[Turn], user_turn: Turn) -> Transcript:
        prior = (Turn.system(system_prompt), *history)
        return cls(turns=(*prior, user_turn), base=len(prior))

    def extend(self, *turns: Turn) -> Transcript:
        return Transcript(turns=(*self.turns, *turns), base=self.base)

    def new_turns(self) -> tuple[Turn, ...]:
        return self.turns[self.base :]

    def to_messages(self) -> list[dict[str, Any]]:
        return [turn.to_wire() for turn in self.turns]

    def __len__(self) -> int:
        return len(self.turns)
