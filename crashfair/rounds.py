"""Round value and lifecycle transitions.

Round lifecycle:
    CREATED -> SEED_COMMITTED -> CONTRIBUTIONS_LOCKED -> RESOLVED -> REVEALED
    Any non-terminal state -> FAILED

A Round is immutable: every transition returns a new value. Rounds never move
backward, and the operator seed stays private until REVEALED.
"""

import dataclasses
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Set, Tuple

from .errors import StateError
from .fair import MultiplierResult
from .seeds import PlayerSeedContribution, order_contributions


class RoundState(enum.Enum):
    CREATED = "created"
    SEED_COMMITTED = "seed_committed"
    CONTRIBUTIONS_LOCKED = "contributions_locked"
    RESOLVED = "resolved"
    REVEALED = "revealed"
    FAILED = "failed"


_TRANSITIONS: Dict[RoundState, Set[RoundState]] = {
    RoundState.CREATED: {RoundState.SEED_COMMITTED, RoundState.FAILED},
    RoundState.SEED_COMMITTED: {RoundState.CONTRIBUTIONS_LOCKED, RoundState.FAILED},
    RoundState.CONTRIBUTIONS_LOCKED: {RoundState.RESOLVED, RoundState.FAILED},
    RoundState.RESOLVED: {RoundState.REVEALED, RoundState.FAILED},
    RoundState.REVEALED: set(),
    RoundState.FAILED: set(),
}

# External aborts are only honoured before the outcome exists
ABORTABLE = frozenset({RoundState.CREATED, RoundState.SEED_COMMITTED, RoundState.CONTRIBUTIONS_LOCKED})


def valid_transitions(state: RoundState) -> Set[RoundState]:
    return set(_TRANSITIONS.get(state, set()))


def is_terminal(state: RoundState) -> bool:
    return not _TRANSITIONS.get(state)


@dataclass(frozen=True)
class Round:
    round_id: str
    created_at: datetime
    state: RoundState = RoundState.CREATED
    operator_seed: Optional[str] = dataclasses.field(default=None, repr=False)
    commitment: Optional[str] = None
    contributions: Tuple[PlayerSeedContribution, ...] = ()
    result: Optional[MultiplierResult] = None
    resolved_at: Optional[datetime] = None
    revealed_at: Optional[datetime] = None
    failure: Optional[str] = None

    @property
    def final_multiplier(self) -> Optional[float]:
        return self.result.final_multiplier if self.result else None

    def transition(self, target: RoundState, **changes) -> "Round":
        allowed = _TRANSITIONS.get(self.state, set())
        if target not in allowed:
            allowed_str = ", ".join(sorted(s.value for s in allowed))
            raise StateError(
                f"Invalid round transition: {self.state.value} -> {target.value}. "
                f"Allowed from {self.state.value}: [{allowed_str}]"
            )
        return dataclasses.replace(self, state=target, **changes)

    def with_contribution(self, contribution: PlayerSeedContribution) -> "Round":
        if self.state is not RoundState.SEED_COMMITTED:
            raise StateError(f"Round {self.round_id} is not accepting player seeds (state {self.state.value})")
        return dataclasses.replace(self, contributions=self.contributions + (contribution,))

    def to_record(self, algorithm: str) -> dict:
        revealed = self.state is RoundState.REVEALED
        return {
            "round_id": self.round_id,
            "state": self.state.value,
            "commitment_hash": self.commitment,
            "contributions": [c.as_dict() for c in order_contributions(self.contributions)],
            "operator_seed": self.operator_seed if revealed else None,
            "final_multiplier": self.final_multiplier,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "revealed_at": self.revealed_at.isoformat() if self.revealed_at else None,
            "algorithm": algorithm,
            "failure": self.failure,
        }
