import logging
import secrets
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from .config import DEFAULT_CONFIG, FairnessConfig
from .errors import IntegrityError, StateError, ValidationError
from .fair import VerificationOutcome, crash_multiplier, verify
from .rounds import ABORTABLE, Round, RoundState, is_terminal
from .seeds import commit, sha256_hex, validate_contribution

LOGGER = logging.getLogger("crashfair.engine")


@dataclass(frozen=True)
class RoundStarted:
    round_id: str
    commitment_hash: str


@dataclass(frozen=True)
class RoundResolved:
    round_id: str
    final_multiplier: float


@dataclass(frozen=True)
class RoundRevealed:
    round_id: str
    operator_seed: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FairnessEngine:
    """Runs rounds through commit, contribution, resolve and reveal.

    Each round is held as an immutable ``Round`` value replaced on every
    transition. A per-round lock serialises player seed submission against
    locking, so the locked contribution set is well defined. Rounds do not
    share mutable state, so separate rounds proceed concurrently.
    """

    def __init__(self, config: FairnessConfig = DEFAULT_CONFIG,
                 logger: Optional[logging.Logger] = None,
                 token_bytes: Callable[[int], bytes] = secrets.token_bytes,
                 clock: Callable[[], datetime] = _utcnow):
        self.config = config
        self.log = logger or LOGGER
        self._token_bytes = token_bytes
        self._clock = clock
        self._rounds: Dict[str, Round] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._closed: Dict[str, dict] = {}
        self._used_commitments: set = set()
        self._registry_lock = threading.Lock()

    # -- registry -------------------------------------------------------

    def _lock_for(self, round_id: str) -> threading.Lock:
        with self._registry_lock:
            if round_id in self._closed:
                raise StateError(f"Round {round_id} is closed ({self._closed[round_id]['state']})")
            if round_id not in self._locks:
                raise KeyError(f"Unknown round {round_id}")
            return self._locks[round_id]

    def _live(self, round_id: str) -> Round:
        with self._registry_lock:
            if round_id in self._closed:
                raise StateError(f"Round {round_id} is closed ({self._closed[round_id]['state']})")
        return self.get_round(round_id)

    def _store(self, rnd: Round) -> Round:
        # Terminal rounds leave the registry; only the published record is kept
        with self._registry_lock:
            if is_terminal(rnd.state):
                self._rounds.pop(rnd.round_id, None)
                self._locks.pop(rnd.round_id, None)
                self._closed[rnd.round_id] = rnd.to_record(self.config.version)
            else:
                self._rounds[rnd.round_id] = rnd
        return rnd

    def get_round(self, round_id: str) -> Round:
        """Return a live round. Revealed and failed rounds are only available as records."""
        with self._registry_lock:
            try:
                return self._rounds[round_id]
            except KeyError:
                raise KeyError(f"Unknown or closed round {round_id}") from None

    def list_rounds(self, state: Optional[RoundState] = None) -> List[Round]:
        with self._registry_lock:
            rounds = list(self._rounds.values())
        return [r for r in rounds if state is None or r.state is state]

    def closed_round_ids(self) -> List[str]:
        with self._registry_lock:
            return list(self._closed)

    def record(self, round_id: str) -> dict:
        with self._registry_lock:
            if round_id in self._closed:
                return dict(self._closed[round_id])
        return self.get_round(round_id).to_record(self.config.version)

    def close_round(self, round_id: str) -> dict:
        """Hand over the final record of a revealed or failed round and forget it."""
        with self._registry_lock:
            if round_id in self._closed:
                return self._closed.pop(round_id)
            if round_id in self._rounds:
                state = self._rounds[round_id].state.value
                raise StateError(f"Round {round_id} is still open (state {state})")
        raise KeyError(f"Unknown round {round_id}")

    def _fail(self, rnd: Round, reason: str) -> Round:
        self.log.error("round failed: %s", reason,
                       extra={"round_id": rnd.round_id, "event": "round.failed", "state": rnd.state.value})
        return self._store(rnd.transition(RoundState.FAILED, failure=reason))

    # -- lifecycle ------------------------------------------------------

    def start_round(self) -> RoundStarted:
        rnd = Round(round_id=uuid.uuid4().hex, created_at=self._clock())
        with self._registry_lock:
            self._rounds[rnd.round_id] = rnd
            self._locks[rnd.round_id] = threading.Lock()

        with self._lock_for(rnd.round_id):
            try:
                operator_seed, commitment = commit(self.config, self._token_bytes)
            except OSError as exc:
                self._fail(rnd, f"entropy source failed: {exc}")
                raise
            if sha256_hex(operator_seed) != commitment:
                self._fail(rnd, "commitment does not match its own seed")
                raise IntegrityError(f"Round {rnd.round_id}: commitment does not match its own seed")
            with self._registry_lock:
                reused = commitment in self._used_commitments
                self._used_commitments.add(commitment)
            if reused:
                self._fail(rnd, "operator seed reused")
                raise IntegrityError(f"Round {rnd.round_id}: operator seed was already used by another round")
            rnd = self._store(rnd.transition(RoundState.SEED_COMMITTED,
                                             operator_seed=operator_seed, commitment=commitment))

        self.log.info("round committed", extra={"round_id": rnd.round_id, "event": "round.committed",
                                                "commitment_hash": commitment})
        return RoundStarted(round_id=rnd.round_id, commitment_hash=commitment)

    def submit_contribution(self, round_id: str, participant_id: str, value) -> None:
        with self._lock_for(round_id):
            rnd = self._live(round_id)
            if rnd.state is not RoundState.SEED_COMMITTED:
                raise StateError(f"Round {round_id} is not accepting player seeds (state {rnd.state.value})")
            contribution = validate_contribution(participant_id, value, self.config)
            if any(c.participant_id == contribution.participant_id for c in rnd.contributions):
                raise ValidationError(f"Participant {contribution.participant_id} already submitted a seed")
            self._store(rnd.with_contribution(contribution))
        self.log.debug("player seed accepted", extra={"round_id": round_id, "event": "round.contribution",
                                                      "participant_id": contribution.participant_id})

    def lock_and_resolve(self, round_id: str) -> RoundResolved:
        with self._lock_for(round_id):
            rnd = self._live(round_id)
            if rnd.state is RoundState.SEED_COMMITTED and not rnd.contributions:
                raise StateError(f"Round {round_id} has no player seeds to lock")
            rnd = self._store(rnd.transition(RoundState.CONTRIBUTIONS_LOCKED))
            try:
                result = crash_multiplier(rnd.operator_seed, rnd.contributions, self.config)
            except IntegrityError as exc:
                self._fail(rnd, str(exc))
                raise
            rnd = self._store(rnd.transition(RoundState.RESOLVED, result=result, resolved_at=self._clock()))

        self.log.info("round resolved", extra={"round_id": round_id, "event": "round.resolved",
                                               "final_multiplier": result.final_multiplier,
                                               "contributions": len(rnd.contributions)})
        return RoundResolved(round_id=round_id, final_multiplier=result.final_multiplier)

    def reveal_seed(self, round_id: str) -> RoundRevealed:
        with self._lock_for(round_id):
            rnd = self._live(round_id)
            if rnd.state is RoundState.RESOLVED and sha256_hex(rnd.operator_seed) != rnd.commitment:
                self._fail(rnd, "operator seed no longer matches its commitment")
                raise IntegrityError(f"Round {round_id}: operator seed no longer matches its commitment")
            rnd = self._store(rnd.transition(RoundState.REVEALED, revealed_at=self._clock()))

        self.log.info("round revealed", extra={"round_id": round_id, "event": "round.revealed"})
        return RoundRevealed(round_id=round_id, operator_seed=rnd.operator_seed)

    def abort_round(self, round_id: str, reason: str = "aborted") -> Round:
        with self._lock_for(round_id):
            rnd = self._live(round_id)
            if rnd.state not in ABORTABLE:
                raise StateError(f"Round {round_id} cannot be aborted in state {rnd.state.value}")
            self.log.warning("round aborted: %s", reason, extra={"round_id": round_id, "event": "round.aborted"})
            return self._store(rnd.transition(RoundState.FAILED, failure=reason))

    @staticmethod
    def verify_round(operator_seed: str, contributions: Iterable, commitment_hash: str,
                     final_multiplier, config: FairnessConfig = DEFAULT_CONFIG) -> VerificationOutcome:
        return verify(operator_seed, contributions, commitment_hash, final_multiplier, config)
