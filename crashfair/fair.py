import enum
import hashlib
import hmac
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, FairnessConfig
from .errors import ParseError
from .seeds import combine, sha256_hex

_HEX = re.compile(r"[0-9a-fA-F]+")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class MultiplierResult:
    digest: str
    hash_value: int
    normalized_value: float
    raw_multiplier: float
    house_edge_adjusted: float
    final_multiplier: float


class VerificationOutcome(enum.Enum):
    VALID = "valid"
    COMMITMENT_MISMATCH = "commitment_mismatch"
    MULTIPLIER_MISMATCH = "multiplier_mismatch"


def digest(combined_seed: str) -> str:
    return hashlib.sha256(combined_seed.encode("utf-8")).hexdigest()


def hash_to_uniform(hex_digest: str, prefix_length: int = DEFAULT_CONFIG.prefix_length) -> Tuple[int, float]:
    # First prefix_length hex chars, normalised against the largest value they can hold: [0, 1]
    head = hex_digest[:prefix_length]
    if len(head) != prefix_length or not _HEX.fullmatch(head):
        raise ParseError(f"Failed to parse hash prefix {head!r} (need {prefix_length} hex chars)")
    num = int(head, 16)
    max_val = 2 ** (4 * prefix_length) - 1
    return num, num / max_val


def round_half_up(value: float) -> Decimal:
    return Decimal(repr(float(value))).quantize(_CENT, rounding=ROUND_HALF_UP)


def transform(hex_digest: str, config: FairnessConfig = DEFAULT_CONFIG) -> MultiplierResult:
    num, x = hash_to_uniform(hex_digest, config.prefix_length)
    # x == 1 gives +inf rather than ZeroDivisionError; the clamp below handles it
    with np.errstate(divide="ignore"):
        raw = float(np.float64(1.0) / np.float64(1.0 - x))
    adjusted = raw * config.payout_factor
    clamped = min(max(adjusted, config.min_multiplier), config.max_multiplier)
    final = float(round_half_up(clamped))
    return MultiplierResult(
        digest=hex_digest,
        hash_value=num,
        normalized_value=x,
        raw_multiplier=raw,
        house_edge_adjusted=adjusted,
        final_multiplier=final,
    )


def crash_multiplier(operator_seed: str, contributions: Iterable,
                     config: FairnessConfig = DEFAULT_CONFIG) -> MultiplierResult:
    return transform(digest(combine(operator_seed, contributions, config)), config)


def recompute(operator_seed: str, contributions: Iterable,
              config: FairnessConfig = DEFAULT_CONFIG) -> Tuple[str, MultiplierResult]:
    """Rebuild the commitment and every intermediate value of a published round."""
    return sha256_hex(operator_seed), crash_multiplier(operator_seed, contributions, config)


def _parse_claim(value):
    # Exact two-decimal claims only; None for anything else
    try:
        claim = Decimal(str(value).strip())
        if not claim.is_finite() or claim != claim.quantize(_CENT):
            return None
    except InvalidOperation:
        return None
    return claim


def verify(operator_seed: str, contributions: Iterable, claimed_commitment: str,
           claimed_multiplier, config: FairnessConfig = DEFAULT_CONFIG) -> VerificationOutcome:
    """Check a revealed round against what was published for it.

    The commitment is checked first: a seed that does not hash to the
    published commitment makes the multiplier irrelevant. The claimed
    multiplier must equal the published two-decimal value exactly: claims with
    more than two decimals, non-finite or unparseable claims are mismatches.
    Contributions that fail validation raise ``ValidationError``.
    """
    commitment, result = recompute(operator_seed, contributions, config)
    claimed = str(claimed_commitment).strip().lower().encode("utf-8")
    if not hmac.compare_digest(commitment.encode("utf-8"), claimed):
        return VerificationOutcome.COMMITMENT_MISMATCH
    claim = _parse_claim(claimed_multiplier)
    if claim is None or claim != round_half_up(result.final_multiplier):
        return VerificationOutcome.MULTIPLIER_MISMATCH
    return VerificationOutcome.VALID
