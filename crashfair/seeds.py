import hashlib
import secrets
from dataclasses import dataclass
from typing import Callable, Iterable, List, Mapping, Tuple

from .config import DEFAULT_CONFIG, FairnessConfig
from .errors import ValidationError


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def commit(config: FairnessConfig = DEFAULT_CONFIG,
           token_bytes: Callable[[int], bytes] = secrets.token_bytes) -> Tuple[str, str]:
    """Draw a fresh operator seed and return ``(operator_seed, commitment)``.

    The seed is the lowercase hex text of ``config.seed_bytes`` random bytes;
    the commitment is the SHA-256 of that text. ``token_bytes`` must be a
    CSPRNG outside of simulations.
    """
    raw = token_bytes(config.seed_bytes)
    if len(raw) < config.seed_bytes:
        raise OSError(f"entropy source returned {len(raw)} of {config.seed_bytes} bytes")
    operator_seed = raw.hex()
    return operator_seed, sha256_hex(operator_seed)


@dataclass(frozen=True)
class PlayerSeedContribution:
    participant_id: str
    value: str

    def as_dict(self) -> dict:
        return {"participant_id": self.participant_id, "value": self.value}


def validate_contribution(participant_id, value, config: FairnessConfig = DEFAULT_CONFIG) -> PlayerSeedContribution:
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValidationError(f"Player seed is not valid UTF-8: {exc}") from exc
    if not isinstance(value, str):
        raise ValidationError(f"Player seed must be a string, got {type(value).__name__}")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValidationError(f"Player seed is not representable as UTF-8: {exc}") from exc
    if not value.strip():
        raise ValidationError("Player seed cannot be empty or whitespace only")
    if len(value) > config.max_contribution_length:
        raise ValidationError(
            f"Player seed is too long ({len(value)} > {config.max_contribution_length} characters)"
        )
    if not isinstance(participant_id, str) or not participant_id.strip():
        raise ValidationError("participant_id is required")
    return PlayerSeedContribution(participant_id=participant_id.strip(), value=value.strip())


def as_contribution(item, config: FairnessConfig = DEFAULT_CONFIG) -> PlayerSeedContribution:
    """Accept a contribution, a ``(participant_id, value)`` pair or a mapping."""
    if isinstance(item, PlayerSeedContribution):
        return validate_contribution(item.participant_id, item.value, config)
    if isinstance(item, Mapping):
        return validate_contribution(item.get("participant_id"), item.get("value"), config)
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return validate_contribution(item[0], item[1], config)
    raise ValidationError(f"Unrecognised contribution: {item!r}")


def order_contributions(contributions: Iterable[PlayerSeedContribution]) -> List[PlayerSeedContribution]:
    # Fixed ordering key: participant id, then value. Part of the published algorithm.
    return sorted(contributions, key=lambda c: (c.participant_id, c.value))


def combine(operator_seed: str, contributions: Iterable, config: FairnessConfig = DEFAULT_CONFIG) -> str:
    """Return ``operator_seed || value_1 || value_2 || ...`` over the ordered contributions."""
    if not operator_seed:
        raise ValidationError("operator seed is required")
    checked = [as_contribution(c, config) for c in contributions]
    if not checked:
        raise ValidationError("At least one player seed is required")
    return operator_seed + "".join(c.value for c in order_contributions(checked))
