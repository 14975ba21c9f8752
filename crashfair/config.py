import os
from dataclasses import dataclass

# 13 hex chars = 52 bits, the widest prefix a float64 holds exactly
MAX_PREFIX_LENGTH = 13
MIN_SEED_BYTES = 32


@dataclass(frozen=True)
class FairnessConfig:
    house_edge: float = 0.03
    prefix_length: int = 13
    min_multiplier: float = 1.0
    max_multiplier: float = 9999.0
    max_contribution_length: int = 75
    seed_bytes: int = 32

    def __post_init__(self):
        if not 0 <= self.house_edge < 1:
            raise ValueError(f"house_edge must be in [0, 1), got {self.house_edge}")
        if not 1 <= self.prefix_length <= MAX_PREFIX_LENGTH:
            raise ValueError(f"prefix_length must be in [1, {MAX_PREFIX_LENGTH}], got {self.prefix_length}")
        if self.min_multiplier < 1:
            raise ValueError("min_multiplier must be >= 1")
        if self.max_multiplier <= self.min_multiplier:
            raise ValueError("max_multiplier must be greater than min_multiplier")
        if self.max_contribution_length < 1:
            raise ValueError("max_contribution_length must be >= 1")
        if self.seed_bytes < MIN_SEED_BYTES:
            raise ValueError(f"seed_bytes must be >= {MIN_SEED_BYTES} (256 bits)")

    @property
    def payout_factor(self) -> float:
        return 1.0 - self.house_edge

    @property
    def version(self) -> str:
        # Published with every round; any change here changes the distribution
        return (
            f"sha256-p{self.prefix_length}-e{self.house_edge:g}"
            f"-{self.min_multiplier:g}-{self.max_multiplier:g}"
        )

    @classmethod
    def from_env(cls, environ=None) -> "FairnessConfig":
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get("CRASHFAIR_HOUSE_EDGE"):
            kwargs["house_edge"] = float(env["CRASHFAIR_HOUSE_EDGE"])
        if env.get("CRASHFAIR_PREFIX_LENGTH"):
            kwargs["prefix_length"] = int(env["CRASHFAIR_PREFIX_LENGTH"])
        if env.get("CRASHFAIR_MIN_MULTIPLIER"):
            kwargs["min_multiplier"] = float(env["CRASHFAIR_MIN_MULTIPLIER"])
        if env.get("CRASHFAIR_MAX_MULTIPLIER"):
            kwargs["max_multiplier"] = float(env["CRASHFAIR_MAX_MULTIPLIER"])
        if env.get("CRASHFAIR_MAX_CONTRIBUTION_LENGTH"):
            kwargs["max_contribution_length"] = int(env["CRASHFAIR_MAX_CONTRIBUTION_LENGTH"])
        if env.get("CRASHFAIR_SEED_BYTES"):
            kwargs["seed_bytes"] = int(env["CRASHFAIR_SEED_BYTES"])
        return cls(**kwargs)


DEFAULT_CONFIG = FairnessConfig()
