import math
import secrets
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd

from .config import DEFAULT_CONFIG, FairnessConfig
from .engine import FairnessEngine

# (lower inclusive, upper exclusive, label), scanned in order; first match wins
BUCKETS = (
    (1, 2, "1-2"),
    (2, 3, "2-3"),
    (3, 5, "3-5"),
    (5, 10, "5-10"),
    (10, 20, "10-20"),
    (20, 50, "20-50"),
    (50, 100, "50-100"),
    (100, 500, "100-500"),
    (500, 1000, "500-1000"),
    (1000, math.inf, "1000+"),
)


def bucket_for(value: float) -> str:
    for lower, upper, label in BUCKETS:
        if lower <= value < upper:
            return label
    # Unreachable for engine output: the clamp keeps every multiplier >= 1
    raise ValueError(f"Multiplier {value} is outside the defined ranges")


@dataclass
class SimulationResult:
    multipliers: np.ndarray
    distribution: pd.DataFrame
    min_hit: float
    max_hit: float
    total_rounds: int
    mean: float
    median: float
    std: float
    records: List[dict] = field(default_factory=list)


def distribution_table(multipliers) -> pd.DataFrame:
    x = np.asarray(multipliers, dtype=float)
    labels = [label for _, _, label in BUCKETS]
    counts = pd.Series([bucket_for(v) for v in x], dtype=object).value_counts()
    counts = counts.reindex(labels, fill_value=0)
    return pd.DataFrame({
        "bucket": labels,
        "count": counts.values.astype(int),
        "percentage": counts.values / max(x.size, 1) * 100,
    })


def run_simulation(rounds: int = 10000, config: FairnessConfig = DEFAULT_CONFIG,
                   seed: Optional[int] = None, engine: Optional[FairnessEngine] = None,
                   keep_records: bool = False):
    """Play ``rounds`` complete rounds through the engine's public interface.

    With ``seed`` the operator seeds and player seeds come from a seeded numpy
    generator so runs are reproducible; that is for analysis only. With
    ``keep_records`` the published record of every round is kept on the result.
    """
    if rounds < 1:
        raise ValueError("rounds must be >= 1")
    if seed is not None:
        rng = np.random.default_rng(seed)
        token_bytes = rng.bytes
        player_seed = lambda: rng.bytes(8).hex()
    else:
        token_bytes = secrets.token_bytes
        player_seed = lambda: secrets.token_hex(8)
    if engine is None:
        engine = FairnessEngine(config, token_bytes=token_bytes)

    out = np.empty(rounds, dtype=float)
    records = []
    for k in range(rounds):
        started = engine.start_round()
        engine.submit_contribution(started.round_id, "sim", player_seed())
        out[k] = engine.lock_and_resolve(started.round_id).final_multiplier
        engine.reveal_seed(started.round_id)
        record = engine.close_round(started.round_id)
        if keep_records:
            records.append(record)

    return SimulationResult(
        multipliers=out,
        distribution=distribution_table(out),
        min_hit=float(out.min()),
        max_hit=float(out.max()),
        total_rounds=rounds,
        mean=float(out.mean()),
        median=float(np.median(out)),
        std=float(out.std(ddof=1)) if rounds > 1 else 0.0,
        records=records,
    )


def theoretical_mean(config: FairnessConfig = DEFAULT_CONFIG) -> float:
    # E[clamp(c / U, m, M)] for U ~ Uniform(0, 1) and c <= m
    c = config.payout_factor
    m, M = config.min_multiplier, config.max_multiplier
    return m + c * math.log(M / m)


def within_tolerance(result: SimulationResult, config: FairnessConfig = DEFAULT_CONFIG, z: float = 5.0) -> bool:
    tol = z * result.std / math.sqrt(result.total_rounds)
    return abs(result.mean - theoretical_mean(config)) <= tol
