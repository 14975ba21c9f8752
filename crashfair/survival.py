import numpy as np

from .config import DEFAULT_CONFIG, FairnessConfig


def empirical_survival(x: np.ndarray):
    x = np.asarray(x, dtype=float)
    x = x[~np.isnan(x)]
    x = x[x >= 1]
    x_sorted = np.sort(x)
    n = x_sorted.size
    # S(t) = P(X >= t) at unique t values
    uniq = np.unique(x_sorted)
    below = np.searchsorted(x_sorted, uniq, side="left")
    S = (n - below) / n if n else np.zeros(0)
    return {"t": uniq, "S": S, "n": n}


def theoretical_survival(t, config: FairnessConfig = DEFAULT_CONFIG):
    """P(X >= t) for the clamped crash curve: 1 below the floor, c/t up to the cap, 0 beyond."""
    t = np.asarray(t, dtype=float)
    c = config.payout_factor
    with np.errstate(divide="ignore"):
        tail = np.minimum(1.0, c / t)
    S = np.where(t <= config.min_multiplier, 1.0, tail)
    return np.where(t > config.max_multiplier, 0.0, S)
