import numpy as np

from .config import DEFAULT_CONFIG, FairnessConfig
from .simulate import SimulationResult, theoretical_mean, within_tolerance
from .survival import theoretical_survival


def summarize_fit(fits, best):
    lines = ["Tail models (lower AIC is better):"]
    for f in sorted(fits, key=lambda d: d["aic"]):
        lines.append(f"- {f['name']}: AIC={f['aic']:.2f}, ll={f['ll']:.2f}, params={f['params']}")
    lines.append(f"Best: {best['name']}")
    return "\n".join(lines)


def summarize_simulation(result: SimulationResult, config: FairnessConfig = DEFAULT_CONFIG) -> str:
    expected = theoretical_mean(config)
    se = result.std / np.sqrt(result.total_rounds)
    lines = [
        f"Crash simulation ({result.total_rounds} rounds, algorithm {config.version})",
        "",
        f"{'range':>10}  {'count':>8}  {'share':>8}",
    ]
    dist = result.distribution
    for label, count, pct in zip(dist["bucket"], dist["count"], dist["percentage"]):
        lines.append(f"{label:>10}  {int(count):>8d}  {pct:>7.2f}%")
    lines += [
        "",
        f"min hit:   {result.min_hit:.2f}x",
        f"max hit:   {result.max_hit:.2f}x",
        f"median:    {result.median:.2f}x",
        f"mean:      {result.mean:.4f}x (theory {expected:.4f}x, s.e. {se:.4f})",
        f"P(X>=2):   {np.mean(result.multipliers >= 2):.4f} (theory {float(theoretical_survival(2.0, config)):.4f})",
        f"within 5 s.e. of theory: {'yes' if within_tolerance(result, config) else 'NO'}",
    ]
    return "\n".join(lines)


def prob_ge_thresholds(multipliers, xs):
    x = np.asarray(multipliers, dtype=float)
    return np.array([float(np.mean(x >= t)) for t in xs])
