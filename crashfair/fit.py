import numpy as np
from scipy import stats


def fit_exponential(x):
    # Support x>=1; model X = 1 + Y where Y ~ Exp(lambda)
    y = np.asarray(x, dtype=float) - 1.0
    y = y[y >= 0]
    lam = 1.0 / (np.mean(y) + 1e-12)
    ll = np.sum(stats.expon(scale=1/lam).logpdf(y))
    aic = 2*1 - 2*ll
    return {"name": "exponential_shift1", "params": {"lambda": lam}, "ll": ll, "aic": aic,
            "survival": lambda t: np.exp(-lam * np.maximum(np.asarray(t) - 1, 0))}


def fit_pareto(x):
    # Pareto with xm=1, S(t) = t^-alpha; the crash curve sits near alpha = 1
    z = np.asarray(x, dtype=float)
    z = z[z >= 1]
    alpha = z.size / (np.sum(np.log(z)) + 1e-12)
    ll = np.sum(stats.pareto(b=alpha, scale=1).logpdf(z))
    aic = 2*1 - 2*ll
    return {"name": "pareto_xm1", "params": {"alpha": alpha}, "ll": ll, "aic": aic,
            "survival": lambda t: np.where(np.asarray(t) >= 1, np.asarray(t, dtype=float) ** (-alpha), 1.0)}


def fit_models(x):
    return [fit_exponential(x), fit_pareto(x)]


def best_model_by_aic(fits):
    return sorted(fits, key=lambda d: d["aic"])[0]
