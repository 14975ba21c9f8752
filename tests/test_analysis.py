import numpy as np
import pytest

from crashfair.config import FairnessConfig
from crashfair.fit import best_model_by_aic, fit_models, fit_pareto
from crashfair.plotting import plot_survival
from crashfair.report import summarize_fit
from crashfair.simulate import run_simulation
from crashfair.survival import empirical_survival, theoretical_survival


@pytest.fixture(scope="module")
def sample():
    return run_simulation(20_000, seed=99).multipliers


def test_empirical_survival() -> None:
    emp = empirical_survival(np.array([1.0, 2.0, 2.0, 3.0, np.nan, 0.5]))
    np.testing.assert_array_equal(emp["t"], [1.0, 2.0, 3.0])
    np.testing.assert_allclose(emp["S"], [1.0, 0.75, 0.25])
    assert emp["n"] == 4


def test_theoretical_survival() -> None:
    S = theoretical_survival([0.5, 1.0, 2.0, 9999.0, 10000.0])
    np.testing.assert_allclose(S, [1.0, 1.0, 0.485, 0.97 / 9999, 0.0])


def test_theoretical_survival_without_edge() -> None:
    S = theoretical_survival([4.0], FairnessConfig(house_edge=0.0))
    np.testing.assert_allclose(S, [0.25])


def test_pareto_is_best_tail_model(sample) -> None:
    fits = fit_models(sample)
    best = best_model_by_aic(fits)
    assert best["name"] == "pareto_xm1"
    assert "Best: pareto_xm1" in summarize_fit(fits, best)


def test_pareto_index_near_one(sample) -> None:
    alpha = fit_pareto(sample)["params"]["alpha"]
    assert alpha == pytest.approx(1.03, abs=0.08)


def test_plot_saved(sample, tmp_path) -> None:
    out = tmp_path / "survival.png"
    fits = fit_models(sample)
    plot_survival(empirical_survival(sample), fits, path=str(out))
    assert out.exists()
    assert out.stat().st_size > 0
