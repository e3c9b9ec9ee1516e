import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose

from sensible_signatures import NonOptimalWarning, UnderdeterminedWarning, solve
from sensible_signatures.synthetic import make_profile, make_signatures

SCENARIO_PROFILE = np.array([183.0, 779.0, 588.0, 706.0, 384.0, 127.0])


def _scenario_matrix() -> np.ndarray:
    """Four seeded synthetic signatures over six channels."""
    return make_signatures(6, 4, seed=0)


def test_scenario_six_channels_four_signatures_nnls():
    A = _scenario_matrix()
    b = SCENARIO_PROFILE
    sol = solve(A, b, method="nnls", compute_floor=True)

    assert sol.exposures.shape == (4,)
    assert np.all(sol.exposures >= 0.0)
    assert sol.optimal
    assert sol.determinacy == "overdetermined"

    # KKT: zero gradient on the support, non-positive dual elsewhere.
    w = A.T @ (b - A @ sol.exposures)
    scale = float(np.max(np.abs(A.T @ b)))
    pos = sol.exposures > 0.0
    assert np.all(np.abs(w[pos]) <= 1e-8 * scale)
    assert np.all(w[~pos] <= 1e-8 * scale)

    assert sol.residual_norm >= sol.diagnostics["residual_floor"] - 1e-9
    assert sol.residual_norm <= sol.diagnostics["projected_residual"] + 1e-9


def test_scenario_identity_like_matrix_recovers_profile():
    A = np.eye(6)
    b = np.array([5.0, 0.0, 12.5, 3.0, 100.0, 7.0])
    for method in ("nnls", "lp", "qp", "lstsq"):
        sol = solve(A, b, method=method)
        assert sol.determinacy == "exactly-determined"
        assert_allclose(sol.exposures, b, rtol=1e-8, atol=1e-8, err_msg=method)


@pytest.mark.parametrize("method", ["nnls", "lp", "qp"])
def test_exact_recovery_on_full_rank_square_system(method):
    A = make_signatures(5, 5, seed=7)
    x_true = np.array([10.0, 2.0, 3.5, 20.0, 1.0])
    b = make_profile(A, x_true)

    sol = solve(A, b, method=method)

    assert sol.optimal
    assert_allclose(sol.exposures, x_true, rtol=1e-6, atol=1e-6)
    assert sol.residual_norm < 1e-6


@pytest.mark.parametrize("method", ["nnls", "lp", "qp"])
def test_constrained_backends_never_return_negative_exposures(method):
    A = make_signatures(12, 5, seed=21)
    for seed in range(5):
        rng = np.random.default_rng(seed)
        b = rng.integers(0, 500, size=12).astype(float)
        sol = solve(A, b, method=method)
        assert np.all(sol.exposures >= 0.0)


def test_nnls_and_qp_agree_on_overdetermined_inputs():
    A = make_signatures(12, 4, seed=3)
    b = make_profile(A, np.array([100.0, 0.0, 250.0, 40.0]), noise="poisson", seed=3)

    x_nnls = solve(A, b, method="nnls").exposures
    sol_qp = solve(A, b, method="qp")

    assert sol_qp.optimal
    assert_allclose(sol_qp.exposures, x_nnls, rtol=1e-4, atol=1e-3 * b.max())
    r_nnls = np.linalg.norm(A @ x_nnls - b)
    assert_allclose(sol_qp.residual_norm, r_nnls, rtol=1e-6)


@pytest.mark.parametrize("method", ["nnls", "lp"])
def test_underdetermined_solution_reaches_residual_floor(method):
    A = make_signatures(4, 7, seed=11)
    b = make_profile(A, np.array([30.0, 5.0, 0.0, 12.0, 40.0, 7.0, 1.0]))

    with pytest.warns(UnderdeterminedWarning):
        sol = solve(A, b, method=method, compute_floor=True)

    assert sol.determinacy == "underdetermined"
    assert np.all(sol.exposures >= 0.0)
    tol = 1e-6 * np.linalg.norm(b)
    assert sol.residual_norm <= sol.diagnostics["residual_floor"] + tol


def test_zero_profile_gives_zero_exposures_for_every_backend():
    A = _scenario_matrix()
    b = np.zeros(6)
    for method in ("nnls", "lp", "qp", "lstsq"):
        sol = solve(A, b, method=method)
        assert_allclose(sol.exposures, 0.0, atol=1e-12, err_msg=method)
        assert sol.residual_norm == pytest.approx(0.0, abs=1e-12)


@pytest.mark.parametrize("method", ["nnls", "lp", "qp", "lstsq"])
def test_repeated_solves_are_identical(method):
    A = make_signatures(9, 4, seed=8)
    b = make_profile(A, np.array([5.0, 60.0, 0.0, 33.0]), noise="poisson", seed=8)

    with warnings.catch_warnings():
        warnings.simplefilter("error", NonOptimalWarning)
        first = solve(A, b, method=method)
        second = solve(A, b, method=method)

    assert np.array_equal(first.exposures, second.exposures)
    assert first.iterations == second.iterations
    assert first.status == second.status
