import dataclasses
import pickle

import numpy as np
import pytest

from sensible_signatures import MaxIterationsExceeded, NonOptimalWarning, solve
from sensible_signatures.backends import BackendResult
from sensible_signatures.result import normalize_result


def _solution(x, status="converged", names=None):
    A = np.array([[0.5, 0.0], [0.5, 0.5], [0.0, 0.5]])
    b = np.array([10.0, 8.0, 2.0])
    raw = BackendResult(x=np.asarray(x, dtype=float), status=status, iterations=3, message="m")
    return normalize_result(
        A, b, raw, backend="nnls", determinacy="overdetermined", signature_names=names
    )


def test_reconstruction_and_residual():
    sol = _solution([12.0, 4.0])
    assert np.allclose(sol.reconstruction, [6.0, 8.0, 2.0])
    assert np.allclose(sol.residual, [4.0, 0.0, 0.0])
    assert sol.residual_norm == pytest.approx(4.0)
    assert np.allclose(sol.observed, [10.0, 8.0, 2.0])
    assert sol.diagnostics["message"] == "m"


def test_proportions_and_metrics():
    sol = _solution([12.0, 4.0])
    assert np.allclose(sol.proportions, [0.75, 0.25])
    assert sol.total_exposure == pytest.approx(16.0)
    assert sol.relative_residual == pytest.approx(4.0 / np.linalg.norm([10.0, 8.0, 2.0]))
    assert 0.0 < sol.cosine_similarity < 1.0

    zero = _solution([0.0, 0.0])
    assert np.array_equal(zero.proportions, [0.0, 0.0])
    assert zero.cosine_similarity == 0.0


def test_zero_profile_metrics():
    sol = solve(np.eye(3), np.zeros(3))
    assert sol.relative_residual == 0.0
    assert sol.cosine_similarity == 1.0


def test_solution_is_immutable():
    sol = _solution([12.0, 4.0])
    with pytest.raises(ValueError):
        sol.exposures[0] = 1.0
    with pytest.raises(dataclasses.FrozenInstanceError):
        sol.backend = "lp"
    with pytest.raises(TypeError):
        sol.diagnostics["message"] = "changed"


def test_dispatch_diagnostics_are_read_only():
    A = np.array([[0.5, 0.0], [0.5, 0.5], [0.0, 0.5]])
    sol = solve(A, np.array([10.0, 8.0, 2.0]))

    assert isinstance(sol.diagnostics["attempts"], tuple)
    with pytest.raises(TypeError):
        sol.diagnostics["fallback_used"] = True
    with pytest.raises(AttributeError):
        sol.diagnostics["attempts"].append({"backend": "lp"})


def test_solution_pickles_with_read_only_fields():
    sol = _solution([12.0, 4.0], names=["SBS1", "SBS5"])
    copy = pickle.loads(pickle.dumps(sol))

    assert copy.as_dict() == sol.as_dict()
    assert copy.diagnostics["message"] == "m"
    with pytest.raises(TypeError):
        copy.diagnostics["message"] = "changed"
    with pytest.raises(ValueError):
        copy.exposures[0] = 1.0


def test_raise_for_status():
    assert _solution([1.0, 1.0]).raise_for_status().optimal
    with pytest.raises(MaxIterationsExceeded) as exc:
        _solution([1.0, 1.0], status="max_iterations").raise_for_status()
    assert exc.value.context["iterations"] == 3
    assert exc.value.backend == "nnls"


def test_wrong_coefficient_count_is_rejected():
    with pytest.raises(ValueError, match="coefficients"):
        _solution([1.0, 1.0, 1.0])


def test_as_dict_and_summary():
    sol = _solution([12.0, 4.0], names=("SBS1", "SBS5"))
    assert sol.as_dict() == {"SBS1": 12.0, "SBS5": 4.0}
    text = sol.summary()
    assert "backend='nnls'" in text
    assert "SBS1" in text and "75.0%" in text

    unnamed = _solution([12.0, 4.0])
    assert unnamed.as_dict() == {"0": 12.0, "1": 4.0}


def test_non_optimal_solution_from_solve_can_be_promoted_to_error():
    A = np.array([[0.6, 0.1, 0.2], [0.3, 0.6, 0.2], [0.1, 0.3, 0.6]])
    b = A @ np.array([5.0, 9.0, 4.0])
    with pytest.warns(NonOptimalWarning):
        sol = solve(A, b, max_iterations=1)
    with pytest.raises(MaxIterationsExceeded):
        sol.raise_for_status()
