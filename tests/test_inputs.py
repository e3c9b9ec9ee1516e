import numpy as np
import pytest

from sensible_signatures import DimensionMismatch, InvalidInput
from sensible_signatures.inputs import classify_determinacy, validate_inputs


def test_validate_returns_float_copies():
    A = np.eye(3, dtype=int)
    b = [1, 2, 3]
    A_out, b_out = validate_inputs(A, b)

    assert A_out.dtype == float and b_out.dtype == float
    assert A_out.shape == (3, 3) and b_out.shape == (3,)
    A_out[0, 0] = 9.0
    assert A[0, 0] == 1


def test_row_count_mismatch_raises_dimension_mismatch():
    with pytest.raises(DimensionMismatch) as exc:
        validate_inputs(np.ones((6, 4)) / 6.0, np.ones(5))
    assert exc.value.context["profile_length"] == 5
    assert isinstance(exc.value, ValueError)


def test_mismatch_is_reported_before_value_checks():
    with pytest.raises(DimensionMismatch):
        validate_inputs(np.ones((3, 2)), [-1.0, np.nan])

    A = np.ones((3, 2))
    A[0, 1] = np.inf
    with pytest.raises(DimensionMismatch):
        validate_inputs(A, [1.0, 2.0])


@pytest.mark.parametrize(
    "b",
    [
        [1.0, -0.5, 2.0],
        [1.0, np.nan, 2.0],
        [1.0, np.inf, 2.0],
    ],
)
def test_bad_profile_values_raise_invalid_input(b):
    with pytest.raises(InvalidInput):
        validate_inputs(np.eye(3), b)


def test_non_finite_matrix_raises_invalid_input():
    A = np.eye(3)
    A[1, 2] = np.nan
    with pytest.raises(InvalidInput, match="non-finite"):
        validate_inputs(A, [1.0, 2.0, 3.0])


def test_shapes_are_not_broadcast():
    with pytest.raises(InvalidInput):
        validate_inputs(np.eye(3), np.ones((3, 1)))
    with pytest.raises(InvalidInput):
        validate_inputs(np.ones(3), np.ones(3))
    with pytest.raises(InvalidInput):
        validate_inputs(np.ones((0, 2)), np.ones(0))


def test_non_numeric_input_raises_invalid_input():
    with pytest.raises(InvalidInput, match="not numeric"):
        validate_inputs([["a", "b"]], [1.0])


def test_classify_determinacy():
    assert classify_determinacy(np.ones((6, 4))) == "overdetermined"
    assert classify_determinacy(np.ones((4, 6))) == "underdetermined"
    assert classify_determinacy(np.eye(5)) == "exactly-determined"
    # square but rank deficient
    assert classify_determinacy(np.ones((3, 3)) / 3.0) == "underdetermined"
