from __future__ import annotations

import logging

import numpy as np
import pytest
from numpy.testing import assert_array_equal

import ndspace
from ndspace import Hydrator, Shape, SparseArray, SparseState
from ndspace.errors import (
    BackwardMoveError,
    BoundsCheckError,
    IllegalRankError,
    InvalidArgumentError,
    ReadOnlyError,
)


def test_by_scalars() -> None:
    arr = ndspace.zeros((3, 2), dtype="int64")
    with arr.hydrate() as hydrator:
        assert isinstance(hydrator, Hydrator)
        hydrator.by_scalars().put(10).put(20).put(30).at(2, 1).put(40)
    assert_array_equal(arr.to_numpy(), [[10, 20], [30, 0], [0, 40]])


def test_by_vectors() -> None:
    arr = ndspace.zeros((3, 2), dtype="int64")
    with arr.hydrate() as hydrator:
        hydrator.by_vectors().put(10, 20).put(30).at(2).put(40, 50)
    assert_array_equal(arr.to_numpy(), [[10, 20], [30, 0], [40, 50]])


def test_by_vectors_from_sequence() -> None:
    arr = ndspace.zeros((2, 3), dtype="int64")
    with arr.hydrate() as hydrator:
        hydrator.by_vectors(1).put([1, 2, 3])
    assert_array_equal(arr.to_numpy(), [[0, 0, 0], [1, 2, 3]])


def test_by_elements() -> None:
    arr = ndspace.zeros((2, 2, 3), dtype="int64")
    with arr.hydrate() as hydrator:
        hydrator.by_elements().put(np.ones((2, 3)))
        hydrator.by_elements(1, 1).put([4, 5, 6])
    assert_array_equal(arr.to_numpy(), [[[1, 1, 1], [1, 1, 1]], [[0, 0, 0], [4, 5, 6]]])


def test_by_elements_accepts_arrays() -> None:
    arr = ndspace.zeros((2, 2), dtype="int64")
    row = ndspace.array([[7, 8]])
    with arr.hydrate() as hydrator:
        hydrator.by_elements(1).put(row.get(0))
    assert_array_equal(arr.to_numpy(), [[0, 0], [7, 8]])


def test_cursor_switch_resumes_after_position() -> None:
    arr = ndspace.zeros((3, 3), dtype="int64")
    with arr.hydrate() as hydrator:
        hydrator.by_scalars().put(1).put(2)
        assert hydrator.position == (0, 2)
        vectors = hydrator.by_vectors()
        assert vectors.coords == (1,)
        vectors.put(7, 8, 9)
        assert hydrator.by_scalars().coords == (2, 0)
    assert_array_equal(arr.to_numpy(), [[1, 2, 0], [7, 8, 9], [0, 0, 0]])


def test_cursor_switch_at_unit_boundary() -> None:
    arr = ndspace.zeros((2, 2), dtype="int64")
    with arr.hydrate() as hydrator:
        hydrator.by_vectors().put(1, 2)
        assert hydrator.by_scalars().coords == (1, 0)


def test_stale_cursor() -> None:
    arr = ndspace.zeros((2, 2))
    with arr.hydrate() as hydrator:
        scalars = hydrator.by_scalars()
        hydrator.by_vectors()
        with pytest.raises(InvalidArgumentError, match="no longer active"):
            scalars.put(1.0)
        with pytest.raises(InvalidArgumentError):
            scalars.at(1, 1)


def test_backward_moves() -> None:
    arr = ndspace.zeros((3, 3))
    with arr.hydrate() as hydrator:
        cursor = hydrator.by_scalars().put(1.0).put(2.0)
        with pytest.raises(BackwardMoveError):
            cursor.at(0, 1)
        cursor.at(0, 2)
        cursor.at(1, 0)
        with pytest.raises(BackwardMoveError):
            hydrator.by_vectors(0)
        with pytest.raises(BackwardMoveError):
            hydrator.by_elements(0, 2)


def test_at_errors() -> None:
    arr = ndspace.zeros((3, 3))
    with arr.hydrate() as hydrator:
        cursor = hydrator.by_scalars()
        with pytest.raises(IllegalRankError):
            cursor.at(1)
        with pytest.raises(BoundsCheckError):
            cursor.at(3, 0)
        with pytest.raises(InvalidArgumentError):
            hydrator.by_elements(0, 0, 0)


def test_put_past_the_end() -> None:
    arr = ndspace.zeros((2,), dtype="int64")
    with arr.hydrate() as hydrator:
        cursor = hydrator.by_scalars().put(1).put(2)
        assert cursor.coords is None
        assert hydrator.position is None
        with pytest.raises(BoundsCheckError):
            cursor.put(3)
        with pytest.raises(BoundsCheckError):
            hydrator.by_scalars().put(3)
        with pytest.raises(BackwardMoveError):
            hydrator.by_scalars(1)
    assert_array_equal(arr.to_numpy(), [1, 2])


def test_invalid_values() -> None:
    arr = ndspace.zeros((2, 2))
    with arr.hydrate() as hydrator:
        with pytest.raises(InvalidArgumentError):
            hydrator.by_scalars().put(None)
        with pytest.raises(InvalidArgumentError):
            hydrator.by_scalars().put([1.0, 2.0])
        with pytest.raises(InvalidArgumentError):
            hydrator.by_vectors().put()
        with pytest.raises(InvalidArgumentError):
            hydrator.by_vectors().put(1.0, 2.0, 3.0)
        with pytest.raises(InvalidArgumentError):
            hydrator.by_elements().put([1.0])
        with pytest.raises(InvalidArgumentError):
            hydrator.by_elements().put(None)
    assert_array_equal(arr.to_numpy(), np.zeros((2, 2)))


def test_closed_hydrator() -> None:
    arr = ndspace.zeros((2, 2))
    hydrator = arr.hydrate()
    cursor = hydrator.by_scalars()
    hydrator.close()
    with pytest.raises(InvalidArgumentError, match="closed"):
        cursor.put(1.0)
    with pytest.raises(InvalidArgumentError):
        hydrator.by_scalars()
    # closing twice is harmless
    hydrator.close()


def test_scalar_array() -> None:
    arr = ndspace.zeros(())
    with arr.hydrate() as hydrator:
        hydrator.by_scalars().put(5.0)
        with pytest.raises(InvalidArgumentError):
            hydrator.by_vectors()
    assert arr.get_object() == 5.0


def test_dense_abort_keeps_values() -> None:
    arr = ndspace.zeros((2,), dtype="int64")
    with pytest.raises(RuntimeError):
        with arr.hydrate() as hydrator:
            hydrator.by_scalars().put(3)
            raise RuntimeError("stop")
    assert_array_equal(arr.to_numpy(), [3, 0])


def test_hydrate_view() -> None:
    arr = ndspace.zeros((3, 3), dtype="int64")
    with arr.get(1).hydrate() as hydrator:
        hydrator.by_scalars(1).put(5).put(6)
    assert_array_equal(arr.to_numpy(), [[0, 0, 0], [0, 5, 6], [0, 0, 0]])


def test_logging(caplog: pytest.LogCaptureFixture) -> None:
    arr = ndspace.zeros((3, 2))
    with caplog.at_level(logging.DEBUG, logger="ndspace.core.cursor"):
        with arr.hydrate() as hydrator:
            hydrator.by_scalars().at(1, 1)
    assert "cursor moved to [1, 1]" in caplog.text
    assert "hydration of (3, 2) completed" in caplog.text


def test_sparse_by_scalars() -> None:
    arr = SparseArray.create(Shape.of(3, 2), dtype="int64")
    with arr.hydrate() as hydrator:
        assert arr.state is SparseState.POPULATING
        hydrator.by_scalars().put(10).put(20).put(30).at(2, 1).put(40)
    assert arr.state is SparseState.POPULATED
    assert arr.is_sorted
    assert_array_equal(arr.indices, [[0, 0], [0, 1], [1, 0], [2, 1]])
    assert_array_equal(arr.values, [10, 20, 30, 40])


def test_sparse_skips_default_values() -> None:
    arr = SparseArray.create(Shape.of(3, 2), dtype="int64")
    with arr.hydrate() as hydrator:
        hydrator.by_vectors().put(10, 0).put(0, 20)
        hydrator.by_scalars().put(0).put(5)
    assert_array_equal(arr.indices, [[0, 0], [1, 1], [2, 1]])
    assert_array_equal(arr.values, [10, 20, 5])


def test_sparse_by_elements() -> None:
    arr = SparseArray.create(Shape.of(2, 2, 2), dtype="float64", default_value=-1.0)
    with arr.hydrate() as hydrator:
        hydrator.by_elements(1).put(np.array([[-1.0, 2.0], [3.0, -1.0]]))
    assert_array_equal(arr.indices, [[1, 0, 1], [1, 1, 0]])
    assert_array_equal(arr.values, [2.0, 3.0])
    assert arr.get_object(0, 0, 0) == -1.0


def test_sparse_nan_default() -> None:
    arr = SparseArray.create(Shape.of(3), default_value=np.nan)
    with arr.hydrate() as hydrator:
        hydrator.by_scalars().put(np.nan).put(1.0).put(np.nan)
    assert_array_equal(arr.indices, [[1]])


def test_sparse_abort() -> None:
    arr = SparseArray.create(Shape.of(2, 2), dtype="int64")
    with pytest.raises(RuntimeError):
        with arr.hydrate() as hydrator:
            hydrator.by_scalars().put(1).put(2)
            raise RuntimeError("stop")
    assert arr.state is SparseState.EMPTY
    assert arr.nnz == 0
    with arr.hydrate() as hydrator:
        hydrator.by_scalars(1, 1).put(4)
    assert_array_equal(arr.to_numpy(), [[0, 0], [0, 4]])


def test_sparse_populated_once() -> None:
    arr = SparseArray.create(Shape.of(2), dtype="int64")
    with arr.hydrate():
        with pytest.raises(ReadOnlyError):
            arr.hydrate()
    with pytest.raises(ReadOnlyError):
        arr.hydrate()
    with pytest.raises(ReadOnlyError):
        arr.initialize()


def test_sparse_without_puts() -> None:
    arr = SparseArray.create(Shape.of(2, 3))
    with arr.hydrate():
        pass
    assert arr.state is SparseState.POPULATED
    assert arr.nnz == 0
    assert arr.indices.shape == (0, 2)


@pytest.fixture(params=["dense", "sparse"])
def int_matrix(request: pytest.FixtureRequest) -> ndspace.DenseArray | SparseArray:
    if request.param == "dense":
        return ndspace.zeros((2, 2), dtype="int64")
    return SparseArray.create(Shape.of(2, 2), dtype="int64")


@pytest.mark.parametrize(
    ("unit", "value"),
    [
        ("scalars", "abc"),
        ("scalars", 2**70),
        ("vectors", ["a", "b"]),
        ("vectors", [2**70, 1]),
        ("elements", np.array(["a", "b"])),
        ("elements", [0, 2**70]),
    ],
)
def test_incompatible_values(
    int_matrix: ndspace.DenseArray | SparseArray, unit: str, value: object
) -> None:
    with int_matrix.hydrate() as hydrator:
        cursor = getattr(hydrator, f"by_{unit}")()
        coords = cursor.coords
        with pytest.raises(InvalidArgumentError, match="Cannot convert"):
            cursor.put(value)
        assert cursor.coords == coords
    assert_array_equal(int_matrix.to_numpy(), np.zeros((2, 2)))


def test_values_are_cast_to_dtype(int_matrix: ndspace.DenseArray | SparseArray) -> None:
    with int_matrix.hydrate() as hydrator:
        hydrator.by_scalars().put(1.0)
        hydrator.by_vectors().put("2", "3")
    assert int_matrix.dtype == np.dtype("int64")
    assert_array_equal(int_matrix.to_numpy(), [[1, 0], [2, 3]])


def test_hydration_cursors_move_with_at() -> None:
    arr = ndspace.zeros((2, 2))
    with arr.hydrate() as hydrator:
        for cursor in (hydrator.by_scalars(), hydrator.by_vectors(), hydrator.by_elements()):
            assert hasattr(cursor, "at")
            assert not hasattr(cursor, "skip_to")
