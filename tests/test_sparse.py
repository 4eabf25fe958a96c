from __future__ import annotations

import logging

import numpy as np
import pytest
from numpy.testing import assert_array_equal

import ndspace
from ndspace import DataBuffer, Indices, Shape, SparseArray, SparseState, SparseWindow, config
from ndspace.abc.array import Readable, Sliceable, Sparse
from ndspace.errors import (
    BoundsCheckError,
    IllegalRankError,
    InvalidArgumentError,
    ReadOnlyError,
)


def test_of_to_dense(sparse_matrix: SparseArray) -> None:
    assert sparse_matrix.state is SparseState.POPULATED
    assert sparse_matrix.is_sorted
    assert sparse_matrix.nnz == 2
    assert sparse_matrix.default_value == 0
    assert_array_equal(
        sparse_matrix.to_dense().to_numpy(), [[1, 0, 0, 0], [0, 0, 2, 0], [0, 0, 0, 0]]
    )


def test_capabilities(sparse_matrix: SparseArray) -> None:
    assert isinstance(sparse_matrix, Readable)
    assert isinstance(sparse_matrix, Sliceable)
    assert isinstance(sparse_matrix, Sparse)


def test_of_validation() -> None:
    with pytest.raises(InvalidArgumentError):
        SparseArray.of([(0, 0, 0)], [1], (3, 4))
    with pytest.raises(InvalidArgumentError):
        SparseArray.of([(0, 0), (1, 1)], [1], (3, 4))
    with pytest.raises(BoundsCheckError):
        SparseArray.of([(0, 0), (3, 1)], [1, 2], (3, 4))
    with pytest.raises(BoundsCheckError):
        SparseArray.of([(0, -1)], [1], (3, 4))


def test_of_without_entries() -> None:
    arr = SparseArray.of([], [], (2, 2), dtype="int32")
    assert arr.nnz == 0
    assert arr.indices.shape == (0, 2)
    assert_array_equal(arr.to_numpy(), np.zeros((2, 2)))


def test_entries_are_read_only(sparse_matrix: SparseArray) -> None:
    with pytest.raises(ValueError):
        sparse_matrix.indices[0, 0] = 2
    with pytest.raises(ValueError):
        sparse_matrix.values[0] = 2


def test_from_dense() -> None:
    data = np.array([[0, 3, 0], [4, 0, 0]], dtype=np.int16)
    arr = SparseArray.from_dense(data)
    assert arr.shape == Shape.of(2, 3)
    assert arr.dtype == np.dtype("int16")
    assert arr.is_sorted
    assert_array_equal(arr.indices, [[0, 1], [1, 0]])
    assert_array_equal(arr.values, [3, 4])
    assert_array_equal(arr.to_numpy(), data)


def test_from_dense_buffer_and_default_value() -> None:
    buf = DataBuffer.wrap(np.array([7.0, 7.0, 1.0, 7.0, 2.0, 7.0]))
    arr = SparseArray.from_dense(buf, Shape.of(3, 2), default_value=7.0)
    assert_array_equal(arr.indices, [[1, 0], [2, 0]])
    assert_array_equal(arr.values, [1.0, 2.0])
    assert arr.get_object(0, 0) == 7.0
    with pytest.raises(InvalidArgumentError):
        SparseArray.from_dense(buf)


def test_from_dense_nan_default() -> None:
    data = np.array([np.nan, 1.0, np.nan, 0.0])
    arr = SparseArray.from_dense(data, default_value=np.nan)
    assert_array_equal(arr.indices, [[1], [3]])
    assert_array_equal(arr.values, [1.0, 0.0])
    assert np.isnan(arr.get_object(0))
    assert_array_equal(arr.to_numpy(), data)


def test_from_dense_array() -> None:
    dense = ndspace.array(np.eye(3))
    arr = ndspace.sparse_from_dense(dense.slice(Indices.range(1, 3)))
    assert arr.shape == Shape.of(2, 3)
    assert_array_equal(arr.indices, [[0, 1], [1, 2]])


def test_get_object(sparse_matrix: SparseArray) -> None:
    assert sparse_matrix.get_object(1, 2) == 2
    assert sparse_matrix.get_object(2, 2) == 0
    assert sparse_matrix[0, 0] == 1
    assert sparse_matrix[-2, -2] == 2
    with pytest.raises(IllegalRankError):
        sparse_matrix.get_object(1)
    with pytest.raises(BoundsCheckError):
        sparse_matrix.get_object(0, 4)


@pytest.mark.parametrize("lookup", ["auto", "binary", "linear"])
def test_lookup_modes(lookup: str) -> None:
    arr = SparseArray.of([(0, 0), (0, 1), (2, 3)], [1, 2, 3], (3, 5))
    with config.set({"sparse.lookup": lookup}):
        assert [arr.get_object(0, 1), arr.get_object(2, 3), arr.get_object(1, 1)] == [2, 3, 0]


def test_unsorted_lookup() -> None:
    arr = SparseArray.of([(2, 3), (0, 0)], [5, 1], (3, 5))
    assert not arr.is_sorted
    assert arr.get_object(2, 3) == 5
    with config.set({"sparse.lookup": "linear"}):
        assert arr.get_object(0, 0) == 1
    with config.set({"sparse.lookup": "binary"}):
        with pytest.raises(InvalidArgumentError):
            arr.get_object(0, 0)


def test_sort_indices_and_values() -> None:
    arr = SparseArray.of([(0, 0), (1, 2), (0, 1), (2, 3), (1, 4)], [1, 3, 2, 5, 4], (3, 5))
    assert not arr.is_sorted
    dense = arr.to_numpy()
    assert arr.sort_indices_and_values() is arr
    assert arr.is_sorted
    assert_array_equal(arr.indices, [[0, 0], [0, 1], [1, 2], [1, 4], [2, 3]])
    assert_array_equal(arr.values, [1, 2, 3, 4, 5])
    assert_array_equal(arr.to_numpy(), dense)
    # sorting again is a no-op
    indices, values = arr.indices, arr.values
    arr.sort_indices_and_values()
    assert arr.indices is indices
    assert arr.values is values


def test_sort_logs(caplog: pytest.LogCaptureFixture) -> None:
    arr = SparseArray.of([(1,), (0,)], [1, 2], (2,))
    with caplog.at_level(logging.DEBUG, logger="ndspace.core.sparse"):
        arr.sort_indices_and_values()
    assert "sorted 2 entries" in caplog.text


def test_read_only(sparse_matrix: SparseArray) -> None:
    assert sparse_matrix.read_only
    with pytest.raises(ReadOnlyError):
        sparse_matrix.set_object(1, 0, 0)
    with pytest.raises(ReadOnlyError):
        sparse_matrix.set(np.zeros(4), 0)
    with pytest.raises(ReadOnlyError):
        sparse_matrix.write(np.zeros(12))
    with pytest.raises(ReadOnlyError):
        sparse_matrix.copy_from(np.zeros((3, 4)))
    with pytest.raises(ReadOnlyError):
        sparse_matrix[0, 0] = 3
    assert_array_equal(sparse_matrix.values, [1, 2])


def test_set_always_read_only() -> None:
    arr = SparseArray.create(Shape.of(2, 2), dtype="int32")
    assert arr.state is SparseState.EMPTY
    assert not arr.read_only
    with pytest.raises(ReadOnlyError):
        arr.set_object(1, 0, 0)


def test_write_populates_empty_array() -> None:
    arr = SparseArray.create(Shape.of(2, 2), dtype="int32")
    arr.write(DataBuffer.wrap(np.array([0, 5, 0, 6])))
    assert arr.state is SparseState.POPULATED
    assert_array_equal(arr.indices, [[0, 1], [1, 1]])
    assert "read-only" in repr(arr)
    with pytest.raises(ReadOnlyError):
        arr.write(np.zeros(4))


def test_read(sparse_matrix: SparseArray) -> None:
    buf = DataBuffer.allocate(12, dtype="int64", fill_value=-1)
    sparse_matrix.read(buf)
    assert_array_equal(buf.as_numpy_array(), [1, 0, 0, 0, 0, 0, 2, 0, 0, 0, 0, 0])
    with pytest.raises(InvalidArgumentError):
        sparse_matrix.read(np.zeros(4))


def test_copy_to(sparse_matrix: SparseArray) -> None:
    dense = ndspace.zeros((3, 4), dtype="int64")
    sparse_matrix.copy_to(dense)
    assert dense == sparse_matrix
    other = SparseArray.create(Shape.of(3, 4), dtype="int64")
    sparse_matrix.copy_to(other)
    assert other == sparse_matrix
    assert other.is_sorted
    with pytest.raises(ReadOnlyError):
        sparse_matrix.copy_to(other)
    with pytest.raises(InvalidArgumentError):
        sparse_matrix.copy_to(ndspace.zeros((4, 3)))


def test_copy_from_with_other_default(sparse_matrix: SparseArray) -> None:
    other = SparseArray.create(Shape.of(3, 4), dtype="int64", default_value=1)
    other.copy_from(sparse_matrix)
    assert_array_equal(other.to_numpy(), sparse_matrix.to_numpy())
    assert other.nnz == 11


def test_get_returns_window(sparse_matrix: SparseArray) -> None:
    row = sparse_matrix.get(1)
    assert isinstance(row, SparseWindow)
    assert row.shape == Shape.of(4)
    assert_array_equal(row.to_numpy(), [0, 0, 2, 0])
    assert isinstance(sparse_matrix[1:], SparseWindow)


def test_default_value_from_config() -> None:
    with config.set({"sparse.default_value": -1}):
        arr = SparseArray.create(Shape.of(2))
    assert arr.default_value == -1
    assert arr.dtype == np.dtype("float64")


def test_equality(sparse_matrix: SparseArray) -> None:
    same = SparseArray.of([(0, 0), (1, 2)], [1, 2], (3, 4))
    assert sparse_matrix == same
    assert sparse_matrix != SparseArray.of([(0, 0), (1, 2)], [1, 2], (3, 4), default_value=5)
    assert sparse_matrix == sparse_matrix.to_dense()
    assert sparse_matrix == sparse_matrix.to_numpy()


def test_string_values() -> None:
    arr = SparseArray.from_dense(np.array(["", "cat", "", "dog"], dtype=object), default_value="")
    assert_array_equal(arr.indices, [[1], [3]])
    assert arr.get_object(3) == "dog"
    assert arr.get_object(0) == ""


def test_elements_and_scalars(sparse_matrix: SparseArray) -> None:
    rows = [row.to_numpy().tolist() for row in sparse_matrix.elements(0)]
    assert rows == [[1, 0, 0, 0], [0, 0, 2, 0], [0, 0, 0, 0]]
    assert sum(s.get_object() for s in sparse_matrix.scalars()) == 3
