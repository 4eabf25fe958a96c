from __future__ import annotations

from enum import Enum
from logging import getLogger
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from ndspace.core.array import DenseArray, NdArrayMixin
from ndspace.core.buffer import DataBuffer, as_flat_output
from ndspace.core.common import as_numpy, is_nan_value, nondefault_mask, parse_coords
from ndspace.core.config import config, default_dtype, default_sparse_value, parse_sparse_lookup
from ndspace.core.cursor import SparseTarget
from ndspace.core.dimensions import DimensionalSpace
from ndspace.core.hydrator import Hydrator
from ndspace.core.indexing import (
    Index,
    Selection,
    is_scalar_selection,
    normalize_integer_selection,
    normalize_selection,
    replace_ellipsis,
)
from ndspace.core.initializer import Initializer
from ndspace.core.window import SparseWindow
from ndspace.errors import BoundsCheckError, InvalidArgumentError, ReadOnlyError

if TYPE_CHECKING:
    from ndspace.core.shape import Shape

logger = getLogger(__name__)


class SparseState(Enum):
    """Lifecycle of a sparse array: populated exactly once, read-only afterwards."""

    EMPTY = "empty"
    POPULATING = "populating"
    POPULATED = "populated"


def same_default(a: Any, b: Any) -> bool:
    if is_nan_value(a) or is_nan_value(b):
        return is_nan_value(a) and is_nan_value(b)
    return bool(a == b)


class SparseArray(NdArrayMixin):
    """An array in coordinate-list (COO) format.

    Only the values that differ from ``default_value`` are stored, as ``indices`` (one row of
    coordinates per entry) and ``values`` (the entry values, in the same order). Every other
    coordinate of the array reads as ``default_value``.

    A sparse array is created empty, then populated exactly once: from dense data, from
    explicit indices and values, or sequentially with :meth:`hydrate` or :meth:`initialize`.
    It is read-only once populated.

    Entries are sorted in row-major order when built from dense data or sequentially, and
    after :meth:`sort_indices_and_values`. Entries given explicitly may be in any order.
    Duplicate coordinates are not supported: which of their values is read is undefined.

    Parameters
    ----------
    dimensions : DimensionalSpace
        Dimensional space of the array.
    dtype : str or numpy.dtype, optional
        Data type of the values, ``array.dtype`` from the configuration by default.
    default_value : optional
        Value of the coordinates without an entry, ``sparse.default_value`` from the
        configuration by default.

    Examples
    --------
    >>> from ndspace import SparseArray
    >>> arr = SparseArray.of([(0, 0), (1, 2)], [1, 2], (3, 4))
    >>> arr.to_numpy().tolist()
    [[1, 0, 0, 0], [0, 0, 2, 0], [0, 0, 0, 0]]
    >>> arr[1, 2], arr[2, 3]
    (2, 0)
    """

    def __init__(
        self,
        dimensions: DimensionalSpace,
        dtype: npt.DTypeLike | None = None,
        default_value: Any | None = None,
    ) -> None:
        self._dimensions = dimensions
        self._dtype = default_dtype() if dtype is None else np.dtype(dtype)
        self._default_value = default_sparse_value() if default_value is None else default_value
        self._state = SparseState.EMPTY
        self._set_entries(
            np.empty((0, dimensions.num_dimensions), dtype=np.int64),
            np.empty(0, dtype=self._dtype),
            is_sorted=True,
        )

    @classmethod
    def create(
        cls,
        shape: Shape | tuple[int, ...],
        dtype: npt.DTypeLike | None = None,
        default_value: Any | None = None,
    ) -> SparseArray:
        """An empty sparse array, ready to be populated."""
        return cls(DimensionalSpace.create(shape), dtype, default_value)

    @classmethod
    def of(
        cls,
        indices: npt.ArrayLike,
        values: npt.ArrayLike,
        shape: Shape | tuple[int, ...],
        default_value: Any | None = None,
        dtype: npt.DTypeLike | None = None,
    ) -> SparseArray:
        """A sparse array made of explicit entries.

        Parameters
        ----------
        indices : array-like of int
            Coordinates of the entries, of shape ``(N, rank)``.
        values : array-like
            Values of the entries, of length ``N``.
        shape : Shape or tuple of int
            Shape of the array.
        default_value : optional
            Value of the coordinates without an entry.
        dtype : str or numpy.dtype, optional
            Data type of the values, inferred from ``values`` by default.
        """
        dimensions = DimensionalSpace.create(shape)
        rank = dimensions.num_dimensions
        values_arr = np.asarray(values, dtype=dtype)
        indices_arr = np.asarray(indices, dtype=np.int64)
        if indices_arr.size == 0:
            indices_arr = indices_arr.reshape(0, rank)
        if indices_arr.ndim != 2 or indices_arr.shape[1] != rank:
            raise InvalidArgumentError(
                f"indices must be of shape (N, {rank}), got shape {indices_arr.shape}"
            )
        if values_arr.ndim != 1 or values_arr.shape[0] != indices_arr.shape[0]:
            raise InvalidArgumentError(
                f"values must be a vector of {indices_arr.shape[0]} elements, "
                f"got shape {values_arr.shape}"
            )
        sizes = np.asarray(dimensions.shape.dims, dtype=np.int64)
        invalid = (indices_arr < 0) | (indices_arr >= sizes)
        if invalid.any():
            row, axis = np.argwhere(invalid)[0]
            raise BoundsCheckError(int(indices_arr[row, axis]), int(sizes[axis]))
        arr = cls(dimensions, values_arr.dtype, default_value)
        arr._set_entries(indices_arr, values_arr)
        arr._state = SparseState.POPULATED
        return arr

    @classmethod
    def from_dense(
        cls,
        data: Any,
        shape: Shape | tuple[int, ...] | None = None,
        default_value: Any | None = None,
        dtype: npt.DTypeLike | None = None,
    ) -> SparseArray:
        """Convert dense data to a sparse array, keeping the values other than ``default_value``.

        ``data`` is a :class:`DataBuffer` (then ``shape`` is required), an ndspace array or
        any NumPy array-like. The entries of the result are sorted.
        """
        if isinstance(data, DataBuffer):
            if shape is None:
                raise InvalidArgumentError("shape is required to convert a DataBuffer")
            dimensions = DimensionalSpace.create(shape)
            dense = data.as_numpy_array()[: dimensions.size]
        else:
            dense = as_numpy(data)
            dimensions = DimensionalSpace.create(dense.shape if shape is None else shape)
        arr = cls(dimensions, dense.dtype if dtype is None else dtype, default_value)
        arr.write(dense)
        return arr

    @property
    def dtype(self) -> np.dtype[Any]:  # type: ignore[override]
        return self._dtype

    @property
    def default_value(self) -> Any:
        return self._default_value

    @property
    def state(self) -> SparseState:
        return self._state

    @property
    def read_only(self) -> bool:
        return self._state is not SparseState.EMPTY

    @property
    def indices(self) -> npt.NDArray[np.int64]:
        """Coordinates of the entries, one row per entry (read-only)."""
        return self._indices

    @property
    def values(self) -> npt.NDArray[Any]:
        """Values of the entries, in the order of :attr:`indices` (read-only)."""
        return self._values

    @property
    def positions(self) -> npt.NDArray[np.int64]:
        """Linear positions of the entries in this array (read-only)."""
        return self._positions

    @property
    def nnz(self) -> int:
        return int(self._values.shape[0])

    @property
    def is_sorted(self) -> bool:
        return self._sorted

    def _set_entries(
        self,
        indices: npt.NDArray[np.int64],
        values: npt.NDArray[Any],
        is_sorted: bool | None = None,
    ) -> None:
        indices = np.array(indices, dtype=np.int64)
        values = np.array(values, dtype=self._dtype)
        strides = np.asarray(self._dimensions.strides, dtype=np.int64)
        positions = (indices * strides).sum(axis=1, dtype=np.int64)
        if is_sorted is None:
            is_sorted = bool(np.all(positions[1:] >= positions[:-1]))
        for a in (indices, values, positions):
            a.flags.writeable = False
        self._indices = indices
        self._values = values
        self._positions = positions
        self._sorted = is_sorted

    def _check_empty(self) -> None:
        if self._state is not SparseState.EMPTY:
            raise ReadOnlyError()

    def _begin_population(self) -> None:
        self._check_empty()
        self._state = SparseState.POPULATING

    def _complete_population(
        self, indices: npt.NDArray[np.int64], values: npt.NDArray[Any]
    ) -> None:
        self._set_entries(indices, values, is_sorted=True)
        self._state = SparseState.POPULATED
        logger.debug("populated sparse array of shape %s with %d entries", self.shape, self.nnz)

    def _abort_population(self) -> None:
        self._state = SparseState.EMPTY
        logger.debug("population of sparse array of shape %s aborted", self.shape)

    def lookup(self, position: int) -> Any:
        """Value at a linear position of this array."""
        mode = parse_sparse_lookup(config.get("sparse.lookup"))
        if mode == "binary" and not self._sorted:
            raise InvalidArgumentError(
                "binary lookup requires sorted entries, call sort_indices_and_values() first"
            )
        if mode != "linear" and self._sorted:
            k = int(np.searchsorted(self._positions, position))
            if k < self._positions.shape[0] and self._positions[k] == position:
                return self._values.item(k)
            return self._default_value
        (matches,) = np.nonzero(self._positions == position)
        if matches.shape[0]:
            return self._values.item(matches[0])
        return self._default_value

    def get(self, *coords: int) -> SparseWindow:
        """The element at ``coords`` (a prefix of the coordinates), as a window."""
        return SparseWindow(self, self._dimensions.element_space(parse_coords(coords)))

    def get_object(self, *coords: int) -> Any:
        """The value at ``coords``, ``default_value`` if there is no entry there."""
        return self.lookup(self._dimensions.position_of(parse_coords(coords)))

    def slice(self, *indices: Index) -> SparseWindow:
        """Read-only window over the values selected by the index expressions."""
        return SparseWindow(self, self._dimensions.map_to(*indices))

    def __getitem__(self, selection: Selection) -> Any:
        shape = self.shape.dims
        items = replace_ellipsis(selection, shape)
        if is_scalar_selection(items, shape):
            coords = [normalize_integer_selection(i, n) for i, n in zip(items, shape, strict=True)]
            return self.get_object(*coords)
        return self.slice(*normalize_selection(items, shape))

    def __setitem__(self, selection: Selection, value: Any) -> None:
        raise ReadOnlyError()

    def set(self, src: Any, *coords: int) -> SparseArray:
        raise ReadOnlyError()

    def set_object(self, value: Any, *coords: int) -> SparseArray:
        raise ReadOnlyError()

    def write(self, src: DataBuffer | npt.ArrayLike) -> SparseArray:
        """Populate this empty array from dense values in row-major order.

        Raises
        ------
        ReadOnlyError
            If the array is already populated.
        """
        self._check_empty()
        data = src.as_numpy_array() if isinstance(src, DataBuffer) else np.ravel(as_numpy(src))
        if data.shape[0] < self.size:
            raise InvalidArgumentError(
                f"source of size {data.shape[0]} is too small for an array of size {self.size}"
            )
        flat = data[: self.size].astype(self._dtype, copy=False)
        (positions,) = np.nonzero(nondefault_mask(flat, self._default_value))
        sizes = np.asarray(self.shape.dims, dtype=np.int64)
        strides = np.asarray(self._dimensions.strides, dtype=np.int64)
        indices = (positions[:, np.newaxis] // np.maximum(strides, 1)) % np.maximum(sizes, 1)
        self._set_entries(indices, flat[positions], is_sorted=True)
        self._state = SparseState.POPULATED
        logger.debug(
            "converted dense values of shape %s to %d sparse entries", self.shape, self.nnz
        )
        return self

    def read(self, dst: DataBuffer | npt.NDArray[Any]) -> SparseArray:
        """Expand this array, in row-major order, to ``dst``."""
        out = as_flat_output(dst)
        if out.shape[0] < self.size:
            raise InvalidArgumentError(
                f"destination of size {out.shape[0]} is too small for an array of size {self.size}"
            )
        out[: self.size] = self._default_value
        out[self._positions] = self._values
        return self

    def to_numpy(self) -> npt.NDArray[Any]:
        out = np.empty(self.size, dtype=self._dtype)
        self.read(out)
        return out.reshape(self.shape.dims)

    def to_dense(self) -> DenseArray:
        buffer = DataBuffer(self.to_numpy().reshape(-1))
        return DenseArray(buffer, DimensionalSpace.create(self.shape))

    def copy_to(self, dst: Any) -> SparseArray:
        """Copy this array to ``dst``: entries to an empty sparse array, values otherwise."""
        if tuple(dst.shape) != self.shape.dims:
            raise InvalidArgumentError(
                f"Cannot copy an array of shape {self.shape} to an array of shape {dst.shape}"
            )
        if isinstance(dst, np.ndarray):
            np.copyto(dst, self.to_numpy())
        elif isinstance(dst, SparseArray):
            dst.copy_from(self)
        else:
            dst.write(self.to_numpy())
        return self

    def copy_from(self, src: Any) -> SparseArray:
        """Populate this empty array from ``src``, an array of the same shape."""
        self._check_empty()
        if isinstance(src, SparseArray) and same_default(src.default_value, self._default_value):
            if src.shape != self.shape:
                raise InvalidArgumentError(
                    f"Cannot copy an array of shape {src.shape} to an array of shape {self.shape}"
                )
            self._set_entries(src.indices, src.values, src.is_sorted)
            self._state = SparseState.POPULATED
            return self
        data = as_numpy(src)
        if data.shape != self.shape.dims:
            raise InvalidArgumentError(
                f"Cannot copy an array of shape {data.shape} to an array of shape {self.shape}"
            )
        return self.write(data)

    def sort_indices_and_values(self) -> SparseArray:
        """Sort the entries in row-major order of their coordinates.

        The sort is stable and moves each value along with its coordinates. Sorting a
        sorted array does nothing.
        """
        if self._sorted:
            return self
        order = np.argsort(self._positions, kind="stable")
        self._set_entries(self._indices[order], self._values[order], is_sorted=True)
        logger.debug("sorted %d entries of sparse array of shape %s", self.nnz, self.shape)
        return self

    def hydrate(self) -> Hydrator:
        """Start the sequential population of this empty array.

        Use the result as a context manager: entries are committed when the block ends and
        discarded if it raises.
        """
        return Hydrator(SparseTarget(self))

    def initialize(self) -> Initializer:
        return Initializer(SparseTarget(self))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SparseArray):
            return (
                self.shape == other.shape
                and same_default(self._default_value, other._default_value)
                and np.array_equal(self._indices, other._indices)
                and np.array_equal(self._values, other._values)
            )
        return super().__eq__(other)

    __hash__ = None  # type: ignore[assignment]
