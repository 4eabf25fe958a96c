from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from ndspace.core.array import DenseArray, NdArrayMixin
from ndspace.core.buffer import DataBuffer, as_flat_output
from ndspace.core.common import parse_coords
from ndspace.core.dimensions import DimensionalSpace, row_major_strides
from ndspace.core.indexing import (
    Index,
    Selection,
    is_scalar_selection,
    normalize_integer_selection,
    normalize_selection,
    replace_ellipsis,
)
from ndspace.errors import InvalidArgumentError, ReadOnlyError

if TYPE_CHECKING:
    from ndspace.core.sparse import SparseArray


class SparseWindow(NdArrayMixin):
    """A read-only view over a region of a sparse array.

    A window stores nothing but a reference to its source and a dimensional space relative
    to it: reading a window walks the entries of the source and keeps those that fall in the
    region. Windows of windows address the source directly.

    Every write operation raises :class:`~ndspace.errors.ReadOnlyError`.
    """

    _read_only = True

    def __init__(self, source: SparseArray, dimensions: DimensionalSpace) -> None:
        self._source = source
        self._dimensions = dimensions

    @property
    def source(self) -> SparseArray:
        return self._source

    @property
    def source_position(self) -> int:
        """Linear position, in the source, of the first value of this window."""
        return self._dimensions.offset

    @property
    def dtype(self) -> np.dtype[Any]:  # type: ignore[override]
        return self._source.dtype

    @property
    def default_value(self) -> Any:
        return self._source.default_value

    def _entries(self) -> tuple[npt.NDArray[np.int64], npt.NDArray[Any]]:
        """Coordinates, relative to this window, and values of the source entries in it.

        Entries come in the order of the source.
        """
        mask, coords = self._dimensions.locate_many(self._source.positions)
        return coords[mask], self._source.values[mask]

    def get(self, *coords: int) -> SparseWindow:
        return SparseWindow(self._source, self._dimensions.element_space(parse_coords(coords)))

    def get_object(self, *coords: int) -> Any:
        return self._source.lookup(self._dimensions.position_of(parse_coords(coords)))

    def slice(self, *indices: Index) -> SparseWindow:
        return SparseWindow(self._source, self._dimensions.map_to(*indices))

    def __getitem__(self, selection: Selection) -> Any:
        shape = self.shape.dims
        items = replace_ellipsis(selection, shape)
        if is_scalar_selection(items, shape):
            coords = [normalize_integer_selection(i, n) for i, n in zip(items, shape, strict=True)]
            return self.get_object(*coords)
        return self.slice(*normalize_selection(items, shape))

    def __setitem__(self, selection: Selection, value: Any) -> None:
        raise ReadOnlyError()

    def set(self, src: Any, *coords: int) -> SparseWindow:
        raise ReadOnlyError()

    def set_object(self, value: Any, *coords: int) -> SparseWindow:
        raise ReadOnlyError()

    def write(self, src: Any) -> SparseWindow:
        raise ReadOnlyError()

    def copy_from(self, src: Any) -> SparseWindow:
        raise ReadOnlyError()

    def read(self, dst: DataBuffer | npt.NDArray[Any]) -> SparseWindow:
        """Expand this window, in row-major order, to ``dst``."""
        out = as_flat_output(dst)
        if out.shape[0] < self.size:
            raise InvalidArgumentError(
                f"destination of size {out.shape[0]} is too small for window of size {self.size}"
            )
        out[: self.size] = self.default_value
        coords, values = self._entries()
        strides = np.asarray(row_major_strides(self.shape.dims), dtype=np.int64)
        out[(coords * strides).sum(axis=1, dtype=np.int64)] = values
        return self

    def to_numpy(self) -> npt.NDArray[Any]:
        out = np.empty(self.size, dtype=self.dtype)
        self.read(out)
        return out.reshape(self.shape.dims)

    def to_dense(self) -> DenseArray:
        buffer = DataBuffer(self.to_numpy().reshape(-1))
        return DenseArray(buffer, DimensionalSpace.create(self.shape))

    def to_sparse(self) -> SparseArray:
        """Copy the entries of this window to a new, sorted, sparse array."""
        from ndspace.core.sparse import SparseArray

        coords, values = self._entries()
        arr = SparseArray.of(
            coords, values, self.shape, default_value=self.default_value, dtype=self.dtype
        )
        return arr.sort_indices_and_values()

    def copy_to(self, dst: Any) -> SparseWindow:
        if tuple(dst.shape) != self.shape.dims:
            raise InvalidArgumentError(
                f"Cannot copy an array of shape {self.shape} to an array of shape {dst.shape}"
            )
        from ndspace.core.sparse import SparseArray

        if isinstance(dst, np.ndarray):
            np.copyto(dst, self.to_numpy())
        elif isinstance(dst, SparseArray):
            dst.copy_from(self.to_sparse())
        else:
            dst.write(self.to_numpy())
        return self

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SparseWindow):
            return (
                self._source is other._source
                and self.shape == other.shape
                and self.source_position == other.source_position
            )
        return super().__eq__(other)

    __hash__ = None  # type: ignore[assignment]
