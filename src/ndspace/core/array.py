from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from ndspace.core.buffer import DataBuffer
from ndspace.core.common import Coords, as_numpy, parse_coords
from ndspace.core.cursor import DenseTarget
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
from ndspace.core.sequence import ElementSequence
from ndspace.errors import IllegalRankError, InvalidArgumentError

if TYPE_CHECKING:
    from ndspace.core.shape import Shape


class NdArrayMixin(ABC):
    """Attributes and traversals common to every array addressed by a dimensional space.

    Subclasses set ``_dimensions`` and provide ``dtype``.
    """

    _dimensions: DimensionalSpace
    _read_only: bool = False

    dtype: np.dtype[Any]

    @abstractmethod
    def get(self, *coords: int) -> Any:
        """The element at ``coords`` (a prefix of the coordinates), as a view."""
        ...

    @abstractmethod
    def get_object(self, *coords: int) -> Any:
        """The scalar at ``coords``."""
        ...

    @abstractmethod
    def to_numpy(self) -> npt.NDArray[Any]:
        """Copy of the values of this array as a NumPy array of the same shape."""
        ...

    @property
    def dimensions(self) -> DimensionalSpace:
        return self._dimensions

    @property
    def shape(self) -> Shape:
        return self._dimensions.shape

    @property
    def rank(self) -> int:
        return self._dimensions.num_dimensions

    @property
    def size(self) -> int:
        return self._dimensions.size

    @property
    def read_only(self) -> bool:
        return self._read_only

    def elements(self, dimension_idx: int) -> ElementSequence[Any]:
        """Sequence of the elements (sub-arrays) of dimension ``dimension_idx``.

        Elements of the last dimension are rank-0 arrays. The sequence can be iterated any
        number of times.
        """
        if not 0 <= dimension_idx < self.rank:
            raise InvalidArgumentError(
                f"Invalid dimension {dimension_idx} for an array of shape {self.shape}"
            )
        return ElementSequence(self._dimensions, dimension_idx, self._element_at)

    def scalars(self) -> ElementSequence[Any]:
        """Sequence of every scalar of this array as a rank-0 array, in row-major order."""
        return ElementSequence(self._dimensions, self.rank - 1, self._element_at)

    def _element_at(self, coords: Coords) -> Any:
        return self.get(*coords)

    def __len__(self) -> int:
        if self.rank:
            return self.shape[0]
        else:
            # 0-dimensional array, same error message as numpy
            raise TypeError("len() of unsized object")

    def __iter__(self) -> Iterator[Any]:
        if not self.rank:
            raise TypeError("iteration over a 0-d array")
        for i in range(self.shape[0]):
            if self.rank == 1:
                yield self.get_object(i)
            else:
                yield self.get(i)

    def __array__(self, dtype: npt.DTypeLike | None = None, copy: bool | None = None) -> Any:
        arr = self.to_numpy()
        if dtype is not None:
            arr = arr.astype(dtype)
        return arr

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NdArrayMixin | np.ndarray):
            return NotImplemented
        other_data = as_numpy(other)
        return self.shape.dims == other_data.shape and bool(
            np.array_equal(self.to_numpy(), other_data)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        t = type(self)
        r = f"<{t.__module__}.{t.__name__}"
        r += f" {self.shape}"
        r += f" {self.dtype}"
        if self.read_only:
            r += " read-only"
        r += ">"
        return r


class DenseArray(NdArrayMixin):
    """An array storing every value in a :class:`DataBuffer`.

    Slices and elements of a dense array are dense arrays too, sharing the same buffer
    through a relative dimensional space: writing to a view writes to the array.

    Parameters
    ----------
    buffer : DataBuffer
        Storage of the array (and of all its views).
    dimensions : DimensionalSpace
        Mapping from the coordinates of this array to positions in ``buffer``.

    Examples
    --------
    >>> import ndspace
    >>> arr = ndspace.zeros((2, 3), dtype="int32")
    >>> arr[1, :2] = 7
    >>> arr.to_numpy().tolist()
    [[0, 0, 0], [7, 7, 0]]
    >>> row = arr.get(1)
    >>> row.get_object(0)
    7
    """

    def __init__(self, buffer: DataBuffer, dimensions: DimensionalSpace) -> None:
        if dimensions.size and dimensions.offset + sum(
            (d.size - 1) * d.stride for d in dimensions.dimensions
        ) >= buffer.size:
            raise InvalidArgumentError(
                f"Buffer of size {buffer.size} is too small for an array of shape "
                f"{dimensions.shape}"
            )
        self._buffer = buffer
        self._dimensions = dimensions

    @classmethod
    def create(cls, buffer: DataBuffer, shape: Shape | tuple[int, ...]) -> DenseArray:
        return cls(buffer, DimensionalSpace.create(shape))

    @property
    def buffer(self) -> DataBuffer:
        return self._buffer

    @property
    def dtype(self) -> np.dtype[Any]:  # type: ignore[override]
        return self._buffer.dtype

    def _flat(self) -> npt.NDArray[Any]:
        return self._buffer.as_numpy_array()

    def to_numpy(self) -> npt.NDArray[Any]:
        """Copy of the values of this array as a NumPy array of the same shape."""
        return np.asarray(self._flat()[self._dimensions.positions()])

    def get(self, *coords: int) -> DenseArray:
        """The element at ``coords`` (a prefix of the coordinates), as a view."""
        return DenseArray(self._buffer, self._dimensions.element_space(parse_coords(coords)))

    def get_object(self, *coords: int) -> Any:
        """The scalar at ``coords``."""
        return self._buffer.get_at(self._dimensions.position_of(parse_coords(coords)))

    def set(self, src: Any, *coords: int) -> DenseArray:
        """Copy ``src`` to the element at ``coords``; shapes must match."""
        element = self.get(*coords)
        data = as_numpy(src)
        if data.shape != element.shape.dims:
            raise InvalidArgumentError(
                f"Cannot set an element of shape {element.shape} with values of shape {data.shape}"
            )
        element._assign(data)
        return self

    def set_object(self, value: Any, *coords: int) -> DenseArray:
        """Set the scalar at ``coords``."""
        coords = parse_coords(coords)
        if len(coords) != self.rank:
            raise IllegalRankError(coords, self.rank)
        self._buffer.set_at(self._dimensions.position_of(coords), value)
        return self

    def slice(self, *indices: Index) -> DenseArray:
        """View of the values selected by one index expression per leading dimension."""
        return DenseArray(self._buffer, self._dimensions.map_to(*indices))

    def _assign(self, value: Any) -> None:
        values = np.broadcast_to(np.asarray(value, dtype=self.dtype), self.shape.dims)
        self._flat()[self._dimensions.positions()] = values

    def __getitem__(self, selection: Selection) -> Any:
        """Retrieve a scalar, with plain integers for every dimension, or a view.

        Integers may be negative to count from the end of a dimension, slices are
        clamped to the dimension like in NumPy.
        """
        shape = self.shape.dims
        items = replace_ellipsis(selection, shape)
        if is_scalar_selection(items, shape):
            coords = [normalize_integer_selection(i, n) for i, n in zip(items, shape, strict=True)]
            return self.get_object(*coords)
        return self.slice(*normalize_selection(items, shape))

    def __setitem__(self, selection: Selection, value: Any) -> None:
        shape = self.shape.dims
        items = replace_ellipsis(selection, shape)
        if is_scalar_selection(items, shape):
            coords = [normalize_integer_selection(i, n) for i, n in zip(items, shape, strict=True)]
            self.set_object(value, *coords)
        else:
            self.slice(*normalize_selection(items, shape))._assign(as_numpy(value))

    def read(self, dst: DataBuffer | npt.NDArray[Any]) -> DenseArray:
        """Copy the values of this array, in row-major order, to ``dst``."""
        DataBuffer(self.to_numpy().reshape(-1)).read(dst)
        return self

    def write(self, src: DataBuffer | npt.ArrayLike) -> DenseArray:
        """Copy the first ``size`` values of ``src``, in row-major order, to this array."""
        data = src.as_numpy_array() if isinstance(src, DataBuffer) else np.ravel(as_numpy(src))
        if data.shape[0] < self.size:
            raise InvalidArgumentError(
                f"source of size {data.shape[0]} is too small for an array of size {self.size}"
            )
        self._assign(data[: self.size].reshape(self.shape.dims))
        return self

    def copy_to(self, dst: Any) -> DenseArray:
        """Copy the values of this array to ``dst``, an array of the same shape."""
        if tuple(dst.shape) != self.shape.dims:
            raise InvalidArgumentError(
                f"Cannot copy an array of shape {self.shape} to an array of shape {dst.shape}"
            )
        if isinstance(dst, np.ndarray):
            np.copyto(dst, self.to_numpy())
        else:
            dst.write(self.to_numpy())
        return self

    def copy_from(self, src: Any) -> DenseArray:
        """Copy the values of ``src``, an array of the same shape, to this array."""
        data = as_numpy(src)
        if data.shape != self.shape.dims:
            raise InvalidArgumentError(
                f"Cannot copy an array of shape {data.shape} to an array of shape {self.shape}"
            )
        self._assign(data)
        return self

    def hydrate(self) -> Hydrator:
        return Hydrator(DenseTarget(self))

    def initialize(self) -> Initializer:
        return Initializer(DenseTarget(self))


def apply_init(array: Any, init: Callable[[Any], object] | None, *, hydrate: bool = False) -> None:
    """Run a population callback on a freshly created array, closing it afterwards."""
    if init is None:
        return
    population = array.hydrate() if hydrate else array.initialize()
    with population:
        init(population)
