"""Capabilities of ndspace arrays.

Dense arrays, sparse arrays and sparse windows are unrelated classes; these protocols
describe what each of them can do. They are runtime checkable:

>>> import ndspace
>>> from ndspace.abc.array import Writable
>>> isinstance(ndspace.zeros((2, 2)), Writable)
True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import numpy as np
    import numpy.typing as npt

    from ndspace.core.buffer import DataBuffer
    from ndspace.core.dimensions import DimensionalSpace
    from ndspace.core.indexing import Index
    from ndspace.core.sequence import ElementSequence
    from ndspace.core.shape import Shape

__all__ = ["Readable", "Sliceable", "Sparse", "Writable"]


@runtime_checkable
class Readable(Protocol):
    """An array whose values can be read."""

    @property
    def dimensions(self) -> DimensionalSpace: ...

    @property
    def shape(self) -> Shape: ...

    @property
    def rank(self) -> int: ...

    @property
    def dtype(self) -> np.dtype[Any]: ...

    def get(self, *coords: int) -> Readable: ...

    def get_object(self, *coords: int) -> Any: ...

    def elements(self, dimension_idx: int) -> ElementSequence[Any]: ...

    def scalars(self) -> ElementSequence[Any]: ...

    def read(self, dst: DataBuffer | npt.NDArray[Any]) -> Readable: ...

    def copy_to(self, dst: Any) -> Readable: ...

    def to_numpy(self) -> npt.NDArray[Any]: ...


@runtime_checkable
class Writable(Protocol):
    """An array whose values can be written in place.

    Sparse arrays and windows expose the same methods but raise
    :class:`~ndspace.errors.ReadOnlyError`, so check :attr:`read_only` rather than this
    protocol to know whether a write can succeed.
    """

    @property
    def read_only(self) -> bool: ...

    def set(self, src: Any, *coords: int) -> Writable: ...

    def set_object(self, value: Any, *coords: int) -> Writable: ...

    def write(self, src: Any) -> Writable: ...

    def copy_from(self, src: Any) -> Writable: ...


@runtime_checkable
class Sliceable(Protocol):
    """An array from which views can be taken with index expressions."""

    def slice(self, *indices: Index) -> Sliceable: ...

    def __getitem__(self, selection: Any) -> Any: ...


@runtime_checkable
class Sparse(Protocol):
    """An array in coordinate-list format."""

    @property
    def indices(self) -> npt.NDArray[np.int64]: ...

    @property
    def values(self) -> npt.NDArray[Any]: ...

    @property
    def default_value(self) -> Any: ...

    @property
    def is_sorted(self) -> bool: ...

    def to_dense(self) -> Readable: ...

    def sort_indices_and_values(self) -> Sparse: ...
