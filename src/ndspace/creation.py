from __future__ import annotations

from collections.abc import Callable
from typing import Any

import numpy as np
import numpy.typing as npt

from ndspace.core.array import DenseArray, apply_init
from ndspace.core.buffer import DataBuffer
from ndspace.core.common import ShapeLike, as_numpy
from ndspace.core.dimensions import DimensionalSpace
from ndspace.core.hydrator import Hydrator
from ndspace.core.initializer import Initializer
from ndspace.core.shape import Shape
from ndspace.core.sparse import SparseArray
from ndspace.errors import InvalidArgumentError

__all__ = [
    "array",
    "dense",
    "empty",
    "full",
    "ones",
    "sparse",
    "sparse_from_dense",
    "sparse_of",
    "zeros",
]


def _population(
    init: Callable[[Initializer], object] | None,
    hydrate: Callable[[Hydrator], object] | None,
) -> tuple[Callable[[Any], object] | None, bool]:
    if init is not None and hydrate is not None:
        raise InvalidArgumentError("only one of init and hydrate can be given")
    if hydrate is not None:
        return hydrate, True
    return init, False


def dense(
    shape: ShapeLike | Shape,
    dtype: npt.DTypeLike | None = None,
    fill_value: Any | None = None,
    *,
    init: Callable[[Initializer], object] | None = None,
    hydrate: Callable[[Hydrator], object] | None = None,
) -> DenseArray:
    """Create a dense array.

    Parameters
    ----------
    shape : int or tuple of ints
        Array shape.
    dtype : string or dtype, optional
        NumPy dtype, ``array.dtype`` from the configuration by default.
    fill_value : object, optional
        Initial value of every element, zero by default.
    init : callable, optional
        Called with an :class:`~ndspace.core.initializer.Initializer` of the new array.
    hydrate : callable, optional
        Called with a :class:`~ndspace.core.hydrator.Hydrator` of the new array.

    Returns
    -------
    DenseArray

    Examples
    --------
    >>> import ndspace
    >>> def fill(init):
    ...     init.by_vectors().put(1, 2).put(3)
    >>> ndspace.dense((2, 2), dtype="int8", init=fill).to_numpy().tolist()
    [[1, 2], [3, 0]]
    """
    callback, by_hydration = _population(init, hydrate)
    dims = DimensionalSpace.create(shape if isinstance(shape, Shape) else Shape(shape))
    arr = DenseArray(DataBuffer.allocate(dims.size, dtype, fill_value), dims)
    apply_init(arr, callback, hydrate=by_hydration)
    return arr


def empty(shape: ShapeLike | Shape, dtype: npt.DTypeLike | None = None) -> DenseArray:
    """Create a dense array whose values are not meant to be read before being written.

    Values are zeroed all the same.
    """
    return dense(shape, dtype)


def zeros(shape: ShapeLike | Shape, dtype: npt.DTypeLike | None = None) -> DenseArray:
    """Create a dense array of zeros.

    Examples
    --------
    >>> import ndspace
    >>> z = ndspace.zeros((2, 2))
    >>> z
    <ndspace.core.array.DenseArray (2, 2) float64>
    """
    return dense(shape, dtype, 0)


def ones(shape: ShapeLike | Shape, dtype: npt.DTypeLike | None = None) -> DenseArray:
    """Create a dense array of ones."""
    return dense(shape, dtype, 1)


def full(
    shape: ShapeLike | Shape, fill_value: Any, dtype: npt.DTypeLike | None = None
) -> DenseArray:
    """Create a dense array with every value set to `fill_value`."""
    return dense(shape, dtype, fill_value)


def array(data: npt.ArrayLike, dtype: npt.DTypeLike | None = None) -> DenseArray:
    """Create a dense array filled with a copy of `data`."""
    values = np.array(as_numpy(data), dtype=dtype)
    return DenseArray(DataBuffer(values.reshape(-1)), DimensionalSpace.create(values.shape))


def sparse(
    shape: ShapeLike | Shape,
    dtype: npt.DTypeLike | None = None,
    default_value: Any | None = None,
    *,
    init: Callable[[Initializer], object] | None = None,
    hydrate: Callable[[Hydrator], object] | None = None,
) -> SparseArray:
    """Create a sparse array, populated by ``init`` or ``hydrate`` if one is given.

    Without a population callback the array stays empty, ready to be populated with
    :meth:`SparseArray.hydrate`, :meth:`SparseArray.initialize` or :meth:`SparseArray.write`.

    Examples
    --------
    >>> import ndspace
    >>> def fill(hydrator):
    ...     hydrator.by_scalars().put(10).put(20).put(30).at(2, 1).put(40)
    >>> arr = ndspace.sparse((3, 2), dtype="int64", hydrate=fill)
    >>> arr.indices.tolist(), arr.values.tolist()
    ([[0, 0], [0, 1], [1, 0], [2, 1]], [10, 20, 30, 40])
    """
    callback, by_hydration = _population(init, hydrate)
    arr = SparseArray.create(
        shape if isinstance(shape, Shape) else Shape(shape), dtype, default_value
    )
    apply_init(arr, callback, hydrate=by_hydration)
    return arr


def sparse_of(
    indices: npt.ArrayLike,
    values: npt.ArrayLike,
    shape: ShapeLike | Shape,
    default_value: Any | None = None,
    dtype: npt.DTypeLike | None = None,
) -> SparseArray:
    """Create a sparse array from explicit entries, see :meth:`SparseArray.of`."""
    return SparseArray.of(
        indices,
        values,
        shape if isinstance(shape, Shape) else Shape(shape),
        default_value=default_value,
        dtype=dtype,
    )


def sparse_from_dense(
    data: Any,
    default_value: Any | None = None,
    shape: ShapeLike | Shape | None = None,
    dtype: npt.DTypeLike | None = None,
) -> SparseArray:
    """Convert dense data to a sparse array, see :meth:`SparseArray.from_dense`."""
    if shape is not None and not isinstance(shape, Shape):
        shape = Shape(shape)
    return SparseArray.from_dense(data, shape, default_value=default_value, dtype=dtype)
