from __future__ import annotations

import functools
import math
import numbers
import operator
from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np
import numpy.typing as npt

from ndspace.errors import InvalidArgumentError

ShapeLike = Iterable[int] | int
Coords = tuple[int, ...]
CoordsLike = Sequence[int]


def product(tup: Iterable[int]) -> int:
    return functools.reduce(operator.mul, tup, 1)


def ceildiv(a: float, b: float) -> int:
    if a == 0:
        return 0
    return math.ceil(a / b)


def parse_shapelike(data: ShapeLike) -> tuple[int, ...]:
    if isinstance(data, numbers.Integral):
        if data < 0:
            raise InvalidArgumentError(f"Expected a non-negative integer. Got {data} instead")
        return (int(data),)
    try:
        data_tuple = tuple(data)
    except TypeError as e:
        msg = f"Expected an integer or an iterable of integers. Got {data} instead."
        raise TypeError(msg) from e

    if not all(isinstance(v, numbers.Integral) for v in data_tuple):
        msg = f"Expected an iterable of integers. Got {data} instead."
        raise TypeError(msg)
    if not all(v > -1 for v in data_tuple):
        msg = f"Expected all values to be non-negative. Got {data} instead."
        raise InvalidArgumentError(msg)
    return tuple(int(v) for v in data_tuple)


def parse_coords(data: Iterable[int]) -> Coords:
    coords = tuple(data)
    if not all(isinstance(c, numbers.Integral) for c in coords):
        raise TypeError(f"Expected integer coordinates. Got {coords!r} instead.")
    return tuple(int(c) for c in coords)


def as_numpy(data: Any, dtype: npt.DTypeLike | None = None) -> npt.NDArray[Any]:
    """NumPy rendition of an ndspace array, a NumPy array or any array-like."""
    to_numpy = getattr(data, "to_numpy", None)
    arr = to_numpy() if callable(to_numpy) else np.asarray(data)
    if dtype is not None:
        arr = arr.astype(dtype, copy=False)
    return arr


def is_nan_value(value: Any) -> bool:
    return isinstance(value, float | np.floating) and bool(np.isnan(value))


def nondefault_mask(values: npt.NDArray[Any], default_value: Any) -> npt.NDArray[np.bool_]:
    """Mask of the entries of ``values`` that differ from ``default_value`` (NaN aware)."""
    if is_nan_value(default_value):
        if values.dtype.kind in "fc":
            return ~np.isnan(values)
        return np.ones(values.shape, dtype=bool)
    return np.asarray(values != default_value, dtype=bool)
