from __future__ import annotations

import numbers
from dataclasses import dataclass, replace
from types import EllipsisType
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, TypeGuard, cast, runtime_checkable

from ndspace.core.common import ceildiv
from ndspace.errors import BoundsCheckError, InvalidSelectionError, NegativeStepError

if TYPE_CHECKING:
    from ndspace.core.dimensions import Dimension


@runtime_checkable
class Index(Protocol):
    """An index expression applied to a single dimension.

    ``apply`` returns the dimension that replaces the indexed one (``None`` when the
    dimension is dropped) and the offset, in linear units of the indexed space, of the first
    selected element.
    """

    def apply(self, dim: Dimension) -> tuple[Dimension | None, int]: ...


@dataclass(frozen=True)
class All:
    """Select every element of a dimension."""

    def apply(self, dim: Dimension) -> tuple[Dimension | None, int]:
        return dim, 0


@dataclass(frozen=True)
class At:
    """Select a single element of a dimension, dropping the dimension from the result."""

    index: int

    def apply(self, dim: Dimension) -> tuple[Dimension | None, int]:
        if not 0 <= self.index < dim.size:
            raise InvalidSelectionError(
                f"index {self.index} out of bounds for dimension with length {dim.size}"
            )
        return None, self.index * dim.stride


@dataclass(frozen=True)
class Range:
    """Select elements ``start``, ``start + step``, ... up to (excluding) ``end``.

    Omitted bounds default to the beginning and the end of the dimension.
    """

    start: int | None = None
    end: int | None = None
    step: int = 1

    def apply(self, dim: Dimension) -> tuple[Dimension | None, int]:
        if self.step < 1:
            raise NegativeStepError(self.step)
        start = 0 if self.start is None else self.start
        end = dim.size if self.end is None else self.end
        if not 0 <= start <= dim.size or not start <= end <= dim.size:
            raise InvalidSelectionError(
                f"range [{start}, {end}) out of bounds for dimension with length {dim.size}"
            )
        new_dim = replace(dim, size=ceildiv(end - start, self.step), stride=dim.stride * self.step)
        return new_dim, start * dim.stride


class Indices:
    """Factories of index expressions.

    Examples
    --------
    >>> from ndspace import Indices
    >>> Indices.at(1), Indices.range(0, 4, 2)
    (At(index=1), Range(start=0, end=4, step=2))
    """

    @staticmethod
    def all() -> All:
        return All()

    @staticmethod
    def at(index: int) -> At:
        return At(int(index))

    @staticmethod
    def range(start: int | None = None, end: int | None = None, step: int = 1) -> Range:
        return Range(start, end, step)


Selector = int | slice | EllipsisType | Index
Selection: TypeAlias = Selector | tuple[Selector, ...]


def is_integer(x: Any) -> TypeGuard[int]:
    return isinstance(x, numbers.Integral) and not isinstance(x, bool)


def is_slice(s: Any) -> TypeGuard[slice]:
    return isinstance(s, slice)


def ensure_tuple(v: Any) -> tuple[Any, ...]:
    if not isinstance(v, tuple):
        v = (v,)
    return cast(tuple[Any, ...], v)


def err_too_many_indices(selection: Any, shape: tuple[int, ...]) -> None:
    raise InvalidSelectionError(
        f"too many indices for array; expected {len(shape)}, got {len(selection)}"
    )


def normalize_integer_selection(dim_sel: int, dim_len: int) -> int:
    # normalize type to int
    dim_sel = int(dim_sel)

    # handle wraparound
    if dim_sel < 0:
        dim_sel = dim_len + dim_sel

    # handle out of bounds
    if dim_sel >= dim_len or dim_sel < 0:
        raise BoundsCheckError(dim_sel, dim_len)

    return dim_sel


def replace_ellipsis(selection: Any, shape: tuple[int, ...]) -> tuple[Any, ...]:
    selection = ensure_tuple(selection)

    # count number of ellipsis present
    n_ellipsis = sum(1 for i in selection if i is Ellipsis)

    if n_ellipsis > 1:
        # more than 1 is an error
        raise InvalidSelectionError("an index can only have a single ellipsis ('...')")

    elif n_ellipsis == 1:
        # locate the ellipsis, count how many items to left and right
        n_items_l = selection.index(Ellipsis)  # items to left of ellipsis
        n_items_r = len(selection) - (n_items_l + 1)  # items to right of ellipsis
        n_items = len(selection) - 1  # all non-ellipsis items

        if n_items >= len(shape):
            # ellipsis does nothing, just remove it
            selection = tuple(i for i in selection if i is not Ellipsis)

        else:
            # replace ellipsis with as many slices are needed for number of dims
            new_item = selection[:n_items_l] + ((slice(None),) * (len(shape) - n_items))
            if n_items_r:
                new_item += selection[-n_items_r:]
            selection = new_item

    # fill out selection if not completely specified
    if len(selection) < len(shape):
        selection += (slice(None),) * (len(shape) - len(selection))

    # check selection not too long
    if len(selection) > len(shape):
        err_too_many_indices(selection, shape)

    return selection


def is_scalar_selection(selection: tuple[Any, ...], shape: tuple[int, ...]) -> bool:
    """True if ``selection`` addresses exactly one scalar with plain integers."""
    return len(selection) == len(shape) and all(is_integer(s) for s in selection)


def to_index(dim_sel: Any, dim_len: int) -> Index:
    """Convert a Python selector for one dimension to an index expression.

    Integers wrap around like NumPy and slices are clamped to the dimension length.
    """
    if isinstance(dim_sel, Index):
        return dim_sel
    if is_integer(dim_sel):
        return At(normalize_integer_selection(dim_sel, dim_len))
    if is_slice(dim_sel):
        start, stop, step = dim_sel.indices(dim_len)
        if step < 1:
            raise NegativeStepError(step)
        return Range(start, max(start, stop), step)
    raise InvalidSelectionError(
        "unsupported selection item; expected integer, slice or index expression, "
        f"got {type(dim_sel)!r}"
    )


def normalize_selection(selection: Selection, shape: tuple[int, ...]) -> tuple[Index, ...]:
    """Turn a ``__getitem__`` selection into one index expression per dimension."""
    selection_normalized = replace_ellipsis(selection, shape)
    return tuple(
        to_index(dim_sel, dim_len)
        for dim_sel, dim_len in zip(selection_normalized, shape, strict=True)
    )
