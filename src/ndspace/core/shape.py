from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from ndspace.core.common import ShapeLike, parse_shapelike, product
from ndspace.errors import InvalidArgumentError


@dataclass(frozen=True)
class Shape:
    """The sizes of each dimension of an array.

    A shape of rank 0 describes a scalar (size 1); any dimension of size 0 makes the whole
    shape empty (size 0).

    Parameters
    ----------
    dims : tuple of int
        Non-negative dimension sizes, outermost first.
    """

    dims: tuple[int, ...]

    def __init__(self, dims: ShapeLike = ()) -> None:
        object.__setattr__(self, "dims", parse_shapelike(dims))

    @classmethod
    def of(cls, *dims: int) -> Shape:
        return cls(dims)

    @classmethod
    def scalar(cls) -> Shape:
        return cls(())

    @property
    def rank(self) -> int:
        return len(self.dims)

    num_dimensions = rank

    @property
    def size(self) -> int:
        return product(self.dims)

    def is_scalar(self) -> bool:
        return not self.dims

    def get(self, i: int) -> int:
        """Size of dimension ``i``; negative values count from the last dimension."""
        if not -self.rank <= i < self.rank:
            raise InvalidArgumentError(f"Invalid dimension index {i} for shape {self}")
        return self.dims[i]

    def head(self) -> Shape:
        """Shape made of the first dimension only."""
        return self.take(1)

    def tail(self) -> Shape:
        """Shape made of every dimension but the first."""
        if self.rank < 2:
            return Shape.scalar()
        return Shape(self.dims[1:])

    def take(self, n: int) -> Shape:
        if not 0 <= n <= self.rank:
            raise InvalidArgumentError(f"Cannot take {n} dimensions from shape {self}")
        return Shape(self.dims[:n])

    def take_last(self, n: int) -> Shape:
        if not 0 <= n <= self.rank:
            raise InvalidArgumentError(f"Cannot take {n} dimensions from shape {self}")
        return Shape(self.dims[self.rank - n :])

    def sub_shape(self, begin: int, end: int) -> Shape:
        if not 0 <= begin <= end <= self.rank:
            raise InvalidArgumentError(f"Invalid sub-shape [{begin}, {end}) of shape {self}")
        return Shape(self.dims[begin:end])

    def prepend(self, *dims: int) -> Shape:
        return Shape(tuple(dims) + self.dims)

    def append(self, *dims: int) -> Shape:
        return Shape(self.dims + tuple(dims))

    def __len__(self) -> int:
        return len(self.dims)

    def __iter__(self) -> Iterator[int]:
        return iter(self.dims)

    def __getitem__(self, i: int) -> int:
        return self.dims[i]

    def __str__(self) -> str:
        return str(self.dims)

    def __repr__(self) -> str:
        return f"Shape{self.dims}"
