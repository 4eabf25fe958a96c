from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Generic, TypeVar

from ndspace.core.common import Coords, parse_coords
from ndspace.errors import IllegalRankError, InvalidArgumentError

if TYPE_CHECKING:
    from ndspace.core.dimensions import DimensionalSpace

T = TypeVar("T")


class PositionIterator:
    """Linear positions of every unit of a dimensional space, in row-major order.

    A unit is the sub-element made of the ``unit_rank`` trailing dimensions: rank 0 visits
    every scalar, rank 1 every vector of the last dimension, and so on. Iteration starts at
    ``coords`` (the first unit if omitted) and ends after the last unit.
    """

    def __init__(self, dimensions: DimensionalSpace, coords: Sequence[int]) -> None:
        self._dimensions = dimensions
        self._depth = len(coords)
        self._coords: list[int] | None = list(coords)
        if dimensions.size == 0:
            self._coords = None
        else:
            dimensions.position_of(coords, partial=True)

    @classmethod
    def create(
        cls,
        dimensions: DimensionalSpace,
        unit_rank: int = 0,
        coords: Sequence[int] | None = None,
    ) -> PositionIterator:
        depth = dimensions.num_dimensions - unit_rank
        if not 0 <= unit_rank <= dimensions.num_dimensions:
            raise InvalidArgumentError(
                f"Invalid unit rank {unit_rank} for a space of rank {dimensions.num_dimensions}"
            )
        if coords is None:
            coords = (0,) * depth
        elif len(coords) != depth:
            raise IllegalRankError(tuple(coords), depth)
        return cls(dimensions, parse_coords(coords))

    @property
    def dimensions(self) -> DimensionalSpace:
        return self._dimensions

    @property
    def coords(self) -> Coords | None:
        """Coordinates of the next unit, None once exhausted."""
        return None if self._coords is None else tuple(self._coords)

    def has_next(self) -> bool:
        return self._coords is not None

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        if self._coords is None:
            raise StopIteration
        position = self._dimensions.position_of(self._coords, partial=True)
        self._increment()
        return position

    next = __next__

    def for_each_indexed(self, visit: Callable[[list[int], int], object]) -> None:
        """Drain the iterator, calling ``visit(coords, position)`` for each unit.

        The same ``coords`` list is passed, mutated, on every call; copy it to keep it.
        """
        while self._coords is not None:
            visit(self._coords, self._dimensions.position_of(self._coords, partial=True))
            self._increment()

    def at(self, coords: Sequence[int]) -> PositionIterator:
        """A new iterator over the same units, starting at ``coords``."""
        return PositionIterator.create(
            self._dimensions, self._dimensions.num_dimensions - self._depth, coords
        )

    def _increment(self) -> None:
        if self._coords is not None and not self._dimensions.increment_coordinates(self._coords):
            self._coords = None


class PositionSequence:
    """A restartable sequence of positions; each iteration starts over from ``coords``."""

    def __init__(
        self,
        dimensions: DimensionalSpace,
        unit_rank: int = 0,
        coords: Sequence[int] | None = None,
    ) -> None:
        self._dimensions = dimensions
        self._unit_rank = unit_rank
        self._coords = coords
        # validate eagerly
        PositionIterator.create(dimensions, unit_rank, coords)

    def __iter__(self) -> PositionIterator:
        return PositionIterator.create(self._dimensions, self._unit_rank, self._coords)

    def for_each_indexed(self, visit: Callable[[list[int], int], object]) -> None:
        iter(self).for_each_indexed(visit)

    def at(self, coords: Sequence[int]) -> PositionSequence:
        return PositionSequence(self._dimensions, self._unit_rank, coords)


class ElementSequence(Generic[T]):
    """A restartable sequence of the elements of an array along one dimension.

    ``get_element`` builds the element (usually a view) at a coordinate prefix.
    """

    def __init__(
        self,
        dimensions: DimensionalSpace,
        dimension_idx: int,
        get_element: Callable[[Coords], T],
        coords: Sequence[int] | None = None,
    ) -> None:
        self._positions = PositionSequence(
            dimensions, dimensions.num_dimensions - dimension_idx - 1, coords
        )
        self._get_element = get_element

    def __iter__(self) -> Iterator[T]:
        for coords in self.coordinates():
            yield self._get_element(coords)

    def coordinates(self) -> Iterator[Coords]:
        it = iter(self._positions)
        while it.has_next():
            coords = it.coords
            next(it)
            yield coords  # type: ignore[misc]

    def for_each_indexed(self, visit: Callable[[Coords, T], object]) -> None:
        for coords in self.coordinates():
            visit(coords, self._get_element(coords))
