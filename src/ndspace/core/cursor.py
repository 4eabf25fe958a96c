"""Forward-only cursors shared by hydrators and initializers.

A population (:class:`~ndspace.core.hydrator.Hydrator` or
:class:`~ndspace.core.initializer.Initializer`) owns the position reached so far in the
array it fills and hands out cursors writing one unit at a time: scalars, vectors of the
last dimension, or whole elements of a leading dimension. Only the most recently created
cursor of a population is usable, and no cursor can be moved before the current position.

The actual writes are delegated to a target: :class:`DenseTarget` writes to the storage of
a dense array, :class:`SparseTarget` collects the entries that differ from the default value
of a sparse array and commits them once the population is closed.
"""

from __future__ import annotations

from collections.abc import Sequence
from logging import getLogger
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

import numpy as np
import numpy.typing as npt

from ndspace.core.common import Coords, as_numpy, nondefault_mask, parse_coords
from ndspace.core.indexing import Range
from ndspace.errors import (
    BackwardMoveError,
    BoundsCheckError,
    IllegalRankError,
    InvalidArgumentError,
)

if TYPE_CHECKING:
    from types import TracebackType
    from typing import Self

    from ndspace.core.array import DenseArray
    from ndspace.core.dimensions import DimensionalSpace
    from ndspace.core.sparse import SparseArray

logger = getLogger(__name__)

CursorT = TypeVar("CursorT", bound="Cursor")


def compare_coords(a: Sequence[int], b: Sequence[int]) -> int:
    """Compare two coordinate tuples in row-major order.

    The shorter tuple is padded with zeros, so a prefix addresses the first scalar of its
    sub-element. Returns -1, 0 or 1.
    """
    n = max(len(a), len(b))
    pa = tuple(a) + (0,) * (n - len(a))
    pb = tuple(b) + (0,) * (n - len(b))
    return (pa > pb) - (pa < pb)


def validate_new_coords(
    current: Sequence[int], new: Sequence[int], activity: str = "population"
) -> Coords:
    if compare_coords(new, current) < 0:
        raise BackwardMoveError(activity, tuple(new), tuple(current))
    return tuple(new)


class PopulationTarget(Protocol):
    @property
    def dimensions(self) -> DimensionalSpace: ...

    @property
    def dtype(self) -> np.dtype[Any]: ...

    def write_scalar(self, coords: Sequence[int], value: Any) -> None: ...

    def write_vector(self, coords: Sequence[int], values: npt.NDArray[Any]) -> None: ...

    def write_element(self, coords: Sequence[int], element: npt.NDArray[Any]) -> None: ...

    def close(self) -> None: ...

    def abort(self) -> None: ...


class DenseTarget:
    """Writes units straight to the storage of a dense array.

    Aborting leaves the values written so far in place.
    """

    def __init__(self, array: DenseArray) -> None:
        self._array = array

    @property
    def dimensions(self) -> DimensionalSpace:
        return self._array.dimensions

    @property
    def dtype(self) -> np.dtype[Any]:
        return self._array.dtype

    def write_scalar(self, coords: Sequence[int], value: Any) -> None:
        self._array.set_object(value, *coords)

    def write_vector(self, coords: Sequence[int], values: npt.NDArray[Any]) -> None:
        self._array.get(*coords).slice(Range(0, values.shape[0])).write(values)

    def write_element(self, coords: Sequence[int], element: npt.NDArray[Any]) -> None:
        self._array.get(*coords).write(element)

    def close(self) -> None:
        pass

    def abort(self) -> None:
        pass


class SparseTarget:
    """Collects the non-default entries of a sparse array being populated.

    Units arrive in row-major order, so the collected entries are sorted. They are
    committed to the array on :meth:`close` and discarded on :meth:`abort`.
    """

    def __init__(self, array: SparseArray) -> None:
        array._begin_population()
        self._array = array
        self._rank = array.dimensions.num_dimensions
        self._indices: list[npt.NDArray[np.int64]] = []
        self._values: list[npt.NDArray[Any]] = []

    @property
    def dimensions(self) -> DimensionalSpace:
        return self._array.dimensions

    @property
    def dtype(self) -> np.dtype[Any]:
        return self._array.dtype

    def _append(self, indices: npt.NDArray[np.int64], values: npt.NDArray[Any]) -> None:
        if values.shape[0]:
            self._indices.append(indices)
            self._values.append(values)

    def write_scalar(self, coords: Sequence[int], value: Any) -> None:
        values = np.asarray([value], dtype=self._array.dtype)
        mask = nondefault_mask(values, self._array.default_value)
        indices = np.asarray([coords], dtype=np.int64).reshape(1, self._rank)
        self._append(indices[mask], values[mask])

    def write_vector(self, coords: Sequence[int], values: npt.NDArray[Any]) -> None:
        values = values.astype(self._array.dtype, copy=False)
        (nonzero,) = np.nonzero(nondefault_mask(values, self._array.default_value))
        indices = np.empty((nonzero.shape[0], self._rank), dtype=np.int64)
        indices[:, :-1] = coords
        indices[:, -1] = nonzero
        self._append(indices, values[nonzero])

    def write_element(self, coords: Sequence[int], element: npt.NDArray[Any]) -> None:
        if element.ndim == 0:
            self.write_scalar(coords, element.item())
            return
        element = element.astype(self._array.dtype, copy=False)
        mask = nondefault_mask(element, self._array.default_value)
        indices = np.empty((int(mask.sum()), self._rank), dtype=np.int64)
        indices[:, : len(coords)] = coords
        indices[:, len(coords) :] = np.argwhere(mask)
        self._append(indices, element[mask])

    def close(self) -> None:
        if self._indices:
            indices = np.concatenate(self._indices)
            values = np.concatenate(self._values)
        else:
            indices = np.empty((0, self._rank), dtype=np.int64)
            values = np.empty(0, dtype=self._array.dtype)
        self._array._complete_population(indices, values)

    def abort(self) -> None:
        self._indices.clear()
        self._values.clear()
        self._array._abort_population()


class Population:
    """Shared state of a sequential population: the target, its position, its cursor.

    A population is a context manager. Leaving the block normally closes it, committing
    what the target collected; leaving it with an exception aborts it.
    """

    _activity = "population"

    def __init__(self, target: PopulationTarget) -> None:
        self._target = target
        self._dimensions = target.dimensions
        self._position: list[int] = []
        self._done = False
        self._cursor: Cursor | None = None
        self._closed = False

    @property
    def target(self) -> PopulationTarget:
        return self._target

    @property
    def position(self) -> Coords | None:
        """Coordinates of the next unit to write, None once the array has been passed."""
        return None if self._done else tuple(self._position)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._cursor = None
            self._target.close()
            logger.debug("%s of %s completed", self._activity, self._dimensions.shape)

    def abort(self) -> None:
        if not self._closed:
            self._closed = True
            self._cursor = None
            self._target.abort()
            logger.debug("%s of %s aborted", self._activity, self._dimensions.shape)

    def _check_open(self) -> None:
        if self._closed:
            raise InvalidArgumentError(f"{self._activity} is already closed")

    def _check_forward(self, coords: Sequence[int]) -> None:
        if self._done:
            raise BackwardMoveError(
                f"Cannot move backward during array {self._activity}: "
                f"the end of the array was already reached"
            )
        validate_new_coords(self._position, coords, self._activity)

    def _locate(self, depth: int, coords: Sequence[int]) -> list[int]:
        """Validate explicit unit coordinates against the rank, the bounds and the position."""
        coords = parse_coords(coords)
        if len(coords) != depth:
            raise IllegalRankError(coords, depth)
        self._dimensions.position_of(coords, partial=True)
        self._check_forward(coords)
        return list(coords)

    def _resume(self, depth: int) -> list[int] | None:
        """Coordinates of the first unit of ``depth`` not before the current position."""
        if self._done or self._dimensions.size == 0:
            return None
        coords = list(self._position)
        if len(coords) > depth:
            dropped = coords[depth:]
            del coords[depth:]
            if any(dropped) and not self._dimensions.increment_coordinates(coords):
                return None
        else:
            coords.extend([0] * (depth - len(coords)))
        return coords

    def _open(self, cursor_cls: type[CursorT], depth: int, coords: Sequence[int]) -> CursorT:
        self._check_open()
        start = self._locate(depth, coords) if coords else self._resume(depth)
        cursor = cursor_cls(self, depth, start)
        self._moved(start)
        self._cursor = cursor
        return cursor

    def _moved(self, coords: list[int] | None) -> None:
        if coords is None:
            self._done = True
        else:
            self._position = list(coords)


class Cursor:
    """Writes consecutive units of ``depth`` leading coordinates.

    A cursor stays usable as long as it is the latest one opened by its population.
    Hydration cursors are moved with ``at``, initialization cursors with ``skip_to``.
    """

    def __init__(self, population: Population, depth: int, coords: list[int] | None) -> None:
        self._population = population
        self._dimensions = population._dimensions
        self._depth = depth
        self._coords = coords

    @property
    def coords(self) -> Coords | None:
        """Coordinates of the next unit, None once exhausted."""
        return None if self._coords is None else tuple(self._coords)

    @property
    def unit_rank(self) -> int:
        return self._dimensions.num_dimensions - self._depth

    @property
    def unit_shape(self) -> tuple[int, ...]:
        return self._dimensions.shape.dims[self._depth :]

    def _check_active(self) -> None:
        self._population._check_open()
        if self._population._cursor is not self:
            raise InvalidArgumentError(
                "cursor is no longer active, a new one was opened by its "
                f"{self._population._activity}"
            )

    def _move(self, coords: Sequence[int]) -> Self:
        """Move the cursor forward to the unit at ``coords``.

        Raises
        ------
        IllegalRankError
            If ``coords`` are not the coordinates of a unit of this cursor.
        BackwardMoveError
            If ``coords`` are before the current position.
        """
        self._check_active()
        self._coords = self._population._locate(self._depth, coords)
        self._population._moved(self._coords)
        logger.debug("cursor moved to %s", self._coords)
        return self

    def _next_coords(self) -> list[int]:
        self._check_active()
        if self._coords is None:
            raise BoundsCheckError(
                f"cannot put past the end of an array of shape {self._dimensions.shape}"
            )
        return self._coords

    def _convert(self, value: Any) -> npt.NDArray[Any]:
        dtype = self._population._target.dtype
        try:
            return as_numpy(value, dtype=dtype)
        except (ValueError, TypeError, OverflowError) as e:
            raise InvalidArgumentError(f"Cannot convert {value!r} to {dtype}") from e

    def _advance(self) -> None:
        assert self._coords is not None
        if not self._dimensions.increment_coordinates(self._coords):
            self._coords = None
        self._population._moved(self._coords)


class ScalarCursor(Cursor):
    def put(self, value: Any) -> Self:
        coords = self._next_coords()
        if value is None or np.ndim(value) != 0:
            raise InvalidArgumentError(f"Expected a scalar value, got {value!r}")
        scalar = self._convert(value)
        self._population._target.write_scalar(coords, scalar[()])
        self._advance()
        return self


class VectorCursor(Cursor):
    def put(self, *values: Any) -> Self:
        """Write the next vector; fewer values than the last dimension leave the rest as is.

        Values are given either as separate arguments or as a single sequence.
        """
        coords = self._next_coords()
        if len(values) == 1 and np.ndim(values[0]) == 1:
            vector = self._convert(values[0])
        else:
            vector = self._convert(values)
        limit = self._dimensions.dimensions[-1].size
        if vector.ndim != 1 or vector.shape[0] == 0:
            raise InvalidArgumentError("Vector cannot be empty")
        if vector.shape[0] > limit:
            raise InvalidArgumentError(f"Vector cannot exceed {limit} elements")
        self._population._target.write_vector(coords, vector)
        self._advance()
        return self


class ElementCursor(Cursor):
    def put(self, element: Any) -> Self:
        """Write the next element; its shape must be the shape of the unit."""
        coords = self._next_coords()
        if element is None:
            raise InvalidArgumentError("Element cannot be None")
        data = self._convert(element)
        if data.shape != self.unit_shape:
            raise InvalidArgumentError(
                f"Expected an element of shape {self.unit_shape}, got shape {data.shape}"
            )
        self._population._target.write_element(coords, data)
        self._advance()
        return self
