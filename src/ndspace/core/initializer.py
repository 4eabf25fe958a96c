from __future__ import annotations

from typing import Self

from ndspace.core.cursor import Cursor, ElementCursor, Population, ScalarCursor, VectorCursor
from ndspace.errors import InvalidArgumentError


class InitializationCursor(Cursor):
    def skip_to(self, *coords: int) -> Self:
        """Skip forward to the unit at ``coords``, leaving the units in between as is."""
        return self._move(coords)


class ScalarInitializationCursor(ScalarCursor, InitializationCursor):
    pass


class VectorInitializationCursor(VectorCursor, InitializationCursor):
    pass


class ElementInitializationCursor(ElementCursor, InitializationCursor):
    pass


class Initializer(Population):
    """Per-unit initialization of a freshly allocated array.

    Initialization works like hydration, but cursors are moved with ``skip_to`` and
    elements are chosen by the dimension they belong to.

    Examples
    --------
    >>> import numpy as np
    >>> import ndspace
    >>> matrix = np.array([[1, 2], [3, 4]])
    >>> arr = ndspace.zeros((4, 2, 2), dtype="int64")
    >>> with arr.initialize() as init:
    ...     cursor = init.by_elements(0).put(matrix).put(matrix).skip_to(3).put(matrix)
    >>> arr.to_numpy()[2].tolist()
    [[0, 0], [0, 0]]
    """

    _activity = "initialization"

    def by_scalars(self, *coords: int) -> ScalarInitializationCursor:
        return self._open(ScalarInitializationCursor, self._dimensions.num_dimensions, coords)

    def by_vectors(self, *coords: int) -> VectorInitializationCursor:
        rank = self._dimensions.num_dimensions
        if rank < 1:
            raise InvalidArgumentError("Cannot initialize a scalar with vectors")
        return self._open(VectorInitializationCursor, rank - 1, coords)

    def by_elements(self, dimension_idx: int, *coords: int) -> ElementInitializationCursor:
        """Initialize the elements of dimension ``dimension_idx`` one after the other.

        ``coords``, if given, are the coordinates of the first element to write and must
        have ``dimension_idx + 1`` values.
        """
        rank = self._dimensions.num_dimensions
        if not 0 <= dimension_idx < rank:
            raise InvalidArgumentError(
                f"Invalid dimension {dimension_idx} for an array of shape {self._dimensions.shape}"
            )
        return self._open(ElementInitializationCursor, dimension_idx + 1, coords)
