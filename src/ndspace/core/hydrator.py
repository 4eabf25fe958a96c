from __future__ import annotations

from typing import Self

from ndspace.core.cursor import Cursor, ElementCursor, Population, ScalarCursor, VectorCursor
from ndspace.errors import InvalidArgumentError


class HydrationCursor(Cursor):
    def at(self, *coords: int) -> Self:
        """Move the cursor forward to the unit at ``coords``.

        Raises
        ------
        IllegalRankError
            If ``coords`` are not the coordinates of a unit of this cursor.
        BackwardMoveError
            If ``coords`` are before the current position.
        """
        return self._move(coords)


class ScalarHydrationCursor(ScalarCursor, HydrationCursor):
    pass


class VectorHydrationCursor(VectorCursor, HydrationCursor):
    pass


class ElementHydrationCursor(ElementCursor, HydrationCursor):
    pass


class Hydrator(Population):
    """Sequential population of a freshly allocated array.

    Each ``by_*`` method opens a cursor at ``coords``, or right after the last unit written
    if none are given, and makes it the only usable cursor of this hydrator. Cursors are
    moved forward with ``at``.

    Examples
    --------
    >>> import ndspace
    >>> arr = ndspace.zeros((3, 2), dtype="int64")
    >>> with arr.hydrate() as hydrator:
    ...     cursor = hydrator.by_scalars().put(10).put(20).put(30).at(2, 1).put(40)
    >>> arr.to_numpy().tolist()
    [[10, 20], [30, 0], [0, 40]]
    """

    _activity = "hydration"

    def by_scalars(self, *coords: int) -> ScalarHydrationCursor:
        """Hydrate scalar by scalar, starting at the scalar at ``coords``."""
        return self._open(ScalarHydrationCursor, self._dimensions.num_dimensions, coords)

    def by_vectors(self, *coords: int) -> VectorHydrationCursor:
        """Hydrate vector by vector along the last dimension.

        A vector shorter than the last dimension leaves the remaining values untouched.
        """
        rank = self._dimensions.num_dimensions
        if rank < 1:
            raise InvalidArgumentError("Cannot hydrate a scalar with vectors")
        return self._open(VectorHydrationCursor, rank - 1, coords)

    def by_elements(self, *coords: int) -> ElementHydrationCursor:
        """Hydrate element by element.

        The elements are the sub-arrays addressed by ``coords``, or the elements of the
        first dimension if no coordinates are given.
        """
        rank = self._dimensions.num_dimensions
        depth = len(coords) if coords else 1
        if not 1 <= depth <= rank:
            raise InvalidArgumentError(
                f"{coords!r} are not valid element coordinates for an array of shape "
                f"{self._dimensions.shape}"
            )
        return self._open(ElementHydrationCursor, depth, coords)
