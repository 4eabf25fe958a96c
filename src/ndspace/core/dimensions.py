from __future__ import annotations

from collections.abc import MutableSequence, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from ndspace.core.common import Coords, product
from ndspace.core.indexing import All, Index, err_too_many_indices
from ndspace.core.shape import Shape
from ndspace.errors import BoundsCheckError, IllegalRankError, InvalidSelectionError


@dataclass(frozen=True)
class Dimension:
    """One axis of a dimensional space.

    Attributes
    ----------
    size
        Number of elements along the axis.
    stride
        Distance, in linear positions, between two consecutive elements of the axis.
    """

    size: int
    stride: int


def row_major_strides(sizes: Sequence[int]) -> tuple[int, ...]:
    strides = []
    stride = 1
    for size in reversed(sizes):
        strides.append(stride)
        stride *= size
    return tuple(reversed(strides))


@dataclass(frozen=True)
class DimensionalSpace:
    """Maps the coordinates of an array to positions in its linear storage.

    A space created from a shape has row-major strides and a zero offset. Spaces derived
    with :meth:`map_to` or :meth:`element_space` are relative: their strides and offset are
    expressed in the linear positions of the space they were derived from, so every view
    of an array addresses the same storage.

    The position of ``coords`` is ``offset + sum(coords[i] * dimensions[i].stride)``, valid
    only for ``0 <= coords[i] < dimensions[i].size``.
    """

    dimensions: tuple[Dimension, ...]
    offset: int = 0

    @classmethod
    def create(cls, shape: Shape | Sequence[int]) -> DimensionalSpace:
        if not isinstance(shape, Shape):
            shape = Shape(shape)
        strides = row_major_strides(shape.dims)
        return cls(tuple(Dimension(s, st) for s, st in zip(shape.dims, strides, strict=True)))

    @property
    def shape(self) -> Shape:
        return Shape(tuple(d.size for d in self.dimensions))

    @property
    def num_dimensions(self) -> int:
        return len(self.dimensions)

    @property
    def size(self) -> int:
        return product(d.size for d in self.dimensions)

    @property
    def strides(self) -> tuple[int, ...]:
        return tuple(d.stride for d in self.dimensions)

    def __getitem__(self, i: int) -> Dimension:
        return self.dimensions[i]

    def __len__(self) -> int:
        return len(self.dimensions)

    def is_contiguous(self) -> bool:
        """True if elements are laid out row-major with no gap between them."""
        expected = row_major_strides([d.size for d in self.dimensions])
        return all(
            d.size <= 1 or d.stride == s for d, s in zip(self.dimensions, expected, strict=True)
        )

    def position_of(self, coords: Sequence[int], *, partial: bool = False) -> int:
        """Linear position of ``coords``.

        Parameters
        ----------
        coords
            One coordinate per dimension or, if ``partial`` is set, a prefix of them
            addressing the first scalar of a leading sub-element.
        partial
            Accept fewer coordinates than dimensions.

        Raises
        ------
        IllegalRankError
            If the number of coordinates does not match the rank.
        BoundsCheckError
            If a coordinate is outside ``[0, size)`` of its dimension.
        """
        if len(coords) > len(self.dimensions) or (
            not partial and len(coords) != len(self.dimensions)
        ):
            raise IllegalRankError(tuple(coords), len(self.dimensions))
        position = self.offset
        for c, dim in zip(coords, self.dimensions, strict=False):
            if not 0 <= c < dim.size:
                raise BoundsCheckError(c, dim.size)
            position += c * dim.stride
        return position

    def map_to(self, *indices: Index) -> DimensionalSpace:
        """Derive the relative space selected by one index expression per dimension.

        Omitted trailing dimensions are selected entirely. Single-element indices drop
        their dimension from the result.
        """
        if len(indices) > len(self.dimensions):
            err_too_many_indices(indices, self.shape.dims)
        indices = indices + (All(),) * (len(self.dimensions) - len(indices))
        offset = self.offset
        dimensions = []
        for index, dim in zip(indices, self.dimensions, strict=True):
            if not isinstance(index, Index):
                raise InvalidSelectionError(f"expected an index expression, got {index!r}")
            new_dim, delta = index.apply(dim)
            offset += delta
            if new_dim is not None:
                dimensions.append(new_dim)
        return DimensionalSpace(tuple(dimensions), offset)

    def element_space(self, coords: Sequence[int]) -> DimensionalSpace:
        """Relative space of the sub-element addressed by a prefix of coordinates."""
        position = self.position_of(coords, partial=True)
        return DimensionalSpace(self.dimensions[len(coords) :], position)

    def increment_coordinates(self, coords: MutableSequence[int]) -> bool:
        """Advance ``coords`` in place to the next element, like an odometer.

        ``coords`` may be a prefix of the dimensions, in which case whole sub-elements are
        stepped over. Returns False once the last element has been passed; ``coords`` then
        points one past the end of the first dimension.
        """
        for i in range(len(coords) - 1, -1, -1):
            coords[i] += 1
            size = self.dimensions[i].size
            if coords[i] < size:
                return True
            if i == 0:
                return False
            coords[i] = 0
        return False

    def locate(self, position: int) -> Coords | None:
        """Coordinates of ``position`` in this space, or None if it is not addressable."""
        if self.size == 0:
            return None
        remainder = position - self.offset
        if remainder < 0:
            return None
        coords = []
        for dim in self.dimensions:
            c = remainder // dim.stride if dim.stride else 0
            if c >= dim.size:
                return None
            coords.append(c)
            remainder -= c * dim.stride
        if remainder != 0:
            return None
        return tuple(coords)

    def to_coordinates(self, position: int) -> Coords:
        coords = self.locate(position)
        if coords is None:
            raise BoundsCheckError(position, self.size)
        return coords

    def locate_many(
        self, positions: npt.NDArray[np.integer[Any]]
    ) -> tuple[npt.NDArray[np.bool_], npt.NDArray[np.int64]]:
        """Vectorized :meth:`locate`.

        Returns a mask of the addressable positions and their coordinates, one row per
        position (rows of unaddressable positions are meaningless).
        """
        positions = np.asarray(positions, dtype=np.int64)
        coords = np.zeros((positions.shape[0], len(self.dimensions)), dtype=np.int64)
        if self.size == 0:
            return np.zeros(positions.shape[0], dtype=bool), coords
        remainder = positions - self.offset
        mask = remainder >= 0
        for i, dim in enumerate(self.dimensions):
            c = remainder // dim.stride if dim.stride else np.zeros_like(remainder)
            mask &= c < dim.size
            coords[:, i] = c
            remainder = remainder - c * dim.stride
        mask &= remainder == 0
        return mask, coords

    def positions(self) -> npt.NDArray[np.int64]:
        """Linear positions of every element, as an array shaped like this space."""
        positions = np.asarray(self.offset, dtype=np.int64)
        rank = len(self.dimensions)
        for axis, dim in enumerate(self.dimensions):
            steps = np.arange(dim.size, dtype=np.int64) * dim.stride
            axis_shape = (1,) * axis + (dim.size,) + (1,) * (rank - axis - 1)
            positions = positions + steps.reshape(axis_shape)
        return np.broadcast_to(positions, self.shape.dims)
