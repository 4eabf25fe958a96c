from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from ndspace.core.config import default_dtype
from ndspace.errors import BoundsCheckError, InvalidArgumentError

if TYPE_CHECKING:
    from typing import Self


class DataBuffer:
    """A flat, typed container addressed by linear offsets.

    The buffer is backed by a 1-D NumPy array. Views returned by :meth:`offset` and
    :meth:`narrow` share that array, so writes through one are visible through the others.

    Parameters
    ----------
    array : ndarray
        One-dimensional array to wrap, without copying.

    Examples
    --------
    >>> buf = DataBuffer.allocate(4, dtype="int32")
    >>> buf.set_at(1, 10)
    >>> buf.offset(1).get_at(0)
    10
    """

    def __init__(self, array: npt.NDArray[Any]) -> None:
        if array.ndim != 1:
            raise InvalidArgumentError(
                f"array must be one-dimensional. Got array with {array.ndim} dimensions instead"
            )
        self._data = array

    @classmethod
    def allocate(
        cls, size: int, dtype: npt.DTypeLike | None = None, fill_value: Any | None = None
    ) -> Self:
        """Create a new buffer of ``size`` elements, zeroed unless ``fill_value`` is given."""
        if size < 0:
            raise InvalidArgumentError(f"Buffer size must be non-negative, got {size}")
        dtype = default_dtype() if dtype is None else np.dtype(dtype)
        if fill_value is None:
            return cls(np.zeros(size, dtype=dtype))
        return cls(np.full(size, fill_value, dtype=dtype))

    @classmethod
    def wrap(cls, data: npt.ArrayLike, dtype: npt.DTypeLike | None = None) -> Self:
        """Wrap array-like data, flattened in row-major order.

        Contiguous NumPy arrays are shared; anything else is copied.
        """
        if isinstance(data, DataBuffer):
            return cls(data.as_numpy_array())
        return cls(np.ravel(np.asarray(data, dtype=dtype)))

    @property
    def dtype(self) -> np.dtype[Any]:
        return self._data.dtype

    @property
    def size(self) -> int:
        return int(self._data.shape[0])

    def __len__(self) -> int:
        return self.size

    def as_numpy_array(self) -> npt.NDArray[Any]:
        """The backing 1-D array (not a copy)."""
        return self._data

    def _check(self, index: int) -> int:
        if not 0 <= index < self.size:
            raise BoundsCheckError(index, self.size)
        return index

    def get_at(self, index: int) -> Any:
        return self._data.item(self._check(index))

    def set_at(self, index: int, value: Any) -> None:
        self._data[self._check(index)] = value

    def read(self, dst: DataBuffer | npt.NDArray[Any]) -> None:
        """Copy the whole content of this buffer to the beginning of ``dst``."""
        out = as_flat_output(dst)
        if out.shape[0] < self.size:
            raise InvalidArgumentError(
                f"destination of size {out.shape[0]} is too small for buffer of size {self.size}"
            )
        out[: self.size] = self._data

    def write(self, src: DataBuffer | npt.ArrayLike) -> None:
        """Copy ``src`` to the beginning of this buffer."""
        data = src.as_numpy_array() if isinstance(src, DataBuffer) else np.ravel(src)
        if data.shape[0] > self.size:
            raise InvalidArgumentError(
                f"source of size {data.shape[0]} does not fit in buffer of size {self.size}"
            )
        self._data[: data.shape[0]] = data

    def offset(self, index: int) -> Self:
        """View of this buffer starting at ``index``."""
        if not 0 <= index <= self.size:
            raise BoundsCheckError(index, self.size)
        return type(self)(self._data[index:])

    def narrow(self, size: int) -> Self:
        """View of the first ``size`` elements of this buffer."""
        if not 0 <= size <= self.size:
            raise BoundsCheckError(size, self.size)
        return type(self)(self._data[:size])

    def fill(self, value: Any) -> None:
        self._data.fill(value)

    def copy(self) -> Self:
        return type(self)(self._data.copy())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataBuffer):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self._data, other._data))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<DataBuffer size={self.size} dtype={self.dtype}>"


def as_flat_output(dst: DataBuffer | npt.NDArray[Any]) -> npt.NDArray[Any]:
    """1-D view of a destination buffer or C-contiguous NumPy array."""
    if isinstance(dst, DataBuffer):
        return dst.as_numpy_array()
    if not isinstance(dst, np.ndarray) or not dst.flags.c_contiguous:
        raise InvalidArgumentError(
            "destination must be a DataBuffer or a C-contiguous NumPy array, "
            f"got {type(dst).__name__}"
        )
    return dst.reshape(-1)
