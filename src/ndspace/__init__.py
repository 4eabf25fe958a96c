from ndspace._version import version as __version__
from ndspace.core.array import DenseArray
from ndspace.core.buffer import DataBuffer
from ndspace.core.config import config
from ndspace.core.dimensions import Dimension, DimensionalSpace
from ndspace.core.hydrator import Hydrator
from ndspace.core.indexing import All, At, Indices, Range
from ndspace.core.initializer import Initializer
from ndspace.core.shape import Shape
from ndspace.core.sparse import SparseArray, SparseState
from ndspace.core.window import SparseWindow
from ndspace.creation import (
    array,
    dense,
    empty,
    full,
    ones,
    sparse,
    sparse_from_dense,
    sparse_of,
    zeros,
)

__all__ = [
    "All",
    "At",
    "DataBuffer",
    "DenseArray",
    "Dimension",
    "DimensionalSpace",
    "Hydrator",
    "Indices",
    "Initializer",
    "Range",
    "Shape",
    "SparseArray",
    "SparseState",
    "SparseWindow",
    "__version__",
    "array",
    "config",
    "dense",
    "empty",
    "full",
    "ones",
    "sparse",
    "sparse_from_dense",
    "sparse_of",
    "zeros",
]
