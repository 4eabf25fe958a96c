"""
The config module is responsible for managing the configuration of ndspace and is based on the
Donfig python library.

Example:
    Sparse arrays created without an explicit default value use ``sparse.default_value``. Change
    it programmatically, temporarily with a context manager, or from the environment.

    ```python
    from ndspace.core.config import config

    with config.set({"sparse.default_value": -1}):
        ...
    ```

    ```bash
    export NDSPACE_SPARSE__LOOKUP="linear"
    ```

    The double underscore ``__`` is used to indicate nested access.

For more information, see the Donfig documentation at https://github.com/pytroll/donfig.
"""

from __future__ import annotations

from typing import Any, Literal, cast

import numpy as np
from donfig import Config as DConfig


class BadConfigError(ValueError):
    _msg = "bad Config: %r"


class Config(DConfig):  # type: ignore[misc]
    """The Config will collect configuration from config files and environment variables

    Example environment variables:
    Grabs environment variables of the form "NDSPACE_FOO__BAR_BAZ=123" and
    turns these into config variables of the form ``{"foo": {"bar-baz": 123}}``
    It transforms the key and value in the following way:

    -  Lower-cases the key text
    -  Treats ``__`` (double-underscore) as nested access
    -  Calls ``ast.literal_eval`` on the value

    """

    def reset(self) -> None:
        self.clear()
        self.refresh()


# The default configuration for ndspace
config = Config(
    "ndspace",
    defaults=[
        {
            "array": {"dtype": "float64"},
            "sparse": {"default_value": 0, "lookup": "auto"},
        }
    ],
)


SparseLookup = Literal["auto", "binary", "linear"]


def parse_sparse_lookup(data: Any) -> SparseLookup:
    if data in ("auto", "binary", "linear"):
        return cast("SparseLookup", data)
    raise BadConfigError(f"Expected one of ('auto', 'binary', 'linear'), got {data!r} instead.")


def default_dtype() -> np.dtype[Any]:
    return np.dtype(config.get("array.dtype"))


def default_sparse_value() -> Any:
    return config.get("sparse.default_value")
