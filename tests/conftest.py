from __future__ import annotations

import os
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import pytest
from hypothesis import HealthCheck, Verbosity, settings

from ndspace import SparseArray, config

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def reset_config() -> Generator[None, None, None]:
    config.reset()
    yield
    config.reset()


@pytest.fixture
def matrix() -> npt.NDArray[np.int64]:
    return np.arange(12, dtype=np.int64).reshape(3, 4)


@pytest.fixture
def sparse_matrix() -> SparseArray:
    # [[1, 0, 0, 0], [0, 0, 2, 0], [0, 0, 0, 0]]
    return SparseArray.of([(0, 0), (1, 2)], [1, 2], (3, 4))


@pytest.fixture
def sparse_cube() -> SparseArray:
    data = np.zeros((3, 4, 5), dtype=np.float64)
    data[0, 1, 2] = 1.5
    data[1, 0, 0] = 2.5
    data[1, 3, 4] = 3.5
    data[2, 2, 1] = 4.5
    return SparseArray.from_dense(data)


settings.register_profile(
    "default",
    parent=settings.get_profile("default"),
    max_examples=300,
    suppress_health_check=[HealthCheck.filter_too_much, HealthCheck.too_slow],
    deadline=None,
    verbosity=Verbosity.verbose,
)
settings.register_profile(
    "ci",
    parent=settings.get_profile("ci"),
    max_examples=300,
    derandomize=True,  # more like regression testing
    deadline=None,
    suppress_health_check=[HealthCheck.filter_too_much, HealthCheck.too_slow],
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))
