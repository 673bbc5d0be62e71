from __future__ import annotations

from typing import Callable, Optional

import numpy as np
import pytest

from tryon_engine.models import BoundingBox, LandmarkSet
from tryon_engine.regions import proportional_landmarks


def solid_buffer(width: int, height: int, rgb=(255, 255, 255), alpha: int = 255) -> np.ndarray:
    buffer = np.empty((height, width, 4), dtype=np.uint8)
    buffer[..., :3] = rgb
    buffer[..., 3] = alpha
    return buffer


@pytest.fixture
def white_buffer() -> np.ndarray:
    return solid_buffer(100, 100)


@pytest.fixture
def noisy_buffer() -> np.ndarray:
    rng = np.random.default_rng(1234)
    buffer = rng.integers(0, 256, size=(120, 160, 4), dtype=np.uint8)
    buffer[..., 3] = 255
    return buffer


@pytest.fixture
def make_landmarks() -> Callable[..., LandmarkSet]:
    def _make(
        face: BoundingBox,
        width: int = 100,
        height: int = 100,
        detected: bool = True,
        **overrides,
    ) -> LandmarkSet:
        base = proportional_landmarks(face, width, height, detected=detected)
        return base.model_copy(update=overrides)

    return _make


def changed_mask(before: np.ndarray, after: np.ndarray) -> np.ndarray:
    return np.any(before != after, axis=-1)


def assert_changes_within(
    before: np.ndarray,
    after: np.ndarray,
    bounds: Optional[tuple],
) -> None:
    changed = changed_mask(before, after)
    if bounds is None:
        assert not changed.any()
        return
    x0, y0, x1, y1 = bounds
    allowed = np.zeros_like(changed)
    allowed[y0:y1, x0:x1] = True
    assert not np.any(changed & ~allowed)
