"""
Angular quantization of the half-plane spectrum grid.

Each cell of the (N/2) x N spectrum grid is assigned the 10-degree sector its
polar angle falls into, measured from the vertical mid-line (row N/2). Cells
further than N/2 from the centre carry no direction.

     y = 0      ┌──────────┐  +90
                │ ╲        │
     y = N/2    ●──────────┤    0
                │ ╱        │
     y = N-1    └──────────┘  -90
                x = 0    x = N/2 - 1
"""

from functools import lru_cache
from typing import Optional

import numpy as np

from direction_detection.errors import ConfigurationError

ANGLE_STEP = 10
ANGLE_BINS = tuple(range(-90, 91, ANGLE_STEP))
DEFAULT_EPSILON = 1e-5
INVALID_BIN = np.iinfo(np.int64).min


def _check_image_size(image_size: int) -> int:
    size = int(image_size)
    if size < 2 or size & (size - 1):
        raise ConfigurationError(f"Image size must be a power of two >= 2, got {image_size}")
    return size


def _round_half_away(values: np.ndarray) -> np.ndarray:
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def _round_tenths(numerator: np.ndarray) -> np.ndarray:
    """round(numerator / 10) * 10 with halves going away from zero, in integers"""
    return np.sign(numerator) * ((np.abs(numerator) + 5) // 10) * ANGLE_STEP


def quantize_angle(raw):
    """
    Map integer angles in degrees to their 10-degree sector.

    Angles outside [-90, 90] have no sector: a scalar gives None, an array
    holds INVALID_BIN at those positions.
    """
    raw_arr = np.asarray(raw, dtype=np.int64)
    bins = np.select(
        [
            (raw_arr >= -90) & (raw_arr <= -85),
            (raw_arr >= -84) & (raw_arr <= 0),
            (raw_arr >= 1) & (raw_arr <= 85),
            (raw_arr >= 86) & (raw_arr <= 90),
        ],
        [
            np.full_like(raw_arr, 90),
            _round_tenths(raw_arr + 1),
            _round_tenths(raw_arr - 1),
            np.full_like(raw_arr, 90),
        ],
        default=INVALID_BIN,
    )

    if np.ndim(raw) == 0:
        value = int(bins)
        return None if value == INVALID_BIN else value
    return bins


class AngleTable:
    """Read-only lookup from spectrum cell index to quantized direction"""

    def __init__(self, image_size: int, angles: np.ndarray, valid: np.ndarray):
        self.image_size = _check_image_size(image_size)
        self.width = self.image_size // 2
        self.height = self.image_size

        count = self.width * self.height
        angles = np.ascontiguousarray(angles, dtype=np.int16).ravel()
        valid = np.ascontiguousarray(valid, dtype=bool).ravel()
        if angles.size != count or valid.size != count:
            raise ValueError(
                f"Angle table for size {self.image_size} needs {count} cells, "
                f"got {angles.size} angles and {valid.size} flags"
            )

        # Invalid cells hold 0 so the array stays usable for indexing
        angles = np.where(valid, angles, 0).astype(np.int16)
        angles.flags.writeable = False
        valid = valid.copy()
        valid.flags.writeable = False

        self.angles = angles
        self.valid = valid

    def __len__(self) -> int:
        return self.angles.size

    def __repr__(self) -> str:
        return (
            f"AngleTable(image_size={self.image_size}, "
            f"shape=({self.height}, {self.width}), valid={self.valid_count})"
        )

    @property
    def valid_count(self) -> int:
        return int(np.count_nonzero(self.valid))

    @property
    def shape(self):
        return (self.height, self.width)

    def angle_at(self, index: int) -> Optional[int]:
        """Return the quantized angle at a linear index, or None outside the radius"""
        if not self.valid[index]:
            return None
        return int(self.angles[index])

    def matches(self, width: int, height: int) -> bool:
        return self.width == width and self.height == height


def build_angle_table(image_size: int, epsilon: float = DEFAULT_EPSILON) -> AngleTable:
    """Compute the angle table for an N x N image (grid of N/2 columns by N rows)"""
    size = _check_image_size(image_size)
    if not epsilon > 0:
        raise ConfigurationError(f"epsilon must be positive, got {epsilon}")

    half = size // 2
    y, x = np.mgrid[0:size, 0:half]
    x_shifted = x + epsilon
    y_centred = (half - y).astype(np.float64)

    inside = np.hypot(x_shifted, y_centred) <= half
    raw = _round_half_away(np.degrees(np.arctan(y_centred / x_shifted))).astype(np.int64)
    bins = quantize_angle(raw)
    in_range = (raw >= -90) & (raw <= 90)

    return AngleTable(size, np.where(in_range, bins, 0), inside & in_range)


@lru_cache(maxsize=None)
def angle_table_for(image_size: int) -> AngleTable:
    """Shared table for an image size, built on first request"""
    return build_angle_table(image_size)
