"""Tests for Spectrum: mirror, direction estimation and raster conversion."""

from __future__ import annotations

import numpy as np
import pytest

from direction_detection.spectrum.angle_table import angle_table_for
from direction_detection.spectrum.spectrum import Spectrum

N = 64


def _cells(angle: int, n: int = N) -> np.ndarray:
    table = angle_table_for(n)
    return np.flatnonzero(table.valid & (table.angles == angle))


def _spectrum(values: np.ndarray, n: int = N) -> Spectrum:
    return Spectrum(values=values, width=n // 2, height=n)


def _zeros(n: int = N) -> np.ndarray:
    return np.zeros((n // 2) * n, dtype=np.float32)


# -----------------------------------------------------------------------
# Value semantics
# -----------------------------------------------------------------------


def test_values_must_fill_grid() -> None:
    with pytest.raises(ValueError):
        Spectrum(values=np.zeros(10), width=4, height=4)


def test_values_are_read_only_copies() -> None:
    source = np.arange(8, dtype=np.float32)
    spectrum = Spectrum(values=source, width=2, height=4)

    source[0] = 99.0
    assert spectrum.values[0] == 0.0
    with pytest.raises(ValueError):
        spectrum.values[0] = 1.0


def test_grid_layout_is_row_major() -> None:
    spectrum = Spectrum(values=np.arange(6), width=3, height=2)
    assert spectrum.grid().tolist() == [[0, 1, 2], [3, 4, 5]]


def test_mirror_reverses_sequence() -> None:
    spectrum = Spectrum(values=np.arange(6), width=3, height=2)
    mirrored = spectrum.mirror()

    assert mirrored.values.tolist() == [5, 4, 3, 2, 1, 0]
    assert (mirrored.width, mirrored.height) == (3, 2)


def test_mirror_is_involution() -> None:
    rng = np.random.default_rng(3)
    values = rng.normal(80.0, 30.0, size=(N // 2) * N).astype(np.float32)
    values[::7] = -np.inf
    spectrum = _spectrum(values)

    twice = spectrum.mirror().mirror()
    np.testing.assert_array_equal(twice.values, spectrum.values)
    assert (twice.width, twice.height) == (spectrum.width, spectrum.height)


# -----------------------------------------------------------------------
# Direction estimation
# -----------------------------------------------------------------------


def test_values_below_noise_floor_give_no_direction() -> None:
    spectrum = _spectrum(np.full((N // 2) * N, 50.0))
    assert spectrum.direction() is None
    assert spectrum.energy_by_angle() == {}


def test_noise_floor_is_exclusive() -> None:
    spectrum = _spectrum(np.full((N // 2) * N, 100.0))
    assert spectrum.direction() is None


def test_concentrated_zero_sector() -> None:
    table = angle_table_for(N)
    values = np.where(table.valid & (table.angles == 0), 200.0, 0.0)
    assert _spectrum(values).direction() == 0


def test_threshold_just_below() -> None:
    values = _zeros()
    cells = _cells(0)
    values[cells[:6]] = 101.0
    values[cells[6]] = 193.0
    spectrum = _spectrum(values)

    assert spectrum.energy_by_angle() == {0: 799}
    assert spectrum.direction() is None


def test_threshold_reached_with_truncated_values() -> None:
    values = _zeros()
    values[_cells(0)[:8]] = 100.5
    spectrum = _spectrum(values)

    assert spectrum.energy_by_angle() == {0: 800}
    assert spectrum.direction() == 0


def test_strongest_sector_wins() -> None:
    values = _zeros()
    values[_cells(0)[:8]] = 120.0
    values[_cells(40)] = 150.0
    values[_cells(-70)[:5]] = 250.0

    assert _spectrum(values).direction() == 40


def test_ties_resolve_to_smallest_angle() -> None:
    values = _zeros()
    values[_cells(20)[:8]] = 150.0
    values[_cells(-30)[:8]] = 150.0
    spectrum = _spectrum(values)

    assert spectrum.energy_by_angle() == {-30: 1200, 20: 1200}
    assert spectrum.direction() == -30


def test_non_finite_values_are_ignored() -> None:
    values = _zeros()
    cells = _cells(10)
    values[cells[: len(cells) // 2]] = np.inf
    values[cells[len(cells) // 2 :]] = np.nan
    values[_cells(-10)] = -np.inf

    assert _spectrum(values).direction() is None


def test_cells_outside_radius_are_ignored() -> None:
    table = angle_table_for(N)
    values = np.where(table.valid, 0.0, 250.0)
    assert _spectrum(values).direction() is None


def test_custom_thresholds() -> None:
    values = _zeros()
    values[_cells(50)[:3]] = 60.0
    spectrum = _spectrum(values)

    assert spectrum.direction() is None
    assert spectrum.direction(noise_floor_db=50, min_energy=180) == 50
    assert spectrum.direction(noise_floor_db=50, min_energy=181) is None


def test_explicit_table_must_match_geometry() -> None:
    spectrum = _spectrum(_zeros())
    assert spectrum.direction(angle_table_for(N)) is None
    with pytest.raises(ValueError):
        spectrum.direction(angle_table_for(N // 2))


def test_direction_needs_half_width_geometry() -> None:
    with pytest.raises(ValueError):
        Spectrum(values=np.zeros(9), width=3, height=3).direction()


# -----------------------------------------------------------------------
# Raster conversion
# -----------------------------------------------------------------------


def test_to_image_truncates_and_clips() -> None:
    spectrum = Spectrum(
        values=np.array([1.9, -3.0, 300.0, np.nan, -np.inf, 255.9]), width=3, height=2
    )
    image = spectrum.to_image()

    assert image.dtype == np.uint8
    assert image.tolist() == [[1, 0, 255], [0, 0, 255]]


def test_mirrored_image_is_point_reflection() -> None:
    spectrum = Spectrum(values=np.arange(6), width=3, height=2)
    np.testing.assert_array_equal(spectrum.mirror().to_image(), spectrum.to_image()[::-1, ::-1])
