from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from direction_detection.spectrum.angle_table import ANGLE_BINS, ANGLE_STEP, angle_table_for

NOISE_FLOOR_DB = 100
MIN_DIRECTION_ENERGY = 800


@dataclass(frozen=True, eq=False)
class Spectrum:
    """Power spectrum in dB laid out row-major as ``height`` rows of ``width`` values.

    Attributes
    ----------
    values:
        Flat read-only float32 array. Non-finite entries mean no energy.
    width, height:
        Grid layout. Spectra from ``SpectrumEngine`` are N/2 wide and N high.
    """

    values: np.ndarray
    width: int
    height: int

    def __post_init__(self):
        values = np.array(self.values, dtype=np.float32).ravel()
        if values.size != self.width * self.height:
            raise ValueError(
                f"{values.size} values do not fill a {self.width}x{self.height} grid"
            )
        values.flags.writeable = False
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return self.values.size

    def grid(self) -> np.ndarray:
        """(height, width) view of the values"""
        return self.values.reshape(self.height, self.width)

    def mirror(self) -> "Spectrum":
        """Same grid with the value sequence reversed"""
        return Spectrum(values=self.values[::-1], width=self.width, height=self.height)

    def to_image(self) -> np.ndarray:
        """8-bit raster for display, values truncated toward zero and clipped to [0, 255]"""
        pixels = np.nan_to_num(self.values, nan=0.0, posinf=255.0, neginf=0.0)
        pixels = np.clip(np.trunc(pixels), 0, 255).astype(np.uint8)
        return pixels.reshape(self.height, self.width)

    def _angle_table(self, angle_table):
        if angle_table is None:
            if self.width * 2 != self.height:
                raise ValueError(
                    f"No angle table geometry for a {self.width}x{self.height} spectrum"
                )
            angle_table = angle_table_for(self.height)

        if not angle_table.matches(self.width, self.height):
            raise ValueError(
                f"Angle table {angle_table.width}x{angle_table.height} does not "
                f"match spectrum {self.width}x{self.height}"
            )
        return angle_table

    def _bin_totals(self, angle_table, noise_floor_db: float) -> np.ndarray:
        table = self._angle_table(angle_table)
        values = self.values

        with np.errstate(invalid="ignore"):
            keep = table.valid & np.isfinite(values) & (values > noise_floor_db)

        energy = np.trunc(values[keep]).astype(np.int64)
        bins = (table.angles[keep].astype(np.int64) - ANGLE_BINS[0]) // ANGLE_STEP
        totals = np.zeros(len(ANGLE_BINS), dtype=np.int64)
        np.add.at(totals, bins, energy)
        return totals

    def energy_by_angle(
        self, angle_table=None, noise_floor_db: float = NOISE_FLOOR_DB
    ) -> Dict[int, int]:
        """Accumulated dB per angle sector, for sectors that received any energy"""
        totals = self._bin_totals(angle_table, noise_floor_db)
        return {angle: int(total) for angle, total in zip(ANGLE_BINS, totals) if total > 0}

    def direction(
        self,
        angle_table=None,
        noise_floor_db: float = NOISE_FLOOR_DB,
        min_energy: int = MIN_DIRECTION_ENERGY,
    ) -> Optional[int]:
        """
        Dominant direction in degrees within [-90, 90], or None if no sector is strong enough.

        Cells above the noise floor add their truncated dB value to their angle
        sector. The sector with the largest total wins, the smallest angle on
        ties, and is reported only when the total reaches ``min_energy``.
        """
        totals = self._bin_totals(angle_table, noise_floor_db)
        winner = int(np.argmax(totals))
        if totals[winner] < min_energy:
            return None
        return ANGLE_BINS[winner]
