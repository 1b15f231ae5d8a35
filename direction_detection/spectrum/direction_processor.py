import logging
from typing import Any, Dict

import numpy as np

from direction_detection.errors import InvalidImageError
from direction_detection.processor import BaseProcessor
from direction_detection.spectrum.angle_table import angle_table_for
from direction_detection.spectrum.engine import DEFAULT_IMAGE_SIZE, SpectrumEngine
from direction_detection.spectrum.spectrum import MIN_DIRECTION_ENERGY, NOISE_FLOOR_DB

logger = logging.getLogger(__name__)


class DirectionProcessor(BaseProcessor):
    """Processor estimating the dominant texture direction from the power spectrum"""

    def setup(self, **kwargs):
        self.image_size = kwargs.get("image_size", DEFAULT_IMAGE_SIZE)
        self.noise_floor_db = kwargs.get("noise_floor_db", NOISE_FLOOR_DB)
        self.min_energy = kwargs.get("min_energy", MIN_DIRECTION_ENERGY)

        self.angle_table = kwargs.get("angle_table")
        if self.angle_table is None:
            self.angle_table = angle_table_for(self.image_size)
        if self.angle_table.image_size != self.image_size:
            raise ValueError(
                f"Angle table is for size {self.angle_table.image_size}, "
                f"processor for {self.image_size}"
            )

        self.engine = SpectrumEngine(self.image_size)

    def process_frame(self, frame: np.ndarray, timestamp: float) -> Dict[str, Any]:
        """Convert the frame and estimate its direction"""
        try:
            spectrum = self.engine.convert(frame)
        except InvalidImageError as exc:
            self.frames_skipped += 1
            logger.warning("Skipping frame at %.3f: %s", timestamp, exc)
            return {
                "direction": None,
                "spectrum": None,
                "mirrored": None,
                "timestamp": timestamp,
                "error": str(exc),
            }

        self.frames_processed += 1
        direction = spectrum.direction(
            self.angle_table,
            noise_floor_db=self.noise_floor_db,
            min_energy=self.min_energy,
        )
        logger.debug("Frame at %.3f: direction %s", timestamp, direction)

        return {
            "direction": direction,
            "spectrum": spectrum,
            "mirrored": spectrum.mirror(),
            "timestamp": timestamp,
            "error": None,
        }

    def visualize(self, frame: np.ndarray, results: Dict[str, Any]) -> Dict[str, np.ndarray]:
        """Spectrum rasters; nothing for skipped frames"""
        if results["spectrum"] is None:
            return {}
        return {
            "spectrum": results["spectrum"].to_image(),
            "mirrored_spectrum": results["mirrored"].to_image(),
        }

    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        if results["spectrum"] is None:
            status = "rejected"
        elif results["direction"] is None:
            status = "no_direction"
        else:
            status = "ok"
        return {"status": status, "direction_deg": results["direction"]}

    def get_output_specs(self) -> Dict[str, Dict[str, Any]]:
        """Return output file specifications"""
        return {
            "spectrum": {
                "type": "image",
                "description": "Power spectrum in dB, zero vertical frequency centred",
            },
            "mirrored_spectrum": {
                "type": "image",
                "description": "Power spectrum with the value order reversed",
            },
        }

    def close(self):
        self.engine.close()
