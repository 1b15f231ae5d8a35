"""
Power spectrum of a prepared square frame

   uint8 N x N ──► float32 ──► DFT(2D) ──► keep N/2 columns ──► |F| ──► dB ──► swap halves
"""

import logging
from typing import Tuple

import cv2
import numpy as np

from direction_detection.errors import (
    ConfigurationError,
    EngineClosedError,
    InvalidImageError,
)
from direction_detection.spectrum.spectrum import Spectrum

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_SIZE = 256
ZERO_REFERENCE = 1.0
# Packed real-input transforms report twice the mathematical DFT amplitude,
# the dB thresholds downstream are calibrated against that scale.
PACKED_SCALE = 2.0


class SpectrumEngine:
    """Converts N x N single-channel frames into dB power spectra.

    The engine owns its transform buffers and reuses them across calls, so a
    single instance must only run one ``convert`` at a time.
    """

    def __init__(self, image_size: int = DEFAULT_IMAGE_SIZE):
        size = int(image_size)
        if size < 2 or size & (size - 1):
            raise ConfigurationError(
                f"Image size must be a power of two >= 2, got {image_size}"
            )
        if cv2.getOptimalDFTSize(size) != size:
            raise ConfigurationError(f"No efficient DFT plan for size {size}")

        self._image_size = size
        try:
            self._samples = np.zeros((size, size), dtype=np.float32)
            self._dft = np.zeros((size, size, 2), dtype=np.float32)
        except MemoryError as exc:
            raise ConfigurationError(
                f"Cannot allocate transform buffers for size {size}"
            ) from exc

        self._closed = False
        logger.debug("Spectrum engine ready for %dx%d frames", size, size)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def image_size(self) -> int:
        return self._image_size

    @property
    def spectrum_shape(self) -> Tuple[int, int]:
        """(height, width) of the spectra this engine produces"""
        return self._image_size, self._image_size // 2

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Release the transform buffers; later calls are no-ops"""
        if self._closed:
            return
        self._samples = None
        self._dft = None
        self._closed = True
        logger.debug("Spectrum engine for size %d released", self._image_size)

    def _validate(self, image) -> np.ndarray:
        if image is None or not isinstance(image, np.ndarray):
            raise InvalidImageError("Pixel buffer unavailable")

        if image.ndim == 3 and image.shape[2] == 1:
            image = image[:, :, 0]
        if image.ndim != 2:
            raise InvalidImageError(
                f"Expected a single-channel image, got shape {image.shape}"
            )
        if image.dtype != np.uint8:
            raise InvalidImageError(f"Expected 8-bit samples, got {image.dtype}")

        h, w = image.shape
        if h != self._image_size or w != self._image_size:
            raise InvalidImageError(
                f"Expected a {self._image_size}x{self._image_size} image, got {w}x{h}"
            )
        return image

    def convert(self, image: np.ndarray) -> Spectrum:
        """Return the centred dB power spectrum of an N x N uint8 frame.

        Raises InvalidImageError, leaving no partial result, when the frame
        does not match the configured size or layout.
        """
        if self._closed:
            raise EngineClosedError("Spectrum engine has been closed")

        image = self._validate(image)
        size = self._image_size
        half = size // 2

        np.copyto(self._samples, image)
        transformed = cv2.dft(self._samples, dst=self._dft, flags=cv2.DFT_COMPLEX_OUTPUT)

        # Real input is conjugate symmetric, the first N/2 columns carry it all
        real, imag = cv2.split(np.ascontiguousarray(transformed[:, :half]))
        amplitude = cv2.magnitude(real, imag) * np.float32(PACKED_SCALE)

        with np.errstate(divide="ignore"):
            decibels = np.float32(20.0) * np.log10(amplitude / np.float32(ZERO_REFERENCE))

        flat = decibels.astype(np.float32).ravel()
        centred = np.concatenate((flat[flat.size // 2 :], flat[: flat.size // 2]))

        return Spectrum(values=centred, width=half, height=size)
