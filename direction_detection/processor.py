from abc import ABC, abstractmethod
from typing import Any, Dict

import numpy as np


class BaseProcessor(ABC):
    """Abstract base class for per-frame analysers driven by FramePipeline"""

    def __init__(self, name: str, **kwargs):
        self.name = name
        self.kwargs = kwargs
        self.frames_processed = 0
        self.frames_skipped = 0
        self.setup(**kwargs)

    @abstractmethod
    def setup(self, **kwargs):
        """Read processor options and acquire resources"""
        pass

    @abstractmethod
    def process_frame(self, frame: np.ndarray, timestamp: float) -> Dict[str, Any]:
        """Analyse one frame; a frame that cannot be analysed is reported, not raised"""
        pass

    @abstractmethod
    def visualize(self, frame: np.ndarray, results: Dict[str, Any]) -> Dict[str, np.ndarray]:
        """Images to write for a frame, keyed by output name"""
        pass

    @abstractmethod
    def summarize(self, results: Dict[str, Any]) -> Dict[str, Any]:
        """Flat row describing a frame's results for the pipeline's table"""
        pass

    @abstractmethod
    def get_output_specs(self) -> Dict[str, Dict[str, Any]]:
        """Return specifications for output files this processor generates"""
        pass

    def reset(self):
        """Reset processor state before a run"""
        self.frames_processed = 0
        self.frames_skipped = 0

    def close(self):
        """Release resources held by the processor"""
        pass
