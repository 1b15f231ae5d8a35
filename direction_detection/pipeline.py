import logging
import time
from pathlib import Path
from typing import Dict, List, Union

import cv2
import pandas as pd
from tqdm import tqdm

from direction_detection.processor import BaseProcessor

logger = logging.getLogger(__name__)

FRAME_SUFFIXES = (".png", ".bmp", ".tif", ".tiff", ".jpg", ".jpeg", ".pgm")


def collect_frames(source: Union[str, Path]) -> List[Path]:
    """Frame files under a directory (sorted by name), or the single file given"""
    source = Path(source)
    if source.is_dir():
        return sorted(
            p for p in source.iterdir() if p.is_file() and p.suffix.lower() in FRAME_SUFFIXES
        )
    if source.is_file():
        return [source]
    raise FileNotFoundError(f"Frame source not found: {source}")


class FramePipeline:
    """Runs processors over prepared frames and collects their results"""

    def __init__(
        self,
        source: Union[str, Path],
        output_dir: Union[str, Path] = "./output",
        save_images: bool = True,
    ):
        self.source = source
        self.output_dir = Path(output_dir)
        self.save_images = save_images
        self.processors: List[BaseProcessor] = []

        self.frames: List[Path] = []
        self.image_dirs: Dict[str, Path] = {}

    def add_processor(self, processor: BaseProcessor):
        """Add a processor to the pipeline"""
        self.processors.append(processor)

    def setup_io(self):
        """Find input frames and create output folders"""
        self.frames = collect_frames(self.source)
        if not self.frames:
            raise FileNotFoundError(f"No frames found in {self.source}")

        self.output_dir.mkdir(parents=True, exist_ok=True)

        for processor in self.processors:
            processor_dir = self.output_dir / processor.name
            processor_dir.mkdir(parents=True, exist_ok=True)

            if not self.save_images:
                continue
            for output_name, spec in processor.get_output_specs().items():
                if spec["type"] == "image":
                    image_dir = processor_dir / output_name
                    image_dir.mkdir(parents=True, exist_ok=True)
                    self.image_dirs[f"{processor.name}_{output_name}"] = image_dir

    def run(self) -> Dict[str, pd.DataFrame]:
        """Run every processor over every frame; returns one results table per processor"""
        self.setup_io()

        for processor in self.processors:
            processor.reset()

        rows: Dict[str, List[dict]] = {processor.name: [] for processor in self.processors}

        for index, frame_path in enumerate(tqdm(self.frames, desc="Processing")):
            frame = cv2.imread(str(frame_path), cv2.IMREAD_UNCHANGED)
            timestamp = time.time()

            for processor in self.processors:
                row = {"frame": index, "source": frame_path.name}

                if frame is None:
                    logger.warning("Could not read %s", frame_path)
                    row.update({"status": "unreadable", "direction_deg": None})
                    rows[processor.name].append(row)
                    continue

                results = processor.process_frame(frame, timestamp)
                row.update(processor.summarize(results))
                rows[processor.name].append(row)

                for output_name, image in processor.visualize(frame, results).items():
                    image_dir = self.image_dirs.get(f"{processor.name}_{output_name}")
                    if image_dir is not None:
                        cv2.imwrite(str(image_dir / f"{frame_path.stem}.png"), image)

        tables = {}
        for processor in self.processors:
            df = pd.DataFrame(rows[processor.name])
            if "direction_deg" in df:
                df["direction_deg"] = df["direction_deg"].astype("Int64")
            csv_path = self.output_dir / processor.name / "directions.csv"
            df.to_csv(csv_path, index=False)
            tables[processor.name] = df

            logger.info(
                "%s: %d frames analysed, %d skipped, results in %s",
                processor.name,
                processor.frames_processed,
                processor.frames_skipped,
                csv_path,
            )

        return tables

    def close(self):
        for processor in self.processors:
            processor.close()
