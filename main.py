import argparse
import logging

from direction_detection.logging_config import setup_logging
from direction_detection.pipeline import FramePipeline
from direction_detection.spectrum.direction_processor import DirectionProcessor


def main():
    parser = argparse.ArgumentParser(
        description="Estimate the dominant texture direction of prepared square frames."
    )
    parser.add_argument(
        "--input",
        "-i",
        type=str,
        required=True,
        help="Frame file or directory of N x N 8-bit grayscale frames.",
    )
    parser.add_argument(
        "--output_dir",
        "-o",
        type=str,
        default="./output",
        help="Directory to save spectra and the per-frame direction table.",
    )
    parser.add_argument(
        "--image_size",
        "-n",
        type=int,
        default=256,
        help="Frame side length N (a power of two).",
    )
    parser.add_argument(
        "--no_images",
        action="store_true",
        help="Only write the direction table, not the spectrum images.",
    )
    parser.add_argument(
        "--log_level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    parser.add_argument("--log_file", type=str, default=None, help="Optional log file.")
    args = parser.parse_args()

    setup_logging(getattr(logging, args.log_level), args.log_file)

    pipeline = FramePipeline(args.input, args.output_dir, save_images=not args.no_images)
    pipeline.add_processor(DirectionProcessor(name="direction", image_size=args.image_size))

    try:
        tables = pipeline.run()
    finally:
        pipeline.close()

    for df in tables.values():
        print(df.to_string(index=False))


if __name__ == "__main__":
    main()
