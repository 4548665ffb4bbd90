"""
dynvol CLI entry point

  dynvol assemble - Assemble a 4D volume from slice metadata and print a summary
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .config import load_config
from .data.metadata import InMemoryMetadataProvider
from .errors import DynVolError
from .loader import DynamicVolumeLoader
from .utils.logging_config import setup_logging, get_logger

logger = get_logger("cli")


def _read_image_ids(path: Path) -> List[str]:
    """One image id per line; blank lines and #-comments are skipped"""
    with open(path, "r") as f:
        lines = (line.strip() for line in f)
        return [line for line in lines if line and not line.startswith("#")]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dynvol",
        description="dynvol - 4D streaming volume assembly",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Assemble every image id found in the metadata file
  dynvol assemble --metadata series.json

  # Promote the third phase to slot 0, using an explicit id list
  dynvol assemble --metadata series.json --image-ids ids.txt --scalar-data-index 2
        """,
    )
    parser.add_argument("--version", "-V", action="store_true", help="Print version and exit")

    subparsers = parser.add_subparsers(dest="command")

    assemble = subparsers.add_parser("assemble", help="Assemble a 4D volume and print its summary")
    assemble.add_argument(
        "--metadata", "-m",
        type=str,
        required=True,
        help="JSON file of slice metadata keyed by image id",
    )
    assemble.add_argument(
        "--image-ids", "-i",
        type=str,
        help="Text file with one image id per line (default: all ids in --metadata)",
    )
    assemble.add_argument(
        "--volume-id",
        type=str,
        default="dynvol:volume",
        help="Volume id (default: dynvol:volume)",
    )
    assemble.add_argument(
        "--scalar-data-index", "-s",
        type=int,
        help="Phase to promote to slot 0",
    )
    assemble.add_argument(
        "--strategy",
        type=str,
        choices=["uniform", "size_aware"],
        help="Phase promotion strategy (overrides config)",
    )
    assemble.add_argument(
        "--config", "-c",
        type=str,
        help="Path to configuration YAML file",
    )
    assemble.add_argument(
        "--log-file",
        type=str,
        help="Also write logs to this file",
    )
    assemble.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging",
    )
    return parser


def run_assemble(args: argparse.Namespace) -> int:
    overrides = {}
    if args.strategy:
        overrides["reorder"] = {"strategy": args.strategy}
    if args.verbose:
        overrides["logging"] = {"level": "DEBUG"}
    if args.log_file:
        overrides.setdefault("logging", {})["log_file"] = args.log_file

    config = load_config(args.config, overrides=overrides)
    setup_logging(config.logging.level, config.logging.log_file)

    provider = InMemoryMetadataProvider.from_json(args.metadata)
    if args.image_ids:
        image_ids = _read_image_ids(Path(args.image_ids))
    else:
        image_ids = provider.image_ids()

    options = {"image_ids": image_ids}
    if args.scalar_data_index is not None:
        options["scalar_data_index"] = args.scalar_data_index

    loader = DynamicVolumeLoader.from_metadata_provider(provider, config=config)
    handle = loader.load(args.volume_id, options)
    volume = handle.promise.result()

    print(json.dumps(volume.summary(), indent=2))
    handle.decache()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from . import __version__
        print(f"dynvol {__version__}")
        return 0

    if args.command != "assemble":
        parser.print_help()
        return 1

    try:
        return run_assemble(args)
    except (DynVolError, FileNotFoundError) as e:
        logger.error(f"Assembly failed: {e}")
        print(f"dynvol: error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
