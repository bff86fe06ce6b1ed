"""Command-line entrypoint for the spectrogram viewer."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from spectroscape.audio import synthetic_asset
from spectroscape.config import (
    BACKENDS,
    SpectrogramConfig,
    load_default_config,
    read_overrides,
)
from spectroscape.pipeline import SpectrogramPipeline

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    defaults = load_default_config()
    parser = argparse.ArgumentParser(
        description="Looping audio asset drawn as a 3D spectrogram"
    )
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default=None,
        help=f"render back-end (default: {defaults.get('backend', 'heightfield')})",
    )
    parser.add_argument("--asset", type=str, default=None, help="audio file to loop")
    parser.add_argument(
        "--config", type=Path, default=None, help="JSON file with config overrides"
    )
    parser.add_argument(
        "--demo", action="store_true", help="use a synthetic asset instead of a file"
    )
    parser.add_argument("--bins", type=int, default=None)
    parser.add_argument("--history", type=int, default=None)
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SpectrogramConfig:
    """Back-end preset, then the --config file, then individual flags."""

    overrides = read_overrides(args.config) if args.config is not None else {}
    if args.backend is not None:
        overrides["backend"] = args.backend
    if args.bins is not None:
        overrides["bin_count"] = args.bins
    if args.history is not None:
        overrides["history_length"] = args.history
    if args.asset is not None:
        overrides["asset_path"] = args.asset
    backend = overrides.get(
        "backend", load_default_config().get("backend", "heightfield")
    )
    return SpectrogramConfig.for_backend(backend, **overrides)


def create_pipeline(
    args: argparse.Namespace, config: SpectrogramConfig
) -> SpectrogramPipeline:
    if args.demo:
        return SpectrogramPipeline(config, asset=synthetic_asset())
    pipeline = SpectrogramPipeline(config)
    if config.asset_path:
        pipeline.load_asset(Path(config.asset_path))
    else:
        logger.warning("No audio asset configured; the surface will stay flat")
    return pipeline


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    config = build_config(args)
    pipeline = create_pipeline(args, config)

    from spectroscape.viewer import SpectrogramViewer

    viewer = SpectrogramViewer(pipeline)
    viewer.run()


__all__ = ["parse_args", "build_config", "create_pipeline", "main"]
