"""CLI entry point for droplet erosion."""

from __future__ import annotations

import argparse
from dataclasses import fields
import logging
from pathlib import Path
import platform
import sys
import time

import numba
import numpy as np
from erosion.backends import ComputeMode
from erosion.config import DEFAULT_SEED, ErosionParameters
from erosion.engine import ErosionEngine
from erosion.errors import ComputeBackendError
from erosion.io import write_heightmap, write_json
from erosion.metrics import height_stats
from erosion.noise import generate_base_heightmap
from erosion.rng import derive_seed, make_generator


def _option_name(field_name: str) -> str:
    return "--" + field_name.replace("_", "-")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hydraulic droplet erosion on a generated heightmap")
    parser.add_argument("mode", choices=[m.value for m in ComputeMode], help="Compute backend")
    parser.add_argument("filename", help="Output raster (.png/.tif 16-bit) or .npy float heights")
    parser.add_argument("resolution", type=int, help="Heightmap side length in cells")
    parser.add_argument("iterations", type=int, help="Number of droplets to simulate")
    parser.add_argument("seed", type=int, nargs="?", default=DEFAULT_SEED, help="Random seed")

    physics = parser.add_argument_group("erosion parameters")
    defaults = ErosionParameters()
    for item in fields(ErosionParameters):
        default = getattr(defaults, item.name)
        physics.add_argument(
            _option_name(item.name),
            dest=item.name,
            type=type(default),
            default=None,
            help=f"default: {default}",
        )

    parser.add_argument("--threads", type=int, default=None, help="Worker threads for parallel mode")
    parser.add_argument("--rescale", action="store_true", help="Stretch heights to the full 16-bit range")
    parser.add_argument("--json", action="store_true", help="Write <filename>.json run metadata")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s:%(lineno)d | %(message)s",
        datefmt="%H:%M:%S",
        force=True,
    )
    logging.getLogger("numba").setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.resolution < 2:
        parser.error("resolution must be >= 2")
    if args.iterations < 0:
        parser.error("iterations must be >= 0")

    overrides = {item.name: getattr(args, item.name) for item in fields(ErosionParameters)}
    try:
        params = ErosionParameters().with_overrides(**overrides)
    except ValueError as exc:
        parser.error(str(exc))

    heights = generate_base_heightmap(args.resolution, make_generator(derive_seed(args.seed, "heightmap")))
    before = height_stats(heights)

    try:
        engine = ErosionEngine(params, mode=args.mode, seed=args.seed, threads=args.threads)
    except ComputeBackendError as exc:
        print(f"Cannot use {args.mode} backend: {exc}", file=sys.stderr)
        return 1

    with engine:
        try:
            report = engine.erode(heights, args.resolution, args.iterations)
        except ComputeBackendError as exc:
            print(f"Erosion failed on {args.mode} backend: {exc}", file=sys.stderr)
            return 1
    after = height_stats(heights)

    try:
        out_path = write_heightmap(args.filename, heights, args.resolution, rescale=args.rescale)
        if args.json:
            meta = {
                "mode": args.mode,
                "resolution": args.resolution,
                "iterations": args.iterations,
                "seed": args.seed,
                "params": params.to_dict(),
                "report": report.to_dict(),
                "heights_before": before,
                "heights_after": after,
                "generated_at_unix": time.time(),
                "python_version": platform.python_version(),
                "numpy_version": np.__version__,
                "numba_version": numba.__version__,
            }
            write_json(Path(f"{args.filename}.json"), meta)
    except (OSError, ValueError) as exc:
        print(f"Cannot save to file: {exc}", file=sys.stderr)
        return 1

    print(f"Eroded heightmap: {out_path}")
    print(
        f"Droplets: {report.iterations} ({args.mode}); "
        f"off_map={report.off_map}, stalled={report.stalled}, expired={report.lifetime_expired}"
    )
    print(
        "Heights: "
        f"min {before['min']:.4f} -> {after['min']:.4f}, "
        f"max {before['max']:.4f} -> {after['max']:.4f}, "
        f"mean {before['mean']:.5f} -> {after['mean']:.5f}"
    )
    print(f"Erosion time: {report.seconds:.3f} s ({args.resolution}x{args.resolution})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
