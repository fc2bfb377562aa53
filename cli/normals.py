# cli/normals.py
"""Surface normal estimation from depth frames stored on disk."""

from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path

import numpy as np

from geometry.depth_projection import depth_to_points
from normals import NormalsConfig, NormalsMethod, RgbdNormals
from utils.cli import Command, CommandDispatcher
from utils.config import Config
from utils.error_tracker import NormalsInputError
from utils.io import (
    load_camera_params,
    load_depth,
    normals_to_rgb,
    save_camera_params_xml,
    save_npy,
    write_image,
)
from utils.logger import Logger
from utils.settings import (
    DEPTH_EXT,
    IMAGE_EXT,
    NORMALS_DTYPES,
    NORMALS_METHODS,
    NORMALS_SUFFIX,
    WINDOW_SIZES,
    normals as NORMALS_CFG,
)

logger = Logger.get_logger("cli.normals")


def prepare_input(
    depth: np.ndarray, config: NormalsConfig, depth_scale: float = 1.0
) -> np.ndarray:
    """
    Turn a raw depth frame into what the configured method consumes.

    LINEMOD gets the raw depth (its threshold is in raw units). FALS and SRI
    get an organized point field; integer zeros become NaN.
    """
    if config.method is NormalsMethod.LINEMOD:
        return depth
    z = depth.astype(np.float64)
    if np.issubdtype(depth.dtype, np.integer):
        z[depth == 0] = np.nan
    z *= depth_scale
    return depth_to_points(z, config.camera_matrix, config.dtype)


def _read_depth(path: Path) -> np.ndarray:
    try:
        return load_depth(path)
    except (IOError, ValueError) as exc:
        raise NormalsInputError(f"Cannot read depth frame {path}: {exc}") from exc


def _build_config(args: argparse.Namespace, rows: int, cols: int) -> NormalsConfig:
    config = Config.normals_config(rows, cols)
    changes = {}
    if args.method:
        changes["method"] = args.method
    if args.window:
        changes["window_size"] = args.window
    if args.dtype:
        changes["dtype"] = args.dtype
    if args.intrinsics:
        K, _ = load_camera_params(args.intrinsics)
        changes["K"] = K
    return dataclasses.replace(config, **changes) if changes else config


def _depth_scale(args: argparse.Namespace) -> float:
    if args.depth_scale is not None:
        return args.depth_scale
    return float(Config.get("normals.depth_scale", NORMALS_CFG.depth_scale))


def _save_outputs(normals: np.ndarray, output: Path, preview: Path | None) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    save_npy(output, normals)
    logger.info(f"Normals saved: {output}")
    if preview is not None:
        preview.parent.mkdir(parents=True, exist_ok=True)
        write_image(preview, normals_to_rgb(normals))
        logger.info(f"Preview saved: {preview}")


def _add_estimation_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--intrinsics", default=None, help="OpenCV XML camera file")
    parser.add_argument("--method", choices=NORMALS_METHODS, default=None)
    parser.add_argument("--window", type=int, choices=WINDOW_SIZES, default=None)
    parser.add_argument("--dtype", choices=NORMALS_DTYPES, default=None)
    parser.add_argument(
        "--depth-scale",
        type=float,
        default=None,
        help="Multiplier for integer depth before FALS/SRI",
    )


def _add_compute_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--depth", required=True, help="Depth frame (.npy or 16-bit .png)")
    parser.add_argument("--output", default=None, help="Output .npy normal map")
    parser.add_argument("--preview", default=None, help="Optional .png preview")
    _add_estimation_args(parser)


def _add_batch_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--input-dir", required=True, help="Directory of depth frames")
    parser.add_argument("--output-dir", default=None, help="Where to write normals")
    parser.add_argument(
        "--preview", action="store_true", help="Also write .png previews"
    )
    _add_estimation_args(parser)


def _add_intrinsics_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output", required=True, help="Output XML file")
    parser.add_argument("--config", default=None, help="YAML config file")
    for name in ("fx", "fy", "cx", "cy"):
        parser.add_argument(f"--{name}", type=float, default=None)


def _load_config(args: argparse.Namespace) -> None:
    if args.config:
        Config.load(args.config, force_reload=True)
    else:
        Config.load()


def _compute(args: argparse.Namespace) -> None:
    _load_config(args)
    depth_path = Path(args.depth)
    depth = _read_depth(depth_path)
    rows, cols = depth.shape[:2]
    config = _build_config(args, rows, cols)
    logger.info(
        f"{depth_path.name}: {rows}x{cols} {depth.dtype}, method={config.method.value}, "
        f"window={config.window_size}"
    )

    estimator = RgbdNormals.from_config(config)
    normals = estimator(prepare_input(depth, config, _depth_scale(args)))

    output = Path(args.output) if args.output else depth_path.with_name(
        depth_path.stem + NORMALS_SUFFIX + DEPTH_EXT
    )
    preview = Path(args.preview) if args.preview else None
    _save_outputs(normals, output, preview)


def _batch(args: argparse.Namespace) -> None:
    _load_config(args)
    input_dir = Path(args.input_dir)
    output_dir = Path(
        args.output_dir or Config.get("normals.output_dir", str(input_dir))
    )
    files = sorted(
        p
        for p in input_dir.iterdir()
        if p.suffix.lower() in (DEPTH_EXT, IMAGE_EXT) and NORMALS_SUFFIX not in p.stem
    )
    if not files:
        logger.error(f"No depth frames found in {input_dir}")
        return

    depth_scale = _depth_scale(args)
    estimator: RgbdNormals | None = None
    skipped = 0
    for path in Logger.progress(files, desc="Normals", total=len(files)):
        try:
            depth = _read_depth(path)
        except NormalsInputError as exc:
            logger.error(f"Skipping frame: {exc}")
            skipped += 1
            continue
        rows, cols = depth.shape[:2]
        if estimator is None:
            estimator = RgbdNormals.from_config(_build_config(args, rows, cols))
        elif estimator.config.shape != (rows, cols):
            estimator.configure(rows=rows, cols=cols)
        normals = estimator(prepare_input(depth, estimator.config, depth_scale))

        stem = path.stem + NORMALS_SUFFIX
        preview = output_dir / (stem + IMAGE_EXT) if args.preview else None
        _save_outputs(normals, output_dir / (stem + DEPTH_EXT), preview)

    if estimator is None:
        raise NormalsInputError(f"None of the {len(files)} frames in {input_dir} is readable")
    logger.info(
        f"Processed {len(files) - skipped} frames with {estimator.cache_builds} "
        f"cache build(s), skipped {skipped}"
    )


def _intrinsics(args: argparse.Namespace) -> None:
    _load_config(args)
    K = Config.camera_matrix()
    for idx, name in ((0, "fx"), (1, "fy")):
        value = getattr(args, name)
        if value is not None:
            K[idx, idx] = value
    if args.cx is not None:
        K[0, 2] = args.cx
    if args.cy is not None:
        K[1, 2] = args.cy
    save_camera_params_xml(args.output, K)
    logger.info(f"Camera matrix saved: {args.output}\n{K}")


def create_cli() -> CommandDispatcher:
    return CommandDispatcher(
        "Surface normal estimation",
        [
            Command("compute", _compute, _add_compute_args, "Normals of one depth frame"),
            Command("batch", _batch, _add_batch_args, "Normals of a directory of frames"),
            Command(
                "intrinsics", _intrinsics, _add_intrinsics_args, "Write a camera XML file"
            ),
        ],
    )


def main(argv: list[str] | None = None) -> int:
    return create_cli().run(argv, logger=logger)


if __name__ == "__main__":
    raise SystemExit(main())
