from __future__ import annotations

import argparse
import json
import logging
import os

import numpy as np

from contourfill.fills.resolver import FillConfig
from contourfill.render.engine import ContourFillEngine, EngineConfig
from contourfill.render.export import export_png
from contourfill.smoothing.curves import SMOOTHING_MODES
from contourfill.tracing.grid_tracer import GridTracer


def make_levels_from_n(values: np.ndarray, n_levels: int) -> np.ndarray:
    zvals = np.asarray(values, float).ravel()
    zvals = zvals[np.isfinite(zvals)]
    if zvals.size == 0 or n_levels <= 0:
        return np.array([], float)
    zmin, zmax = float(np.min(zvals)), float(np.max(zvals))
    if zmax - zmin < 1e-15:
        return np.array([], float)
    step = (zmax - zmin) / (n_levels + 1)
    return zmin + step * np.arange(1, n_levels + 1)


def load_grid(npz_path: str | os.PathLike[str]) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    with np.load(os.fspath(npz_path)) as data:
        missing = [key for key in ("X", "Y", "Z") if key not in data.files]
        if missing:
            raise KeyError(f"grid file is missing arrays: {', '.join(missing)}")
        return (
            np.asarray(data["X"], float),
            np.asarray(data["Y"], float),
            np.asarray(data["Z"], float),
        )


def build_engine_config(args: argparse.Namespace) -> EngineConfig:
    data: dict = {}
    if args.config_json is not None:
        with open(os.fspath(args.config_json), encoding="utf-8") as f:
            data = json.load(f)
    data.setdefault("smoothing", {})
    data["smoothing"].setdefault("mode", args.mode)
    data.setdefault("classifier", {})
    data["classifier"].setdefault("extrapolate_to_limits", args.extrapolate)
    data.setdefault("resolve_discontinuities", not args.no_discontinuities)
    return EngineConfig.from_dict(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Assemble filled contour regions from a gridded scalar field."
    )
    parser.add_argument("--grid-npz", required=True, help="npz with X, Y and Z arrays")
    parser.add_argument("--config-json", default=None, help="Optional engine config json")
    parser.add_argument("--levels", type=float, nargs="+", default=None, help="Iso values")
    parser.add_argument("--n-levels", type=int, default=6)
    parser.add_argument("--mode", choices=list(SMOOTHING_MODES), default="linear")
    parser.add_argument("--extrapolate", action="store_true", default=False)
    parser.add_argument("--no-discontinuities", action="store_true", default=False)
    parser.add_argument("--no-field", action="store_true", default=False,
                        help="Pick fills from bounding levels instead of sampling the field")
    parser.add_argument("--out-png", default=None, help="Optional image output path")
    parser.add_argument("--dpi", type=int, default=100)
    parser.add_argument("--log-level", default="WARNING")
    return parser


def cli_main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    X, Y, Z = load_grid(args.grid_npz)
    levels = (
        np.asarray(args.levels, float) if args.levels else make_levels_from_n(Z, args.n_levels)
    )
    if levels.size == 0:
        raise RuntimeError("No contour levels were generated. Check Z range and level settings.")

    tracer = GridTracer(X, Y, Z, levels)
    engine = ContourFillEngine(tracer, build_engine_config(args))
    field_function = None if args.no_field else tracer.field_function()
    result = engine.compute(tracer.extent, FillConfig(thresholds=tuple(levels)), field_function)

    print(f"[Summary] regions={len(result.regions)} fills={len(result.fill_table)} "
          f"lines={len(result.lines)} clusters={len(result.clusters)}")
    for label in result.fill_table.legend_entries():
        print(f"[Fill] {label}")
    if args.out_png is not None and export_png(
        result, tracer.extent, args.out_png, dpi=args.dpi
    ):
        print(f"[Saved] {args.out_png}")
    return 0


def main() -> None:
    raise SystemExit(cli_main())


if __name__ == "__main__":
    main()
