# src/wvwater/cli.py
from __future__ import annotations

"""
CLI para detección de agua en imágenes WorldView-3 (contracts-first, minimal).

Comandos principales:
  - detect-water: calibra a reflectancia TOA y clasifica agua/tierra/nodata por bloques.
  - metadata: muestra la metadata radiométrica parseada del .IMD.

Ejemplos rápidos:
  python -m wvwater.cli detect-water ./scene/16OCT23.tif ./scene/16OCT23.IMD \
      -o ./out/water.tif --tile-size 512 --workers 4

  python -m wvwater.cli metadata ./scene/16OCT23.IMD
"""

import argparse
import logging
import sys
from pathlib import Path

from .composition.di import build_settings, build_water_detection_service
from .contracts.core import DEFAULT_LABELS
from .services.water_detection_service import WaterDetectionInputs, WaterDetectionSpec

logger = logging.getLogger("wvwater")

# ----------------------
# Comandos
# ----------------------

def cmd_detect_water(args: argparse.Namespace) -> int:
    s = build_settings(
        Path(args.config) if args.config else None,
        tile_size=args.tile_size,
        max_workers=args.workers,
        water_ndwi_threshold=args.threshold,
    )
    svc = build_water_detection_service(s)
    inputs = WaterDetectionInputs.from_paths(args.inputs)
    spec = WaterDetectionSpec(out_tif=Path(args.out) if args.out else None)

    res = svc.run(inputs, spec)

    names = {c.id: c.name for c in DEFAULT_LABELS}
    for label_id, n in sorted(res.counts.items()):
        print(f"{names.get(label_id, label_id)}: {n} px ({res.percents[label_id]:.2f}%)")
    print(str(res.labels_tif))
    return 0


def cmd_metadata(args: argparse.Namespace) -> int:
    s = build_settings(Path(args.config) if args.config else None)
    svc = build_water_detection_service(s)
    md = svc.metadata_service.load([Path(p) for p in args.inputs])  # type: ignore[union-attr]
    print(md.describe())
    return 0


# ----------------------
# Parser
# ----------------------

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="wvwater", description="Detección de agua WorldView-3 (TOA + NDWI)")
    p.add_argument("--config", help="settings.yaml (si no, env WVWATER_* / .env)")
    p.add_argument("--log-level", default=None, help="DEBUG|INFO|WARNING|ERROR (sobre-escribe Settings.log_level)")
    sub = p.add_subparsers(dest="cmd", required=True)

    # detect-water
    pd = sub.add_parser("detect-water", help="clasifica agua/tierra y escribe GeoTIFF de labels")
    pd.add_argument("inputs", nargs="+", help="imagen .tif y metadata .IMD (en cualquier orden)")
    pd.add_argument("-o", "--out", help="ruta de salida TIFF (si no, usa Settings.output_pattern)")
    pd.add_argument("--tile-size", type=int, default=None, help="lado del bloque de procesamiento en píxeles")
    pd.add_argument("--workers", type=int, default=None, help="hilos para procesar bloques")
    pd.add_argument("--threshold", type=float, default=None, help="umbral NDWI para agua (default 0.1)")
    pd.add_argument("--debug", action="store_true", help="log DEBUG (incluye la metadata apenas se carga)")
    pd.set_defaults(func=cmd_detect_water)

    # metadata
    pm = sub.add_parser("metadata", help="muestra la metadata radiométrica del .IMD")
    pm.add_argument("inputs", nargs="+", help="lista de archivos; se usa el primer .IMD")
    pm.set_defaults(func=cmd_metadata)

    return p


def _setup_logging(level: str | None, config: str | None = None) -> None:
    if level is None:
        level = build_settings(Path(config) if config else None).log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        level = "DEBUG" if getattr(args, "debug", False) else args.log_level
        _setup_logging(level, args.config)
        return int(bool(args.func(args)))  # 0 si todo bien
    except KeyboardInterrupt:
        return 130
    except Exception as ex:
        logger.debug("fallo en %s", args.cmd, exc_info=True)
        print(f"[ERROR] {ex}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
