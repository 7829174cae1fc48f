# src/wvwater/adapters/gdal_raster_writer.py
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from itertools import islice
from typing import Iterable, Iterator, Optional, Tuple

import numpy as np

try:
    import rasterio
    from rasterio.transform import Affine
    from rasterio.windows import Window
    _HAS_RASTERIO = True
except ImportError:  # pragma: no cover
    _HAS_RASTERIO = False

try:
    from osgeo import gdal, osr  # type: ignore
    _HAS_GDAL = True
except ImportError:  # pragma: no cover
    _HAS_GDAL = False

from ..contracts.geo import GeoProfile, TileWindow, iter_windows
from ..ports.raster_write import RasterWriterPort, TileSource, TileCallback
from .gdal_raster_reader import RasterBackend, pick_backend

logger = logging.getLogger(__name__)


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def _remove_partial(path: str) -> None:
    if os.path.exists(path):
        logger.warning("Eliminando salida parcial %s", path)
        os.remove(path)


def _checked(block: np.ndarray, window: TileWindow) -> np.ndarray:
    if block.shape != window.shape:
        raise ValueError(f"bloque con forma {block.shape} para ventana {window} (se esperaba {window.shape})")
    return block


def compute_tiles(
    source: TileSource,
    windows: Iterable[TileWindow],
    max_workers: int = 1,
) -> Iterator[Tuple[TileWindow, np.ndarray]]:
    """
    Evalúa `source` por ventana y entrega (ventana, bloque) en el orden de entrada.
    - max_workers<=1: secuencial.
    - si no, lotes acotados (2*max_workers) en un ThreadPoolExecutor para no
      acumular bloques en memoria.
    Cualquier excepción de `source` se propaga y corta la iteración.
    """
    if max_workers <= 1:
        for w in windows:
            yield w, _checked(source(w), w)
        return
    it = iter(windows)
    batch = 2 * max_workers
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        while True:
            chunk = list(islice(it, batch))
            if not chunk:
                break
            for w, block in zip(chunk, pool.map(source, chunk)):
                yield w, _checked(block, w)


@dataclass(frozen=True)
class GdalRasterWriter(RasterWriterPort):
    compress: str = "DEFLATE"
    backend: RasterBackend = "auto"

    def write_tiled(
        self,
        uri: str,
        source: TileSource,
        profile: GeoProfile,
        *,
        tile_size: int = 256,
        max_workers: int = 1,
        on_tile: Optional[TileCallback] = None,
    ) -> str:
        _ensure_dir(uri)
        tiles = compute_tiles(source, iter_windows(profile.width, profile.height, tile_size), max_workers)
        try:
            if pick_backend(self.backend) == "rasterio":
                self._write_with_rasterio(uri, tiles, profile, tile_size, on_tile)
            else:
                self._write_with_gdal(uri, tiles, profile, tile_size, on_tile)
        except BaseException:
            # sin salida parcial: un GeoTIFF a medias con georreferencia válida es peor que nada
            _remove_partial(uri)
            raise
        finally:
            tiles.close()
        return uri

    # --------------- rasterio ---------------
    def _write_with_rasterio(self, uri, tiles, p: GeoProfile, tile_size: int, on_tile) -> None:
        profile = {
            "driver": "GTiff",
            "height": p.height,
            "width": p.width,
            "count": p.count,
            "dtype": p.dtype,
            "transform": Affine.from_gdal(*p.transform),
            "compress": self.compress.upper(),
            "nodata": p.nodata,
        }
        # GTiff exige bloques múltiplos de 16; si no, se escribe en strips
        if tile_size % 16 == 0:
            profile.update(tiled=True, blockxsize=tile_size, blockysize=tile_size)
        if not p.crs.is_empty():
            profile["crs"] = p.crs.to_wkt()
        with rasterio.open(uri, "w", **profile) as dst:
            for w, block in tiles:
                dst.write(block.astype(p.dtype, copy=False), 1,
                          window=Window(w.col_off, w.row_off, w.width, w.height))
                if on_tile is not None:
                    on_tile(w, block)

    # --------------- GDAL ---------------
    def _write_with_gdal(self, uri, tiles, p: GeoProfile, tile_size: int, on_tile) -> None:
        _NP2GDAL = {
            "uint8": gdal.GDT_Byte,
            "uint16": gdal.GDT_UInt16,
            "int16": gdal.GDT_Int16,
            "uint32": gdal.GDT_UInt32,
            "int32": gdal.GDT_Int32,
            "float32": gdal.GDT_Float32,
            "float64": gdal.GDT_Float64,
        }
        options = [f"COMPRESS={self.compress.upper()}"]
        if tile_size % 16 == 0:
            options += ["TILED=YES", f"BLOCKXSIZE={tile_size}", f"BLOCKYSIZE={tile_size}"]
        driver = gdal.GetDriverByName("GTiff")
        ds = driver.Create(uri, p.width, p.height, p.count, _NP2GDAL[p.dtype], options=options)
        ds.SetGeoTransform(p.transform)
        if p.crs.wkt:
            ds.SetProjection(p.crs.wkt)
        elif p.crs.epsg is not None:
            srs = osr.SpatialReference(); srs.ImportFromEPSG(int(p.crs.epsg))
            ds.SetProjection(srs.ExportToWkt())
        band = ds.GetRasterBand(1)
        if p.nodata is not None:
            band.SetNoDataValue(float(p.nodata))
        try:
            for w, block in tiles:
                band.WriteArray(block.astype(p.dtype, copy=False), w.col_off, w.row_off)
                if on_tile is not None:
                    on_tile(w, block)
            ds.FlushCache()
        finally:
            band = None; ds = None
