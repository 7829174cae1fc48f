# src/wvwater/adapters/gdal_raster_reader.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import os
import math
import numpy as np

# rasterio primero; GDAL (osgeo) como segundo backend
try:  # rasterio path
    import rasterio
    from rasterio.transform import Affine
    from rasterio.windows import Window
    _HAS_RASTERIO = True
except ImportError:  # pragma: no cover
    _HAS_RASTERIO = False

try:  # GDAL path
    from osgeo import gdal  # type: ignore
    try:
        from osgeo import gdal_array  # type: ignore
        _HAS_GDAL_ARRAY = True
    except ImportError:  # pragma: no cover
        _HAS_GDAL_ARRAY = False
    _HAS_GDAL = True
except ImportError:  # pragma: no cover
    _HAS_GDAL = False
    _HAS_GDAL_ARRAY = False

from ..contracts.geo import GeoProfile, CRSRef, GeoTransform, DTypeStr, PixelTile, TileWindow
from ..ports.raster_read import RasterReaderPort

_DTYPE_MAP = {
    np.dtype("uint8"): "uint8",
    np.dtype("uint16"): "uint16",
    np.dtype("int16"): "int16",
    np.dtype("uint32"): "uint32",
    np.dtype("int32"): "int32",
    np.dtype("float32"): "float32",
    np.dtype("float64"): "float64",
}


def _np_to_dtype_str(dt: np.dtype) -> DTypeStr:
    try:
        return _DTYPE_MAP[np.dtype(dt)]  # type: ignore[return-value]
    except KeyError as e:  # pragma: no cover
        raise ValueError(f"dtype {dt} no soportado") from e


def _affine_to_gt(a: "Affine") -> GeoTransform:
    return (a.c, a.a, a.b, a.f, a.d, a.e)


def _rasterio_crs_to_crsref(crs_obj) -> CRSRef:
    """rasterio CRS → CRSRef. Conserva siempre el WKT leído; EPSG solo si se identifica."""
    if not crs_obj:
        return CRSRef()
    wkt = crs_obj.to_wkt()
    try:
        epsg = crs_obj.to_epsg()
    except Exception:  # pyproj/GDAL pueden fallar con CRS custom
        epsg = None
    return CRSRef.from_wkt(wkt, epsg=int(epsg) if epsg is not None else None)


def _gdal_datatype_to_np_dtype(dt_code: int) -> np.dtype:
    """Mapea GDALDataType a numpy.dtype sin leer la banda completa."""
    if _HAS_GDAL_ARRAY:
        np_code = gdal_array.GDALTypeCodeToNumericTypeCode(dt_code)
        if np_code is not None:
            return np.dtype(np_code)
    # fallback conservador
    return np.dtype("float32")


def _validity(samples: np.ndarray, nodata: float) -> np.ndarray:
    # Válido si al menos una banda difiere del nodata (el DN nunca es 0 en datos reales)
    return np.any(samples != nodata, axis=0)


RasterBackend = Literal["auto", "rasterio", "gdal"]


def pick_backend(backend: str = "auto") -> str:
    """Resuelve el backend pedido; "auto" prefiere rasterio."""
    available = {"rasterio": _HAS_RASTERIO, "gdal": _HAS_GDAL}
    if backend == "auto":
        for name, ok in available.items():
            if ok:
                return name
        raise RuntimeError("No hay backend raster (instala rasterio o GDAL)")
    if backend not in available:
        raise ValueError(f"backend raster desconocido: {backend!r}")
    if not available[backend]:
        raise RuntimeError(f"backend raster {backend!r} no disponible en este entorno")
    return backend


def _gdal_dataset_mask(ds, window: TileWindow):
    """Máscara por dataset (banda de máscara interna o alfa); None si no hay."""
    band = ds.GetRasterBand(1)
    flags = band.GetMaskFlags()
    if flags & gdal.GMF_ALL_VALID or not flags & (gdal.GMF_PER_DATASET | gdal.GMF_ALPHA):
        # sin máscara explícita; el nodata lo cubre _validity
        return None
    mask = band.GetMaskBand().ReadAsArray(window.col_off, window.row_off, window.width, window.height)
    return mask > 0


@dataclass(frozen=True)
class GdalRasterReader(RasterReaderPort):
    """Lector de raster multibanda por ventanas. backend="auto" prefiere rasterio; "gdal" fuerza osgeo.

    Regla: `read_window()` devuelve un **PixelTile (bands, rows, cols)** con la
    máscara de validez = máscara del dataset AND algún canal != nodata
    (nodata del archivo o `default_nodata` si no declara uno).
    """
    default_nodata: float = 0.0
    backend: RasterBackend = "auto"

    # --------------- rasterio ---------------
    def _read_with_rasterio(self, uri: str, window: TileWindow) -> PixelTile:
        assert _HAS_RASTERIO
        with rasterio.open(uri) as ds:
            w = Window(window.col_off, window.row_off, window.width, window.height)
            data = ds.read(window=w)
            nodata = ds.nodata if ds.nodata is not None else self.default_nodata
            valid = (ds.dataset_mask(window=w) > 0) & _validity(data, nodata)
            return PixelTile(data=data, valid=valid)

    def _profile_with_rasterio(self, uri: str) -> GeoProfile:
        assert _HAS_RASTERIO
        with rasterio.open(uri) as ds:
            dtype0 = np.dtype(ds.dtypes[0]) if ds.dtypes and ds.dtypes[0] else np.dtype("float32")
            return GeoProfile(
                count=ds.count,
                dtype=_np_to_dtype_str(dtype0),
                width=ds.width,
                height=ds.height,
                transform=_affine_to_gt(ds.transform),
                crs=_rasterio_crs_to_crsref(ds.crs),
                nodata=float(ds.nodata) if ds.nodata is not None else None,
            )

    # --------------- GDAL ---------------
    def _read_with_gdal(self, uri: str, window: TileWindow) -> PixelTile:
        assert _HAS_GDAL
        ds = gdal.Open(uri, gdal.GA_ReadOnly)
        if ds is None:
            raise FileNotFoundError(uri)
        try:
            data = ds.ReadAsArray(window.col_off, window.row_off, window.width, window.height)
            if data.ndim == 2:
                data = data[np.newaxis, ...]
            nodata = ds.GetRasterBand(1).GetNoDataValue()
            if nodata is None or math.isnan(nodata):
                nodata = self.default_nodata
            valid = _validity(data, nodata)
            mask = _gdal_dataset_mask(ds, window)
            if mask is not None:
                valid &= mask
            return PixelTile(data=data, valid=valid)
        finally:
            ds = None  # cierre explícito

    def _profile_with_gdal(self, uri: str) -> GeoProfile:
        assert _HAS_GDAL
        ds = gdal.Open(uri, gdal.GA_ReadOnly)
        if ds is None:
            raise FileNotFoundError(uri)
        try:
            gt = ds.GetGeoTransform()
            srs_wkt = ds.GetProjection() or None
            band = ds.GetRasterBand(1)
            nodata = band.GetNoDataValue()
            return GeoProfile(
                count=ds.RasterCount,
                dtype=_np_to_dtype_str(_gdal_datatype_to_np_dtype(band.DataType)),
                width=ds.RasterXSize,
                height=ds.RasterYSize,
                transform=(gt[0], gt[1], gt[2], gt[3], gt[4], gt[5]),
                crs=CRSRef.from_wkt(srs_wkt) if srs_wkt else CRSRef(),
                nodata=float(nodata) if nodata is not None and not math.isnan(nodata) else None,
            )
        finally:
            ds = None

    # --------------- RasterReaderPort ---------------
    def read_window(self, uri: str, window: TileWindow) -> PixelTile:
        if pick_backend(self.backend) == "rasterio":
            return self._read_with_rasterio(uri, window)
        return self._read_with_gdal(uri, window)

    def profile(self, uri: str) -> GeoProfile:
        if pick_backend(self.backend) == "rasterio":
            return self._profile_with_rasterio(uri)
        return self._profile_with_gdal(uri)

    def exists(self, uri: str) -> bool:
        return os.path.exists(uri)
