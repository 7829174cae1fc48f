# src/wvwater/contracts/errors.py
from __future__ import annotations


class WvWaterError(Exception):
    """Base de errores del pipeline WorldView → agua/tierra."""


class InputNotFoundError(WvWaterError, FileNotFoundError):
    """Falta un archivo requerido en la lista de entradas."""


class MetadataError(WvWaterError, ValueError):
    """Metadata .IMD incompleta, duplicada o con formato inválido."""


# nombre alternativo usado en la documentación de errores
MetadataMalformed = MetadataError


class GeoReferenceMissingError(WvWaterError, ValueError):
    """El raster no trae georreferencia legible (CRS/geotransform)."""


__all__ = [
    "WvWaterError",
    "InputNotFoundError",
    "MetadataError",
    "MetadataMalformed",
    "GeoReferenceMissingError",
]
