# src/wvwater/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholders permitidos en output_pattern
OUTPUT_PLACEHOLDERS: tuple[str, ...] = ("stem",)

class Settings(BaseSettings):
    """
    Config unificada del proyecto. No toca disco.
    Se construye desde env (WVWATER_*), .env o YAML vía composition/di.py.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WVWATER_",
        extra="forbid",
        frozen=True,
    )

    # --- entradas ---
    image_extension: str = ".tif"
    metadata_extension: str = ".IMD"

    # --- procesamiento por bloques ---
    tile_size: int = Field(256, ge=1)
    max_workers: int = Field(1, ge=1)
    raster_backend: Literal["auto", "rasterio", "gdal"] = "auto"  # "auto": rasterio si está, si no osgeo

    # --- dominio ---
    water_ndwi_threshold: float = Field(0.1, ge=-1.0, le=1.0)

    # --- salida ---
    output_dir: Optional[Path] = None  # si None, junto a la imagen de entrada
    output_pattern: str = "{stem}_water.tif"
    compress: str = "DEFLATE"

    log_level: str = "INFO"

    # ----------------------------
    # Normalizadores / validadores
    # ----------------------------
    @field_validator("image_extension", "metadata_extension", mode="before")
    @classmethod
    def _dotted(cls, v: str) -> str:
        v2 = str(v).strip()
        if not v2:
            raise ValueError("la extensión no puede ser vacía")
        return v2 if v2.startswith(".") else f".{v2}"

    @field_validator("output_pattern")
    @classmethod
    def _check_out(cls, pat: str) -> str:
        used = {name for _, name in _iter_placeholders(pat)}
        unknown = used - set(OUTPUT_PLACEHOLDERS)
        if unknown:
            raise ValueError(f"output_pattern usa placeholders no permitidos: {sorted(unknown)}")
        return pat

    @field_validator("log_level")
    @classmethod
    def _level(cls, v: str) -> str:
        v2 = v.strip().upper()
        if v2 not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level inválido: {v}")
        return v2

    # ----------------------------
    # Helpers puros (sin side-effects)
    # ----------------------------
    def out_path(self, image_path: Path | str) -> Path:
        """Resuelve la ruta de salida para una imagen (no crea carpetas)."""
        img = Path(image_path)
        base = self.output_dir if self.output_dir is not None else img.parent
        return (Path(base) / self.output_pattern.format(stem=img.stem)).resolve()


# Utilidad interna: detectar {placeholders}
def _iter_placeholders(fmt: str):
    # Busca {name} muy simple; evita formatear para no explotar
    start = 0
    while True:
        i = fmt.find("{", start)
        if i == -1:
            break
        j = fmt.find("}", i + 1)
        if j == -1:
            break
        name = fmt[i + 1 : j].strip()
        if name:
            yield (i, name)
        start = j + 1


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Instancia cacheada. Úsala SOLO desde composition/di.py o CLI.
    Para tests, recuerda limpiar:
        get_settings.cache_clear()
    """
    return Settings()
