"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI ni la API.
- Permite que adaptadores (HTTP/render) lean config de forma consistente.

Fuentes (de mayor a menor prioridad):
- Fichero JSON pasado con `--config` / `GRAPHOID_CONFIG` (mismas claves que
  el antiguo `graphoid.config.json`).
- Variables de entorno `GRAPHOID_*` y `.env`.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_ENV_VAR = "GRAPHOID_CONFIG"


class AppSettings(BaseSettings):
    """Configuración central del servicio.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars / fichero) sin ensuciar el Core.
    - Un único contrato de configuración para CLI/API/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="GRAPHOID_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    domains: list[str] = Field(
        default_factory=list,
        description="Dominios base permitidos (p.ej. 'wikipedia.org').",
    )
    domain_map: dict[str, str] = Field(
        default_factory=dict,
        description="Alias de dominios: dominio antiguo -> dominio nuevo.",
    )
    default_protocol: Literal["http", "https"] = Field(
        default="https",
        description="Protocolo para la API de contenido y URLs relativas.",
    )

    timeout_ms: int = Field(
        default=10_000,
        description="Deadline por request en milisegundos (<= 0 lo desactiva).",
    )
    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por llamada HTTP a la API de contenido (segundos).",
    )
    user_agent: str = Field(
        default="graphoid/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para las llamadas a la API de contenido.",
    )
    api_path: str = Field(
        default="/w/api.php",
        min_length=1,
        description="Ruta de la API de contenido dentro del dominio.",
    )
    max_continuations: int = Field(
        default=200,
        ge=1,
        le=10_000,
        description="Máximo de llamadas encadenadas por tokens de continuación.",
    )
    cache_max_age_seconds: int = Field(
        default=30,
        ge=0,
        description="max-age / s-maxage de las respuestas (corto a propósito).",
    )

    renderer: Literal["vega", "remote"] = Field(
        default="vega",
        description="Motor de render: 'vega' (vl-convert local) o 'remote' (servidor HTTP).",
    )
    render_service_url: str | None = Field(
        default=None,
        description="URL base del servidor de render cuando renderer='remote'.",
    )
    png_scale: float = Field(
        default=1.0,
        gt=0,
        le=10,
        description="Factor de escala para PNG con el renderer Vega.",
    )

    host: str = Field(default="0.0.0.0", min_length=1)
    port: int = Field(default=11042, ge=1, le=65535)
    workers: int = Field(default=1, ge=1, le=64)
    log_level: str = Field(default="INFO", min_length=1)

    @model_validator(mode="after")
    def _check_domains(self) -> "AppSettings":
        if not self.domains and not self.domain_map:
            raise ValueError('Config must have non-empty "domains" (list) and/or "domain_map" (dict)')
        if self.renderer == "remote" and not self.render_service_url:
            raise ValueError("render_service_url is required when renderer='remote'")
        return self


def _read_config_file(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    # Compatibilidad con graphoid.config.json (camelCase).
    if "domainMap" in data and "domain_map" not in data:
        data["domain_map"] = data.pop("domainMap")
    if "defaultProtocol" in data and "default_protocol" not in data:
        data["default_protocol"] = data.pop("defaultProtocol")
    if "timeout" in data and "timeout_ms" not in data:
        data["timeout_ms"] = data.pop("timeout")
    return data


def load_settings(config_path: Path | None = None, **overrides: Any) -> AppSettings:
    """Carga `AppSettings` desde env, `.env` y (opcional) un fichero JSON."""

    if config_path is None:
        env_path = (os.environ.get(CONFIG_ENV_VAR) or "").strip()
        if env_path:
            config_path = Path(env_path)

    values: dict[str, Any] = {}
    if config_path is not None:
        values.update(_read_config_file(config_path))
    values.update({k: v for k, v in overrides.items() if v is not None})
    return AppSettings(**values)
