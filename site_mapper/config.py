# === FILE: site_mapper/config.py ===
"""
Loading and validation of SiteMapper crawl settings.
Pydantic describes the schema; YAML and JSON files are accepted.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from site_mapper.crawler.scheduler import MAX_CONCURRENCY


class CrawlerConfig(BaseModel):
    """Settings for one crawl."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    domain: str = Field(..., description="Base domain to map, e.g. mydomain.com.")
    protocol: Literal["http://", "https://"] = Field(
        "http://", description="Protocol for the seed and for references without one."
    )
    max_concurrency: int = Field(MAX_CONCURRENCY, ge=1, description="Outstanding fetch quota.")
    timeout: float = Field(10.0, gt=0, description="Timeout of one fetch (seconds).")
    user_agent: str = Field("SiteMapperBot/1.0", min_length=1, description="User-Agent header.")
    max_pages: Optional[int] = Field(None, ge=1, description="Optional cap on visited URIs.")
    crawl_timeout: Optional[float] = Field(
        None, gt=0, description="Optional deadline for the whole crawl (seconds)."
    )

    @field_validator("domain", mode="before")
    def _clean_domain(cls, v: Any) -> Any:
        if not isinstance(v, str):
            return v
        domain = v.strip().lower()
        for prefix in ("http://", "https://", "www."):
            domain = domain.removeprefix(prefix)
        domain = domain.rstrip("/")
        if not domain:
            raise ValueError("domain must not be empty")
        if "/" in domain or " " in domain:
            raise ValueError(f"domain must be a bare host name, got {v!r}")
        return domain

    @property
    def seed_url(self) -> str:
        return f"{self.protocol}www.{self.domain}"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Malformed YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None] = None, **overrides: Any) -> CrawlerConfig:
    """
    Build a validated CrawlerConfig from an optional YAML/JSON file plus overrides.

    Overrides that are ``None`` are ignored, so CLI options left unset keep the
    file (or model) defaults.  A missing file raises FileNotFoundError,
    invalid values raise pydantic.ValidationError.
    """
    data: dict[str, Any] = {}
    if path is not None:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

        suffix = path_obj.suffix.lower()
        if suffix in (".yaml", ".yml"):
            data = _read_yaml(path_obj)
        elif suffix == ".json":
            data = _read_json(path_obj)
        else:
            raise ValueError(f"Unsupported config format: {suffix}")

    data.update({key: value for key, value in overrides.items() if value is not None})
    return CrawlerConfig(**data)
