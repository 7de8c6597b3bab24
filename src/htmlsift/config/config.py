"""
Configuration management for htmlsift using Pydantic.

Two layers live here:

* ``ProcessorSettings`` - process-wide limits fixed when a ``Processor`` is
  constructed (input size, timeouts, cache sizing, worker pool, depth).
* ``ExtractConfig`` / ``LinkExtractionConfig`` - immutable per-call options.

``HtmlSiftConfig`` ties the processor settings and logging options together
and can be populated from ``HTMLSIFT_*`` environment variables or a YAML file.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from htmlsift.errors import InvalidConfigError

log = logging.getLogger(__name__)

MIB = 1024 * 1024


class InlineImageFormat(str, Enum):
    """How images found in the content are rendered inside ``Result.text``."""

    NONE = "none"
    PLACEHOLDER = "placeholder"
    MARKDOWN = "markdown"
    HTML = "html"


class TableFormat(str, Enum):
    """How ``<table>`` elements are rendered inside ``Result.text``."""

    MARKDOWN = "markdown"
    HTML = "html"


def _normalise_choice(enum_cls: type[Enum], value: Any, default: Enum, label: str) -> Enum:
    if isinstance(value, enum_cls):
        return value
    normalised = str(value).strip().lower() or default.value
    try:
        return enum_cls(normalised)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidConfigError(f"unrecognized {label} {value!r} (expected one of: {allowed})") from None


@dataclass(slots=True, frozen=True)
class ExtractConfig:
    """
    Per-call extraction options.

    ``encoding`` forces the character set used for ``bytes`` input; when it is
    None the charset is detected from the document.
    """

    extract_article: bool = True
    preserve_images: bool = True
    preserve_links: bool = True
    preserve_videos: bool = True
    preserve_audios: bool = True
    inline_image_format: InlineImageFormat = InlineImageFormat.NONE
    table_format: TableFormat = TableFormat.MARKDOWN
    base_url: str | None = None
    encoding: str | None = None

    def __post_init__(self) -> None:
        """Normalise the enum options and the encoding name, rejecting unknown values."""
        inline = _normalise_choice(
            InlineImageFormat, self.inline_image_format, InlineImageFormat.NONE, "inline image format"
        )
        object.__setattr__(self, "inline_image_format", inline)
        table = _normalise_choice(TableFormat, self.table_format, TableFormat.MARKDOWN, "table format")
        object.__setattr__(self, "table_format", table)
        if self.base_url is not None and not isinstance(self.base_url, str):
            raise InvalidConfigError("base_url must be a string or None")
        if self.encoding is not None:
            if not isinstance(self.encoding, str):
                raise InvalidConfigError("encoding must be a string or None")
            name = self.encoding.strip()
            if not name:
                object.__setattr__(self, "encoding", None)
            else:
                try:
                    object.__setattr__(self, "encoding", codecs.lookup(name).name)
                except LookupError:
                    raise InvalidConfigError(f"unknown encoding {self.encoding!r}") from None

    def canonical(self) -> bytes:
        """Deterministic serialization used when computing cache keys."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["inline_image_format"] = self.inline_image_format.value
        data["table_format"] = self.table_format.value
        return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> ExtractConfig:
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise InvalidConfigError(f"unknown extract options: {', '.join(sorted(unknown))}")
        return cls(**data)


def config_for_rss() -> ExtractConfig:
    """Feed entries: keep the whole document with images and links."""
    return ExtractConfig(
        extract_article=False,
        preserve_images=True,
        preserve_links=True,
        preserve_videos=False,
        preserve_audios=False,
    )


def config_for_summary() -> ExtractConfig:
    """Text only, article region."""
    return ExtractConfig(
        extract_article=True,
        preserve_images=False,
        preserve_links=False,
        preserve_videos=False,
        preserve_audios=False,
    )


def config_for_search_index() -> ExtractConfig:
    """Article text with images, links and videos for indexing."""
    return ExtractConfig(
        extract_article=True,
        preserve_images=True,
        preserve_links=True,
        preserve_videos=True,
        preserve_audios=False,
    )


def config_for_markdown() -> ExtractConfig:
    """Article text with images rendered inline as markdown."""
    return ExtractConfig(
        extract_article=True,
        preserve_images=True,
        preserve_links=True,
        preserve_videos=False,
        preserve_audios=False,
        inline_image_format=InlineImageFormat.MARKDOWN,
    )


@dataclass(slots=True, frozen=True)
class LinkExtractionConfig:
    """Options for the whole-document link resource pass."""

    resolve_relative_urls: bool = True
    base_url: str = ""
    include_images: bool = True
    include_videos: bool = True
    include_audios: bool = True
    include_css: bool = True
    include_js: bool = True
    include_content_links: bool = True
    include_external_links: bool = True
    include_icons: bool = True

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


# --- Processor Settings ---


class ProcessorSettings(BaseModel):
    """Process-wide limits, immutable once a processor has been built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_input_size: int = Field(default=50 * MIB, gt=0, description="Maximum input size in bytes.")
    processing_timeout: float = Field(default=30.0, gt=0, description="Per-document deadline in seconds.")
    max_cache_entries: int = Field(default=1000, ge=0, description="Cache capacity. 0 disables caching.")
    cache_ttl: float = Field(default=3600.0, ge=0, description="Entry lifetime in seconds. 0 never expires.")
    worker_pool_size: int = Field(default=4, gt=0, description="Default batch pool size.")
    enable_sanitization: bool = Field(default=True, description="Skip script/style/excluded subtrees.")
    max_depth: int = Field(default=100, gt=0, description="Maximum document nesting depth.")
    words_per_minute: int = Field(default=200, gt=0, description="Reading speed used for reading time.")
    max_url_length: int = Field(default=2000, gt=0, description="URLs longer than this are dropped.")


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"invalid log level: {v}")
        return level

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class HtmlSiftConfig(BaseSettings):
    processor: ProcessorSettings = Field(default_factory=ProcessorSettings)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="HTMLSIFT_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> HtmlSiftConfig:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file(directory: Path | None = None) -> Path | None:
    current_dir = directory or Path.cwd()
    for name in ("htmlsift.yaml", "htmlsift.yml"):
        path = current_dir / name
        if path.exists():
            return path
    return None
