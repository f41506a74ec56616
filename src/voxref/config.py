"""
Configuration module for voxref.

Provides strongly-typed configuration with pydantic, supporting both
file-based and environment variable configuration.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from voxref.errors import ConfigurationError

DEFAULT_STOP_WORDS: tuple[str, ...] = (
    "the",
    "to",
    "and",
    "in",
    "on",
    "at",
    "with",
    "by",
    "from",
    "up",
    "down",
    "for",
    "of",
    "above",
    "below",
    "change",
    "update",
    "modify",
    "set",
    "get",
    "make",
    "do",
    "does",
    "section",
    "some",
    "want",
    "need",
    "please",
    "can",
    "could",
    "would",
    "should",
    "will",
    "show",
    "me",
    "my",
    "open",
    "close",
    "save",
    "delete",
    "remove",
    "add",
    "new",
    "create",
    "component",
    "file",
    "folder",
    "function",
)


class IndexConfig(BaseModel):
    """Index store configuration."""

    include_glob: str = Field(
        default="**/*.{ts,tsx,js,jsx,vue,scss,css,less,json,md}",
        description="Glob selecting tracked files",
    )
    exclude_glob: str | None = Field(
        default="**/node_modules/**",
        description="Glob excluding files from tracking",
    )
    tracked_extensions: list[str] = Field(
        default_factory=lambda: [
            ".ts",
            ".tsx",
            ".js",
            ".jsx",
            ".vue",
            ".scss",
            ".css",
            ".less",
            ".json",
            ".md",
        ],
        description="File extensions indexed by name",
    )
    source_extensions: list[str] = Field(
        default_factory=lambda: [".js", ".jsx", ".ts", ".tsx", ".vue"],
        description="File extensions scanned for symbols",
    )
    max_file_size_kb: int = Field(
        default=1024,
        ge=10,
        le=100000,
        description="Files larger than this are indexed by name only",
    )

    @field_validator("tracked_extensions", "source_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lowercase extensions and ensure a leading dot."""
        return [e.lower() if e.startswith(".") else f".{e.lower()}" for e in v]


class MatcherConfig(BaseModel):
    """Transcript matcher configuration."""

    accept_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Word matches must score strictly above this",
    )
    min_token_length: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Shorter tokens are never matched on their own",
    )
    function_min_length: int = Field(
        default=4,
        ge=1,
        le=40,
        description="Functions are only considered for tokens longer than this",
    )
    stop_words: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STOP_WORDS),
        description="Words skipped by the word pass",
    )

    @field_validator("stop_words")
    @classmethod
    def lowercase_stop_words(cls, v: list[str]) -> list[str]:
        """Stop words are compared against lowercase tokens."""
        return [w.lower() for w in v]


class TreeConfig(BaseModel):
    """File tree listing configuration."""

    cache_ttl_seconds: float = Field(
        default=300.0,
        ge=0.0,
        le=86400.0,
        description="How long a file tree listing stays valid",
    )
    ignore_patterns: list[str] = Field(
        default_factory=lambda: [
            "**/.git/**",
            "**/node_modules/**",
        ],
        description="Glob patterns skipped when listing files",
    )


class Config(BaseSettings):
    """
    Main voxref configuration.

    Can be configured via:
    1. Configuration file (voxref.toml, voxref.yaml or JSON)
    2. Environment variables with VOXREF_ prefix
    3. Programmatic overrides
    """

    model_config = SettingsConfigDict(
        env_prefix="VOXREF_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    project_root: Path = Field(
        default_factory=lambda: Path.cwd(),
        description="Root of the tree being indexed",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    index: IndexConfig = Field(default_factory=IndexConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    tree: TreeConfig = Field(default_factory=TreeConfig)

    @field_validator("project_root", mode="before")
    @classmethod
    def resolve_project_root(cls, v: Path | str) -> Path:
        """Resolve project root to absolute path."""
        path = Path(v) if isinstance(v, str) else v
        return path.resolve()

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load configuration from a TOML, YAML or JSON file."""
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()
        content = path.read_text()

        if suffix == ".toml":
            try:
                import tomllib
            except ImportError:
                import tomli as tomllib  # type: ignore
            data = tomllib.loads(content)
        elif suffix in (".yaml", ".yml"):
            import yaml

            data = yaml.safe_load(content) or {}
        elif suffix == ".json":
            data = json.loads(content)
        else:
            raise ConfigurationError(f"Unsupported config format: {suffix}")

        return cls(**data)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return self.model_dump()


def load_config(
    config_path: Path | None = None,
    project_root: Path | None = None,
) -> Config:
    """
    Load configuration with automatic discovery.

    Priority:
    1. Explicit config_path if provided
    2. voxref.toml in project_root
    3. .voxref/config.toml in project_root
    4. YAML variants of the above
    5. Default configuration
    """
    root = (project_root or Path.cwd()).resolve()

    if config_path and config_path.exists():
        config = Config.from_file(config_path)
        return config.model_copy(update={"project_root": root})

    candidates = [
        root / "voxref.toml",
        root / ".voxref" / "config.toml",
        root / "voxref.yaml",
        root / ".voxref" / "config.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            config = Config.from_file(candidate)
            return config.model_copy(update={"project_root": root})

    return Config(project_root=root)
