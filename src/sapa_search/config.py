"""Centralized configuration for the site search tooling using Pydantic Settings."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``SAPA_SEARCH_*`` environment variables.

    Settings are only read by the composition root (the CLI). Library components
    receive the values they need as explicit constructor arguments.
    """

    model_config = SettingsConfigDict(
        env_prefix="SAPA_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Content sources
    data_dir: Path = Field(default=Path("data"), description="Root directory of the structured content sources")
    newsletters_path: str = Field(default="newsletters/newsletters.json", description="Newsletter source file")
    meetings_path: str = Field(default="meetings/meetings.json", description="Meeting source file")
    resources_path: str = Field(default="members/resources.json", description="Member resources source file")
    glossary_path: str = Field(default="glossary/glossary.json", description="Glossary source file")
    meeting_default_title: str = Field(default="SAPA Meeting", description="Title used for untitled meetings")

    # Build artifacts
    output_dir: Path = Field(default=Path("dist/data"), description="Directory receiving the search artifacts")
    index_filename: str = Field(default="search-index.json", description="Serialized inverted index file name")
    documents_filename: str = Field(default="search-documents.json", description="Document catalog file name")
    search_page: Path = Field(default=Path("search.html"), description="Page that receives embedded search data")

    # Runtime
    base_url: str = Field(default="./dist/data", description="Base URL the artifacts are fetched from")
    http_timeout: float = Field(default=10.0, gt=0, description="HTTP timeout in seconds for artifact fetches")
    default_limit: int = Field(default=50, description="Default result limit (0 or negative means unlimited)")
    suggestion_limit: int = Field(default=5, ge=1, description="Maximum number of suggestions")
    debounce_ms: int = Field(default=300, ge=0, description="Input debounce delay in milliseconds")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unsupported log level: {value!r}"
            raise ValueError(msg)
        return normalized

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def index_path(self) -> Path:
        return self.output_dir / self.index_filename

    @property
    def documents_path(self) -> Path:
        return self.output_dir / self.documents_filename

    def get_source_paths(self) -> dict[str, Path]:
        """Return the absolute-or-relative path of each content source keyed by document type."""
        return {
            "newsletter": self.data_dir / self.newsletters_path,
            "meeting": self.data_dir / self.meetings_path,
            "resource": self.data_dir / self.resources_path,
            "glossary": self.data_dir / self.glossary_path,
        }
