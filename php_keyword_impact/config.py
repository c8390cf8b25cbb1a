"""Run configuration assembled from command-line input."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .constants import MAX_CONCURRENT_DOWNLOADS, SOURCES_DIRNAME
from .core.exceptions import ConfigurationError


class ScanConfig(BaseModel):
    """Validated settings for one run.

    Keywords and labels are lowercased and deduplicated while keeping the
    order the operator gave them in.
    """

    keywords: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    range_min: int = Field(default=100, ge=0)
    range_max: int = Field(default=500, ge=1)
    directory: Path = Path("downloads")
    skip_download: bool = False
    refresh_ranking: bool = False
    concurrency: int = Field(default=MAX_CONCURRENT_DOWNLOADS, ge=1)
    workers: int | None = Field(default=None, ge=1)
    show_matches: bool = False

    @field_validator("keywords", "labels")
    @classmethod
    def _normalize_terms(cls, terms: list[str]) -> list[str]:
        seen: list[str] = []
        for term in terms:
            term = term.strip().lower()
            if term and term not in seen:
                seen.append(term)
        return seen

    @model_validator(mode="after")
    def _check_consistency(self) -> ScanConfig:
        if not self.keywords and not self.labels:
            raise ValueError("at least one keyword or label must be given")
        if self.range_min >= self.range_max:
            raise ValueError(
                f"--min ({self.range_min}) must be smaller than --max ({self.range_max})"
            )
        return self

    @classmethod
    def build(cls, **values: object) -> ScanConfig:
        """Construct a config, turning validation failures into ``ConfigurationError``."""
        try:
            return cls(**values)
        except ValidationError as e:
            messages = "; ".join(
                err["msg"].removeprefix("Value error, ") for err in e.errors()
            )
            raise ConfigurationError(messages) from None

    @property
    def sources_dir(self) -> Path:
        return self.directory / SOURCES_DIRNAME
