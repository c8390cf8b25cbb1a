"""Data models shared by the acquisition, matching and aggregation stages.

Per-occurrence records (``KeywordMatch``, ``LabelMatch``) are lightweight
dataclasses because millions of them cross process boundaries. Aggregated
results and the final report are pydantic models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field

from .constants import IMPACT_HIGH_MAX, IMPACT_LOW_MAX, IMPACT_MEDIUM_MAX


class Vendor(str, Enum):
    """Package namespace, reduced to a closed set of well-known vendors."""

    SYMFONY = "symfony"
    LARAVEL = "laravel"
    DOCTRINE = "doctrine"
    PHPUNIT = "phpunit"
    TWIG = "twig"
    ILLUMINATE = "illuminate"
    OTHER = "other"

    @property
    def is_well_known(self) -> bool:
        return self is not Vendor.OTHER

    @classmethod
    def from_package(cls, package: str) -> Vendor:
        """Classify a ``vendor/project`` name by its vendor prefix.

        Only the first path segment matters; ``"symfony/console"`` is
        ``SYMFONY`` while ``"symfonyx/console"`` and ``"acme/symfony"`` are
        ``OTHER``.
        """
        for vendor in cls:
            if vendor is not cls.OTHER and package.startswith(f"{vendor.value}/"):
                return vendor
        return cls.OTHER


class Confidence(str, Enum):
    """How strongly a keyword occurrence is tied to a declared symbol."""

    SOFT = "soft"
    HARD = "hard"


class ImpactLevel(IntEnum):
    """Severity tier derived from a match count."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def calculate(cls, total: int) -> ImpactLevel:
        if total <= 0:
            return cls.NONE
        if total <= IMPACT_LOW_MAX:
            return cls.LOW
        if total <= IMPACT_MEDIUM_MAX:
            return cls.MEDIUM
        if total <= IMPACT_HIGH_MAX:
            return cls.HIGH
        return cls.CRITICAL


@dataclass(frozen=True)
class KeywordMatch:
    """One occurrence of a requested keyword.

    Attributes:
        keyword: The requested keyword (lowercase) that matched.
        vendor: Vendor of the package the file belongs to.
        confidence: ``SOFT`` for call-like textual matches, ``HARD`` for
            matches anchored to a declared or resolved name.
        path: File the occurrence was found in, when known.
        line: 1-based line number, 0 when unknown.
    """

    keyword: str
    vendor: Vendor
    confidence: Confidence
    path: str | None = None
    line: int = 0

    @property
    def is_hard(self) -> bool:
        return self.confidence is Confidence.HARD


@dataclass(frozen=True)
class LabelMatch:
    """One occurrence of a requested label (goto label or named argument)."""

    label: str
    vendor: Vendor
    path: str | None = None
    line: int = 0


@dataclass
class FileMatches:
    """All matches produced by analyzing one file."""

    keyword_matches: list[KeywordMatch] = field(default_factory=list)
    label_matches: list[LabelMatch] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.keyword_matches) + len(self.label_matches)


class KeywordResult(BaseModel):
    """Aggregated counts for one keyword."""

    soft_count: int = 0
    hard_count: int = 0
    well_known_vendors: set[Vendor] = Field(default_factory=set)

    @property
    def total_count(self) -> int:
        return self.soft_count + self.hard_count

    @property
    def soft_impact(self) -> ImpactLevel:
        return ImpactLevel.calculate(self.soft_count)

    @property
    def hard_impact(self) -> ImpactLevel:
        # Hard matches are added on top of soft ones, so this never ranks
        # below soft_impact.
        return ImpactLevel.calculate(self.total_count)

    def add_match(self, match: KeywordMatch) -> None:
        if match.is_hard:
            self.hard_count += 1
        else:
            self.soft_count += 1
        if match.vendor.is_well_known:
            self.well_known_vendors.add(match.vendor)

    def merge(self, other: KeywordResult) -> None:
        self.soft_count += other.soft_count
        self.hard_count += other.hard_count
        self.well_known_vendors |= other.well_known_vendors


class LabelResult(BaseModel):
    """Aggregated counts for one label."""

    count: int = 0
    well_known_vendors: set[Vendor] = Field(default_factory=set)

    def add_match(self, match: LabelMatch) -> None:
        self.count += 1
        if match.vendor.is_well_known:
            self.well_known_vendors.add(match.vendor)

    def merge(self, other: LabelResult) -> None:
        self.count += other.count
        self.well_known_vendors |= other.well_known_vendors


class AnalysisReport(BaseModel):
    """Final, read-only result of one analysis run.

    Attributes:
        keyword_results: Result per requested keyword, including keywords
            that were never matched.
        label_results: Result per label that matched at least once.
        total_files: Number of files discovered in the corpus.
    """

    model_config = ConfigDict(frozen=True)

    keyword_results: dict[str, KeywordResult] = Field(default_factory=dict)
    label_results: dict[str, LabelResult] = Field(default_factory=dict)
    total_files: int = 0

    def ranked_keywords(self) -> list[tuple[str, KeywordResult]]:
        """Keywords ordered by hard impact, then total count, then name."""
        return sorted(
            self.keyword_results.items(),
            key=lambda item: (-item[1].hard_impact, -item[1].total_count, item[0]),
        )

    def sorted_labels(self) -> list[tuple[str, LabelResult]]:
        return sorted(self.label_results.items())
