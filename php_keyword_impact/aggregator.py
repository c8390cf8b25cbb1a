"""Folding of per-file matches into per-term results.

The fold only adds, so its outcome is independent of the order in which
files, or partial aggregators, are combined.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import (
    AnalysisReport,
    FileMatches,
    KeywordMatch,
    KeywordResult,
    LabelMatch,
    LabelResult,
)


class Aggregator:
    """Accumulates keyword and label matches."""

    def __init__(self) -> None:
        self.keyword_results: dict[str, KeywordResult] = {}
        self.label_results: dict[str, LabelResult] = {}

    def add_keyword_match(self, match: KeywordMatch) -> None:
        result = self.keyword_results.get(match.keyword)
        if result is None:
            result = self.keyword_results[match.keyword] = KeywordResult()
        result.add_match(match)

    def add_label_match(self, match: LabelMatch) -> None:
        result = self.label_results.get(match.label)
        if result is None:
            result = self.label_results[match.label] = LabelResult()
        result.add_match(match)

    def add_file_matches(self, matches: FileMatches) -> None:
        for keyword_match in matches.keyword_matches:
            self.add_keyword_match(keyword_match)
        for label_match in matches.label_matches:
            self.add_label_match(label_match)

    def merge(self, other: Aggregator) -> None:
        """Add everything *other* has accumulated into this aggregator."""
        for keyword, result in other.keyword_results.items():
            self.keyword_results.setdefault(keyword, KeywordResult()).merge(result)
        for label, result in other.label_results.items():
            self.label_results.setdefault(label, LabelResult()).merge(result)

    def build_report(
        self, requested_keywords: Iterable[str], total_files: int
    ) -> AnalysisReport:
        """Freeze the accumulated results into an ``AnalysisReport``.

        Every requested keyword gets an entry, with zero counts if it never
        matched.
        """
        keyword_results = {
            keyword: result.model_copy(deep=True)
            for keyword, result in self.keyword_results.items()
        }
        for keyword in requested_keywords:
            keyword_results.setdefault(keyword.lower(), KeywordResult())

        label_results = {
            label: result.model_copy(deep=True)
            for label, result in self.label_results.items()
        }

        return AnalysisReport(
            keyword_results=keyword_results,
            label_results=label_results,
            total_files=total_files,
        )


def aggregate(
    match_lists: Iterable[FileMatches],
    requested_keywords: Iterable[str],
    requested_labels: Iterable[str] = (),
    total_files: int = 0,
) -> AnalysisReport:
    """Fold all per-file match lists into one report.

    Labels are reported only once they match; *requested_labels* restricts
    the report to the labels that were asked for.
    """
    aggregator = Aggregator()
    for matches in match_lists:
        aggregator.add_file_matches(matches)

    wanted_labels = {label.lower() for label in requested_labels}
    if wanted_labels:
        aggregator.label_results = {
            label: result
            for label, result in aggregator.label_results.items()
            if label in wanted_labels
        }

    return aggregator.build_report(requested_keywords, total_files)
