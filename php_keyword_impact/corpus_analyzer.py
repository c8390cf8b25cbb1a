"""Analysis of an extracted corpus: discovery, parallel matching, aggregation."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import NamedTuple

from .aggregator import aggregate
from .core.exceptions import CorpusNotFoundError, KeywordImpactError
from .core.file_walker import discover_files
from .models import AnalysisReport, FileMatches
from .scanners.php import KeywordMatcher

logger = logging.getLogger(__name__)

# Per-process matcher, built by the pool initializer.
_worker_matcher: KeywordMatcher | None = None
_worker_sources_root: Path | None = None


def _init_worker(keywords: Sequence[str], labels: Sequence[str], sources_root: Path) -> None:
    global _worker_matcher, _worker_sources_root
    _worker_matcher = KeywordMatcher(keywords, labels)
    _worker_sources_root = sources_root


def _analyze_in_worker(path: Path) -> FileMatches:
    if _worker_matcher is None or _worker_sources_root is None:
        raise KeywordImpactError("Worker process was not initialized")
    return _worker_matcher.analyze_file(path, _worker_sources_root)


class CorpusAnalysis(NamedTuple):
    report: AnalysisReport
    matches: list[FileMatches]


def _chunksize(file_count: int, workers: int) -> int:
    return max(1, min(256, file_count // (workers * 8) or 1))


def analyze_corpus(
    sources_dir: Path,
    keywords: Sequence[str],
    labels: Sequence[str] = (),
    workers: int | None = None,
) -> CorpusAnalysis:
    """Match every PHP file under *sources_dir* and aggregate the results.

    Args:
        sources_dir: The corpus ``sources/`` directory.
        keywords: Keywords to look for (lowercase).
        labels: Labels to look for (lowercase).
        workers: Number of matcher processes. ``1`` runs in the calling
            process; ``None`` uses one per CPU.

    Raises:
        CorpusNotFoundError: If *sources_dir* does not exist.
    """
    sources_dir = Path(sources_dir)
    if not sources_dir.is_dir():
        raise CorpusNotFoundError(sources_dir)

    files = discover_files(sources_dir)
    logger.info(
        f"Analyzing {len(files)} files for {len(keywords)} keywords"
        f" and {len(labels)} labels..."
    )

    workers = workers or os.cpu_count() or 1
    if workers == 1 or len(files) < 2:
        matcher = KeywordMatcher(keywords, labels)
        matches = [matcher.analyze_file(path, sources_dir) for path in files]
    else:
        with ProcessPoolExecutor(
            max_workers=workers,
            initializer=_init_worker,
            initargs=(tuple(keywords), tuple(labels), sources_dir),
        ) as executor:
            matches = list(
                executor.map(
                    _analyze_in_worker,
                    files,
                    chunksize=_chunksize(len(files), workers),
                )
            )

    report = aggregate(matches, keywords, labels, total_files=len(files))
    logger.info(
        f"Found {sum(len(m) for m in matches)} matches in {len(files)} files"
    )
    return CorpusAnalysis(report=report, matches=matches)
