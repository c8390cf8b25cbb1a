"""CLI entry point: php-keyword-impact.

Usage:
    php-keyword-impact -k let -k scope -l using --min 0 --max 1000
    php-keyword-impact -k let --skip-download -d downloads
"""

from __future__ import annotations

import asyncio
import logging
import time

import click

from . import __version__
from .acquirer import acquire_corpus, extract_pending_archives
from .config import ScanConfig
from .constants import MAX_CONCURRENT_DOWNLOADS
from .core.exceptions import ConfigurationError, CorpusNotFoundError
from .corpus_analyzer import analyze_corpus
from .logging_config import configure_logging
from .report import render_matches, render_report

logger = logging.getLogger(__name__)


@click.command()
@click.option(
    "-k", "--keyword", "keywords", multiple=True,
    help="Keyword to look for (repeatable)",
)
@click.option(
    "-l", "--label", "labels", multiple=True,
    help="Label or named-argument name to look for (repeatable)",
)
@click.option(
    "--min", "range_min", type=int, default=100, show_default=True,
    help="First package rank to include",
)
@click.option(
    "--max", "range_max", type=int, default=500, show_default=True,
    help="Package rank to stop at (exclusive)",
)
@click.option(
    "-d", "--directory", type=click.Path(file_okay=False), default="downloads",
    show_default=True, help="Corpus directory",
)
@click.option("--skip-download", is_flag=True, help="Analyze what is already on disk")
@click.option("--refresh-ranking", is_flag=True, help="Re-fetch cached ranking pages")
@click.option(
    "--concurrency", type=int, default=MAX_CONCURRENT_DOWNLOADS, show_default=True,
    help="Packages acquired at the same time",
)
@click.option("--workers", type=int, default=None, help="Matcher processes (default: CPU count)")
@click.option("--show-matches", is_flag=True, help="List every match with its location")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None,
              help="Write per-package acquisition outcomes as JSON lines")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.version_option(__version__, prog_name="php-keyword-impact")
def main(
    keywords: tuple[str, ...],
    labels: tuple[str, ...],
    range_min: int,
    range_max: int,
    directory: str,
    skip_download: bool,
    refresh_ranking: bool,
    concurrency: int,
    workers: int | None,
    show_matches: bool,
    log_file: str | None,
    verbose: bool,
) -> None:
    """Measure how often PHP identifiers collide with candidate keywords."""
    try:
        config = ScanConfig.build(
            keywords=list(keywords),
            labels=list(labels),
            range_min=range_min,
            range_max=range_max,
            directory=directory,
            skip_download=skip_download,
            refresh_ranking=refresh_ranking,
            concurrency=concurrency,
            workers=workers,
            show_matches=show_matches,
        )
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from None

    configure_logging(verbose=verbose, log_file=log_file)
    started = time.perf_counter()

    if config.skip_download:
        logger.info("Skipping download, analyzing existing sources")
        extract_pending_archives(config.directory)
    else:
        download_started = time.perf_counter()
        asyncio.run(
            acquire_corpus(
                config.directory,
                config.range_min,
                config.range_max,
                max_concurrent=config.concurrency,
                refresh_ranking=config.refresh_ranking,
            )
        )
        logger.info(f"Download phase took {time.perf_counter() - download_started:.2f}s")

    analysis_started = time.perf_counter()
    try:
        analysis = analyze_corpus(
            config.sources_dir,
            config.keywords,
            config.labels,
            workers=config.workers,
        )
    except CorpusNotFoundError as e:
        raise click.ClickException(str(e)) from None
    logger.info(f"Analysis phase took {time.perf_counter() - analysis_started:.2f}s")

    if config.show_matches:
        render_matches(analysis.matches)

    render_report(
        analysis.report,
        show_keywords=bool(config.keywords),
        show_labels=bool(config.labels),
    )
    logger.info(f"Total time: {time.perf_counter() - started:.2f}s")


if __name__ == "__main__":
    main()
