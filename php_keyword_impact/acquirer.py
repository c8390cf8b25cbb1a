"""Corpus acquisition: ranking fetch, bounded concurrent download, extraction.

Every per-package step is idempotent. The archive under ``zipballs/`` and the
extracted tree under ``sources/`` are the anchors: when one exists the step
that produces it is skipped, so re-running an interrupted acquisition only
does the missing work.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import NamedTuple

import httpx

from .clients import PackagistClient
from .constants import (
    MAX_CONCURRENT_DOWNLOADS,
    RANKINGS_DIRNAME,
    SCRATCH_DIRNAME,
    SOURCES_DIRNAME,
    ZIPBALLS_DIRNAME,
)
from .core.archive import extract_archive, write_atomically
from .core.exceptions import PackageNameError, RegistryError
from .logging_config import get_acquisition_logger

logger = logging.getLogger(__name__)
acquisition_logger = get_acquisition_logger()


class AcquisitionSummary(NamedTuple):
    succeeded: int
    failed: int


def split_package_name(package_name: str) -> tuple[str, str]:
    """Split ``vendor/project`` into its lowercase parts.

    Raises:
        PackageNameError: If the name does not have exactly one ``/`` with
            non-empty text on both sides.
    """
    parts = package_name.lower().split("/")
    if len(parts) != 2 or not all(parts):
        raise PackageNameError(
            f"Invalid package name format: {package_name}", package=package_name
        )
    return parts[0], parts[1]


def archive_path_for(target_dir: Path, vendor: str, project: str) -> Path:
    return target_dir / ZIPBALLS_DIRNAME / vendor / f"{vendor}-{project}.zip"


def source_dir_for(target_dir: Path, vendor: str, project: str) -> Path:
    return target_dir / SOURCES_DIRNAME / vendor / project


class CorpusAcquirer:
    """Downloads and extracts packages into a target directory."""

    def __init__(
        self,
        target_dir: Path,
        client: PackagistClient,
        max_concurrent: int = MAX_CONCURRENT_DOWNLOADS,
        refresh_ranking: bool = False,
    ) -> None:
        self.target_dir = Path(target_dir)
        self.client = client
        self.max_concurrent = max_concurrent
        self.refresh_ranking = refresh_ranking

    @property
    def scratch_dir(self) -> Path:
        return self.target_dir / SCRATCH_DIRNAME

    async def acquire(self, range_min: int, range_max: int) -> AcquisitionSummary:
        (self.target_dir / ZIPBALLS_DIRNAME).mkdir(parents=True, exist_ok=True)
        (self.target_dir / SOURCES_DIRNAME).mkdir(parents=True, exist_ok=True)

        try:
            packages = await self.client.get_popular_packages(
                range_min,
                range_max,
                cache_dir=self.target_dir / RANKINGS_DIRNAME,
                refresh=self.refresh_ranking,
            )
        except RegistryError as e:
            logger.error(f"Could not fetch the package ranking: {e}")
            return AcquisitionSummary(0, 0)

        logger.info(f"Acquiring {len(packages)} packages...")

        semaphore = asyncio.Semaphore(self.max_concurrent)
        outcomes = await asyncio.gather(
            *(self._acquire_guarded(name, semaphore) for name in packages),
            return_exceptions=True,
        )

        for name, outcome in zip(packages, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Unexpected error acquiring {name}: {outcome!r}")

        succeeded = sum(1 for ok in outcomes if ok is True)
        failed = len(outcomes) - succeeded

        if failed > 0:
            logger.warning(
                f"Acquisition complete: {succeeded} successful, {failed} failed"
            )
        else:
            logger.info(f"All {succeeded} packages acquired successfully")

        return AcquisitionSummary(succeeded, failed)

    async def _acquire_guarded(
        self, package_name: str, semaphore: asyncio.Semaphore
    ) -> bool:
        async with semaphore:
            try:
                await self.acquire_package(package_name)
            except Exception as e:
                logger.warning(f"Failed to acquire {package_name}: {e}")
                logger.debug("Acquisition failure details", exc_info=True)
                acquisition_logger.warning(
                    f"Failed to acquire {package_name}",
                    extra={
                        "event": "package_failed",
                        "package": package_name,
                        "status": "failed",
                        "error": str(e),
                    },
                )
                return False

        acquisition_logger.debug(
            f"Acquired {package_name}",
            extra={"event": "package_acquired", "package": package_name, "status": "ok"},
        )
        return True

    async def acquire_package(self, package_name: str) -> None:
        """Download and extract one package, skipping steps already done.

        Raises:
            AcquisitionError: On any registry, download or extraction failure.
            OSError: On local filesystem failures.
        """
        vendor, project = split_package_name(package_name)
        normalized_name = f"{vendor}/{project}"

        archive_path = archive_path_for(self.target_dir, vendor, project)
        if archive_path.exists():
            logger.debug(f"Package {package_name} already downloaded, skipping")
        else:
            await self._download(normalized_name, archive_path)

        extract_to = source_dir_for(self.target_dir, vendor, project)
        if extract_to.exists():
            logger.debug(f"Package {package_name} already extracted, skipping")
            return

        await asyncio.to_thread(
            extract_archive, archive_path, extract_to, self.scratch_dir
        )

    async def _download(self, package_name: str, archive_path: Path) -> None:
        versions = await self.client.get_versions(package_name)
        if not versions:
            raise RegistryError("No versions available for package", package=package_name)

        # The registry's last entry is taken as-is; no semver ordering.
        dist_url = versions[-1].dist_url
        if not dist_url:
            raise RegistryError("No dist information available", package=package_name)

        logger.debug(f"Downloading {package_name} from {dist_url}")
        data = await self.client.download(dist_url)
        await asyncio.to_thread(write_atomically, archive_path, data)
        logger.debug(f"Downloaded {len(data)} bytes to {archive_path}")


async def acquire_corpus(
    target_dir: Path,
    range_min: int,
    range_max: int,
    max_concurrent: int = MAX_CONCURRENT_DOWNLOADS,
    refresh_ranking: bool = False,
    http_client: httpx.AsyncClient | None = None,
) -> AcquisitionSummary:
    """Fetch popular packages ``[range_min, range_max)`` into *target_dir*.

    Args:
        target_dir: Root of the corpus (``zipballs/``, ``sources/``, ...).
        range_min: First ranking index to acquire (inclusive).
        range_max: Ranking index to stop at (exclusive).
        max_concurrent: Ceiling on packages in flight at the same time.
        refresh_ranking: Ignore cached ranking pages and fetch them again.
        http_client: Optional preconfigured ``httpx.AsyncClient``.

    Returns:
        The number of packages acquired and the number that failed.
    """
    async with PackagistClient(
        max_connections=max_concurrent, client=http_client
    ) as client:
        acquirer = CorpusAcquirer(
            Path(target_dir),
            client,
            max_concurrent=max_concurrent,
            refresh_ranking=refresh_ranking,
        )
        return await acquirer.acquire(range_min, range_max)


def extract_pending_archives(target_dir: Path) -> AcquisitionSummary:
    """Extract every downloaded archive that has no source tree yet.

    Works offline; used when downloading is skipped so that extractions
    interrupted by an earlier run are still completed.
    """
    target_dir = Path(target_dir)
    zipballs_dir = target_dir / ZIPBALLS_DIRNAME
    if not zipballs_dir.is_dir():
        return AcquisitionSummary(0, 0)

    succeeded = 0
    failed = 0
    for archive_path in sorted(zipballs_dir.glob("*/*.zip")):
        vendor = archive_path.parent.name
        prefix = f"{vendor}-"
        if not archive_path.stem.startswith(prefix):
            logger.debug(f"Skipping unexpected archive {archive_path}")
            continue
        project = archive_path.stem[len(prefix):]

        extract_to = source_dir_for(target_dir, vendor, project)
        if extract_to.exists():
            continue

        try:
            extract_archive(archive_path, extract_to, target_dir / SCRATCH_DIRNAME)
            succeeded += 1
        except Exception as e:
            logger.warning(f"Failed to extract {vendor}/{project}: {e}")
            logger.debug("Extraction failure details", exc_info=True)
            failed += 1

    if succeeded or failed:
        logger.info(f"Extracted {succeeded} pending archives ({failed} failed)")
    return AcquisitionSummary(succeeded, failed)
