import json
import logging
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..constants import (
    DEFAULT_REQUEST_TIMEOUT,
    PACKAGIST_METADATA_URL,
    PACKAGIST_PER_PAGE,
    PACKAGIST_POPULAR_URL,
    USER_AGENT,
)
from ..core.archive import write_atomically
from ..core.exceptions import DownloadError, RegistryError

logger = logging.getLogger(__name__)


class PackageItem(BaseModel):
    name: str


class PopularPage(BaseModel):
    packages: list[PackageItem] = Field(default_factory=list)


class DistInfo(BaseModel):
    url: str


class VersionInfo(BaseModel):
    dist: DistInfo | None = None

    @property
    def dist_url(self) -> str | None:
        return self.dist.url if self.dist else None


class PackageMetadata(BaseModel):
    packages: dict[str, list[VersionInfo]] = Field(default_factory=dict)


class PackagistClient:
    """Async client for the Packagist listing, metadata and dist endpoints.

    The underlying ``httpx.AsyncClient`` can be injected, which is how tests
    route requests to an ``httpx.MockTransport``.
    """

    POPULAR_URL = PACKAGIST_POPULAR_URL
    METADATA_URL = PACKAGIST_METADATA_URL
    PER_PAGE = PACKAGIST_PER_PAGE

    def __init__(
        self,
        timeout: int = DEFAULT_REQUEST_TIMEOUT,
        max_connections: int | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            limits=httpx.Limits(max_connections=max_connections),
        )

    async def __aenter__(self) -> "PackagistClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise RegistryError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise RegistryError(f"Invalid JSON from {url}: {e}") from e

    async def get_popular_page(
        self, page: int, cache_dir: Path | None = None, refresh: bool = False
    ) -> list[str]:
        """Return the package names listed on one page of the popular ranking.

        When *cache_dir* is given, freshly fetched pages are cached there and,
        unless *refresh* is set, a previously cached copy is used instead of
        the network.
        """
        cache_file = cache_dir / f"popular-page-{page}.json" if cache_dir else None

        if cache_file is not None and not refresh and cache_file.exists():
            try:
                data = json.loads(cache_file.read_text(encoding="utf-8"))
                logger.debug(f"Using cached ranking page {page}")
                return [item.name for item in PopularPage(**data).packages]
            except (OSError, ValueError, ValidationError) as e:
                logger.warning(f"Ignoring unreadable ranking cache {cache_file}: {e}")

        logger.debug(f"Fetching ranking page {page}")
        data = await self._get_json(self.POPULAR_URL, params={"page": page})
        try:
            listing = PopularPage(**data)
        except (TypeError, ValidationError) as e:
            raise RegistryError(f"Unexpected ranking payload on page {page}: {e}") from e

        if cache_file is not None:
            try:
                write_atomically(
                    cache_file, json.dumps(listing.model_dump()).encode("utf-8")
                )
            except OSError as e:
                logger.warning(f"Could not cache ranking page {page}: {e}")

        return [item.name for item in listing.packages]

    async def get_popular_packages(
        self,
        range_min: int,
        range_max: int,
        cache_dir: Path | None = None,
        refresh: bool = False,
    ) -> list[str]:
        """Return popular package names with rank in ``[range_min, range_max)``."""
        packages: list[str] = []
        page = range_min // self.PER_PAGE + 1
        index = (page - 1) * self.PER_PAGE

        logger.info(
            f"Fetching top packages from Packagist (min: {range_min}, max: {range_max})"
        )

        while index < range_max:
            names = await self.get_popular_page(page, cache_dir, refresh)
            if not names:
                logger.warning(f"Ranking ended at page {page} before reaching {range_max}")
                break

            for name in names:
                if range_min <= index < range_max:
                    packages.append(name)
                index += 1
                if index >= range_max:
                    break

            page += 1

        logger.info(f"Collected {len(packages)} packages")
        return packages

    async def get_versions(self, package_name: str) -> list[VersionInfo]:
        """Fetch the version list advertised for ``vendor/project``."""
        url = f"{self.METADATA_URL}/{package_name}.json"
        data = await self._get_json(url)
        try:
            metadata = PackageMetadata(**data)
        except (TypeError, ValidationError) as e:
            raise RegistryError(
                f"Unexpected metadata payload: {e}", package=package_name
            ) from e

        if package_name not in metadata.packages:
            raise RegistryError("Package not found in metadata", package=package_name)
        return metadata.packages[package_name]

    async def download(self, url: str) -> bytes:
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DownloadError(f"Failed to download {url}: {e}") from e
        return response.content
