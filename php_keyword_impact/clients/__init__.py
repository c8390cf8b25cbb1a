"""Registry clients for fetching package rankings, metadata and archives."""

from .packagist_client import (
    DistInfo,
    PackageItem,
    PackageMetadata,
    PackagistClient,
    PopularPage,
    VersionInfo,
)

__all__ = [
    "DistInfo",
    "PackageItem",
    "PackageMetadata",
    "PackagistClient",
    "PopularPage",
    "VersionInfo",
]
