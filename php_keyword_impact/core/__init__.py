"""Filesystem building blocks: archives, directory walking and errors."""

from .archive import extract_archive, sanitize_member_path, write_atomically
from .exceptions import (
    AcquisitionError,
    ConfigurationError,
    CorpusNotFoundError,
    DownloadError,
    ExtractionError,
    KeywordImpactError,
    PackageNameError,
    RegistryError,
)
from .file_walker import discover_files

__all__ = [
    "AcquisitionError",
    "ConfigurationError",
    "CorpusNotFoundError",
    "DownloadError",
    "ExtractionError",
    "KeywordImpactError",
    "PackageNameError",
    "RegistryError",
    "discover_files",
    "extract_archive",
    "sanitize_member_path",
    "write_atomically",
]
