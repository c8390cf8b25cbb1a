"""Custom exception hierarchy for php-keyword-impact.

Per-package and per-file errors are caught and counted by the pipeline;
only configuration errors and a missing corpus stop a run.
"""


class KeywordImpactError(Exception):
    """Base exception for all php-keyword-impact errors."""
    pass


class ConfigurationError(KeywordImpactError):
    """Invalid operator input (no terms, empty package range, ...)."""
    pass


# =============================================================================
# Acquisition Errors
# =============================================================================

class AcquisitionError(KeywordImpactError):
    """Base exception for failures while acquiring a single package."""

    def __init__(self, message: str, package: str | None = None):
        super().__init__(message)
        self.package = package


class PackageNameError(AcquisitionError):
    """Package name is not of the form ``vendor/project``."""
    pass


class RegistryError(AcquisitionError):
    """Registry unreachable, returned an error, or sent an unexpected payload."""
    pass


class DownloadError(AcquisitionError):
    """Archive download or write failed."""
    pass


class ExtractionError(AcquisitionError):
    """Archive could not be unpacked into the sources tree."""
    pass


# =============================================================================
# Analysis Errors
# =============================================================================

class CorpusNotFoundError(KeywordImpactError):
    """The sources directory to analyze does not exist."""

    def __init__(self, path: str):
        super().__init__(
            f"Sources directory does not exist: {path}. "
            "Run without --skip-download first."
        )
        self.path = path
