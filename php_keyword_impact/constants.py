"""Constants and configuration values for php-keyword-impact.

This module centralizes magic numbers and configuration values
that are used across the codebase for easier maintenance.
"""

import os

# =============================================================================
# Packagist Registry
# =============================================================================

PACKAGIST_POPULAR_URL = "https://packagist.org/explore/popular.json"
PACKAGIST_METADATA_URL = "https://repo.packagist.org/p2"

# Number of packages returned per page of the popular listing
PACKAGIST_PER_PAGE = 15

USER_AGENT = "php-keyword-impact/0.1.0"


# =============================================================================
# Acquisition
# =============================================================================

# Maximum number of packages being fetched/extracted at the same time.
# Network-bound, so this does not depend on the CPU count.
MAX_CONCURRENT_DOWNLOADS = int(os.environ.get("PKI_MAX_CONCURRENT_DOWNLOADS", 64))

# Default HTTP request timeout in seconds
DEFAULT_REQUEST_TIMEOUT = int(os.environ.get("PKI_REQUEST_TIMEOUT", 30))

# Layout under the target directory
ZIPBALLS_DIRNAME = "zipballs"
SOURCES_DIRNAME = "sources"
RANKINGS_DIRNAME = "rankings"
SCRATCH_DIRNAME = "tmp"


# =============================================================================
# Analysis
# =============================================================================

PHP_EXTENSIONS = (".php", ".php7", ".php8")

# Below this many scanned files the report carries a coverage warning
RECOMMENDED_MIN_FILES = 200_000

# Upper bounds (inclusive) of the Low, Medium and High impact tiers
IMPACT_LOW_MAX = 25
IMPACT_MEDIUM_MAX = 100
IMPACT_HIGH_MAX = 500

# Width at which vendor lists wrap inside report tables
VENDOR_COLUMN_WIDTH = 60
