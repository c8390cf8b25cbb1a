from pathlib import Path

import pytest

from php_keyword_impact.config import ScanConfig
from php_keyword_impact.core.exceptions import ConfigurationError


class TestScanConfig:
    def test_defaults(self):
        config = ScanConfig.build(keywords=["let"])
        assert config.range_min == 100
        assert config.range_max == 500
        assert config.directory == Path("downloads")
        assert config.sources_dir == Path("downloads/sources")

    def test_terms_are_normalized(self):
        config = ScanConfig.build(keywords=[" Let", "let", "SCOPE", ""], labels=["Using"])
        assert config.keywords == ["let", "scope"]
        assert config.labels == ["using"]

    def test_labels_alone_are_enough(self):
        assert ScanConfig.build(labels=["using"]).keywords == []

    def test_requires_a_term(self):
        with pytest.raises(ConfigurationError, match="at least one keyword or label"):
            ScanConfig.build()

    @pytest.mark.parametrize("range_min, range_max", [(10, 10), (20, 10)])
    def test_min_must_be_below_max(self, range_min, range_max):
        with pytest.raises(ConfigurationError, match="must be smaller"):
            ScanConfig.build(keywords=["let"], range_min=range_min, range_max=range_max)

    def test_negative_min(self):
        with pytest.raises(ConfigurationError):
            ScanConfig.build(keywords=["let"], range_min=-1)

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            ScanConfig.build(keywords=["let"], concurrency=0)
