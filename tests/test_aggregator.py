import pytest
from pydantic import ValidationError

from php_keyword_impact.aggregator import Aggregator, aggregate
from php_keyword_impact.models import (
    AnalysisReport,
    Confidence,
    FileMatches,
    ImpactLevel,
    KeywordMatch,
    KeywordResult,
    LabelMatch,
    Vendor,
)


def _kw(keyword, vendor=Vendor.OTHER, confidence=Confidence.SOFT):
    return KeywordMatch(keyword=keyword, vendor=vendor, confidence=confidence)


def _files():
    return [
        FileMatches(
            keyword_matches=[
                _kw("let", Vendor.SYMFONY),
                _kw("let", Vendor.SYMFONY, Confidence.HARD),
            ]
        ),
        FileMatches(
            keyword_matches=[_kw("scope", Vendor.LARAVEL)],
            label_matches=[LabelMatch(label="using", vendor=Vendor.TWIG)],
        ),
        FileMatches(keyword_matches=[_kw("let", Vendor.OTHER, Confidence.HARD)]),
    ]


class TestVendor:
    @pytest.mark.parametrize(
        "package, vendor",
        [
            ("symfony/console", Vendor.SYMFONY),
            ("laravel/framework", Vendor.LARAVEL),
            ("doctrine/orm", Vendor.DOCTRINE),
            ("phpunit/phpunit", Vendor.PHPUNIT),
            ("twig/twig", Vendor.TWIG),
            ("illuminate/support", Vendor.ILLUMINATE),
            ("symfonyx/foo", Vendor.OTHER),
            ("acme/symfony", Vendor.OTHER),
            ("symfony", Vendor.OTHER),
        ],
    )
    def test_from_package(self, package, vendor):
        assert Vendor.from_package(package) is vendor

    def test_well_known(self):
        assert Vendor.TWIG.is_well_known
        assert not Vendor.OTHER.is_well_known


class TestImpactLevel:
    @pytest.mark.parametrize(
        "count, level",
        [
            (0, ImpactLevel.NONE),
            (1, ImpactLevel.LOW),
            (25, ImpactLevel.LOW),
            (26, ImpactLevel.MEDIUM),
            (100, ImpactLevel.MEDIUM),
            (101, ImpactLevel.HIGH),
            (500, ImpactLevel.HIGH),
            (501, ImpactLevel.CRITICAL),
        ],
    )
    def test_tiers(self, count, level):
        assert ImpactLevel.calculate(count) is level

    def test_ordering_and_labels(self):
        assert ImpactLevel.NONE < ImpactLevel.LOW < ImpactLevel.CRITICAL
        assert ImpactLevel.CRITICAL.label == "Critical"

    @pytest.mark.parametrize("soft, hard", [(0, 0), (25, 1), (1, 500), (600, 0), (3, 97)])
    def test_hard_impact_never_below_soft(self, soft, hard):
        result = KeywordResult(soft_count=soft, hard_count=hard)
        assert result.hard_impact >= result.soft_impact


class TestAggregator:
    def test_counts_and_vendors(self):
        report = aggregate(_files(), ["let", "scope"], ["using"], total_files=3)

        let = report.keyword_results["let"]
        assert (let.soft_count, let.hard_count) == (1, 2)
        assert let.total_count == 3
        assert let.well_known_vendors == {Vendor.SYMFONY}

        assert report.keyword_results["scope"].well_known_vendors == {Vendor.LARAVEL}
        assert report.label_results["using"].count == 1
        assert report.label_results["using"].well_known_vendors == {Vendor.TWIG}
        assert report.total_files == 3

    def test_requested_keywords_always_present(self):
        report = aggregate([], ["zzzneverused"], total_files=0)
        result = report.keyword_results["zzzneverused"]
        assert (result.soft_count, result.hard_count) == (0, 0)
        assert result.hard_impact is ImpactLevel.NONE

    def test_order_does_not_matter(self):
        forward = aggregate(_files(), ["let", "scope"], ["using"])
        backward = aggregate(reversed(_files()), ["let", "scope"], ["using"])
        assert forward == backward

    def test_merge_matches_single_fold(self):
        files = _files()
        left, right = Aggregator(), Aggregator()
        left.add_file_matches(files[0])
        right.add_file_matches(files[1])
        right.add_file_matches(files[2])

        right.merge(left)

        expected = aggregate(files, ["let", "scope"], ["using"])
        assert right.build_report(["let", "scope"], 0) == expected

    def test_report_is_frozen(self):
        report = aggregate(_files(), ["let"])
        with pytest.raises(ValidationError):
            report.total_files = 5

    def test_report_detached_from_aggregator(self):
        aggregator = Aggregator()
        aggregator.add_file_matches(_files()[0])
        report = aggregator.build_report(["let"], 1)
        aggregator.add_file_matches(_files()[0])
        assert report.keyword_results["let"].total_count == 2


class TestRanking:
    def test_ranked_keywords(self):
        report = AnalysisReport(
            keyword_results={
                "b": KeywordResult(soft_count=10),
                "a": KeywordResult(soft_count=10),
                "c": KeywordResult(soft_count=30),
                "d": KeywordResult(hard_count=600),
                "e": KeywordResult(),
            }
        )
        assert [k for k, _ in report.ranked_keywords()] == ["d", "c", "a", "b", "e"]

    def test_sorted_labels(self):
        report = aggregate(
            [
                FileMatches(
                    label_matches=[
                        LabelMatch(label="zeta", vendor=Vendor.OTHER),
                        LabelMatch(label="alpha", vendor=Vendor.OTHER),
                    ]
                )
            ],
            [],
            ["zeta", "alpha"],
        )
        assert [label for label, _ in report.sorted_labels()] == ["alpha", "zeta"]
