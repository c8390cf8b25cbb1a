import asyncio
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from php_keyword_impact.acquirer import (
    AcquisitionSummary,
    CorpusAcquirer,
    acquire_corpus,
    archive_path_for,
    extract_pending_archives,
    source_dir_for,
    split_package_name,
)
from php_keyword_impact.clients import PackagistClient
from php_keyword_impact.core.exceptions import PackageNameError


class FakeRegistry:
    """Serves a small Packagist: ranking pages, metadata and zipballs."""

    def __init__(self, make_zip, packages: dict[str, dict | None]):
        # package name -> archive members, or None for a package whose
        # metadata has no dist URL
        self.packages = packages
        self.make_zip = make_zip
        self.requests: list[str] = []
        self.fail_downloads: set[str] = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        host, path = request.url.host, request.url.path

        if host == "packagist.org" and path == "/explore/popular.json":
            page = int(request.url.params["page"])
            names = list(self.packages)[(page - 1) * 15:page * 15]
            return httpx.Response(200, json={"packages": [{"name": n} for n in names]})

        if host == "repo.packagist.org" and path.startswith("/p2/"):
            name = path[len("/p2/"):-len(".json")]
            if name not in self.packages:
                return httpx.Response(404)
            members = self.packages[name]
            version = {"version": "1.0.0"}
            if members is not None:
                version["dist"] = {"url": f"https://dl.example/{name}.zip"}
            return httpx.Response(
                200, json={"packages": {name: [{"version": "0.1.0"}, version]}}
            )

        if host == "dl.example":
            name = path[1:-len(".zip")]
            if name in self.fail_downloads:
                return httpx.Response(500)
            return httpx.Response(200, content=self.make_zip(self.packages[name]))

        return httpx.Response(404)


@pytest.fixture
def registry(make_zip):
    return FakeRegistry(
        make_zip,
        {
            "acme/alpha": {"acme-alpha-1/src/a.php": b"<?php let();"},
            "symfony/console": {"symfony-console-2/b.php": b"<?php"},
            "laravel/framework": {"c.php": b"<?php", "d.php": b"<?php"},
        },
    )


def _acquire(target: Path, registry: FakeRegistry, **kwargs) -> AcquisitionSummary:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(registry))

    async def run():
        try:
            return await acquire_corpus(target, 0, 15, http_client=http_client, **kwargs)
        finally:
            await http_client.aclose()

    return asyncio.run(run())


class TestPackageNames:
    def test_split(self):
        assert split_package_name("Symfony/Console") == ("symfony", "console")

    @pytest.mark.parametrize("name", ["noslash", "a/b/c", "/x", "x/", ""])
    def test_invalid(self, name):
        with pytest.raises(PackageNameError):
            split_package_name(name)

    def test_layout(self, tmp_path):
        assert archive_path_for(tmp_path, "acme", "alpha") == (
            tmp_path / "zipballs" / "acme" / "acme-alpha.zip"
        )
        assert source_dir_for(tmp_path, "acme", "alpha") == (
            tmp_path / "sources" / "acme" / "alpha"
        )


class TestAcquireCorpus:
    def test_downloads_and_extracts(self, tmp_path, registry):
        summary = _acquire(tmp_path, registry)

        assert summary == AcquisitionSummary(succeeded=3, failed=0)
        assert (tmp_path / "zipballs" / "acme" / "acme-alpha.zip").exists()
        assert (tmp_path / "sources" / "acme" / "alpha" / "src" / "a.php").exists()
        assert (tmp_path / "sources" / "symfony" / "console" / "b.php").exists()
        assert (tmp_path / "sources" / "laravel" / "framework" / "c.php").exists()
        assert (tmp_path / "rankings" / "popular-page-1.json").exists()

    def test_second_run_makes_no_requests(self, tmp_path, registry):
        _acquire(tmp_path, registry)
        before = {p: p.stat().st_mtime_ns for p in tmp_path.rglob("*") if p.is_file()}
        registry.requests.clear()

        summary = _acquire(tmp_path, registry)

        assert summary.succeeded == 3
        assert registry.requests == []
        after = {p: p.stat().st_mtime_ns for p in tmp_path.rglob("*") if p.is_file()}
        assert after == before

    def test_refresh_ranking_fetches_listing_only(self, tmp_path, registry):
        _acquire(tmp_path, registry)
        registry.requests.clear()

        _acquire(tmp_path, registry, refresh_ranking=True)

        assert registry.requests
        assert all("popular.json" in url for url in registry.requests)

    def test_failures_are_counted_not_fatal(self, tmp_path, registry):
        registry.packages["broken/nodist"] = None
        registry.fail_downloads.add("symfony/console")

        summary = _acquire(tmp_path, registry)

        assert summary == AcquisitionSummary(succeeded=2, failed=2)
        assert (tmp_path / "sources" / "acme" / "alpha").exists()
        assert not (tmp_path / "zipballs" / "symfony" / "symfony-console.zip").exists()
        assert not (tmp_path / "sources" / "symfony").exists()

    def test_ranking_failure_returns_empty_summary(self, tmp_path):
        def handler(request):
            return httpx.Response(500)

        summary = _acquire(tmp_path, handler)
        assert summary == AcquisitionSummary(0, 0)

    def test_existing_archive_skips_metadata(self, tmp_path, registry, make_zip):
        archive = archive_path_for(tmp_path, "acme", "alpha")
        archive.parent.mkdir(parents=True)
        archive.write_bytes(make_zip({"pre/x.php": b"<?php"}))

        _acquire(tmp_path, registry)

        assert not any("/p2/acme/alpha.json" in url for url in registry.requests)
        assert (tmp_path / "sources" / "acme" / "alpha" / "x.php").exists()

    def test_unreadable_archive_does_not_abort_batch(
        self, tmp_path, registry, make_encrypted_zip
    ):
        registry.packages["bad/pkg"] = {"pkg-sha/a.php": b"<?php"}
        archive = archive_path_for(tmp_path, "bad", "pkg")
        archive.parent.mkdir(parents=True)
        archive.write_bytes(make_encrypted_zip({"pkg-sha/a.php": b"<?php"}))

        summary = _acquire(tmp_path, registry)

        assert summary == AcquisitionSummary(succeeded=3, failed=1)
        assert not (tmp_path / "sources" / "bad").exists()
        assert (tmp_path / "sources" / "acme" / "alpha").exists()

    def test_unexpected_error_is_counted(self, tmp_path, registry):
        with patch(
            "php_keyword_impact.acquirer.extract_archive",
            side_effect=ValueError("unexpected"),
        ):
            summary = _acquire(tmp_path, registry)

        assert summary == AcquisitionSummary(succeeded=0, failed=3)


class TestCorpusAcquirer:
    @pytest.mark.asyncio
    async def test_invalid_name_fails_package(self, tmp_path, registry):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(registry))
        async with PackagistClient(client=http_client) as client:
            acquirer = CorpusAcquirer(tmp_path, client, max_concurrent=2)
            ok = await acquirer._acquire_guarded("not-a-package", asyncio.Semaphore(1))
        await http_client.aclose()

        assert ok is False
        assert registry.requests == []


class TestExtractPendingArchives:
    def test_extracts_missing_sources(self, tmp_path, make_zip):
        zipballs = tmp_path / "zipballs"
        (zipballs / "acme").mkdir(parents=True)
        (zipballs / "acme" / "acme-alpha.zip").write_bytes(make_zip({"a.php": b"<?php"}))
        (zipballs / "acme" / "acme-broken.zip").write_bytes(b"garbage")
        (tmp_path / "sources" / "acme" / "done").mkdir(parents=True)
        (zipballs / "acme" / "acme-done.zip").write_bytes(make_zip({"b.php": b"<?php"}))

        summary = extract_pending_archives(tmp_path)

        assert summary == AcquisitionSummary(succeeded=1, failed=1)
        assert (tmp_path / "sources" / "acme" / "alpha" / "a.php").exists()
        assert not (tmp_path / "sources" / "acme" / "done" / "b.php").exists()

    def test_encrypted_archive_is_counted(self, tmp_path, make_zip, make_encrypted_zip):
        zipballs = tmp_path / "zipballs"
        (zipballs / "bad").mkdir(parents=True)
        (zipballs / "bad" / "bad-pkg.zip").write_bytes(
            make_encrypted_zip({"pkg-sha/a.php": b"<?php"})
        )
        (zipballs / "good").mkdir()
        (zipballs / "good" / "good-pkg.zip").write_bytes(make_zip({"a.php": b"<?php"}))

        summary = extract_pending_archives(tmp_path)

        assert summary == AcquisitionSummary(succeeded=1, failed=1)
        assert (tmp_path / "sources" / "good" / "pkg" / "a.php").exists()
        assert not (tmp_path / "sources" / "bad").exists()

    def test_no_zipballs(self, tmp_path):
        assert extract_pending_archives(tmp_path) == AcquisitionSummary(0, 0)
