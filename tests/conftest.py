"""Shared fixtures for the php-keyword-impact test suite."""

import io
import zipfile
from pathlib import Path

import pytest


def _make_zip(members: dict[str, bytes | str]) -> bytes:
    """Build an in-memory zip archive from ``{member_name: content}``.

    Names ending in ``/`` become directory entries.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in members.items():
            if name.endswith("/"):
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, content)
    return buffer.getvalue()


def _mark_encrypted(data: bytes) -> bytes:
    """Set the "encrypted" general-purpose flag on every member of a zip."""
    raw = bytearray(data)
    # Flag bits sit at offset 6 in local headers and 8 in central headers.
    for signature, offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        start = raw.find(signature)
        while start != -1:
            raw[start + offset] |= 0x01
            start = raw.find(signature, start + 4)
    return bytes(raw)


def _write_tree(root: Path, files: dict[str, str]) -> None:
    """Create ``{relative_path: text}`` files below *root*."""
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


@pytest.fixture
def make_zip():
    return _make_zip


@pytest.fixture
def make_encrypted_zip():
    return lambda members: _mark_encrypted(_make_zip(members))


@pytest.fixture
def write_tree():
    return _write_tree


@pytest.fixture
def sources_dir(tmp_path):
    """The ``sources/`` directory of the three-file reference corpus."""
    root = tmp_path / "downloads" / "sources"
    _write_tree(
        root,
        {
            "acme/alpha/src/a.php": "<?php\nlet();\n",
            "symfony/console/src/b.php": "<?php\nfunction Scope() {}\n",
            "laravel/framework/src/c.php": "<?php\nlabel:\nusing:\ngoto label;\n",
        },
    )
    return root
