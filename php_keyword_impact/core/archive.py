"""Atomic archive persistence and extraction.

Nothing written here becomes visible at its final path until it is complete:
archives are written to a sibling temporary file and renamed, and archives
are unpacked into a private scratch directory that is renamed into place as
the very last step. An interrupted run therefore leaves either nothing or a
finished result, and re-running simply redoes the missing step.
"""

import logging
import os
import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path

from .exceptions import ExtractionError

logger = logging.getLogger(__name__)

_COPY_CHUNK_SIZE = 64 * 1024


def write_atomically(path: Path, data: bytes) -> None:
    """Write *data* to *path* so that readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".part"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def sanitize_member_path(filename: str) -> Path | None:
    """Turn an archive member name into a safe relative path.

    Leading slashes, drive letters, ``.`` and ``..`` components are dropped.
    Returns ``None`` when nothing is left.
    """
    parts = []
    for part in Path(filename.replace("\\", "/")).parts:
        part = part.strip("/")
        if part in ("", ".", "..") or part.endswith(":"):
            continue
        parts.append(part)

    if not parts:
        return None
    return Path(*parts)


def unpack_into(archive_path: Path, destination: Path) -> None:
    """Unpack every member of *archive_path* below *destination*."""
    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            for info in zf.infolist():
                safe_path = sanitize_member_path(info.filename)
                if safe_path is None:
                    continue

                target_path = destination / safe_path
                if info.is_dir():
                    target_path.mkdir(parents=True, exist_ok=True)
                    continue

                target_path.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as source, open(target_path, "wb") as target:
                    shutil.copyfileobj(source, target, _COPY_CHUNK_SIZE)
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Invalid or corrupted zip file {archive_path}: {e}") from e
    except (RuntimeError, NotImplementedError, EOFError, zlib.error) as e:
        # Encrypted members, unsupported compression or truncated data.
        raise ExtractionError(f"Cannot unpack {archive_path}: {e}") from e


def extract_archive(archive_path: Path, extract_to: Path, scratch_dir: Path) -> None:
    """Extract *archive_path* to *extract_to*, flattening a single top directory.

    Registry zipballs usually wrap everything in one ``vendor-project-<sha>/``
    directory; when that is the case its contents end up directly under
    *extract_to*.

    Args:
        archive_path: The zip archive to extract.
        extract_to: Final location. Must not exist yet.
        scratch_dir: Directory for the private temporary extraction. Must be
            on the same filesystem as *extract_to* so the final rename is
            atomic.

    Raises:
        ExtractionError: If the archive is unreadable or the filesystem
            operations fail. The scratch directory is removed in that case.
    """
    scratch_dir.mkdir(parents=True, exist_ok=True)
    temp_dir = Path(tempfile.mkdtemp(prefix=f"{extract_to.name}-", dir=scratch_dir))

    try:
        unpack_into(archive_path, temp_dir)

        entries = list(temp_dir.iterdir())
        extract_to.parent.mkdir(parents=True, exist_ok=True)

        if len(entries) == 1 and entries[0].is_dir():
            os.rename(entries[0], extract_to)
            temp_dir.rmdir()
        else:
            os.rename(temp_dir, extract_to)
    except OSError as e:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e
    except BaseException:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise

    logger.debug(f"Extracted {archive_path} to {extract_to}")
