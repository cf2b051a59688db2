"""Path helpers. Pure string transforms unless stated otherwise."""

from __future__ import annotations

import os
import posixpath
import re

_SEPARATOR_RUN_RE = re.compile(r"/{2,}")
_INVALID_FILENAME_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]+')


def normalise_path(path: str) -> str:
    """Return ``path`` with forward slashes only.

    Runs of separators collapse to one and a trailing separator is dropped,
    except for a bare root. Nothing is resolved against the file system.
    """
    normalized = _SEPARATOR_RUN_RE.sub("/", str(path).replace("\\", "/"))
    if len(normalized) > 1 and normalized.endswith("/"):
        normalized = normalized.rstrip("/") or "/"
    return normalized


def canonical_key(path: str) -> str:
    return normalise_path(path).lower()


def sanitise_filename(text: str) -> str:
    """Retrieve a string suitable for a file name.

    For instance ``Toto"a>b<c`` yields ``Toto_a_b_c``.
    """
    return "_".join(part for part in _INVALID_FILENAME_RE.split(text) if part)


def relative_path(from_path: str | os.PathLike[str], to_path: str | os.PathLike[str]) -> str:
    """Path of ``to_path`` relative to the directory ``from_path``.

    Both are made absolute first; the result uses forward slashes. A path on
    another drive cannot be made relative and is returned normalised.

    GOTCHA: ``from_path`` is always treated as a directory, so
    ``relative_path("/a/b", "/a/b/c.png")`` and
    ``relative_path("/a/b/", "/a/b/c.png")`` both yield ``c.png``.
    """
    if not os.fspath(from_path):
        raise ValueError("from_path must not be empty")
    if not os.fspath(to_path):
        raise ValueError("to_path must not be empty")
    source = normalise_path(os.path.abspath(os.fspath(from_path)))
    target = normalise_path(os.path.abspath(os.fspath(to_path)))
    source_drive, _ = os.path.splitdrive(source)
    target_drive, _ = os.path.splitdrive(target)
    if source_drive.lower() != target_drive.lower():
        return target
    return posixpath.relpath(target, source)
