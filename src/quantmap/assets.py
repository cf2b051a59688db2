"""Asset-database helpers working directly on the file system.

Assets carry a sibling ``<asset>.meta`` text file whose second line holds the
asset GUID (``guid: 0123...``). Serialized text assets reference other assets
through the same ``guid: <hex>`` notation.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Iterator, Mapping

from quantmap.exceptions import AssetError
from quantmap.order_contract import sort_once

logger = logging.getLogger(__name__)

META_SUFFIX = ".meta"
EMPTY_GUID = "0" * 32

_GUID_RE = re.compile(r"^[0-9a-fA-F]{32}$")
_GUID_REFERENCE_RE = re.compile(r"\bguid:\s*([0-9a-fA-F]{32})\b")
_BINARY_SNIFF_BYTES = 8192


def all_asset_paths_from_root(root: Path, extension: str = "") -> list[Path]:
    """Given any path (directory or not), retrieve all asset paths below it."""
    if not root.exists():
        raise AssetError(f"asset path does not exist: {root.as_posix()}")
    if not root.is_dir():
        return [root]
    pattern = f"*{extension}" if extension else "*"
    include_meta = extension.lower() == META_SUFFIX
    paths = (
        path
        for path in root.rglob(pattern)
        if path.is_file() and (include_meta or path.suffix.lower() != META_SUFFIX)
    )
    return sort_once(
        paths,
        source="assets.all_asset_paths_from_root",
        key=lambda path: path.as_posix(),
    )


def meta_path_for(asset_path: Path) -> Path:
    return asset_path.with_name(asset_path.name + META_SUFFIX)


def guid_from_asset_path(asset_path: Path) -> str:
    """Extract an asset GUID from its meta file, or the empty GUID if there is none."""
    if not asset_path.exists():
        return EMPTY_GUID
    meta_path = meta_path_for(asset_path)
    if not meta_path.is_file():
        return EMPTY_GUID
    with meta_path.open("r", encoding="utf-8") as stream:
        # Skip 1 line
        stream.readline()
        guid_line = stream.readline()
    tokens = guid_line.split()
    if len(tokens) < 2 or not _GUID_RE.match(tokens[1]):
        return EMPTY_GUID
    return tokens[1].lower()


def change_guid(asset_path: Path, new_guid: str) -> bool:
    """Modify the given asset (including folders) GUID by touching its meta file."""
    if not _GUID_RE.match(new_guid):
        raise AssetError(f"invalid guid '{new_guid}': expected 32 hexadecimal digits")
    if not asset_path.exists():
        return False
    meta_path = meta_path_for(asset_path)
    if not meta_path.is_file():
        return False
    lines = [line for line in meta_path.read_text(encoding="utf-8").split("\n") if line]
    if len(lines) < 2:
        return False
    tokens = lines[1].split(" ")
    if len(tokens) < 2:
        return False
    tokens[1] = new_guid.lower()
    lines[1] = " ".join(tokens)
    # Unix line endings, matching what the editor writes.
    with meta_path.open("w", encoding="utf-8", newline="\n") as stream:
        for line in lines:
            stream.write(line + "\n")
    return True


def iter_guid_references(text: str) -> Iterator[str]:
    for match in _GUID_REFERENCE_RE.finditer(text):
        yield match.group(1).lower()


def build_guid_index(paths: Iterable[Path]) -> dict[str, str]:
    index: dict[str, str] = {}
    for path in paths:
        guid = guid_from_asset_path(path)
        if guid == EMPTY_GUID:
            continue
        if guid in index:
            logger.warning("duplicate guid %s: %s and %s", guid, index[guid], path.as_posix())
            continue
        index[guid] = path.as_posix()
    return index


def _read_text_asset(path: Path) -> str | None:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        logger.warning("cannot read %s: %s", path.as_posix(), exc)
        return None
    if b"\x00" in raw[:_BINARY_SNIFF_BYTES]:
        return None
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return None


def referenced_asset_paths(
    paths: Iterable[Path],
    guid_index: Mapping[str, str],
) -> Iterator[str]:
    """Yield the path of every asset referenced from the given text assets."""
    for path in paths:
        text = _read_text_asset(path)
        if text is None:
            logger.debug("skipping binary asset %s", path.as_posix())
            continue
        for guid in iter_guid_references(text):
            target = guid_index.get(guid)
            if target is None:
                logger.debug("unresolved guid %s in %s", guid, path.as_posix())
                continue
            yield target
