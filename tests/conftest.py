from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest


@pytest.fixture
def write_asset():
    def _write(
        path: Path,
        *,
        guid: str | None = None,
        text: str = "",
        data: bytes | None = None,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if data is not None:
            path.write_bytes(data)
        else:
            path.write_text(text, encoding="utf-8")
        if guid is not None:
            meta = path.with_name(path.name + ".meta")
            meta.write_text(
                f"fileFormatVersion: 2\nguid: {guid}\nNativeFormatImporter:\n  mainObjectFileID: 0\n",
                encoding="utf-8",
            )
        return path

    return _write


@pytest.fixture
def asset_library(tmp_path: Path, write_asset) -> Path:
    """A small library: one texture used three times, one material used once."""
    root = tmp_path / "library"
    texture_guid = "a" * 32
    material_guid = "b" * 32
    write_asset(root / "Textures" / "Wall.png", guid=texture_guid, data=b"\x89PNG\x00\x00")
    write_asset(
        root / "01_CHARACTER" / "Hero.mat",
        guid=material_guid,
        text=f"Material:\n  m_Texture: {{fileID: 2800000, guid: {texture_guid}, type: 3}}\n",
    )
    write_asset(
        root / "02_BACKGROUND" / "Street.prefab",
        guid="c" * 32,
        text=(
            f"Prefab:\n  m_Material: {{fileID: 2100000, guid: {material_guid}, type: 2}}\n"
            f"  m_Texture: {{fileID: 2800000, guid: {texture_guid}, type: 3}}\n"
            f"  m_Other: {{fileID: 2800000, guid: {texture_guid}, type: 3}}\n"
            f"  m_Missing: {{fileID: 11500000, guid: {'d' * 32}, type: 3}}\n"
        ),
    )
    return root
