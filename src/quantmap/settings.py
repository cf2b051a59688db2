"""Folder-name conventions of the asset library."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Mapping

from quantmap.exceptions import SettingsError


@dataclass(frozen=True)
class AssetSettings:
    # General paths: where to look for each model family.
    folder_bg: str = "02_BACKGROUND"
    folder_be: str = "04_BGELEMENTS"
    folder_ch: str = "01_CHARACTER"
    folder_pr: str = "03_PROP"
    # Folder where models get dumped by the creation pipeline.
    assets_export_folder: str = "export"
    assets_folder: str = "X:/03_ASSETS"
    episode_data_root_path: str = "Assets/Episode"
    mbxp_folder: str = "X:/03_ASSETS/07_TEXTURES/MBXP"

    @classmethod
    def from_config(cls, section: Mapping[str, object] | None) -> "AssetSettings":
        if not section:
            return cls()
        known = {field.name for field in fields(cls)}
        values = {
            key: str(value)
            for key, value in section.items()
            if key in known and isinstance(value, str) and value.strip()
        }
        return cls(**values)

    def category_folder(self, category: str) -> str:
        normalized = category.strip().lower()
        folders = {
            "bg": self.folder_bg,
            "be": self.folder_be,
            "ch": self.folder_ch,
            "pr": self.folder_pr,
        }
        if normalized not in folders:
            known = ",".join(sorted(folders))
            raise SettingsError(f"unknown asset category '{category}' (known: {known})")
        return folders[normalized]
