from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable, List, NoReturn, Optional
import logging

import typer
from pydantic import ValidationError

from quantmap.assets import (
    all_asset_paths_from_root,
    build_guid_index,
    change_guid,
    referenced_asset_paths,
)
from quantmap.config import (
    as_int,
    count_map_defaults,
    merge_payload,
    normalize_name_list,
    scan_defaults,
    settings_section,
)
from quantmap.exceptions import QuantMapError
from quantmap.logging_utils import configure_logging
from quantmap.paths import relative_path
from quantmap.quantile import (
    DEFAULT_HIGHER_BUCKET_INDEX,
    DEFAULT_LOWER_BUCKET_INDEX,
    CountMap,
)
from quantmap.runtime.json_io import dump_json_pretty, load_json_object_path, load_json_object_text
from quantmap.schema import CountMapReportDTO
from quantmap.settings import AssetSettings

app = typer.Typer(add_completion=False)
logger = logging.getLogger(__name__)

_STDIO_ALIAS = "-"


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"error: {exc}", err=True)
    raise typer.Exit(code=1)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write logs to this file."),
) -> None:
    """Reference-count reports bucketed by powers of two."""
    configure_logging(level=logging.DEBUG if verbose else logging.INFO, log_path=log_file)


def _resolve_bucket_range(
    *,
    lower: int | None,
    upper: int | None,
    root: Path,
    config: Path | None,
) -> tuple[int, int]:
    defaults = count_map_defaults(root=root, config_path=config)
    merged = merge_payload(
        {"lower_bucket_index": lower, "higher_bucket_index": upper},
        defaults,
    )
    return (
        as_int(merged.get("lower_bucket_index"), DEFAULT_LOWER_BUCKET_INDEX),
        as_int(merged.get("higher_bucket_index"), DEFAULT_HIGHER_BUCKET_INDEX),
    )


def _build_count_map(lower: int, upper: int, items: Iterable[str]) -> CountMap:
    try:
        count_map = CountMap(lower_bucket_index=lower, higher_bucket_index=upper)
        count_map.add_items(items)
    except QuantMapError as exc:
        _fail(exc)
    return count_map


def _write_report(count_map: CountMap, output: str) -> None:
    payload = count_map.serialize()
    if output == _STDIO_ALIAS:
        typer.echo(payload.decode("utf-8"), nl=False)
        return
    target = Path(output)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(payload)
    logger.info(
        "wrote %d unique items (%d references) to %s",
        len(count_map),
        count_map.total_items_count,
        target.as_posix(),
    )


def _read_lines(source: Optional[Path]) -> list[str]:
    if source is None or str(source) == _STDIO_ALIAS:
        text = typer.get_text_stream("stdin").read()
    else:
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as exc:
            raise typer.BadParameter(f"cannot read {source}: {exc}") from exc
    return [line.strip() for line in text.splitlines() if line.strip()]


@app.command("count")
def count(
    items_file: Optional[Path] = typer.Argument(
        None, help="Newline-separated items to count ('-' or omitted: stdin)."
    ),
    lower: Optional[int] = typer.Option(None, "--lower", help="Lowest tracked power-of-two exponent."),
    upper: Optional[int] = typer.Option(None, "--upper", help="Highest tracked power-of-two exponent."),
    output: str = typer.Option(_STDIO_ALIAS, "--output", "-o"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Count newline-separated items and write the bucketed report."""
    lower_index, upper_index = _resolve_bucket_range(
        lower=lower, upper=upper, root=Path.cwd(), config=config
    )
    items = _read_lines(items_file)
    count_map = _build_count_map(lower_index, upper_index, items)
    _write_report(count_map, output)


def _excluded(path: Path, *, root: Path, patterns: list[str]) -> bool:
    rel = relative_path(root, path)
    return any(fnmatch(rel, pattern) for pattern in patterns)


@app.command("refcount")
def refcount(
    root: Path = typer.Argument(..., help="Asset library root."),
    category: Optional[str] = typer.Option(
        None, "--category", help="Only scan one model family (bg|be|ch|pr)."
    ),
    extension: Optional[str] = typer.Option(
        None, "--extension", help="Only scan referencing assets with this extension."
    ),
    exclude: List[str] = typer.Option([], "--exclude", help="Glob of root-relative paths to skip."),
    lower: Optional[int] = typer.Option(None, "--lower"),
    upper: Optional[int] = typer.Option(None, "--upper"),
    output: str = typer.Option(_STDIO_ALIAS, "--output", "-o"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Count how many times each asset below ROOT is referenced."""
    if not root.is_dir():
        raise typer.BadParameter(f"{root} is not a directory", param_hint="ROOT")
    scan = scan_defaults(root=root, config_path=config)
    settings = AssetSettings.from_config(settings_section(root=root, config_path=config))
    scan_root = root
    if category is not None:
        try:
            scan_root = root / settings.category_folder(category)
        except QuantMapError as exc:
            _fail(exc)
    patterns = normalize_name_list(scan.get("exclude")) + list(exclude)
    suffix = extension if extension is not None else str(scan.get("extension") or "")

    try:
        all_paths = [
            path
            for path in all_asset_paths_from_root(root)
            if not _excluded(path, root=root, patterns=patterns)
        ]
        guid_index = build_guid_index(all_paths)
        logger.info("indexed %d assets with a guid below %s", len(guid_index), root.as_posix())
        sources = [
            path
            for path in all_asset_paths_from_root(scan_root, suffix)
            if not _excluded(path, root=root, patterns=patterns)
        ]
    except QuantMapError as exc:
        _fail(exc)
    logger.info("scanning %d assets for references", len(sources))
    references = (
        relative_path(root, target)
        for target in referenced_asset_paths(sources, guid_index)
    )
    lower_index, upper_index = _resolve_bucket_range(
        lower=lower, upper=upper, root=root, config=config
    )
    count_map = _build_count_map(lower_index, upper_index, references)
    _write_report(count_map, output)


@app.command("summarize")
def summarize(
    report: str = typer.Argument(..., help="Report JSON file ('-' for stdin)."),
    as_json: bool = typer.Option(False, "--json", help="Print bucket sizes as JSON."),
) -> None:
    """Print the number of members of each bucket of a report."""
    if report == _STDIO_ALIAS:
        payload = load_json_object_text(typer.get_text_stream("stdin").read())
    else:
        payload = load_json_object_path(Path(report))
    if not payload:
        _fail(ValueError(f"{report} is not a JSON object report"))
    try:
        dto = CountMapReportDTO.model_validate(payload)
    except ValidationError as exc:
        _fail(exc)
    if as_json:
        typer.echo(
            dump_json_pretty(
                {
                    "buckets": [
                        {"name": bucket.name, "size": len(bucket.members)}
                        for bucket in dto.buckets
                    ],
                    "total_items_count": dto.total_items_count,
                    "unique_items_count": dto.unique_items_count,
                }
            )
        )
        return
    for bucket in dto.buckets:
        typer.echo(f"{bucket.name}: {len(bucket.members)}")
    typer.echo(
        f"total: {dto.total_items_count} references, {dto.unique_items_count} unique items"
    )


@app.command("rewrite-guid")
def rewrite_guid(
    asset: Path = typer.Argument(..., help="Asset (file or folder) whose meta file to rewrite."),
    guid: str = typer.Argument(..., help="New 32-digit hexadecimal guid."),
) -> None:
    """Replace the guid stored in an asset's meta file."""
    try:
        changed = change_guid(asset, guid)
    except QuantMapError as exc:
        _fail(exc)
    if not changed:
        typer.echo(f"no meta file rewritten for {asset}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{asset}: guid set to {guid.lower()}")


def main() -> None:
    app()
