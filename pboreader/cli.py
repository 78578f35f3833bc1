"""Click CLI for inspecting and extracting PBO archives."""
from __future__ import annotations

import fnmatch
import logging
import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click

from pboreader.config import get_config_path, load_config, resolve_output_dir, save_config
from pboreader.pbo.entry import Entry
from pboreader.pbo.errors import PboError
from pboreader.pbo.reader import PboReader

_LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]

pbo_path = click.Path(exists=True, dir_okay=False, path_type=Path)


@contextmanager
def _open_archive(path: Path) -> Iterator[PboReader]:
    """Open an archive, turning reader errors into clean CLI failures."""
    try:
        reader = PboReader(path)
    except PboError as exc:
        raise click.ClickException(str(exc)) from exc
    with reader:
        try:
            yield reader
        except PboError as exc:
            raise click.ClickException(str(exc)) from exc


def _find_entry(reader: PboReader, name: str) -> Entry:
    entry = reader.find_by_path(name)
    if entry is None:
        raise click.ClickException(f"No entry '{name}' in {reader.path.name}")
    return entry


def _safe_target(dest: Path, name: str) -> Optional[Path]:
    """Map an archive name to a path under dest, or None if it would escape."""
    parts = [p for p in name.replace("\\", "/").split("/") if p not in ("", ".")]
    if not parts or ".." in parts or name.startswith(("/", "\\")) or ":" in parts[0]:
        return None
    return dest.joinpath(*parts)


@click.group()
@click.option("--verbose", "-v", count=True, help="Log more (-v info, -vv debug)")
@click.version_option(package_name="pboreader")
def cli(verbose: int):
    """pbo - Bohemia Interactive PBO archive reader.

    List, inspect, and extract files from OFP / Arma .pbo archives.
    """
    logging.basicConfig(
        level=_LOG_LEVELS[min(verbose, len(_LOG_LEVELS) - 1)],
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("list")
@click.argument("archive", type=pbo_path)
def list_entries(archive: Path):
    """List files in an archive."""
    with _open_archive(archive) as reader:
        click.echo(f"{'Size':>10}  {'Stored':>10}  {'P':<1}  {'Modified':<19}  Name")
        click.echo("-" * 80)
        for e in reader.entries:
            packed = "P" if e.is_packed else ""
            click.echo(
                f"{e.unpacked_size:>10,}  {e.data_block_size:>10,}  {packed:<1}  "
                f"{e.modified:%Y-%m-%d %H:%M:%S}  {e.name}"
            )
        click.echo("-" * 80)
        click.echo(f"{len(reader.entries)} file(s), {reader.data_size:,} bytes stored")


@cli.command()
@click.argument("archive", type=pbo_path)
def info(archive: Path):
    """Show header layout and product fields."""
    with _open_archive(archive) as reader:
        click.echo(f"Archive:     {reader.path}")
        click.echo(f"Entries:     {len(reader.entries):,}")
        click.echo(f"Header size: {reader.header_size:,} bytes")
        click.echo(f"Data size:   {reader.data_size:,} bytes")
        packed = sum(1 for e in reader.entries if e.is_packed)
        if packed:
            click.echo(f"Packed:      {packed:,} entries")

        if reader.extension is None:
            click.echo("\nNo product entry.")
            return

        click.echo(f"\nProduct entry '{reader.extension.name}':")
        if not reader.fields:
            click.echo("  (no fields)")
        for key, value in reader.fields.items():
            click.echo(f"  {key} = {value}")


@cli.command()
@click.argument("archive", type=pbo_path)
@click.argument("name")
def show(archive: Path, name: str):
    """Show the header record for one file."""
    with _open_archive(archive) as reader:
        entry = _find_entry(reader, name)
        click.echo(str(entry))
        click.echo(f"Content Offset: {entry.content_offset}")


@cli.command()
@click.argument("archive", type=pbo_path)
@click.argument("name")
@click.option("--raw", is_flag=True, help="Write stored bytes even if the entry is packed")
def cat(archive: Path, name: str, raw: bool):
    """Write one file's content to stdout."""
    with _open_archive(archive) as reader:
        entry = _find_entry(reader, name)
        if not raw:
            # Raises UnsupportedFeature for packed entries
            data = reader.unpack_file(entry)
            click.get_binary_stream("stdout").write(data)
            return
        out = click.get_binary_stream("stdout")
        with entry.open_content() as src:
            shutil.copyfileobj(src, out)


@cli.command()
@click.argument("archive", type=pbo_path)
@click.option("--output", "-o", type=click.Path(file_okay=False, path_type=Path),
              default=None, help="Destination directory (default: from config or next to archive)")
@click.option("--pattern", default=None, help="Only extract names matching this glob (e.g. '*.sqf')")
@click.option("--raw", is_flag=True, help="Also extract packed entries as stored (compressed) bytes")
@click.option("--overwrite/--no-overwrite", default=None, help="Replace existing files")
def extract(archive: Path, output: Optional[Path], pattern: Optional[str], raw: bool,
            overwrite: Optional[bool]):
    """Extract files from an archive."""
    config = load_config()
    if overwrite is None:
        overwrite = config.overwrite
    dest = resolve_output_dir(output, archive, config)

    with _open_archive(archive) as reader:
        dest.mkdir(parents=True, exist_ok=True)
        click.echo(f"Extracting {reader.path.name} to {dest}")

        written = 0
        skipped = 0
        for entry in reader.entries:
            if pattern and not fnmatch.fnmatchcase(entry.path.lower(), pattern.lower()):
                continue

            target = _safe_target(dest, entry.name)
            if target is None:
                click.echo(f"  refusing unsafe path: {entry.name}", err=True)
                skipped += 1
                continue
            if entry.is_packed and not raw:
                click.echo(f"  skipping packed entry: {entry.name} (use --raw)", err=True)
                skipped += 1
                continue
            if target.exists() and not overwrite:
                click.echo(f"  exists, not overwriting: {target}", err=True)
                skipped += 1
                continue

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                with entry.open_content() as src, open(target, "wb") as out:
                    shutil.copyfileobj(src, out)
                os.utime(target, (entry.timestamp, entry.timestamp))
            except PboError:
                raise
            except OSError as exc:
                raise click.ClickException(f"Cannot write {target}: {exc}") from exc
            written += 1

        if reader.fields:
            props = dest / config.properties_file
            props.write_text(
                "".join(f"{k}={v}\n" for k, v in reader.fields.items()),
                encoding="utf-8",
            )

    click.echo(f"Extracted {written} file(s)" + (f", skipped {skipped}" if skipped else ""))


@cli.command("config")
@click.option("--extract-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Default root for extracted archives")
@click.option("--properties-file", default=None, help="File name for product fields on extract")
@click.option("--overwrite/--no-overwrite", default=None, help="Replace existing files on extract")
def config_cmd(extract_dir: Optional[Path], properties_file: Optional[str],
               overwrite: Optional[bool]):
    """Show or update saved defaults."""
    config = load_config()
    changed = False
    if extract_dir is not None:
        config.extract_dir = extract_dir
        changed = True
    if properties_file is not None:
        config.properties_file = properties_file
        changed = True
    if overwrite is not None:
        config.overwrite = overwrite
        changed = True

    if changed:
        path = save_config(config)
        click.echo(f"Config saved to {path}\n")
    else:
        click.echo(f"Config: {get_config_path()}\n")

    click.echo(f"  extract_dir     = {config.extract_dir or '(next to archive)'}")
    click.echo(f"  properties_file = {config.properties_file}")
    click.echo(f"  overwrite       = {str(config.overwrite).lower()}")
