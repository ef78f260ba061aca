from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
import re
from typing import Callable

from uta.errors import EnvelopeError, NotFoundError, OutputError, ParseError
from uta.i18n import t
from uta.lyrics.export import render
from uta.lyrics.ttml import parse_ttml, pretty_ttml
from uta.sources.apple_music import lyrics_ttml
from uta.sources.service import LyricsService
from uta.sources.types import AlbumPayload, CatalogRef, TtmlPayload

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("lrc", "plain", "srt", "json", "ttml")
_EXTENSIONS = {"lrc": "lrc", "plain": "txt", "srt": "srt", "json": "json", "ttml": "ttml"}

_BAD_FS = re.compile(r"[\\/]+")


def _sanitize_filename(s: str) -> str:
    s2 = _BAD_FS.sub("_", s).strip()
    return s2 or "unknown"


@dataclass(frozen=True, slots=True)
class RenderedFile:
    path: Path
    content: str


def convert_payload(
    payload: TtmlPayload,
    *,
    fmt: str,
    syllable: bool = False,
    include_background: bool = True,
) -> str:
    """TTML payload -> text in `fmt`. `ttml` keeps the document, re-indented."""
    if fmt == "ttml":
        return pretty_ttml(payload.ttml)
    doc = parse_ttml(payload.ttml, syllable=syllable, include_background=include_background)
    doc = doc.with_tags(ti=payload.name, ar=payload.artist_name, al=payload.album_name or "")
    return render(doc, fmt, syllable=syllable)


def _file_name(name: str, artist: str, fmt: str) -> str:
    return f"{_sanitize_filename(name)} - {_sanitize_filename(artist)}.{_EXTENSIONS[fmt]}"


def plan_song(payload: TtmlPayload, out_dir: Path, *, fmt: str, syllable: bool, include_background: bool = True) -> list[RenderedFile]:
    content = convert_payload(payload, fmt=fmt, syllable=syllable, include_background=include_background)
    return [RenderedFile(out_dir / _file_name(payload.name, payload.artist_name, fmt), content)]


def plan_album(
    album: AlbumPayload,
    out_dir: Path,
    *,
    fmt: str,
    syllable: bool,
    include_background: bool = True,
    echo: Callable[[str], None] = logger.info,
) -> list[RenderedFile]:
    folder = out_dir / _sanitize_filename(album.display)
    files: list[RenderedFile] = []
    used: set[str] = set()
    for number, track in enumerate(album.tracks, start=1):
        if track.payload is None:
            echo(t("track_no_lyrics", track=track.display))
            continue
        content = convert_payload(track.payload, fmt=fmt, syllable=syllable, include_background=include_background)
        name = _file_name(track.name, track.artist_name, fmt)
        if name.casefold() in used:
            suffix = track.payload.catalog_id or str(number)
            name = _file_name(f"{track.name} ({suffix})", track.artist_name, fmt)
        used.add(name.casefold())
        files.append(RenderedFile(folder / name, content))
    if not files:
        raise NotFoundError(f"No track of {album.display} has lyrics")
    return files


def _staging_path(path: Path) -> Path:
    return path.with_name(f".{path.name}.part")


def _remove_quietly(path: Path, *, is_dir: bool = False) -> None:
    try:
        if is_dir:
            path.rmdir()
        else:
            path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Could not clean up %s: %s", path, e)


def write_files(files: list[RenderedFile]) -> list[Path]:
    """
    Write every file or none of them.

    Contents are staged next to their targets and moved into place once all of
    them are on disk. On failure, everything this call created is removed.
    """
    created_dirs: list[Path] = []
    staged: list[tuple[Path, Path]] = []
    placed: list[Path] = []
    current: Path | None = None
    try:
        for f in files:
            current = f.path
            parent = f.path.parent
            created_dirs.extend(p for p in (parent, *parent.parents) if not p.exists())
            parent.mkdir(parents=True, exist_ok=True)
            tmp = _staging_path(f.path)
            staged.append((tmp, f.path))
            tmp.write_text(f.content, encoding="utf-8")
        for tmp, path in staged:
            current = path
            existed = path.exists()
            tmp.replace(path)
            if not existed:
                placed.append(path)
    except OSError as e:
        for tmp, _ in staged:
            _remove_quietly(tmp)
        for path in placed:
            _remove_quietly(path)
        for d in created_dirs:
            _remove_quietly(d, is_dir=True)
        raise OutputError(f"Cannot write {current}: {e}") from e
    return [f.path for f in files]


def fetch_rendered(
    svc: LyricsService,
    ref: CatalogRef,
    *,
    fmt: str,
    syllable: bool,
    out_dir: Path,
    include_background: bool = True,
    echo: Callable[[str], None] = logger.info,
) -> list[RenderedFile]:
    """
    fetch -> convert -> render, everything kept in memory.

    Nothing touches the disk here, so a failure at any stage leaves no partial output.
    """
    if ref.kind == "song":
        echo(t("getting_song"))
        payload = svc.fetch_song(ref.id, syllable=syllable)
        return plan_song(payload, out_dir, fmt=fmt, syllable=syllable, include_background=include_background)

    echo(t("getting_album"))
    album = svc.fetch_album(ref.id, syllable=syllable)
    return plan_album(
        album,
        out_dir,
        fmt=fmt,
        syllable=syllable,
        include_background=include_background,
        echo=echo,
    )


def ttml_from_text(raw: str, *, syllable: bool = False) -> str:
    """
    Accepts raw TTML or a saved catalog/lyrics JSON response containing it.
    """
    text = raw.lstrip()
    if text.startswith("<"):
        return text
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ParseError("Input is neither TTML nor JSON") from e

    items = data.get("data") if isinstance(data, dict) else None
    if isinstance(items, list) and items and isinstance(items[0], dict):
        item = items[0]
        attrs = item.get("attributes")
        ttml = attrs.get("ttml") if isinstance(attrs, dict) else None
        if isinstance(ttml, str) and ttml.strip():
            return ttml
        try:
            ttml = lyrics_ttml(item.get("relationships"), syllable)
        except EnvelopeError as e:
            raise ParseError(f"Malformed JSON input: {e}") from e
        if ttml is not None:
            return ttml
    raise ParseError("No TTML found in JSON input")


def convert_file(path: Path, *, fmt: str, syllable: bool = False, include_background: bool = True) -> str:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(f"Cannot read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ParseError(f"{path} is not UTF-8 text: {e}") from e
    payload = TtmlPayload(ttml=ttml_from_text(raw, syllable=syllable), name="", artist_name="")
    return convert_payload(payload, fmt=fmt, syllable=syllable, include_background=include_background)
