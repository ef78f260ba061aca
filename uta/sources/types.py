from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from urllib.parse import parse_qs, urlsplit

from uta.errors import IdentifierError

CatalogKind = Literal["song", "album"]


@dataclass(frozen=True, slots=True)
class CatalogRef:
    kind: CatalogKind
    id: str


def parse_identifier(identifier: str) -> CatalogRef:
    """
    Resolve a music.apple.com URL or a bare catalog id.

    - .../album/name/123?i=456 -> song 456
    - .../song/name/456        -> song 456
    - .../album/name/123       -> album 123
    - 456                      -> song 456
    """
    raw = (identifier or "").strip()
    if not raw:
        raise IdentifierError("Empty URL or catalog id")
    if raw.isdigit():
        return CatalogRef(kind="song", id=raw)

    parts = urlsplit(raw)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise IdentifierError(f"Not a URL or catalog id: {identifier!r}")

    song_id = parse_qs(parts.query).get("i")
    if song_id and song_id[0].strip():
        return CatalogRef(kind="song", id=song_id[0].strip())

    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        raise IdentifierError(f"No path segments in URL: {identifier!r}")

    # /<storefront>/<kind>/<slug>/<id>; the slug itself may be "song"
    kinds = [s for s in segments[:-1] if s in ("song", "album")]
    kind: CatalogKind = "song" if kinds and kinds[0] == "song" else "album"
    return CatalogRef(kind=kind, id=segments[-1])


@dataclass(frozen=True, slots=True)
class TtmlPayload:
    ttml: str
    name: str
    artist_name: str
    catalog_id: str | None = None
    album_name: str | None = None

    @property
    def display(self) -> str:
        if self.name and self.artist_name:
            return f"{self.name} - {self.artist_name}"
        return self.name or self.artist_name or "Unknown track"


@dataclass(frozen=True, slots=True)
class TrackLyrics:
    name: str
    artist_name: str
    payload: TtmlPayload | None

    @property
    def display(self) -> str:
        return f"{self.name} - {self.artist_name}"


@dataclass(frozen=True, slots=True)
class AlbumPayload:
    name: str
    artist_name: str
    tracks: tuple[TrackLyrics, ...]

    @property
    def display(self) -> str:
        return f"{self.name} - {self.artist_name}"
