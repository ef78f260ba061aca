from __future__ import annotations

import logging
from typing import Any

import requests

from uta.errors import ApiResponseError, AuthError, EnvelopeError, NetworkError, NotFoundError

from .types import AlbumPayload, TrackLyrics, TtmlPayload

logger = logging.getLogger(__name__)

WEB_ORIGIN = "https://music.apple.com"
API_BASE = "https://amp-api.music.apple.com/v1"
INCLUDE_SONGS = "album,lyrics,syllable-lyrics"


def build_session(user_agent: str) -> requests.Session:
    s = requests.Session()
    s.headers.update(
        {
            "Content-Type": "application/json;charset=utf-8",
            "Connection": "keep-alive",
            "Accept": "application/json",
            "Origin": WEB_ORIGIN,
            "Referer": WEB_ORIGIN + "/",
            "Accept-Encoding": "gzip, deflate",
            "User-Agent": user_agent,
        }
    )
    return s


class AppleMusicClient:
    """
    Thin wrapper over the web player endpoints and the catalog API.

    Every failure is mapped to a uta error kind; nothing is retried.
    """

    def __init__(self, session: requests.Session, *, timeout_s: float):
        self.session = session
        self.timeout_s = timeout_s

    def _get(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> requests.Response:
        logger.debug("GET %s", url)
        try:
            r = self.session.get(url, headers=headers, params=params, timeout=self.timeout_s)
        except requests.Timeout as e:
            raise NetworkError(f"Request to {url} timed out after {self.timeout_s}s") from e
        except requests.RequestException as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

        if r.status_code in (401, 403):
            raise AuthError(f"Apple Music rejected the credentials (HTTP {r.status_code})")
        if r.status_code == 404:
            raise NotFoundError(f"Not found: {url}")
        if not 200 <= r.status_code < 300:
            raise ApiResponseError(f"HTTP {r.status_code} from {url}", status_code=r.status_code)
        return r

    def get_text(self, url: str, **kwargs: Any) -> str:
        return self._get(url, **kwargs).text

    def get_json(self, url: str, **kwargs: Any) -> dict[str, Any]:
        r = self._get(url, **kwargs)
        try:
            data = r.json()
        except ValueError as e:
            raise EnvelopeError(f"Response from {url} is not JSON") from e
        if not isinstance(data, dict):
            raise EnvelopeError(f"Unexpected response shape from {url}")
        return data


def catalog_headers(developer_token: str, media_user_token: str, language: str | None = None) -> dict[str, str]:
    headers = {
        "Authorization": f"Bearer {developer_token}",
        "media-user-token": media_user_token,
    }
    if language:
        headers["Accept-Language"] = f"{language},en;q=0.9"
    return headers


def catalog_params(language: str) -> dict[str, str]:
    return {"l": language, "include[songs]": INCLUDE_SONGS}


def first_item(envelope: dict[str, Any], what: str) -> dict[str, Any]:
    items = envelope.get("data")
    if not isinstance(items, list):
        raise EnvelopeError(f"Missing 'data' list in {what} response")
    if not items:
        raise NotFoundError(f"No {what} found")
    item = items[0]
    if not isinstance(item, dict):
        raise EnvelopeError(f"Malformed {what} entry")
    return item


def _attributes(item: dict[str, Any], what: str) -> dict[str, Any]:
    attrs = item.get("attributes")
    if not isinstance(attrs, dict) or "name" not in attrs:
        raise EnvelopeError(f"Missing attributes in {what} entry")
    return attrs


def lyrics_ttml(relationships: dict[str, Any] | None, syllable: bool) -> str | None:
    """Pick `syllable-lyrics` or `lyrics` and return the first TTML document, if any."""
    if not isinstance(relationships, dict):
        return None
    rel = relationships.get("syllable-lyrics" if syllable else "lyrics")
    if not isinstance(rel, dict):
        return None
    data = rel.get("data") or []
    if not isinstance(data, list):
        raise EnvelopeError("Malformed lyrics relationship")
    if not data:
        return None
    if not isinstance(data[0], dict):
        raise EnvelopeError("Malformed lyrics entry")
    attrs = data[0].get("attributes") or {}
    if not isinstance(attrs, dict):
        raise EnvelopeError("Malformed lyrics attributes")
    ttml = attrs.get("ttml")
    if not isinstance(ttml, str) or not ttml.strip():
        return None
    return ttml


def song_payload(envelope: dict[str, Any], syllable: bool) -> TtmlPayload | None:
    item = first_item(envelope, "song")
    attrs = _attributes(item, "song")
    ttml = lyrics_ttml(item.get("relationships"), syllable)
    if ttml is None:
        return None
    return TtmlPayload(
        ttml=ttml,
        name=str(attrs.get("name") or ""),
        artist_name=str(attrs.get("artistName") or ""),
        catalog_id=item.get("id"),
        album_name=attrs.get("albumName"),
    )


def album_payload(envelope: dict[str, Any], syllable: bool) -> AlbumPayload:
    item = first_item(envelope, "album")
    attrs = _attributes(item, "album")
    album_name = str(attrs.get("name") or "")
    relationships = item.get("relationships")
    tracks_rel = relationships.get("tracks") if isinstance(relationships, dict) else None
    if not isinstance(tracks_rel, dict) or not isinstance(tracks_rel.get("data"), list):
        raise EnvelopeError("Missing track list in album response")

    tracks: list[TrackLyrics] = []
    for track in tracks_rel["data"]:
        if not isinstance(track, dict):
            raise EnvelopeError("Malformed track entry in album response")
        t_attrs = _attributes(track, "track")
        name = str(t_attrs.get("name") or "")
        artist = str(t_attrs.get("artistName") or "")
        ttml = lyrics_ttml(track.get("relationships"), syllable)
        payload = None
        if ttml is not None:
            payload = TtmlPayload(
                ttml=ttml,
                name=name,
                artist_name=artist,
                catalog_id=track.get("id"),
                album_name=album_name,
            )
        tracks.append(TrackLyrics(name=name, artist_name=artist, payload=payload))

    return AlbumPayload(
        name=album_name,
        artist_name=str(attrs.get("artistName") or ""),
        tracks=tuple(tracks),
    )
