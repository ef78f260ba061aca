from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from uta.config import AppConfig

LINE_TTML = """<tt xmlns="http://www.w3.org/ns/ttml" xmlns:itunes="http://music.apple.com/lyric-ttml-internal" itunes:timing="Line" xml:lang="en">
<head><metadata/></head>
<body dur="3:05.120">
<div begin="00:01.500" end="00:08.000">
<p begin="00:01.500" end="00:04.000">Hello world</p>
<p begin="00:04.250" end="00:08.000">Second line</p>
</div>
</body>
</tt>"""

WORD_TTML = """<tt xmlns="http://www.w3.org/ns/ttml" xmlns:itunes="http://music.apple.com/lyric-ttml-internal" xmlns:ttm="http://www.w3.org/ns/ttml#metadata" itunes:timing="Word" xml:lang="en"><head><metadata><ttm:agent type="person" xml:id="v1"/></metadata></head><body dur="12.5"><div begin="1.5" end="9.0"><p begin="1.5" end="4.0" ttm:agent="v1"><span begin="1.5" end="2.0">Hel</span><span begin="2.0" end="2.4">lo</span> <span begin="2.5" end="4.0">world</span></p><p begin="5.0" end="9.0" ttm:agent="v1"><span begin="5.0" end="6.0">Sing</span> <span begin="6.0" end="7.0">along</span><span ttm:role="x-bg"><span begin="7.2" end="8.0">(ooh)</span></span></p></div></body></tt>"""


class FakeResponse:
    def __init__(self, status_code: int = 200, *, text: str = "", json_data: Any = None):
        self.status_code = status_code
        self.text = text if text or json_data is None else json.dumps(json_data)
        self._json = json_data

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("Expecting value")
        return self._json


class FakeSession:
    """
    Stands in for requests.Session: answers GETs from a {url: response} table
    and records every call.
    """

    def __init__(self, routes: dict[str, FakeResponse | Exception] | None = None):
        self.routes = dict(routes or {})
        self.calls: list[dict[str, Any]] = []
        self.headers: dict[str, str] = {}

    def get(self, url: str, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "headers": headers or {}, "params": params or {}, "timeout": timeout})
        res = self.routes.get(url)
        if res is None:
            return FakeResponse(404)
        if isinstance(res, Exception):
            raise res
        return res

    def urls(self) -> list[str]:
        return [c["url"] for c in self.calls]


def song_envelope(ttml: str | None, *, syllable_ttml: str | None = None, name="Song", artist="Artist") -> dict:
    def rel(doc: str | None) -> dict:
        return {"data": [{"attributes": {"ttml": doc}}] if doc else []}

    return {
        "data": [
            {
                "id": "456",
                "type": "songs",
                "attributes": {"name": name, "artistName": artist, "albumName": "Album"},
                "relationships": {"lyrics": rel(ttml), "syllable-lyrics": rel(syllable_ttml)},
            }
        ]
    }


@pytest.fixture
def cfg(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=tmp_path / "data",
        cache_db_path=tmp_path / "data" / "cache.sqlite3",
        config_dir=tmp_path / "config",
        output_dir=tmp_path / "out",
        lang="EN",
        request_timeout_s=5.0,
        token_ttl_s=3600,
        storefront=None,
        language=None,
        user_agent="test-agent",
    )


@pytest.fixture
def auth_routes() -> dict[str, FakeResponse]:
    return {
        "https://music.apple.com/us/browse": FakeResponse(
            text='<script type="module" src="/assets/index-3f2a1b.js"></script>'
        ),
        "https://music.apple.com/assets/index-3f2a1b.js": FakeResponse(
            text='const x={token:"eyJhbGciOiJFUzI1NiJ9.payload.sig",other:"y"};'
        ),
        "https://amp-api.music.apple.com/v1/me/storefront": FakeResponse(
            json_data={"data": [{"id": "jp", "attributes": {"defaultLanguageTag": "ja", "name": "Japan"}}]}
        ),
    }
