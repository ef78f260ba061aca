from __future__ import annotations

import pytest
from typer.testing import CliRunner

import uta.cli as cli
from conftest import LINE_TTML, WORD_TTML
from uta.errors import AuthError
from uta.i18n import set_lang
from uta.sources.types import AlbumPayload, TrackLyrics, TtmlPayload

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in ("UTA_LANG", "APPLE_META_TOKEN", "UTA_OUTPUT_DIR", "UTA_STOREFRONT", "UTA_LANGUAGE"):
        monkeypatch.delenv(var, raising=False)
    yield
    set_lang("EN")


class FakeService:
    ttml = LINE_TTML
    error: Exception | None = None

    def __init__(self, cfg, token, use_cache=True):
        self.token = token

    def fetch_song(self, song_id, *, syllable=False):
        if self.error is not None:
            raise self.error
        return TtmlPayload(ttml=self.ttml, name="Song", artist_name="Artist", catalog_id=song_id)

    def fetch_album(self, album_id, *, syllable=False):
        return AlbumPayload(
            name="Album",
            artist_name="Artist",
            tracks=(
                TrackLyrics("One", "Artist", TtmlPayload(ttml=self.ttml, name="One", artist_name="Artist")),
                TrackLyrics("Two", "Artist", None),
            ),
        )


@pytest.fixture
def fake_service(monkeypatch):
    monkeypatch.setattr(cli, "LyricsService", FakeService)
    monkeypatch.setattr(FakeService, "ttml", LINE_TTML)
    monkeypatch.setattr(FakeService, "error", None)
    return FakeService


def test_fetch_requires_token():
    result = runner.invoke(cli.app, ["fetch", "--url", "123"])
    assert result.exit_code == 1
    assert "media-user-token" in result.output


def test_fetch_rejects_bad_url(fake_service):
    result = runner.invoke(cli.app, ["fetch", "--url", "not a url", "--token", "t"])
    assert result.exit_code == 1
    assert "Error during fetch" in result.output


def test_fetch_writes_lrc(fake_service, tmp_path):
    out = tmp_path / "out"
    result = runner.invoke(cli.app, ["fetch", "--url", "123", "--token", "t", "--out", str(out)])
    assert result.exit_code == 0, result.output
    text = (out / "Song - Artist.lrc").read_text(encoding="utf-8")
    assert "[00:01.50]Hello world" in text
    assert "Saved:" in result.output


def test_fetch_token_from_env(fake_service, tmp_path, monkeypatch):
    monkeypatch.setenv("APPLE_META_TOKEN", "from-env")
    result = runner.invoke(cli.app, ["fetch", "--url", "123", "--plain", "--out", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "Song - Artist.txt").read_text(encoding="utf-8") == "Hello world\nSecond line\n"


def test_fetch_stdout(fake_service):
    fake_service.ttml = WORD_TTML
    result = runner.invoke(cli.app, ["fetch", "-u", "123", "--token", "t", "--syllable", "--stdout"])
    assert result.exit_code == 0, result.output
    assert "[00:01.50]<00:01.50>Hel<00:02.00>lo <00:02.50>world<00:04.00>" in result.output


def test_fetch_stdout_rejects_album(fake_service):
    result = runner.invoke(
        cli.app, ["fetch", "-u", "https://music.apple.com/us/album/x/10", "--token", "t", "--stdout"]
    )
    assert result.exit_code == 2


def test_fetch_album_writes_folder(fake_service, tmp_path):
    result = runner.invoke(
        cli.app, ["fetch", "-u", "https://music.apple.com/us/album/x/10", "--token", "t", "-o", str(tmp_path)]
    )
    assert result.exit_code == 0, result.output
    assert (tmp_path / "Album - Artist" / "One - Artist.lrc").exists()
    assert "Two - Artist has no lyrics" in result.output


def test_fetch_convert_error_writes_nothing(fake_service, tmp_path):
    result = runner.invoke(cli.app, ["fetch", "-u", "123", "--token", "t", "--syllable", "-o", str(tmp_path / "o")])
    assert result.exit_code == 1
    assert "Error during convert" in result.output
    assert not (tmp_path / "o").exists()


def test_fetch_auth_error(fake_service):
    fake_service.error = AuthError("Apple Music rejected the credentials (HTTP 401)")
    result = runner.invoke(cli.app, ["fetch", "-u", "123", "--token", "t"])
    assert result.exit_code == 1
    assert "rejected the credentials" in result.output


def test_fetch_bad_format(fake_service):
    result = runner.invoke(cli.app, ["fetch", "-u", "123", "--token", "t", "--format", "vtt"])
    assert result.exit_code == 2


def test_convert_to_stdout_and_file(tmp_path):
    src = tmp_path / "a.ttml"
    src.write_text(LINE_TTML, encoding="utf-8")

    result = runner.invoke(cli.app, ["convert", str(src), "--plain"])
    assert result.exit_code == 0, result.output
    assert result.output == "Hello world\nSecond line\n"

    dst = tmp_path / "a.srt"
    result = runner.invoke(cli.app, ["convert", str(src), "--format", "srt", "--out", str(dst)])
    assert result.exit_code == 0, result.output
    assert "00:00:01,500 --> 00:00:04,000" in dst.read_text(encoding="utf-8")


def test_convert_malformed(tmp_path):
    src = tmp_path / "bad.ttml"
    src.write_text("<tt><body>", encoding="utf-8")
    result = runner.invoke(cli.app, ["convert", str(src)])
    assert result.exit_code == 1
    assert "Error during convert" in result.output


def test_convert_undecodable_file(tmp_path):
    src = tmp_path / "bad.ttml"
    src.write_bytes(b"\xff\xfe<tt/>")
    result = runner.invoke(cli.app, ["convert", str(src)])
    assert result.exit_code == 1
    assert not isinstance(result.exception, UnicodeDecodeError)
    assert "Error during convert" in result.output
    assert "UTF-8" in result.output


def test_cache_clear(tmp_path):
    result = runner.invoke(cli.app, ["cache", "--clear"])
    assert result.exit_code == 0
    assert "Cache cleared" in result.output
    assert (tmp_path / "cache" / "uta" / "cache.sqlite3").exists()


def test_config_lang_switches_messages():
    result = runner.invoke(cli.app, ["config", "--lang", "ru"])
    assert result.exit_code == 0
    assert "Язык установлен: RU" in result.output

    result = runner.invoke(cli.app, ["fetch", "--url", "123"])
    assert "Нет media-user-token" in result.output


def test_config_lang_rejects_unknown():
    result = runner.invoke(cli.app, ["config", "--lang", "de"])
    assert result.exit_code == 2
