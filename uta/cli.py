from __future__ import annotations

import logging
from pathlib import Path

import typer

from uta.app import OUTPUT_FORMATS, RenderedFile, convert_file, fetch_rendered, write_files
from uta.cache.sqlite import TokenCache
from uta.config import LANGS, load_config, save_config_lang
from uta.errors import UtaError
from uta.i18n import set_lang, t
from uta.logging_setup import setup_logging
from uta.sources.service import LyricsService
from uta.sources.types import parse_identifier

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _resolve_format(fmt: str | None, lrc: bool) -> str:
    if fmt is None:
        return "lrc" if lrc else "plain"
    fmt_l = fmt.lower()
    if fmt_l not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"format must be one of: {', '.join(OUTPUT_FORMATS)}", param_hint="--format")
    return fmt_l


def _fail(e: UtaError) -> None:
    logger.debug("%s failed", e.stage, exc_info=True)
    typer.echo(t("stage_failed", stage=t(f"stage_{e.stage}"), error=str(e)), err=True)
    raise typer.Exit(code=1)


@app.command()
def fetch(
    url: str = typer.Option(..., "--url", "-u", help="URL of the song or album, or a song catalog id"),
    token: str | None = typer.Option(
        None, "--token", envvar="APPLE_META_TOKEN", show_envvar=True, help="Apple Music media-user-token"
    ),
    syllable: bool = typer.Option(False, "--syllable", "-s", help="Fetch syllable (word-timed) lyrics"),
    lrc: bool = typer.Option(True, "--lrc/--plain", help="LRC output or plain text"),
    fmt: str | None = typer.Option(None, "--format", help="lrc|plain|srt|json|ttml (overrides --lrc/--plain)"),
    out: Path | None = typer.Option(None, "--out", "-o", help="Output directory"),
    stdout: bool = typer.Option(False, "--stdout", help="Print a single song to stdout instead of saving"),
    no_background: bool = typer.Option(False, "--no-background", help="Drop background vocals"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Do not reuse or store the developer token"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """
    Fetch lyrics of a song or album and save them as LRC.
    """
    cfg = load_config()
    set_lang(cfg.lang)
    setup_logging(debug)
    fmt_l = _resolve_format(fmt, lrc)

    if not token or not token.strip():
        typer.echo(t("token_missing"), err=True)
        raise typer.Exit(code=1)

    # progress must not end up inside --stdout output
    def echo(msg: str) -> None:
        typer.echo(msg, err=stdout)

    try:
        ref = parse_identifier(url)
        if stdout and ref.kind != "song":
            raise typer.BadParameter("--stdout needs a single song", param_hint="--stdout")

        echo(t("initializing"))
        svc = LyricsService(cfg, token, use_cache=not no_cache)
        files = fetch_rendered(
            svc,
            ref,
            fmt=fmt_l,
            syllable=syllable,
            out_dir=out or cfg.output_dir,
            include_background=not no_background,
            echo=echo,
        )
        if stdout:
            typer.echo(files[0].content, nl=False)
            return

        echo(t("saving"))
        for path in write_files(files):
            echo(t("saved", path=str(path)))
    except UtaError as e:
        _fail(e)
    except KeyboardInterrupt:
        typer.echo(t("interrupted"), err=True)
        raise typer.Exit(code=130)


@app.command()
def convert(
    ttml_path: Path,
    syllable: bool = typer.Option(False, "--syllable", "-s", help="Keep word/syllable timing"),
    lrc: bool = typer.Option(True, "--lrc/--plain", help="LRC output or plain text"),
    fmt: str | None = typer.Option(None, "--format", help="lrc|plain|srt|json (overrides --lrc/--plain)"),
    out: Path | None = typer.Option(None, "--out", help="Output file (default: stdout)"),
    no_background: bool = typer.Option(False, "--no-background", help="Drop background vocals"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Convert a local TTML file (or saved API JSON) to LRC/plain/SRT/JSON."""
    cfg = load_config()
    set_lang(cfg.lang)
    setup_logging(debug)
    fmt_l = _resolve_format(fmt, lrc)

    try:
        data = convert_file(ttml_path, fmt=fmt_l, syllable=syllable, include_background=not no_background)
        if out:
            write_files([RenderedFile(out, data)])
        else:
            typer.echo(data, nl=False)
    except UtaError as e:
        _fail(e)


@app.command()
def cache(
    clear: bool = typer.Option(False, "--clear", help="Forget cached developer tokens"),
):
    """Manage the developer token cache."""
    cfg = load_config()
    set_lang(cfg.lang)
    cache_db = TokenCache(cfg.cache_db_path)

    if clear:
        cache_db.clear()
        typer.echo(t("cache_cleared", path=str(cfg.cache_db_path)))
    else:
        typer.echo(t("cache_hint"))


@app.command()
def config(
    lang: str = typer.Option(..., "--lang", help="Interface language: en|ru"),
):
    """Persist settings to config.json."""
    if lang.upper() not in LANGS:
        raise typer.BadParameter("lang must be one of: en, ru", param_hint="--lang")
    save_config_lang(lang)
    set_lang(lang)
    typer.echo(t("lang_saved", lang=lang.upper()))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
