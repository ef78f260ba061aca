from __future__ import annotations

from dataclasses import replace
import io
import logging
import re
from xml.etree import ElementTree as ET

from uta.errors import ParseError, UnsupportedFormatError

from .model import LyricDocument, LyricLine, LyricToken
from .timeexpr import parse_time_expr

logger = logging.getLogger(__name__)

TTM_NS = "http://www.w3.org/ns/ttml#metadata"
ITUNES_NS = "http://music.apple.com/lyric-ttml-internal"

_WS_RE = re.compile(r"\s+")
# prefixes ElementTree reserves for its own generated names
_AUTO_PREFIX_RE = re.compile(r"ns\d+$")


def _local(tag: object) -> str:
    # comments / processing instructions have non-str tags
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _attr(el: ET.Element, name: str, ns: str | None = None) -> str | None:
    if ns is not None:
        v = el.get(f"{{{ns}}}{name}")
        if v is not None:
            return v
    return el.get(name)


def _is_background(el: ET.Element) -> bool:
    role = _attr(el, "role", TTM_NS)
    return isinstance(role, str) and role.strip().lower().endswith("bg")


def _optional_time(el: ET.Element, name: str) -> int | None:
    raw = el.get(name)
    if raw is None or not raw.strip():
        return None
    return parse_time_expr(raw)


class _LineWalker:
    """
    Collect the tokens of one <p> in document order.

    Leaf spans carrying `begin` become timed tokens; everything else (bare text,
    element tails, untimed spans) is glued onto the neighbouring token so that
    the concatenated token text equals the rendered line text.
    """

    def __init__(self, include_background: bool):
        self.include_background = include_background
        self.tokens: list[LyricToken] = []

    def append_text(self, text: str | None, background: bool = False) -> None:
        if not text:
            return
        if self.tokens:
            last = self.tokens[-1]
            self.tokens[-1] = replace(last, text=last.text + text)
        elif text.strip():
            self.tokens.append(LyricToken(text=text, background=background))

    def walk(self, el: ET.Element, background: bool = False) -> None:
        for child in el:
            name = _local(child.tag)
            if name == "span":
                self._span(child, background or _is_background(child))
            elif name == "br":
                self.append_text(" ")
            elif name:
                self.append_text(child.text, background)
                self.walk(child, background)
            self.append_text(child.tail, background)

    def _span(self, span: ET.Element, background: bool) -> None:
        if background and not self.include_background:
            return

        nested = any(_local(c.tag) == "span" for c in span)
        begin = span.get("begin")
        if begin and not nested:
            text = "".join(span.itertext())
            if not text:
                return
            if background and self.tokens and not self.tokens[-1].text[-1:].isspace():
                self.append_text(" ")
            self.tokens.append(
                LyricToken(
                    text=text,
                    start_ms=parse_time_expr(begin),
                    end_ms=_optional_time(span, "end"),
                    background=background,
                )
            )
            return

        self.append_text(span.text, background)
        self.walk(span, background)


def _normalize(tokens: list[LyricToken]) -> tuple[LyricToken, ...]:
    out = [replace(t, text=_WS_RE.sub(" ", t.text)) for t in tokens]
    if out:
        out[0] = replace(out[0], text=out[0].text.lstrip())
        out[-1] = replace(out[-1], text=out[-1].text.rstrip())
    return tuple(t for t in out if t.text)


def _length_tag(body: ET.Element | None) -> str | None:
    if body is None:
        return None
    dur = _optional_time(body, "dur")
    if dur is None:
        return None
    m, rem = divmod(dur, 60_000)
    return f"{m:02d}:{rem // 1000:02d}"


def _has_mixed_content(el: ET.Element) -> bool:
    if el.text and el.text.strip():
        return True
    return any(c.tail and c.tail.strip() for c in el)


def _indent(el: ET.Element, level: int = 0) -> None:
    # lyric lines keep their inner whitespace untouched, it is part of the text
    if not len(el) or _local(el.tag) in ("p", "span") or _has_mixed_content(el):
        return
    pad = "\n" + "  " * (level + 1)
    el.text = pad
    for child in el:
        _indent(child, level + 1)
        child.tail = pad
    el[-1].tail = "\n" + "  " * level


def pretty_ttml(text: str) -> str:
    """Re-indent a TTML document by two spaces, leaving text nodes as they are."""
    try:
        for _, (prefix, uri) in ET.iterparse(io.StringIO(text), events=("start-ns",)):
            if prefix != "xml" and not _AUTO_PREFIX_RE.match(prefix):
                ET.register_namespace(prefix, uri)
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ParseError(f"Malformed TTML: {e}") from e
    _indent(root)
    return ET.tostring(root, encoding="unicode") + "\n"


def parse_ttml(text: str, syllable: bool = False, include_background: bool = True) -> LyricDocument:
    """
    Parse a TTML lyrics document.

    - one LyricLine per <p> with a `begin`, in document order (never re-sorted)
    - <p> without `begin` or without text is skipped
    - syllable=True keeps per-span timing as tokens; a document with no timed
      spans at all raises UnsupportedFormatError
    - anything that is not well-formed TTML raises ParseError
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ParseError(f"Malformed TTML: {e}") from e

    if _local(root.tag) != "tt":
        raise ParseError(f"Not a TTML document (root element <{_local(root.tag)}>)")

    body = next((el for el in root.iter() if _local(el.tag) == "body"), None)
    paragraphs = [el for el in (body if body is not None else root).iter() if _local(el.tag) == "p"]

    lines: list[LyricLine] = []
    skipped = 0
    for p in paragraphs:
        start = _optional_time(p, "begin")
        if start is None:
            skipped += 1
            continue

        walker = _LineWalker(include_background=include_background)
        walker.append_text(p.text)
        walker.walk(p)
        tokens = _normalize(walker.tokens)
        if not tokens:
            skipped += 1
            continue

        if not syllable:
            tokens = (LyricToken(text="".join(t.text for t in tokens)),)

        lines.append(
            LyricLine(
                start_ms=start,
                end_ms=_optional_time(p, "end"),
                tokens=tokens,
                agent=_attr(p, "agent", TTM_NS),
            )
        )

    if skipped:
        logger.debug("Skipped %s paragraph(s) without begin time or text", skipped)

    if paragraphs and not lines:
        raise UnsupportedFormatError("Lyrics carry no line timing")
    if syllable and lines and not any(ln.has_token_timing for ln in lines):
        raise UnsupportedFormatError("Syllable timing requested but the lyrics only have line timing")

    tags: dict[str, str] = {}
    length = _length_tag(body)
    if length:
        tags["length"] = length

    return LyricDocument(
        lines=tuple(lines),
        tags=tags,
        timing=_attr(root, "timing", ITUNES_NS),
    )
