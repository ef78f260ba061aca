from __future__ import annotations

import json

from .model import LyricDocument, LyricLine

FORMATS = ("plain", "lrc", "srt", "json")


def format_lrc_time(ms: int) -> str:
    m, rem = divmod(max(ms, 0), 60_000)
    s, ms2 = divmod(rem, 1_000)
    # hundredths, truncated
    return f"{m:02d}:{s:02d}.{ms2 // 10:02d}"


def _join(out: list[str]) -> str:
    return "\n".join(out) + ("\n" if out else "")


def _lrc_line(line: LyricLine, syllable: bool) -> str:
    head = f"[{format_lrc_time(line.start_ms)}]"
    if not (syllable and line.has_token_timing):
        return head + line.text

    parts = [head]
    for tok in line.tokens:
        if tok.start_ms is not None:
            parts.append(f"<{format_lrc_time(tok.start_ms)}>")
        parts.append(tok.text)
    last_end = line.tokens[-1].end_ms
    if last_end is not None:
        parts.append(f"<{format_lrc_time(last_end)}>")
    return "".join(parts)


def export_lrc(doc: LyricDocument, syllable: bool = False, include_tags: bool = True) -> str:
    out: list[str] = []
    if include_tags and doc.tags:
        for k in sorted(doc.tags.keys()):
            out.append(f"[{k}:{doc.tags[k]}]")
    for line in doc.lines:
        out.append(_lrc_line(line, syllable))
    return _join(out)


def export_plain(doc: LyricDocument) -> str:
    return _join([line.text for line in doc.lines])


def export_json(doc: LyricDocument) -> str:
    return json.dumps(
        {
            "tags": doc.tags or {},
            "timing": doc.timing,
            "lines": [
                {
                    "start_ms": line.start_ms,
                    "end_ms": line.end_ms,
                    "text": line.text,
                    "tokens": [
                        {
                            "text": t.text,
                            "start_ms": t.start_ms,
                            "end_ms": t.end_ms,
                            "background": t.background,
                        }
                        for t in line.tokens
                    ],
                }
                for line in doc.lines
            ],
        },
        ensure_ascii=False,
        indent=2,
    )


def _fmt_srt_time(ms: int) -> str:
    # HH:MM:SS,mmm
    h, rem = divmod(ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, ms2 = divmod(rem, 1_000)
    return f"{h:02d}:{m:02d}:{s:02d},{ms2:03d}"


def export_srt(doc: LyricDocument, last_line_duration_ms: int = 2000) -> str:
    """
    End time is the line's own end, else next start time; the last line
    without an end lasts last_line_duration_ms.
    """
    lines = doc.lines
    if not lines:
        return ""
    out: list[str] = []
    for i, line in enumerate(lines, start=1):
        start = line.start_ms
        if line.end_ms is not None:
            end = max(line.end_ms, start + 1)
        elif i < len(lines):
            end = max(lines[i].start_ms, start + 1)
        else:
            end = start + last_line_duration_ms
        out.append(str(i))
        out.append(f"{_fmt_srt_time(start)} --> {_fmt_srt_time(end)}")
        out.append(line.text)
        out.append("")
    return "\n".join(out)


def render(doc: LyricDocument, fmt: str = "lrc", syllable: bool = False, include_tags: bool = True) -> str:
    fmt_l = fmt.lower()
    if fmt_l == "lrc":
        return export_lrc(doc, syllable=syllable, include_tags=include_tags)
    if fmt_l == "plain":
        return export_plain(doc)
    if fmt_l == "srt":
        return export_srt(doc)
    if fmt_l == "json":
        return export_json(doc)
    raise ValueError(f"format must be one of: {', '.join(FORMATS)}")
