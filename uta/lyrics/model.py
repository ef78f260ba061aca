from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LyricToken:
    text: str
    start_ms: int | None = None
    end_ms: int | None = None
    background: bool = False

    @property
    def timed(self) -> bool:
        return self.start_ms is not None


@dataclass(frozen=True, slots=True)
class LyricLine:
    start_ms: int
    tokens: tuple[LyricToken, ...]
    end_ms: int | None = None
    agent: str | None = None

    @property
    def text(self) -> str:
        return "".join(t.text for t in self.tokens).strip()

    @property
    def has_token_timing(self) -> bool:
        return any(t.timed for t in self.tokens)


@dataclass(frozen=True, slots=True)
class LyricDocument:
    lines: tuple[LyricLine, ...]
    tags: dict[str, str] | None = None
    timing: str | None = None  # itunes:timing, e.g. "Line" / "Word"

    def with_tags(self, **tags: str) -> "LyricDocument":
        merged = dict(self.tags or {})
        merged.update({k: v for k, v in tags.items() if v})
        return LyricDocument(lines=self.lines, tags=merged, timing=self.timing)
