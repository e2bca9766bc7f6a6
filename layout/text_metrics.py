"""
layout/text_metrics.py

Text measurement service consumed by the layout engine.

The layout engine only needs the width and height of a single line of
text in a given font.  :class:`FixedTextMetrics` answers that with fixed
per-character arithmetic (deterministic, used in tests and headless
runs); :class:`PillowTextMetrics` asks Pillow's FreeType bindings.

Line-break markup (``<br>``, ``<br/>``, ``<br />``, ``<br \\t/>``) stays
verbatim in the diagram model; it is only split here, for measuring.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Protocol, Tuple

from PIL import ImageFont

_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)


@dataclass(frozen=True)
class FontSpec:
    """Font parameters passed to the metrics service."""
    family: str = "sans-serif"
    size: float = 16
    weight: object = 400


@dataclass(frozen=True)
class TextSize:
    width: float
    height: float


class TextMetrics(Protocol):
    """Anything that can measure one line of text."""

    def measure(self, text: str, font: FontSpec) -> TextSize:
        ...


# ═══════════════════════════════════════════════════════════
# Implementations
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FixedTextMetrics:
    """Monospace approximation.

    Attributes:
        char_width: Width of one character, in multiples of the font size
            when ``scale_with_font`` is true, else in pixels.
        line_height: Height of one line, same unit rules.
        scale_with_font: Multiply both values by ``font.size``.
    """
    char_width: float = 8
    line_height: float = 10
    scale_with_font: bool = False

    def measure(self, text: str, font: FontSpec) -> TextSize:
        scale = font.size if self.scale_with_font else 1
        return TextSize(len(text) * self.char_width * scale, self.line_height * scale)


@lru_cache(maxsize=32)
def _load_font(family: str, size: int) -> "ImageFont.ImageFont":
    for name in [f.strip().strip("'\"") for f in family.split(",")]:
        if not name:
            continue
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size)


class PillowTextMetrics:
    """Measure text with Pillow.

    Each comma-separated family in ``FontSpec.family`` is tried as a
    TrueType font name or path; when none resolves, Pillow's bundled
    default font is used at the requested size.
    """

    def measure(self, text: str, font: FontSpec) -> TextSize:
        pil_font = _load_font(font.family, max(1, int(round(font.size))))
        if text:
            left, _, right, _ = pil_font.getbbox(text)
            width = right - left
        else:
            width = 0
        _, top, _, bottom = pil_font.getbbox("Ag")
        return TextSize(float(width), float(bottom - top))


# ═══════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════

def split_lines(text: str) -> List[str]:
    """Split *text* on line-break markup."""
    return _BREAK_RE.split(text)


def measure_lines(metrics: TextMetrics, lines: List[str], font: FontSpec) -> Tuple[float, float]:
    """Return ``(max width, total height)`` of stacked lines."""
    width = 0.0
    height = 0.0
    for line in lines:
        size = metrics.measure(line, font)
        width = max(width, size.width)
        height += size.height
    return width, height


def _break_word(word: str, max_width: float, metrics: TextMetrics, font: FontSpec) -> List[str]:
    pieces: List[str] = []
    current = ""
    for ch in word:
        candidate = current + ch
        if current and metrics.measure(candidate, font).width > max_width:
            pieces.append(current)
            current = ch
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def wrap_label(text: str, max_width: float, metrics: TextMetrics, font: FontSpec) -> List[str]:
    """Greedy word wrap of *text* to *max_width*.

    Existing line-break markup is honoured first.  A single word wider
    than the limit is split between characters.
    """
    wrapped: List[str] = []
    for paragraph in split_lines(text):
        words = paragraph.split()
        if not words:
            wrapped.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if metrics.measure(candidate, font).width <= max_width:
                current = candidate
                continue
            if current:
                wrapped.append(current)
            if metrics.measure(word, font).width <= max_width:
                current = word
            else:
                *full, current = _break_word(word, max_width, metrics, font)
                wrapped.extend(full)
        wrapped.append(current)
    return wrapped
