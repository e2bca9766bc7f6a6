"""
layout package

Nested scope-box bounds, text measurement, and the event replay that turns
a parsed sequence diagram into drawable geometry.
"""

from layout.bounds import Bounds, LayoutError, ScopeBox
from layout.text_metrics import (
    FixedTextMetrics,
    FontSpec,
    PillowTextMetrics,
    TextMetrics,
    TextSize,
)
from layout.sequence_layout import DiagramLayout, SequenceLayout, layout_diagram

__all__ = [
    "Bounds",
    "LayoutError",
    "ScopeBox",
    "FixedTextMetrics",
    "FontSpec",
    "PillowTextMetrics",
    "TextMetrics",
    "TextSize",
    "DiagramLayout",
    "SequenceLayout",
    "layout_diagram",
]
