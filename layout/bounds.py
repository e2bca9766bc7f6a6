"""
layout/bounds.py

Nested scope-box accumulation for diagram layout.

:class:`Bounds` keeps a stack of :class:`ScopeBox` (the root scope is the
whole diagram) and a vertical cursor.  ``insert`` is the only growth
primitive: it widens the innermost scope and every ancestor with a plain
min/max rule, so extents never shrink.  Closing a scope with ``end_loop``
pads it by ``box_margin`` on every side and folds the padded box into the
parent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class LayoutError(RuntimeError):
    """The scope stack was used out of order."""


def _min(current: Optional[float], value: float) -> float:
    return value if current is None else min(current, value)


def _max(current: Optional[float], value: float) -> float:
    return value if current is None else max(current, value)


@dataclass
class ScopeBox:
    """Extents of one nesting level.

    Extents are ``None`` until something has been inserted.

    Attributes:
        start_x, start_y, stop_x, stop_y: Accumulated extents.
        vertical_pos: Cursor position when the scope was opened.
        label: Block title (loop/opt/alt/par label).
        fill: Background style (rect blocks).
        sections: ``(y, label)`` for each else/and divider.
    """
    start_x: Optional[float] = None
    start_y: Optional[float] = None
    stop_x: Optional[float] = None
    stop_y: Optional[float] = None
    vertical_pos: float = 0
    label: str = ""
    fill: str = ""
    sections: List[Tuple[float, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.start_x is None

    @property
    def width(self) -> float:
        if self.start_x is None or self.stop_x is None:
            return 0
        return self.stop_x - self.start_x

    @property
    def height(self) -> float:
        if self.start_y is None or self.stop_y is None:
            return 0
        return self.stop_y - self.start_y

    def grow(
        self,
        start_x: Optional[float],
        start_y: Optional[float],
        stop_x: Optional[float],
        stop_y: Optional[float],
    ) -> None:
        """Widen each edge to cover the given extents; ``None`` edges are skipped."""
        if start_x is not None:
            self.start_x = _min(self.start_x, start_x)
        if start_y is not None:
            self.start_y = _min(self.start_y, start_y)
        if stop_x is not None:
            self.stop_x = _max(self.stop_x, stop_x)
        if stop_y is not None:
            self.stop_y = _max(self.stop_y, stop_y)

    def expanded(self, margin: float) -> "ScopeBox":
        """Copy of this box pushed outward by *margin* on every known edge."""
        return ScopeBox(
            start_x=None if self.start_x is None else self.start_x - margin,
            start_y=None if self.start_y is None else self.start_y - margin,
            stop_x=None if self.stop_x is None else self.stop_x + margin,
            stop_y=None if self.stop_y is None else self.stop_y + margin,
            vertical_pos=self.vertical_pos,
            label=self.label,
            fill=self.fill,
            sections=list(self.sections),
        )

    def as_tuple(self) -> Tuple[Optional[float], Optional[float], Optional[float], Optional[float]]:
        return (self.start_x, self.start_y, self.stop_x, self.stop_y)


class Bounds:
    """Scope stack plus vertical cursor.

    Args:
        box_margin: Padding added on each side when a scope is closed.
    """

    def __init__(self, box_margin: float = 10):
        self.box_margin = box_margin
        self.vertical_pos: float = 0
        self._scopes: List[ScopeBox] = []
        self.init()

    def init(self) -> None:
        """Reset to a single empty root scope and a zero cursor."""
        self._scopes = [ScopeBox()]
        self.vertical_pos = 0

    @property
    def depth(self) -> int:
        """Number of open nested scopes (the root is not counted)."""
        return len(self._scopes) - 1

    def insert(self, x1: float, y1: float, x2: float, y2: float) -> None:
        """Grow the innermost scope and all its ancestors to cover the box."""
        start_x, stop_x = min(x1, x2), max(x1, x2)
        start_y, stop_y = min(y1, y2), max(y1, y2)
        for scope in self._scopes:
            scope.grow(start_x, start_y, stop_x, stop_y)

    def new_loop(self, label: str = "", fill: str = "") -> ScopeBox:
        """Open an empty nested scope that remembers the current cursor."""
        scope = ScopeBox(vertical_pos=self.vertical_pos, label=label, fill=fill)
        self._scopes.append(scope)
        return scope

    def add_section(self, label: str = "") -> None:
        """Record an else/and divider at the cursor in the innermost scope."""
        if self.depth == 0:
            raise LayoutError("add_section() called with no open scope")
        self._scopes[-1].sections.append((self.vertical_pos, label))

    def end_loop(self) -> ScopeBox:
        """Close the innermost scope.

        Returns:
            The closed box, padded by ``box_margin`` on each side.  The
            padded box has already been folded into the parent scope.

        Raises:
            LayoutError: If only the root scope is open.
        """
        if self.depth == 0:
            raise LayoutError("end_loop() called with no open scope")
        closed = self._scopes.pop().expanded(self.box_margin)
        for scope in self._scopes:
            scope.grow(*closed.as_tuple())
        return closed

    def bump_vertical_pos(self, amount: float) -> float:
        """Advance the cursor and grow the root scope down to it."""
        self.vertical_pos += amount
        self._scopes[0].grow(None, None, None, self.vertical_pos)
        return self.vertical_pos

    def get_vertical_pos(self) -> float:
        return self.vertical_pos

    def get_bounds(self) -> ScopeBox:
        """The root (whole-diagram) scope."""
        return self._scopes[0]
