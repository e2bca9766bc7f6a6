"""
layout/sequence_layout.py

Replay a parsed :class:`DiagramState` against :class:`Bounds` and return
drawable geometry.

The replay walks the event list once, in order.  Actor boxes, message
spans, notes and activation bars are inserted into the bounds; block
markers open and close nested scopes.  Nothing here draws: the result is
a :class:`DiagramLayout` of plain dataclasses that a renderer (SVG, PPTX,
canvas) can consume.

Units are abstract pixels.  All positions are relative to the top-left of
the first actor box; the view box adds the diagram margins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from debug_trace import trace, trace_call
from layout.bounds import Bounds, ScopeBox
from layout.text_metrics import (
    FixedTextMetrics,
    FontSpec,
    TextMetrics,
    measure_lines,
    split_lines,
    wrap_label,
)
from sequence.config import DiagramConfig
from sequence.model import (
    BLOCK_ENDS,
    BLOCK_SECTIONS,
    ActivationMark,
    BlockKind,
    BlockMarker,
    DiagramState,
    Message,
    MessageKind,
    Note,
    Placement,
)

log = logging.getLogger(__name__)

# Extra vertical room for a self-message loop
SELF_MESSAGE_HEIGHT = 30
# Minimum half-width of a self-message loop
SELF_MESSAGE_MIN_HALF_WIDTH = 100
# Shortest activation bar
MIN_ACTIVATION_HEIGHT = 18
# Room reserved above the diagram for a title
TITLE_HEIGHT = 40

# Block starts that get a label band below their top edge
_LABELLED_STARTS = {
    BlockKind.LOOP_START,
    BlockKind.OPT_START,
    BlockKind.ALT_START,
    BlockKind.PAR_START,
}


# ═══════════════════════════════════════════════════════════
# Result types
# ═══════════════════════════════════════════════════════════

@dataclass
class ActorBox:
    """Actor header box and the lifeline below it."""
    id: str
    description: str
    x: float
    y: float
    width: float
    height: float
    lifeline_stop_y: float = 0

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2


@dataclass
class MessageLine:
    """One message arrow.

    Attributes:
        start_x, stop_x: Arrow endpoints, already adjusted for activation bars.
        y: Vertical position of the arrow.
        lines: Text lines, wrapped when the message asked for wrapping.
        sequence_number: Ordinal shown next to the arrow, ``None`` when
            autonumbering is off.
    """
    kind: MessageKind
    from_actor: str
    to_actor: str
    start_x: float
    stop_x: float
    y: float
    lines: List[str] = field(default_factory=list)
    sequence_number: Optional[int] = None

    @property
    def is_self(self) -> bool:
        return self.from_actor == self.to_actor


@dataclass
class NoteBox:
    placement: Placement
    x: float
    y: float
    width: float
    height: float
    lines: List[str] = field(default_factory=list)


@dataclass
class ActivationBox:
    actor: str
    start_x: float
    start_y: float
    stop_x: float
    stop_y: Optional[float] = None


@dataclass
class BlockBox:
    """A closed loop/opt/alt/par/rect frame.

    Attributes:
        kind: The start marker kind that opened the block.
        label: Block label, or the fill style for ``rect``.
        sections: ``(y, label)`` of each else/and divider.
    """
    kind: BlockKind
    label: str
    x: float
    y: float
    width: float
    height: float
    sections: List[Tuple[float, str]] = field(default_factory=list)


@dataclass
class DiagramLayout:
    """Everything a renderer needs to draw one sequence diagram."""
    actors: List[ActorBox] = field(default_factory=list)
    mirrored_actors: List[ActorBox] = field(default_factory=list)
    messages: List[MessageLine] = field(default_factory=list)
    notes: List[NoteBox] = field(default_factory=list)
    activations: List[ActivationBox] = field(default_factory=list)
    blocks: List[BlockBox] = field(default_factory=list)
    title: str = ""
    bounds: ScopeBox = field(default_factory=ScopeBox)
    width: float = 0
    height: float = 0
    view_box: Tuple[float, float, float, float] = (0, 0, 0, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "width": self.width,
            "height": self.height,
            "viewBox": list(self.view_box),
            "bounds": {
                "startx": self.bounds.start_x,
                "starty": self.bounds.start_y,
                "stopx": self.bounds.stop_x,
                "stopy": self.bounds.stop_y,
            },
            "actors": [a.id for a in self.actors],
            "messages": len(self.messages),
            "notes": len(self.notes),
            "activations": len(self.activations),
            "blocks": [b.kind.value for b in self.blocks],
        }


# ═══════════════════════════════════════════════════════════
# Layout engine
# ═══════════════════════════════════════════════════════════

class SequenceLayout:
    """Compute geometry for a parsed sequence diagram.

    Args:
        config: Layout configuration.  When omitted, each call to
            :meth:`layout` uses the state's own merged config.
        metrics: Text measurement service.  Defaults to
            :class:`FixedTextMetrics`.
    """

    def __init__(self, config: Optional[DiagramConfig] = None, metrics: Optional[TextMetrics] = None):
        self.config = config
        self.metrics: TextMetrics = metrics or FixedTextMetrics()
        self.bounds = Bounds()
        self._conf = config or DiagramConfig()
        self._font = FontSpec()
        self._actors: Dict[str, ActorBox] = {}
        self._open_activations: List[ActivationBox] = []
        self._open_blocks: List[BlockMarker] = []
        self._result = DiagramLayout()

    @trace_call("LAYOUT")
    def layout(self, state: DiagramState) -> DiagramLayout:
        """Replay *state*'s events and return the computed geometry."""
        self._conf = self.config or state.config
        self._font = FontSpec(
            family=self._conf.font_family,
            size=self._conf.font_size,
            weight=self._conf.font_weight,
        )
        self.bounds = Bounds(self._conf.box_margin)
        self._actors = {}
        self._open_activations = []
        self._open_blocks = []
        self._result = DiagramLayout(title=state.get_title())

        self._place_actors(state)
        for event in state.get_messages():
            if isinstance(event, Message):
                self._on_message(event, state.show_sequence_numbers())
            elif isinstance(event, Note):
                self._on_note(event)
            elif isinstance(event, ActivationMark):
                self._on_activation(event)
            elif isinstance(event, BlockMarker):
                self._on_block(event)

        for actor in self._result.actors:
            actor.lifeline_stop_y = self.bounds.get_vertical_pos()

        if self._conf.mirror_actors:
            self._bump(self._conf.box_margin * 2)
            self._result.mirrored_actors = self._actor_row(self.bounds.get_vertical_pos())

        self._finish()
        log.debug(
            "Laid out %d actor(s), %d message(s), %d note(s), %d block(s): %gx%g",
            len(self._result.actors), len(self._result.messages),
            len(self._result.notes), len(self._result.blocks),
            self._result.width, self._result.height,
        )
        return self._result

    # ── Cursor and growth ──

    def _bump(self, amount: float) -> float:
        return self.bounds.bump_vertical_pos(amount)

    def _insert(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self.bounds.insert(x1, y1, x2, y2)
        bottom = max(y1, y2)
        for activation in self._open_activations:
            if activation.stop_y is None or activation.stop_y < bottom:
                activation.stop_y = bottom

    # ── Actors ──

    def _place_actors(self, state: DiagramState) -> None:
        conf = self._conf
        for i, actor in enumerate(state.get_actors().values()):
            box = ActorBox(
                id=actor.id,
                description=actor.description,
                x=i * (conf.width + conf.actor_margin),
                y=0,
                width=conf.width,
                height=conf.height,
            )
            self._actors[actor.id] = box
            self._result.actors.append(box)
            self._insert(box.x, box.y, box.x + box.width, box.y + box.height)
        if self._actors:
            self._bump(conf.height)

    def _actor_row(self, y: float) -> List[ActorBox]:
        row = []
        for actor in self._result.actors:
            box = ActorBox(actor.id, actor.description, actor.x, y, actor.width, actor.height)
            self._insert(box.x, box.y, box.x + box.width, box.y + box.height)
            row.append(box)
        return row

    def _actor(self, actor_id: str) -> ActorBox:
        return self._actors[actor_id]

    def _activation_span(self, actor_id: str) -> Tuple[float, float]:
        """Left and right edge of an actor's lifeline, widened by open activations."""
        boxes = [a for a in self._open_activations if a.actor == actor_id]
        if not boxes:
            centre = self._actor(actor_id).center_x
            return centre, centre
        return min(a.start_x for a in boxes), max(a.stop_x for a in boxes)

    # ── Events ──

    def _text_lines(self, text: str, wrap: bool, max_width: float) -> List[str]:
        if wrap:
            return wrap_label(text, max_width, self.metrics, self._font)
        return split_lines(text)

    def _on_message(self, msg: Message, numbered: bool) -> None:
        conf = self._conf
        from_left, from_right = self._activation_span(msg.from_actor)
        to_left, to_right = self._activation_span(msg.to_actor)
        to_right_side = from_left <= to_left
        start_x = from_right if to_right_side else from_left
        stop_x = to_left if to_right_side else to_right

        available = max(conf.width, abs(stop_x - start_x)) - 2 * conf.box_text_margin
        lines = self._text_lines(msg.text, msg.wrap, available)

        y = self._bump(conf.message_margin)
        if msg.from_actor == msg.to_actor:
            text_width, _ = measure_lines(self.metrics, lines, self._font)
            half = max(text_width / 2, SELF_MESSAGE_MIN_HALF_WIDTH)
            centre = self._actor(msg.from_actor).center_x
            y = self._bump(SELF_MESSAGE_HEIGHT)
            self._insert(centre - half, y - SELF_MESSAGE_HEIGHT, centre + half, y)
        else:
            self._insert(start_x, y, stop_x, y)

        self._result.messages.append(MessageLine(
            kind=msg.kind,
            from_actor=msg.from_actor,
            to_actor=msg.to_actor,
            start_x=start_x,
            stop_x=stop_x,
            y=y,
            lines=lines,
            sequence_number=msg.sequence_number if numbered else None,
        ))
        trace(f"message {msg.from_actor}->{msg.to_actor} at y={y}", "EVENT")

    def _on_note(self, note: Note) -> None:
        conf = self._conf
        start = self._actor(note.from_actor)
        end = self._actor(note.to_actor)
        pitch = (conf.width + conf.actor_margin) / 2

        if note.placement is Placement.OVER and note.from_actor != note.to_actor:
            base_width = abs(start.x - end.x) + conf.actor_margin
        else:
            base_width = conf.width
        lines = self._text_lines(note.text, note.wrap, base_width - 2 * conf.note_margin)
        text_width, text_height = measure_lines(self.metrics, lines, self._font)
        width = max(base_width, text_width + 2 * conf.note_margin)

        if note.placement is Placement.RIGHT_OF:
            x = start.x + pitch
        elif note.placement is Placement.LEFT_OF:
            x = start.x - pitch
        elif note.from_actor == note.to_actor:
            x = start.x + (conf.width - width) / 2
        else:
            x = (start.x + end.x + conf.width - width) / 2

        y = self._bump(conf.box_margin)
        height = text_height + 2 * conf.note_margin
        self._insert(x, y, x + width, y + height)
        self._bump(height)
        self._result.notes.append(NoteBox(note.placement, x, y, width, height, lines))

    def _on_activation(self, mark: ActivationMark) -> None:
        conf = self._conf
        if mark.kind is MessageKind.ACTIVATION_START:
            stacked = sum(1 for a in self._open_activations if a.actor == mark.actor)
            x = self._actor(mark.actor).center_x + (stacked - 1) * conf.activation_width / 2
            self._open_activations.append(ActivationBox(
                actor=mark.actor,
                start_x=x,
                start_y=self.bounds.get_vertical_pos() + 2,
                stop_x=x + conf.activation_width,
            ))
            return

        for i in range(len(self._open_activations) - 1, -1, -1):
            if self._open_activations[i].actor == mark.actor:
                box = self._open_activations.pop(i)
                break
        else:
            log.warning("Activation end for %r with no open bar; ignored", mark.actor)
            return
        if box.start_y + MIN_ACTIVATION_HEIGHT > self.bounds.get_vertical_pos():
            self._bump(MIN_ACTIVATION_HEIGHT)
        box.stop_y = self.bounds.get_vertical_pos()
        self._insert(box.start_x, box.start_y, box.stop_x, box.stop_y)
        self._result.activations.append(box)

    def _on_block(self, marker: BlockMarker) -> None:
        conf = self._conf
        if marker.kind in _LABELLED_STARTS:
            self._bump(conf.box_margin)
            self.bounds.new_loop(label=marker.label)
            self._bump(conf.box_margin + conf.box_text_margin)
            self._open_blocks.append(marker)
        elif marker.kind is BlockKind.RECT_START:
            self._bump(conf.box_margin)
            self.bounds.new_loop(fill=marker.label)
            self._bump(conf.box_margin)
            self._open_blocks.append(marker)
        elif marker.kind in BLOCK_SECTIONS:
            self._bump(conf.box_margin + conf.box_text_margin)
            self.bounds.add_section(marker.label)
            self._bump(conf.box_margin)
        elif marker.kind in BLOCK_ENDS:
            closed = self.bounds.end_loop()
            opener = self._open_blocks.pop()
            self._result.blocks.append(self._block_box(opener, closed))
            self._bump(conf.box_margin)

    def _block_box(self, opener: BlockMarker, closed: ScopeBox) -> BlockBox:
        """Frame for a closed scope; the top edge is where the scope opened."""
        root = self.bounds.get_bounds()
        start_x = closed.start_x if closed.start_x is not None else (root.start_x or 0)
        stop_x = closed.stop_x if closed.stop_x is not None else (root.stop_x or 0)
        stop_y = closed.stop_y if closed.stop_y is not None else self.bounds.get_vertical_pos()
        top = closed.vertical_pos
        return BlockBox(
            kind=opener.kind,
            label=opener.label,
            x=start_x,
            y=top,
            width=stop_x - start_x,
            height=stop_y - top,
            sections=list(closed.sections),
        )

    # ── Result ──

    def _finish(self) -> None:
        conf = self._conf
        box = self.bounds.get_bounds()
        start_x = box.start_x or 0
        start_y = box.start_y or 0
        stop_x = box.stop_x or 0
        stop_y = box.stop_y or 0

        width = stop_x - start_x + 2 * conf.diagram_margin_x
        height = stop_y - start_y + 2 * conf.diagram_margin_y
        if conf.mirror_actors:
            height = height - conf.box_margin + conf.bottom_margin_adj
        title_room = TITLE_HEIGHT if self._result.title else 0

        self._result.bounds = box
        self._result.width = width
        self._result.height = height + title_room
        self._result.view_box = (
            start_x - conf.diagram_margin_x,
            -(conf.diagram_margin_y + title_room),
            width,
            height + title_room,
        )


def layout_diagram(
    state: DiagramState,
    config: Optional[DiagramConfig] = None,
    metrics: Optional[TextMetrics] = None,
) -> DiagramLayout:
    """Convenience wrapper: ``SequenceLayout(config, metrics).layout(state)``."""
    return SequenceLayout(config, metrics).layout(state)
