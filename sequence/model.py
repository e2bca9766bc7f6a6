"""
sequence/model.py

Diagram model for sequence diagrams: the actor registry, the ordered event
list, per-actor activation depth, and diagram-level flags.

The parser drives a :class:`DiagramState` directly; the state's event list
*is* the parse result.  Each independent parse needs its own state (or a
:meth:`DiagramState.clear` in between), since nothing here is shared.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from sequence.config import DiagramConfig
from sequence.errors import ActivationMismatchError


# ═══════════════════════════════════════════════════════════
# Kinds
# ═══════════════════════════════════════════════════════════

class MessageKind(str, Enum):
    """Line style of a message, plus the two activation marks."""
    SOLID = "solid"
    DOTTED = "dotted"
    SOLID_OPEN = "solid-open"
    DOTTED_OPEN = "dotted-open"
    SOLID_CROSS = "solid-cross"
    DOTTED_CROSS = "dotted-cross"
    ACTIVATION_START = "activation-start"
    ACTIVATION_END = "activation-end"


# Arrow token -> message kind
ARROW_KINDS: Dict[str, MessageKind] = {
    "->":   MessageKind.SOLID,
    "-->":  MessageKind.DOTTED,
    "->>":  MessageKind.SOLID_OPEN,
    "-->>": MessageKind.DOTTED_OPEN,
    "-x":   MessageKind.SOLID_CROSS,
    "--x":  MessageKind.DOTTED_CROSS,
}


class Placement(str, Enum):
    """Where a note sits relative to its actor(s)."""
    LEFT_OF = "left of"
    RIGHT_OF = "right of"
    OVER = "over"


class BlockKind(str, Enum):
    """Structural block markers emitted into the event list."""
    LOOP_START = "loop-start"
    LOOP_END = "loop-end"
    OPT_START = "opt-start"
    OPT_END = "opt-end"
    ALT_START = "alt-start"
    ALT_ELSE = "alt-else"
    ALT_END = "alt-end"
    PAR_START = "par-start"
    PAR_AND = "par-and"
    PAR_END = "par-end"
    RECT_START = "rect-start"
    RECT_END = "rect-end"


BLOCK_STARTS = {
    BlockKind.LOOP_START,
    BlockKind.OPT_START,
    BlockKind.ALT_START,
    BlockKind.PAR_START,
    BlockKind.RECT_START,
}

BLOCK_ENDS = {
    BlockKind.LOOP_END,
    BlockKind.OPT_END,
    BlockKind.ALT_END,
    BlockKind.PAR_END,
    BlockKind.RECT_END,
}

BLOCK_SECTIONS = {BlockKind.ALT_ELSE, BlockKind.PAR_AND}

# Start marker -> the end marker that closes it
BLOCK_END_FOR: Dict[BlockKind, BlockKind] = {
    BlockKind.LOOP_START: BlockKind.LOOP_END,
    BlockKind.OPT_START: BlockKind.OPT_END,
    BlockKind.ALT_START: BlockKind.ALT_END,
    BlockKind.PAR_START: BlockKind.PAR_END,
    BlockKind.RECT_START: BlockKind.RECT_END,
}


# ═══════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════

@dataclass
class Actor:
    """A participant with a lifeline.

    Attributes:
        id: Identifier as written in the source.
        description: Display text; the alias if one was given, else the id.
        activation_depth: Number of currently open activations.
    """
    id: str
    description: str
    activation_depth: int = 0


@dataclass
class Message:
    """An arrow between two actors.

    Attributes:
        kind: Line style resolved from the arrow token.
        from_actor: Sending actor id.
        to_actor: Receiving actor id.
        text: Message text, verbatim apart from trimming.
        wrap: Whether the renderer should wrap the text.
        sequence_number: 1-based ordinal among messages.
        line: Source line of the statement.
    """
    kind: MessageKind
    from_actor: str
    to_actor: str
    text: str = ""
    wrap: bool = False
    sequence_number: int = 0
    line: Optional[int] = None

    def to_dict(self, numbered: bool = True) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "from": self.from_actor,
            "to": self.to_actor,
            "text": self.text,
            "wrap": self.wrap,
            "sequenceNumber": self.sequence_number if numbered else None,
        }


@dataclass
class Note:
    """A note beside or over one or two actors.

    For the one-actor form ``from_actor == to_actor``.  For ``over A,B``
    the order is kept exactly as written.
    """
    placement: Placement
    from_actor: str
    to_actor: str
    text: str = ""
    wrap: bool = False
    line: Optional[int] = None

    @property
    def kind(self) -> str:
        return "note"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "placement": self.placement.value,
            "from": self.from_actor,
            "to": self.to_actor,
            "text": self.text,
            "wrap": self.wrap,
        }


@dataclass
class ActivationMark:
    """Start or end of an activation on one actor."""
    kind: MessageKind
    actor: str
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "from": self.actor,
            "to": self.actor,
            "text": "",
            "activationActor": self.actor,
        }


@dataclass
class BlockMarker:
    """Boundary of a loop/opt/alt/par/rect block, or an else/and section."""
    kind: BlockKind
    label: str = ""
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "from": None, "to": None, "text": self.label}


Event = Union[Message, Note, ActivationMark, BlockMarker]


# ═══════════════════════════════════════════════════════════
# Diagram state
# ═══════════════════════════════════════════════════════════

class DiagramState:
    """Caller-owned aggregate mutated by the parser.

    Args:
        base_config: Configuration restored by :meth:`clear`.  Defaults to
            a stock :class:`DiagramConfig`.
    """

    def __init__(self, base_config: Optional[DiagramConfig] = None):
        self._base_config = base_config.copy() if base_config else DiagramConfig()
        self.clear()

    @property
    def base_config(self) -> DiagramConfig:
        """Configuration the state started from and returns to on :meth:`clear`."""
        return self._base_config

    def clear(self) -> None:
        """Reset every piece of state to its empty/default value."""
        self.actors: Dict[str, Actor] = {}
        self.events: List[Event] = []
        self.title: str = ""
        self.autonumber: bool = False
        self.wrap_enabled: bool = False
        self.config: DiagramConfig = self._base_config.copy()
        self._message_count = 0

    # ── Actors ──

    def add_actor(self, actor_id: str, alias: Optional[str] = None) -> Actor:
        """Register *actor_id* if unseen; refresh its description if *alias* is given."""
        actor = self.actors.get(actor_id)
        if actor is None:
            actor = Actor(id=actor_id, description=alias or actor_id)
            self.actors[actor_id] = actor
        elif alias:
            actor.description = alias
        return actor

    # ── Events ──

    def add_message(
        self,
        from_id: str,
        to_id: str,
        kind: MessageKind,
        text: str = "",
        wrap: Optional[bool] = None,
        line: Optional[int] = None,
    ) -> Message:
        """Append a message, declaring both actors implicitly."""
        self.add_actor(from_id)
        self.add_actor(to_id)
        self._message_count += 1
        message = Message(
            kind=kind,
            from_actor=from_id,
            to_actor=to_id,
            text=text,
            wrap=self._resolve_wrap(wrap),
            sequence_number=self._message_count,
            line=line,
        )
        self.events.append(message)
        return message

    def activate(self, actor_id: str, line: Optional[int] = None) -> ActivationMark:
        actor = self.add_actor(actor_id)
        actor.activation_depth += 1
        mark = ActivationMark(MessageKind.ACTIVATION_START, actor_id, line)
        self.events.append(mark)
        return mark

    def deactivate(self, actor_id: str, line: Optional[int] = None) -> ActivationMark:
        """Close the innermost activation on *actor_id*.

        Raises:
            ActivationMismatchError: If the actor has no open activation.
        """
        actor = self.add_actor(actor_id)
        if actor.activation_depth == 0:
            raise ActivationMismatchError(actor_id, line)
        actor.activation_depth -= 1
        mark = ActivationMark(MessageKind.ACTIVATION_END, actor_id, line)
        self.events.append(mark)
        return mark

    def add_note(
        self,
        placement: Placement,
        actors: Union[str, Tuple[str, str]],
        text: str = "",
        wrap: Optional[bool] = None,
        line: Optional[int] = None,
    ) -> Note:
        """Append a note on one actor id or an ordered ``(from, to)`` pair."""
        if isinstance(actors, str):
            from_id = to_id = actors
        else:
            from_id, to_id = actors
        self.add_actor(from_id)
        self.add_actor(to_id)
        note = Note(
            placement=placement,
            from_actor=from_id,
            to_actor=to_id,
            text=text,
            wrap=self._resolve_wrap(wrap),
            line=line,
        )
        self.events.append(note)
        return note

    def add_block_marker(
        self, kind: BlockKind, label: str = "", line: Optional[int] = None
    ) -> BlockMarker:
        marker = BlockMarker(kind, label, line)
        self.events.append(marker)
        return marker

    def _resolve_wrap(self, wrap: Optional[bool]) -> bool:
        if wrap is not None:
            return wrap
        return self.wrap_enabled or self.config.wrap

    # ── Diagram flags ──

    def set_title(self, title: str) -> None:
        self.title = title

    def enable_autonumber(self) -> None:
        self.autonumber = True

    # ── Read accessors ──

    def show_sequence_numbers(self) -> bool:
        return self.autonumber

    def get_actors(self) -> Dict[str, Actor]:
        return self.actors

    def get_messages(self) -> List[Event]:
        return self.events

    def get_title(self) -> str:
        return self.title

    def activation_depth(self, actor_id: str) -> int:
        actor = self.actors.get(actor_id)
        return actor.activation_depth if actor else 0

    def to_dict(self) -> Dict[str, Any]:
        """Renderer-facing snapshot of the whole model.

        ``sequenceNumber`` is ``None`` on every message unless autonumbering
        is enabled.
        """
        events = [
            event.to_dict(numbered=self.autonumber) if isinstance(event, Message) else event.to_dict()
            for event in self.events
        ]
        return {
            "title": self.title,
            "autonumber": self.autonumber,
            "actors": {a.id: {"description": a.description} for a in self.actors.values()},
            "events": events,
        }
