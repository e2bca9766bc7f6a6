"""
sequence/parser.py

Parse sequence diagram source text into a :class:`DiagramState`.

This is a hand-written statement parser.  The pipeline is:

    1. Directive extraction  → config fragments + residual body
    2. Config merge          → ``state.config``
    3. Statement parse       → actor/event mutations on ``state``

Statements are separated by newlines or ``;``.  ``%%`` and ``#`` start a
comment that runs to the end of the line.  Keywords are matched
case-insensitively and must be followed by whitespace, ``:`` or the end of
the statement, so ``end->Bob`` or ``loopback->Bob`` still parse as
messages.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass
from functools import partial
from typing import Callable, Deque, Dict, Iterator, List, Optional, Tuple

from debug_trace import trace_call
from sequence.config import merge_directives
from sequence.directives import Directive, extract_directives
from sequence.errors import DiagramSyntaxError, SequenceError
from sequence.model import (
    ARROW_KINDS,
    BLOCK_END_FOR,
    BlockKind,
    DiagramState,
    Placement,
)

log = logging.getLogger(__name__)

DIAGRAM_KEYWORD = "sequencediagram"

_COMMENT_RE = re.compile(r"%%|#")

# Longest arrow first so "-->>" wins over "-->" and "->"
_ARROW_PATTERN = "|".join(
    re.escape(a) for a in sorted(ARROW_KINDS, key=len, reverse=True)
)

# Actor ids stop at the characters that start an arrow, a text or a pair
_ACTOR = r"[^\->:,]+?"

_MESSAGE_RE = re.compile(
    rf"^(?P<src>{_ACTOR})\s*(?P<arrow>{_ARROW_PATTERN})"
    rf"\s*(?P<act>[+-])?\s*(?P<dst>{_ACTOR})\s*(?::(?P<text>.*))?$",
    re.DOTALL,
)

_KEYWORD_RE = re.compile(r"^(?P<kw>[A-Za-z]+)(?=\s|:|$)(?P<rest>.*)$", re.DOTALL)

_PARTICIPANT_RE = re.compile(r"^(?P<id>.+?)(?:\s+as\s+(?P<alias>.+))?$", re.IGNORECASE | re.DOTALL)

_NOTE_RE = re.compile(
    r"^(?P<placement>left\s+of|right\s+of|over)\s+(?P<actors>[^:]+?)\s*:(?P<text>.*)$",
    re.IGNORECASE | re.DOTALL,
)

_WRAP_PREFIX_RE = re.compile(r"^\s*:?\s*(?P<no>no)?wrap:", re.IGNORECASE)

_PLACEMENTS: Dict[str, Placement] = {
    "left of": Placement.LEFT_OF,
    "right of": Placement.RIGHT_OF,
    "over": Placement.OVER,
}

# Block-opening keyword -> start marker
_BLOCK_OPENERS: Dict[str, BlockKind] = {
    "loop": BlockKind.LOOP_START,
    "opt": BlockKind.OPT_START,
    "alt": BlockKind.ALT_START,
    "par": BlockKind.PAR_START,
    "rect": BlockKind.RECT_START,
}

# Section keyword -> (marker, the start marker it must sit inside)
_BLOCK_SECTIONS: Dict[str, Tuple[BlockKind, BlockKind]] = {
    "else": (BlockKind.ALT_ELSE, BlockKind.ALT_START),
    "and": (BlockKind.PAR_AND, BlockKind.PAR_START),
}


# ═══════════════════════════════════════════════════════════
# Statement splitting
# ═══════════════════════════════════════════════════════════

@dataclass
class Statement:
    """One trimmed statement and where it started in the source."""
    text: str
    line: int
    column: int

    @property
    def position(self) -> Tuple[int, int]:
        return (self.line, self.column)


def iter_statements(body: str) -> Iterator[Statement]:
    """Yield non-empty statements, comments removed.

    Args:
        body: Diagram text with directives already extracted.
    """
    for lineno, raw in enumerate(body.split("\n"), start=1):
        raw = raw.rstrip("\r")
        m = _COMMENT_RE.search(raw)
        if m:
            raw = raw[:m.start()]
        offset = 0
        for chunk in raw.split(";"):
            stripped = chunk.strip()
            if stripped:
                lead = len(chunk) - len(chunk.lstrip())
                yield Statement(stripped, lineno, offset + lead + 1)
            offset += len(chunk) + 1


def split_wrap_prefix(text: str) -> Tuple[str, Optional[bool]]:
    """Strip a leading ``wrap:`` / ``nowrap:`` from message or note text.

    Returns:
        ``(text, wrap)`` where *wrap* is ``None`` when no prefix was given.
    """
    m = _WRAP_PREFIX_RE.match(text)
    if not m:
        return text.strip(), None
    return text[m.end():].strip(), m.group("no") is None


# ═══════════════════════════════════════════════════════════
# Parser
# ═══════════════════════════════════════════════════════════

@dataclass
class _OpenBlock:
    kind: BlockKind
    line: int


class SequenceParser:
    """Statement parser that applies each statement to a :class:`DiagramState`.

    The parser owns the block-nesting stack; activation depth lives on the
    state's actors.  The two are never consulted together.

    Args:
        state: Target state.  It is *not* cleared; call
            :meth:`DiagramState.clear` first when reusing one.
    """

    def __init__(self, state: DiagramState):
        self.state = state
        self._blocks: List[_OpenBlock] = []
        self._seen_header = False
        self._pending_flags: Deque[Directive] = deque()
        self._handlers: Dict[str, Callable[[str, Statement], None]] = {
            DIAGRAM_KEYWORD: self._on_header,
            "participant": self._on_participant,
            "autonumber": self._on_autonumber,
            "title": self._on_title,
            "activate": self._on_activate,
            "deactivate": self._on_deactivate,
            "note": self._on_note,
            "end": self._on_end,
        }
        for keyword, kind in _BLOCK_OPENERS.items():
            self._handlers[keyword] = partial(self._on_block_open, kind)
        for keyword in _BLOCK_SECTIONS:
            self._handlers[keyword] = partial(self._on_block_section, keyword)

    def parse(self, text: str) -> DiagramState:
        """Parse *text* (directives included) into the state.

        Raises:
            ConfigParseError: On a malformed directive; nothing else runs.
            DiagramSyntaxError: On an unrecognised or misplaced statement.
            ActivationMismatchError: On a deactivation with nothing open.
        """
        extracted = extract_directives(text)
        self.state.config = merge_directives(
            self.state.config, extracted.directives, defaults=self.state.base_config
        )
        self._pending_flags = deque(d for d in extracted.directives if d.is_flag)

        last_line = 1
        for statement in iter_statements(extracted.body):
            self._apply_flags_before(statement.position)
            try:
                self._dispatch(statement)
            except SequenceError as exc:
                exc.locate(statement.line, statement.column)
                log.debug("Parse aborted: %s", exc)
                raise
            last_line = statement.line

        if not self._seen_header:
            raise DiagramSyntaxError("missing 'sequenceDiagram' header", last_line)
        if self._blocks:
            block = self._blocks[-1]
            raise DiagramSyntaxError(
                f"'{_keyword_for(block.kind)}' block opened at line {block.line} is never closed",
                extracted.body.count("\n") + 1,
            )
        log.debug(
            "Parsed %d actor(s), %d event(s)",
            len(self.state.actors), len(self.state.events),
        )
        return self.state

    # ── Dispatch ──

    def _apply_flags_before(self, position: Tuple[int, int]) -> None:
        while self._pending_flags and self._pending_flags[0].position < position:
            flag = self._pending_flags.popleft()
            self.state.wrap_enabled = flag.name == "wrap"

    def _dispatch(self, statement: Statement) -> None:
        m = _KEYWORD_RE.match(statement.text)
        keyword = m.group("kw").lower() if m else ""

        if not self._seen_header:
            if keyword != DIAGRAM_KEYWORD:
                raise DiagramSyntaxError(
                    f"expected 'sequenceDiagram', found {statement.text!r}"
                )
        elif keyword == DIAGRAM_KEYWORD:
            raise DiagramSyntaxError("duplicate 'sequenceDiagram' header")

        handler = self._handlers.get(keyword)
        if handler is not None:
            handler(m.group("rest"), statement)
            return

        if not self._on_message(statement):
            raise DiagramSyntaxError(f"unrecognised statement {statement.text!r}")

    # ── Statement handlers ──

    def _on_header(self, rest: str, statement: Statement) -> None:
        if rest.strip():
            raise DiagramSyntaxError(f"unexpected text after header: {rest.strip()!r}")
        self._seen_header = True

    def _on_participant(self, rest: str, statement: Statement) -> None:
        m = _PARTICIPANT_RE.match(rest.strip())
        if not m:
            raise DiagramSyntaxError("'participant' requires an actor id")
        alias = m.group("alias")
        self.state.add_actor(m.group("id").strip(), alias.strip() if alias else None)

    def _on_autonumber(self, rest: str, statement: Statement) -> None:
        if rest.strip():
            raise DiagramSyntaxError(f"unexpected text after 'autonumber': {rest.strip()!r}")
        self.state.enable_autonumber()

    def _on_title(self, rest: str, statement: Statement) -> None:
        text = rest.strip()
        if text.startswith(":"):
            text = text[1:].strip()
        self.state.set_title(text)

    def _on_activate(self, rest: str, statement: Statement) -> None:
        self.state.activate(self._require_actor(rest, "activate"), statement.line)

    def _on_deactivate(self, rest: str, statement: Statement) -> None:
        self.state.deactivate(self._require_actor(rest, "deactivate"), statement.line)

    def _on_note(self, rest: str, statement: Statement) -> None:
        m = _NOTE_RE.match(rest.strip())
        if not m:
            raise DiagramSyntaxError(
                "expected 'Note left of|right of|over <actor>[,<actor>]: <text>'"
            )
        placement = _PLACEMENTS[" ".join(m.group("placement").lower().split())]
        names = [name.strip() for name in m.group("actors").split(",")]
        if len(names) > 2 or not all(names):
            raise DiagramSyntaxError("a note takes one actor or a pair of actors")
        text, wrap = split_wrap_prefix(m.group("text"))
        actors = names[0] if len(names) == 1 else (names[0], names[1])
        self.state.add_note(placement, actors, text, wrap, statement.line)

    def _on_block_open(self, kind: BlockKind, rest: str, statement: Statement) -> None:
        self._blocks.append(_OpenBlock(kind, statement.line))
        self.state.add_block_marker(kind, rest.strip(), statement.line)

    def _on_block_section(self, keyword: str, rest: str, statement: Statement) -> None:
        marker, required = _BLOCK_SECTIONS[keyword]
        if not self._blocks or self._blocks[-1].kind is not required:
            raise DiagramSyntaxError(
                f"'{keyword}' is only allowed directly inside '{_keyword_for(required)}'"
            )
        self.state.add_block_marker(marker, rest.strip(), statement.line)

    def _on_end(self, rest: str, statement: Statement) -> None:
        if rest.strip():
            raise DiagramSyntaxError(f"unexpected text after 'end': {rest.strip()!r}")
        if not self._blocks:
            raise DiagramSyntaxError("'end' without an open block")
        block = self._blocks.pop()
        self.state.add_block_marker(BLOCK_END_FOR[block.kind], "", statement.line)

    def _on_message(self, statement: Statement) -> bool:
        m = _MESSAGE_RE.match(statement.text)
        if not m:
            return False
        source = m.group("src").strip()
        target = m.group("dst").strip()
        text, wrap = split_wrap_prefix(m.group("text") or "")
        self.state.add_message(
            source, target, ARROW_KINDS[m.group("arrow")], text, wrap, statement.line
        )
        activation = m.group("act")
        if activation == "+":
            self.state.activate(target, statement.line)
        elif activation == "-":
            self.state.deactivate(source, statement.line)
        return True

    @staticmethod
    def _require_actor(rest: str, keyword: str) -> str:
        actor = rest.strip()
        if not actor:
            raise DiagramSyntaxError(f"'{keyword}' requires an actor id")
        return actor


def _keyword_for(kind: BlockKind) -> str:
    for keyword, opener in _BLOCK_OPENERS.items():
        if opener is kind:
            return keyword
    return kind.value


# ═══════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════

@trace_call("PARSE")
def parse(text: str, state: Optional[DiagramState] = None) -> DiagramState:
    """Parse sequence diagram source.

    Args:
        text: Full diagram source, directives included.
        state: State to populate.  A fresh :class:`DiagramState` with stock
            defaults is created when omitted; a supplied one is used as-is
            (not cleared).  To start from the user's persisted settings,
            pass ``DiagramState(get_settings().diagram_config())``.

    Returns:
        The populated state.  On failure the exception propagates and
        *state* keeps whatever was applied before the failing statement.
    """
    if state is None:
        state = DiagramState()
    return SequenceParser(state).parse(text)


def parse_file(path: str, state: Optional[DiagramState] = None) -> DiagramState:
    """Parse a ``.mmd`` source file.

    Args:
        path: Path to the source file.
        state: Optional state to populate.

    Returns:
        The populated state.
    """
    with open(path, "r", encoding="utf-8") as f:
        return parse(f.read(), state)
