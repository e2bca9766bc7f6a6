"""
sequence/directives.py

Extract ``%%{ ... }%%`` directive blocks from diagram source.

A directive payload is either a type name followed by a JSON object
(``init: {...}``, ``initialize: {...}``, ``config: {...}``) or a bare flag
(``wrap``).  Blocks may span several lines and may appear before the
``sequenceDiagram`` keyword or anywhere in the body.  Each block is
replaced by as many newlines as it spanned so that line numbers in the
residual body still match the input text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sequence.config import CONFIG_DIRECTIVES, FLAG_DIRECTIVES, INIT_DIRECTIVES
from sequence.errors import ConfigParseError

log = logging.getLogger(__name__)

_DIRECTIVE_RE = re.compile(r"%%\{(.*?)\}%%", re.DOTALL)
_HEAD_RE = re.compile(r"^\s*([A-Za-z_]\w*)\s*(?::(.*))?$", re.DOTALL)
_OPEN_MARKER = "%%{"


@dataclass
class Directive:
    """One extracted directive block.

    Attributes:
        name: Lower-cased directive type (``init``, ``config``, ``wrap``...).
        args: Parsed payload object; empty for flag directives.
        line: 1-based line where the block opened.
        column: 1-based column where the block opened.
    """
    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    line: int = 1
    column: int = 1

    @property
    def is_flag(self) -> bool:
        return self.name in FLAG_DIRECTIVES

    @property
    def position(self) -> Tuple[int, int]:
        return (self.line, self.column)


@dataclass
class ExtractedSource:
    """Result of directive extraction.

    Attributes:
        body: Source text with every directive block blanked out.
        directives: Directives in source order.
    """
    body: str
    directives: List[Directive] = field(default_factory=list)


def _position(text: str, index: int) -> Tuple[int, int]:
    line = text.count("\n", 0, index) + 1
    line_start = text.rfind("\n", 0, index) + 1
    return line, index - line_start + 1


def _parse_payload(raw: str, line: int, column: int) -> Dict[str, Any]:
    """Parse a directive argument object.

    Single quotes are normalised to double quotes first, so the common
    ``{'theme': 'dark'}`` spelling is accepted.
    """
    try:
        parsed = json.loads(raw.strip().replace("'", '"'))
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"invalid directive payload: {exc.msg}", line, column) from exc
    if not isinstance(parsed, dict):
        raise ConfigParseError("directive payload must be an object", line, column)
    return parsed


def parse_directive(content: str, line: int = 1, column: int = 1) -> Directive:
    """Parse the text between ``%%{`` and ``}%%``.

    Raises:
        ConfigParseError: If the block has no type name, an ``init`` or
            ``config`` block has no payload, or the payload is malformed.
    """
    m = _HEAD_RE.match(content.strip())
    if not m:
        raise ConfigParseError(f"malformed directive {content.strip()!r}", line, column)
    name = m.group(1).lower()
    raw_args: Optional[str] = m.group(2)

    if name in INIT_DIRECTIVES or name in CONFIG_DIRECTIVES:
        if raw_args is None or not raw_args.strip():
            raise ConfigParseError(f"directive '{name}' requires an object payload", line, column)
        return Directive(name, _parse_payload(raw_args, line, column), line, column)

    if raw_args is not None and raw_args.strip():
        if name in FLAG_DIRECTIVES:
            log.warning("Ignoring arguments of flag directive %r at line %d", name, line)
            return Directive(name, {}, line, column)
        return Directive(name, _parse_payload(raw_args, line, column), line, column)
    return Directive(name, {}, line, column)


def extract_directives(text: str) -> ExtractedSource:
    """Strip directive blocks from *text* in source order.

    Args:
        text: Raw diagram source.

    Returns:
        The residual body and the parsed directives.

    Raises:
        ConfigParseError: On a malformed payload or an unterminated block.
    """
    directives: List[Directive] = []
    pieces: List[str] = []
    pos = 0
    for m in _DIRECTIVE_RE.finditer(text):
        line, column = _position(text, m.start())
        directives.append(parse_directive(m.group(1), line, column))
        pieces.append(text[pos:m.start()])
        pieces.append("\n" * m.group(0).count("\n"))
        pos = m.end()
    pieces.append(text[pos:])
    body = "".join(pieces)

    dangling = body.find(_OPEN_MARKER)
    if dangling >= 0:
        line, column = _position(body, dangling)
        raise ConfigParseError("unterminated directive block", line, column)

    if directives:
        log.debug("Extracted %d directive(s): %s", len(directives), [d.name for d in directives])
    return ExtractedSource(body=body, directives=directives)
