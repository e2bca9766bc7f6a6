"""
sequence package

Sequence diagram source parsing: directive extraction, config merge, the
statement parser and the diagram model it drives.
"""

from sequence.errors import (
    SequenceError,
    DiagramSyntaxError,
    ActivationMismatchError,
    ConfigParseError,
)
from sequence.config import DiagramConfig, merge_directives
from sequence.directives import Directive, extract_directives
from sequence.model import (
    Actor,
    ActivationMark,
    BlockKind,
    BlockMarker,
    DiagramState,
    Message,
    MessageKind,
    Note,
    Placement,
)
from sequence.parser import SequenceParser, parse, parse_file

__all__ = [
    "SequenceError",
    "DiagramSyntaxError",
    "ActivationMismatchError",
    "ConfigParseError",
    "DiagramConfig",
    "merge_directives",
    "Directive",
    "extract_directives",
    "Actor",
    "ActivationMark",
    "BlockKind",
    "BlockMarker",
    "DiagramState",
    "Message",
    "MessageKind",
    "Note",
    "Placement",
    "SequenceParser",
    "parse",
    "parse_file",
]
