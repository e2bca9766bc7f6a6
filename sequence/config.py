"""
sequence/config.py

Live configuration for one sequence diagram and the merge rules that fold
``%%{init: ...}%%`` / ``%%{config: ...}%%`` directive payloads into it.

Recognised keys are enumerated on :class:`DiagramConfig`.  Anything else
is kept in ``extras`` so it survives a round-trip, but layout arithmetic
never reads it.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from sequence.errors import ConfigParseError

log = logging.getLogger(__name__)


# Mermaid-style log level names accepted for ``logLevel``
LOG_LEVELS: Dict[str, int] = {
    "trace": 0,
    "debug": 1,
    "info": 2,
    "warn": 3,
    "error": 4,
    "fatal": 5,
}

TEXT_PLACEMENTS = ("tspan", "fo", "old")

_NUMBER = "number"
_BOOL = "bool"
_STR = "str"
_FONT_WEIGHT = "font_weight"
_LOG_LEVEL = "log_level"
_TEXT_PLACEMENT = "text_placement"

# camelCase directive key -> (field name, value type)
_GENERAL_KEYS: Dict[str, Tuple[str, str]] = {
    "theme":      ("theme", _STR),
    "logLevel":   ("log_level", _LOG_LEVEL),
    "fontFamily": ("font_family", _STR),
    "fontSize":   ("font_size", _NUMBER),
    "fontWeight": ("font_weight", _FONT_WEIGHT),
    "wrap":       ("wrap", _BOOL),
}

# Layout keys; accepted at top level or nested under "sequence"
_LAYOUT_KEYS: Dict[str, Tuple[str, str]] = {
    "diagramMarginX":  ("diagram_margin_x", _NUMBER),
    "diagramMarginY":  ("diagram_margin_y", _NUMBER),
    "actorMargin":     ("actor_margin", _NUMBER),
    "width":           ("width", _NUMBER),
    "height":          ("height", _NUMBER),
    "boxMargin":       ("box_margin", _NUMBER),
    "boxTextMargin":   ("box_text_margin", _NUMBER),
    "noteMargin":      ("note_margin", _NUMBER),
    "messageMargin":   ("message_margin", _NUMBER),
    "mirrorActors":    ("mirror_actors", _BOOL),
    "bottomMarginAdj": ("bottom_margin_adj", _NUMBER),
    "activationWidth": ("activation_width", _NUMBER),
    "textPlacement":   ("text_placement", _TEXT_PLACEMENT),
    "wrap":            ("wrap", _BOOL),
}

_TOP_LEVEL_KEYS = {**_LAYOUT_KEYS, **_GENERAL_KEYS}

# Fields an ``init`` sequence object resets; general keys such as ``wrap`` keep their value
_RESET_FIELDS = tuple(name for key, (name, _) in _LAYOUT_KEYS.items() if key not in _GENERAL_KEYS)

_SEQUENCE_KEY = "sequence"


@dataclass
class DiagramConfig:
    """Configuration consumed by the parser and the layout engine.

    Defaults follow the stock sequence diagram settings.
    """
    theme: str = "default"
    log_level: int = 5
    font_family: str = '"trebuchet ms", verdana, arial'
    font_size: float = 16
    font_weight: Any = 400
    wrap: bool = False
    # Layout
    diagram_margin_x: float = 50
    diagram_margin_y: float = 10
    actor_margin: float = 50
    width: float = 150           # actor box width
    height: float = 65           # actor box height
    box_margin: float = 10
    box_text_margin: float = 5
    note_margin: float = 10
    message_margin: float = 35
    mirror_actors: bool = True
    bottom_margin_adj: float = 1
    activation_width: float = 10
    text_placement: str = "tspan"
    # Unrecognised keys, passed through untouched
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DiagramConfig":
        """Build a config from a camelCase dict on top of the defaults."""
        return cls().apply(d)

    def copy(self) -> "DiagramConfig":
        return replace(self, extras=copy.deepcopy(self.extras))

    def apply(
        self,
        payload: Dict[str, Any],
        replace_nested: bool = False,
        defaults: Optional["DiagramConfig"] = None,
    ) -> "DiagramConfig":
        """Return a new config with *payload* folded in.

        Args:
            payload: camelCase key/value pairs from a directive.
            replace_nested: When true, nested objects replace the current
                value wholesale (``init`` semantics); otherwise they are
                merged key by key (``config`` semantics).
            defaults: Values layout fields fall back to when an ``init``
                sequence object replaces them.  Stock defaults when omitted.

        Returns:
            The updated copy; ``self`` is left untouched.

        Raises:
            ConfigParseError: If a recognised key carries a value of the
                wrong type.
        """
        result = self.copy()
        for key, value in payload.items():
            if key == _SEQUENCE_KEY and isinstance(value, dict):
                if replace_nested:
                    result._reset_layout(defaults)
                result._apply_group(value, _LAYOUT_KEYS, (_SEQUENCE_KEY,), replace_nested)
            elif key in _TOP_LEVEL_KEYS:
                result._apply_group({key: value}, _TOP_LEVEL_KEYS, (), replace_nested)
            else:
                log.debug("Passing through unrecognised config key %r", key)
                _merge_extra(result.extras, key, value, replace_nested)
        return result

    def _apply_group(
        self,
        values: Dict[str, Any],
        known: Dict[str, Tuple[str, str]],
        path: Tuple[str, ...],
        replace_nested: bool,
    ) -> None:
        for key, value in values.items():
            if key not in known:
                log.debug("Passing through unrecognised config key %r", ".".join(path + (key,)))
                target = self.extras
                for part in path:
                    target = target.setdefault(part, {})
                _merge_extra(target, key, value, replace_nested)
                continue
            name, kind = known[key]
            setattr(self, name, _coerce(".".join(path + (key,)), value, kind))

    def _reset_layout(self, defaults: Optional["DiagramConfig"] = None) -> None:
        defaults = defaults or DiagramConfig()
        for name in _RESET_FIELDS:
            setattr(self, name, getattr(defaults, name))
        self.extras.pop(_SEQUENCE_KEY, None)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the camelCase directive shape, extras merged back in."""
        d: Dict[str, Any] = {}
        for key, (name, _) in _GENERAL_KEYS.items():
            d[key] = getattr(self, name)
        seq = {key: getattr(self, name) for key, (name, _) in _LAYOUT_KEYS.items()}
        extras = copy.deepcopy(self.extras)
        seq.update(extras.pop(_SEQUENCE_KEY, {}))
        d[_SEQUENCE_KEY] = seq
        d.update(extras)
        return d


def _merge_extra(target: Dict[str, Any], key: str, value: Any, replace_nested: bool) -> None:
    if not replace_nested and isinstance(value, dict) and isinstance(target.get(key), dict):
        for sub_key, sub_value in value.items():
            _merge_extra(target[key], sub_key, sub_value, replace_nested)
    else:
        target[key] = copy.deepcopy(value)


def _coerce(key: str, value: Any, kind: str) -> Any:
    """Validate *value* for a recognised key and normalise it."""
    if kind == _NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigParseError(f"config key '{key}' expects a number, got {value!r}")
        return value
    if kind == _BOOL:
        if not isinstance(value, bool):
            raise ConfigParseError(f"config key '{key}' expects true or false, got {value!r}")
        return value
    if kind == _STR:
        if not isinstance(value, str):
            raise ConfigParseError(f"config key '{key}' expects a string, got {value!r}")
        return value
    if kind == _FONT_WEIGHT:
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ConfigParseError(f"config key '{key}' expects a number or name, got {value!r}")
        return value
    if kind == _LOG_LEVEL:
        if isinstance(value, str) and value.lower() in LOG_LEVELS:
            return LOG_LEVELS[value.lower()]
        if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 5:
            return value
        raise ConfigParseError(f"config key '{key}' expects 0-5 or a level name, got {value!r}")
    if kind == _TEXT_PLACEMENT:
        if value not in TEXT_PLACEMENTS:
            raise ConfigParseError(
                f"config key '{key}' must be one of {', '.join(TEXT_PLACEMENTS)}, got {value!r}"
            )
        return value
    raise AssertionError(f"unhandled config value kind {kind}")


# ═══════════════════════════════════════════════════════════
# Directive merge
# ═══════════════════════════════════════════════════════════

INIT_DIRECTIVES = {"init", "initialize"}
CONFIG_DIRECTIVES = {"config"}
FLAG_DIRECTIVES = {"wrap", "nowrap"}


def merge_directives(
    config: DiagramConfig,
    directives: Iterable[Any],
    defaults: Optional[DiagramConfig] = None,
) -> DiagramConfig:
    """Fold ``init``/``config`` directives into *config* in source order.

    Flag directives (``wrap``/``nowrap``) are positional and left to the
    parser; unknown directive types are logged and skipped.

    Args:
        config: Starting configuration (not modified).
        directives: :class:`sequence.directives.Directive` objects.
        defaults: Layout values an ``init`` sequence object resets to,
            usually the state's base configuration.

    Returns:
        The merged configuration.
    """
    result = config
    for directive in directives:
        if directive.name in INIT_DIRECTIVES:
            result = result.apply(directive.args, replace_nested=True, defaults=defaults)
        elif directive.name in CONFIG_DIRECTIVES:
            result = result.apply(directive.args, replace_nested=False)
        elif directive.name not in FLAG_DIRECTIVES:
            log.warning("Ignoring unknown directive %r at line %d", directive.name, directive.line)
    return result
