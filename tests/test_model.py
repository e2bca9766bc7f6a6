"""Tests for sequence/model.py — DiagramState operations used by the parser."""
from __future__ import annotations

import pytest
from sequence.config import DiagramConfig
from sequence.errors import ActivationMismatchError
from sequence.model import (
    ARROW_KINDS,
    BLOCK_END_FOR,
    BLOCK_STARTS,
    BlockKind,
    DiagramState,
    MessageKind,
    Placement,
)


@pytest.fixture()
def state() -> DiagramState:
    return DiagramState()


class TestActors:

    def test_add_actor_once(self, state):
        state.add_actor("A")
        state.add_actor("A")
        assert list(state.get_actors()) == ["A"]
        assert state.get_actors()["A"].activation_depth == 0

    def test_alias_refreshes_description(self, state):
        state.add_actor("A")
        state.add_actor("A", "Alice")
        assert state.get_actors()["A"].description == "Alice"

    def test_message_declares_actors_in_order(self, state):
        state.add_message("B", "A", MessageKind.SOLID, "hi")
        assert list(state.get_actors()) == ["B", "A"]


class TestActivation:

    def test_depth_tracking(self, state):
        state.activate("A")
        state.activate("A")
        assert state.activation_depth("A") == 2
        state.deactivate("A")
        assert state.activation_depth("A") == 1

    def test_mismatch_with_other_actors_active(self, state):
        state.activate("A")
        state.activate("B")
        with pytest.raises(ActivationMismatchError) as info:
            state.deactivate("C", line=7)
        assert info.value.actor == "C"
        assert info.value.line == 7

    def test_failed_deactivate_appends_nothing(self, state):
        state.add_actor("A")
        with pytest.raises(ActivationMismatchError):
            state.deactivate("A")
        assert state.get_messages() == []

    def test_unknown_actor_depth_is_zero(self, state):
        assert state.activation_depth("nobody") == 0


class TestNotesAndBlocks:

    def test_single_actor_note(self, state):
        note = state.add_note(Placement.RIGHT_OF, "A", "text")
        assert (note.from_actor, note.to_actor) == ("A", "A")

    def test_pair_note_keeps_order(self, state):
        note = state.add_note(Placement.OVER, ("B", "A"), "text")
        assert (note.from_actor, note.to_actor) == ("B", "A")
        assert list(state.get_actors()) == ["B", "A"]

    def test_block_marker(self, state):
        marker = state.add_block_marker(BlockKind.LOOP_START, "retry", line=3)
        assert state.get_messages() == [marker]
        assert marker.to_dict()["text"] == "retry"

    def test_every_start_has_an_end(self):
        assert set(BLOCK_END_FOR) == BLOCK_STARTS


class TestWrapResolution:

    def test_explicit_wins(self, state):
        state.wrap_enabled = True
        assert state.add_message("A", "B", MessageKind.SOLID, wrap=False).wrap is False

    def test_flag_applies(self, state):
        state.wrap_enabled = True
        assert state.add_message("A", "B", MessageKind.SOLID).wrap is True

    def test_config_applies(self):
        state = DiagramState(DiagramConfig(wrap=True))
        assert state.add_note(Placement.OVER, "A", "n").wrap is True


class TestClear:

    def test_clear_restores_base_config(self):
        base = DiagramConfig(box_margin=4)
        state = DiagramState(base)
        state.config = state.config.apply({"boxMargin": 9})
        state.set_title("T")
        state.enable_autonumber()
        state.activate("A")
        state.clear()
        assert state.config.box_margin == 4
        assert state.get_title() == ""
        assert not state.show_sequence_numbers()
        assert state.get_actors() == {}

    def test_base_config_is_copied(self):
        base = DiagramConfig()
        state = DiagramState(base)
        base.box_margin = 99
        assert state.config.box_margin == 10


def test_arrow_mapping_is_total():
    assert set(ARROW_KINDS) == {"->", "-->", "->>", "-->>", "-x", "--x"}
    assert len(set(ARROW_KINDS.values())) == 6
