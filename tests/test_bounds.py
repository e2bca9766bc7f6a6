"""Tests for layout/bounds.py — nested scope-box accumulation."""
from __future__ import annotations

import itertools

import pytest
from layout.bounds import Bounds, LayoutError, ScopeBox

BOX_MARGIN = 10


@pytest.fixture()
def bounds() -> Bounds:
    b = Bounds(box_margin=BOX_MARGIN)
    b.init()
    return b


def _extents(box: ScopeBox):
    return box.as_tuple()


class TestInsert:

    def test_simple_bound(self, bounds):
        bounds.insert(100, 100, 200, 200)
        assert _extents(bounds.get_bounds()) == (100, 100, 200, 200)

    def test_expanding_bound(self, bounds):
        bounds.insert(100, 100, 200, 200)
        bounds.insert(25, 50, 300, 400)
        assert _extents(bounds.get_bounds()) == (25, 50, 300, 400)

    def test_insert_within_bound(self, bounds):
        bounds.insert(100, 100, 200, 200)
        bounds.insert(25, 50, 300, 400)
        bounds.insert(125, 150, 150, 200)
        assert _extents(bounds.get_bounds()) == (25, 50, 300, 400)

    def test_reversed_corners_normalised(self, bounds):
        bounds.insert(200, 300, 100, 50)
        assert _extents(bounds.get_bounds()) == (100, 50, 200, 300)

    def test_order_independent(self):
        boxes = [(100, 100, 200, 200), (25, 50, 300, 400), (-5, 120, 10, 130), (0, 0, 1, 500)]
        results = set()
        for order in itertools.permutations(boxes):
            b = Bounds(BOX_MARGIN)
            for box in order:
                b.insert(*box)
            results.add(_extents(b.get_bounds()))
        assert results == {(-5, 0, 300, 500)}

    def test_empty_root(self, bounds):
        root = bounds.get_bounds()
        assert root.is_empty
        assert (root.width, root.height) == (0, 0)


class TestLoops:

    def test_loop_without_expanding_area(self, bounds):
        bounds.insert(25, 50, 300, 400)
        bounds.vertical_pos = 150
        bounds.new_loop()
        bounds.insert(125, 150, 150, 200)
        loop = bounds.end_loop()

        assert _extents(loop) == (125 - BOX_MARGIN, 150 - BOX_MARGIN, 150 + BOX_MARGIN, 200 + BOX_MARGIN)
        assert _extents(bounds.get_bounds()) == (25, 50, 300, 400)

    def test_multiple_loops_without_expanding_bounds(self, bounds):
        bounds.insert(100, 100, 1000, 1000)
        bounds.vertical_pos = 200
        bounds.new_loop()
        bounds.new_loop()
        bounds.insert(200, 200, 300, 300)

        inner = bounds.end_loop()
        assert _extents(inner) == (190, 190, 310, 310)
        outer = bounds.end_loop()
        assert _extents(outer) == (180, 180, 320, 320)
        assert _extents(bounds.get_bounds()) == (100, 100, 1000, 1000)

    def test_loop_that_expands_area(self, bounds):
        bounds.insert(100, 100, 200, 200)
        bounds.vertical_pos = 200
        bounds.new_loop()
        bounds.insert(50, 50, 300, 300)
        loop = bounds.end_loop()

        assert _extents(loop) == (40, 40, 310, 310)
        assert _extents(bounds.get_bounds()) == _extents(loop)

    @pytest.mark.parametrize("depth", [1, 2, 3, 5])
    def test_margin_accumulates_per_level(self, bounds, depth):
        for _ in range(depth):
            bounds.new_loop()
        bounds.insert(0, 0, 10, 10)
        for level in range(1, depth + 1):
            box = bounds.end_loop()
            margin = level * BOX_MARGIN
            assert _extents(box) == (-margin, -margin, 10 + margin, 10 + margin)
        assert bounds.depth == 0

    def test_loop_records_cursor_and_labels(self, bounds):
        bounds.vertical_pos = 42
        scope = bounds.new_loop(label="retry", fill="rgb(0, 0, 0)")
        assert (scope.vertical_pos, scope.label, scope.fill) == (42, "retry", "rgb(0, 0, 0)")
        assert scope.is_empty

    def test_sections_recorded(self, bounds):
        bounds.new_loop(label="alt")
        bounds.vertical_pos = 80
        bounds.add_section("else")
        closed = bounds.end_loop()
        assert closed.sections == [(80, "else")]

    def test_empty_loop_does_not_grow_parent(self, bounds):
        bounds.insert(0, 0, 10, 10)
        bounds.new_loop()
        closed = bounds.end_loop()
        assert closed.is_empty
        assert _extents(bounds.get_bounds()) == (0, 0, 10, 10)

    def test_end_loop_at_root_fails(self, bounds):
        with pytest.raises(LayoutError):
            bounds.end_loop()

    def test_section_at_root_fails(self, bounds):
        with pytest.raises(LayoutError):
            bounds.add_section("else")

    def test_init_resets(self, bounds):
        bounds.new_loop()
        bounds.insert(1, 2, 3, 4)
        bounds.bump_vertical_pos(50)
        bounds.init()
        assert bounds.depth == 0
        assert bounds.get_vertical_pos() == 0
        assert bounds.get_bounds().is_empty


class TestVerticalPos:

    def test_bump_advances_cursor(self, bounds):
        assert bounds.bump_vertical_pos(65) == 65
        assert bounds.bump_vertical_pos(40) == 105
        assert bounds.get_vertical_pos() == 105

    def test_bump_grows_root_stop_y_only(self, bounds):
        bounds.insert(0, 0, 100, 20)
        bounds.new_loop()
        bounds.bump_vertical_pos(70)
        assert bounds.get_bounds().stop_y == 70
        assert bounds.end_loop().is_empty
