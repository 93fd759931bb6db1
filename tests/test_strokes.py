"""
Unit tests for freehand strokes and the stroke recorder.
"""

import pytest

from CB_Libs.FillLib.strokes import Stroke, StrokeRecorder, strokes_from_dicts, strokes_snapshot

GREEN = (0, 200, 0, 255)


class TestStroke:
    """Tests for the Stroke value type."""

    def test_points_normalized_to_floats(self):
        stroke = Stroke(points=[(1, 2), (3, 4)], color=(0, 200, 0), width=4)

        assert stroke.points == ((1.0, 2.0), (3.0, 4.0))
        assert stroke.color == GREEN

    def test_requires_points(self):
        with pytest.raises(ValueError):
            Stroke(points=(), color=GREEN, width=4)

    @pytest.mark.parametrize("width", [0.5, 101])
    def test_width_range(self, width):
        with pytest.raises(ValueError):
            Stroke(points=((0, 0),), color=GREEN, width=width)

    def test_dict_round_trip(self):
        stroke = Stroke(points=((0.5, 1.5), (2, 3)), color=GREEN, width=6)

        assert Stroke.from_dict(stroke.to_dict()) == stroke
        assert strokes_from_dicts([stroke.to_dict()]) == [stroke]


class TestStrokeRecorder:
    """Tests for begin/extend/end handling."""

    def test_full_drag(self):
        recorder = StrokeRecorder()
        recorder.begin((1, 1), GREEN, 3)
        recorder.extend((2, 2))
        recorder.extend((3, 3))

        stroke = recorder.end()

        assert stroke.points == ((1.0, 1.0), (2.0, 2.0), (3.0, 3.0))
        assert not recorder.active

    def test_extend_without_begin_is_ignored(self):
        recorder = StrokeRecorder()

        assert recorder.extend((1, 1)) is False
        assert recorder.end() is None

    def test_begin_discards_unfinished(self):
        recorder = StrokeRecorder()
        recorder.begin((1, 1), GREEN, 3)
        recorder.begin((9, 9), GREEN, 3)

        assert recorder.end().points == ((9.0, 9.0),)

    def test_long_drag_keeps_every_point(self):
        recorder = StrokeRecorder()
        recorder.begin((0, 0), GREEN, 3)
        for i in range(1, 500):
            assert recorder.extend((i, i // 2))

        assert recorder.point_count == 500
        stroke = recorder.end()
        assert len(stroke.points) == 500
        assert stroke.points[-1] == (499.0, 249.0)
        assert recorder.point_count == 0

    def test_current_is_snapshot(self):
        recorder = StrokeRecorder()
        recorder.begin((1, 1), GREEN, 3)
        snapshot = recorder.current
        recorder.extend((2, 2))

        assert snapshot.points == ((1.0, 1.0),)
        assert recorder.current.points == ((1.0, 1.0), (2.0, 2.0))

    def test_begin_validates_width(self):
        recorder = StrokeRecorder()
        with pytest.raises(ValueError):
            recorder.begin((1, 1), GREEN, 0)
        assert not recorder.active

    def test_cancel(self):
        recorder = StrokeRecorder()
        recorder.begin((1, 1), GREEN, 3)
        recorder.cancel()

        assert recorder.current is None

    def test_snapshot_is_immutable_copy(self):
        strokes = [Stroke(points=((0, 0),), color=GREEN, width=2)]
        snapshot = strokes_snapshot(strokes)
        strokes.clear()

        assert len(snapshot) == 1
