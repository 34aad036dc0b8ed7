import pytest

from swimcoach.logic.geometry import LEFT_WRIST
from swimcoach.logic.history import TemporalHistory

from conftest import paddle_pose, scull_pose, signal_pose


def test_capacity_evicts_oldest_frames():
    history = TemporalHistory(capacity=3)
    for t in range(5):
        history.add(signal_pose(0.6 + 0.01 * t), timestamp=float(t))
    assert len(history) == 3
    assert [stamp for stamp, _ in history.frames] == [2.0, 3.0, 4.0]
    history.clear()
    assert len(history) == 0


def test_x_movement_needs_five_frames():
    history = TemporalHistory()
    for t, x in enumerate((0.6, 0.8, 0.6, 0.8)):
        history.add(signal_pose(x), timestamp=float(t))
    assert history.x_movement(LEFT_WRIST) == 0.0
    history.add(signal_pose(0.6), timestamp=4.0)
    assert history.x_movement(LEFT_WRIST) == pytest.approx(0.8)


def test_wrist_distance_range():
    history = TemporalHistory()
    assert history.wrist_distance_range().range == 0.0
    for t in range(6):
        history.add(scull_pose(spread=t % 2 == 0), timestamp=float(t))
    wrist_range = history.wrist_distance_range()
    assert wrist_range.min == pytest.approx(0.1)
    assert wrist_range.max == pytest.approx(0.5)
    assert wrist_range.range == pytest.approx(0.4)


def test_wrist_alternation_count():
    history = TemporalHistory()
    for t in range(7):
        history.add(paddle_pose(left_up=t % 2 == 0), timestamp=float(t))
    assert history.wrist_alternation_count() == 0
    history.add(paddle_pose(left_up=False), timestamp=7.0)
    assert history.wrist_alternation_count() == 7


def test_level_wrists_do_not_count_as_alternation():
    history = TemporalHistory()
    for t in range(10):
        history.add(scull_pose(spread=False), timestamp=float(t))
    assert history.wrist_alternation_count() == 0
