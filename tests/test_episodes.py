import pytest

from autoplanner.episodes import EpisodeTracker


def test_episode_closes_exactly_at_step_count():
    tracker = EpisodeTracker()
    for r in (-1.0, -2.0, -3.0):
        tracker.record_step(r)
        assert tracker.maybe_close_episode(4) is None
    tracker.record_step(-6.0)
    avg = tracker.maybe_close_episode(4)
    assert avg == pytest.approx(-3.0)
    assert tracker.episode == 1
    assert tracker.step == 0
    assert tracker.total_reward == 0.0
    assert tracker.rewards == [pytest.approx(-3.0)]


def test_reward_sequence_tracks_episode_count():
    tracker = EpisodeTracker()
    for i in range(30):
        tracker.record_step(-float(i))
        tracker.maybe_close_episode(3)
        assert len(tracker.rewards) == tracker.episode
    assert tracker.episode == 10


def test_degenerate_step_count_closes_every_step():
    tracker = EpisodeTracker()
    tracker.record_step(-5.0)
    assert tracker.maybe_close_episode(0) == -5.0
    assert tracker.episode == 1


def test_reset():
    tracker = EpisodeTracker()
    tracker.record_step(-1.0)
    tracker.maybe_close_episode(1)
    tracker.record_step(-1.0)
    tracker.reset()
    assert (tracker.episode, tracker.step, tracker.total_reward, tracker.rewards) == (0, 0, 0.0, [])


def test_lowered_step_count_averages_over_recorded_steps():
    tracker = EpisodeTracker()
    for r in (-1.0, -2.0, -3.0, -4.0, -5.0):
        tracker.record_step(r)
        assert tracker.maybe_close_episode(10) is None
    # target dropped below the current step mid-episode
    avg = tracker.maybe_close_episode(3)
    assert avg == pytest.approx(-15.0 / 5)
    assert tracker.rewards == [pytest.approx(-3.0)]
    assert tracker.episode == 1 and tracker.step == 0
