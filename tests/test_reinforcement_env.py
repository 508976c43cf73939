import numpy as np
import pytest

from persistence import InMemorySlot
from reinforcement_env import WeightTuningEnv
from run_self_improving_training import run_self_improving_training


class TestWeightTuningEnv:
    """Day-by-day replay through predict and adapt."""

    def test_reset_starts_after_minimum_history(self, long_history):
        env = WeightTuningEnv(long_history[:20], seed=0)
        obs, info = env.reset(seed=0)
        assert obs.shape == (7,)
        assert obs.sum() == pytest.approx(1.0, abs=1e-5)
        assert env.t == 5
        assert info == {}

    def test_episode_runs_to_the_end(self, long_history):
        env = WeightTuningEnv(long_history[:20], seed=0)
        obs, _ = env.reset(seed=0)
        steps, terminated = 0, False
        while not terminated:
            obs, reward, terminated, truncated, info = env.step(obs)
            assert reward in (0.0, 1.0, 2.0)
            assert not truncated
            assert len(info["picks"]) == 10
            steps += 1
        assert steps == 15
        assert env.observation_space.contains(obs.astype(np.float32))

    def test_reset_with_weights_option(self, long_history):
        env = WeightTuningEnv(long_history[:10], seed=0)
        obs, _ = env.reset(options={"weights": {"gap": 0.5, "recency": 0.01}})
        assert env.weights["gap"] > env.weights["recency"]

    def test_short_history_terminates_immediately(self, five_day_history):
        env = WeightTuningEnv(five_day_history[:3])
        _, reward, terminated, _, _ = env.step(np.ones(7))
        assert terminated
        assert reward == 0.0


def test_training_returns_and_saves_weights(long_history):
    slot = InMemorySlot()
    weights = run_self_improving_training(long_history[:15], cycles=2, seed=1, weight_slot=slot)
    assert weights.total() == pytest.approx(1.0)
    assert slot.saves == 1
    assert slot.value == weights.to_dict()
