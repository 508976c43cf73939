import gymnasium as gym
import numpy as np

from draw_records import sort_records
from engine_config import DEFAULT_CONFIG
from expert_scorers import build_registry
from prediction_engine import predict
from weight_adapter import auto_tune_weights
from weight_vector import WeightVector


class WeightTuningEnv(gym.Env):
    """
    Replays history day by day.
    action: proposed weight vector (one slot per expert, normalized in step)
    reward: sessions of the next day (0-2) found in the high/medium picks
    observation: weight vector after adapting to that day's two outcomes
    """

    def __init__(self, history, config=DEFAULT_CONFIG, experts=None, seed=None):
        super().__init__()
        self.config = config
        self.registry = build_registry(experts)
        self.keys = list(self.registry)
        self.chronological = list(reversed(sort_records(history)))
        n = len(self.keys)
        self.action_space = gym.spaces.Box(low=0, high=1, shape=(n,), dtype=np.float32)
        self.observation_space = gym.spaces.Box(low=0, high=1, shape=(n,), dtype=np.float32)
        self._seed = seed
        self.reset(seed=seed)

    def _obs(self):
        return self.weights.as_array(self.keys)

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)
        self.rng = np.random.default_rng(seed if seed is not None else self._seed)
        self.weights = WeightVector.default(self.keys)
        if options and options.get("weights"):
            self.weights = WeightVector.from_dict(options["weights"], self.keys,
                                                  self.config.weight_floor, self.config.weight_ceiling)
        # first day that has enough prior history
        self.t = min(self.config.min_history, len(self.chronological))
        return self._obs(), {}

    def step(self, action):
        if self.t >= len(self.chronological):
            return self._obs(), 0.0, True, False, {}

        proposed = WeightVector.from_array(np.clip(action, 0, 1), self.keys,
                                           self.config.weight_floor, self.config.weight_ceiling)
        target = self.chronological[self.t]
        prior = self.chronological[:self.t][::-1]
        result = predict(prior, proposed, self.config, target_date=target.date,
                         registry=self.registry, rng=self.rng)
        picks = set(result.top_numbers())
        reward = float((target.am in picks) + (target.pm in picks))

        self.weights = auto_tune_weights(target, prior, proposed, self.config, self.registry)
        self.t += 1
        terminated = self.t >= len(self.chronological)
        info = {"date": target.date.isoformat(), "picks": sorted(picks)}
        return self._obs(), reward, terminated, False, info
