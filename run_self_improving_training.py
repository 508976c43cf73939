def run_self_improving_training(history, config=None, experts=None, cycles=1, seed=42,
                                weight_slot=None):
    """
    Replay the history through WeightTuningEnv, feeding each adapted weight
    vector back in as the next action, and return the final weights.
    """
    import logging
    from engine_config import DEFAULT_CONFIG
    from reinforcement_env import WeightTuningEnv
    from weight_vector import WeightVector

    logger = logging.getLogger(__name__)
    config = config or DEFAULT_CONFIG
    env = WeightTuningEnv(history, config=config, experts=experts, seed=seed)

    weights = None
    total_reward = 0.0
    steps = 0
    for cycle in range(cycles):
        options = {"weights": weights.to_dict()} if weights is not None else None
        obs, _ = env.reset(seed=seed, options=options)
        terminated = env.t >= len(env.chronological)
        cycle_reward = 0.0
        while not terminated:
            obs, reward, terminated, _, info = env.step(obs)
            cycle_reward += reward
            steps += 1
        weights = env.weights
        total_reward += cycle_reward
        logger.info("Training cycle %d/%d: reward %.0f, weights %s",
                    cycle + 1, cycles, cycle_reward, weights.to_dict())

    if weights is None:
        weights = WeightVector.default(env.keys)
    if weight_slot is not None:
        weight_slot.save(weights.to_dict())
    logger.info("Replayed %d steps, total reward %.0f", steps, total_reward)
    return weights
