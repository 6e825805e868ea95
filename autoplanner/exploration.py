import numpy as np

# Epsilon-greedy action selection over one row of action values


def epsilon_greedy(q_values: np.ndarray, eps: float, rng: np.random.Generator) -> int:
    """
    Pick a random action with probability eps, otherwise the greedy one.

    Ties between equal maxima go to the lowest action index
    (np.argmax returns the first occurrence).
    """
    if rng.random() < eps:
        # explore: uniform over all actions
        return int(rng.integers(0, q_values.shape[0]))
    # exploit
    return int(np.argmax(q_values))
