import numpy as np

from autoplanner.exploration import epsilon_greedy
from autoplanner.q_table import ACTION_SIZE, STATE_SIZE, QTable


class SarsaAgent:
    # Implements tabular SARSA with an epsilon-greedy strategy

    def __init__(
        self,
        n_states: int = STATE_SIZE, # number of dose buckets
        n_actions: int = ACTION_SIZE, # number of possible actions
        seed: int | None = None # random seed for reproducibility
    ):
        # Q-table: one row of action values per dose bucket
        self.q = QTable(n_states, n_actions)
        self.n_actions = n_actions
        # random number generator for action selection
        self.rng = np.random.default_rng(seed)

    def act(self, state: float, eps: float) -> int:
        """
        Choose an action based on epsilon-greedy policy.

        If a random draw is below eps, pick a random action;
        otherwise select the action with highest estimated value,
        preferring the lowest index on ties.
        """
        return epsilon_greedy(self.q.row(state), eps, self.rng)

    def update(
        self,
        state: float,
        action: int,
        reward: float,
        next_state: float,
        next_action: int,
        alpha: float,
        gamma: float
    ) -> float:
        """
        Update the Q-value for the (state, action) pair and return the TD error.

        Uses the on-policy SARSA rule:
          Q(s,a) <- Q(s,a) + alpha * (reward + gamma * Q(s',a') - Q(s,a))
        where a' is the action that will actually be taken in s'.
        """
        # value of the action we are committed to next
        future = self.q.get(next_state, next_action)
        # temporal-difference error
        td_error = reward + gamma * future - self.q.get(state, action)
        # apply the learning rate
        self.q.add(state, action, alpha * td_error)
        return td_error

    def reset(self) -> None:
        self.q.reset()

    def get_q_table(self) -> np.ndarray:
        """
        Return a copy of the learned Q-table.
        """
        return self.q.values.copy()
