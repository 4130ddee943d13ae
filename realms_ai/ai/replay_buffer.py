"""
Experience Replay Buffer
========================

A memory buffer that stores card battle transitions for training the DQN.

Why Experience Replay?
    1. Breaks correlation between consecutive experiences
       (Moves within one game are strongly correlated)

    2. Improves sample efficiency
       (Each transition can be used for multiple training steps)

    3. Mixes match-ups
       (A batch can hold moves from every deck pairing seen recently)

How it works:
    1. The agent stores (state, action, reward, next_state, done) tuples
    2. During training, we sample random batches without replacement
    3. Old transitions are overwritten when the buffer is full (FIFO)

References:
    Mnih et al., 2015 - "Human-level control through deep reinforcement learning"
"""

import numpy as np
from typing import Any, Dict, Tuple


class EmptyReplayBuffer(RuntimeError):
    """Raised when sampling from a buffer that holds no transitions."""


Batch = Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]

TRANSITION_KEYS = ('states', 'actions', 'rewards', 'next_states', 'dones')


class ReplayBuffer:
    """
    Fixed-size circular buffer of transitions with contiguous numpy storage.

    Transition tuple: (state, action, reward, next_state, done)
        - state: Encoded state (np.ndarray, float32)
        - action: Action index 0-67 (int)
        - reward: Shaped reward (float)
        - next_state: Encoded resulting state (np.ndarray, float32)
        - done: Whether the game ended (bool)

    The buffer owns copies of everything pushed into it, so callers may
    reuse their arrays afterwards.

    Example:
        >>> buffer = ReplayBuffer(capacity=50000)
        >>> buffer.push(state, action, reward, next_state, done)
        >>> states, actions, rewards, next_states, dones = buffer.sample(32)
    """

    def __init__(self, capacity: int, state_size: int = 0):
        """
        Initialize the replay buffer.

        Args:
            capacity: Maximum number of transitions to store
            state_size: Size of state vector (auto-detected on first push if 0)
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._state_size = state_size
        self._size = 0  # Current number of transitions stored
        self._position = 0  # Next write position for circular buffer
        self._initialized = False

        if state_size > 0:
            self._init_arrays(state_size)

    def _init_arrays(self, state_size: int) -> None:
        """Initialize contiguous storage arrays."""
        self._state_size = state_size
        self.states = np.empty((self.capacity, state_size), dtype=np.float32)
        self.actions = np.empty(self.capacity, dtype=np.int64)
        self.rewards = np.empty(self.capacity, dtype=np.float32)
        self.next_states = np.empty((self.capacity, state_size), dtype=np.float32)
        self.dones = np.empty(self.capacity, dtype=np.float32)
        self._initialized = True

    def push(
        self,
        state: np.ndarray,
        action: int,
        reward: float,
        next_state: np.ndarray,
        done: bool
    ) -> None:
        """
        Add a transition to the buffer.

        When the buffer is full, the oldest transition is overwritten.
        """
        if not self._initialized:
            self._init_arrays(len(state))

        np.copyto(self.states[self._position], state)
        self.actions[self._position] = action
        self.rewards[self._position] = reward
        np.copyto(self.next_states[self._position], next_state)
        self.dones[self._position] = float(done)

        self._position = (self._position + 1) % self.capacity
        self._size = min(self._size + 1, self.capacity)

    add = push

    def sample(self, batch_size: int) -> Batch:
        """
        Sample a batch of distinct transitions.

        Uses a partial Fisher-Yates shuffle over the stored indices, so no
        transition appears twice in one batch.

        Args:
            batch_size: Requested number of transitions

        Returns:
            Tuple of numpy arrays (states, actions, rewards, next_states, dones)
            holding min(batch_size, len(self)) rows. All arrays are copies.

        Raises:
            EmptyReplayBuffer: If the buffer holds no transitions
        """
        if self._size == 0:
            raise EmptyReplayBuffer("Cannot sample from an empty replay buffer")

        k = min(batch_size, self._size)
        indices = np.arange(self._size)
        for i in range(k):
            j = np.random.randint(i, self._size)
            indices[i], indices[j] = indices[j], indices[i]
        indices = indices[:k]

        # Fancy indexing returns copies
        return (
            self.states[indices],
            self.actions[indices],
            self.rewards[indices],
            self.next_states[indices],
            self.dones[indices]
        )

    def __len__(self) -> int:
        """Return current buffer size."""
        return self._size

    @property
    def is_full(self) -> bool:
        return self._size >= self.capacity

    def can_sample(self, min_size: int) -> bool:
        """Check if buffer holds at least min_size transitions."""
        return self._size >= min_size

    def clear(self) -> None:
        """Clear all transitions from the buffer."""
        self._size = 0
        self._position = 0

    def get_stats(self) -> Dict[str, Any]:
        """Summary of buffer contents for logging."""
        rewards = self.rewards[:self._size] if self._initialized else np.empty(0, dtype=np.float32)
        return {
            'size': self._size,
            'capacity': self.capacity,
            'utilization': self._size / self.capacity,
            'is_full': self.is_full,
            'mean_reward': float(rewards.mean()) if self._size else 0.0,
            'positive_rewards': int((rewards > 0).sum()),
            'negative_rewards': int((rewards < 0).sum()),
        }

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _chronological_indices(self) -> np.ndarray:
        """Storage indices ordered oldest to newest."""
        if self.is_full:
            return (self._position + np.arange(self.capacity)) % self.capacity
        return np.arange(self._size)

    def recent(self, k: int) -> Batch:
        """The k most recent transitions, oldest first."""
        if not self._initialized or self._size == 0 or k <= 0:
            empty = np.empty((0, self._state_size), dtype=np.float32)
            return (empty, np.empty(0, dtype=np.int64), np.empty(0, dtype=np.float32),
                    empty.copy(), np.empty(0, dtype=np.float32))

        indices = self._chronological_indices()[-k:]
        return (
            self.states[indices],
            self.actions[indices],
            self.rewards[indices],
            self.next_states[indices],
            self.dones[indices]
        )

    def state_dict(self, max_to_save: int) -> Dict[str, np.ndarray]:
        """
        Arrays for saving with np.savez_compressed.

        Only the most recent max_to_save transitions are kept.
        """
        states, actions, rewards, next_states, dones = self.recent(max_to_save)
        return {
            'capacity': np.array(self.capacity, dtype=np.int64),
            'states': states,
            'actions': actions,
            'rewards': rewards,
            'next_states': next_states,
            'dones': dones,
        }

    @staticmethod
    def check_state_dict(data: Dict[str, np.ndarray]) -> None:
        """
        Raise ValueError unless `data` holds aligned transition arrays.

        States must be 2-D with next_states of the same shape; actions,
        rewards and dones need one entry per state.
        """
        missing = [key for key in TRANSITION_KEYS if key not in data]
        if missing:
            raise ValueError(f"Saved buffer is missing {', '.join(missing)}")

        states = np.asarray(data['states'])
        next_states = np.asarray(data['next_states'])
        if states.ndim != 2 or states.shape != next_states.shape:
            raise ValueError(f"Saved state arrays have shapes {states.shape} and {next_states.shape}")
        for key in ('actions', 'rewards', 'dones'):
            if np.shape(data[key]) != (len(states),):
                raise ValueError(f"Saved {key} have shape {np.shape(data[key])}, expected ({len(states)},)")

    def load_state_dict(self, data: Dict[str, np.ndarray]) -> None:
        """
        Replace contents with saved transitions.

        Transitions beyond this buffer's capacity are dropped oldest first.
        Write position and fullness are rebuilt from the restored count.

        Raises:
            ValueError: If the arrays are missing or misaligned (buffer untouched)
        """
        self.check_state_dict(data)
        states = np.asarray(data['states'], dtype=np.float32)
        actions = np.asarray(data['actions'], dtype=np.int64)
        rewards = np.asarray(data['rewards'], dtype=np.float32)
        next_states = np.asarray(data['next_states'], dtype=np.float32)
        dones = np.asarray(data['dones'], dtype=np.float32)

        self.clear()
        n = min(len(actions), self.capacity)
        if n == 0:
            return

        if not self._initialized or self._state_size != states.shape[1]:
            self._init_arrays(states.shape[1])

        self.states[:n] = states[-n:]
        self.actions[:n] = actions[-n:]
        self.rewards[:n] = rewards[-n:]
        self.next_states[:n] = next_states[-n:]
        self.dones[:n] = dones[-n:]

        self._size = n
        self._position = n % self.capacity
