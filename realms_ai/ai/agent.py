"""
DQN Agent
=========

The AI agent that learns to play card battles using Deep Q-Learning.

Key Components:
    1. Function Approximator - Online + target Q-networks (see network.py)
    2. Replay Buffer         - Stores transitions for training
    3. Epsilon-Greedy        - Balances exploration vs exploitation

Training Algorithm (DQN):
    1. Observe state s from the acting side's perspective
    2. Choose action a (epsilon-greedy over all 68 slots)
    3. Execute action, observe reward r and next state s'
    4. Store (s, a, r, s', done) in replay buffer
    5. Sample mini-batch from replay buffer
    6. Calculate target: y = r + γ * max_a' Q_target(s', a')
    7. Update online network: minimize (Q(s,a) - y)²
    8. Periodically sync target network with online network

Persistence:
    A checkpoint name maps to three files inside MODEL_DIR:
        {name}.pth          Approximator weights and optimizer (torch.save)
        {name}-replay.npz   Most recent transitions (np.savez_compressed)
        {name}-state.json   Epsilon, counters and recent rewards

References:
    Mnih et al., 2015 - "Human-level control through deep reinforcement learning"
"""

import copy
import json
import os
import random
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Deque, Dict, Optional

import numpy as np
import torch

from config import Config

from ..game.state import GameState, Side
from ..utils.logger import get_logger, log_model_event
from .network import DQNModel, FunctionApproximator
from .replay_buffer import ReplayBuffer
from .state_encoder import encode_state

logger = get_logger(__name__)

# Rolling window sizes for rewards and losses
STATS_WINDOW = 100

# Episode rewards written to the state file
SAVED_REWARDS = 20


class PersistenceError(RuntimeError):
    """Raised when a checkpoint exists but cannot be written or read back."""


@dataclass
class TrainingStats:
    """Snapshot of agent telemetry. Derived, never authoritative."""
    episode: int
    epsilon: float
    avg_loss: float
    avg_reward: float
    win_rate: float
    buffer_size: int
    training_steps: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Agent:
    """
    Epsilon-greedy DQN agent for either side of a card battle.

    The same agent can play both sides in self-play: every call takes the
    Side it should reason for.

    Example:
        >>> agent = Agent(Config())
        >>> action = agent.select_action(state, Side.FIRST)
        >>> agent.store_experience(state, action, reward, next_state, done, Side.FIRST)
        >>> stats = agent.train()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        model: Optional[FunctionApproximator] = None,
        memory: Optional[ReplayBuffer] = None
    ):
        """
        Initialize the agent.

        Args:
            config: Configuration object
            model: Q-value estimator (DQNModel if None)
            memory: Replay buffer (empty buffer of MEMORY_SIZE if None)
        """
        self.config = config or Config()
        self.state_size = self.config.STATE_SIZE
        self.action_size = self.config.ACTION_SIZE

        self.model = model if model is not None else DQNModel(self.config)
        self.memory = memory if memory is not None else ReplayBuffer(self.config.MEMORY_SIZE, self.state_size)

        # Exploration
        self.epsilon = self.config.EPSILON_START

        # Counters
        self.episode_count = 0
        self.training_steps = 0
        self.wins = 0
        self.games = 0

        # Rolling windows
        self.episode_rewards: Deque[float] = deque(maxlen=STATS_WINDOW)
        self.losses: Deque[float] = deque(maxlen=STATS_WINDOW)
        self._episode_reward = 0.0

        # Track whether last action was exploration (for accurate metrics)
        self.last_action_explored = False

    # =========================================================================
    # ACTING
    # =========================================================================

    def select_action(self, state: GameState, side: Side, training: bool = True) -> int:
        """
        Pick an action index for `side`.

        While training, a random index from the full 68-slot range is returned
        with probability epsilon (legality is the caller's job). Otherwise the
        highest Q-value wins, lowest index on ties.
        """
        if training and random.random() < self.epsilon:
            self.last_action_explored = True
            return random.randrange(self.action_size)

        self.last_action_explored = False
        q_values = self.model.predict(encode_state(state, side))
        return int(np.argmax(q_values))

    def get_q_values(self, state: GameState, side: Side) -> np.ndarray:
        """Q-values for all 68 actions from `side`'s perspective."""
        return self.model.predict(encode_state(state, side))

    def store_experience(
        self,
        state: GameState,
        action: int,
        reward: float,
        next_state: GameState,
        done: bool,
        side: Side = Side.FIRST
    ) -> None:
        """
        Encode and store one transition.

        On terminal transitions the episode reward is recorded and the game
        counted as a win when the final reward is positive.
        """
        self.memory.push(encode_state(state, side), action, reward, encode_state(next_state, side), done)
        self._episode_reward += reward

        if done:
            self.episode_rewards.append(self._episode_reward)
            self._episode_reward = 0.0
            self.games += 1
            if reward > 0:
                self.wins += 1

    def start_episode(self) -> None:
        self.episode_count += 1
        self._episode_reward = 0.0

    # =========================================================================
    # LEARNING
    # =========================================================================

    def train(self) -> Optional[TrainingStats]:
        """
        One training step on a sampled batch.

        Returns:
            Stats after the step, or None while the buffer holds fewer than
            MEMORY_MIN transitions
        """
        if not self.memory.can_sample(self.config.MEMORY_MIN):
            return None

        states, actions, rewards, next_states, dones = self.memory.sample(self.config.BATCH_SIZE)
        loss = self.model.train_on_batch(states, actions, rewards, next_states, dones)

        self.losses.append(loss)
        self.training_steps += 1

        if self.training_steps % self.config.TARGET_UPDATE == 0:
            self.model.sync_target_network()
            logger.debug(f"Synced target network at step {self.training_steps}")

        self.decay_epsilon()
        return self.get_stats()

    def decay_epsilon(self) -> None:
        """Multiplicative decay, floored at EPSILON_END."""
        self.epsilon = max(self.config.EPSILON_END, self.epsilon * self.config.EPSILON_DECAY)

    def set_epsilon(self, value: float) -> None:
        """Override exploration rate, clamped to [0, 1]."""
        self.epsilon = max(0.0, min(1.0, value))
        logger.info(f"Epsilon set to {self.epsilon:.3f}")

    def get_stats(self) -> TrainingStats:
        return TrainingStats(
            episode=self.episode_count,
            epsilon=self.epsilon,
            avg_loss=float(np.mean(self.losses)) if self.losses else 0.0,
            avg_reward=float(np.mean(self.episode_rewards)) if self.episode_rewards else 0.0,
            win_rate=self.wins / self.games if self.games > 0 else 0.0,
            buffer_size=len(self.memory),
            training_steps=self.training_steps,
        )

    def reset_stats(self) -> None:
        """Clear win/loss tracking and rolling windows."""
        self.wins = 0
        self.games = 0
        self.episode_rewards.clear()
        self.losses.clear()

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _paths(self, name: str) -> Dict[str, str]:
        return {
            'weights': self.config.model_path(f'{name}.pth'),
            'replay': self.config.model_path(f'{name}-replay.npz'),
            'state': self.config.model_path(f'{name}-state.json'),
        }

    def exists(self, name: Optional[str] = None) -> bool:
        """Whether weights are saved under `name`."""
        return os.path.exists(self._paths(name or self.config.MODEL_NAME)['weights'])

    def save(self, name: Optional[str] = None) -> None:
        """
        Write all three checkpoint files.

        Raises:
            PersistenceError: If any file cannot be written
        """
        name = name or self.config.MODEL_NAME
        paths = self._paths(name)

        state = {
            'epsilon': self.epsilon,
            'episode_count': self.episode_count,
            'training_steps': self.training_steps,
            'wins': self.wins,
            'games': self.games,
            'episode_rewards': list(self.episode_rewards)[-SAVED_REWARDS:],
            'config': {
                'learning_rate': self.config.LEARNING_RATE,
                'gamma': self.config.GAMMA,
                'batch_size': self.config.BATCH_SIZE,
                'memory_size': self.config.MEMORY_SIZE,
                'memory_min': self.config.MEMORY_MIN,
                'target_update': self.config.TARGET_UPDATE,
                'epsilon_start': self.config.EPSILON_START,
                'epsilon_end': self.config.EPSILON_END,
                'epsilon_decay': self.config.EPSILON_DECAY,
                'hidden_layers': list(self.config.HIDDEN_LAYERS),
            },
            'saved_at': datetime.now().isoformat(),
        }

        try:
            os.makedirs(self.config.MODEL_DIR, exist_ok=True)
            torch.save(self.model.state_dict(), paths['weights'])
            np.savez_compressed(paths['replay'], **self.memory.state_dict(self.config.REPLAY_SAVE_SIZE))
            with open(paths['state'], 'w') as f:
                json.dump(state, f, indent=2)
        except (OSError, RuntimeError, TypeError) as e:
            raise PersistenceError(f"Failed to save checkpoint '{name}'") from e

        log_model_event('save', paths['weights'], episode=self.episode_count,
                        epsilon=f"{self.epsilon:.4f}", buffer=len(self.memory))

    def load(self, name: Optional[str] = None) -> bool:
        """
        Restore a checkpoint.

        All files are read and checked before anything on the agent changes.

        Returns:
            False if no weights are saved under `name` (agent untouched),
            True once everything is restored

        Raises:
            PersistenceError: If a file exists but cannot be read or does not
                              match this agent's architecture
        """
        name = name or self.config.MODEL_NAME
        paths = self._paths(name)

        if not os.path.exists(paths['weights']):
            logger.info(f"No saved model found at {paths['weights']}")
            return False

        try:
            checkpoint = torch.load(paths['weights'], map_location=self.config.DEVICE, weights_only=False)

            replay = None
            if os.path.exists(paths['replay']):
                with np.load(paths['replay']) as data:
                    replay = {key: data[key] for key in data.files}

            state = None
            if os.path.exists(paths['state']):
                with open(paths['state']) as f:
                    state = json.load(f)
        except Exception as e:
            raise PersistenceError(f"Failed to read checkpoint '{name}'") from e

        architecture = checkpoint.get('architecture', {}) if isinstance(checkpoint, dict) else {}
        saved_sizes = (architecture.get('state_size', self.state_size),
                       architecture.get('action_size', self.action_size))
        if saved_sizes != (self.state_size, self.action_size):
            raise PersistenceError(
                f"Checkpoint '{name}' has state/action size {saved_sizes}, "
                f"expected {(self.state_size, self.action_size)}"
            )

        restored = None
        if state is not None:
            try:
                restored = {
                    'epsilon': float(state['epsilon']),
                    'episode_count': int(state['episode_count']),
                    'training_steps': int(state['training_steps']),
                    'wins': int(state['wins']),
                    'games': int(state['games']),
                    'episode_rewards': [float(r) for r in state['episode_rewards']],
                }
            except (KeyError, TypeError, ValueError) as e:
                raise PersistenceError(f"State file for '{name}' is incomplete") from e

        if replay is not None:
            try:
                self.memory.check_state_dict(replay)
            except ValueError as e:
                raise PersistenceError(f"Replay file for '{name}' is malformed") from e
            if len(replay['states']) and replay['states'].shape[1] != self.state_size:
                raise PersistenceError(
                    f"Replay file for '{name}' holds {replay['states'].shape[1]}-wide states, "
                    f"expected {self.state_size}"
                )

        # Weights are the only step that can still fail part way
        previous = copy.deepcopy(self.model.state_dict())
        try:
            self.model.load_state_dict(checkpoint)
        except (KeyError, RuntimeError, TypeError, ValueError) as e:
            self.model.load_state_dict(previous)
            raise PersistenceError(f"Checkpoint '{name}' does not match the model") from e

        if replay is not None:
            self.memory.load_state_dict(replay)

        if restored is not None:
            self.epsilon = restored['epsilon']
            self.episode_count = restored['episode_count']
            self.training_steps = restored['training_steps']
            self.wins = restored['wins']
            self.games = restored['games']
            self.episode_rewards = deque(restored['episode_rewards'], maxlen=STATS_WINDOW)
            logger.info(f"Checkpoint saved at {state.get('saved_at', 'unknown')}")

        log_model_event('load', paths['weights'], episode=self.episode_count,
                        epsilon=f"{self.epsilon:.4f}", buffer=len(self.memory))
        return True

    def dispose(self) -> None:
        """Release the approximator."""
        self.model.dispose()
        logger.debug("Agent disposed")

    @staticmethod
    def inspect_model(name: str, model_dir: str = 'models') -> Optional[Dict[str, Any]]:
        """
        Summarize a checkpoint without building an agent.

        Returns:
            Dictionary with file and training info, or None if no weights exist

        Raises:
            PersistenceError: If a file exists but cannot be read
        """
        weights_path = os.path.join(model_dir, f'{name}.pth')
        state_path = os.path.join(model_dir, f'{name}-state.json')
        replay_path = os.path.join(model_dir, f'{name}-replay.npz')

        if not os.path.exists(weights_path):
            return None

        try:
            checkpoint = torch.load(weights_path, map_location='cpu', weights_only=False)
            state = {}
            if os.path.exists(state_path):
                with open(state_path) as f:
                    state = json.load(f)
        except Exception as e:
            raise PersistenceError(f"Failed to read checkpoint '{name}'") from e

        file_size = os.path.getsize(weights_path)
        return {
            'name': name,
            'filepath': weights_path,
            'file_size_mb': file_size / (1024 * 1024),
            'file_modified': datetime.fromtimestamp(os.path.getmtime(weights_path)).isoformat(),
            'architecture': checkpoint.get('architecture', {}),
            'has_replay': os.path.exists(replay_path),
            'epsilon': state.get('epsilon', 'unknown'),
            'episode_count': state.get('episode_count', 'unknown'),
            'training_steps': state.get('training_steps', 'unknown'),
            'wins': state.get('wins', 'unknown'),
            'games': state.get('games', 'unknown'),
            'saved_at': state.get('saved_at', 'unknown'),
        }
