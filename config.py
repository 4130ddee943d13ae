"""
Configuration file for Five Realms DQN
======================================

All hyperparameters, game settings, and training options are centralized here.
Modify these values to experiment with different training configurations.

Usage:
    from config import Config
    cfg = Config()
    print(cfg.LEARNING_RATE)
"""

from dataclasses import dataclass, field
from typing import List, Optional
import os
import torch


@dataclass
class Config:
    """
    Central configuration for the entire project.

    Sections:
    1. Game Settings - Card battle parameters
    2. Action / State Spaces - Fixed encodings shared by every component
    3. Neural Network - Architecture configuration
    4. Training - Learning hyperparameters
    5. Exploration - Epsilon-greedy settings
    6. Training Control - Episodes, matchups, checkpoints
    7. System - Hardware and paths
    """

    # =========================================================================
    # GAME SETTINGS
    # =========================================================================

    STARTING_HEALTH: int = 30
    STARTING_MANA: int = 1
    MAX_MANA: int = 10
    INITIAL_HAND_SIZE: int = 4
    MAX_HAND_SIZE: int = 10
    MAX_BOARD_SIZE: int = 7

    # =========================================================================
    # ACTION / STATE SPACES
    # =========================================================================

    # 0-9 play card, 10-59 attack minion, 60-66 attack face, 67 end turn
    ACTION_SIZE: int = 68

    @property
    def STATE_SIZE(self) -> int:
        """Calculate input layer size based on the state encoding."""
        globals_info = 9                            # health/mana/turn/hand-size scalars
        hand_info = self.MAX_HAND_SIZE * 4          # cost, is-minion, attack, health
        board_info = 2 * self.MAX_BOARD_SIZE * 5    # own + enemy boards
        deck_info = 2                               # deck size ratios
        return globals_info + hand_info + board_info + deck_info

    # =========================================================================
    # NEURAL NETWORK ARCHITECTURE
    # =========================================================================

    # Hidden layer architecture (121 -> 128 -> 128 -> 64 -> 68)
    HIDDEN_LAYERS: List[int] = field(default_factory=lambda: [128, 128, 64])

    # Activation function: 'relu', 'leaky_relu', 'tanh', 'elu'
    ACTIVATION: str = 'relu'

    # =========================================================================
    # TRAINING HYPERPARAMETERS
    # =========================================================================

    LEARNING_RATE: float = 0.0001

    # Discount factor for future rewards
    GAMMA: float = 0.99

    # Experiences sampled per training step
    BATCH_SIZE: int = 32

    # Replay buffer capacity (~250 games worth)
    MEMORY_SIZE: int = 50_000

    # Minimum experiences before training starts (~5 games)
    MEMORY_MIN: int = 1000

    # Copy online weights into the target network every N training steps
    TARGET_UPDATE: int = 1000

    # Gradient clipping (0 disables)
    GRAD_CLIP: float = 0.0

    # =========================================================================
    # EXPLORATION SETTINGS (Epsilon-Greedy)
    # =========================================================================

    # Starting exploration rate (1.0 = 100% random)
    EPSILON_START: float = 1.0

    # Minimum exploration rate (never fully deterministic)
    EPSILON_END: float = 0.01

    # Multiplicative decay applied after every training step
    EPSILON_DECAY: float = 0.995

    # =========================================================================
    # REWARD SHAPING
    # =========================================================================

    # Options: 'default', 'aggressive', 'defensive', 'tempo'
    REWARD_PRESET: str = 'default'

    # =========================================================================
    # TRAINING CONTROL
    # =========================================================================

    # Episodes for a single-matchup run
    MAX_EPISODES: int = 1000

    # Turn ceiling; a game still running after this is a draw
    MAX_TURNS_PER_GAME: int = 50

    # Train every N learner decisions
    TRAIN_EVERY: int = 1

    # Consecutive decisions without the acting side changing before a
    # game is force-ended as a learner loss
    MAX_SAME_SIDE_STREAK: int = 10

    # Opponent policy: 'self' (same agent, flipped side) or 'random'
    OPPONENT_TYPE: str = 'self'

    # Deck archetypes used by the multi-matchup scheduler
    DECK_TYPES: List[str] = field(default_factory=lambda: ['fire', 'earth'])
    EPISODES_PER_MATCHUP: int = 5000

    # Episodes of each matchup played per interleaved round
    MATCHUP_BATCH_SIZE: int = 50

    # Save agent every N rounds of the multi-matchup scheduler
    SAVE_EVERY_ROUNDS: int = 5

    # Save agent every N episodes in a single-matchup run
    SAVE_EVERY: int = 100

    # Log rolling stats every N episodes
    LOG_EVERY: int = 10

    # Window for rolling statistics
    STATS_WINDOW: int = 100

    # =========================================================================
    # SYSTEM SETTINGS
    # =========================================================================

    # Force CPU device (small MLP, transfer overhead dominates on GPU)
    FORCE_CPU: bool = False

    @property
    def DEVICE(self) -> torch.device:
        """Auto-detect CUDA/MPS/CPU, or force CPU if configured."""
        if self.FORCE_CPU:
            return torch.device('cpu')
        if torch.cuda.is_available():
            return torch.device('cuda')
        elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
            return torch.device('mps')
        return torch.device('cpu')

    # Paths
    MODEL_DIR: str = 'models'
    LOG_DIR: str = 'logs'

    # Checkpoint name shared by the weights, replay slice and agent state
    MODEL_NAME: str = 'five-realms-dqn-agent'

    # Most recent transitions written alongside a checkpoint
    REPLAY_SAVE_SIZE: int = 5000

    # Log level name: 'DEBUG', 'INFO', 'WARNING', 'ERROR'
    LOG_LEVEL: str = 'INFO'

    # Random seed for reproducibility (None for random)
    SEED: Optional[int] = None

    def model_path(self, filename: str) -> str:
        """Resolve a filename inside MODEL_DIR."""
        return os.path.join(self.MODEL_DIR, filename)

    def __post_init__(self):
        """Validation and derived calculations."""
        assert self.LEARNING_RATE > 0, "Learning rate must be positive"
        assert 0 < self.GAMMA <= 1, "Gamma must be in (0, 1]"
        assert self.BATCH_SIZE > 0, "Batch size must be positive"
        assert self.EPSILON_START >= self.EPSILON_END, "Epsilon start must be >= end"
        assert 0 < self.EPSILON_DECAY <= 1, "Epsilon decay must be in (0, 1]"
        assert self.MEMORY_SIZE > 0, "Memory size must be positive"
        assert self.TARGET_UPDATE > 0, "Target update interval must be positive"
        assert self.MAX_TURNS_PER_GAME > 0, "Turn ceiling must be positive"
        assert self.TRAIN_EVERY > 0, "TRAIN_EVERY must be positive"
        assert self.OPPONENT_TYPE in ('self', 'random'), "Opponent must be 'self' or 'random'"
        # The 68-slot action layout and 121-feature encoding are built on these
        assert self.MAX_HAND_SIZE == 10, "MAX_HAND_SIZE is fixed at 10 by the action layout"
        assert self.MAX_BOARD_SIZE == 7, "MAX_BOARD_SIZE is fixed at 7 by the action layout"

