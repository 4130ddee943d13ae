"""
AI Module
=========

Deep Reinforcement Learning components for card battles.

Classes:
    QNetwork             - Q-value MLP
    FunctionApproximator - Contract the agent trains against
    DQNModel             - Online + target QNetwork pair
    Agent                - DQN agent with epsilon-greedy exploration
    ReplayBuffer         - Experience replay memory
    Trainer              - Self-play training loop orchestration
"""

from .network import QNetwork, FunctionApproximator, DQNModel
from .agent import Agent, TrainingStats, PersistenceError
from .replay_buffer import ReplayBuffer, EmptyReplayBuffer
from .rewards import RewardConfig, calculate_reward, get_reward_config, REWARD_PRESETS
from .trainer import Trainer, Matchup, EpisodeResult, TrainingProgress

__all__ = [
    'QNetwork', 'FunctionApproximator', 'DQNModel',
    'Agent', 'TrainingStats', 'PersistenceError',
    'ReplayBuffer', 'EmptyReplayBuffer',
    'RewardConfig', 'calculate_reward', 'get_reward_config', 'REWARD_PRESETS',
    'Trainer', 'Matchup', 'EpisodeResult', 'TrainingProgress',
]
