"""
Reward Shaping
==============

Turns a (state, action, next_state) transition into a scalar reward.

Reward categories:
    1. Game over:       win +10, loss -10 (replaces every other term)
    2. Health:          +0.3 per own health point gained,
                        +0.3 per enemy health point removed
    3. Board control:   +0.5 per enemy minion removed,
                        -0.4 per own minion lost,
                        +0.2 per point of (attack + health) board advantage gained
    4. Card advantage:  +0.1 per card drawn
    5. Mana efficiency: +0.05 per mana spent,
                        -0.02 per mana left unspent when ending the turn

The presets at the bottom re-weight the same terms for different play styles.
"""

from dataclasses import dataclass, replace
from typing import Callable, Dict, List

from ..game.state import GameState, Minion, Side
from .action_space import END_TURN_INDEX


@dataclass
class RewardConfig:
    """Weights for each reward term."""

    # Game over
    win_reward: float = 10.0
    loss_reward: float = -10.0

    # Health
    health_change: float = 0.3        # Per point of own health gained/lost
    enemy_health_change: float = 0.3  # Per point of enemy health lost/gained

    # Board control
    minion_killed: float = 0.5
    minion_lost: float = -0.4         # Multiplies the (negative) own minion count change
    board_advantage: float = 0.2

    # Card advantage
    card_draw: float = 0.1

    # Mana efficiency
    mana_used: float = 0.05
    mana_wasted: float = -0.02


DEFAULT_REWARDS = RewardConfig()


def calculate_board_strength(board: List[Minion]) -> int:
    """Sum of attack + current health over a board."""
    return sum(m.attack + m.current_health for m in board)


def calculate_reward(
    prev_state: GameState,
    action: int,
    next_state: GameState,
    done: bool,
    config: RewardConfig = DEFAULT_REWARDS,
    side: Side = Side.FIRST
) -> float:
    """
    Reward for `side` taking `action` in prev_state and reaching next_state.

    Terminal transitions return exactly win_reward or loss_reward; a draw
    counts as a loss.
    """
    if done:
        return config.win_reward if next_state.winner is side else config.loss_reward

    prev_own, next_own = prev_state.own(side), next_state.own(side)
    prev_enemy, next_enemy = prev_state.opponent(side), next_state.opponent(side)

    reward = 0.0

    # Health
    reward += (next_own.health - prev_own.health) * config.health_change
    reward -= (next_enemy.health - prev_enemy.health) * config.enemy_health_change

    # Minion counts
    enemy_minion_delta = len(next_enemy.board) - len(prev_enemy.board)
    own_minion_delta = len(next_own.board) - len(prev_own.board)
    if enemy_minion_delta < 0:
        reward += -enemy_minion_delta * config.minion_killed
    if own_minion_delta < 0:
        reward += own_minion_delta * config.minion_lost

    # Board advantage
    prev_advantage = calculate_board_strength(prev_own.board) - calculate_board_strength(prev_enemy.board)
    next_advantage = calculate_board_strength(next_own.board) - calculate_board_strength(next_enemy.board)
    reward += (next_advantage - prev_advantage) * config.board_advantage

    # Cards drawn
    hand_delta = len(next_own.hand) - len(prev_own.hand)
    if hand_delta > 0:
        reward += hand_delta * config.card_draw

    # Mana
    reward += (prev_own.mana - next_own.mana) * config.mana_used
    if action == END_TURN_INDEX:
        reward += prev_own.mana * config.mana_wasted

    return reward


# =============================================================================
# PRESETS
# =============================================================================

def create_aggressive_rewards() -> RewardConfig:
    """Face damage first, own health barely matters."""
    return replace(DEFAULT_REWARDS, enemy_health_change=0.6, health_change=0.1, board_advantage=0.2)


def create_defensive_rewards() -> RewardConfig:
    """Preserve health and minions, control the board."""
    return replace(DEFAULT_REWARDS, health_change=0.6, enemy_health_change=0.1,
                   board_advantage=0.4, minion_lost=-0.7)


def create_tempo_rewards() -> RewardConfig:
    """Spend mana on curve and fight for the board."""
    return replace(DEFAULT_REWARDS, board_advantage=0.5, mana_used=0.2,
                   mana_wasted=-0.05, minion_killed=0.7)


REWARD_PRESETS: Dict[str, Callable[[], RewardConfig]] = {
    'default': RewardConfig,
    'aggressive': create_aggressive_rewards,
    'defensive': create_defensive_rewards,
    'tempo': create_tempo_rewards,
}


def get_reward_config(name: str) -> RewardConfig:
    """
    Build the reward weights for a preset name.

    Raises:
        KeyError: If the preset is unknown
    """
    key = name.lower()
    if key not in REWARD_PRESETS:
        raise KeyError(f"Unknown reward preset '{name}'. Available: {', '.join(REWARD_PRESETS)}")
    return REWARD_PRESETS[key]()
