"""
State Encoder
=============

Projects a GameState into the fixed 121-feature vector the Q-network reads.

Feature layout (always seen from one side's perspective):
    [0:9]     Globals: own health, own mana, own max mana, enemy health,
              enemy mana, enemy max mana, turn number, is-my-turn flag,
              enemy hand size
    [9:49]    10 hand slots x (cost, is-minion, attack, health)
    [49:84]   7 own board slots x (cost, attack, current health, can-attack, taunt)
    [84:119]  7 enemy board slots x (same)
    [119:121] Own deck size, enemy deck size

Empty slots are zero. Every value is scaled by a fixed constant so typical
values land in [0, 1].
"""

from typing import List

import numpy as np

from ..game.state import GameState, Minion, Side, can_attack, has_taunt
from .action_space import MAX_BOARD_SIZE, MAX_HAND_SIZE


# Normalization constants
MAX_HEALTH = 30.0
MAX_MANA = 10.0
MAX_TURNS = 30.0
MAX_ATTACK = 10.0
MAX_DECK = 30.0

GLOBAL_FEATURES = 9
HAND_FEATURES = 4
MINION_FEATURES = 5
DECK_FEATURES = 2

STATE_SIZE = (
    GLOBAL_FEATURES
    + MAX_HAND_SIZE * HAND_FEATURES
    + 2 * MAX_BOARD_SIZE * MINION_FEATURES
    + DECK_FEATURES
)  # 121


def encode_state(state: GameState, side: Side) -> np.ndarray:
    """
    Encode `state` from `side`'s perspective.

    Pure and deterministic: equal inputs give bitwise equal outputs.

    Returns:
        float32 array of shape (121,)
    """
    own = state.own(side)
    opponent = state.opponent(side)
    features = np.zeros(STATE_SIZE, dtype=np.float32)

    features[0] = own.health / MAX_HEALTH
    features[1] = own.mana / MAX_MANA
    features[2] = own.max_mana / MAX_MANA
    features[3] = opponent.health / MAX_HEALTH
    features[4] = opponent.mana / MAX_MANA
    features[5] = opponent.max_mana / MAX_MANA
    features[6] = state.turn_number / MAX_TURNS
    features[7] = 1.0 if state.is_turn_of(side) else 0.0
    features[8] = len(opponent.hand) / MAX_HAND_SIZE

    offset = GLOBAL_FEATURES
    for card in own.hand[:MAX_HAND_SIZE]:
        features[offset] = card.mana_cost / MAX_MANA
        features[offset + 1] = 1.0 if card.is_minion else 0.0
        features[offset + 2] = card.attack / MAX_ATTACK
        features[offset + 3] = card.health / MAX_HEALTH
        offset += HAND_FEATURES

    offset = GLOBAL_FEATURES + MAX_HAND_SIZE * HAND_FEATURES
    _encode_board(features, offset, own.board)
    offset += MAX_BOARD_SIZE * MINION_FEATURES
    _encode_board(features, offset, opponent.board)
    offset += MAX_BOARD_SIZE * MINION_FEATURES

    features[offset] = len(own.deck) / MAX_DECK
    features[offset + 1] = len(opponent.deck) / MAX_DECK
    return features


def _encode_board(features: np.ndarray, offset: int, board: List[Minion]) -> None:
    for minion in board[:MAX_BOARD_SIZE]:
        features[offset] = minion.mana_cost / MAX_MANA
        features[offset + 1] = minion.attack / MAX_ATTACK
        features[offset + 2] = minion.current_health / MAX_HEALTH
        features[offset + 3] = 1.0 if can_attack(minion) else 0.0
        features[offset + 4] = 1.0 if has_taunt(minion) else 0.0
        offset += MINION_FEATURES


def get_state_description() -> List[str]:
    """Names for all 121 features, in vector order."""
    names = [
        'own_health', 'own_mana', 'own_max_mana',
        'enemy_health', 'enemy_mana', 'enemy_max_mana',
        'turn_number', 'is_my_turn', 'enemy_hand_size',
    ]
    for i in range(MAX_HAND_SIZE):
        names += [f'hand_{i}_cost', f'hand_{i}_is_minion', f'hand_{i}_attack', f'hand_{i}_health']
    for prefix in ('own', 'enemy'):
        for i in range(MAX_BOARD_SIZE):
            names += [
                f'{prefix}_minion_{i}_cost',
                f'{prefix}_minion_{i}_attack',
                f'{prefix}_minion_{i}_health',
                f'{prefix}_minion_{i}_can_attack',
                f'{prefix}_minion_{i}_taunt',
            ]
    names += ['own_deck_size', 'enemy_deck_size']
    return names
