"""
Action Space
============

Flat 68-slot encoding of card battle moves for the Q-network.

Layout:
    0-9     Play the card in hand slot i
    10-59   Own minion a attacks enemy minion t   (index = 10 + a*7 + t,
            59 decodes to attacker 7 and is never legal)
    60-66   Own minion a attacks the enemy hero   (index = 60 + a)
    67      End turn

The network always scores all 68 slots. Which of them are legal in a given
state is answered by is_action_legal / get_legal_actions.
"""

from typing import List

import numpy as np

from ..game.actions import Action, ActionType
from ..game.state import GameState, Side, can_attack, has_taunt


# =============================================================================
# LAYOUT CONSTANTS
# =============================================================================

MAX_HAND_SIZE = 10
MAX_BOARD_SIZE = 7

PLAY_CARD_START = 0
ATTACK_MINION_START = PLAY_CARD_START + MAX_HAND_SIZE                   # 10
# Attack-minion block is 50 wide; its last slot (attacker 7) is never legal
ATTACK_FACE_START = 60
END_TURN_INDEX = ATTACK_FACE_START + MAX_BOARD_SIZE                     # 67
ACTION_SIZE = END_TURN_INDEX + 1                                        # 68


class InvalidActionIndex(ValueError):
    """Raised when decoding an index outside 0..67."""


class MissingActionField(ValueError):
    """Raised when encoding an action whose required index is None."""


def decode_action(index: int) -> Action:
    """
    Convert a flat index into a structured action.

    Raises:
        InvalidActionIndex: If index is not in [0, 67]
    """
    if not 0 <= index < ACTION_SIZE:
        raise InvalidActionIndex(f"Action index {index} outside [0, {ACTION_SIZE - 1}]")

    if index < ATTACK_MINION_START:
        return Action.play_card(index - PLAY_CARD_START)
    if index < ATTACK_FACE_START:
        offset = index - ATTACK_MINION_START
        return Action.attack_minion(offset // MAX_BOARD_SIZE, offset % MAX_BOARD_SIZE)
    if index < END_TURN_INDEX:
        return Action.attack_face(index - ATTACK_FACE_START)
    return Action.end_turn()


def encode_action(action: Action) -> int:
    """
    Convert a structured action into its flat index.

    Raises:
        MissingActionField: If a field required by the action type is None
    """
    if action.type is ActionType.PLAY_CARD:
        _require(action, 'hand_index')
        return PLAY_CARD_START + action.hand_index
    if action.type is ActionType.ATTACK_MINION:
        _require(action, 'attacker_index')
        _require(action, 'target_index')
        return ATTACK_MINION_START + action.attacker_index * MAX_BOARD_SIZE + action.target_index
    if action.type is ActionType.ATTACK_FACE:
        _require(action, 'attacker_index')
        return ATTACK_FACE_START + action.attacker_index
    return END_TURN_INDEX


def _require(action: Action, name: str) -> None:
    if getattr(action, name) is None:
        raise MissingActionField(f"{action.type.value} action is missing {name}")


def is_action_legal(action: Action, state: GameState, side: Side) -> bool:
    """
    Whether `side` may take `action` in `state`.

    Malformed actions (None fields, out of range slots) are illegal,
    never an error.
    """
    own = state.own(side)
    opponent = state.opponent(side)

    if action.type is ActionType.END_TURN:
        return True

    if action.type is ActionType.PLAY_CARD:
        i = action.hand_index
        if i is None or not 0 <= i < len(own.hand):
            return False
        card = own.hand[i]
        if card.mana_cost > own.mana:
            return False
        return not card.is_minion or len(own.board) < MAX_BOARD_SIZE

    a = action.attacker_index
    if a is None or not 0 <= a < len(own.board):
        return False
    if not can_attack(own.board[a]):
        return False

    taunting = any(has_taunt(m) for m in opponent.board)

    if action.type is ActionType.ATTACK_FACE:
        return not taunting

    t = action.target_index
    if t is None or not 0 <= t < len(opponent.board):
        return False
    return not taunting or has_taunt(opponent.board[t])


def get_legal_actions(state: GameState, side: Side) -> List[int]:
    """All legal action indices for `side`, ascending. Always contains END_TURN_INDEX."""
    return [i for i in range(ACTION_SIZE) if is_action_legal(decode_action(i), state, side)]


def get_legal_action_mask(state: GameState, side: Side) -> np.ndarray:
    """68-length float32 vector with 1.0 at legal indices."""
    mask = np.zeros(ACTION_SIZE, dtype=np.float32)
    mask[get_legal_actions(state, side)] = 1.0
    return mask


def get_action_description(index: int) -> str:
    """Human-readable label for an action index."""
    action = decode_action(index)
    if action.type is ActionType.PLAY_CARD:
        return f"Play card {action.hand_index}"
    if action.type is ActionType.ATTACK_MINION:
        return f"Minion {action.attacker_index} attacks minion {action.target_index}"
    if action.type is ActionType.ATTACK_FACE:
        return f"Minion {action.attacker_index} attacks hero"
    return "End turn"
