"""
Base Simulation Interface
=========================

Abstract base class that defines the interface a card-battle rules engine
must implement. The learning code only ever talks to this interface, so the
rules engine can be swapped without touching the agent or trainer.

To add a new rules engine:
1. Create a new file in realms_ai/game/
2. Inherit from Simulation
3. Implement all abstract methods
4. Register in __init__.py
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from .actions import Action
from .state import GameState, Side


class Simulation(ABC):
    """
    Abstract base class for card battle simulations.

    Methods:
        initial_state(deck_a, deck_b) -> GameState
            Fresh game; deck_a belongs to Side.FIRST, deck_b to Side.SECOND

        apply(state, action, side) -> GameState
            Resolve one legal action for `side`, returning a NEW state.
            The input state must not be mutated. Internal randomness
            (random targets, draws) is allowed.

        is_terminal(state) -> Tuple[bool, Optional[Side]]
            (game over, winner). Winner is None for a draw.

        deck_types() -> List[str]
            Deck archetypes accepted by initial_state
    """

    @abstractmethod
    def initial_state(self, deck_a: str, deck_b: str) -> GameState:
        """
        Build the opening state of a game.

        Args:
            deck_a: Archetype for Side.FIRST
            deck_b: Archetype for Side.SECOND

        Returns:
            GameState with opening hands drawn
        """
        pass

    @abstractmethod
    def apply(self, state: GameState, action: Action, side: Side) -> GameState:
        """
        Execute one action.

        Args:
            state: Current state (left untouched)
            action: A legal action for `side`
            side: The acting side

        Returns:
            The resulting state
        """
        pass

    @abstractmethod
    def is_terminal(self, state: GameState) -> Tuple[bool, Optional[Side]]:
        """Return (game over, winning side or None)."""
        pass

    @abstractmethod
    def deck_types(self) -> List[str]:
        """Return the deck archetypes this simulation can build."""
        pass

    def seed(self, seed: int) -> None:
        """Set random seed for reproducibility. Override if game has randomness."""
        pass
