"""
Game Module
===========

The card battle the AI learns to play.

Classes:
    GameState, PlayerState, Card, Minion - State model
    Action, ActionType - Structured moves
    Simulation - Abstract base class for rules engines
    CardBattle - Reference rules engine

Simulation Registry:
    Use get_simulation(name) to get a rules engine class by name
    Use list_simulations() to get all available engines
    Use get_simulation_info(name) to get metadata about an engine
"""

from typing import Any, Dict, List, Optional, Type

from .actions import Action, ActionType
from .state import (
    Ability, Card, CardType, GameState, Minion, PlayerState, Side,
    CHARGE, TAUNT, can_attack, has_taunt,
)
from .simulation import Simulation
from .card_battle import CardBattle
from .cards import build_deck, list_archetypes


# =============================================================================
# SIMULATION REGISTRY
# =============================================================================
# Maps engine names to their classes and metadata.
# To add a new engine:
#   1. Create the class inheriting from Simulation
#   2. Add an entry to SIMULATION_REGISTRY below
#   3. The engine will automatically be selectable from the CLI

SIMULATION_REGISTRY: Dict[str, Dict[str, Any]] = {
    'card_battle': {
        'class': CardBattle,
        'name': 'Card Battle',
        'description': 'Minions, spells, taunt and charge across four elemental decks',
    },
}


def get_simulation(name: str) -> Optional[Type[Simulation]]:
    """
    Get a simulation class by name.

    Args:
        name: Engine identifier (e.g., 'card_battle')

    Returns:
        The simulation class, or None if not found

    Example:
        >>> SimClass = get_simulation('card_battle')
        >>> simulation = SimClass(config)
    """
    entry = SIMULATION_REGISTRY.get(name.lower())
    if entry:
        return entry['class']
    return None


def list_simulations() -> List[str]:
    """Get a list of all available simulation names."""
    return list(SIMULATION_REGISTRY.keys())


def get_simulation_info(name: str) -> Optional[Dict[str, Any]]:
    """
    Get metadata about a simulation.

    Returns:
        Dictionary with name and description, or None if not found
    """
    entry = SIMULATION_REGISTRY.get(name.lower())
    if entry:
        return {k: v for k, v in entry.items() if k != 'class'}
    return None


__all__ = [
    # State model
    'Ability',
    'Card',
    'CardType',
    'GameState',
    'Minion',
    'PlayerState',
    'Side',
    'CHARGE',
    'TAUNT',
    'can_attack',
    'has_taunt',
    # Actions
    'Action',
    'ActionType',
    # Engines
    'Simulation',
    'CardBattle',
    'build_deck',
    'list_archetypes',
    # Registry functions
    'SIMULATION_REGISTRY',
    'get_simulation',
    'list_simulations',
    'get_simulation_info',
]
