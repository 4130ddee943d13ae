"""
Card Library
============

Card definitions and the archetype decks built from them.

Each archetype deck is two copies of its ten element cards plus two copies of
the five neutral cards (30 cards total).
"""

import random
from typing import Dict, List, Optional

from .state import Ability, Card, CardType, CHARGE, TAUNT


def _minion(id: str, name: str, element: str, cost: int, attack: int, health: int,
            keywords=(), abilities=()) -> Card:
    return Card(id, name, element, CardType.MINION, cost, attack, health,
                tuple(keywords), tuple(abilities))


def _spell(id: str, name: str, element: str, cost: int, *abilities: Ability) -> Card:
    return Card(id, name, element, CardType.SPELL, cost, abilities=abilities)


def battlecry(effect: str, value: int, target: str) -> Ability:
    return Ability('battlecry', effect, value, target)


def deathrattle(effect: str, value: int, target: str) -> Ability:
    return Ability('deathrattle', effect, value, target)


# Summoned by 'summon' abilities
TOKEN = _minion('tok_warrior', 'Connacht Warrior', 'neutral', 2, 2, 2)


FIRE_CARDS = [
    _minion('f_1', 'Ember Imp', 'fire', 1, 2, 1),
    _minion('f_2', 'Flame Dancer', 'fire', 2, 3, 2),
    _minion('f_3', 'Cinder Hound', 'fire', 3, 3, 2, keywords=[CHARGE]),
    _spell('f_4', 'Firebolt', 'fire', 2, battlecry('damage', 3, 'enemy_hero')),
    _spell('f_5', 'Fireball', 'fire', 4, battlecry('damage', 5, 'random_enemy')),
    _spell('f_6', 'Blazing Nova', 'fire', 4, battlecry('damage', 2, 'enemy_minions')),
    _minion('f_7', 'Forge Guardian', 'fire', 4, 4, 4),
    _minion('f_8', 'Pyre Drake', 'fire', 5, 5, 3, keywords=[CHARGE]),
    _minion('f_9', 'Scathach', 'fire', 6, 5, 4,
            abilities=[battlecry('buff', 3, 'random_friendly')]),
    _minion('f_10', 'Queen Maedhbh', 'fire', 7, 6, 6,
            abilities=[battlecry('summon', 2, 'self'), battlecry('damage', 1, 'enemy_minions')]),
]

EARTH_CARDS = [
    _minion('e_1', 'Stone Sentinel', 'earth', 2, 1, 4, keywords=[TAUNT]),
    _spell('e_2', 'Harvest Festival', 'earth', 2, battlecry('draw', 2, 'self')),
    _spell('e_3', "Dagda's Blessing", 'earth', 2, battlecry('heal', 6, 'own_hero')),
    _minion('e_4', 'Moss Golem', 'earth', 3, 2, 5, keywords=[TAUNT]),
    _minion('e_5', 'Banshee', 'earth', 3, 2, 3,
            abilities=[deathrattle('damage', 2, 'enemy_hero')]),
    _minion('e_6', 'Boulder Ram', 'earth', 4, 4, 5),
    _minion('e_7', 'Earthshaker', 'earth', 5, 3, 4,
            abilities=[battlecry('damage', 1, 'all_minions')]),
    _minion('e_8', 'Deep Root Warden', 'earth', 5, 3, 7, keywords=[TAUNT]),
    _minion('e_9', 'Cairn Troll', 'earth', 6, 6, 7),
    _minion('e_10', 'Mountain Giant', 'earth', 8, 8, 8, keywords=[TAUNT]),
]

WATER_CARDS = [
    _minion('w_1', 'Tide Caller', 'water', 1, 1, 2,
            abilities=[battlecry('draw', 1, 'self')]),
    _minion('w_2', 'River Maiden', 'water', 2, 2, 3),
    _minion('w_3', 'Merrow Raider', 'water', 2, 2, 1, keywords=[CHARGE]),
    _spell('w_4', 'Salmon of Knowledge', 'water', 3, battlecry('draw', 3, 'self')),
    _minion('w_5', 'Selkie', 'water', 3, 3, 3,
            abilities=[battlecry('heal', 3, 'own_hero')]),
    _spell('w_6', 'Tidal Surge', 'water', 4, battlecry('damage', 3, 'random_enemy')),
    _minion('w_7', 'Kelpie', 'water', 4, 4, 4, keywords=[TAUNT]),
    _minion('w_8', 'Fionn mac Cumhaill', 'water', 6, 5, 6,
            abilities=[battlecry('draw', 1, 'self')]),
    _minion('w_9', 'St. Brigid', 'water', 6, 4, 6,
            abilities=[battlecry('heal', 6, 'own_hero')]),
    _minion('w_10', 'Leviathan', 'water', 9, 9, 9),
]

AIR_CARDS = [
    _minion('a_1', 'Gale Sprite', 'air', 1, 1, 1, keywords=[CHARGE]),
    _spell('a_2', 'Lightning Lash', 'air', 1, battlecry('damage', 2, 'random_enemy')),
    _minion('a_3', 'Sky Falcon', 'air', 2, 3, 1, keywords=[CHARGE]),
    _minion('a_4', 'Wind Dancer', 'air', 3, 3, 3),
    _minion('a_5', 'Storm Crow', 'air', 3, 2, 2,
            abilities=[battlecry('damage', 2, 'random_enemy')]),
    _minion('a_6', 'Zephyr Monk', 'air', 4, 3, 5,
            abilities=[battlecry('heal', 4, 'own_hero')]),
    _minion('a_7', 'Sylph Matriarch', 'air', 5, 4, 4,
            abilities=[battlecry('buff', 2, 'random_friendly')]),
    _spell('a_8', 'Tempest', 'air', 5, battlecry('damage', 3, 'enemy_minions')),
    _minion('a_9', 'Thunderbird', 'air', 6, 6, 4, keywords=[CHARGE]),
    _minion('a_10', 'Cloud Giant', 'air', 7, 7, 7),
]

NEUTRAL_CARDS = [
    _minion('n_1', 'Wandering Bard', 'neutral', 1, 1, 2),
    _minion('n_2', 'Village Guard', 'neutral', 2, 2, 3, keywords=[TAUNT]),
    _minion('n_3', 'Ogham Scholar', 'neutral', 2, 1, 3,
            abilities=[battlecry('draw', 1, 'self')]),
    _minion('n_4', 'Highland Archer', 'neutral', 3, 3, 2,
            abilities=[battlecry('damage', 1, 'random_enemy')]),
    _minion('n_5', 'Clan Champion', 'neutral', 4, 4, 5),
]


# =============================================================================
# DECK REGISTRY
# =============================================================================

DECK_ARCHETYPES: Dict[str, List[Card]] = {
    'fire': FIRE_CARDS,
    'earth': EARTH_CARDS,
    'water': WATER_CARDS,
    'air': AIR_CARDS,
}


def list_archetypes() -> List[str]:
    """Get all deck archetype names."""
    return list(DECK_ARCHETYPES.keys())


def build_deck(archetype: str, rng: Optional[random.Random] = None) -> List[Card]:
    """
    Build a shuffled 30-card deck for an archetype.

    Args:
        archetype: One of list_archetypes()
        rng: Random source for shuffling (module random if None)

    Raises:
        KeyError: If the archetype is unknown
    """
    key = archetype.lower()
    if key not in DECK_ARCHETYPES:
        raise KeyError(f"Unknown deck archetype '{archetype}'. Available: {', '.join(list_archetypes())}")

    deck = [card for card in DECK_ARCHETYPES[key] + NEUTRAL_CARDS for _ in range(2)]
    (rng or random).shuffle(deck)
    return deck
