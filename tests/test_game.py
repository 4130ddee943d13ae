"""
Tests for the card battle rules engine and card library.

These tests verify:
    - Deck building
    - Game setup
    - Each action type and its validation
    - Turn flow (mana, draws, fatigue)
    - Card abilities
    - Game over detection
    - Simulation registry
"""

import copy
import random

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config
from realms_ai.game import (
    CardBattle, Simulation, get_simulation, get_simulation_info, list_simulations,
)
from realms_ai.game.actions import Action
from realms_ai.game.cards import TOKEN, build_deck, battlecry, deathrattle, list_archetypes
from realms_ai.game.state import CHARGE, Minion, Side
from tests.builders import make_card, make_minion, make_player, make_state


@pytest.fixture
def config():
    """Create a test configuration."""
    return Config()


@pytest.fixture
def game(config):
    """Create a seeded rules engine."""
    simulation = CardBattle(config)
    simulation.seed(7)
    return simulation


def minion_with(*abilities, attack=1, health=1):
    card = make_card(attack=attack, health=health, abilities=abilities)
    return Minion(card=card, attack=attack, health=health, current_health=health,
                  can_attack=True, instance_id=50)


class TestCards:
    """Test the card library."""

    def test_archetypes(self):
        assert list_archetypes() == ['fire', 'earth', 'water', 'air']

    @pytest.mark.parametrize("archetype", ['fire', 'earth', 'water', 'air'])
    def test_deck_has_thirty_cards(self, archetype):
        deck = build_deck(archetype)
        assert len(deck) == 30
        ids = [card.id for card in deck]
        assert all(ids.count(card_id) == 2 for card_id in set(ids))

    def test_deck_lookup_is_case_insensitive(self):
        assert len(build_deck('FIRE')) == 30

    def test_unknown_archetype_raises(self):
        with pytest.raises(KeyError):
            build_deck('shadow')

    def test_seeded_shuffle_is_reproducible(self):
        a = build_deck('water', random.Random(3))
        b = build_deck('water', random.Random(3))
        assert [c.id for c in a] == [c.id for c in b]

    def test_every_card_is_well_formed(self):
        for archetype in list_archetypes():
            for card in build_deck(archetype):
                assert card.mana_cost >= 0
                if card.is_minion:
                    assert card.health > 0
                else:
                    assert card.abilities


class TestSetup:
    """Test game initialization."""

    def test_is_simulation(self, game):
        assert isinstance(game, Simulation)
        assert game.deck_types() == list_archetypes()

    def test_initial_state(self, game, config):
        state = game.initial_state('fire', 'earth')
        for side in (Side.FIRST, Side.SECOND):
            player = state.own(side)
            assert player.health == config.STARTING_HEALTH
            assert player.mana == player.max_mana == config.STARTING_MANA
            assert len(player.hand) == config.INITIAL_HAND_SIZE
            assert len(player.deck) == 30 - config.INITIAL_HAND_SIZE
            assert player.board == []
        assert state.current_side is Side.FIRST
        assert state.turn_number == 1
        assert game.is_terminal(state) == (False, None)

    def test_decks_follow_sides(self, game):
        state = game.initial_state('fire', 'earth')
        assert all(c.element in ('fire', 'neutral') for c in state.first.hand + state.first.deck)
        assert all(c.element in ('earth', 'neutral') for c in state.second.hand + state.second.deck)

    def test_seed_reproduces_games(self, config):
        a, b = CardBattle(config), CardBattle(config)
        a.seed(11)
        b.seed(11)
        assert a.initial_state('air', 'water') == b.initial_state('air', 'water')


class TestApply:
    """Test action resolution and validation."""

    def test_apply_does_not_mutate_input(self, game):
        state = make_state(first=make_player(mana=3, hand=[make_card(cost=2)]))
        before = copy.deepcopy(state)
        game.apply(state, Action.play_card(0), Side.FIRST)
        assert state == before

    def test_play_minion(self, game):
        state = make_state(first=make_player(mana=3, hand=[make_card(cost=2, attack=3, health=4)]))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        player = new_state.first
        assert player.mana == 1
        assert player.hand == []
        assert len(player.board) == 1
        assert player.board[0].attack == 3
        assert player.board[0].current_health == 4
        assert not player.board[0].can_attack

    def test_charge_minion_can_attack_at_once(self, game):
        card = make_card(cost=1, keywords=[CHARGE])
        state = make_state(first=make_player(mana=1, hand=[card]))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert new_state.first.board[0].can_attack

    def test_instance_ids_are_unique(self, game):
        state = make_state(first=make_player(mana=2, hand=[make_card(), make_card()]))
        state = game.apply(state, Action.play_card(0), Side.FIRST)
        state = game.apply(state, Action.play_card(0), Side.FIRST)
        ids = [m.instance_id for m in state.first.board]
        assert len(set(ids)) == 2

    def test_attack_minion(self, game):
        state = make_state(
            first=make_player(board=[make_minion(attack=3, health=5)]),
            second=make_player(board=[make_minion(attack=2, health=3, instance_id=1)]),
        )
        new_state = game.apply(state, Action.attack_minion(0, 0), Side.FIRST)
        attacker = new_state.first.board[0]
        assert attacker.current_health == 3
        assert not attacker.can_attack
        assert new_state.second.board == []

    def test_attack_face(self, game):
        state = make_state(first=make_player(board=[make_minion(attack=4)]))
        new_state = game.apply(state, Action.attack_face(0), Side.FIRST)
        assert new_state.second.health == 26
        assert not new_state.first.board[0].can_attack

    def test_wrong_side_raises(self, game):
        state = make_state()
        with pytest.raises(ValueError):
            game.apply(state, Action.end_turn(), Side.SECOND)

    def test_illegal_action_raises(self, game):
        state = make_state(first=make_player(mana=1, hand=[make_card(cost=5)]))
        with pytest.raises(ValueError):
            game.apply(state, Action.play_card(0), Side.FIRST)

    def test_taunt_enforced(self, game):
        state = make_state(
            first=make_player(board=[make_minion()]),
            second=make_player(board=[make_minion(taunt=True, instance_id=1)]),
        )
        with pytest.raises(ValueError):
            game.apply(state, Action.attack_face(0), Side.FIRST)

    def test_apply_after_game_over_raises(self, game):
        state = make_state()
        state.game_over = True
        with pytest.raises(ValueError):
            game.apply(state, Action.end_turn(), Side.FIRST)


class TestTurnFlow:
    """Test end of turn bookkeeping."""

    def test_end_turn(self, game):
        deck = [make_card(name='Top Card')]
        state = make_state(
            first=make_player(mana=0, max_mana=1),
            second=make_player(mana=0, max_mana=1, deck=deck,
                               board=[make_minion(can_attack=False)]),
        )
        new_state = game.apply(state, Action.end_turn(), Side.FIRST)
        assert new_state.current_side is Side.SECOND
        assert new_state.turn_number == 2
        assert new_state.second.max_mana == 2
        assert new_state.second.mana == 2
        assert new_state.second.board[0].can_attack
        assert [c.name for c in new_state.second.hand] == ['Top Card']
        assert new_state.second.deck == []

    def test_mana_caps_at_max(self, game, config):
        state = make_state(second=make_player(max_mana=config.MAX_MANA, deck=[make_card()]))
        new_state = game.apply(state, Action.end_turn(), Side.FIRST)
        assert new_state.second.max_mana == config.MAX_MANA

    def test_fatigue_grows(self, game):
        state = make_state()
        state = game.apply(state, Action.end_turn(), Side.FIRST)
        assert state.second.health == 29
        state = game.apply(state, Action.end_turn(), Side.SECOND)
        state = game.apply(state, Action.end_turn(), Side.FIRST)
        assert state.second.health == 27

    def test_full_hand_burns_card(self, game, config):
        hand = [make_card() for _ in range(config.MAX_HAND_SIZE)]
        state = make_state(second=make_player(hand=hand, deck=[make_card(name='Burned')]))
        new_state = game.apply(state, Action.end_turn(), Side.FIRST)
        assert len(new_state.second.hand) == config.MAX_HAND_SIZE
        assert new_state.second.deck == []


class TestAbilities:
    """Test battlecries and deathrattles."""

    def test_spell_damages_enemy_hero(self, game):
        spell = make_card(cost=2, minion=False, abilities=[battlecry('damage', 3, 'enemy_hero')])
        state = make_state(first=make_player(mana=2, hand=[spell]))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert new_state.second.health == 27
        assert new_state.first.board == []

    def test_heal_is_capped(self, game, config):
        spell = make_card(cost=1, minion=False, abilities=[battlecry('heal', 6, 'own_hero')])
        state = make_state(first=make_player(health=27, mana=1, hand=[spell]))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert new_state.first.health == config.STARTING_HEALTH

    def test_area_damage_kills_minions(self, game):
        spell = make_card(cost=1, minion=False, abilities=[battlecry('damage', 2, 'enemy_minions')])
        board = [make_minion(health=2, instance_id=1), make_minion(health=5, instance_id=2)]
        state = make_state(first=make_player(mana=1, hand=[spell]), second=make_player(board=board))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert len(new_state.second.board) == 1
        assert new_state.second.board[0].current_health == 3

    def test_all_minions_spares_source(self, game):
        card = make_card(cost=1, health=1, abilities=[battlecry('damage', 1, 'all_minions')])
        state = make_state(
            first=make_player(mana=1, hand=[card], board=[make_minion(health=1, instance_id=1)]),
            second=make_player(board=[make_minion(health=1, instance_id=2)]),
        )
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert len(new_state.first.board) == 1
        assert new_state.first.board[0].card.abilities
        assert new_state.second.board == []

    def test_random_enemy_hits_hero_when_board_empty(self, game):
        spell = make_card(cost=1, minion=False, abilities=[battlecry('damage', 2, 'random_enemy')])
        state = make_state(first=make_player(mana=1, hand=[spell]))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert new_state.second.health == 28

    def test_summon_tokens(self, game):
        card = make_card(cost=1, abilities=[battlecry('summon', 2, 'self')])
        state = make_state(first=make_player(mana=1, hand=[card]))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert [m.card for m in new_state.first.board[1:]] == [TOKEN, TOKEN]

    def test_buff_self(self, game):
        card = make_card(cost=1, attack=2, abilities=[battlecry('buff', 3, 'self')])
        state = make_state(first=make_player(mana=1, hand=[card]))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert new_state.first.board[0].attack == 5

    def test_draw(self, game):
        spell = make_card(cost=1, minion=False, abilities=[battlecry('draw', 2, 'self')])
        state = make_state(first=make_player(mana=1, hand=[spell], deck=[make_card(), make_card()]))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert len(new_state.first.hand) == 2

    def test_deathrattle_fires_for_owner(self, game):
        dying = minion_with(deathrattle('damage', 2, 'enemy_hero'), attack=1, health=1)
        state = make_state(
            first=make_player(board=[dying]),
            second=make_player(board=[make_minion(attack=3, health=5)]),
        )
        new_state = game.apply(state, Action.attack_minion(0, 0), Side.FIRST)
        assert new_state.first.board == []
        assert new_state.second.health == 28


class TestGameOver:
    """Test winner detection."""

    def test_lethal_attack_wins(self, game):
        state = make_state(first=make_player(board=[make_minion(attack=5)]), second=make_player(health=5))
        new_state = game.apply(state, Action.attack_face(0), Side.FIRST)
        assert game.is_terminal(new_state) == (True, Side.FIRST)

    def test_fatigue_can_kill(self, game):
        state = make_state(second=make_player(health=1))
        new_state = game.apply(state, Action.end_turn(), Side.FIRST)
        assert game.is_terminal(new_state) == (True, Side.FIRST)

    def test_double_death_is_draw(self, game):
        spell = make_card(cost=0, minion=False, abilities=[
            battlecry('damage', 5, 'enemy_hero'), battlecry('damage', 5, 'own_hero'),
        ])
        state = make_state(first=make_player(health=5, hand=[spell]), second=make_player(health=5))
        new_state = game.apply(state, Action.play_card(0), Side.FIRST)
        assert game.is_terminal(new_state) == (True, None)


class TestSimulationRegistry:
    """Test the engine registry."""

    def test_card_battle_registered(self):
        assert 'card_battle' in list_simulations()
        assert get_simulation('card_battle') is CardBattle
        assert get_simulation('CARD_BATTLE') is CardBattle

    def test_unknown_simulation(self):
        assert get_simulation('chess') is None
        assert get_simulation_info('chess') is None

    def test_info_has_no_class(self):
        info = get_simulation_info('card_battle')
        assert 'class' not in info
        assert info['name'] == 'Card Battle'
