"""
Card Battle Rules
=================

A compact rules engine for Five Realms style card battles.

Rules:
- Each side starts with 30 health, 1 mana crystal and an opening hand of 4
- At the start of a turn the active side gains a mana crystal (max 10),
  refills its mana, readies its minions and draws a card
- Drawing from an empty deck deals increasing fatigue damage;
  drawing into a full hand burns the card
- Minions with 'charge' can attack the turn they are played
- Minions with 'taunt' must be dealt with before anything else can be attacked
- A side at 0 health loses; both sides at 0 health is a draw
"""

import copy
import random
from typing import List, Optional, Tuple

from config import Config

from .actions import Action, ActionType
from .cards import TOKEN, build_deck, list_archetypes
from .simulation import Simulation
from .state import (
    Ability, Card, GameState, Minion, PlayerState, Side,
    CHARGE, has_taunt,
)


class CardBattle(Simulation):
    """
    Reference rules engine.

    All randomness (deck shuffles, random targets) comes from one
    random.Random instance, so seed() makes whole games reproducible.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self._rng = random.Random()

    def seed(self, seed: int) -> None:
        """Set random seed for reproducibility."""
        self._rng.seed(seed)

    def deck_types(self) -> List[str]:
        return list_archetypes()

    # =========================================================================
    # SETUP
    # =========================================================================

    def initial_state(self, deck_a: str, deck_b: str) -> GameState:
        state = GameState(
            first=self._new_player(deck_a),
            second=self._new_player(deck_b),
        )
        for side in (Side.FIRST, Side.SECOND):
            for _ in range(self.config.INITIAL_HAND_SIZE):
                self._draw(state, side)
        return state

    def _new_player(self, archetype: str) -> PlayerState:
        return PlayerState(
            health=self.config.STARTING_HEALTH,
            mana=self.config.STARTING_MANA,
            max_mana=self.config.STARTING_MANA,
            deck=build_deck(archetype, self._rng),
        )

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def apply(self, state: GameState, action: Action, side: Side) -> GameState:
        if state.game_over:
            raise ValueError("Game is already over")
        if not state.is_turn_of(side):
            raise ValueError(f"It is not {side.value}'s turn")
        self._validate(state, action, side)

        new_state = copy.deepcopy(state)

        if action.type is ActionType.PLAY_CARD:
            self._play_card(new_state, action.hand_index, side)
        elif action.type is ActionType.ATTACK_MINION:
            self._attack_minion(new_state, action.attacker_index, action.target_index, side)
        elif action.type is ActionType.ATTACK_FACE:
            self._attack_face(new_state, action.attacker_index, side)
        else:
            self._end_turn(new_state, side)

        self._update_game_over(new_state)
        return new_state

    def is_terminal(self, state: GameState) -> Tuple[bool, Optional[Side]]:
        return state.game_over, state.winner

    def _validate(self, state: GameState, action: Action, side: Side) -> None:
        """Raise ValueError for malformed or illegal actions."""
        own = state.own(side)
        opponent = state.opponent(side)

        if action.type is ActionType.END_TURN:
            return

        if action.type is ActionType.PLAY_CARD:
            i = action.hand_index
            if i is None or not 0 <= i < len(own.hand):
                raise ValueError(f"No card in hand slot {i}")
            card = own.hand[i]
            if card.mana_cost > own.mana:
                raise ValueError(f"Not enough mana for {card.name}")
            if card.is_minion and len(own.board) >= self.config.MAX_BOARD_SIZE:
                raise ValueError("Board is full")
            return

        a = action.attacker_index
        if a is None or not 0 <= a < len(own.board):
            raise ValueError(f"No minion in board slot {a}")
        if not own.board[a].can_attack:
            raise ValueError(f"{own.board[a].card.name} cannot attack")

        taunting = any(has_taunt(m) for m in opponent.board)
        if action.type is ActionType.ATTACK_FACE:
            if taunting:
                raise ValueError("A taunt minion blocks the attack")
            return

        t = action.target_index
        if t is None or not 0 <= t < len(opponent.board):
            raise ValueError(f"No enemy minion in board slot {t}")
        if taunting and not has_taunt(opponent.board[t]):
            raise ValueError("A taunt minion must be attacked first")

    def _play_card(self, state: GameState, hand_index: int, side: Side) -> None:
        player = state.own(side)
        card = player.hand.pop(hand_index)
        player.mana -= card.mana_cost

        source = None
        if card.is_minion:
            source = self._summon(state, side, card)

        for ability in card.abilities:
            if ability.trigger == 'battlecry':
                self._resolve(state, side, ability, source)

        self._remove_dead(state)

    def _attack_minion(self, state: GameState, attacker_index: int, target_index: int, side: Side) -> None:
        attacker = state.own(side).board[attacker_index]
        target = state.opponent(side).board[target_index]

        target.current_health -= attacker.attack
        attacker.current_health -= target.attack
        attacker.can_attack = False

        self._remove_dead(state)

    def _attack_face(self, state: GameState, attacker_index: int, side: Side) -> None:
        attacker = state.own(side).board[attacker_index]
        state.opponent(side).health -= attacker.attack
        attacker.can_attack = False

    def _end_turn(self, state: GameState, side: Side) -> None:
        state.turn_number += 1
        state.current_side = side.other

        player = state.own(side.other)
        player.max_mana = min(player.max_mana + 1, self.config.MAX_MANA)
        player.mana = player.max_mana
        for minion in player.board:
            minion.can_attack = True
        self._draw(state, side.other)

    # =========================================================================
    # EFFECTS
    # =========================================================================

    def _draw(self, state: GameState, side: Side) -> None:
        player = state.own(side)
        if not player.deck:
            player.fatigue += 1
            player.health -= player.fatigue
            return
        card = player.deck.pop()
        if len(player.hand) < self.config.MAX_HAND_SIZE:
            player.hand.append(card)

    def _summon(self, state: GameState, side: Side, card: Card) -> Optional[Minion]:
        board = state.own(side).board
        if len(board) >= self.config.MAX_BOARD_SIZE:
            return None
        minion = Minion(
            card=card,
            attack=card.attack,
            health=card.health,
            current_health=card.health,
            can_attack=CHARGE in card.keywords,
            instance_id=state.next_instance_id,
        )
        state.next_instance_id += 1
        board.append(minion)
        return minion

    def _resolve(self, state: GameState, side: Side, ability: Ability, source: Optional[Minion]) -> None:
        """Apply one ability for `side`. `source` is the minion that owns it, if any."""
        own = state.own(side)
        opponent = state.opponent(side)
        effect, value, target = ability.effect, ability.value, ability.target

        if effect == 'damage':
            if target == 'enemy_hero':
                opponent.health -= value
            elif target == 'own_hero':
                own.health -= value
            elif target == 'enemy_minions':
                for minion in opponent.board:
                    minion.current_health -= value
            elif target == 'all_minions':
                for minion in own.board + opponent.board:
                    if minion is not source:
                        minion.current_health -= value
            elif target == 'random_enemy':
                living = [m for m in opponent.board if m.current_health > 0]
                if living:
                    self._rng.choice(living).current_health -= value
                else:
                    opponent.health -= value

        elif effect == 'heal':
            own.health = min(own.health + value, self.config.STARTING_HEALTH)

        elif effect == 'draw':
            for _ in range(value):
                self._draw(state, side)

        elif effect == 'buff':
            if target == 'self':
                chosen = source
            else:
                friends = [m for m in own.board if m is not source]
                chosen = self._rng.choice(friends) if friends else None
            if chosen is not None:
                chosen.attack += value

        elif effect == 'summon':
            for _ in range(value):
                self._summon(state, side, TOKEN)

    def _remove_dead(self, state: GameState) -> None:
        """Clear dead minions, firing deathrattles until the board settles."""
        while True:
            dead = []
            for side in (Side.FIRST, Side.SECOND):
                player = state.own(side)
                dead.extend((side, m) for m in player.board if m.current_health <= 0)
                player.board = [m for m in player.board if m.current_health > 0]
            if not dead:
                return
            for side, minion in dead:
                for ability in minion.card.abilities:
                    if ability.trigger == 'deathrattle':
                        self._resolve(state, side, ability, None)

    def _update_game_over(self, state: GameState) -> None:
        first_dead = state.first.health <= 0
        second_dead = state.second.health <= 0
        if first_dead or second_dead:
            state.game_over = True
            if first_dead and second_dead:
                state.winner = None
            else:
                state.winner = Side.SECOND if first_dead else Side.FIRST
