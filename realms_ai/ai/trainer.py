"""
Training Loop
=============

Orchestrates self-play training:
    1. Play full games against a copy of itself or a random opponent
    2. Score each learner move with the reward system
    3. Store transitions and train the agent
    4. Track outcomes and report progress
    5. Save checkpoints (resumable between episodes)

The learner always sits at Side.FIRST; deck archetypes decide which
cards each side gets.
"""

import json
import math
import os
import random
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

import numpy as np

from config import Config

from ..game.simulation import Simulation
from ..game.state import GameState, Side
from ..utils.logger import get_logger, log_training_metrics
from .action_space import END_TURN_INDEX, decode_action, get_legal_actions, is_action_legal
from .agent import Agent, PersistenceError, TrainingStats
from .rewards import RewardConfig, calculate_reward, get_reward_config

logger = get_logger(__name__)

LEARNER = Side.FIRST


@dataclass
class Matchup:
    """Deck pairing for an episode."""
    learner_deck: str
    opponent_deck: str

    def __str__(self) -> str:
        return f"{self.learner_deck} vs {self.opponent_deck}"


@dataclass
class EpisodeResult:
    """Outcome of a single game."""
    episode: int
    winner: str  # 'learner', 'opponent' or 'draw'
    turns: int
    total_reward: float
    final_health: int
    opponent_final_health: int
    illegal_actions: int
    stalled: bool = False


@dataclass
class TrainingProgress:
    """Payload for progress callbacks."""
    episodes_completed: int
    total_episodes: int
    wins: int
    losses: int
    draws: int
    win_rate: float
    average_reward: float
    average_turns: float
    current_epsilon: float
    training_stats: Optional[TrainingStats] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


ProgressCallback = Callable[[TrainingProgress], None]


class Trainer:
    """
    Manages the self-play training loop for the DQN agent.

    Responsibilities:
        1. Run episodes against the simulation
        2. Recover from illegal learner picks (counted, never fatal)
        3. Track outcomes and call progress callbacks
        4. Save checkpoints and resume interrupted runs

    Example:
        >>> simulation = CardBattle(config)
        >>> agent = Agent(config)
        >>> trainer = Trainer(agent, simulation, config)
        >>> trainer.train_matchups(['fire', 'earth'], episodes_per_matchup=500)
    """

    def __init__(
        self,
        agent: Agent,
        simulation: Simulation,
        config: Optional[Config] = None,
        reward_config: Optional[RewardConfig] = None
    ):
        """
        Initialize the trainer.

        Args:
            agent: DQN agent instance (plays both sides in self-play)
            simulation: Rules engine
            config: Configuration object
            reward_config: Reward weights (from config.REWARD_PRESET if None)
        """
        self.agent = agent
        self.simulation = simulation
        self.config = config or Config()
        self.reward_config = reward_config or get_reward_config(self.config.REWARD_PRESET)

        self.results: Deque[EpisodeResult] = deque(maxlen=self.config.STATS_WINDOW)
        self.illegal_action_count = 0
        self.total_episodes_played = 0

    # =========================================================================
    # EPISODES
    # =========================================================================

    def _random_legal_action(self, state: GameState, side: Side) -> int:
        legal = get_legal_actions(state, side)
        return random.choice(legal) if legal else END_TURN_INDEX

    def _opponent_action(self, state: GameState, side: Side, opponent_mode: str) -> int:
        """Self-play uses the learner's own policy from the other seat."""
        if opponent_mode == 'self':
            action = self.agent.select_action(state, side, training=True)
            if is_action_legal(decode_action(action), state, side):
                return action
        return self._random_legal_action(state, side)

    def play_episode(
        self,
        matchup: Matchup,
        opponent_mode: Optional[str] = None,
        training: bool = True
    ) -> EpisodeResult:
        """
        Play one game.

        Args:
            matchup: Decks for learner and opponent
            opponent_mode: 'self' or 'random' (config.OPPONENT_TYPE if None)
            training: Explore, store transitions and train. When False the
                      learner plays greedily and nothing is recorded.

        Returns:
            Episode result (episode number is filled in by the caller)
        """
        opponent_mode = opponent_mode or self.config.OPPONENT_TYPE
        if training:
            self.agent.start_episode()

        state = self.simulation.initial_state(matchup.learner_deck, matchup.opponent_deck)
        total_reward = 0.0
        learner_steps = 0
        illegal_actions = 0
        same_side_streak = 0
        stalled = False

        while True:
            done, _ = self.simulation.is_terminal(state)
            if done or state.turn_number > self.config.MAX_TURNS_PER_GAME:
                break

            acting = state.current_side

            if acting is LEARNER:
                action = self.agent.select_action(state, LEARNER, training=training)
                if not is_action_legal(decode_action(action), state, LEARNER):
                    illegal_actions += 1
                    action = self._random_legal_action(state, LEARNER)

                next_state = self.simulation.apply(state, decode_action(action), LEARNER)

                if training:
                    next_done, _ = self.simulation.is_terminal(next_state)
                    reward = calculate_reward(state, action, next_state, next_done, self.reward_config, LEARNER)
                    total_reward += reward
                    self.agent.store_experience(state, action, reward, next_state, next_done, LEARNER)

                    learner_steps += 1
                    if learner_steps % self.config.TRAIN_EVERY == 0:
                        self.agent.train()

                state = next_state
            else:
                action = self._opponent_action(state, acting, opponent_mode)
                state = self.simulation.apply(state, decode_action(action), acting)

            # Stall guard; a decision that ends the game is never a stall
            if self.simulation.is_terminal(state)[0]:
                continue
            if state.current_side is acting:
                same_side_streak += 1
                if same_side_streak >= self.config.MAX_SAME_SIDE_STREAK:
                    logger.warning(
                        f"{acting.value} acted {same_side_streak} times in a row on turn "
                        f"{state.turn_number}, ending game as a learner loss"
                    )
                    stalled = True
                    break
            else:
                same_side_streak = 0

        done, winner_side = self.simulation.is_terminal(state)
        if stalled:
            winner = 'opponent'
        elif done and winner_side is LEARNER:
            winner = 'learner'
        elif done and winner_side is not None:
            winner = 'opponent'
        else:
            winner = 'draw'  # Simultaneous death or turn ceiling

        if illegal_actions:
            logger.debug(f"Episode had {illegal_actions} illegal learner picks")
        self.illegal_action_count += illegal_actions

        return EpisodeResult(
            episode=0,
            winner=winner,
            turns=state.turn_number,
            total_reward=total_reward,
            final_health=state.own(LEARNER).health,
            opponent_final_health=state.opponent(LEARNER).health,
            illegal_actions=illegal_actions,
            stalled=stalled,
        )

    # =========================================================================
    # PROGRESS
    # =========================================================================

    def _progress(self, completed: int, total: int, wins: int, losses: int, draws: int) -> TrainingProgress:
        stats = self.agent.get_stats()
        recent = list(self.results)
        return TrainingProgress(
            episodes_completed=completed,
            total_episodes=total,
            wins=wins,
            losses=losses,
            draws=draws,
            win_rate=sum(r.winner == 'learner' for r in recent) / len(recent) if recent else 0.0,
            average_reward=stats.avg_reward,
            average_turns=float(np.mean([r.turns for r in recent])) if recent else 0.0,
            current_epsilon=stats.epsilon,
            training_stats=stats,
        )

    def _report(self, progress: TrainingProgress, callback: Optional[ProgressCallback]) -> None:
        stats = progress.training_stats
        log_training_metrics(
            episode=progress.episodes_completed,
            win_rate=progress.win_rate,
            epsilon=progress.current_epsilon,
            avg_reward=progress.average_reward,
            loss=stats.avg_loss if stats else None,
            buffer_size=stats.buffer_size if stats else None,
            steps=stats.training_steps if stats else None,
        )
        recent_illegal = sum(r.illegal_actions for r in self.results)
        if recent_illegal:
            logger.info(f"Illegal picks (last {len(self.results)} episodes): {recent_illegal}")
        if callback:
            callback(progress)

    def _progress_path(self, run_name: str) -> str:
        return self.config.model_path(f'{run_name}-progress.json')

    def _load_checkpoint(self, run_name: str) -> Dict[str, Any]:
        path = self._progress_path(run_name)
        if not os.path.exists(path):
            return {}
        with open(path) as f:
            return json.load(f)

    def _write_checkpoint(self, run_name: str, **values: Any) -> None:
        os.makedirs(self.config.MODEL_DIR, exist_ok=True)
        with open(self._progress_path(run_name), 'w') as f:
            json.dump(dict(values, timestamp=time.time()), f)

    def _clear_checkpoint(self, run_name: str) -> None:
        path = self._progress_path(run_name)
        if os.path.exists(path):
            os.remove(path)

    def _save_before_raise(self, run_name: Optional[str] = None,
                           checkpoint: Optional[Dict[str, Any]] = None) -> None:
        """
        Best-effort save while another error (or Ctrl+C) is propagating.

        Saves under MODEL_NAME so the weights match the progress file a
        restart will resume from. When `checkpoint` is given it is written
        only after the agent was saved.
        """
        try:
            self.agent.save()
        except PersistenceError as e:
            logger.error(f"Emergency save failed: {e}")
            return
        if checkpoint:
            try:
                self._write_checkpoint(run_name, **checkpoint)
            except OSError as e:
                logger.error(f"Emergency checkpoint failed: {e}")

    # =========================================================================
    # TRAINING
    # =========================================================================

    def train(
        self,
        num_episodes: Optional[int] = None,
        matchup: Optional[Matchup] = None,
        opponent_mode: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
        run_name: Optional[str] = None
    ) -> TrainingProgress:
        """
        Train on a single matchup.

        A progress file ({run_name}-progress.json) is rewritten after every
        episode. Re-running with the same run_name resumes at the next
        episode; the file is removed once the run completes.

        Args:
            num_episodes: Episodes to play (config.MAX_EPISODES if None)
            matchup: Decks (first DECK_TYPES entry mirrored if None)
            opponent_mode: 'self' or 'random'
            progress_callback: Called every LOG_EVERY episodes
            run_name: Names the progress file (config.MODEL_NAME if None)

        Returns:
            Final progress
        """
        num_episodes = num_episodes or self.config.MAX_EPISODES
        deck = self.config.DECK_TYPES[0]
        matchup = matchup or Matchup(deck, deck)
        opponent_mode = opponent_mode or self.config.OPPONENT_TYPE
        run_name = run_name or self.config.MODEL_NAME

        checkpoint = self._load_checkpoint(run_name)
        start = checkpoint.get('episode', 0)
        wins = checkpoint.get('wins', 0)
        losses = checkpoint.get('losses', 0)
        draws = checkpoint.get('draws', 0)

        if start > 0:
            logger.info(f"Resuming training from episode {start}")
        logger.info(f"Training {matchup} | episodes {start} -> {num_episodes} | "
                    f"max turns {self.config.MAX_TURNS_PER_GAME} | opponent {opponent_mode}")

        for episode in range(start, num_episodes):
            try:
                result = self.play_episode(matchup, opponent_mode)
                result.episode = episode + 1
                self.results.append(result)
                self.total_episodes_played += 1

                if result.winner == 'learner':
                    wins += 1
                elif result.winner == 'opponent':
                    losses += 1
                else:
                    draws += 1

                self._write_checkpoint(run_name, episode=episode + 1, wins=wins, losses=losses, draws=draws)

                if (episode + 1) % self.config.LOG_EVERY == 0:
                    self._report(self._progress(episode + 1, num_episodes, wins, losses, draws), progress_callback)

                if (episode + 1) % self.config.SAVE_EVERY == 0:
                    self.agent.save()
                    logger.info(f"Progress saved at episode {episode + 1}")
            except KeyboardInterrupt:
                logger.warning(f"Interrupted in episode {episode + 1}, saving before exit")
                self._save_before_raise()
                raise
            except Exception:
                logger.exception(f"Error in episode {episode + 1}, saving before re-raising")
                self._save_before_raise()
                raise

        self.agent.save()
        self._clear_checkpoint(run_name)

        progress = self._progress(num_episodes, num_episodes, wins, losses, draws)
        logger.info(f"Training complete | W/L/D {wins}/{losses}/{draws} | "
                    f"win rate (last {len(self.results)}) {progress.win_rate * 100:.1f}% | "
                    f"epsilon {progress.current_epsilon:.3f}")
        return progress

    def train_matchups(
        self,
        deck_types: Optional[List[str]] = None,
        episodes_per_matchup: Optional[int] = None,
        batch_size: Optional[int] = None,
        opponent_mode: Optional[str] = None,
        save_every_rounds: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
        run_name: Optional[str] = None
    ) -> TrainingProgress:
        """
        Train one agent on every (learner deck, opponent deck) pair.

        Episodes are played in interleaved rounds: each round plays
        batch_size episodes of every matchup before the next round starts,
        so no matchup is forgotten while another is trained. The agent and
        the round checkpoint are saved together every save_every_rounds
        rounds. An error or Ctrl+C saves the agent and checkpoints the last
        finished round. A restart resumes after the checkpointed round.

        Returns:
            Final progress over all matchups
        """
        deck_types = deck_types or self.config.DECK_TYPES
        episodes_per_matchup = episodes_per_matchup or self.config.EPISODES_PER_MATCHUP
        batch_size = batch_size or self.config.MATCHUP_BATCH_SIZE
        opponent_mode = opponent_mode or self.config.OPPONENT_TYPE
        save_every_rounds = save_every_rounds or self.config.SAVE_EVERY_ROUNDS
        run_name = run_name or f'{self.config.MODEL_NAME}-matchups'

        matchups = [Matchup(a, b) for a in deck_types for b in deck_types]
        total_episodes = episodes_per_matchup * len(matchups)
        num_rounds = math.ceil(episodes_per_matchup / batch_size)

        checkpoint = self._load_checkpoint(run_name)
        start_round = checkpoint.get('round', 0)
        completed = checkpoint.get('episodes', 0)
        wins = checkpoint.get('wins', 0)
        losses = checkpoint.get('losses', 0)
        draws = checkpoint.get('draws', 0)

        logger.info(f"Matchup training | decks: {', '.join(deck_types)} | "
                    f"matchups: {', '.join(str(m) for m in matchups)}")
        logger.info(f"Episodes per matchup: {episodes_per_matchup} | batch: {batch_size} | "
                    f"total: {total_episodes} | rounds: {num_rounds}")
        if start_round > 0:
            logger.info(f"Resuming at round {start_round + 1}")

        # Last round whose episodes all finished; written out on an emergency save
        finished_round = None

        for round_index in range(start_round, num_rounds):
            logger.info(f"--- Round {round_index + 1}/{num_rounds} ---")
            try:
                for matchup in matchups:
                    batch_episodes = min(batch_size, episodes_per_matchup - round_index * batch_size)
                    if batch_episodes <= 0:
                        continue

                    logger.info(f"Training {matchup} ({batch_episodes} episodes)")
                    log_every = max(1, batch_episodes // 5)

                    for i in range(batch_episodes):
                        result = self.play_episode(matchup, opponent_mode)
                        completed += 1
                        result.episode = completed
                        self.results.append(result)
                        self.total_episodes_played += 1

                        if result.winner == 'learner':
                            wins += 1
                        elif result.winner == 'opponent':
                            losses += 1
                        else:
                            draws += 1

                        if (i + 1) % log_every == 0:
                            self._report(self._progress(completed, total_episodes, wins, losses, draws),
                                         progress_callback)

                finished_round = dict(round=round_index + 1, episodes=completed,
                                      wins=wins, losses=losses, draws=draws)

                # The round checkpoint only advances together with the saved agent
                if (round_index + 1) % save_every_rounds == 0:
                    self.agent.save()
                    self._write_checkpoint(run_name, **finished_round)
                    logger.info(f"Progress saved after round {round_index + 1}")
            except KeyboardInterrupt:
                logger.warning(f"Interrupted in round {round_index + 1}, saving before exit")
                self._save_before_raise(run_name, finished_round)
                raise
            except Exception:
                logger.exception(f"Error in round {round_index + 1}, saving before re-raising")
                self._save_before_raise(run_name, finished_round)
                raise

            stats = self.agent.get_stats()
            logger.info(f"Round {round_index + 1} complete | episodes {completed}/{total_episodes} | "
                        f"W/L/D {wins}/{losses}/{draws} | epsilon {stats.epsilon:.3f} | "
                        f"avg reward {stats.avg_reward:.2f} | buffer {stats.buffer_size}")

        self.agent.save()
        self._clear_checkpoint(run_name)

        progress = self._progress(completed, total_episodes, wins, losses, draws)
        played = wins + losses + draws
        progress.win_rate = wins / played if played else 0.0
        logger.info(f"Matchup training complete | W/L/D {wins}/{losses}/{draws} | "
                    f"overall win rate {progress.win_rate * 100:.1f}%")
        return progress

    def evaluate(self, num_episodes: int = 10, matchup: Optional[Matchup] = None) -> Dict[str, float]:
        """
        Play greedily against a random opponent without learning.

        Returns:
            win_rate, draw_rate, mean_turns, mean_health, illegal_actions
        """
        deck = self.config.DECK_TYPES[0]
        matchup = matchup or Matchup(deck, deck)

        results = [self.play_episode(matchup, 'random', training=False) for _ in range(num_episodes)]

        return {
            'win_rate': sum(r.winner == 'learner' for r in results) / num_episodes,
            'draw_rate': sum(r.winner == 'draw' for r in results) / num_episodes,
            'mean_turns': float(np.mean([r.turns for r in results])),
            'mean_health': float(np.mean([r.final_health for r in results])),
            'illegal_actions': sum(r.illegal_actions for r in results),
        }
