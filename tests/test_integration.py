"""
Integration tests for the Five Realms DQN project.

These tests verify end-to-end functionality:
    - Agent learns from real card battles
    - Save/load preserves training state across runs
    - Command line entry point
"""

import pytest
import numpy as np
import torch
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import main
from realms_ai.ai.agent import Agent
from realms_ai.ai.trainer import Matchup, Trainer
from realms_ai.game.card_battle import CardBattle
from realms_ai.game.state import Side


@pytest.fixture
def config(small_config):
    """Create a test configuration optimized for fast testing."""
    small_config.MAX_TURNS_PER_GAME = 12
    small_config.OPPONENT_TYPE = 'random'
    small_config.LOG_EVERY = 5
    return small_config


@pytest.fixture
def game(config):
    """Create a seeded rules engine."""
    simulation = CardBattle(config)
    simulation.seed(0)
    return simulation


@pytest.fixture
def agent(config):
    """Create an agent instance."""
    return Agent(config)


class TestAgentGameIntegration:
    """Test agent-game interaction."""

    def test_agent_can_process_game_state(self, game, agent):
        state = game.initial_state('fire', 'earth')
        action = agent.select_action(state, Side.FIRST, training=True)
        assert 0 <= action < 68

    @pytest.mark.slow
    def test_agent_learns_from_games(self, game, agent):
        """Enough games to fill MEMORY_MIN and run training steps."""
        trainer = Trainer(agent, game, agent.config)
        trainer.train(10, Matchup('fire', 'earth'))

        assert agent.training_steps > 0
        assert agent.epsilon < agent.config.EPSILON_START
        assert all(np.isfinite(loss) for loss in agent.losses)
        assert len(agent.memory) >= agent.config.MEMORY_MIN

    def test_one_agent_plays_both_seats(self, game, agent):
        trainer = Trainer(agent, game, agent.config)
        result = trainer.play_episode(Matchup('water', 'air'), opponent_mode='self')
        assert result.winner in ('learner', 'opponent', 'draw')


class TestSaveLoadIntegration:
    """Test persistence across training runs."""

    def test_training_resumes_from_checkpoint(self, game, config):
        first_run = Agent(config)
        Trainer(first_run, game, config).train(3, Matchup('fire', 'fire'))

        second_run = Agent(config)
        assert second_run.load()
        assert second_run.episode_count == 3
        assert second_run.epsilon == first_run.epsilon
        assert len(second_run.memory) == len(first_run.memory)

        Trainer(second_run, game, config).train(2, Matchup('fire', 'fire'))
        assert second_run.episode_count == 5

    def test_loaded_agent_plays_same_moves(self, game, agent, config):
        state = game.initial_state('earth', 'water')
        agent.save('snapshot')

        restored = Agent(config)
        restored.load('snapshot')
        assert restored.select_action(state, Side.FIRST, training=False) == \
            agent.select_action(state, Side.FIRST, training=False)

    def test_agent_works_on_cpu(self, agent):
        assert agent.model.device == torch.device('cpu')


class TestCommandLine:
    """Test main.py end to end in a scratch directory."""

    @pytest.fixture(autouse=True)
    def scratch_dir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        # Handlers bound to a captured stdout would outlive the test
        monkeypatch.setattr(main, 'setup_logging', lambda *args, **kwargs: None)
        return tmp_path

    def test_build_config_applies_flags(self):
        args = main.parse_args([
            '--decks', 'fire', 'water', '--episodes-per-matchup', '40', '--batch-size', '10',
            '--max-turns', '15', '--opponent', 'random', '--reward-preset', 'tempo',
            '--model-name', 'cli-agent', '--cpu', '--seed', '5',
        ])
        config = main.build_config(args)
        assert config.DECK_TYPES == ['fire', 'water']
        assert config.EPISODES_PER_MATCHUP == 40
        assert config.MATCHUP_BATCH_SIZE == 10
        assert config.MAX_TURNS_PER_GAME == 15
        assert config.OPPONENT_TYPE == 'random'
        assert config.REWARD_PRESET == 'tempo'
        assert config.MODEL_NAME == 'cli-agent'
        assert config.FORCE_CPU
        assert config.SEED == 5

    def test_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            main.parse_args(['--train', '--evaluate'])

    def test_unknown_deck_rejected(self):
        with pytest.raises(SystemExit):
            main.parse_args(['--decks', 'shadow'])

    def test_single_matchup_run_then_inspect(self, scratch_dir, capsys):
        main.main(['--episodes', '2', '--decks', 'fire', 'earth', '--max-turns', '6',
                   '--opponent', 'random', '--cpu', '--fresh', '--seed', '1',
                   '--model-name', 'cli-agent'])
        assert (scratch_dir / 'models' / 'cli-agent.pth').exists()
        assert (scratch_dir / 'models' / 'cli-agent-replay.npz').exists()
        assert (scratch_dir / 'models' / 'cli-agent-state.json').exists()

        capsys.readouterr()
        main.main(['--list-models'])
        assert 'cli-agent' in capsys.readouterr().out

        main.main(['--inspect', 'cli-agent'])
        out = capsys.readouterr().out
        assert 'Checkpoint: cli-agent' in out
        assert 'Episodes:       2' in out

    def test_matchup_run_and_evaluate(self, scratch_dir, capsys):
        main.main(['--train', '--decks', 'air', '--episodes-per-matchup', '2', '--batch-size', '1',
                   '--max-turns', '6', '--opponent', 'random', '--cpu', '--fresh'])
        assert (scratch_dir / 'models' / 'five-realms-dqn-agent.pth').exists()

        capsys.readouterr()
        main.main(['--evaluate', '--decks', 'air', '--eval-episodes', '2', '--max-turns', '6', '--cpu'])
        assert 'Win Rate' in capsys.readouterr().out

    def test_inspect_missing(self, capsys):
        main.main(['--inspect', 'ghost'])
        assert "No checkpoint named 'ghost'" in capsys.readouterr().out
