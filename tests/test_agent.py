"""
Tests for the DQN Agent.

These tests verify:
    - Agent initialization
    - Action selection (epsilon-greedy)
    - Experience storage
    - Learning and target network sync
    - Epsilon decay
    - Save / load
"""

import json

import pytest
import numpy as np
import torch
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from realms_ai.ai.agent import Agent, PersistenceError, TrainingStats
from realms_ai.ai.replay_buffer import ReplayBuffer
from realms_ai.game.state import Side
from tests.builders import FixedQModel, make_card, make_minion, make_player, make_state


@pytest.fixture
def config(small_config):
    return small_config


@pytest.fixture
def agent(config):
    """Create an agent instance."""
    return Agent(config)


@pytest.fixture
def state():
    return make_state(
        first=make_player(mana=2, hand=[make_card(cost=1)], board=[make_minion()]),
        second=make_player(board=[make_minion(instance_id=1)]),
    )


def fill_memory(agent, state, n, reward=0.0):
    for i in range(n):
        agent.store_experience(state, i % 68, reward, state, False)


class TestAgentInitialization:
    """Test agent initialization."""

    def test_agent_creates_successfully(self, agent, config):
        assert agent.state_size == 121
        assert agent.action_size == 68
        assert agent.epsilon == config.EPSILON_START

    def test_starts_with_empty_memory(self, agent, config):
        assert len(agent.memory) == 0
        assert agent.memory.capacity == config.MEMORY_SIZE

    def test_injected_empty_buffer_is_used(self, config):
        """An empty buffer must not be replaced by a default one."""
        memory = ReplayBuffer(capacity=7)
        agent = Agent(config, memory=memory)
        assert agent.memory is memory

    def test_agents_do_not_share_state(self, config, state):
        a = Agent(config)
        b = Agent(config)
        a.store_experience(state, 0, 1.0, state, False)
        assert len(a.memory) == 1
        assert len(b.memory) == 0


class TestActionSelection:
    """Test action selection."""

    def test_select_action_in_range(self, agent, state):
        for _ in range(20):
            assert 0 <= agent.select_action(state, Side.FIRST) < 68

    def test_greedy_picks_argmax(self, config, state):
        q_values = np.zeros(68)
        q_values[42] = 3.0
        agent = Agent(config, model=FixedQModel(q_values))
        assert agent.select_action(state, Side.FIRST, training=False) == 42
        assert not agent.last_action_explored

    def test_greedy_ties_pick_lowest_index(self, config, state):
        q_values = np.zeros(68)
        q_values[[5, 30, 60]] = 1.0
        agent = Agent(config, model=FixedQModel(q_values))
        agent.epsilon = 0.0
        assert agent.select_action(state, Side.FIRST, training=True) == 5

    def test_exploration_never_queries_model(self, config, state):
        """Fresh agent (epsilon=1) decides three times at random, buffer grows by three."""
        model = FixedQModel(np.arange(68))
        agent = Agent(config, model=model)
        assert agent.epsilon == 1.0

        for _ in range(3):
            action = agent.select_action(state, Side.FIRST, training=True)
            assert agent.last_action_explored
            agent.store_experience(state, action, 0.0, state, False)

        assert model.predict_calls == 0
        assert len(agent.memory) == 3

    def test_exploration_is_unmasked(self, agent, state):
        """Random picks cover slots that are illegal in the state."""
        agent.epsilon = 1.0
        actions = {agent.select_action(state, Side.FIRST) for _ in range(2000)}
        assert len(actions) > 40

    def test_greedy_with_real_network_is_deterministic(self, agent, state):
        actions = {agent.select_action(state, Side.FIRST, training=False) for _ in range(10)}
        assert len(actions) == 1

    def test_q_values_shape(self, agent, state):
        assert agent.get_q_values(state, Side.SECOND).shape == (68,)


class TestExperienceStorage:
    """Test experience storage in replay buffer."""

    def test_store_adds_experience(self, agent, state):
        agent.store_experience(state, 67, -0.04, state, False)
        assert len(agent.memory) == 1

    def test_store_encodes_from_side(self, agent, state):
        weak = make_state(first=make_player(health=3), second=make_player(health=30))
        agent.store_experience(weak, 67, 0.0, weak, False, Side.SECOND)
        states, _, _, _, _ = agent.memory.sample(1)
        assert states[0][0] == 1.0  # own health from SECOND's seat

    def test_terminal_counts_game(self, agent, state):
        agent.start_episode()
        agent.store_experience(state, 0, 0.5, state, False)
        agent.store_experience(state, 0, 10.0, state, True)
        agent.start_episode()
        agent.store_experience(state, 0, -10.0, state, True)

        assert agent.games == 2
        assert agent.wins == 1
        assert list(agent.episode_rewards) == [10.5, -10.0]
        assert agent.episode_count == 2


class TestLearning:
    """Test learning functionality."""

    def test_no_learning_without_enough_samples(self, agent, config, state):
        fill_memory(agent, state, config.MEMORY_MIN - 1)
        assert agent.train() is None
        assert agent.training_steps == 0

    def test_learning_with_enough_samples(self, agent, config, state):
        fill_memory(agent, state, config.MEMORY_MIN, reward=1.0)
        stats = agent.train()
        assert isinstance(stats, TrainingStats)
        assert stats.training_steps == 1
        assert stats.buffer_size == config.MEMORY_MIN
        assert agent.training_steps == 1
        assert len(agent.losses) == 1

    def test_sync_every_target_update(self, config, state):
        model = FixedQModel(np.zeros(68))
        agent = Agent(config, model=model)
        fill_memory(agent, state, config.MEMORY_MIN)

        for _ in range(config.TARGET_UPDATE * 3 - 1):
            agent.train()
        assert model.syncs == 2
        agent.train()
        assert model.syncs == 3

    def test_target_matches_online_after_sync(self, agent, config, state):
        fill_memory(agent, state, config.MEMORY_MIN, reward=1.0)
        for _ in range(config.TARGET_UPDATE):
            agent.train()

        encoded = np.random.rand(4, 121).astype(np.float32)
        np.testing.assert_array_equal(agent.model.predict(encoded), agent.model.predict_target(encoded))


class TestEpsilon:
    """Test exploration decay."""

    def test_epsilon_never_increases(self, config, state):
        agent = Agent(config, model=FixedQModel(np.zeros(68)))
        fill_memory(agent, state, config.MEMORY_MIN)

        previous = agent.epsilon
        for _ in range(2000):
            agent.train()
            assert agent.epsilon <= previous
            assert agent.epsilon >= config.EPSILON_END
            previous = agent.epsilon
        assert agent.epsilon == config.EPSILON_END

    def test_no_decay_without_training(self, agent, config):
        agent.train()
        assert agent.epsilon == config.EPSILON_START

    def test_set_epsilon_clamps(self, agent):
        agent.set_epsilon(1.7)
        assert agent.epsilon == 1.0
        agent.set_epsilon(-0.2)
        assert agent.epsilon == 0.0


class TestStats:

    def test_get_stats(self, agent, state):
        agent.store_experience(state, 0, 10.0, state, True)
        stats = agent.get_stats()
        assert stats.win_rate == 1.0
        assert stats.avg_reward == 10.0
        assert stats.to_dict()['buffer_size'] == 1

    def test_reset_stats(self, agent, state):
        agent.store_experience(state, 0, 10.0, state, True)
        agent.reset_stats()
        assert agent.games == 0
        assert agent.get_stats().win_rate == 0.0


class TestPersistence:
    """Test save / load."""

    def test_save_writes_three_files(self, agent, config, state):
        fill_memory(agent, state, 5)
        agent.save()

        base = os.path.join(config.MODEL_DIR, config.MODEL_NAME)
        assert os.path.exists(base + '.pth')
        assert os.path.exists(base + '-replay.npz')
        assert os.path.exists(base + '-state.json')
        assert agent.exists()

    def test_save_load_round_trip(self, agent, config, state):
        fill_memory(agent, state, config.MEMORY_MIN, reward=1.0)
        for _ in range(5):
            agent.train()
        agent.start_episode()
        agent.store_experience(state, 0, 10.0, state, True)
        agent.save('round-trip')

        restored = Agent(config)
        assert restored.load('round-trip')
        assert restored.epsilon == agent.epsilon
        assert restored.training_steps == agent.training_steps
        assert restored.episode_count == agent.episode_count
        assert restored.wins == 1
        assert len(restored.memory) == len(agent.memory)

        q_original = agent.get_q_values(state, Side.FIRST)
        q_restored = restored.get_q_values(state, Side.FIRST)
        np.testing.assert_allclose(q_restored, q_original, rtol=1e-6)

    def test_replay_slice_is_capped(self, agent, config, state):
        config.REPLAY_SAVE_SIZE = 10
        fill_memory(agent, state, 30)
        agent.save()

        restored = Agent(config)
        restored.load()
        assert len(restored.memory) == 10

    def test_load_missing_returns_false(self, agent):
        epsilon = agent.epsilon
        assert agent.load('does-not-exist') is False
        assert agent.epsilon == epsilon

    def test_load_corrupt_weights_raises(self, agent, config):
        os.makedirs(config.MODEL_DIR, exist_ok=True)
        with open(config.model_path('broken.pth'), 'wb') as f:
            f.write(b'not a checkpoint')
        with pytest.raises(PersistenceError):
            agent.load('broken')

    def test_load_corrupt_state_raises(self, agent, config):
        agent.save('bad-state')
        with open(config.model_path('bad-state-state.json'), 'w') as f:
            f.write('{not json')
        with pytest.raises(PersistenceError):
            agent.load('bad-state')

    def test_incomplete_state_file_leaves_agent_untouched(self, config, state):
        trained = Agent(config)
        fill_memory(trained, state, config.MEMORY_MIN, reward=1.0)
        for _ in range(5):
            trained.train()
        trained.save('partial')
        path = config.model_path('partial-state.json')
        with open(path) as f:
            saved = json.load(f)
        del saved['wins']
        with open(path, 'w') as f:
            json.dump(saved, f)

        fresh = Agent(config)
        fresh.store_experience(state, 3, 0.0, state, False)
        q_before = fresh.get_q_values(state, Side.FIRST)

        with pytest.raises(PersistenceError):
            fresh.load('partial')

        assert fresh.epsilon == config.EPSILON_START
        assert fresh.training_steps == 0
        assert len(fresh.memory) == 1
        np.testing.assert_array_equal(fresh.get_q_values(state, Side.FIRST), q_before)

    def test_misaligned_replay_file_raises(self, agent, config, state):
        fill_memory(agent, state, 4)
        agent.save('misaligned')
        path = config.model_path('misaligned-replay.npz')
        with np.load(path) as data:
            arrays = {key: data[key] for key in data.files}
        arrays['actions'] = arrays['actions'][:2]
        np.savez_compressed(path, **arrays)

        restored = Agent(config)
        with pytest.raises(PersistenceError):
            restored.load('misaligned')
        assert len(restored.memory) == 0

    def test_architecture_mismatch_leaves_agent_untouched(self, agent, config, state):
        checkpoint = agent.model.state_dict()
        checkpoint['architecture']['state_size'] = 99
        os.makedirs(config.MODEL_DIR, exist_ok=True)
        torch.save(checkpoint, config.model_path('old-format.pth'))

        agent.epsilon = 0.42
        with pytest.raises(PersistenceError):
            agent.load('old-format')
        assert agent.epsilon == 0.42

    def test_state_file_contents(self, agent, config):
        agent.save()
        with open(config.model_path(f'{config.MODEL_NAME}-state.json')) as f:
            saved = json.load(f)
        assert saved['epsilon'] == agent.epsilon
        assert saved['config']['hidden_layers'] == config.HIDDEN_LAYERS
        assert 'saved_at' in saved

    def test_inspect_model(self, agent, config):
        agent.save()
        info = Agent.inspect_model(config.MODEL_NAME, config.MODEL_DIR)
        assert info['name'] == config.MODEL_NAME
        assert info['architecture']['action_size'] == 68
        assert info['has_replay']
        assert info['epsilon'] == agent.epsilon

    def test_inspect_missing_model(self, config):
        assert Agent.inspect_model('nothing', config.MODEL_DIR) is None
