"""
Pytest configuration for the test suite.

This file is automatically loaded by pytest and applies configuration
to all tests in the tests/ directory.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def small_config(tmp_path):
    """CPU config with a tiny network and checkpoints under tmp_path."""
    cfg = Config()
    cfg.FORCE_CPU = True
    cfg.HIDDEN_LAYERS = [32, 32]
    cfg.BATCH_SIZE = 8
    cfg.MEMORY_SIZE = 500
    cfg.MEMORY_MIN = 16
    cfg.TARGET_UPDATE = 10
    cfg.LEARNING_RATE = 0.001
    cfg.MAX_TURNS_PER_GAME = 20
    cfg.MAX_SAME_SIDE_STREAK = 30
    cfg.MODEL_DIR = str(tmp_path / 'models')
    cfg.LOG_DIR = str(tmp_path / 'logs')
    cfg.MODEL_NAME = 'test-agent'
    return cfg

