"""
Five Realms AI - Source Package
===============================

This package contains all the components for training an AI to play
Five Realms card battles through self-play.

Modules:
    game/   - State model, actions and the rules engine
    ai/     - Action/state encodings, rewards, network, agent and training
    utils/  - Logging
"""

__version__ = "1.0.0"
