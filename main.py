#!/usr/bin/env python3
"""
Five Realms AI - Main Entry Point
=================================

Trains a DQN agent to play Five Realms card battles through self-play.

Usage:
    # Train on every pairing of the default decks (fire, earth)
    python main.py

    # Interleaved training across four decks, 2000 episodes per matchup
    python main.py --train --decks fire earth water air --episodes-per-matchup 2000

    # Single matchup (first and last --decks entries)
    python main.py --episodes 500 --decks fire water

    # Train against a random opponent with aggressive reward shaping
    python main.py --opponent random --reward-preset aggressive

    # Evaluate the saved agent greedily against a random opponent
    python main.py --evaluate --eval-episodes 100

    # Inspect a checkpoint
    python main.py --inspect five-realms-dqn-agent

Press Ctrl+C to stop training; the agent is saved under <model-name> (so the
next run resumes where this one stopped) and copied to <model-name>-interrupted.
"""

import argparse
import os
import random
import sys

import numpy as np
import torch

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import Config
from realms_ai.ai.agent import Agent, PersistenceError
from realms_ai.ai.rewards import REWARD_PRESETS, get_reward_config
from realms_ai.ai.trainer import Matchup, Trainer, TrainingProgress
from realms_ai.game import get_simulation, list_simulations
from realms_ai.game.cards import list_archetypes
from realms_ai.utils.logger import LogLevel, get_log_path, get_logger, setup_logging

logger = get_logger('main')


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Five Realms AI - Train a DQN agent to play card battles through self-play",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
EXAMPLES
========

Training:
    python main.py                                     All matchups of the default decks
    python main.py --decks fire earth water air        All 16 matchups of four decks
    python main.py --episodes 500 --decks fire water   Single matchup, fire vs water

Evaluation:
    python main.py --evaluate --eval-episodes 100

Model Management:
    python main.py --list-models
    python main.py --inspect five-realms-dqn-agent

DECKS: {', '.join(list_archetypes())}
REWARD PRESETS: {', '.join(REWARD_PRESETS)}
        """
    )

    # Mode selection
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        '--train', action='store_true',
        help='Train the agent (default mode)'
    )
    mode_group.add_argument(
        '--evaluate', action='store_true',
        help='Play greedily against a random opponent without learning'
    )
    mode_group.add_argument(
        '--inspect', type=str, metavar='NAME',
        help='Show metadata for a saved checkpoint'
    )
    mode_group.add_argument(
        '--list-models', action='store_true',
        help='List all saved checkpoints'
    )

    # Matchups
    parser.add_argument(
        '--decks', nargs='+', default=None, choices=list_archetypes(),
        help='Deck archetypes to train on (default: fire earth)'
    )
    parser.add_argument(
        '--episodes-per-matchup', type=int, default=None,
        help='Episodes for each (learner deck, opponent deck) pair'
    )
    parser.add_argument(
        '--episodes', type=int, default=None,
        help='Train a single matchup for N episodes instead of all pairings'
    )
    parser.add_argument(
        '--batch-size', type=int, default=None,
        help='Episodes of each matchup per interleaved round (default: 50)'
    )
    parser.add_argument(
        '--save-every-rounds', type=int, default=None,
        help='Save the agent every N rounds (default: 5)'
    )

    # Episode settings
    parser.add_argument(
        '--max-turns', type=int, default=None,
        help='Turn ceiling; longer games are draws (default: 50)'
    )
    parser.add_argument(
        '--opponent', type=str, choices=['self', 'random'], default=None,
        help='Opponent policy (default: self)'
    )
    parser.add_argument(
        '--reward-preset', type=str, choices=list(REWARD_PRESETS), default=None,
        help='Reward shaping weights (default: default)'
    )
    parser.add_argument(
        '--simulation', type=str, choices=list_simulations(), default='card_battle',
        help='Rules engine'
    )
    parser.add_argument(
        '--eval-episodes', type=int, default=50,
        help='Games played by --evaluate (default: 50)'
    )

    # Model options
    parser.add_argument(
        '--model-name', type=str, default=None,
        help='Checkpoint name inside the model directory'
    )
    parser.add_argument(
        '--model-dir', type=str, default=None,
        help='Directory for checkpoints (default: models)'
    )
    parser.add_argument(
        '--fresh', action='store_true',
        help='Ignore any saved checkpoint and start from scratch'
    )

    # Other options
    parser.add_argument(
        '--cpu', action='store_true',
        help='Force CPU (the network is small, CPU is usually fastest)'
    )
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Random seed for reproducibility'
    )
    parser.add_argument(
        '--log-level', type=str, choices=[level.name for level in LogLevel], default=None,
        help='Console log level (default: INFO)'
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Apply CLI overrides on top of the defaults."""
    config = Config()

    if args.decks:
        config.DECK_TYPES = list(args.decks)
    if args.episodes_per_matchup:
        config.EPISODES_PER_MATCHUP = args.episodes_per_matchup
    if args.episodes:
        config.MAX_EPISODES = args.episodes
    if args.batch_size:
        config.MATCHUP_BATCH_SIZE = args.batch_size
    if args.save_every_rounds:
        config.SAVE_EVERY_ROUNDS = args.save_every_rounds
    if args.max_turns:
        config.MAX_TURNS_PER_GAME = args.max_turns
    if args.opponent:
        config.OPPONENT_TYPE = args.opponent
    if args.reward_preset:
        config.REWARD_PRESET = args.reward_preset
    if args.model_name:
        config.MODEL_NAME = args.model_name
    if args.model_dir:
        config.MODEL_DIR = args.model_dir
    if args.cpu:
        config.FORCE_CPU = True
    if args.seed is not None:
        config.SEED = args.seed
    if args.log_level:
        config.LOG_LEVEL = args.log_level

    return config


def seed_everything(seed: int) -> None:
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)


def inspect_model(name: str, model_dir: str) -> None:
    """Print checkpoint metadata."""
    try:
        info = Agent.inspect_model(name, model_dir)
    except PersistenceError as e:
        print(f"\n❌ {e}: {e.__cause__}")
        return

    if not info:
        print(f"\n❌ No checkpoint named '{name}' in '{model_dir}/'")
        return

    arch = info['architecture']
    print("\n" + "=" * 60)
    print(f"🔍 Checkpoint: {info['name']}")
    print("=" * 60)
    print(f"   File Size:      {info['file_size_mb']:.2f} MB")
    print(f"   Modified:       {info['file_modified']}")
    print(f"   Saved At:       {info['saved_at']}")
    print(f"   Replay Slice:   {'yes' if info['has_replay'] else 'no'}")
    print(f"\n   Episodes:       {info['episode_count']}")
    print(f"   Training Steps: {info['training_steps']}")
    print(f"   Epsilon:        {info['epsilon']:.4f}" if isinstance(info['epsilon'], float)
          else f"   Epsilon:        {info['epsilon']}")
    print(f"   Wins / Games:   {info['wins']} / {info['games']}")
    print(f"\n   State Size:     {arch.get('state_size', 'unknown')}")
    print(f"   Action Size:    {arch.get('action_size', 'unknown')}")
    print(f"   Hidden Layers:  {arch.get('hidden_layers', 'unknown')}")
    print("=" * 60 + "\n")


def list_models(model_dir: str) -> None:
    """List every checkpoint in the model directory."""
    names = []
    if os.path.isdir(model_dir):
        names = sorted(f[:-len('.pth')] for f in os.listdir(model_dir) if f.endswith('.pth'))

    if not names:
        print(f"\n❌ No checkpoints found in '{model_dir}/'")
        return

    print("\n" + "=" * 72)
    print(f"📁 Checkpoints in '{model_dir}/' ({len(names)})")
    print("=" * 72)
    print(f"{'Name':<40} {'Episodes':>9} {'Steps':>10} {'Epsilon':>9}")
    print("-" * 72)
    for name in names:
        try:
            info = Agent.inspect_model(name, model_dir)
        except PersistenceError:
            print(f"{name:<40} {'unreadable':>30}")
            continue
        eps = info['epsilon']
        eps_str = f"{eps:.3f}" if isinstance(eps, float) else str(eps)
        print(f"{name:<40} {str(info['episode_count']):>9} {str(info['training_steps']):>10} {eps_str:>9}")
    print("=" * 72)
    print("\nUse --inspect <name> to see detailed info about a checkpoint.\n")


def print_progress(progress: TrainingProgress) -> None:
    """Default progress callback: one summary line."""
    logger.info(
        f"[{progress.episodes_completed}/{progress.total_episodes}] "
        f"W/L/D {progress.wins}/{progress.losses}/{progress.draws} | "
        f"avg turns {progress.average_turns:.1f}"
    )


def print_startup_banner(config: Config) -> None:
    """Print a welcome banner for the application."""
    print()
    print("=" * 60)
    print("       FIVE REALMS AI - Deep Q-Learning Trainer")
    print("=" * 60)
    print(f"   Decks:     {', '.join(config.DECK_TYPES)}")
    print(f"   Opponent:  {config.OPPONENT_TYPE}")
    print(f"   Rewards:   {config.REWARD_PRESET}")
    print(f"   Device:    {config.DEVICE}")
    print(f"   Model:     {config.model_path(config.MODEL_NAME)}")
    print("=" * 60)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    config = build_config(args)

    # Model management commands need no training setup
    if args.inspect:
        inspect_model(args.inspect, config.MODEL_DIR)
        return
    if args.list_models:
        list_models(config.MODEL_DIR)
        return

    setup_logging(config.LOG_DIR, level=LogLevel[config.LOG_LEVEL])
    log_path = get_log_path()
    if log_path is not None:
        logger.info(f"Logging to {log_path}")

    if config.SEED is not None:
        seed_everything(config.SEED)

    simulation = get_simulation(args.simulation)(config)
    if config.SEED is not None:
        simulation.seed(config.SEED)

    agent = Agent(config)
    if not args.fresh and agent.exists():
        agent.load()

    trainer = Trainer(agent, simulation, config, get_reward_config(config.REWARD_PRESET))

    if args.evaluate:
        deck_a, deck_b = config.DECK_TYPES[0], config.DECK_TYPES[-1]
        results = trainer.evaluate(args.eval_episodes, Matchup(deck_a, deck_b))
        print("\n" + "=" * 60)
        print(f"📊 Evaluation: {deck_a} vs {deck_b} ({args.eval_episodes} games, random opponent)")
        print("=" * 60)
        print(f"   Win Rate:       {results['win_rate'] * 100:.1f}%")
        print(f"   Draw Rate:      {results['draw_rate'] * 100:.1f}%")
        print(f"   Mean Turns:     {results['mean_turns']:.1f}")
        print(f"   Mean Health:    {results['mean_health']:.1f}")
        print(f"   Illegal Picks:  {results['illegal_actions']}")
        print("=" * 60 + "\n")
        agent.dispose()
        return

    print_startup_banner(config)

    try:
        if args.episodes:
            matchup = Matchup(config.DECK_TYPES[0], config.DECK_TYPES[-1])
            trainer.train(config.MAX_EPISODES, matchup, progress_callback=print_progress)
        else:
            trainer.train_matchups(progress_callback=print_progress)
    except KeyboardInterrupt:
        logger.warning("Training interrupted by user")
        agent.save(f"{config.MODEL_NAME}-interrupted")
    finally:
        agent.dispose()


if __name__ == "__main__":
    main()
