"""
Pytest fixtures: a fresh Red Cliffs state, its manager and a seeded executor.
"""

import pytest

from sanguo.engine.combat import BattleEngine
from sanguo.engine.definitions import create_scenario_state
from sanguo.engine.executor import ActionExecutor
from sanguo.engine.game_state import GameStateManager
from sanguo.engine.rng import create_seeded_rng


@pytest.fixture
def state():
    """Turn-1 Red Cliffs state, no difficulty applied."""
    return create_scenario_state("red_cliffs", game_id="test-game")


@pytest.fixture
def manager(state):
    return GameStateManager(state)


@pytest.fixture
def rng():
    return create_seeded_rng(42)


@pytest.fixture
def battle_engine(rng):
    return BattleEngine(rng)


@pytest.fixture
def executor(manager, battle_engine, rng):
    return ActionExecutor(manager, battle_engine, rng)
