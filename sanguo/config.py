"""
Single place for default game/scenario configuration.
Change DEFAULT_SCENARIO_ID to switch which scenario is used when creating a new game
(when no scenario_id is provided). Environment variables override the defaults.
"""

import os

# Scenario id from data/scenarios/<id>/ (e.g. "red_cliffs"). This is the default for new games.
DEFAULT_SCENARIO_ID = os.environ.get("SANGUO_SCENARIO", "red_cliffs")

# One of the keys in engine.difficulty.DIFFICULTY_PRESETS
DEFAULT_DIFFICULTY = os.environ.get("SANGUO_DIFFICULTY", "normal")

try:
    DEFAULT_SEED = int(os.environ.get("SANGUO_SEED", "42"))
except ValueError:
    DEFAULT_SEED = 42

# Used when a scenario manifest does not set max_turns
DEFAULT_MAX_TURNS = 20

# Saved campaigns. SANGUO_DATABASE_URL wins over the platform-provided DATABASE_URL;
# with neither set the API keeps its games in sanguo/api/sanguo.db.
DATABASE_URL = os.environ.get("SANGUO_DATABASE_URL") or os.environ.get("DATABASE_URL")
