"""
Campaign Turn-Based Simulation Engine
Core engine without web framework, database, or UI
"""

ACTIONS_PER_TURN = 3

MAX_BATTLE_TURNS = 4

# Victory objectives live in GameState.victory_criteria and scenario manifests.
# Shape: {"decisive_battlefield": "chibi", "primary_objective": "nanjun", ...}

# Food per turn: floor(base[population] * multiplier[agriculture]) - floor(troops * rate)
FOOD_PRODUCTION_BASE = {"large": 600, "medium": 400, "small": 200}
AGRICULTURE_MULTIPLIER = {"D": 0.4, "C": 0.7, "B": 1.0, "A": 1.4, "S": 1.8}
FOOD_CONSUMPTION_PER_TROOP = 0.1
