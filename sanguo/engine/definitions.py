"""
Static scenario content.
All scenario data lives under data/scenarios/<scenario_id>/: manifest.json, cities.json,
battlefields.json, generals.json, factions.json, diplomacy.json, events.json and ai.json.
Every loader returns fresh objects, so callers may mutate what they get.
"""

import json
import uuid
from pathlib import Path
from typing import Any

from sanguo.engine import ACTIONS_PER_TURN
from sanguo.engine.events import ScenarioEvent
from sanguo.engine.faction_ai import RuleStrategy
from sanguo.engine.state import GameState
from sanguo.engine.turns import calculate_season, determine_phase

DATA_DIR = Path(__file__).parent.parent / "data"
SCENARIOS_DIR = DATA_DIR / "scenarios"

SCENARIO_FILES = (
    "cities.json",
    "battlefields.json",
    "generals.json",
    "factions.json",
    "diplomacy.json",
)


def _default_max_turns() -> int:
    """Single place for default: sanguo.config.DEFAULT_MAX_TURNS."""
    from sanguo.config import DEFAULT_MAX_TURNS
    return DEFAULT_MAX_TURNS


def _scenario_dir(scenario_id: str) -> Path:
    return SCENARIOS_DIR / scenario_id


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def list_scenarios() -> list[dict]:
    """Return [{ id, display_name, description }, ...] for every dir with a manifest.json."""
    out = []
    if not SCENARIOS_DIR.exists():
        return out
    for d in sorted(SCENARIOS_DIR.iterdir()):
        manifest_path = d / "manifest.json"
        if not d.is_dir() or not manifest_path.exists():
            continue
        try:
            m = _read_json(manifest_path)
            out.append({
                "id": m.get("id", d.name),
                "display_name": m.get("display_name", d.name),
                "description": m.get("description", ""),
            })
        except (json.JSONDecodeError, OSError):
            out.append({"id": d.name, "display_name": d.name, "description": ""})
    return out


def load_scenario(scenario_id: str) -> dict[str, Any]:
    """
    Load the raw scenario template: the manifest merged with the entity files.
    Returns { id, display_name, max_turns, victory_criteria, cities, battlefields, generals,
    factions, diplomacy }.
    """
    scenario_dir = _scenario_dir(scenario_id)
    if not scenario_dir.is_dir():
        raise FileNotFoundError(f"Scenario not found: {scenario_id}")
    manifest_path = scenario_dir / "manifest.json"
    if not manifest_path.exists():
        raise FileNotFoundError(f"manifest.json not found in scenario: {scenario_id}")
    manifest = _read_json(manifest_path)

    template: dict[str, Any] = {
        "id": manifest.get("id", scenario_id),
        "display_name": manifest.get("display_name", scenario_id),
        "max_turns": int(manifest.get("max_turns") or _default_max_turns()),
        "victory_criteria": dict(manifest.get("victory_criteria") or {}),
    }
    for filename in SCENARIO_FILES:
        path = scenario_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"{filename} not found in scenario: {scenario_id}")
        template[filename.removesuffix(".json")] = _read_json(path)
    return template


def create_scenario_state(scenario_id: str, game_id: str | None = None) -> GameState:
    """Build a fresh turn-1 GameState from a scenario template."""
    template = load_scenario(scenario_id)
    diplomacy = template["diplomacy"]
    if isinstance(diplomacy, list):
        diplomacy = {"relations": diplomacy}
    return GameState.from_dict({
        "game_id": game_id or f"{scenario_id}-{uuid.uuid4().hex[:8]}",
        "scenario_id": template["id"],
        "turn": 1,
        "max_turns": template["max_turns"],
        "phase": determine_phase(1).value,
        "season": calculate_season(1),
        "cities": template["cities"],
        "battlefields": template["battlefields"],
        "generals": template["generals"],
        "factions": template["factions"],
        "diplomacy": diplomacy,
        "actions_remaining": ACTIONS_PER_TURN,
        "victory_criteria": template["victory_criteria"],
    })


def load_event_catalog(scenario_id: str) -> list[ScenarioEvent]:
    path = _scenario_dir(scenario_id) / "events.json"
    if not path.exists():
        return []
    return [ScenarioEvent.from_dict(e) for e in _read_json(path)]


def load_strategies(scenario_id: str) -> dict[str, RuleStrategy]:
    """Rule-based strategies keyed by faction id, from ai.json (empty if the file is absent)."""
    path = _scenario_dir(scenario_id) / "ai.json"
    if not path.exists():
        return {}
    return {
        faction_id: RuleStrategy(faction_id, config)
        for faction_id, config in _read_json(path).items()
    }
