"""
Action definitions for the game.
Actions are plain, deterministic instructions; ActionExecutor applies them.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Action:
    """Base action class. All actions have a type, faction, and payload."""
    type: str  # e.g., "conscript", "march", "send_envoy"
    faction: str  # faction_id performing the action
    payload: dict[str, Any] = field(default_factory=dict)  # Action-specific data

    @property
    def category(self) -> str:
        return ACTION_CATEGORIES.get(self.type, "other")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "faction": self.faction, "payload": dict(self.payload)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Action":
        return cls(
            type=str(data["type"]),
            faction=str(data.get("faction") or ""),
            payload=dict(data.get("payload") or {}),
        )


# Log-only type appended by the battle resolver
BATTLE_RESULT = "battle_result"

ACTION_CATEGORIES = {
    "conscript": "domestic",
    "develop": "domestic",
    "train": "domestic",
    "recruit": "domestic",
    "assign": "domestic",
    "transfer": "domestic",
    "send_envoy": "diplomacy",
    "persuade": "diplomacy",
    "threaten": "diplomacy",
    "gift": "diplomacy",
    "march": "military",
    "scout": "military",
    "fortify": "military",
    "ambush": "military",
    BATTLE_RESULT: "military",
}

CONSCRIPT_SCALES = ("small", "medium", "large")
DEVELOP_FOCUSES = ("agriculture", "commerce", "defense")
TRANSFER_TYPES = ("troops", "food")
TROOPS_SCALES = ("small", "medium", "main")


# ===== Domestic =====

def conscript(faction: str, city: str, scale: str = "small") -> Action:
    """Raise infantry in an own city. Costs food and morale (see CONSCRIPT_TABLE)."""
    return Action(type="conscript", faction=faction, payload={"city": city, "scale": scale})


def develop(faction: str, city: str, focus: str) -> Action:
    """Try to raise one development grade (agriculture, commerce or defense)."""
    return Action(type="develop", faction=faction, payload={"city": city, "focus": focus})


def train(faction: str, city: str) -> Action:
    return Action(type="train", faction=faction, payload={"city": city})


def recruit(faction: str, city: str, target_general: str) -> Action:
    return Action(
        type="recruit",
        faction=faction,
        payload={"city": city, "target_general": target_general},
    )


def assign(faction: str, general: str, destination: str) -> Action:
    """Move a general to an own city adjacent to (or equal to) its current city."""
    return Action(
        type="assign",
        faction=faction,
        payload={"general": general, "destination": destination},
    )


def transfer(
    faction: str,
    city_from: str,
    city_to: str,
    transfer_type: str = "troops",
    scale: str = "small",
) -> Action:
    """
    Move troops (a ratio of each troop type) or a fixed food amount between adjacent own cities.
    Example: transfer("liu", "gangha", "hagu", "food", "medium")
    """
    return Action(
        type="transfer",
        faction=faction,
        payload={"from": city_from, "to": city_to, "transfer_type": transfer_type, "scale": scale},
    )


# ===== Diplomacy =====

def send_envoy(faction: str, target: str, purpose: str = "alliance") -> Action:
    return Action(type="send_envoy", faction=faction, payload={"target": target, "purpose": purpose})


def persuade(faction: str, target_general: str, method: str = "") -> Action:
    return Action(
        type="persuade",
        faction=faction,
        payload={"target_general": target_general, "method": method},
    )


def threaten(faction: str, target: str) -> Action:
    return Action(type="threaten", faction=faction, payload={"target": target})


def gift(faction: str, target: str, amount: int) -> Action:
    """Send food from the richest own city to the target's poorest city."""
    return Action(type="gift", faction=faction, payload={"target": target, "amount": amount})


# ===== Military =====

def march(
    faction: str,
    city_from: str,
    city_to: str,
    generals: list[str],
    troops_scale: str = "medium",
) -> Action:
    """
    March generals and a share of the origin city's troops to an adjacent city or battlefield.
    Entering a hostile city, or a battlefield held by a hostile faction, starts a battle.
    """
    return Action(
        type="march",
        faction=faction,
        payload={
            "from": city_from,
            "to": city_to,
            "generals": list(generals),
            "troops_scale": troops_scale,
        },
    )


def scout(faction: str, target: str) -> Action:
    return Action(type="scout", faction=faction, payload={"target": target})


def fortify(faction: str, city: str) -> Action:
    return Action(type="fortify", faction=faction, payload={"city": city})


def ambush(faction: str, location: str, general: str) -> Action:
    return Action(type="ambush", faction=faction, payload={"location": location, "general": general})

