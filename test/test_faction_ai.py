"""
Tests for the faction AI: rule strategies from ai.json and the external turn client.
"""

import logging

import pytest

from sanguo.engine.definitions import load_strategies
from sanguo.engine.faction_ai import FactionAIEngine, RuleStrategy
from sanguo.engine.state import GeneralCondition


def _engine(manager, executor, rng, client=None):
    return FactionAIEngine(manager, executor, rng, load_strategies("red_cliffs"), client=client)


def _go_to_turn(manager, turn):
    while manager.state.turn < turn:
        manager.advance_turn()


def test_no_milestone_before_turn_three(manager, executor, rng):
    outcome = _engine(manager, executor, rng).process_all()
    assert manager.get_city("nanjun").troops.infantry == 15000
    assert "cao_m_conscript1" not in manager.state.flags
    assert outcome.battle is None


def test_turn_three_levy(manager, executor, rng):
    _go_to_turn(manager, 3)
    outcome = _engine(manager, executor, rng).process_all()
    assert manager.get_city("nanjun").troops.infantry == 20000
    assert manager.get_flag("cao_m_conscript1") is True
    assert "Cao Cao: a large levy is under way in Nanjun." in outcome.changes
    cao_actions = [e.action for e in manager.state.action_log if e.action.faction == "cao"]
    assert [a.type for a in cao_actions] == ["conscript"]
    # AI actions never touch the player's budget
    assert manager.state.actions_remaining == 3


def test_milestone_fires_once(manager, executor, rng):
    _go_to_turn(manager, 3)
    engine = _engine(manager, executor, rng)
    engine.process_all()
    manager.advance_turn()
    engine.process_all()
    assert manager.get_city("nanjun").troops.infantry == 20000


def test_maintenance_runs_for_every_ai_faction(manager, executor, rng):
    _engine(manager, executor, rng).process_all()
    # preparation phase training bonus for cao, unallied bonus for sun
    assert manager.get_city("nanjun").training == 78
    assert manager.get_city("jiangling").training == 68
    assert manager.get_city("sishang").training == 72


def test_halt_flag_stops_planning_but_not_upkeep(manager, executor, rng):
    _go_to_turn(manager, 3)
    manager.set_flag("decisive_victory", True)
    _engine(manager, executor, rng).process_all()
    assert manager.get_city("nanjun").troops.infantry == 15000
    assert manager.get_city("nanjun").training == 78
    assert "cao_m_conscript1" not in manager.state.flags


def test_fleet_deploys_to_red_cliffs(manager, rng):
    strategy = RuleStrategy("cao", {
        "milestones": [{
            "turn": 9,
            "flag": "cao_chibi_deployed",
            "deployments": [{"general": {"generals": ["caimao", "zhangyun"]}, "destination": "chibi"}],
            "messages": ["admirals {generals} at Red Cliffs"],
        }],
    })
    _go_to_turn(manager, 9)
    engine = FactionAIEngine(manager, None, rng, {"cao": strategy})
    plan = strategy.plan_turn(manager.state, engine.build_context("cao"), rng)
    assert [(d.general_id, d.destination) for d in plan.deployments] == [
        ("caimao", "chibi"), ("zhangyun", "chibi"),
    ]
    assert plan.messages == ["admirals Cai Mao, Zhang Yun at Red Cliffs"]
    assert plan.flags_to_set == {"cao_chibi_deployed": True}


def test_empty_selector_skips_rule(manager, rng):
    strategy = RuleStrategy("cao", {
        "rules": [{
            "priority": 1,
            "deployments": [{"general": {"generals": ["caimao"]}, "destination": "chibi"}],
            "flags_to_set": {"should_not_be_set": True},
            "messages": ["never"],
        }],
    })
    manager.update_general("caimao", condition=GeneralCondition.DEAD)
    engine = FactionAIEngine(manager, None, rng, {"cao": strategy})
    plan = strategy.plan_turn(manager.state, engine.build_context("cao"), rng)
    assert plan.deployments == []
    assert plan.flags_to_set == {}
    assert plan.messages == []


def test_turn_placeholder_is_replaced(manager, rng):
    strategy = RuleStrategy("cao", {"rules": [{"flags_to_set": {"cao_last_attack_turn": "$turn"}}]})
    _go_to_turn(manager, 14)
    engine = FactionAIEngine(manager, None, rng, {"cao": strategy})
    plan = strategy.plan_turn(manager.state, engine.build_context("cao"), rng)
    assert plan.flags_to_set == {"cao_last_attack_turn": 14}


def test_invalid_condition_rejected_at_load():
    with pytest.raises(ValueError):
        RuleStrategy("cao", {"rules": [{"condition": {"moon_phase": "full"}}]})


class ScriptedClient:
    def __init__(self, responses):
        self.responses = responses
        self.views = []

    def request_faction_turn(self, faction_id, view):
        self.views.append((faction_id, view))
        return self.responses.get(faction_id, {"actions": []})


def test_client_orders_are_applied(manager, executor, rng):
    client = ScriptedClient({"cao": {
        "actions": [
            {"type": "conscript", "params": {"city": "nanjun", "scale": "small"}},
            {"type": "pass"},
            {"type": "assign", "params": {"general": "caimao", "destination": "chibi"}},
        ],
        "message": "Cao Cao stirs",
    }})
    outcome = _engine(manager, executor, rng, client=client).process_all()
    assert manager.get_city("nanjun").troops.infantry == 16000
    assert manager.get_general("caimao").location == "chibi"
    assert "Cao Cao stirs" in outcome.changes
    # The client only ever sees a filtered view
    faction_id, view = client.views[0]
    assert faction_id == "cao"
    assert all(c["owner"] == "cao" for c in view["own_cities"])


class BrokenClient:
    def request_faction_turn(self, faction_id, view):
        raise ConnectionError("no answer")


def test_failing_client_falls_back_to_rules(manager, executor, rng, caplog):
    _go_to_turn(manager, 3)
    with caplog.at_level(logging.WARNING, logger="sanguo.engine.faction_ai"):
        _engine(manager, executor, rng, client=BrokenClient()).process_all()
    assert manager.get_city("nanjun").troops.infantry == 20000
    assert "no answer" in caplog.text


def test_invalid_client_response_falls_back(manager, executor, rng, caplog):
    too_many = {"cao": {"actions": [{"type": "train", "params": {"city": "nanjun"}}] * 4}}
    _go_to_turn(manager, 3)
    with caplog.at_level(logging.WARNING, logger="sanguo.engine.faction_ai"):
        _engine(manager, executor, rng, client=ScriptedClient(too_many)).process_all()
    assert manager.get_city("nanjun").troops.infantry == 20000
    assert "failed validation" in caplog.text


def test_malformed_client_action_is_logged(manager, executor, rng, caplog):
    client = ScriptedClient({"cao": {"actions": [{"type": "conscript", "params": {}}]}})
    with caplog.at_level(logging.WARNING, logger="sanguo.engine.faction_ai"):
        _engine(manager, executor, rng, client=client).process_all()
    assert "malformed action conscript" in caplog.text
    assert manager.get_city("nanjun").troops.infantry == 15000
