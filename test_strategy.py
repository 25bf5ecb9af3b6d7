"""
Tests for AI personalities, assessment, the action queue and war probability.
"""

import random

import pytest

from coalition import CoalitionType
from nation import Modifier, TariffLevel
from strategy import (
    StrategyEngine, StrategyState, Personality, StrategicFocus, ActionType,
    ActionQueue, ThreatAssessment, OpportunityAssessment, STRATEGIES,
)


@pytest.fixture
def engine(config):
    return StrategyEngine(config, rng=random.Random(5))


def give_personality(nation, personality, focus=StrategicFocus.DEVELOP):
    nation.strategy_state = StrategyState(personality=personality, focus=focus)
    return nation.strategy_state


class TestWarProbability:

    def test_relations_above_floor(self, engine, systems):
        ald = systems.registry.get("ALD")
        give_personality(ald, Personality.EXPANSIONIST, StrategicFocus.EXPAND)
        assert engine.war_declaration_probability(ald, "FNR", systems) == 0.0

    def test_hostile_opportunist(self, engine, systems):
        ald = systems.registry.get("ALD")
        give_personality(ald, Personality.OPPORTUNIST, StrategicFocus.EXPAND)
        ald.set_foreign_relation("FNR", -60)
        # base 0.005, opportunist x1.5, expansion focus x1.5
        assert engine.war_declaration_probability(ald, "FNR", systems) == pytest.approx(0.01125)

    def test_revanchism_dominates(self, engine, systems):
        registry = systems.registry
        calm = registry.get("ALD")
        give_personality(calm, Personality.OPPORTUNIST, StrategicFocus.EXPAND)
        calm.set_foreign_relation("FNR", -60)
        calm_chance = engine.war_declaration_probability(calm, "FNR", systems)

        calm.set_territory_lost(40)
        calm.add_modifier(Modifier.REVANCHISM)
        revanchist_chance = engine.war_declaration_probability(calm, "FNR", systems)

        assert revanchist_chance == pytest.approx(0.01125 + 0.02 + 0.1)
        assert revanchist_chance > calm_chance > 0

    def test_deterrence(self, engine, systems):
        ald = systems.registry.get("ALD")
        give_personality(ald, Personality.OPPORTUNIST, StrategicFocus.EXPAND)
        ald.set_foreign_relation("FNR", -60)
        systems.coalitions.create("Shield", CoalitionType.MILITARY, "FNR", ["BRN", "CRV", "DRM"])
        # Four-to-one coalition strength cuts the chance to a tenth
        assert engine.war_declaration_probability(ald, "FNR", systems) == pytest.approx(0.001125)

    def test_coalition_restraint(self, engine, systems):
        ald = systems.registry.get("ALD")
        give_personality(ald, Personality.OPPORTUNIST)
        ald.set_territory_lost(8)
        ald.add_modifier(Modifier.REVANCHISM)
        unrestrained = engine.war_declaration_probability(ald, "FNR", systems)

        systems.coalitions.create("Duo", CoalitionType.MILITARY, "ALD", ["BRN"])
        restrained = engine.war_declaration_probability(ald, "FNR", systems)

        assert unrestrained == pytest.approx(0.0075 + 0.02 + 0.04)
        assert restrained == pytest.approx(unrestrained * 0.1)

    def test_annexed_target(self, engine, systems):
        ald = systems.registry.get("ALD")
        give_personality(ald, Personality.EXPANSIONIST)
        ald.set_foreign_relation("FNR", -90)
        systems.registry.annex("FNR")
        assert engine.war_declaration_probability(ald, "FNR", systems) == 0.0


class TestQueueGate:

    def test_war_requires_queued_declaration(self, engine, systems):
        engine.config.war_base_chance = 1.0
        ald = systems.registry.get("ALD")
        state = give_personality(ald, Personality.EXPANSIONIST, StrategicFocus.EXPAND)
        ald.set_foreign_relation("FNR", -60)

        assert engine.choose_war(ald, systems) is None, "No queued DECLARE_WAR, no war"

        state.queue.push(ActionType.DECLARE_WAR, "FNR", 90)
        assert engine.choose_war(ald, systems) == "FNR"

    def test_queue_keeps_top_two(self):
        queue = ActionQueue()
        queue.push(ActionType.BUILD_MILITARY, priority=60)
        queue.push(ActionType.DECLARE_WAR, "FNR", 90)
        queue.push(ActionType.TRADE_AGREEMENT, "BRN", 40)
        queue.finalize(2)
        assert [a.type for a in queue] == [ActionType.DECLARE_WAR, ActionType.BUILD_MILITARY]
        assert ActionType.TRADE_AGREEMENT not in queue


class TestPersonality:

    def test_personality_is_fixed(self, engine, registry):
        ald = registry.get("ALD")
        first = engine.assign_personality(ald)
        for _ in range(20):
            assert engine.assign_personality(ald) == first

    def test_existing_state_respected(self, engine, registry):
        ald = registry.get("ALD")
        give_personality(ald, Personality.ISOLATIONIST)
        assert engine.assign_personality(ald) == Personality.ISOLATIONIST

    def test_every_personality_registered(self):
        assert set(STRATEGIES) == set(Personality)


class TestAssessment:

    def test_threat_components(self, systems):
        registry = systems.registry
        registry.add_rivalry("ALD", "BRN")
        ald = registry.get("ALD")
        ald.tariff = TariffLevel.EMBARGO

        threat = STRATEGIES[Personality.DEFENSIVE].assess_threats(ald, systems)

        assert threat.military == 20, "Equal-power rival"
        assert threat.economic == 30, "Embargo"
        assert threat.internal == 0
        assert threat.total == pytest.approx(19)
        assert threat.sources == ["BRN"]

    @pytest.mark.parametrize("personality,focus", [
        (Personality.DEFENSIVE, StrategicFocus.DEFEND),
        (Personality.EXPANSIONIST, StrategicFocus.EXPAND),
    ])
    def test_focus_at_war(self, engine, systems, personality, focus):
        ald = systems.registry.get("ALD")
        give_personality(ald, personality)
        systems.wars.declare("ALD", "BRN")
        engine.assess(ald, systems)
        assert ald.strategy_state.focus == focus

    def test_high_threat_forces_defense(self, systems):
        ald = systems.registry.get("ALD")
        strategy = STRATEGIES[Personality.EXPANSIONIST]
        threat = ThreatAssessment(military=100, economic=100)
        assert strategy.select_focus(ald, systems, threat, OpportunityAssessment()) == StrategicFocus.DEFEND

    def test_revanchist_targets_occupier(self, engine, systems):
        ald = systems.registry.get("ALD")
        give_personality(ald, Personality.EXPANSIONIST)
        systems.registry.update_occupation("ALD", 20, by="FNR")

        queue = engine.assess(ald, systems)

        assert ald.strategy_state.focus == StrategicFocus.EXPAND
        action = queue.find(ActionType.DECLARE_WAR)
        assert action is not None
        assert action.target == "FNR"
        assert len(queue) <= 2

    def test_revanchist_spares_coalition_partner(self, engine, systems):
        ald = systems.registry.get("ALD")
        give_personality(ald, Personality.EXPANSIONIST)
        assert systems.coalitions.create("Duo", CoalitionType.MILITARY, "ALD", ["FNR"]) is not None
        systems.registry.update_occupation("ALD", 20, by="FNR")

        queue = engine.assess(ald, systems)

        assert STRATEGIES[Personality.EXPANSIONIST].war_target(ald, systems) is None
        declaration = queue.find(ActionType.DECLARE_WAR)
        assert declaration is None or declaration.target != "FNR"

    def test_developer_queues_trade(self, engine, systems):
        ald = systems.registry.get("ALD")
        give_personality(ald, Personality.TRADING_POWER)
        queue = engine.assess(ald, systems)
        assert ActionType.TRADE_AGREEMENT in queue
        assert ActionType.DECLARE_WAR not in queue


class TestModifiers:

    def test_offensive_chance(self, engine, registry):
        ald = registry.get("ALD")
        give_personality(ald, Personality.EXPANSIONIST)
        ald.add_modifier(Modifier.REVANCHISM)
        assert engine.offensive_chance(ald) == pytest.approx(0.3)

        brn = registry.get("BRN")
        give_personality(brn, Personality.ISOLATIONIST)
        assert engine.offensive_chance(brn) == pytest.approx(0.02)

    def test_relation_drift_is_occasional(self, engine, registry):
        ald = registry.get("ALD")
        give_personality(ald, Personality.DEFENSIVE)
        trials = 2000
        drifted = sum(1 for _ in range(trials) if engine.relation_drift(ald, registry.player) != 0)
        rate = drifted / trials
        assert 0.02 < rate < 0.09, f"Drift rate {rate:.3f} should be near 5%"
