"""
Tests for the influence economy and influence actions.
"""

import random

import pytest

from events import DiplomaticEventType
from nation import Modifier
from soft_power import SoftPowerSystem, InfluenceActionType


@pytest.fixture
def soft_power(config, registry):
    return SoftPowerSystem(config, registry, registry.events, rng=random.Random(6))


class TestEconomy:

    def test_starting_influence(self, soft_power):
        assert soft_power.state("PLAYER").influence == 50

    def test_monthly_income(self, soft_power, registry):
        assert soft_power.monthly_income("ALD") == 6
        registry.get("ALD").add_modifier(Modifier.WORLD_PARIAH)
        assert soft_power.monthly_income("ALD") == 3, "Pariahs earn half"

    def test_opinion_feeds_income(self, soft_power):
        soft_power.state("ALD").world_opinion = 40
        assert soft_power.monthly_income("ALD") == 8

    def test_detection_chance(self, soft_power, registry):
        assert soft_power.detection_chance("ALD") == pytest.approx(0.2)
        nation = registry.get("ALD")
        nation.political.freedom = 5
        nation.authority = 70
        nation.allies = ["BRN", "CRV", "DRM", "ESK", "FNR"]
        assert soft_power.detection_chance("ALD") == pytest.approx(0.6)

    def test_cannot_afford_influence(self, soft_power):
        soft_power.state("PLAYER").influence = 5
        result = soft_power.can_afford("PLAYER", InfluenceActionType.CULTURAL_EXCHANGE)
        assert not result
        assert result.message.startswith("Not enough influence")

    def test_cannot_afford_budget(self, soft_power, registry):
        registry.player.treasury = 1e6
        result = soft_power.execute(InfluenceActionType.ECONOMIC_AID, "ALD")
        assert not result
        assert result.message.startswith("Not enough budget")
        assert soft_power.state("PLAYER").influence == 50, "Nothing spent on a refused action"


class TestActions:

    def test_economic_aid(self, soft_power, registry):
        result = soft_power.execute(InfluenceActionType.ECONOMIC_AID, "ALD")
        assert result
        assert registry.get("ALD").relations == 50
        state = soft_power.state("PLAYER")
        assert state.influence == 30
        assert state.world_opinion == 5
        assert registry.player.treasury == 1e9 - 100e6
        assert registry.events.of_type(DiplomaticEventType.INFLUENCE)

    def test_detected_covert_action(self, soft_power, registry, monkeypatch):
        monkeypatch.setattr(soft_power.rng, "random", lambda: 0.0)
        result = soft_power.execute(InfluenceActionType.FUND_OPPOSITION, "ALD")
        assert result
        assert result.value.detected
        assert registry.get("ALD").relations == -25
        assert soft_power.state("PLAYER").world_opinion == -10
        assert soft_power.state("PLAYER").active == [], "A blown operation is not carried forward"
        assert registry.events.of_type(DiplomaticEventType.INFLUENCE)[0].severity == 2

    def test_detected_espionage_sabotages_nothing(self, soft_power, registry, monkeypatch):
        monkeypatch.setattr(soft_power.rng, "random", lambda: 0.0)
        result = soft_power.execute(InfluenceActionType.ESPIONAGE, "ALD")
        assert result.value.detected
        assert registry.get("ALD").soldiers == 100_000
        assert registry.get("ALD").relations == -15
        assert soft_power.state("PLAYER").world_opinion == -5

    def test_detected_propaganda_leaves_target_opinion(self, soft_power, registry, monkeypatch):
        monkeypatch.setattr(soft_power.rng, "random", lambda: 0.0)
        soft_power.execute(InfluenceActionType.PROPAGANDA_CAMPAIGN, "ALD")
        assert registry.get("ALD").relations == -5
        assert soft_power.state("ALD").world_opinion == 0
        assert soft_power.state("PLAYER").world_opinion == 0
        assert soft_power.state("PLAYER").active == []

    def test_funded_opposition_erodes_power(self, soft_power, registry, monkeypatch):
        monkeypatch.setattr(soft_power.rng, "random", lambda: 0.99)
        before = registry.recalculate_power("ALD")
        soft_power.execute(InfluenceActionType.FUND_OPPOSITION, "ALD")

        for _ in range(6):
            soft_power.update()

        target = registry.get("ALD")
        assert target.political.stability == 54
        assert target.power < before
        assert soft_power.state("PLAYER").active == [], "Campaign runs its six months"

    def test_sustained_opposition_raises_unrest(self, soft_power, registry, monkeypatch):
        monkeypatch.setattr(soft_power.rng, "random", lambda: 0.99)
        registry.get("ALD").political.stability = 41
        soft_power.execute(InfluenceActionType.FUND_OPPOSITION, "ALD")
        soft_power.update()
        soft_power.update()
        assert registry.get("ALD").political.unrest == 4

    def test_undetected_covert_action_is_silent(self, soft_power, registry, monkeypatch):
        monkeypatch.setattr(soft_power.rng, "random", lambda: 0.99)
        soft_power.execute(InfluenceActionType.PROPAGANDA_CAMPAIGN, "ALD")
        assert registry.get("ALD").relations == 25
        assert soft_power.state("ALD").world_opinion == -15
        assert registry.events.of_type(DiplomaticEventType.INFLUENCE) == []

    def test_cultural_exchange_builds_relations_monthly(self, soft_power, registry):
        soft_power.execute(InfluenceActionType.CULTURAL_EXCHANGE, "ALD")
        assert registry.get("ALD").relations == 25

        soft_power.update()

        assert registry.get("ALD").relations == 27
        record = soft_power.state("PLAYER").active[0]
        assert record.remaining == 11
        assert soft_power.state("PLAYER").influence == 45, "40 after the cost, plus 5 income"

    def test_host_event(self, soft_power, registry):
        result = soft_power.execute(InfluenceActionType.HOST_EVENT)
        assert result
        assert all(n.relations == 35 for n in registry.active_nations())
        assert soft_power.state("PLAYER").world_opinion == 20
        assert soft_power.state("PLAYER").influence == 0

    def test_invalid_target(self, soft_power):
        assert not soft_power.execute(InfluenceActionType.CULTURAL_EXCHANGE, "ZZZ")
        assert not soft_power.execute(InfluenceActionType.CULTURAL_EXCHANGE, "PLAYER")
        assert not soft_power.execute(InfluenceActionType.CULTURAL_EXCHANGE)
