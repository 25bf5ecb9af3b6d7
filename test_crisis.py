"""
Tests for the five-phase crisis escalation ladder.
"""

import random

import pytest

from crisis import CrisisManager, CrisisType, CrisisAction, CrisisOutcome
from errors import InvalidCommandError, UnknownActionError
from nation import Modifier


@pytest.fixture
def crises(systems):
    return CrisisManager(systems.config, systems.registry, systems.events,
                         rng=random.Random(4), declare_war=systems.wars.declare)


@pytest.fixture
def crisis(crises):
    return crises.start(CrisisType.BORDER_INCIDENT, "ALD", "BRN")


class TestEscalation:

    def test_starts_at_incident(self, crisis):
        assert crisis.phase == 1
        assert crisis.phase_name == "incident"
        assert crisis.war_risk == 20
        assert crisis.title == "Aldoria-Brennia Border Clash"

    def test_four_escalations_mean_war(self, systems, crises, crisis):
        for expected in (2, 3, 4):
            crises.act(crisis.id, "ALD", CrisisAction.ESCALATE)
            assert crisis.phase == expected
        crises.act(crisis.id, "ALD", CrisisAction.ESCALATE)

        assert crisis.phase == 5
        assert crisis.outcome == CrisisOutcome.WAR
        assert crisis not in crises.active_crises()
        war = systems.wars.war_between("ALD", "BRN")
        assert war is not None
        assert war.attacker == "ALD"
        assert war.goal.type == "HUMILIATION"

    def test_either_side_may_escalate(self, crises, crisis):
        crises.act(crisis.id, "ALD", CrisisAction.ESCALATE)
        crises.act(crisis.id, "BRN", CrisisAction.ESCALATE)
        assert crisis.phase == 3

    def test_hold_firm_never_advances(self, crises, crisis):
        for _ in range(5):
            crises.act(crisis.id, "ALD", CrisisAction.HOLD_FIRM)
        assert crisis.phase == 1
        assert crisis.war_risk == 45

    def test_mediation_never_advances(self, crises, crisis):
        crises.act(crisis.id, "ALD", CrisisAction.ESCALATE)
        for _ in range(10):
            before = crisis.phase
            crises.act(crisis.id, "BRN", CrisisAction.SEEK_MEDIATION)
            assert crisis.phase <= before

    def test_mediation_unavailable_at_ultimatum(self, crises, crisis):
        crises.act(crisis.id, "ALD", CrisisAction.ESCALATE)
        crises.act(crisis.id, "ALD", CrisisAction.ESCALATE)
        with pytest.raises(UnknownActionError):
            crises.act(crisis.id, "BRN", CrisisAction.SEEK_MEDIATION)

    def test_summit_unavailable_at_incident(self, crises, crisis):
        with pytest.raises(UnknownActionError) as excinfo:
            crises.act(crisis.id, "ALD", CrisisAction.PROPOSE_SUMMIT)
        assert "ESCALATE" in str(excinfo.value)


class TestResolution:

    def test_back_down_at_ultimatum_humiliates(self, systems, crises, crisis):
        crises.act(crisis.id, "BRN", CrisisAction.ESCALATE)
        crises.act(crisis.id, "BRN", CrisisAction.ESCALATE)
        crises.act(crisis.id, "ALD", CrisisAction.BACK_DOWN)

        assert crisis.outcome == CrisisOutcome.PEACEFUL
        assert systems.registry.get("ALD").has(Modifier.HUMILIATED)
        assert systems.registry.relation_between("ALD", "BRN") == 30

    def test_early_back_down_is_free_of_shame(self, systems, crises, crisis):
        crises.act(crisis.id, "ALD", CrisisAction.BACK_DOWN)
        assert crisis.outcome == CrisisOutcome.PEACEFUL
        assert not systems.registry.get("ALD").has(Modifier.HUMILIATED)

    def test_summit_can_settle(self, systems, crises, crisis, monkeypatch):
        crises.act(crisis.id, "ALD", CrisisAction.ESCALATE)
        monkeypatch.setattr(crises.rng, "random", lambda: 0.0)
        crises.act(crisis.id, "BRN", CrisisAction.PROPOSE_SUMMIT)
        assert crisis.outcome == CrisisOutcome.PEACEFUL
        assert systems.registry.relation_between("ALD", "BRN") == 45

    def test_resolved_crisis_has_no_actions(self, crises, crisis):
        crises.act(crisis.id, "ALD", CrisisAction.BACK_DOWN)
        assert crisis.available_actions() == []
        with pytest.raises(UnknownActionError):
            crises.act(crisis.id, "BRN", CrisisAction.HOLD_FIRM)


class TestCommands:

    def test_non_participant(self, crises, crisis):
        with pytest.raises(InvalidCommandError):
            crises.act(crisis.id, "FNR", CrisisAction.HOLD_FIRM)

    def test_unknown_crisis(self, crises):
        with pytest.raises(InvalidCommandError):
            crises.act("crisis-999", "ALD", CrisisAction.HOLD_FIRM)

    def test_active_crisis_cap(self, crises):
        assert crises.start(CrisisType.BORDER_INCIDENT, "ALD", "BRN")
        assert crises.start(CrisisType.TRADE_WAR, "CRV", "DRM")
        assert crises.start(CrisisType.ASSASSINATION, "ESK", "FNR")
        assert crises.start(CrisisType.PROXY_WAR, "ALD", "FNR") is None

    def test_one_crisis_per_pair(self, crises, crisis):
        assert crises.start(CrisisType.TRADE_WAR, "BRN", "ALD") is None

    def test_invalid_participants(self, crises):
        assert crises.start(CrisisType.BORDER_INCIDENT, "ALD", "ALD") is None
        assert crises.start(CrisisType.BORDER_INCIDENT, "ALD", "ZZZ") is None


class TestMonthlyUpdate:

    def test_expired_deadline_escalates(self, systems, crises, crisis):
        assert crisis.deadline == 1
        systems.registry.tick = 1
        assert crises.check_deadlines() == 1
        assert crisis.phase == 2
        assert crisis.deadline == 2
        assert crisis.history[-1] == (1, "ALD", "ESCALATE")

    def test_vanished_participant_ends_crisis(self, systems, crises, crisis):
        systems.registry.annex("BRN")
        systems.registry.tick = 1
        crises.check_deadlines()
        assert crisis.outcome == CrisisOutcome.PEACEFUL

    def test_aggressive_rival_starts_incident(self, systems, crises):
        registry = systems.registry
        registry.add_rivalry("ALD", "BRN")
        registry.adjust_relation_between("ALD", "BRN", -50)
        registry.get("ALD").political.aggression = 4
        systems.config.border_incident_chance = 1.0

        assert crises.ai_triggers() == 1
        crisis = crises.active_crises()[0]
        assert crisis.participants == ("ALD", "BRN")
        assert crisis.type == CrisisType.BORDER_INCIDENT
