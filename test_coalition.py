"""
Tests for coalition membership and the Article 5 collective-defense cascade.
"""

import pytest

from coalition import CoalitionType, CoalitionWarStatus, CoalitionRequirements
from events import DiplomaticEventType
from nation import Modifier
from war import WarStatus


@pytest.fixture
def coalitions(systems):
    return systems.coalitions


@pytest.fixture
def pact(coalitions):
    """Aldoria leads a five-member defensive pact; Fenrisia is left outside."""
    return coalitions.create("Northern Pact", CoalitionType.MILITARY, "ALD", ["BRN", "CRV", "DRM", "ESK"])


class TestArticleFive:

    def test_mobilization(self, systems, coalitions, pact):
        registry = systems.registry
        before = {m: registry.get(m).soldiers for m in pact.members}

        cw = coalitions.trigger_article_five("ALD", "FNR")

        assert cw is not None
        assert sorted(cw.mobilized) == ["BRN", "CRV", "DRM", "ESK"]
        contributed = sum(before[m] - registry.get(m).soldiers for m in cw.mobilized)
        assert cw.reinforcements == contributed
        assert abs(contributed - 0.1 * sum(before[m] for m in cw.mobilized)) <= len(cw.mobilized), \
            "Each ally sends a rounded 10% of its soldiers"
        assert registry.get("ALD").soldiers == before["ALD"] + contributed

        for ally in cw.mobilized:
            war = systems.wars.war_between(ally, "FNR")
            assert war is not None
            assert war.attacker == ally
            assert war.goal.type == "DEFENSIVE"
            assert war.coalition_war_id == cw.id

        event = systems.events.of_type(DiplomaticEventType.ARTICLE_FIVE)[-1]
        assert event.severity == 3

    def test_annexed_member_excluded(self, systems, coalitions, pact):
        systems.registry.annex("DRM")
        cw = coalitions.trigger_article_five("ALD", "FNR")
        assert "DRM" not in cw.mobilized
        assert cw.reinforcements == 30_000

    def test_ally_already_at_war_not_redeclared(self, systems, coalitions, pact):
        existing = systems.wars.declare("BRN", "FNR")
        cw = coalitions.trigger_article_five("ALD", "FNR")
        assert "BRN" in cw.mobilized
        assert systems.wars.war_between("BRN", "FNR") is existing
        assert existing.coalition_war_id is None

    def test_no_coalition_no_cascade(self, coalitions, pact):
        assert coalitions.trigger_article_five("FNR", "ALD") is None

    def test_member_aggressor_no_cascade(self, coalitions, pact):
        assert coalitions.trigger_article_five("ALD", "BRN") is None

    def test_trigger_once_per_aggressor(self, coalitions, pact):
        assert coalitions.trigger_article_five("ALD", "FNR") is not None
        assert coalitions.trigger_article_five("ALD", "FNR") is None

    def test_allies_bound_to_aggressor_stay_out(self, systems, coalitions, pact):
        coalitions.create("Eastern Accord", CoalitionType.MILITARY, "FNR", ["ESK"])
        cw = coalitions.trigger_article_five("ALD", "FNR")
        assert "ESK" not in cw.mobilized
        assert systems.wars.war_between("ESK", "FNR") is None


class TestCoalitionWarResolution:

    @pytest.fixture
    def cw(self, coalitions, pact):
        return coalitions.trigger_article_five("ALD", "FNR")

    def test_aggressor_annexed(self, systems, coalitions, cw):
        systems.registry.annex("FNR", "ALD")
        assert coalitions.update_coalition_wars() == 1
        assert cw.status == CoalitionWarStatus.VICTORY

    def test_aggressor_loses_territory(self, systems, coalitions, cw):
        systems.registry.update_occupation("FNR", 50, by="BRN")
        coalitions.update_coalition_wars()
        assert cw.status == CoalitionWarStatus.VICTORY
        assert systems.registry.get("FNR").has(Modifier.HUMILIATED)
        assert systems.wars.war_between("BRN", "FNR") is None, "Coalition wars end with the cascade"

    def test_defender_annexed(self, systems, coalitions, cw):
        systems.registry.annex("ALD", "FNR")
        coalitions.update_coalition_wars()
        assert cw.status == CoalitionWarStatus.DEFEAT

    def test_stalemate(self, systems, coalitions, cw):
        systems.registry.tick = cw.started_at + 181
        coalitions.update_coalition_wars()
        assert cw.status == CoalitionWarStatus.PEACE

    def test_still_running(self, coalitions, cw):
        assert coalitions.update_coalition_wars() == 0
        assert cw.is_active

    def test_surrender(self, systems, coalitions, pact, cw):
        assert coalitions.surrender(pact.id, "FNR")
        assert systems.registry.get("FNR").has(Modifier.HUMILIATED)
        assert cw.status == CoalitionWarStatus.VICTORY
        assert systems.wars.wars_involving("FNR") == []
        assert all(w.status == WarStatus.VICTORY for w in systems.wars.history if w.involves("FNR"))


class TestMembership:

    def test_create_needs_two_members(self, coalitions):
        assert coalitions.create("Solo", CoalitionType.MILITARY, "ALD", []) is None
        assert coalitions.coalitions == {}

    def test_create_skips_enemies(self, systems, coalitions):
        systems.wars.declare("ALD", "BRN")
        assert coalitions.create("Truce", CoalitionType.MILITARY, "ALD", ["BRN"]) is None

    def test_dissolves_below_two(self, coalitions):
        duo = coalitions.create("Duo", CoalitionType.MILITARY, "ALD", ["BRN"])
        assert coalitions.leave(duo.id, "BRN")
        assert coalitions.get(duo.id) is None

    def test_leader_succession(self, coalitions, pact):
        coalitions.leave(pact.id, "ALD")
        assert pact.leader == "BRN"
        assert "ALD" not in pact.members

    def test_kick(self, systems, coalitions, pact):
        assert coalitions.kick(pact.id, "CRV")
        assert "CRV" not in pact.members
        assert systems.registry.relation_between("CRV", "ALD") == 20
        assert coalitions.kick(pact.id, "ALD") is False, "The leader cannot be expelled"

    def test_join_refused_while_at_war_with_member(self, systems, coalitions, pact):
        systems.wars.declare("FNR", "BRN")
        result = coalitions.join(pact.id, "FNR")
        assert not result
        assert "at war" in result.message

    def test_annexed_member_removed(self, systems, coalitions, pact):
        systems.registry.annex("CRV")
        assert "CRV" not in pact.members

    def test_requirements(self, coalitions):
        club = coalitions.create("Club", CoalitionType.TRADE, "ALD", ["BRN", "ESK", "FNR"],
                                 CoalitionRequirements(min_relations=35))
        assert club.members == ["ALD", "BRN"]

    def test_trade_coalition_is_not_military(self, coalitions):
        coalitions.create("Market", CoalitionType.TRADE, "ALD", ["BRN"])
        assert not coalitions.share_military_coalition("ALD", "BRN")
        assert coalitions.trigger_article_five("ALD", "FNR") is None

    def test_coalitions_count_toward_power(self, systems, coalitions):
        before = systems.registry.get("ALD").power
        coalitions.create("Duo", CoalitionType.MILITARY, "ALD", ["BRN"])
        assert systems.registry.get("ALD").power > before


class TestInvitations:

    def test_player_invitation_accepted(self, systems, coalitions, pact):
        result = coalitions.invite(pact.id, "PLAYER")
        assert result
        invite = result.value
        assert invite.expires_at == 1
        assert coalitions.respond_invite(invite.id, True)
        assert "PLAYER" in pact.members

    def test_player_invitation_expires(self, systems, coalitions, pact):
        coalitions.invite(pact.id, "PLAYER")
        systems.registry.tick = 1
        assert coalitions.expire_invites() == 1
        assert coalitions.invites == []

    def test_ai_invitation_rolls(self, coalitions, pact, monkeypatch):
        monkeypatch.setattr(coalitions.rng, "random", lambda: 0.0)
        assert coalitions.invite(pact.id, "FNR")
        assert "FNR" in pact.members

    def test_join_chance(self, coalitions, pact):
        # 50 + (50 - 80 orientation gap) - 5 for low aggression + 10 for five members
        assert coalitions.calculate_join_chance(pact, "FNR") == 25
        for code in ("BRN", "CRV", "DRM", "ESK"):
            assert 0 <= coalitions.calculate_join_chance(pact, code) <= 100

    def test_request_join_needs_goodwill(self, systems, coalitions, pact):
        systems.registry.update_relations("ALD", -50)
        assert not coalitions.request_join(pact.id)
        systems.registry.update_relations("ALD", 60)
        assert coalitions.request_join(pact.id)


class TestStrength:

    def test_coalition_strength(self, coalitions, pact):
        assert coalitions.coalition_strength("ALD") == 500_000
        assert coalitions.coalition_strength("FNR") == 100_000

    def test_defense_support(self, systems, coalitions, pact):
        assert coalitions.defense_support("ALD") == 40_000
        systems.wars.declare("FNR", "BRN")
        assert coalitions.defense_support("ALD") == 30_000, "Members at war keep their troops"
