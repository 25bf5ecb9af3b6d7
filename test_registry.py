"""
Tests for the nation registry: initialization, relations, war state,
annexation and the other lifecycle operations.
"""

import pytest

from events import DiplomaticEventType
from nation import Disposition, Modifier, TariffLevel, AgreementType


class TestInitialization:

    def test_player_and_nations_created(self, registry):
        assert len(registry) == 7, "Six seeded nations plus the player"
        player = registry.player
        assert player.is_player
        assert player.relations == 100
        assert player.soldiers == 100_000, "Player starts with 1% of population under arms"
        assert player.treasury == 1e9

    def test_initial_relations_from_compatibility(self, registry):
        # All test profiles share "Unknown" religion, culture and language with the player
        nation = registry.get("ALD")
        assert nation.relations == 25
        assert nation.disposition == Disposition.NEUTRAL
        assert nation.soldiers == 100_000
        assert not nation.has(Modifier.REVANCHISM)

    def test_occupied_seed(self, make_registry):
        registry = make_registry([{"code": "ALD", "territory_lost": 30, "occupier": "BRN"}, "BRN"])
        nation = registry.get("ALD")
        assert nation.territory_lost == 30
        assert nation.occupier == "BRN"
        assert nation.soldiers == 70_000, "Soldiers scale with remaining territory"
        assert nation.relations == -35, "-2 per percent lost plus compatibility"
        assert nation.disposition == Disposition.HOSTILE
        assert nation.has(Modifier.REVANCHISM)

    def test_occupier_defaults_to_player(self, make_registry):
        registry = make_registry([{"code": "ALD", "territory_lost": 10}])
        assert registry.get("ALD").occupier == "PLAYER"

    def test_fully_conquered_seed_skipped(self, make_registry):
        registry = make_registry([{"code": "ALD", "territory_lost": 100}, "BRN"])
        assert "ALD" not in registry
        assert "BRN" in registry

    def test_unknown_code_uses_defaults(self, make_registry):
        registry = make_registry(["ZZZ"])
        nation = registry.get("ZZZ")
        assert nation is not None
        assert 1_000_000 <= nation.population <= 5_000_000
        assert nation.economy == 50

    def test_calm_nations_get_no_seeded_rivals(self, registry):
        assert all(not n.enemies for n in registry.active_nations())


class TestRelations:

    def test_update_clamps(self, registry):
        registry.update_relations("ALD", 500)
        assert registry.get("ALD").relations == 100
        assert registry.get("ALD").disposition == Disposition.FRIENDLY
        registry.update_relations("ALD", -500)
        assert registry.get("ALD").relations == -100
        assert registry.get("ALD").disposition == Disposition.HOSTILE

    def test_unknown_code_is_noop(self, registry):
        assert registry.update_relations("ZZZ", 10) is False
        assert registry.get("ZZZ") is None

    def test_annexed_relations_frozen(self, registry):
        registry.annex("ALD")
        assert registry.update_relations("ALD", 10) is False

    def test_default_relation_between(self, registry):
        assert registry.relation_between("ALD", "FNR") == -30, "Orientation gap of 80"
        assert registry.relation_between("ALD", "BRN") == 40
        assert registry.relation_between("ALD", "PLAYER") == 25
        assert registry.relation_between("ALD", "ALD") == 100

    def test_rivalry_and_alliance_shift_default(self, registry):
        registry.add_rivalry("ALD", "BRN")
        assert registry.relation_between("ALD", "BRN") == 0
        registry.sign_agreement("CRV", AgreementType.MILITARY_ALLIANCE, target="ALD")
        assert registry.relation_between("ALD", "CRV") == 70

    def test_adjust_is_mutual(self, registry):
        assert registry.adjust_relation_between("ALD", "BRN", -20)
        assert registry.relation_between("ALD", "BRN") == 20
        assert registry.relation_between("BRN", "ALD") == 20

    def test_adjust_with_player_moves_player_relations(self, registry):
        registry.adjust_relation_between("PLAYER", "ALD", 10)
        assert registry.get("ALD").relations == 35

    def test_territory_clamped(self, registry):
        registry.update_occupation("ALD", 150)
        assert registry.get("ALD").territory_lost == 100
        registry.update_occupation("ALD", -300)
        assert registry.get("ALD").territory_lost == 0


class TestWarState:

    def test_declare_war(self, registry):
        registry.sign_agreement("ALD", AgreementType.TRADE_AGREEMENT)
        assert registry.declare_war("ALD")
        nation = registry.get("ALD")
        assert nation.is_at_war
        assert nation.disposition == Disposition.AT_WAR
        assert nation.has(Modifier.AT_WAR)
        assert nation.agreements == []
        assert nation.tariff == TariffLevel.EMBARGO
        assert nation.their_tariff == TariffLevel.EMBARGO

    def test_cannot_declare_on_player(self, registry):
        assert registry.declare_war("PLAYER") is False

    def test_make_peace(self, registry):
        registry.declare_war("ALD")
        assert registry.make_peace("ALD")
        nation = registry.get("ALD")
        assert not nation.is_at_war
        assert not nation.has(Modifier.AT_WAR)
        assert nation.disposition == Disposition.NEUTRAL
        assert nation.tariff == TariffLevel.HIGH

    def test_peace_without_war_is_noop(self, registry):
        assert registry.make_peace("ALD") is False


class TestAnnexation:

    def test_annex_is_idempotent(self, registry):
        calls = []
        registry.on_annex(lambda code, by: calls.append((code, by)))

        assert registry.annex("ALD", "BRN")
        assert registry.annex("ALD", "BRN")

        nation = registry.get("ALD")
        assert nation.is_annexed
        assert nation.soldiers == 0
        assert nation.territory_lost == 100
        assert nation.occupier == "BRN"
        assert len(registry.events.of_type(DiplomaticEventType.ANNEXATION)) == 1, "Event emitted once"
        assert calls == [("ALD", "BRN"), ("ALD", "BRN")], "Cleanup listeners run every time"

    def test_annexed_not_targetable(self, registry):
        registry.annex("ALD")
        assert not registry.is_targetable("ALD")
        assert "ALD" not in registry.active_codes()
        assert registry.declare_war("ALD") is False

    def test_player_cannot_be_annexed(self, registry):
        assert registry.annex("PLAYER") is False
        assert not registry.player.is_annexed

    def test_annex_removes_alliances(self, registry):
        registry.sign_agreement("BRN", AgreementType.MILITARY_ALLIANCE, target="ALD")
        assert "ALD" in registry.get("BRN").allies
        registry.annex("ALD")
        assert "ALD" not in registry.get("BRN").allies

    def test_liberate(self, registry):
        registry.annex("ALD")
        assert registry.liberate("ALD")
        nation = registry.get("ALD")
        assert not nation.is_annexed
        assert nation.soldiers == 10_000
        assert nation.territory_lost == 0
        assert nation.relations == -50
        assert nation.has(Modifier.LIBERATED)
        assert not nation.has(Modifier.ANNEXED)
        assert registry.events.of_type(DiplomaticEventType.LIBERATION)

    def test_liberate_requires_annexed(self, registry):
        assert registry.liberate("ALD") is False


class TestTerritory:

    @pytest.mark.parametrize("delta,revanchist", [(5, False), (6, True)])
    def test_revanchism_threshold(self, registry, delta, revanchist):
        registry.update_occupation("ALD", delta, by="BRN")
        nation = registry.get("ALD")
        assert nation.has(Modifier.REVANCHISM) == revanchist
        assert bool(registry.events.of_type(DiplomaticEventType.REVANCHISM)) == revanchist
        assert nation.occupier == "BRN"

    def test_large_claim_turns_hostile(self, registry):
        registry.add_claim("ALD", 60)
        nation = registry.get("ALD")
        assert nation.claimed_percentage == 60
        assert nation.relations == -21
        assert nation.disposition == Disposition.HOSTILE

    def test_small_claim_costs_relations(self, registry):
        registry.add_claim("ALD", 10)
        assert registry.get("ALD").relations == 15


class TestSupport:

    def test_allied_support(self, registry):
        registry.sign_agreement("ALD", AgreementType.MILITARY_ALLIANCE)
        player_soldiers = registry.player.soldiers

        amount = registry.request_support("ALD")

        assert amount == 10_000
        assert registry.get("ALD").soldiers == 90_000
        assert registry.get("ALD").relations == 20
        assert registry.player.soldiers == player_soldiers + amount

    def test_friendly_support(self, registry):
        registry.update_relations("ALD", 35)
        assert registry.request_support("ALD") == 5_000
        assert registry.get("ALD").relations == 45

    def test_unfriendly_refuses(self, registry):
        assert registry.request_support("ALD") == 0
        assert registry.get("ALD").soldiers == 100_000


class TestPower:

    def test_destabilized_power_reduced(self, registry):
        base = registry.recalculate_power("ALD")
        registry.get("ALD").add_modifier(Modifier.DESTABILIZED)
        assert registry.recalculate_power("ALD") == round(base * 0.8)

    def test_annexed_power_zero(self, registry):
        registry.annex("ALD")
        assert registry.recalculate_power("ALD") == 0

    def test_coalition_counter_feeds_power(self, registry):
        base = registry.recalculate_power("ALD")
        registry.coalition_counter = lambda code: 2
        assert registry.recalculate_power("ALD") > base
