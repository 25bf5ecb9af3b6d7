"""
Tests for composite power scoring.
"""

import pytest

from nation import Modifier
from power import calculate_power, calculate_nation_power, compare_power


class TestCalculatePower:
    """Component scores and the weighted total."""

    def test_weighted_total(self):
        power = calculate_power(soldiers=100_000, economy=50)
        assert power.military == 100
        assert power.economy == 50
        assert power.stability == 50, "Missing unrest should default to 50"
        assert power.diplomacy == 0
        assert power.technology == 0
        # 0.25*100 + 0.25*50 + 0.15*50
        assert power.total == 45

    def test_military_capped(self):
        assert calculate_power(soldiers=10_000_000, economy=0).military == 200

    def test_player_economy_is_budget(self):
        power = calculate_power(soldiers=0, economy=10_000_000, is_player=True)
        assert power.economy == 100, "Player budget is scaled down by 100,000"

    def test_diplomacy_and_technology_caps(self):
        power = calculate_power(soldiers=0, economy=0, allies=5, coalitions=3, agreements=10,
                                research_level=90, buildings=20)
        assert power.diplomacy == 100
        assert power.technology == 100

    def test_quality_multiplier(self):
        assert calculate_power(soldiers=100_000, economy=0, quality=1.2).military == 120

    def test_halves_round_up(self):
        assert calculate_power(soldiers=2_500, economy=0, unrest=100).military == 3
        # 0.25 * 10 with every other component at zero
        assert calculate_power(soldiers=0, economy=10, unrest=100).total == 3

    def test_pure(self):
        a = calculate_power(soldiers=50_000, economy=70, unrest=20, allies=2)
        b = calculate_power(soldiers=50_000, economy=70, unrest=20, allies=2)
        assert a == b


class TestNationPower:

    def test_military_quality_modifier(self, registry):
        nation = registry.get("ALD")
        base = calculate_nation_power(nation, registry.config).military
        nation.add_modifier(Modifier.MILITARY_QUALITY)
        boosted = calculate_nation_power(nation, registry.config).military
        assert boosted == round(base * 1.2)

    def test_coalitions_raise_diplomacy(self, registry):
        nation = registry.get("ALD")
        alone = calculate_nation_power(nation, registry.config, coalitions=0)
        allied = calculate_nation_power(nation, registry.config, coalitions=2)
        assert allied.diplomacy == alone.diplomacy + 30

    def test_political_stability_sets_ai_unrest(self, registry):
        nation = registry.get("ALD")
        assert calculate_nation_power(nation, registry.config).stability == 40
        nation.political.stability = 50
        assert calculate_nation_power(nation, registry.config).stability == 30


class TestComparePower:

    @pytest.mark.parametrize("mine,theirs,label", [
        (300, 100, "Overwhelming advantage"),
        (200, 100, "Strong advantage"),
        (100, 100, "Even"),
        (60, 100, "Moderate disadvantage"),
        (10, 100, "Severe disadvantage"),
    ])
    def test_labels(self, mine, theirs, label):
        _, result = compare_power(mine, theirs)
        assert result == label

    def test_zero_opponent(self):
        ratio, _ = compare_power(50, 0)
        assert ratio == 50
