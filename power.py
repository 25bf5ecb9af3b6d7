"""
Composite national power scoring.
Pure functions: no state, no randomness, safe to call at any rate.
"""

from dataclasses import dataclass, asdict
import math
from typing import Optional, Tuple

from config import SimulationConfig
from nation import Modifier


@dataclass(frozen=True)
class PowerBreakdown:
    military: int
    economy: int
    diplomacy: int
    stability: int
    technology: int
    total: int

    def to_dict(self):
        return asdict(self)


# (ratio at or above, label), checked in order
POWER_LABELS = [
    (3.0, "Overwhelming advantage"),
    (2.0, "Strong advantage"),
    (1.5, "Moderate advantage"),
    (1.1, "Slight advantage"),
    (0.9, "Even"),
    (0.66, "Slight disadvantage"),
    (0.5, "Moderate disadvantage"),
]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up; scores are never negative."""
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_power(
    soldiers: int,
    economy: float,
    unrest: Optional[float] = None,
    allies: int = 0,
    coalitions: int = 0,
    agreements: int = 0,
    research_level: float = 0,
    buildings: int = 0,
    quality: float = 1.0,
    is_player: bool = False,
    config: Optional[SimulationConfig] = None,
) -> PowerBreakdown:
    """
    Score a nation's strength from its military, economic, diplomatic,
    stability and technology inputs.

    For the player, `economy` is an absolute budget and is scaled down by 100,000.
    """
    w_mil, w_eco, w_dip, w_stab, w_tech = 0.25, 0.25, 0.20, 0.15, 0.15
    default_unrest = 50
    if config is not None:
        w_mil = config.power_weight_military
        w_eco = config.power_weight_economy
        w_dip = config.power_weight_diplomacy
        w_stab = config.power_weight_stability
        w_tech = config.power_weight_technology
        default_unrest = config.power_default_unrest

    military = round_half_up(min(200, round_half_up(max(0, soldiers) / 1000)) * quality)

    if is_player:
        economy_score = min(200, round_half_up(max(0.0, economy) / 100_000))
    else:
        economy_score = round_half_up(_clamp(economy, 0, 200))

    diplomacy = min(100, 10 * allies + 15 * coalitions + 5 * agreements)

    if unrest is None:
        unrest = default_unrest
    stability = round_half_up(_clamp(100 - unrest, 0, 100))

    technology = round_half_up(min(100, min(60, research_level) + min(40, 5 * buildings)))

    total = round_half_up(
        w_mil * military
        + w_eco * economy_score
        + w_dip * diplomacy
        + w_stab * stability
        + w_tech * technology
    )

    return PowerBreakdown(
        military=military,
        economy=economy_score,
        diplomacy=diplomacy,
        stability=stability,
        technology=technology,
        total=total,
    )


def calculate_nation_power(nation, config: Optional[SimulationConfig] = None, coalitions: int = 0) -> PowerBreakdown:
    """Score a Nation record, deriving unrest and research from its political state."""
    is_player = nation.is_player
    if is_player:
        research = config.player_research_level if config else 20
        unrest = 100 - nation.authority
    else:
        research = config.ai_research_level if config else 30
        # Stability 60 sits at the middle unrest level 3 (score 60)
        unrest = 120 - nation.political.stability

    quality = 1.2 if Modifier.MILITARY_QUALITY in nation.modifiers else 1.0

    return calculate_power(
        soldiers=nation.soldiers,
        economy=nation.treasury if is_player else nation.economy,
        unrest=unrest,
        allies=len(nation.allies),
        coalitions=coalitions,
        agreements=len(nation.agreements),
        research_level=research,
        quality=quality,
        is_player=is_player,
        config=config,
    )


def compare_power(mine: float, theirs: float) -> Tuple[float, str]:
    """Return (ratio, label) describing how `mine` stands against `theirs`."""
    ratio = mine / max(1.0, theirs)
    for threshold, label in POWER_LABELS:
        if ratio >= threshold:
            return ratio, label
    return ratio, "Severe disadvantage"
