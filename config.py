"""
Configuration and balance constants for the conflict simulation.
Every probability and multiplier here is a tunable balance parameter, not an invariant.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


PLAYER_CODE = "PLAYER"


@dataclass
class SimulationConfig:
    """Global simulation configuration."""

    num_steps: int
    output_dir: Path
    seed: Optional[int] = None

    # Cadence
    ticks_per_month: int = 1  # monthly systems (UN, crises, soft power, summits) run every N ticks
    days_per_month: int = 30
    tick_seconds: float = 30.0  # simulated wall-clock advance per tick when no clock is injected
    player_code: str = PLAYER_CODE

    # Power scorer weights
    power_weight_military: float = 0.25
    power_weight_economy: float = 0.25
    power_weight_diplomacy: float = 0.20
    power_weight_stability: float = 0.15
    power_weight_technology: float = 0.15
    power_default_unrest: int = 50
    ai_research_level: int = 30
    player_research_level: int = 20

    # Combat resolver
    combat_rout_fraction: float = 0.05  # a side below this share of its start force breaks
    combat_base_dice: int = 2
    combat_max_dice: int = 3
    combat_superiority_ratio: float = 1.5  # a side this much larger rolls an extra die
    combat_loss_jitter: float = 0.25
    combat_defense_loss_floor: float = 0.5  # defender losses never reduced below this multiplier
    total_war_decisiveness_boost: float = 1.2

    # War progression
    battle_interval_seconds: float = 10.0
    battle_commit_fraction: float = 0.05
    war_collapse_threshold: int = 100
    war_gain_scale: int = 20
    annexation_gain: int = 90
    forced_peace_gain: int = 50
    war_max_ticks: int = 120
    offensive_base_chance: float = 0.1
    revanchism_offensive_bonus: float = 0.1

    # Rivalry discovery (AI vs AI)
    rivalry_search_chance: float = 0.2
    rivalry_max_power_ratio: float = 3.0
    rivalry_max_distance_km: float = 3000.0
    rivalry_great_power: int = 500
    rivalry_min_orientation_gap: int = 30
    rivalry_seed_orientation_gap: int = 50

    # War declaration
    war_base_chance: float = 0.005
    war_relations_floor: int = -50
    war_expand_focus_multiplier: float = 1.5
    revanchism_war_bonus: float = 0.02
    revanchism_territory_divisor: float = 200.0
    revanchism_war_bonus_cap: float = 0.1
    war_far_distance_km: float = 4000.0
    war_far_distance_territory: int = 10
    war_mid_distance_km: float = 2000.0
    war_mid_distance_factor: float = 0.2
    coalition_restraint_factor: float = 0.1
    genuine_reason_aggression: int = 4
    genuine_reason_territory: int = 10
    genuine_reason_relations: int = -30

    # Agreements and instruments
    agreement_accept_bonus: int = 10
    agreement_reject_penalty: int = 2
    agreement_break_penalty: int = 40
    claim_relation_penalty: int = 10
    claim_hostile_threshold: int = 50
    revanchism_threshold: float = 5.0
    treasury_per_economy: float = 1e7
    monthly_income_per_economy: float = 1e6

    # Coalitions
    article_five_share: float = 0.10
    defense_contribution: float = 0.10
    invite_expiry_days: int = 30
    coalition_war_max_ticks: int = 180
    coalition_victory_territory: int = 50

    # United Nations
    un_voting_days: int = 30
    un_resolution_interval_days: Tuple[int, int] = (60, 120)
    un_rotating_members: int = 10
    un_rotation_pool: int = 20
    un_rotation_days: int = 365

    # Crises
    max_active_crises: int = 3
    crisis_ai_action_chance: float = 0.3
    border_incident_chance: float = 0.02
    territorial_dispute_chance: float = 0.03
    trade_war_chance: float = 0.05

    # Soft power
    starting_influence: float = 50.0
    ai_min_influence: float = 20.0
    ai_influence_action_chance: float = 0.3

    # Summits
    ai_summit_chance: float = 0.05

    def ticks_per_day(self) -> float:
        return self.ticks_per_month / self.days_per_month


# Combat intensity profiles: round cap and loss severity
INTENSITY_PROFILES = {
    "SKIRMISH": {"max_rounds": 25, "loss_multiplier": 0.5},
    "STANDARD": {"max_rounds": 60, "loss_multiplier": 1.0},
    "TOTAL_WAR": {"max_rounds": 120, "loss_multiplier": 1.5},
}

# Agreement acceptance: (relations must exceed, chance above, chance otherwise)
AGREEMENT_ACCEPTANCE = {
    "TRADE_AGREEMENT": (-10, 0.8, 0.1),
    "NON_AGGRESSION": (0, 0.7, 0.2),
    "MILITARY_ALLIANCE": (70, 0.6, 0.0),
    "FREE_TRADE": (50, 0.7, 0.1),
    "SECURITY_GUARANTEE": (-50, 0.95, 0.1),
}

TARIFF_RELATION_DELTA = {
    "FREE_TRADE": 10,
    "NONE": 0,
    "LOW": 0,
    "HIGH": -10,
    "EMBARGO": -50,
}

# Covert instruments (budget cost, relations penalty)
COVERT_ACTIONS = {
    "DESTABILIZE": {"budget_cost": 50e6, "relations": -40, "power_factor": 0.8},
    "FUND_SEPARATISTS": {"budget_cost": 30e6, "relations": -30, "soldier_loss": (0.15, 0.25)},
    "PLANT_PROPAGANDA": {"budget_cost": 20e6, "relations": 15},
}

# War goal legitimacy
WAR_GOAL_LEGITIMACY = {
    "DEFENSIVE": 20,
    "RECONQUEST": 10,
    "TERRITORIAL": 0,
    "LIBERATION": 10,
    "REGIME_CHANGE": -20,
    "HUMILIATION": -30,
    "AGGRESSION": -50,
}

# Coalition deterrence: (strength ratio above, war chance multiplier), checked in order
DETERRENCE_FACTORS = [
    (5.0, 0.02),
    (3.0, 0.1),
    (2.0, 0.3),
    (1.5, 0.6),
]

# Real-world coalitions seeded at start
REAL_WORLD_COALITIONS = [
    {
        "name": "NATO",
        "type": "MILITARY",
        "leader": "USA",
        "members": ["USA", "GBR", "FRA", "DEU", "ITA", "CAN", "ESP", "POL", "TUR", "NLD", "NOR"],
    },
    {
        "name": "European Union",
        "type": "TRADE",
        "leader": "DEU",
        "members": ["DEU", "FRA", "ITA", "ESP", "NLD", "POL", "SWE"],
    },
    {
        "name": "BRICS",
        "type": "TRADE",
        "leader": "CHN",
        "members": ["CHN", "BRA", "RUS", "IND", "ZAF", "EGY", "IRN"],
    },
    {
        "name": "CSTO",
        "type": "MILITARY",
        "leader": "RUS",
        "members": ["RUS", "BLR", "KAZ", "ARM"],
    },
]

COALITION_ICONS = {"MILITARY": "shield", "TRADE": "scales", "RESEARCH": "flask"}

SECURITY_COUNCIL_P5 = ["USA", "CHN", "RUS", "GBR", "FRA"]

# UN resolution templates
RESOLUTION_TEMPLATES = {
    "CONDEMN_AGGRESSION": {
        "title": "Condemn {target}'s Military Aggression",
        "pass_threshold": 0.5,
        "requires_security_council": False,
        "effects": [("RELATION_CHANGE", -10), ("MODIFIER", "WORLD_PARIAH")],
    },
    "IMPOSE_SANCTIONS": {
        "title": "Economic Sanctions Against {target}",
        "pass_threshold": 0.67,
        "requires_security_council": True,
        "effects": [("SANCTION", "UN_SANCTIONED"), ("TRADE_BLOCK", 1)],
    },
    "PEACEKEEPING": {
        "title": "Peacekeeping Mission in {target}",
        "pass_threshold": 0.5,
        "requires_security_council": True,
        "effects": [("MODIFIER", "PEACEKEEPERS")],
    },
    "HUMANITARIAN": {
        "title": "Humanitarian Intervention in {target}",
        "pass_threshold": 0.67,
        "requires_security_council": True,
        "effects": [("RELATION_CHANGE", 5)],
    },
    "CLIMATE_ACCORD": {
        "title": "Global Climate Accord",
        "pass_threshold": 0.5,
        "requires_security_council": False,
        "effects": [],
    },
    "ARMS_CONTROL": {
        "title": "Arms Limitation Treaty",
        "pass_threshold": 0.67,
        "requires_security_council": False,
        "effects": [],
    },
    "TRADE_STANDARDS": {
        "title": "International Trade Standards",
        "pass_threshold": 0.5,
        "requires_security_council": False,
        "effects": [],
    },
    "HUMAN_RIGHTS": {
        "title": "Human Rights Violations in {target}",
        "pass_threshold": 0.5,
        "requires_security_council": False,
        "effects": [("RELATION_CHANGE", -5)],
    },
}

# Crisis templates (war risk at start, war risk added per escalation)
CRISIS_TEMPLATES = {
    "BORDER_INCIDENT": {"title": "{initiator}-{target} Border Clash", "base_war_risk": 20, "escalation_rate": 15},
    "ASSASSINATION": {"title": "Assassination Crisis", "base_war_risk": 30, "escalation_rate": 20},
    "TERRITORIAL_DISPUTE": {"title": "Disputed Territory: {initiator}-{target}", "base_war_risk": 25, "escalation_rate": 10},
    "HUMANITARIAN": {"title": "Humanitarian Crisis in {target}", "base_war_risk": 10, "escalation_rate": 5},
    "PROXY_WAR": {"title": "Proxy Conflict in {target}", "base_war_risk": 35, "escalation_rate": 15},
    "TRADE_WAR": {"title": "{initiator}-{target} Trade War", "base_war_risk": 5, "escalation_rate": 5},
    "HOSTAGE_SITUATION": {"title": "Embassy Siege in {initiator}", "base_war_risk": 40, "escalation_rate": 25},
    "ENVIRONMENTAL": {"title": "Environmental Dispute", "base_war_risk": 5, "escalation_rate": 3},
}

# Phase deadlines in days (phase 5 is terminal)
CRISIS_PHASE_DEADLINES = {1: 30, 2: 20, 3: 14, 4: 7, 5: 0}

# Influence actions
INFLUENCE_ACTIONS = {
    "CULTURAL_EXCHANGE": {"influence_cost": 10, "budget_cost": 5e6, "duration": 12, "covert": False},
    "ECONOMIC_AID": {"influence_cost": 20, "budget_cost": 100e6, "duration": 1, "covert": False},
    "FUND_OPPOSITION": {"influence_cost": 30, "budget_cost": 50e6, "duration": 6, "covert": True, "detected_penalty": -50, "detected_opinion": -10},
    "PROPAGANDA_CAMPAIGN": {"influence_cost": 25, "budget_cost": 20e6, "duration": 3, "covert": True, "detected_penalty": -30},
    "ESPIONAGE": {"influence_cost": 40, "budget_cost": 30e6, "duration": 1, "covert": True, "detected_penalty": -40, "detected_opinion": -5},
    "HOST_EVENT": {"influence_cost": 50, "budget_cost": 500e6, "duration": 1, "covert": False},
}

# Summit topic -> agreement analogue used for acceptance
SUMMIT_TOPIC_AGREEMENT = {
    "TRADE_DEAL": "TRADE_AGREEMENT",
    "ALLIANCE": "MILITARY_ALLIANCE",
    "COALITION_FORMATION": "MILITARY_ALLIANCE",
    "ARMS_REDUCTION": "NON_AGGRESSION",
    "TERRITORIAL": "NON_AGGRESSION",
    "PEACE_TREATY": "SECURITY_GUARANTEE",
    "CRISIS_RESOLUTION": "SECURITY_GUARANTEE",
}
