"""
AI Strategy Engine.

Each AI nation gets one fixed personality. A personality is a strategy object
that assesses threats and opportunities every tick and produces a short queue of
intended actions. War declaration is gated on that queue.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional
import logging
import random

from config import SimulationConfig, DETERRENCE_FACTORS
from nation import Nation, Modifier, TariffLevel, clamp

logger = logging.getLogger(__name__)


class Personality(Enum):
    EXPANSIONIST = auto()
    OPPORTUNIST = auto()
    DEFENSIVE = auto()
    ISOLATIONIST = auto()
    TRADING_POWER = auto()
    IDEOLOGICAL = auto()


class StrategicFocus(Enum):
    EXPAND = auto()
    DEFEND = auto()
    ALLY = auto()
    DEVELOP = auto()
    CONSOLIDATE = auto()


class ActionType(Enum):
    DECLARE_WAR = auto()
    DEMAND_TERRITORY = auto()
    BUILD_MILITARY = auto()
    PROPOSE_ALLIANCE = auto()
    TRADE_AGREEMENT = auto()
    SANCTION = auto()
    IMPROVE_RELATIONS = auto()


@dataclass
class StrategicAction:
    type: ActionType
    target: Optional[str] = None
    priority: int = 50
    reason: str = ""


class ActionQueue:
    """Ordered intentions for one tick, highest priority first."""

    def __init__(self, actions: Optional[List[StrategicAction]] = None):
        self.actions: List[StrategicAction] = list(actions or [])

    def push(self, action_type: ActionType, target: Optional[str] = None, priority: int = 50, reason: str = ""):
        self.actions.append(StrategicAction(action_type, target, priority, reason))

    def finalize(self, limit: int = 2) -> "ActionQueue":
        self.actions.sort(key=lambda a: a.priority, reverse=True)
        del self.actions[limit:]
        return self

    def find(self, action_type: ActionType) -> Optional[StrategicAction]:
        return next((a for a in self.actions if a.type == action_type), None)

    def __contains__(self, action_type: ActionType) -> bool:
        return self.find(action_type) is not None

    def __iter__(self):
        return iter(self.actions)

    def __len__(self):
        return len(self.actions)

    def to_list(self) -> List[Dict]:
        return [{"type": a.type.name, "target": a.target, "priority": a.priority} for a in self.actions]


@dataclass
class ThreatAssessment:
    military: float = 0.0
    economic: float = 0.0
    internal: float = 0.0
    sources: List[str] = field(default_factory=list)

    @property
    def total(self) -> float:
        return 0.5 * self.military + 0.3 * self.economic + 0.2 * self.internal


@dataclass
class OpportunityAssessment:
    weak_neighbors: List[str] = field(default_factory=list)
    alliance_candidates: List[str] = field(default_factory=list)
    trade_candidates: List[str] = field(default_factory=list)


@dataclass
class StrategyState:
    personality: Personality
    focus: StrategicFocus = StrategicFocus.DEVELOP
    queue: ActionQueue = field(default_factory=ActionQueue)
    threat: ThreatAssessment = field(default_factory=ThreatAssessment)
    opportunities: OpportunityAssessment = field(default_factory=OpportunityAssessment)
    last_assessed: int = -1


class PersonalityStrategy:
    """
    Base strategy. Subclasses tune the hooks; the assessment pipeline is shared.

    `world` is anything exposing `registry`, `wars`, `coalitions` and `geometry`.
    """
    personality: Personality = None
    war_multiplier = 1.0
    offensive_modifier = 0.0
    # Relative weights over crisis actions, filtered by what the phase allows
    crisis_weights: Dict[str, float] = {"HOLD_FIRM": 1.0}
    influence_preferences: List[str] = ["CULTURAL_EXCHANGE"]
    summit_modifier = 0.0

    @staticmethod
    def weight(nation: Nation) -> float:
        raise NotImplementedError

    def preferred_focus(self, nation: Nation, opportunities: OpportunityAssessment) -> StrategicFocus:
        return StrategicFocus.DEVELOP

    def relation_drift(self, nation: Nation, player: Optional[Nation], rng: random.Random) -> int:
        return 0

    def summit_adjustment(self, topic: str) -> float:
        return self.summit_modifier

    def choose_crisis_action(self, available, rng: random.Random):
        """Pick one of `available` (enum members) by this personality's weights."""
        options = [a for a in available if self.crisis_weights.get(a.name, 0) > 0]
        if not options:
            return available[0] if available else None
        weights = [self.crisis_weights[a.name] for a in options]
        return rng.choices(options, weights=weights)[0]

    def choose_influence_action(self, rng: random.Random) -> str:
        return rng.choice(self.influence_preferences)

    # ------------------------------------------------------------------
    # Assessment pipeline
    # ------------------------------------------------------------------

    def assess(self, nation: Nation, world) -> ActionQueue:
        state = nation.strategy_state
        state.threat = self.assess_threats(nation, world)
        state.opportunities = self.find_opportunities(nation, world)
        state.focus = self.select_focus(nation, world, state.threat, state.opportunities)
        state.queue = self.build_queue(nation, world, state)
        state.last_assessed = world.registry.tick
        return state.queue

    def assess_threats(self, nation: Nation, world) -> ThreatAssessment:
        registry = world.registry
        threat = ThreatAssessment()
        own_power = max(1, nation.power)

        military = 0.0
        for code in nation.enemies:
            enemy = registry.get(code)
            if enemy is None or enemy.is_annexed:
                continue
            ratio = enemy.power / own_power
            military += min(30.0, 20.0 * ratio)
            threat.sources.append(code)
        player = registry.player
        if player is not None and nation.relations < -30:
            military += min(40.0, 25.0 * player.power / own_power)
            threat.sources.append(player.code)
        if nation.is_at_war or world.wars.is_in_any_war(nation.code):
            military += 30
        threat.military = clamp(military, 0, 100)

        economic = 0.0
        if nation.tariff == TariffLevel.EMBARGO:
            economic += 30
        elif nation.tariff == TariffLevel.HIGH:
            economic += 15
        if nation.has(Modifier.UN_SANCTIONED):
            economic += 20
        if nation.economy < 30:
            economic += 20
        threat.economic = clamp(economic, 0, 100)

        political = nation.political
        threat.internal = clamp(15 * (political.unrest - 3) + 10 * (3 - political.leader_popularity), 0, 100)
        return threat

    def find_opportunities(self, nation: Nation, world) -> OpportunityAssessment:
        registry = world.registry
        opportunities = OpportunityAssessment()
        for other in registry.active_nations():
            if other.code == nation.code:
                continue
            if nation.aggression >= 3 and other.power < 0.6 * nation.power \
                    and not world.coalitions.share_military_coalition(nation.code, other.code):
                opportunities.weak_neighbors.append(other.code)
            if abs(other.orientation - nation.orientation) < 40 and other.power > 30 \
                    and other.code not in nation.enemies and other.code not in nation.allies:
                opportunities.alliance_candidates.append(other.code)
            if other.economy > 40 and other.code not in nation.trade_partners:
                opportunities.trade_candidates.append(other.code)

        # Closest targets first when the map knows where everyone is
        def distance(code):
            d = world.geometry.centroid_distance(nation.code, code)
            return d if d is not None else float("inf")

        opportunities.weak_neighbors.sort(key=lambda c: (distance(c), registry.get(c).power))
        opportunities.alliance_candidates.sort(key=lambda c: -registry.relation_between(nation.code, c))
        return opportunities

    def select_focus(self, nation: Nation, world, threat: ThreatAssessment,
                     opportunities: OpportunityAssessment) -> StrategicFocus:
        if threat.total > 60:
            return StrategicFocus.DEFEND
        if nation.is_at_war or world.wars.is_in_any_war(nation.code):
            return StrategicFocus.EXPAND if self.personality == Personality.EXPANSIONIST else StrategicFocus.DEFEND
        if threat.internal > 40:
            return StrategicFocus.CONSOLIDATE
        return self.preferred_focus(nation, opportunities)

    def war_target(self, nation: Nation, world) -> Optional[str]:
        """The revanchist occupier, else the nearest hostile weak neighbour."""
        registry = world.registry

        def eligible(code):
            return registry.is_targetable(code) and not world.coalitions.share_military_coalition(nation.code, code)

        if nation.has(Modifier.REVANCHISM) and nation.occupier and eligible(nation.occupier):
            return nation.occupier
        for code in nation.strategy_state.opportunities.weak_neighbors:
            if registry.relation_between(nation.code, code) <= -20 and eligible(code):
                return code
        return None

    def build_queue(self, nation: Nation, world, state: StrategyState) -> ActionQueue:
        queue = ActionQueue()
        opportunities = state.opportunities
        ally = opportunities.alliance_candidates[0] if opportunities.alliance_candidates else None
        partner = opportunities.trade_candidates[0] if opportunities.trade_candidates else None

        if state.focus == StrategicFocus.EXPAND:
            target = self.war_target(nation, world)
            if target is not None:
                queue.push(ActionType.DECLARE_WAR, target, 90, "expansion target")
            elif opportunities.weak_neighbors:
                queue.push(ActionType.DEMAND_TERRITORY, opportunities.weak_neighbors[0], 70, "weak neighbour")
            queue.push(ActionType.BUILD_MILITARY, priority=60)
        elif state.focus == StrategicFocus.DEFEND:
            if ally is not None:
                queue.push(ActionType.PROPOSE_ALLIANCE, ally, 80, "seeking protection")
            queue.push(ActionType.BUILD_MILITARY, priority=70)
        elif state.focus == StrategicFocus.ALLY:
            if ally is not None:
                queue.push(ActionType.PROPOSE_ALLIANCE, ally, 80)
            if partner is not None:
                queue.push(ActionType.TRADE_AGREEMENT, partner, 60)
        elif state.focus == StrategicFocus.DEVELOP:
            if partner is not None:
                queue.push(ActionType.TRADE_AGREEMENT, partner, 60)
            else:
                queue.push(ActionType.IMPROVE_RELATIONS, world.registry.player_code, 50)
        else:
            queue.push(ActionType.IMPROVE_RELATIONS, world.registry.player_code, 50)

        if state.threat.economic >= 30 and nation.tariff == TariffLevel.EMBARGO:
            queue.push(ActionType.SANCTION, world.registry.player_code, 75, "retaliation for embargo")
        return queue.finalize(2)


class ExpansionistStrategy(PersonalityStrategy):
    personality = Personality.EXPANSIONIST
    war_multiplier = 2.0
    offensive_modifier = 0.1
    crisis_weights = {"ESCALATE": 5, "HOLD_FIRM": 5}
    influence_preferences = ["PROPAGANDA_CAMPAIGN", "FUND_OPPOSITION", "ESPIONAGE"]
    summit_modifier = -0.05

    @staticmethod
    def weight(nation):
        political = nation.political
        w = 30 if political.aggression >= 4 else 0
        w += 20 if political.military >= 4 else 0
        return w + 5 * political.aggression

    def preferred_focus(self, nation, opportunities):
        return StrategicFocus.EXPAND

    def relation_drift(self, nation, player, rng):
        return -3

    def summit_adjustment(self, topic):
        if topic in ("ARMS_REDUCTION", "PEACE_TREATY"):
            return -0.2
        return self.summit_modifier


class OpportunistStrategy(PersonalityStrategy):
    personality = Personality.OPPORTUNIST
    war_multiplier = 1.5
    offensive_modifier = 0.05
    crisis_weights = {"ESCALATE": 3, "HOLD_FIRM": 4, "BACK_DOWN": 2, "SEEK_MEDIATION": 1}
    influence_preferences = ["ESPIONAGE", "ECONOMIC_AID", "PROPAGANDA_CAMPAIGN"]

    @staticmethod
    def weight(nation):
        political = nation.political
        w = 20 if political.aggression == 3 else 0
        w += 15 if political.military >= 3 else 0
        return w + 10

    def preferred_focus(self, nation, opportunities):
        return StrategicFocus.EXPAND if opportunities.weak_neighbors else StrategicFocus.DEVELOP

    def relation_drift(self, nation, player, rng):
        return rng.randint(-3, 3)


class DefensiveStrategy(PersonalityStrategy):
    personality = Personality.DEFENSIVE
    war_multiplier = 0.5
    offensive_modifier = -0.05
    crisis_weights = {"SEEK_MEDIATION": 5, "PROPOSE_SUMMIT": 4, "HOLD_FIRM": 3, "BACK_DOWN": 2}
    influence_preferences = ["CULTURAL_EXCHANGE", "ECONOMIC_AID"]
    summit_modifier = 0.1

    @staticmethod
    def weight(nation):
        political = nation.political
        w = 25 if political.freedom >= 4 else 0
        w += 20 if political.aggression <= 2 else 0
        return w + (10 if political.military >= 3 else 0)

    def preferred_focus(self, nation, opportunities):
        return StrategicFocus.ALLY

    def relation_drift(self, nation, player, rng):
        return 2


class IsolationistStrategy(PersonalityStrategy):
    personality = Personality.ISOLATIONIST
    war_multiplier = 0.2
    offensive_modifier = -0.08
    crisis_weights = {"BACK_DOWN": 5, "HOLD_FIRM": 5}
    influence_preferences = ["CULTURAL_EXCHANGE"]
    summit_modifier = -0.15

    @staticmethod
    def weight(nation):
        political = nation.political
        w = 20 if len(nation.trade_partners) <= 2 else 0
        w += 20 if political.military <= 2 else 0
        return w + (15 if political.aggression <= 1 else 0)

    def preferred_focus(self, nation, opportunities):
        return StrategicFocus.CONSOLIDATE


class TradingPowerStrategy(PersonalityStrategy):
    personality = Personality.TRADING_POWER
    war_multiplier = 0.3
    crisis_weights = {"PROPOSE_SUMMIT": 5, "SEEK_MEDIATION": 4, "BACK_DOWN": 3, "HOLD_FIRM": 1}
    influence_preferences = ["ECONOMIC_AID", "CULTURAL_EXCHANGE", "HOST_EVENT"]
    summit_modifier = 0.1

    @staticmethod
    def weight(nation):
        political = nation.political
        partners = len(nation.trade_partners)
        w = 30 if partners >= 5 else 5 * partners
        w += 15 if political.freedom >= 3 else 0
        return w + (10 if political.aggression <= 2 else 0)

    def preferred_focus(self, nation, opportunities):
        return StrategicFocus.DEVELOP

    def relation_drift(self, nation, player, rng):
        return 2

    def summit_adjustment(self, topic):
        if topic == "TRADE_DEAL":
            return 0.2
        return self.summit_modifier


class IdeologicalStrategy(PersonalityStrategy):
    personality = Personality.IDEOLOGICAL
    war_multiplier = 1.2
    crisis_weights = {"HOLD_FIRM": 5, "ESCALATE": 3, "SEEK_MEDIATION": 2}
    influence_preferences = ["PROPAGANDA_CAMPAIGN", "FUND_OPPOSITION", "CULTURAL_EXCHANGE"]
    summit_modifier = -0.05

    @staticmethod
    def weight(nation):
        political = nation.political
        w = 30 if abs(political.orientation) > 60 else 0
        return w + (10 if political.aggression >= 3 else 0)

    def preferred_focus(self, nation, opportunities):
        return StrategicFocus.ALLY

    def relation_drift(self, nation, player, rng):
        if player is None:
            return 0
        return 2 if abs(nation.orientation - player.orientation) < 30 else -2


STRATEGIES: Dict[Personality, PersonalityStrategy] = {
    s.personality: s for s in (
        ExpansionistStrategy(), OpportunistStrategy(), DefensiveStrategy(),
        IsolationistStrategy(), TradingPowerStrategy(), IdeologicalStrategy(),
    )
}


class StrategyEngine:
    """Assigns personalities and turns assessments into war decisions."""

    def __init__(self, config: SimulationConfig, rng: Optional[random.Random] = None):
        self.config = config
        self.rng = rng or random.Random()

    def assign_personality(self, nation: Nation) -> Personality:
        """Weighted random pick, fixed for the nation's lifetime."""
        if nation.strategy_state is not None:
            return nation.strategy_state.personality
        personalities = list(STRATEGIES)
        weights = [max(5, STRATEGIES[p].weight(nation)) for p in personalities]
        personality = self.rng.choices(personalities, weights=weights)[0]
        nation.strategy_state = StrategyState(personality=personality)
        logger.debug(f"{nation.name} assigned personality {personality.name}")
        return personality

    def strategy_for(self, nation: Nation) -> PersonalityStrategy:
        return STRATEGIES[self.assign_personality(nation)]

    def assess(self, nation: Nation, world) -> ActionQueue:
        return self.strategy_for(nation).assess(nation, world)

    def war_declaration_probability(self, nation: Nation, target: str, world) -> float:
        """Per-tick chance that `nation` declares war on `target`, before the queue gate."""
        cfg = self.config
        registry = world.registry
        if target == nation.code or not registry.is_targetable(target):
            return 0.0
        relation = registry.relation_between(nation.code, target)
        revanchist = nation.has(Modifier.REVANCHISM)
        if relation > cfg.war_relations_floor and not revanchist:
            return 0.0

        strategy = self.strategy_for(nation)
        chance = cfg.war_base_chance * strategy.war_multiplier
        if nation.strategy_state.focus == StrategicFocus.EXPAND:
            chance *= cfg.war_expand_focus_multiplier
        if revanchist:
            chance += cfg.revanchism_war_bonus + min(
                cfg.revanchism_war_bonus_cap, nation.territory_lost / cfg.revanchism_territory_divisor)

        distance = world.geometry.centroid_distance(nation.code, target)
        if distance is not None:
            if distance > cfg.war_far_distance_km and nation.territory_lost < cfg.war_far_distance_territory:
                return 0.0
            if distance > cfg.war_mid_distance_km and nation.aggression < 5:
                chance *= cfg.war_mid_distance_factor

        ratio = world.coalitions.coalition_strength(target) / max(1, nation.soldiers)
        for threshold, factor in DETERRENCE_FACTORS:
            if ratio > threshold:
                chance *= factor
                break

        if world.coalitions.military_coalition_of(nation.code) is not None:
            genuine = (nation.aggression >= cfg.genuine_reason_aggression
                       or nation.territory_lost > cfg.genuine_reason_territory
                       or relation < cfg.genuine_reason_relations)
            if not genuine:
                chance *= cfg.coalition_restraint_factor

        return min(1.0, chance)

    def choose_war(self, nation: Nation, world) -> Optional[str]:
        """Roll for war against the queued DECLARE_WAR target. Returns the target on success."""
        state = nation.strategy_state
        if state is None:
            return None
        action = state.queue.find(ActionType.DECLARE_WAR)
        if action is None or action.target is None:
            return None
        chance = self.war_declaration_probability(nation, action.target, world)
        if chance > 0 and self.rng.random() < chance:
            return action.target
        return None

    def offensive_chance(self, nation: Nation) -> float:
        chance = self.config.offensive_base_chance + self.strategy_for(nation).offensive_modifier
        if nation.has(Modifier.REVANCHISM):
            chance += self.config.revanchism_offensive_bonus
        return clamp(chance, 0.0, 1.0)

    def relation_drift(self, nation: Nation, player: Optional[Nation]) -> int:
        """Occasional personality-driven drift toward or away from the player."""
        if self.rng.random() >= 0.05:
            return 0
        return self.strategy_for(nation).relation_drift(nation, player, self.rng)
