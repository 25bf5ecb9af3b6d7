"""
Soft power: influence points, world opinion and influence actions.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional
import itertools
import logging
import math
import random

from config import SimulationConfig, INFLUENCE_ACTIONS
from diplomacy import InstrumentResult
from events import EventLog, DiplomaticEventType
from nation import Modifier, clamp
from registry import NationRegistry

logger = logging.getLogger(__name__)


class InfluenceActionType(Enum):
    CULTURAL_EXCHANGE = auto()
    ECONOMIC_AID = auto()
    FUND_OPPOSITION = auto()
    PROPAGANDA_CAMPAIGN = auto()
    ESPIONAGE = auto()
    HOST_EVENT = auto()

    @property
    def profile(self) -> Dict:
        return INFLUENCE_ACTIONS[self.name]

    @property
    def covert(self) -> bool:
        return self.profile["covert"]


# Actions aimed at rivals rather than friends
HOSTILE_ACTIONS = {
    InfluenceActionType.FUND_OPPOSITION,
    InfluenceActionType.PROPAGANDA_CAMPAIGN,
    InfluenceActionType.ESPIONAGE,
}


@dataclass
class ActiveInfluenceAction:
    id: str
    type: InfluenceActionType
    actor: str
    target: Optional[str]
    remaining: int  # months
    detected: bool = False


@dataclass
class SoftPowerState:
    code: str
    influence: float = 50.0
    world_opinion: float = 0.0  # -100..100
    active: List[ActiveInfluenceAction] = field(default_factory=list)

    def to_dict(self):
        return {
            "influence": round(self.influence, 1),
            "world_opinion": round(self.world_opinion, 1),
            "active_actions": len(self.active),
        }


class SoftPowerSystem:
    """Influence economy and the effects of influence actions."""

    def __init__(self, config: SimulationConfig, registry: NationRegistry, events: EventLog,
                 rng: Optional[random.Random] = None, strategy_engine=None):
        self.config = config
        self.registry = registry
        self.events = events
        self.rng = rng or random.Random()
        self.strategy_engine = strategy_engine
        self.states: Dict[str, SoftPowerState] = {}
        self._ids = itertools.count(1)

    def state(self, code: str) -> SoftPowerState:
        if code not in self.states:
            self.states[code] = SoftPowerState(code, influence=self.config.starting_influence)
        return self.states[code]

    def monthly_income(self, code: str) -> float:
        nation = self.registry.get(code)
        if nation is None:
            return 0.0
        income = max(1.0, nation.economy / 10 + self.state(code).world_opinion / 20)
        if nation.has(Modifier.WORLD_PARIAH):
            income /= 2
        return income

    def detection_chance(self, target: str) -> float:
        nation = self.registry.get(target)
        if nation is None:
            return 0.0
        chance = 0.2
        chance += 0.05 * (nation.political.freedom - 3)
        if nation.authority > 60:
            chance += 0.15
        chance += min(0.15, 0.03 * len(nation.allies))
        return clamp(chance, 0.0, 0.9)

    def can_afford(self, actor: str, action: InfluenceActionType) -> InstrumentResult:
        nation = self.registry.get(actor)
        if nation is None or nation.is_annexed:
            return InstrumentResult(False, f"No such nation: {actor}")
        profile = action.profile
        influence = self.state(actor).influence
        if influence < profile["influence_cost"]:
            return InstrumentResult(False, f"Not enough influence: need {profile['influence_cost']}, have {influence:.0f}")
        if nation.treasury < profile["budget_cost"]:
            return InstrumentResult(False, f"Not enough budget: need ${profile['budget_cost'] / 1e6:.0f}M, "
                                           f"have ${nation.treasury / 1e6:.0f}M")
        return InstrumentResult(True)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, action: InfluenceActionType, target: Optional[str] = None,
                actor: Optional[str] = None) -> InstrumentResult:
        actor = actor or self.config.player_code
        if action != InfluenceActionType.HOST_EVENT:
            if target is None or target == actor or not self.registry.is_targetable(target):
                return InstrumentResult(False, f"No such nation: {target}")
        affordable = self.can_afford(actor, action)
        if not affordable:
            return affordable

        profile = action.profile
        state = self.state(actor)
        state.influence -= profile["influence_cost"]
        self.registry.get(actor).treasury -= profile["budget_cost"]

        record = ActiveInfluenceAction(f"inf-{next(self._ids)}", action, actor, target, profile["duration"])
        if action.covert and self.rng.random() < self.detection_chance(target):
            # A blown operation achieves nothing; only the fallout lands
            record.detected = True
            self.registry.adjust_relation_between(target, actor, profile["detected_penalty"])
            self._shift_opinion(actor, profile.get("detected_opinion", 0))
            message = f"{self._name(actor)} caught running {self._label(action)} in {self._name(target)}"
            self.events.emit(DiplomaticEventType.INFLUENCE, message, affected=[actor, target], severity=2)
            logger.info(f"INFLUENCE: {self._label(action)} by {self._name(actor)} detected in {self._name(target)}")
            return InstrumentResult(True, message, record)

        message = self._apply_immediate(record)
        if profile["duration"] > 1:
            state.active.append(record)
        if not action.covert:
            self.events.emit(
                DiplomaticEventType.INFLUENCE,
                f"{self._name(actor)}: {self._label(action)}" + (f" with {self._name(target)}" if target else ""),
                message,
                affected=[c for c in (actor, target) if c],
            )
        return InstrumentResult(True, message, record)

    def _apply_immediate(self, record: ActiveInfluenceAction) -> str:
        action, actor, target = record.type, record.actor, record.target
        if action == InfluenceActionType.ECONOMIC_AID:
            self.registry.adjust_relation_between(target, actor, 25)
            self._shift_opinion(actor, 5)
            return f"Aid package delivered to {self._name(target)}"
        if action == InfluenceActionType.PROPAGANDA_CAMPAIGN:
            self._shift_opinion(target, -15)
            return f"Propaganda campaign launched against {self._name(target)}"
        if action == InfluenceActionType.ESPIONAGE:
            if self.rng.random() < 0.3:
                nation = self.registry.get(target)
                lost = int(nation.soldiers * 0.05)
                self.registry.update_soldiers(target, -lost)
                self.registry.recalculate_power(target)
                return f"Sabotage cost {self._name(target)} {lost} soldiers"
            return f"Intelligence gathered on {self._name(target)}"
        if action == InfluenceActionType.HOST_EVENT:
            self._shift_opinion(actor, 20)
            for nation in self.registry.active_nations(include_player=True):
                if nation.code != actor:
                    self.registry.adjust_relation_between(nation.code, actor, 10)
            return f"{self._name(actor)} hosts an international event"
        if action == InfluenceActionType.CULTURAL_EXCHANGE:
            return f"Cultural exchange opened with {self._name(target)}"
        return f"Opposition groups funded in {self._name(target)}"

    def _apply_monthly(self, record: ActiveInfluenceAction):
        if not self.registry.is_targetable(record.target):
            return
        if record.type == InfluenceActionType.CULTURAL_EXCHANGE:
            self.registry.adjust_relation_between(record.target, record.actor, 2)
        elif record.type == InfluenceActionType.FUND_OPPOSITION:
            political = self.registry.get(record.target).political
            political.stability = int(clamp(political.stability - 1, 0, 100))
            # Keep the coarse 1-5 unrest level in step with the 0-100 stability
            political.unrest = int(clamp(6 - math.ceil(political.stability / 20), 1, 5))
            self.registry.recalculate_power(record.target)

    def _shift_opinion(self, code: str, delta: float):
        state = self.state(code)
        state.world_opinion = clamp(state.world_opinion + delta, -100, 100)

    # ------------------------------------------------------------------
    # Monthly update
    # ------------------------------------------------------------------

    def update(self) -> int:
        """Collect income, tick ongoing actions and let the AI spend. Returns AI actions taken."""
        for nation in self.registry.active_nations(include_player=True):
            state = self.state(nation.code)
            state.influence += self.monthly_income(nation.code)
            for record in list(state.active):
                self._apply_monthly(record)
                record.remaining -= 1
                if record.remaining <= 0:
                    state.active.remove(record)
        return self.ai_actions()

    def ai_actions(self) -> int:
        if self.strategy_engine is None:
            return 0
        taken = 0
        for nation in self.registry.active_nations():
            if self.state(nation.code).influence < self.config.ai_min_influence:
                continue
            if self.rng.random() >= self.config.ai_influence_action_chance:
                continue
            strategy = self.strategy_engine.strategy_for(nation)
            action = InfluenceActionType[strategy.choose_influence_action(self.rng)]
            target = self._ai_target(nation, action)
            if action != InfluenceActionType.HOST_EVENT and target is None:
                continue
            if self.execute(action, target, nation.code):
                taken += 1
        return taken

    def _ai_target(self, nation, action: InfluenceActionType) -> Optional[str]:
        if action == InfluenceActionType.HOST_EVENT:
            return None
        others = [c for c in self.registry.active_codes(include_player=True) if c != nation.code]
        if not others:
            return None
        if action in HOSTILE_ACTIONS:
            return min(others, key=lambda c: self.registry.relation_between(nation.code, c))
        return max(others, key=lambda c: self.registry.relation_between(nation.code, c))

    def _name(self, code: Optional[str]) -> str:
        nation = self.registry.get(code) if code else None
        return nation.name if nation else str(code)

    @staticmethod
    def _label(action: InfluenceActionType) -> str:
        return action.name.replace("_", " ").lower()

    def to_dict(self):
        return {code: state.to_dict() for code, state in self.states.items()}
