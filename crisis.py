"""
International crises: a five-phase escalation ladder between two participants.

incident -> demands -> ultimatum -> mobilization -> war

Only ESCALATE moves a crisis up the ladder, one phase at a time. Each phase
narrows the actions available to the participants.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Tuple
import itertools
import logging
import random

from config import SimulationConfig, CRISIS_TEMPLATES, CRISIS_PHASE_DEADLINES
from errors import InvalidCommandError, UnknownActionError
from events import EventLog, DiplomaticEventType
from nation import Modifier, TariffLevel, clamp
from registry import NationRegistry

logger = logging.getLogger(__name__)


class CrisisType(Enum):
    BORDER_INCIDENT = auto()
    ASSASSINATION = auto()
    TERRITORIAL_DISPUTE = auto()
    HUMANITARIAN = auto()
    PROXY_WAR = auto()
    TRADE_WAR = auto()
    HOSTAGE_SITUATION = auto()
    ENVIRONMENTAL = auto()


class CrisisAction(Enum):
    HOLD_FIRM = auto()
    BACK_DOWN = auto()
    SEEK_MEDIATION = auto()
    ESCALATE = auto()
    PROPOSE_SUMMIT = auto()


class CrisisOutcome(Enum):
    ONGOING = "ongoing"
    PEACEFUL = "peaceful"
    WAR = "war"


PHASE_NAMES = {1: "incident", 2: "demands", 3: "ultimatum", 4: "mobilization", 5: "war"}

PHASE_ACTIONS: Dict[int, List[CrisisAction]] = {
    1: [CrisisAction.HOLD_FIRM, CrisisAction.BACK_DOWN, CrisisAction.SEEK_MEDIATION, CrisisAction.ESCALATE],
    2: [CrisisAction.HOLD_FIRM, CrisisAction.BACK_DOWN, CrisisAction.SEEK_MEDIATION, CrisisAction.ESCALATE,
        CrisisAction.PROPOSE_SUMMIT],
    3: [CrisisAction.HOLD_FIRM, CrisisAction.BACK_DOWN, CrisisAction.ESCALATE, CrisisAction.PROPOSE_SUMMIT],
    4: [CrisisAction.HOLD_FIRM, CrisisAction.BACK_DOWN, CrisisAction.ESCALATE],
    5: [],
}


@dataclass
class Crisis:
    id: str
    type: CrisisType
    title: str
    initiator: str
    target: str
    started_at: int
    deadline: int
    war_risk: float
    escalation_rate: float
    phase: int = 1
    outcome: CrisisOutcome = CrisisOutcome.ONGOING
    history: List[Tuple[int, str, str]] = field(default_factory=list)  # (tick, actor, action)
    resolved_at: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.outcome == CrisisOutcome.ONGOING

    @property
    def phase_name(self) -> str:
        return PHASE_NAMES[self.phase]

    @property
    def participants(self) -> Tuple[str, str]:
        return self.initiator, self.target

    def other(self, code: str) -> str:
        return self.target if code == self.initiator else self.initiator

    def available_actions(self) -> List[CrisisAction]:
        if not self.is_active:
            return []
        return list(PHASE_ACTIONS[self.phase])

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type.name,
            "title": self.title,
            "initiator": self.initiator,
            "target": self.target,
            "phase": self.phase,
            "phase_name": self.phase_name,
            "war_risk": round(self.war_risk, 1),
            "outcome": self.outcome.value,
        }


class CrisisManager:
    """Creates crises, applies participant actions and drives the AI side."""

    def __init__(self, config: SimulationConfig, registry: NationRegistry, events: EventLog,
                 rng: Optional[random.Random] = None,
                 declare_war: Optional[Callable[[str, str, str], object]] = None,
                 strategy_engine=None):
        self.config = config
        self.registry = registry
        self.events = events
        self.rng = rng or random.Random()
        self.declare_war = declare_war or (lambda attacker, defender, goal: None)
        self.strategy_engine = strategy_engine
        self.crises: List[Crisis] = []
        self.history: List[Crisis] = []
        self._ids = itertools.count(1)

    def _name(self, code: str) -> str:
        nation = self.registry.get(code)
        return nation.name if nation else code

    def _deadline_from_now(self, phase: int) -> int:
        days = CRISIS_PHASE_DEADLINES[phase]
        return self.registry.tick + max(1, round(days * self.config.ticks_per_day()))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, crisis_id: str) -> Optional[Crisis]:
        return next((c for c in self.crises + self.history if c.id == crisis_id), None)

    def active_crises(self) -> List[Crisis]:
        return [c for c in self.crises if c.is_active]

    def shared_crisis(self, code_a: str, code_b: str) -> Optional[Crisis]:
        for crisis in self.crises:
            if crisis.is_active and {code_a, code_b} == set(crisis.participants):
                return crisis
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, crisis_type: CrisisType, initiator: str, target: str) -> Optional[Crisis]:
        if initiator == target:
            return None
        if not self.registry.is_targetable(initiator) or not self.registry.is_targetable(target):
            return None
        if len(self.active_crises()) >= self.config.max_active_crises:
            return None
        if self.shared_crisis(initiator, target) is not None:
            return None

        template = CRISIS_TEMPLATES[crisis_type.name]
        crisis = Crisis(
            id=f"crisis-{next(self._ids)}",
            type=crisis_type,
            title=template["title"].format(initiator=self._name(initiator), target=self._name(target)),
            initiator=initiator,
            target=target,
            started_at=self.registry.tick,
            deadline=self._deadline_from_now(1),
            war_risk=template["base_war_risk"],
            escalation_rate=template["escalation_rate"],
        )
        self.crises.append(crisis)
        self.events.emit(
            DiplomaticEventType.CRISIS,
            f"Crisis: {crisis.title}",
            f"Tension flares between {self._name(initiator)} and {self._name(target)}.",
            affected=[initiator, target],
            severity=2,
        )
        logger.info(f"CRISIS: {crisis.title} ({crisis_type.name})")
        return crisis

    def act(self, crisis_id: str, actor: str, action: CrisisAction) -> Crisis:
        """Apply a participant's action. Raises for non-participants and unavailable actions."""
        crisis = self.get(crisis_id)
        if crisis is None:
            raise InvalidCommandError(f"No such crisis: {crisis_id}")
        if actor not in crisis.participants:
            raise InvalidCommandError(f"{actor} is not a participant in {crisis.title}")
        available = crisis.available_actions()
        if action not in available:
            raise UnknownActionError(action.name, [a.name for a in available])

        crisis.history.append((self.registry.tick, actor, action.name))
        other = crisis.other(actor)

        if action == CrisisAction.BACK_DOWN:
            self.registry.adjust_relation_between(actor, other, -10)
            if crisis.phase >= 3:
                self.registry.get(actor).add_modifier(Modifier.HUMILIATED)
            self.resolve_peacefully(crisis, f"{self._name(actor)} backed down")
        elif action == CrisisAction.HOLD_FIRM:
            crisis.war_risk = clamp(crisis.war_risk + 5, 0, 100)
        elif action == CrisisAction.ESCALATE:
            self._escalate(crisis, actor)
        elif action == CrisisAction.SEEK_MEDIATION:
            crisis.war_risk = clamp(crisis.war_risk - 10, 0, 100)
            if crisis.phase > 1 and self.rng.random() < 0.5:
                crisis.phase -= 1
                crisis.deadline = self._deadline_from_now(crisis.phase)
                logger.info(f"CRISIS: mediation calms {crisis.title} to {crisis.phase_name}")
        elif action == CrisisAction.PROPOSE_SUMMIT:
            if self.rng.random() < 0.6:
                self.registry.adjust_relation_between(actor, other, 5)
                self.resolve_peacefully(crisis, "summit diplomacy")
            else:
                crisis.war_risk = clamp(crisis.war_risk + 5, 0, 100)
        return crisis

    def _escalate(self, crisis: Crisis, actor: str):
        crisis.phase += 1
        crisis.war_risk = clamp(crisis.war_risk + crisis.escalation_rate, 0, 100)
        self.events.emit(
            DiplomaticEventType.CRISIS,
            f"{crisis.title} escalates to {crisis.phase_name}",
            f"{self._name(actor)} escalates the crisis.",
            affected=list(crisis.participants),
            severity=3 if crisis.phase >= 4 else 2,
        )
        if crisis.phase < 5:
            crisis.deadline = self._deadline_from_now(crisis.phase)
            return

        crisis.outcome = CrisisOutcome.WAR
        self._close(crisis)
        logger.warning(f"CRISIS: {crisis.title} ends in war, {self._name(actor)} attacks")
        self.declare_war(actor, crisis.other(actor), "HUMILIATION")

    def resolve_peacefully(self, crisis: Crisis, reason: str = "") -> bool:
        if not crisis.is_active:
            return False
        crisis.outcome = CrisisOutcome.PEACEFUL
        self._close(crisis)
        self.events.emit(
            DiplomaticEventType.CRISIS,
            f"Crisis resolved: {crisis.title}",
            f"The crisis ended peacefully" + (f": {reason}." if reason else "."),
            affected=list(crisis.participants),
        )
        logger.info(f"CRISIS: {crisis.title} resolved peacefully ({reason})")
        return True

    def _close(self, crisis: Crisis):
        crisis.resolved_at = self.registry.tick
        if crisis in self.crises:
            self.crises.remove(crisis)
            self.history.append(crisis)

    # ------------------------------------------------------------------
    # Monthly update
    # ------------------------------------------------------------------

    def check_deadlines(self) -> int:
        """Expired deadlines escalate on the initiator's behalf."""
        escalated = 0
        for crisis in list(self.crises):
            if crisis.is_active and self.registry.tick >= crisis.deadline:
                if not self.registry.is_targetable(crisis.initiator) or not self.registry.is_targetable(crisis.target):
                    self.resolve_peacefully(crisis, "a participant ceased to exist")
                    continue
                self.act(crisis.id, crisis.initiator, CrisisAction.ESCALATE)
                escalated += 1
        return escalated

    def ai_actions(self) -> int:
        if self.strategy_engine is None:
            return 0
        taken = 0
        for crisis in list(self.crises):
            for code in crisis.participants:
                if not crisis.is_active:
                    break
                nation = self.registry.get(code)
                if nation is None or nation.is_player or nation.is_annexed:
                    continue
                if self.rng.random() >= self.config.crisis_ai_action_chance:
                    continue
                strategy = self.strategy_engine.strategy_for(nation)
                action = strategy.choose_crisis_action(crisis.available_actions(), self.rng)
                if action is not None:
                    self.act(crisis.id, code, action)
                    taken += 1
        return taken

    def ai_triggers(self) -> int:
        started = 0
        player = self.registry.player_code
        for nation in self.registry.active_nations():
            if len(self.active_crises()) >= self.config.max_active_crises:
                break
            crisis = None
            if nation.aggression >= 4 and nation.enemies and self.rng.random() < self.config.border_incident_chance:
                rival = min(nation.enemies, key=lambda c: self.registry.relation_between(nation.code, c))
                if self.registry.relation_between(nation.code, rival) < -30:
                    crisis = self.start(CrisisType.BORDER_INCIDENT, nation.code, rival)
            elif nation.aggression >= 4 and nation.relations < -30 and \
                    self.rng.random() < self.config.border_incident_chance:
                crisis = self.start(CrisisType.BORDER_INCIDENT, nation.code, player)
            elif nation.has(Modifier.REVANCHISM) and nation.territory_lost > 10 and nation.occupier and \
                    self.rng.random() < self.config.territorial_dispute_chance:
                crisis = self.start(CrisisType.TERRITORIAL_DISPUTE, nation.code, nation.occupier)
            elif nation.tariff == TariffLevel.EMBARGO and not nation.is_at_war and \
                    self.rng.random() < self.config.trade_war_chance:
                crisis = self.start(CrisisType.TRADE_WAR, nation.code, player)
            if crisis is not None:
                started += 1
        return started

    def update(self) -> Dict[str, int]:
        return {
            "escalated": self.check_deadlines(),
            "ai_actions": self.ai_actions(),
            "started": self.ai_triggers(),
        }

    def to_dict(self):
        return [c.to_dict() for c in self.crises]
