"""
Summits: negotiated bundles of topic proposals.

Each topic is accepted or rejected on its own, using the same relations-driven
model as agreement proposals, nudged by the counterpart's personality.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional
import itertools
import logging
import random

from coalition import CoalitionType
from config import SimulationConfig, SUMMIT_TOPIC_AGREEMENT
from diplomacy import InstrumentResult, acceptance_chance
from errors import InvalidCommandError
from events import EventLog, DiplomaticEventType
from nation import AgreementType, clamp
from registry import NationRegistry

logger = logging.getLogger(__name__)


class SummitType(Enum):
    BILATERAL = auto()
    REGIONAL = auto()
    GLOBAL = auto()


class SummitTopic(Enum):
    PEACE_TREATY = auto()
    TERRITORIAL = auto()
    TRADE_DEAL = auto()
    ALLIANCE = auto()
    CRISIS_RESOLUTION = auto()
    COALITION_FORMATION = auto()
    ARMS_REDUCTION = auto()


class SummitOutcome(Enum):
    PENDING = "pending"
    AGREEMENT = "agreement"
    PARTIAL = "partial"
    BREAKDOWN = "breakdown"
    POSTPONED = "postponed"


@dataclass
class SummitProposal:
    guest: str
    topic: SummitTopic
    chance: float = 0.0
    accepted: Optional[bool] = None


@dataclass
class Summit:
    id: str
    type: SummitType
    host: str
    guests: List[str]
    topics: List[SummitTopic]
    proposals: List[SummitProposal] = field(default_factory=list)
    outcome: SummitOutcome = SummitOutcome.PENDING
    held_at: Optional[int] = None
    expires_at: Optional[int] = None  # tick, for invitations to the player

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type.name,
            "host": self.host,
            "guests": list(self.guests),
            "topics": [t.name for t in self.topics],
            "accepted": [p.topic.name for p in self.proposals if p.accepted],
            "outcome": self.outcome.value,
        }


class SummitSystem:
    """Hosts summits and applies the effects of accepted topics."""

    def __init__(self, config: SimulationConfig, registry: NationRegistry, events: EventLog,
                 wars, crises, coalitions, strategy_engine=None,
                 rng: Optional[random.Random] = None):
        self.config = config
        self.registry = registry
        self.events = events
        self.wars = wars
        self.crises = crises
        self.coalitions = coalitions
        self.strategy_engine = strategy_engine
        self.rng = rng or random.Random()
        self.summits: List[Summit] = []
        self.pending: List[Summit] = []  # invitations awaiting the player's answer
        self._ids = itertools.count(1)

    def _name(self, code: str) -> str:
        nation = self.registry.get(code)
        return nation.name if nation else code

    def available_topics(self, host: str, guest: str) -> List[SummitTopic]:
        if self.wars.at_war_between(host, guest):
            topics = [SummitTopic.PEACE_TREATY]
        else:
            relation = self.registry.relation_between(guest, host)
            topics = []
            if relation > -50:
                topics.append(SummitTopic.TRADE_DEAL)
            if relation > 0:
                topics += [SummitTopic.TERRITORIAL, SummitTopic.ARMS_REDUCTION]
            if relation > 30:
                topics += [SummitTopic.ALLIANCE, SummitTopic.COALITION_FORMATION]
        if self.crises.shared_crisis(host, guest) is not None:
            topics.append(SummitTopic.CRISIS_RESOLUTION)
        return topics

    def topic_chance(self, host: str, guest: str, topic: SummitTopic) -> float:
        relation = self.registry.relation_between(guest, host)
        chance = acceptance_chance(AgreementType[SUMMIT_TOPIC_AGREEMENT[topic.name]], relation)
        nation = self.registry.get(guest)
        if self.strategy_engine is not None and nation is not None and not nation.is_player:
            chance += self.strategy_engine.strategy_for(nation).summit_adjustment(topic.name)
        return clamp(chance, 0.05, 0.95)

    # ------------------------------------------------------------------
    # Proposing and holding
    # ------------------------------------------------------------------

    def propose(self, guests, topics: Optional[List[SummitTopic]] = None, host: Optional[str] = None,
                summit_type: SummitType = SummitType.BILATERAL) -> InstrumentResult:
        """Host a summit. A player guest gets an invitation instead of an immediate result."""
        host = host or self.config.player_code
        if isinstance(guests, str):
            guests = [guests]
        guests = [g for g in guests if g != host and self.registry.is_targetable(g)]
        if not guests or not self.registry.is_targetable(host):
            return InstrumentResult(False, "No valid summit participants")
        if summit_type == SummitType.BILATERAL and len(guests) > 1:
            raise InvalidCommandError("A bilateral summit takes exactly one guest")

        summit = Summit(f"summit-{next(self._ids)}", summit_type, host, guests, list(topics or []))
        for guest in guests:
            allowed = self.available_topics(host, guest)
            wanted = [t for t in summit.topics if t in allowed] if topics else allowed
            for topic in wanted:
                summit.proposals.append(SummitProposal(guest, topic, self.topic_chance(host, guest, topic)))
        if not topics:
            summit.topics = sorted({p.topic for p in summit.proposals}, key=lambda t: t.value)

        if self.config.player_code in guests:
            expires = self.registry.tick + round(self.config.invite_expiry_days * self.config.ticks_per_day())
            summit.expires_at = max(1, expires)
            self.pending.append(summit)
            return InstrumentResult(True, f"Summit invitation sent by {self._name(host)}", summit)

        self._hold(summit)
        return InstrumentResult(summit.outcome in (SummitOutcome.AGREEMENT, SummitOutcome.PARTIAL),
                                f"Summit outcome: {summit.outcome.value}", summit)

    def respond(self, summit_id: str, accept: bool, topics: Optional[List[SummitTopic]] = None) -> InstrumentResult:
        """Player's answer to a pending invitation; accepted topics pass without a roll."""
        summit = next((s for s in self.pending if s.id == summit_id), None)
        if summit is None:
            return InstrumentResult(False, f"No such summit invitation: {summit_id}")
        self.pending.remove(summit)
        player = self.config.player_code
        if not accept:
            self.registry.adjust_relation_between(summit.host, player, -5)
            summit.outcome = SummitOutcome.BREAKDOWN
            summit.held_at = self.registry.tick
            self.summits.append(summit)
            return InstrumentResult(True, "Summit invitation declined", summit)
        for proposal in summit.proposals:
            if proposal.guest == player:
                proposal.chance = 1.0 if topics is None or proposal.topic in topics else 0.0
        self._hold(summit)
        return InstrumentResult(True, f"Summit outcome: {summit.outcome.value}", summit)

    def _hold(self, summit: Summit):
        summit.held_at = self.registry.tick
        self.summits.append(summit)
        if not summit.proposals:
            summit.outcome = SummitOutcome.POSTPONED
            logger.info(f"SUMMIT: {self._name(summit.host)} summit postponed, nothing to discuss")
            return

        for proposal in summit.proposals:
            proposal.accepted = self.rng.random() < proposal.chance
            if proposal.accepted:
                self.registry.adjust_relation_between(proposal.guest, summit.host, 10)
                self._apply_topic(summit.host, proposal.guest, proposal.topic)
            else:
                self.registry.adjust_relation_between(proposal.guest, summit.host, -2)

        accepted = sum(1 for p in summit.proposals if p.accepted)
        if accepted == len(summit.proposals):
            summit.outcome = SummitOutcome.AGREEMENT
        elif accepted:
            summit.outcome = SummitOutcome.PARTIAL
        else:
            summit.outcome = SummitOutcome.BREAKDOWN

        guests = ", ".join(self._name(g) for g in summit.guests)
        self.events.emit(
            DiplomaticEventType.SUMMIT,
            f"Summit in {self._name(summit.host)}: {summit.outcome.value}",
            f"{self._name(summit.host)} met {guests}; {accepted} of {len(summit.proposals)} proposals agreed.",
            affected=[summit.host] + summit.guests,
        )
        logger.info(f"SUMMIT: {self._name(summit.host)} with {guests} -> {summit.outcome.value}")

    def _apply_topic(self, host: str, guest: str, topic: SummitTopic):
        if topic == SummitTopic.PEACE_TREATY:
            self.wars.make_peace_between(host, guest)
        elif topic == SummitTopic.TRADE_DEAL:
            self._sign(host, guest, AgreementType.TRADE_AGREEMENT)
        elif topic == SummitTopic.ALLIANCE:
            self._sign(host, guest, AgreementType.MILITARY_ALLIANCE)
        elif topic == SummitTopic.CRISIS_RESOLUTION:
            crisis = self.crises.shared_crisis(host, guest)
            if crisis is not None:
                self.crises.resolve_peacefully(crisis, "summit agreement")
        elif topic == SummitTopic.COALITION_FORMATION:
            self._form_coalition(host, guest)
        elif topic == SummitTopic.ARMS_REDUCTION:
            for code in (host, guest):
                nation = self.registry.get(code)
                self.registry.update_soldiers(code, -int(nation.soldiers * 0.05))
                self.registry.recalculate_power(code)
        elif topic == SummitTopic.TERRITORIAL:
            # Recognized borders: standing claims between the two are dropped
            for code in (host, guest):
                nation = self.registry.get(code)
                if nation is not None and not nation.is_player:
                    nation.claimed_percentage = 0.0

    def _sign(self, host: str, guest: str, agreement_type: AgreementType):
        """Record the agreement on the AI side(s); the player holds no agreement list."""
        for code, other in ((guest, host), (host, guest)):
            nation = self.registry.get(code)
            if nation is not None and not nation.is_player and not nation.has_agreement(agreement_type, other):
                self.registry.sign_agreement(code, agreement_type, other)

    def _form_coalition(self, host: str, guest: str):
        existing = self.coalitions.military_coalition_of(host)
        if existing is not None:
            if guest not in existing.members:
                self.coalitions.join(existing.id, guest)
            return
        name = f"{self._name(host)}-{self._name(guest)} Pact"
        self.coalitions.create(name, CoalitionType.MILITARY, host, [guest])

    # ------------------------------------------------------------------
    # AI
    # ------------------------------------------------------------------

    def expire_invitations(self) -> int:
        """Invitations the player never answered lapse as postponed summits."""
        expired = [s for s in self.pending if s.expires_at is not None and s.expires_at <= self.registry.tick]
        for summit in expired:
            self.pending.remove(summit)
            summit.outcome = SummitOutcome.POSTPONED
            summit.held_at = self.registry.tick
            self.summits.append(summit)
            logger.info(f"SUMMIT: invitation from {self._name(summit.host)} lapsed unanswered")
        return len(expired)

    def ai_summits(self) -> int:
        held = 0
        for nation in self.registry.active_nations():
            if self.rng.random() >= self.config.ai_summit_chance:
                continue
            partner = self._ai_partner(nation)
            if partner is None:
                continue
            if self.propose(partner, host=nation.code).value is not None:
                held += 1
        return held

    def _ai_partner(self, nation) -> Optional[str]:
        for crisis in self.crises.active_crises():
            if nation.code in crisis.participants:
                return crisis.other(nation.code)
        for war in self.wars.wars_involving(nation.code):
            return war.opponent_of(nation.code)
        candidates = [c for c in self.registry.active_codes(include_player=True) if c != nation.code]
        if not candidates:
            return None
        return max(candidates, key=lambda c: self.registry.relation_between(nation.code, c) + self.rng.random() * 20)

    def to_dict(self):
        return {
            "held": len(self.summits),
            "pending": [s.to_dict() for s in self.pending],
            "recent": [s.to_dict() for s in self.summits[-5:]],
        }
