"""
Diplomatic instruments: agreements, tariffs, claims and covert actions.
Each instrument decides (possibly with a roll) and then mutates the registry.
"""

from dataclasses import dataclass
from typing import Any, Optional
import random
import logging

from config import SimulationConfig, AGREEMENT_ACCEPTANCE, TARIFF_RELATION_DELTA, COVERT_ACTIONS
from events import EventLog, DiplomaticEventType
from nation import AgreementType, TariffLevel, Modifier
from registry import NationRegistry

logger = logging.getLogger(__name__)


@dataclass
class InstrumentResult:
    """Outcome of an instrument call. Falsy on failure; `message` is user-facing."""
    success: bool
    message: str = ""
    value: Any = None

    def __bool__(self):
        return self.success


def acceptance_chance(agreement_type: AgreementType, relations: int) -> float:
    """Probability that a nation at `relations` accepts an agreement of this type."""
    threshold, above, below = AGREEMENT_ACCEPTANCE[agreement_type.name]
    return above if relations > threshold else below


class DiplomacyService:
    """Agreement, tariff, claim and covert-action instruments."""

    def __init__(self, config: SimulationConfig, registry: NationRegistry, events: EventLog,
                 rng: Optional[random.Random] = None):
        self.config = config
        self.registry = registry
        self.events = events
        self.rng = rng or random.Random()

    def _actor(self, actor: Optional[str]) -> str:
        return actor or self.config.player_code

    def _name(self, code: str) -> str:
        nation = self.registry.get(code)
        return nation.name if nation else code

    # ------------------------------------------------------------------
    # Agreements
    # ------------------------------------------------------------------

    def propose_agreement(self, code: str, agreement_type: AgreementType,
                          proposer: Optional[str] = None) -> InstrumentResult:
        """Offer an agreement to `code`; acceptance is a step function of relations."""
        proposer = self._actor(proposer)
        target = self.registry.get(code)
        if target is None or not self.registry.is_targetable(code) or not self.registry.is_targetable(proposer):
            return InstrumentResult(False, f"No such nation: {code}")
        if code == proposer:
            return InstrumentResult(False, "A nation cannot sign an agreement with itself")

        relations = self.registry.relation_between(code, proposer)
        chance = acceptance_chance(agreement_type, relations)

        if self.rng.random() < chance:
            agreement = self.registry.sign_agreement(code, agreement_type, proposer)
            proposer_nation = self.registry.get(proposer)
            if not proposer_nation.is_player:
                self.registry.sign_agreement(proposer, agreement_type, code)
            self.registry.adjust_relation_between(code, proposer, self.config.agreement_accept_bonus)

            event_type = (DiplomaticEventType.ALLIANCE if agreement_type == AgreementType.MILITARY_ALLIANCE
                          else DiplomaticEventType.DIPLOMACY)
            label = agreement_type.name.replace("_", " ").title()
            self.events.emit(event_type, f"{label} signed",
                             f"{self._name(code)} and {self._name(proposer)} signed a {label.lower()}.",
                             affected=[code, proposer])
            logger.info(f"AGREEMENT: {self._name(proposer)} + {self._name(code)} ({agreement_type.name})")
            return InstrumentResult(True, f"{self._name(code)} accepted the {label.lower()}", agreement)

        self.registry.adjust_relation_between(code, proposer, -self.config.agreement_reject_penalty)
        return InstrumentResult(False, f"{self._name(code)} rejected the proposal")

    def break_agreement(self, code: str, agreement_id: str) -> bool:
        """Tear up an agreement. Always succeeds when it exists, always costly."""
        agreement = self.registry.remove_agreement(code, agreement_id)
        if agreement is None:
            return False
        # Mirror copy held by an AI counterpart
        counterpart = self.registry.get(agreement.target)
        if counterpart is not None and not counterpart.is_player:
            mirror = next((a for a in counterpart.agreements
                           if a.type == agreement.type and a.target == code), None)
            if mirror is not None:
                self.registry.remove_agreement(agreement.target, mirror.id)
        self.registry.adjust_relation_between(code, agreement.target, -self.config.agreement_break_penalty)
        self.events.emit(DiplomaticEventType.DIPLOMACY, f"Agreement broken with {self._name(code)}",
                         f"The {agreement.type.name.replace('_', ' ').lower()} between {self._name(code)} "
                         f"and {self._name(agreement.target)} has been broken.",
                         affected=[code, agreement.target], severity=2)
        return True

    def set_tariff(self, code: str, level: TariffLevel) -> bool:
        nation = self.registry.get(code)
        if nation is None or nation.is_annexed:
            return False
        nation.tariff = level
        self.registry.update_relations(code, TARIFF_RELATION_DELTA[level.name])
        return True

    def add_claim(self, code: str, percentage: float) -> bool:
        if not self.registry.add_claim(code, percentage):
            return False
        self.events.emit(DiplomaticEventType.TERRITORY_DEMANDED, f"Claim on {self._name(code)}",
                         f"A claim on {percentage:.0f}% of {self._name(code)} has been registered.",
                         affected=[code])
        return True

    # ------------------------------------------------------------------
    # Covert actions
    # ------------------------------------------------------------------

    def _charge(self, actor: str, target: str, cost: float) -> InstrumentResult:
        actor_nation = self.registry.get(actor)
        if actor_nation is None:
            return InstrumentResult(False, f"No such nation: {actor}")
        if not self.registry.is_targetable(target):
            return InstrumentResult(False, f"No such nation: {target}")
        if actor_nation.treasury < cost:
            return InstrumentResult(False, f"Insufficient funds: need ${cost / 1e6:.0f}M, "
                                           f"have ${actor_nation.treasury / 1e6:.0f}M")
        actor_nation.treasury -= cost
        return InstrumentResult(True)

    def destabilize(self, code: str, actor: Optional[str] = None) -> InstrumentResult:
        actor = self._actor(actor)
        costs = COVERT_ACTIONS["DESTABILIZE"]
        charged = self._charge(actor, code, costs["budget_cost"])
        if not charged:
            return charged
        nation = self.registry.get(code)
        nation.add_modifier(Modifier.DESTABILIZED)
        self.registry.recalculate_power(code)
        self.registry.adjust_relation_between(code, actor, costs["relations"])
        logger.info(f"COVERT: {self._name(actor)} destabilized {nation.name}")
        return InstrumentResult(True, f"{nation.name} destabilized", nation.power)

    def fund_separatists(self, code: str, actor: Optional[str] = None) -> InstrumentResult:
        actor = self._actor(actor)
        costs = COVERT_ACTIONS["FUND_SEPARATISTS"]
        charged = self._charge(actor, code, costs["budget_cost"])
        if not charged:
            return charged
        nation = self.registry.get(code)
        low, high = costs["soldier_loss"]
        lost = round(nation.soldiers * self.rng.uniform(low, high))
        self.registry.update_soldiers(code, -lost)
        self.registry.recalculate_power(code)
        self.registry.adjust_relation_between(code, actor, costs["relations"])
        logger.info(f"COVERT: {self._name(actor)} funded separatists in {nation.name} ({lost} soldiers lost)")
        return InstrumentResult(True, f"Separatists cost {nation.name} {lost} soldiers", lost)

    def plant_propaganda(self, code: str, actor: Optional[str] = None) -> InstrumentResult:
        actor = self._actor(actor)
        costs = COVERT_ACTIONS["PLANT_PROPAGANDA"]
        charged = self._charge(actor, code, costs["budget_cost"])
        if not charged:
            return charged
        nation = self.registry.get(code)
        nation.add_modifier(Modifier.PROPAGANDA_CAMPAIGN)
        self.registry.adjust_relation_between(code, actor, costs["relations"])
        return InstrumentResult(True, f"Propaganda planted in {nation.name}")
