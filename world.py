"""
World simulation orchestration.
Owns every subsystem, runs the per-tick phases, and exposes the command surface.
"""

from typing import Dict, Iterable, List, Optional
import logging
import random
import numpy as np

from config import SimulationConfig
from combat import CombatResolver
from coalition import CoalitionManager, CoalitionType, CoalitionRequirements
from crisis import CrisisManager, CrisisAction
from diplomacy import DiplomacyService, InstrumentResult
from events import EventLog, DiplomaticEventType
from geometry import GeometryService, AreaGeometryService, DeferredWorkQueue
from nation import AgreementType, TariffLevel, Modifier
from reference_data import ReferenceDataProvider, StaticReferenceData
from registry import NationRegistry, PlayerSetup
from soft_power import SoftPowerSystem, InfluenceActionType
from strategy import StrategyEngine, ActionType, StrategicAction
from summit import SummitSystem, SummitTopic, SummitType
from united_nations import UnitedNations, ResolutionType, Vote
from war import WarSystem, WarRecord

logger = logging.getLogger(__name__)


class SimulatedClock:
    """Battle clock that advances a fixed number of seconds per tick."""

    def __init__(self, tick_seconds: float):
        self.tick_seconds = tick_seconds
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self):
        self.now += self.tick_seconds


class World:
    """Global simulation state and orchestration."""

    def __init__(self, config: SimulationConfig, reference_data: Optional[ReferenceDataProvider] = None,
                 geometry: Optional[GeometryService] = None, player: Optional[PlayerSetup] = None,
                 clock=None, seed_data: Optional[Iterable] = None):
        self.config = config
        self.step = 0
        self.rng = random.Random(config.seed)

        self.events = EventLog()
        self.reference_data = reference_data or StaticReferenceData(rng=self.rng)
        self.registry = NationRegistry(config, self.events, self.reference_data, rng=self.rng)
        self.geometry = geometry or AreaGeometryService.from_reference(self.reference_data, self.reference_data.codes())
        self.work_queue = DeferredWorkQueue()
        self.clock = clock or SimulatedClock(config.tick_seconds)

        # Subsystems
        self.combat = CombatResolver(config, seed=config.seed)
        self.wars = WarSystem(config, self.registry, self.events, self.combat, self.geometry,
                              self.work_queue, self.clock, rng=self.rng)
        self.coalitions = CoalitionManager(config, self.registry, self.events, self.wars, rng=self.rng)
        self.strategy = StrategyEngine(config, rng=self.rng)
        self.diplomacy = DiplomacyService(config, self.registry, self.events, rng=self.rng)
        self.un = UnitedNations(config, self.registry, self.events, rng=self.rng)
        self.crises = CrisisManager(config, self.registry, self.events, rng=self.rng,
                                    declare_war=self.declare_ai_war, strategy_engine=self.strategy)
        self.soft_power = SoftPowerSystem(config, self.registry, self.events, rng=self.rng,
                                          strategy_engine=self.strategy)
        self.summits = SummitSystem(config, self.registry, self.events, self.wars, self.crises,
                                    self.coalitions, strategy_engine=self.strategy, rng=self.rng)

        self._initialize(seed_data, player)

    def _initialize(self, seed_data: Optional[Iterable], player: Optional[PlayerSetup]):
        seeds = list(seed_data) if seed_data is not None else self.reference_data.codes()
        self.registry.initialize(seeds, player or PlayerSetup())
        self.coalitions.seed_real_world()
        for nation in self.registry.active_nations():
            self.strategy.assign_personality(nation)
        self.registry.recalculate_all()
        logger.info(f"World ready: {len(self.registry)} nations, {len(self.coalitions.coalitions)} coalitions")

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def simulate_step(self, step: int) -> Dict:
        """Execute one tick and return a snapshot of committed state."""
        self.step = step
        self.registry.tick = step
        self.events.tick = step
        first_event = len(self.events)

        # 1. Territory computed last tick lands now
        self.work_queue.drain()

        # 2. Defensive cleanup of stale war state
        self.wars.cleanup()

        # 3. Coalition housekeeping
        self.coalitions.expire_invites()
        self.coalitions.update_coalition_wars()

        # 4. Per-nation AI pass
        for nation in self.registry.active_nations():
            if not nation.is_annexed:
                self._ai_turn(nation)

        # 5. AI-vs-AI rivalry and war
        self.wars.discover_rivalries()
        self._ai_vs_ai_wars()

        # 6. Battles
        self.wars.progress()

        # 7. Monthly systems
        if (step + 1) % self.config.ticks_per_month == 0:
            self._monthly()

        if isinstance(self.clock, SimulatedClock):
            self.clock.advance()

        return self.snapshot(step, first_event)

    def _ai_turn(self, nation):
        queue = self.strategy.assess(nation, self)

        if self.wars.is_in_any_war(nation.code) and self.rng.random() < self.strategy.offensive_chance(nation):
            self.wars.launch_offensive(nation.code)

        for action in queue:
            if action.type != ActionType.DECLARE_WAR:
                self._execute_action(nation, action)

        drift = self.strategy.relation_drift(nation, self.registry.player)
        if drift and not nation.is_at_war:
            self.registry.update_relations(nation.code, drift)

        # War on the player is decided here; AI targets wait for phase 5
        war_action = queue.find(ActionType.DECLARE_WAR)
        if war_action is not None and war_action.target == self.registry.player_code:
            if self.strategy.choose_war(nation, self) is not None:
                self.declare_ai_war(nation.code, war_action.target, self._war_goal(nation, war_action.target))

    def _ai_vs_ai_wars(self):
        for nation in self.registry.active_nations():
            state = nation.strategy_state
            if state is None:
                continue
            war_action = state.queue.find(ActionType.DECLARE_WAR)
            if war_action is None or war_action.target == self.registry.player_code:
                continue
            if self.wars.at_war_between(nation.code, war_action.target):
                continue
            target = self.strategy.choose_war(nation, self)
            if target is not None:
                self.declare_ai_war(nation.code, target, self._war_goal(nation, target))

    def _war_goal(self, nation, target: str) -> str:
        if nation.has(Modifier.REVANCHISM) and nation.occupier == target:
            return "RECONQUEST"
        if self.registry.get(target).claimed_percentage > 0 or nation.territory_lost > 0:
            return "TERRITORIAL"
        return "AGGRESSION"

    def _execute_action(self, nation, action: StrategicAction):
        code = nation.code
        target = action.target
        if action.type == ActionType.BUILD_MILITARY:
            recruits = max(100, int(nation.soldiers * 0.02))
            cost = recruits * 10_000
            if nation.treasury >= cost:
                nation.treasury -= cost
                self.registry.update_soldiers(code, recruits)
                self.registry.recalculate_power(code)
        elif action.type == ActionType.PROPOSE_ALLIANCE:
            if target and target != self.registry.player_code \
                    and not nation.has_agreement(AgreementType.MILITARY_ALLIANCE, target):
                self.diplomacy.propose_agreement(target, AgreementType.MILITARY_ALLIANCE, proposer=code)
        elif action.type == ActionType.TRADE_AGREEMENT:
            if target and target != self.registry.player_code \
                    and not nation.has_agreement(AgreementType.TRADE_AGREEMENT, target):
                if self.diplomacy.propose_agreement(target, AgreementType.TRADE_AGREEMENT, proposer=code):
                    partner = self.registry.get(target)
                    if target not in nation.trade_partners:
                        nation.trade_partners.append(target)
                    if code not in partner.trade_partners:
                        partner.trade_partners.append(code)
        elif action.type == ActionType.SANCTION:
            if nation.their_tariff != TariffLevel.EMBARGO:
                nation.their_tariff = TariffLevel.EMBARGO
                self.registry.update_relations(code, -5)
                self.events.emit(DiplomaticEventType.DIPLOMACY, f"{nation.name} imposes counter-sanctions",
                                 affected=[code])
        elif action.type == ActionType.IMPROVE_RELATIONS:
            if target:
                self.registry.adjust_relation_between(code, target, 2)
        elif action.type == ActionType.DEMAND_TERRITORY:
            self._demand_territory(nation, target)

    def _demand_territory(self, nation, target: Optional[str]):
        victim = self.registry.get(target) if target else None
        if victim is None or victim.is_annexed:
            return
        self.registry.adjust_relation_between(nation.code, target, -10)
        conceded = not victim.is_player and victim.power < 0.5 * nation.power and self.rng.random() < 0.1
        if conceded:
            self.registry.update_occupation(target, 2, by=nation.code)
        self.events.emit(
            DiplomaticEventType.TERRITORY_DEMANDED,
            f"{nation.name} demands territory from {victim.name}",
            f"{victim.name} {'concedes a border strip' if conceded else 'rejects the demand'}.",
            affected=[nation.code, target],
        )

    def _monthly(self):
        for nation in self.registry.active_nations(include_player=True):
            nation.treasury += nation.economy * self.config.monthly_income_per_economy
        self.un.update()
        self.crises.update()
        self.soft_power.update()
        self.summits.expire_invitations()
        self.summits.ai_summits()
        self.coalitions.ai_recruit()

    # ------------------------------------------------------------------
    # War declaration (shared by AI, crises and the player)
    # ------------------------------------------------------------------

    def declare_ai_war(self, attacker: str, defender: str, goal: str = "AGGRESSION") -> Optional[WarRecord]:
        """Open a war and run collective defense. Coalition partners never fight each other."""
        for coalition in list(self.coalitions.coalitions_of(attacker)):
            if coalition.type == CoalitionType.MILITARY and defender in coalition.members:
                self.coalitions.leave(coalition.id, attacker)
        war = self.wars.declare(attacker, defender, goal)
        if war is not None:
            self.coalitions.trigger_article_five(defender, attacker)
        return war

    # ------------------------------------------------------------------
    # Command surface
    # ------------------------------------------------------------------

    def declare_war(self, code: str) -> Optional[WarRecord]:
        return self.declare_ai_war(self.registry.player_code, code, "AGGRESSION")

    def make_peace(self, code: str) -> bool:
        return self.wars.make_peace_between(self.registry.player_code, code)

    def propose_agreement(self, code: str, agreement_type: AgreementType) -> InstrumentResult:
        return self.diplomacy.propose_agreement(code, agreement_type)

    def break_agreement(self, code: str, agreement_id: str) -> bool:
        return self.diplomacy.break_agreement(code, agreement_id)

    def set_tariff(self, code: str, level: TariffLevel) -> bool:
        return self.diplomacy.set_tariff(code, level)

    def add_claim(self, code: str, percentage: float) -> bool:
        return self.diplomacy.add_claim(code, percentage)

    def destabilize(self, code: str) -> InstrumentResult:
        return self.diplomacy.destabilize(code)

    def fund_separatists(self, code: str) -> InstrumentResult:
        return self.diplomacy.fund_separatists(code)

    def plant_propaganda(self, code: str) -> InstrumentResult:
        return self.diplomacy.plant_propaganda(code)

    def request_support(self, code: str) -> int:
        return self.registry.request_support(code)

    def liberate(self, code: str) -> bool:
        return self.registry.liberate(code)

    def propose_resolution(self, resolution_type: ResolutionType, target: Optional[str] = None) -> InstrumentResult:
        return self.un.propose(resolution_type, target)

    def vote(self, resolution_id: str, vote: Vote) -> bool:
        return self.un.cast_vote(resolution_id, vote)

    def respond_to_crisis(self, crisis_id: str, action: CrisisAction):
        return self.crises.act(crisis_id, self.registry.player_code, action)

    def execute_influence(self, action: InfluenceActionType, target: Optional[str] = None) -> InstrumentResult:
        return self.soft_power.execute(action, target)

    def propose_summit(self, guests, topics: Optional[List[SummitTopic]] = None,
                       summit_type: SummitType = SummitType.BILATERAL) -> InstrumentResult:
        return self.summits.propose(guests, topics, summit_type=summit_type)

    def respond_to_summit(self, summit_id: str, accept: bool,
                          topics: Optional[List[SummitTopic]] = None) -> InstrumentResult:
        return self.summits.respond(summit_id, accept, topics)

    def create_coalition(self, name: str, coalition_type: CoalitionType, members,
                         requirements: Optional[CoalitionRequirements] = None):
        return self.coalitions.create(name, coalition_type, self.registry.player_code, members, requirements)

    def join_coalition(self, coalition_id: str) -> InstrumentResult:
        return self.coalitions.request_join(coalition_id)

    def leave_coalition(self, coalition_id: str) -> bool:
        return self.coalitions.leave(coalition_id, self.registry.player_code)

    def invite_to_coalition(self, coalition_id: str, code: str) -> InstrumentResult:
        return self.coalitions.invite(coalition_id, code)

    def respond_to_coalition_invite(self, invite_id: str, accept: bool) -> InstrumentResult:
        return self.coalitions.respond_invite(invite_id, accept)

    def kick_from_coalition(self, coalition_id: str, code: str) -> bool:
        coalition = self.coalitions.get(coalition_id)
        if coalition is None or coalition.leader != self.registry.player_code:
            return False
        return self.coalitions.kick(coalition_id, code)

    def surrender(self, coalition_id: str) -> bool:
        return self.coalitions.surrender(coalition_id, self.registry.player_code)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def global_stats(self) -> Dict:
        active = self.registry.active_nations()
        relations = np.array([n.relations for n in active]) if active else np.zeros(1)
        casualties = sum(w.attacker_casualties + w.defender_casualties
                         for w in self.wars.wars + self.wars.history)
        return {
            "living_nations": len(active),
            "annexed_nations": sum(1 for n in self.registry if n.is_annexed),
            "active_wars": len(self.wars.active_wars()),
            "wars_ended": len(self.wars.history),
            "coalitions": len(self.coalitions.coalitions),
            "coalition_wars": sum(1 for w in self.coalitions.coalition_wars if w.is_active),
            "active_crises": len(self.crises.active_crises()),
            "un_resolutions": len(self.un.resolutions),
            "total_soldiers": int(sum(n.soldiers for n in active)),
            "total_casualties": casualties,
            "avg_relations": float(np.mean(relations)),
            "hostile_nations": int(np.sum(relations <= -20)),
            "deferred_failed": self.work_queue.failed,
        }

    def snapshot(self, step: int, first_event: int = 0) -> Dict:
        return {
            "step": step,
            "events": [e.to_dict() for e in self.events.since(first_event)],
            "global_stats": self.global_stats(),
            "nations": {n.code: n.to_dict() for n in self.registry},
            "active_wars": [w.to_dict() for w in self.wars.active_wars()],
            "coalitions": self.coalitions.to_dict(),
            "coalition_wars": [w.to_dict() for w in self.coalitions.coalition_wars],
            "crises": self.crises.to_dict(),
            "united_nations": self.un.to_dict(),
            "soft_power": self.soft_power.to_dict(),
            "summits": self.summits.to_dict(),
        }
