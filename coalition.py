"""
Coalitions and collective defense.

Named alliances with typed membership rules, plus the Article 5 protocol that
turns an attack on one military-coalition member into a multi-party war.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
import itertools
import logging
import random

from config import SimulationConfig, REAL_WORLD_COALITIONS, COALITION_ICONS
from diplomacy import InstrumentResult
from events import EventLog, DiplomaticEventType
from nation import Modifier, clamp
from registry import NationRegistry
from war import WarSystem, WarStatus

logger = logging.getLogger(__name__)


class CoalitionType(Enum):
    MILITARY = "military"
    TRADE = "trade"
    RESEARCH = "research"


class CoalitionWarStatus(Enum):
    ACTIVE = "active"
    VICTORY = "victory"  # the coalition prevailed over the aggressor
    DEFEAT = "defeat"
    PEACE = "peace"


@dataclass
class CoalitionRequirements:
    religion: Optional[str] = None
    culture: Optional[str] = None
    min_relations: Optional[int] = None  # with the leader
    min_military: Optional[int] = None  # 1-5, military coalitions
    min_economy: Optional[float] = None  # trade coalitions
    min_freedom: Optional[int] = None  # 1-5, research coalitions


@dataclass
class Coalition:
    id: str
    name: str
    type: CoalitionType
    leader: str
    members: List[str]
    created_at: int = 0
    requirements: Optional[CoalitionRequirements] = None

    @property
    def icon(self) -> str:
        return COALITION_ICONS[self.type.name]

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "leader": self.leader,
            "members": list(self.members),
            "created_at": self.created_at,
            "icon": self.icon,
        }


@dataclass
class CoalitionInvite:
    id: str
    coalition_id: str
    target: str
    expires_at: int  # tick


@dataclass
class CoalitionWar:
    id: str
    coalition_id: str
    aggressor: str
    defender: str
    started_at: int
    aggressor_territory_start: float
    mobilized: List[str] = field(default_factory=list)
    reinforcements: int = 0
    casualties: int = 0
    aggressor_territory_lost: float = 0.0
    status: CoalitionWarStatus = CoalitionWarStatus.ACTIVE
    ended_at: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == CoalitionWarStatus.ACTIVE

    def to_dict(self):
        return {
            "id": self.id,
            "coalition_id": self.coalition_id,
            "aggressor": self.aggressor,
            "defender": self.defender,
            "mobilized": list(self.mobilized),
            "reinforcements": self.reinforcements,
            "casualties": self.casualties,
            "aggressor_territory_lost": self.aggressor_territory_lost,
            "status": self.status.value,
        }


class CoalitionManager:
    """Coalition registry, membership rules and the Article 5 cascade."""

    def __init__(self, config: SimulationConfig, registry: NationRegistry, events: EventLog,
                 wars: WarSystem, rng: Optional[random.Random] = None):
        self.config = config
        self.registry = registry
        self.events = events
        self.wars = wars
        self.rng = rng or random.Random()
        self.coalitions: Dict[str, Coalition] = {}
        self.invites: List[CoalitionInvite] = []
        self.coalition_wars: List[CoalitionWar] = []
        self._ids = itertools.count(1)
        self._invite_ids = itertools.count(1)
        self._war_ids = itertools.count(1)

        registry.on_annex(self._on_annex)
        registry.coalition_counter = self.coalition_count
        wars.shares_military_coalition = self.share_military_coalition

    def _name(self, code: str) -> str:
        nation = self.registry.get(code)
        return nation.name if nation else code

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, coalition_id: str) -> Optional[Coalition]:
        return self.coalitions.get(coalition_id)

    def coalitions_of(self, code: str) -> List[Coalition]:
        return [c for c in self.coalitions.values() if code in c.members]

    def coalition_count(self, code: str) -> int:
        return len(self.coalitions_of(code))

    def military_coalition_of(self, code: str) -> Optional[Coalition]:
        for coalition in self.coalitions.values():
            if coalition.type == CoalitionType.MILITARY and code in coalition.members:
                return coalition
        return None

    def share_military_coalition(self, code_a: str, code_b: str) -> bool:
        return any(
            c.type == CoalitionType.MILITARY and code_a in c.members and code_b in c.members
            for c in self.coalitions.values()
        )

    def coalition_strength(self, code: str) -> int:
        """Soldiers of `code` plus every other active member of its military coalitions."""
        nation = self.registry.get(code)
        if nation is None:
            return 0
        total = nation.soldiers
        counted = {code}
        for coalition in self.coalitions_of(code):
            if coalition.type != CoalitionType.MILITARY:
                continue
            for member in coalition.members:
                if member in counted or not self.registry.is_targetable(member):
                    continue
                counted.add(member)
                total += self.registry.get(member).soldiers
        return total

    def defense_support(self, code: str) -> int:
        """Troops pledged to `code` by members who are free to send them."""
        coalition = self.military_coalition_of(code)
        if coalition is None:
            return 0
        support = 0
        for member in coalition.members:
            if member == code or not self.registry.is_targetable(member):
                continue
            if self.wars.is_in_any_war(member):
                continue
            support += int(self.registry.get(member).soldiers * self.config.defense_contribution)
        return support

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def meets_requirements(self, coalition: Coalition, code: str) -> bool:
        nation = self.registry.get(code)
        if nation is None or nation.is_annexed:
            return False
        req = coalition.requirements
        if req is None:
            return True
        if req.religion is not None and nation.religion != req.religion:
            return False
        if req.culture is not None and nation.culture != req.culture:
            return False
        if req.min_relations is not None and self.registry.relation_between(code, coalition.leader) < req.min_relations:
            return False
        if coalition.type == CoalitionType.MILITARY and req.min_military is not None:
            if nation.political.military < req.min_military:
                return False
        if coalition.type == CoalitionType.TRADE and req.min_economy is not None:
            if nation.economy < req.min_economy:
                return False
        if coalition.type == CoalitionType.RESEARCH and req.min_freedom is not None:
            if nation.political.freedom < req.min_freedom:
                return False
        return True

    def can_join(self, coalition: Coalition, code: str) -> InstrumentResult:
        if not self.registry.is_targetable(code):
            return InstrumentResult(False, f"No such nation: {code}")
        if code in coalition.members:
            return InstrumentResult(False, f"{self._name(code)} is already a member of {coalition.name}")
        if not self.meets_requirements(coalition, code):
            return InstrumentResult(False, f"{self._name(code)} does not meet the requirements of {coalition.name}")
        at_war_with = [m for m in coalition.members if self.wars.at_war_between(code, m)]
        if at_war_with:
            return InstrumentResult(False, f"{self._name(code)} is at war with {self._name(at_war_with[0])}")
        return InstrumentResult(True)

    def calculate_join_chance(self, coalition: Coalition, code: str) -> float:
        """Percent chance (0-100) that an AI nation accepts membership."""
        nation = self.registry.get(code)
        leader = self.registry.get(coalition.leader)
        if nation is None or leader is None:
            return 0.0
        political = nation.political
        chance = 50.0
        chance += 50 - abs(nation.orientation - leader.orientation)
        if coalition.type == CoalitionType.MILITARY:
            chance += (political.military - 3) * 10
            chance += (political.aggression - 3) * 5
        else:
            chance += (political.freedom - 3) * 10
            chance -= (political.aggression - 3) * 10
        chance += min(20, 2 * len(coalition.members))
        return clamp(chance, 0.0, 100.0)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, name: str, coalition_type: CoalitionType, founder: str, members=(),
               requirements: Optional[CoalitionRequirements] = None) -> Optional[Coalition]:
        """Found a coalition. Needs the founder plus at least one other eligible member."""
        if not self.registry.is_targetable(founder):
            return None
        coalition = Coalition(
            id=f"coal-{next(self._ids)}",
            name=name,
            type=coalition_type,
            leader=founder,
            members=[founder],
            created_at=self.registry.tick,
            requirements=requirements,
        )
        for code in members:
            if code == founder or code in coalition.members:
                continue
            if self.can_join(coalition, code):
                coalition.members.append(code)
        if len(coalition.members) < 2:
            logger.debug(f"Coalition {name} not founded: no eligible members")
            return None

        self.coalitions[coalition.id] = coalition
        self._refresh_power(coalition.members)
        self.events.emit(
            DiplomaticEventType.ALLIANCE,
            f"{name} founded",
            f"{self._name(founder)} leads the new {coalition_type.value} coalition {name} "
            f"with {len(coalition.members)} members.",
            affected=coalition.members,
            severity=2,
        )
        logger.info(f"COALITION: {name} founded by {self._name(founder)} ({len(coalition.members)} members)")
        return coalition

    def seed_real_world(self) -> List[Coalition]:
        created = []
        for seed in REAL_WORLD_COALITIONS:
            if not self.registry.is_targetable(seed["leader"]):
                continue
            members = [m for m in seed["members"] if self.registry.is_targetable(m)]
            if len(members) < 2:
                continue
            coalition = Coalition(
                id=f"coal-{next(self._ids)}",
                name=seed["name"],
                type=CoalitionType[seed["type"]],
                leader=seed["leader"],
                members=members,
                created_at=self.registry.tick,
            )
            self.coalitions[coalition.id] = coalition
            created.append(coalition)
            self._refresh_power(members)
        logger.info(f"Seeded {len(created)} real-world coalitions")
        return created

    def join(self, coalition_id: str, code: str) -> InstrumentResult:
        coalition = self.coalitions.get(coalition_id)
        if coalition is None:
            return InstrumentResult(False, f"No such coalition: {coalition_id}")
        allowed = self.can_join(coalition, code)
        if not allowed:
            return allowed
        coalition.members.append(code)
        self._refresh_power([code])
        self.events.emit(
            DiplomaticEventType.ALLIANCE,
            f"{self._name(code)} joins {coalition.name}",
            affected=[code, coalition.leader],
        )
        logger.info(f"COALITION: {self._name(code)} joined {coalition.name}")
        return InstrumentResult(True, f"{self._name(code)} joined {coalition.name}", coalition)

    def leave(self, coalition_id: str, code: str) -> bool:
        coalition = self.coalitions.get(coalition_id)
        if coalition is None or code not in coalition.members:
            return False
        self._remove_member(coalition, code, f"{self._name(code)} leaves {coalition.name}")
        return True

    def kick(self, coalition_id: str, code: str) -> bool:
        coalition = self.coalitions.get(coalition_id)
        if coalition is None or code not in coalition.members or code == coalition.leader:
            return False
        self.registry.adjust_relation_between(code, coalition.leader, -20)
        self._remove_member(coalition, code, f"{self._name(code)} expelled from {coalition.name}")
        return True

    def _remove_member(self, coalition: Coalition, code: str, title: str):
        coalition.members.remove(code)
        self._refresh_power([code])
        if coalition.leader == code and coalition.members:
            coalition.leader = coalition.members[0]
        self.events.emit(DiplomaticEventType.ALLIANCE, title, affected=[code])
        logger.info(f"COALITION: {title}")
        if len(coalition.members) < 2:
            self.dissolve(coalition.id, "too few members")

    def dissolve(self, coalition_id: str, reason: str = "") -> bool:
        coalition = self.coalitions.pop(coalition_id, None)
        if coalition is None:
            return False
        self.invites = [i for i in self.invites if i.coalition_id != coalition_id]
        self._refresh_power(coalition.members)
        self.events.emit(
            DiplomaticEventType.ALLIANCE,
            f"{coalition.name} dissolved",
            f"{coalition.name} has been dissolved" + (f": {reason}." if reason else "."),
            affected=coalition.members,
            severity=2,
        )
        logger.info(f"COALITION: {coalition.name} dissolved ({reason or 'disbanded'})")
        return True

    def _refresh_power(self, codes):
        for code in codes:
            self.registry.recalculate_power(code)

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    def invite(self, coalition_id: str, code: str) -> InstrumentResult:
        """Invite a nation. AI targets decide at once; the player answers later."""
        coalition = self.coalitions.get(coalition_id)
        if coalition is None:
            return InstrumentResult(False, f"No such coalition: {coalition_id}")
        allowed = self.can_join(coalition, code)
        if not allowed:
            return allowed

        if code == self.config.player_code:
            expires = self.registry.tick + round(self.config.invite_expiry_days * self.config.ticks_per_day())
            invite = CoalitionInvite(f"inv-{next(self._invite_ids)}", coalition_id, code, max(1, expires))
            self.invites.append(invite)
            return InstrumentResult(True, f"Invitation to {coalition.name} sent", invite)

        chance = self.calculate_join_chance(coalition, code)
        if self.rng.random() * 100 < chance:
            return self.join(coalition_id, code)
        return InstrumentResult(False, f"{self._name(code)} declined to join {coalition.name}")

    def respond_invite(self, invite_id: str, accept: bool) -> InstrumentResult:
        invite = next((i for i in self.invites if i.id == invite_id), None)
        if invite is None:
            return InstrumentResult(False, f"No such invitation: {invite_id}")
        self.invites.remove(invite)
        if not accept:
            return InstrumentResult(True, "Invitation declined")
        return self.join(invite.coalition_id, invite.target)

    def request_join(self, coalition_id: str, code: Optional[str] = None) -> InstrumentResult:
        code = code or self.config.player_code
        coalition = self.coalitions.get(coalition_id)
        if coalition is None:
            return InstrumentResult(False, f"No such coalition: {coalition_id}")
        if self.registry.relation_between(coalition.leader, code) <= 0:
            return InstrumentResult(False, f"{self._name(coalition.leader)} refuses the request")
        return self.join(coalition_id, code)

    def expire_invites(self) -> int:
        before = len(self.invites)
        self.invites = [i for i in self.invites if i.expires_at > self.registry.tick]
        return before - len(self.invites)

    def ai_recruit(self) -> int:
        """AI-led coalitions occasionally invite their best-fitting neighbour."""
        joined = 0
        for coalition in list(self.coalitions.values()):
            leader = self.registry.get(coalition.leader)
            if leader is None or leader.is_player or self.rng.random() >= 0.05:
                continue
            candidates = [
                n.code for n in self.registry.active_nations()
                if n.code not in coalition.members
                and self.registry.relation_between(coalition.leader, n.code) > 0
                and self.can_join(coalition, n.code)
            ]
            if not candidates:
                continue
            best = max(candidates, key=lambda c: self.calculate_join_chance(coalition, c))
            if self.invite(coalition.id, best):
                joined += 1
        return joined

    # ------------------------------------------------------------------
    # Collective defense
    # ------------------------------------------------------------------

    def trigger_article_five(self, defender: str, aggressor: str) -> Optional[CoalitionWar]:
        """Mobilize the defender's military coalition against the aggressor."""
        coalition = self.military_coalition_of(defender)
        if coalition is None or aggressor in coalition.members:
            return None
        if any(w.is_active and w.coalition_id == coalition.id and w.aggressor == aggressor
               for w in self.coalition_wars):
            return None
        aggressor_nation = self.registry.get(aggressor)
        if aggressor_nation is None or aggressor_nation.is_annexed:
            return None

        # Members bound to the aggressor by another military coalition stay out
        allies = [
            m for m in coalition.members
            if m != defender and self.registry.is_targetable(m) and not self.share_military_coalition(m, aggressor)
        ]
        if not allies:
            return None

        coalition_war = CoalitionWar(
            id=f"cwar-{next(self._war_ids)}",
            coalition_id=coalition.id,
            aggressor=aggressor,
            defender=defender,
            started_at=self.registry.tick,
            aggressor_territory_start=aggressor_nation.territory_lost,
        )

        pool = 0
        for ally in allies:
            share = round(self.registry.get(ally).soldiers * self.config.article_five_share)
            self.registry.update_soldiers(ally, -share)
            pool += share
        self.registry.update_soldiers(defender, pool)
        coalition_war.reinforcements = pool

        for ally in allies:
            coalition_war.mobilized.append(ally)
            if self.wars.at_war_between(ally, aggressor):
                continue
            self.wars.declare(ally, aggressor, "DEFENSIVE", coalition_war_id=coalition_war.id)

        self.coalition_wars.append(coalition_war)
        self._refresh_power(allies + [defender])
        self.events.emit(
            DiplomaticEventType.ARTICLE_FIVE,
            f"{coalition.name} invokes Article 5",
            f"An attack on {self._name(defender)} is an attack on all. {len(allies)} members of "
            f"{coalition.name} mobilize {pool:,} troops against {self._name(aggressor)}.",
            affected=[defender, aggressor] + allies,
            severity=3,
        )
        logger.warning(
            f"ARTICLE 5: {coalition.name} mobilizes {len(allies)} members for {self._name(defender)} "
            f"against {self._name(aggressor)} ({pool} troops)"
        )
        return coalition_war

    def update_coalition_wars(self) -> int:
        """Refresh aggregate progress and resolve finished coalition wars. Returns resolved count."""
        resolved = 0
        for cw in self.coalition_wars:
            if not cw.is_active:
                continue
            aggressor = self.registry.get(cw.aggressor)
            defender = self.registry.get(cw.defender)
            if aggressor is not None:
                cw.aggressor_territory_lost = aggressor.territory_lost - cw.aggressor_territory_start
            cw.casualties = sum(
                w.attacker_casualties + w.defender_casualties
                for w in self.wars.wars + self.wars.history
                if w.coalition_war_id == cw.id
                or (w.involves(cw.aggressor) and w.involves(cw.defender) and w.started_at >= cw.started_at)
            )

            if aggressor is None or aggressor.is_annexed or \
                    cw.aggressor_territory_lost >= self.config.coalition_victory_territory:
                self._end_coalition_war(cw, CoalitionWarStatus.VICTORY)
            elif defender is None or defender.is_annexed:
                self._end_coalition_war(cw, CoalitionWarStatus.DEFEAT)
            elif self.registry.tick - cw.started_at > self.config.coalition_war_max_ticks:
                self._end_coalition_war(cw, CoalitionWarStatus.PEACE)
            else:
                continue
            resolved += 1
        return resolved

    def _end_coalition_war(self, cw: CoalitionWar, status: CoalitionWarStatus):
        cw.status = status
        cw.ended_at = self.registry.tick
        for ally in cw.mobilized:
            war = self.wars.war_between(ally, cw.aggressor)
            if war is not None and war.coalition_war_id == cw.id:
                self.wars.end_war(war, WarStatus.PEACE, "coalition war concluded")
        aggressor = self.registry.get(cw.aggressor)
        if status == CoalitionWarStatus.VICTORY and aggressor is not None and not aggressor.is_annexed:
            aggressor.add_modifier(Modifier.HUMILIATED)

        coalition = self.coalitions.get(cw.coalition_id)
        name = coalition.name if coalition else "The coalition"
        self.events.emit(
            DiplomaticEventType.PEACE_TREATY,
            f"{name} war against {self._name(cw.aggressor)} ends: {status.value}",
            affected=[cw.aggressor, cw.defender] + cw.mobilized,
            severity=2,
        )
        logger.info(f"COALITION WAR {cw.id} resolved: {status.value}")

    def surrender(self, coalition_id: str, code: str) -> bool:
        """`code` capitulates to a coalition: every war with its members ends."""
        coalition = self.coalitions.get(coalition_id)
        nation = self.registry.get(code)
        if coalition is None or nation is None or nation.is_annexed:
            return False
        ended = 0
        for member in coalition.members:
            war = self.wars.war_between(code, member)
            if war is not None:
                status = WarStatus.DEFEAT if war.attacker == code else WarStatus.VICTORY
                self.wars.end_war(war, status, "surrender")
                ended += 1
        if not ended:
            return False
        nation.add_modifier(Modifier.HUMILIATED)
        for cw in self.coalition_wars:
            if cw.is_active and cw.coalition_id == coalition_id and cw.aggressor == code:
                self._end_coalition_war(cw, CoalitionWarStatus.VICTORY)
        self.events.emit(
            DiplomaticEventType.PEACE_TREATY,
            f"{nation.name} surrenders to {coalition.name}",
            affected=[code] + coalition.members,
            severity=2,
        )
        logger.info(f"SURRENDER: {nation.name} to {coalition.name}")
        return True

    # ------------------------------------------------------------------
    # Annexation
    # ------------------------------------------------------------------

    def _on_annex(self, code: str, annexer: Optional[str]):
        for coalition in list(self.coalitions_of(code)):
            if code in coalition.members:
                self._remove_member(coalition, code, f"{self._name(code)} removed from {coalition.name}")
        self.invites = [i for i in self.invites if i.target != code]

    def to_dict(self):
        return [c.to_dict() for c in self.coalitions.values()]
