"""
War records and the war-progression loop.
Active wars advance through rate-limited battles; territory follows decisiveness,
and geometry changes are deferred to the next tick.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional
import itertools
import logging
import random
import time

from config import SimulationConfig, WAR_GOAL_LEGITIMACY
from combat import CombatResolver, BattleIntensity, BattleResult
from events import EventLog, DiplomaticEventType
from geometry import GeometryService, NullGeometryService, DeferredWorkQueue
from nation import Modifier
from registry import NationRegistry

logger = logging.getLogger(__name__)


class WarStatus(Enum):
    ACTIVE = "active"
    PEACE = "peace"
    VICTORY = "victory"  # attacker prevailed
    DEFEAT = "defeat"  # attacker was beaten


@dataclass
class WarGoal:
    type: str
    target: str
    legitimacy: int
    description: str


def create_war_goal(goal_type: str, target_name: str) -> WarGoal:
    descriptions = {
        "DEFENSIVE": f"Defend against {target_name}'s aggression",
        "TERRITORIAL": f"Claim disputed territory from {target_name}",
        "RECONQUEST": f"Retake lost territories from {target_name}",
        "REGIME_CHANGE": f"Overthrow the government of {target_name}",
        "HUMILIATION": f"Force {target_name} to accept terms",
        "LIBERATION": f"Free territories occupied by {target_name}",
        "AGGRESSION": f"War of aggression against {target_name}",
    }
    return WarGoal(goal_type, target_name, WAR_GOAL_LEGITIMACY[goal_type], descriptions[goal_type])


@dataclass
class WarRecord:
    id: str
    attacker: str
    defender: str
    started_at: int
    goal: WarGoal
    status: WarStatus = WarStatus.ACTIVE
    attacker_gain: float = 0.0  # % of defender territory held by attacker
    defender_gain: float = 0.0  # % of attacker territory held by defender
    attacker_casualties: int = 0
    defender_casualties: int = 0
    battles: int = 0
    last_battle_time: Optional[float] = None
    coalition_war_id: Optional[str] = None
    ended_at: Optional[int] = None
    offensive_by: Optional[str] = None  # side committing reserves to the next battle

    @property
    def is_active(self) -> bool:
        return self.status == WarStatus.ACTIVE

    def involves(self, code: str) -> bool:
        return code in (self.attacker, self.defender)

    def opponent_of(self, code: str) -> Optional[str]:
        if code == self.attacker:
            return self.defender
        if code == self.defender:
            return self.attacker
        return None

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "attacker": self.attacker,
            "defender": self.defender,
            "started_at": self.started_at,
            "status": self.status.value,
            "goal": self.goal.type,
            "attacker_gain": self.attacker_gain,
            "defender_gain": self.defender_gain,
            "casualties": {"attacker": self.attacker_casualties, "defender": self.defender_casualties},
            "battles": self.battles,
            "coalition_war_id": self.coalition_war_id,
        }


class WarSystem:
    """Owns War records and advances them battle by battle."""

    def __init__(self, config: SimulationConfig, registry: NationRegistry, events: EventLog,
                 combat: CombatResolver, geometry: Optional[GeometryService] = None,
                 work_queue: Optional[DeferredWorkQueue] = None,
                 clock: Optional[Callable[[], float]] = None,
                 rng: Optional[random.Random] = None):
        self.config = config
        self.rng = rng or random.Random()
        self.registry = registry
        self.events = events
        self.combat = combat
        self.geometry = geometry or NullGeometryService()
        self.work_queue = work_queue or DeferredWorkQueue()
        self.clock = clock or time.monotonic
        self.wars: List[WarRecord] = []
        self.history: List[WarRecord] = []
        self._ids = itertools.count(1)
        # Wired by the coalition layer; same-coalition pairs never become rivals
        self.shares_military_coalition: Callable[[str, str], bool] = lambda a, b: False
        registry.on_annex(self._on_annex)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def active_wars(self) -> List[WarRecord]:
        return [w for w in self.wars if w.is_active]

    def wars_involving(self, code: str) -> List[WarRecord]:
        return [w for w in self.wars if w.is_active and w.involves(code)]

    def war_between(self, code_a: str, code_b: str) -> Optional[WarRecord]:
        for war in self.wars:
            if war.is_active and war.involves(code_a) and war.involves(code_b):
                return war
        return None

    def at_war_between(self, code_a: str, code_b: str) -> bool:
        return self.war_between(code_a, code_b) is not None

    def is_in_any_war(self, code: str) -> bool:
        return bool(self.wars_involving(code))

    # ------------------------------------------------------------------
    # Declaration and termination
    # ------------------------------------------------------------------

    def declare(self, attacker: str, defender: str, goal_type: str = "AGGRESSION",
                coalition_war_id: Optional[str] = None) -> Optional[WarRecord]:
        """Open a war. Returns None for unknown/annexed parties or an existing war."""
        if attacker == defender:
            return None
        if not self.registry.is_targetable(attacker) or not self.registry.is_targetable(defender):
            return None
        if self.at_war_between(attacker, defender):
            return None

        attacker_nation = self.registry.get(attacker)
        defender_nation = self.registry.get(defender)
        war = WarRecord(
            id=f"war-{next(self._ids)}",
            attacker=attacker,
            defender=defender,
            started_at=self.registry.tick,
            goal=create_war_goal(goal_type, defender_nation.name),
            coalition_war_id=coalition_war_id,
        )
        self.wars.append(war)

        player = self.config.player_code
        if attacker == player:
            self.registry.declare_war(defender)
        elif defender == player:
            self.registry.declare_war(attacker)
        for nation in (attacker_nation, defender_nation):
            nation.add_modifier(Modifier.AT_WAR)
        self.registry.adjust_relation_between(attacker, defender, -30)

        severity = 3 if player in (attacker, defender) else 2
        self.events.emit(
            DiplomaticEventType.WAR_DECLARED,
            f"{attacker_nation.name} declares war on {defender_nation.name}",
            war.goal.description,
            affected=[attacker, defender],
            severity=severity,
        )
        logger.info(f"WAR: {attacker_nation.name} attacks {defender_nation.name} ({goal_type})")
        return war

    def end_war(self, war: WarRecord, status: WarStatus, reason: str = ""):
        if not war.is_active:
            return
        war.status = status
        war.ended_at = self.registry.tick
        self.wars.remove(war)
        self.history.append(war)

        player = self.config.player_code
        other = war.opponent_of(player)
        if other is not None:
            self.registry.make_peace(other)
        for code in (war.attacker, war.defender):
            self._refresh_war_modifier(code)

        attacker = self.registry.get(war.attacker)
        defender = self.registry.get(war.defender)
        attacker_name = attacker.name if attacker else war.attacker
        defender_name = defender.name if defender else war.defender
        self.events.emit(
            DiplomaticEventType.PEACE_TREATY,
            f"War ends: {attacker_name} vs {defender_name} ({status.value})",
            f"The war between {attacker_name} and {defender_name} has ended"
            + (f": {reason}." if reason else "."),
            affected=[war.attacker, war.defender],
            severity=2,
        )
        logger.info(f"PEACE: {attacker_name} vs {defender_name} ended in {status.value} {reason}".rstrip())

    def make_peace_between(self, code_a: str, code_b: str) -> bool:
        war = self.war_between(code_a, code_b)
        if war is None:
            return False
        self.end_war(war, WarStatus.PEACE, "negotiated peace")
        return True

    def _refresh_war_modifier(self, code: str):
        nation = self.registry.get(code)
        if nation is None or nation.is_annexed:
            return
        if self.is_in_any_war(code):
            nation.add_modifier(Modifier.AT_WAR)
        else:
            nation.remove_modifier(Modifier.AT_WAR)

    def _on_annex(self, code: str, annexer: Optional[str]):
        for war in list(self.wars_involving(code)):
            status = WarStatus.VICTORY if war.defender == code else WarStatus.DEFEAT
            self.end_war(war, status, "annexation")

    # ------------------------------------------------------------------
    # Progression
    # ------------------------------------------------------------------

    def progress(self) -> int:
        """Advance every active war whose battle interval has elapsed. Returns battles fought."""
        fought = 0
        now = self.clock()
        for war in list(self.wars):
            if not war.is_active:
                continue
            if self.registry.tick - war.started_at > self.config.war_max_ticks:
                self.end_war(war, WarStatus.PEACE, "exhaustion")
                continue
            if war.last_battle_time is not None and now - war.last_battle_time < self.config.battle_interval_seconds:
                continue
            if self._fight(war, now):
                fought += 1
        return fought

    def _fight(self, war: WarRecord, now: float) -> bool:
        attacker = self.registry.get(war.attacker)
        defender = self.registry.get(war.defender)
        if attacker is None or defender is None:
            self.end_war(war, WarStatus.PEACE, "belligerent vanished")
            return False

        commit = self.config.battle_commit_fraction
        attacker_force = int(attacker.soldiers * commit * (2 if war.offensive_by == war.attacker else 1))
        defender_force = int(defender.soldiers * commit * (2 if war.offensive_by == war.defender else 1))
        war.offensive_by = None
        threshold = self.config.war_collapse_threshold

        if attacker_force < threshold or defender_force < threshold:
            attacker_prevails = attacker.soldiers > defender.soldiers
            self.end_war(war, WarStatus.VICTORY if attacker_prevails else WarStatus.DEFEAT, "collapse")
            return False

        defense_bonus = 0.2 if defender.has(Modifier.PEACEKEEPERS) else 0.0
        result = self.combat.simulate(attacker_force, defender_force, BattleIntensity.SKIRMISH, defense_bonus)
        self.apply_battle(war, result)
        war.last_battle_time = now
        return True

    def apply_battle(self, war: WarRecord, result: BattleResult):
        """Commit a battle's casualties and territory, then check end conditions."""
        self.registry.update_soldiers(war.attacker, -result.attacker_losses)
        self.registry.update_soldiers(war.defender, -result.defender_losses)
        war.attacker_casualties += result.attacker_losses
        war.defender_casualties += result.defender_losses
        war.battles += 1

        gain = 1 + round(result.decisiveness * self.config.war_gain_scale)
        winner, loser = (war.attacker, war.defender) if result.attacker_won else (war.defender, war.attacker)
        self._shift_territory(war, result.attacker_won, gain)
        self._defer_conquest(winner, loser, result.decisiveness)

        self.registry.recalculate_power(war.attacker)
        self.registry.recalculate_power(war.defender)
        logger.debug(
            f"BATTLE {war.attacker} vs {war.defender}: {result.winner} +{gain}% "
            f"(cas {result.attacker_losses} vs {result.defender_losses})"
        )

        # Losses from earlier wars count toward total conquest
        defender = self.registry.get(war.defender)
        if war.attacker_gain >= self.config.annexation_gain or defender.territory_lost >= self.config.annexation_gain:
            self.end_war(war, WarStatus.VICTORY, "total conquest")
            self.annex_with_territory(war.defender, war.attacker)
        elif war.attacker_gain >= self.config.forced_peace_gain:
            self.end_war(war, WarStatus.VICTORY, "forced peace")
        elif war.defender_gain >= self.config.forced_peace_gain:
            self.end_war(war, WarStatus.DEFEAT, "attacker repelled")

    def _shift_territory(self, war: WarRecord, attacker_won: bool, gain: float):
        """Winner first recovers its own lost land, then takes the loser's."""
        if attacker_won:
            recovered = min(gain, war.defender_gain)
            war.defender_gain -= recovered
            if recovered:
                self.registry.update_occupation(war.attacker, -recovered)
            taken = min(gain - recovered, 100.0 - war.attacker_gain)
            war.attacker_gain += taken
            if taken:
                self.registry.update_occupation(war.defender, taken, by=war.attacker)
        else:
            recovered = min(gain, war.attacker_gain)
            war.attacker_gain -= recovered
            if recovered:
                self.registry.update_occupation(war.defender, -recovered)
            taken = min(gain - recovered, 100.0 - war.defender_gain)
            war.defender_gain += taken
            if taken:
                self.registry.update_occupation(war.attacker, taken, by=war.defender)

    def _defer_conquest(self, winner: str, loser: str, decisiveness: float):
        def apply():
            winner_region = self.geometry.region(winner)
            loser_region = self.geometry.region(loser)
            if winner_region is None or loser_region is None:
                return None
            conquest = self.geometry.calculate_conquest(winner_region, loser_region, decisiveness)
            if conquest is None:
                return None
            new_loser = self.geometry.subtract_territory(loser_region, conquest)
            new_winner = self.geometry.merge_territory(winner_region, conquest)
            if new_loser is None or new_winner is None:
                return None
            self.geometry.set_region(loser, new_loser)
            self.geometry.set_region(winner, new_winner)
            return conquest.area_km2

        self.work_queue.enqueue(self.registry.tick, f"conquest {winner}<-{loser}", apply)

    def annex_with_territory(self, code: str, annexer: Optional[str]):
        """Annex now; merge the remaining territory into the annexer next tick."""
        if not self.registry.annex(code, annexer) or annexer is None:
            return

        def apply():
            loser_region = self.geometry.region(code)
            winner_region = self.geometry.region(annexer)
            if loser_region is None or winner_region is None:
                return None
            merged = self.geometry.merge_territory(winner_region, loser_region)
            if merged is None:
                return None
            self.geometry.set_region(annexer, merged)
            return merged.area_km2

        self.work_queue.enqueue(self.registry.tick, f"annex {code} into {annexer}", apply)

    # ------------------------------------------------------------------
    # Defensive cleanup
    # ------------------------------------------------------------------

    def cleanup(self) -> int:
        """Repair stale war state left by earlier phases. Returns number of repairs."""
        repairs = 0
        player = self.config.player_code

        for nation in self.registry:
            if nation.is_player or nation.is_annexed:
                continue
            if nation.territory_lost >= 100:
                logger.warning(f"Cleanup: {nation.name} lost all territory, annexing")
                self.annex_with_territory(nation.code, nation.occupier)
                repairs += 1

        for war in list(self.wars):
            if not war.is_active:
                continue
            if not self.registry.is_targetable(war.attacker) or not self.registry.is_targetable(war.defender):
                logger.warning(f"Cleanup: ending war {war.id} with an absent belligerent")
                self.end_war(war, WarStatus.PEACE, "belligerent gone")
                repairs += 1

        for nation in self.registry:
            if nation.is_player or nation.is_annexed:
                continue
            has_player_war = self.at_war_between(nation.code, player)
            if nation.is_at_war and not has_player_war:
                logger.warning(f"Cleanup: {nation.name} marked at war with no war record")
                self.registry.make_peace(nation.code)
                repairs += 1
            elif has_player_war and not nation.is_at_war:
                self.registry.declare_war(nation.code)
                repairs += 1
            in_war = self.is_in_any_war(nation.code)
            if in_war != nation.has(Modifier.AT_WAR):
                self._refresh_war_modifier(nation.code)
                repairs += 1
        return repairs

    # ------------------------------------------------------------------
    # AI-vs-AI rivalry
    # ------------------------------------------------------------------

    def rivalry_candidates(self, code: str) -> List[str]:
        """Nations `code` could plausibly pick a quarrel with."""
        nation = self.registry.get(code)
        if nation is None or nation.is_annexed:
            return []
        candidates = []
        for other in self.registry.active_nations():
            if other.code == code:
                continue
            if nation.aggression < 5 and other.power > nation.power * self.config.rivalry_max_power_ratio:
                continue
            if nation.power < self.config.rivalry_great_power:
                distance = self.geometry.centroid_distance(code, other.code)
                if distance is not None and distance > self.config.rivalry_max_distance_km:
                    continue
            if abs(nation.orientation - other.orientation) <= self.config.rivalry_min_orientation_gap:
                continue
            if self.shares_military_coalition(code, other.code):
                continue
            candidates.append(other.code)
        return candidates

    def discover_rivalries(self) -> int:
        """Aggressive nations without enemies occasionally pick one. Returns rivalries formed."""
        formed = 0
        for nation in self.registry.active_nations():
            if nation.enemies or nation.aggression < 4:
                continue
            if self.rng.random() >= self.config.rivalry_search_chance:
                continue
            candidates = self.rivalry_candidates(nation.code)
            if not candidates:
                continue
            target = self.rng.choice(candidates)
            if self.registry.add_rivalry(nation.code, target):
                formed += 1
                logger.info(f"RIVALRY: {nation.name} now views {self.registry.get(target).name} as an enemy")
        return formed

    def launch_offensive(self, code: str) -> int:
        """`code` commits reserves to the next battle of each of its wars. Returns wars affected."""
        launched = 0
        for war in self.wars_involving(code):
            if war.offensive_by is None:
                war.offensive_by = code
                launched += 1
        return launched
