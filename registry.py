"""
Nation Registry: the authoritative keyed collection of nation records.

All nation mutation flows through these operations. Unknown codes are a silent
no-op (False/None), and every numeric write clamps.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Union
import itertools
import logging
import random

from config import SimulationConfig, COVERT_ACTIONS
from events import EventLog, DiplomaticEventType
from nation import (
    Nation, PoliticalState, Modifier, TariffLevel, Agreement, AgreementType,
    clamp, clamp_relations,
)
from power import calculate_nation_power, round_half_up
from reference_data import ReferenceDataProvider, StaticReferenceData, CountryProfile

logger = logging.getLogger(__name__)


@dataclass
class SeedEntry:
    code: str
    territory_lost: float = 0.0
    occupier: Optional[str] = None


@dataclass
class PlayerSetup:
    name: str = "Player Nation"
    population: int = 10_000_000
    treasury: float = 1e9
    authority: float = 50.0
    religion: str = "Unknown"
    culture: str = "Unknown"
    language: str = "Unknown"
    orientation: int = 0
    soldiers: Optional[int] = None


def cultural_compatibility(profile: CountryProfile, player: Optional[PlayerSetup]) -> int:
    """Shared religion/culture/language with the player, or -20 if nothing matches."""
    if player is None:
        return 0
    score = 0
    if profile.religion == player.religion:
        score += 10
    if profile.culture == player.culture:
        score += 10
    if profile.language == player.language:
        score += 5
    return score if score else -20


class NationRegistry:
    """Keyed store of Nation records plus their lifecycle operations."""

    def __init__(self, config: SimulationConfig, events: EventLog,
                 reference_data: Optional[ReferenceDataProvider] = None,
                 rng: Optional[random.Random] = None):
        self.config = config
        self.events = events
        self.rng = rng or random.Random()
        self.reference_data = reference_data or StaticReferenceData(rng=self.rng)
        self.nations: Dict[str, Nation] = {}
        self.tick = 0
        self._annex_listeners: List[Callable[[str, Optional[str]], None]] = []
        self._agreement_ids = itertools.count(1)
        # Coalitions feed the diplomacy component of the power score
        self.coalition_counter: Callable[[str], int] = lambda code: 0

    # ------------------------------------------------------------------
    # Collection access
    # ------------------------------------------------------------------

    def __contains__(self, code):
        return code in self.nations

    def __iter__(self):
        return iter(list(self.nations.values()))

    def __len__(self):
        return len(self.nations)

    def get(self, code: str) -> Optional[Nation]:
        return self.nations.get(code)

    @property
    def player_code(self) -> str:
        return self.config.player_code

    @property
    def player(self) -> Optional[Nation]:
        return self.nations.get(self.config.player_code)

    def active_nations(self, include_player: bool = False) -> List[Nation]:
        return [
            n for n in self.nations.values()
            if not n.is_annexed and (include_player or not n.is_player)
        ]

    def active_codes(self, include_player: bool = False) -> List[str]:
        return [n.code for n in self.active_nations(include_player)]

    def is_targetable(self, code: str) -> bool:
        """A nation exists and is not annexed."""
        nation = self.nations.get(code)
        return nation is not None and not nation.is_annexed

    def on_annex(self, listener: Callable[[str, Optional[str]], None]):
        self._annex_listeners.append(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, seed_data: Iterable[Union[str, SeedEntry, dict]],
                   player: Optional[PlayerSetup] = None) -> int:
        """Build nation records from seed entries and reference data. Returns count."""
        self.nations.clear()

        if player is not None:
            self._create_player(player)

        for raw in seed_data:
            entry = self._to_seed_entry(raw)
            if entry.code == self.config.player_code or entry.code in self.nations:
                continue
            # Fully conquered nations are not materialized
            if entry.territory_lost > 99:
                continue
            self.nations[entry.code] = self._build_nation(entry, player)

        self._seed_rivalries()
        self.recalculate_all()
        logger.info(f"Initialized {len(self.nations)} nations")
        return len(self.nations)

    def ensure_initialized(self, code: str, player: Optional[PlayerSetup] = None) -> Nation:
        """Lazily materialize a nation from reference data."""
        nation = self.nations.get(code)
        if nation is None:
            nation = self._build_nation(SeedEntry(code), player)
            self.nations[code] = nation
            self.recalculate_power(code)
            logger.debug(f"Lazily initialized nation {code}")
        return nation

    def _to_seed_entry(self, raw) -> SeedEntry:
        if isinstance(raw, SeedEntry):
            return raw
        if isinstance(raw, str):
            return SeedEntry(raw)
        return SeedEntry(raw["code"], float(raw.get("territory_lost", 0.0)), raw.get("occupier"))

    def _create_player(self, player: PlayerSetup):
        soldiers = player.soldiers if player.soldiers is not None else round(player.population * 0.01)
        nation = Nation(
            code=self.config.player_code,
            name=player.name,
            population=player.population,
            soldiers=soldiers,
            economy=50.0,
            authority=player.authority,
            treasury=player.treasury,
            religion=player.religion,
            culture=player.culture,
            language=player.language,
            political=PoliticalState(government="Player", leader="Player",
                                     orientation=player.orientation, aggression=1),
            tariff=TariffLevel.NONE,
            their_tariff=TariffLevel.NONE,
            is_player=True,
        )
        nation.set_relations(100)
        self.nations[nation.code] = nation

    def _build_nation(self, entry: SeedEntry, player: Optional[PlayerSetup]) -> Nation:
        profile = self.reference_data.profile_or_default(entry.code)
        lost = clamp(entry.territory_lost, 0.0, 100.0)
        remaining = (100.0 - lost) / 100.0
        revanchist = lost > self.config.revanchism_threshold

        economy = round(profile.economy * remaining)
        nation = Nation(
            code=entry.code,
            name=profile.name,
            population=round(profile.population * remaining),
            soldiers=round(profile.population * remaining * 0.01),
            economy=economy,
            authority=profile.authority,
            territory_lost=lost,
            religion=profile.religion,
            culture=profile.culture,
            language=profile.language,
            treasury=economy * self.config.treasury_per_economy,
            political=PoliticalState(
                government=profile.government,
                leader=profile.leader,
                orientation=profile.orientation,
                stability=(6 - profile.unrest) * 20,
                unrest=profile.unrest,
                freedom=profile.freedom,
                military=profile.military,
                aggression=profile.aggression,
                leader_popularity=profile.leader_popularity,
            ),
            allies=list(profile.allies),
            enemies=list(profile.enemies),
            trade_partners=list(profile.trade_partners),
        )
        if revanchist:
            nation.add_modifier(Modifier.REVANCHISM)
        if lost > 0:
            nation.occupier = entry.occupier or self.config.player_code

        compatibility = cultural_compatibility(profile, player)
        nation.set_relations(-lost * 2 + compatibility)
        return nation

    def _seed_rivalries(self):
        """Give aggressive nations without enemies one or two ideological rivals."""
        candidates = [n for n in self.nations.values() if not n.is_player]
        for nation in candidates:
            if nation.enemies or nation.aggression < 3:
                continue
            targets = [
                c for c in candidates
                if c.code != nation.code
                and abs(c.orientation - nation.orientation) > self.config.rivalry_seed_orientation_gap
            ]
            if not targets:
                targets = [c for c in candidates if c.code != nation.code]
            if not targets:
                continue
            count = min(len(targets), 1 if self.rng.random() < 0.5 else 2)
            for target in self.rng.sample(targets, count):
                self.add_rivalry(nation.code, target.code)

    def add_rivalry(self, code_a: str, code_b: str) -> bool:
        a, b = self.nations.get(code_a), self.nations.get(code_b)
        if a is None or b is None or code_a == code_b:
            return False
        if code_b not in a.enemies:
            a.enemies.append(code_b)
        if code_a not in b.enemies:
            b.enemies.append(code_a)
        logger.debug(f"Rivalry: {a.name} vs {b.name}")
        return True

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def update_relations(self, code: str, delta: float) -> bool:
        """Shift relations with the player, clamped; disposition follows."""
        nation = self.nations.get(code)
        if nation is None or nation.is_annexed:
            return False
        nation.set_relations(nation.relations + delta)
        return True

    def relation_between(self, code_a: str, code_b: str) -> int:
        """Opinion of `code_a` toward `code_b`. The player side reads the nation's own relations."""
        if code_a == code_b:
            return 100
        a, b = self.nations.get(code_a), self.nations.get(code_b)
        if a is None or b is None:
            return 0
        if b.is_player:
            return a.relations
        if a.is_player:
            return b.relations
        if code_b in a.foreign_relations:
            return a.foreign_relations[code_b]
        value = 50 - abs(a.orientation - b.orientation)
        if code_b in a.enemies:
            value -= 40
        if code_b in a.allies:
            value += 30
        return clamp_relations(value)

    def adjust_relation_between(self, code_a: str, code_b: str, delta: float) -> bool:
        """Shift the opinion both ways between two nations."""
        a, b = self.nations.get(code_a), self.nations.get(code_b)
        if a is None or b is None or code_a == code_b:
            return False
        if a.is_annexed or b.is_annexed:
            return False
        if b.is_player:
            return self.update_relations(code_a, delta)
        if a.is_player:
            return self.update_relations(code_b, delta)
        a.set_foreign_relation(code_b, self.relation_between(code_a, code_b) + delta)
        b.set_foreign_relation(code_a, self.relation_between(code_b, code_a) + delta)
        return True

    # ------------------------------------------------------------------
    # War state with the player
    # ------------------------------------------------------------------

    def declare_war(self, code: str) -> bool:
        """Put a nation at war with the player: embargo, agreements torn up."""
        nation = self.nations.get(code)
        if nation is None or nation.is_annexed or nation.is_player:
            return False
        if nation.is_at_war:
            return True
        nation.is_at_war = True
        nation.war_declared_at = self.tick
        nation.add_modifier(Modifier.AT_WAR)
        nation.remove_modifier(Modifier.ALLIED)
        nation.agreements = []
        nation.tariff = TariffLevel.EMBARGO
        nation.their_tariff = TariffLevel.EMBARGO
        self._drop_player_ally(code)
        nation.refresh_disposition()
        logger.info(f"{nation.name} is now at war with the player")
        return True

    def make_peace(self, code: str) -> bool:
        nation = self.nations.get(code)
        if nation is None or not nation.is_at_war:
            return False
        nation.is_at_war = False
        nation.war_declared_at = None
        nation.remove_modifier(Modifier.AT_WAR)
        nation.tariff = TariffLevel.HIGH
        nation.their_tariff = TariffLevel.HIGH
        nation.refresh_disposition()
        logger.info(f"{nation.name} made peace with the player")
        return True

    def _drop_player_ally(self, code: str):
        player = self.player
        if player is not None and code in player.allies:
            player.allies.remove(code)

    # ------------------------------------------------------------------
    # Annexation and liberation
    # ------------------------------------------------------------------

    def annex(self, code: str, annexer: Optional[str] = None) -> bool:
        """
        Mark a nation annexed. Idempotent: soldiers zeroed, wars and coalition
        membership removed (via listeners), regardless of prior state.
        """
        nation = self.nations.get(code)
        if nation is None or nation.is_player:
            return False
        newly_annexed = not nation.is_annexed

        nation.is_annexed = True
        nation.is_at_war = False
        nation.war_declared_at = None
        nation.soldiers = 0
        nation.power = 0
        nation.agreements = []
        nation.modifiers = Modifier.ANNEXED
        nation.set_territory_lost(100.0)
        if annexer is not None:
            nation.occupier = annexer
        nation.refresh_disposition()

        for other in self.nations.values():
            if code in other.allies:
                other.allies.remove(code)

        for listener in self._annex_listeners:
            listener(code, annexer)

        if newly_annexed:
            by = self.nations[annexer].name if annexer in self.nations else "its conquerors"
            self.events.emit(
                DiplomaticEventType.ANNEXATION,
                f"{nation.name} annexed",
                f"{nation.name} has been annexed by {by}.",
                affected=[c for c in (code, annexer) if c],
                severity=3,
            )
            logger.info(f"ANNEXATION: {nation.name} annexed by {by}")
        return True

    def liberate(self, code: str) -> bool:
        nation = self.nations.get(code)
        if nation is None or not nation.is_annexed:
            return False
        nation.is_annexed = False
        nation.soldiers = 10_000
        nation.set_territory_lost(0.0)
        nation.occupier = None
        nation.remove_modifier(Modifier.ANNEXED)
        nation.add_modifier(Modifier.LIBERATED)
        nation.set_relations(-50)
        self.recalculate_power(code)
        self.events.emit(
            DiplomaticEventType.LIBERATION,
            f"{nation.name} liberated",
            f"{nation.name} has regained its independence.",
            affected=[code],
            severity=2,
        )
        logger.info(f"LIBERATION: {nation.name} restored")
        return True

    # ------------------------------------------------------------------
    # Military and territory
    # ------------------------------------------------------------------

    def update_occupation(self, code: str, delta: float, by: Optional[str] = None) -> bool:
        """Move territoryLost by `delta` percent; revanchism above the threshold."""
        nation = self.nations.get(code)
        if nation is None or nation.is_annexed:
            return False
        nation.set_territory_lost(nation.territory_lost + delta)
        if by is not None and delta > 0:
            nation.occupier = by
        if nation.territory_lost > self.config.revanchism_threshold and not nation.has(Modifier.REVANCHISM):
            nation.add_modifier(Modifier.REVANCHISM)
            self.events.emit(
                DiplomaticEventType.REVANCHISM,
                f"Revanchism rises in {nation.name}",
                f"{nation.name} demands the return of its lost territory.",
                affected=[code],
                severity=1,
            )
        return True

    def update_soldiers(self, code: str, delta: int) -> bool:
        nation = self.nations.get(code)
        if nation is None or nation.is_annexed:
            return False
        nation.soldiers = max(0, int(nation.soldiers + delta))
        return True

    def add_claim(self, code: str, percentage: float) -> bool:
        nation = self.nations.get(code)
        if nation is None or nation.is_annexed:
            return False
        nation.claimed_percentage = clamp(nation.claimed_percentage + percentage, 0.0, 100.0)
        nation.set_relations(nation.relations - self.config.claim_relation_penalty)
        if nation.claimed_percentage > self.config.claim_hostile_threshold and nation.relations > -20:
            # Large claims turn a nation hostile
            nation.set_relations(-21)
        return True

    def request_support(self, code: str) -> int:
        """Troops lent to the player by an ally or friendly nation. Returns the amount."""
        nation = self.nations.get(code)
        if nation is None or nation.is_annexed or nation.is_at_war:
            return 0
        allied = nation.has(Modifier.ALLIED)
        if not allied and nation.relations < 50:
            return 0
        amount = int(nation.soldiers * (0.10 if allied else 0.05))
        if amount < 100:
            return 0
        nation.soldiers -= amount
        nation.set_relations(nation.relations + (-5 if allied else -15))
        if self.player is not None:
            self.player.soldiers += amount
        return amount

    # ------------------------------------------------------------------
    # Agreements
    # ------------------------------------------------------------------

    def sign_agreement(self, code: str, agreement_type: AgreementType, target: Optional[str] = None) -> Optional[Agreement]:
        nation = self.nations.get(code)
        if nation is None or nation.is_annexed:
            return None
        target = target or self.config.player_code
        agreement = Agreement(
            id=f"agr-{next(self._agreement_ids)}",
            type=agreement_type,
            target=target,
            signed_at=self.tick,
        )
        nation.agreements.append(agreement)
        if agreement_type == AgreementType.MILITARY_ALLIANCE:
            self._link_allies(code, target)
        return agreement

    def remove_agreement(self, code: str, agreement_id: str) -> Optional[Agreement]:
        nation = self.nations.get(code)
        if nation is None:
            return None
        agreement = next((a for a in nation.agreements if a.id == agreement_id), None)
        if agreement is None:
            return None
        nation.agreements.remove(agreement)
        if agreement.type == AgreementType.MILITARY_ALLIANCE:
            self._unlink_allies(code, agreement.target)
        return agreement

    def _link_allies(self, code: str, target: str):
        nation, other = self.nations[code], self.nations.get(target)
        if target == self.config.player_code:
            nation.add_modifier(Modifier.ALLIED)
        if target not in nation.allies:
            nation.allies.append(target)
        if other is not None and code not in other.allies:
            other.allies.append(code)

    def _unlink_allies(self, code: str, target: str):
        nation, other = self.nations[code], self.nations.get(target)
        if target == self.config.player_code:
            nation.remove_modifier(Modifier.ALLIED)
        if target in nation.allies:
            nation.allies.remove(target)
        if other is not None and code in other.allies:
            other.allies.remove(code)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def recalculate_power(self, code: str) -> int:
        nation = self.nations.get(code)
        if nation is None:
            return 0
        if nation.is_annexed:
            nation.power = 0
        else:
            power = calculate_nation_power(nation, self.config, self.coalition_counter(code)).total
            if nation.has(Modifier.DESTABILIZED):
                power = round_half_up(power * COVERT_ACTIONS["DESTABILIZE"]["power_factor"])
            nation.power = power
        return nation.power

    def recalculate_all(self):
        for code in list(self.nations):
            self.recalculate_power(code)
