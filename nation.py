"""
Nation record model.
Relations and territory writes clamp on every mutation; disposition is derived from relations.
"""

from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from typing import Dict, List, Optional, Any


class Disposition(Enum):
    FRIENDLY = "friendly"
    NEUTRAL = "neutral"
    HOSTILE = "hostile"
    AT_WAR = "at_war"


class TariffLevel(Enum):
    FREE_TRADE = "free_trade"
    NONE = "none"
    LOW = "low"
    HIGH = "high"
    EMBARGO = "embargo"


class AgreementType(Enum):
    TRADE_AGREEMENT = auto()
    NON_AGGRESSION = auto()
    MILITARY_ALLIANCE = auto()
    FREE_TRADE = auto()
    SECURITY_GUARANTEE = auto()


class Modifier(Flag):
    """Standing effects on a nation. Combine with |, test with `in`."""
    REVANCHISM = auto()
    ALLIED = auto()
    AT_WAR = auto()
    DESTABILIZED = auto()
    HUMILIATED = auto()
    PROPAGANDA_CAMPAIGN = auto()
    LIBERATED = auto()
    ANNEXED = auto()
    MILITARY_QUALITY = auto()
    UN_SANCTIONED = auto()
    WORLD_PARIAH = auto()
    PEACEKEEPERS = auto()


NO_MODIFIERS = Modifier(0)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_relations(value: float) -> int:
    return int(round(clamp(value, -100, 100)))


def disposition_from_relations(relations: int) -> Disposition:
    if relations > 50:
        return Disposition.FRIENDLY
    if relations > -20:
        return Disposition.NEUTRAL
    return Disposition.HOSTILE


@dataclass
class Agreement:
    id: str
    type: AgreementType
    target: str
    signed_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type.name, "target": self.target, "signed_at": self.signed_at}


@dataclass
class PoliticalState:
    government: str = "Republic"
    leader: str = "Unknown"
    orientation: int = 0  # -100 (far left) .. 100 (far right)
    stability: int = 60
    unrest: int = 3  # 1-5
    freedom: int = 3  # 1-5
    military: int = 3  # 1-5
    aggression: int = 3  # 1-5
    leader_popularity: int = 3  # 1-5


@dataclass
class Nation:
    """One country's diplomatic and military state."""
    code: str
    name: str
    population: int = 0
    soldiers: int = 0
    economy: float = 50.0
    authority: float = 50.0
    relations: int = 0
    disposition: Disposition = Disposition.NEUTRAL
    territory_lost: float = 0.0
    power: int = 0
    modifiers: Modifier = NO_MODIFIERS
    agreements: List[Agreement] = field(default_factory=list)
    tariff: TariffLevel = TariffLevel.LOW
    their_tariff: TariffLevel = TariffLevel.LOW
    political: PoliticalState = field(default_factory=PoliticalState)
    allies: List[str] = field(default_factory=list)
    enemies: List[str] = field(default_factory=list)
    trade_partners: List[str] = field(default_factory=list)
    religion: str = "Unknown"
    culture: str = "Unknown"
    language: str = "Unknown"
    treasury: float = 0.0
    is_at_war: bool = False
    is_annexed: bool = False
    is_player: bool = False
    claimed_percentage: float = 0.0
    occupier: Optional[str] = None  # who holds the territory this nation lost
    war_declared_at: Optional[int] = None
    foreign_relations: Dict[str, int] = field(default_factory=dict)
    strategy_state: Optional[Any] = None

    @property
    def aggression(self) -> int:
        return self.political.aggression

    @property
    def orientation(self) -> int:
        return self.political.orientation

    def has(self, modifier: Modifier) -> bool:
        return modifier in self.modifiers

    def add_modifier(self, modifier: Modifier):
        self.modifiers |= modifier

    def remove_modifier(self, modifier: Modifier):
        self.modifiers &= ~modifier

    def modifier_names(self) -> List[str]:
        return [m.name for m in Modifier if m in self.modifiers]

    def set_relations(self, value: float):
        """Clamp and store relations, then refresh disposition."""
        self.relations = clamp_relations(value)
        self.refresh_disposition()

    def refresh_disposition(self):
        if self.is_at_war:
            self.disposition = Disposition.AT_WAR
        else:
            self.disposition = disposition_from_relations(self.relations)

    def set_territory_lost(self, value: float):
        self.territory_lost = clamp(value, 0.0, 100.0)

    def set_foreign_relation(self, other: str, value: float):
        self.foreign_relations[other] = clamp_relations(value)

    def has_agreement(self, agreement_type: AgreementType, target: Optional[str] = None) -> bool:
        return any(
            a.type == agreement_type and (target is None or a.target == target)
            for a in self.agreements
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "relations": self.relations,
            "disposition": self.disposition.value,
            "territory_lost": round(self.territory_lost, 2),
            "population": self.population,
            "soldiers": self.soldiers,
            "economy": self.economy,
            "authority": self.authority,
            "power": self.power,
            "modifiers": self.modifier_names(),
            "agreements": [a.to_dict() for a in self.agreements],
            "tariff": self.tariff.value,
            "their_tariff": self.their_tariff.value,
            "orientation": self.political.orientation,
            "government": self.political.government,
            "allies": list(self.allies),
            "enemies": list(self.enemies),
            "is_at_war": self.is_at_war,
            "is_annexed": self.is_annexed,
            "personality": self.strategy_state.personality.name if self.strategy_state else None,
        }
