"""
United Nations: resolutions, General Assembly voting and the Security Council veto.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional
import itertools
import logging
import random

from config import SimulationConfig, RESOLUTION_TEMPLATES, SECURITY_COUNCIL_P5
from diplomacy import InstrumentResult
from errors import InvalidCommandError
from events import EventLog, DiplomaticEventType
from nation import Modifier, TariffLevel
from registry import NationRegistry

logger = logging.getLogger(__name__)


class ResolutionType(Enum):
    CONDEMN_AGGRESSION = auto()
    IMPOSE_SANCTIONS = auto()
    PEACEKEEPING = auto()
    HUMANITARIAN = auto()
    CLIMATE_ACCORD = auto()
    ARMS_CONTROL = auto()
    TRADE_STANDARDS = auto()
    HUMAN_RIGHTS = auto()


class Vote(Enum):
    YES = "yes"
    NO = "no"
    ABSTAIN = "abstain"


class ResolutionStatus(Enum):
    VOTING = "voting"
    PASSED = "passed"
    FAILED = "failed"
    VETOED = "vetoed"


@dataclass
class Resolution:
    id: str
    type: ResolutionType
    title: str
    proposer: str
    target: Optional[str]
    proposed_at: int
    voting_ends: int
    votes: Dict[str, Vote] = field(default_factory=dict)
    status: ResolutionStatus = ResolutionStatus.VOTING
    vetoed_by: List[str] = field(default_factory=list)

    @property
    def template(self) -> Dict:
        return RESOLUTION_TEMPLATES[self.type.name]

    def tally(self) -> Dict[str, int]:
        counts = {v: 0 for v in Vote}
        for vote in self.votes.values():
            counts[vote] += 1
        return {"yes": counts[Vote.YES], "no": counts[Vote.NO], "abstain": counts[Vote.ABSTAIN]}

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type.name,
            "title": self.title,
            "proposer": self.proposer,
            "target": self.target,
            "status": self.status.value,
            "tally": self.tally(),
            "vetoed_by": list(self.vetoed_by),
        }


class UnitedNations:
    """General Assembly with a P5-plus-rotating Security Council."""

    # Resolutions authoritarian governments resent
    RIGHTS_RESOLUTIONS = ("HUMANITARIAN", "HUMAN_RIGHTS")

    def __init__(self, config: SimulationConfig, registry: NationRegistry, events: EventLog,
                 rng: Optional[random.Random] = None):
        self.config = config
        self.registry = registry
        self.events = events
        self.rng = rng or random.Random()
        self.resolutions: List[Resolution] = []
        self.history: List[Resolution] = []
        self.security_council: List[str] = []
        self.player_reputation = 0
        self._last_rotation: Optional[int] = None
        self._next_ai_resolution = self._days(self.rng.randint(*config.un_resolution_interval_days))
        self._ids = itertools.count(1)

    def _days(self, days: float) -> int:
        return max(1, round(days * self.config.ticks_per_day()))

    def _name(self, code: Optional[str]) -> str:
        nation = self.registry.get(code) if code else None
        return nation.name if nation else (code or "the world")

    # ------------------------------------------------------------------
    # Security Council
    # ------------------------------------------------------------------

    def rotate_council(self) -> List[str]:
        """P5 plus rotating seats drawn from the strongest remaining nations."""
        permanent = [c for c in SECURITY_COUNCIL_P5 if self.registry.is_targetable(c)]
        pool = sorted(
            (n for n in self.registry.active_nations() if n.code not in SECURITY_COUNCIL_P5),
            key=lambda n: n.power,
            reverse=True,
        )[:self.config.un_rotation_pool]
        seats = min(self.config.un_rotating_members, len(pool))
        rotating = [n.code for n in self.rng.sample(pool, seats)]
        self.security_council = permanent + rotating
        self._last_rotation = self.registry.tick
        logger.info(f"UN Security Council rotated: {', '.join(rotating) or 'no rotating members'}")
        return self.security_council

    # ------------------------------------------------------------------
    # Proposals and votes
    # ------------------------------------------------------------------

    def propose(self, resolution_type: ResolutionType, target: Optional[str] = None,
                proposer: Optional[str] = None) -> InstrumentResult:
        proposer = proposer or self.config.player_code
        template = RESOLUTION_TEMPLATES[resolution_type.name]
        needs_target = "{target}" in template["title"]
        if needs_target and target is None:
            raise InvalidCommandError(f"Resolution {resolution_type.name} requires a target")
        if target is not None and not self.registry.is_targetable(target):
            return InstrumentResult(False, f"No such nation: {target}")

        resolution = Resolution(
            id=f"res-{next(self._ids)}",
            type=resolution_type,
            title=template["title"].format(target=self._name(target)),
            proposer=proposer,
            target=target if needs_target else None,
            proposed_at=self.registry.tick,
            voting_ends=self.registry.tick + self._days(self.config.un_voting_days),
        )
        self._collect_ai_votes(resolution)
        self.resolutions.append(resolution)
        self.events.emit(
            DiplomaticEventType.UN_RESOLUTION,
            f"UN resolution proposed: {resolution.title}",
            f"{self._name(proposer)} brought '{resolution.title}' before the General Assembly.",
            affected=[c for c in (proposer, resolution.target) if c],
        )
        logger.info(f"UN: {self._name(proposer)} proposed {resolution.title}")
        return InstrumentResult(True, f"Resolution '{resolution.title}' is open for voting", resolution)

    def cast_vote(self, resolution_id: str, vote: Vote, voter: Optional[str] = None) -> bool:
        voter = voter or self.config.player_code
        resolution = self.get(resolution_id)
        if resolution is None or resolution.status != ResolutionStatus.VOTING:
            return False
        if not self.registry.is_targetable(voter):
            return False
        resolution.votes[voter] = vote
        return True

    def get(self, resolution_id: str) -> Optional[Resolution]:
        return next((r for r in self.resolutions + self.history if r.id == resolution_id), None)

    def ai_vote(self, resolution: Resolution, voter_code: str) -> Vote:
        voter = self.registry.get(voter_code)
        kind = resolution.type.name
        target = self.registry.get(resolution.target) if resolution.target else None

        if target is not None:
            if voter_code == target.code:
                return Vote.NO
            if voter_code in target.allies:
                return Vote.NO
            if voter_code in target.enemies:
                return Vote.YES

        if voter.political.freedom <= 2 and kind in self.RIGHTS_RESOLUTIONS:
            return Vote.NO if self.rng.random() < 0.7 else Vote.ABSTAIN
        if voter.political.freedom >= 4 and kind != "IMPOSE_SANCTIONS" and self.rng.random() < 0.7:
            return Vote.YES

        if resolution.proposer == self.config.player_code:
            if voter.relations > 30:
                return Vote.YES
            if voter.relations < -30:
                return Vote.NO
            return Vote.ABSTAIN

        roll = self.rng.random()
        if roll < 0.4:
            return Vote.YES
        if roll < 0.7:
            return Vote.ABSTAIN
        return Vote.NO

    def _collect_ai_votes(self, resolution: Resolution):
        for nation in self.registry.active_nations():
            resolution.votes[nation.code] = self.ai_vote(resolution, nation.code)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, resolution: Resolution) -> ResolutionStatus:
        template = resolution.template
        tally = resolution.tally()
        decisive = tally["yes"] + tally["no"]
        share = tally["yes"] / decisive if decisive else 0.0

        if template["requires_security_council"]:
            resolution.vetoed_by = [
                code for code in SECURITY_COUNCIL_P5
                if resolution.votes.get(code) == Vote.NO and self.registry.is_targetable(code)
            ]

        if resolution.vetoed_by:
            resolution.status = ResolutionStatus.VETOED
        elif decisive and share >= template["pass_threshold"]:
            resolution.status = ResolutionStatus.PASSED
            self._apply_effects(resolution)
        else:
            resolution.status = ResolutionStatus.FAILED

        if resolution.proposer == self.config.player_code:
            self.player_reputation += 5 if resolution.status == ResolutionStatus.PASSED else -2

        self.resolutions.remove(resolution)
        self.history.append(resolution)

        outcome = resolution.status.value
        if resolution.vetoed_by:
            outcome += " by " + ", ".join(self._name(c) for c in resolution.vetoed_by)
        self.events.emit(
            DiplomaticEventType.UN_RESOLUTION,
            f"UN resolution {outcome}: {resolution.title}",
            f"Yes {tally['yes']}, No {tally['no']}, Abstain {tally['abstain']}.",
            affected=[c for c in (resolution.proposer, resolution.target) if c],
            severity=2 if resolution.status == ResolutionStatus.PASSED and resolution.target else 1,
        )
        logger.info(f"UN: '{resolution.title}' {outcome} ({tally['yes']}-{tally['no']}-{tally['abstain']})")
        return resolution.status

    def _apply_effects(self, resolution: Resolution):
        target = self.registry.get(resolution.target) if resolution.target else None
        if target is None or target.is_annexed:
            return
        for effect, value in resolution.template["effects"]:
            if effect == "RELATION_CHANGE":
                self.registry.update_relations(target.code, value)
            elif effect in ("MODIFIER", "SANCTION"):
                target.add_modifier(Modifier[value])
            elif effect == "TRADE_BLOCK":
                target.tariff = TariffLevel.EMBARGO
        self.registry.recalculate_power(target.code)

    # ------------------------------------------------------------------
    # Monthly update
    # ------------------------------------------------------------------

    def pick_ai_target(self) -> Optional[str]:
        candidates = [
            n.code for n in self.registry.active_nations()
            if n.is_at_war or n.has(Modifier.AT_WAR)
            or n.has(Modifier.REVANCHISM) or n.political.unrest >= 4
        ]
        return self.rng.choice(candidates) if candidates else None

    def generate_ai_resolution(self) -> Optional[Resolution]:
        members = self.registry.active_nations()
        if not members:
            return None
        proposer = self.rng.choice(members).code
        target = self.pick_ai_target()
        if target is not None and target != proposer:
            kind = self.rng.choice(["CONDEMN_AGGRESSION", "IMPOSE_SANCTIONS", "PEACEKEEPING",
                                    "HUMANITARIAN", "HUMAN_RIGHTS"])
        else:
            target = None
            kind = self.rng.choice(["CLIMATE_ACCORD", "ARMS_CONTROL", "TRADE_STANDARDS"])
        return self.propose(ResolutionType[kind], target, proposer).value

    def update(self) -> int:
        """Run one month of UN business. Returns resolutions decided."""
        tick = self.registry.tick
        if self._last_rotation is None or tick - self._last_rotation >= self._days(self.config.un_rotation_days):
            self.rotate_council()

        if tick >= self._next_ai_resolution:
            self.generate_ai_resolution()
            self._next_ai_resolution = tick + self._days(self.rng.randint(*self.config.un_resolution_interval_days))

        decided = 0
        for resolution in list(self.resolutions):
            if tick >= resolution.voting_ends:
                self.resolve(resolution)
                decided += 1
        return decided

    def to_dict(self):
        return {
            "security_council": list(self.security_council),
            "active": [r.to_dict() for r in self.resolutions],
            "passed": sum(1 for r in self.history if r.status == ResolutionStatus.PASSED),
            "vetoed": sum(1 for r in self.history if r.status == ResolutionStatus.VETOED),
            "player_reputation": self.player_reputation,
        }
