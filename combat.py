"""
Battle resolution with dice-driven combat rounds.
Each round both sides roll, dice are paired highest-first, and every lost pairing
costs the loser a casualty block scaled by battle size and intensity.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
import math
import logging
import numpy as np

from config import SimulationConfig, INTENSITY_PROFILES

logger = logging.getLogger(__name__)


class BattleIntensity(Enum):
    SKIRMISH = "SKIRMISH"
    STANDARD = "STANDARD"
    TOTAL_WAR = "TOTAL_WAR"

    @property
    def max_rounds(self) -> int:
        return INTENSITY_PROFILES[self.value]["max_rounds"]

    @property
    def loss_multiplier(self) -> float:
        return INTENSITY_PROFILES[self.value]["loss_multiplier"]


@dataclass
class CombatRound:
    number: int
    attacker_rolls: List[int]
    defender_rolls: List[int]
    attacker_losses: int
    defender_losses: int
    attacker_remaining: int
    defender_remaining: int


@dataclass
class BattleResult:
    attacker_start: int
    defender_start: int
    attacker_remaining: int
    defender_remaining: int
    winner: str  # "attacker" or "defender"
    decisiveness: float
    intensity: BattleIntensity
    rounds: List[CombatRound] = field(default_factory=list)

    @property
    def attacker_losses(self) -> int:
        return self.attacker_start - self.attacker_remaining

    @property
    def defender_losses(self) -> int:
        return self.defender_start - self.defender_remaining

    @property
    def attacker_retained(self) -> float:
        return self.attacker_remaining / self.attacker_start if self.attacker_start > 0 else 0.0

    @property
    def defender_retained(self) -> float:
        return self.defender_remaining / self.defender_start if self.defender_start > 0 else 0.0

    @property
    def attacker_won(self) -> bool:
        return self.winner == "attacker"

    def to_dict(self):
        return {
            "attacker_start": self.attacker_start,
            "defender_start": self.defender_start,
            "attacker_remaining": self.attacker_remaining,
            "defender_remaining": self.defender_remaining,
            "winner": self.winner,
            "decisiveness": round(self.decisiveness, 3),
            "intensity": self.intensity.value,
            "rounds": len(self.rounds),
        }


def casualty_block(total_soldiers: int) -> int:
    """Soldiers lost per lost dice pairing, before intensity scaling."""
    if total_soldiers < 100:
        return 1
    if total_soldiers < 1000:
        return total_soldiers // 50
    if total_soldiers < 10000:
        return total_soldiers // 100
    return total_soldiers // 500


class CombatResolver:
    """
    Resolves a single battle.

    Deterministic when built with a seed; otherwise draws from fresh OS entropy
    and differs run to run.
    """

    def __init__(self, config: SimulationConfig, seed: Optional[int] = None,
                 rng: Optional[np.random.Generator] = None):
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def _dice_counts(self, attacker: int, defender: int, defense_bonus: float):
        base = self.config.combat_base_dice
        ratio = self.config.combat_superiority_ratio
        attacker_dice = base + (1 if attacker >= defender * ratio else 0)
        defender_dice = base + (1 if defender >= attacker * ratio else 0)
        if defense_bonus > 0:
            defender_dice += 1
        cap = self.config.combat_max_dice
        return min(cap, attacker_dice), min(cap, defender_dice)

    def _roll(self, count: int) -> List[int]:
        return sorted(self.rng.integers(1, 7, size=count).tolist(), reverse=True)

    def _block_loss(self, block: int, intensity: BattleIntensity) -> int:
        jitter = self.config.combat_loss_jitter
        scale = self.rng.uniform(1 - jitter, 1 + jitter)
        return max(1, int(round(block * intensity.loss_multiplier * scale)))

    def simulate(self, attacker_force: int, defender_force: int,
                 intensity: BattleIntensity = BattleIntensity.STANDARD,
                 defense_bonus: float = 0.0) -> BattleResult:
        """Run rounds until one side breaks or the intensity's round cap is hit."""
        attacker_start = max(0, int(attacker_force))
        defender_start = max(0, int(defender_force))
        defense_bonus = max(0.0, min(1.0, defense_bonus))

        attacker = attacker_start
        defender = defender_start
        rounds: List[CombatRound] = []

        block = casualty_block(attacker_start + defender_start)
        attacker_floor = attacker_start * self.config.combat_rout_fraction
        defender_floor = defender_start * self.config.combat_rout_fraction
        defender_loss_factor = max(self.config.combat_defense_loss_floor, 1.0 - defense_bonus)

        if attacker_start > 0 and defender_start > 0:
            for number in range(1, intensity.max_rounds + 1):
                attacker_dice, defender_dice = self._dice_counts(attacker, defender, defense_bonus)
                attacker_rolls = self._roll(attacker_dice)
                defender_rolls = self._roll(defender_dice)

                attacker_losses = 0
                defender_losses = 0
                for a_roll, d_roll in zip(attacker_rolls, defender_rolls):
                    if a_roll > d_roll:
                        defender_losses += self._block_loss(block, intensity)
                    elif d_roll > a_roll:
                        attacker_losses += self._block_loss(block, intensity)
                    else:
                        # Even exchange: both sides bleed
                        defender_losses += self._block_loss(block, intensity)
                        attacker_losses += self._block_loss(block, intensity)

                if defense_bonus > 0 and defender_losses:
                    defender_losses = math.ceil(defender_losses * defender_loss_factor)

                attacker_losses = min(attacker, attacker_losses)
                defender_losses = min(defender, defender_losses)
                attacker -= attacker_losses
                defender -= defender_losses

                rounds.append(CombatRound(number, attacker_rolls, defender_rolls,
                                          attacker_losses, defender_losses, attacker, defender))

                if attacker <= attacker_floor or defender <= defender_floor:
                    break

        attacker_frac = attacker / attacker_start if attacker_start else 0.0
        defender_frac = defender / defender_start if defender_start else 0.0

        # Larger retained share wins; ties go to the defender
        winner = "attacker" if attacker_frac > defender_frac else "defender"
        decisiveness = abs(attacker_frac - defender_frac)
        if intensity == BattleIntensity.TOTAL_WAR and decisiveness > 0.5:
            decisiveness *= self.config.total_war_decisiveness_boost
        decisiveness = float(np.clip(decisiveness, 0.0, 1.0))

        logger.debug(
            f"Battle {attacker_start} vs {defender_start} ({intensity.value}): "
            f"{winner} wins after {len(rounds)} rounds, decisiveness {decisiveness:.2f}"
        )

        return BattleResult(
            attacker_start=attacker_start,
            defender_start=defender_start,
            attacker_remaining=attacker,
            defender_remaining=defender,
            winner=winner,
            decisiveness=decisiveness,
            intensity=intensity,
            rounds=rounds,
        )
