"""
bonus.py - Rate and Bonus Engine

Pure functions turning a contribution into an issued token amount.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASSES (explicit inputs/outputs):
   - WhaleTier: contribution threshold -> bonus percent
   - Stage: upper bound of cumulative raised -> bonus percent
   - Quote: the breakdown of one issued amount

2. PURE CALCULATION FUNCTIONS (calculate_*):
   - Take all inputs explicitly as parameters
   - No LedgerView, no hidden state
   - All arithmetic is checked uint256 integer math

Key Formulas:
    whale_bonus = amount * whale_percent / 100      (tiers highest first, first match wins)
    stage_bonus = sum(portion_i * stage_percent_i / 100)
                  where the contribution [raised, raised + amount) is split at stage bounds
    issued      = (amount + whale_bonus + stage_bonus) * rate
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .core import WEI_PER_ETHER
from .safe_math import checked_add, checked_mul, checked_sub, mul_div, require_uint


@dataclass(frozen=True, slots=True)
class WhaleTier:
    """A single contribution of at least ``threshold`` earns ``percent`` bonus."""
    threshold: int
    percent: int

    def __post_init__(self):
        if self.threshold <= 0:
            raise ValueError(f"Whale tier threshold must be positive, got {self.threshold}")
        if self.percent < 0:
            raise ValueError(f"Whale tier percent cannot be negative, got {self.percent}")


@dataclass(frozen=True, slots=True)
class Stage:
    """Contributions landing while cumulative raised is below ``upper_bound`` earn ``percent``."""
    upper_bound: int
    percent: int

    def __post_init__(self):
        if self.upper_bound <= 0:
            raise ValueError(f"Stage upper bound must be positive, got {self.upper_bound}")
        if self.percent < 0:
            raise ValueError(f"Stage percent cannot be negative, got {self.percent}")


@dataclass(frozen=True, slots=True)
class Quote:
    """Breakdown of the tokens issued for one contribution."""
    amount: int          # raw contribution in base units
    rate: int            # token base units per contribution base unit
    base_tokens: int     # amount * rate
    whale_percent: int
    whale_bonus: int     # bonus in contribution units
    stage_bonus: int     # bonus in contribution units
    total: int           # tokens issued

    @property
    def bonus_tokens(self) -> int:
        return self.total - self.base_tokens


# Presale schedule: tiers highest threshold first, stages ascending.
DEFAULT_WHALE_TIERS: Tuple[WhaleTier, ...] = (
    WhaleTier(1000 * WEI_PER_ETHER, 15),
    WhaleTier(500 * WEI_PER_ETHER, 10),
    WhaleTier(100 * WEI_PER_ETHER, 5),
)

DEFAULT_STAGES: Tuple[Stage, ...] = (
    Stage(2000 * WEI_PER_ETHER, 20),
    Stage(4000 * WEI_PER_ETHER, 10),
    Stage(6000 * WEI_PER_ETHER, 5),
)


def validate_whale_tiers(tiers: Sequence[WhaleTier]) -> Tuple[WhaleTier, ...]:
    """
    Check that tiers are ordered from highest threshold to lowest.

    Raises:
        ValueError: If thresholds are not strictly decreasing
    """
    tiers = tuple(tiers)
    for higher, lower in zip(tiers, tiers[1:]):
        if lower.threshold >= higher.threshold:
            raise ValueError("Whale tiers must be ordered by strictly decreasing threshold")
    return tiers


def validate_stages(stages: Sequence[Stage]) -> Tuple[Stage, ...]:
    """
    Check that stage bounds are strictly increasing.

    Raises:
        ValueError: If bounds are not strictly increasing
    """
    stages = tuple(stages)
    for earlier, later in zip(stages, stages[1:]):
        if later.upper_bound <= earlier.upper_bound:
            raise ValueError("Stages must be ordered by strictly increasing upper bound")
    return stages


def apply_percentage(amount: int, percent: int) -> int:
    """amount * percent / 100, multiply first. Zero percent yields zero."""
    if percent == 0:
        return 0
    return mul_div(require_uint(amount, "amount"), percent, 100)


def calculate_whale_percent(amount: int, tiers: Sequence[WhaleTier]) -> int:
    """
    Bonus percent for a single contribution of ``amount``.

    Tiers are evaluated from the highest threshold down; the first tier whose
    threshold is at most ``amount`` wins. Below every threshold the bonus is 0.
    """
    for tier in tiers:
        if amount >= tier.threshold:
            return tier.percent
    return 0


def calculate_whale_bonus(amount: int, tiers: Sequence[WhaleTier]) -> int:
    """Whale bonus in contribution units."""
    return apply_percentage(amount, calculate_whale_percent(amount, tiers))


def calculate_stage_bonus(amount: int, raised: int, stages: Sequence[Stage]) -> int:
    """
    Stage bonus in contribution units.

    The contribution occupies [raised, raised + amount) of the cumulative
    total. Each stage covers [previous bound, upper_bound); the part of the
    contribution inside a stage earns that stage's percent. Anything beyond
    the last stage earns nothing.

    Example:
        stages = (Stage(100, 20), Stage(200, 10))
        calculate_stage_bonus(50, 80, stages) == 20 * 20 // 100 + 30 * 10 // 100 == 7
    """
    require_uint(amount, "amount")
    end = checked_add(require_uint(raised, "raised"), amount)
    lower = 0
    bonus = 0
    for stage in stages:
        portion_start = max(raised, lower)
        portion_end = min(end, stage.upper_bound)
        if portion_end > portion_start:
            portion = checked_sub(portion_end, portion_start)
            bonus = checked_add(bonus, apply_percentage(portion, stage.percent))
        lower = stage.upper_bound
        if lower >= end:
            break
    return bonus


def calculate_issued_amount(
    amount: int,
    rate: int,
    raised: int = 0,
    whale_tiers: Optional[Sequence[WhaleTier]] = None,
    stages: Optional[Sequence[Stage]] = None,
) -> Quote:
    """
    Tokens issued for a contribution of ``amount`` at ``rate``.

    Args:
        amount: Contribution in base units
        rate: Token base units per contribution base unit
        raised: Cumulative amount raised before this contribution (for stages)
        whale_tiers: Size-based bonus tiers, or None for no whale bonus
        stages: Fill-based bonus stages, or None for no stage bonus

    Raises:
        ArithmeticViolation: If any intermediate value leaves uint256 bounds
    """
    require_uint(amount, "amount")
    require_uint(rate, "rate")
    whale_percent = calculate_whale_percent(amount, whale_tiers) if whale_tiers else 0
    whale_bonus = apply_percentage(amount, whale_percent)
    stage_bonus = calculate_stage_bonus(amount, raised, stages) if stages else 0

    bonus_adjusted = checked_add(checked_add(amount, whale_bonus), stage_bonus)
    return Quote(
        amount=amount,
        rate=rate,
        base_tokens=checked_mul(amount, rate),
        whale_percent=whale_percent,
        whale_bonus=whale_bonus,
        stage_bonus=stage_bonus,
        total=checked_mul(bonus_adjusted, rate),
    )
