"""
Outcome resolution for search requests.

Every random draw a search will ever need happens here, once, at request time.
Draw order (must stay stable for replays):
  1. duration            randint(min_days, max_days) * HOURS_PER_DAY
  2. warm-up             random()
  3. success roll        random()
  -- success only --
  4. tts                 randint(lo, duration)
  5. condition           random()
  6. price variance      random()
  7. one random() per requested configuration, sorted by configuration id
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Mapping, Optional

from config import FAILURE_TTS_PADDING, HOURS_PER_DAY, SUCCESS_WINDOW_START
from game.systems.tier_catalog import QualityTier, TierDefinition, effective_success


@dataclass(frozen=True, slots=True)
class Outcome:
    cost: int
    duration: int
    effective_success: float
    succeeds: bool
    tts: int
    condition: float = 0.0
    price: int = 0
    # config id -> requested option index, or None when the seller has something else
    matched_configs: dict[str, Optional[int]] = field(default_factory=dict)


def search_cost(base_price: float, tier: TierDefinition, credit_modifier: float = 0.0) -> int:
    return int(math.floor(float(base_price) * tier.fee_fraction * (1.0 + float(credit_modifier))))


def success_time(duration: int, rng: random.Random) -> int:
    lo = max(1, int(math.floor(duration * SUCCESS_WINDOW_START)))
    return rng.randint(lo, max(lo, int(duration)))


def resolve(
    tier: TierDefinition,
    quality: QualityTier,
    base_price: float,
    credit_modifier: float,
    rng: random.Random,
    requested_configs: Optional[Mapping[str, int]] = None,
) -> Outcome:
    cost = search_cost(base_price, tier, credit_modifier)
    duration = rng.randint(int(tier.min_days), int(tier.max_days)) * HOURS_PER_DAY
    p = effective_success(tier, quality)

    rng.random()  # warm-up
    if rng.random() > p:
        return Outcome(
            cost=cost,
            duration=duration,
            effective_success=p,
            succeeds=False,
            tts=duration + FAILURE_TTS_PADDING,
        )

    tts = success_time(duration, rng)

    condition = quality.min_condition + rng.random() * (quality.max_condition - quality.min_condition)
    variance = 0.9 + rng.random() * 0.2
    price = int(math.floor(float(base_price) * quality.price_multiplier * (condition / quality.max_condition) * variance))

    matched: dict[str, Optional[int]] = {}
    for config_id in sorted(requested_configs or {}):
        wanted = int(requested_configs[config_id])
        matched[config_id] = wanted if rng.random() <= tier.match_chance else None

    return Outcome(
        cost=cost,
        duration=duration,
        effective_success=p,
        succeeds=True,
        tts=tts,
        condition=condition,
        price=price,
        matched_configs=matched,
    )
