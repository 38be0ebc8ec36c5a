"""Tax accrual — offline earnings from elapsed wall-clock time.

Offline earnings are the cached hourly tax rate times whole hours since
the last collection, capped at ``max_hours``, then adjusted:

- halved during a power shortage,
- scaled by ``0.8 + happiness * 0.004`` (0.8 at 0, 1.2 at 100),
- scaled by ``1.0 - traffic_level * 0.003`` (down to 0.7 at 100),
- floored at 0.

The multipliers are applied in exact integer arithmetic, truncating after
each step.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from citygrid.stats.scanner import clamp_percent, hourly_tax_rate
from citygrid.world.grid import load_stored_grid

if TYPE_CHECKING:
    from citygrid.world.state import CityState

logger = logging.getLogger(__name__)

MAX_OFFLINE_HOURS = 24


def offline_hours(
    last_collected_at: datetime | None,
    now: datetime,
    max_hours: int = MAX_OFFLINE_HOURS,
) -> int:
    """Whole hours elapsed since the last collection, capped at ``max_hours``.

    Returns 0 when there is no prior collection or the clock went backwards.
    """
    if last_collected_at is None:
        return 0
    elapsed = int((now - last_collected_at).total_seconds() // 3600)
    return max(0, min(elapsed, max_hours))


def effective_hourly_rate(state: CityState, grid_size: int) -> int:
    """Cached hourly rate, recomputed from the grid when the cache is empty."""
    if state.hourly_tax_rate:
        return state.hourly_tax_rate
    return hourly_tax_rate(load_stored_grid(state.grid_data, grid_size))


def apply_modifiers(
    base: int,
    *,
    power_shortage: bool,
    happiness: int,
    traffic_level: int,
) -> int:
    """Apply power, happiness and traffic modifiers to a base amount."""
    if power_shortage:
        base //= 2
    base = base * (200 + clamp_percent(happiness)) // 250
    base = base * (1000 - 3 * clamp_percent(traffic_level)) // 1000
    return max(0, base)


def offline_earnings(
    state: CityState,
    now: datetime,
    *,
    max_hours: int = MAX_OFFLINE_HOURS,
    grid_size: int = 48,
) -> int:
    """Compute unclaimed offline earnings without touching ``state``.

    Args:
        state: City snapshot.
        now: Current time.
        max_hours: Accrual cap.
        grid_size: Grid side length, used only for the fallback scan.

    Returns:
        Non-negative earnings.
    """
    hours = offline_hours(state.last_collected_at, now, max_hours)
    if hours <= 0:
        return 0

    rate = effective_hourly_rate(state, grid_size)
    return apply_modifiers(
        rate * hours,
        power_shortage=state.has_power_shortage,
        happiness=state.happiness,
        traffic_level=state.traffic_level,
    )


def collect_tax(
    state: CityState,
    now: datetime,
    *,
    max_hours: int = MAX_OFFLINE_HOURS,
    grid_size: int = 48,
) -> int:
    """Pay offline earnings into ``state`` and restart the accrual clock.

    This mutates ``state``.  Callers must serialise collections for the
    same city; the function assumes it is the only writer.

    Returns:
        The amount credited.
    """
    hours = offline_hours(state.last_collected_at, now, max_hours)
    earnings = offline_earnings(state, now, max_hours=max_hours, grid_size=grid_size)
    state.collect_tax(earnings, now)
    logger.info("Collected %d tax for %d offline hours", earnings, hours)
    return earnings
