"""Login lifecycle — daily action points, login streaks and rewards.

Action points reset once per calendar day.  The login streak counts
consecutive calendar days with a login: a one-day gap extends it, a
longer gap restarts it at 1, and a second login on the same day leaves it
alone.  Rewards follow a stepped table keyed on the streak.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from citygrid.world.state import CityState

logger = logging.getLogger(__name__)

DAILY_ACTION_POINTS = 10

_EARLY_REWARDS: dict[int, int] = {
    1: 1000,
    2: 1500,
    3: 5000,
    4: 3000,
    5: 3000,
    6: 3000,
    7: 10000,
}


def login_reward(day: int) -> int:
    """Return the reward for the ``day``-th consecutive login.

    Days 8-13 ramp from 3500 to 6000 in steps of 500; days 14-29 pay
    10000 and day 30 onwards pays 20000.  Non-positive days pay nothing.
    """
    if day <= 0:
        return 0
    if day in _EARLY_REWARDS:
        return _EARLY_REWARDS[day]
    if day >= 30:
        return 20000
    if day >= 14:
        return 10000
    return 3000 + (day - 7) * 500


def next_streak(last_login: datetime | None, today: date, current: int) -> int:
    """Streak value after logging in on ``today``.

    Args:
        last_login: Previous login time, or None for a first login.
        today: Calendar day of the current login.
        current: Streak stored before this login.
    """
    if last_login is None:
        return 1
    gap = (today - last_login.date()).days
    if gap == 1:
        return current + 1
    if gap > 1:
        return 1
    return current


def needs_daily_reset(state: CityState, today: date) -> bool:
    """Return True if the owner has not logged in yet on ``today``."""
    return state.last_login_at is None or state.last_login_at.date() != today


def pending_login_reward(state: CityState, today: date) -> int:
    """Reward the owner would receive for logging in on ``today``.

    Read-only; returns 0 when today's reset already happened.
    """
    if not needs_daily_reset(state, today):
        return 0
    streak = next_streak(state.last_login_at, today, state.consecutive_login_days)
    return login_reward(streak)


def apply_daily_reset(
    state: CityState,
    now: datetime,
    daily_points: int = DAILY_ACTION_POINTS,
) -> bool:
    """Restore action points and advance the streak once per day.

    Mutates ``state``.

    Returns:
        True if a reset happened, False if it already ran today.
    """
    today = now.date()
    if not needs_daily_reset(state, today):
        return False
    streak = next_streak(state.last_login_at, today, state.consecutive_login_days)
    state.reset_daily_action_points(daily_points, now)
    state.update_login_streak(streak, now)
    logger.debug("Daily reset: streak=%d points=%d", streak, daily_points)
    return True


def claim_login_reward(
    state: CityState,
    now: datetime,
    daily_points: int = DAILY_ACTION_POINTS,
) -> int:
    """Credit the reward for the current streak, at most once per day.

    Runs today's daily reset first if it has not happened yet, so the
    reward always matches ``pending_login_reward``.  Mutates ``state``.

    Returns:
        The amount credited, 0 if today's reward was already claimed.
    """
    if state.last_reward_claimed_on == now.date():
        logger.info("Login reward already claimed on %s", now.date())
        return 0
    apply_daily_reset(state, now, daily_points)
    reward = login_reward(state.consecutive_login_days)
    state.credit_login_reward(reward, now)
    return reward
