"""CityState — the persisted economic and civic snapshot of one city.

The storage layer owns this record.  The engine receives it, derives
reports from it, and changes it only through the mutators defined here,
each of which stamps ``updated_at``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from citygrid.simulation.config import EngineConfig
    from citygrid.stats.scanner import CityStats
    from citygrid.world.grid import Grid

from citygrid.world.grid import default_grid, serialize_grid


def _clamp_percent(value: int) -> int:
    return max(0, min(100, value))


@dataclass
class CityState:
    """Economic and civic state of a single city.

    Attributes:
        grid_data: Serialized row-major grid (JSON).
        money: Spendable money (never negative).
        population: Residents at the last accepted map update.
        happiness: Baseline happiness (0-100).
        power_capacity: Total power production.
        power_usage: Total power consumption.
        crime_rate: Crime rate (0-100).
        fire_risk: Fire risk (0-100).
        traffic_level: Traffic level (0-100).
        hourly_tax_rate: Cached hourly tax; 0 for records predating the cache.
        action_points: Remaining daily action points.
        consecutive_login_days: Current login streak.
        last_collected_at: When tax was last collected.
        last_login_at: When the owner last logged in.
        unclaimed_tax: Tax accrued but not yet collected.
        created_at: City creation time.
        updated_at: Time of the last mutation.
        last_reward_claimed_on: Calendar day the login reward was last paid.
        buildings: Opaque client building payload.
        camera_state: Opaque client camera payload.
        game_state: Opaque client clock payload.
    """

    grid_data: str
    money: int = 10000
    population: int = 0
    happiness: int = 50
    power_capacity: int = 0
    power_usage: int = 0
    crime_rate: int = 0
    fire_risk: int = 0
    traffic_level: int = 0
    hourly_tax_rate: int = 0
    action_points: int = 10
    consecutive_login_days: int = 0
    last_collected_at: datetime | None = None
    last_login_at: datetime | None = None
    unclaimed_tax: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_reward_claimed_on: date | None = None
    buildings: Any = None
    camera_state: Any = None
    game_state: Any = None

    @classmethod
    def create(cls, config: EngineConfig, now: datetime) -> CityState:
        """Build the state of a brand-new city with the default grid."""
        grid = default_grid(config.grid_size, config.boundary_rows)
        return cls(
            grid_data=serialize_grid(grid),
            money=config.seed_money,
            happiness=config.default_happiness,
            action_points=config.daily_action_points,
            last_collected_at=now,
            last_login_at=now,
            created_at=now,
            updated_at=now,
        )

    @property
    def has_power_shortage(self) -> bool:
        return self.power_usage > self.power_capacity

    @property
    def power_balance(self) -> int:
        return self.power_capacity - self.power_usage

    def update_map(
        self,
        grid: Grid,
        money: int,
        hourly_tax_rate: int,
        now: datetime,
        *,
        buildings: Any = None,
        camera_state: Any = None,
        game_state: Any = None,
    ) -> None:
        """Store an accepted grid along with money and pass-through blobs."""
        self.grid_data = serialize_grid(grid)
        self.money = max(0, money)
        self.hourly_tax_rate = hourly_tax_rate
        self.buildings = buildings
        self.camera_state = camera_state
        self.game_state = game_state
        self.updated_at = now

    def update_stats(self, stats: CityStats, now: datetime) -> None:
        """Record freshly computed metrics.

        Happiness is left alone: the stored value is the baseline the next
        scan starts from.
        """
        self.population = stats.population
        self.power_capacity = stats.power_capacity
        self.power_usage = stats.power_usage
        self.crime_rate = _clamp_percent(stats.crime_rate)
        self.fire_risk = _clamp_percent(stats.fire_risk)
        self.traffic_level = _clamp_percent(stats.traffic_level)
        self.updated_at = now

    def collect_tax(self, amount: int, now: datetime) -> None:
        self.money += max(0, amount)
        self.unclaimed_tax = 0
        self.last_collected_at = now
        self.updated_at = now

    def reset_daily_action_points(self, points: int, now: datetime) -> None:
        self.action_points = points
        self.updated_at = now

    def update_login_streak(self, streak: int, now: datetime) -> None:
        self.consecutive_login_days = streak
        self.last_login_at = now
        self.updated_at = now

    def credit_login_reward(self, amount: int, now: datetime) -> None:
        self.money += max(0, amount)
        self.last_reward_claimed_on = now.date()
        self.updated_at = now
