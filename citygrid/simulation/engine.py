"""CityEngine — the entry point tying the engine components together.

A caller hands in a stored ``CityState`` and, for writes, a proposed
update.  The engine:

1. Shape-checks the payload (malformed input raises).
2. Runs the validation pipeline (policy violations return a rejection).
3. On acceptance, applies the update and computes fresh statistics.

Read paths compute statistics, offline earnings and the pending login
reward without mutating the state.  Only ``update_map``, ``collect_tax``,
``daily_login`` and ``claim_login_reward`` change the state passed in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from citygrid.economy import login, tax
from citygrid.security.anomaly import AnomalyDetector
from citygrid.security.rate_limit import RateLimiter
from citygrid.security.validation import (
    ValidationPipeline,
    ValidationResult,
    build_cost,
)
from citygrid.simulation.config import EngineConfig
from citygrid.stats.scanner import CityStats, compute_stats
from citygrid.world.grid import load_stored_grid, parse_grid
from citygrid.world.state import CityState

logger = logging.getLogger(__name__)


@dataclass
class MapUpdateRequest:
    """A client-submitted map update.

    Attributes:
        grid: Proposed grid payload; must have the configured shape.
        money: Money reported by the client (>= 0).
        buildings: Opaque building payload, stored as-is.
        camera_state: Opaque camera payload, stored as-is.
        game_state: Opaque clock payload, stored as-is.
    """

    grid: Any
    money: int
    buildings: Any = None
    camera_state: Any = None
    game_state: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MapUpdateRequest:
        """Build a request from a decoded JSON body.

        Raises:
            ValueError: If ``grid`` or ``money`` is missing.
        """
        if "grid" not in data or "money" not in data:
            msg = "map update requires 'grid' and 'money'"
            raise ValueError(msg)
        return cls(
            grid=data["grid"],
            money=data["money"],
            buildings=data.get("buildings"),
            camera_state=data.get("cameraState"),
            game_state=data.get("gameState"),
        )


@dataclass(frozen=True)
class CityReport:
    """Read-only view of a city returned to callers.

    Attributes:
        stats: Metrics derived from the stored grid.
        money: Current money.
        action_points: Remaining daily action points.
        consecutive_login_days: Current login streak.
        unclaimed_tax: Stored unclaimed tax.
        offline_earnings: Tax collectable now (owners only).
        login_reward: Reward pending for today's login (owners only).
        is_owner: Whether the viewer owns the city.
    """

    stats: CityStats
    money: int
    action_points: int
    consecutive_login_days: int
    unclaimed_tax: int
    offline_earnings: int = 0
    login_reward: int = 0
    is_owner: bool = True

    def to_dict(self) -> dict[str, Any]:
        data = self.stats.to_dict()
        data.update(
            money=self.money,
            actionPoints=self.action_points,
            consecutiveLoginDays=self.consecutive_login_days,
            unclaimedTax=self.unclaimed_tax,
            offlineEarnings=self.offline_earnings,
            loginReward=self.login_reward,
            isOwner=self.is_owner,
        )
        return data


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of ``CityEngine.update_map``; ``report`` is None on rejection."""

    result: ValidationResult
    report: CityReport | None = None

    @property
    def accepted(self) -> bool:
        return self.result.ok


@dataclass
class CityEngine:
    """Runs simulation and validation for many cities.

    Attributes:
        config: Loaded engine configuration.
        rate_limiter: Shared request ledger; built from config if omitted.
        anomaly_detector: Anomaly heuristics; built from config if omitted.
        pipeline: Validation pipeline wired from the above.
    """

    config: EngineConfig
    rate_limiter: RateLimiter | None = None
    anomaly_detector: AnomalyDetector | None = None
    pipeline: ValidationPipeline = field(init=False)

    def __post_init__(self) -> None:
        """Wire the validation pipeline from config."""
        self.pipeline = ValidationPipeline(
            self.config,
            rate_limiter=self.rate_limiter,
            anomaly_detector=self.anomaly_detector,
        )
        self.rate_limiter = self.pipeline.rate_limiter
        self.anomaly_detector = self.pipeline.anomaly_detector

    def new_city(self, now: datetime) -> CityState:
        return CityState.create(self.config, now)

    def stats_for(self, state: CityState) -> CityStats:
        """Compute statistics for the stored grid, degrading on corruption."""
        grid = load_stored_grid(state.grid_data, self.config.grid_size)
        return compute_stats(
            grid,
            state.happiness,
            congestion_radius=self.config.congestion_radius,
        )

    def offline_earnings(self, state: CityState, now: datetime) -> int:
        return tax.offline_earnings(
            state,
            now,
            max_hours=self.config.max_offline_hours,
            grid_size=self.config.grid_size,
        )

    def report(
        self,
        state: CityState,
        now: datetime,
        *,
        is_owner: bool = True,
    ) -> CityReport:
        """Describe a city without changing it.

        Offline earnings and the pending login reward are only reported to
        the owner.
        """
        earnings = 0
        reward = 0
        if is_owner:
            earnings = self.offline_earnings(state, now)
            reward = login.pending_login_reward(state, now.date())
        return self._report(state, self.stats_for(state), earnings, reward, is_owner)

    def update_map(
        self,
        identity: str,
        state: CityState,
        request: MapUpdateRequest,
        now: datetime,
    ) -> UpdateOutcome:
        """Validate and apply a map update.

        On acceptance the grid, hourly tax cache, pass-through blobs and
        derived metrics are written to ``state``.  Money is recomputed on
        the server as the current balance minus the cost of new tiles; the
        client's figure is only used for validation.

        Raises:
            GridShapeError: If the grid payload is malformed.
            ValueError: If the reported money is not a non-negative integer.
        """
        money = request.money
        if isinstance(money, bool) or not isinstance(money, int) or money < 0:
            msg = f"money must be a non-negative integer, got {money!r}"
            raise ValueError(msg)
        proposed = parse_grid(request.grid, self.config.grid_size)
        current = load_stored_grid(state.grid_data, self.config.grid_size)

        result = self.pipeline.validate(
            identity,
            state,
            current,
            proposed,
            money,
            now,
        )
        if not result:
            logger.info("Rejected update from %s: %s", identity, result.reason)
            return UpdateOutcome(result=result)

        money = max(0, state.money - build_cost(current, proposed))
        stats = compute_stats(
            proposed,
            state.happiness,
            congestion_radius=self.config.congestion_radius,
        )
        state.update_map(
            proposed,
            money,
            stats.tax_per_hour,
            now,
            buildings=request.buildings,
            camera_state=request.camera_state,
            game_state=request.game_state,
        )
        state.update_stats(stats, now)
        report = self._report(state, stats, 0, 0, True)
        return UpdateOutcome(result=result, report=report)

    def collect_tax(self, state: CityState, now: datetime) -> int:
        """Pay offline earnings into ``state``; returns the amount."""
        return tax.collect_tax(
            state,
            now,
            max_hours=self.config.max_offline_hours,
            grid_size=self.config.grid_size,
        )

    def daily_login(self, state: CityState, now: datetime) -> bool:
        """Run the once-a-day action point reset and streak update."""
        return login.apply_daily_reset(state, now, self.config.daily_action_points)

    def claim_login_reward(self, state: CityState, now: datetime) -> int:
        """Credit today's login reward; returns the amount."""
        return login.claim_login_reward(state, now, self.config.daily_action_points)

    def _report(
        self,
        state: CityState,
        stats: CityStats,
        earnings: int,
        reward: int,
        is_owner: bool,
    ) -> CityReport:
        return CityReport(
            stats=stats,
            money=state.money,
            action_points=state.action_points,
            consecutive_login_days=state.consecutive_login_days,
            unclaimed_tax=state.unclaimed_tax,
            offline_earnings=earnings,
            login_reward=reward,
            is_owner=is_owner,
        )
