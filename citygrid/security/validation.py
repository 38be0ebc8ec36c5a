"""Anti-cheat validation of proposed map updates.

The pipeline runs its stages in a fixed order and stops at the first
failure:

1. Rate limit per identity.
2. Locked boundary roads stay locked roads.
3. Newly built tiles are affordable with the current money.
4. No more than ``max_changed_cells`` tiles change at once.
5. A reported money increase stays within one day of tax plus a flat
   allowance.
6. Anomaly heuristics, blocking only under the BLOCK policy.

Policy violations come back as a rejected ``ValidationResult``; they are
never raised.  Structural problems with the payload are the caller's to
catch before the pipeline runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from citygrid.security.anomaly import (
    AnomalyDetector,
    AnomalyFlag,
    AnomalyPolicy,
    AnomalyThresholds,
)
from citygrid.security.rate_limit import RateLimiter
from citygrid.stats.scanner import hourly_tax_rate, total_population
from citygrid.world.cell import attribute_table, normalise_codes
from citygrid.world.grid import Grid, changed_cells, locked_cells

if TYPE_CHECKING:
    from citygrid.simulation.config import EngineConfig
    from citygrid.world.state import CityState

logger = logging.getLogger(__name__)


class RejectReason(Enum):
    """Why a map update was refused."""

    RATE_LIMITED = "rate_limited"
    LOCKED_CELL = "locked_cell"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TOO_MANY_CHANGES = "too_many_changes"
    SUSPICIOUS_MONEY = "suspicious_money"
    ANOMALY = "anomaly"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES: dict[RejectReason, str] = {
    RejectReason.RATE_LIMITED: "Too many requests, try again shortly",
    RejectReason.LOCKED_CELL: "Locked tiles cannot be modified",
    RejectReason.INSUFFICIENT_FUNDS: "Not enough money to build",
    RejectReason.TOO_MANY_CHANGES: "Too many tiles changed at once",
    RejectReason.SUSPICIOUS_MONEY: "Abnormal money increase detected",
    RejectReason.ANOMALY: "Abnormal activity detected",
}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one update.

    Attributes:
        ok: Whether the update may be applied.
        reason: Failing stage, None on acceptance.
        detail: Values that tripped the stage, for logs.
        anomalies: Advisory flags raised, even on acceptance.
    """

    ok: bool
    reason: RejectReason | None = None
    detail: str = ""
    anomalies: tuple[AnomalyFlag, ...] = ()

    @classmethod
    def accept(cls, anomalies: tuple[AnomalyFlag, ...] = ()) -> ValidationResult:
        return cls(ok=True, anomalies=anomalies)

    @classmethod
    def reject(
        cls,
        reason: RejectReason,
        detail: str = "",
        anomalies: tuple[AnomalyFlag, ...] = (),
    ) -> ValidationResult:
        return cls(ok=False, reason=reason, detail=detail, anomalies=anomalies)

    @property
    def message(self) -> str | None:
        return None if self.reason is None else self.reason.message

    def __bool__(self) -> bool:
        return self.ok


def build_cost(old: Grid, new: Grid) -> int:
    """Total build cost of every tile whose code changed."""
    changed = changed_cells(old, new)
    costs = attribute_table("build_cost")[normalise_codes(np.asarray(new))]
    return int(costs[changed].sum())


def count_changed(old: Grid, new: Grid) -> int:
    return int(changed_cells(old, new).sum())


def locked_violations(old: Grid, new: Grid) -> list[tuple[int, int]]:
    """``(row, col)`` of locked tiles that would stop being locked roads."""
    broken = locked_cells(old) & ~locked_cells(new)
    return [(int(r), int(c)) for r, c in zip(*np.nonzero(broken))]


class ValidationPipeline:
    """Sequential anti-cheat checks over a proposed mutation."""

    def __init__(
        self,
        config: EngineConfig,
        rate_limiter: RateLimiter | None = None,
        anomaly_detector: AnomalyDetector | None = None,
    ) -> None:
        self.config = config
        self.rate_limiter = rate_limiter or RateLimiter(
            config.rate_limit_requests,
            config.rate_limit_window_seconds,
        )
        self.anomaly_detector = anomaly_detector or AnomalyDetector(
            AnomalyThresholds.from_config(config),
            AnomalyPolicy(config.anomaly_policy),
        )

    def validate(
        self,
        identity: str,
        state: CityState,
        current_grid: Grid,
        proposed_grid: Grid,
        proposed_money: int,
        now: datetime,
    ) -> ValidationResult:
        """Run every stage against one proposed update.

        Args:
            identity: Authenticated caller.
            state: Stored city snapshot; not modified.
            current_grid: Grid currently stored for the city.
            proposed_grid: Grid submitted by the client, already shape-checked.
            proposed_money: Money reported by the client.
            now: Current time.

        Returns:
            An accepting result, or a rejection naming the failing stage.
        """
        if not self.rate_limiter.allow(identity):
            return ValidationResult.reject(RejectReason.RATE_LIMITED, identity)

        violations = locked_violations(current_grid, proposed_grid)
        if violations:
            row, col = violations[0]
            logger.warning(
                "%s tried to modify locked cell at (%d, %d)",
                identity,
                row,
                col,
            )
            return ValidationResult.reject(
                RejectReason.LOCKED_CELL,
                f"{len(violations)} locked tiles changed, first at ({row}, {col})",
            )

        cost = build_cost(current_grid, proposed_grid)
        if cost > state.money:
            logger.warning(
                "%s build cost exceeds money: cost=%d money=%d",
                identity,
                cost,
                state.money,
            )
            return ValidationResult.reject(
                RejectReason.INSUFFICIENT_FUNDS,
                f"cost {cost} > money {state.money}",
            )

        changed = count_changed(current_grid, proposed_grid)
        if changed > self.config.max_changed_cells:
            logger.warning("%s changed %d cells in one request", identity, changed)
            return ValidationResult.reject(
                RejectReason.TOO_MANY_CHANGES,
                f"{changed} > {self.config.max_changed_cells}",
            )

        tax_per_hour = hourly_tax_rate(current_grid)
        if proposed_money > state.money:
            allowed = tax_per_hour * 24 + self.config.money_flat_allowance
            if proposed_money - state.money > allowed:
                logger.warning(
                    "%s suspicious money increase: %d -> %d (max allowed %d)",
                    identity,
                    state.money,
                    proposed_money,
                    state.money + allowed,
                )
                return ValidationResult.reject(
                    RejectReason.SUSPICIOUS_MONEY,
                    f"increase {proposed_money - state.money} > {allowed}",
                )

        flags = tuple(
            self.anomaly_detector.inspect(
                identity,
                created_at=state.created_at,
                population=total_population(proposed_grid),
                money=proposed_money,
                tax_per_hour=tax_per_hour,
                now=now,
            ),
        )
        if self.anomaly_detector.should_block(list(flags)):
            return ValidationResult.reject(
                RejectReason.ANOMALY,
                ", ".join(flag.code for flag in flags),
                flags,
            )
        return ValidationResult.accept(flags)
