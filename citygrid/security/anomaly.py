"""Advisory anomaly heuristics for city progress.

Two heuristics are evaluated:

- a young city (under ``early_hours`` old) with more than ``population``
  residents;
- a balance above ``money_floor`` that is more than ``money_factor`` times
  the projection ``starting_money + tax_per_hour * hours_played``.

Flags are always logged.  Whether a flag blocks the update is decided by
the injected ``AnomalyPolicy``; the default only logs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from citygrid.simulation.config import EngineConfig

logger = logging.getLogger(__name__)


class AnomalyPolicy(Enum):
    """What to do with a flagged update."""

    LOG = "log"
    BLOCK = "block"


@dataclass(frozen=True)
class AnomalyThresholds:
    population: int = 1000
    early_hours: int = 1
    money_floor: int = 10_000_000
    starting_money: int = 10000
    money_factor: float = 2.0

    @classmethod
    def from_config(cls, config: EngineConfig) -> AnomalyThresholds:
        return cls(
            population=config.anomaly_population,
            early_hours=config.anomaly_early_hours,
            money_floor=config.anomaly_money_floor,
            starting_money=config.anomaly_starting_money,
            money_factor=config.anomaly_money_factor,
        )


@dataclass(frozen=True)
class AnomalyFlag:
    """One tripped heuristic.

    Attributes:
        code: Short machine-readable tag.
        detail: Human-readable explanation with the observed values.
    """

    code: str
    detail: str


def _hours_between(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() // 3600))


class AnomalyDetector:
    """Evaluates the progress heuristics for one city snapshot."""

    def __init__(
        self,
        thresholds: AnomalyThresholds | None = None,
        policy: AnomalyPolicy = AnomalyPolicy.LOG,
    ) -> None:
        self.thresholds = thresholds or AnomalyThresholds()
        self.policy = policy

    def inspect(
        self,
        identity: str,
        *,
        created_at: datetime | None,
        population: int,
        money: int,
        tax_per_hour: int,
        now: datetime,
    ) -> list[AnomalyFlag]:
        """Run every heuristic and log each flag raised.

        Args:
            identity: Owner of the city, for the log line.
            created_at: City creation time; heuristics needing the city's
                age are skipped without it.
            population: Population to judge.
            money: Balance to judge.
            tax_per_hour: Hourly tax rate used for the money projection.
            now: Current time.

        Returns:
            The flags raised, empty when nothing looks off.
        """
        limits = self.thresholds
        flags: list[AnomalyFlag] = []
        if created_at is None:
            return flags

        hours_played = _hours_between(created_at, now)
        if hours_played < limits.early_hours and population > limits.population:
            flags.append(
                AnomalyFlag(
                    code="rapid_growth",
                    detail=f"population {population} after {hours_played}h",
                ),
            )

        if money > limits.money_floor:
            projected = limits.starting_money + tax_per_hour * hours_played
            if money > projected * limits.money_factor:
                flags.append(
                    AnomalyFlag(
                        code="excess_money",
                        detail=f"money {money} exceeds projection {projected}",
                    ),
                )

        for flag in flags:
            logger.warning("Anomaly for %s: %s (%s)", identity, flag.code, flag.detail)
        return flags

    def should_block(self, flags: list[AnomalyFlag]) -> bool:
        return bool(flags) and self.policy is AnomalyPolicy.BLOCK
