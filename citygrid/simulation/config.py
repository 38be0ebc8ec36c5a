"""Config — load engine parameters from YAML files.

Grid dimensions, economy caps, rate-limit windows and anomaly thresholds
live in YAML and are parsed into a typed dataclass here.  Tuning a
threshold never requires touching the simulation or validation code.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml


@dataclass
class EngineConfig:
    """Top-level engine configuration.

    Attributes:
        grid_size: Side length of the square city grid.
        boundary_rows: Locked boundary-road rows along the bottom edge of
            a freshly created grid.
        seed_money: Money granted to a newly created city.
        default_happiness: Baseline happiness of a newly created city.
        daily_action_points: Action-point budget restored every day.
        max_offline_hours: Cap on hours of offline tax accrual.
        rate_limit_requests: Requests allowed per identity per window.
        rate_limit_window_seconds: Length of the rate-limit window.
        max_changed_cells: Most tiles one map update may change.
        money_flat_allowance: Flat buffer added to one day's tax when
            bounding a client-reported money increase.
        congestion_radius: Half-width of the square neighbourhood used
            for road congestion.
        anomaly_population: Population that is suspicious for a city
            younger than ``anomaly_early_hours``.
        anomaly_early_hours: Age in hours below which a city is "young".
        anomaly_money_floor: Money below which the money heuristic is
            not evaluated.
        anomaly_starting_money: Constant term of the projected money.
        anomaly_money_factor: Multiple of the projected money above which
            a balance is flagged.
        anomaly_policy: ``"log"`` to only log anomalies, ``"block"`` to
            reject the update.
        checksum_secret: HMAC key for the optional integrity digest.
    """

    grid_size: int = 48
    boundary_rows: int = 2
    seed_money: int = 5000
    default_happiness: int = 50
    daily_action_points: int = 10

    # Economy
    max_offline_hours: int = 24

    # Validation
    rate_limit_requests: int = 30
    rate_limit_window_seconds: float = 60.0
    max_changed_cells: int = 100
    money_flat_allowance: int = 50000
    congestion_radius: int = 3

    # Anomaly heuristics
    anomaly_population: int = 1000
    anomaly_early_hours: int = 1
    anomaly_money_floor: int = 10_000_000
    anomaly_starting_money: int = 10000
    anomaly_money_factor: float = 2.0
    anomaly_policy: str = "log"

    checksum_secret: str = ""

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load configuration from a YAML file.

        Keys missing from the file keep their class defaults; unknown
        keys are ignored.

        Args:
            path: Path to the YAML config file.

        Returns:
            A populated EngineConfig instance.

        Raises:
            FileNotFoundError: If the config file does not exist.
            ValueError: If a value is out of range.
        """
        path = Path(path)
        with path.open("r") as f:
            data = yaml.safe_load(f) or {}

        known = {f.name for f in fields(cls)}
        config = cls(**{key: value for key, value in data.items() if key in known})
        config.validate()
        return config

    def validate(self) -> None:
        """Reject settings the engine cannot run with.

        Raises:
            ValueError: If a size, limit or policy is invalid.
        """
        if self.grid_size <= 0:
            msg = f"grid_size must be positive, got {self.grid_size}"
            raise ValueError(msg)
        if not 0 <= self.boundary_rows <= self.grid_size:
            msg = f"boundary_rows must be within 0..{self.grid_size}"
            raise ValueError(msg)
        if self.rate_limit_window_seconds <= 0:
            msg = "rate_limit_window_seconds must be positive"
            raise ValueError(msg)
        if self.anomaly_policy not in ("log", "block"):
            msg = f"anomaly_policy must be log or block, got {self.anomaly_policy!r}"
            raise ValueError(msg)
