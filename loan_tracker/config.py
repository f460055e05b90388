"""Configuration management for loan-tracker."""

from dataclasses import dataclass, field
from pathlib import Path

from loan_tracker.calculations.status import DEFAULT_GRACE_PERIOD_DAYS
from loan_tracker.exceptions import ConfigurationError


@dataclass
class CalculationConfig:
    """Rules that drive status resolution and balance reporting."""

    grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS
    mark_paid_on_payment: bool = True  # any new payment marks the loan paid
    resolve_status_on_create: bool = False
    clamp_negative_balance: bool = False
    upcoming_horizon_days: int = 7

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if any value is out of range."""
        if self.grace_period_days < 0:
            raise ConfigurationError(
                f"grace_period_days must be >= 0, got {self.grace_period_days}"
            )
        if self.upcoming_horizon_days < 0:
            raise ConfigurationError(
                f"upcoming_horizon_days must be >= 0, got {self.upcoming_horizon_days}"
            )


@dataclass
class StorageConfig:
    """Where the portfolio snapshot is persisted."""

    data_file: Path = field(default_factory=lambda: Path("data/portfolio.json"))
    pretty_json: bool = False


@dataclass
class LoanTrackerConfig:
    """Main configuration for loan-tracker."""

    calculation: CalculationConfig = field(default_factory=CalculationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    seed: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "LoanTrackerConfig":
        """Create config from environment variables."""
        import os

        def _flag(name: str, default: str) -> bool:
            return os.getenv(name, default).lower() == "true"

        try:
            calculation = CalculationConfig(
                grace_period_days=int(
                    os.getenv("GRACE_PERIOD_DAYS", str(DEFAULT_GRACE_PERIOD_DAYS))
                ),
                mark_paid_on_payment=_flag("MARK_PAID_ON_PAYMENT", "true"),
                resolve_status_on_create=_flag("RESOLVE_STATUS_ON_CREATE", "false"),
                clamp_negative_balance=_flag("CLAMP_NEGATIVE_BALANCE", "false"),
                upcoming_horizon_days=int(os.getenv("UPCOMING_HORIZON_DAYS", "7")),
            )
            seed = int(os.getenv("SEED")) if os.getenv("SEED") else None
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric environment value: {exc}") from exc

        calculation.validate()

        storage = StorageConfig(
            data_file=Path(os.getenv("DATA_FILE", "data/portfolio.json")),
            pretty_json=_flag("PRETTY_JSON", "false"),
        )

        return cls(
            calculation=calculation,
            storage=storage,
            seed=seed,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
