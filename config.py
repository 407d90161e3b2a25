import os
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from dotenv import load_dotenv

load_dotenv()

# Seconds per supported loan time unit
TIME_UNITS = {
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
}


@dataclass
class Settings:
    # Lending policy
    # Defaults are 5 seconds and $2 per second, stand-ins for days.
    # Set LOAN_TIME_UNIT=days for real loans.
    loan_period: float = float(os.getenv("LOAN_PERIOD", "5"))
    loan_time_unit: str = os.getenv("LOAN_TIME_UNIT", "seconds").lower()
    fine_rate: Decimal = Decimal(os.getenv("FINE_RATE", "2.00"))  # per time unit

    # Librarian on duty
    librarian_name: str = os.getenv("LIBRARIAN_NAME", "Admin")
    librarian_id: str = os.getenv("LIBRARIAN_ID", "L001")

    # Application
    app_name: str = os.getenv("APP_NAME", "Library Management System")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING").upper()

    def __post_init__(self) -> None:
        self.loan_time_unit = self.loan_time_unit.lower()
        try:
            self.fine_rate = Decimal(str(self.fine_rate))
        except InvalidOperation as exc:
            raise ValueError(f"Invalid fine rate '{self.fine_rate}'.") from exc
        if self.loan_time_unit not in TIME_UNITS:
            raise ValueError(
                f"Unknown loan time unit '{self.loan_time_unit}'. Use one of: {', '.join(TIME_UNITS)}"
            )
        if self.loan_period < 0:
            raise ValueError("Loan period cannot be negative.")
        if self.fine_rate < 0:
            raise ValueError("Fine rate cannot be negative.")

    @property
    def unit_seconds(self) -> int:
        return TIME_UNITS[self.loan_time_unit]

    @property
    def loan_duration(self) -> timedelta:
        """Length of one loan as a timedelta."""
        return timedelta(seconds=self.loan_period * self.unit_seconds)

    def describe_policy(self) -> dict:
        return {
            "loan_period": self.loan_period,
            "loan_time_unit": self.loan_time_unit,
            "fine_rate": str(self.fine_rate),
            "librarian": f"{self.librarian_name} ({self.librarian_id})",
        }


settings = Settings()
