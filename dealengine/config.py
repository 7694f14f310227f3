"""Configuration settings for the deal scoring engine."""

from datetime import date
from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Paths
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = base_dir / "data"
    db_path: Path = data_dir / "dealengine.db"

    # Weight recalibration
    min_training_samples: int = 50
    recalibration_timeout_seconds: float = 300.0

    # SBA 7(a) program rules
    manufacturing_waiver_expiry: date = date(2026, 9, 30)

    # Default loan assumptions (used when a request omits a field)
    default_interest_rate: float = 10.25  # Prime + 2.75%
    default_loan_term_years: int = 10
    default_packaging_fee: float = 3500.0
    default_closing_cost_pct: float = 3.0
    default_seller_note_rate: float = 6.0
    default_seller_note_term_years: int = 5
    default_seller_note_standby_months: int = 24

    # Deal-derived scenario assumptions
    default_equity_injection_pct: float = 10.0
    default_working_capital_pct: float = 15.0  # of revenue
    default_ebitda_multiple: float = 4.0  # purchase price when no asking price
    default_top_customer_pct: float = 20.0

    # Database URL
    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "DEALENGINE_"


settings = Settings()

# Ensure data directory exists
settings.data_dir.mkdir(parents=True, exist_ok=True)
