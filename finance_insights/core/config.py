from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "FinanceInsights"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost:8000",
        ]
    )

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_TRANSACTIONS_TABLE: str = Field(default="finance-insights-transactions")
    DYNAMO_CATEGORIES_TABLE: str = Field(default="finance-insights-categories")
    DYNAMO_GOALS_TABLE: str = Field(default="finance-insights-goals")

    # Rendering
    CURRENCY_SYMBOL: str = Field(default="R$")

    # Analytics thresholds
    BUDGET_LOWER_RATIO: float = 0.8  # below this share of target -> "under"
    BUDGET_UPPER_RATIO: float = 1.2  # above this share of target -> "over"
    ANOMALY_THRESHOLD: float = 2.0  # standard deviations above the mean
    ANOMALY_WINDOW: int = 100
    ANOMALY_MIN_SAMPLES: int = 10

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()
