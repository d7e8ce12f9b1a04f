from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "SmartFinanceTracker"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_TRANSACTIONS_TABLE: str = Field(default="smart-finance-transactions")
    DYNAMO_BILLS_TABLE: str = Field(default="smart-finance-bills")
    DYNAMO_NOTIFICATIONS_TABLE: str = Field(default="smart-finance-notifications")

    # JWT (tokens are issued by the identity provider, we only decode them)
    JWT_SECRET_KEY: str = Field(default="change-me")
    JWT_ALGORITHM: str = "HS256"

    # Bill notifications
    BILL_NOTIFICATION_WINDOW_HOURS: int = 12
    BILL_CHECK_INTERVAL_HOURS: int = 12
    SCHEDULER_ENABLED: bool = True

    # Insights
    INSIGHTS_TRANSACTION_LIMIT: int = 50

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
