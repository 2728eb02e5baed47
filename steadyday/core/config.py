from typing import Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator, model_validator
from urllib.parse import quote_plus
from enum import Enum

class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class RateLimitPolicy(BaseModel):
    """Fixed-window quota for one endpoint family"""
    window_seconds: float = Field(default=60.0, gt=0)
    max_requests: int = Field(default=20, ge=1)


# Per endpoint family quotas (requests per minute)
DEFAULT_RATE_LIMIT_POLICIES: Dict[str, RateLimitPolicy] = {
    "dump": RateLimitPolicy(max_requests=10),         # AI calls
    "tasks": RateLimitPolicy(max_requests=60),        # frequent CRUD
    "categories": RateLimitPolicy(max_requests=30),
    "ai": RateLimitPolicy(max_requests=10),
    "insights": RateLimitPolicy(max_requests=15),
    "templates": RateLimitPolicy(max_requests=30),
    "priorities": RateLimitPolicy(max_requests=20),   # questionnaire based
    "suggestions": RateLimitPolicy(max_requests=10),
    "reminders": RateLimitPolicy(max_requests=30),    # polling + actions
}


class Settings(BaseSettings):
    # Environment Configuration
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Project Information
    PROJECT_NAME: str = "SteadyDay Reminders"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"

    # Server settings
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8085

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "steadyday"
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: str = "steadyday"
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    # Timezone used for "local" wall-clock computations (snooze targets)
    DEFAULT_TIMEZONE: str = "UTC"

    # Logging / observability
    LOG_LEVEL: str = "INFO"
    METRICS_ENABLED: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Rate limiting
    RATE_LIMIT_POLICIES: Dict[str, RateLimitPolicy] = Field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMIT_POLICIES)
    )
    RATE_LIMIT_MAX_BUCKETS: int = 10_000
    RATE_LIMIT_EVICTION_HEADROOM: int = 1_000
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: float = 60.0
    RATE_LIMIT_FAIL_CLOSED: bool = False

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Optional[str]) -> str:
        if v is None or str(v).strip() == "":
            return "INFO"
        return str(v).strip().upper()

    @model_validator(mode="after")
    def _finalize_and_validate(self) -> "Settings":
        # Derive SQLALCHEMY_DATABASE_URI if not provided
        if not self.SQLALCHEMY_DATABASE_URI:
            safe_user = quote_plus(self.POSTGRES_USER)
            if self.POSTGRES_PASSWORD:
                safe_password = quote_plus(self.POSTGRES_PASSWORD)
                self.SQLALCHEMY_DATABASE_URI = (
                    f"postgresql://{safe_user}:{safe_password}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
                )
            else:
                self.SQLALCHEMY_DATABASE_URI = (
                    f"postgresql://{safe_user}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
                )

        if self.RATE_LIMIT_EVICTION_HEADROOM >= self.RATE_LIMIT_MAX_BUCKETS:
            raise ValueError("RATE_LIMIT_EVICTION_HEADROOM must be smaller than RATE_LIMIT_MAX_BUCKETS")

        # Every deployment needs the quota the reminder endpoints depend on
        if "reminders" not in self.RATE_LIMIT_POLICIES:
            self.RATE_LIMIT_POLICIES["reminders"] = DEFAULT_RATE_LIMIT_POLICIES["reminders"]
        return self

    # Environment-specific properties
    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    @property
    def is_staging(self) -> bool:
        return self.ENVIRONMENT == Environment.STAGING

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra='ignore')

settings = Settings()
