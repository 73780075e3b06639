"""Application configuration and environment settings"""
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class RuleThresholds(BaseModel):
    """Fixed parameters of the five badge rules"""
    early_holder_limit: int = Field(50, ge=1, description="Holders counted before insert must be below this to be early")
    first_backer_limit: int = Field(5, ge=1, description="Highest holder rank that earns Promethean Backer")
    crossing_holder_threshold: int = Field(200, ge=1, description="Holder count that triggers Oracle of Rises")
    dip_lookback_seconds: int = Field(3600, ge=1, description="How far back the dip rule looks for a reference price")
    dip_threshold: float = Field(0.15, gt=0, lt=1, description="Fractional price drop that counts as a dip")
    genre_threshold: int = Field(8, ge=1, description="Distinct genres needed for Muse Wanderer")
    supply_share_threshold: float = Field(0.01, gt=0, le=1, description="Share of supply acquired in one buy")

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Database settings; DATABASE_URL wins over the discrete fields
    DATABASE_URL: Optional[str] = Field(None, description="Full SQLAlchemy database URL")
    DB_HOST: Optional[str] = Field(None, description="Database host")
    DB_PORT: str = Field("5432", description="Database port")
    DB_NAME: str = Field("clio", description="Database name")
    DB_USER: str = Field("clio", description="Database user")
    DB_PASSWORD: Optional[str] = Field(None, description="Database password")
    DB_SSL_MODE: str = Field("prefer", description="PostgreSQL sslmode")
    SQLITE_PATH: str = Field("clio_badges.db", description="SQLite file used when no server is configured")

    # Rule settings
    EARLY_HOLDER_LIMIT: int = 50
    FIRST_BACKER_LIMIT: int = 5
    CROSSING_HOLDER_THRESHOLD: int = 200
    DIP_LOOKBACK_SECONDS: int = 3600
    DIP_THRESHOLD: float = 0.15
    GENRE_THRESHOLD: int = 8
    SUPPLY_SHARE_THRESHOLD: float = 0.01

    # Input/Output directories with defaults
    INPUT_DIR: str = Field("/input", description="Directory containing purchase event files")
    OUTPUT_DIR: str = Field("/output", description="Directory for output files")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the replay CLI")

    @property
    def thresholds(self) -> RuleThresholds:
        """Get rule thresholds as a separate model"""
        return RuleThresholds(
            early_holder_limit=self.EARLY_HOLDER_LIMIT,
            first_backer_limit=self.FIRST_BACKER_LIMIT,
            crossing_holder_threshold=self.CROSSING_HOLDER_THRESHOLD,
            dip_lookback_seconds=self.DIP_LOOKBACK_SECONDS,
            dip_threshold=self.DIP_THRESHOLD,
            genre_threshold=self.GENRE_THRESHOLD,
            supply_share_threshold=self.SUPPLY_SHARE_THRESHOLD
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

settings = Settings()
