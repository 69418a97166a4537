# app/config.py
from typing import List, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App
    APP_ENV: Literal["dev", "prod", "staging"] = "dev"

    # Amadeus
    AMADEUS_CLIENT_ID: str = ""
    AMADEUS_CLIENT_SECRET: str = ""
    AMADEUS_ENV: str = "test"  # or "production"

    # Search defaults
    DEFAULT_CURRENCY: str = "CAD"
    FALLBACK_HUBS: str = "CDG,ATH,FRA,IST,AMS,MUC,ZRH,LHR"
    MAX_HUBS: int = 8
    MAX_DEPART_DAYS: int = 31
    BASELINE_ALIGNMENT: Literal["destination_legs", "full_trip"] = "destination_legs"

    # Outbound HTTP
    HTTP_TIMEOUT_MS: int = 12000
    HTTP_MAX_RETRIES: int = 2

    # Token lifecycle
    TOKEN_SAFETY_MARGIN_SECONDS: int = 30
    TOKEN_DEFAULT_TTL_SECONDS: int = 1700

    # Ingress bearer key; empty disables the check
    BEARER_KEY: str = ""

    # read .env and ignore any extra keys so this doesn't break again
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def amadeus_host(self) -> str:
        if self.AMADEUS_ENV == "production":
            return "https://api.amadeus.com"
        return "https://test.api.amadeus.com"

    @property
    def fallback_hub_list(self) -> List[str]:
        return [h.strip().upper() for h in self.FALLBACK_HUBS.split(",") if h.strip()]

    @property
    def has_credentials(self) -> bool:
        return bool(self.AMADEUS_CLIENT_ID and self.AMADEUS_CLIENT_SECRET)

settings = Settings()
