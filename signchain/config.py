from __future__ import annotations
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Bundled TTF with Turkish glyph coverage (ş, ğ, ı, İ)
BUNDLED_FONT_PATH = str(Path(__file__).resolve().parent / "fonts" / "DejaVuSans.ttf")

class Settings(BaseSettings):
    # App
    app_name: str = Field(default="SignChain Backend")
    environment: str = Field(default=os.getenv("ENVIRONMENT", "dev"))
    log_level: str = "INFO"
    cors_origins: str = "*"
    default_language: str = "tr"
    git_sha: str = ""

    # live | simulated | auto (live wherever credentials are present)
    backend_mode: str = "auto"

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.2
    openai_max_tokens: int = 4000

    # Pinata / IPFS
    pinata_jwt: Optional[str] = None
    pinata_endpoint: str = "https://api.pinata.cloud/pinning/pinFileToIPFS"
    pinata_timeout_seconds: float = 30.0
    upload_max_attempts: int = 3
    upload_backoff_seconds: float = 0.5

    # Algorand. Unset means no node: auto mode simulates the ledger and live
    # mode refuses to start. Public testnet: https://testnet-api.algonode.cloud
    algod_server: Optional[str] = None
    algod_port: Optional[int] = 443
    algod_token: str = ""
    algod_wait_rounds: int = 4

    # PDF
    pdf_font_path: str = BUNDLED_FONT_PATH
    pdf_default_title: str = "Sözleşme"

    # Limits
    max_input_chars: int = 200_000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
