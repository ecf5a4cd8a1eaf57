"""
Centralised application settings loaded from environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseSettings):
    # ── Database ─────────────────────────────────────────
    database_url: str = "sqlite:///./data/banking.db"
    query_timeout_ms: int = 10_000

    # ── LLM ──────────────────────────────────────────────
    llm_provider: str = "mock"  # mock | openai | anthropic
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    llm_timeout_seconds: float = 5.0

    # ── Pipeline ─────────────────────────────────────────
    sql_row_limit: int = 200
    allow_mutations: bool | None = None  # None -> banking model decides
    schema_cache_ttl_seconds: float = 0.0

    # ── App ──────────────────────────────────────────────
    api_port: int = 8000
    streamlit_port: int = 8501
    api_base_url: str = "http://localhost:8000"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
