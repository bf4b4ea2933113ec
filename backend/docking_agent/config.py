"""Application settings and configuration helpers."""
from __future__ import annotations

import os
from functools import lru_cache
from typing import List
from dotenv import load_dotenv, find_dotenv


class Settings:
    """Runtime configuration loaded from environment variables.

    Defaults are suitable for local development. Production should set
    explicit values via environment variables and Secret Manager.
    """

    APP_NAME: str = "Docking Analysis Agent API"
    API_PREFIX: str = "/api"

    # CORS
    CORS_ORIGINS: List[str]

    # GCP
    GCP_PROJECT: str
    FIRESTORE_DATABASE_ID: str

    # LLM
    GEMINI_API_KEY: str
    GEMINI_MODEL: str
    OPENROUTER_API_KEY: str
    OPENROUTER_MODEL: str
    LLM_PROMPT_VERSION: str
    LLM_TIMEOUT_SEC: float
    LLM_MAX_OUTPUT_TOKENS: int

    # Agent
    AGENT_ENABLED: bool
    AGENT_POLL_INTERVAL_SEC: float

    # Ledger anchoring (disabled when LEDGER_ANCHOR_URL is empty)
    LEDGER_ANCHOR_URL: str
    LEDGER_API_KEY: str
    LEDGER_NETWORK: str
    LEDGER_TIMEOUT_SEC: float

    def __init__(self) -> None:
        # Load .env once (supports parent directories)
        load_dotenv(find_dotenv(), override=False)
        self.CORS_ORIGINS = self._get_list("CORS_ORIGINS", default="*")

        self.GCP_PROJECT = os.getenv("GCP_PROJECT", os.getenv("GOOGLE_CLOUD_PROJECT", ""))
        self.FIRESTORE_DATABASE_ID = os.getenv("FIRESTORE_DATABASE_ID", "(default)")

        # LLM
        self.GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
        self.GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite")
        self.OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
        self.OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "meta-llama/llama-3.3-70b-instruct:free")
        self.LLM_PROMPT_VERSION = os.getenv("LLM_PROMPT_VERSION", "v1")
        self.LLM_TIMEOUT_SEC = float(os.getenv("LLM_TIMEOUT_SEC", "60"))
        self.LLM_MAX_OUTPUT_TOKENS = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "4096"))

        # Agent polling
        self.AGENT_ENABLED = os.getenv("AGENT_ENABLED", "true").lower() == "true"
        self.AGENT_POLL_INTERVAL_SEC = float(os.getenv("AGENT_POLL_INTERVAL_SEC", "5"))

        # Ledger
        self.LEDGER_ANCHOR_URL = os.getenv("LEDGER_ANCHOR_URL", "")  # e.g., https://<anchor-host>/v1/anchors
        self.LEDGER_API_KEY = os.getenv("LEDGER_API_KEY", "")
        self.LEDGER_NETWORK = os.getenv("LEDGER_NETWORK", "devnet")
        self.LEDGER_TIMEOUT_SEC = float(os.getenv("LEDGER_TIMEOUT_SEC", "15"))

    @staticmethod
    def _get_list(name: str, default: str = "") -> List[str]:
        raw = os.getenv(name, default)
        return [item.strip() for item in raw.split(",") if item.strip()] or ["*"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
