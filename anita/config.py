import os
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")


def _read_openai_key_from_file() -> str | None:
    path = os.getenv("OPENAI_API_KEY_FILE", "/run/secrets/openai_api_key")
    try:
        if path and os.path.isfile(path):
            with open(path, "r", encoding="utf-8") as f:
                return f.read().strip() or None
    except OSError:
        pass
    return None


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


_ENV_OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_API_KEY = (
    _ENV_OPENAI_API_KEY.strip() if _ENV_OPENAI_API_KEY else None
) or _read_openai_key_from_file()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Only accept explicit numeric '1' for stub mode (avoid accidental 'True' string from host env)
DEV_ALLOW_NO_LLM = os.getenv("DEV_ALLOW_NO_LLM", "0") == "1"

# The description enhancer sits on the request path; never wait longer than 10s for it.
CHAT_LLM_TIMEOUT_S = _env_float("CHAT_LLM_TIMEOUT_S", 30.0)
DESCRIPTION_LLM_TIMEOUT_S = min(_env_float("DESCRIPTION_LLM_TIMEOUT_S", 8.0), 10.0)

"""CORS allowlist. Read from env and split on commas; strip whitespace and stray quotes."""
_cors_env = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
ALLOW_ORIGINS = [
    o.strip().strip('"').strip("'")
    for o in (_cors_env.split(",") if _cors_env else [])
    if o and o.strip().strip('"').strip("'")
]


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./data/anita.db"
    APP_ENV: str = os.getenv("APP_ENV", os.getenv("ENV", "dev"))  # dev | prod | test
    LOG_LEVEL: str = "INFO"
    # LLM provider (OpenAI-compatible chat completions)
    OPENAI_BASE_URL: str = OPENAI_BASE_URL
    OPENAI_API_KEY: str | None = OPENAI_API_KEY
    OPENAI_MODEL: str = OPENAI_MODEL
    DEV_ALLOW_NO_LLM: bool = DEV_ALLOW_NO_LLM
    CHAT_LLM_TIMEOUT_S: float = CHAT_LLM_TIMEOUT_S
    DESCRIPTION_LLM_TIMEOUT_S: float = DESCRIPTION_LLM_TIMEOUT_S
    DESCRIPTION_MAX_LENGTH: int = 50
    # Admission guard
    ADMISSION_SWEEP_INTERVAL_S: int = 300
    ADMISSION_SWEEP_DISABLE: bool = _env_bool("ADMISSION_SWEEP_DISABLE", False)
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
