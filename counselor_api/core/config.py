# counselor_api/core/config.py
import os
from typing import List, Optional

from pydantic_settings import BaseSettings

DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data")


class Settings(BaseSettings):
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    EMAIL_VERIFICATION_EXPIRE_HOURS: int = 24

    DATABASE_URL: str

    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_URL: str = f"redis://{REDIS_HOST}:{REDIS_PORT}"

    CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    ALLOWED_HOSTS: List[str] = ["localhost", "127.0.0.1", "backend", "nginx"]
    WEB_APP_URL: str = "http://localhost:5173"

    GEMINI_API_KEY: Optional[str] = None
    GEMINI_API_KEY_FILE: str = "secrets/Google-ai-studio-gemini-key.txt"
    GENERATION_MODEL: str = "gemini-2.0-flash"
    GENERATION_TIMEOUT_SECONDS: float = 30.0
    MAX_CLARIFYING_QUESTIONS: int = 3
    RETRIEVAL_TOP_K: int = 3

    SCRIPTURE_CORPUS_PATH: str = os.path.join(DATA_DIR, "scripture_verses.json")
    SAFETY_KEYWORDS_PATH: str = os.path.join(DATA_DIR, "safety_keywords.json")

    SESSION_LOCK_BACKEND: str = "memory"
    SESSION_LOCK_TIMEOUT_SECONDS: float = 60.0

    CHAT_RATE_LIMIT_TIMES: int = 10
    CHAT_RATE_LIMIT_SECONDS: int = 60
    SHARE_RATE_LIMIT_TIMES: int = 5
    SHARE_RATE_LIMIT_SECONDS: int = 60

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        extra = "allow"


settings = Settings()


def load_gemini_api_key() -> str:
    """
    Returns the Gemini API key from the environment, or from the secrets file.
    """
    if settings.GEMINI_API_KEY:
        return settings.GEMINI_API_KEY
    secrets_path = settings.GEMINI_API_KEY_FILE
    try:
        with open(secrets_path, "r") as file:
            return file.read().strip()
    except FileNotFoundError:
        raise RuntimeError(f"API key file not found at {secrets_path}. Please check the file path.")
    except Exception as e:
        raise RuntimeError(f"Error reading API key file: {e}")
