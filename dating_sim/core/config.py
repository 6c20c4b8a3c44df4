from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from typing import Optional

load_dotenv()

class Settings(BaseSettings):
    # Storage: unset means the in-memory store is used
    DATABASE_URL: Optional[str] = None

    # Conversation gateway
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    CONVERSATION_TIMEOUT_SECONDS: float = 30.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "app.log"

    # Platform adapter (Render/Railway inject PORT)
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    STATIC_DIR: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
