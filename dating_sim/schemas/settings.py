from typing import Literal, Optional
from pydantic import ConfigDict, Field, field_validator

from .base import CamelModel

Speed = Literal["slow", "normal", "fast", "instant"]

ALLOWED_AI_MODELS = (
    "deepseek/deepseek-chat-v3-0324:free",
    "deepseek/deepseek-r1-0528:free",
    "deepseek/deepseek-r1:free",
    "google/gemini-2.0-flash-exp:free",
    "deepseek/deepseek-chat:free",
    "google/gemma-3-27b-it:free",
    "mistralai/mistral-nemo:free",
    "meta-llama/llama-4-maverick:free",
    "mistralai/mistral-7b-instruct:free",
)

DEFAULT_AI_MODEL = ALLOWED_AI_MODELS[0]


def _check_ai_model(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in ALLOWED_AI_MODELS:
        raise ValueError(f"Unsupported AI model '{value}'. Choose one of: {', '.join(ALLOWED_AI_MODELS)}")
    return value


class GameSettings(CamelModel):
    """
    A complete, immutable set of player settings.

    Unknown fields are rejected so typos in a client payload surface as
    validation errors instead of being silently stored.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    master_volume: int = Field(default=75, ge=0, le=100)
    sfx_volume: int = Field(default=50, ge=0, le=100)
    music_volume: int = Field(default=25, ge=0, le=100)
    animation_speed: Speed = "normal"
    typing_speed: Speed = "normal"
    particle_effects: bool = True
    portal_glow: bool = True
    nsfw_content: bool = False
    autosave_frequency: int = Field(default=5, ge=0, description="Minutes between autosaves, 0 disables.")
    openrouter_api_key: str = ""
    ai_model: str = DEFAULT_AI_MODEL

    @field_validator("ai_model")
    @classmethod
    def validate_ai_model(cls, v):
        return _check_ai_model(v)


class SettingsUpdate(CamelModel):
    """Partial settings: only the fields that are set are applied."""
    model_config = ConfigDict(extra="forbid")

    master_volume: Optional[int] = Field(default=None, ge=0, le=100)
    sfx_volume: Optional[int] = Field(default=None, ge=0, le=100)
    music_volume: Optional[int] = Field(default=None, ge=0, le=100)
    animation_speed: Optional[Speed] = None
    typing_speed: Optional[Speed] = None
    particle_effects: Optional[bool] = None
    portal_glow: Optional[bool] = None
    nsfw_content: Optional[bool] = None
    autosave_frequency: Optional[int] = Field(default=None, ge=0)
    openrouter_api_key: Optional[str] = None
    ai_model: Optional[str] = None

    @field_validator("ai_model")
    @classmethod
    def validate_ai_model(cls, v):
        return _check_ai_model(v)
