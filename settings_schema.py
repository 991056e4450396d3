import os
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

DEFAULT_API_URL = "http://localhost:5000/api"


def default_api_url() -> str:
    return os.environ.get("FITDASH_API_URL", DEFAULT_API_URL)


class SettingsSchema(BaseModel):
    api_url: str = Field(default_factory=default_api_url, min_length=1)
    theme: Literal["light", "dark", "oled"] = "light"
    weight_unit: Literal["kg", "lbs"] = "kg"
    chart_period: Literal[7, 30, 90] = 30
    request_timeout: float = Field(default=10.0, gt=0)
    recent_limit: int = Field(default=5, ge=1, le=50)


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))


def load_settings(data: dict) -> SettingsSchema:
    """Return validated settings, ignoring keys that are not settings."""
    known = {k: v for k, v in data.items() if k in SettingsSchema.model_fields}
    try:
        return SettingsSchema(**known)
    except ValidationError as e:
        raise ValueError(str(e))
