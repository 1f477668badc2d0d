# docfill/config.py
from __future__ import annotations
import os, tempfile
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
from .errors import ConfigError


class Settings(BaseModel):
    soffice: Optional[str] = None          # overrides the per-platform primary binary
    convert_timeout: float = Field(default=120, gt=0)
    tmp_dir: str = Field(default_factory=tempfile.gettempdir)
    log_level: str = "INFO"
    log_file: Optional[str] = None


def get_settings() -> Settings:
    load_dotenv()
    env = {
        "soffice": os.getenv("DOCFILL_SOFFICE"),
        "convert_timeout": os.getenv("DOCFILL_CONVERT_TIMEOUT"),
        "tmp_dir": os.getenv("DOCFILL_TMP_DIR"),
        "log_level": os.getenv("DOCFILL_LOG_LEVEL"),
        "log_file": os.getenv("DOCFILL_LOG_FILE"),
    }
    # unset variables fall back to the model defaults
    try:
        return Settings.model_validate({k: v for k, v in env.items() if v})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
