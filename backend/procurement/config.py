# config.py
# Settings loaded from the environment / .env

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    generation_timeout: float = 60.0
    data_dir: Path = BASE_DIR / "data"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    smtp_from: str = '"RFP System" <noreply@example.com>'
    log_level: str = "INFO"
    cors_origins: tuple = ("*",)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_pass)


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def load_settings() -> Settings:
    load_dotenv()
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        openai_api_key=_optional("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip(),
        generation_timeout=float(os.getenv("GENERATION_TIMEOUT", "60")),
        data_dir=Path(os.getenv("DATA_DIR", str(BASE_DIR / "data"))).expanduser(),
        smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com").strip(),
        smtp_port=int(os.getenv("SMTP_PORT", "587")),
        smtp_user=_optional("SMTP_USER"),
        smtp_pass=_optional("SMTP_PASS"),
        smtp_from=os.getenv("SMTP_FROM", '"RFP System" <noreply@example.com>'),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
    )
