from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_ENV_FILE = _PROJECT_ROOT / '.env'
if _ENV_FILE.exists():
    load_dotenv(_ENV_FILE)

_TRUTHY = {'1', 'true', 'yes', 'on'}


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name, '').strip()
    return float(raw) if raw else None


@dataclass(slots=True)
class Settings:
    base_url: str = field(default_factory=lambda: os.getenv('CCS_BASE_URL', 'http://localhost/api'))
    username: str = field(default_factory=lambda: os.getenv('CCS_USERNAME', ''))
    password: str = field(default_factory=lambda: os.getenv('CCS_PASSWORD', ''))
    contest_id: str = field(default_factory=lambda: os.getenv('CCS_CONTEST_ID', ''))
    insecure: bool = field(default_factory=lambda: os.getenv('CCS_INSECURE', '').strip().lower() in _TRUTHY)
    timeout: float | None = field(default_factory=lambda: _optional_float('CCS_TIMEOUT'))

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip('/') + '/'

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


settings = Settings()
