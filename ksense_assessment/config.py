from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .client import DEFAULT_BASE_URL

DEFAULT_LIMIT = 20


@dataclass
class Settings:
    api_key: Optional[str]
    base_url: str = DEFAULT_BASE_URL
    limit: int = DEFAULT_LIMIT
    timeout: float = 15.0
    max_retries: int = 12


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def clamp_limit(limit: int) -> int:
    return min(max(int(limit), 1), 20)


def load_settings(dotenv: bool = True) -> Settings:
    if dotenv:
        load_dotenv()
    api_key = (os.getenv("DEMOMED_API_KEY") or "").strip() or None
    base_url = (os.getenv("DEMOMED_BASE_URL") or "").strip() or DEFAULT_BASE_URL
    return Settings(
        api_key=api_key,
        base_url=base_url.rstrip("/"),
        limit=clamp_limit(_env_int("DEMOMED_LIMIT", DEFAULT_LIMIT)),
        timeout=_env_float("DEMOMED_TIMEOUT", 15.0),
        max_retries=_env_int("DEMOMED_MAX_RETRIES", 12),
    )
