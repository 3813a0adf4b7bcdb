import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

TRUE_VALUES = {'true', '1', 'yes', 'on'}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value.strip())
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: {value!r}")
        return default


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip()


@dataclass
class Settings:
    """Runtime configuration for the VIN resolver, read from the environment or a .env file."""
    decoder_provider: str = 'nhtsa'
    decoder_url: Optional[str] = None
    decoder_key: Optional[str] = None
    http_timeout_ms: int = 6000

    enrichment_enabled: bool = False
    summaries_enabled: bool = False
    ai_provider: str = 'openai'
    openai_api_key: Optional[str] = None
    openai_model: str = 'gpt-4o-mini'
    openai_base_url: str = 'https://api.openai.com/v1'
    gemini_api_key: Optional[str] = None
    gemini_model: str = 'gemini-2.5-flash'
    enrichment_timeout_ms: int = 6000

    cache_ttl_seconds: int = 86400
    cache_max_entries: int = 1024

    cors_origins: List[str] = field(default_factory=lambda: ['*'])
    log_level: str = 'INFO'

    @property
    def ai_api_key(self) -> Optional[str]:
        return self.gemini_api_key if self.ai_provider == 'gemini' else self.openai_api_key

    @property
    def ai_model(self) -> str:
        return self.gemini_model if self.ai_provider == 'gemini' else self.openai_model

    @classmethod
    def from_env(cls) -> 'Settings':
        """
        Build settings from environment variables.

        A .env file in the working directory is loaded first; variables already
        present in the environment take precedence over it.
        """
        load_dotenv()

        http_timeout_ms = _env_int('HTTP_TIMEOUT_MS', 6000)
        origins = _env_str('CORS_ORIGINS', '*')

        return cls(
            decoder_provider=(_env_str('VIN_DECODER_PROVIDER', 'nhtsa') or 'nhtsa').lower(),
            decoder_url=_env_str('VIN_DECODER_URL'),
            decoder_key=_env_str('VIN_DECODER_KEY'),
            http_timeout_ms=http_timeout_ms,
            enrichment_enabled=_env_bool('AI_ENRICHMENT_ENABLED'),
            summaries_enabled=_env_bool('AI_SUMMARY_ENABLED'),
            ai_provider=(_env_str('AI_PROVIDER', 'openai') or 'openai').lower(),
            openai_api_key=_env_str('OPENAI_API_KEY'),
            openai_model=_env_str('OPENAI_MODEL', 'gpt-4o-mini'),
            openai_base_url=_env_str('OPENAI_BASE_URL', 'https://api.openai.com/v1'),
            gemini_api_key=_env_str('GEMINI_API_KEY'),
            gemini_model=_env_str('GEMINI_MODEL', 'gemini-2.5-flash'),
            enrichment_timeout_ms=_env_int('ENRICHMENT_TIMEOUT_MS', http_timeout_ms),
            cache_ttl_seconds=_env_int('VIN_CACHE_TTL_SECONDS', 86400),
            cache_max_entries=_env_int('VIN_CACHE_MAX_ENTRIES', 1024),
            cors_origins=[o.strip() for o in origins.split(',') if o.strip()],
            log_level=(_env_str('LOG_LEVEL', 'INFO') or 'INFO').upper(),
        )
