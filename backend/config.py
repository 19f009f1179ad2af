"""
Runtime Configuration for PriceBot.

Provides a singleton RuntimeConfig class that allows dynamic adjustment of
provider routing and model parameters at runtime, without requiring a
service restart.

Usage:
    from config import runtime_config
    routing = runtime_config.routing
    runtime_config.update(primary_llm="groq")
"""

import json
import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any
from threading import Lock
from urllib.parse import quote_plus

from llm.context import ProviderName

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).parent


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


def _primary_default() -> str:
    value = os.environ.get("PRIMARY_LLM", "claude").strip().lower()
    if value not in ProviderName.values():
        logger.warning(f"PRIMARY_LLM={value!r} is not a known provider, using claude")
        return ProviderName.CLAUDE.value
    return value


def _build_database_url_default() -> str:
    """
    Build a PostgreSQL URL from env vars when DATABASE_URL is not explicitly set.

    Password is URL-encoded to avoid auth breakage with special characters.
    """
    explicit = os.environ.get("DATABASE_URL", "").strip()
    if explicit:
        return explicit

    user = os.environ.get("POSTGRES_USER", "pricebot").strip() or "pricebot"
    password = os.environ.get("POSTGRES_PASSWORD", "pricebot-local-dev")
    host = os.environ.get("POSTGRES_HOST", "localhost").strip() or "localhost"
    port = os.environ.get("POSTGRES_PORT", "5432").strip() or "5432"
    db = os.environ.get("POSTGRES_DB", "pricebot").strip() or "pricebot"

    safe_password = quote_plus(password)
    return f"postgresql://{user}:{safe_password}@{host}:{port}/{db}"


@dataclass(frozen=True)
class LLMRouting:
    """Immutable provider routing snapshot, read once per query."""

    primary: ProviderName
    secondary: ProviderName

    @classmethod
    def for_primary(cls, primary: ProviderName | str) -> "LLMRouting":
        primary = ProviderName(primary)
        return cls(primary=primary, secondary=primary.other())


@dataclass
class RuntimeConfig:
    """
    Singleton configuration for runtime-adjustable parameters.

    All values have defaults from environment variables, but can be
    changed at runtime via the update() method.
    """

    # Provider routing
    primary_llm: str = field(default_factory=_primary_default)

    # Claude
    claude_model: str = field(
        default_factory=lambda: os.environ.get("CLAUDE_MODEL", "claude-sonnet-4-20250514")
    )
    claude_max_tokens: int = field(default_factory=lambda: int(os.environ.get("CLAUDE_MAX_TOKENS", "10240")))

    # Groq
    groq_model: str = field(
        default_factory=lambda: os.environ.get("GROQ_MODEL", "moonshotai/kimi-k2-instruct")
    )
    groq_decision_model: str = field(
        default_factory=lambda: _first_env(
            "GROQ_DECISION_MODEL",
            "GROQ_MODEL",
            default="moonshotai/kimi-k2-instruct",
        )
    )
    groq_max_tokens: int = field(default_factory=lambda: int(os.environ.get("GROQ_MAX_TOKENS", "8192")))

    # HTTP transport
    llm_timeout: float = field(default_factory=lambda: float(os.environ.get("LLM_TIMEOUT", "45")))
    http_max_retries: int = field(default_factory=lambda: int(os.environ.get("HTTP_MAX_RETRIES", "3")))
    http_retry_backoff: float = field(default_factory=lambda: float(os.environ.get("HTTP_RETRY_BACKOFF", "1.0")))

    # Conversation continuity
    conversation_window_hours: int = field(
        default_factory=lambda: int(os.environ.get("CONVERSATION_WINDOW_HOURS", "24"))
    )

    # Data files
    system_prompt_path: str = field(
        default_factory=lambda: os.environ.get(
            "SYSTEM_PROMPT_PATH", str(BACKEND_DIR / "prompts" / "system_prompt.txt")
        )
    )
    pricelists_path: str = field(
        default_factory=lambda: os.environ.get(
            "PRICELISTS_PATH", str(BACKEND_DIR / "data" / "pdf_pricelists.json")
        )
    )

    # PostgreSQL
    database_url: str = field(default_factory=_build_database_url_default)
    database_enabled: bool = field(
        default_factory=lambda: os.environ.get("DATABASE_ENABLED", "true").lower() == "true"
    )
    database_pool_size: int = field(default_factory=lambda: int(os.environ.get("DATABASE_POOL_SIZE", "10")))

    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))

    # Admin endpoints are open when empty
    admin_key: str = field(default_factory=lambda: os.environ.get("ADMIN_KEY", ""))

    # Internal state
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)
    _update_count: int = field(default=0, repr=False)
    _routing: LLMRouting = field(default=None, repr=False, compare=False)

    # Validation ranges for numeric config values
    _VALIDATION_RANGES: Dict[str, tuple] = field(default_factory=lambda: {
        "claude_max_tokens": (64, 64000),
        "groq_max_tokens": (64, 32768),
        "llm_timeout": (1.0, 600.0),
        "http_max_retries": (1, 10),
        "http_retry_backoff": (0.0, 30.0),
        "conversation_window_hours": (1, 24 * 30),
        "database_pool_size": (1, 100),
    }, repr=False, compare=False)

    def __post_init__(self):
        self._routing = LLMRouting.for_primary(self.primary_llm)

    @property
    def routing(self) -> LLMRouting:
        """Current routing snapshot. The reference swap is atomic."""
        return self._routing

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Update configuration values at runtime.

        Args:
            **kwargs: Key-value pairs to update (e.g., primary_llm="groq")

        Returns:
            Dict with 'updated' (changed keys) and 'ignored' (unknown or invalid keys)
        """
        updated = []
        ignored = []

        with self._lock:
            for key, value in kwargs.items():
                if key.startswith("_"):
                    ignored.append(key)
                    continue

                if hasattr(self, key):
                    if key == "primary_llm":
                        value = str(value).strip().lower()
                        if value not in ProviderName.values():
                            ignored.append(key)
                            logger.warning(f"Config rejected unknown provider: {key}={value!r}")
                            continue

                    # Validate model names (alphanumeric, slashes, colons, dots, dashes only)
                    if key.endswith("_model") and isinstance(value, str) and value:
                        import re as _re
                        if not _re.match(r'^[a-zA-Z0-9._:/-]+$', value) or len(value) > 100:
                            ignored.append(key)
                            logger.warning(f"Config rejected invalid model name: {key}={value!r}")
                            continue

                    # Validate numeric ranges
                    if key in self._VALIDATION_RANGES:
                        lo, hi = self._VALIDATION_RANGES[key]
                        if not isinstance(value, (int, float)) or not (lo <= value <= hi):
                            ignored.append(key)
                            logger.warning(f"Config rejected {key}={value} (must be {lo}-{hi})")
                            continue

                    old_value = getattr(self, key)
                    setattr(self, key, value)
                    updated.append(key)
                    logger.info(f"Config updated: {key} = {value} (was {old_value})")

                    if key == "primary_llm":
                        self._routing = LLMRouting.for_primary(value)
                else:
                    ignored.append(key)
                    logger.warning(f"Config ignored unknown key: {key}")

            self._update_count += 1

        return {"updated": updated, "ignored": ignored, "update_count": self._update_count}

    def to_dict(self) -> Dict[str, Any]:
        """Export current config as dict (excludes internal fields)."""
        from dataclasses import fields as dataclass_fields

        result = {}
        for field_info in dataclass_fields(self):
            if not field_info.name.startswith("_"):
                result[field_info.name] = getattr(self, field_info.name)
        return result

    # Config persistence
    _overrides_path: Path = field(
        default_factory=lambda: Path(os.environ.get(
            "CONFIG_OVERRIDES_PATH", str(BACKEND_DIR / "data" / "config_overrides.json")
        )),
        repr=False, compare=False,
    )

    def save_overrides(self) -> None:
        """Save non-default values to persistent storage."""
        defaults = RuntimeConfig()
        overrides = {}

        # Credential/connection fields stay env-only
        skip_fields = {"admin_key", "database_url"}

        current = self.to_dict()
        default_dict = defaults.to_dict()

        for key, value in current.items():
            if key in skip_fields:
                continue
            if value != default_dict.get(key):
                overrides[key] = value

        try:
            self._overrides_path.parent.mkdir(parents=True, exist_ok=True)
            self._overrides_path.write_text(
                json.dumps(overrides, indent=2, default=str),
                encoding="utf-8",
            )
            logger.info(f"Config overrides saved: {len(overrides)} values to {self._overrides_path}")
        except OSError as e:
            logger.error(f"Failed to save config overrides: {e}")

    def load_overrides(self) -> Dict[str, Any]:
        """Load overrides from persistent storage. Env vars take precedence."""
        if not self._overrides_path.exists():
            return {}

        try:
            overrides = json.loads(self._overrides_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load config overrides: {e}")
            return {}

        if not isinstance(overrides, dict):
            return {}

        # Only apply overrides for fields that still have their default value
        # (env vars would have already changed them from default)
        defaults = RuntimeConfig()
        applied = []

        with self._lock:
            for key, value in overrides.items():
                if key.startswith("_") or not hasattr(self, key):
                    continue
                current = getattr(self, key)
                default = getattr(defaults, key)
                if current == default and value != default:
                    field_type = type(default)
                    try:
                        typed_value = field_type(value)
                    except (ValueError, TypeError):
                        logger.warning(f"Config override type mismatch: {key}={value}")
                        continue
                    if key == "primary_llm" and typed_value not in ProviderName.values():
                        logger.warning(f"Config override rejected unknown provider: {typed_value!r}")
                        continue
                    setattr(self, key, typed_value)
                    applied.append(key)

            self._routing = LLMRouting.for_primary(self.primary_llm)

        if applied:
            logger.info(f"Config overrides loaded: {', '.join(applied)}")
        return {"applied": applied, "total": len(overrides)}


# Singleton instance
runtime_config = RuntimeConfig()

# Load persisted overrides on startup
runtime_config.load_overrides()


def get_config() -> RuntimeConfig:
    """Get the singleton config instance."""
    return runtime_config
