from dataclasses import dataclass

from shipping_agent.infrastructure.platform_manager import get_parameters

# Constants that don't change
PARAMETER_PREFIX = "SHIPPING_"
DEFAULT_MODEL = "gpt-5-mini"
DEFAULT_LLM_TIMEOUT_SECONDS = 30.0
DEFAULT_LLM_MAX_ATTEMPTS = 1  # A single model call per chat request
DEFAULT_REDIS_NAMESPACE = "shipping:agent"
STORE_BACKENDS = ("memory", "redis")


@dataclass
class AgentSettings:
    """Agent configuration settings loaded from the environment."""

    # Model settings
    openai_api_key: str
    openai_model: str = DEFAULT_MODEL
    llm_timeout_seconds: float = DEFAULT_LLM_TIMEOUT_SECONDS
    llm_max_attempts: int = DEFAULT_LLM_MAX_ATTEMPTS

    # Store settings
    shipment_store: str = "memory"
    redis_url: str | None = None
    redis_namespace: str = DEFAULT_REDIS_NAMESPACE

    # Logging settings
    log_level: str = "INFO"
    logs_dir: str | None = None


def parse_origins(value: str | None) -> list[str]:
    """Split a comma separated origins list; unset means any origin."""
    if not value:
        return ["*"]
    origins = [o.strip() for o in value.split(",") if o.strip()]
    return origins or ["*"]


def load_cors_allow_origins() -> list[str]:
    """
    Read the CORS origins on their own.

    The app is created at import time, before the agent settings can be validated, so
    the origins are not part of AgentSettings.
    """
    params = get_parameters("cors_allow_origins", PARAMETER_PREFIX)
    return parse_origins(params.get("cors_allow_origins"))


def _parse_float(name: str, value: str | None, default: float) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"Configuration value is invalid: {name.upper()}") from e


def _parse_int(name: str, value: str | None, default: int) -> int:
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"Configuration value is invalid: {name.upper()}") from e


class Config:
    """Singleton configuration manager for the shipping agent."""

    _instance = None
    _settings = None

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_settings(self) -> AgentSettings:
        """Get agent settings, loading from the environment if not already cached."""
        if self._settings is None:
            self._settings = self._load_settings()
        return self._settings

    def reset(self) -> None:
        """Drop the cached settings so the next call reloads them."""
        self._settings = None

    def _load_settings(self) -> AgentSettings:
        """Load settings from the environment."""
        params = get_parameters(
            [
                "openai_api_key",
                "openai_model",
                "llm_timeout_seconds",
                "llm_max_attempts",
                "shipment_store",
                "redis_url",
                "redis_namespace",
                "log_level",
                "logs_dir",
            ],
            PARAMETER_PREFIX,
        )

        settings = AgentSettings(
            openai_api_key=params.get("openai_api_key") or "",
            openai_model=params.get("openai_model") or DEFAULT_MODEL,
            llm_timeout_seconds=_parse_float(
                "llm_timeout_seconds",
                params.get("llm_timeout_seconds"),
                DEFAULT_LLM_TIMEOUT_SECONDS,
            ),
            llm_max_attempts=_parse_int(
                "llm_max_attempts", params.get("llm_max_attempts"), DEFAULT_LLM_MAX_ATTEMPTS
            ),
            shipment_store=(params.get("shipment_store") or "memory").lower(),
            redis_url=params.get("redis_url") or None,
            redis_namespace=params.get("redis_namespace") or DEFAULT_REDIS_NAMESPACE,
            log_level=(params.get("log_level") or "INFO").upper(),
            logs_dir=params.get("logs_dir") or None,
        )

        # Validate settings
        self._validate_settings(settings)

        return settings

    def _validate_settings(self, settings: AgentSettings) -> None:
        """Validate that all required settings have valid values."""
        required_fields = ["openai_api_key", "openai_model"]

        # Redis is only needed when it backs the shipment store
        if settings.shipment_store == "redis":
            required_fields.append("redis_url")

        for name in required_fields:
            if not getattr(settings, name):
                raise ValueError(f"Configuration value is invalid: {name.upper()}")

        if settings.shipment_store not in STORE_BACKENDS:
            raise ValueError("Configuration value is invalid: SHIPMENT_STORE")
        if settings.llm_timeout_seconds <= 0:
            raise ValueError("Configuration value is invalid: LLM_TIMEOUT_SECONDS")
        if settings.llm_max_attempts < 1:
            raise ValueError("Configuration value is invalid: LLM_MAX_ATTEMPTS")


# Create singleton instance
config = Config()


# Convenience functions
def get_settings() -> AgentSettings:
    """Get agent settings from the singleton config."""
    return config.get_settings()
