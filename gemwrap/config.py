"""Environment-driven configuration for gemwrap."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv
from pydantic import ValidationError

from .core import AppConfig, ConfigurationError, GeminiConfig
from .core.models import DEFAULT_MODEL

TRUTHY = frozenset({"1", "true", "t", "yes", "y", "on"})
FALSY = frozenset({"0", "false", "f", "no", "n", "off"})

PLACEHOLDER_API_KEYS = frozenset({
    "your_gemini_api_key_here",
    "your-api-key",
    "changeme",
})

# GeminiConfig field -> environment variable.
ENV_KEYS: Dict[str, str] = {
    "api_key": "GEMINI_API_KEY",
    "model": "GEMINI_MODEL",
    "max_tokens": "GEMINI_MAX_TOKENS",
    "timeout_ms": "GEMINI_TIMEOUT_MS",
    "rate_limit_per_minute": "GEMINI_RATE_LIMIT",
    "temperature": "GEMINI_TEMPERATURE",
    "top_p": "GEMINI_TOP_P",
    "debug": "GEMINI_DEBUG",
}

# Generation defaults tuned per model. Unknown models use the flash entry.
MODEL_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "gemini-2.0-flash-001": {"max_tokens": 8192, "temperature": 0.7, "top_p": 0.8},
    "gemini-1.5-pro": {"max_tokens": 32768, "temperature": 0.5, "top_p": 0.9},
}


def _to_bool(raw: str) -> bool:
    value = raw.lower()
    if value in TRUTHY:
        return True
    if value in FALSY:
        return False
    raise ValueError(raw)


# field -> (converter, type name used in error messages)
_CONVERTERS: Dict[str, Tuple[Callable[[str], Any], str]] = {
    "max_tokens": (int, "int"),
    "timeout_ms": (int, "int"),
    "rate_limit_per_minute": (int, "int"),
    "temperature": (float, "float"),
    "top_p": (float, "float"),
}


def get_model_defaults(model: str) -> Dict[str, Any]:
    """Default ``max_tokens``, ``temperature`` and ``top_p`` for ``model``."""

    name = model.strip()
    if name.startswith("models/"):
        name = name[len("models/"):]
    return dict(MODEL_DEFAULTS.get(name, MODEL_DEFAULTS[DEFAULT_MODEL]))


def _read(env: Mapping[str, str], key: str) -> Optional[str]:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _convert(env: Mapping[str, str], key: str, converter: Callable[[str], Any], type_name: str) -> Any:
    raw = _read(env, key)
    if raw is None:
        return None
    try:
        return converter(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{key} must be a valid {type_name}, got {raw!r}",
            config_key=key,
            expected_type=type_name,
            provided_value=raw,
        ) from exc


def build_gemini_config(**values: Any) -> GeminiConfig:
    """Validate ``values`` into a :class:`GeminiConfig`, raising ConfigurationError on failure."""

    try:
        return GeminiConfig(**values)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else None
        raise ConfigurationError(
            f"Gemini configuration errors:\n{exc}",
            config_key=ENV_KEYS.get(field, field) if field else None,
            provided_value=values.get(field) if field else None,
            cause=exc,
        ) from exc


def gemini_config_from_env(env: Mapping[str, str]) -> GeminiConfig:
    """Build a :class:`GeminiConfig` from an environment mapping.

    Unset or blank variables fall back to the defaults for the selected model
    (see :data:`MODEL_DEFAULTS`). ``GEMINI_DEBUG`` takes precedence over the
    generic ``DEBUG`` flag.
    """

    api_key = _read(env, ENV_KEYS["api_key"])
    if api_key is None:
        raise ConfigurationError(
            "GEMINI_API_KEY is required but was not set",
            config_key=ENV_KEYS["api_key"],
        )

    model = _read(env, ENV_KEYS["model"]) or DEFAULT_MODEL
    values: Dict[str, Any] = {"api_key": api_key, "model": model, **get_model_defaults(model)}

    for field, (converter, type_name) in _CONVERTERS.items():
        value = _convert(env, ENV_KEYS[field], converter, type_name)
        if value is not None:
            values[field] = value

    for key in (ENV_KEYS["debug"], "DEBUG"):
        debug = _convert(env, key, _to_bool, "boolean")
        if debug is not None:
            values["debug"] = debug
            break

    return build_gemini_config(**values)


def validate_app_config(config: AppConfig) -> None:
    """Reject settings that validate structurally but cannot work."""

    if config.gemini.api_key.lower() in PLACEHOLDER_API_KEYS:
        raise ConfigurationError(
            "GEMINI_API_KEY still holds the example placeholder",
            config_key=ENV_KEYS["api_key"],
            provided_value=config.gemini.api_key,
        )


def describe_config(config: GeminiConfig) -> Dict[str, Any]:
    """Return a summary of ``config`` that is safe to log (no API key)."""

    summary = config.model_dump(exclude={"api_key", "timeout_seconds"})
    summary["api_key_length"] = len(config.api_key)
    return summary


def _load_env(env_file: Optional[str]) -> Mapping[str, str]:
    dotenv_path = Path(env_file or ".env")
    if dotenv_path.is_file():
        load_dotenv(dotenv_path, override=False)
    return os.environ


def configured_max_tokens(
    env: Optional[Mapping[str, str]] = None,
    *,
    env_file: Optional[str] = None,
) -> int:
    """Token ceiling from ``GEMINI_MAX_TOKENS`` or the model default.

    Unlike :func:`load_app_config` this needs no API key, so offline tools
    can honour the configured limit.
    """

    if env is None:
        env = _load_env(env_file)
    model = _read(env, ENV_KEYS["model"]) or DEFAULT_MODEL
    max_tokens = _convert(env, ENV_KEYS["max_tokens"], int, "int")
    if max_tokens is None:
        return get_model_defaults(model)["max_tokens"]
    if max_tokens <= 0:
        raise ConfigurationError(
            f"GEMINI_MAX_TOKENS must be greater than 0, got {max_tokens}",
            config_key=ENV_KEYS["max_tokens"],
            provided_value=max_tokens,
        )
    return max_tokens


def load_app_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    env_file: Optional[str] = None,
) -> AppConfig:
    """Load an :class:`AppConfig` from ``env`` (default: ``os.environ`` plus ``.env``).

    An explicit ``env`` mapping is used as-is and no file is read. Otherwise
    ``env_file`` (or ``./.env``) is loaded first without overriding variables
    that are already set.
    """

    if env is None:
        env = _load_env(env_file)

    app_kwargs: Dict[str, Any] = {"gemini": gemini_config_from_env(env)}
    log_level = _read(env, "LOG_LEVEL")
    if log_level is not None:
        app_kwargs["log_level"] = log_level
    log_file = _read(env, "LOG_FILE")
    if log_file is not None:
        app_kwargs["log_file"] = log_file

    try:
        config = AppConfig(**app_kwargs)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid application configuration:\n{exc}", cause=exc) from exc
    validate_app_config(config)
    return config


__all__ = [
    "ENV_KEYS",
    "MODEL_DEFAULTS",
    "build_gemini_config",
    "configured_max_tokens",
    "describe_config",
    "gemini_config_from_env",
    "get_model_defaults",
    "load_app_config",
    "validate_app_config",
]
