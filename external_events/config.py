import os
from collections.abc import Mapping
from dataclasses import dataclass

from external_events.exceptions import ConfigurationError

DEFAULT_CACHE_FILE = "externalEventsStore.json"


def _read_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            parameter=name,
            expected_format="non-negative number",
            example=str(default),
        ) from e
    if value < 0:
        raise ConfigurationError(
            f"{name} must not be negative: {raw!r}",
            parameter=name,
            expected_format="non-negative number",
            example=str(default),
        )
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read from environment variables.

    ``ALLEVENTS_API_KEY`` is the only value that changes behaviour: when it
    is absent the AllEvents source is silently disabled.
    """

    allevents_api_key: str | None = None
    cache_file: str = DEFAULT_CACHE_FILE
    max_age_hours: float = 24.0
    request_timeout: float = 30.0
    page_delay: float = 0.3
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Builds settings from *environ* (``os.environ`` by default).

        Raises:
            ConfigurationError: If a numeric variable is malformed.
        """
        env = os.environ if environ is None else environ
        api_key = (env.get("ALLEVENTS_API_KEY") or "").strip() or None

        return cls(
            allevents_api_key=api_key,
            cache_file=env.get("EXTERNAL_EVENTS_CACHE") or DEFAULT_CACHE_FILE,
            max_age_hours=_read_float(env, "EXTERNAL_EVENTS_MAX_AGE_HOURS", 24.0),
            request_timeout=_read_float(env, "EXTERNAL_EVENTS_TIMEOUT", 30.0),
            page_delay=_read_float(env, "EXTERNAL_EVENTS_PAGE_DELAY", 0.3),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
