"""Configuration service: merged settings, change subscribers, payload filters."""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Protocol

from dotenv import dotenv_values

from ..config import ENV_PREFIX
from ..constants import SERVER_STRING_LIMIT
from ..errors import InvalidArgumentError
from ..logging_config import get_logger
from ..utils import merge, sanitize_string, set_label
from .subscription import Subscription

logger = get_logger(__name__)

ChangeHandler = Callable[[dict], None]
PayloadFilter = Callable[[dict], Any]

REQUIRED_KEYS = ("serviceName", "serverUrl")
_SERVICE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9 _-]+$")


def default_config() -> dict:
    """Agent defaults; the bottom layer of every merge."""
    return {
        "serviceName": "",
        "serviceVersion": "",
        "environment": "",
        "serverUrl": "http://localhost:8200",
        "serverUrlPrefix": "/intake/v2/rum/events",
        "active": True,
        "instrument": True,
        "logLevel": "warn",
        "capturePageLoad": True,
        "sendPageLoadTransaction": True,
        "ignoreTransactions": [],
        "ignoreUrls": [],
        "transactionSampleRate": 1.0,
        "transactionDurationThreshold": 60000,
        "queueLimit": -1,
        "serverStringLimit": SERVER_STRING_LIMIT,
        "pageLoadTransactionName": "",
        "context": {},
    }


def _camel_case(key: str) -> str:
    head, *rest = key.lower().split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def _coerce(key: str, value: str, defaults: Mapping) -> Any:
    """Convert `value` to the type of the default for `key`.

    Keys without a bool or number default keep the string. Raises
    ValueError when the string does not parse.
    """
    default = defaults.get(key)
    if isinstance(default, bool):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


def config_from_env(
    env_file: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict:
    """Collect RUM_* variables from a .env file and the environment.

    The environment wins over the file. Keys are camel-cased after the
    prefix is stripped: RUM_SERVICE_NAME -> serviceName. Values of keys
    with a bool or number default are converted to that type.
    """
    values: dict[str, str | None] = {}
    if env_file is not None and Path(env_file).is_file():
        values.update(dotenv_values(env_file))
    values.update(os.environ if environ is None else environ)

    defaults = default_config()
    config = {}
    for key, value in values.items():
        if not key.startswith(ENV_PREFIX) or value is None:
            continue
        name = key[len(ENV_PREFIX):]
        if not name:
            continue

        config_key = _camel_case(name)
        try:
            config[config_key] = _coerce(config_key, value, defaults)
        except ValueError:
            logger.warning("Ignoring %s: %r is not a valid %s", key, value, type(defaults[config_key]).__name__)
    return config


class IConfigService(Protocol):
    """Merged, dotted-path addressable agent settings."""

    def get(self, key: str) -> Any:
        """Resolve a dotted path; None at any missing segment."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Write through a dotted path."""
        ...

    def set_config(self, properties: Mapping | None = None) -> None:
        """Merge defaults, current config and `properties`; notify subscribers."""
        ...

    def subscribe_to_change(self, fn: ChangeHandler) -> Callable[[], None]:
        """Register a change subscriber; returns the unsubscribe handle."""
        ...

    def add_filter(self, fn: PayloadFilter) -> None:
        """Append a payload filter."""
        ...

    def apply_filters(self, payload: dict) -> dict | None:
        """Run `payload` through the filter chain."""
        ...

    def is_valid(self) -> bool:
        """Check that required keys are set."""
        ...


class ConfigService:
    """Process-wide agent configuration."""

    def __init__(self, defaults: Mapping | None = None):
        self.config: dict = {}
        self.defaults: dict = merge(default_config(), defaults)
        self.filters: list[PayloadFilter] = []
        self.version = ""
        self._change_subscription = Subscription()

    def init(
        self,
        env_file: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Seed the config from the environment, once at agent start."""
        self.set_config(config_from_env(env_file, environ))

    def is_active(self) -> bool:
        """Whether the agent should record anything."""
        return bool(self.get("active"))

    def set_version(self, version: str) -> None:
        self.version = version

    def get(self, key: str) -> Any:
        """Resolve a dotted path; None at any missing segment."""
        target: Any = self.config
        for part in key.split("."):
            if not isinstance(target, Mapping):
                return None
            target = target.get(part)
        return target

    def get_endpoint_url(self) -> str:
        """Intake URL: serverUrl followed by serverUrlPrefix."""
        return f"{self.get('serverUrl') or ''}{self.get('serverUrlPrefix') or ''}"

    def set(self, key: str, value: Any) -> None:
        """Write through a dotted path."""
        levels = [level for level in key.split(".") if level]
        if not levels:
            return

        target = self.config
        for level in levels[:-1]:
            nested = target.get(level)
            if not isinstance(nested, dict):
                nested = {}
                target[level] = nested
            target = nested
        target[levels[-1]] = value

    def set_config(self, properties: Mapping | None = None) -> None:
        """Merge defaults, current config and `properties`; notify subscribers."""
        self.config = merge(self.defaults, self.config, properties)
        self._change_subscription.apply_all(self.config)

    def subscribe_to_change(self, fn: ChangeHandler) -> Callable[[], None]:
        """Register a change subscriber; returns the unsubscribe handle."""
        if not callable(fn):
            logger.warning("Ignoring non-callable config subscriber: %r", fn)
            return lambda: None
        return self._change_subscription.subscribe(fn)

    def add_filter(self, fn: PayloadFilter) -> None:
        """Append a payload filter."""
        if not callable(fn):
            raise InvalidArgumentError("Argument to add_filter must be a function")
        self.filters.append(fn)

    def apply_filters(self, payload: dict) -> dict | None:
        """Run `payload` through the filter chain; None once a filter drops it."""
        for payload_filter in self.filters:
            payload = payload_filter(payload)
            if not payload:
                return None
        return payload

    def set_user_context(self, user_context: Mapping | None = None) -> None:
        """Store id, username and email under context.user."""
        user_context = user_context or {}
        limit = self._string_limit()
        context: dict[str, Any] = {}

        user_id = user_context.get("id")
        if isinstance(user_id, (int, float)) and not isinstance(user_id, bool):
            context["id"] = user_id
        elif isinstance(user_id, str):
            context["id"] = sanitize_string(user_id, limit)

        for field in ("username", "email"):
            value = user_context.get(field)
            if isinstance(value, str):
                context[field] = sanitize_string(value, limit)

        self.set("context.user", context)

    def set_custom_context(self, custom_context: Any) -> None:
        if isinstance(custom_context, Mapping):
            self.set("context.custom", dict(custom_context))

    def add_tags(self, tags: Mapping[str, Any]) -> None:
        """Merge sanitized labels into context.tags."""
        current = self.get("context.tags")
        if not isinstance(current, dict):
            current = {}
            self.set("context.tags", current)

        limit = self._string_limit()
        for key, value in tags.items():
            set_label(key, value, current, limit)

    def validate(self) -> list[str]:
        """Human-readable configuration problems; empty when usable."""
        problems = []
        missing = [key for key in REQUIRED_KEYS if self.config.get(key) in (None, "")]
        if missing:
            problems.append("Missing config - " + ", ".join(sorted(missing)))

        service_name = self.config.get("serviceName")
        if service_name and not _SERVICE_NAME_PATTERN.match(str(service_name)):
            problems.append(
                f'serviceName "{service_name}" contains invalid characters! '
                "(allowed: a-z, A-Z, 0-9, _, -, <space>)"
            )
        return problems

    def is_valid(self) -> bool:
        """Check that required keys are set."""
        return all(self.config.get(key) not in (None, "") for key in REQUIRED_KEYS)

    def _string_limit(self) -> int:
        limit = self.get("serverStringLimit")
        if isinstance(limit, int) and not isinstance(limit, bool) and limit > 0:
            return limit
        return SERVER_STRING_LIMIT
