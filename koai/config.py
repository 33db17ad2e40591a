import json
import logging
import os

from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

API_KEY_ENV = "OPENAI_API_KEY"
CONFIG_PATH_ENV = "KOAI_CONFIG"
DEFAULT_PROVIDER = "openai"

# Looked up in order when no explicit path is given.
CONFIG_SEARCH_PATHS = [
    "koai.config.json",
    os.path.join("~", ".koai", "config.json"),
]

MODES = ("chat", "edit")


@dataclass(frozen=True)
class CompletionOptions:
    """Options for one call to the completion service."""

    model: str
    max_tokens: int
    temperature: float
    system_message: Optional[str] = None

    def merged(self, overrides: Mapping) -> "CompletionOptions":
        """Returns a copy with every non-None value in `overrides` applied."""
        values = {
            key: value
            for key, value in overrides.items()
            if value is not None and key in _OPTION_FIELDS
        }
        options = replace(self, **values)
        options.validate()
        return options

    def validate(self):
        if not self.model:
            raise ConfigurationError("model must be a non-empty identifier.")
        if (
            isinstance(self.max_tokens, bool)
            or not isinstance(self.max_tokens, int)
            or self.max_tokens <= 0
        ):
            raise ConfigurationError(
                f"max_tokens must be a positive integer, got {self.max_tokens!r}."
            )
        if isinstance(self.temperature, bool) or not isinstance(
            self.temperature, (int, float)
        ):
            raise ConfigurationError(
                f"temperature must be a number, got {self.temperature!r}."
            )
        if not 0 <= self.temperature <= 2:
            raise ConfigurationError(
                f"temperature must be between 0 and 2, got {self.temperature}."
            )


_OPTION_FIELDS = ("model", "max_tokens", "temperature", "system_message")

BUILTIN_DEFAULTS: Dict[str, CompletionOptions] = {
    "chat": CompletionOptions(
        model="gpt-3.5-turbo",
        max_tokens=1000,
        temperature=0.7,
        system_message="You are a helpful AI assistant",
    ),
    "edit": CompletionOptions(
        model="gpt-4",
        max_tokens=2000,
        temperature=0.3,
        system_message="You are a helpful AI coding assistant",
    ),
}


@dataclass
class Settings:
    """User settings plus the credential injected at startup."""

    provider: str = DEFAULT_PROVIDER
    api_key: Optional[str] = None
    modes: Dict[str, CompletionOptions] = field(
        default_factory=lambda: dict(BUILTIN_DEFAULTS)
    )
    source: Optional[str] = None

    def options_for(self, mode: str, overrides: Optional[Mapping] = None) -> CompletionOptions:
        """
        Resolves the options for a mode.

        Call-site overrides win over the settings file, which wins over the
        built-in defaults.
        """
        if mode not in self.modes:
            raise ConfigurationError(f"Unknown mode '{mode}'.")
        return self.modes[mode].merged(overrides or {})


def _find_config_path(explicit: Optional[str]) -> Optional[str]:
    if explicit:
        return os.path.expanduser(explicit)

    from_env = os.getenv(CONFIG_PATH_ENV)
    if from_env:
        return os.path.expanduser(from_env)

    for candidate in CONFIG_SEARCH_PATHS:
        path = os.path.expanduser(candidate)
        if os.path.exists(path):
            return path
    return None


def _read_config_file(path: str) -> Dict:
    try:
        with open(path, "r", encoding="utf-8") as config_file:
            data = json.load(config_file)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Error reading or parsing {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object.")
    return data


def build_settings(data: Mapping, api_key: Optional[str] = None) -> Settings:
    """Merges a settings mapping over the built-in defaults."""
    modes = {}
    for mode in MODES:
        section = data.get(mode) or {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"'{mode}' settings must be an object.")

        unknown = set(section) - set(_OPTION_FIELDS)
        if unknown:
            logger.warning(
                "Ignoring unknown %s settings: %s", mode, ", ".join(sorted(unknown))
            )
        modes[mode] = BUILTIN_DEFAULTS[mode].merged(section)

    return Settings(
        provider=data.get("provider") or DEFAULT_PROVIDER,
        api_key=api_key,
        modes=modes,
    )


def load_settings(
    path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """
    Loads the settings file (if any) and reads the credential from the environment.

    A missing credential is not an error here: the completion client refuses
    to start without one, which keeps credential-free modes usable.

    Args:
        path: Explicit settings file. Falls back to $KOAI_CONFIG and then the
              default search locations.
        environ: Environment used for the credential lookup. Defaults to os.environ.
    """
    environ = os.environ if environ is None else environ
    api_key = environ.get(API_KEY_ENV) or None

    config_path = _find_config_path(path)
    data = _read_config_file(config_path) if config_path else {}

    settings = build_settings(data, api_key=api_key)
    settings.source = config_path
    logger.debug(
        "Loaded settings from %s (provider: %s)",
        config_path or "built-in defaults",
        settings.provider,
    )
    return settings
