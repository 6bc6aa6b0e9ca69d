"""Configuration Management Package

Looks for config in multiple places (in order):

1. .cmrc in current directory (project-specific)
2. .cmrc in home directory (global default)
3. Built-in defaults

Config format (JSON):
{
    "provider": "openai",
    "base_url": "https://api.deepseek.com",
    "fast_model": "deepseek-chat",
    "enable_deep_thinking": true
}
"""

import json
import sys
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from commitgen.git import BudgetLimits, TruncationPolicy
from commitgen.llm.base import BackendConfig
from commitgen.prompts.templates import ROLE_DEEP, ROLE_FAST

VALID_PROVIDERS = {"openai", "claude"}

# (fast, deep) model per provider when none is configured
DEFAULT_MODELS = {
    "openai": ("deepseek-chat", "deepseek-reasoner"),
    "claude": ("claude-3-5-haiku-latest", "claude-sonnet-4-20250514"),
}

# Fields that must be positive integers
_POSITIVE_INT_FIELDS = (
    "max_prompt_chars",
    "max_staged_files",
    "new_file_max_lines",
    "modified_file_max_lines",
    "tail_lines",
    "max_diff_bytes",
    "request_timeout",
    "max_file_display",
)


@dataclass
class Config:
    """User configuration with sensible defaults."""
    provider: str = "openai"
    base_url: Optional[str] = "https://api.deepseek.com"
    api_key: Optional[str] = None
    fast_model: Optional[str] = None
    deep_model: Optional[str] = None
    enable_deep_thinking: bool = True
    language: str = "English"

    # Size limits
    max_prompt_chars: int = 8000
    max_staged_files: int = 20
    new_file_max_lines: int = 50
    modified_file_max_lines: int = 250
    tail_lines: int = 50
    max_diff_bytes: int = 10 * 1024 * 1024

    request_timeout: int = 120
    max_file_display: int = 8  # Max files shown before collapsing list

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def validate(self) -> list[str]:
        """Validate config values and return list of warnings.

        Invalid values are replaced with defaults after warning.
        """
        warnings = []
        defaults = Config()

        if self.provider not in VALID_PROVIDERS:
            warnings.append(f"Invalid provider '{self.provider}', using '{defaults.provider}'")
            self.provider = defaults.provider

        if not isinstance(self.language, str) or not self.language.strip():
            warnings.append(f"Invalid language '{self.language}', using '{defaults.language}'")
            self.language = defaults.language

        if not isinstance(self.enable_deep_thinking, bool):
            warnings.append(f"Invalid enable_deep_thinking '{self.enable_deep_thinking}', using {defaults.enable_deep_thinking}")
            self.enable_deep_thinking = defaults.enable_deep_thinking

        for name in _POSITIVE_INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                default = getattr(defaults, name)
                warnings.append(f"Invalid {name} '{value}', using {default}")
                setattr(self, name, default)

        if self.tail_lines >= self.modified_file_max_lines:
            warnings.append(
                f"tail_lines ({self.tail_lines}) must be below modified_file_max_lines "
                f"({self.modified_file_max_lines}), using {defaults.tail_lines} and {defaults.modified_file_max_lines}"
            )
            self.tail_lines = defaults.tail_lines
            self.modified_file_max_lines = defaults.modified_file_max_lines

        return warnings

    def budget_limits(self) -> BudgetLimits:
        return BudgetLimits(max_prompt_chars=self.max_prompt_chars, max_staged_files=self.max_staged_files)

    def truncation_policy(self) -> TruncationPolicy:
        return TruncationPolicy(
            new_file_max_lines=self.new_file_max_lines,
            modified_file_max_lines=self.modified_file_max_lines,
            tail_lines=self.tail_lines,
        )

    def backends(self) -> list[BackendConfig]:
        """Fast backend first, then the deep one when enabled."""
        fast_default, deep_default = DEFAULT_MODELS[self.provider]
        base_url = self.base_url if self.provider == "openai" else None
        backends = [BackendConfig(
            name=self.fast_model or fast_default,
            role=ROLE_FAST,
            model=self.fast_model or fast_default,
            provider=self.provider,
            base_url=base_url,
            api_key=self.api_key,
            timeout=self.request_timeout,
        )]
        if self.enable_deep_thinking:
            deep_model = self.deep_model or deep_default
            backends.append(BackendConfig(
                # Same model in both roles still needs two distinct branches
                name=deep_model if deep_model != backends[0].name else f"{deep_model} (deep)",
                role=ROLE_DEEP,
                model=deep_model,
                provider=self.provider,
                base_url=base_url,
                api_key=self.api_key,
                timeout=self.request_timeout,
            ))
        return backends

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        config = cls(**filtered)
        for warning in config.validate():
            print(f"Config warning: {warning}", file=sys.stderr)
        return config


class ConfigManager:
    """Manages loading and saving configuration."""

    CONFIG_FILENAME = ".cmrc"

    def __init__(self):
        self._config: Optional[Config] = None
        self._config_path: Optional[Path] = None

    def load(self) -> Config:
        if self._config is not None:
            return self._config

        for path in (Path.cwd() / self.CONFIG_FILENAME, Path.home() / self.CONFIG_FILENAME):
            if path.exists():
                self._config = self._load_from_file(path)
                self._config_path = path
                return self._config

        self._config = Config()
        return self._config

    def _load_from_file(self, path: Path) -> Config:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            print(f"Warning: Could not load {path}: {e}", file=sys.stderr)
            return Config()
        if not isinstance(data, dict):
            print(f"Warning: Could not load {path}: expected a JSON object", file=sys.stderr)
            return Config()
        return Config.from_dict(data)

    def save(self, config: Config, global_config: bool = True) -> Path:
        path = Path.home() / self.CONFIG_FILENAME if global_config else Path.cwd() / self.CONFIG_FILENAME
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2)
        return path

    def get_config_path(self) -> Optional[Path]:
        return self._config_path


_manager = ConfigManager()


def load_config() -> Config:
    return _manager.load()


def save_config(config: Config, global_config: bool = True) -> Path:
    return _manager.save(config, global_config)


def get_config_path() -> Optional[Path]:
    return _manager.get_config_path()


__all__ = [
    "Config",
    "ConfigManager",
    "load_config",
    "save_config",
    "get_config_path",
    "DEFAULT_MODELS",
    "VALID_PROVIDERS",
]
