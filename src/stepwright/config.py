"""Configuration management for stepwright."""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from stepwright.constants import (
    CONFIG_FILENAME,
    DEFAULT_DATA_DIR,
    DEFAULT_IMAGE_CONCURRENCY,
    DEFAULT_IMAGE_MAX_ATTEMPTS,
    DEFAULT_IMAGE_MAX_HEIGHT,
    DEFAULT_IMAGE_MAX_SIZE_KB,
    DEFAULT_IMAGE_MAX_WIDTH,
    DEFAULT_IMAGE_MIN_DIMENSION,
    DEFAULT_IMAGE_QUALITY,
    DEFAULT_LLM_MODEL,
    DEFAULT_LLM_TEMPERATURE,
    DEFAULT_LLM_TIMEOUT,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_RETENTION,
    DEFAULT_LOG_ROTATION,
    DEFAULT_MAX_RECORD_BYTES,
    DEFAULT_PROMPTS_DIR,
    DEFAULT_USER_DIR,
)
from stepwright.exceptions import EnvVarNotFoundError
from stepwright.utils.fs import atomic_write_text


def resolve_env_value(value: str, strict: bool = True) -> str | None:
    """Resolve env:VAR_NAME syntax to actual environment variable value.

    Args:
        value: The value to resolve. If starts with "env:", looks up environment variable.
        strict: If True, raises EnvVarNotFoundError when variable not found.
                If False, returns None when variable not found.

    Returns:
        The resolved value, or None if env var not found and strict=False.

    Raises:
        EnvVarNotFoundError: If strict=True and environment variable not found.
    """
    if isinstance(value, str) and value.startswith("env:"):
        env_var = value[4:]
        env_value = os.environ.get(env_var)
        if env_value is None:
            if strict:
                raise EnvVarNotFoundError(env_var)
            return None
        return env_value
    return value


class ImageConfig(BaseModel):
    """Image compression configuration."""

    compress: bool = True
    max_width: int = Field(default=DEFAULT_IMAGE_MAX_WIDTH, ge=1)
    max_height: int = Field(default=DEFAULT_IMAGE_MAX_HEIGHT, ge=1)
    quality: int = Field(default=DEFAULT_IMAGE_QUALITY, ge=1, le=100)
    max_size_kb: float = Field(default=DEFAULT_IMAGE_MAX_SIZE_KB, gt=0)
    max_attempts: int = Field(default=DEFAULT_IMAGE_MAX_ATTEMPTS, ge=1)
    min_dimension: int = Field(default=DEFAULT_IMAGE_MIN_DIMENSION, ge=1)
    concurrency: int = Field(default=DEFAULT_IMAGE_CONCURRENCY, ge=1)


class StoreConfig(BaseModel):
    """Persistence configuration."""

    dir: str = DEFAULT_DATA_DIR
    max_record_bytes: int | None = DEFAULT_MAX_RECORD_BYTES

    def resolved_dir(self) -> Path:
        """Data directory with STEPWRIGHT_DATA_DIR override and ~ expansion."""
        env_dir = os.environ.get("STEPWRIGHT_DATA_DIR")
        return Path(env_dir or self.dir).expanduser()


class LLMConfig(BaseModel):
    """LLM configuration for turning flattened text into a workflow definition."""

    model: str = DEFAULT_LLM_MODEL
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = Field(default=DEFAULT_LLM_TEMPERATURE, ge=0, le=2)
    timeout: int = DEFAULT_LLM_TIMEOUT
    prompts_dir: str = DEFAULT_PROMPTS_DIR

    def get_resolved_api_key(self, strict: bool = True) -> str | None:
        """Get API key with env: syntax resolved.

        Raises:
            EnvVarNotFoundError: If strict=True and environment variable not found.
        """
        if self.api_key:
            return resolve_env_value(self.api_key, strict=strict)
        return None


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = DEFAULT_LOG_LEVEL
    dir: str | None = DEFAULT_LOG_DIR
    rotation: str = DEFAULT_LOG_ROTATION
    retention: str = DEFAULT_LOG_RETENTION


class StepwrightConfig(BaseModel):
    """Main configuration model."""

    image: ImageConfig = Field(default_factory=ImageConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    log: LogConfig = Field(default_factory=LogConfig)


def _assign_path(data: dict[str, Any], dotted: str, value: Any) -> None:
    """Write ``value`` at ``dotted`` inside a raw JSON dict, creating sections."""
    *sections, leaf = dotted.split(".")
    node = data
    for section in sections:
        child = node.get(section)
        if not isinstance(child, dict):
            child = node[section] = {}
        node = child
    node[leaf] = value


class ConfigManager:
    """Locate, load and persist ``stepwright.json``.

    Lookup order when no path is given:

    1. ``STEPWRIGHT_CONFIG``
    2. ``./stepwright.json``
    3. ``~/.stepwright/config.json``

    With none of these present the defaults are used.
    """

    CONFIG_FILENAME = CONFIG_FILENAME
    USER_CONFIG_PATH = Path(DEFAULT_USER_DIR).expanduser() / "config.json"

    def __init__(self) -> None:
        self._config: StepwrightConfig | None = None
        self._config_path: Path | None = None
        self._file_data: dict[str, Any] = {}
        self._changed: set[str] = set()

    @property
    def config(self) -> StepwrightConfig:
        if self._config is None:
            self.load()
        assert self._config is not None
        return self._config

    @property
    def config_path(self) -> Path | None:
        """File the configuration was read from, if any."""
        return self._config_path

    def find_config_file(self, explicit: Path | str | None = None) -> Path | None:
        if explicit:
            return Path(explicit)
        env_path = os.environ.get("STEPWRIGHT_CONFIG")
        if env_path:
            return Path(env_path)
        for candidate in (Path.cwd() / self.CONFIG_FILENAME, self.USER_CONFIG_PATH):
            if candidate.exists():
                return candidate
        return None

    def load(self, config_path: Path | str | None = None) -> StepwrightConfig:
        """Read the configuration file and validate it.

        Raises:
            ValueError: If the file is not valid JSON or fails validation.
            OSError: If the file exists but cannot be read.
        """
        path = self.find_config_file(config_path)
        data: dict[str, Any] = {}
        if path is not None and path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            self._config_path = path

        self._file_data = copy.deepcopy(data)
        self._changed.clear()
        self._config = StepwrightConfig.model_validate(data)
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """Read a value by dotted key, e.g. ``image.max_size_kb``."""
        node: Any = self.config
        for part in key.split("."):
            if isinstance(node, BaseModel):
                node = getattr(node, part, None)
            elif isinstance(node, dict):
                node = node.get(part)
            else:
                return default
            if node is None:
                return default
        return node

    def set(self, key: str, value: Any) -> None:
        """Change a value by dotted key, e.g. ``image.quality``.

        Raises:
            KeyError: If ``key`` does not name a setting.
        """
        *sections, leaf = key.split(".")
        node: Any = self.config
        for section in sections:
            if not hasattr(node, section):
                raise KeyError(key)
            node = getattr(node, section)
        if not hasattr(node, leaf):
            raise KeyError(key)
        setattr(node, leaf, value)
        self._changed.add(key)

    def save(self, path: Path | str | None = None) -> Path:
        """Write changed keys back into the file they were loaded from.

        Keys that were never set keep whatever the file held, so defaults
        are not written out.
        """
        target = Path(path) if path else self._config_path or self.USER_CONFIG_PATH
        if target.is_dir():
            target = target / self.CONFIG_FILENAME

        data = copy.deepcopy(self._file_data)
        for key in sorted(self._changed):
            _assign_path(data, key, self.get(key))

        atomic_write_text(target, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        return target
