"""Harness configuration loaded from a flat key/value YAML file."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from webtest_harness.reporting.testrail.config import TestRailConfig

log = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "production"
UPDATE_TEST_RAIL_ENV = "UPDATE_TEST_RAIL"

_URL_SUFFIX = ".url"
_TESTRAIL_PREFIX = "testrail."
_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded or is inconsistent."""


class HarnessConfig(BaseModel):
    """Settings shared by the whole suite execution."""

    default_environment: str = DEFAULT_ENVIRONMENT
    urls: Mapping[str, str] = Field(default_factory=dict)
    update_test_rail: bool = False
    testrail: TestRailConfig | None = None
    browser: str = "chrome"
    headless: bool = False
    max_concurrency: int = Field(default=1, ge=1)
    http_timeout: float = Field(default=30, gt=0)
    fixtures_root: Path = Path("resources/dataproviders")
    artifacts_root: Path = Path("target/test-output")

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, Any], environ: Mapping[str, str] | None = None
    ) -> "HarnessConfig":
        """Build the configuration from flat ``section.key`` properties.

        ``<env>.url`` keys populate the environment URL table and
        ``testrail.*`` keys the reporter settings. The ``UPDATE_TEST_RAIL``
        environment variable overrides ``update_test_rail``.
        """
        environ = os.environ if environ is None else environ

        urls: dict[str, str] = {}
        testrail: dict[str, Any] = {}
        settings: dict[str, Any] = {}

        for key, value in properties.items():
            if key.startswith(_TESTRAIL_PREFIX):
                testrail[key.removeprefix(_TESTRAIL_PREFIX)] = value
            elif key.endswith(_URL_SUFFIX):
                urls[key.removesuffix(_URL_SUFFIX)] = str(value)
            elif key == "default.environment":
                settings["default_environment"] = value
            else:
                settings[key] = value

        if (override := environ.get(UPDATE_TEST_RAIL_ENV)) is not None:
            settings["update_test_rail"] = override.strip().lower() in _TRUTHY

        try:
            return cls(
                urls=urls,
                testrail=TestRailConfig(**testrail) if testrail else None,
                **settings,
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def resolve_environment(self, environment: str | None = None) -> str:
        """Return the environment override or the configured default."""
        return environment or self.default_environment or DEFAULT_ENVIRONMENT

    def base_url(self, environment: str | None = None) -> str:
        """Look up the base URL of an environment.

        Raises:
            ConfigError: If no ``<env>.url`` is configured for the environment

        """
        name = self.resolve_environment(environment)
        try:
            url = self.urls[name]
        except KeyError:
            raise ConfigError(
                f"No URL configured for environment '{name}'. "
                f"Known environments: {sorted(self.urls)}"
            ) from None
        log.info("URL for environment %s: %s", name, url)
        return url

    @property
    def reporting_enabled(self) -> bool:
        """Whether results should be synchronized to TestRail."""
        return self.update_test_rail and self.testrail is not None


def load_config(path: Path, environ: Mapping[str, str] | None = None) -> HarnessConfig:
    """Load the harness configuration from a YAML file.

    Raises:
        ConfigError: If the file is missing, malformed or fails validation

    """
    try:
        data = yaml.safe_load(path.read_text())
    except FileNotFoundError:
        raise ConfigError(f"Configuration file {path} was not found") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"{path} must contain a mapping of properties")

    log.info("Loaded configuration from %s", path)
    return HarnessConfig.from_properties(data, environ)
