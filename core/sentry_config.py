from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import sentry_sdk
from pydantic import BaseModel, ConfigDict, Field
from sentry_sdk.integrations import Integration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.stdlib import StdlibIntegration

from config import Settings, get_settings
from monitoring.handle import MonitoringHandle

logger = logging.getLogger(__name__)


class DeploymentTier(str, Enum):
    DEVELOPMENT = "development"
    TEST = "test"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_environment(cls, name: str | None) -> DeploymentTier:
        """
        Resolve a runtime environment name to its tier.

        Names outside the enum fall into DEVELOPMENT (full sampling), which
        is logged so a misspelled API_ENV does not go unnoticed.
        """
        normalized = (name or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            logger.warning(
                "Unknown environment %r, using %s sampling",
                name,
                cls.DEVELOPMENT.value,
                extra={"environment": name},
            )
            return cls.DEVELOPMENT


# Applies to both traces and profiles. Must cover every DeploymentTier.
SAMPLE_RATES: dict[DeploymentTier, float] = {
    DeploymentTier.PRODUCTION: 0.1,
    DeploymentTier.STAGING: 0.5,
    DeploymentTier.DEVELOPMENT: 1.0,
    DeploymentTier.TEST: 1.0,
}


class BreadcrumbLogger(str, Enum):
    LOGGING_FRAMEWORK = "logging_framework"
    HTTP_LOGGER = "http_logger"

    def integration(self) -> Integration:
        if self is BreadcrumbLogger.LOGGING_FRAMEWORK:
            return LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
        return StdlibIntegration()


DEFAULT_BREADCRUMB_LOGGERS = frozenset(BreadcrumbLogger)


class MonitoringConfig(BaseModel):
    """Options handed to `sentry_sdk.init`. Built once at startup."""

    model_config = ConfigDict(frozen=True)

    dsn: str
    environment: str
    release: str | None = None
    traces_sample_rate: float = Field(ge=0.0, le=1.0)
    profiles_sample_rate: float = Field(ge=0.0, le=1.0)
    breadcrumb_loggers: frozenset[BreadcrumbLogger] = DEFAULT_BREADCRUMB_LOGGERS

    def to_init_kwargs(self) -> dict[str, Any]:
        # sorted so the integration order is stable between runs
        integrations = [
            breadcrumb.integration()
            for breadcrumb in sorted(self.breadcrumb_loggers, key=lambda b: b.value)
        ]
        return {
            "dsn": self.dsn,
            "environment": self.environment,
            "release": self.release,
            "traces_sample_rate": self.traces_sample_rate,
            "profiles_sample_rate": self.profiles_sample_rate,
            "integrations": integrations,
        }


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _is_test_environment(name: str | None) -> bool:
    return (name or "").strip().lower() == DeploymentTier.TEST.value


def build_monitoring_config(
    environment: str,
    dsn: str | None,
    release: str | None = None,
) -> MonitoringConfig | None:
    """
    Decide whether monitoring should run and, if so, what it is configured with.

    Returns None in the test environment or when no DSN is set. A blank DSN
    or release counts as unset; a blank environment is reported under the
    tier it resolves to.
    """
    if _is_test_environment(environment):
        return None
    if _blank(dsn):
        return None

    tier = DeploymentTier.from_environment(environment)
    rate = SAMPLE_RATES[tier]
    return MonitoringConfig(
        dsn=dsn.strip(),
        environment=tier.value if _blank(environment) else environment,
        release=None if _blank(release) else release.strip(),
        traces_sample_rate=rate,
        profiles_sample_rate=rate,
    )


def init_sentry(settings: Settings | None = None) -> MonitoringHandle:
    """
    Initialize Sentry for error tracking and performance monitoring.

    Call once during startup, before the app serves requests. Errors raised
    by `sentry_sdk.init` (e.g. a malformed DSN) are not caught.
    """
    settings = settings or get_settings()
    environment = settings.api_env

    config = build_monitoring_config(environment, settings.sentry_dsn, settings.sentry_release)
    if config is None:
        if _is_test_environment(environment):
            reason = "test environment"
        else:
            reason = "SENTRY_DSN not set"
        logger.info("Sentry disabled: %s", reason, extra={"environment": environment})
        return MonitoringHandle.disabled(reason)

    sentry_sdk.init(**config.to_init_kwargs())
    logger.info(
        "Sentry initialized",
        extra={
            "environment": config.environment,
            "release": config.release,
            "traces_sample_rate": config.traces_sample_rate,
        },
    )
    return MonitoringHandle(config)
