import logging

import pytest
from pydantic import ValidationError
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.stdlib import StdlibIntegration

from config import Settings
from core.sentry_config import (
    SAMPLE_RATES,
    BreadcrumbLogger,
    DeploymentTier,
    MonitoringConfig,
    build_monitoring_config,
    init_sentry,
)


def test_test_environment_never_initializes(sentry_calls):
    handle = init_sentry(Settings(api_env="test", sentry_dsn="abc"))

    assert build_monitoring_config("test", "abc") is None
    assert sentry_calls == []
    assert not handle.active
    assert handle.reason == "test environment"


@pytest.mark.parametrize("dsn", [None, "", "   "])
@pytest.mark.parametrize("environment", ["development", "staging", "production"])
def test_missing_dsn_never_initializes(sentry_calls, environment, dsn):
    handle = init_sentry(Settings(api_env=environment, sentry_dsn=dsn))

    assert build_monitoring_config(environment, dsn) is None
    assert sentry_calls == []
    assert not handle.active
    assert handle.reason == "SENTRY_DSN not set"


def test_blank_dsn_from_environment_is_absent(monkeypatch, sentry_calls):
    monkeypatch.setenv("API_ENV", "production")
    monkeypatch.setenv("SENTRY_DSN", "   ")

    handle = init_sentry()

    assert sentry_calls == []
    assert handle.reason == "SENTRY_DSN not set"


@pytest.mark.parametrize(
    "environment, rate",
    [("production", 0.1), ("staging", 0.5), ("development", 1.0)],
)
def test_sample_rates_by_environment(sentry_calls, environment, rate):
    handle = init_sentry(Settings(api_env=environment, sentry_dsn="abc"))

    assert handle.active
    assert handle.config.traces_sample_rate == rate
    assert handle.config.profiles_sample_rate == rate

    (kwargs,) = sentry_calls
    assert kwargs["dsn"] == "abc"
    assert kwargs["environment"] == environment
    assert kwargs["traces_sample_rate"] == rate
    assert kwargs["profiles_sample_rate"] == rate


@pytest.mark.parametrize("environment", ["development", "staging", "production", "qa"])
def test_breadcrumb_loggers_are_fixed(environment):
    config = build_monitoring_config(environment, "abc")

    assert config.breadcrumb_loggers == {
        BreadcrumbLogger.LOGGING_FRAMEWORK,
        BreadcrumbLogger.HTTP_LOGGER,
    }


def test_breadcrumb_loggers_become_integrations(sentry_calls):
    init_sentry(Settings(api_env="staging", sentry_dsn="abc"))

    (kwargs,) = sentry_calls
    integrations = kwargs["integrations"]
    assert len(integrations) == 2
    assert any(isinstance(i, LoggingIntegration) for i in integrations)
    assert any(isinstance(i, StdlibIntegration) for i in integrations)


@pytest.mark.parametrize("environment", ["development", "staging", "production"])
def test_release_follows_setting(environment):
    with_release = build_monitoring_config(environment, "abc", "2024.06.1")
    without_release = build_monitoring_config(environment, "abc", None)

    assert with_release.release == "2024.06.1"
    assert without_release.release is None
    assert with_release.to_init_kwargs()["release"] == "2024.06.1"


def test_unknown_environment_uses_development_rate_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="core.sentry_config"):
        config = build_monitoring_config("preview-42", "abc")

    assert config.traces_sample_rate == 1.0
    assert config.environment == "preview-42"
    assert "Unknown environment" in caplog.text


def test_environment_name_is_normalized():
    assert DeploymentTier.from_environment(" Production ") is DeploymentTier.PRODUCTION
    assert build_monitoring_config("TEST", "abc") is None


def test_sample_rate_table_covers_every_tier():
    assert set(SAMPLE_RATES) == set(DeploymentTier)
    assert all(0.0 <= rate <= 1.0 for rate in SAMPLE_RATES.values())


def test_config_is_immutable():
    config = build_monitoring_config("production", "abc")

    with pytest.raises(ValidationError):
        config.traces_sample_rate = 1.0


def test_config_rejects_out_of_range_rates():
    with pytest.raises(ValidationError):
        MonitoringConfig(
            dsn="abc",
            environment="production",
            traces_sample_rate=1.5,
            profiles_sample_rate=0.1,
        )


def test_sdk_init_errors_propagate(monkeypatch):
    def broken_init(**kwargs):
        raise RuntimeError("bad dsn")

    monkeypatch.setattr("core.sentry_config.sentry_sdk.init", broken_init)

    with pytest.raises(RuntimeError, match="bad dsn"):
        init_sentry(Settings(api_env="production", sentry_dsn="abc"))


@pytest.mark.parametrize("dsn", ["", "   ", "\t\n"])
def test_blank_dsn_is_not_a_dsn(dsn):
    assert build_monitoring_config("production", dsn) is None


def test_dsn_and_release_are_trimmed():
    config = build_monitoring_config("production", "  https://key@o1.ingest.sentry.io/1 ", "   ")

    assert config.dsn == "https://key@o1.ingest.sentry.io/1"
    assert config.release is None


@pytest.mark.parametrize("environment", ["", "   "])
def test_blank_environment_reports_resolved_tier(environment):
    config = build_monitoring_config(environment, "abc")

    assert config.environment == "development"
    assert config.traces_sample_rate == 1.0
    assert config.to_init_kwargs()["environment"] == "development"
