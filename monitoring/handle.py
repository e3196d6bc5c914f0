from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import sentry_sdk

if TYPE_CHECKING:
    from core.sentry_config import MonitoringConfig

logger = logging.getLogger(__name__)


class MonitoringHandle:
    """
    Result of the one-time Sentry bootstrap.

    An active handle means the SDK was initialized with `config`; a disabled
    handle carries the reason initialization was skipped and turns every
    call into a no-op. The application holds it on `app.state.monitoring`.
    """

    def __init__(self, config: MonitoringConfig | None = None, reason: str | None = None):
        self._config = config
        self._reason = reason

    @classmethod
    def disabled(cls, reason: str) -> MonitoringHandle:
        return cls(config=None, reason=reason)

    @property
    def active(self) -> bool:
        return self._config is not None

    @property
    def config(self) -> MonitoringConfig | None:
        return self._config

    @property
    def reason(self) -> str | None:
        return self._reason

    def capture_exception(self, exc: BaseException) -> str | None:
        """Report `exc` to Sentry. Returns the event id, or None when disabled."""
        if not self.active:
            return None
        return sentry_sdk.capture_exception(exc)

    def flush(self, timeout: float = 2.0) -> None:
        if not self.active:
            return
        logger.debug("Flushing monitoring client", extra={"timeout": timeout})
        sentry_sdk.flush(timeout=timeout)

    def describe(self) -> dict[str, Any]:
        if not self.active:
            return {"status": "disabled", "reason": self._reason}

        cfg = self._config
        return {
            "status": "active",
            "environment": cfg.environment,
            "release": cfg.release,
            "traces_sample_rate": cfg.traces_sample_rate,
            "profiles_sample_rate": cfg.profiles_sample_rate,
            "breadcrumb_loggers": sorted(b.value for b in cfg.breadcrumb_loggers),
        }

    def __repr__(self) -> str:
        if self.active:
            return f"MonitoringHandle(active, environment={self._config.environment!r})"
        return f"MonitoringHandle(disabled, reason={self._reason!r})"
