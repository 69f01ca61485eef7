from __future__ import annotations

"""
Sentry initialization helpers for the leaderboards CLI.

Environment variables (all optional; safe to omit):
- SENTRY_DSN / LEADERBOARDS_SENTRY_DSN: DSN URL used to enable Sentry.
- SENTRY_ENV / SENTRY_ENVIRONMENT / ENV: Environment name. Defaults to development.
- SENTRY_TRACES_SAMPLE_RATE: Float in [0,1] for performance tracing sample rate.
- SENTRY_DEBUG: If set to a truthy value (1/true/yes/on), enables SDK debug output.

Usage:
    from leaderboards.core.sentry import init_sentry
    init_sentry(context="leaderboards_cli")
"""

import logging
import os
from typing import Any, Iterable, Optional, Sequence
from urllib.parse import urlparse

_LOG = logging.getLogger("leaderboards.core.sentry")

DEFAULT_DSN_ENVS = ("SENTRY_DSN", "LEADERBOARDS_SENTRY_DSN")


def _parse_float_env(name: str, default: float) -> float:
    """Parse a float environment variable with a default and clamping.

    Returns `default` if unset or invalid. Values outside [0, 1] are clamped.
    """
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        val = float(raw)
    except ValueError:
        _LOG.debug(
            "Invalid float for %s: %r; using default=%s", name, raw, default
        )
        return default
    return min(max(val, 0.0), 1.0)


def _truthy_env(name: str) -> bool:
    return os.getenv(name, "").lower() in {"1", "true", "yes", "on"}


def _first_env(names: Iterable[str]) -> Optional[str]:
    for n in names:
        v = os.getenv(n)
        if v:
            return v
    return None


def _is_valid_dsn(dsn: str) -> bool:
    """Accept http(s) DSNs with a host component."""
    u = urlparse(dsn)
    return (u.scheme in {"http", "https"}) and bool(u.netloc)


def init_sentry(
    *,
    context: str,
    release: Optional[str] = None,
    dsn_envs: Optional[Iterable[str]] = None,
    extra_integrations: Optional[Sequence[Any]] = None,
) -> bool:
    """Initialize Sentry best-effort and return whether it initialized.

    ERROR-level logs become Sentry events through ``LoggingIntegration``,
    so the record-issue warnings emitted by the engines stay breadcrumbs.
    """
    dsn_envs = list(dsn_envs) if dsn_envs is not None else list(DEFAULT_DSN_ENVS)
    dsn = _first_env(dsn_envs)
    if not dsn:
        _LOG.info(
            "Sentry disabled: no DSN configured (checked envs=%s)", dsn_envs
        )
        return False
    # Secrets sometimes arrive quoted
    dsn = dsn.strip().strip("\"").strip("'")
    if not _is_valid_dsn(dsn):
        _LOG.info("Sentry disabled: DSN appears invalid; check secrets/env")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.logging import LoggingIntegration

    env = (
        os.getenv("SENTRY_ENV")
        or os.getenv("SENTRY_ENVIRONMENT")
        or os.getenv("ENV")
        or "development"
    )
    traces = _parse_float_env("SENTRY_TRACES_SAMPLE_RATE", 0.0)
    debug = _truthy_env("SENTRY_DEBUG")

    integrations = [
        LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
    ]
    if extra_integrations:
        integrations.extend(list(extra_integrations))

    sentry_sdk.init(
        dsn=dsn,
        environment=env,
        release=release,
        integrations=integrations,
        traces_sample_rate=traces,
        debug=debug,
    )
    sentry_sdk.set_tag("service", context)
    _LOG.info(
        "Sentry initialized: context=%s env=%s traces=%s", context, env, traces
    )
    return True


__all__ = [
    "init_sentry",
    "_parse_float_env",
]
