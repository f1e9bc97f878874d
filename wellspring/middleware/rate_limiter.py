"""
Rate limiting configuration.

The Limiter instance is created in wellspring/__init__.py with no default
limits; this module applies per-blueprint limits.

Usage:
    from wellspring.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Chapter endpoints:   60/minute  (transitions trigger outbound sync)
        - Workflow catalogs:  200/minute  (read-only)
        - Health check:       exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("chapters")
    if bp:
        limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("workflows")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — chapters: %s, workflows: %s", WRITE_LIMIT, READ_LIMIT)
