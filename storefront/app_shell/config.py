import logging
import os
import sys

from storefront.rules.models import Rules

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process or CLI."""
    logging.basicConfig(
        level=(level or os.environ.get("STORE_LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def validate_ops_rules(rules: Rules) -> None:
    """
    Validate operational requirements before startup.
    """
    ops = rules.ops

    missing = [env_var for env_var in ops.required_env if env_var not in os.environ]
    if missing:
        logger.critical("Missing required environment variables: %s", ", ".join(missing))
        sys.exit(1)

    if ops.bootstrap_admin.enabled_if_no_users:
        absent = [
            env_var
            for env_var in ops.bootstrap_admin.required_env_when_enabled
            if not os.environ.get(env_var)
        ]
        if absent:
            logger.info(
                "Admin bootstrap enabled but %s not set; skipping unless users table is seeded",
                ", ".join(absent),
            )

    if os.environ.get("STORE_SECRET_KEY") is None:
        logger.warning("STORE_SECRET_KEY is not set; using the development signing key")

    logger.info("Configuration validated.")
