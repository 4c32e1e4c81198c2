"""Startup wiring: configuration → logging → audit → pipeline.

The host bot calls :func:`bootstrap` once and routes every interaction
through ``runtime.pipeline.run(interaction, handler)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from bwaincell.audit.logger import AuditLogger
from bwaincell.config.loader import load_middleware_config
from bwaincell.config.schema import MiddlewareConfig
from bwaincell.constants import APP_NAME, APP_VERSION
from bwaincell.display.logging_config import setup_logging
from bwaincell.interactions.middleware.pipeline import MiddlewarePipeline, build_default_pipeline
from bwaincell.interactions.middleware.rate_limit import RateLimitStore

logger = logging.getLogger(__name__)


@dataclass
class InteractionRuntime:
    """Everything built at startup that lives for the process lifetime."""

    config: MiddlewareConfig
    pipeline: MiddlewarePipeline
    store: RateLimitStore
    audit_logger: Optional[AuditLogger] = None
    log_fpath: Optional[str] = None

    def close(self) -> None:
        if self.audit_logger is not None:
            self.audit_logger.close()
        self.store.clear()


def bootstrap(
    cfg_fpath: Optional[str] = None,
    *,
    environment: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    configure_logging: bool = True,
) -> InteractionRuntime:
    """Load configuration and assemble the default interaction pipeline.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    config = load_middleware_config(cfg_fpath, environment=environment, environ=environ)

    log_fpath = None
    if configure_logging:
        log_fpath, log_lvl = setup_logging(
            config.logging.log_level,
            log_user_ids=config.logging.log_user_ids,
            quiet=True,
        )
        logger.info("---- %s v%s starting (file log level: %s) ----", APP_NAME, APP_VERSION, log_lvl)

    audit_logger = None
    if config.audit.enabled:
        audit_logger = AuditLogger.from_settings(config.audit)

    store = RateLimitStore()
    pipeline = build_default_pipeline(config, store=store, audit_logger=audit_logger)
    return InteractionRuntime(
        config=config,
        pipeline=pipeline,
        store=store,
        audit_logger=audit_logger,
        log_fpath=log_fpath,
    )
