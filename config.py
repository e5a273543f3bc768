#!/usr/bin/env python3
"""
Configuration
Runtime settings read from DOCXFILL_* environment variables
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    log_level: str = 'INFO'
    host: str = '127.0.0.1'
    port: int = 8080
    template_root: str = '.'
    max_upload_mb: int = 16

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r, not an integer", name, raw)
        return default


def load_settings() -> Settings:
    """Build Settings from the environment, falling back to defaults"""
    return Settings(
        log_level=os.environ.get('DOCXFILL_LOG_LEVEL', 'INFO').upper(),
        host=os.environ.get('DOCXFILL_HOST', '127.0.0.1'),
        port=_int_env('DOCXFILL_PORT', 8080),
        template_root=os.path.abspath(os.environ.get('DOCXFILL_TEMPLATE_ROOT', os.getcwd())),
        max_upload_mb=_int_env('DOCXFILL_MAX_UPLOAD_MB', 16),
    )
