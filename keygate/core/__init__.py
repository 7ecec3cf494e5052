"""
Core module - Configuration, logging, errors and the authentication core.
"""

from keygate.core.config import KeyGateConfig
from keygate.core.logging import SecureLogFilter, configure_root_logger

__all__ = ["KeyGateConfig", "configure_root_logger", "SecureLogFilter"]
