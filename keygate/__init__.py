"""
KeyGate - Authentication and Session Authorization
==================================================

Credential storage, session tokens, login throttling and admin gating
for a small profile site, over a pluggable key-value store.

Security Notice:
- No secrets are logged
- Fail-closed design pattern
- Plaintext passwords are never stored
"""

from keygate.core.config import KeyGateConfig
from keygate.core.logging import configure_root_logger

__version__ = "0.1.0"

__all__ = ["KeyGateConfig", "configure_root_logger", "__version__"]
