"""
Web module - Flask HTTP surface for KeyGate.
"""

from keygate.web.app import create_app

__all__ = ["create_app"]
