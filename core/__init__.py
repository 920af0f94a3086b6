"""
Core package: the HTTP controller, its auth middleware, configuration and security.
Kept apart from the sample handlers in api/ so it can be embedded on its own.
Import the controller from core.controller.
"""

from core.config import get_settings

__all__ = ["get_settings"]
