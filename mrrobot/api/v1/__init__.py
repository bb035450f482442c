"""
MR-ROBOT API v1 Routers
"""

from mrrobot.api.v1 import health, admin

__all__ = ["health", "admin"]
