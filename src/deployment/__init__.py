"""
Deployment utilities for installing and removing the access stack.
"""

from .installer import AccessStackInstaller, InstallResult, InstallStatus

__all__ = [
    "AccessStackInstaller",
    "InstallResult",
    "InstallStatus",
]
