"""
Domain exceptions raised by the storage layer and caught by the routes.
"""
from __future__ import annotations


class PortalError(Exception):
    """Base class; the message is safe to show to the user."""


class RegistrationError(PortalError):
    pass


class JobPostingError(PortalError):
    pass


class ApplicationError(PortalError):
    pass


class StorageError(PortalError):
    pass


class SettingsError(PortalError):
    pass


class ProfileError(PortalError):
    pass


__all__ = [
    "PortalError",
    "RegistrationError",
    "JobPostingError",
    "ApplicationError",
    "StorageError",
    "SettingsError",
    "ProfileError",
]
