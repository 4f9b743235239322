"""
errors.py
Exception types raised by the store, billing and backup layers.
"""

from __future__ import annotations


class IspAdminError(Exception):
    """Base class; the UI catches this and shows the message."""


class ValidationError(IspAdminError):
    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class DuplicateError(IspAdminError):
    pass


class NotFoundError(IspAdminError):
    pass


class BackupError(IspAdminError):
    pass
