from __future__ import annotations


class ImgateError(Exception):
    """Base class for gateway errors."""

    status_code = 500


class ClientInputError(ImgateError):
    status_code = 400


class PayloadTooLargeError(ClientInputError):
    status_code = 413


class NotFoundError(ImgateError):
    status_code = 404


class SignatureError(ImgateError):
    status_code = 403


class StorageError(ImgateError):
    """Write, delete or signing failure reported by a storage backend."""

    status_code = 500


class ConfigurationError(ImgateError):
    """Raised at startup; the process must not start serving."""
