"""
Secret Service client exception hierarchy.

All exceptions inherit from SecretServiceError for easy catching.
A dismissed prompt is not an error: operations return None instead.
"""

from typing import Any


class SecretServiceError(Exception):
    """Base exception for all dbus_secrets errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class TransportError(SecretServiceError):
    """Bus connection or method call failed."""

    def __init__(self, message: str, *, name: str | None = None, **context: Any) -> None:
        super().__init__(message, name=name, **context)
        self.name = name


class ConnectionClosedError(TransportError):
    """Connection was closed while an operation was still waiting on it."""

    def __init__(self, message: str = "Bus connection closed") -> None:
        super().__init__(message)


class ProtocolError(SecretServiceError):
    """The daemon replied with a value of unexpected shape."""


class CryptoError(SecretServiceError):
    """Cryptographic operation failed."""


class KeyExchangeError(CryptoError):
    """Diffie-Hellman key agreement failed."""


class DecryptionError(CryptoError):
    """Failed to decrypt a secret received from the daemon."""


class UnsupportedAlgorithmError(SecretServiceError):
    """Requested session encryption is not implemented."""

    def __init__(self, algorithm: str) -> None:
        super().__init__("Unsupported session algorithm", algorithm=algorithm)
        self.algorithm = algorithm
