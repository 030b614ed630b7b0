"""
Freedesktop Secret Service client.

An async Python client for the D-Bus Secret Service API (GNOME Keyring,
KWallet, KeePassXC...), with DH-negotiated AES transport encryption.

Example:
    ```python
    from dbus_secrets import EncryptionType, SecretService

    async with await SecretService.connect(EncryptionType.DH) as service:
        collection = await service.default_collection()
        item = await collection.create_item("token", {"app": "demo"}, b"s3cr3t")

        unlocked, locked = await service.search_items({"app": "demo"})
        print(await unlocked[0].get_secret())
    ```
"""

from dbus_secrets.bus.connection import BusConnection, JeepneyConnection
from dbus_secrets.client import SecretService
from dbus_secrets.config import SecretServiceConfig
from dbus_secrets.exceptions import (
    ConnectionClosedError,
    CryptoError,
    DecryptionError,
    KeyExchangeError,
    ProtocolError,
    SecretServiceError,
    TransportError,
    UnsupportedAlgorithmError,
)
from dbus_secrets.models.secret import EncryptionType, Secret
from dbus_secrets.services.collection import Collection
from dbus_secrets.services.item import Item
from dbus_secrets.session import DhSession, PlainSession, Session

__version__ = "0.1.0"

__all__ = [
    # Main client
    "SecretService",
    "SecretServiceConfig",
    "BusConnection",
    "JeepneyConnection",
    # Models
    "Collection",
    "Item",
    "Secret",
    "EncryptionType",
    "Session",
    "PlainSession",
    "DhSession",
    # Exceptions
    "SecretServiceError",
    "TransportError",
    "ConnectionClosedError",
    "ProtocolError",
    "CryptoError",
    "KeyExchangeError",
    "DecryptionError",
    "UnsupportedAlgorithmError",
]
