"""
Domain models for the Secret Service client.
"""

from dbus_secrets.models.secret import EncryptionType, ObjectPath, Secret, is_root

__all__ = [
    "EncryptionType",
    "ObjectPath",
    "Secret",
    "is_root",
]
