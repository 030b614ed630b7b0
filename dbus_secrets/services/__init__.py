"""
Object handles and prompt handling for the Secret Service.
"""

from dbus_secrets.services.collection import Collection
from dbus_secrets.services.item import Item
from dbus_secrets.services.prompt import lock_or_unlock, prompt

__all__ = [
    "Collection",
    "Item",
    "lock_or_unlock",
    "prompt",
]
