"""
Message bus access for the Secret Service client.
"""

from dbus_secrets.bus.connection import (
    BusConnection,
    JeepneyConnection,
    SignalCallback,
    SignalSubscription,
)

__all__ = [
    "BusConnection",
    "JeepneyConnection",
    "SignalCallback",
    "SignalSubscription",
]
