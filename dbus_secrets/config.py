"""
Secret Service client configuration.
"""

from dataclasses import dataclass

from dbus_secrets.constants import ROOT_PATH, SERVICE_NAME, SERVICE_PATH
from dbus_secrets.models.secret import EncryptionType


@dataclass(frozen=True, kw_only=True)
class SecretServiceConfig:
    """
    Attributes:
        bus: Bus to connect to, "SESSION", "SYSTEM" or a D-Bus address.
        encryption: Session algorithm used to transport secrets.
        service_name: Well-known bus name of the secret daemon.
        service_path: Object path of the daemon's Service object.
        window_id: Platform window handle passed to prompts.
        default_content_type: Content type used when none is given.
    """

    bus: str = "SESSION"
    encryption: EncryptionType = EncryptionType.DH
    service_name: str = SERVICE_NAME
    service_path: str = SERVICE_PATH
    window_id: str = ""
    default_content_type: str = "text/plain"

    def __post_init__(self) -> None:
        if not self.bus:
            msg = "bus must not be empty"
            raise ValueError(msg)
        if not self.service_name:
            msg = "service_name must not be empty"
            raise ValueError(msg)
        if not self.service_path.startswith("/") or self.service_path == ROOT_PATH:
            msg = "service_path must be an absolute object path other than '/'"
            raise ValueError(msg)
        if not isinstance(self.encryption, EncryptionType):
            msg = "encryption must be an EncryptionType"
            raise ValueError(msg)
