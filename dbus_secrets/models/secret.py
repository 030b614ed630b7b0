"""
Secret transport domain models.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from dbus_secrets.constants import ALGORITHM_DH, ALGORITHM_PLAIN, ROOT_PATH
from dbus_secrets.exceptions import ProtocolError

ObjectPath = str


def is_root(path: ObjectPath) -> bool:
    """Check whether a path is the "/" placeholder meaning "no object"."""
    return path == ROOT_PATH


class EncryptionType(StrEnum):
    """Session algorithms, valued by their wire identifiers."""

    PLAIN = ALGORITHM_PLAIN
    DH = ALGORITHM_DH


@dataclass(frozen=True, kw_only=True)
class Secret:
    """
    A secret as carried over the bus, signature ``(oayays)``.

    Attributes:
        session_path: Session the value was formatted for.
        parameters: AES IV for DH sessions, empty for plain sessions.
        value: Ciphertext for DH sessions, raw secret for plain sessions.
        content_type: Opaque MIME-style type, transmitted verbatim.
    """

    session_path: ObjectPath
    parameters: bytes
    value: bytes
    content_type: str

    def __repr__(self) -> str:
        return (
            f"Secret(session_path={self.session_path!r}, "
            f"parameters=<{len(self.parameters)} bytes>, "
            f"value=<{len(self.value)} bytes>, content_type={self.content_type!r})"
        )

    def to_dbus(self) -> tuple[str, bytes, bytes, str]:
        """Convert to the struct body jeepney serialises as ``(oayays)``."""
        return (self.session_path, self.parameters, self.value, self.content_type)

    @classmethod
    def from_dbus(cls, data: Any) -> "Secret":
        """
        Build a Secret from a ``(oayays)`` reply struct.

        Raises:
            ProtocolError: If the struct does not have four fields of the right types.
        """
        try:
            session_path, parameters, value, content_type = data
        except (TypeError, ValueError) as e:
            raise ProtocolError("Malformed secret struct") from e

        if not isinstance(session_path, str) or not isinstance(content_type, str):
            raise ProtocolError("Malformed secret struct")
        if not isinstance(parameters, (bytes, bytearray)) or not isinstance(
            value, (bytes, bytearray)
        ):
            raise ProtocolError("Malformed secret struct")

        return cls(
            session_path=session_path,
            parameters=bytes(parameters),
            value=bytes(value),
            content_type=content_type,
        )
