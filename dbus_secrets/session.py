"""
Transport sessions negotiated with the secret daemon.

A session is either plain (secrets cross the bus unencrypted) or DH
(secrets are AES-128-CBC encrypted under a key agreed with the daemon).
Both variants expose the same operations: ``path``, ``format_secret`` and
``decrypt_secret``.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

import structlog

from dbus_secrets.bus.connection import BusConnection
from dbus_secrets.constants import SERVICE_INTERFACE, SERVICE_PATH
from dbus_secrets.crypto.aes import decrypt_cbc, encrypt_cbc, generate_iv
from dbus_secrets.crypto.dh import DhKeypair
from dbus_secrets.crypto.secure_bytes import SecureBytes
from dbus_secrets.exceptions import CryptoError, ProtocolError, UnsupportedAlgorithmError
from dbus_secrets.models.secret import EncryptionType, ObjectPath, Secret

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlainSession:
    """Session that carries secrets as cleartext over the (local) bus."""

    path: ObjectPath
    encryption: ClassVar[EncryptionType] = EncryptionType.PLAIN

    @property
    def is_encrypted(self) -> bool:
        return False

    def format_secret(self, data: bytes, content_type: str) -> Secret:
        return Secret(
            session_path=self.path,
            parameters=b"",
            value=bytes(data),
            content_type=content_type,
        )

    def decrypt_secret(self, secret: Secret) -> bytes:
        return secret.value

    def close(self) -> None:
        pass


@dataclass(frozen=True, eq=False)
class DhSession:
    """
    Session whose secrets are encrypted with a DH-negotiated AES key.

    The key is fixed at open time and shared read-only by every
    format/decrypt call. A fresh IV is drawn for every formatted secret.
    """

    path: ObjectPath
    aes_key: SecureBytes = field(repr=False)
    encryption: ClassVar[EncryptionType] = EncryptionType.DH

    @property
    def is_encrypted(self) -> bool:
        return True

    def format_secret(self, data: bytes, content_type: str) -> Secret:
        """
        Encrypt data for sending to the daemon.

        Raises:
            CryptoError: If the session is closed, or IV generation or
                encryption fails.
        """
        self._check_open()
        iv = generate_iv()
        ciphertext = encrypt_cbc(bytes(data), self.aes_key, iv)
        return Secret(
            session_path=self.path,
            parameters=iv,
            value=ciphertext,
            content_type=content_type,
        )

    def decrypt_secret(self, secret: Secret) -> bytes:
        """
        Decrypt a secret received from the daemon.

        Raises:
            CryptoError: If the session is closed.
            DecryptionError: If the IV length or padding is invalid.
        """
        self._check_open()
        return decrypt_cbc(secret.value, self.aes_key, secret.parameters)

    def close(self) -> None:
        """Zero the AES key. The session cannot be used afterwards."""
        self.aes_key.clear()

    def _check_open(self) -> None:
        if self.aes_key.is_cleared:
            raise CryptoError("Session is closed", path=self.path)


Session = PlainSession | DhSession


async def open_session(
    connection: BusConnection,
    encryption: EncryptionType,
    *,
    service_path: str = SERVICE_PATH,
) -> Session:
    """
    Open a transport session with the daemon.

    Args:
        connection: Bus connection to the daemon.
        encryption: Session algorithm to negotiate.
        service_path: Object path of the daemon's Service object.

    Returns:
        The opened session.

    Raises:
        TransportError: If OpenSession fails.
        ProtocolError: If the daemon's reply has the wrong shape.
        CryptoError: If key agreement fails.
        UnsupportedAlgorithmError: If ``encryption`` is not implemented.
    """
    match encryption:
        case EncryptionType.PLAIN:
            session: Session = await _open_plain_session(connection, service_path)
        case EncryptionType.DH:
            session = await _open_dh_session(connection, service_path)
        case _:
            raise UnsupportedAlgorithmError(str(encryption))

    logger.debug("Session opened", algorithm=str(encryption), path=session.path)
    return session


async def _open_plain_session(connection: BusConnection, service_path: str) -> PlainSession:
    _output, path = await _call_open_session(
        connection, service_path, EncryptionType.PLAIN, ("s", "")
    )
    return PlainSession(path)


async def _open_dh_session(connection: BusConnection, service_path: str) -> DhSession:
    with DhKeypair() as keypair:
        output, path = await _call_open_session(
            connection, service_path, EncryptionType.DH, ("ay", keypair.public_key_bytes)
        )

        signature, server_public_key = output
        if signature != "ay" or not isinstance(server_public_key, (bytes, bytearray)):
            raise ProtocolError(
                "OpenSession returned an unexpected output variant", signature=signature
            )

        aes_key = keypair.derive_aes_key(bytes(server_public_key))

    return DhSession(path, aes_key)


async def _call_open_session(
    connection: BusConnection,
    service_path: str,
    encryption: EncryptionType,
    session_input: tuple[str, Any],
) -> tuple[tuple[str, Any], ObjectPath]:
    reply = await connection.call(
        service_path, SERVICE_INTERFACE, "OpenSession", "sv", str(encryption), session_input
    )
    try:
        output, path = reply
        _signature, _value = output
    except (TypeError, ValueError) as e:
        raise ProtocolError("Malformed OpenSession reply") from e
    if not isinstance(path, str) or not path.startswith("/"):
        raise ProtocolError("OpenSession returned an invalid session path", path=path)
    return output, path
