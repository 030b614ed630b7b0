from unittest.mock import AsyncMock

import pytest

from dbus_secrets.constants import ALGORITHM_DH, SERVICE_INTERFACE, SERVICE_PATH
from dbus_secrets.crypto.aes import AES_BLOCK_SIZE, encrypt_cbc
from dbus_secrets.crypto.secure_bytes import SecureBytes
from dbus_secrets.exceptions import (
    CryptoError,
    DecryptionError,
    ProtocolError,
    TransportError,
    UnsupportedAlgorithmError,
)
from dbus_secrets.models.secret import EncryptionType, Secret
from dbus_secrets.session import DhSession, PlainSession, open_session
from dbus_secrets.tests.utils.fake_daemon import SESSION_PATH, FakeSecretDaemon

KEY = bytes.fromhex("dd7352d648b81b68e7cfbf88f5c3e2ee")


@pytest.mark.asyncio
async def test_open_plain_session_sends_empty_string_input(daemon: FakeSecretDaemon) -> None:
    session = await open_session(daemon, EncryptionType.PLAIN)

    assert isinstance(session, PlainSession)
    assert session.path == SESSION_PATH
    assert not session.is_encrypted
    assert daemon.calls == [
        (SERVICE_PATH, SERVICE_INTERFACE, "OpenSession", ("plain", ("s", "")))
    ]


@pytest.mark.asyncio
async def test_open_dh_session_agrees_on_key_with_daemon(daemon: FakeSecretDaemon) -> None:
    session = await open_session(daemon, EncryptionType.DH)

    assert isinstance(session, DhSession)
    assert session.is_encrypted
    assert bytes(session.aes_key) == daemon.session_key

    _path, _iface, _method, (algorithm, (signature, public_key)) = daemon.calls[0]
    assert algorithm == ALGORITHM_DH
    assert signature == "ay"
    assert isinstance(public_key, bytes)
    assert 0 < len(public_key) <= 128


@pytest.mark.asyncio
async def test_open_dh_session_rejects_wrong_output_variant(daemon: FakeSecretDaemon) -> None:
    daemon.open_session_output = ("s", "")

    with pytest.raises(ProtocolError, match="unexpected output variant"):
        await open_session(daemon, EncryptionType.DH)


@pytest.mark.asyncio
async def test_open_session_rejects_unknown_algorithm(daemon: FakeSecretDaemon) -> None:
    with pytest.raises(UnsupportedAlgorithmError) as exc_info:
        await open_session(daemon, "rsa-oaep")  # type: ignore[arg-type]

    assert exc_info.value.algorithm == "rsa-oaep"
    assert daemon.calls == []


@pytest.mark.asyncio
async def test_open_session_propagates_daemon_errors(daemon: FakeSecretDaemon) -> None:
    daemon.errors["OpenSession"] = TransportError(
        "D-Bus call failed", name="org.freedesktop.DBus.Error.NotSupported"
    )

    with pytest.raises(TransportError) as exc_info:
        await open_session(daemon, EncryptionType.DH)

    assert exc_info.value.name == "org.freedesktop.DBus.Error.NotSupported"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [("only-one",), (("s", ""), 42), (("s", ""), "relative/path"), (("s",), SESSION_PATH)],
    ids=["short", "non-string-path", "relative-path", "bad-variant"],
)
async def test_open_session_rejects_malformed_replies(reply: tuple) -> None:
    connection = AsyncMock()
    connection.call.return_value = reply

    with pytest.raises(ProtocolError):
        await open_session(connection, EncryptionType.PLAIN)


@pytest.mark.asyncio
async def test_open_session_uses_given_service_path(daemon: FakeSecretDaemon) -> None:
    await open_session(daemon, EncryptionType.PLAIN, service_path="/org/example/secrets")

    assert daemon.calls[0][0] == "/org/example/secrets"


def test_plain_session_formats_secret_unchanged() -> None:
    session = PlainSession("/s")

    secret = session.format_secret(b"hi", "text/plain")

    assert secret == Secret(
        session_path="/s", parameters=b"", value=b"hi", content_type="text/plain"
    )
    assert session.decrypt_secret(secret) == b"hi"


def test_dh_session_uses_fresh_iv_for_every_secret() -> None:
    session = DhSession("/s", SecureBytes(KEY))

    ivs = {session.format_secret(b"x", "text/plain").parameters for _ in range(10_000)}

    assert len(ivs) == 10_000
    assert all(len(iv) == AES_BLOCK_SIZE for iv in ivs)


def test_dh_session_formats_secret_that_decrypts_back() -> None:
    session = DhSession("/s", SecureBytes(KEY))

    secret = session.format_secret(b"hunter2", "application/octet-stream")

    assert secret.session_path == "/s"
    assert secret.value != b"hunter2"
    assert secret.value == encrypt_cbc(b"hunter2", KEY, secret.parameters)
    assert secret.content_type == "application/octet-stream"
    assert session.decrypt_secret(secret) == b"hunter2"


def test_dh_session_decrypts_recorded_ciphertext() -> None:
    session = DhSession("/s", SecureBytes(KEY))
    secret = Secret(
        session_path="/s",
        parameters=bytes(16),
        value=bytes.fromhex("0e0488ce723e746faa3bc3de9a3bd3ac"),
        content_type="text/plain",
    )

    assert session.decrypt_secret(secret) == b"secret"


def test_dh_session_rejects_secret_with_bad_iv() -> None:
    session = DhSession("/s", SecureBytes(KEY))
    secret = Secret(session_path="/s", parameters=b"\x00" * 8, value=bytes(16), content_type="")

    with pytest.raises(DecryptionError, match="Invalid AES IV length"):
        session.decrypt_secret(secret)


def test_dh_session_close_zeroes_key() -> None:
    key = SecureBytes(KEY)
    session = DhSession("/s", key)

    session.close()

    assert key.is_cleared


def test_closed_dh_session_refuses_to_format_or_decrypt() -> None:
    session = DhSession("/s", SecureBytes(KEY))
    secret = session.format_secret(b"x", "text/plain")

    session.close()

    with pytest.raises(CryptoError, match="Session is closed"):
        session.format_secret(b"x", "text/plain")
    with pytest.raises(CryptoError, match="Session is closed"):
        session.decrypt_secret(secret)


def test_dh_session_repr_hides_key() -> None:
    session = DhSession("/s", SecureBytes(KEY))

    assert "aes_key" not in repr(session)
