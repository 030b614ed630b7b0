"""
Diffie-Hellman key agreement for "dh-ietf1024-sha256-aes128-cbc-pkcs7" sessions.

Uses the 1024-bit MODP group from RFC 2409 (Oakley group 2) with generator 2.
The shared secret is encoded as a fixed 128-byte big-endian integer and run
through HKDF-SHA256 (no salt, empty info) to produce a 16-byte AES key.
"""

import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from dbus_secrets.crypto.aes import AES_KEY_SIZE
from dbus_secrets.crypto.secure_bytes import SecureBytes
from dbus_secrets.exceptions import CryptoError, KeyExchangeError

DH_GENERATOR = 2
DH_KEY_SIZE = 128

DH_PRIME = int.from_bytes(
    bytes.fromhex(
        "FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD1"
        "29024E088A67CC74020BBEA63B139B22514A08798E3404DD"
        "EF9519B3CD3A431B302B0A6DF25F14374FE1356D6D51C245"
        "E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED"
        "EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE65381"
        "FFFFFFFFFFFFFFFF"
    ),
    "big",
)


def int_to_bytes(value: int) -> bytes:
    """Encode a non-negative integer as minimal unsigned big-endian bytes."""
    return value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")


def _hkdf_sha256(input_key_material: bytes) -> bytes:
    try:
        hkdf = HKDF(algorithm=hashes.SHA256(), length=AES_KEY_SIZE, salt=None, info=b"")
        return hkdf.derive(input_key_material)
    except ValueError as e:
        raise CryptoError("HKDF key derivation failed") from e


class DhKeypair:
    """
    Ephemeral DH keypair used once to open an encrypted session.

    The private exponent lives in a SecureBytes buffer and is zeroed as soon
    as the AES key has been derived, or when the keypair is closed.

    Args:
        private_key: Fixed private exponent bytes, for test vectors only.
            Defaults to 128 bytes from the system CSPRNG.
    """

    def __init__(self, private_key: bytes | None = None) -> None:
        if private_key is None:
            try:
                private_key = os.urandom(DH_KEY_SIZE)
            except OSError as e:
                raise CryptoError("Failed to generate DH private key") from e

        self._private = SecureBytes(private_key, lock=True)
        self._public_key = pow(DH_GENERATOR, self._private.to_int(), DH_PRIME)

    def __enter__(self) -> "DhKeypair":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    @property
    def public_key(self) -> int:
        return self._public_key

    @property
    def public_key_bytes(self) -> bytes:
        """Public key as unsigned big-endian bytes, as sent to OpenSession."""
        return int_to_bytes(self._public_key)

    @property
    def is_consumed(self) -> bool:
        return self._private.is_cleared

    def close(self) -> None:
        """Zero the private exponent. Idempotent."""
        self._private.clear()

    def derive_aes_key(self, server_public_key: bytes) -> SecureBytes:
        """
        Compute the shared secret with the daemon and derive the session key.

        The keypair is consumed: the private exponent is zeroed afterwards,
        whether derivation succeeds or not.

        Args:
            server_public_key: Daemon public key, unsigned big-endian.

        Returns:
            16-byte AES key.

        Raises:
            KeyExchangeError: If the peer key is degenerate or the keypair was consumed.
            CryptoError: If HKDF fails.
        """
        if self.is_consumed:
            raise KeyExchangeError("DH keypair already consumed")

        try:
            peer = int.from_bytes(server_public_key, "big")
            if peer <= 1 or peer >= DH_PRIME - 1:
                raise KeyExchangeError(
                    "Invalid server public key", length=len(server_public_key)
                )

            shared = pow(peer, self._private.to_int(), DH_PRIME)
            # Fixed width: leading zero bytes are part of the HKDF input
            input_key_material = bytearray(shared.to_bytes(DH_KEY_SIZE, "big"))
            try:
                return SecureBytes(_hkdf_sha256(bytes(input_key_material)), lock=True)
            finally:
                for i in range(len(input_key_material)):
                    input_key_material[i] = 0
        finally:
            self.close()
