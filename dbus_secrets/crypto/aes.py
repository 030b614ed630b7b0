"""
AES-128-CBC with PKCS#7 padding, as used by DH-encrypted sessions.
"""

import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from dbus_secrets.crypto.secure_bytes import SecureBytes
from dbus_secrets.exceptions import CryptoError, DecryptionError

AES_KEY_SIZE = 16
AES_BLOCK_SIZE = 16
_PADDING_BITS = AES_BLOCK_SIZE * 8


def generate_iv() -> bytes:
    """
    Draw a fresh IV from the system CSPRNG.

    Raises:
        CryptoError: If the random source fails.
    """
    try:
        return os.urandom(AES_BLOCK_SIZE)
    except OSError as e:
        raise CryptoError("Failed to generate AES IV") from e


def encrypt_cbc(plaintext: bytes, key: SecureBytes | bytes, iv: bytes) -> bytes:
    """
    Pad and encrypt data.

    Args:
        plaintext: Data to encrypt, any length including zero.
        key: 16-byte AES key.
        iv: 16-byte initialisation vector.

    Returns:
        Ciphertext, always a non-zero multiple of the block size.

    Raises:
        CryptoError: If key or IV sizes are wrong.
    """
    _check_key(key)
    if len(iv) != AES_BLOCK_SIZE:
        raise CryptoError("Invalid AES IV length", length=len(iv))

    padder = padding.PKCS7(_PADDING_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(bytes(key)), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def decrypt_cbc(ciphertext: bytes, key: SecureBytes | bytes, iv: bytes) -> bytes:
    """
    Decrypt data and strip its padding.

    Args:
        ciphertext: Encrypted data.
        key: 16-byte AES key.
        iv: 16-byte initialisation vector.

    Returns:
        Decrypted plaintext.

    Raises:
        DecryptionError: If the IV, ciphertext length or padding is invalid.
    """
    _check_key(key)
    if len(iv) != AES_BLOCK_SIZE:
        raise DecryptionError("Invalid AES IV length", length=len(iv))
    if not ciphertext or len(ciphertext) % AES_BLOCK_SIZE:
        raise DecryptionError("Ciphertext is not a whole number of blocks", length=len(ciphertext))

    decryptor = Cipher(algorithms.AES(bytes(key)), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(_PADDING_BITS).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionError("Invalid PKCS#7 padding") from e


def _check_key(key: SecureBytes | bytes) -> None:
    if len(key) != AES_KEY_SIZE:
        raise CryptoError("Invalid AES key length", length=len(key))
