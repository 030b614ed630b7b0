"""
Cryptographic primitives for encrypted Secret Service sessions.

This module provides:
- Diffie-Hellman key agreement over the RFC 2409 1024-bit MODP group
- HKDF-SHA256 derivation of the session AES key
- AES-128-CBC encryption with PKCS#7 padding
- Zero-on-drop storage for key material
"""

from dbus_secrets.crypto.aes import decrypt_cbc, encrypt_cbc, generate_iv
from dbus_secrets.crypto.dh import DH_GENERATOR, DH_PRIME, DhKeypair
from dbus_secrets.crypto.secure_bytes import SecureBytes

__all__ = [
    "DH_GENERATOR",
    "DH_PRIME",
    "DhKeypair",
    "SecureBytes",
    "decrypt_cbc",
    "encrypt_cbc",
    "generate_iv",
]
