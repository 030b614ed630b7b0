"""Zero-on-drop buffers for session key material (AES keys, DH exponents)."""

import ctypes
import ctypes.util
import hmac
import warnings
from typing import Self

try:
    _libc = ctypes.CDLL(ctypes.util.find_library("c") or "libc.so.6", use_errno=True)
    _libc.mlock.argtypes = [ctypes.c_void_p, ctypes.c_size_t]
    _libc.mlock.restype = ctypes.c_int
    _libc.munlock.argtypes = [ctypes.c_void_p, ctypes.c_size_t]
    _libc.munlock.restype = ctypes.c_int
except (OSError, AttributeError):
    _libc = None


def _buffer_address(data: bytearray) -> int:
    return ctypes.addressof((ctypes.c_char * len(data)).from_buffer(data))


def _secure_zero(data: bytearray) -> None:
    if len(data) == 0:
        return
    try:
        ctypes.memset(_buffer_address(data), 0, len(data))
    except (TypeError, ValueError, BufferError) as exc:
        warnings.warn(f"ctypes.memset failed, using fallback: {exc}", RuntimeWarning)
        for i in range(len(data)):
            data[i] = 0


def _mlock(data: bytearray) -> bool:
    if _libc is None or len(data) == 0:
        return False
    try:
        return _libc.mlock(_buffer_address(data), len(data)) == 0
    except (TypeError, ValueError, BufferError):
        return False


def _munlock(data: bytearray) -> None:
    if _libc is None or len(data) == 0:
        return
    try:
        _libc.munlock(_buffer_address(data), len(data))
    except (TypeError, ValueError, BufferError):
        pass


class SecureBytes:
    """
    Byte buffer that is zeroed when cleared or garbage collected.

    Memory locking is best effort: if mlock is unavailable or fails
    (RLIMIT_MEMLOCK), the buffer is still zeroed on clear.
    """

    __slots__ = ("_data", "_cleared", "_locked")

    def __init__(self, data: bytes | bytearray, *, lock: bool = False) -> None:
        self._data = bytearray(data)
        self._cleared = False
        self._locked = lock and _mlock(self._data)

    def __del__(self) -> None:
        self.clear()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_: object) -> None:
        self.clear()

    def clear(self) -> None:
        """Zero memory and unlock. Idempotent."""
        if self._cleared:
            return
        _secure_zero(self._data)
        if self._locked:
            _munlock(self._data)
            self._locked = False
        self._cleared = True

    def __bytes__(self) -> bytes:
        """Warning: creates an unmanaged copy."""
        self._check_cleared()
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return not self._cleared and len(self._data) > 0

    def __repr__(self) -> str:
        if self._cleared:
            return "SecureBytes(<cleared>)"
        return f"SecureBytes(<{len(self._data)} bytes>)"

    def __eq__(self, other: object) -> bool:
        """Constant-time comparison."""
        if isinstance(other, SecureBytes):
            if self._cleared or other._cleared:
                return False
            return hmac.compare_digest(self._data, other._data)
        if isinstance(other, (bytes, bytearray)):
            if self._cleared:
                return False
            return hmac.compare_digest(self._data, other)
        return NotImplemented

    def __hash__(self) -> int:
        raise TypeError("SecureBytes is not hashable")

    @property
    def is_cleared(self) -> bool:
        return self._cleared

    @property
    def is_locked(self) -> bool:
        return self._locked

    def to_int(self) -> int:
        """Interpret the buffer as an unsigned big-endian integer."""
        self._check_cleared()
        return int.from_bytes(self._data, "big")

    def _check_cleared(self) -> None:
        if self._cleared:
            raise RuntimeError("SecureBytes has been cleared")
