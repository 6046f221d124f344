"""
rc4.py
======
RC4 stream cipher as used by X-Bogus.

Every call runs its own key schedule, so the same call both encrypts and
decrypts:

    rc4_crypt(rc4_crypt(data, key), key) == data
"""

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def _key_schedule(key: BytesLike) -> list:
    if not key:
        raise ValueError("rc4 key must not be empty")
    s = list(range(256))
    j = 0
    for i in range(256):
        j = (j + s[i] + key[i % len(key)]) & 0xFF
        s[i], s[j] = s[j], s[i]
    return s


def rc4_crypt(data: BytesLike, key: BytesLike) -> bytes:
    """
    XOR data with the RC4 keystream for key.

    Args:
        data: plaintext or ciphertext
        key: non-empty key bytes

    Returns:
        bytes of the same length as data
    """
    s = _key_schedule(key)
    out = bytearray(len(data))
    i = j = 0
    for n, b in enumerate(data):
        i = (i + 1) & 0xFF
        j = (j + s[i]) & 0xFF
        s[i], s[j] = s[j], s[i]
        out[n] = b ^ s[(s[i] + s[j]) & 0xFF]
    return bytes(out)
