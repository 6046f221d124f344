"""
shift_b64.py
============
Base64 over the X-Bogus alphabet ("Dkdpgh4ZKs...").

Same bit layout as standard base64, but no "=" is ever emitted: a trailing
group of 1 byte gives 2 symbols, 2 bytes give 3 symbols.

Usage:
    from xbogus.shift_b64 import encode, decode

    encode(b"hello world")         # → "54Xu-4SEU9tn-4f"
    decode("54Xu-4SEU9tn-4f")      # → b"hello world"
"""

from .constants import PAD_VALUE, SHIFT_ALPHABET

_INDEX = {ch: i for i, ch in enumerate(SHIFT_ALPHABET)}


def encode(data) -> str:
    out = []
    for i in range(0, len(data), 3):
        group = data[i:i + 3]
        chunk = group[0] << 16
        if len(group) > 1:
            chunk |= group[1] << 8
        if len(group) > 2:
            chunk |= group[2]

        out.append(SHIFT_ALPHABET[(chunk >> 18) & 0x3F])
        out.append(SHIFT_ALPHABET[(chunk >> 12) & 0x3F])
        if len(group) > 1:
            out.append(SHIFT_ALPHABET[(chunk >> 6) & 0x3F])
        if len(group) > 2:
            out.append(SHIFT_ALPHABET[chunk & 0x3F])
    return "".join(out)


def decode(text: str, strict: bool = False) -> bytes:
    """
    Inverse of encode().

    A short final quartet is padded with PAD_VALUE. In lenient mode unknown
    symbols also become PAD_VALUE: in position 3/4 they drop that byte, in
    position 1/2 they end the output. Malformed tokens therefore come back
    truncated rather than raising.

    Args:
        text: encoded string
        strict: raise ValueError on symbols outside the alphabet

    Returns:
        decoded bytes
    """
    out = bytearray()
    for i in range(0, len(text), 4):
        quad = []
        for ch in text[i:i + 4]:
            v = _INDEX.get(ch, PAD_VALUE)
            if v == PAD_VALUE and strict:
                raise ValueError(f"invalid symbol {ch!r} at offset {i + len(quad)}")
            quad.append(v)
        quad += [PAD_VALUE] * (4 - len(quad))
        a, b, c, d = quad

        if a == PAD_VALUE or b == PAD_VALUE:
            break
        out.append(((a << 2) | (b >> 4)) & 0xFF)
        if c != PAD_VALUE:
            out.append(((b << 4) | (c >> 2)) & 0xFF)
        if d != PAD_VALUE:
            out.append(((c << 6) | d) & 0xFF)
    return bytes(out)
