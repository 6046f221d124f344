"""
xbogus_sign.py
==============
TikTok web X-Bogus signature (webmssdk, reversed by hand).

Usage:
    from xbogus.xbogus_sign import make_xbogus, sign_url

    # token only
    token = make_xbogus(url, user_agent)

    # url with X-Bogus appended (most common)
    signed = sign_url(url, user_agent)
    # → "https://www.tiktok.com/api/...&X-Bogus=DFSz..."

    # CLI
    python -m xbogus.xbogus_sign "<url>" ["<user_agent>"] [timestamp]

Pipeline:
    md5(md5(url)), md5(md5(body)), md5(b64(rc4(ua, [0,1,14])))
      → 23-byte frame (ts, magic, flags, 3 hash tails, ts, xor checksum)
      → select 19 bytes → interleave halves
      → rc4(·, [255]) → [2, 255] + · → custom base64

decode_xbogus() only strips the base64 layer; use verify_xbogus.unseal() to
look inside a token.
"""

import hashlib
import struct
import sys
import time
from typing import Callable, Optional
from urllib.parse import quote

from . import shift_b64
from .constants import (
    DEFAULT_USER_AGENT,
    FLAG_BYTES,
    HASH_TAIL_CHARS,
    MAGIC_NUMBER,
    QUERY_PARAM,
    RC4_FINAL_KEY,
    RC4_UA_KEY,
    SELECT_INDICES,
    TOKEN_PREFIX,
)
from .rc4 import rc4_crypt

Trace = Callable[[str, object], None]


def _to_bytes(data) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


# ── hash derivation ───────────────────────────────────────

def double_md5(data) -> str:
    """md5 hex of the md5 hex string of data."""
    first = hashlib.md5(_to_bytes(data)).hexdigest()
    return hashlib.md5(first.encode("ascii")).hexdigest()


def ua_hash(user_agent: str) -> str:
    """md5 hex of custom-base64(rc4(ua, [0, 1, 14]))."""
    encrypted = rc4_crypt(_to_bytes(user_agent), RC4_UA_KEY)
    return hashlib.md5(shift_b64.encode(encrypted).encode("ascii")).hexdigest()


# ── frame ──────────────────────────────────────────────────

def build_frame(timestamp: int, params_hash: str, body_hash: str, ua_digest: str) -> bytes:
    """
    Assemble the 23-byte frame.

    Layout:
        0..3    timestamp (LE)
        4..7    MAGIC_NUMBER (LE)
        8..11   0, 1, 14, 0
        12..13  params hash tail
        14..15  body hash tail
        16..17  ua hash tail
        18..21  timestamp (LE)
        22      xor of bytes 0..21
    """
    ts = struct.pack("<I", timestamp & 0xFFFFFFFF)

    frame = bytearray(ts)
    frame += struct.pack("<I", MAGIC_NUMBER)
    frame += FLAG_BYTES
    for digest in (params_hash, body_hash, ua_digest):
        frame += bytes.fromhex(digest[-HASH_TAIL_CHARS:])
    frame += ts

    checksum = 0
    for b in frame:
        checksum ^= b
    frame.append(checksum)

    return bytes(frame)


# ── permutation ────────────────────────────────────────────

def filter_bytes(frame) -> bytes:
    """Pick SELECT_INDICES out of the frame; the tail (incl. checksum) is dropped."""
    return bytes(frame[i] for i in SELECT_INDICES if i < len(frame))


def scramble_bytes(data) -> bytes:
    """Interleave the two halves: d[0], d[m], d[1], d[m+1], ..., odd tail last."""
    mid = len(data) // 2
    out = bytearray()
    for i in range(mid):
        out.append(data[i])
        out.append(data[i + mid])
    if len(data) % 2:
        out.append(data[-1])
    return bytes(out)


# ── signer ─────────────────────────────────────────────────

def make_xbogus(
    url: str,
    user_agent: str,
    timestamp: Optional[int] = None,
    *,
    body="",
    trace: Optional[Trace] = None,
) -> str:
    """
    Compute the X-Bogus token for a request.

    Args:
        url: full request url, hashed as-is (not re-parsed)
        user_agent: User-Agent header the request will be sent with
        timestamp: unix seconds, defaults to now; wraps at 32 bits
        body: request body, empty for GET
        trace: optional callback(stage, value) called after every stage

    Returns:
        28-character token
    """
    if timestamp is None:
        timestamp = int(time.time())

    def emit(stage, value):
        if trace is not None:
            trace(stage, value)
        return value

    params_hash = emit("params_hash", double_md5(url))
    body_hash = emit("body_hash", double_md5(body))
    ua_digest = emit("ua_hash", ua_hash(user_agent))

    frame = emit("frame", build_frame(timestamp, params_hash, body_hash, ua_digest))
    filtered = emit("filtered", filter_bytes(frame))
    scrambled = emit("scrambled", scramble_bytes(filtered))
    encrypted = emit("encrypted", rc4_crypt(scrambled, RC4_FINAL_KEY))

    return emit("token", shift_b64.encode(TOKEN_PREFIX + encrypted))


def decode_xbogus(token: str, strict: bool = False) -> bytes:
    """
    Structural decode: custom base64 → prefix + ciphertext bytes.

    This does NOT recover the frame; decode_xbogus(make_xbogus(url, ...))
    is not url.
    """
    return shift_b64.decode(token, strict=strict)


def sign_url(url: str, user_agent: str, timestamp: Optional[int] = None) -> str:
    """Return url with X-Bogus appended (token computed over url itself)."""
    token = make_xbogus(url, user_agent, timestamp)
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{QUERY_PARAM}={quote(token, safe='')}"


# ── CLI entry ──────────────────────────────────────────────

def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args or not args[0]:
        print('usage: python -m xbogus.xbogus_sign "<url>" ["<user_agent>"] [timestamp]',
              file=sys.stderr)
        return 1

    url = args[0]
    user_agent = args[1] if len(args) > 1 else DEFAULT_USER_AGENT
    try:
        timestamp = int(args[2]) if len(args) > 2 else None
    except ValueError:
        print(f"[xbogus] timestamp must be an integer: {args[2]!r}", file=sys.stderr)
        return 1

    print(make_xbogus(url, user_agent, timestamp))
    return 0


if __name__ == "__main__":
    sys.exit(main())
