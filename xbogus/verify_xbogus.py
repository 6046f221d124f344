"""
verify_xbogus.py - unseal / verify a captured X-Bogus

The last rc4 pass always restarts from key [255], so a captured token can be
peeled back to the 19 frame bytes that were transmitted: timestamp, magic,
flags and the three hash tails. From there the token is recomputed and
compared field by field.

Usage:
  1. paste a captured request url (with &X-Bogus=...) into RAW_URL, or pass
     it on the command line
  2. python -m xbogus.verify_xbogus ["<signed_url>"] ["<user_agent>"]
"""

import struct
import sys
from dataclasses import dataclass
from urllib.parse import unquote

from . import shift_b64
from .constants import (
    FLAG_BYTES,
    HASH_TAIL_CHARS,
    MAGIC_NUMBER,
    QUERY_PARAM,
    RC4_FINAL_KEY,
    SELECT_INDICES,
    TOKEN_PREFIX,
)
from .rc4 import rc4_crypt
from .xbogus_sign import double_md5, make_xbogus, ua_hash

# ─── paste the captured url here ──────────────────────────────
RAW_URL = (
    "https://www.tiktok.com/api/search/user/full/?aid=1988&keyword=test"
    "&X-Bogus=DFtzs1rXVpR-pNbPq-IR-xqismO9"
)
RAW_UA = "Mozilla/5.0 test"
# ────────────────────────────────────────────────────────────────


@dataclass
class TokenFields:
    frame: bytes          # frame bytes 0..18 as transmitted
    timestamp: int
    magic: int
    flags: bytes
    params_tail: str
    body_tail: str
    ua_tail: str
    ts_low: int           # byte 18, low byte of the repeated timestamp


def unscramble_bytes(data) -> bytes:
    mid = len(data) // 2
    out = bytearray(len(data))
    for i in range(mid):
        out[i] = data[2 * i]
        out[i + mid] = data[2 * i + 1]
    if len(data) % 2:
        out[-1] = data[-1]
    return bytes(out)


def unfilter_bytes(filtered) -> bytes:
    frame = bytearray(max(SELECT_INDICES) + 1)
    for b, i in zip(filtered, SELECT_INDICES):
        frame[i] = b
    return bytes(frame)


def unseal(token: str) -> TokenFields:
    """
    Recover the transmitted frame bytes from a token.

    Raises:
        ValueError: token is not a well-formed X-Bogus value
    """
    raw = shift_b64.decode(token, strict=True)
    expected_len = len(TOKEN_PREFIX) + len(SELECT_INDICES)
    if len(raw) != expected_len:
        raise ValueError(f"token decodes to {len(raw)} bytes, expected {expected_len}")
    if raw[:len(TOKEN_PREFIX)] != TOKEN_PREFIX:
        raise ValueError(f"bad token prefix: {list(raw[:len(TOKEN_PREFIX)])}")

    scrambled = rc4_crypt(raw[len(TOKEN_PREFIX):], RC4_FINAL_KEY)
    frame = unfilter_bytes(unscramble_bytes(scrambled))

    timestamp, magic = struct.unpack("<II", frame[:8])
    return TokenFields(
        frame=frame,
        timestamp=timestamp,
        magic=magic,
        flags=frame[8:12],
        params_tail=frame[12:14].hex(),
        body_tail=frame[14:16].hex(),
        ua_tail=frame[16:18].hex(),
        ts_low=frame[18],
    )


def split_signed_url(signed_url: str):
    """'<base>&X-Bogus=<tok>[&...]' → (base, token)."""
    for sep in "&?":
        marker = f"{sep}{QUERY_PARAM}="
        pos = signed_url.find(marker)
        if pos >= 0:
            break
    else:
        raise ValueError(f"no {QUERY_PARAM} parameter in url")
    base = signed_url[:pos]
    value = signed_url[pos + len(marker):].split("&", 1)[0]
    return base, unquote(value)


def verify(signed_url: str, user_agent: str) -> bool:
    base, captured = split_signed_url(signed_url)
    fields = unseal(captured)

    print(f"[*] url      : {base[:120]}{'...' if len(base) > 120 else ''}")
    print(f"[*] X-Bogus  : {captured}")
    print(f"[*] frame    : {fields.frame.hex()}")
    print(f"[*] timestamp: {fields.timestamp}")

    checks = [
        ("magic", fields.magic, MAGIC_NUMBER),
        ("flags", fields.flags.hex(), FLAG_BYTES.hex()),
        ("params", fields.params_tail, double_md5(base)[-HASH_TAIL_CHARS:]),
        ("body", fields.body_tail, double_md5("")[-HASH_TAIL_CHARS:]),
        ("ua", fields.ua_tail, ua_hash(user_agent)[-HASH_TAIL_CHARS:]),
        ("ts[18]", fields.ts_low, fields.timestamp & 0xFF),
    ]
    ok = True
    print()
    for name, got, want in checks:
        match = got == want
        ok = ok and match
        print(f"  {name:<7} {got!s:<12} {want!s:<12} {'✅' if match else '❌'}")

    computed = make_xbogus(base, user_agent, fields.timestamp)
    print(f"\n[*] captured X-Bogus: {captured}")
    print(f"[*] computed X-Bogus: {computed}")

    if computed == captured and ok:
        print("\n✅ match, algorithm agrees with capture")
        return True

    print("\n❌ mismatch, likely causes:")
    print("   1. user-agent differs from the one the request was sent with (ua row ❌)")
    print("   2. url was re-encoded after signing (params row ❌)")
    print("   3. protocol constants changed (magic / flags row ❌), re-extract from webmssdk")
    return False


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else RAW_URL
    ua = sys.argv[2] if len(sys.argv) > 2 else RAW_UA
    sys.exit(0 if verify(url, ua) else 1)
