"""TikTok web X-Bogus signer."""

from typing import Optional

from .xbogus_sign import decode_xbogus, make_xbogus, sign_url


def sign(url: str, user_agent: str, timestamp: Optional[int] = None) -> str:
    return make_xbogus(url, user_agent, timestamp)


def decode(token: str) -> bytes:
    return decode_xbogus(token)


__all__ = [
    "decode",
    "decode_xbogus",
    "make_xbogus",
    "sign",
    "sign_url",
]
