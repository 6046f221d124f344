"""
session.py
==========
msToken / cookie / device-id extraction.

The web search API wants an msToken cookie plus device_id / odinId. Both come
from plain GETs against tiktok.com; this module builds those requests and
parses the responses, sending them is up to the caller.

Usage:
    from tiktok_search.session import ms_token_request, parse_ms_token

    with httpx.Client() as client:
        resp = client.send(ms_token_request(user_agent))
    ms_token = parse_ms_token(resp)
"""

import re
import secrets
from dataclasses import dataclass, field

import httpx

from xbogus.constants import DEFAULT_USER_AGENT

MS_TOKEN_URL = "https://www.tiktok.com/api/recommend/item_list/?aid=1988"
SESSION_URL = "https://www.tiktok.com/search?q=test"

_DEVICE_ID_RE = re.compile(r'"device_id":"(\d+)"')
_ODIN_ID_RE = re.compile(r'"odin_id":"(\d+)"')


@dataclass
class SessionData:
    cookies: dict = field(default_factory=dict)
    device_id: str = ""
    odin_id: str = ""


def ms_token_request(user_agent: str = DEFAULT_USER_AGENT) -> httpx.Request:
    return httpx.Request("GET", MS_TOKEN_URL, headers={"User-Agent": user_agent})


def session_request(user_agent: str = DEFAULT_USER_AGENT) -> httpx.Request:
    return httpx.Request("GET", SESSION_URL, headers={"User-Agent": user_agent})


def _set_cookies(response: httpx.Response):
    for header in response.headers.get_list("set-cookie"):
        name, sep, rest = header.partition("=")
        if not sep:
            continue
        yield name.strip(), rest.split(";", 1)[0].strip()


def parse_ms_token(response: httpx.Response) -> str:
    """
    Pull msToken out of Set-Cookie.

    Raises:
        RuntimeError: response did not set msToken
    """
    for name, value in _set_cookies(response):
        if name == "msToken" and value:
            return value
    raise RuntimeError(f"no msToken in response (status {response.status_code})")


def parse_session_data(response: httpx.Response) -> SessionData:
    """
    Cookies from Set-Cookie, device_id / odin_id from the page body.

    Ids missing from the page are generated, the API accepts any 19-digit id
    starting with 7.
    """
    cookies = dict(_set_cookies(response))
    text = response.text

    m = _DEVICE_ID_RE.search(text)
    device_id = m.group(1) if m else generate_id()
    m = _ODIN_ID_RE.search(text)
    odin_id = m.group(1) if m else generate_id()

    return SessionData(cookies=cookies, device_id=device_id, odin_id=odin_id)


def generate_id() -> str:
    return "7" + str(secrets.randbelow(10 ** 18)).zfill(18)


def cookie_header(cookies: dict) -> str:
    return "; ".join(f"{k}={v}" for k, v in cookies.items())
