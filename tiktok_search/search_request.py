"""
search_request.py
=================
TikTok web user-search request builder.

Builds the full search parameter set, signs the url with X-Bogus and returns
an httpx.Request ready to send. The query string is encoded by hand so the
bytes that are signed are the bytes that go on the wire.

Usage:
    python -m tiktok_search.search_request <keyword>
    python -m tiktok_search.search_request gamergirl
"""

import copy
import json
import pathlib
import sys
import time
from urllib.parse import quote, urlencode

import httpx

from xbogus.constants import DEFAULT_USER_AGENT
from xbogus.xbogus_sign import sign_url

from .session import (
    SessionData,
    cookie_header,
    generate_id,
    parse_ms_token,
    parse_session_data,
)

# ── constants ──────────────────────────────────────────────
SEARCH_URL = "https://www.tiktok.com/api/search/user/full/"
_CONFIG_PATH = pathlib.Path(__file__).parent / "config.json"

DEFAULT_CONFIG = {
    "user_agent": DEFAULT_USER_AGENT,
    "ms_token": "",
    "device_id": "",
    "odin_id": "",
    "cookies": {},
    "region": "US",
    "tz_name": "America/Boise",
    "screen_width": 1728,
    "screen_height": 1117,
}


def build_search_params(
    keyword: str,
    ms_token: str,
    device_id: str,
    odin_id: str,
    timestamp: int = None,
    *,
    user_agent: str = DEFAULT_USER_AGENT,
    count: int = 10,
    offset: int = 0,
    region: str = "US",
    tz_name: str = "America/Boise",
    screen_width: int = 1728,
    screen_height: int = 1117,
) -> dict:
    """
    Web search query params, in the order the browser sends them.

    msToken must stay last: the transport appends X-Bogus right after it.
    """
    if timestamp is None:
        timestamp = int(time.time())

    web_search_code = json.dumps(
        {
            "tiktok": {
                "client_params_x": {
                    "search_engine": {
                        "ies_mt_user_live_video_card_use_libra": 1,
                        "mt_search_general_user_live_card": 1,
                    }
                },
                "search_server": {},
            }
        },
        separators=(",", ":"),
    )

    # browser_version is the UA without the leading "Mozilla/"
    browser_version = user_agent.split("/", 1)[1] if "/" in user_agent else user_agent

    return {
        "WebIdLastTime": str(timestamp),
        "aid": "1988",
        "app_language": "en",
        "app_name": "tiktok_web",
        "browser_language": "en-US",
        "browser_name": "Mozilla",
        "browser_online": "true",
        "browser_platform": "MacIntel",
        "browser_version": browser_version,
        "channel": "tiktok_web",
        "cookie_enabled": "true",
        "count": str(count),
        "cursor": str(offset),
        "data_collection_enabled": "false",
        "device_id": device_id,
        "device_platform": "web_pc",
        "focus_state": "true",
        "from_page": "search",
        "history_len": "5",
        "is_fullscreen": "false",
        "is_non_personalized_search": "0",
        "is_page_visible": "true",
        "keyword": keyword,
        "odinId": odin_id,
        "offset": str(offset),
        "os": "mac",
        "priority_region": "",
        "referer": "",
        "region": region,
        "screen_height": str(screen_height),
        "screen_width": str(screen_width),
        "tz_name": tz_name,
        "user_is_login": "false",
        "web_search_code": web_search_code,
        "webcast_language": "en",
        "msToken": ms_token,
    }


def _quote_form(value, *_):
    # URLSearchParams: '*' kept, '~' escaped, space → '+'
    return quote(value, safe="*").replace("~", "%7E").replace("%20", "+")


def build_search_url(params: dict) -> str:
    return f"{SEARCH_URL}?{urlencode(params, quote_via=_quote_form)}"


def parse_search_response(response: httpx.Response, show: int = 5) -> list:
    """
    Read the user list out of a search reply.

    Args:
        response: reply to the request from TikTokSearch.prepare()
        show: how many users to print

    Returns:
        user_list entries (may be empty)

    Raises:
        RuntimeError: empty body, non-JSON body, or status_msg set by the API
    """
    text = response.text
    if not text:
        raise RuntimeError(f"empty search response (status {response.status_code})")

    try:
        data = json.loads(text)
    except ValueError:
        print(f"[search] raw: {text[:500]}")
        raise RuntimeError("search response is not JSON") from None

    if data.get("status_msg"):
        raise RuntimeError(f"search API error: {data['status_msg']}")

    users = data.get("user_list") or []
    if not users:
        print("[search] no users found")
        print(f"[search] response: {text[:300]}")
        return []

    print(f"[search] found {len(users)} users")
    for i, item in enumerate(users[:show], 1):
        user = item.get("user_info", {})
        print(f"[search] {i}. @{user.get('unique_id', '?')}  {user.get('nickname', '')}  "
              f"{user.get('follower_count') or 0:,} followers")
    return users


class TikTokSearch:
    """TikTok user-search request builder."""

    def __init__(self, config_path=_CONFIG_PATH):
        self.config_path = pathlib.Path(config_path)
        self.cfg = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_path.exists():
            self.cfg.update(json.loads(self.config_path.read_text("utf-8")))

    def _save_config(self):
        self.config_path.write_text(
            json.dumps(self.cfg, indent=4, ensure_ascii=False), "utf-8"
        )

    def update_session(
        self,
        ms_token_response: httpx.Response = None,
        session_response: httpx.Response = None,
    ) -> SessionData:
        """
        Store msToken / cookies / ids taken from responses the caller fetched.

        Raises:
            RuntimeError: ms_token_response has no msToken cookie
        """
        if ms_token_response is not None:
            self.cfg["ms_token"] = parse_ms_token(ms_token_response)
            print(f"[search] msToken: {self.cfg['ms_token'][:30]}...")

        data = SessionData(dict(self.cfg["cookies"]), self.cfg["device_id"], self.cfg["odin_id"])
        if session_response is not None:
            data = parse_session_data(session_response)
            self.cfg["cookies"] = data.cookies
            self.cfg["device_id"] = data.device_id
            self.cfg["odin_id"] = data.odin_id
            print(f"[search] cookies: {', '.join(data.cookies) or '-'}")
            print(f"[search] device_id={data.device_id} odinId={data.odin_id}")

        self._save_config()
        return data

    def ensure_ids(self):
        """Fill in device_id / odin_id if the config has none."""
        changed = False
        for key in ("device_id", "odin_id"):
            if not self.cfg.get(key):
                self.cfg[key] = generate_id()
                changed = True
        if changed:
            self._save_config()
        return self.cfg["device_id"], self.cfg["odin_id"]

    def _build_headers(self, keyword: str) -> dict:
        headers = {
            "User-Agent": self.cfg["user_agent"],
            "Accept": "*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": f"https://www.tiktok.com/search/user?q={quote(keyword, safe='')}",
            "sec-ch-ua": '"Google Chrome";v="131", "Chromium";v="131"',
            "sec-ch-ua-mobile": "?0",
            "sec-ch-ua-platform": '"macOS"',
            "sec-fetch-dest": "empty",
            "sec-fetch-mode": "cors",
            "sec-fetch-site": "same-origin",
        }
        if self.cfg["cookies"]:
            headers["Cookie"] = cookie_header(self.cfg["cookies"])
        return headers

    def signed_url(self, keyword: str, timestamp: int = None) -> str:
        if timestamp is None:
            timestamp = int(time.time())
        device_id, odin_id = self.ensure_ids()
        params = build_search_params(
            keyword,
            self.cfg["ms_token"],
            device_id,
            odin_id,
            timestamp,
            user_agent=self.cfg["user_agent"],
            region=self.cfg["region"],
            tz_name=self.cfg["tz_name"],
            screen_width=self.cfg["screen_width"],
            screen_height=self.cfg["screen_height"],
        )
        url = build_search_url(params)
        return sign_url(url, self.cfg["user_agent"], timestamp)

    def prepare(self, keyword: str, timestamp: int = None) -> httpx.Request:
        """
        Build the signed search request.

        Args:
            keyword: search keyword
            timestamp: unix seconds for WebIdLastTime and X-Bogus, defaults to now

        Returns:
            httpx.Request, not sent
        """
        if not self.cfg["ms_token"]:
            print("[search] no msToken in config, request will likely be rejected")
        url = self.signed_url(keyword, timestamp)
        print(f"[search] GET {SEARCH_URL} keyword={keyword!r} url_len={len(url)}")
        return httpx.Request("GET", url, headers=self._build_headers(keyword))


# ── CLI entry ──────────────────────────────────────────────

def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("usage: python -m tiktok_search.search_request <keyword>")
        print("example: python -m tiktok_search.search_request gamergirl")
        return 1

    ts = TikTokSearch(_CONFIG_PATH)
    print(ts.signed_url(args[0]))
    return 0


if __name__ == "__main__":
    sys.exit(main())
