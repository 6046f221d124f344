import io
import json
import sys
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from tempfile import TemporaryDirectory
from urllib.parse import parse_qsl

import httpx

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tiktok_search import search_request
from tiktok_search.search_request import (
    DEFAULT_CONFIG,
    SEARCH_URL,
    TikTokSearch,
    build_search_params,
    build_search_url,
    parse_search_response,
)
from tiktok_search.session import (
    MS_TOKEN_URL,
    cookie_header,
    generate_id,
    ms_token_request,
    parse_ms_token,
    parse_session_data,
    session_request,
)
from xbogus.verify_xbogus import split_signed_url, unseal
from xbogus.xbogus_sign import double_md5, make_xbogus, ua_hash

TS = 1700000000
UA = "Mozilla/5.0 test"


def _response(cookies=(), text=""):
    headers = [("set-cookie", c) for c in cookies]
    return httpx.Response(200, headers=headers, text=text)


class SessionTests(unittest.TestCase):

    def test_parse_ms_token(self):
        resp = _response(["ttwid=1%7Cabc; path=/", "msToken=tok_123-xyz==; path=/; secure"])
        self.assertEqual(parse_ms_token(resp), "tok_123-xyz==")

    def test_parse_ms_token_missing(self):
        with self.assertRaises(RuntimeError):
            parse_ms_token(_response(["ttwid=abc; path=/"]))

    def test_parse_session_data(self):
        page = '<script>{"device_id":"7300000000000000001","odin_id":"7300000000000000002"}</script>'
        data = parse_session_data(_response(["ttwid=abc; path=/", "tt_csrf_token=x1; secure"], page))
        self.assertEqual(data.cookies, {"ttwid": "abc", "tt_csrf_token": "x1"})
        self.assertEqual(data.device_id, "7300000000000000001")
        self.assertEqual(data.odin_id, "7300000000000000002")

    def test_parse_session_data_generates_missing_ids(self):
        data = parse_session_data(_response(text="<html></html>"))
        self.assertEqual(data.cookies, {})
        for value in (data.device_id, data.odin_id):
            self.assertEqual(len(value), 19)
            self.assertTrue(value.startswith("7"))
            self.assertTrue(value.isdigit())

    def test_generate_id(self):
        ids = {generate_id() for _ in range(20)}
        self.assertGreater(len(ids), 1)
        self.assertTrue(all(len(i) == 19 and i[0] == "7" for i in ids))

    def test_cookie_header(self):
        self.assertEqual(cookie_header({"a": "1", "b": "2"}), "a=1; b=2")
        self.assertEqual(cookie_header({}), "")

    def test_requests_are_built_not_sent(self):
        req = ms_token_request(UA)
        self.assertEqual(req.method, "GET")
        self.assertEqual(str(req.url), MS_TOKEN_URL)
        self.assertEqual(req.headers["user-agent"], UA)
        self.assertEqual(session_request(UA).url.host, "www.tiktok.com")


class SearchParamsTests(unittest.TestCase):

    def test_params_order_and_values(self):
        params = build_search_params("cats", "ms", "71", "72", TS, user_agent=UA)
        keys = list(params)
        self.assertEqual(keys[0], "WebIdLastTime")
        self.assertEqual(keys[-1], "msToken")
        self.assertEqual(params["WebIdLastTime"], str(TS))
        self.assertEqual(params["browser_version"], "5.0 test")
        self.assertEqual(params["keyword"], "cats")
        self.assertEqual(params["device_id"], "71")
        self.assertEqual(params["odinId"], "72")
        self.assertEqual(
            json.loads(params["web_search_code"])["tiktok"]["client_params_x"]["search_engine"],
            {"ies_mt_user_live_video_card_use_libra": 1, "mt_search_general_user_live_card": 1},
        )
        self.assertNotIn(" ", params["web_search_code"])

    def test_build_search_url(self):
        url = build_search_url(build_search_params("hello world", "ms", "71", "72", TS))
        self.assertTrue(url.startswith(SEARCH_URL + "?WebIdLastTime=1700000000&aid=1988"))
        self.assertIn("keyword=hello+world", url)
        self.assertTrue(url.endswith("&msToken=ms"))
        query = dict(parse_qsl(url.split("?", 1)[1], keep_blank_values=True))
        self.assertEqual(query["keyword"], "hello world")
        self.assertEqual(query["priority_region"], "")

    def test_build_search_url_matches_form_encoding(self):
        url = build_search_url({"keyword": "a*b~c d/e"})
        self.assertEqual(url, SEARCH_URL + "?keyword=a*b%7Ec+d%2Fe")


class TikTokSearchTests(unittest.TestCase):

    def setUp(self) -> None:
        self.tmpdir = TemporaryDirectory()
        self.config_path = Path(self.tmpdir.name) / "config.json"
        self.config_path.write_text(json.dumps({
            "user_agent": UA,
            "ms_token": "ms_abc",
            "device_id": "7000000000000000001",
            "odin_id": "7000000000000000002",
            "cookies": {"ttwid": "abc"},
        }), "utf-8")

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def test_signed_url_verifies(self):
        ts = TikTokSearch(self.config_path)
        signed = ts.signed_url("cats", TS)
        base, token = split_signed_url(signed)
        self.assertTrue(base.endswith("&msToken=ms_abc"))
        self.assertEqual(token, make_xbogus(base, UA, TS))

        fields = unseal(token)
        self.assertEqual(fields.timestamp, TS)
        self.assertEqual(fields.params_tail, double_md5(base)[-4:])
        self.assertEqual(fields.ua_tail, ua_hash(UA)[-4:])

    def test_prepare(self):
        ts = TikTokSearch(self.config_path)
        with redirect_stdout(io.StringIO()):
            req = ts.prepare("hello world", TS)
        self.assertIsInstance(req, httpx.Request)
        self.assertEqual(req.method, "GET")
        self.assertEqual(req.url.path, "/api/search/user/full/")
        self.assertEqual(req.url.params["keyword"], "hello world")
        self.assertEqual(req.url.params["device_id"], "7000000000000000001")
        self.assertEqual(req.url.params["X-Bogus"], make_xbogus(
            split_signed_url(ts.signed_url("hello world", TS))[0], UA, TS))
        self.assertEqual(req.headers["user-agent"], UA)
        self.assertEqual(req.headers["cookie"], "ttwid=abc")
        self.assertEqual(req.headers["referer"], "https://www.tiktok.com/search/user?q=hello%20world")

    def test_missing_config_uses_defaults_and_generates_ids(self):
        path = Path(self.tmpdir.name) / "fresh.json"
        ts = TikTokSearch(path)
        self.assertEqual(ts.cfg["ms_token"], "")
        device_id, odin_id = ts.ensure_ids()
        self.assertEqual(len(device_id), 19)
        saved = json.loads(path.read_text("utf-8"))
        self.assertEqual(saved["device_id"], device_id)
        self.assertEqual(saved["odin_id"], odin_id)
        self.assertEqual(ts.ensure_ids(), (device_id, odin_id))

    def test_no_cookie_header_without_cookies(self):
        path = Path(self.tmpdir.name) / "fresh.json"
        ts = TikTokSearch(path)
        with redirect_stdout(io.StringIO()):
            req = ts.prepare("cats", TS)
        self.assertNotIn("cookie", req.headers)

    def test_update_session(self):
        ts = TikTokSearch(self.config_path)
        page = '{"device_id":"7111111111111111111","odin_id":"7222222222222222222"}'
        with redirect_stdout(io.StringIO()):
            data = ts.update_session(
                _response(["msToken=fresh; path=/"]),
                _response(["ttwid=new; path=/"], page),
            )
        self.assertEqual(data.device_id, "7111111111111111111")
        saved = json.loads(self.config_path.read_text("utf-8"))
        self.assertEqual(saved["ms_token"], "fresh")
        self.assertEqual(saved["cookies"], {"ttwid": "new"})
        self.assertEqual(saved["odin_id"], "7222222222222222222")

    def test_default_cookies_not_shared(self):
        first = TikTokSearch(Path(self.tmpdir.name) / "a.json")
        first.cfg["cookies"]["ttwid"] = "changed"
        second = TikTokSearch(Path(self.tmpdir.name) / "b.json")
        self.assertEqual(second.cfg["cookies"], {})
        self.assertEqual(DEFAULT_CONFIG["cookies"], {})

    def test_update_session_without_ms_token(self):
        ts = TikTokSearch(self.config_path)
        with self.assertRaises(RuntimeError):
            ts.update_session(_response(["ttwid=x"]))


class SearchResponseTests(unittest.TestCase):

    def test_users_listed(self):
        body = json.dumps({"user_list": [
            {"user_info": {"unique_id": f"user{i}", "nickname": f"N{i}", "follower_count": 1000 * i}}
            for i in range(7)
        ]})
        with redirect_stdout(io.StringIO()) as buf:
            users = parse_search_response(httpx.Response(200, text=body))
        self.assertEqual(len(users), 7)
        self.assertEqual(users[0]["user_info"]["unique_id"], "user0")
        out = buf.getvalue()
        self.assertIn("[search] found 7 users", out)
        self.assertIn("@user4", out)
        self.assertIn("4,000 followers", out)
        self.assertNotIn("@user5", out)

    def test_no_users(self):
        with redirect_stdout(io.StringIO()) as buf:
            self.assertEqual(parse_search_response(httpx.Response(200, text='{"user_list":[]}')), [])
        self.assertIn("no users found", buf.getvalue())

    def test_api_error(self):
        resp = httpx.Response(200, text='{"status_code":10201,"status_msg":"Login required"}')
        with self.assertRaises(RuntimeError) as ctx:
            parse_search_response(resp)
        self.assertIn("Login required", str(ctx.exception))

    def test_empty_body(self):
        with self.assertRaises(RuntimeError):
            parse_search_response(httpx.Response(403, text=""))

    def test_not_json(self):
        with redirect_stdout(io.StringIO()) as buf:
            with self.assertRaises(RuntimeError):
                parse_search_response(httpx.Response(200, text="<html>blocked</html>"))
        self.assertIn("<html>blocked</html>", buf.getvalue())


class CLITests(unittest.TestCase):

    def test_usage(self):
        with redirect_stdout(io.StringIO()) as buf:
            self.assertEqual(search_request.main([]), 1)
        self.assertIn("usage", buf.getvalue())

    def test_prints_signed_url(self):
        with TemporaryDirectory() as tmp:
            original = search_request._CONFIG_PATH
            search_request._CONFIG_PATH = Path(tmp) / "config.json"
            try:
                with redirect_stdout(io.StringIO()) as buf:
                    self.assertEqual(search_request.main(["cats"]), 0)
            finally:
                search_request._CONFIG_PATH = original
        out = buf.getvalue().strip()
        self.assertTrue(out.startswith(SEARCH_URL + "?"))
        self.assertIn("&X-Bogus=", out)


if __name__ == "__main__":
    unittest.main()
