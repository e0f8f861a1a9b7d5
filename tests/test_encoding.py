from __future__ import annotations

import unittest
from urllib.parse import parse_qsl, unquote, urlsplit

from gareporter.encoding import BASE_URL, RequestEncoder, build_query, escape
from gareporter.errors import EncodingError


class EscapeTests(unittest.TestCase):
    def test_roundtrips_awkward_values(self) -> None:
        values = ["", "plain", "with space", "a&b=c", "100%", "1+1", "héllo wörld", "日本語", "emoji 🎬"]
        for value in values:
            with self.subTest(value=value):
                self.assertEqual(unquote(escape(value)), value)

    def test_escapes_query_delimiters(self) -> None:
        self.assertEqual(escape("a&b=c"), "a%26b%3Dc")
        self.assertEqual(escape("1+1"), "1%2B1")
        self.assertEqual(escape("100%"), "100%25")

    def test_keeps_path_characters(self) -> None:
        self.assertEqual(escape("/Settings"), "/Settings")
        self.assertEqual(escape("Mozilla/5.0 (X11; Linux)"), "Mozilla/5.0%20(X11%3B%20Linux)")
        self.assertEqual(escape("a-b_c.d~e"), "a-b_c.d~e")

    def test_encodes_unicode_as_utf8(self) -> None:
        self.assertEqual(escape("é"), "%C3%A9")


class BuildQueryTests(unittest.TestCase):
    def test_preserves_insertion_order_without_trailing_separator(self) -> None:
        query = build_query({"v": "1", "tid": "UA-1-1", "el": ""})
        self.assertEqual(query, "v=1&tid=UA-1-1&el=")
        self.assertFalse(query.endswith("&"))

    def test_values_never_split_pairs(self) -> None:
        params = {"ec": "a&b", "ea": "x=y", "el": "50% off"}
        query = build_query(params)
        self.assertEqual(len(query.split("&")), 3)
        for pair in query.split("&"):
            self.assertEqual(pair.count("="), 1)
        self.assertEqual(dict(parse_qsl(query, keep_blank_values=True)), params)

    def test_empty_mapping(self) -> None:
        self.assertEqual(build_query({}), "")


class RequestEncoderTests(unittest.TestCase):
    def test_resolves_against_collect_endpoint(self) -> None:
        request = RequestEncoder().encode({"v": "1", "dt": "Settings Page"})
        self.assertEqual(request.query, "v=1&dt=Settings%20Page")
        self.assertTrue(request.url.startswith(f"{BASE_URL}collect?"))
        parts = urlsplit(request.url)
        self.assertEqual(parts.netloc, "www.google-analytics.com")
        self.assertEqual(parts.path, "/collect")
        self.assertEqual(parts.query, request.query)

    def test_oversized_url_is_an_encoding_error(self) -> None:
        with self.assertRaises(EncodingError) as ctx:
            RequestEncoder().encode({"el": "a" * 70000})
        self.assertEqual(ctx.exception.reason, "invalid_url")

    def test_relative_base_is_an_encoding_error(self) -> None:
        with self.assertRaises(EncodingError):
            RequestEncoder(base_url="not-a-host").encode({"v": "1"})

    def test_lone_surrogate_is_an_encoding_error(self) -> None:
        with self.assertRaises(EncodingError):
            RequestEncoder().encode({"el": "\ud800"})


if __name__ == "__main__":
    unittest.main()
