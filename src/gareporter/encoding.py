"""Query-string encoding and URL resolution for `collect` hits."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from gareporter.errors import EncodingError

BASE_URL = "https://www.google-analytics.com/"
COLLECT_PATH = "collect"

# Path-allowed sub-delimiters; unreserved characters are always kept by quote().
# "&", "=" and "+" are left out so a value can never split a pair.
PATH_SAFE = "!$'()*,/:@"


@dataclass(frozen=True, slots=True)
class TrackingRequest:
    url: str
    query: str


def escape(value: str) -> str:
    return quote(value, safe=PATH_SAFE, encoding="utf-8", errors="strict")


def build_query(parameters: Mapping[str, str]) -> str:
    return "&".join(f"{escape(str(key))}={escape(str(value))}" for key, value in parameters.items())


class RequestEncoder:
    def __init__(self, base_url: str = BASE_URL) -> None:
        self.base_url = base_url

    def encode(self, parameters: Mapping[str, str]) -> TrackingRequest:
        try:
            query = build_query(parameters)
        except UnicodeEncodeError as exc:
            raise EncodingError("invalid_url", detail=str(exc)) from exc
        path = f"{COLLECT_PATH}?{query}"
        try:
            url = httpx.URL(self.base_url).join(path)
        except (httpx.InvalidURL, ValueError) as exc:
            raise EncodingError("invalid_url", path=path, detail=str(exc)) from exc
        if not url.is_absolute_url:
            raise EncodingError("invalid_url", path=path, detail=f"relative to {self.base_url}")
        return TrackingRequest(url=str(url), query=query)
