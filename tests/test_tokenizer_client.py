"""
Tests for the segmentation service client, against an in-process transport.
"""

import asyncio
import json

import httpx

from tokenizer_client import TokenizerClient, TokenizerConfig

URL = "http://tokenizer.test/tokenize"


def _client(handler, url=URL):
    return TokenizerClient(TokenizerConfig(url=url, timeout_sec=1.0), transport=httpx.MockTransport(handler))


class TestTokenizerClient:
    def test_tokens_are_returned_trimmed(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"tokens": [" สมัคร ", "เรียน", "", None]})

        tokens = asyncio.run(_client(handler).tokenize("สมัครเรียน"))
        assert tokens == ["สมัคร", "เรียน"]
        assert seen["body"] == {"text": "สมัครเรียน"}

    def test_non_2xx_falls_back(self):
        client = _client(lambda request: httpx.Response(503, json={"tokens": ["x"]}))
        assert asyncio.run(client.tokenize("หอพัก")) is None

    def test_malformed_body_falls_back(self):
        client = _client(lambda request: httpx.Response(200, json={"words": ["x"]}))
        assert asyncio.run(client.tokenize("หอพัก")) is None

        client = _client(lambda request: httpx.Response(200, text="not json"))
        assert asyncio.run(client.tokenize("หอพัก")) is None

    def test_timeout_falls_back(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        assert asyncio.run(_client(handler).tokenize("หอพัก")) is None

    def test_disabled_without_url(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"tokens": ["x"]})

        client = _client(handler, url="")
        assert not client.enabled
        assert asyncio.run(client.tokenize("หอพัก")) is None
        assert calls == []
