"""
Symptom Journal - Gemini Client Tests
=====================================
Tests for backend/app/services/llm_client.py

Requests are answered by httpx.MockTransport; nothing leaves the process.

Usage:
    pytest backend/tests/test_llm_client.py -v
"""

import sys
import os
import asyncio
import json

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.config import Settings
from app.services.llm_client import GeminiClient, LLMServiceError, create_llm_client


def gemini_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_client(handler, **kwargs):
    return GeminiClient("test-key", transport=httpx.MockTransport(handler), **kwargs)


class TestGeminiClient:

    def test_request_shape(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_body("{}"))

        client = make_client(handler, temperature=0.3)
        asyncio.run(client.generate("system text", "user text"))

        assert seen["url"].path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert seen["url"].params["key"] == "test-key"
        body = seen["body"]
        assert body["system_instruction"]["parts"][0]["text"] == "system text"
        assert body["contents"][0]["parts"][0]["text"] == "user text"
        assert body["generationConfig"] == {
            "temperature": 0.3,
            "responseMimeType": "application/json",
        }

    def test_returns_first_candidate_text(self):
        client = make_client(lambda request: httpx.Response(200, json=gemini_body('{"a": 1}')))
        assert asyncio.run(client.generate("s", "u")) == '{"a": 1}'

    def test_no_candidates(self):
        client = make_client(lambda request: httpx.Response(200, json={"candidates": []}))
        assert asyncio.run(client.generate("s", "u")) is None

    def test_error_status(self):
        client = make_client(lambda request: httpx.Response(429, text="quota exceeded"))
        with pytest.raises(LLMServiceError, match="429"):
            asyncio.run(client.generate("s", "u"))

    def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(LLMServiceError, match="invalid JSON"):
            asyncio.run(client.generate("s", "u"))


class TestCreateLLMClient:

    def test_no_key_means_no_client(self):
        assert create_llm_client(Settings(gemini_api_key=None)) is None

    def test_configured_client(self):
        client = create_llm_client(Settings(gemini_api_key="k", gemini_model="gemini-x"))
        assert isinstance(client, GeminiClient)
        assert client.url.endswith("/models/gemini-x:generateContent")
