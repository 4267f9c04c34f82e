"""Tests for services.generation_client — single-call adapter."""

from __future__ import annotations

import asyncio

import pytest

from errors.exceptions import ErrorKind, ProviderError
from models.generation import ModelTier
from services.generation_client import GenerationClient, GenerationRequest
from tests.conftest import ScriptedProvider, always, always_raise

TIER = ModelTier(name="gemini-2.5-flash", rank=0)
REQUEST = GenerationRequest(system_instruction="sys", prompt="hi")


async def test_success_returns_raw_text():
    provider = ScriptedProvider(always("answer"))
    client = GenerationClient(provider)

    assert await client.call("key", TIER, REQUEST) == "answer"
    assert provider.attempted == [("gemini-2.5-flash", "key")]


async def test_raw_errors_are_classified():
    client = GenerationClient(ScriptedProvider(always_raise("429 Too Many Requests")))

    with pytest.raises(ProviderError) as exc_info:
        await client.call("key", TIER, REQUEST)

    assert exc_info.value.kind is ErrorKind.RATE_LIMITED
    assert exc_info.value.model == "gemini-2.5-flash"
    assert isinstance(exc_info.value.__cause__, RuntimeError)


async def test_custom_classifier_is_used():
    client = GenerationClient(
        ScriptedProvider(always_raise("anything")),
        classifier=lambda err: ErrorKind.QUOTA_EXCEEDED,
    )

    with pytest.raises(ProviderError) as exc_info:
        await client.call("key", TIER, REQUEST)
    assert exc_info.value.kind is ErrorKind.QUOTA_EXCEEDED


async def test_timeout_becomes_transient_network():
    class Hanging:
        async def generate(self, model_name, credential, request):
            await asyncio.sleep(5)
            return "late"

    client = GenerationClient(Hanging(), timeout_seconds=0.01)

    with pytest.raises(ProviderError) as exc_info:
        await client.call("key", TIER, REQUEST)
    assert exc_info.value.kind is ErrorKind.TRANSIENT_NETWORK
