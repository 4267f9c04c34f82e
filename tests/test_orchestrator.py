"""Tests for the credential-rotation / tier-fallback orchestrator."""

from __future__ import annotations

import asyncio

import pytest

from errors.exceptions import AllProvidersExhausted, ErrorKind, NoCredentialsConfigured
from services.generation_client import GenerationRequest
from tests.conftest import MODEL_CHAIN, always, always_raise, make_orchestrator

REQUEST = GenerationRequest(system_instruction="sys", prompt="hello")


# ── Success paths ─────────────────────────────────────────────


async def test_first_call_success_makes_one_attempt():
    orchestrator, provider = make_orchestrator(always("hi"))

    outcome = await orchestrator.generate(REQUEST)

    assert outcome.text == "hi"
    assert outcome.tier.name == "tier-primary"
    assert outcome.credential_index == 0
    assert provider.attempted == [("tier-primary", "key-a")]


async def test_quota_rotates_to_next_credential_same_tier():
    def responder(model, credential):
        if credential == "key-a":
            raise RuntimeError("429 RESOURCE_EXHAUSTED: quota exceeded")
        return "ok"

    orchestrator, provider = make_orchestrator(responder)
    outcome = await orchestrator.generate(REQUEST)

    assert outcome.text == "ok"
    assert outcome.credential_index == 1
    assert provider.attempted == [("tier-primary", "key-a"), ("tier-primary", "key-b")]


async def test_rate_limit_rotates_to_next_credential_same_tier():
    def responder(model, credential):
        if credential == "key-a":
            raise RuntimeError("429 Too Many Requests")
        return "ok"

    orchestrator, provider = make_orchestrator(responder)
    outcome = await orchestrator.generate(REQUEST)

    assert outcome.text == "ok"
    assert outcome.tier.rank == 0
    assert outcome.credential_index == 1
    assert outcome.attempts[0].error.kind is ErrorKind.RATE_LIMITED
    assert provider.attempted == [("tier-primary", "key-a"), ("tier-primary", "key-b")]


async def test_second_credential_of_third_tier_short_circuits():
    """Quota everywhere until (tier-lite, key-b); nothing after it is called."""
    def responder(model, credential):
        if model == "tier-lite" and credential == "key-b":
            return "finally"
        raise RuntimeError("quota exceeded for this key")

    orchestrator, provider = make_orchestrator(responder)
    outcome = await orchestrator.generate(REQUEST)

    assert outcome.text == "finally"
    assert outcome.tier.rank == 2
    assert outcome.credential_index == 1
    # 3 keys × 2 tiers + 2 calls in tier 3
    assert len(provider.calls) == 8
    assert provider.attempted[-1] == ("tier-lite", "key-b")
    assert outcome.attempt_count == 8


async def test_model_unavailable_skips_rest_of_tier():
    def responder(model, credential):
        if model == "tier-primary":
            raise RuntimeError("404 models/tier-primary is not found")
        return "from fallback"

    orchestrator, provider = make_orchestrator(responder)
    outcome = await orchestrator.generate(REQUEST)

    assert outcome.text == "from fallback"
    assert provider.attempted == [("tier-primary", "key-a"), ("tier-fallback", "key-a")]
    assert outcome.attempts[0].error.kind is ErrorKind.MODEL_UNAVAILABLE


async def test_unknown_error_abandons_tier():
    def responder(model, credential):
        if model == "tier-primary":
            raise RuntimeError("something odd happened")
        return "ok"

    orchestrator, provider = make_orchestrator(responder)
    await orchestrator.generate(REQUEST)

    assert [m for m, _ in provider.attempted] == ["tier-primary", "tier-fallback"]


# ── Exhaustion ────────────────────────────────────────────────


async def test_all_quota_errors_try_every_pair_once():
    orchestrator, provider = make_orchestrator(always_raise("quota exceeded"))

    with pytest.raises(AllProvidersExhausted) as exc_info:
        await orchestrator.generate(REQUEST)

    expected = [(model, key) for model in MODEL_CHAIN for key in ("key-a", "key-b", "key-c")]
    assert provider.attempted == expected
    assert exc_info.value.attempts == 12
    assert exc_info.value.last_error.kind is ErrorKind.QUOTA_EXCEEDED


async def test_all_model_unavailable_makes_one_call_per_tier():
    orchestrator, provider = make_orchestrator(always_raise("model not found"))

    with pytest.raises(AllProvidersExhausted) as exc_info:
        await orchestrator.generate(REQUEST)

    assert provider.attempted == [(model, "key-a") for model in MODEL_CHAIN]
    assert exc_info.value.last_error.kind is ErrorKind.MODEL_UNAVAILABLE


async def test_single_credential_single_tier():
    orchestrator, provider = make_orchestrator(
        always_raise("429 Too Many Requests"), credentials=["only"], models=["m"]
    )

    with pytest.raises(AllProvidersExhausted):
        await orchestrator.generate(REQUEST)
    assert len(provider.calls) == 1


async def test_empty_credential_pool_raises_without_calls():
    orchestrator, provider = make_orchestrator(always("never"), credentials=[])

    with pytest.raises(NoCredentialsConfigured):
        await orchestrator.generate(REQUEST)
    assert provider.calls == []


# ── Timeout ──────────────────────────────────────────────────


async def test_timeout_counts_as_transient_and_escalates_tier():
    from services.generation_client import GenerationClient
    from services.orchestrator import GenerationOrchestrator
    from services.provider_pool import OrchestratorConfig

    class SlowPrimary:
        def __init__(self):
            self.calls = []

        async def generate(self, model_name, credential, request):
            self.calls.append((model_name, credential))
            if model_name == "tier-primary":
                await asyncio.sleep(5)
            return "fast"

    provider = SlowPrimary()
    config = OrchestratorConfig.build(["key-a", "key-b"], list(MODEL_CHAIN), 0.05)
    orchestrator = GenerationOrchestrator(config, GenerationClient(provider, timeout_seconds=0.05))

    outcome = await orchestrator.generate(REQUEST)

    assert outcome.text == "fast"
    assert provider.calls == [("tier-primary", "key-a"), ("tier-fallback", "key-a")]
    assert outcome.attempts[0].error.kind is ErrorKind.TRANSIENT_NETWORK


async def test_orchestrator_is_reusable_across_requests():
    orchestrator, provider = make_orchestrator(always("x"))

    first, second = await asyncio.gather(
        orchestrator.generate(REQUEST), orchestrator.generate(REQUEST)
    )

    assert first.text == second.text == "x"
    assert len(provider.calls) == 2
