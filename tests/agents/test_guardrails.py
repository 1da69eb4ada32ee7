"""Tests for the guardrail pipelines."""

import asyncio

import pytest

from bi_assistant.agents import Guardrail, GuardrailResult, GuardrailTripwireTriggered, RunContext
from bi_assistant.agents.guardrails import run_input_guardrails, run_output_guardrails


def make_guardrail(name: str, tripped: bool, delay: float = 0.0, **info) -> Guardrail:
    async def validate(payload, context):
        await asyncio.sleep(delay)
        return GuardrailResult(tripwire_triggered=tripped, info=info or None)

    return Guardrail(name=name, validate=validate)


@pytest.mark.anyio
async def test_no_guardrails_returns_empty():
    assert await run_input_guardrails([], "hello", RunContext()) == []


@pytest.mark.anyio
async def test_passing_guardrails_return_results_in_order():
    """Results come back in registration order, not completion order."""
    guardrails = [
        make_guardrail("slow", False, delay=0.02, order=1),
        make_guardrail("fast", False, order=2),
    ]

    results = await run_output_guardrails(guardrails, "answer", RunContext())

    assert [r.info["order"] for r in results] == [1, 2]


@pytest.mark.anyio
async def test_guardrails_run_concurrently():
    started: list[str] = []
    release = asyncio.Event()

    async def waiter(payload, context):
        started.append("waiter")
        await release.wait()
        return GuardrailResult(tripwire_triggered=False)

    async def releaser(payload, context):
        started.append("releaser")
        release.set()
        return GuardrailResult(tripwire_triggered=False)

    guardrails = [Guardrail(name="waiter", validate=waiter), Guardrail(name="releaser", validate=releaser)]

    results = await asyncio.wait_for(
        run_input_guardrails(guardrails, "hello", RunContext()), timeout=1
    )

    assert started == ["waiter", "releaser"]
    assert len(results) == 2


@pytest.mark.anyio
async def test_tripped_guardrail_carries_kind_and_result():
    tripped = make_guardrail("no-pii", True, field="email")

    with pytest.raises(GuardrailTripwireTriggered) as exc_info:
        await run_output_guardrails([make_guardrail("ok", False), tripped], "x", RunContext())

    error = exc_info.value
    assert str(error) == "Guardrail tripwire triggered: no-pii"
    assert error.kind == "output"
    assert error.guardrail is tripped
    assert error.result.info == {"field": "email"}


@pytest.mark.anyio
async def test_raising_guardrail_is_skipped():
    async def broken(payload, context):
        raise ValueError("bad payload")

    results = await run_input_guardrails(
        [Guardrail(name="broken", validate=broken), make_guardrail("ok", False)],
        "hello",
        RunContext(),
    )

    assert len(results) == 1


@pytest.mark.anyio
async def test_guardrails_see_run_context():
    seen = {}

    async def validate(payload, context):
        seen["user"] = context.state["user"]
        return GuardrailResult(tripwire_triggered=False)

    await run_input_guardrails(
        [Guardrail(name="ctx", validate=validate)],
        "hello",
        RunContext(state={"user": "alice"}),
    )

    assert seen == {"user": "alice"}
