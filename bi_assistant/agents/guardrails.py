"""Input and output guardrail pipelines.

All guardrails of a pipeline run concurrently; results are inspected in
registration order and the first tripped tripwire aborts the run. A
guardrail that raises is logged and counted as not tripped.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Literal

import logfire

from bi_assistant.agents.exceptions import GuardrailTripwireTriggered
from bi_assistant.agents.primitives import Guardrail, GuardrailResult, RunContext

logger = logging.getLogger(__name__)


async def _validate(
    guardrail: Guardrail,
    payload: Any,
    context: RunContext,
) -> GuardrailResult | None:
    try:
        return await guardrail.validate(payload, context)
    except Exception:
        logger.exception(f"Error running guardrail {guardrail.name}; treating as not tripped")
        return None


async def run_guardrails(
    guardrails: Sequence[Guardrail],
    payload: Any,
    context: RunContext,
    kind: Literal["input", "output"],
) -> list[GuardrailResult]:
    """Run one guardrail pipeline.

    Args:
        guardrails: Guardrails in registration order.
        payload: Run input or final output to validate.
        context: Working context of the run.
        kind: Pipeline name, carried by the raised error.

    Returns:
        Results of the guardrails that completed without raising.

    Raises:
        GuardrailTripwireTriggered: For the first tripped guardrail.
    """
    if not guardrails:
        return []

    with logfire.span(f"{kind}_guardrails", count=len(guardrails)):
        results = await asyncio.gather(
            *(_validate(guardrail, payload, context) for guardrail in guardrails)
        )

        completed: list[GuardrailResult] = []
        for guardrail, result in zip(guardrails, results, strict=True):
            if result is None:
                continue
            if result.tripwire_triggered:
                logfire.warn(
                    "Guardrail tripped",
                    guardrail=guardrail.name,
                    kind=kind,
                    message=result.message,
                )
                raise GuardrailTripwireTriggered(guardrail, result, kind)
            completed.append(result)

        return completed


async def run_input_guardrails(
    guardrails: Sequence[Guardrail],
    payload: Any,
    context: RunContext,
) -> list[GuardrailResult]:
    return await run_guardrails(guardrails, payload, context, "input")


async def run_output_guardrails(
    guardrails: Sequence[Guardrail],
    payload: Any,
    context: RunContext,
) -> list[GuardrailResult]:
    return await run_guardrails(guardrails, payload, context, "output")
