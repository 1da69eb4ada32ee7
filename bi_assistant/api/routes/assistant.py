"""Assistant routes."""

import logging

from fastapi import APIRouter

from bi_assistant.api.deps import AssistantServiceDep
from bi_assistant.core.middleware import set_user_id
from bi_assistant.schemas.assistant import RunRequest, RunResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/run", response_model=RunResponse)
async def run_assistant(request: RunRequest, service: AssistantServiceDep) -> RunResponse:
    """Answer a query on a thread.

    The response holds the messages to append to the thread. Failures are
    reported with error=true and a fallback message rather than an HTTP
    error, so the UI can keep the query for a retry.
    """
    if request.user and request.user.get("id") is not None:
        set_user_id(str(request.user["id"]))

    logger.info(f"Assistant query on thread {request.thread_id}: {request.query[:50]}...")

    reply = await service.run(
        request.query,
        thread=request.thread,
        thread_id=request.thread_id,
        user=request.user,
        semantic_models={
            key: model.model_dump() for key, model in request.semantic_models.items()
        },
    )

    return RunResponse(
        messages=reply.messages,
        final_output=reply.final_output,
        error=reply.error,
        query=reply.query,
        guardrail=reply.guardrail,
    )
