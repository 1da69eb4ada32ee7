"""API dependencies.

Dependency injection factories for the content client and services.
"""

from typing import Annotated

from fastapi import Depends

from bi_assistant.services.assistant import AssistantService
from bi_assistant.services.llm import ContentGenerationClient, get_content_client

ContentClient = Annotated[ContentGenerationClient, Depends(get_content_client)]


def get_assistant_service(client: ContentClient) -> AssistantService:
    """Create AssistantService with the configured content client."""
    return AssistantService(client)


AssistantServiceDep = Annotated[AssistantService, Depends(get_assistant_service)]
