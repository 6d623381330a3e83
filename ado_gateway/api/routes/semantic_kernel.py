"""AI endpoints.

Everything under /api/semantickernel is classified as AI traffic by the rate
limiter and therefore gets the stricter AI quota.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from ado_gateway.adapters.llm.base import AbstractLLMClient
from ado_gateway.adapters.llm.factory import create_llm_client
from ado_gateway.core.audit import AuditEvent, audit
from ado_gateway.core.auth import verify_api_key
from ado_gateway.core.errors import LLMAppError
from ado_gateway.schemas.chat import DEFAULT_SYSTEM_PROMPT, ChatRequest, ChatResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/semantickernel", tags=["SemanticKernel"])

_llm_client: AbstractLLMClient | None = None


def get_llm_client() -> AbstractLLMClient:
    """Return a process-wide LLM client, built on first use.

    Tests replace it through ``app.dependency_overrides``.
    """

    global _llm_client

    if _llm_client is None:
        _llm_client = create_llm_client()
    return _llm_client


@router.post(
    "/chat",
    response_model=ChatResponse,
    dependencies=[Depends(verify_api_key)],
)
async def chat(
    request: Request,
    body: ChatRequest,
    llm: Annotated[AbstractLLMClient, Depends(get_llm_client)],
) -> ChatResponse:
    """Forward a prompt to the configured LLM provider.

    Every call is audited, successful or not.

    Raises:
        LLMAppError: Rendered as a 500 JSON error by the global handler.
    """
    try:
        content = await llm.generate(body.system_prompt or DEFAULT_SYSTEM_PROMPT, body.prompt)
    except LLMAppError as exc:
        audit(AuditEvent.from_request(request, "llm.chat", success=False, error=exc.code))
        raise

    audit(AuditEvent.from_request(request, "llm.chat"))
    logger.info(
        "llm.chat.completed",
        extra={"model": llm.model, "prompt_chars": len(body.prompt), "response_chars": len(content)},
    )
    return ChatResponse(content=content, model=llm.model)
