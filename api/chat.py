"""Chat assistant route — course-aware Q&A through the shared generation queue."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from errors.exceptions import AllProvidersExhausted, QueueClosedError
from models.request import ChatRequest, ChatResponse
from services.container import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat", response_model=ChatResponse, response_model_by_alias=True)
async def chat(req: ChatRequest, container: ServiceContainer = Depends(get_container)):
    """Answer one message given the prior turns and optional lesson/course context."""
    try:
        text = await container.chat_assistant.generate_response(
            req.history, req.message, req.context
        )
    except QueueClosedError as e:
        raise HTTPException(status_code=503, detail="Service is shutting down") from e
    except AllProvidersExhausted as e:
        logger.exception("Chat assistant failed")
        raise HTTPException(status_code=502, detail=f"All providers failed: {e}") from e
    return ChatResponse(response=text)
