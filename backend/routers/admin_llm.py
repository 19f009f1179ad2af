"""
Admin LLM Router - read and switch provider routing at runtime.

Protected by the X-Admin-Key header when ADMIN_KEY is configured.
"""

import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from config import runtime_config
from errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


class LLMUpdate(BaseModel):
    """LLM routing update request."""

    primary_llm: Optional[str] = None
    claude_model: Optional[str] = None
    claude_max_tokens: Optional[int] = None
    groq_model: Optional[str] = None
    groq_decision_model: Optional[str] = None
    groq_max_tokens: Optional[int] = None
    conversation_window_hours: Optional[int] = None


async def verify_admin(x_admin_key: Optional[str] = Header(None)) -> bool:
    """Open when no admin key is configured."""
    expected = runtime_config.admin_key
    if not expected:
        return True
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=401, detail="Invalid admin key")
    return True


def _llm_settings() -> Dict[str, Any]:
    routing = runtime_config.routing
    return {
        "primary": routing.primary.value,
        "secondary": routing.secondary.value,
        "claude_model": runtime_config.claude_model,
        "claude_max_tokens": runtime_config.claude_max_tokens,
        "groq_model": runtime_config.groq_model,
        "groq_decision_model": runtime_config.groq_decision_model,
        "groq_max_tokens": runtime_config.groq_max_tokens,
        "conversation_window_hours": runtime_config.conversation_window_hours,
    }


@router.get("/llm")
async def get_llm(_: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """Current provider routing and model settings."""
    return {"success": True, "llm": _llm_settings()}


@router.put("/llm")
async def update_llm(update: LLMUpdate, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """
    Update provider routing.

    Changes apply to the next query; queries already in flight keep the
    routing they started with.
    """
    updates = {k: v for k, v in update.model_dump().items() if v is not None}

    if not updates:
        return {"success": True, "updated": [], "message": "No changes"}

    for k, v in updates.items():
        if isinstance(v, str):
            updates[k] = v.strip()

    result = runtime_config.update(**updates)

    # Persist overrides so they survive restarts
    if result["updated"]:
        runtime_config.save_overrides()

    if result["ignored"]:
        error = ValidationError(
            "Rejected LLM settings",
            details=", ".join(result["ignored"]),
            parameter=result["ignored"][0],
        )
        logger.warning(f"LLM settings update rejected: {error}")
        raise HTTPException(status_code=400, detail=error.to_dict())

    return {
        "success": True,
        "updated": result["updated"],
        "update_count": result["update_count"],
        "llm": _llm_settings(),
    }
