from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Header, HTTPException

from .agent.llm_provider import active_provider
from .agent.orchestrator import process_question
from .config import HISTORY_WINDOW, MAX_QUESTION_LENGTH
from .models import ChatQueryData, ChatQueryRequest, ChatQueryResponse, HistoryMessage, Person
from .store import get_store

router = APIRouter()
logger = logging.getLogger(__name__)


async def _require_caller(user_id: Optional[str]) -> Person:
  user_id = (user_id or "").strip()
  if not user_id:
    raise HTTPException(status_code=401, detail="Missing X-User-Id header")
  caller = await get_store().get_user(user_id)
  if caller is None:
    raise HTTPException(status_code=404, detail="User not found")
  return caller


def _recent_history(history: Optional[List[HistoryMessage]]) -> List[HistoryMessage]:
  return list(history or [])[-HISTORY_WINDOW:]


@router.get("/api/health")
async def health():
  return {"ok": True, "provider": active_provider()}


@router.post("/api/chat/query", response_model=ChatQueryResponse)
async def chat_query(body: ChatQueryRequest, x_user_id: Optional[str] = Header(default=None)):
  question = (body.question or "").strip()
  if not question:
    raise HTTPException(status_code=400, detail="Question is required")
  if len(question) > MAX_QUESTION_LENGTH:
    raise HTTPException(status_code=400,
                        detail=f"Question must be at most {MAX_QUESTION_LENGTH} characters")

  caller = await _require_caller(x_user_id)
  output = await process_question(question, caller, _recent_history(body.history), store=get_store())
  logger.info("[CHAT] user=%s intent=%s used_llm=%s", caller.id, output.intent, output.used_llm)
  return ChatQueryResponse(
      success=True,
      data=ChatQueryData(answer=output.answer, intent=output.intent, usedLlm=output.used_llm),
  )
