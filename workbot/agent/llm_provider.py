from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..config import GEMINI_API_KEY, LLM_DEBUG, LLM_PROVIDER, PROVIDER_MODELS
from ..llm import get_async_client

try:
  from google import genai  # type: ignore
  from google.genai import types as genai_types  # type: ignore
except Exception:  # pragma: no cover - optional dependency
  genai = None  # type: ignore
  genai_types = None  # type: ignore

logger = logging.getLogger(__name__)

KNOWN_PROVIDERS = ("openai", "openrouter", "nvidia", "gemini")

_gemini_cached: Tuple[str, Any] = ("", None)


class LLMUnavailableError(RuntimeError):
  """No configured provider produced a completion."""


def active_provider() -> str:
  if LLM_PROVIDER in KNOWN_PROVIDERS:
    return LLM_PROVIDER
  return "nvidia"


def _print_raw_output(*, kind: str, provider: str, model: str, raw_output: str) -> None:
  if not LLM_DEBUG:
    return
  print(f"[LLM RAW] kind={kind} provider={provider} model={model}", flush=True)
  print(raw_output or "(empty)", flush=True)
  print("[LLM RAW END]", flush=True)


def _extract_message_text(content: Any) -> str:
  """Message content is a string, or a list of text parts for some providers."""
  if isinstance(content, str):
    return content.strip()
  if not isinstance(content, list):
    return ""
  pieces = (item.get("text") if isinstance(item, dict) else item for item in content)
  return " ".join(p.strip() for p in pieces if isinstance(p, str) and p.strip())


def clean_json_text(text: str) -> str:
  cleaned = (text or "").strip()
  fenced = re.search(r"```(?:json)?\s*([\s\S]*?)```", cleaned)
  if fenced:
    return fenced.group(1).strip()
  if cleaned.startswith("```"):
    cleaned = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", cleaned).strip()
  return cleaned


def parse_json_object(raw_output: str) -> Optional[Dict[str, Any]]:
  """Best-effort parse of a model reply into a JSON object; None when nothing parses."""
  if not raw_output:
    return None
  candidates = [raw_output, clean_json_text(raw_output)]
  cleaned = candidates[-1]
  left = cleaned.find("{")
  right = cleaned.rfind("}")
  if left != -1 and right > left:
    candidates.append(cleaned[left:right + 1])
  seen = set()
  for candidate in candidates:
    text = (candidate or "").strip()
    if not text or text in seen:
      continue
    seen.add(text)
    try:
      value = json.loads(text)
    except ValueError:
      continue
    if isinstance(value, dict):
      return value
  return None


# ---------------------------------------------------------------------------
#  Gemini
# ---------------------------------------------------------------------------

def _gemini_client() -> Any:
  """Cached google-genai client; LLMUnavailableError when it cannot be built."""
  global _gemini_cached
  if genai is None:
    raise LLMUnavailableError("google-genai is not installed")
  if not GEMINI_API_KEY:
    raise LLMUnavailableError("GEMINI_API_KEY is not set (LLM_PROVIDER=gemini)")
  cached_key, client = _gemini_cached
  if client is None or cached_key != GEMINI_API_KEY:
    client = genai.Client(api_key=GEMINI_API_KEY)
    _gemini_cached = (GEMINI_API_KEY, client)
  return client


def _split_system(messages: List[Dict[str, str]]) -> Tuple[str, str]:
  """Gemini takes the system prompt separately; the turns become one transcript."""
  system = "\n\n".join(m.get("content") or "" for m in messages if m.get("role") == "system")
  transcript = "\n\n".join(
      f"{'Assistant' if m.get('role') == 'assistant' else 'User'}:\n{m.get('content') or ''}"
      for m in messages if m.get("role") != "system")
  return system, transcript


def _gemini_reply_text(response: Any) -> str:
  direct = getattr(response, "text", None)
  if isinstance(direct, str) and direct.strip():
    return direct.strip()
  parts = [
      part
      for candidate in (getattr(response, "candidates", None) or [])
      for part in (getattr(getattr(candidate, "content", None), "parts", None) or [])
  ]
  return _extract_message_text([{"text": getattr(p, "text", None)} for p in parts])


def _gemini_generate(client: Any,
                     model: str,
                     messages: List[Dict[str, str]],
                     max_tokens: int,
                     temperature: float,
                     json_mode: bool) -> str:
  system, transcript = _split_system(messages)
  options: Dict[str, Any] = {"max_output_tokens": max_tokens, "temperature": temperature}
  if system:
    options["system_instruction"] = system
  if json_mode:
    options["response_mime_type"] = "application/json"
  name = model if model.startswith("models/") else f"models/{model}"
  response = client.models.generate_content(
      model=name,
      contents=transcript,
      config=genai_types.GenerateContentConfig(**options),
  )
  return _gemini_reply_text(response)


# ---------------------------------------------------------------------------
#  Completion capability
# ---------------------------------------------------------------------------

async def _complete_one(provider: str,
                        model: str,
                        messages: List[Dict[str, str]],
                        max_tokens: int,
                        temperature: float,
                        json_mode: bool) -> str:
  if provider == "gemini":
    client = _gemini_client()
    return await asyncio.to_thread(
        _gemini_generate, client, model, messages, max_tokens, temperature, json_mode)

  try:
    client = get_async_client(provider)
  except RuntimeError as exc:
    raise LLMUnavailableError(str(exc)) from exc
  kwargs: Dict[str, Any] = {
      "model": model,
      "messages": messages,
      "max_tokens": max_tokens,
      "temperature": temperature,
  }
  if json_mode:
    kwargs["response_format"] = {"type": "json_object"}
  completion = await client.chat.completions.create(**kwargs)
  if not completion.choices:
    return ""
  message = completion.choices[0].message
  text = _extract_message_text(getattr(message, "content", None))
  if not text:
    # Some reasoning models only fill the reasoning field.
    text = _extract_message_text(getattr(message, "reasoning_content", None))
  return text


async def _complete_with_fallback(messages: List[Dict[str, str]],
                                  max_tokens: int,
                                  temperature: float,
                                  json_mode: bool,
                                  log_prefix: str) -> str:
  provider = active_provider()
  models = PROVIDER_MODELS.get(provider) or []
  last_error = "no models configured"
  for model in models:
    try:
      text = await _complete_one(provider, model, messages, max_tokens, temperature, json_mode)
    except LLMUnavailableError:
      raise
    except Exception as exc:
      last_error = str(exc)
      logger.warning("[%s] model=%s provider=%s failed: %s", log_prefix, model, provider, exc)
      continue
    _print_raw_output(kind="json" if json_mode else "text", provider=provider, model=model, raw_output=text)
    if text:
      return text
    last_error = f"empty response from {model}"
    logger.warning("[%s] model=%s provider=%s returned empty output", log_prefix, model, provider)
  raise LLMUnavailableError(f"All {provider} models failed. Last error: {last_error}")


async def complete(messages: List[Dict[str, str]],
                   *,
                   max_tokens: int = 1024,
                   temperature: float = 0.2,
                   timeout_s: float = 30.0,
                   json_mode: bool = False,
                   log_prefix: str = "LLM") -> str:
  """Send messages, get one text completion back. The whole call, model fallbacks included, is bounded by timeout_s."""
  return await asyncio.wait_for(
      _complete_with_fallback(messages, max_tokens, temperature, json_mode, log_prefix),
      timeout=timeout_s,
  )
