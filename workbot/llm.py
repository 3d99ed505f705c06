from __future__ import annotations

from typing import Dict, Optional, Tuple

from openai import AsyncOpenAI

from .config import (
    CLIENT_URL,
    NVIDIA_API_KEY,
    OPENAI_API_KEY,
    OPENROUTER_API_KEY,
    PROVIDER_BASE_URLS,
)

_API_KEYS = {
    "openai": ("OPENAI_API_KEY", OPENAI_API_KEY),
    "openrouter": ("OPENROUTER_API_KEY", OPENROUTER_API_KEY),
    "nvidia": ("NVIDIA_API_KEY", NVIDIA_API_KEY),
}

_clients: Dict[Tuple[str, str], AsyncOpenAI] = {}


def _default_headers(provider: str) -> Optional[Dict[str, str]]:
  if provider == "openrouter":
    return {"HTTP-Referer": CLIENT_URL, "X-Title": "Workbot"}
  return None


def get_async_client(provider: str) -> AsyncOpenAI:
  """Shared AsyncOpenAI client for an OpenAI-compatible provider."""
  if provider not in _API_KEYS:
    raise RuntimeError(f"Unknown OpenAI-compatible provider: {provider}")
  key_name, api_key = _API_KEYS[provider]
  if not api_key:
    raise RuntimeError(f"{key_name} is not set (LLM_PROVIDER={provider})")
  cache_key = (provider, api_key)
  client = _clients.get(cache_key)
  if client is None:
    client = AsyncOpenAI(
        api_key=api_key,
        base_url=PROVIDER_BASE_URLS.get(provider),
        default_headers=_default_headers(provider),
        max_retries=0,
    )
    _clients[cache_key] = client
  return client
