from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from ..models import HistoryMessage

logger = logging.getLogger(__name__)

PRONOUNS = frozenset({
    "him", "her", "them", "they", "he", "she",
    "that person", "this person", "the same person", "same people",
})
_PRONOUN_RES = [re.compile(rf"\b{re.escape(p)}\b", re.IGNORECASE) for p in sorted(PRONOUNS)]
_SELF_WORDS = frozenset({"me", "my", "i", "myself"})

_STOP_WORDS = frozenset({
    "the", "a", "an", "is", "in", "on", "at", "to", "for", "of", "and", "or",
    "not", "no", "yes", "with", "from", "by", "as", "it", "be", "was", "were",
    "are", "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "shall", "can", "i", "me", "my",
    "we", "our", "you", "your", "they", "them", "their", "he", "him", "his",
    "she", "her", "office", "wfh", "leave", "home", "work", "day", "days",
    "week", "month", "monday", "tuesday", "wednesday", "thursday", "friday",
    "saturday", "sunday", "overlap", "attendance", "schedule", "team", "best",
    "maximum", "minimum", "note", "some", "data", "set", "incomplete",
    "what", "which", "when", "where", "who", "whom", "how", "why",
    "next", "last", "same", "also", "just", "only", "even", "any", "all",
    "tell", "show", "give", "find", "list", "get", "check", "compare",
    "want", "need", "like", "please", "thanks", "sure", "okay",
    "january", "february", "march", "april", "june", "july",
    "august", "september", "october", "november", "december",
})

_SUBJECT_NAME_RE = re.compile(
    r"\b([A-Z][a-z]{2,})(?:'s|\s+is|\s+has|\s+was|\s+will|\s+attend|\s+coming|\s+present|\s+absent)\b")
_OBJECT_NAME_RE = re.compile(r"\b(?:with|avoid|from|and|between)\s+([A-Za-z][a-z]{2,})\b", re.IGNORECASE)
_CAPITALIZED_RE = re.compile(r"\b([A-Z][a-z]{2,})\b")


def contains_pronouns(question: str) -> bool:
  q = question or ""
  return any(p.search(q) for p in _PRONOUN_RES)


def _add_name(names: List[str], name: str) -> None:
  if name.lower() in _STOP_WORDS:
    return
  if any(existing.lower() == name.lower() for existing in names):
    return
  names.append(name)


def extract_names_from_history(history: Optional[Sequence[HistoryMessage]]) -> List[str]:
  """Person-like names mentioned in earlier turns, in order of first mention."""
  names: List[str] = []
  for msg in history or []:
    text = msg.text
    for match in _SUBJECT_NAME_RE.finditer(text):
      _add_name(names, match.group(1))
    for match in _OBJECT_NAME_RE.finditer(text):
      raw = match.group(1)
      _add_name(names, raw[:1].upper() + raw[1:].lower())
    if msg.role == "user":
      for match in _CAPITALIZED_RE.finditer(text):
        _add_name(names, match.group(1))
  return names


def resolve_pronouns(people: Sequence[str],
                     question: str,
                     history: Optional[Sequence[HistoryMessage]] = None) -> List[str]:
  """Swap pronoun references for names seen in the conversation.

  Pronoun entries are dropped from people. When the people list held a
  pronoun, or the question uses one and names nobody but the caller,
  names mentioned in history are appended. Nothing is invented when
  history has no names.
  """
  resolved = [p for p in people if p.lower() not in PRONOUNS]
  needs_resolution = len(resolved) != len(people)

  if not needs_resolution and contains_pronouns(question):
    non_self = [p for p in resolved if p.lower() not in _SELF_WORDS]
    needs_resolution = not non_self

  if needs_resolution:
    for name in extract_names_from_history(history):
      if not any(p.lower() == name.lower() for p in resolved):
        resolved.append(name)
        logger.info("[COREF] resolved pronoun -> %r from history", name)
  return resolved
