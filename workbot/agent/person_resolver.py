from __future__ import annotations

import logging
import re
from typing import List

from ..config import TEAM_RESOLVE_LIMIT
from ..models import Person
from ..store import AttendanceStore
from .schemas import PersonResolution

logger = logging.getLogger(__name__)

SELF_REFERENCES = frozenset({"me", "my", "i", "myself", "mine"})
TEAM_REFERENCES = frozenset({"my team", "team"})


async def _resolve_one_name(store: AttendanceStore, name: str) -> PersonResolution:
  matches = await store.search_active_users(r"\b" + re.escape(name))
  if not matches:
    return PersonResolution(
        clarification=f'I couldn\'t find anyone named "{name}" in the team. Please check the spelling.')
  if len(matches) > 1:
    names = ", ".join(p.display_name for p in matches)
    return PersonResolution(
        clarification=f'I found multiple people matching "{name}": {names}. Which one did you mean?')
  return PersonResolution(resolved=[matches[0]])


async def _resolve_team(store: AttendanceStore, caller: Person) -> List[Person]:
  favorites = await store.get_favorites(caller.id)
  if favorites:
    return favorites
  # No explicit team: everyone active, bounded.
  return await store.list_active_users(limit=TEAM_RESOLVE_LIMIT)


async def resolve_people(references: List[str],
                         caller: Person,
                         store: AttendanceStore) -> PersonResolution:
  """Map free-text person references to people. Ambiguity becomes a clarification, never a guess."""
  collected: List[Person] = []
  clarifications: List[str] = []

  for ref in references:
    lower = (ref or "").strip().lower()
    if not lower:
      continue
    if lower in SELF_REFERENCES:
      collected.append(caller)
      continue
    if lower in TEAM_REFERENCES:
      collected.extend(await _resolve_team(store, caller))
      continue
    result = await _resolve_one_name(store, lower)
    collected.extend(result.resolved)
    if result.clarification:
      clarifications.append(result.clarification)

  seen: set[str] = set()
  deduped: List[Person] = []
  for person in collected:
    if person.id in seen:
      continue
    seen.add(person.id)
    deduped.append(person)

  if clarifications:
    logger.info("[PERSON] unresolved references: %s", "; ".join(clarifications))
  return PersonResolution(
      resolved=deduped,
      clarification="\n".join(clarifications) if clarifications else None,
  )
