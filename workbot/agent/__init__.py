"""
Attendance question pipeline
"""

from .fast_path import answer_simple
from .intent_router import route_question
from .orchestrator import process_question
from .slot_extractor import extract

__all__ = [
    "answer_simple",
    "route_question",
    "process_question",
    "extract",
]
