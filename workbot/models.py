from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional


class Person(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: str  # "YYYY-MM-DD", inclusive
    end: str  # "YYYY-MM-DD", inclusive
    label: str


class AttendanceEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    date: str
    status: Literal["office", "leave", "wfh"]
    leave_duration: Optional[Literal["full", "half"]] = None
    half_day_portion: Optional[Literal["first-half", "second-half"]] = None
    working_portion: Optional[Literal["office", "wfh"]] = None


class Holiday(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str
    name: str


class OfficeEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str
    title: str
    description: Optional[str] = None
    event_type: Optional[str] = None


class UserRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    is_active: bool = True
    favorites: List[str] = Field(default_factory=list)

    def as_person(self) -> Person:
        return Person(id=self.id, display_name=self.name)


class HistoryMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Literal["user", "assistant"]
    text: str = Field(min_length=1)


class ChatQueryRequest(BaseModel):
    question: str
    history: Optional[List[HistoryMessage]] = None


class ChatQueryData(BaseModel):
    answer: str
    intent: str
    usedLlm: bool


class ChatQueryResponse(BaseModel):
    success: bool = True
    data: ChatQueryData
