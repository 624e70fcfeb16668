"""Board models"""

from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ListStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class MemberRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"
    VIEWER = "viewer"


def infer_list_status(title: str) -> ListStatus:
    """Derive a workflow status from a list title"""
    lowered = (title or "").lower()
    if "progress" in lowered:
        return ListStatus.IN_PROGRESS
    if "done" in lowered or "complete" in lowered:
        return ListStatus.DONE
    return ListStatus.TODO


def is_in_progress_list(lst: dict) -> bool:
    """Whether cards in this list count as in progress.

    Lists written before statuses existed carry no status and fall back
    to the title match.
    """
    status = lst.get("status")
    if status:
        return status == ListStatus.IN_PROGRESS.value
    return "progress" in (lst.get("title") or "").lower()


def drop_nulls(updates: dict, *fields: str) -> dict:
    """Remove explicit nulls sent for fields that cannot be cleared"""
    return {k: v for k, v in updates.items() if v is not None or k not in fields}


class BoardCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class BoardUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class Board(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    owner_id: str
    created_at: str
    updated_at: str


class BoardMemberCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    role: MemberRole = MemberRole.MEMBER


class ListCreate(BaseModel):
    board_id: str
    title: str = Field(..., min_length=1, max_length=100)
    status: Optional[ListStatus] = None


class ListUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    status: Optional[ListStatus] = None


class CardCreate(BaseModel):
    list_id: str
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    due_date: Optional[str] = None
    estimated_hours: Optional[float] = Field(None, ge=0)


class CardUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[str] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    completed: Optional[bool] = None


class AssigneeCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    user_name: Optional[str] = None
    user_email: Optional[str] = None


class CardPosition(BaseModel):
    id: str
    order: int
    list_id: str


class CardsReorder(BaseModel):
    board_id: str
    cards: List[CardPosition]
    origin: Optional[str] = None


class ListPosition(BaseModel):
    id: str
    order: int


class ListsReorder(BaseModel):
    board_id: str
    lists: List[ListPosition]
    origin: Optional[str] = None
