"""Checklist models"""

from pydantic import BaseModel, Field
from typing import Optional


class ChecklistCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class ChecklistUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)


class ChecklistItemCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    assignee_id: Optional[str] = None
    assignee_name: Optional[str] = None
    due_date: Optional[str] = None


class ChecklistItemUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    completed: Optional[bool] = None
    assignee_id: Optional[str] = None
    assignee_name: Optional[str] = None
    due_date: Optional[str] = None
