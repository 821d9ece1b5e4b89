"""DevCamper Backend — Course Schemas."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

SkillLevel = Literal["beginner", "intermediate", "advanced"]


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    weeks: int = Field(ge=1)
    tuition: int = Field(ge=0)
    minimum_skill: SkillLevel
    scholarship_available: bool = False


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    weeks: Optional[int] = Field(default=None, ge=1)
    tuition: Optional[int] = Field(default=None, ge=0)
    minimum_skill: Optional[SkillLevel] = None
    scholarship_available: Optional[bool] = None


class CourseResponse(BaseModel):
    id: uuid.UUID
    bootcamp_id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str
    weeks: int
    tuition: int
    minimum_skill: str
    scholarship_available: bool
    created_at: datetime

    model_config = {"from_attributes": True}
