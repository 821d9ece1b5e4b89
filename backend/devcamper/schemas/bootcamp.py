"""
DevCamper Backend — Bootcamp Schemas
======================================

Location, slug, photo and the average_* aggregates are server-managed and
cannot be set through the API.
"""

import re
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from devcamper.models.bootcamp import CAREERS

_URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


def _check_careers(careers: Optional[List[str]]) -> Optional[List[str]]:
    if careers is None:
        return careers
    unknown = [career for career in careers if career not in CAREERS]
    if unknown:
        raise ValueError(f"Unknown careers {unknown}. Must be drawn from: {list(CAREERS)}")
    return careers


def _check_website(website: Optional[str]) -> Optional[str]:
    if website and not _URL_PATTERN.match(website):
        raise ValueError("Please use a valid URL with HTTP or HTTPS")
    return website


class BootcampCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=500)
    website: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    address: str = Field(min_length=1, max_length=255)
    careers: List[str] = Field(min_length=1)
    housing: bool = False
    job_assistance: bool = False
    job_guarantee: bool = False
    accept_gi: bool = False

    @field_validator("careers")
    @classmethod
    def validate_careers(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_careers(v)

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: Optional[str]) -> Optional[str]:
        return _check_website(v)


class BootcampUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    website: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(default=None, min_length=1, max_length=255)
    careers: Optional[List[str]] = Field(default=None, min_length=1)
    housing: Optional[bool] = None
    job_assistance: Optional[bool] = None
    job_guarantee: Optional[bool] = None
    accept_gi: Optional[bool] = None

    @field_validator("careers")
    @classmethod
    def validate_careers(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_careers(v)

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: Optional[str]) -> Optional[str]:
        return _check_website(v)


class BootcampResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    slug: str
    description: str
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    formatted_address: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None
    careers: List[str]
    average_rating: Optional[float] = None
    average_cost: Optional[int] = None
    photo: str
    housing: bool
    job_assistance: bool
    job_guarantee: bool
    accept_gi: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class BootcampSummary(BaseModel):
    """Embedded in course and review responses."""

    id: uuid.UUID
    name: str
    description: str

    model_config = {"from_attributes": True}
