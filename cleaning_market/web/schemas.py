"""Request bodies for the JSON API."""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ClientSignup(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6)
    name: str
    email: str
    phone_number: str = ""
    address: str = ""


class CleanerSignup(BaseModel):
    username: str = Field(min_length=3, max_length=20)
    password: str = Field(min_length=6)
    name: str = Field(min_length=2, max_length=50)
    email: str
    phone_number: str = ""
    hourly_price: float = Field(default=0.0, ge=0)
    services: list[str] = Field(default_factory=list)


class LoginBody(BaseModel):
    username: str
    password: str


class CreateRequestBody(BaseModel):
    request_type: Literal["specific", "general"] = "specific"
    cleaner_id: Optional[int] = None
    service: str
    date: dt.date
    start_time: str
    end_time: str
    note: Optional[str] = None
    budget: Optional[float] = None
    deadline: Optional[dt.datetime] = None


class StatusBody(BaseModel):
    status: str


class RatingBody(BaseModel):
    # Range is checked by the booking layer so the error kind stays consistent
    rating: int
    review: Optional[str] = None


class CleanerFilterBody(BaseModel):
    service: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class CleanerProfileBody(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    phone_number: Optional[str] = None
    hourly_price: Optional[float] = None
    services: Optional[list[str]] = None
