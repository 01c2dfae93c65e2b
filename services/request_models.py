# services/request_models.py
# Purpose: Request/response models for the /api surface. Field names are the
#          wire contract; keep them stable.

from typing import Any, Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    # Optional so a missing field is our 400, not a framework 422
    email: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    id: Any
    name: str
    email: str
    role: str


class DocumentOut(BaseModel):
    id: Optional[str] = None
    name: str
    path: Optional[str] = Field(None, description="Download link (temporary) or web link")
    size: Optional[int] = None


class UploadedFileOut(BaseModel):
    name: str
    path: Optional[str] = None
    size: Optional[int] = None


class UploadResponse(BaseModel):
    message: str
    file: UploadedFileOut


class SearchHitOut(BaseModel):
    type: str
    title: str
    description: str = ""
    link: str = ""


class NewsOut(BaseModel):
    id: str
    title: str
    description: str = ""
    link: str = ""
    published: Optional[str] = None


class CalendarEventOut(BaseModel):
    id: str
    title: str
    start: Optional[str] = None
    end: Optional[str] = None
    location: str = ""


class PartnerOut(BaseModel):
    id: str
    name: str
    description: str = ""
    link: str = ""
    category: str = ""


class ErrorOut(BaseModel):
    message: str
