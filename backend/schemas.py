from pydantic import BaseModel, ConfigDict
from typing import Optional, Any
from datetime import datetime


# Chat turn
class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    message: Optional[Any] = None
    text: Optional[Any] = None
    id: Optional[Any] = None
    resetConversation: Optional[Any] = False


class ContactInfo(BaseModel):
    organization: Optional[str] = None
    category: Optional[str] = None
    contact: Optional[str] = None


class Alternative(BaseModel):
    id: int
    title: str
    preview: str
    text: str
    score: float
    keywords: list[str]
    categories: Optional[str] = None
    categoriesPDF: Optional[str] = None


class MatchResponse(BaseModel):
    success: bool = True
    found: bool = True
    multipleResults: bool
    query: str
    message: str
    contacts: list[ContactInfo]
    alternatives: list[Alternative]


class NoMatchResponse(BaseModel):
    success: bool = True
    found: bool = False
    message: str
    contacts: list[ContactInfo]


class NegationResponse(BaseModel):
    success: bool = True
    found: bool = False
    message: str
    blockedDomains: list[str]
    blockedKeywords: list[str]
    blockedKeywordsDisplay: list[str]


class ResetResponse(BaseModel):
    success: bool = True
    reset: bool = True


class AnswerResponse(BaseModel):
    success: bool = True
    found: bool = True
    answer: str
    title: str
    questionId: int
    categories: Optional[str] = None
    categoriesPDF: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


class BlockedStateResponse(BaseModel):
    blockedKeywords: list[str]
    blockedDomains: list[str]
    updatedAt: int


# Catalog
class CategoryRow(BaseModel):
    CategoriesID: str
    CategoriesName: str
    ParentCategoriesID: Optional[str] = None
    CategoriesPDF: Optional[str] = None
    Contact: str = ""


class CategoriesResponse(BaseModel):
    success: bool = True
    categories: list[CategoryRow]
    count: int


class NegativeKeywordBase(BaseModel):
    word: str
    weight: float = -1.0


class NegativeKeywordCreate(NegativeKeywordBase):
    pass


class NegativeKeywordResponse(NegativeKeywordBase):
    model_config = ConfigDict(from_attributes=True)
    id: int
    is_active: bool
    created_at: Optional[datetime] = None
