# File: api/models/thematic_models.py
from pydantic import BaseModel
from typing import List, Optional


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class CodeView(BaseModel):
    name: str
    quotes: List[str] = []


class SubthemeView(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    codes: List[CodeView] = []
    references: List[int] = []


class ThemeView(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    subthemes: List[SubthemeView] = []


class SummaryView(BaseModel):
    totalPapers: int
    totalThemes: int
    totalSubthemes: int
    totalCodes: int


class ThematicAnalysisResponse(BaseModel):
    summary: SummaryView
    themes: List[ThemeView]


class PaperResponse(BaseModel):
    paper_title: str
    authors: Optional[str] = None
    year: Optional[str] = None
    doi: Optional[str] = None
    abstract: Optional[str] = None
    key_findings: Optional[str] = None
    methodology: Optional[str] = None
    reference_number: Optional[int] = None
