# File: api/routers/thematic.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies.database import get_reporting_service
from api.models.thematic_models import PaperResponse, ThematicAnalysisResponse
from services.reporting_service import ReportingService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/thematic-analysis", response_model=ThematicAnalysisResponse)
def get_thematic_analysis(reporting: ReportingService = Depends(get_reporting_service)):
    try:
        return reporting.thematic_analysis()
    except Exception as e:
        logger.error(f"Thematic analysis load error: {type(e).__name__}: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to fetch thematic analysis data", "details": str(e)},
        )


@router.get("/papers/{reference_number}", response_model=PaperResponse)
def get_paper(reference_number: int, reporting: ReportingService = Depends(get_reporting_service)):
    try:
        paper = reporting.paper_by_reference(reference_number)
    except Exception as e:
        logger.error(f"Paper load error: {type(e).__name__}: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to fetch paper details", "details": str(e)},
        )

    if paper is None:
        raise HTTPException(status_code=404, detail="Paper not found")

    return paper
