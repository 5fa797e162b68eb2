from fastapi import Request

from services.reporting_service import ReportingService


def get_reporting_service(request: Request) -> ReportingService:
    return ReportingService(request.app.state.session_factory)
