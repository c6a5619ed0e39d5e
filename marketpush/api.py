"""
HTTP trigger surface for the scheduler.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from marketpush.app import MarketPushApp
from marketpush.auth import authorize_trigger
from marketpush.errors import AuthorizationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def get_app(request: Request) -> MarketPushApp:
    return request.app.state.marketpush


def verify_trigger(
    request: Request,
    authorization: Optional[str] = Header(None),
    app: MarketPushApp = Depends(get_app),
) -> None:
    """Reject the call before the job runs if its credentials do not match."""
    triggers = app.config.triggers
    authorize_trigger(
        triggers,
        authorization=authorization,
        scheduler_header=request.headers.get(triggers.scheduler_header),
    )


@router.api_route(
    "/{job_name}",
    methods=["GET", "POST"],
    dependencies=[Depends(verify_trigger)],
)
def run_job(job_name: str, app: MarketPushApp = Depends(get_app)):
    result = app.run_job(job_name)
    return JSONResponse(result.to_dict(), status_code=result.status_code)


def create_app(marketpush: MarketPushApp) -> FastAPI:
    """
    Build the FastAPI application around a wired MarketPushApp.

    Args:
        marketpush: Application holding the database, provider and jobs

    Returns:
        FastAPI instance exposing /cron/<job> and /health
    """
    api = FastAPI(
        title="MarketPush API",
        description="Scheduled market notification jobs",
        version="1.0.0",
    )
    api.state.marketpush = marketpush

    @api.exception_handler(AuthorizationError)
    async def unauthorized(request: Request, exc: AuthorizationError):
        logger.warning(f"Rejected trigger for {request.url.path}")
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    @api.api_route("/health", methods=["GET", "HEAD"])
    def health_check():
        try:
            marketpush.db.connection.execute("SELECT 1")
            return {
                "status": "healthy",
                "service": "marketpush",
                "database": "connected",
                "jobs": marketpush.job_names,
            }
        except Exception as e:
            return {
                "status": "degraded",
                "service": "marketpush",
                "database": "disconnected",
                "error": str(e),
            }

    api.include_router(router)
    return api
