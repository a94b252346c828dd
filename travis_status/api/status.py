"""
Status indicator REST API endpoints.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from travis_status.models.status import IndicatorView
from travis_status.services.session import StatusSession, get_status_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/status", tags=["status"])


@router.get("", response_model=IndicatorView)
async def get_status(session: StatusSession = Depends(get_status_session)) -> IndicatorView:
    """
    Return the indicator as currently displayed, without querying Travis.
    """
    return session.indicator.view()


@router.post("/refresh", response_model=IndicatorView)
async def refresh_status(session: StatusSession = Depends(get_status_session)) -> IndicatorView:
    """
    Run one update cycle and return the resulting indicator.

    Errors of the cycle are part of the returned view, not HTTP errors.
    """
    await session.update()
    return session.indicator.view()


@router.get("/open-url")
def get_open_url(session: StatusSession = Depends(get_status_session)) -> dict:
    """
    Return the Travis page of the workspace's repository.

    Plain ``def``: resolving the identity reads workspace files, so it runs
    in the threadpool instead of on the event loop.

    Raises:
        HTTPException: If the workspace is not a resolvable Travis project
    """
    url = session.open_url()
    if url is None:
        logger.info("No Travis page for the current workspace")
        raise HTTPException(status_code=404, detail="Workspace is not a resolvable Travis project")
    return {"url": url}


@router.post("/notifications/ack", response_model=IndicatorView)
async def acknowledge_notifications(session: StatusSession = Depends(get_status_session)) -> IndicatorView:
    """Clear pending one-time warnings once the user has seen them."""
    drained = session.indicator.drain_notifications()
    logger.info(f"Acknowledged {len(drained)} notification(s)")
    return session.indicator.view()
