# ============================================================================
# FILE: app/api/dependencies.py
# Tenant and engine dependencies shared by the dashboard routers
# ============================================================================
from uuid import UUID

from fastapi import Header, HTTPException, Request, status

from app.services.container import Services


def get_business_id(x_business_id: str = Header(..., alias="X-Business-ID")) -> UUID:
    """
    Tenant key for every engine call.

    Authentication is handled upstream; this only parses the header so a
    malformed id fails before any query runs.
    """
    try:
        return UUID(x_business_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Business-ID must be a UUID"
        )


def get_services(request: Request) -> Services:
    """Engine container built once at startup"""
    return request.app.state.services
