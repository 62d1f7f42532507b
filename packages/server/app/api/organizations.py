"""
Organization endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_organization_service, get_principal
from app.core.auth import Principal
from app.core.database import UnitOfWork, get_session, get_uow
from app.services.organizations import OrganizationService
from prody_shared.schemas.organizations import OrgCreateRequest, OrgDetail, OrgRead

router = APIRouter()


@router.post("", response_model=OrgRead, status_code=201)
async def create_organization(
    body: OrgCreateRequest,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    orgs: OrganizationService = Depends(get_organization_service),
):
    """Create an organization. The caller becomes its admin."""
    return await orgs.create(uow, body.name, principal.user_id)


@router.get("/me", response_model=OrgDetail)
async def get_my_organization(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    orgs: OrganizationService = Depends(get_organization_service),
):
    return await orgs.get_my_organization(session, principal)
