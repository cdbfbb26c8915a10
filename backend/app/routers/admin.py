"""Admin router — coin grants, model approval and application review."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import ServiceError, to_http_exception
from app.middleware.auth import require_admin
from app.models.actor import Actor
from app.models.model_application import ModelApplication
from app.schemas.coins import GrantRequest, GrantResponse
from app.schemas.signup import ApplicationResponse
from app.services import ledger, signup_service

router = APIRouter(prefix="/api/admin", tags=["admin"])


def application_to_response(application: ModelApplication) -> ApplicationResponse:
    return ApplicationResponse(
        id=application.id,
        actor_id=application.actor_id,
        display_name=application.display_name,
        email=application.email,
        instagram_username=application.instagram_username,
        tiktok_username=application.tiktok_username,
        status=application.status,
        created_at=application.created_at.isoformat(),
        reviewed_at=application.reviewed_at.isoformat() if application.reviewed_at else None,
    )


@router.post("/coins/grant", response_model=GrantResponse)
def grant_coins(
    req: GrantRequest,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Credit coins to any balance-holding actor."""
    try:
        new_balance = ledger.award_coins(db, req.actor_id, req.amount, req.reason)
    except ServiceError as e:
        raise to_http_exception(e)
    return GrantResponse(actor_id=req.actor_id, new_balance=new_balance)


@router.post("/models/{model_id}/approve")
def approve_model(
    model_id: str,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    try:
        model = signup_service.approve_model(db, model_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"success": True, "model_id": model.id, "is_approved": model.is_approved}


@router.get("/applications", response_model=list[ApplicationResponse])
def list_applications(
    status: Optional[str] = Query("pending"),
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    return [application_to_response(a) for a in signup_service.list_applications(db, status)]


@router.post("/applications/{application_id}/approve", response_model=ApplicationResponse)
def approve_application(
    application_id: str,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Approve an application, converting the applicant into a model."""
    try:
        application = signup_service.review_application(db, application_id, approve=True)
    except ServiceError as e:
        raise to_http_exception(e)
    return application_to_response(application)


@router.post("/applications/{application_id}/reject", response_model=ApplicationResponse)
def reject_application(
    application_id: str,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    try:
        application = signup_service.review_application(db, application_id, approve=False)
    except ServiceError as e:
        raise to_http_exception(e)
    return application_to_response(application)
