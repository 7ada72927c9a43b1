"""
Endpoints de feedback de huéspedes
"""
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import Reservation, User
from schemas.feedback import FeedbackCreate, FeedbackRead, FeedbackResolve, FeedbackUpdate
from services.common import NotFoundError, get_or_404
from services.feedback_service import FeedbackService
from services.mapping import feedback_to_dto
from utils.dependencies import (
    GUEST, MANAGEMENT, ensure_owner_or_staff, get_current_active_user, require_roles,
)
from utils.http_errors import database_error

router = APIRouter(prefix="/api/feedback", tags=["feedback"])

MANAGEMENT_AND_GUEST = MANAGEMENT + [GUEST]


def _dtos(items) -> List[dict]:
    return [feedback_to_dto(f) for f in items]


def _get_or_404(db: Session, feedback_id: int):
    feedback = FeedbackService.get(db, feedback_id)
    if feedback is None:
        raise NotFoundError(f"Feedback with ID {feedback_id} not found")
    return feedback


# ========== QUERIES ==========

@router.get("", response_model=List[FeedbackRead])
def list_feedback(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return _dtos(FeedbackService.get_all(db))


@router.get("/summary")
def feedback_summary(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return FeedbackService.summary(db)


@router.get("/stats/category", response_model=Dict[str, int])
def feedback_by_category_stats(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return FeedbackService.stats_by_category(db)


@router.get("/stats/rating")
def feedback_by_rating_stats(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return FeedbackService.stats_by_rating(db)


@router.get("/category/{category}", response_model=List[FeedbackRead])
def feedback_by_category(
    category: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return _dtos(FeedbackService.by_category(db, category))


@router.get("/resolved/{resolved}", response_model=List[FeedbackRead])
def feedback_by_resolution(
    resolved: bool,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return _dtos(FeedbackService.by_resolution(db, resolved))


@router.get("/rating/{rating}", response_model=List[FeedbackRead])
def feedback_by_rating(
    rating: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return _dtos(FeedbackService.by_rating(db, rating))


@router.get("/user/{user_id}", response_model=List[FeedbackRead])
def feedback_by_user(
    user_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT_AND_GUEST)),
):
    ensure_owner_or_staff(current_user, user_id)
    return _dtos(FeedbackService.by_user(db, user_id))


@router.get("/reservation/{reservation_id}", response_model=List[FeedbackRead])
def feedback_by_reservation(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT_AND_GUEST)),
):
    reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
    ensure_owner_or_staff(current_user, reservation.user_id)
    return _dtos(FeedbackService.by_reservation(db, reservation_id))


@router.get("/{feedback_id}", response_model=FeedbackRead)
def get_feedback(
    feedback_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT_AND_GUEST)),
):
    feedback = _get_or_404(db, feedback_id)
    ensure_owner_or_staff(current_user, feedback.user_id)
    return feedback_to_dto(feedback)


# ========== CRUD ==========

@router.post("", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
def create_feedback(
    payload: FeedbackCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    try:
        return feedback_to_dto(FeedbackService.create(db, payload.model_dump(), current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "feedback", current_user.username, "Submitting feedback", e)


@router.put("/{feedback_id}", response_model=FeedbackRead)
def update_feedback(
    feedback_id: int,
    payload: FeedbackUpdate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT_AND_GUEST)),
):
    try:
        data = payload.model_dump(exclude_unset=True)
        return feedback_to_dto(FeedbackService.update(db, feedback_id, data, current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "feedback", current_user.username, "Updating feedback", e)


@router.delete("/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_feedback(
    feedback_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        if not FeedbackService.delete(db, feedback_id, current_user.username):
            raise NotFoundError(f"Feedback with ID {feedback_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "feedback", current_user.username, "Deleting feedback", e)


@router.post("/{feedback_id}/resolve", response_model=FeedbackRead)
def resolve_feedback(
    feedback_id: int,
    payload: Optional[FeedbackResolve] = None,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        notes = payload.resolution_notes if payload else None
        return feedback_to_dto(FeedbackService.resolve(db, feedback_id, notes, current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "feedback", current_user.username, "Resolving feedback", e)
