"""
Guest feedback and its resolution by management
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from models import Feedback, Reservation, RoleName, User
from services.common import AccessDeniedError, InvalidOperationError, get_or_404
from utils.logging_utils import log_event

RATINGS = (1, 2, 3, 4, 5)


def _feedback_query(db: Session):
    return db.query(Feedback).options(
        joinedload(Feedback.user),
        joinedload(Feedback.reservation),
        joinedload(Feedback.resolved_by),
    )


def _is_guest(user: User) -> bool:
    return user.role_name == RoleName.GUEST.value


class FeedbackService:

    @staticmethod
    def get_all(db: Session) -> List[Feedback]:
        return _feedback_query(db).order_by(Feedback.created_at.desc()).all()

    @staticmethod
    def get(db: Session, feedback_id: int) -> Optional[Feedback]:
        return _feedback_query(db).filter(Feedback.id == feedback_id).first()

    @staticmethod
    def create(db: Session, data: dict, current_user: User) -> Feedback:
        if data.get("reservation_id") is not None:
            reservation = get_or_404(db, Reservation, data["reservation_id"], "Reservation")
            if _is_guest(current_user) and reservation.user_id != current_user.id:
                raise AccessDeniedError("You can only leave feedback for your own reservations")

        feedback = Feedback(
            user_id=current_user.id,
            reservation_id=data.get("reservation_id"),
            guest_name=data.get("guest_name") or current_user.full_name,
            guest_email=data.get("guest_email") or current_user.email,
            rating=data["rating"],
            subject=data.get("subject"),
            comments=data.get("comments"),
            category=data.get("category"),
        )
        db.add(feedback)
        db.commit()
        log_event("feedback", current_user.username, "Feedback submitted", f"id={feedback.id} rating={feedback.rating}")
        return FeedbackService.get(db, feedback.id)

    @staticmethod
    def update(db: Session, feedback_id: int, data: dict, current_user: User) -> Feedback:
        feedback = get_or_404(db, Feedback, feedback_id, "Feedback")
        if _is_guest(current_user) and feedback.user_id != current_user.id:
            raise AccessDeniedError("You can only edit your own feedback")
        for field in ("rating", "subject", "comments", "category"):
            if field in data:
                setattr(feedback, field, data[field])
        db.commit()
        log_event("feedback", current_user.username, "Feedback updated", f"id={feedback_id}")
        return FeedbackService.get(db, feedback.id)

    @staticmethod
    def delete(db: Session, feedback_id: int, username: str) -> bool:
        feedback = db.query(Feedback).filter(Feedback.id == feedback_id).first()
        if feedback is None:
            return False
        db.delete(feedback)
        db.commit()
        log_event("feedback", username, "Feedback deleted", f"id={feedback_id}")
        return True

    # ========== QUERIES ==========

    @staticmethod
    def by_user(db: Session, user_id: int) -> List[Feedback]:
        return _feedback_query(db).filter(Feedback.user_id == user_id).order_by(Feedback.created_at.desc()).all()

    @staticmethod
    def by_reservation(db: Session, reservation_id: int) -> List[Feedback]:
        return (
            _feedback_query(db)
            .filter(Feedback.reservation_id == reservation_id)
            .order_by(Feedback.created_at.desc())
            .all()
        )

    @staticmethod
    def by_category(db: Session, category: str) -> List[Feedback]:
        return (
            _feedback_query(db)
            .filter(Feedback.category.ilike(category))
            .order_by(Feedback.created_at.desc())
            .all()
        )

    @staticmethod
    def by_resolution(db: Session, resolved: bool) -> List[Feedback]:
        return (
            _feedback_query(db)
            .filter(Feedback.is_resolved.is_(resolved))
            .order_by(Feedback.created_at.desc())
            .all()
        )

    @staticmethod
    def by_rating(db: Session, rating: int) -> List[Feedback]:
        if rating not in RATINGS:
            raise InvalidOperationError("Rating must be between 1 and 5")
        return _feedback_query(db).filter(Feedback.rating == rating).order_by(Feedback.created_at.desc()).all()

    # ========== WORKFLOW ==========

    @staticmethod
    def resolve(db: Session, feedback_id: int, notes: Optional[str], current_user: User) -> Feedback:
        feedback = get_or_404(db, Feedback, feedback_id, "Feedback")
        feedback.is_resolved = True
        feedback.resolution_notes = notes
        feedback.resolved_by_id = current_user.id
        feedback.resolved_at = datetime.utcnow()
        db.commit()
        log_event("feedback", current_user.username, "Feedback resolved", f"id={feedback_id}")
        return FeedbackService.get(db, feedback.id)

    # ========== STATISTICS ==========

    @staticmethod
    def stats_by_category(db: Session) -> dict:
        result = {}
        for feedback in db.query(Feedback).all():
            key = feedback.category or "Uncategorized"
            result[key] = result.get(key, 0) + 1
        return result

    @staticmethod
    def stats_by_rating(db: Session) -> dict:
        ratings = [r for (r,) in db.query(Feedback.rating).all()]
        return {
            "counts": {str(value): ratings.count(value) for value in RATINGS},
            "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else 0.0,
        }

    @staticmethod
    def summary(db: Session) -> dict:
        items = db.query(Feedback).all()
        return {
            "total_feedback": len(items),
            "average_rating": round(sum(f.rating for f in items) / len(items), 2) if items else 0.0,
            "unresolved_count": sum(1 for f in items if not f.is_resolved),
            "by_category": FeedbackService.stats_by_category(db),
        }
