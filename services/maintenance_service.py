"""
Maintenance requests raised against rooms and their repair workflow
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from models import (
    MaintenanceRequest, MaintenanceStatus, Room, RoomStatus, User, PRIORITY_RANK, URGENT_PRIORITIES,
)
from services.common import InvalidOperationError, get_or_404, money, parse_enum
from utils.logging_utils import log_event


def _request_query(db: Session):
    return db.query(MaintenanceRequest).options(
        joinedload(MaintenanceRequest.room),
        joinedload(MaintenanceRequest.reported_by),
        joinedload(MaintenanceRequest.assigned_to),
    )


def _ordered(requests: List[MaintenanceRequest]) -> List[MaintenanceRequest]:
    """Urgent first, newest first within the same priority"""
    return sorted(requests, key=lambda r: (-PRIORITY_RANK[r.priority], -r.report_date.timestamp()))


def _release_room(db: Session, room: Optional[Room], resolved_id: int) -> None:
    """Back to Available once no other open High/Urgent request keeps the room blocked"""
    if room is None or room.status != RoomStatus.MAINTENANCE:
        return
    still_blocked = db.query(MaintenanceRequest).filter(
        MaintenanceRequest.room_id == room.id,
        MaintenanceRequest.id != resolved_id,
        MaintenanceRequest.status != MaintenanceStatus.RESOLVED,
        MaintenanceRequest.priority.in_(URGENT_PRIORITIES),
    ).first()
    if still_blocked is None:
        room.status = RoomStatus.AVAILABLE


class MaintenanceService:

    @staticmethod
    def get_all(db: Session) -> List[MaintenanceRequest]:
        return _ordered(_request_query(db).all())

    @staticmethod
    def get(db: Session, request_id: int) -> Optional[MaintenanceRequest]:
        return _request_query(db).filter(MaintenanceRequest.id == request_id).first()

    @staticmethod
    def create(db: Session, data: dict, current_user: User) -> MaintenanceRequest:
        room = None
        if data.get("room_id") is not None:
            room = get_or_404(db, Room, data["room_id"], "Room")

        request = MaintenanceRequest(
            room=room,
            issue_description=data["issue_description"],
            priority=data["priority"],
            status=MaintenanceStatus.REPORTED,
            reported_by_id=current_user.id,
        )
        if room is not None and request.priority in URGENT_PRIORITIES and room.status != RoomStatus.OCCUPIED:
            room.status = RoomStatus.MAINTENANCE

        db.add(request)
        db.commit()
        log_event(
            "maintenance", current_user.username, "Maintenance reported",
            f"id={request.id} room={room.room_number if room else None} priority={request.priority.value}",
        )
        return MaintenanceService.get(db, request.id)

    @staticmethod
    def update(db: Session, request_id: int, data: dict, username: str) -> MaintenanceRequest:
        request = get_or_404(db, MaintenanceRequest, request_id, "Maintenance request")
        if data.get("assigned_to_id") is not None:
            get_or_404(db, User, data["assigned_to_id"], "User")
        if data.get("room_id") is not None:
            get_or_404(db, Room, data["room_id"], "Room")
        if "cost_of_repair" in data and data["cost_of_repair"] is not None:
            data["cost_of_repair"] = money(data["cost_of_repair"])

        was_resolved = request.status == MaintenanceStatus.RESOLVED
        for field, value in data.items():
            setattr(request, field, value)

        if request.status == MaintenanceStatus.RESOLVED and not was_resolved:
            request.completed_at = datetime.utcnow()
            if request.room_id is not None:
                _release_room(db, db.query(Room).filter(Room.id == request.room_id).first(), request.id)

        db.commit()
        log_event("maintenance", username, "Maintenance updated", f"id={request.id} fields={list(data)}")
        return MaintenanceService.get(db, request.id)

    @staticmethod
    def delete(db: Session, request_id: int, username: str) -> bool:
        request = db.query(MaintenanceRequest).filter(MaintenanceRequest.id == request_id).first()
        if request is None:
            return False
        db.delete(request)
        db.commit()
        log_event("maintenance", username, "Maintenance deleted", f"id={request_id}")
        return True

    # ========== QUERIES ==========

    @staticmethod
    def by_status(db: Session, status: str) -> List[MaintenanceRequest]:
        wanted = parse_enum(MaintenanceStatus, status)
        return _ordered(_request_query(db).filter(MaintenanceRequest.status == wanted).all())

    @staticmethod
    def by_room(db: Session, room_id: int) -> List[MaintenanceRequest]:
        get_or_404(db, Room, room_id, "Room")
        return _ordered(_request_query(db).filter(MaintenanceRequest.room_id == room_id).all())

    @staticmethod
    def by_assignee(db: Session, user_id: int) -> List[MaintenanceRequest]:
        return _ordered(_request_query(db).filter(MaintenanceRequest.assigned_to_id == user_id).all())

    # ========== WORKFLOW ==========

    @staticmethod
    def assign(db: Session, request_id: int, user_id: int, username: str) -> MaintenanceRequest:
        request = get_or_404(db, MaintenanceRequest, request_id, "Maintenance request")
        if request.status == MaintenanceStatus.RESOLVED:
            raise InvalidOperationError("Cannot assign a resolved maintenance request")
        assignee = get_or_404(db, User, user_id, "User")
        request.assigned_to_id = assignee.id
        request.status = MaintenanceStatus.IN_PROGRESS
        db.commit()
        log_event("maintenance", username, "Maintenance assigned", f"id={request.id} to={assignee.username}")
        return MaintenanceService.get(db, request.id)

    @staticmethod
    def complete(db: Session, request_id: int, notes: Optional[str], cost, username: str) -> MaintenanceRequest:
        request = get_or_404(db, MaintenanceRequest, request_id, "Maintenance request")
        if request.status == MaintenanceStatus.RESOLVED:
            raise InvalidOperationError("Maintenance request is already resolved")
        request.status = MaintenanceStatus.RESOLVED
        request.completed_at = datetime.utcnow()
        request.resolution_notes = notes
        if cost is not None:
            request.cost_of_repair = money(cost)
        _release_room(db, request.room, request.id)
        db.commit()
        log_event("maintenance", username, "Maintenance resolved", f"id={request.id} cost={request.cost_of_repair}")
        return MaintenanceService.get(db, request.id)
