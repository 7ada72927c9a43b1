"""
Housekeeping: cleaning tasks, the cleaner workflow and turnover statistics
"""
import random
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from models import (
    CleaningStatus, CleaningTask, Priority, Reservation, ReservationStatus,
    Role, RoleName, Room, RoomStatus, User,
)
from services.common import (
    AccessDeniedError, InvalidOperationError, NotFoundError, get_or_404, parse_enum, validate_date_range,
)
from utils.logging_utils import log_event
from utils.timezone import range_bounds_utc


def _task_query(db: Session):
    return db.query(CleaningTask).options(
        joinedload(CleaningTask.room),
        joinedload(CleaningTask.assigned_to),
    )


def next_task_number(db: Session, room_id: int, day: Optional[date] = None) -> str:
    prefix = f"CLN-{room_id:03d}-{(day or datetime.utcnow().date()):%Y%m%d}-"
    last = (
        db.query(CleaningTask.task_number)
        .filter(CleaningTask.task_number.like(f"{prefix}%"))
        .order_by(CleaningTask.task_number.desc())
        .first()
    )
    sequence = int(last[0].rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}{sequence:02d}"


def random_housekeeper(db: Session) -> Optional[User]:
    housekeepers = (
        db.query(User)
        .join(Role, User.role_id == Role.id)
        .filter(Role.name == RoleName.HOUSEKEEPER.value, User.is_active.is_(True))
        .all()
    )
    return random.choice(housekeepers) if housekeepers else None


def _check_housekeeper(user: User) -> None:
    if user.role_name != RoleName.HOUSEKEEPER.value:
        raise InvalidOperationError(f"User {user.username} is not a housekeeper")


def _check_own_task(task: CleaningTask, current_user: Optional[User], claimable: bool = False) -> None:
    """Housekeepers may only work on the tasks assigned to them; with `claimable` they can take an unassigned one"""
    if current_user is None or current_user.role_name != RoleName.HOUSEKEEPER.value:
        return
    if claimable and task.assigned_to_id is None:
        return
    if task.assigned_to_id != current_user.id:
        raise AccessDeniedError("You can only work on cleaning tasks assigned to you")


def _mark_room_clean(room: Room, cleaner_id: Optional[int]) -> None:
    room.needs_cleaning = False
    room.last_cleaned = datetime.utcnow()
    room.cleaned_by_id = cleaner_id
    if room.status not in (RoomStatus.MAINTENANCE, RoomStatus.RESERVED, RoomStatus.OCCUPIED):
        room.status = RoomStatus.AVAILABLE


class CleaningService:

    # ========== CRUD ==========

    @staticmethod
    def get_all(db: Session) -> List[CleaningTask]:
        return _task_query(db).order_by(CleaningTask.created_at.desc()).all()

    @staticmethod
    def get(db: Session, task_id: int) -> Optional[CleaningTask]:
        return _task_query(db).filter(CleaningTask.id == task_id).first()

    @staticmethod
    def build(db: Session, room: Room, priority: Priority = Priority.MEDIUM,
              description: Optional[str] = None, assigned_to: Optional[User] = None) -> CleaningTask:
        """Adds a task and flags the room dirty, the caller commits"""
        task = CleaningTask(
            task_number=next_task_number(db, room.id),
            room=room,
            assigned_to=assigned_to,
            description=description or f"Cleaning for Room {room.room_number}",
            priority=priority,
            status=CleaningStatus.DIRTY,
        )
        room.needs_cleaning = True
        db.add(task)
        db.flush()
        return task

    @staticmethod
    def create(db: Session, data: dict, username: str) -> CleaningTask:
        room = get_or_404(db, Room, data["room_id"], "Room")
        assignee = None
        if data.get("assigned_to_id"):
            assignee = get_or_404(db, User, data["assigned_to_id"], "User")
            _check_housekeeper(assignee)

        task = CleaningService.build(
            db,
            room,
            data.get("priority") or Priority.MEDIUM,
            data.get("description"),
            assignee,
        )
        db.commit()
        log_event("housekeeping", username, "Cleaning task created", f"task={task.task_number} room={room.room_number}")
        return CleaningService.get(db, task.id)

    @staticmethod
    def create_for_room(db: Session, room_id: int, priority: Priority, username: str) -> CleaningTask:
        return CleaningService.create(db, {"room_id": room_id, "priority": priority}, username)

    @staticmethod
    def update(db: Session, task_id: int, data: dict, current_user: User) -> CleaningTask:
        task = get_or_404(db, CleaningTask, task_id, "Cleaning task")
        _check_own_task(task, current_user)

        if data.get("assigned_to_id"):
            _check_housekeeper(get_or_404(db, User, data["assigned_to_id"], "User"))

        was_cleaned = task.status == CleaningStatus.CLEANED
        for field, value in data.items():
            setattr(task, field, value)

        if task.status == CleaningStatus.IN_PROGRESS and task.started_at is None:
            task.started_at = datetime.utcnow()
        if task.status == CleaningStatus.CLEANED and not was_cleaned:
            task.completed_at = datetime.utcnow()
            _mark_room_clean(task.room, task.assigned_to_id or current_user.id)

        db.commit()
        log_event("housekeeping", current_user.username, "Cleaning task updated", f"task={task.task_number}")
        return CleaningService.get(db, task.id)

    @staticmethod
    def delete(db: Session, task_id: int, username: str) -> bool:
        task = db.query(CleaningTask).filter(CleaningTask.id == task_id).first()
        if task is None:
            return False
        db.delete(task)
        db.commit()
        log_event("housekeeping", username, "Cleaning task deleted", f"task={task.task_number}")
        return True

    # ========== QUERIES ==========

    @staticmethod
    def by_room(db: Session, room_id: int) -> List[CleaningTask]:
        return _task_query(db).filter(CleaningTask.room_id == room_id).order_by(CleaningTask.created_at.desc()).all()

    @staticmethod
    def by_cleaner(db: Session, cleaner_id: int) -> List[CleaningTask]:
        return (
            _task_query(db)
            .filter(CleaningTask.assigned_to_id == cleaner_id)
            .order_by(CleaningTask.created_at.desc())
            .all()
        )

    @staticmethod
    def by_status(db: Session, status: str) -> List[CleaningTask]:
        wanted = parse_enum(CleaningStatus, status)
        return _task_query(db).filter(CleaningTask.status == wanted).order_by(CleaningTask.created_at).all()

    @staticmethod
    def by_priority(db: Session, priority: str) -> List[CleaningTask]:
        wanted = parse_enum(Priority, priority, "priority")
        return _task_query(db).filter(CleaningTask.priority == wanted).order_by(CleaningTask.created_at).all()

    @staticmethod
    def by_date_range(db: Session, start: date, end: date) -> List[CleaningTask]:
        validate_date_range(start, end)
        lower, upper = range_bounds_utc(start, end)
        return (
            _task_query(db)
            .filter(CleaningTask.created_at >= lower, CleaningTask.created_at < upper)
            .order_by(CleaningTask.created_at)
            .all()
        )

    # ========== WORKFLOW ==========

    @staticmethod
    def assign(db: Session, task_id: int, cleaner_id: int, username: str) -> CleaningTask:
        task = get_or_404(db, CleaningTask, task_id, "Cleaning task")
        if cleaner_id == 0:
            task.assigned_to_id = None
            detail = f"task={task.task_number} unassigned"
        else:
            cleaner = get_or_404(db, User, cleaner_id, "User")
            task.assigned_to_id = cleaner.id
            detail = f"task={task.task_number} cleaner={cleaner.username}"
        db.commit()
        log_event("housekeeping", username, "Cleaning task assigned", detail)
        return CleaningService.get(db, task.id)

    @staticmethod
    def start(db: Session, task_id: int, current_user: User) -> CleaningTask:
        task = get_or_404(db, CleaningTask, task_id, "Cleaning task")
        _check_own_task(task, current_user, claimable=True)
        if task.status == CleaningStatus.CLEANED:
            raise InvalidOperationError(f"Cleaning task {task.task_number} is already completed")
        task.status = CleaningStatus.IN_PROGRESS
        task.started_at = task.started_at or datetime.utcnow()
        if task.assigned_to_id is None:
            task.assigned_to_id = current_user.id
        db.commit()
        log_event("housekeeping", current_user.username, "Cleaning started", f"task={task.task_number}")
        return CleaningService.get(db, task.id)

    @staticmethod
    def complete(db: Session, task_id: int, notes: Optional[str], current_user: User) -> CleaningTask:
        task = get_or_404(db, CleaningTask, task_id, "Cleaning task")
        _check_own_task(task, current_user)
        if task.status == CleaningStatus.CLEANED:
            raise InvalidOperationError(f"Cleaning task {task.task_number} is already completed")

        task.status = CleaningStatus.CLEANED
        task.completed_at = datetime.utcnow()
        task.completion_notes = notes
        _mark_room_clean(task.room, task.assigned_to_id or current_user.id)

        db.commit()
        log_event(
            "housekeeping", current_user.username, "Cleaning completed",
            f"task={task.task_number} room={task.room.room_number}",
        )
        return CleaningService.get(db, task.id)

    @staticmethod
    def create_checkout_tasks(db: Session, day: date, username: str) -> List[CleaningTask]:
        """One High priority task per room whose checked-in guest leaves on `day`"""
        departures = db.query(Reservation).filter(
            Reservation.status == ReservationStatus.CHECKED_IN,
            Reservation.check_out_date == day,
            Reservation.room_id.isnot(None),
        ).all()

        created = []
        for reservation in departures:
            room = reservation.room
            has_open = any(t.status != CleaningStatus.CLEANED for t in room.cleaning_tasks)
            if has_open:
                continue
            created.append(CleaningService.build(
                db,
                room,
                Priority.HIGH,
                f"Checkout cleaning for room {room.room_number}",
            ))
        db.commit()
        log_event("housekeeping", username, "Checkout tasks created", f"day={day} count={len(created)}")
        return [CleaningService.get(db, t.id) for t in created]

    # ========== STATISTICS ==========

    @staticmethod
    def stats_by_status(db: Session) -> dict:
        counts = dict(db.query(CleaningTask.status, func.count(CleaningTask.id)).group_by(CleaningTask.status).all())
        return {s.value: counts.get(s, 0) for s in CleaningStatus}

    @staticmethod
    def stats_by_priority(db: Session) -> dict:
        counts = dict(db.query(CleaningTask.priority, func.count(CleaningTask.id)).group_by(CleaningTask.priority).all())
        return {p.value: counts.get(p, 0) for p in Priority}

    @staticmethod
    def stats_by_cleaner(db: Session) -> dict:
        result = {}
        for task in _task_query(db).filter(CleaningTask.assigned_to_id.isnot(None)).all():
            name = task.assigned_to.full_name
            result[name] = result.get(name, 0) + 1
        return result

    @staticmethod
    def statistics(db: Session) -> dict:
        tasks = CleaningService.get_all(db)
        finished = [t for t in tasks if t.status == CleaningStatus.CLEANED and t.completed_at]

        def minutes(task):
            return (task.completed_at - task.created_at).total_seconds() / 60

        per_cleaner = {}
        for task in finished:
            if task.assigned_to is not None:
                per_cleaner.setdefault(task.assigned_to.full_name, []).append(minutes(task))

        return {
            "total_tasks": len(tasks),
            "completed_tasks": len(finished),
            "pending_tasks": sum(1 for t in tasks if t.status == CleaningStatus.DIRTY),
            "in_progress_tasks": sum(1 for t in tasks if t.status == CleaningStatus.IN_PROGRESS),
            "average_completion_minutes": (
                round(sum(minutes(t) for t in finished) / len(finished), 2) if finished else 0.0
            ),
            "average_minutes_by_housekeeper": {
                name: round(sum(values) / len(values), 2) for name, values in per_cleaner.items()
            },
            "by_status": CleaningService.stats_by_status(db),
            "by_priority": CleaningService.stats_by_priority(db),
        }
