"""
Catalog of sellable hotel services (spa, room service, laundry...)
"""
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from models import Service
from services.common import get_or_404
from utils.logging_utils import log_event


def _service_query(db: Session):
    return db.query(Service).options(selectinload(Service.orders))


class ServiceCatalogService:

    @staticmethod
    def get_all(db: Session) -> List[Service]:
        return _service_query(db).order_by(Service.service_type, Service.service_name).all()

    @staticmethod
    def get(db: Session, service_id: int) -> Optional[Service]:
        return _service_query(db).filter(Service.id == service_id).first()

    @staticmethod
    def create(db: Session, data: dict, username: str) -> Service:
        service = Service(**data)
        db.add(service)
        db.commit()
        log_event("services", username, "Service created", f"name={service.service_name} price={service.price}")
        return ServiceCatalogService.get(db, service.id)

    @staticmethod
    def update(db: Session, service_id: int, data: dict, username: str) -> Service:
        service = get_or_404(db, Service, service_id, "Service")
        for field, value in data.items():
            setattr(service, field, value)
        db.commit()
        log_event("services", username, "Service updated", f"id={service_id} fields={list(data)}")
        return ServiceCatalogService.get(db, service.id)

    @staticmethod
    def delete(db: Session, service_id: int, username: str) -> bool:
        """Services with order history are deactivated instead of removed"""
        service = db.query(Service).filter(Service.id == service_id).first()
        if service is None:
            return False
        if service.orders:
            service.is_active = False
            action = "Service deactivated"
        else:
            db.delete(service)
            action = "Service deleted"
        db.commit()
        log_event("services", username, action, f"id={service_id}")
        return True

    @staticmethod
    def by_type(db: Session, service_type: str) -> List[Service]:
        return (
            _service_query(db)
            .filter(Service.service_type.ilike(service_type))
            .order_by(Service.service_name)
            .all()
        )

    @staticmethod
    def active(db: Session) -> List[Service]:
        return _service_query(db).filter(Service.is_active.is_(True)).order_by(Service.service_name).all()

    @staticmethod
    def stats_by_type(db: Session) -> dict:
        result = {}
        for service in ServiceCatalogService.get_all(db):
            entry = result.setdefault(service.service_type, {"count": 0, "active_count": 0, "prices": []})
            entry["count"] += 1
            entry["active_count"] += 1 if service.is_active else 0
            entry["prices"].append(float(service.price))
        for entry in result.values():
            prices = entry.pop("prices")
            entry["average_price"] = round(sum(prices) / len(prices), 2)
        return result
