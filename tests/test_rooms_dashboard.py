"""
Tests de habitaciones, disponibilidad y dashboards por rol
"""
from datetime import date, timedelta

from models import RoleName
from services.availability import next_available_date, nights_between, stay_price
from utils.timezone import hotel_today


class TestRoomCatalog:

    def test_room_types_are_seeded(self, client, headers):
        response = client.get("/api/rooms/types", headers=headers[RoleName.GUEST])
        assert response.status_code == 200
        names = [t["name"] for t in response.json()]
        assert names == ["Deluxe Room", "Executive Suite", "Family Room", "Presidential Suite"]
        assert "WiFi" in response.json()[0]["amenities"]

    def test_create_room_with_own_price(self, client, headers, deluxe):
        response = client.post(
            "/api/rooms",
            json={"room_number": "301", "floor": 3, "room_type_id": deluxe.id, "base_price": 150},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 201
        data = response.json()
        assert data["price"] == 150.0
        assert data["room_type_name"] == "Deluxe Room"
        assert data["status"] == "Available"

    def test_duplicate_room_number(self, client, headers, deluxe, rooms):
        response = client.post(
            "/api/rooms", json={"room_number": "101", "room_type_id": deluxe.id}, headers=headers[RoleName.MANAGER]
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Room number 101 already exists"

    def test_receptionist_cannot_create(self, client, headers, deluxe):
        response = client.post(
            "/api/rooms", json={"room_number": "401", "room_type_id": deluxe.id}, headers=headers[RoleName.RECEPTIONIST]
        )
        assert response.status_code == 403

    def test_filters(self, client, headers, rooms):
        guest = headers[RoleName.GUEST]
        assert [r["room_number"] for r in client.get("/api/rooms/floor/2", headers=guest).json()] == ["201"]

        response = client.get("/api/rooms/price-range", params={"min_price": 100, "max_price": 150}, headers=guest)
        assert [r["room_number"] for r in response.json()] == ["101", "102"]

        response = client.get("/api/rooms/price-range", params={"min_price": 300, "max_price": 100}, headers=guest)
        assert response.status_code == 400

    def test_delete_blocked_by_active_reservation(self, client, headers, booking, rooms):
        client.post(
            f"/api/reservations/{booking['id']}/assign-room/{rooms[0].id}", headers=headers[RoleName.RECEPTIONIST]
        )
        response = client.delete(f"/api/rooms/{rooms[0].id}", headers=headers[RoleName.ADMIN])
        assert response.status_code == 400
        assert "active reservation" in response.json()["detail"]

        assert client.delete(f"/api/rooms/{rooms[1].id}", headers=headers[RoleName.MANAGER]).status_code == 403
        assert client.delete(f"/api/rooms/{rooms[1].id}", headers=headers[RoleName.ADMIN]).status_code == 204


class TestAvailability:

    def test_assigned_room_reports_next_free_date(self, client, headers, booking, rooms, stay_dates):
        check_in, check_out = stay_dates
        client.post(
            f"/api/reservations/{booking['id']}/assign-room/{rooms[0].id}", headers=headers[RoleName.RECEPTIONIST]
        )

        response = client.get(
            "/api/rooms/available",
            params={"check_in_date": check_in.isoformat(), "check_out_date": check_out.isoformat()},
            headers=headers[RoleName.GUEST],
        )
        assert response.status_code == 200
        by_number = {r["room_number"]: r for r in response.json()}
        assert by_number["101"]["is_available"] is False
        assert by_number["101"]["next_available_date"] == check_out.isoformat()
        assert by_number["102"]["is_available"] is True
        assert by_number["102"]["total_price"] == 360.0
        assert by_number["201"]["nights"] == 3

    def test_price_quote(self, client, headers, rooms, stay_dates):
        check_in, check_out = stay_dates
        response = client.get(
            f"/api/rooms/{rooms[2].id}/price",
            params={"check_in_date": check_in.isoformat(), "check_out_date": check_out.isoformat()},
            headers=headers[RoleName.RECEPTIONIST],
        )
        assert response.status_code == 200
        assert response.json()["price_per_night"] == 216.0
        assert response.json()["total_price"] == 648.0

    def test_next_available_date_skips_chained_stays(self):
        stays = [(date(2026, 5, 1), date(2026, 5, 4)), (date(2026, 5, 5), date(2026, 5, 8))]
        # 2 noches desde el 1: el hueco del 4 al 5 es de una sola noche
        assert next_available_date(stays, date(2026, 5, 1), 2) == date(2026, 5, 8)
        assert next_available_date(stays, date(2026, 5, 1), 1) == date(2026, 5, 4)
        assert next_available_date([], date(2026, 5, 1), 3) == date(2026, 5, 1)

    def test_stay_price(self):
        assert nights_between(date(2026, 5, 1), date(2026, 5, 4)) == 3
        assert str(stay_price(120, date(2026, 5, 1), date(2026, 5, 4))) == "360.00"


class TestRoomStatus:

    def test_housekeeper_sets_maintenance(self, client, headers, rooms):
        response = client.post(
            f"/api/rooms/{rooms[0].id}/status/maintenance", headers=headers[RoleName.HOUSEKEEPER]
        )
        assert response.status_code == 200
        assert response.json()["status"] == "Maintenance"

        occupancy = client.get("/api/rooms/occupancy", headers=headers[RoleName.MANAGER]).json()
        assert occupancy["total_rooms"] == 3
        assert occupancy["maintenance_rooms"] == 1

    def test_occupied_room_cannot_be_freed(self, client, headers, booking, rooms):
        client.post(
            f"/api/reservations/{booking['id']}/checkin",
            json={"room_id": rooms[0].id},
            headers=headers[RoleName.RECEPTIONIST],
        )
        response = client.post(
            f"/api/rooms/{rooms[0].id}/status/Available", headers=headers[RoleName.RECEPTIONIST]
        )
        assert response.status_code == 400
        assert booking["reservation_number"] in response.json()["detail"]

    def test_unknown_status(self, client, headers, rooms):
        response = client.post(f"/api/rooms/{rooms[0].id}/status/Closed", headers=headers[RoleName.MANAGER])
        assert response.status_code == 400


class TestDashboards:

    def test_manager_dashboard_forecast(self, client, headers, booking, stay_dates):
        check_in, _ = stay_dates
        response = client.get("/api/dashboard/manager", headers=headers[RoleName.MANAGER])
        assert response.status_code == 200
        data = response.json()
        assert data["total_rooms"] == 3
        assert data["pending_reservations"] == 1
        assert data["today_new_reservations"] == 1
        assert data["unpaid_invoices"] == 1
        assert data["outstanding_balance"] == 396.0
        assert data["occupancy_forecast"][check_in.isoformat()] == 1
        assert data["revenue_forecast"][check_in.isoformat()] == 120.0
        assert data["occupancy_forecast"][hotel_today().isoformat()] == 0

    def test_revenue_with_sold_nights(self, client, headers, booking, rooms):
        desk = headers[RoleName.RECEPTIONIST]
        invoice = client.get(f"/api/invoice/reservation/{booking['id']}", headers=desk).json()[0]
        client.post("/api/payment", json={"invoice_id": invoice["id"], "amount_paid": 100}, headers=desk)
        client.post(f"/api/reservations/{booking['id']}/checkin", json={"room_id": rooms[0].id}, headers=desk)

        today = hotel_today()
        response = client.get(
            "/api/dashboard/revenue",
            params={"start_date": today.isoformat(), "end_date": (today + timedelta(days=5)).isoformat()},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_revenue"] == 100.0
        assert data["revenue_by_room_type"] == {"Deluxe Room": 396.0}
        # 3 noches de 120 sobre 3 habitaciones x 6 días
        assert data["revpar"] == 20.0
        assert data["revenue_by_payment_method"]["Cash"]["amount"] == 100.0
        assert data["month_over_month_growth"] == 100.0

    def test_daily_revenue_defaults_to_last_30_days(self, client, headers):
        response = client.get("/api/dashboard/daily-revenue", headers=headers[RoleName.MANAGER])
        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 31
        assert rows[-1]["date"] == hotel_today().isoformat()

    def test_inverted_range(self, client, headers):
        today = hotel_today()
        response = client.get(
            "/api/dashboard/revenue",
            params={"start_date": today.isoformat(), "end_date": (today - timedelta(days=1)).isoformat()},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 400

    def test_role_views(self, client, headers, booking):
        response = client.get("/api/dashboard/receptionist", headers=headers[RoleName.RECEPTIONIST])
        assert response.status_code == 200
        assert response.json()["expected_arrivals_next_7_days"] == 1

        response = client.get("/api/dashboard/housekeeper", headers=headers[RoleName.HOUSEKEEPER])
        assert response.status_code == 200
        assert response.json()["my_open_tasks"] == 0

        assert client.get("/api/dashboard/manager", headers=headers[RoleName.RECEPTIONIST]).status_code == 403
        assert client.get("/api/dashboard/housekeeper", headers=headers[RoleName.GUEST]).status_code == 403
