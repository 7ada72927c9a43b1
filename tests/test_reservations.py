"""
Tests de reservas: alta, ciclo de recepción y permisos de huésped
"""
from datetime import timedelta

from models import RoleName
from utils.timezone import hotel_today


def _new_booking(client, headers, room_type_id, check_in, check_out, role=RoleName.GUEST, **extra):
    payload = {
        "room_type_id": room_type_id,
        "check_in_date": check_in.isoformat(),
        "check_out_date": check_out.isoformat(),
        "number_of_guests": 1,
    }
    payload.update(extra)
    return client.post("/api/reservations", json=payload, headers=headers[role])


class TestCreateReservation:
    """Alta de reservas y validaciones de estadía"""

    def test_guest_creates_pending_reservation_with_invoice(self, booking, users):
        assert booking["status"] == "Pending"
        assert booking["user_id"] == users[RoleName.GUEST].id
        assert booking["nights"] == 3
        assert booking["total_price"] == 360.0
        assert booking["invoices_count"] == 1
        assert booking["payment_status"] == "Pending"
        assert booking["reservation_number"].startswith("RES-")

    def test_services_are_added_to_total(self, client, headers, deluxe, rooms, breakfast, stay_dates):
        check_in, check_out = stay_dates
        response = _new_booking(
            client, headers, deluxe.id, check_in, check_out,
            services=[{"service_id": breakfast.id, "quantity": 2}],
        )
        assert response.status_code == 201
        data = response.json()
        assert data["total_price"] == 390.0
        assert data["service_orders_count"] == 1

    def test_check_in_in_the_past_is_rejected(self, client, headers, deluxe, rooms):
        yesterday = hotel_today() - timedelta(days=1)
        response = _new_booking(client, headers, deluxe.id, yesterday, yesterday + timedelta(days=2))
        assert response.status_code == 400
        assert response.json()["detail"] == "Check-in date cannot be in the past"

    def test_check_out_must_follow_check_in(self, client, headers, deluxe, rooms, stay_dates):
        check_in, _ = stay_dates
        response = _new_booking(client, headers, deluxe.id, check_in, check_in)
        assert response.status_code == 400
        assert response.json()["detail"] == "Check-out date must be after check-in date"

    def test_guest_count_over_capacity(self, client, headers, deluxe, rooms, stay_dates):
        check_in, check_out = stay_dates
        response = _new_booking(client, headers, deluxe.id, check_in, check_out, number_of_guests=3)
        assert response.status_code == 400
        assert "exceeds the capacity" in response.json()["detail"]

    def test_room_type_sold_out(self, client, headers, deluxe, rooms, stay_dates):
        check_in, check_out = stay_dates
        for _ in range(2):
            assert _new_booking(client, headers, deluxe.id, check_in, check_out).status_code == 201

        response = _new_booking(client, headers, deluxe.id, check_in, check_out)
        assert response.status_code == 400
        assert "No Deluxe Room rooms available" in response.json()["detail"]

        # el día de salida queda libre para una nueva llegada
        response = _new_booking(client, headers, deluxe.id, check_out, check_out + timedelta(days=1))
        assert response.status_code == 201

    def test_staff_books_on_behalf_of_guest(self, client, headers, users, deluxe, rooms, stay_dates):
        check_in, check_out = stay_dates
        guest = users["other_guest"]
        response = _new_booking(
            client, headers, deluxe.id, check_in, check_out,
            role=RoleName.RECEPTIONIST, user_id=guest.id,
        )
        assert response.status_code == 201
        assert response.json()["user_id"] == guest.id


class TestGuestAccess:
    """Un huésped solo ve y cancela sus propias reservas"""

    def test_guest_reads_own_reservation(self, client, headers, booking):
        response = client.get(f"/api/reservations/{booking['id']}", headers=headers[RoleName.GUEST])
        assert response.status_code == 200
        assert response.json()["id"] == booking["id"]

    def test_other_guest_is_forbidden(self, client, headers, booking):
        response = client.get(f"/api/reservations/{booking['id']}", headers=headers["other_guest"])
        assert response.status_code == 403

        response = client.post(f"/api/reservations/{booking['id']}/cancel", headers=headers["other_guest"])
        assert response.status_code == 403

    def test_guest_cannot_list_all_reservations(self, client, headers, booking):
        response = client.get("/api/reservations", headers=headers[RoleName.GUEST])
        assert response.status_code == 403

    def test_guest_lists_only_own_user_reservations(self, client, headers, users, booking):
        own = users[RoleName.GUEST].id
        response = client.get(f"/api/reservations/user/{own}", headers=headers[RoleName.GUEST])
        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [booking["id"]]

        other = users["other_guest"].id
        response = client.get(f"/api/reservations/user/{other}", headers=headers[RoleName.GUEST])
        assert response.status_code == 403

    def test_missing_token_is_unauthorized(self, client, booking):
        response = client.get(f"/api/reservations/{booking['id']}")
        assert response.status_code == 401


class TestFrontDeskFlow:
    """Confirmación, asignación de habitación, check-in y check-out"""

    def test_full_stay(self, client, headers, users, booking, rooms):
        desk = headers[RoleName.RECEPTIONIST]
        rid = booking["id"]
        room = rooms[0]

        response = client.post(f"/api/reservations/{rid}/confirm", headers=desk)
        assert response.status_code == 200
        assert response.json()["status"] == "Confirmed"

        response = client.post(f"/api/reservations/{rid}/assign-room/{room.id}", headers=desk)
        assert response.status_code == 200
        assert response.json()["status"] == "Reserved"
        assert response.json()["room_number"] == "101"

        response = client.post(f"/api/reservations/{rid}/checkin", json={}, headers=desk)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "CheckedIn"
        assert data["checked_in_time"] is not None

        room_state = client.get(f"/api/rooms/{room.id}", headers=desk).json()
        assert room_state["status"] == "Occupied"

        response = client.post(f"/api/reservations/{rid}/checkout", headers=desk)
        assert response.status_code == 200
        assert response.json()["status"] == "CheckedOut"

        room_state = client.get(f"/api/rooms/{room.id}", headers=desk).json()
        assert room_state["status"] == "Available"
        assert room_state["needs_cleaning"] is True

        tasks = client.get(f"/api/cleaningtask/room/{room.id}", headers=headers[RoleName.MANAGER]).json()
        assert len(tasks) == 1
        assert tasks[0]["priority"] == "Medium"
        assert tasks[0]["status"] == "Dirty"
        assert tasks[0]["assigned_to_id"] == users[RoleName.HOUSEKEEPER].id

    def test_check_in_twice(self, client, headers, booking, rooms):
        desk = headers[RoleName.RECEPTIONIST]
        url = f"/api/reservations/{booking['id']}/checkin"
        assert client.post(url, json={"room_id": rooms[0].id}, headers=desk).status_code == 200

        response = client.post(url, json={"room_id": rooms[0].id}, headers=desk)
        assert response.status_code == 400
        assert response.json()["detail"] == "Reservation is already checked in"

    def test_check_in_without_room(self, client, headers, booking):
        response = client.post(
            f"/api/reservations/{booking['id']}/checkin", json={}, headers=headers[RoleName.RECEPTIONIST]
        )
        assert response.status_code == 400

    def test_check_in_room_of_other_type(self, client, headers, booking, rooms):
        family_room = rooms[2]
        response = client.post(
            f"/api/reservations/{booking['id']}/checkin",
            json={"room_id": family_room.id},
            headers=headers[RoleName.RECEPTIONIST],
        )
        assert response.status_code == 400
        assert "not of the reserved room type" in response.json()["detail"]

    def test_cannot_cancel_checked_in(self, client, headers, booking, rooms):
        desk = headers[RoleName.RECEPTIONIST]
        client.post(f"/api/reservations/{booking['id']}/checkin", json={"room_id": rooms[0].id}, headers=desk)

        response = client.post(f"/api/reservations/{booking['id']}/cancel", json={"reason": "x"}, headers=desk)
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot cancel a reservation that is already checked in"

    def test_guest_cancels_and_unpaid_invoice_is_dropped(self, client, headers, booking):
        response = client.post(
            f"/api/reservations/{booking['id']}/cancel",
            json={"reason": "Change of plans"},
            headers=headers[RoleName.GUEST],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Cancelled"
        assert data["cancellation_reason"] == "Change of plans"
        assert data["invoices_count"] == 0

    def test_available_rooms_for_reservation(self, client, headers, booking, rooms):
        response = client.get(
            f"/api/reservations/{booking['id']}/available-rooms", headers=headers[RoleName.RECEPTIONIST]
        )
        assert response.status_code == 200
        assert sorted(r["room_number"] for r in response.json()) == ["101", "102"]


class TestUpdateAndPlanning:

    def test_update_dates_reprices(self, client, headers, booking, stay_dates):
        check_in, _ = stay_dates
        response = client.put(
            f"/api/reservations/{booking['id']}",
            json={"check_out_date": (check_in + timedelta(days=5)).isoformat()},
            headers=headers[RoleName.RECEPTIONIST],
        )
        assert response.status_code == 200
        assert response.json()["total_price"] == 600.0

    def test_forecast_counts_nights(self, client, headers, booking, stay_dates):
        check_in, check_out = stay_dates
        response = client.get(
            "/api/reservations/forecast",
            params={"start_date": check_in.isoformat(), "end_date": check_out.isoformat()},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 200
        data = response.json()
        assert data[check_in.isoformat()] == 1
        assert data[check_out.isoformat()] == 0

    def test_forecast_rejects_inverted_range(self, client, headers, stay_dates):
        check_in, check_out = stay_dates
        response = client.get(
            "/api/reservations/forecast",
            params={"start_date": check_out.isoformat(), "end_date": check_in.isoformat()},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 400

    def test_statistics(self, client, headers, booking):
        response = client.get("/api/reservations/stats", headers=headers[RoleName.MANAGER])
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["pending"] == 1

    def test_invalid_status_filter(self, client, headers):
        response = client.get("/api/reservations/status/Unknown", headers=headers[RoleName.RECEPTIONIST])
        assert response.status_code == 400

    def test_delete_requires_management(self, client, headers, booking):
        url = f"/api/reservations/{booking['id']}"
        assert client.delete(url, headers=headers[RoleName.RECEPTIONIST]).status_code == 403
        assert client.delete(url, headers=headers[RoleName.MANAGER]).status_code == 204
        assert client.get(url, headers=headers[RoleName.MANAGER]).status_code == 404
