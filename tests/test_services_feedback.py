"""
Tests del catálogo de servicios, pedidos de servicio, feedback y reportes
"""
from models import RoleName


def _order(client, headers, reservation_id, service_id, quantity=1, role=RoleName.GUEST):
    return client.post(
        "/api/serviceorder",
        json={"reservation_id": reservation_id, "service_id": service_id, "quantity": quantity},
        headers=headers[role],
    )


class TestServiceCatalog:

    def test_manager_creates_and_anyone_reads(self, client, headers):
        response = client.post(
            "/api/service",
            json={"service_name": "Swedish Massage", "service_type": "Spa", "price": 80},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 201
        service = response.json()
        assert service["is_active"] is True
        assert service["total_orders"] == 0

        response = client.get("/api/service/type/spa", headers=headers[RoleName.GUEST])
        assert [s["service_name"] for s in response.json()] == ["Swedish Massage"]

    def test_receptionist_cannot_edit_catalog(self, client, headers, breakfast):
        response = client.put(
            f"/api/service/{breakfast.id}", json={"price": 1}, headers=headers[RoleName.RECEPTIONIST]
        )
        assert response.status_code == 403

    def test_delete_with_orders_deactivates(self, client, headers, booking, breakfast):
        _order(client, headers, booking["id"], breakfast.id)

        response = client.delete(f"/api/service/{breakfast.id}", headers=headers[RoleName.MANAGER])
        assert response.status_code == 204

        service = client.get(f"/api/service/{breakfast.id}", headers=headers[RoleName.MANAGER]).json()
        assert service["is_active"] is False
        assert client.get("/api/service/active", headers=headers[RoleName.GUEST]).json() == []

    def test_delete_unused_removes(self, client, headers, breakfast):
        assert client.delete(f"/api/service/{breakfast.id}", headers=headers[RoleName.MANAGER]).status_code == 204
        assert client.get(f"/api/service/{breakfast.id}", headers=headers[RoleName.MANAGER]).status_code == 404

    def test_stats_by_type(self, client, headers, breakfast):
        client.post(
            "/api/service",
            json={"service_name": "Dinner", "service_type": "Food", "price": 45},
            headers=headers[RoleName.MANAGER],
        )
        response = client.get("/api/service/stats/bytype", headers=headers[RoleName.MANAGER])
        food = response.json()["Food"]
        assert food["count"] == 2
        assert food["average_price"] == 30.0


class TestServiceOrders:

    def test_guest_orders_for_own_reservation(self, client, headers, booking, breakfast):
        response = _order(client, headers, booking["id"], breakfast.id, quantity=3)
        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "Pending"
        assert order["price_charged"] == 15.0
        assert order["total_price"] == 45.0
        assert order["delivery_location"] == "Front desk"

        response = _order(client, headers, booking["id"], breakfast.id, role="other_guest")
        assert response.status_code == 403

    def test_inactive_service_cannot_be_ordered(self, client, headers, booking, breakfast):
        client.put(f"/api/service/{breakfast.id}", json={"is_active": False}, headers=headers[RoleName.MANAGER])
        response = _order(client, headers, booking["id"], breakfast.id)
        assert response.status_code == 400
        assert "is not active" in response.json()["detail"]

    def test_no_orders_on_cancelled_reservation(self, client, headers, booking, breakfast):
        client.post(f"/api/reservations/{booking['id']}/cancel", headers=headers[RoleName.GUEST])
        response = _order(client, headers, booking["id"], breakfast.id)
        assert response.status_code == 400

    def test_staff_delivers_order(self, client, headers, users, booking, breakfast):
        order = _order(client, headers, booking["id"], breakfast.id, quantity=2).json()

        url = f"/api/serviceorder/{order['id']}/complete"
        assert client.post(url, headers=headers[RoleName.GUEST]).status_code == 403

        response = client.post(url, json={"notes": "Delivered to room"}, headers=headers[RoleName.STAFF])
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Completed"
        assert data["completed_by_id"] == users[RoleName.STAFF].id
        assert data["completed_at"] is not None

        response = client.post(f"/api/serviceorder/{order['id']}/cancel", headers=headers[RoleName.GUEST])
        assert response.status_code == 400

        stats = client.get("/api/serviceorder/stats", headers=headers[RoleName.MANAGER]).json()
        assert stats["by_status"]["Completed"] == 1
        assert stats["revenue_by_service_type"] == {"Food": 30.0}

    def test_guest_cancels_own_order(self, client, headers, booking, breakfast):
        order = _order(client, headers, booking["id"], breakfast.id).json()
        url = f"/api/serviceorder/{order['id']}/cancel"

        assert client.post(url, headers=headers["other_guest"]).status_code == 403

        response = client.post(url, json={"reason": "Not hungry"}, headers=headers[RoleName.GUEST])
        assert response.status_code == 200
        assert response.json()["status"] == "Cancelled"
        assert response.json()["completion_notes"] == "Cancelled: Not hungry"

        response = client.post(url, headers=headers[RoleName.GUEST])
        assert response.status_code == 400

    def test_update_quantity_reprices(self, client, headers, booking, breakfast):
        order = _order(client, headers, booking["id"], breakfast.id).json()
        response = client.put(
            f"/api/serviceorder/{order['id']}", json={"quantity": 4}, headers=headers[RoleName.RECEPTIONIST]
        )
        assert response.status_code == 200
        assert response.json()["total_price"] == 60.0

    def test_orders_of_reservation(self, client, headers, booking, breakfast):
        _order(client, headers, booking["id"], breakfast.id)
        url = f"/api/serviceorder/reservation/{booking['id']}"
        assert len(client.get(url, headers=headers[RoleName.GUEST]).json()) == 1
        assert client.get(url, headers=headers["other_guest"]).status_code == 403


class TestFeedback:

    def _send(self, client, headers, rating, role=RoleName.GUEST, **extra):
        payload = {"rating": rating, "subject": "Stay", "comments": "Nice view"}
        payload.update(extra)
        return client.post("/api/feedback", json=payload, headers=headers[role])

    def test_guest_feedback_defaults_to_profile(self, client, headers, users, booking):
        response = self._send(client, headers, 5, reservation_id=booking["id"], category="Room")
        assert response.status_code == 201
        data = response.json()
        guest = users[RoleName.GUEST]
        assert data["guest_name"] == guest.full_name
        assert data["guest_email"] == guest.email
        assert data["reservation_number"] == booking["reservation_number"]
        assert data["is_resolved"] is False

    def test_feedback_on_foreign_reservation(self, client, headers, booking):
        response = self._send(client, headers, 1, role="other_guest", reservation_id=booking["id"])
        assert response.status_code == 403

    def test_rating_out_of_range(self, client, headers):
        assert self._send(client, headers, 6).status_code == 422
        response = client.get("/api/feedback/rating/9", headers=headers[RoleName.MANAGER])
        assert response.status_code == 400

    def test_guest_edits_only_own(self, client, headers):
        feedback = self._send(client, headers, 3).json()
        url = f"/api/feedback/{feedback['id']}"

        response = client.put(url, json={"rating": 4}, headers=headers[RoleName.GUEST])
        assert response.status_code == 200
        assert response.json()["rating"] == 4

        assert client.put(url, json={"rating": 1}, headers=headers["other_guest"]).status_code == 403
        assert client.get(url, headers=headers["other_guest"]).status_code == 403

    def test_resolve_and_summary(self, client, headers, users):
        first = self._send(client, headers, 2, category="Service").json()
        self._send(client, headers, 4, role="other_guest", category="Room")
        self._send(client, headers, 5, role="other_guest")

        response = client.post(
            f"/api/feedback/{first['id']}/resolve",
            json={"resolution_notes": "Apologized and offered a discount"},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 200
        assert response.json()["resolved_by_id"] == users[RoleName.MANAGER].id

        summary = client.get("/api/feedback/summary", headers=headers[RoleName.MANAGER]).json()
        assert summary["total_feedback"] == 3
        assert summary["average_rating"] == 3.67
        assert summary["unresolved_count"] == 2
        assert summary["by_category"] == {"Service": 1, "Room": 1, "Uncategorized": 1}

        unresolved = client.get("/api/feedback/resolved/false", headers=headers[RoleName.MANAGER]).json()
        assert len(unresolved) == 2

        ratings = client.get("/api/feedback/stats/rating", headers=headers[RoleName.MANAGER]).json()
        assert ratings["counts"] == {"1": 0, "2": 1, "3": 0, "4": 1, "5": 1}

    def test_guest_cannot_list_all(self, client, headers):
        assert client.get("/api/feedback", headers=headers[RoleName.GUEST]).status_code == 403


class TestReports:

    def test_generate_feedback_report(self, client, headers, users):
        client.post("/api/feedback", json={"rating": 4}, headers=headers[RoleName.GUEST])

        response = client.post(
            "/api/report",
            json={"report_name": "Weekly feedback", "report_type": "Feedback"},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 201
        report = response.json()
        assert report["created_by_id"] == users[RoleName.MANAGER].id
        assert report["report_data"]["total_feedback"] == 1
        assert report["report_data"]["average_rating"] == 4.0

    def test_revenue_report_uses_range(self, client, headers):
        response = client.post(
            "/api/report",
            json={
                "report_name": "Q1 revenue",
                "report_type": "Revenue",
                "start_date": "2026-01-01",
                "end_date": "2026-03-31",
            },
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 201
        data = response.json()["report_data"]
        assert data["total_revenue"] == 0.0

    def test_filter_by_type_and_delete(self, client, headers):
        created = client.post(
            "/api/report",
            json={"report_name": "Rooms now", "report_type": "Occupancy"},
            headers=headers[RoleName.MANAGER],
        ).json()

        listed = client.get("/api/report/type/occupancy", headers=headers[RoleName.MANAGER]).json()
        assert [r["id"] for r in listed] == [created["id"]]
        assert client.get("/api/report/type/Weekly", headers=headers[RoleName.MANAGER]).status_code == 400

        url = f"/api/report/{created['id']}"
        assert client.delete(url, headers=headers[RoleName.MANAGER]).status_code == 204
        assert client.get(url, headers=headers[RoleName.MANAGER]).status_code == 404

    def test_reports_need_management(self, client, headers):
        assert client.get("/api/report", headers=headers[RoleName.RECEPTIONIST]).status_code == 403
