"""
Tests de limpieza y mantenimiento de habitaciones
"""
from datetime import datetime

from models import RoleName


def _new_task(client, headers, room_id, priority="Medium", role=RoleName.RECEPTIONIST, **extra):
    payload = {"room_id": room_id, "priority": priority}
    payload.update(extra)
    return client.post("/api/cleaningtask", json=payload, headers=headers[role])


class TestCleaningTasks:

    def test_create_flags_room_dirty(self, client, headers, rooms):
        room = rooms[0]
        response = _new_task(client, headers, room.id, "High")
        assert response.status_code == 201
        task = response.json()
        assert task["status"] == "Dirty"
        assert task["priority"] == "High"
        assert task["description"] == "Cleaning for Room 101"
        assert task["task_number"] == f"CLN-{room.id:03d}-{datetime.utcnow():%Y%m%d}-01"

        second = _new_task(client, headers, room.id).json()
        assert second["task_number"].endswith("-02")

        room_state = client.get(f"/api/rooms/{room.id}", headers=headers[RoleName.MANAGER]).json()
        assert room_state["needs_cleaning"] is True
        assert room_state["pending_cleaning_tasks_count"] == 2

    def test_only_housekeepers_can_be_assigned(self, client, headers, users, rooms):
        response = _new_task(client, headers, rooms[0].id, assigned_to_id=users[RoleName.RECEPTIONIST].id)
        assert response.status_code == 400
        assert "is not a housekeeper" in response.json()["detail"]

    def test_housekeeper_starts_and_completes(self, client, headers, users, rooms):
        task = _new_task(client, headers, rooms[0].id).json()
        maid = headers[RoleName.HOUSEKEEPER]

        response = client.post(f"/api/cleaningtask/{task['id']}/start", headers=maid)
        assert response.status_code == 200
        assert response.json()["status"] == "InProgress"
        assert response.json()["assigned_to_id"] == users[RoleName.HOUSEKEEPER].id
        assert response.json()["started_at"] is not None

        response = client.post(
            f"/api/cleaningtask/{task['id']}/complete", json={"notes": "Towels replaced"}, headers=maid
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Cleaned"
        assert data["completion_notes"] == "Towels replaced"
        assert data["duration_minutes"] is not None

        room_state = client.get(f"/api/rooms/{rooms[0].id}", headers=maid).json()
        assert room_state["needs_cleaning"] is False
        assert room_state["cleaned_by_id"] == users[RoleName.HOUSEKEEPER].id

        response = client.post(f"/api/cleaningtask/{task['id']}/complete", headers=maid)
        assert response.status_code == 400

    def test_housekeeper_cannot_touch_tasks_of_others(self, client, create_user, headers, users, rooms):
        task = _new_task(
            client, headers, rooms[0].id, assigned_to_id=users[RoleName.HOUSEKEEPER].id
        ).json()
        _, colleague = create_user(RoleName.HOUSEKEEPER, "maria")

        response = client.post(f"/api/cleaningtask/{task['id']}/start", headers=colleague)
        assert response.status_code == 403

    def test_guest_has_no_access(self, client, headers, rooms):
        assert client.get("/api/cleaningtask", headers=headers[RoleName.GUEST]).status_code == 403

    def test_checkout_tasks_for_departures(self, client, headers, booking, rooms, stay_dates):
        _, check_out = stay_dates
        client.post(
            f"/api/reservations/{booking['id']}/checkin",
            json={"room_id": rooms[0].id},
            headers=headers[RoleName.RECEPTIONIST],
        )

        url = "/api/cleaningtask/checkout-tasks"
        response = client.post(url, params={"day": check_out.isoformat()}, headers=headers[RoleName.MANAGER])
        assert response.status_code == 201
        tasks = response.json()
        assert len(tasks) == 1
        assert tasks[0]["priority"] == "High"
        assert tasks[0]["room_number"] == "101"

        # la habitación ya tiene una tarea abierta
        response = client.post(url, params={"day": check_out.isoformat()}, headers=headers[RoleName.MANAGER])
        assert response.json() == []

    def test_housekeeper_claims_unassigned_checkout_task(
        self, client, create_user, headers, users, booking, rooms, stay_dates
    ):
        _, check_out = stay_dates
        client.post(
            f"/api/reservations/{booking['id']}/checkin",
            json={"room_id": rooms[0].id},
            headers=headers[RoleName.RECEPTIONIST],
        )
        task = client.post(
            "/api/cleaningtask/checkout-tasks", params={"day": check_out.isoformat()},
            headers=headers[RoleName.MANAGER],
        ).json()[0]
        assert task["assigned_to_id"] is None

        maid = headers[RoleName.HOUSEKEEPER]
        # sin asignar no se puede completar directamente
        assert client.post(f"/api/cleaningtask/{task['id']}/complete", headers=maid).status_code == 403

        response = client.post(f"/api/cleaningtask/{task['id']}/start", headers=maid)
        assert response.status_code == 200
        assert response.json()["status"] == "InProgress"
        assert response.json()["assigned_to_id"] == users[RoleName.HOUSEKEEPER].id

        _, colleague = create_user(RoleName.HOUSEKEEPER, "lucia")
        assert client.post(f"/api/cleaningtask/{task['id']}/start", headers=colleague).status_code == 403
        assert client.post(f"/api/cleaningtask/{task['id']}/complete", headers=colleague).status_code == 403

        response = client.post(f"/api/cleaningtask/{task['id']}/complete", headers=maid)
        assert response.status_code == 200
        assert response.json()["status"] == "Cleaned"

    def test_assign_and_statistics(self, client, headers, users, rooms):
        task = _new_task(client, headers, rooms[1].id, "Urgent").json()
        maid = users[RoleName.HOUSEKEEPER]

        response = client.post(
            f"/api/cleaningtask/{task['id']}/assign/{maid.id}", headers=headers[RoleName.MANAGER]
        )
        assert response.status_code == 200
        assert response.json()["assigned_to_name"] == maid.full_name

        client.post(f"/api/cleaningtask/{task['id']}/complete", headers=headers[RoleName.HOUSEKEEPER])
        _new_task(client, headers, rooms[0].id, "Low")

        stats = client.get("/api/cleaningtask/stats", headers=headers[RoleName.MANAGER]).json()
        assert stats["total_tasks"] == 2
        assert stats["completed_tasks"] == 1
        assert stats["by_priority"]["Urgent"] == 1
        assert maid.full_name in stats["average_minutes_by_housekeeper"]

        by_status = client.get("/api/cleaningtask/stats/status", headers=headers[RoleName.MANAGER]).json()
        assert by_status == {"Dirty": 1, "InProgress": 0, "Cleaned": 1}

    def test_invalid_priority_filter(self, client, headers):
        response = client.get("/api/cleaningtask/priority/Critical", headers=headers[RoleName.MANAGER])
        assert response.status_code == 400


class TestMaintenance:

    def _report(self, client, headers, room_id, priority, role=RoleName.STAFF):
        return client.post(
            "/api/maintenancerequest",
            json={"room_id": room_id, "issue_description": "Air conditioning leaking", "priority": priority},
            headers=headers[role],
        )

    def test_urgent_issue_blocks_room(self, client, headers, users, rooms, stay_dates):
        room = rooms[1]
        response = self._report(client, headers, room.id, "Urgent")
        assert response.status_code == 201
        request = response.json()
        assert request["status"] == "Reported"
        assert request["reported_by_id"] == users[RoleName.STAFF].id

        room_state = client.get(f"/api/rooms/{room.id}", headers=headers[RoleName.MANAGER]).json()
        assert room_state["status"] == "Maintenance"

        check_in, check_out = stay_dates
        available = client.get(
            "/api/rooms/available",
            params={"check_in_date": check_in.isoformat(), "check_out_date": check_out.isoformat()},
            headers=headers[RoleName.GUEST],
        ).json()
        assert "102" not in [r["room_number"] for r in available]

    def test_low_priority_keeps_room_available(self, client, headers, rooms):
        self._report(client, headers, rooms[0].id, "Low")
        room_state = client.get(f"/api/rooms/{rooms[0].id}", headers=headers[RoleName.MANAGER]).json()
        assert room_state["status"] == "Available"

    def test_assign_and_resolve_releases_room(self, client, headers, users, rooms):
        request = self._report(client, headers, rooms[1].id, "High").json()
        tech = users[RoleName.MAINTENANCE]

        response = client.post(
            f"/api/maintenancerequest/{request['id']}/assign/{tech.id}", headers=headers[RoleName.MANAGER]
        )
        assert response.status_code == 200
        assert response.json()["status"] == "InProgress"

        assigned = client.get(
            f"/api/maintenancerequest/assigned/{tech.id}", headers=headers[RoleName.MAINTENANCE]
        ).json()
        assert [r["id"] for r in assigned] == [request["id"]]

        response = client.post(
            f"/api/maintenancerequest/{request['id']}/complete",
            json={"resolution_notes": "Pipe replaced", "cost_of_repair": 85.5},
            headers=headers[RoleName.MAINTENANCE],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Resolved"
        assert data["cost_of_repair"] == 85.5
        assert data["time_to_resolve_hours"] is not None

        room_state = client.get(f"/api/rooms/{rooms[1].id}", headers=headers[RoleName.MANAGER]).json()
        assert room_state["status"] == "Available"

        response = client.post(
            f"/api/maintenancerequest/{request['id']}/assign/{tech.id}", headers=headers[RoleName.MANAGER]
        )
        assert response.status_code == 400

    def test_room_stays_blocked_while_other_urgent_issue_is_open(self, client, headers, rooms):
        room = rooms[1]
        first = self._report(client, headers, room.id, "High").json()
        second = self._report(client, headers, room.id, "Urgent").json()
        url = f"/api/rooms/{room.id}"

        client.post(f"/api/maintenancerequest/{first['id']}/complete", json={}, headers=headers[RoleName.MAINTENANCE])
        assert client.get(url, headers=headers[RoleName.MANAGER]).json()["status"] == "Maintenance"

        # resolver vía PUT también respeta la otra incidencia abierta
        response = client.put(
            f"/api/maintenancerequest/{second['id']}", json={"status": "Resolved"},
            headers=headers[RoleName.MAINTENANCE],
        )
        assert response.status_code == 200
        assert client.get(url, headers=headers[RoleName.MANAGER]).json()["status"] == "Available"

    def test_list_is_ordered_by_priority(self, client, headers, rooms):
        low = self._report(client, headers, rooms[0].id, "Low").json()
        urgent = self._report(client, headers, rooms[2].id, "Urgent").json()

        response = client.get("/api/maintenancerequest", headers=headers[RoleName.MAINTENANCE])
        assert [r["id"] for r in response.json()] == [urgent["id"], low["id"]]

    def test_guest_cannot_report(self, client, headers, rooms):
        response = self._report(client, headers, rooms[0].id, "Low", role=RoleName.GUEST)
        assert response.status_code == 403

    def test_unknown_room(self, client, headers):
        response = self._report(client, headers, 999, "Low")
        assert response.status_code == 404
