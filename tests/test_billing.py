"""
Tests de facturación: invoices, pagos, tarjetas y reembolsos
"""
from datetime import date, timedelta

import pytest

from models import PaymentMethod, RoleName
from services.common import InvalidOperationError
from services.payment_service import generate_transaction_id, mask_card, validate_card


def _invoice_of(client, headers, reservation_id):
    response = client.get(f"/api/invoice/reservation/{reservation_id}", headers=headers[RoleName.RECEPTIONIST])
    assert response.status_code == 200
    return response.json()[0]


def _pay(client, headers, invoice_id, amount, method="Cash"):
    return client.post(
        "/api/payment",
        json={"invoice_id": invoice_id, "amount_paid": amount, "method": method},
        headers=headers[RoleName.RECEPTIONIST],
    )


class TestInvoices:

    def test_reservation_invoice_includes_tax(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        assert invoice["amount"] == 360.0
        assert invoice["tax"] == 36.0
        assert invoice["tax_percentage"] == 10.0
        assert invoice["total"] == 396.0
        assert invoice["balance"] == 396.0
        assert invoice["status"] == "Pending"
        assert invoice["invoice_number"].startswith("INV-")

    def test_lookup_by_number(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        response = client.get(
            f"/api/invoice/number/{invoice['invoice_number']}", headers=headers[RoleName.RECEPTIONIST]
        )
        assert response.status_code == 200
        assert response.json()["id"] == invoice["id"]

        response = client.get("/api/invoice/number/INV-00000000-9999", headers=headers[RoleName.RECEPTIONIST])
        assert response.status_code == 404

    def test_manual_invoice_numbers_are_sequential(self, client, headers, booking):
        first = _invoice_of(client, headers, booking["id"])
        response = client.post(
            "/api/invoice",
            json={"reservation_id": booking["id"], "amount": 50, "tax_percentage": 0, "notes": "Minibar"},
            headers=headers[RoleName.RECEPTIONIST],
        )
        assert response.status_code == 201
        second = response.json()
        assert second["total"] == 50.0
        assert int(second["invoice_number"][-4:]) == int(first["invoice_number"][-4:]) + 1

    def test_tax_over_limit_is_rejected(self, client, headers, booking):
        response = client.post(
            "/api/invoice",
            json={"reservation_id": booking["id"], "amount": 100, "tax_percentage": 45},
            headers=headers[RoleName.RECEPTIONIST],
        )
        assert response.status_code == 422

    def test_generate_twice_is_rejected(self, client, headers, booking):
        response = client.post(
            f"/api/invoice/reservation/{booking['id']}/generate", headers=headers[RoleName.RECEPTIONIST]
        )
        assert response.status_code == 400
        assert "already has an invoice" in response.json()["detail"]

    def test_update_recomputes_total(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        response = client.put(
            f"/api/invoice/{invoice['id']}",
            json={"amount": 200, "tax_percentage": 5},
            headers=headers[RoleName.RECEPTIONIST],
        )
        assert response.status_code == 200
        assert response.json()["tax"] == 10.0
        assert response.json()["total"] == 210.0

    def test_guest_sees_own_invoices_only(self, client, headers, users, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        assert client.get(f"/api/invoice/{invoice['id']}", headers=headers[RoleName.GUEST]).status_code == 200
        assert client.get(f"/api/invoice/{invoice['id']}", headers=headers["other_guest"]).status_code == 403

        own = users[RoleName.GUEST].id
        response = client.get(f"/api/invoice/user/{own}", headers=headers[RoleName.GUEST])
        assert [i["id"] for i in response.json()] == [invoice["id"]]

    def test_statistics_require_management(self, client, headers, booking):
        assert client.get("/api/invoice/stats", headers=headers[RoleName.RECEPTIONIST]).status_code == 403

        response = client.get("/api/invoice/stats", headers=headers[RoleName.MANAGER])
        assert response.status_code == 200
        data = response.json()
        assert data["total_invoices"] == 1
        assert data["by_status"]["Pending"] == 1
        assert data["outstanding_amount"] == 396.0

    def test_send_invoice(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        response = client.post(
            f"/api/invoice/{invoice['id']}/send", json={"email": "guest@gmail.com"},
            headers=headers[RoleName.RECEPTIONIST],
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Invoice sent successfully"


class TestPayments:

    def test_partial_then_full_payment(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])

        response = _pay(client, headers, invoice["id"], 96)
        assert response.status_code == 201
        assert response.json()["transaction_id"].startswith("CASH-")

        invoice = _invoice_of(client, headers, booking["id"])
        assert invoice["status"] == "PartiallyPaid"
        assert invoice["balance"] == 300.0

        assert _pay(client, headers, invoice["id"], 300, "BankTransfer").status_code == 201
        invoice = _invoice_of(client, headers, booking["id"])
        assert invoice["status"] == "Paid"
        assert invoice["is_paid"] is True
        assert invoice["paid_at"] is not None

        reservation = client.get(f"/api/reservations/{booking['id']}", headers=headers[RoleName.RECEPTIONIST])
        assert reservation.json()["payment_status"] == "Paid"

    def test_overpayment_is_rejected(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        response = _pay(client, headers, invoice["id"], 500)
        assert response.status_code == 400
        assert response.json()["detail"] == "Payment amount exceeds invoice balance"

    def test_paid_invoice_cannot_be_updated_or_deleted(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        _pay(client, headers, invoice["id"], 396)

        response = client.put(
            f"/api/invoice/{invoice['id']}", json={"amount": 10}, headers=headers[RoleName.RECEPTIONIST]
        )
        assert response.status_code == 400
        response = client.delete(f"/api/invoice/{invoice['id']}", headers=headers[RoleName.MANAGER])
        assert response.status_code == 400

    def test_finalize_needs_zero_balance(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        url = f"/api/invoice/{invoice['id']}/finalize"
        response = client.post(url, headers=headers[RoleName.RECEPTIONIST])
        assert response.status_code == 400
        assert "outstanding balance" in response.json()["detail"]

        _pay(client, headers, invoice["id"], 396)
        response = client.post(url, headers=headers[RoleName.RECEPTIONIST])
        assert response.status_code == 200
        assert response.json()["is_paid"] is True

    def test_credit_card_payment_is_masked(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        next_year = (date.today().year + 1) % 100
        response = client.post(
            "/api/payment/creditcard",
            json={
                "invoice_id": invoice["id"],
                "amount": 100,
                "card_number": "4111 1111 1111 1111",
                "expiry_date": f"12/{next_year:02d}",
                "cvv": "123",
                "card_holder_name": "Ana Guest",
            },
            headers=headers[RoleName.RECEPTIONIST],
        )
        assert response.status_code == 201
        data = response.json()
        assert data["method"] == "CreditCard"
        assert data["transaction_id"].startswith("CC-")
        assert "**** **** **** 1111" in data["notes"]
        assert "4111 1111 1111 1111" not in data["notes"]

    def test_debit_card_keeps_its_method(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        next_year = (date.today().year + 1) % 100
        payload = {
            "invoice_id": invoice["id"],
            "amount": 50,
            "card_number": "5500 0000 0000 0004",
            "expiry_date": f"06/{next_year:02d}",
            "cvv": "321",
            "card_holder_name": "Ana Guest",
            "method": "DebitCard",
        }
        response = client.post("/api/payment/creditcard", json=payload, headers=headers[RoleName.RECEPTIONIST])
        assert response.status_code == 201
        assert response.json()["method"] == "DebitCard"
        assert response.json()["transaction_id"].startswith("CC-")

        payload["method"] = "Cash"
        response = client.post("/api/payment/creditcard", json=payload, headers=headers[RoleName.RECEPTIONIST])
        assert response.status_code == 422

    def test_credit_card_expired(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        response = client.post(
            "/api/payment/creditcard",
            json={
                "invoice_id": invoice["id"],
                "amount": 100,
                "card_number": "4111111111111111",
                "expiry_date": "01/20",
                "cvv": "123",
                "card_holder_name": "Ana Guest",
            },
            headers=headers[RoleName.RECEPTIONIST],
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Card has expired"

    def test_refund_reopens_invoice(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        payment = _pay(client, headers, invoice["id"], 396).json()

        url = f"/api/payment/{payment['id']}/refund"
        assert client.post(url, json={"reason": "Overbooked"}, headers=headers[RoleName.RECEPTIONIST]).status_code == 403

        response = client.post(url, json={"reason": "Overbooked"}, headers=headers[RoleName.MANAGER])
        assert response.status_code == 200
        assert response.json()["is_refunded"] is True

        invoice = _invoice_of(client, headers, booking["id"])
        assert invoice["status"] == "Refunded"
        assert invoice["is_paid"] is False

        response = client.post(url, json={"reason": "Overbooked"}, headers=headers[RoleName.MANAGER])
        assert response.status_code == 400

    def test_totals_and_method_breakdown(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        _pay(client, headers, invoice["id"], 100)
        _pay(client, headers, invoice["id"], 50, "DebitCard")

        today = date.today()
        response = client.get(
            "/api/payment/totals",
            params={"start_date": (today - timedelta(days=1)).isoformat(), "end_date": (today + timedelta(days=1)).isoformat()},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 200
        assert response.json()["total"] == 150.0

        response = client.get("/api/payment/stats/bymethod", headers=headers[RoleName.MANAGER])
        data = response.json()
        assert data["Cash"] == {"count": 1, "amount": 100.0}
        assert data["DebitCard"] == {"count": 1, "amount": 50.0}
        assert data["Online"]["count"] == 0

    def test_cancelling_paid_reservation_keeps_invoice(self, client, headers, booking):
        invoice = _invoice_of(client, headers, booking["id"])
        _pay(client, headers, invoice["id"], 100)

        response = client.post(f"/api/reservations/{booking['id']}/cancel", headers=headers[RoleName.RECEPTIONIST])
        assert response.status_code == 200
        assert response.json()["invoices_count"] == 1

        invoice = _invoice_of(client, headers, booking["id"])
        assert invoice["is_cancelled"] is True
        assert invoice["status"] == "Cancelled"


class TestCardHelpers:

    def test_validate_card_normalizes_number(self):
        number = validate_card("4111-1111-1111-1111", "12/30", "123", "Ana", today=date(2026, 1, 1))
        assert number == "4111111111111111"

    @pytest.mark.parametrize("number,expiry,cvv,holder,message", [
        ("1234", "12/30", "123", "Ana", "Invalid card number"),
        ("4111111111111111", "13/30", "123", "Ana", "Invalid expiry date, expected MM/YY"),
        ("4111111111111111", "12/25", "123", "Ana", "Card has expired"),
        ("4111111111111111", "12/30", "12", "Ana", "Invalid CVV"),
        ("4111111111111111", "12/30", "123", " ", "Invalid card holder name"),
    ])
    def test_validate_card_errors(self, number, expiry, cvv, holder, message):
        with pytest.raises(InvalidOperationError) as exc:
            validate_card(number, expiry, cvv, holder, today=date(2026, 1, 1))
        assert exc.value.message == message

    def test_expiry_in_current_month_is_valid(self):
        validate_card("4111111111111111", "01/26", "1234", "Ana", today=date(2026, 1, 20))

    def test_mask_keeps_last_four(self):
        assert mask_card("4111111111111234") == "**** **** **** 1234"

    def test_transaction_id_prefix_by_method(self):
        assert generate_transaction_id(PaymentMethod.DEBIT_CARD).startswith("CC-")
        assert generate_transaction_id(PaymentMethod.BANK_TRANSFER).startswith("BT-")
        assert generate_transaction_id(PaymentMethod.ONLINE).startswith("ONL-")
        assert generate_transaction_id(PaymentMethod.CASH).startswith("CASH-")
