# fees/tests/test_api.py

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from fees.models import Payment
from fees.tests.helpers import make_invoice, make_student, seed_school_chart

User = get_user_model()


class FeesApiTests(TestCase):
    def setUp(self):
        seed_school_chart()
        self.student = make_student()
        self.user = User.objects.create_user(username="bursar", password="pass12345")
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def _pay(self, amount, **extra):
        payload = {
            "student": str(self.student.pk),
            "amount": amount,
            "payment_mode": "CASH",
            "payment_date": "2025-01-15",
        }
        payload.update(extra)
        return self.client.post("/api/fees/payments/", payload, format="json")

    def test_requires_authentication(self):
        res = APIClient().get("/api/fees/payments/")
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_invoice(self):
        res = self.client.post(
            "/api/fees/invoices/",
            {
                "student": str(self.student.pk),
                "invoice_date": "2025-01-01",
                "due_date": "2025-01-31",
                "line_items": [
                    {"fee_account": "tuition", "amount": "1000.00"},
                    {"description": "Trip", "amount": "150.00"},
                ],
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["invoice_number"], "INV-000001")
        self.assertEqual(res.data["total_amount"], "1150.00")
        self.assertEqual(res.data["created_by"], str(self.user.pk))
        self.assertEqual(len(res.data["line_items"]), 2)

    def test_create_invoice_without_lines_is_400(self):
        res = self.client.post(
            "/api/fees/invoices/",
            {"student": str(self.student.pk), "line_items": []},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_receive_payment_returns_receipt(self):
        make_invoice(self.student, "1000")

        res = self._pay("1200.00", reference_number="SLIP-1")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["payment"]["receipt_number"], "RCP-000001")
        self.assertEqual(res.data["payment"]["posting_status"], Payment.POSTING_POSTED)
        self.assertEqual(res.data["payment"]["received_by"], str(self.user.pk))
        self.assertEqual(res.data["receipt"]["student_no"], "S1")
        self.assertEqual(res.data["unallocated_remainder"], "200.00")
        self.assertEqual(res.data["warnings"], [])

    def test_unposted_payment_returns_warning(self):
        res = self._pay("100.00", payment_mode="CHEQUE")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["payment"]["posting_status"], Payment.POSTING_UNPOSTED)
        self.assertEqual(len(res.data["warnings"]), 1)

        listed = self.client.get("/api/fees/payments/unposted/")
        self.assertEqual(listed.status_code, status.HTTP_200_OK)
        self.assertEqual(listed.data["count"], 1)

    def test_error_mapping(self):
        self.assertEqual(self._pay("0.00").status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            self._pay("10.00", payment_mode="BITCOIN").status_code,
            status.HTTP_404_NOT_FOUND,
        )
        self.assertEqual(
            self._pay("10.00", student="00000000-0000-0000-0000-000000000000").status_code,
            status.HTTP_404_NOT_FOUND,
        )
        self.assertFalse(Payment.objects.exists())

    def test_balance_and_statement(self):
        make_invoice(self.student, "1000")
        self._pay("400.00")

        res = self.client.get(f"/api/fees/students/{self.student.pk}/balance/")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["balance"], "600.00")
        self.assertEqual(res.data["status"], "partial")

        res = self.client.get(f"/api/fees/students/{self.student.pk}/statement/")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["lines"]), 2)
        self.assertEqual(res.data["closing_balance"], "600.00")

    def test_reverse_and_receipt(self):
        invoice = make_invoice(self.student, "1000")
        payment_id = self._pay("400.00").data["payment"]["id"]

        res = self.client.get(f"/api/fees/payments/{payment_id}/receipt/")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["vote_heads"], [{"name": "Tuition", "amount": "400.00"}])

        res = self.client.post(
            f"/api/fees/payments/{payment_id}/reverse/", {"reason": "Bounced"}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], Payment.STATUS_REVERSED)

        invoice.refresh_from_db()
        self.assertEqual(invoice.balance_due, Decimal("1000.00"))

        res = self.client.post(
            f"/api/fees/payments/{payment_id}/reverse/", {"reason": "Again"}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invoice_list_filters_by_student(self):
        other = make_student("S2", "Brian Mwangi")
        make_invoice(self.student, "1000")
        make_invoice(other, "500")

        res = self.client.get("/api/fees/invoices/", {"student": str(self.student.pk)})

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["student_no"], "S1")

    def test_backpost_requires_staff(self):
        res = self.client.post("/api/fees/payments/backpost/", {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

        self.user.is_staff = True
        self.user.save(update_fields=["is_staff"])
        self._pay("100.00", payment_mode="CHEQUE")

        res = self.client.post("/api/fees/payments/backpost/", {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["posted"], [])
        self.assertEqual(len(res.data["failed"]), 1)
