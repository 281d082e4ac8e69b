import uuid
from unittest.mock import patch

from tests.base import ApiTestCase, SHAHRIVAR_1404
from app.models.invoice_counter import InvoiceCounter
from app.models.service_request import ServiceRequest
from app.models.status_history import ServiceRequestStatusHistory


class ServiceRequestCreateTests(ApiTestCase):
    def test_end_to_end_codes_follow_monthly_sequence(self):
        self._register("09120000001")
        self._register("09120000002")

        first = self._create_request("09120000001", "repair")
        self.assertEqual(first.status_code, 201, first.text)
        body = first.json()
        self.assertEqual(body["invoiceCode"], "40501")
        self.assertEqual(body["status"], "open")
        self.assertEqual(body["issueType"], "repair")
        self.assertEqual(body["sourcePath"], "web_form")
        self.assertFalse(body["isFollowUp"])
        self.assertEqual(body["customer"]["phone"], "09120000001")
        self.assertEqual(body["customer"]["city"], "Isfahan")

        active = self.client.get("/requests/active/09120000001")
        self.assertEqual(active.status_code, 200)
        self.assertEqual(active.json()["active"]["invoiceCode"], "40501")
        self.assertEqual(active.json()["active"]["status"], "open")

        second = self._create_request("09120000002", "install", sourcePath="phone_call")
        self.assertEqual(second.status_code, 201, second.text)
        self.assertEqual(second.json()["invoiceCode"], "40502")
        self.assertEqual(second.json()["sourcePath"], "phone_call")

    def test_sequence_restarts_for_new_month(self):
        self._register("09120000001")
        self._register("09120000002")
        self.assertEqual(self._create_request("09120000001").json()["invoiceCode"], "40501")

        self.clock = SHAHRIVAR_1404
        created = self._create_request("09120000002")
        self.assertEqual(created.json()["invoiceCode"], "40601")

        with self.SessionLocal() as db:
            counters = {row.ym_key: row.seq for row in db.query(InvoiceCounter).all()}
        self.assertEqual(counters, {"405": 1, "406": 1})

    def test_active_request_blocks_new_request(self):
        self._register("09120000003")
        first = self._create_request("09120000003")
        self.assertEqual(first.status_code, 201)

        blocked = self._create_request("09120000003", "maintenance")
        self.assertEqual(blocked.status_code, 409)
        detail = blocked.json()["detail"]
        self.assertEqual(detail["invoiceCode"], "40501")
        self.assertEqual(detail["status"], "open")
        self.assertEqual(self._count_requests("09120000003"), 1)

        with self.SessionLocal() as db:
            counter = db.query(InvoiceCounter).filter(InvoiceCounter.ym_key == "405").one()
        self.assertEqual(counter.seq, 1)

    def test_follow_up_bypasses_active_guard_and_links_invoice(self):
        self._register("09120000004")
        first = self._create_request("09120000004").json()

        follow_up = self._create_request(
            "09120000004",
            "visit",
            isFollowUp=True,
            relatedToInvoice=first["invoiceCode"],
        )
        self.assertEqual(follow_up.status_code, 201, follow_up.text)
        body = follow_up.json()
        self.assertTrue(body["isFollowUp"])
        self.assertEqual(body["relatedToInvoice"], first["invoiceCode"])
        self.assertEqual(body["invoiceCode"], "40502")
        self.assertEqual(self._count_requests("09120000004"), 2)

    def test_follow_up_with_unknown_invoice_is_rejected(self):
        self._register("09120000005")
        response = self._create_request("09120000005", isFollowUp=True, relatedToInvoice="49999")
        self.assertEqual(response.status_code, 400)
        self.assertIn("Related invoice not found", response.json()["detail"])
        self.assertEqual(self._count_requests("09120000005"), 0)

        missing_link = self._create_request("09120000005", isFollowUp=True)
        self.assertEqual(missing_link.status_code, 400)
        self.assertEqual(self._count_requests("09120000005"), 0)

    def test_follow_up_cannot_link_another_customers_invoice(self):
        self._register("09120000011")
        self._register("09120000012")
        foreign = self._create_request("09120000011").json()["invoiceCode"]
        self._create_request("09120000012")

        for _ in range(3):
            response = self._create_request(
                "09120000012",
                "visit",
                isFollowUp=True,
                relatedToInvoice=foreign,
            )
            self.assertEqual(response.status_code, 400)
            self.assertIn("another customer", response.json()["detail"])
        self.assertEqual(self._count_requests("09120000012"), 1)

    def test_related_invoice_requires_follow_up_flag(self):
        self._register("09120000013")
        first = self._create_request("09120000013").json()["invoiceCode"]
        with self.SessionLocal() as db:
            db.query(ServiceRequest).filter(ServiceRequest.invoice_code == first).update({"status": "completed"})
            db.commit()

        response = self._create_request("09120000013", relatedToInvoice=first)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._count_requests("09120000013"), 1)

    def test_unknown_customer_and_missing_fields(self):
        unknown = self._create_request("09129999999")
        self.assertEqual(unknown.status_code, 404)

        self._register("09120000006")
        missing_issue = self.client.post("/requests", json={"phone": "09120000006"})
        self.assertEqual(missing_issue.status_code, 400)

        bad_issue = self._create_request("09120000006", "teleport")
        self.assertEqual(bad_issue.status_code, 400)
        self.assertEqual(self._count_requests("09120000006"), 0)

    def test_concurrent_active_insert_is_stopped_by_unique_index(self):
        customer = self._register("09120000007")
        with self.SessionLocal() as db:
            db.add(
                ServiceRequest(
                    customer_id=uuid.UUID(customer["id"]),
                    invoice_code="40450",
                    phone="09120000007",
                    full_name="Ali Rezaei",
                    address="Isfahan",
                    issue_type="repair",
                    status="open",
                )
            )
            db.commit()

        # simulate a request that passed the guard before the other insert landed
        with patch("app.services.service_requests.ensure_request_allowed", return_value=None):
            raced = self._create_request("09120000007")
        self.assertEqual(raced.status_code, 409)
        self.assertEqual(raced.json()["detail"]["invoiceCode"], "40450")
        self.assertEqual(self._count_requests("09120000007"), 1)

        # the counter increment was rolled back with the failed insert
        self._register("09120000008")
        self.assertEqual(self._create_request("09120000008").json()["invoiceCode"], "40501")

    def test_initial_status_is_recorded_in_history(self):
        self._register("09120000009")
        created = self._create_request("09120000009").json()
        with self.SessionLocal() as db:
            rows = db.query(ServiceRequestStatusHistory).all()
        self.assertEqual(len(rows), 1)
        self.assertIsNone(rows[0].from_status)
        self.assertEqual(rows[0].to_status, "open")
        self.assertEqual(str(rows[0].request_id), created["id"])

    def test_active_lookup_without_requests_returns_null(self):
        response = self.client.get("/requests/active/09120000010")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"active": None})


class ServiceRequestStatusTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self._register("09121111111")
        self.invoice = self._create_request("09121111111").json()["invoiceCode"]

    def _patch_status(self, status: str, headers=None, **extra):
        payload = {"status": status}
        payload.update(extra)
        return self.client.patch(
            f"/requests/{self.invoice}/status",
            json=payload,
            headers=headers if headers is not None else self._admin_headers(),
        )

    def test_lifecycle_to_completed_frees_phone(self):
        in_progress = self._patch_status("in_progress")
        self.assertEqual(in_progress.status_code, 200, in_progress.text)
        self.assertEqual(in_progress.json()["status"], "in_progress")

        done = self._patch_status("completed", resultNote="filter cartridges replaced")
        self.assertEqual(done.status_code, 200)
        self.assertEqual(done.json()["status"], "completed")
        self.assertEqual(done.json()["resultNote"], "filter cartridges replaced")

        active = self.client.get("/requests/active/09121111111").json()
        self.assertIsNone(active["active"])

        again = self._create_request("09121111111", "maintenance")
        self.assertEqual(again.status_code, 201)
        self.assertEqual(again.json()["invoiceCode"], "40502")

        with self.SessionLocal() as db:
            transitions = [
                (row.from_status, row.to_status)
                for row in db.query(ServiceRequestStatusHistory).order_by(ServiceRequestStatusHistory.created_at).all()
            ]
        self.assertIn(("open", "in_progress"), transitions)
        self.assertIn(("in_progress", "completed"), transitions)

    def test_terminal_status_cannot_reopen(self):
        self.assertEqual(self._patch_status("cancelled").status_code, 200)
        reopened = self._patch_status("open")
        self.assertEqual(reopened.status_code, 400)
        self.assertIn("not allowed", reopened.json()["detail"])

    def test_open_cannot_jump_to_completed(self):
        self.assertEqual(self._patch_status("completed").status_code, 400)

    def test_invalid_status_and_unknown_code(self):
        self.assertEqual(self._patch_status("bogus").status_code, 400)

        unknown = self.client.patch(
            "/requests/49999/status",
            json={"status": "in_progress"},
            headers=self._admin_headers(),
        )
        self.assertEqual(unknown.status_code, 404)

    def test_legacy_status_names_are_accepted(self):
        self.assertEqual(self._patch_status("in_progress").status_code, 200)
        done = self._patch_status("done")
        self.assertEqual(done.status_code, 200)
        self.assertEqual(done.json()["status"], "completed")

    def test_status_update_requires_admin_capability(self):
        self.assertEqual(self._patch_status("in_progress", headers={}).status_code, 401)
        user = self._patch_status("in_progress", headers=self._headers("user", "09121111111"))
        self.assertEqual(user.status_code, 403)

    def test_listing_and_reading_require_admin(self):
        self.assertEqual(self.client.get("/requests").status_code, 401)

        listed = self.client.get("/requests", params={"phone": "09121111111"}, headers=self._admin_headers())
        self.assertEqual(listed.status_code, 200)
        self.assertEqual([row["invoiceCode"] for row in listed.json()], [self.invoice])

        by_status = self.client.get("/requests", params={"status": "completed"}, headers=self._admin_headers())
        self.assertEqual(by_status.json(), [])

        single = self.client.get(f"/requests/{self.invoice}", headers=self._admin_headers())
        self.assertEqual(single.status_code, 200)
        self.assertEqual(single.json()["invoiceCode"], self.invoice)
