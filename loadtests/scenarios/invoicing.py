"""Invoicing load test scenario.

Delivers a handful of bookings for one shipper, bills them on a single
invoice, then settles it with a payment that is deliberately redelivered.
"""

import random

from locust import SequentialTaskSet, task

from loadtests.data_generators import booking_data, payment_data, shipper_data, status_update
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import InvoiceState

_DELIVERY_PATH = ("Picked Up", "In Transit", "Out for Delivery", "Delivered")


class InvoiceJourney(SequentialTaskSet):
    """Register -> Book & deliver N -> Generate -> Issue -> Pay (twice, same reference)."""

    def on_start(self):
        self.state = InvoiceState()

    @task
    def register_shipper(self):
        with self.client.post("/shippers", json=shipper_data(), catch_response=True, name="POST /shippers") as resp:
            if resp.status_code == 201:
                self.state.shipper_id = resp.json()["id"]
            else:
                resp.failure(f"Register shipper failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def deliver_bookings(self):
        for _ in range(random.randint(2, 5)):
            resp = self.client.post("/bookings", json=booking_data(self.state.shipper_id), name="POST /bookings")
            if resp.status_code != 201:
                continue
            booking_id = resp.json()["booking_id"]
            revision = 1
            for status in _DELIVERY_PATH:
                resp = self.client.put(
                    f"/bookings/{booking_id}/status",
                    json=status_update(status, revision),
                    name="PUT /bookings/{id}/status",
                )
                if resp.status_code != 200:
                    break
                revision = resp.json()["revision"]
            else:
                self.state.booking_ids.append(booking_id)
        if not self.state.booking_ids:
            self.interrupt()

    @task
    def list_eligible(self):
        self.client.get(
            "/invoices/eligible-bookings",
            params={"shipper_id": self.state.shipper_id},
            name="GET /invoices/eligible-bookings",
        )

    @task
    def generate_invoice(self):
        with self.client.post(
            "/invoices",
            json={"shipper_id": self.state.shipper_id, "booking_ids": self.state.booking_ids},
            catch_response=True,
            name="POST /invoices",
        ) as resp:
            if resp.status_code == 201:
                self.state.invoice_id = resp.json()["invoice_id"]
            else:
                resp.failure(f"Generate invoice failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def issue_invoice(self):
        self.client.put(f"/invoices/{self.state.invoice_id}/issue", name="PUT /invoices/{id}/issue")

    @task
    def pay_invoice(self):
        payment = payment_data(round(random.uniform(10.0, 100.0), 2))
        for attempt in ("first", "redelivered"):
            with self.client.post(
                f"/invoices/{self.state.invoice_id}/payments",
                json=payment,
                catch_response=True,
                name="POST /invoices/{id}/payments",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Payment failed: {resp.status_code} {extract_error_detail(resp)}")
                elif attempt == "redelivered" and resp.json()["applied"]:
                    resp.failure("Redelivered payment was applied twice")
        self.interrupt()
