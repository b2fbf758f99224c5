"""Booking lifecycle load test scenarios.

Stateful SequentialTaskSet journeys that walk bookings through the
courier network, plus a race journey that deliberately sends competing
status updates for the same booking.
"""

import random

from locust import SequentialTaskSet, task

from loadtests.data_generators import (
    booking_data,
    exception_report,
    proof_of_delivery,
    shipper_data,
    status_update,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import BookingState


class _BookingJourney(SequentialTaskSet):
    """Registers a shipper and books one shipment before the journey's own tasks run."""

    def on_start(self):
        self.state = BookingState()
        with self.client.post("/shippers", json=shipper_data(), catch_response=True, name="POST /shippers") as resp:
            if resp.status_code != 201:
                resp.failure(f"Register shipper failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()
                return
            self.state.shipper_id = resp.json()["id"]

        with self.client.post(
            "/bookings",
            json=booking_data(self.state.shipper_id),
            catch_response=True,
            name="POST /bookings",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Create booking failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()
                return
            body = resp.json()
            self.state.booking_id = body["booking_id"]
            self.state.awb = body["awb"]

    def move(self, status: str, remarks: str | None = None) -> bool:
        with self.client.put(
            f"/bookings/{self.state.booking_id}/status",
            json=status_update(status, self.state.revision, remarks),
            catch_response=True,
            name="PUT /bookings/{id}/status",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Move to {status} failed: {resp.status_code} {extract_error_detail(resp)}")
                self.interrupt()
                return False
            body = resp.json()
            self.state.current_status = body["status"]
            self.state.revision = body["revision"]
            return True


class DeliveryJourney(_BookingJourney):
    """Booked -> Picked Up -> In Transit -> Out for Delivery -> Delivered (with POD)."""

    @task
    def pick_up(self):
        self.move("Picked Up")

    @task
    def in_transit(self):
        self.move("In Transit")

    @task
    def out_for_delivery(self):
        self.move("Out for Delivery")

    @task
    def deliver(self):
        with self.client.put(
            f"/bookings/{self.state.booking_id}/proof-of-delivery",
            json=proof_of_delivery(),
            catch_response=True,
            name="PUT /bookings/{id}/proof-of-delivery",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Proof of delivery failed: {resp.status_code} {extract_error_detail(resp)}")
            else:
                self.state.current_status = "Delivered"

    @task
    def done(self):
        self.interrupt()


class FailedDeliveryJourney(_BookingJourney):
    """Out for Delivery -> Failed Delivery -> Returned -> re-dispatched as a new booking."""

    @task
    def reach_last_mile(self):
        for status in ("Picked Up", "In Transit", "Out for Delivery"):
            if not self.move(status):
                return

    @task
    def fail(self):
        self.move("Failed Delivery", remarks="Consignee not available")

    @task
    def return_to_origin(self):
        self.move("Returned", remarks="Return to origin after failed attempt")

    @task
    def redispatch(self):
        with self.client.post(
            f"/bookings/{self.state.booking_id}/redispatch",
            json={"booked_by": "returns-desk", "remarks": "Re-dispatch with corrected address"},
            catch_response=True,
            name="POST /bookings/{id}/redispatch",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Re-dispatch failed: {resp.status_code} {extract_error_detail(resp)}")
        self.interrupt()


class StatusRaceJourney(_BookingJourney):
    """Two hubs update the same booking from the same revision.

    Exactly one update may win; the loser must get a retryable 409.
    """

    @task
    def race(self):
        base_revision = self.state.revision
        outcomes = []
        for status in ("Picked Up", "Cancelled"):
            payload = status_update(status, base_revision, remarks="Shipper request")
            with self.client.put(
                f"/bookings/{self.state.booking_id}/status",
                json=payload,
                catch_response=True,
                name="PUT /bookings/{id}/status [race]",
            ) as resp:
                outcomes.append(resp.status_code)
                if resp.status_code == 409 and resp.json().get("retryable"):
                    resp.success()
                elif resp.status_code != 200:
                    resp.failure(f"Unexpected race outcome: {resp.status_code} {extract_error_detail(resp)}")
        if outcomes.count(200) != 1:
            self.user.environment.events.request.fire(
                request_type="RACE",
                name="status race winners",
                response_time=0,
                response_length=0,
                exception=AssertionError(f"Expected exactly one winner, got {outcomes}"),
            )
        self.interrupt()


class TrackingReaderJourney(_BookingJourney):
    """Public visitors polling the tracking page and occasionally reporting a problem."""

    @task
    def track(self):
        for _ in range(random.randint(3, 8)):
            with self.client.get(
                f"/tracking/{self.state.awb.lower()}",
                catch_response=True,
                name="GET /tracking/{awb}",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Tracking failed: {resp.status_code} {extract_error_detail(resp)}")
                elif resp.json().get("financials") is not None:
                    resp.failure("Public tracking exposed financials")

    @task
    def report_problem(self):
        if random.random() < 0.2:
            self.client.post("/exceptions", json=exception_report(self.state.awb), name="POST /exceptions")
        self.interrupt()
