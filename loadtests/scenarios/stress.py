"""Stress scenarios for the booking write path.

BookingFloodUser books as fast as it can so the per-booking locks and the
projections see maximum throughput. HotBookingUser hammers a single
booking with status updates to measure contention on one key.
"""

from locust import HttpUser, constant_pacing, task

from loadtests.data_generators import booking_data, shipper_data, status_update


class BookingFloodUser(HttpUser):
    """Each task creates a new booking; no two requests touch the same booking."""

    wait_time = constant_pacing(0.1)

    def on_start(self):
        resp = self.client.post("/shippers", json=shipper_data(), name="[STRESS] POST /shippers")
        self.shipper_id = resp.json()["id"] if resp.status_code == 201 else None

    @task(5)
    def create_booking(self):
        if self.shipper_id:
            self.client.post("/bookings", json=booking_data(self.shipper_id), name="[STRESS] POST /bookings")

    @task(1)
    def bulk_upload(self):
        if self.shipper_id:
            rows = [booking_data(self.shipper_id) for _ in range(10)]
            for row in rows:
                row["consignee_details"] = row.pop("consignee")
                row.pop("dimensions", None)
            self.client.post("/bookings/bulk", json={"rows": rows}, name="[STRESS] POST /bookings/bulk")


class HotBookingUser(HttpUser):
    """Every user moves the same booking On Hold and back, serialized by its lock."""

    wait_time = constant_pacing(0.2)
    booking_id = None

    def on_start(self):
        if HotBookingUser.booking_id is None:
            resp = self.client.post("/shippers", json=shipper_data(), name="[HOT] POST /shippers")
            if resp.status_code == 201:
                booked = self.client.post(
                    "/bookings", json=booking_data(resp.json()["id"]), name="[HOT] POST /bookings"
                )
                if booked.status_code == 201:
                    HotBookingUser.booking_id = booked.json()["booking_id"]

    @task
    def toggle_hold(self):
        if HotBookingUser.booking_id is None:
            return
        for status, remarks in (("On Hold", "Address verification"), ("Picked Up", None)):
            detail = self.client.get(f"/bookings/{HotBookingUser.booking_id}", name="[HOT] GET /bookings/{id}")
            if detail.status_code != 200:
                return
            with self.client.put(
                f"/bookings/{HotBookingUser.booking_id}/status",
                json=status_update(status, detail.json()["revision"], remarks),
                catch_response=True,
                name="[HOT] PUT /bookings/{id}/status",
            ) as resp:
                # Another user may already have moved it, from the same revision or past this status
                if resp.status_code in (200, 409, 422):
                    resp.success()
