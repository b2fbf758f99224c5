"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the courier API's request
schemas (unknown fields are rejected) and the domain's own validation.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")

SERVICE_TYPES = ["Same Day", "Express", "Overnight", "Standard", "Economy"]
SHIPMENT_TYPES = ["Document", "Parcel", "Cargo"]
PAYMENT_MODES = ["COD", "Prepaid", "Credit"]
INCIDENT_TYPES = [
    "Damaged Package",
    "Delivery Delay",
    "Wrong Address",
    "Customer Not Available",
    "Weather Delay",
]

# ---------- Parties ----------


def valid_email() -> str:
    """Unique per call so shipper registration never trips the duplicate-email check."""
    return f"{fake.user_name()[:20]}.{uuid.uuid4().hex[:6]}@{fake.free_email_domain()}"


def valid_mobile() -> str:
    return f"+91-{random.randint(7000000000, 9999999999)}"


def address_data() -> dict:
    return {
        "street": fake.street_address()[:300],
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "postal_code": fake.postcode()[:20],
        "country": "India",
    }


def shipper_data() -> dict:
    """RegisterShipperRequest payload."""
    return {
        "name": fake.name()[:200],
        "company": fake.company()[:200],
        "email": valid_email(),
        "mobile": valid_mobile(),
        "address": address_data(),
        "payment_type": random.choice(PAYMENT_MODES),
    }


def consignee_details() -> dict:
    address = address_data()
    return {
        "name": fake.name()[:200],
        "mobile": valid_mobile(),
        "email": fake.free_email(),
        **address,
    }


# ---------- Bookings ----------


def booking_data(shipper_id: str) -> dict:
    """CreateBookingRequest payload with an embedded consignee."""
    payment_mode = random.choice(PAYMENT_MODES)
    declared_value = round(random.uniform(100.0, 25000.0), 2)
    payload = {
        "shipper_id": shipper_id,
        "consignee": consignee_details(),
        "service_type": random.choice(SERVICE_TYPES),
        "shipment_type": random.choice(SHIPMENT_TYPES),
        "number_of_pieces": random.randint(1, 4),
        "weight": round(random.uniform(0.2, 25.0), 2),
        "description": fake.sentence(nb_words=4)[:500],
        "declared_value": declared_value,
        "requires_insurance": random.random() < 0.3,
        "payment_mode": payment_mode,
        "cod_amount": declared_value if payment_mode == "COD" else 0.0,
        "booked_by": f"counter-{random.randint(1, 20)}",
        "location": f"{fake.city()} Hub",
    }
    if random.random() < 0.5:
        payload["dimensions"] = {
            "length": random.randint(10, 80),
            "width": random.randint(10, 60),
            "height": random.randint(5, 50),
            "unit": "cm",
        }
    return payload


def status_update(status: str, revision: int, remarks: str | None = None) -> dict:
    """ChangeStatusRequest payload quoting the revision the caller last saw."""
    payload = {
        "status": status,
        "expected_revision": revision,
        "location": f"{fake.city()} Hub",
        "updated_by": f"ops-{random.randint(1, 50)}",
    }
    if remarks:
        payload["remarks"] = remarks
    return payload


def proof_of_delivery() -> dict:
    return {
        "delivered_to": fake.name()[:100],
        "proof_reference": f"POD-{uuid.uuid4().hex[:10].upper()}",
        "updated_by": f"rider-{random.randint(1, 200)}",
    }


# ---------- Exceptions & Invoices ----------


def exception_report(awb: str) -> dict:
    """ReportExceptionRequest payload, reported by the consignee."""
    return {
        "awb": awb,
        "type": random.choice(INCIDENT_TYPES),
        "description": fake.sentence(nb_words=10),
        "reporter": {
            "name": fake.name()[:100],
            "mobile": valid_mobile(),
            "relationship": "Consignee",
        },
    }


def payment_data(amount: float) -> dict:
    return {
        "reference": f"UTR{uuid.uuid4().hex[:12].upper()}",
        "amount": amount,
        "payment_mode": random.choice(["NEFT", "UPI", "Cheque"]),
    }
