import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The
    activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from courier.domain import courier

    courier.init()
    courier.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from courier.domain import courier
    from courier.utils.db import drop_db, setup_db

    setup_db(courier)

    yield

    drop_db(courier)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Shared parties and bookings
# ---------------------------------------------------------------------------
@pytest.fixture()
def shipper_id():
    """A shipper registered in the home state (intra-state GST)."""
    from courier.party.shipper import RegisterShipper
    from protean import current_domain

    return current_domain.process(
        RegisterShipper(
            name="Asha Rao",
            company="Rao Textiles",
            email="asha@raotextiles.example",
            mobile="+91-9800000001",
            street="12 Linking Road",
            city="Mumbai",
            state="Maharashtra",
            postal_code="400050",
            country="India",
            payment_type="Credit",
        ),
        asynchronous=False,
    )


@pytest.fixture()
def out_of_state_shipper_id():
    from courier.party.shipper import RegisterShipper
    from protean import current_domain

    return current_domain.process(
        RegisterShipper(
            name="Vikram Shah",
            company="Shah Exports",
            email="vikram@shahexports.example",
            mobile="+91-9800000002",
            city="Ahmedabad",
            state="Gujarat",
            country="India",
        ),
        asynchronous=False,
    )


@pytest.fixture()
def consignee_id(shipper_id):
    from courier.party.consignee import RegisterConsignee
    from protean import current_domain

    return current_domain.process(
        RegisterConsignee(
            shipper_id=shipper_id,
            name="Meera Iyer",
            mobile="+91-9800000003",
            email="meera@example.com",
            street="4 Residency Road",
            city="Bengaluru",
            state="Karnataka",
            postal_code="560025",
            country="India",
        ),
        asynchronous=False,
    )


CONSIGNEE_DETAILS = {
    "name": "Kabir Mehta",
    "mobile": "+91-9800000004",
    "email": "kabir@example.com",
    "street": "88 Park Street",
    "city": "Kolkata",
    "state": "West Bengal",
    "postal_code": "700016",
    "country": "India",
}


@pytest.fixture()
def book(shipper_id):
    """Create a booking through the command and return its id."""
    import json

    from courier.booking.creation import CreateBooking
    from protean import current_domain

    def _book(**overrides):
        payload = {
            "shipper_id": shipper_id,
            "consignee_details": json.dumps(CONSIGNEE_DETAILS),
            "weight": 2.5,
            "description": "Cotton fabric samples",
            "service_type": "Standard",
            "payment_mode": "Prepaid",
            "booked_by": "counter-1",
            "location": "Mumbai Hub",
        }
        payload.update(overrides)
        return current_domain.process(CreateBooking(**payload), asynchronous=False)["booking_id"]

    return _book


@pytest.fixture()
def advance():
    """Walk a booking along a path of statuses through the ledger."""
    from courier.booking.ledger import load_booking
    from courier.booking.status import change_booking_status

    def _advance(booking_id, *statuses, remarks="Updated by hub"):
        booking = load_booking(booking_id)
        for status in statuses:
            booking = change_booking_status(
                booking_id,
                status,
                location="Hub",
                remarks=remarks,
                updated_by="ops",
                expected_revision=booking.revision,
            )
        return booking

    return _advance


@pytest.fixture()
def delivered_booking(book, advance):
    def _delivered(**overrides):
        booking_id = book(**overrides)
        advance(booking_id, "Picked Up", "In Transit", "Out for Delivery", "Delivered")
        return booking_id

    return _delivered


@pytest.fixture()
def race():
    """Run callables on separate threads released together by a barrier.

    Returns ``(results, errors)`` in completion order.
    """
    import threading

    from courier.domain import courier

    def _race(*calls, timeout=10):
        barrier = threading.Barrier(len(calls))
        results, errors = [], []

        def run(call):
            with courier.domain_context():
                barrier.wait(timeout=timeout)
                try:
                    results.append(call())
                except Exception as exc:
                    errors.append(exc)

        threads = [threading.Thread(target=run, args=(call,)) for call in calls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=timeout)
        assert not any(thread.is_alive() for thread in threads)
        return results, errors

    return _race
