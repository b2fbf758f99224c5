"""Courier load testing: Locust entry point.

Imports every user class so Locust can discover them. Pick a scenario
with Locust's class selection.

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py --host http://localhost:8000

    # Mixed workload only:
    locust -f loadtests/locustfile.py MixedWorkloadUser

    # Contention on a single booking:
    locust -f loadtests/locustfile.py HotBookingUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py MixedWorkloadUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

import requests
from locust import events

from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.mixed import MixedWorkloadUser  # noqa: F401
from loadtests.scenarios.stress import BookingFloodUser, HotBookingUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log the API error body for every failed request, across all scenarios."""
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print()


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Print the final per-status booking counts from the dashboard endpoint."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    if not environment.host:
        return
    try:
        resp = requests.get(f"{environment.host}/bookings/summary", timeout=5)
        resp.raise_for_status()
    except requests.RequestException as exc:
        print(f"[LOADTEST] Could not fetch booking summary: {exc}\n")
        return
    print("\n[LOADTEST] Bookings by status:")
    for status, count in resp.json().items():
        print(f"  {status:<20} {count}")
    print()
