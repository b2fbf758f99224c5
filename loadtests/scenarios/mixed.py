"""Mixed courier workload scenario.

Combines the booking, tracking and invoicing journeys with weights that
model a courier's day: many tracking lookups, steady bookings, fewer
exceptions and a trickle of invoicing.
"""

from locust import HttpUser, between

from loadtests.scenarios.bookings import (
    DeliveryJourney,
    FailedDeliveryJourney,
    StatusRaceJourney,
    TrackingReaderJourney,
)
from loadtests.scenarios.invoicing import InvoiceJourney


class MixedWorkloadUser(HttpUser):
    """Realistic mixed workload.

    Tracking (40%): public lookups by AWB, with occasional exception reports.
    Delivery (35%): bookings walked to Delivered with proof of delivery.
    Failed delivery (10%): returns and re-dispatch.
    Status races (5%): competing hub updates on one booking.
    Invoicing (10%): delivered bookings billed and paid.
    """

    wait_time = between(0.5, 3.0)
    tasks = {
        TrackingReaderJourney: 8,
        DeliveryJourney: 7,
        FailedDeliveryJourney: 2,
        StatusRaceJourney: 1,
        InvoiceJourney: 2,
    }
