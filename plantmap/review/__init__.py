"""Status request queue: submission, listing and admin review."""

from plantmap.review.models import ReviewOutcome
from plantmap.review.repository import (
    fetch_pending_requests,
    fetch_status_request,
    list_status_requests,
)
from plantmap.review.service import (
    approve_status_request,
    reject_status_request,
    submit_status_request,
)

__all__ = [
    "ReviewOutcome",
    "fetch_pending_requests",
    "fetch_status_request",
    "list_status_requests",
    "approve_status_request",
    "reject_status_request",
    "submit_status_request",
]
