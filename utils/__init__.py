"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, minutes_between, days_from
from utils.request_context import RequestContext
