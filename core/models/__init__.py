"""Core domain models."""

from core.models.organization import Organization, OrganizationMembership, Role
from core.models.client import Client
from core.models.project import Project, PricingType
from core.models.task import (
    Task, TaskStatus, TaskStatusUpdate, TaskDependency, TaskDependencyCreate,
    TaskDependencyDetail,
)
from core.models.time_entry import (
    TimeEntry, TimeEntryCreate, TimeEntryUpdate, TimeEntryFilter, TimerStart, TimerStop,
    TimeEntryList,
)
from core.models.invoice import (
    Invoice, InvoiceCreate, InvoiceUpdate, InvoiceFilter, InvoiceStatus,
    InvoiceLine, InvoiceTimeEntry, InvoicePage,
)
from core.models.payment import Payment, PaymentCreate, PaymentUpdate

__all__ = [
    # Organization
    "Organization", "OrganizationMembership", "Role",
    # Client
    "Client",
    # Project
    "Project", "PricingType",
    # Task
    "Task", "TaskStatus", "TaskStatusUpdate", "TaskDependency", "TaskDependencyCreate",
    "TaskDependencyDetail",
    # TimeEntry
    "TimeEntry", "TimeEntryCreate", "TimeEntryUpdate", "TimeEntryFilter", "TimerStart", "TimerStop",
    "TimeEntryList",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceUpdate", "InvoiceFilter", "InvoiceStatus",
    "InvoiceLine", "InvoiceTimeEntry", "InvoicePage",
    # Payment
    "Payment", "PaymentCreate", "PaymentUpdate",
]
