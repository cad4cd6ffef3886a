"""Tests for core domain models - custom validators and derived properties."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError


START = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class TestTimeEntryCreate:
    """Manual entries must end after they start."""

    def test_accepts_forward_interval(self):
        from core.models import TimeEntryCreate

        entry = TimeEntryCreate(task_id=uuid4(), started_at=START, ended_at=START + timedelta(hours=1))
        assert entry.billable is True

    def test_rejects_end_before_start(self):
        from core.models import TimeEntryCreate

        with pytest.raises(ValidationError, match="End time must be after start time"):
            TimeEntryCreate(task_id=uuid4(), started_at=START, ended_at=START - timedelta(minutes=1))

    def test_rejects_zero_length(self):
        from core.models import TimeEntryCreate

        with pytest.raises(ValidationError, match="End time must be after start time"):
            TimeEntryCreate(task_id=uuid4(), started_at=START, ended_at=START)

    def test_rejects_naive_datetimes(self):
        from core.models import TimeEntryCreate

        with pytest.raises(ValidationError, match="timezone offset"):
            TimeEntryCreate(task_id=uuid4(), started_at=datetime(2024, 5, 1, 9), ended_at=START)

    def test_normalizes_offsets_to_utc(self):
        from core.models import TimeEntryCreate

        plus_two = timezone(timedelta(hours=2))
        entry = TimeEntryCreate(
            task_id=uuid4(),
            started_at=datetime(2024, 5, 1, 11, 0, tzinfo=plus_two),
            ended_at=datetime(2024, 5, 1, 12, 0, tzinfo=plus_two),
        )
        assert entry.started_at == START
        assert entry.started_at.tzinfo == timezone.utc


class TestTimeEntryUpdate:
    """Only ended_at may be cleared."""

    @pytest.mark.parametrize("field", ["started_at", "billable"])
    def test_rejects_null(self, field):
        from core.models import TimeEntryUpdate

        with pytest.raises(ValidationError, match="not set to null"):
            TimeEntryUpdate.model_validate({field: None})

    def test_null_end_is_kept_as_set(self):
        from core.models import TimeEntryUpdate

        update = TimeEntryUpdate.model_validate({"ended_at": None})

        assert update.model_dump(exclude_unset=True) == {"ended_at": None}

    def test_omitted_fields_not_set(self):
        from core.models import TimeEntryUpdate

        assert TimeEntryUpdate(notes="x").model_dump(exclude_unset=True) == {"notes": "x"}


class TestTimeEntry:

    def _entry(self, **overrides):
        from core.models import TimeEntry

        values = dict(
            id=uuid4(), task_id=uuid4(), user_id=uuid4(),
            started_at=START, ended_at=None, minutes=None,
            billable=True, note=None, created_at=START, updated_at=START,
        )
        values.update(overrides)
        return TimeEntry(**values)

    def test_running_timer(self):
        entry = self._entry()
        assert entry.is_running is True
        assert entry.hours == 0

    def test_finished_entry_hours(self):
        entry = self._entry(ended_at=START + timedelta(minutes=90), minutes=90)
        assert entry.is_running is False
        assert entry.hours == 1.5

    def test_list_totals_in_hours(self):
        from core.models import TimeEntryList

        result = TimeEntryList(entries=[], total_minutes=125, billable_minutes=60)
        assert result.total_hours == 2.08
        assert result.billable_hours == 1.0


class TestInvoiceFilter:

    def test_defaults(self):
        from core.models import InvoiceFilter

        filters = InvoiceFilter()
        assert filters.page == 1
        assert filters.limit == 10

    def test_limit_capped(self):
        from core.models import InvoiceFilter

        with pytest.raises(ValidationError):
            InvoiceFilter(limit=101)


class TestPaymentCreate:

    def test_amount_must_be_positive(self):
        from core.models import PaymentCreate

        with pytest.raises(ValidationError):
            PaymentCreate(invoice_id=uuid4(), amount=Decimal("0"), method="card")

    def test_method_required(self):
        from core.models import PaymentCreate

        with pytest.raises(ValidationError):
            PaymentCreate(invoice_id=uuid4(), amount=Decimal("10"), method="")


class TestPaymentUpdate:

    def test_method_cannot_be_cleared(self):
        from core.models import PaymentUpdate

        with pytest.raises(ValidationError, match="cannot be cleared"):
            PaymentUpdate.model_validate({"method": None})

    def test_reference_can_be_cleared(self):
        from core.models import PaymentUpdate

        update = PaymentUpdate.model_validate({"reference": None})

        assert update.model_dump(exclude_unset=True) == {"reference": None}


class TestInvoice:

    def test_is_draft(self):
        from core.models import Invoice, InvoiceStatus

        invoice = Invoice(
            id=uuid4(), organization_id=uuid4(), client_id=uuid4(), project_id=None,
            invoice_no="INV-001", status=InvoiceStatus.SENT, currency="USD",
            subtotal=Decimal("10"), tax=Decimal("0"), total=Decimal("10"),
            issue_date=START, due_date=None, notes=None,
            created_at=START, updated_at=START,
        )
        assert invoice.is_draft is False
        assert invoice.lines == []
