"""Date manipulation utilities"""

from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta

from peer_ledger.domain.models import PaymentSchedule


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def add_schedule_period(start: datetime, schedule: PaymentSchedule) -> datetime:
    """
    Advance a timestamp by one payment period.

    Weekly is exactly 7 days. Monthly is one calendar month; day-of-month is
    clamped to the end of shorter months (Jan 31 -> Feb 28/29).
    """
    if schedule == PaymentSchedule.WEEKLY:
        return start + timedelta(days=7)
    return start + relativedelta(months=1)
