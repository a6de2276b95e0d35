"""
Course calendar arithmetic: prescription status and week numbering.

Every function here is pure. Callers pass the reference date explicitly,
taken from a clock pinned to a single time zone, so results never depend on
where the process happens to run.
"""

from datetime import date, datetime, timedelta, tzinfo

from treatment_tracker.domain.models import Prescription, PrescriptionStatus

ACTIVE_WINDOW_DAYS = 42  # day 0 through day 41
EXPIRY_DAYS = 42  # never-activated prescriptions lapse 6 weeks after creation
DAYS_PER_WEEK = 7
TOTAL_WEEKS = 6

_LAST_ACTIVE_OFFSET = timedelta(days=ACTIVE_WINDOW_DAYS - 1)


def local_date(moment: datetime, zone: tzinfo | None = None) -> date:
    """Calendar date of `moment` in `zone`. Naive moments are already local."""
    if zone is not None and moment.tzinfo is not None:
        moment = moment.astimezone(zone)
    return moment.date()


def prescription_status(
    prescription: Prescription, reference_date: date, zone: tzinfo | None = None
) -> PrescriptionStatus:
    """
    Derive the status of a prescription on `reference_date`.

    `zone` is the reference zone `reference_date` was taken in; an aware
    `created_at` is converted into it before its calendar date is used.
    """
    activated = prescription.activated_date
    if activated is not None:
        if reference_date < activated:
            # activation recorded for a later day
            return PrescriptionStatus.WAITING
        if reference_date <= activated + _LAST_ACTIVE_OFFSET:
            return PrescriptionStatus.ACTIVE
        return PrescriptionStatus.COMPLETED

    created = local_date(prescription.created_at, zone)
    if reference_date > created + timedelta(days=EXPIRY_DAYS):
        return PrescriptionStatus.EXPIRED
    return PrescriptionStatus.WAITING


def is_within_active_window(activated_date: date, day: date) -> bool:
    return activated_date <= day <= activated_date + _LAST_ACTIVE_OFFSET


def week_of(activated_date: date, day: date) -> int:
    """1-based course week containing `day`. Not clamped."""
    return (day - activated_date).days // DAYS_PER_WEEK + 1


def current_week(prescription: Prescription, today: date, zone: tzinfo | None = None) -> int:
    """
    Week the course is in on `today`, clamped to [1, TOTAL_WEEKS].

    Only ACTIVE and COMPLETED prescriptions have a running week; anything
    else reports week 1. A COMPLETED course therefore always reports the
    last week.
    """
    status = prescription_status(prescription, today, zone)
    if status not in (PrescriptionStatus.ACTIVE, PrescriptionStatus.COMPLETED):
        return 1
    assert prescription.activated_date is not None
    return min(max(week_of(prescription.activated_date, today), 1), TOTAL_WEEKS)
