"""
Reporting cycles and sync date ranges.

Cycles:
    campaign  27th of the previous month to the 26th of this month; from the
              27th onward the next cycle (27th this month to 26th next month)
    partner   1st to 26th; after the 26th, the next month's 1st-26th
    calendar  first to last day of the month
"""

import calendar
from datetime import date
from typing import Optional, Tuple

from campaign_intel.models.enums import CycleType
from campaign_intel.models.schemas import DateRange


CAMPAIGN_CYCLE_START_DAY = 27
PARTNER_CYCLE_END_DAY = 26


def _shift_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def resolve_cycle(cycle_type: CycleType, ref_date: Optional[date] = None) -> Tuple[date, date]:
    """
    Start and end (inclusive) of the cycle containing ``ref_date``.

    ``custom`` has no intrinsic bounds and resolves like ``calendar``.
    """
    ref_date = ref_date or date.today()
    year, month, day = ref_date.year, ref_date.month, ref_date.day

    if cycle_type == CycleType.CAMPAIGN:
        if day >= CAMPAIGN_CYCLE_START_DAY:
            start = date(year, month, CAMPAIGN_CYCLE_START_DAY)
            end_year, end_month = _shift_month(year, month, 1)
        else:
            start_year, start_month = _shift_month(year, month, -1)
            start = date(start_year, start_month, CAMPAIGN_CYCLE_START_DAY)
            end_year, end_month = year, month
        return start, date(end_year, end_month, PARTNER_CYCLE_END_DAY)

    if cycle_type == CycleType.PARTNER:
        if day > PARTNER_CYCLE_END_DAY:
            year, month = _shift_month(year, month, 1)
        return date(year, month, 1), date(year, month, PARTNER_CYCLE_END_DAY)

    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def cycle_date_range(cycle_type: CycleType, ref_date: Optional[date] = None) -> DateRange:
    """
    DateRange for the current cycle, clipped so it never ends after ``ref_date``.

    The insights edge rejects ranges that end in the future.
    """
    ref_date = ref_date or date.today()
    start, end = resolve_cycle(cycle_type, ref_date)
    if start > ref_date:
        # Partner cycle after the 26th starts next month; use the one just finished
        start, end = resolve_cycle(cycle_type, ref_date.replace(day=1))
    end = min(end, ref_date)
    return DateRange(start=start.isoformat(), end=end.isoformat(), cycle_type=cycle_type)


def preset_for_days(sync_days: Optional[int], default: str = 'last_30d') -> DateRange:
    """DateRange for a ``last_Nd`` preset; None keeps the default preset."""
    if sync_days is None:
        return DateRange(start=default)
    if sync_days <= 0:
        raise ValueError('sync_days must be positive')
    return DateRange(start=f'last_{sync_days}d')
