"""
Candidate date tuples for origin -> hub -> destination -> hub -> origin.

Enumeration order is (depart day, pre-offset, dwell, post-offset), all
ascending. The order is part of the contract: truncation at max_tuples must
give the same prefix every time.
"""

from datetime import timedelta
from typing import Iterator, List

from app.types import CandidateTuple, OffsetRange, TupleConstraints

# Depart windows longer than this are clamped to their first N days
MAX_DEPART_DAYS = 31


def dwell_values(dwell_range: OffsetRange) -> List[int]:
    """Effective dwell lengths; values below one night collapse to 1 once."""
    low = max(1, dwell_range.min)
    high = max(1, dwell_range.max)
    return list(range(low, high + 1))


def generate_tuples(constraints: TupleConstraints,
                    max_depart_days: int = MAX_DEPART_DAYS) -> Iterator[CandidateTuple]:
    """Lazily yield tuples whose inbound date falls in the return window.

    Stops as soon as max_tuples have been yielded, without walking the rest
    of the cross-product. Calling again with the same constraints restarts
    from the beginning.
    """
    produced = 0
    if constraints.max_tuples <= 0:
        return

    dwells = dwell_values(constraints.dwell_range)
    return_window = constraints.return_window

    for outbound in constraints.depart_window.days(limit=max_depart_days):
        for x in constraints.pre_offset_range.values():
            hub_depart = outbound + timedelta(days=x)
            if hub_depart > return_window.end:
                break
            for z in dwells:
                hub_return = hub_depart + timedelta(days=z)
                if hub_return > return_window.end:
                    break
                for y in constraints.post_offset_range.values():
                    inbound = hub_return + timedelta(days=y)
                    if inbound < return_window.start:
                        continue
                    if inbound > return_window.end:
                        break
                    yield CandidateTuple(
                        outbound_date=outbound,
                        hub_depart_date=hub_depart,
                        hub_return_date=hub_return,
                        inbound_date=inbound,
                        pre_offset=x,
                        dwell_days=z,
                        post_offset=y,
                    )
                    produced += 1
                    if produced >= constraints.max_tuples:
                        return
