"""
Scan milestone evaluation.

A milestone is reached when the new scan count is in the configured list
and is greater than the last milestone already recorded for the lock, so
each milestone fires at most once even if a count is somehow revisited.
"""

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class ScanOutcome:
    scan_count: int
    last_milestone: int
    reached: Optional[int] = None


def evaluate_scan(
    current_count: Optional[int],
    last_milestone: Optional[int],
    milestones: Iterable[int],
) -> ScanOutcome:
    new_count = (current_count or 0) + 1
    previous = last_milestone or 0
    if new_count in set(milestones) and new_count > previous:
        return ScanOutcome(scan_count=new_count, last_milestone=new_count, reached=new_count)
    return ScanOutcome(scan_count=new_count, last_milestone=previous)
