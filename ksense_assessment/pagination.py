"""
Fetch every patient page and reconcile the results.

Pages can come back empty, duplicated, or with missing metadata, so no
single signal (hasNext, totalPages, an empty page) is trusted on its own.
``PaginationTracker`` holds the running state: ids seen so far, the streak
of pages that added nothing new, the totals the server reported, and the
pages that stayed empty. ``fetch_all_patients`` drives it one page at a time.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Set

from .client import DemoMedClient, parse_int_prefix
from .records import get_patient_id

logger = logging.getLogger(__name__)

MAX_NO_NEW_ID_PAGES = 5
# where the no-new-ids heuristic may kick in when totalPages is unknown
MIN_PAGES_WITHOUT_TOTAL = 10
RECOVERY_ROUNDS = 2


def _clamp(value, lo, hi):
    return min(max(value, lo), hi)


@dataclass
class FetchOptions:
    max_page_attempts: int = 5
    max_total_pages: int = 200
    page_delay: float = 0.25
    attempt_delay: float = 0.25

    def clamped(self) -> "FetchOptions":
        return FetchOptions(
            max_page_attempts=_clamp(int(self.max_page_attempts), 1, 12),
            max_total_pages=_clamp(int(self.max_total_pages), 1, 500),
            page_delay=_clamp(float(self.page_delay), 0.0, 5.0),
            attempt_delay=_clamp(float(self.attempt_delay), 0.0, 5.0),
        )


@dataclass
class FetchMeta:
    expected_total: Optional[int]
    total_pages: Optional[int]
    missing_pages: List[int]
    unique_patient_ids: int
    complete: bool

    def to_dict(self) -> dict:
        return {
            "expectedTotal": self.expected_total,
            "totalPages": self.total_pages,
            "missingPages": list(self.missing_pages),
            "uniquePatientIds": self.unique_patient_ids,
            "complete": self.complete,
        }


@dataclass
class FetchResult:
    patients: List[dict]
    meta: FetchMeta


def _objects(items: list) -> List[dict]:
    return [x for x in items if isinstance(x, dict)]


def normalize_patients_data(envelope: Any) -> List[dict]:
    """Patient batch from a page envelope: data[], data.patients[] or patients[]."""
    if not isinstance(envelope, dict):
        return []
    data = envelope.get("data")
    if isinstance(data, list):
        return _objects(data)
    if isinstance(data, dict) and isinstance(data.get("patients"), list):
        return _objects(data["patients"])
    if isinstance(envelope.get("patients"), list):
        return _objects(envelope["patients"])
    return []


def dedupe_by_patient_id(patients: List[dict]):
    """Keep the first record per id, sorted by id; id-less records go last untouched.

    Returns ``(records, unique_id_count)``.
    """
    by_id = {}
    no_id = []
    for p in patients:
        pid = get_patient_id(p)
        if pid is None:
            no_id.append(p)
        elif pid not in by_id:
            by_id[pid] = p
    deduped = [by_id[pid] for pid in sorted(by_id)]
    return deduped + no_id, len(by_id)


@dataclass
class PaginationTracker:
    max_total_pages: int = 200
    expected_total: Optional[int] = None
    total_pages: Optional[int] = None
    seen_ids: Set[str] = field(default_factory=set)
    missing_pages: List[int] = field(default_factory=list)
    no_new_streak: int = 0
    max_page_fetched: int = 0

    def learn(self, envelope: Any) -> None:
        # first sighting wins
        pagination = envelope.get("pagination") if isinstance(envelope, dict) else None
        if not isinstance(pagination, dict):
            return
        if self.expected_total is None:
            total = parse_int_prefix(pagination.get("total"))
            if total is not None:
                self.expected_total = max(total, 0)
        if self.total_pages is None:
            pages = parse_int_prefix(pagination.get("totalPages"))
            if pages is not None:
                self.total_pages = _clamp(pages, 1, self.max_total_pages)

    def count_new_ids(self, patients: List[dict]) -> int:
        added = 0
        for p in patients:
            pid = get_patient_id(p)
            if pid is not None and pid not in self.seen_ids:
                self.seen_ids.add(pid)
                added += 1
        return added

    def record_page(self, page: int, patients: List[dict]) -> int:
        """Account for a scanned page; returns how many ids it added."""
        self.max_page_fetched = max(self.max_page_fetched, page)
        if not patients:
            self.missing_pages.append(page)
        added = self.count_new_ids(patients)
        if added:
            self.no_new_streak = 0
        else:
            self.no_new_streak += 1
        return added

    def record_recovery(self, page: int, patients: List[dict]) -> None:
        self.max_page_fetched = max(self.max_page_fetched, page)
        self.count_new_ids(patients)

    def past_expected_end(self, page: int) -> bool:
        if self.total_pages is not None:
            return page >= self.total_pages
        return page >= MIN_PAGES_WITHOUT_TOTAL

    def should_stop(self, page: int) -> bool:
        return self.no_new_streak >= MAX_NO_NEW_ID_PAGES and self.past_expected_end(page)

    def recoverable_pages(self) -> List[int]:
        if self.total_pages is None:
            return []
        return [p for p in self.missing_pages if p <= self.total_pages]

    def missing_within_range(self) -> List[int]:
        pages = set(self.missing_pages)
        if self.total_pages is not None:
            pages = {p for p in pages if 1 <= p <= self.total_pages}
        return sorted(pages)

    def is_complete(self, unique_ids: int) -> bool:
        if self.expected_total is not None:
            return unique_ids >= self.expected_total
        if self.total_pages is not None:
            return self.max_page_fetched >= self.total_pages and not self.missing_within_range()
        return False

    def meta(self, unique_ids: int) -> FetchMeta:
        return FetchMeta(
            expected_total=self.expected_total,
            total_pages=self.total_pages,
            missing_pages=self.missing_within_range(),
            unique_patient_ids=unique_ids,
            complete=self.is_complete(unique_ids),
        )


def fetch_page(
    client: DemoMedClient,
    page: int,
    limit: int,
    options: FetchOptions,
    sleep: Callable[[float], None] = time.sleep,
):
    """Fetch one page, retrying while it comes back empty.

    Returns ``(patients, envelope)`` from the last attempt.
    """
    envelope = None
    for attempt in range(1, options.max_page_attempts + 1):
        envelope = client.get_patients_page(page, limit)
        patients = normalize_patients_data(envelope)
        if patients:
            return patients, envelope
        if attempt < options.max_page_attempts:
            logger.debug("page %d empty, attempt %d/%d", page, attempt, options.max_page_attempts)
            sleep(options.attempt_delay * attempt)
    return [], envelope


def fetch_all_patients(
    client: DemoMedClient,
    page_size: int = 20,
    options: Optional[FetchOptions] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FetchResult:
    limit = _clamp(int(page_size), 1, 20)
    options = (options or FetchOptions()).clamped()
    tracker = PaginationTracker(max_total_pages=options.max_total_pages)
    out: List[dict] = []

    patients, envelope = fetch_page(client, 1, limit, options, sleep)
    tracker.learn(envelope)
    tracker.record_page(1, patients)
    # a non-empty first page never starts the streak, even without usable ids
    tracker.no_new_streak = 0 if patients else 1
    out.extend(patients)
    logger.debug("page 1: %d records, totalPages=%s total=%s", len(patients), tracker.total_pages, tracker.expected_total)

    page = 2
    while page <= options.max_total_pages:
        sleep(options.page_delay)
        patients, envelope = fetch_page(client, page, limit, options, sleep)
        tracker.learn(envelope)
        added = tracker.record_page(page, patients)
        out.extend(patients)
        logger.debug("page %d: %d records, %d new ids, streak %d", page, len(patients), added, tracker.no_new_streak)

        if tracker.should_stop(page):
            logger.info("stopping at page %d: %d pages in a row added no new ids", page, tracker.no_new_streak)
            break
        page += 1
    else:
        logger.info("stopping at page guard %d", options.max_total_pages)

    for round_no in range(RECOVERY_ROUNDS):
        pending = tracker.recoverable_pages()
        if not pending:
            break
        logger.info("recovery round %d for pages %s", round_no + 1, pending)
        still_missing = []
        for missing in pending:
            patients, _ = fetch_page(client, missing, limit, options, sleep)
            if patients:
                out.extend(patients)
                tracker.record_recovery(missing, patients)
            else:
                still_missing.append(missing)
            sleep(options.page_delay)
        tracker.missing_pages = still_missing

    patients, unique_ids = dedupe_by_patient_id(out)
    meta = tracker.meta(unique_ids)
    if meta.missing_pages:
        logger.warning("pages still empty after retries: %s", meta.missing_pages)
    logger.info(
        "fetched %d records, %d unique ids (expected %s, totalPages %s), complete=%s",
        len(patients), unique_ids, meta.expected_total, meta.total_pages, meta.complete,
    )
    return FetchResult(patients, meta)
