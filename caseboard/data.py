from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
import requests

from caseboard.metrics import total_active_global, with_percentages
from caseboard.models import CountrySnapshot, CountryStat, RawLocationRow
from caseboard.settings import GEOMETRY_MODES, Settings, load_settings
from caseboard.source import Category, CategoryRows, HttpGet, fetch_all_categories


logger = logging.getLogger(__name__)

STAT_COLUMNS = [
    "country_region",
    "lat",
    "long",
    "total_confirmed",
    "total_death",
    "total_recovered",
    "total_active",
    "percentage_active",
    "geometry_ok",
]


def _case_count(row: RawLocationRow) -> int:
    # unparseable totals contribute nothing; truncation matches integer parsing of the source
    return int(row.total_cases.value) if row.total_cases.ok else 0


def aggregate_country_stats(
    confirmed: Iterable[RawLocationRow],
    death: Iterable[RawLocationRow],
    recovered: Iterable[RawLocationRow],
    *,
    geometry: str = "pairwise",
) -> Tuple[CountryStat, ...]:
    """Merge the three category row sets into one record per country.

    Confirmed rows establish entries; death and recovered rows only add to
    countries already seen. Coordinates follow `geometry`:
    - "pairwise": lat = (prev + new) / 2 on every repeat row (order dependent),
    - "mean": arithmetic mean of all contributing confirmed rows.
    Output keeps first-seen order from the confirmed rows.
    """
    if geometry not in GEOMETRY_MODES:
        raise ValueError(f"geometry must be one of: {', '.join(GEOMETRY_MODES)}")

    acc: Dict[str, Dict[str, Any]] = {}
    for row in confirmed:
        lat, long = row.lat.value, row.long.value
        coords_ok = row.lat.ok and row.long.ok
        entry = acc.get(row.country_region)
        if entry is None:
            acc[row.country_region] = {
                "lat": lat,
                "long": long,
                "lat_sum": lat,
                "long_sum": long,
                "points": 1,
                "confirmed": _case_count(row),
                "death": 0,
                "recovered": 0,
                "geometry_ok": coords_ok,
            }
            continue
        entry["confirmed"] += _case_count(row)
        entry["lat"] = (entry["lat"] + lat) / 2
        entry["long"] = (entry["long"] + long) / 2
        entry["lat_sum"] += lat
        entry["long_sum"] += long
        entry["points"] += 1
        entry["geometry_ok"] = entry["geometry_ok"] and coords_ok

    for key, rows in (("death", death), ("recovered", recovered)):
        for row in rows:
            entry = acc.get(row.country_region)
            if entry is not None:
                entry[key] += _case_count(row)

    out: List[CountryStat] = []
    for country, e in acc.items():
        if geometry == "mean":
            lat, long = e["lat_sum"] / e["points"], e["long_sum"] / e["points"]
        else:
            lat, long = e["lat"], e["long"]
        out.append(
            CountryStat(
                country_region=country,
                lat=lat,
                long=long,
                total_confirmed=e["confirmed"],
                total_death=e["death"],
                total_recovered=e["recovered"],
                total_active=max(0, e["confirmed"] - e["death"] - e["recovered"]),
                geometry_ok=e["geometry_ok"],
            )
        )
    return tuple(out)


def count_coercion_failures(rows_by_category: CategoryRows) -> int:
    """Rows where any numeric field (lat, long, total) failed to parse."""
    failures = 0
    for rows in rows_by_category.values():
        for row in rows:
            if not (row.lat.ok and row.long.ok and row.total_cases.ok):
                failures += 1
    return failures


def build_snapshot(
    version: int,
    rows_by_category: CategoryRows,
    *,
    geometry: str = "pairwise",
    fetched_at: Optional[datetime] = None,
) -> CountrySnapshot:
    stats = aggregate_country_stats(
        rows_by_category.get(Category.CONFIRMED, []),
        rows_by_category.get(Category.DEATH, []),
        rows_by_category.get(Category.RECOVERED, []),
        geometry=geometry,
    )
    stats = with_percentages(stats)
    return CountrySnapshot(
        version=version,
        fetched_at=fetched_at or datetime.now(timezone.utc),
        stats=stats,
        total_active_global=total_active_global(stats),
        coercion_failures=count_coercion_failures(rows_by_category),
        source_rows={c.value: len(rows_by_category.get(c, [])) for c in Category},
    )


def stats_frame(stats: Sequence[CountryStat]) -> pd.DataFrame:
    if not stats:
        return pd.DataFrame(columns=STAT_COLUMNS)
    return pd.DataFrame([asdict(s) for s in stats], columns=STAT_COLUMNS)


# ---------------- Published snapshot (versioned, replaced atomically) ----------------
class SnapshotStore:
    """Holds the latest published snapshot.

    Each fetch cycle takes a sequence number from `begin_cycle`. A completed
    cycle is published only if its number is newer than the published one, so
    a slow superseded cycle can never overwrite fresher data.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq = 0
        self._snapshot: Optional[CountrySnapshot] = None
        self._error: Optional[Tuple[int, str]] = None

    def begin_cycle(self) -> int:
        with self._lock:
            self._seq += 1
            return self._seq

    def publish(self, snapshot: CountrySnapshot) -> bool:
        with self._lock:
            if self._snapshot is not None and snapshot.version <= self._snapshot.version:
                return False
            if self._error is not None and snapshot.version < self._error[0]:
                return False
            self._snapshot = snapshot
            self._error = None
            return True

    def record_failure(self, version: int, error: str) -> bool:
        with self._lock:
            if self._snapshot is not None and version <= self._snapshot.version:
                return False
            if self._error is not None and version <= self._error[0]:
                return False
            self._error = (version, error)
            return True

    @property
    def snapshot(self) -> Optional[CountrySnapshot]:
        return self._snapshot

    @property
    def last_error(self) -> Optional[str]:
        err = self._error
        return err[1] if err else None


@dataclass(frozen=True)
class CycleResult:
    ok: bool
    version: int
    snapshot: Optional[CountrySnapshot] = None
    error: Optional[str] = None
    # True when a newer cycle had already settled; snapshot/error then reflect the store
    stale: bool = False


_STORE = SnapshotStore()


def default_store() -> SnapshotStore:
    return _STORE


def _stale(store: SnapshotStore, seq: int) -> CycleResult:
    """Outcome of a cycle that settled after a newer one: report the current state."""
    current = store.snapshot
    return CycleResult(ok=current is not None, version=seq, snapshot=current, error=store.last_error, stale=True)


def _failed(store: SnapshotStore, seq: int, error: str) -> CycleResult:
    if not store.record_failure(seq, error):
        logger.warning("fetch cycle %d failed after a newer cycle; discarded", seq)
        return _stale(store, seq)
    return CycleResult(ok=False, version=seq, error=error)


def run_fetch_cycle(
    store: Optional[SnapshotStore] = None,
    settings: Optional[Settings] = None,
    http_get: HttpGet = requests.get,
) -> CycleResult:
    """Fetch all categories, merge, derive and publish. Never raises."""
    store = store or _STORE
    settings = settings or load_settings()
    seq = store.begin_cycle()
    logger.info("fetch cycle %d started (%s)", seq, settings.api_base)

    try:
        fetched = fetch_all_categories(settings, http_get)
        if not fetched.ok:
            logger.warning("fetch cycle %d failed: %s", seq, fetched.error)
            return _failed(store, seq, fetched.error)
        snapshot = build_snapshot(seq, fetched.value, geometry=settings.geometry)
    except Exception as exc:
        logger.exception("fetch cycle %d failed", seq)
        return _failed(store, seq, f"{type(exc).__name__}: {exc}")

    if snapshot.coercion_failures:
        logger.warning("fetch cycle %d: %d rows with unparseable numbers", seq, snapshot.coercion_failures)

    if not store.publish(snapshot):
        logger.warning("fetch cycle %d completed after a newer cycle; discarded", seq)
        return _stale(store, seq)

    logger.info("fetch cycle %d published %d countries", seq, len(snapshot.stats))
    return CycleResult(ok=True, version=seq, snapshot=snapshot)


def load_dashboard_data(
    store: Optional[SnapshotStore] = None,
    settings: Optional[Settings] = None,
    http_get: HttpGet = requests.get,
) -> CycleResult:
    """Return the published snapshot, running a first fetch cycle if there is none."""
    store = store or _STORE
    current = store.snapshot
    if current is not None:
        return CycleResult(ok=True, version=current.version, snapshot=current)
    return run_fetch_cycle(store, settings, http_get)
