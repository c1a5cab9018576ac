"""Title-keyed lookup indices built from the series and runtime side-tables."""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from processor.models import RuntimeEntry, SeriesEntry
from processor.normalizer import normalize_title
from storage.row_store import records_from_rows

logger = logging.getLogger(__name__)


def series_entries_from_rows(rows: Sequence[Sequence[str]]) -> List[SeriesEntry]:
    """Read seriesIndex rows (seriesName, seriesURL, seriesTag)."""
    records = records_from_rows(rows, required=('seriesName', 'seriesTag'))
    return [
        SeriesEntry(
            series_tag=record['seriesTag'].strip(),
            series_name=record['seriesName'].strip(),
            series_url=record.get('seriesURL', '').strip()
        )
        for record in records
    ]


def runtime_entries_from_rows(rows: Sequence[Sequence[str]]) -> List[RuntimeEntry]:
    """Read runtimes rows (Title, Runtime)."""
    records = records_from_rows(rows, required=('Title', 'Runtime'))
    return [
        RuntimeEntry(title=record['Title'], runtime_text=record['Runtime'])
        for record in records
    ]


def build_series_index(entries: Sequence[SeriesEntry]) -> Dict[str, str]:
    """
    Map seriesTag to seriesName.

    Duplicate tags are logged and the first name wins.
    """
    index: Dict[str, str] = {}
    duplicates = set()

    for entry in entries:
        if not entry.series_tag or not entry.series_name:
            logger.warning(f"Skipping series index row with missing tag or name: {entry}")
            continue
        if entry.series_tag in index:
            duplicates.add(entry.series_tag)
            continue
        index[entry.series_tag] = entry.series_name

    if duplicates:
        logger.warning(f"Duplicate seriesTag values in series index: {', '.join(sorted(duplicates))}")

    return index


def build_series_by_title_index(rows: Sequence[Sequence[str]]) -> Dict[str, str]:
    """
    Map normalized title to seriesTag from the series table.

    Args:
        rows: series table rows (Title, SeriesTag, ...), header first

    Returns:
        Dict of normalized title to the first seriesTag listed for it
    """
    records = records_from_rows(rows, required=('Title', 'SeriesTag'))
    index: Dict[str, str] = {}
    pairs = Counter()

    for record in records:
        key = normalize_title(record['Title'])
        tag = record['SeriesTag'].strip()
        if not key or not tag:
            continue
        pairs[(key, tag)] += 1
        if key in index and index[key] != tag:
            logger.debug(
                f"Title '{record['Title']}' is in series '{index[key]}' and '{tag}', "
                f"keeping '{index[key]}'"
            )
        index.setdefault(key, tag)

    duplicates = [f"{title}|{tag}" for (title, tag), count in pairs.items() if count > 1]
    if duplicates:
        logger.warning(f"Duplicate (title, seriesTag) pairs in series table: {', '.join(duplicates)}")

    return index


def build_runtime_index(entries: Sequence[RuntimeEntry]) -> Dict[str, str]:
    """Map title (as written) to runtime text, skipping blank runtimes."""
    index: Dict[str, str] = {}
    for entry in entries:
        if not entry.title or not entry.runtime_text.strip():
            continue
        index.setdefault(entry.title, entry.runtime_text.strip())
    return index


@dataclass(frozen=True)
class SideTableIndex:
    """Read-only lookups built once per run."""
    series_names: Dict[str, str] = field(default_factory=dict)
    series_by_title: Dict[str, str] = field(default_factory=dict)
    runtimes: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_rows(
        cls,
        series_index_rows: Sequence[Sequence[str]],
        series_rows: Sequence[Sequence[str]],
        runtime_rows: Sequence[Sequence[str]]
    ) -> 'SideTableIndex':
        """Build every index from raw header-first table rows."""
        index = cls(
            series_names=build_series_index(series_entries_from_rows(series_index_rows)),
            series_by_title=build_series_by_title_index(series_rows),
            runtimes=build_runtime_index(runtime_entries_from_rows(runtime_rows))
        )
        logger.info(
            f"Built side-table index: {len(index.series_names)} series, "
            f"{len(index.series_by_title)} series titles, {len(index.runtimes)} runtimes"
        )
        return index
