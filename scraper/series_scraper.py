"""Series membership discovery from the series pages."""
import logging
from collections import Counter
from datetime import datetime
from typing import List, Optional, Sequence

import requests
from bs4 import BeautifulSoup

from processor.models import SeriesEntry
from scraper.navigation import NavigationRetrier
from storage.row_store import SERIES_HEADER, SERIES_TABLE, RowStore, records_from_rows

logger = logging.getLogger(__name__)

PROGRAM_HEADING = 'FILMS IN THIS PROGRAM'
PLACEHOLDER_TITLES = frozenset({'?????? CINEMA'})
TITLE_SELECTOR = 'h1, h2, h3, h4, h5, h6, strong, em'


def extract_series_titles(html_content: str) -> List[str]:
    """
    Read the film titles listed after the program heading of a series page.

    Args:
        html_content: Series page HTML

    Returns:
        Titles in page order, possibly with duplicates; empty when the
        heading is missing
    """
    soup = BeautifulSoup(html_content, 'html.parser')
    texts = [element.get_text(strip=True) for element in soup.select(TITLE_SELECTOR)]

    try:
        start = [text.upper() for text in texts].index(PROGRAM_HEADING)
    except ValueError:
        logger.warning(f"Heading '{PROGRAM_HEADING}' not found, no titles extracted")
        return []

    return texts[start + 1:]


class SeriesScraper:
    """Rebuilds the series table from the series index."""

    def __init__(self, store: RowStore, retrier: Optional[NavigationRetrier] = None):
        self.store = store
        self.retrier = retrier or NavigationRetrier()

    def update_series(self, entries: Sequence[SeriesEntry], now: datetime) -> List[List[str]]:
        """
        Scrape every series page and write the series table.

        Rows of series that scraped successfully are replaced; rows of
        series that failed are left as they were.

        Args:
            entries: Series index entries
            now: Timestamp written to DateRecorded

        Returns:
            Full series table rows, header first
        """
        recorded = now.isoformat()
        seen_tags = set()
        replaced_tags = set()
        new_rows: List[List[str]] = []
        skipped = 0

        for entry in entries:
            if not entry.series_url or not entry.series_tag:
                logger.warning(f"Skipping series index row with missing seriesURL or seriesTag: {entry}")
                skipped += 1
                continue
            if entry.series_tag in seen_tags:
                logger.warning(f"Duplicate seriesTag '{entry.series_tag}' found in series index")
            seen_tags.add(entry.series_tag)

            titles = self._scrape_series(entry)
            if titles is None:
                skipped += 1
                continue
            replaced_tags.add(entry.series_tag)
            new_rows.extend([title, entry.series_tag, recorded] for title in titles)

        existing = records_from_rows(self.store.read_rows(SERIES_TABLE), required=SERIES_HEADER)
        kept = [
            [record['Title'], record['SeriesTag'], record['DateRecorded']]
            for record in existing
            if record['SeriesTag'] not in replaced_tags
        ]

        unique_rows = []
        seen_pairs = set()
        for row in new_rows:
            pair = f"{row[0]}|{row[1]}"
            if pair in seen_pairs:
                continue
            seen_pairs.add(pair)
            unique_rows.append(row)

        rows = [list(SERIES_HEADER)] + kept + unique_rows
        self.store.write_rows(SERIES_TABLE, rows)
        logger.info(
            f"Series update complete: {len(unique_rows)} titles from {len(replaced_tags)} series, "
            f"{skipped} series skipped"
        )
        return rows

    def _scrape_series(self, entry: SeriesEntry) -> Optional[List[str]]:
        try:
            result = self.retrier.navigate(entry.series_url)
        except requests.RequestException as e:
            logger.error(
                f"Unable to navigate to series URL '{entry.series_url}': {e}. "
                "Please check the URL in the series index."
            )
            return None

        if not result:
            logger.error(f"Navigation to '{entry.series_url}' timed out. The site may be down or slow.")
            return None

        titles = extract_series_titles(result.response.text)
        titles = [title for title in titles if title and title not in PLACEHOLDER_TITLES]

        duplicates = [title for title, count in Counter(titles).items() if count > 1]
        if duplicates:
            logger.warning(
                f"Duplicate titles found for seriesTag '{entry.series_tag}': {', '.join(duplicates)}"
            )

        titles = list(dict.fromkeys(titles))
        if not titles:
            logger.warning(f"No valid titles extracted for seriesTag '{entry.series_tag}'")
            return None

        logger.info(f"Extracted {len(titles)} titles for seriesTag '{entry.series_tag}'")
        return titles
