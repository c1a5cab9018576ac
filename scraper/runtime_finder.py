"""Runtime discovery from screening detail pages."""
import logging
from typing import Dict, List, Optional, Sequence

import requests
from bs4 import BeautifulSoup

from processor.models import RawListing
from processor.normalizer import is_excluded
from scraper.navigation import NavigationRetrier
from storage.row_store import RUNTIMES_HEADER, RUNTIMES_TABLE, RowStore, records_from_rows

logger = logging.getLogger(__name__)


def extract_runtime(html_content: str) -> Optional[str]:
    """
    Find the runtime on a detail page.

    The runtime is the text of the element following the first element
    whose whole text reads 'Runtime'.

    Args:
        html_content: Detail page HTML

    Returns:
        Runtime text such as '100 minutes', or None when absent
    """
    soup = BeautifulSoup(html_content, 'html.parser')
    label = soup.find(lambda tag: tag.get_text(strip=True).lower() == 'runtime')
    if label is None:
        return None
    value = label.find_next_sibling()
    if value is None:
        return None
    return value.get_text(strip=True) or None


class RuntimeFinder:
    """Fills the runtimes side-table for titles that have no runtime yet."""

    def __init__(self, store: RowStore, retrier: Optional[NavigationRetrier] = None):
        """
        Args:
            store: Row store holding the runtimes table
            retrier: Navigation helper for detail pages
        """
        self.store = store
        self.retrier = retrier or NavigationRetrier()

    def update_runtimes(
        self,
        listings: Sequence[RawListing],
        replace_existing: bool = False
    ) -> List[List[str]]:
        """
        Discover runtimes for listed titles and write the runtimes table.

        Args:
            listings: Listings whose detail pages may carry runtimes
            replace_existing: Rebuild the table instead of appending to it

        Returns:
            Full runtimes table rows, header first
        """
        existing: List[List[str]] = []
        if not replace_existing:
            records = records_from_rows(self.store.read_rows(RUNTIMES_TABLE), required=RUNTIMES_HEADER)
            existing = [[record['Title'], record['Runtime']] for record in records]
        else:
            logger.info("Replacing existing runtimes table")

        known = {title.strip() for title, runtime in existing if runtime.strip()}
        urls = self._collect_urls(listings, known)
        logger.info(f"Found {len(urls)} unique URLs to process")

        found = []
        for url, title in urls.items():
            runtime = self._find_runtime(url, title)
            if runtime:
                logger.info(f"Found runtime '{runtime}' for '{title}'")
                found.append([title, runtime])

        if not found:
            logger.warning("No new runtimes found")
            if not replace_existing:
                return [list(RUNTIMES_HEADER)] + existing

        # Found runtimes supersede blank rows for the same title
        found_titles = {title for title, runtime in found}
        existing = [row for row in existing if row[0].strip() not in found_titles]

        rows = [list(RUNTIMES_HEADER)] + existing + found
        self.store.write_rows(RUNTIMES_TABLE, rows)
        logger.info(f"Runtimes table now holds {len(rows) - 1} rows ({len(found)} new)")
        return rows

    def _collect_urls(self, listings: Sequence[RawListing], known: set) -> Dict[str, str]:
        urls: Dict[str, str] = {}
        queued = set(known)
        for listing in listings:
            title = (listing.title or '').strip()
            if not title or not listing.url or is_excluded(title):
                continue
            if title in queued or listing.url in urls:
                continue
            queued.add(title)
            urls[listing.url] = title
        return urls

    def _find_runtime(self, url: str, title: str) -> Optional[str]:
        try:
            result = self.retrier.navigate(url)
        except requests.RequestException as e:
            logger.error(f"Error fetching {url} for '{title}': {e}")
            return None

        if not result:
            logger.warning(f"Skipping '{title}', {url} timed out")
            return None

        runtime = extract_runtime(result.response.text)
        if not runtime:
            logger.warning(f"Runtime not found for URL: {url}")
        return runtime
