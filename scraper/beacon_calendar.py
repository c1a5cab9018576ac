"""Listing scraper for the Beacon Cinema calendar page."""
import logging
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from processor.models import RawListing
from scraper.navigation import NavigationRetrier

logger = logging.getLogger(__name__)


class ListingFetchError(Exception):
    """Raised when the listing page could not be fetched."""


class BeaconCalendarScraper:
    """Scraper for the Beacon Cinema screening calendar."""

    BASE_URL = "https://thebeacon.film/calendar"

    def __init__(self, retrier: Optional[NavigationRetrier] = None):
        """
        Initialize the calendar scraper.

        Args:
            retrier: Navigation helper used for the page fetch
        """
        self.retrier = retrier or NavigationRetrier()

    def fetch_listings(self, url: Optional[str] = None) -> List[RawListing]:
        """
        Fetch every screening listed on the calendar page.

        Args:
            url: Listing page (default: BASE_URL)

        Returns:
            List of RawListing objects, one per title and start time

        Raises:
            ListingFetchError: If the page timed out on every attempt
            requests.RequestException: For non-timeout fetch failures
        """
        url = url or self.BASE_URL
        logger.info(f"Fetching listings from {url}")

        result = self.retrier.navigate(url)
        if not result:
            raise ListingFetchError(
                f"Listing page {url} timed out after {result.attempts} attempts"
            )

        listings = self.parse_listings(result.response.text, base_url=url)
        logger.info(f"Successfully fetched {len(listings)} listings")
        return listings

    def parse_listings(self, html_content: str, base_url: str = BASE_URL) -> List[RawListing]:
        """
        Parse listings from calendar HTML.

        Each title block is a section with itemprop="name"; its start times are
        sibling sections with class "time" and itemprop="startDate" whose
        content attribute holds an ISO timestamp.

        Args:
            html_content: HTML content from the calendar page
            base_url: URL used to resolve relative links

        Returns:
            List of RawListing objects
        """
        soup = BeautifulSoup(html_content, 'html.parser')
        listings = []

        title_elements = soup.select('section[itemprop="name"]')
        if not title_elements:
            logger.warning("No event blocks found. The website structure may have changed.")

        for element in title_elements:
            try:
                listings.extend(self._parse_title_element(element, base_url))
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Failed to parse event element: {e}")
                continue

        return listings

    def _parse_title_element(self, element, base_url: str) -> List[RawListing]:
        title = element.get_text(strip=True)
        link = element.find_parent('a')
        url = urljoin(base_url, link.get('href')) if link and link.get('href') else ''

        listings = []
        parent = element.parent
        for time_element in parent.select('section.time[itemprop="startDate"]'):
            start_date = time_element.get('content')
            if not start_date:
                continue
            date, _, time = start_date.partition('T')
            listings.append(RawListing(title=title, date=date, time=time[:5], url=url))

        return listings
