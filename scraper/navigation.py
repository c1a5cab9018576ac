"""Page navigation with bounded retry on timeouts."""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)

HEADERS = {
    'User-Agent': (
        'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
    ),
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
}


@dataclass
class NavigationResult:
    """Outcome of a navigation; truthy when the page was fetched."""
    success: bool
    attempts: int
    response: Optional[requests.Response] = None

    def __bool__(self) -> bool:
        return self.success


class NavigationRetrier:
    """Fetch pages, retrying only when the request timed out."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_retries: int = 2,
        timeout: int = 30,
        backoff: float = 1.0
    ):
        """
        Initialize the retrier.

        Args:
            session: HTTP session to reuse (a new one is created if omitted)
            max_retries: Extra attempts after a timeout (default: 2)
            timeout: Request timeout in seconds (default: 30)
            backoff: Base delay in seconds, doubled on each retry (default: 1)
        """
        if session is None:
            session = requests.Session()
            session.headers.update(HEADERS)
        self.session = session
        self.max_retries = max_retries
        self.timeout = timeout
        self.backoff = backoff

    def navigate(
        self,
        url: str,
        max_retries: Optional[int] = None,
        timeout: Optional[int] = None
    ) -> NavigationResult:
        """
        Fetch a page.

        Timeouts are retried up to max_retries more times. Any other request
        error (DNS failure, refused connection, invalid URL, HTTP error status)
        propagates on the first occurrence.

        Args:
            url: Page to fetch
            max_retries: Overrides the retrier default
            timeout: Overrides the retrier default

        Returns:
            NavigationResult, unsuccessful when every attempt timed out

        Raises:
            requests.RequestException: For non-timeout failures
        """
        max_retries = self.max_retries if max_retries is None else max_retries
        timeout = self.timeout if timeout is None else timeout

        for attempt in range(1, max_retries + 2):
            suffix = f" (attempt {attempt})" if attempt > 1 else ''
            logger.info(
                f"Navigating to {url}{suffix}",
                extra={'url': url, 'attempt': attempt}
            )
            try:
                response = self.session.get(url, timeout=timeout)
                response.raise_for_status()
                return NavigationResult(success=True, attempts=attempt, response=response)

            except requests.exceptions.Timeout:
                if attempt > max_retries:
                    logger.error(
                        f"Navigation timeout for {url} after {max_retries} retries",
                        extra={'url': url, 'attempt': attempt}
                    )
                    return NavigationResult(success=False, attempts=attempt)

                delay = self.backoff * (2 ** (attempt - 1))
                logger.warning(
                    f"Navigation timeout for {url}, retrying ({attempt}/{max_retries})",
                    extra={'url': url, 'attempt': attempt, 'retry_delay': delay}
                )
                if delay:
                    time.sleep(delay)

        return NavigationResult(success=False, attempts=max_retries + 1)
