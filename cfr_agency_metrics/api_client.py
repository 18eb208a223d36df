"""
eCFR API client for retrieving agencies, titles, document structure and text.

This module handles communication with the eCFR service, including rate
limiting, retry logic, response caching and error classification. It knows
nothing about the metrics computed from the data it returns.
"""

import time
import logging
import threading
from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

import backoff
import requests

from .cache import ResponseCache
from .config import Config
from .error_handler import MalformedResponse, UpstreamUnavailable
from .models import Agency, DocumentNode, Title


logger = logging.getLogger(__name__)

T = TypeVar('T')

_MISSING = object()


def _max_tries() -> int:
    return Config.MAX_RETRIES + 1


def _is_permanent(error: Exception) -> bool:
    return not getattr(error, 'recoverable', False)


def _format_date(value: Union[date, str]) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class ECFRClient:
    """Client for interacting with the eCFR API."""

    AGENCIES_ENDPOINT = '/api/admin/v1/agencies.json'
    TITLES_ENDPOINT = '/api/versioner/v1/titles.json'
    STRUCTURE_ENDPOINT = '/api/versioner/v1/structure/{date}/title-{title}.json'
    FULL_TEXT_ENDPOINT = '/api/versioner/v1/full/{date}/title-{title}.xml'

    def __init__(self, base_url: str = None, rate_limit: float = None,
                 cache: Optional[ResponseCache] = None, timeout: int = None,
                 max_tree_depth: int = None):
        """
        Initialize the eCFR API client.

        Args:
            base_url: Base URL for the eCFR service
            rate_limit: Maximum requests per second, 0 to disable (default from config)
            cache: Response cache; a fresh one with the configured TTL if omitted
            timeout: Per-request timeout in seconds
            max_tree_depth: Deepest structure tree accepted from the service
        """
        self.base_url = (base_url or Config.ECFR_BASE_URL).rstrip('/')
        self.rate_limit = Config.ECFR_RATE_LIMIT if rate_limit is None else rate_limit
        self.timeout = timeout or Config.REQUEST_TIMEOUT
        self.max_tree_depth = max_tree_depth or Config.MAX_TREE_DEPTH
        self.cache = cache if cache is not None else ResponseCache(Config.CACHE_TTL_SECONDS)
        self.session = requests.Session()
        self.last_request_time = 0.0
        self._rate_lock = threading.Lock()

        # Set up session headers
        self.session.headers.update({
            'User-Agent': 'CFR-Agency-Metrics/1.0.0 (Educational/Research Tool)',
            'Accept-Encoding': 'gzip, deflate'
        })

        logger.info(f"Initialized eCFR client with base URL: {self.base_url}")
        logger.debug(f"Rate limit: {self.rate_limit} requests/second")

    def _enforce_rate_limit(self) -> None:
        """Enforce rate limiting between API requests across worker threads."""
        if self.rate_limit <= 0:
            return

        min_interval = 1.0 / self.rate_limit
        with self._rate_lock:
            elapsed = time.time() - self.last_request_time

            if elapsed < min_interval:
                sleep_time = min_interval - elapsed
                logger.debug(f"Rate limiting: sleeping for {sleep_time:.2f}s")
                time.sleep(sleep_time)

            self.last_request_time = time.time()

    @backoff.on_exception(backoff.expo, UpstreamUnavailable,
                          max_tries=_max_tries, giveup=_is_permanent)
    def _request(self, endpoint: str, accept: str) -> requests.Response:
        """
        Issue a GET request, retrying transient failures with exponential backoff.

        Args:
            endpoint: API endpoint (relative to base URL)
            accept: Value for the Accept header

        Returns:
            Successful response

        Raises:
            UpstreamUnavailable: On network errors, timeouts or non-2xx status
        """
        url = f"{self.base_url}{endpoint}"
        self._enforce_rate_limit()
        logger.debug(f"Making request to {url}")

        try:
            response = self.session.get(url, headers={'Accept': accept}, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(f"Request timeout for {url}")
            raise UpstreamUnavailable(f"Request timed out: {url}", cause=e, recoverable=True)
        except requests.exceptions.ConnectionError as e:
            logger.warning(f"Connection error for {url}")
            raise UpstreamUnavailable(f"Connection failed: {url}", cause=e, recoverable=True)
        except requests.exceptions.RequestException as e:
            raise UpstreamUnavailable(f"Request failed: {e}", cause=e)

        if response.status_code == 429:
            retry_after = response.headers.get('Retry-After', '')
            if retry_after.isdigit():
                logger.warning(f"Rate limited by server, waiting {retry_after}s")
                time.sleep(int(retry_after))
            raise UpstreamUnavailable("Rate limited by server", recoverable=True)

        if response.status_code >= 500:
            logger.warning(f"Server error {response.status_code} from {url}")
            raise UpstreamUnavailable(f"Server error: {response.status_code}", recoverable=True)

        if not response.ok:
            # Client errors (4xx) shouldn't be retried
            raise UpstreamUnavailable(f"HTTP error: {response.status_code}")

        return response

    def _get_json(self, endpoint: str) -> Any:
        response = self._request(endpoint, 'application/json')
        try:
            return response.json()
        except ValueError as e:
            logger.error(
                f"Invalid JSON response from {endpoint}. Status: {response.status_code}, "
                f"Content: {response.text[:200]}"
            )
            raise MalformedResponse(f"Invalid JSON response: {e}", cause=e)

    def _cached(self, endpoint: str, loader: Callable[[], T],
                params: Optional[Dict[str, Any]] = None) -> T:
        """Return the cached value for an endpoint, loading it on a miss."""
        key = ResponseCache.make_key(endpoint, params)
        value = self.cache.get(key, _MISSING)
        if value is not _MISSING:
            logger.debug(f"Cache hit for {endpoint}")
            return value

        value = loader()
        self.cache.set(key, value)
        return value

    def _load_records(self, endpoint: str, collection: str) -> List[Dict[str, Any]]:
        payload = self._get_json(endpoint)
        records = payload.get(collection) if isinstance(payload, dict) else None
        if not isinstance(records, list):
            raise MalformedResponse(f"Response from {endpoint} has no '{collection}' list")
        return records

    def list_agencies(self) -> List[Agency]:
        """
        Get a list of all agencies from the API.

        Returns:
            List of agencies in the order the service returns them

        Raises:
            UpstreamUnavailable: If the service cannot be reached
            MalformedResponse: If the response cannot be parsed
        """
        def load():
            agencies = []
            for record in self._load_records(self.AGENCIES_ENDPOINT, 'agencies'):
                try:
                    agencies.append(Agency.from_dict(record))
                except (AttributeError, ValueError) as e:
                    logger.warning(f"Skipping invalid agency record {record!r}: {e}")
            logger.info(f"Retrieved {len(agencies)} agencies from API")
            return tuple(agencies)

        return list(self._cached(self.AGENCIES_ENDPOINT, load))

    def list_titles(self) -> List[Title]:
        """
        Get a list of all CFR titles from the API.

        Returns:
            List of titles in the order the service returns them

        Raises:
            UpstreamUnavailable: If the service cannot be reached
            MalformedResponse: If the response cannot be parsed
        """
        def load():
            titles = []
            for record in self._load_records(self.TITLES_ENDPOINT, 'titles'):
                try:
                    titles.append(Title.from_dict(record))
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping invalid title record {record!r}: {e}")
            logger.info(f"Retrieved {len(titles)} titles from API")
            return tuple(titles)

        return list(self._cached(self.TITLES_ENDPOINT, load))

    def fetch_structure(self, as_of: Union[date, str], title_number: int) -> DocumentNode:
        """
        Get the document structure tree of a title on a given date.

        Args:
            as_of: Point-in-time date of the title
            title_number: CFR title number

        Returns:
            Root DocumentNode of the title

        Raises:
            UpstreamUnavailable: If the service cannot be reached
            MalformedResponse: If the response is not a valid tree
        """
        endpoint = self.STRUCTURE_ENDPOINT.format(date=_format_date(as_of), title=title_number)

        def load():
            payload = self._get_json(endpoint)
            try:
                return DocumentNode.from_dict(payload, self.max_tree_depth)
            except ValueError as e:
                raise MalformedResponse(f"Invalid structure for title {title_number}: {e}", cause=e)

        return self._cached(endpoint, load)

    def fetch_raw_text(self, as_of: Union[date, str], title_number: int) -> str:
        """
        Get the full markup-bearing text of a title on a given date.

        Raises:
            UpstreamUnavailable: If the service cannot be reached
        """
        endpoint = self.FULL_TEXT_ENDPOINT.format(date=_format_date(as_of), title=title_number)
        return self._cached(
            endpoint, lambda: self._request(endpoint, 'application/xml').text
        )

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            self.session.close()
            logger.debug("API client session closed")

    def __enter__(self) -> 'ECFRClient':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
