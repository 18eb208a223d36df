"""Tests for the eCFR API client module."""

import pytest
import requests
import responses
from datetime import date
from unittest.mock import patch

from cfr_agency_metrics.api_client import ECFRClient
from cfr_agency_metrics.cache import ResponseCache
from cfr_agency_metrics.config import Config
from cfr_agency_metrics.error_handler import MalformedResponse, UpstreamUnavailable
from cfr_agency_metrics.models import Agency, DocumentNode, Title


BASE_URL = 'https://www.ecfr.gov'
AGENCIES_URL = f'{BASE_URL}/api/admin/v1/agencies.json'
TITLES_URL = f'{BASE_URL}/api/versioner/v1/titles.json'
STRUCTURE_URL = f'{BASE_URL}/api/versioner/v1/structure/2024-01-01/title-7.json'
FULL_TEXT_URL = f'{BASE_URL}/api/versioner/v1/full/2024-01-01/title-7.xml'


@pytest.fixture
def client():
    """Client without rate limiting and with a fresh cache."""
    client = ECFRClient(base_url=BASE_URL, rate_limit=0, cache=ResponseCache(3600))
    yield client
    client.close()


class TestECFRClient:
    """Test cases for the ECFRClient class."""

    def test_client_initialization(self):
        """Test client initialization with default and custom parameters."""
        client = ECFRClient()
        assert client.base_url == Config.ECFR_BASE_URL.rstrip('/')
        assert client.rate_limit == Config.ECFR_RATE_LIMIT
        assert client.cache.ttl_seconds == Config.CACHE_TTL_SECONDS

        client = ECFRClient(base_url='https://test.example.com/', rate_limit=2.0, timeout=5)
        assert client.base_url == 'https://test.example.com'
        assert client.rate_limit == 2.0
        assert client.timeout == 5

    @patch('time.sleep')
    def test_rate_limiting(self, mock_sleep):
        """Test that rate limiting is enforced."""
        client = ECFRClient(rate_limit=2.0)  # 2 requests per second

        # First request should not sleep
        client._enforce_rate_limit()
        mock_sleep.assert_not_called()

        # Second request immediately after should sleep
        client._enforce_rate_limit()
        mock_sleep.assert_called_once()

        # Check that sleep time is approximately correct (0.5s for 2 req/s)
        sleep_time = mock_sleep.call_args[0][0]
        assert 0.4 < sleep_time < 0.6

    @responses.activate
    def test_list_agencies(self, client):
        """Test parsing the agency list."""
        responses.add(
            responses.GET,
            AGENCIES_URL,
            json={'agencies': [
                {'name': 'Department of Agriculture', 'slug': 'agriculture-department'},
                {'slug': 'missing-name'},
                {'name': 'Department of Energy'},
            ]},
            status=200
        )

        agencies = client.list_agencies()

        assert agencies == [Agency('Department of Agriculture'), Agency('Department of Energy')]

    @responses.activate
    def test_list_titles(self, client):
        """Test parsing the title list, skipping invalid records."""
        responses.add(
            responses.GET,
            TITLES_URL,
            json={'titles': [
                {'number': 7, 'sections': 300, 'agencies': [{'name': 'Department of Agriculture'}]},
                {'name': 'no number'},
                {'number': 10},
            ]},
            status=200
        )

        titles = client.list_titles()

        assert [title.number for title in titles] == [7, 10]
        assert titles[0] == Title(7, 300, frozenset({'Department of Agriculture'}))
        assert titles[1].sections is None

    @responses.activate
    def test_responses_are_cached(self, client):
        """Test that a second identical call does not reach the network."""
        responses.add(responses.GET, AGENCIES_URL, json={'agencies': [{'name': 'A'}]}, status=200)

        first = client.list_agencies()
        second = client.list_agencies()

        assert first == second
        assert len(responses.calls) == 1

    @responses.activate
    def test_expired_cache_entries_are_refetched(self):
        """Test that stale entries trigger a new request."""
        now = [0.0]
        client = ECFRClient(base_url=BASE_URL, rate_limit=0,
                            cache=ResponseCache(3600, clock=lambda: now[0]))
        responses.add(responses.GET, AGENCIES_URL, json={'agencies': [{'name': 'A'}]}, status=200)

        client.list_agencies()
        now[0] = 3600.0
        client.list_agencies()

        assert len(responses.calls) == 2

    @responses.activate
    def test_cache_hit_never_fails(self, client):
        """Test that a cached value is served even when the service is down."""
        responses.add(responses.GET, AGENCIES_URL, json={'agencies': [{'name': 'A'}]}, status=200)
        responses.add(responses.GET, AGENCIES_URL, status=404)

        client.list_agencies()
        agencies = client.list_agencies()

        assert agencies == [Agency('A')]
        assert len(responses.calls) == 1

    @responses.activate
    def test_fetch_structure(self, client):
        """Test fetching and parsing a structure tree."""
        responses.add(
            responses.GET,
            STRUCTURE_URL,
            json={'text': 'alpha beta', 'children': [{'text': 'gamma'}]},
            status=200
        )

        node = client.fetch_structure(date(2024, 1, 1), 7)

        assert node == DocumentNode(text='alpha beta', children=(DocumentNode(text='gamma'),))

    @responses.activate
    def test_fetch_structure_cache_keyed_by_date_and_title(self, client):
        """Test that different parameters are cached separately."""
        responses.add(responses.GET, STRUCTURE_URL, json={'text': 'a'}, status=200)
        other_url = f'{BASE_URL}/api/versioner/v1/structure/2024-01-01/title-8.json'
        responses.add(responses.GET, other_url, json={'text': 'b'}, status=200)

        assert client.fetch_structure('2024-01-01', 7).text == 'a'
        assert client.fetch_structure('2024-01-01', 8).text == 'b'
        assert client.fetch_structure(date(2024, 1, 1), 7).text == 'a'
        assert len(responses.calls) == 2

    @responses.activate
    def test_fetch_structure_too_deep(self):
        """Test that trees beyond the depth bound are malformed."""
        client = ECFRClient(base_url=BASE_URL, rate_limit=0, max_tree_depth=2)
        responses.add(
            responses.GET,
            STRUCTURE_URL,
            json={'children': [{'children': [{'text': 'too deep'}]}]},
            status=200
        )

        with pytest.raises(MalformedResponse, match="maximum depth"):
            client.fetch_structure('2024-01-01', 7)

    @responses.activate
    def test_fetch_raw_text(self, client):
        """Test fetching raw markup text."""
        responses.add(
            responses.GET,
            FULL_TEXT_URL,
            body='<DIV><P>Section 5 requires compliance.</P></DIV>',
            content_type='application/xml',
            status=200
        )

        text = client.fetch_raw_text(date(2024, 1, 1), 7)

        assert text == '<DIV><P>Section 5 requires compliance.</P></DIV>'
        assert responses.calls[0].request.headers['Accept'] == 'application/xml'

    @responses.activate
    def test_http_error_handling(self, client):
        """Test that client errors are not retried."""
        responses.add(responses.GET, AGENCIES_URL, status=404)

        with pytest.raises(UpstreamUnavailable, match="HTTP error: 404") as exc_info:
            client.list_agencies()

        assert exc_info.value.recoverable is False
        assert len(responses.calls) == 1

    @responses.activate
    def test_server_error_retry(self, client):
        """Test retry logic for server errors."""
        # First two requests return 500, third succeeds
        responses.add(responses.GET, AGENCIES_URL, status=500)
        responses.add(responses.GET, AGENCIES_URL, status=503)
        responses.add(responses.GET, AGENCIES_URL, json={'agencies': []}, status=200)

        with patch('time.sleep'):  # Mock sleep to speed up test
            agencies = client.list_agencies()

        assert agencies == []
        assert len(responses.calls) == 3

    @responses.activate
    def test_retries_exhausted(self, client):
        """Test that persistent server errors surface after all retries."""
        responses.add(responses.GET, AGENCIES_URL, status=500)

        with patch.object(Config, 'MAX_RETRIES', 2), patch('time.sleep'):
            with pytest.raises(UpstreamUnavailable, match="Server error: 500"):
                client.list_agencies()

        assert len(responses.calls) == 3

    @responses.activate
    def test_connection_error_retry(self, client):
        """Test that connection failures are retried and then reported."""
        responses.add(
            responses.GET,
            TITLES_URL,
            body=requests.exceptions.ConnectionError("connection refused")
        )

        with patch.object(Config, 'MAX_RETRIES', 1), patch('time.sleep'):
            with pytest.raises(UpstreamUnavailable, match="Connection failed") as exc_info:
                client.list_titles()

        assert exc_info.value.recoverable is True
        assert len(responses.calls) == 2

    @responses.activate
    def test_rate_limit_handling(self, client):
        """Test handling of rate limit responses from server."""
        responses.add(responses.GET, AGENCIES_URL, status=429, headers={'Retry-After': '1'})
        responses.add(responses.GET, AGENCIES_URL, json={'agencies': []}, status=200)

        with patch('time.sleep') as mock_sleep:
            result = client.list_agencies()

        assert result == []
        mock_sleep.assert_any_call(1)  # Should sleep for Retry-After duration

    @responses.activate
    def test_invalid_json_response(self, client):
        """Test that an unparseable body is reported as malformed."""
        responses.add(responses.GET, AGENCIES_URL, body='<!DOCTYPE html><html></html>', status=200)

        with pytest.raises(MalformedResponse, match="Invalid JSON"):
            client.list_agencies()

        assert len(responses.calls) == 1

    @responses.activate
    def test_missing_collection_key(self, client):
        """Test that a JSON body without the expected list is malformed."""
        responses.add(responses.GET, TITLES_URL, json={'error': 'unexpected'}, status=200)

        with pytest.raises(MalformedResponse, match="'titles'"):
            client.list_titles()

    @responses.activate
    def test_failures_are_not_cached(self, client):
        """Test that an error does not poison the cache."""
        responses.add(responses.GET, AGENCIES_URL, status=404)
        responses.add(responses.GET, AGENCIES_URL, json={'agencies': [{'name': 'A'}]}, status=200)

        with pytest.raises(UpstreamUnavailable):
            client.list_agencies()

        assert client.list_agencies() == [Agency('A')]

    def test_context_manager_closes_session(self):
        """Test that leaving the context closes the HTTP session."""
        client = ECFRClient(rate_limit=0)

        with patch.object(client.session, 'close') as mock_close:
            with client:
                pass

        mock_close.assert_called_once()
