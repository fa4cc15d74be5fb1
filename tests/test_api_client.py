"""Tests for the packages API client."""

import pytest
from unittest.mock import AsyncMock, MagicMock, Mock, patch

from package_migrate.api.client import APIResponse, PackagesClient, raise_for_status
from package_migrate.api.exceptions import (
    AuthenticationError,
    NotFoundError,
    PackageAPIError,
    RateLimitError,
    TransientError,
)


def make_response(status_code=200, data=None, headers=None, text=''):
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.content = b'x' if data is not None else b''
    response.json.return_value = data
    response.text = text
    response.url = 'https://api.example.com/test'
    return response


def make_aiohttp_session(status=200, text='', chunks=()):
    """aiohttp session mock whose ``get`` yields one canned response."""
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.headers = {}
    mock_response.text = AsyncMock(return_value=text)
    mock_response.__aenter__.return_value = mock_response
    mock_response.__aexit__.return_value = None

    async def iter_chunked(size):
        for chunk in chunks:
            yield chunk

    mock_response.content.iter_chunked = iter_chunked

    mock_session = MagicMock()
    mock_session.get.return_value = mock_response
    mock_session.__aenter__.return_value = mock_session
    mock_session.__aexit__.return_value = None
    return mock_session


class TestAPIResponse:
    """Test API response model."""

    def test_api_response_creation(self):
        response = APIResponse(
            status_code=200,
            data=[{'name': 'left-pad'}],
            headers={'Content-Type': 'application/json'},
            success=True,
        )

        assert response.status_code == 200
        assert response.data == [{'name': 'left-pad'}]
        assert response.success is True


class TestRaiseForStatus:
    """Test status code classification."""

    def test_success_does_not_raise(self):
        raise_for_status(200, {}, 'ok')

    @pytest.mark.parametrize('status', [401, 403])
    def test_auth_errors(self, status):
        with pytest.raises(AuthenticationError) as exc_info:
            raise_for_status(status, {}, 'Bad credentials')
        assert exc_info.value.status_code == status

    def test_not_found(self):
        with pytest.raises(NotFoundError):
            raise_for_status(404, {}, 'Not Found')

    def test_rate_limit_is_transient(self):
        with pytest.raises(TransientError) as exc_info:
            raise_for_status(429, {'Retry-After': '30'}, 'slow down')
        assert isinstance(exc_info.value, RateLimitError)
        assert exc_info.value.retry_after == 30

    def test_server_error_is_transient(self):
        with pytest.raises(TransientError):
            raise_for_status(502, {}, 'Bad Gateway')

    def test_other_client_error(self):
        with pytest.raises(PackageAPIError) as exc_info:
            raise_for_status(422, {}, 'Validation failed')
        assert not isinstance(exc_info.value, TransientError)


class TestPackagesClient:
    """Test synchronous client methods."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = PackagesClient('https://api.github.com/', 'test-token')

    def test_client_initialization(self):
        assert self.client.base_url == 'https://api.github.com'
        assert self.client.session.headers['Authorization'] == 'token test-token'

    def test_client_requires_token(self):
        with pytest.raises(AuthenticationError):
            PackagesClient('https://api.github.com', '')

    def test_build_url(self):
        assert (
            self.client._build_url('/orgs/acme/packages')
            == 'https://api.github.com/orgs/acme/packages'
        )
        assert (
            self.client._build_url('orgs/acme/packages')
            == 'https://api.github.com/orgs/acme/packages'
        )
        assert (
            self.client._build_url('https://npm.pkg.github.com/@acme%2fleft-pad')
            == 'https://npm.pkg.github.com/@acme%2fleft-pad'
        )

    @patch('requests.Session.get')
    def test_get_request_success(self, mock_get):
        mock_get.return_value = make_response(data=[{'name': 'left-pad'}])

        response = self.client.get('/orgs/acme/packages')

        assert response.success is True
        assert response.data == [{'name': 'left-pad'}]

    @patch('requests.Session.get')
    def test_get_request_404(self, mock_get):
        mock_get.return_value = make_response(404, text='{"message": "Not Found"}')

        with pytest.raises(NotFoundError):
            self.client.get('/orgs/missing/packages')

    @patch('requests.Session.get')
    def test_get_request_401(self, mock_get):
        mock_get.return_value = make_response(401, text='{"message": "Bad credentials"}')

        with pytest.raises(AuthenticationError) as exc_info:
            self.client.get('/orgs/acme/packages')
        assert 'Bad credentials' in str(exc_info.value)

    @patch('requests.Session.get')
    def test_network_error_is_transient(self, mock_get):
        import requests

        mock_get.side_effect = requests.ConnectionError('connection reset')

        with pytest.raises(TransientError):
            self.client.get('/orgs/acme/packages')

    @patch('requests.Session.get')
    def test_get_paginated(self, mock_get):
        first_page = [{'name': f'pkg-{i}'} for i in range(2)]
        second_page = [{'name': 'pkg-2'}]
        mock_get.side_effect = [
            make_response(data=first_page),
            make_response(data=second_page),
        ]

        items = self.client.get_paginated('/orgs/acme/packages', per_page=2)

        assert [item['name'] for item in items] == ['pkg-0', 'pkg-1', 'pkg-2']
        assert mock_get.call_count == 2
        assert mock_get.call_args_list[1].kwargs['params']['page'] == 2

    @patch('requests.Session.get')
    def test_get_paginated_follows_link_header(self, mock_get):
        mock_get.side_effect = [
            make_response(
                data=[{'name': 'a'}],
                headers={'Link': '<https://api.github.com/x?page=2>; rel="next"'},
            ),
            make_response(data=[]),
        ]

        items = self.client.get_paginated('/orgs/acme/packages', per_page=100)

        assert items == [{'name': 'a'}]
        assert mock_get.call_count == 2

    def test_context_manager(self):
        with patch.object(PackagesClient, 'close') as mock_close:
            with PackagesClient('https://api.github.com', 'test-token'):
                pass
            mock_close.assert_called_once()


class TestAsyncMethods:
    """Test asynchronous client methods."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = PackagesClient('https://api.github.com', 'test-token')

    @pytest.mark.asyncio
    async def test_get_async_success(self):
        session = make_aiohttp_session(text='[{"id": 1, "name": "1.0.0"}]')

        with patch('aiohttp.ClientSession', return_value=session):
            response = await self.client.get_async('/orgs/acme/packages/npm/left-pad/versions')

        assert response.success is True
        assert response.data == [{'id': 1, 'name': '1.0.0'}]

    @pytest.mark.asyncio
    async def test_get_async_404(self):
        session = make_aiohttp_session(status=404, text='{"message": "Not Found"}')

        with patch('aiohttp.ClientSession', return_value=session):
            with pytest.raises(NotFoundError):
                await self.client.get_async('/orgs/acme/packages/npm/missing/versions')

    @pytest.mark.asyncio
    async def test_get_paginated_async(self):
        responses = [
            make_aiohttp_session(text='[{"name": "1.0.0"}, {"name": "1.1.0"}]'),
            make_aiohttp_session(text='[]'),
        ]

        with patch('aiohttp.ClientSession', side_effect=responses):
            items = await self.client.get_paginated_async('/versions', per_page=2)

        assert [item['name'] for item in items] == ['1.0.0', '1.1.0']

    @pytest.mark.asyncio
    async def test_download_async(self, tmp_path):
        session = make_aiohttp_session(chunks=[b'abc', b'def'])
        destination = tmp_path / 'package.tgz'

        with patch('aiohttp.ClientSession', return_value=session):
            result = await self.client.download_async(
                'https://npm.pkg.github.com/download/left-pad.tgz', destination
            )

        assert result == destination
        assert destination.read_bytes() == b'abcdef'

    @pytest.mark.asyncio
    async def test_download_async_auth_error(self, tmp_path):
        session = make_aiohttp_session(status=403, text='{"message": "Forbidden"}')

        with patch('aiohttp.ClientSession', return_value=session):
            with pytest.raises(AuthenticationError):
                await self.client.download_async(
                    'https://npm.pkg.github.com/download/left-pad.tgz',
                    tmp_path / 'package.tgz',
                )

    @pytest.mark.asyncio
    async def test_network_error_is_transient(self):
        import aiohttp

        session = make_aiohttp_session()
        session.get.side_effect = aiohttp.ClientConnectionError('reset')

        with patch('aiohttp.ClientSession', return_value=session):
            with pytest.raises(TransientError):
                await self.client.get_async('/orgs/acme/packages')
