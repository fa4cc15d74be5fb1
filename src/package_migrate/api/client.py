"""Package hosting API client implementation."""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urljoin

import aiohttp
import requests
from loguru import logger
from pydantic import BaseModel

from .exceptions import (
    AuthenticationError,
    NotFoundError,
    PackageAPIError,
    RateLimitError,
    TransientError,
)

USER_AGENT = 'package-migrate/0.1.0'
DOWNLOAD_CHUNK_SIZE = 64 * 1024


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    status_code: int
    data: Any
    headers: Dict[str, str]
    success: bool


def raise_for_status(
    status: int, headers: Mapping[str, str], message: str, url: str = ''
) -> None:
    """Translate an HTTP error status into a typed exception.

    Args:
        status: HTTP status code
        headers: Response headers
        message: Error text extracted from the response body
        url: Requested URL, for the error message

    Raises:
        AuthenticationError: 401 and 403
        NotFoundError: 404
        RateLimitError: 429
        TransientError: 5xx
        PackageAPIError: Any other 4xx
    """
    if status < 400:
        return

    target = f' ({url})' if url else ''

    if status == 429:
        retry_after = int(headers.get('Retry-After', 60))
        raise RateLimitError(
            f'Rate limit exceeded{target}. Retry after {retry_after} seconds',
            retry_after=retry_after,
            status_code=status,
        )

    if status in (401, 403):
        raise AuthenticationError(
            f'Authentication failed{target}: {message}', status_code=status
        )

    if status == 404:
        raise NotFoundError(f'Resource not found{target}', status_code=status)

    if status >= 500:
        raise TransientError(
            f'Server error {status}{target}: {message}', status_code=status
        )

    raise PackageAPIError(f'API request failed{target}: {message}', status_code=status)


def _error_message(status: int, body: str) -> str:
    try:
        error_data = json.loads(body)
        if isinstance(error_data, dict):
            return error_data.get('message', f'HTTP {status}')
    except ValueError:
        pass
    return f'HTTP {status}: {body[:200]}'


def _has_next_page(headers: Mapping[str, str]) -> bool:
    return 'rel="next"' in headers.get('Link', '')


class PackagesClient:
    """Client for one organization's REST API and package registry."""

    def __init__(self, api_url: str, token: str, timeout: int = 300):
        """Initialize packages client.

        Args:
            api_url: REST API base URL
            token: Personal access token
            timeout: Request timeout in seconds
        """
        if not token:
            raise AuthenticationError('No authentication token provided')

        self.base_url = api_url.rstrip('/')
        self.token = token
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update(self._headers())

        logger.debug(f'Initialized packages client for {self.base_url}')

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'token {self.token}',
            'Accept': 'application/vnd.github+json',
            'User-Agent': USER_AGENT,
        }

    def _build_url(self, endpoint: str) -> str:
        """Build full URL from an endpoint path or pass an absolute URL through.

        Args:
            endpoint: API endpoint path or absolute URL

        Returns:
            Full URL
        """
        if endpoint.startswith(('http://', 'https://')):
            return endpoint
        return urljoin(self.base_url + '/', endpoint.lstrip('/'))

    def _handle_response(self, response: requests.Response) -> APIResponse:
        """Handle API response and convert to standard format.

        Args:
            response: Raw HTTP response

        Returns:
            Standardized API response

        Raises:
            PackageAPIError: For various API errors
        """
        headers = dict(response.headers)

        if response.status_code >= 400:
            raise_for_status(
                response.status_code,
                headers,
                _error_message(response.status_code, response.text),
                response.url,
            )

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = response.text

        return APIResponse(
            status_code=response.status_code,
            data=data,
            headers=headers,
            success=200 <= response.status_code < 300,
        )

    def get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs
    ) -> APIResponse:
        """Make GET request.

        Args:
            endpoint: API endpoint
            params: Query parameters
            **kwargs: Additional request arguments

        Returns:
            API response
        """
        url = self._build_url(endpoint)

        try:
            response = self.session.get(
                url, params=params, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f'Network error during GET request: {e}')
            raise TransientError(f'Network error: {e}')

        return self._handle_response(response)

    def get_paginated(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        per_page: int = 100,
    ) -> List[Dict[str, Any]]:
        """Get all pages of a paginated endpoint.

        Args:
            endpoint: API endpoint
            params: Query parameters
            per_page: Items per page

        Returns:
            List of all items from all pages
        """
        all_items: List[Dict[str, Any]] = []
        params = dict(params or {})
        params['per_page'] = per_page
        page = 1

        while True:
            params['page'] = page
            response = self.get(endpoint, params=params)

            items = response.data
            if not items:
                break

            all_items.extend(items)

            if len(items) < per_page and not _has_next_page(response.headers):
                break

            page += 1

        logger.debug(f'Retrieved {len(all_items)} items from {endpoint}')
        return all_items

    async def get_async(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> APIResponse:
        """Make asynchronous GET request.

        Args:
            endpoint: API endpoint or absolute URL
            params: Query parameters

        Returns:
            API response
        """
        url = self._build_url(endpoint)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(
                headers=self._headers(), timeout=timeout
            ) as session:
                async with session.get(url, params=params) as response:
                    response_headers = dict(response.headers)
                    response_text = await response.text()

                    if response.status >= 400:
                        raise_for_status(
                            response.status,
                            response_headers,
                            _error_message(response.status, response_text),
                            url,
                        )

                    try:
                        response_data = (
                            json.loads(response_text) if response_text else None
                        )
                    except ValueError:
                        response_data = response_text

                    return APIResponse(
                        status_code=response.status,
                        data=response_data,
                        headers=response_headers,
                        success=200 <= response.status < 300,
                    )

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f'Network error during GET {url}: {e!r}')
            raise TransientError(f'Network error: {e!r}')

    async def get_paginated_async(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        per_page: int = 100,
    ) -> List[Dict[str, Any]]:
        """Get all pages of a paginated endpoint asynchronously.

        Args:
            endpoint: API endpoint
            params: Query parameters
            per_page: Items per page

        Returns:
            List of all items from all pages
        """
        all_items: List[Dict[str, Any]] = []
        params = dict(params or {})
        params['per_page'] = per_page
        page = 1

        while True:
            params['page'] = page
            response = await self.get_async(endpoint, params=params)

            items = response.data
            if not items:
                break

            all_items.extend(items)

            if len(items) < per_page and not _has_next_page(response.headers):
                break

            page += 1

        return all_items

    async def download_async(self, url: str, destination: Path) -> Path:
        """Stream a binary artifact to disk.

        Args:
            url: Absolute artifact URL
            destination: File to write

        Returns:
            The destination path
        """
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = self._headers()
        headers['Accept'] = 'application/octet-stream'

        try:
            async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status >= 400:
                        body = await response.text()
                        raise_for_status(
                            response.status,
                            dict(response.headers),
                            _error_message(response.status, body),
                            url,
                        )

                    with open(destination, 'wb') as f:
                        async for chunk in response.content.iter_chunked(
                            DOWNLOAD_CHUNK_SIZE
                        ):
                            f.write(chunk)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f'Network error downloading {url}: {e!r}')
            raise TransientError(f'Network error: {e!r}')

        return destination

    def close(self):
        """Close the client session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
