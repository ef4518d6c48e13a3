"""
Transport layer: the callable the client races against its deadline.

Any ``async (url, options) -> response`` callable can serve as a transport.
``HttpxTransport`` is the default one, built on a shared httpx.AsyncClient.
"""

import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx
import structlog

from .config import Config, config as default_config
from .errors import BodyReadError, TransportError

logger = structlog.get_logger(__name__)

Transport = Callable[[str, Mapping[str, Any]], Awaitable[Any]]


class HttpxResponse:
    """Raw response produced by ``HttpxTransport``.

    The body is already buffered; ``text()`` decodes it, or raises
    ``BodyReadError`` when it could not be read in full.
    """

    def __init__(
        self,
        url: str,
        status: int,
        content: bytes = b'',
        headers: Dict[str, str] = None,
        encoding: str = None,
        fetch_time: float = 0.0,
        read_error: str = None,
    ):
        self.url = url
        self.status = status
        self.content = content
        self.headers = headers or {}
        self.encoding = encoding
        self.fetch_time = fetch_time
        self.read_error = read_error

    @property
    def ok(self) -> bool:
        """True for 2xx statuses."""
        return 200 <= self.status < 300

    async def text(self) -> str:
        if self.read_error:
            raise BodyReadError(self.read_error)
        if not self.content:
            return ""
        try:
            return self.content.decode(self.encoding or 'utf-8')
        except (UnicodeDecodeError, LookupError):
            return self.content.decode('utf-8', errors='replace')

    def __repr__(self) -> str:
        return f"<HttpxResponse [{self.status}] {self.url}>"


class HttpxTransport:
    def __init__(
        self,
        user_agent: str = 'safefetch/0.1',
        timeout: Optional[float] = 60.0,
        follow_redirects: bool = True,
        max_redirects: int = 5,
        max_connections: int = 20,
        max_keepalive_connections: int = 10,
        max_response_size: int = 10 * 1024 * 1024,
        client: httpx.AsyncClient = None,
    ):
        """Initialize the transport, creating an AsyncClient unless one is given."""
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_response_size = max_response_size
        self._owns_client = client is None

        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout),
                follow_redirects=follow_redirects,
                max_redirects=max_redirects,
                headers={'User-Agent': user_agent},
                limits=httpx.Limits(
                    max_connections=max_connections,
                    max_keepalive_connections=max_keepalive_connections,
                ),
            )
        self._client = client

    async def __call__(self, url: str, options: Mapping[str, Any]) -> HttpxResponse:
        """Send one request and buffer its body."""
        start_time = time.time()

        try:
            request = self._build_request(url, options)
            response = await self._client.send(request, stream=True)
        except httpx.InvalidURL as e:
            raise TransportError(f"Invalid URL: {e}", url=url) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout after {self.timeout}s: {e}", url=url) from e
        except httpx.ConnectError as e:
            raise TransportError(f"Connection error: {e}", url=url) from e
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error: {e}", url=url) from e

        try:
            content, read_error = await self._read_body(url, response)
        finally:
            await response.aclose()

        return HttpxResponse(
            url=str(response.url),
            status=response.status_code,
            content=content,
            headers=dict(response.headers),
            encoding=response.encoding,
            fetch_time=time.time() - start_time,
            read_error=read_error,
        )

    def _build_request(self, url: str, options: Mapping[str, Any]) -> httpx.Request:
        """Map fetch-style options onto an httpx request."""
        kwargs = {
            'headers': options.get('headers'),
            'params': options.get('params'),
            'cookies': options.get('cookies'),
        }

        body = options.get('body')
        if isinstance(body, (dict, list)):
            kwargs['json'] = body
        elif body is not None:
            kwargs['content'] = body
        elif options.get('json') is not None:
            kwargs['json'] = options['json']

        method = str(options.get('method') or 'GET').upper()
        return self._client.build_request(method, url, **kwargs)

    async def _read_body(self, url: str, response: httpx.Response):
        """Read the response body up to ``max_response_size`` bytes.

        Returns ``(content, read_error)``.
        """
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_response_size:
            error = f"Content too large: {content_length} bytes > {self.max_response_size} bytes"
            logger.warning("response_too_large", url=url, content_length=int(content_length))
            return b'', error

        content = b''
        try:
            async for chunk in response.aiter_bytes(chunk_size=8192):
                content += chunk
                if len(content) > self.max_response_size:
                    logger.warning("response_too_large", url=url, max_response_size=self.max_response_size)
                    return b'', f"Content exceeded {self.max_response_size} bytes"
        except httpx.HTTPError as e:
            logger.warning("response_read_failed", url=url, error=str(e))
            return b'', f"Error reading content: {e}"

        return content, None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def create_transport(settings: Config = None) -> HttpxTransport:
    """Create an HttpxTransport from the ``transport`` config section."""
    settings = settings or default_config
    transport_config = settings.transport
    return HttpxTransport(
        user_agent=transport_config.get('user_agent', 'safefetch/0.1'),
        timeout=transport_config.get('timeout', 60.0),
        follow_redirects=transport_config.get('follow_redirects', True),
        max_redirects=transport_config.get('max_redirects', 5),
        max_connections=transport_config.get('max_connections', 20),
        max_keepalive_connections=transport_config.get('max_keepalive_connections', 10),
        max_response_size=transport_config.get('max_response_size', 10 * 1024 * 1024),
    )
