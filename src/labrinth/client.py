"""
Modrinth API Client

Builds requests against the Modrinth v2 API, sends them through a shared
requests session and decodes JSON responses. Rate limit headers from every
response are exposed on ``Client.rate``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence
from urllib.parse import urljoin

import requests
from requests.utils import rewind_body

from .config import DEFAULT_BASE_URL, DEFAULT_USER_AGENT
from .projects import ProjectsService
from .utils import IDEMPOTENT_METHODS, RetryConfig, retry_on_network_failure


HEADER_RATE_LIMIT = 'X-Ratelimit-Limit'
HEADER_RATE_REMAINING = 'X-Ratelimit-Remaining'
HEADER_RATE_RESET = 'X-Ratelimit-Reset'

RequestOption = Callable[[requests.Request], None]


@dataclass
class Rate:
    """Rate limit state reported by the API."""
    # Maximum number of requests that can be made in a minute
    limit: int = 0
    # Number of requests remaining in the current window
    remaining: int = 0
    # Seconds until the window resets
    reset: int = 0


def parse_rate(headers) -> Rate:
    """Read rate limit headers; missing or malformed values are 0."""
    def read(name: str) -> int:
        try:
            return int(headers.get(name, 0))
        except (TypeError, ValueError):
            return 0

    return Rate(
        limit=read(HEADER_RATE_LIMIT),
        remaining=read(HEADER_RATE_REMAINING),
        reset=read(HEADER_RATE_RESET)
    )



def _is_rewindable(prepared: requests.PreparedRequest) -> bool:
    """Whether the body can be sent again: in-memory, or a stream whose start position is known."""
    body = prepared.body
    if body is None or isinstance(body, (bytes, str)):
        return True
    return hasattr(body, 'seek') and isinstance(getattr(prepared, '_body_position', None), int)


class ErrorResponse(Exception):
    """Raised for any non-2xx answer from the API."""

    def __init__(self, response: Optional[requests.Response] = None,
                 code: str = '', description: str = ''):
        self.response = response
        self.code = code
        self.description = description
        super().__init__(self._message())

    @property
    def status_code(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None

    def _message(self) -> str:
        if self.response is not None and self.response.request is not None:
            request = self.response.request
            return f"{request.method} {request.url}: {self.response.status_code} {self.description}"
        if self.response is not None:
            return f"{self.response.status_code} {self.description}"
        return self.description


class Response:
    """A sent request's HTTP response together with its rate limit and decoded body."""

    def __init__(self, http_response: requests.Response, rate: Rate, data: Any = None):
        self.http_response = http_response
        self.rate = rate
        self.data = data

    @property
    def status_code(self) -> int:
        return self.http_response.status_code

    @property
    def headers(self):
        return self.http_response.headers

    def __repr__(self) -> str:
        return f'<Response [{self.status_code}] {self.rate}>'


class Client:
    """
    Client for the Modrinth v2 API.

    Services are exposed as attributes, e.g. ``client.projects.search(...)``.
    Network failures are retried with exponential backoff: connection errors
    and timeouts for idempotent methods, connect timeouts only for the rest.
    Streamed bodies that cannot be rewound are sent once. HTTP error statuses
    raise ErrorResponse.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, auth_token: str = '',
                 user_agent: str = DEFAULT_USER_AGENT, timeout: float = 300.0,
                 max_retries: int = 3, retry_delay: float = 1.0,
                 session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip('/') + '/'
        self.auth_token = auth_token
        self.user_agent = user_agent
        self.timeout = timeout
        self.json_dumps: Callable[[Any], str] = json.dumps
        self.json_loads: Callable[[Any], Any] = json.loads
        self.rate = Rate()

        self.logger = logging.getLogger(__name__)
        self.retry_config = RetryConfig(
            max_attempts=max_retries,
            base_delay=retry_delay,
            logger=self.logger
        )

        self.projects = ProjectsService(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.session.close()

    def _build(self, method: str, path: str, headers: Dict[str, str],
               opts: Sequence[RequestOption] = (), **kwargs) -> requests.Request:
        url = urljoin(self.base_url, path.lstrip('/'))

        if self.user_agent:
            headers['User-Agent'] = self.user_agent
        if self.auth_token:
            headers['Authorization'] = self.auth_token

        request = requests.Request(method, url, headers=headers, **kwargs)
        for opt in opts:
            opt(request)
        return request

    def new_request(self, method: str, path: str, body: Any = None,
                    params: Optional[Dict] = None,
                    opts: Sequence[RequestOption] = ()) -> requests.Request:
        """Build a request whose body, if any, is encoded as JSON."""
        headers = {}
        data = None
        if body is not None:
            data = self.json_dumps(body)
            if isinstance(data, str):
                data = data.encode('utf-8')
            headers['Content-Type'] = 'application/json'

        return self._build(method, path, headers, opts, params=params, data=data)

    def new_form_request(self, method: str, path: str, data: Optional[Dict] = None,
                         files: Optional[Dict] = None, params: Optional[Dict] = None,
                         opts: Sequence[RequestOption] = ()) -> requests.Request:
        """Build a form request; requests does the multipart encoding when files are given."""
        return self._build(method, path, {}, opts, params=params, data=data, files=files)

    def new_upload_request(self, method: str, path: str, content_type: str, body: Any,
                           params: Optional[Dict] = None,
                           opts: Sequence[RequestOption] = ()) -> requests.Request:
        """Build a request sending ``body`` as-is with the given content type."""
        headers = {'Content-Type': content_type}
        return self._build(method, path, headers, opts, params=params, data=body)

    def _send_once(self, prepared: requests.PreparedRequest) -> requests.Response:
        settings = self.session.merge_environment_settings(prepared.url, {}, None, None, None)
        return self.session.send(prepared, timeout=self.timeout, **settings)

    def _send(self, prepared: requests.PreparedRequest) -> requests.Response:
        rewindable = _is_rewindable(prepared)
        config = self.retry_config

        @retry_on_network_failure(
            max_attempts=config.max_attempts if rewindable else 1,
            base_delay=config.base_delay,
            exponential_base=config.exponential_base,
            max_delay=config.max_delay,
            idempotent=prepared.method in IDEMPOTENT_METHODS,
            logger=config.logger
        )
        def send():
            if rewindable and hasattr(prepared.body, 'seek'):
                rewind_body(prepared)
            return self._send_once(prepared)

        return send()

    def check_response(self, http_response: requests.Response):
        """Raise ErrorResponse unless the status code is 2xx."""
        if 200 <= http_response.status_code <= 299:
            return

        if http_response.status_code >= 500:
            raise ErrorResponse(http_response, description='internal server error')

        code = ''
        description = ''
        try:
            payload = self.json_loads(http_response.content)
            code = payload.get('error') or ''
            description = payload.get('description') or ''
        except (ValueError, AttributeError) as e:
            self.logger.debug(f"Could not decode error body: {e}")

        raise ErrorResponse(http_response, code=code, description=description)

    def do(self, request: requests.Request, decode: bool = True) -> Response:
        """
        Send a request built by one of the new_*_request methods.

        Args:
            request: Request to send
            decode: Decode a non-empty body as JSON into Response.data

        Raises:
            ErrorResponse: the API answered with a non-2xx status
            requests.exceptions.RequestException: the request could not be sent
        """
        prepared = self.session.prepare_request(request)
        self.logger.debug(f"{prepared.method} {prepared.url}")

        http_response = self._send(prepared)
        response = Response(http_response, parse_rate(http_response.headers))
        self.rate = response.rate

        try:
            self.check_response(http_response)
        except ErrorResponse as e:
            self.logger.warning(f"API error: {e}")
            raise

        if decode and http_response.content:
            response.data = self.json_loads(http_response.content)

        return response

    def set_session(self, session: requests.Session) -> 'Client':
        self.session = session
        return self

    def set_token(self, token: str) -> 'Client':
        self.auth_token = token
        return self

    def set_base_url(self, url: str) -> 'Client':
        self.base_url = url.rstrip('/') + '/'
        return self

    def set_user_agent(self, user_agent: str) -> 'Client':
        self.user_agent = user_agent
        return self

    def set_json_dumps(self, dumps: Callable[[Any], str]) -> 'Client':
        self.json_dumps = dumps
        return self

    def set_json_loads(self, loads: Callable[[Any], Any]) -> 'Client':
        self.json_loads = loads
        return self
