"""Prober service - issues one bounded GET per due check."""
import asyncio
import logging
import socket
import ssl
from dataclasses import dataclass, field
from typing import Optional, Tuple

import httpx

from .certificate import CertificateInspector
from .diagnostics import Diagnostics
from .status_codec import ProbeOutcome, encode

logger = logging.getLogger(__name__)

# Search string meaning "no content check"
WILDCARD = "*"


@dataclass
class ProbeResult:
    """Outcome of one probe attempt plus the messages collected along the way."""
    outcome: ProbeOutcome
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def state(self) -> int:
        return encode(self.outcome)

    @property
    def message(self) -> str:
        return str(self.diagnostics)


def _describe(exc: Exception) -> str:
    """Short human readable description of a transport error."""
    if isinstance(exc, httpx.TimeoutException):
        return "Request timeout"
    if isinstance(exc, httpx.ConnectError):
        return f"Connection error: {exc}"
    return str(exc) or type(exc).__name__


def content_matches(search_string: str, body: Optional[str]) -> bool:
    """Whether a response body satisfies the configured search string.

    An unreadable body (``None``) never satisfies a required search string.
    """
    if search_string == WILDCARD:
        return True
    if body is None:
        return False
    return search_string in body


def _failed_verification(exc: BaseException) -> bool:
    """Whether a transport error was caused by a rejected peer certificate."""
    seen = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, ssl.SSLCertVerificationError):
            return True
        seen.add(id(exc))
        exc = exc.__cause__ or exc.__context__
    return False


def _target(exc: httpx.HTTPError, url: str) -> Tuple[str, int]:
    """Host and port of the request that failed, which may be a redirect target."""
    try:
        request_url = exc.request.url
    except RuntimeError:
        request_url = httpx.URL(url)
    return request_url.host, request_url.port or 443


def _get_peer_certificate(host: str, port: int, timeout: float) -> Optional[bytes]:
    """Fetch the leaf certificate without verifying it (blocking operation)."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE

    with socket.create_connection((host, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host) as ssock:
            # getpeercert() is empty under CERT_NONE, the binary form is not
            return ssock.getpeercert(binary_form=True)


class ProbeService:
    """Fetches a URL once and turns the response into a ``ProbeOutcome``."""

    def __init__(
        self,
        timeout: float = 30.0,
        inspector: Optional[CertificateInspector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.inspector = inspector or CertificateInspector()
        self.transport = transport

    async def probe(self, url: str, search_string: str = WILDCARD) -> ProbeResult:
        """Probe a URL.

        Never raises for network problems: any transport failure, including
        running past the timeout, becomes a "no response" outcome with the
        error text in the diagnostics.
        """
        diagnostics = Diagnostics()
        try:
            outcome = await asyncio.wait_for(
                self._fetch(url, search_string, diagnostics),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            diagnostics.add("Request timeout")
            outcome = ProbeOutcome.no_response()
        return ProbeResult(outcome=outcome, diagnostics=diagnostics)

    async def _fetch(self, url: str, search_string: str, diagnostics: Diagnostics) -> ProbeOutcome:
        status: Optional[int] = None
        body: Optional[str] = None

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    status = response.status_code
                    self._inspect_certificate(response, diagnostics)

                    # A failed body read keeps the status code
                    try:
                        await response.aread()
                        body = response.text
                    except httpx.HTTPError as e:
                        diagnostics.add(_describe(e))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            diagnostics.add(_describe(e))
            if status is None:
                if _failed_verification(e):
                    await self._inspect_rejected_certificate(_target(e, url), diagnostics)
                return ProbeOutcome.no_response()

        return ProbeOutcome(
            http_status=status,
            content_matched=content_matches(search_string, body),
        )

    def _inspect_certificate(self, response: httpx.Response, diagnostics: Diagnostics) -> None:
        """Hand the peer certificate of a TLS connection to the inspector.

        The handshake already succeeded against the default trust store,
        so the verdict passed along is always "trusted".
        """
        stream = response.extensions.get("network_stream")
        if stream is None:
            return
        ssl_object = stream.get_extra_info("ssl_object")
        if ssl_object is None:
            return
        cert_der = ssl_object.getpeercert(binary_form=True)
        if not cert_der:
            return
        self.inspector.inspect_der(cert_der, True, diagnostics)

    async def _inspect_rejected_certificate(self, target: Tuple[str, int], diagnostics: Diagnostics) -> None:
        """Hand a certificate that failed verification to the inspector.

        The rejected handshake exposes no certificate, so it is fetched again
        over an unverified connection. The verdict stays "untrusted" and the
        attempt remains a transport failure; only the expiry text is added.
        """
        host, port = target
        loop = asyncio.get_running_loop()
        try:
            cert_der = await loop.run_in_executor(None, _get_peer_certificate, host, port, self.timeout)
        except OSError as e:
            logger.debug(f"Could not fetch certificate from {host}:{port}: {e}")
            return
        if not cert_der:
            return
        self.inspector.inspect_der(cert_der, False, diagnostics)
