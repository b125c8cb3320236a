"""Certificate inspector - annotates probes whose certificate expires soon."""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from cryptography import x509

from ..utils.time_utils import utcnow, to_naive_utc, format_timestamp
from .diagnostics import Diagnostics

logger = logging.getLogger(__name__)


class CertificateInspector:
    """Inspects the leaf certificate presented during a TLS handshake.

    The inspector is advisory only: it appends a warning to the attempt's
    diagnostics and hands back the trust verdict it was given.
    """

    def __init__(self, warning_days: int = 30):
        self.warning_days = warning_days

    def inspect(
        self,
        certificate: x509.Certificate,
        trusted: bool,
        diagnostics: Diagnostics,
        now: Optional[datetime] = None,
    ) -> bool:
        """Check the certificate expiry and return ``trusted`` unchanged."""
        now = now or utcnow()
        expiry = to_naive_utc(certificate.not_valid_after_utc)

        if expiry < now + timedelta(days=self.warning_days):
            days_left = self.days_remaining(expiry, now)
            diagnostics.add(
                f"Certificate is expiring in {days_left} days at {format_timestamp(expiry)} UTC"
            )
        return trusted

    def inspect_der(
        self,
        cert_der: bytes,
        trusted: bool,
        diagnostics: Diagnostics,
        now: Optional[datetime] = None,
    ) -> bool:
        """Same as ``inspect`` for a DER encoded certificate."""
        try:
            certificate = x509.load_der_x509_certificate(cert_der)
        except ValueError as e:
            logger.warning(f"Could not parse peer certificate: {e}")
            return trusted
        return self.inspect(certificate, trusted, diagnostics, now=now)

    @staticmethod
    def days_remaining(expiry: datetime, now: datetime) -> int:
        """Whole days until expiry, truncated toward zero."""
        seconds = (expiry - now).total_seconds()
        return int(math.trunc(seconds / 86400))
