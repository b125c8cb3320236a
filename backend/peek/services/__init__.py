"""Services for probing, scheduling and notifying."""
from .prober import ProbeService
from .scheduler import SchedulerService
from .notifier import NotifierService
from .certificate import CertificateInspector

__all__ = ["ProbeService", "SchedulerService", "NotifierService", "CertificateInspector"]
