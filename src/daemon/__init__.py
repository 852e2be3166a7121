from .base import DaemonBackend, DaemonResult, DaemonError, OpportunityNotFound
from .local import LocalDaemon
