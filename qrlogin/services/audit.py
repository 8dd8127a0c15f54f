import csv
import logging
import os
import threading
import time

logger = logging.getLogger(__name__)

QR_LOGIN_SIGN_IN = "QR_LOGIN_SIGN_IN"

HEADER = ["timestamp", "event_type", "user_id", "ip_address", "user_agent"]


class AuditLog:
    """Appends security events to a CSV file. A ``None`` path only logs."""

    def __init__(self, path: str | None = None):
        self.path = path
        self._lock = threading.Lock()

    def record(self, event_type: str, user_id: str, ip_address: str | None = None, user_agent: str | None = None):
        logger.info(f"Audit: event={event_type}, user={user_id}, ip={ip_address}")
        if not self.path:
            return

        # A failed audit write never fails the operation being audited
        with self._lock:
            try:
                new_file = not os.path.exists(self.path)
                with open(self.path, "a", newline="") as f:
                    writer = csv.writer(f)
                    if new_file:
                        writer.writerow(HEADER)
                    writer.writerow([time.time(), event_type, user_id, ip_address or "", user_agent or ""])
            except OSError:
                logger.exception(f"Failed to write audit event {event_type} to {self.path}")
