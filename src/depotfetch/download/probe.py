"""
Single-attempt HTTP probe.

A probe never raises for network conditions: it classifies the attempt as a
Payload, a Miss or a TransportError and logs exactly one line about it.
"""

from typing import Optional

import requests

from depotfetch.download.interfaces import Miss, Payload, ProbeOutcome, TransportError
from depotfetch.log_utils import logger
from depotfetch.utils import create_session, host_of


class SourceProbe:
    """Perform one GET against one URL and classify the outcome."""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or create_session()

    def probe(self, url: str, timeout: float) -> ProbeOutcome:
        """
        Fetch url exactly once.

        Parameters:
            url (str): Absolute URL to fetch.
            timeout (float): Connect/read timeout in seconds.

        Returns:
            Payload with the full body on HTTP 200, Miss with the status code for
            any other status, or TransportError when the request could not be
            completed (connection failure, timeout, unreadable body).
        """
        host = host_of(url)
        try:
            response = self.session.get(url, timeout=timeout)
            try:
                status_code = response.status_code
                if status_code != 200:
                    logger.warning(f"[FAIL] Status {status_code} from {host}")
                    return Miss(status_code)
                content = response.content
            finally:
                response.close()
        except requests.RequestException as e:
            logger.warning(f"[ERROR] Failed to contact {host}: {e}")
            return TransportError(str(e))

        logger.info(f"[OK] Success from {host}")
        return Payload(content)
