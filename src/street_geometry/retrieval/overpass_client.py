"""
Overpass API client with ordered mirror fallback.

Each query is sent to the configured mirrors in order. A timeout,
transport error, non-success status or malformed payload moves on to the
next mirror; only when every mirror has failed is UpstreamUnavailableError
raised.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from ..config_manager import DEFAULT_OVERPASS_ENDPOINTS
from ..errors import ResolutionCancelledError, UpstreamUnavailableError
from ..models import Candidate

logger = logging.getLogger(__name__)


class OverpassClient:
    """Sends Overpass QL queries to a list of redundant mirrors."""

    def __init__(
        self,
        endpoints: Sequence[str] = DEFAULT_OVERPASS_ENDPOINTS,
        timeout_s: float = 25.0,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize client.

        Args:
            endpoints: Mirror interpreter URLs, tried in order
            timeout_s: Per-mirror request timeout in seconds
            user_agent: User-Agent header value
            session: Existing requests session (one is created if omitted)
        """
        if not endpoints:
            raise ValueError("At least one Overpass endpoint is required")

        self.endpoints = tuple(endpoints)
        self.timeout_s = timeout_s
        self._owns_session = session is None
        self.session = session or requests.Session()
        if user_agent:
            self.session.headers.update({"User-Agent": user_agent})

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None) -> "OverpassClient":
        return cls(
            endpoints=config.overpass_endpoints,
            timeout_s=config.timeout_s,
            user_agent=config.user_agent,
            session=session,
        )

    def query(
        self,
        query: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        """Run a query against the mirrors until one succeeds.

        Args:
            query: Overpass QL query
            cancel_event: Set by the caller to abandon the query between
                mirror attempts

        Returns:
            Decoded JSON payload containing an "elements" list

        Raises:
            UpstreamUnavailableError: If every mirror failed
            ResolutionCancelledError: If cancel_event was set
        """
        failures: List[Tuple[str, str]] = []

        for endpoint in self.endpoints:
            if cancel_event is not None and cancel_event.is_set():
                raise ResolutionCancelledError("Overpass query cancelled")

            try:
                payload = self._post(endpoint, query)
            except requests.exceptions.Timeout:
                reason = f"timed out after {self.timeout_s}s"
            except requests.exceptions.RequestException as e:
                reason = f"request failed: {e}"
            else:
                if payload is not None:
                    return payload
                reason = "malformed payload"

            logger.warning(f"Overpass mirror {endpoint} failed: {reason}")
            failures.append((endpoint, reason))

        raise UpstreamUnavailableError(
            f"All {len(self.endpoints)} Overpass mirrors failed",
            failures=failures,
        )

    def _post(self, endpoint: str, query: str) -> Optional[Dict[str, Any]]:
        """POST one query; None when the response is not a usable payload."""
        response = self.session.post(
            endpoint,
            data={"data": query},
            timeout=self.timeout_s,
        )

        if not response.ok:
            logger.debug(f"Overpass mirror {endpoint} returned HTTP {response.status_code}")
            return None

        try:
            payload = response.json()
        except ValueError:
            return None

        if not isinstance(payload, dict) or not isinstance(payload.get("elements"), list):
            return None

        return payload

    def fetch_ways(
        self,
        query: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[Candidate]:
        """Run a query and convert its way elements to candidates.

        Duplicate way ids keep their first occurrence.
        """
        payload = self.query(query, cancel_event=cancel_event)

        candidates: List[Candidate] = []
        seen = set()
        for element in payload["elements"]:
            candidate = Candidate.from_element(element)
            if candidate is None or candidate.id in seen:
                continue
            seen.add(candidate.id)
            candidates.append(candidate)

        return candidates

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "OverpassClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
