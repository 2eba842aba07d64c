"""Controller transport over an HTTP bridge.

The bridge (a microcontroller or virtual pad service on the network)
accepts one JSON request per input and performs it on the device.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import requests

from constants import CONTROLLER_MAX_RETRIES, CONTROLLER_REQUEST_TIMEOUT_S
from controller.base import BaseController
from exceptions import ControllerError
from utils.logger import get_logger
from utils.retry import retry_with_backoff

if TYPE_CHECKING:
    from navigation.actions import ControlAction

logger = get_logger(__name__)

INPUT_ENDPOINT = "/api/v1/input"


class HttpController(BaseController):
    """
    Send inputs to a controller bridge with a persistent HTTP session.

    Only connect timeouts are retried, with exponential backoff: the bridge
    never saw those requests. A read timeout or dropped connection may
    follow an input the bridge already performed, so it raises
    ControllerError at once, as does an error status from the bridge.
    """

    def __init__(
        self,
        base_url: str,
        device_id: str = "default",
        timeout_s: float = CONTROLLER_REQUEST_TIMEOUT_S,
        session: requests.Session | None = None
    ):
        """
        Initialize HTTP controller.

        Args:
            base_url: Bridge URL, e.g. "http://192.168.1.20:8080"
            device_id: Device addressed on the bridge
            timeout_s: Per-request timeout
            session: Optional pre-configured requests session
        """
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.device_id = device_id
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{INPUT_ENDPOINT}"

    def build_payload(self, action: ControlAction, hold_ms: int, settle_ms: int) -> dict[str, Any]:
        payload = action.to_dict()
        payload.update({
            "device_id": self.device_id,
            "hold_ms": hold_ms,
            "settle_ms": settle_ms,
        })
        return payload

    def dispatch(self, action: ControlAction, hold_ms: int, settle_ms: int) -> None:
        payload = self.build_payload(action, hold_ms, settle_ms)
        try:
            response = self._post(payload)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ControllerError(
                f"Bridge rejected {action.describe()}",
                endpoint=self.endpoint,
                status_code=status,
                cause=e,
            ) from e
        except requests.RequestException as e:
            raise ControllerError(
                f"Failed to send {action.describe()}",
                endpoint=self.endpoint,
                cause=e,
            ) from e

        self.dispatched += 1
        logger.debug(f"Sent {action.describe()}")

    @retry_with_backoff(
        max_retries=CONTROLLER_MAX_RETRIES,
        exceptions=(requests.ConnectTimeout,),
    )
    def _post(self, payload: dict[str, Any]) -> requests.Response:
        return self.session.post(self.endpoint, json=payload, timeout=self.timeout_s)

    def close(self) -> None:
        self.session.close()
