"""HTTP client for the external bulk SMS gateway."""

import json
import logging
from dataclasses import dataclass

import httpx

from app.core.config import settings
from app.core.exceptions import GatewayFailure, GatewayUnreachable

logger = logging.getLogger(__name__)


@dataclass
class GatewayResult:
    """Verdict on one gateway call."""

    success: bool
    body: str
    status_code: int | None = None


def interpret_response(status_code: int, body: str) -> bool:
    """Decide whether a gateway response means the message was accepted.

    The gateway answers with JSON such as
    {"response_code": 202, "success_message": "SMS Submitted Successfully"}.
    Non-JSON bodies are accepted on a 2xx status unless they mention "error".
    """
    ok = 200 <= status_code < 300
    try:
        payload = json.loads(body)
    except ValueError:
        return ok and "error" not in body.lower()

    if not isinstance(payload, dict):
        return False
    return ok and (
        payload.get("response_code") == settings.SMS_SUCCESS_RESPONSE_CODE
        or bool(payload.get("success_message"))
    )


class SmsGateway:
    """Sends single text messages through the configured gateway."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender_id: str,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender_id = sender_id
        self.timeout = timeout if timeout is not None else settings.SMS_GATEWAY_TIMEOUT_SECONDS
        self.transport = transport

    def send(self, number: str, message: str) -> GatewayResult:
        """Submit one message.

        Raises GatewayUnreachable when the request cannot be built or sent.
        """
        params = {
            "api_key": self.api_key,
            "type": "text",
            "number": number,
            "senderid": self.sender_id,
            "message": message,
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(self.api_url, params=params)
        except httpx.TimeoutException:
            logger.error(f"[SMS GATEWAY] Timeout after {self.timeout}s for {number}")
            raise GatewayUnreachable(number, "timeout")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"[SMS GATEWAY] Request error for {number}: {e}")
            raise GatewayUnreachable(number, str(e))
        except Exception as e:
            logger.exception(f"[SMS GATEWAY] Unexpected error for {number}: {e}")
            raise GatewayUnreachable(number, str(e))

        body = response.text
        return GatewayResult(
            success=interpret_response(response.status_code, body),
            body=body,
            status_code=response.status_code,
        )

    def deliver(self, number: str, message: str) -> GatewayResult:
        """Like send(), but raises GatewayFailure when the gateway rejects it."""
        result = self.send(number, message)
        if not result.success:
            raise GatewayFailure(number, result.body, result.status_code)
        return result
