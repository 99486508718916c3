"""HTTP client for the Judge0 code execution service.

All text payloads travel base64-encoded in both directions.
"""

import base64
import binascii
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from codeprep.config import settings
from codeprep.exceptions import ExecutionTimeoutError, ExecutionTransportError
from codeprep.models.execution import Judge0Submission, SubmissionStatus

logger = logging.getLogger(__name__)

DECODE_ERROR_TEXT = "Error decoding output"


def encode_text(text: str | None) -> str | None:
    if text is None:
        return None
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_text(value: str | None) -> str | None:
    """Decode a base64 field; undecodable payloads become a fixed marker.

    Judge0 wraps its base64 output at 60 columns, so whitespace is dropped
    before the strict decode.
    """
    if value is None:
        return None
    try:
        return base64.b64decode("".join(value.split()), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return DECODE_ERROR_TEXT


def _parse_time(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


class Judge0Client:
    """Submits source code to Judge0 and waits for the verdict."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        api_host: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.judge0_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.judge0_api_key
        self.api_host = api_host or settings.judge0_api_host
        self.timeout = timeout if timeout is not None else settings.execution_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-RapidAPI-Key": self.api_key or "",
            "X-RapidAPI-Host": self.api_host,
        }

    async def submit(
        self,
        language_id: int,
        source_code: str,
        stdin: str | None = None,
        expected_output: str | None = None,
    ) -> Judge0Submission:
        """Run one submission synchronously (``wait=true``).

        Raises:
            ExecutionTimeoutError: no answer within ``timeout`` seconds
            ExecutionTransportError: network failure, HTTP error or bad body
        """
        payload = {
            "language_id": language_id,
            "source_code": encode_text(source_code),
        }
        if stdin:
            payload["stdin"] = encode_text(stdin)
        if expected_output:
            payload["expected_output"] = encode_text(expected_output)

        url = f"{self.base_url}/submissions"
        params = {"base64_encoded": "true", "wait": "true"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, params=params, json=payload, headers=self._headers())
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"Judge0 call timed out after {self.timeout}s")
            raise ExecutionTimeoutError(f"Execution timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Judge0 returned HTTP {e.response.status_code}: {e.response.text[:200]}")
            raise ExecutionTransportError(
                f"Judge0 request failed with status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.warning(f"Judge0 request error: {e}")
            raise ExecutionTransportError(f"Judge0 request error: {e}") from e
        except ValueError as e:
            raise ExecutionTransportError(f"Malformed Judge0 response: {e}") from e

        return self._parse(body)

    @staticmethod
    def _parse(body: Any) -> Judge0Submission:
        if not isinstance(body, dict) or not isinstance(body.get("status"), dict):
            raise ExecutionTransportError("Malformed Judge0 response: missing status")
        try:
            return Judge0Submission(
                status=SubmissionStatus.model_validate(body["status"]),
                stdout=decode_text(body.get("stdout")),
                stderr=decode_text(body.get("stderr")),
                compile_output=decode_text(body.get("compile_output")),
                message=decode_text(body.get("message")),
                time=_parse_time(body.get("time")),
                memory=int(body.get("memory") or 0),
            )
        except (ValidationError, TypeError, ValueError) as e:
            raise ExecutionTransportError(f"Malformed Judge0 response: {e}") from e
