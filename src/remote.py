"""HTTP client for the Remote Store."""

import logging
from typing import List, Optional

import requests
from pydantic import ValidationError

from typedefs import ExerciseLog, KeyValidationResponse, SyncBatchResponse

logger = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """The Remote Store could not be reached or gave an unusable answer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteStoreClient:
    """Talks to the sync server on behalf of one credential.

    Every failure mode (transport error, timeout, non-2xx status, body that
    does not parse) surfaces as ``RemoteStoreError``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()

    def health(self) -> bool:
        """Return True if the server answers its health check."""
        try:
            response = self._session.get(f"{self.base_url}/health", timeout=self.timeout)
        except requests.RequestException as err:
            logger.debug("Health check failed: %s", err)
            return False
        return response.status_code == 200

    def validate_key(self) -> KeyValidationResponse:
        """Ask the server whether the configured API key is valid.

        Raises:
            RemoteStoreError: If the answer could not be obtained
        """
        response = self._post("/api/v1/keys/validate", {"key": self.api_key})
        return self._parse(response, KeyValidationResponse)

    def upload_batch(self, logs: List[ExerciseLog]) -> SyncBatchResponse:
        """Send one batch of logs and return the per-record outcomes.

        Raises:
            RemoteStoreError: If the batch as a whole was not confirmed
        """
        payload = {
            "logs": [log.model_dump(mode="json", exclude_none=True) for log in logs]
        }
        logger.info("Uploading %d logs to %s", len(logs), self.base_url)

        response = self._post(
            "/api/v1/sync/logs",
            payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        result = self._parse(response, SyncBatchResponse)

        if not result.success:
            raise RemoteStoreError(
                f"Batch not accepted: {result.error or 'unknown error'}",
                status_code=response.status_code,
            )
        return result

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def _post(
        self, path: str, payload: dict, headers: Optional[dict] = None
    ) -> requests.Response:
        try:
            response = self._session.post(
                f"{self.base_url}{path}",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as err:
            raise RemoteStoreError(f"Request to {path} timed out") from err
        except requests.RequestException as err:
            raise RemoteStoreError(f"Request to {path} failed: {err}") from err

        if not 200 <= response.status_code < 300:
            raise RemoteStoreError(
                f"Server error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _parse(response: requests.Response, model):
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as err:
            raise RemoteStoreError(
                f"Malformed response: {err}", status_code=response.status_code
            ) from err
