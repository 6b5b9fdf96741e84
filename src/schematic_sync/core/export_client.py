"""HTTP client for the online document export API.

Exporting a document is asynchronous on the server side: a job is
submitted, its progress is queried until it reports ``Done``, and the
resulting file is downloaded from the returned URL.
"""

import json
import logging

import requests
from pydantic import BaseModel, ValidationError

from ..config import Config
from ..errors import ExportError

logger = logging.getLogger(__name__)

EXPORT_PATH = "/v1/export/export_office"
PROGRESS_PATH = "/v1/export/query_progress"
EXPORT_SWITCHES = {"embedFonts": False}


class ExportProgress(BaseModel):
    """Status of a server-side export job."""

    status: str
    progress: float = 0
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None

    @property
    def processing(self) -> bool:
        return self.status == "Processing"


class DocExportClient:
    def __init__(self, config: Config):
        self.config = config
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers["cookie"] = self.config.cookies
        return session

    def _url(self, path: str) -> str:
        return f"{self.config.base_url}{path}"

    def _json(self, response: requests.Response) -> dict:
        try:
            data = response.json()
        except ValueError as exc:
            raise ExportError(
                f"Export API returned invalid JSON from {response.url}"
            ) from exc
        if not isinstance(data, dict):
            raise ExportError(
                f"Export API returned {type(data).__name__} instead of an "
                f"object from {response.url}"
            )
        return data

    def submit_export(self) -> str:
        """Start an export job for the configured document.

        Returns:
            The operation id to poll.

        Raises:
            ExportError: If the request fails or the API reports ``ret != 0``.
        """
        body = {
            "exportType": "0",
            "switches": json.dumps(EXPORT_SWITCHES, separators=(",", ":")),
            "docId": self.config.doc_id,
        }
        try:
            response = self.session.post(
                self._url(EXPORT_PATH),
                data=body,
                headers={
                    "content-type": "application/x-www-form-urlencoded;charset=UTF-8"
                },
                timeout=(10, 60),
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ExportError(f"Export submission failed: {exc}") from exc

        data = self._json(response)
        if data.get("ret") != 0:
            raise ExportError(
                f"Export submission rejected: {data.get('msg') or data}"
            )

        operation_id = data.get("operationId")
        if not operation_id:
            raise ExportError("Export submission returned no operationId")

        logger.info("Export job submitted: %s", operation_id)
        return operation_id

    def query_progress(self, operation_id: str) -> ExportProgress:
        """Fetch the current status of an export job."""
        response = self.session.get(
            self._url(PROGRESS_PATH),
            params={"operationId": operation_id},
            timeout=(10, 60),
        )
        response.raise_for_status()
        try:
            progress = ExportProgress(**self._json(response))
        except ValidationError as exc:
            raise ExportError(
                f"Unexpected export progress payload: {exc}"
            ) from exc
        logger.debug(
            "Export %s: %s (%.0f%%)",
            operation_id,
            progress.status,
            progress.progress,
        )
        return progress

    def download(self, file_url: str) -> bytes:
        """Download the exported workbook."""
        try:
            response = requests.get(file_url, timeout=(10, 300))
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ExportError(f"Workbook download failed: {exc}") from exc
        return response.content

    def close(self) -> None:
        self.session.close()
