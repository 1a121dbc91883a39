import logging
from pathlib import Path
from typing import Any

import requests
from urllib3.filepost import encode_multipart_formdata

from .errors import TransportError, extract_detail
from .interfaces import BytesProgress, ConversionGateway, FileSaver
from .models import CandidateFile, Conversion

logger = logging.getLogger(__name__)

CHUNK = 64 * 1024


class _ProgressBody:
    """Request body that reports how many bytes the transport has pulled."""

    def __init__(self, body: bytes, on_bytes: BytesProgress | None, chunk_size: int = CHUNK) -> None:
        self._body = body
        self._on_bytes = on_bytes
        self._chunk_size = chunk_size
        self._sent = 0

    def __len__(self) -> int:
        return len(self._body)

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._body) - self._sent
        chunk = self._body[self._sent:self._sent + size]
        if chunk:
            self._sent += len(chunk)
            if self._on_bytes is not None:
                self._on_bytes(self._sent, len(self._body))
        return chunk

    def __iter__(self):
        while True:
            chunk = self.read(self._chunk_size)
            if not chunk:
                return
            yield chunk


class RequestsConversionGateway(ConversionGateway):
    def __init__(
        self,
        api_base: str,
        *,
        session: requests.Session | None = None,
        upload_timeout: float = 60.0,
        request_timeout: float = 30.0,
    ) -> None:
        self._base = api_base.rstrip("/")
        self._session = session or requests.Session()
        self._upload_timeout = upload_timeout
        self._request_timeout = request_timeout

    def _url(self, path: str) -> str:
        return f"{self._base}/api/conversions/{path}"

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = self._url(path)
        kwargs.setdefault("timeout", self._request_timeout)
        try:
            resp = getattr(self._session, method)(url, **kwargs)
        except requests.Timeout as e:
            logger.warning("%s %s timed out: %s", method.upper(), url, e)
            raise TransportError(f"timeout of {kwargs['timeout']}s exceeded", code="timeout") from e
        except requests.ConnectionError as e:
            logger.warning("%s %s could not connect: %s", method.upper(), url, e)
            raise TransportError(f"Network Error: {e}", code="connection_error") from e
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        if 200 <= resp.status_code < 300:
            return resp
        try:
            body = resp.json()
        except ValueError:
            body = None
        detail = extract_detail(body)
        logger.warning("%s %s failed: %s %s", method.upper(), url, resp.status_code, detail or "")
        raise TransportError(
            f"Request failed with status code {resp.status_code}",
            status_code=resp.status_code,
            detail=detail,
        )

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"Malformed response from server: {e}", status_code=resp.status_code) from e

    @classmethod
    def _conversion(cls, resp: requests.Response, data: Any = None) -> Conversion:
        if data is None:
            data = cls._json(resp)
        try:
            return Conversion.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Malformed conversion record: {e}", status_code=resp.status_code) from e

    def create_conversion(self, file: CandidateFile, on_bytes: BytesProgress | None = None) -> Conversion:
        body, content_type = encode_multipart_formdata(
            {"file": (file.name, file.read_bytes(), file.content_type or "application/pdf")}
        )
        resp = self._send(
            "post",
            "",
            data=_ProgressBody(body, on_bytes),
            headers={"Content-Type": content_type},
            timeout=self._upload_timeout,
        )
        return self._conversion(resp)

    def get_conversion(self, conversion_id: str) -> Conversion:
        return self._conversion(self._send("get", f"{conversion_id}/"))

    def download_conversion(self, conversion_id: str) -> bytes:
        return self._send("get", f"{conversion_id}/download/", timeout=self._upload_timeout).content

    def list_conversions(self, skip: int = 0, limit: int = 50) -> list[Conversion]:
        resp = self._send("get", "", params={"skip": skip, "limit": limit})
        return [self._conversion(resp, item) for item in self._json(resp)]

    def delete_conversion(self, conversion_id: str) -> None:
        self._send("delete", f"{conversion_id}/")


class DirectorySaver(FileSaver):
    def __init__(self, directory: str | Path) -> None:
        self._base = Path(directory).resolve()

    def save(self, file_name: str, data: bytes) -> Path:
        # never let a server-supplied name escape the target directory
        path = self._base / Path(file_name).name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path


class MemorySaver(FileSaver):
    """Keeps saved files in memory, for front-ends that stream them back to a browser."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def save(self, file_name: str, data: bytes) -> Path:
        self.files[file_name] = data
        return Path(file_name)
