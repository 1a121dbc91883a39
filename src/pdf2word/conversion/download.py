import asyncio
import logging
import re
from pathlib import Path

from .errors import ConversionFailure, TransportError, classify
from .interfaces import ConversionGateway, FileSaver

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_PDF_SUFFIX = re.compile(r"\.pdf$", re.IGNORECASE)


def docx_file_name(original_file_name: str) -> str:
    """`Report.PDF` -> `Report.docx`; names without a .pdf suffix get `.docx` appended."""
    if _PDF_SUFFIX.search(original_file_name):
        return _PDF_SUFFIX.sub(".docx", original_file_name)
    return f"{original_file_name}.docx"


class DownloadHandler:
    def __init__(self, gateway: ConversionGateway, saver: FileSaver) -> None:
        self._gateway = gateway
        self._saver = saver

    async def download(self, job_id: str, original_file_name: str) -> Path:
        """Fetch the finished document and save it under its .docx name.

        Only meaningful for a COMPLETED job; raises ConversionFailure if the
        fetch or the local save fails.
        """
        try:
            data = await asyncio.to_thread(self._gateway.download_conversion, job_id)
        except TransportError as e:
            logger.warning("Download of %s failed: %s", job_id, e)
            raise ConversionFailure(classify(e)) from e
        file_name = docx_file_name(original_file_name)
        try:
            path = await asyncio.to_thread(self._saver.save, file_name, data)
        except OSError as e:
            logger.warning("Saving %s failed: %s", file_name, e)
            raise ConversionFailure(classify(e)) from e
        logger.info("Saved %s (%d bytes) to %s", file_name, len(data), path)
        return path
