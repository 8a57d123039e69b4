"""
Locates and reads the recognized-text member of a job's result archive.
"""

import io
import logging
import zipfile

from pipeline.clients.storage_relay import StorageRelayClient
from pipeline.core.exceptions import NoResultMemberError
from pipeline.models.dto import DownloadTarget

logger = logging.getLogger(__name__)


def extract_result_text(archive: bytes, extension: str = ".md") -> str:
    """
    Return the decoded content of the single member ending in ``extension``.

    Zero or several matching members is an error: an ambiguous result set is
    never resolved by guessing.

    Raises:
        NoResultMemberError: invalid archive, not exactly one candidate, or
            a member that is not UTF-8 text
    """
    suffix = extension.lower()
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            candidates = [
                info.filename
                for info in zf.infolist()
                if not info.is_dir() and info.filename.lower().endswith(suffix)
            ]
            if len(candidates) != 1:
                raise NoResultMemberError(extension, candidates)
            raw = zf.read(candidates[0])
    except zipfile.BadZipFile as exc:
        raise NoResultMemberError(
            extension, reason="result is not a valid ZIP archive"
        ) from exc

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise NoResultMemberError(
            extension, candidates, reason="result text is not valid UTF-8"
        ) from exc

    logger.debug(f"Extracted {candidates[0]} ({len(raw)} bytes)")
    return text


async def fetch_result_text(
    relay: StorageRelayClient, target: DownloadTarget, extension: str = ".md"
) -> str:
    """Download the result archive behind ``target`` and extract its text."""
    archive = await relay.download(target)
    return extract_result_text(archive, extension)
