from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import SecretStr

from core.settings import converter_settings
from pipeline.clients.job_client import DocumentIntelligenceClient
from pipeline.clients.storage_relay import StorageRelayClient
from pipeline.core.config import (
    DOCX_CONTENT_TYPE,
    INPUT_ARCHIVE_NAME,
    PROGRESS_CREATING,
    PROGRESS_DONE,
    PROGRESS_DOWNLOADING,
    PROGRESS_PACKAGING,
    PROGRESS_POLLING_START,
    PROGRESS_REGISTERING_DOWNLOAD,
    PROGRESS_REGISTERING_UPLOAD,
    PROGRESS_RENDERING,
    PROGRESS_STARTING,
    PROGRESS_UPLOADING,
    RESULT_EXTENSIONS,
)
from pipeline.core.exceptions import (
    BaseError,
    ConversionFailedError,
    NoResultMemberError,
    ServerError,
)
from pipeline.models.dto import ConversionProgress, ConversionResult, DownloadTarget, Job
from pipeline.polling import JobPoller, attempt_percent
from pipeline.processors.docx_renderer import render_docx
from pipeline.processors.input_packager import package_image
from pipeline.processors.output_extractor import fetch_result_text

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ConversionProgress], None]


class ProgressTracker:
    """Forwards progress to the observer, never letting the percent go down.

    ``reset`` is the only way back to zero and is used on failure.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._callback = callback
        self.current = ConversionProgress(percent=0, message="")

    def report(self, percent: int, message: str) -> None:
        self._emit(ConversionProgress(percent=max(percent, self.current.percent), message=message))

    def reset(self, message: str) -> None:
        self._emit(ConversionProgress(percent=0, message=message))

    def _emit(self, progress: ConversionProgress) -> None:
        self.current = progress
        if self._callback is not None:
            self._callback(progress)


@dataclass
class ConversionContext:
    filename: str
    language: str
    output_format: str
    stage: str = "init"
    job: Optional[Job] = None
    t0: float = field(default_factory=time.perf_counter)

    @property
    def job_id(self) -> Optional[str]:
        return self.job.id if self.job else None

    @property
    def result_extension(self) -> str:
        return RESULT_EXTENSIONS.get(self.output_format, f".{self.output_format}")


def _pick_download_target(targets: dict[str, DownloadTarget]) -> DownloadTarget:
    archives = sorted(name for name in targets if name.lower().endswith(".zip"))
    name = archives[0] if archives else sorted(targets)[0]
    if len(targets) > 1:
        logger.info(f"{len(targets)} download targets offered, using {name}")
    return targets[name]


class DocumentConverter:
    """Runs one image-to-document conversion end to end.

    Each ``convert`` call opens its own HTTP client and job, so concurrent
    calls share nothing but the proxy.
    """

    def __init__(
        self,
        proxy_base_url: Optional[str] = None,
        *,
        language: Optional[str] = None,
        output_format: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        output_filename: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        s = converter_settings
        self.proxy_base_url = proxy_base_url or s.PROXY_BASE_URL
        self.language = language or s.DEFAULT_LANGUAGE
        self.output_format = output_format or s.DEFAULT_OUTPUT_FORMAT
        self.poll_interval = s.POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.max_attempts = s.POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.timeout = timeout or s.CLIENT_TIMEOUT_SECONDS
        self.output_filename = output_filename or s.OUTPUT_FILENAME
        self._transport = transport
        self._sleep = sleep

        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {self.poll_interval}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    async def convert(
        self,
        image: bytes,
        filename: str,
        credential: SecretStr | str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ConversionResult:
        """Convert a scanned image into a .docx document.

        Args:
            image: PNG or JPEG bytes
            filename: Original image filename
            credential: Remote service API key
            on_progress: Receives every ConversionProgress update

        Returns:
            ConversionResult with the recognized text and the document bytes

        Raises:
            ConversionFailedError: Any stage failed; progress was reset to 0
        """
        if not isinstance(credential, SecretStr):
            credential = SecretStr(credential)

        progress = ProgressTracker(on_progress)
        ctx = ConversionContext(
            filename=filename,
            language=self.language,
            output_format=self.output_format,
        )

        try:
            return await self._run(ctx, image, credential, progress)
        except asyncio.CancelledError:
            logger.info(
                "Conversion cancelled",
                extra={"stage": ctx.stage, "job_id": ctx.job_id},
            )
            raise
        except BaseError as exc:
            cause = exc
        except Exception as exc:
            logger.exception(
                "Unexpected conversion error",
                extra={"stage": ctx.stage, "job_id": ctx.job_id},
            )
            cause = ServerError(f"Unexpected error: {type(exc).__name__}", "INTERNAL_ERROR")
            cause.__cause__ = exc

        failure = ConversionFailedError(cause, ctx.stage)
        logger.error(
            f"Conversion failed: {failure.message}",
            extra={
                "stage": ctx.stage,
                "job_id": ctx.job_id,
                "error_code": failure.error_code,
                "duration_ms": round((time.perf_counter() - ctx.t0) * 1000),
            },
        )
        progress.reset(failure.user_message)
        raise failure from cause

    async def _run(
        self,
        ctx: ConversionContext,
        image: bytes,
        credential: SecretStr,
        progress: ProgressTracker,
    ) -> ConversionResult:
        ctx.stage = "package"
        progress.report(PROGRESS_PACKAGING, "Preparing image...")
        payload = package_image(image, ctx.filename)

        async with httpx.AsyncClient(
            base_url=self.proxy_base_url, timeout=self.timeout, transport=self._transport
        ) as http:
            jobs = DocumentIntelligenceClient(http)
            relay = StorageRelayClient(http)
            poller = JobPoller(
                jobs,
                interval=self.poll_interval,
                max_attempts=self.max_attempts,
                sleep=self._sleep,
            )

            ctx.stage = "create"
            progress.report(PROGRESS_CREATING, "Creating conversion job...")
            ctx.job = await jobs.create_job(credential, ctx.language, ctx.output_format)

            ctx.stage = "register_upload"
            progress.report(PROGRESS_REGISTERING_UPLOAD, "Requesting upload location...")
            upload_targets = await jobs.register_upload_targets(
                credential, ctx.job, {INPUT_ARCHIVE_NAME}
            )

            ctx.stage = "upload"
            progress.report(PROGRESS_UPLOADING, "Uploading image...")
            await relay.upload(upload_targets[INPUT_ARCHIVE_NAME], payload)
            ctx.job = ctx.job.mark_input_staged()

            ctx.stage = "start"
            progress.report(PROGRESS_STARTING, "Starting document processing...")
            ctx.job = await jobs.start_job(credential, ctx.job)

            ctx.stage = "poll"
            progress.report(PROGRESS_POLLING_START, "Processing document...")
            ctx.job = await poller.wait_until_terminal(
                credential,
                ctx.job,
                on_attempt=lambda attempt, total, _job: progress.report(
                    attempt_percent(attempt, total),
                    f"Processing document... (check {attempt}/{total})",
                ),
            )

            ctx.stage = "register_download"
            progress.report(PROGRESS_REGISTERING_DOWNLOAD, "Requesting results...")
            download_targets = await jobs.register_download_targets(credential, ctx.job)

            ctx.stage = "download"
            progress.report(PROGRESS_DOWNLOADING, "Downloading results...")
            text = await fetch_result_text(
                relay, _pick_download_target(download_targets), ctx.result_extension
            )
            if not text.strip():
                raise NoResultMemberError(
                    ctx.result_extension, reason="No text content returned"
                )

        ctx.stage = "render"
        progress.report(PROGRESS_RENDERING, "Converting to Word document...")
        document = render_docx(text)

        ctx.stage = "done"
        progress.report(PROGRESS_DONE, "Conversion complete! Click below to download.")
        logger.info(
            "Conversion finished",
            extra={
                "job_id": ctx.job_id,
                "stage": ctx.stage,
                "duration_ms": round((time.perf_counter() - ctx.t0) * 1000),
            },
        )
        return ConversionResult(
            job_id=ctx.job.id,
            text=text,
            document=document,
            filename=self.output_filename,
            content_type=DOCX_CONTENT_TYPE,
        )


def create_converter_from_env() -> DocumentConverter:
    """Factory function to create a DocumentConverter from centralized settings."""
    return DocumentConverter(
        proxy_base_url=converter_settings.PROXY_BASE_URL,
        language=converter_settings.DEFAULT_LANGUAGE,
        output_format=converter_settings.DEFAULT_OUTPUT_FORMAT,
        poll_interval=converter_settings.POLL_INTERVAL_SECONDS,
        max_attempts=converter_settings.POLL_MAX_ATTEMPTS,
        timeout=converter_settings.CLIENT_TIMEOUT_SECONDS,
        output_filename=converter_settings.OUTPUT_FILENAME,
    )
