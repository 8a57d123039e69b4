"""Tests for the conversion orchestrator, driven against the fake job service."""

import asyncio
import io
import logging
import zipfile

import httpx
import pytest

from pipeline.core.exceptions import (
    ConversionFailedError,
    JobTimedOutError,
    NoResultMemberError,
    RemoteJobFailedError,
    RemoteRejectedError,
    ValidationError,
)
from pipeline.orchestrator import DocumentConverter, ProgressTracker
from tests.fakes import PNG_BYTES, PROXY_BASE_URL, FakeDocIntelService, make_archive


async def _no_sleep(delay):
    return None


def _converter(service, **kwargs) -> DocumentConverter:
    kwargs.setdefault("sleep", _no_sleep)
    return DocumentConverter(
        PROXY_BASE_URL,
        language="en-IN",
        output_format="md",
        transport=httpx.MockTransport(service),
        **kwargs,
    )


class ProgressLog:
    """Collects every progress update it is given."""

    def __init__(self):
        self.updates = []

    def __call__(self, progress):
        self.updates.append(progress)

    @property
    def percents(self):
        return [p.percent for p in self.updates]


class TestProgressTracker:
    """Tests for ProgressTracker."""

    def test_never_moves_backwards(self):
        """Test a lower percent keeps the previous value."""
        log = ProgressLog()
        tracker = ProgressTracker(log)

        tracker.report(40, "a")
        tracker.report(30, "b")

        assert log.percents == [40, 40]
        assert tracker.current.message == "b"

    def test_reset_returns_to_zero(self):
        """Test reset brings progress back to zero."""
        tracker = ProgressTracker()
        tracker.report(80, "a")

        tracker.reset("failed")

        assert tracker.current.percent == 0


class TestConverterSettings:
    """Tests for DocumentConverter construction."""

    def test_zero_attempts_is_kept_and_rejected(self):
        """Test max_attempts=0 is not replaced by the default."""
        with pytest.raises(ValueError, match="max_attempts"):
            DocumentConverter(PROXY_BASE_URL, max_attempts=0)

    def test_negative_interval_is_rejected(self):
        """Test a negative poll interval is refused."""
        with pytest.raises(ValueError, match="poll_interval"):
            DocumentConverter(PROXY_BASE_URL, poll_interval=-1)

    def test_zero_interval_is_allowed(self):
        """Test a zero poll interval is kept as given."""
        assert DocumentConverter(PROXY_BASE_URL, poll_interval=0).poll_interval == 0


class TestSuccessfulConversion:
    """Tests for conversions that reach a document."""

    @pytest.mark.asyncio
    async def test_immediate_completion_reports_every_checkpoint(self, service):
        """Test a job completing at once reports every checkpoint."""
        log = ProgressLog()

        result = await _converter(service).convert(PNG_BYTES, "photo.png", "k1", log)

        assert log.percents == [5, 10, 20, 30, 40, 50, 80, 85, 95, 100]
        assert log.updates[-1].message == "Conversion complete! Click below to download."
        assert result.text == "# Title\nBody"
        assert result.job_id == "J1"
        assert result.filename == "converted-document.docx"
        assert zipfile.is_zipfile(io.BytesIO(result.document))

    @pytest.mark.asyncio
    async def test_polling_progress_stays_in_range_and_monotonic(self):
        """Test polling progress stays between 50 and 80 and never drops."""
        service = FakeDocIntelService(states=["Running", "Running", "Running", "Completed"])
        log = ProgressLog()

        await _converter(service, max_attempts=4).convert(PNG_BYTES, "photo.png", "k1", log)

        assert log.percents == sorted(log.percents)
        polling = log.percents[log.percents.index(50):log.percents.index(85)]
        assert all(50 <= p <= 80 for p in polling)
        assert len(polling) == 5
        assert service.count("status") == 4

    @pytest.mark.asyncio
    async def test_request_sequence(self, service):
        """Test the remote calls happen in pipeline order."""
        await _converter(service).convert(PNG_BYTES, "photo.png", "k1")

        assert [service.operation(r) for r in service.requests] == [
            "create",
            "register_upload",
            "upload",
            "start",
            "status",
            "register_download",
            "download",
        ]

    @pytest.mark.asyncio
    async def test_uploaded_archive_holds_the_image(self, service):
        """Test the uploaded archive carries the image bytes."""
        await _converter(service).convert(PNG_BYTES, "photo.png", "k1")

        upload = service.requests_for("upload")[0]
        with zipfile.ZipFile(io.BytesIO(upload.content)) as zf:
            assert zf.read("photo.png") == PNG_BYTES


class TestFailedConversion:
    """Tests for conversions that stop with a failure."""

    @pytest.mark.asyncio
    async def test_rejected_create_stops_the_run(self):
        """Test a rejected create stops before any other call."""
        service = FakeDocIntelService(
            fail={"create": httpx.Response(403, json={"error": "Invalid API key"})}
        )
        log = ProgressLog()

        with pytest.raises(ConversionFailedError) as exc_info:
            await _converter(service).convert(PNG_BYTES, "photo.png", "bad", log)

        failure = exc_info.value
        assert failure.stage == "create"
        assert isinstance(failure.cause, RemoteRejectedError)
        assert failure.__cause__ is failure.cause
        assert log.updates[-1].percent == 0
        assert log.updates[-1].message.startswith("Error:")
        assert len(service.requests) == 1

    @pytest.mark.asyncio
    async def test_invalid_image_makes_no_requests(self, service):
        """Test a non-image input never reaches the network."""
        with pytest.raises(ConversionFailedError) as exc_info:
            await _converter(service).convert(b"GIF89a....", "photo.gif", "k1")

        assert exc_info.value.stage == "package"
        assert isinstance(exc_info.value.cause, ValidationError)
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_remote_failure_skips_downloads(self):
        """Test a failed job never registers or fetches output."""
        service = FakeDocIntelService(states=["Failed"])

        with pytest.raises(ConversionFailedError) as exc_info:
            await _converter(service).convert(PNG_BYTES, "photo.png", "k1")

        assert exc_info.value.stage == "poll"
        assert isinstance(exc_info.value.cause, RemoteJobFailedError)
        assert service.count("register_download") == 0
        assert service.count("download") == 0

    @pytest.mark.asyncio
    async def test_poll_deadline_times_out(self):
        """Test polling stops at the attempt limit."""
        service = FakeDocIntelService(states=["Running"])

        with pytest.raises(ConversionFailedError) as exc_info:
            await _converter(service, max_attempts=2).convert(PNG_BYTES, "photo.png", "k1")

        assert isinstance(exc_info.value.cause, JobTimedOutError)
        assert service.count("status") == 2
        assert service.count("register_download") == 0

    @pytest.mark.asyncio
    async def test_ambiguous_result_archive(self):
        """Test an archive with two results fails at download."""
        service = FakeDocIntelService(archive=make_archive({"a.md": "one", "b.md": "two"}))

        with pytest.raises(ConversionFailedError) as exc_info:
            await _converter(service).convert(PNG_BYTES, "photo.png", "k1")

        assert exc_info.value.stage == "download"
        assert isinstance(exc_info.value.cause, NoResultMemberError)

    @pytest.mark.asyncio
    async def test_blank_result_text(self):
        """Test a blank result text is not rendered."""
        service = FakeDocIntelService(archive=make_archive({"result.md": "  \n"}))

        with pytest.raises(ConversionFailedError) as exc_info:
            await _converter(service).convert(PNG_BYTES, "photo.png", "k1")

        assert isinstance(exc_info.value.cause, NoResultMemberError)

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self):
        """Test an unexpected error is wrapped as internal."""
        def handler(request):
            raise RuntimeError("boom")

        with pytest.raises(ConversionFailedError) as exc_info:
            await _converter(handler).convert(PNG_BYTES, "photo.png", "k1")

        assert exc_info.value.error_code == "INTERNAL_ERROR"
        assert isinstance(exc_info.value.cause.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_credential_never_logged(self, caplog):
        """Test the API key never appears in the logs."""
        caplog.set_level(logging.DEBUG, logger="pipeline")
        service = FakeDocIntelService(
            fail={"create": httpx.Response(401, json={"error": "Unauthorized"})}
        )

        with pytest.raises(ConversionFailedError):
            await _converter(service).convert(PNG_BYTES, "photo.png", "k1-secret-value")

        assert caplog.records
        assert "k1-secret-value" not in caplog.text


class TestCancellation:
    """Tests for cancelling a running conversion."""

    @pytest.mark.asyncio
    async def test_cancel_mid_poll_stops_requests(self):
        """Test cancelling during polling stops further calls."""
        service = FakeDocIntelService(states=["Running"])
        queried = asyncio.Event()
        service.on_status = queried.set
        log = ProgressLog()
        converter = _converter(service, poll_interval=30.0, sleep=asyncio.sleep)

        task = asyncio.create_task(converter.convert(PNG_BYTES, "photo.png", "k1", log))
        await asyncio.wait_for(queried.wait(), timeout=2.0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert service.count("status") == 1
        assert service.count("register_download") == 0
        assert log.updates[-1].percent != 0
