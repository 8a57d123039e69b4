"""Unit tests for the job API client."""

import json

import httpx
import pytest

from pipeline.clients.job_client import DocumentIntelligenceClient
from pipeline.core.exceptions import (
    CredentialMissingError,
    PreconditionViolatedError,
    RemoteRejectedError,
    TransportFailureError,
)
from pipeline.models.dto import Job, JobParameters, JobState
from tests.fakes import PROXY_BASE_URL, UPLOAD_URL, FakeDocIntelService


def _job(state=JobState.CREATED, staged=False) -> Job:
    return Job(
        id="J1",
        state=state,
        parameters=JobParameters(language="en-IN", output_format="md"),
        input_staged=staged,
    )


def _client(handler) -> DocumentIntelligenceClient:
    http = httpx.AsyncClient(base_url=PROXY_BASE_URL, transport=httpx.MockTransport(handler))
    return DocumentIntelligenceClient(http)


class TestCreateJob:
    """Tests for create_job."""

    @pytest.mark.asyncio
    async def test_sends_parameters_and_credential(self, proxy_http, service, credential):
        """Test job parameters and the API key reach the proxy forwarding path."""
        client = DocumentIntelligenceClient(proxy_http)

        job = await client.create_job(credential, "en-IN", "md")

        assert job.id == "J1"
        assert job.state is JobState.CREATED
        assert job.parameters == JobParameters(language="en-IN", output_format="md")

        request = service.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/sarvam/doc-digitization/job/v1"
        assert request.headers["x-api-key"] == "k1"
        assert json.loads(request.content) == {
            "job_parameters": {"language": "en-IN", "output_format": "md"}
        }

    @pytest.mark.asyncio
    async def test_non_success_status_is_remote_rejected(self, credential):
        """Test a 403 becomes RemoteRejectedError carrying the remote reason."""
        service = FakeDocIntelService(
            fail={"create": httpx.Response(403, json={"error": {"message": "Invalid key"}})}
        )

        with pytest.raises(RemoteRejectedError) as exc_info:
            await _client(service).create_job(credential, "en-IN", "md")

        assert exc_info.value.status_code == 403
        assert "Invalid key" in exc_info.value.message
        assert "k1" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_job_id_is_remote_rejected(self, credential):
        """Test a success body without job_id is rejected."""
        service = FakeDocIntelService(fail={"create": httpx.Response(200, json={})})

        with pytest.raises(RemoteRejectedError):
            await _client(service).create_job(credential, "en-IN", "md")

    @pytest.mark.asyncio
    async def test_malformed_body_reports_actual_status(self, credential):
        """Test the rejection carries the status the service really returned."""
        service = FakeDocIntelService(fail={"create": httpx.Response(202, json={})})

        with pytest.raises(RemoteRejectedError) as exc_info:
            await _client(service).create_job(credential, "en-IN", "md")

        assert exc_info.value.status_code == 202

    @pytest.mark.asyncio
    async def test_non_json_body_is_remote_rejected(self, credential):
        """Test an HTML body on success is rejected."""
        service = FakeDocIntelService(fail={"create": httpx.Response(200, text="<html>")})

        with pytest.raises(RemoteRejectedError):
            await _client(service).create_job(credential, "en-IN", "md")


class TestFailureMapping:
    """Tests for mapping transport and proxy failures."""

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_failure(self, credential):
        """Test a refused connection becomes an 'unavailable' transport failure."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportFailureError) as exc_info:
            await _client(handler).create_job(credential, "en-IN", "md")

        assert exc_info.value.error_type == "unavailable"

    @pytest.mark.asyncio
    async def test_timeout_is_transport_failure(self, credential):
        """Test a read timeout becomes a 'timeout' transport failure."""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportFailureError) as exc_info:
            await _client(handler).fetch_status(credential, _job(JobState.STARTED))

        assert exc_info.value.error_type == "timeout"

    @pytest.mark.asyncio
    async def test_proxy_transport_marker_is_transport_failure(self, credential):
        """Test a proxy-marked 502 is a transport failure, not a rejection."""
        service = FakeDocIntelService(
            fail={
                "create": httpx.Response(
                    502,
                    json={"code": "UPSTREAM_TRANSPORT_FAILURE"},
                    headers={"X-Proxy-Error": "transport"},
                )
            }
        )

        with pytest.raises(TransportFailureError):
            await _client(service).create_job(credential, "en-IN", "md")

    @pytest.mark.asyncio
    async def test_remote_502_without_marker_is_remote_rejected(self, credential):
        """Test an unmarked 502 is the remote service's own answer."""
        service = FakeDocIntelService(
            fail={"create": httpx.Response(502, json={"error": "bad gateway"})}
        )

        with pytest.raises(RemoteRejectedError) as exc_info:
            await _client(service).create_job(credential, "en-IN", "md")

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_proxy_credential_marker_is_credential_missing(self, credential):
        """Test a proxy-marked 401 becomes CredentialMissingError."""
        service = FakeDocIntelService(
            fail={
                "create": httpx.Response(
                    401,
                    json={"code": "CREDENTIAL_MISSING"},
                    headers={"X-Proxy-Error": "credential"},
                )
            }
        )

        with pytest.raises(CredentialMissingError):
            await _client(service).create_job(credential, "en-IN", "md")


class TestUploadTargets:
    """Tests for register_upload_targets."""

    @pytest.mark.asyncio
    async def test_returns_target_per_filename(self, proxy_http, service, credential):
        """Test one target per requested file, with the block-blob header."""
        client = DocumentIntelligenceClient(proxy_http)

        targets = await client.register_upload_targets(credential, _job(), {"input.zip"})

        assert set(targets) == {"input.zip"}
        assert targets["input.zip"].url == UPLOAD_URL
        assert targets["input.zip"].headers == {"x-ms-blob-type": "BlockBlob"}
        assert json.loads(service.requests[0].content) == {
            "job_id": "J1",
            "files": ["input.zip"],
        }

    @pytest.mark.asyncio
    async def test_missing_requested_filename_is_remote_rejected(
        self, proxy_http, credential
    ):
        """Test a response without a URL for a requested file is rejected."""
        client = DocumentIntelligenceClient(proxy_http)

        with pytest.raises(RemoteRejectedError):
            await client.register_upload_targets(credential, _job(), {"other.zip"})

    @pytest.mark.asyncio
    async def test_empty_filenames_is_precondition_violation(
        self, proxy_http, service, credential
    ):
        """Test registering no files fails without a request."""
        client = DocumentIntelligenceClient(proxy_http)

        with pytest.raises(PreconditionViolatedError):
            await client.register_upload_targets(credential, _job(), set())

        assert service.requests == []


class TestStartJob:
    """Tests for start_job."""

    @pytest.mark.asyncio
    async def test_start_before_upload_is_precondition_violation(
        self, proxy_http, service, credential
    ):
        """Test starting a job whose input is not staged makes no request."""
        client = DocumentIntelligenceClient(proxy_http)

        with pytest.raises(PreconditionViolatedError):
            await client.start_job(credential, _job(staged=False))

        assert service.requests == []

    @pytest.mark.asyncio
    async def test_start_after_upload_returns_started_job(
        self, proxy_http, service, credential
    ):
        """Test a staged job is started through the start path."""
        client = DocumentIntelligenceClient(proxy_http)

        job = await client.start_job(credential, _job(staged=True))

        assert job.state is JobState.STARTED
        assert service.requests[0].url.path == "/api/sarvam/doc-digitization/job/v1/J1/start"


class TestFetchStatus:
    """Tests for fetch_status."""

    @pytest.mark.asyncio
    async def test_returns_fresh_snapshot(self, credential):
        """Test the status call leaves the given job unchanged."""
        service = FakeDocIntelService(states=["Running"])
        original = _job(JobState.STARTED, staged=True)

        snapshot = await _client(service).fetch_status(credential, original)

        assert snapshot.state is JobState.RUNNING
        assert snapshot is not original
        assert original.state is JobState.STARTED
        assert service.requests[0].method == "GET"

    @pytest.mark.asyncio
    async def test_unrecognized_label_maps_to_unknown(self, credential):
        """Test an unknown label keeps its raw text and maps to UNKNOWN."""
        service = FakeDocIntelService(states=["PartiallyCompleted"])

        snapshot = await _client(service).fetch_status(credential, _job(JobState.STARTED))

        assert snapshot.state is JobState.UNKNOWN
        assert snapshot.remote_state == "PartiallyCompleted"

    @pytest.mark.asyncio
    async def test_missing_job_state_is_remote_rejected(self, credential):
        """Test a status body without job_state is rejected."""
        service = FakeDocIntelService(fail={"status": httpx.Response(200, json={})})

        with pytest.raises(RemoteRejectedError) as exc_info:
            await _client(service).fetch_status(credential, _job(JobState.STARTED))

        assert exc_info.value.status_code == 200


class TestDownloadTargets:
    """Tests for register_download_targets."""

    @pytest.mark.asyncio
    async def test_before_completion_is_precondition_violation(
        self, proxy_http, service, credential
    ):
        """Test a job that is not Completed makes no request."""
        client = DocumentIntelligenceClient(proxy_http)

        with pytest.raises(PreconditionViolatedError):
            await client.register_download_targets(credential, _job(JobState.RUNNING))

        assert service.requests == []

    @pytest.mark.asyncio
    async def test_returns_targets_once_completed(self, proxy_http, credential):
        """Test a Completed job yields its download targets."""
        client = DocumentIntelligenceClient(proxy_http)

        targets = await client.register_download_targets(
            credential, _job(JobState.COMPLETED)
        )

        assert list(targets) == ["output.zip"]
        assert targets["output.zip"].url.startswith("https://blob.test/out/")
