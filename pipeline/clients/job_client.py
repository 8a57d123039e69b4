import logging
from typing import Any, Iterable

import httpx
from pydantic import SecretStr

from pipeline.clients.proxy_errors import (
    raise_for_proxy_response,
    translate_transport_errors,
)
from pipeline.core.config import (
    BLOB_TYPE_BLOCK,
    BLOB_TYPE_HEADER,
    CREATE_JOB_PATH,
    CREDENTIAL_HEADER,
    DOWNLOAD_FILES_PATH,
    JOB_STATUS_PATH,
    PROXY_FORWARD_PREFIX,
    START_JOB_PATH,
    UPLOAD_FILES_PATH,
)
from pipeline.core.exceptions import PreconditionViolatedError, RemoteRejectedError
from pipeline.models.dto import (
    DownloadTarget,
    Job,
    JobParameters,
    JobState,
    UploadTarget,
)

logger = logging.getLogger(__name__)


def _target_url(entry: Any) -> str | None:
    if not isinstance(entry, dict):
        return None
    # Remote documents the field as "url"; some API versions send "file_url"
    url = entry.get("url") or entry.get("file_url")
    return url if isinstance(url, str) and url else None


class DocumentIntelligenceClient:
    """Typed binding over the remote job API, reached through the proxy.

    The wrapped ``httpx.AsyncClient`` must already be bound to the proxy's
    base URL. Every call carries the credential in the proxy's credential
    header; the proxy swaps it into the remote authentication header.
    """

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def _call(
        self,
        operation: str,
        method: str,
        path: str,
        credential: SecretStr,
        payload: dict | None = None,
    ) -> tuple[int, dict]:
        """Send one job API call through the proxy.

        Returns:
            The response status code and its JSON object body
        """
        with translate_transport_errors(operation):
            resp = await self._http.request(
                method,
                f"{PROXY_FORWARD_PREFIX}/{path}",
                json=payload,
                headers={CREDENTIAL_HEADER: credential.get_secret_value()},
            )

        raise_for_proxy_response(operation, resp)

        try:
            data = resp.json()
        except ValueError:
            raise RemoteRejectedError(
                operation, resp.status_code, "response is not valid JSON"
            )
        if not isinstance(data, dict):
            raise RemoteRejectedError(
                operation, resp.status_code, "response is not a JSON object"
            )
        return resp.status_code, data

    async def create_job(
        self, credential: SecretStr, language: str, output_format: str
    ) -> Job:
        parameters = JobParameters(language=language, output_format=output_format)
        status_code, data = await self._call(
            "create_job",
            "POST",
            CREATE_JOB_PATH,
            credential,
            {"job_parameters": parameters.model_dump()},
        )

        job_id = data.get("job_id")
        if not isinstance(job_id, str) or not job_id:
            raise RemoteRejectedError("create_job", status_code, "response missing job_id")

        logger.info("Job created", extra={"job_id": job_id, "stage": "create"})
        return Job(id=job_id, state=JobState.CREATED, parameters=parameters)

    async def register_upload_targets(
        self, credential: SecretStr, job: Job, filenames: Iterable[str]
    ) -> dict[str, UploadTarget]:
        """Ask the remote service for one write URL per file to upload.

        ``filenames`` must be exactly the files that will be uploaded.
        """
        names = sorted(set(filenames))
        if not names:
            raise PreconditionViolatedError(
                "register_upload_targets", "at least one input file is known"
            )

        status_code, data = await self._call(
            "register_upload_targets",
            "POST",
            UPLOAD_FILES_PATH,
            credential,
            {"job_id": job.id, "files": names},
        )

        upload_urls = data.get("upload_urls")
        if not isinstance(upload_urls, dict):
            raise RemoteRejectedError(
                "register_upload_targets", status_code, "response missing upload_urls"
            )

        targets: dict[str, UploadTarget] = {}
        for name in names:
            url = _target_url(upload_urls.get(name))
            if url is None:
                raise RemoteRejectedError(
                    "register_upload_targets", status_code, f"no upload URL for {name}"
                )
            targets[name] = UploadTarget(
                filename=name, url=url, headers={BLOB_TYPE_HEADER: BLOB_TYPE_BLOCK}
            )

        logger.info(
            f"Registered {len(targets)} upload target(s)",
            extra={"job_id": job.id, "stage": "register_upload"},
        )
        return targets

    async def start_job(self, credential: SecretStr, job: Job) -> Job:
        if job.state is not JobState.CREATED or not job.input_staged:
            raise PreconditionViolatedError(
                "start_job", "the job is created and its input is uploaded"
            )

        _, data = await self._call(
            "start_job",
            "POST",
            START_JOB_PATH.format(job_id=job.id),
            credential,
        )

        logger.info("Job started", extra={"job_id": job.id, "stage": "start"})
        return job.with_state(JobState.STARTED, remote_state=data.get("job_state"))

    async def fetch_status(self, credential: SecretStr, job: Job) -> Job:
        """Return a fresh snapshot of ``job``; the argument is never changed."""
        status_code, data = await self._call(
            "fetch_status",
            "GET",
            JOB_STATUS_PATH.format(job_id=job.id),
            credential,
        )

        label = data.get("job_state")
        if not isinstance(label, str) or not label:
            raise RemoteRejectedError("fetch_status", status_code, "response missing job_state")

        state = JobState(label)
        logger.debug(
            f"Job state: {label}",
            extra={"job_id": job.id, "stage": "poll", "job_state": state.value},
        )
        return job.with_state(state, remote_state=label)

    async def register_download_targets(
        self, credential: SecretStr, job: Job
    ) -> dict[str, DownloadTarget]:
        if job.state is not JobState.COMPLETED:
            raise PreconditionViolatedError(
                "register_download_targets", "the job is Completed"
            )

        status_code, data = await self._call(
            "register_download_targets",
            "POST",
            DOWNLOAD_FILES_PATH.format(job_id=job.id),
            credential,
        )

        download_urls = data.get("download_urls")
        if not isinstance(download_urls, dict) or not download_urls:
            raise RemoteRejectedError(
                "register_download_targets", status_code, "response missing download_urls"
            )

        targets: dict[str, DownloadTarget] = {}
        for name, entry in download_urls.items():
            url = _target_url(entry)
            if url is None:
                raise RemoteRejectedError(
                    "register_download_targets", status_code, f"no download URL for {name}"
                )
            targets[name] = DownloadTarget(filename=name, url=url)

        logger.info(
            f"Registered {len(targets)} download target(s)",
            extra={"job_id": job.id, "stage": "register_download"},
        )
        return targets
