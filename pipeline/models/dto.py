"""
Lightweight DTO models used as typed contracts across the pipeline.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JobState(str, Enum):
    """
    Lifecycle state of a remote conversion job.

    The remote service reports an open-ended string; labels this enum does
    not know map to UNKNOWN, which the poller treats as non-terminal.
    """

    CREATED = "Created"
    STARTED = "Started"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value: object) -> JobState:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.UNKNOWN


class JobParameters(BaseModel):
    """
    Parameters fixed at job creation.
    """

    model_config = ConfigDict(frozen=True)

    language: str
    output_format: str


class Job(BaseModel):
    """
    Snapshot of one remote conversion task.

    Instances are immutable; every observed transition produces a new
    snapshot via ``with_state``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    state: JobState = JobState.CREATED
    parameters: JobParameters
    input_staged: bool = False
    remote_state: str | None = None

    def with_state(self, state: JobState, remote_state: str | None = None) -> Job:
        return self.model_copy(update={"state": state, "remote_state": remote_state})

    def mark_input_staged(self) -> Job:
        return self.model_copy(update={"input_staged": True})


class UploadTarget(BaseModel):
    """
    Time-limited write URL for one input file plus the storage headers it needs.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)


class DownloadTarget(BaseModel):
    """
    Time-limited read URL for one output file.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    url: str


class ConversionProgress(BaseModel):
    """
    Position of a conversion run on the 0..100 scale.
    """

    model_config = ConfigDict(frozen=True)

    percent: int = Field(ge=0, le=100)
    message: str = ""


class ConversionResult(BaseModel):
    """
    Output of a successful conversion: the recognized text and the
    downloadable document built from it.
    """

    model_config = ConfigDict(frozen=True)

    job_id: str
    text: str
    document: bytes
    filename: str
    content_type: str
