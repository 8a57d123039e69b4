# =============================================================================
# Remote Job API (doc-digitization), relative to the proxy's /api/sarvam/ path
# =============================================================================

JOB_API_PREFIX = "doc-digitization/job/v1"
CREATE_JOB_PATH = JOB_API_PREFIX
UPLOAD_FILES_PATH = f"{JOB_API_PREFIX}/upload-files"
START_JOB_PATH = JOB_API_PREFIX + "/{job_id}/start"
JOB_STATUS_PATH = JOB_API_PREFIX + "/{job_id}/status"
DOWNLOAD_FILES_PATH = JOB_API_PREFIX + "/{job_id}/download-files"

# =============================================================================
# Proxy Paths and Headers
# =============================================================================

PROXY_FORWARD_PREFIX = "/api/sarvam"
PROXY_UPLOAD_PATH = "/api/upload"
PROXY_DOWNLOAD_PATH = "/api/download"

CREDENTIAL_HEADER = "x-api-key"
REMOTE_AUTH_HEADER = "api-subscription-key"
PROXY_ERROR_HEADER = "X-Proxy-Error"

BLOB_TYPE_HEADER = "x-ms-blob-type"
BLOB_TYPE_BLOCK = "BlockBlob"
# Inbound headers with this prefix are passed on to object storage by the relay
STORAGE_HEADER_PREFIX = "x-ms-"
ARCHIVE_CONTENT_TYPE = "application/zip"
DOCX_CONTENT_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)

# =============================================================================
# Conversion Defaults
# =============================================================================

INPUT_ARCHIVE_NAME = "input.zip"
# Accepted image signatures and the member extension each implies
IMAGE_SIGNATURES: dict[bytes, str] = {
    b"\x89PNG\r\n\x1a\n": ".png",
    b"\xff\xd8\xff": ".jpg",
}

# Recognized-text member extension per output format
RESULT_EXTENSIONS: dict[str, str] = {
    "md": ".md",
    "html": ".html",
}

# =============================================================================
# Progress Checkpoints (percent)
# =============================================================================

PROGRESS_PACKAGING = 5
PROGRESS_CREATING = 10
PROGRESS_REGISTERING_UPLOAD = 20
PROGRESS_UPLOADING = 30
PROGRESS_STARTING = 40
PROGRESS_POLLING_START = 50
PROGRESS_POLLING_END = 80
PROGRESS_REGISTERING_DOWNLOAD = 80
PROGRESS_DOWNLOADING = 85
PROGRESS_RENDERING = 95
PROGRESS_DONE = 100
