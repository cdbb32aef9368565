"""Azure Blob Storage backed report collection.

Layout inside the reports container::

    index.json                      newest-first list of every report
    {id}.json                       a single report record
    screenshots/{id}/{filename}     the report's screenshot, if any
"""

import json
import logging
import re
import secrets
import string
from datetime import datetime, timezone

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.identity import ManagedIdentityCredential
from azure.storage.blob import ContainerClient, ContentSettings

from bugreport.config import get_settings
from bugreport.models.report import Report, ReportCreate, ReportList

logger = logging.getLogger(__name__)

INDEX_BLOB = "index.json"
MAX_LIST_SIZE = 200

ID_LENGTH = 15
_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_RE = re.compile(r"^[a-z0-9]{15}$")
_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")

# Lazy singleton, lives for the process lifetime
_container_client: ContainerClient | None = None


def _get_credential() -> ManagedIdentityCredential:
    """Return Managed Identity credential."""
    settings = get_settings()
    return ManagedIdentityCredential(
        client_id=settings.managed_identity_client_id or None
    )


def _get_container_client() -> ContainerClient:
    """Return a shared blob container client for reports (lazy singleton)."""
    global _container_client
    if _container_client is None:
        settings = get_settings()
        account_url = f"https://{settings.azure_storage_account}.blob.core.windows.net"
        _container_client = ContainerClient(
            account_url=account_url,
            container_name=settings.azure_reports_container,
            credential=_get_credential(),
        )
    return _container_client


def new_report_id() -> str:
    """Generate a 15-character lowercase alphanumeric record ID."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(ID_LENGTH))


def is_valid_report_id(report_id: str) -> bool:
    return bool(_ID_RE.match(report_id))


def safe_filename(filename: str | None) -> str:
    """Reduce an uploaded filename to a single safe blob path segment."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_FILENAME_RE.sub("_", name).strip("._")
    return name or "screenshot"


def check_storage_connectivity() -> bool:
    """Lightweight storage connectivity check: lists 1 blob."""
    try:
        client = _get_container_client()
        next(client.list_blobs(results_per_page=1).__iter__())
        return True
    except StopIteration:
        # Empty container still means connected
        return True
    except Exception:
        return False


async def _read_index() -> list[Report]:
    """Read the full report index. Raises on storage errors other than 404."""
    client = _get_container_client()
    try:
        data = client.get_blob_client(INDEX_BLOB).download_blob().readall()
    except ResourceNotFoundError:
        return []
    reports_data = json.loads(data)
    if isinstance(reports_data, dict):
        reports_data = reports_data.get("reports", [])
    return [Report(**r) for r in reports_data]


async def _write_index(reports: list[Report]) -> None:
    client = _get_container_client()
    index_data = json.dumps(
        [r.model_dump(mode="json", by_alias=True) for r in reports], indent=2
    )
    client.get_blob_client(INDEX_BLOB).upload_blob(
        index_data,
        overwrite=True,
        content_settings=ContentSettings(content_type="application/json"),
    )


async def list_reports(limit: int = MAX_LIST_SIZE) -> ReportList:
    """Return up to ``limit`` reports, newest ``created`` first.

    A missing index is an empty store. Other storage errors propagate so
    callers can tell "no reports" from "could not read reports".
    """
    limit = max(1, min(limit, MAX_LIST_SIZE))
    try:
        reports = await _read_index()
    except HttpResponseError as e:
        logger.warning("Azure API error reading report index: %s", e.message)
        raise
    except Exception as e:
        logger.error("Unexpected error reading report index: %s", e)
        raise

    reports.sort(key=lambda r: r.created, reverse=True)
    return ReportList(reports=reports[:limit], total=len(reports))


async def get_report(report_id: str) -> Report | None:
    """Read a single report by ID."""
    if not is_valid_report_id(report_id):
        return None
    client = _get_container_client()
    try:
        data = client.get_blob_client(f"{report_id}.json").download_blob().readall()
        return Report(**json.loads(data))
    except ResourceNotFoundError:
        return None
    except HttpResponseError as e:
        logger.warning("Azure API error reading report %s: %s", report_id, e.message)
        return None
    except Exception as e:
        logger.error("Unexpected error reading report %s: %s", report_id, e)
        return None


async def get_screenshot(report: Report) -> tuple[bytes, str] | None:
    """Return ``(content, content_type)`` for a report's screenshot."""
    if not report.screenshot:
        return None
    client = _get_container_client()
    try:
        blob = client.get_blob_client(f"screenshots/{report.id}/{report.screenshot}")
        downloader = blob.download_blob()
        content = downloader.readall()
        content_type = (
            downloader.properties.content_settings.content_type
            or "application/octet-stream"
        )
        return content, content_type
    except ResourceNotFoundError:
        return None
    except Exception as e:
        logger.warning("Could not read screenshot for report %s: %s", report.id, e)
        return None


def _discard_blobs(names: list[str]) -> None:
    """Remove blobs written by a create that did not reach the index."""
    client = _get_container_client()
    for name in names:
        try:
            client.get_blob_client(name).delete_blob()
        except ResourceNotFoundError:
            pass
        except Exception as e:
            logger.error("Could not remove orphaned blob %s: %s", name, e)


async def create_report(
    submission: ReportCreate,
    screenshot: tuple[str, bytes, str] | None = None,
) -> Report:
    """Persist a new report, its screenshot and the updated index.

    Args:
        submission: Validated incoming report.
        screenshot: Optional ``(filename, content, content_type)``.
    """
    now = datetime.now(timezone.utc)
    report = Report(
        id=new_report_id(),
        category=submission.category,
        severity=submission.severity,
        description=submission.description,
        email=submission.email,
        page_url=submission.page_url,
        user_agent=submission.resolved_user_agent(),
        console_snippet=submission.console_snippet,
        consent=submission.consent,
        created=now,
        updated=now,
    )

    client = _get_container_client()
    written: list[str] = []
    try:
        index = await _read_index()

        if screenshot is not None:
            filename, content, content_type = screenshot
            report.screenshot = safe_filename(filename)
            shot_name = f"screenshots/{report.id}/{report.screenshot}"
            written.append(shot_name)
            client.get_blob_client(shot_name).upload_blob(
                content,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type),
            )

        written.append(f"{report.id}.json")
        client.get_blob_client(f"{report.id}.json").upload_blob(
            report.model_dump_json(by_alias=True, indent=2),
            overwrite=True,
            content_settings=ContentSettings(content_type="application/json"),
        )

        index.insert(0, report)
        await _write_index(index)
    except HttpResponseError as e:
        logger.warning("Azure API error writing report %s: %s", report.id, e.message)
        _discard_blobs(written)
        raise
    except Exception as e:
        logger.error("Unexpected error writing report %s: %s", report.id, e)
        _discard_blobs(written)
        raise

    logger.info(
        "Stored report %s (%s/%s%s)",
        report.id,
        report.category,
        report.severity,
        ", with screenshot" if report.screenshot else "",
    )
    return report
