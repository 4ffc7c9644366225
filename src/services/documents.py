"""
Staff document upload with branch admin notification.
"""

import uuid
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

from core.backend import create_signed_url, get_backend_client, invoke_function, upload_file
from core.config import STAFF_DOCUMENTS_BUCKET


def staff_document_path(staff_id: str, file_name: str) -> str:
    """Unique object path under the staff member's folder."""
    suffix = PurePosixPath(file_name).suffix.lower()
    return f"{staff_id}/{uuid.uuid4().hex}{suffix}"


def upload_staff_document(
    staff_id: str,
    staff_name: str,
    branch_id: str,
    document_type: str,
    file_name: str,
    content: bytes,
    content_type: str,
    client: Any = None,
) -> dict:
    """
    Store a staff document and ask the backend to notify the branch admins.

    The notification is best effort: a failure is reported in the result but
    the upload stands.

    Returns:
        dict with path, signed_url, notified, notification_error
    """
    if not content:
        raise ValueError("Document is empty")

    client = client or get_backend_client()
    path = upload_file(STAFF_DOCUMENTS_BUCKET, staff_document_path(staff_id, file_name), content, content_type, client=client)

    response = invoke_function(
        "create-document-notifications",
        {
            "document_id": path,
            "document_name": document_type,
            "branch_id": branch_id,
            "notify_admins_staff": True,
            "staff_id": staff_id,
            "staff_name": staff_name,
            "upload_timestamp": datetime.now(timezone.utc).isoformat(),
        },
        client=client,
    )
    if response["error"]:
        print(f"  Admin notification failed for {path}: {response['error']}")

    return {
        "path": path,
        "signed_url": create_signed_url(STAFF_DOCUMENTS_BUCKET, path, client=client),
        "notified": response["error"] is None,
        "notification_error": response["error"],
    }
