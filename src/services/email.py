"""
Email sending for rota conflict reports.
"""

import traceback
from datetime import date
from pathlib import Path

from msgraph.generated.models.body_type import BodyType
from msgraph.generated.models.email_address import EmailAddress
from msgraph.generated.models.file_attachment import FileAttachment
from msgraph.generated.models.item_body import ItemBody
from msgraph.generated.models.message import Message
from msgraph.generated.models.recipient import Recipient
from msgraph.generated.users.item.send_mail.send_mail_post_request_body import (
    SendMailPostRequestBody,
)

from core.config import ERROR_EMAIL, FROM_EMAIL, TO_EMAIL
from core.graph_client import get_graph_client
from services.reports import format_conflicts_for_email, format_date_display

ATTACHMENT_CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".csv": "text/csv",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


async def send_conflict_report_email(
    report_path: Path, events: list[dict], start_date: date, end_date: date
):
    """Send the conflict digest with the exported calendar attached."""
    graph = get_graph_client()
    subject = (
        f"Rota Conflicts {format_date_display(start_date)} - {format_date_display(end_date)}"
    )
    body_text = format_conflicts_for_email(events, start_date, end_date)

    with open(report_path, "rb") as f:
        attachment_bytes = f.read()

    attachment = FileAttachment(
        odata_type="#microsoft.graph.fileAttachment",
        name=report_path.name,
        content_type=ATTACHMENT_CONTENT_TYPES.get(report_path.suffix, "application/octet-stream"),
        content_bytes=attachment_bytes,
    )

    message = Message(
        subject=subject,
        body=ItemBody(content_type=BodyType.Text, content=body_text),
        to_recipients=[Recipient(email_address=EmailAddress(address=TO_EMAIL))],
        attachments=[attachment],
    )

    request_body = SendMailPostRequestBody(message=message, save_to_sent_items=True)

    await graph.users.by_user_id(FROM_EMAIL).send_mail.post(request_body)
    print(f"Sent conflict report email to {TO_EMAIL}")


async def send_error_email(error: Exception):
    """Send error notification email; failures are reported, not raised."""
    subject = "Rota Conflict Report - Script Error"
    body_text = f"An error occurred while generating the rota conflict report:\n\n{traceback.format_exc()}"

    message = Message(
        subject=subject,
        body=ItemBody(content_type=BodyType.Text, content=body_text),
        to_recipients=[Recipient(email_address=EmailAddress(address=ERROR_EMAIL))],
    )

    request_body = SendMailPostRequestBody(message=message, save_to_sent_items=True)

    try:
        graph = get_graph_client()
        await graph.users.by_user_id(FROM_EMAIL).send_mail.post(request_body)
        print(f"Sent error email to {ERROR_EMAIL}")
    except Exception as e:
        print(f"Failed to send error email for '{error}': {e}")
