"""
Supply request delivery.

The email (with the workbook attached) is the request of record; the chat
webhook is best effort and its failures are only logged.
"""

from __future__ import annotations

import html
import logging
import os
from dataclasses import dataclass
from datetime import datetime

from services.notify import webhook
from services.notify.smtp_sender import build_message, send_smtp
from services.ordering.workbook import XLSX_MIME, attachment_name, build_request_workbook

logger = logging.getLogger(__name__)

REQUESTS_FROM_EMAIL = os.getenv("REQUESTS_FROM_EMAIL", "Supply Ordering <noreply@example.com>")
REQUESTS_TO_EMAIL = os.getenv("REQUESTS_TO_EMAIL", "supervisor@example.com")
SLACK_CHANNEL_EMAIL = os.getenv("SLACK_CHANNEL_EMAIL", "")

SUMMARY_LIMIT = 20


@dataclass
class SupplyRequest:
    site_name: str
    employee_name: str
    items: list[dict]
    submitted_at: datetime

    @property
    def order_lines(self) -> list[dict]:
        return [i for i in self.items if (i.get("order_qty") or 0) > 0]


def recipients() -> list[str]:
    out = [REQUESTS_TO_EMAIL]
    if SLACK_CHANNEL_EMAIL:
        out.append(SLACK_CHANNEL_EMAIL)
    return out


def email_html(req: SupplyRequest) -> str:
    return (
        "<h2>New Supply Request</h2>"
        f"<p><strong>Site:</strong> {html.escape(req.site_name)}</p>"
        f"<p><strong>Employee:</strong> {html.escape(req.employee_name)}</p>"
        f"<p><strong>Submitted:</strong> {req.submitted_at.strftime('%Y-%m-%d %H:%M:%S')}</p>"
        f"<p><strong>Total Items:</strong> {len(req.items)}</p>"
        f"<p><strong>Items to Order:</strong> {len(req.order_lines)}</p>"
        "<br><p>Please find the detailed Excel sheet attached.</p>"
    )


def email_text(req: SupplyRequest) -> str:
    return (
        f"New Supply Request\n\n"
        f"Site: {req.site_name}\n"
        f"Employee: {req.employee_name}\n"
        f"Total Items: {len(req.items)}\n"
        f"Items to Order: {len(req.order_lines)}\n\n"
        "Please find the detailed Excel sheet attached.\n"
    )


def order_summary(req: SupplyRequest) -> str:
    lines = req.order_lines
    text = "\n".join(f"• {i['name']} ({i['sku']}) x {i['order_qty']}" for i in lines[:SUMMARY_LIMIT])
    if len(lines) > SUMMARY_LIMIT:
        text += "\n...and more items"
    return text


def slack_message(req: SupplyRequest) -> dict:
    submitted = req.submitted_at.strftime("%Y-%m-%d %H:%M:%S")
    return {
        "text": "New supply request submitted",
        "blocks": [
            {"type": "header", "text": {"type": "plain_text", "text": "📋 New Supply Request"}},
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Site:*\n{req.site_name}"},
                    {"type": "mrkdwn", "text": f"*Employee:*\n{req.employee_name}"},
                ],
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Total Items:*\n{len(req.items)}"},
                    {"type": "mrkdwn", "text": f"*Items to Order:*\n{len(req.order_lines)}"},
                ],
            },
            {"type": "section", "text": {"type": "mrkdwn", "text": f"*Order Summary:*\n{order_summary(req)}"}},
            {"type": "context", "elements": [{"type": "mrkdwn", "text": f"Submitted at {submitted}"}]},
        ],
    }


def send_request(req: SupplyRequest) -> dict:
    """Email the request workbook, then notify the chat channel if configured.

    SMTP errors propagate to the caller.
    """
    workbook = build_request_workbook(req.site_name, req.employee_name, req.submitted_at, req.items)
    filename = attachment_name(req.site_name, req.submitted_at)
    to = recipients()

    msg = build_message(
        from_email=REQUESTS_FROM_EMAIL,
        to_emails=to,
        subject=f"Supply Request - {req.site_name} - {req.employee_name}",
        body_text=email_text(req),
        body_html=email_html(req),
        attachments=[(filename, workbook, XLSX_MIME)],
    )
    send_smtp(msg)
    logger.info("supply request emailed site=%s employee=%s to=%s", req.site_name, req.employee_name, to)

    slack_ok = None
    if webhook.SLACK_WEBHOOK_URL:
        slack_ok, err = webhook.post_json(webhook.SLACK_WEBHOOK_URL, slack_message(req))
        if not slack_ok:
            logger.warning("slack notification failed: %s", err)

    return {"attachment": filename, "recipients": to, "slack_notified": slack_ok}
