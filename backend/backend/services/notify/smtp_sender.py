from __future__ import annotations

import os
import smtplib
from email.message import EmailMessage as PyEmailMessage
from email.utils import make_msgid, formatdate
from typing import Iterable, Optional, Tuple

SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_TIMEOUT_SECONDS = int(os.getenv("SMTP_TIMEOUT_SECONDS", "30"))


def build_message(
    *,
    from_email: str,
    to_emails: list[str],
    subject: str,
    body_text: str = "",
    body_html: str = "",
    attachments: Optional[list[Tuple[str, bytes, str]]] = None,  # (filename, content, mimetype)
) -> PyEmailMessage:
    msg = PyEmailMessage()
    msg["From"] = from_email
    msg["To"] = ", ".join(to_emails)
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid(domain=None)

    msg.set_content(body_text or " ")
    if body_html:
        msg.add_alternative(body_html, subtype="html")

    for (filename, content, mimetype) in (attachments or []):
        maintype, subtype = (mimetype.split("/", 1) + ["octet-stream"])[:2]
        msg.add_attachment(content, maintype=maintype, subtype=subtype, filename=filename)

    return msg


def send_smtp(
    msg: PyEmailMessage,
    *,
    host: str = SMTP_HOST,
    port: int = SMTP_PORT,
    use_tls: bool = SMTP_USE_TLS,
    username: str = SMTP_USERNAME,
    password: str = SMTP_PASSWORD,
    envelope_from: Optional[str] = None,
    envelope_to: Optional[Iterable[str]] = None,
) -> None:
    envelope_from = envelope_from or msg.get("From")
    tos: list[str] = []
    if envelope_to:
        tos = list(envelope_to)
    else:
        for hdr in ("To", "Cc", "Bcc"):
            v = msg.get(hdr)
            if v:
                tos.extend([x.strip() for x in v.split(",") if x.strip()])
    # Ensure Bcc header not sent
    if msg.get("Bcc"):
        del msg["Bcc"]

    with smtplib.SMTP(host, port, timeout=SMTP_TIMEOUT_SECONDS) as s:
        s.ehlo()
        if use_tls:
            s.starttls()
            s.ehlo()
        if username:
            s.login(username, password)
        s.send_message(msg, from_addr=envelope_from, to_addrs=tos)
