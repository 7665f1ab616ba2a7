# mailer.py
# SMTP dispatch of RFP invitations + parsing of the reply subject token

import asyncio
import html
import logging
import re
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import List, Optional, Sequence, Tuple

from .config import Settings
from .models import RFP, Vendor

logger = logging.getLogger(__name__)

_RFP_TOKEN = re.compile(r"\[RFP-(\d+)\]")


class Mailer:
    def __init__(self, settings: Settings):
        self.settings = settings

    def _send_sync(self, to: str, subject: str, html_body: str) -> str:
        s = self.settings
        msg = EmailMessage()
        msg["From"] = s.smtp_from
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html_body, subtype="html")

        if s.smtp_port == 465:
            server = smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=30)
        else:
            server = smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=30)
        with server:
            if s.smtp_port != 465:
                server.starttls()
            server.login(s.smtp_user, s.smtp_pass)
            server.send_message(msg)
        return msg["Message-ID"]

    async def send(self, to: str, subject: str, html_body: str) -> Optional[str]:
        """Send one HTML email, returning its Message-ID.

        Without SMTP credentials the email is only logged and None is returned.
        """
        if not self.settings.smtp_configured:
            logger.warning("SMTP credentials not set. Logging email instead of sending.")
            logger.info("[MOCK EMAIL] To: %s, Subject: %s", to, subject)
            return None
        try:
            message_id = await asyncio.to_thread(self._send_sync, to, subject, html_body)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending email to %s: %s", to, e)
            raise
        logger.info("Message sent: %s", message_id)
        return message_id


def render_rfp_email(rfp: RFP) -> Tuple[str, str]:
    subject = f"Request for Proposal: {rfp.title} [RFP-{rfp.id}]"
    budget = f"{rfp.budget:g} {rfp.currency}" if rfp.budget else "Not disclosed"
    deadline = rfp.delivery_deadline.isoformat() if rfp.delivery_deadline else "ASAP"
    description = html.escape(rfp.description).replace("\n", "<br/>")
    body = f"""
<h2>{html.escape(rfp.title)}</h2>
<p>Dear Vendor,</p>
<p>We are inviting you to submit a proposal for the following requirements:</p>
<blockquote style="background: #f9f9f9; padding: 10px; border-left: 4px solid #ccc;">
  {description}
</blockquote>
<p><strong>Budget Indication:</strong> {html.escape(budget)}</p>
<p><strong>Deadline:</strong> {deadline}</p>
<p>Please reply to this email with your proposal details (Price, Delivery timeline, Warranty terms).</p>
<p>Thank you.</p>
"""
    return subject, body


async def dispatch_rfp(mailer: Mailer, rfp: RFP, vendors: Sequence[Vendor]) -> int:
    """Email the RFP to every vendor; returns how many sends succeeded."""
    subject, body = render_rfp_email(rfp)
    results: List = await asyncio.gather(
        *(mailer.send(v.email, subject, body) for v in vendors),
        return_exceptions=True,
    )
    sent = 0
    for vendor, result in zip(vendors, results):
        if isinstance(result, Exception):
            logger.error("RFP %s not delivered to %s: %s", rfp.id, vendor.email, result)
        else:
            sent += 1
    logger.info("RFP %s sent to %d of %d vendors", rfp.id, sent, len(vendors))
    return sent


def find_rfp_id(subject: Optional[str]) -> Optional[int]:
    m = _RFP_TOKEN.search(subject or "")
    return int(m.group(1)) if m else None
