"""
E-mail notification sink.

Sends one message per batch of new ads: an HTML part built from each ad's
template rendering and a plain-text part with one summary line per ad. The
SMTP connection is opened on first send and kept until shutdown().
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Mapping, Optional

from realty_crawler.exceptions import NotificationError
from realty_crawler.items import Ad
from realty_crawler.notifications.base import Notification

logger = logging.getLogger(__name__)


class EmailNotification(Notification):
    """Mails each batch of new ads to a fixed list of recipients."""

    def __init__(
        self,
        host: str,
        recipients: list[str],
        sender: str,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 30.0,
        smtp_factory=smtplib.SMTP,
    ):
        if not host:
            raise ValueError("SMTP host is required")
        if not recipients:
            raise ValueError("At least one recipient is required")

        self.host = host
        self.port = int(port)
        self.recipients = list(recipients)
        self.sender = sender
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self._smtp_factory = smtp_factory
        self._server = None
        self.messages_sent = 0

    @classmethod
    def from_settings(cls, settings):
        recipients = settings.getlist('NOTIFY_TO')
        return cls(
            host=settings.get('SMTP_HOST'),
            port=settings.getint('SMTP_PORT', 587),
            recipients=recipients,
            sender=settings.get('NOTIFY_FROM') or settings.get('SMTP_USER'),
            user=settings.get('SMTP_USER'),
            password=settings.get('SMTP_PASSWORD'),
            use_tls=settings.getbool('SMTP_USE_TLS', True),
        )

    def build_message(self, new_items: Mapping[str, Ad]) -> EmailMessage:
        ads = list(new_items.values())
        noun = 'Anzeige' if len(ads) == 1 else 'Anzeigen'

        msg = EmailMessage()
        msg['Subject'] = f"{len(ads)} neue {noun}"
        if self.sender:
            msg['From'] = self.sender
        msg['To'] = ', '.join(self.recipients)

        msg.set_content('\n'.join(f"{ad.id}\n{ad.to_summary()}\n" for ad in ads))
        html = '\n'.join(ad.to_html() for ad in ads)
        msg.add_alternative(f"<html><body>\n{html}\n</body></html>", subtype='html')
        return msg

    def _connect(self):
        if self._server is None:
            server = self._smtp_factory(self.host, self.port, timeout=self.timeout)
            try:
                if self.use_tls:
                    server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
            except (smtplib.SMTPException, OSError):
                server.close()
                raise
            self._server = server
            logger.info(f"[NOTIFY:Email] Connected to {self.host}:{self.port}")
        return self._server

    def notify_on_new_items(self, new_items: Mapping[str, Ad]) -> None:
        if not new_items:
            return

        msg = self.build_message(new_items)
        try:
            self._connect().send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"[NOTIFY:Email] Sending {len(new_items)} ads failed: {e}")
            self._server = None
            raise NotificationError(f"SMTP delivery to {self.host} failed: {e}") from e

        self.messages_sent += 1
        logger.info(f"[NOTIFY:Email] Sent {len(new_items)} ads to {len(self.recipients)} recipient(s)")

    def shutdown(self) -> None:
        if self._server is None:
            return
        server, self._server = self._server, None
        try:
            server.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"[NOTIFY:Email] Error closing connection: {e}")
