"""Outbound mail: delivery side."""

import logging

from taskflow.mail.templates import render
from taskflow.mail.transport import MailTransport
from taskflow.models import Job, MailMessage
from taskflow.observability.metrics import metrics

logger = logging.getLogger(__name__)


class MailProcessor:
    """Processor for the ``mail`` queue.

    Delivery failures propagate so the work queue retries the job.
    """

    def __init__(self, transport: MailTransport, sender: str):
        self.transport = transport
        self.sender = sender

    async def process(self, job: Job) -> str:
        message = MailMessage.model_validate(job.payload)
        logger.info(f"Sending email to {message.to} [{message.template}]")

        text, html = render(message)
        message_id = await self.transport.deliver(self.sender, message.to, message.subject, text, html)

        metrics.inc_counter("mail.sent")
        logger.info(f"Message sent: {message_id}")
        return message_id
