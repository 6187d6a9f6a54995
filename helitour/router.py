"""
InboundRouter — decides who wrote an inbound email and hands it on.

Known operator address → OperatorReplyHandler; anything else →
CustomerReplyHandler.  Message content is read only
by the handlers.
"""

import logging

from helitour.communication.ports import InboundEmail
from helitour.domain.errors import ValidationError
from helitour.handlers.base import HandlerConfig, HandlerResult
from helitour.handlers.customer_reply import CustomerReplyHandler, parse_sender
from helitour.handlers.operator_reply import OperatorReplyHandler

log = logging.getLogger(__name__)


class InboundRouter:

    def __init__(self, config: HandlerConfig):
        self._cfg = config
        self.operator_replies = OperatorReplyHandler(config)
        self.customer_replies = CustomerReplyHandler(config)

    async def route(self, message: InboundEmail) -> HandlerResult:
        sender = parse_sender(message.sender)
        if sender is None:
            log.warning("Dropping inbound email with unusable sender %r", message.sender)
            return HandlerResult.failure(
                ValidationError(f"invalid sender address: {message.sender!r}"), action="invalid"
            )

        operator = self._cfg.directory.operator_by_email(sender)
        if operator:
            log.info("Inbound from operator %s subject=%r", operator.key.value, message.subject)
            return await self.operator_replies.handle(
                message.body, sender=sender, subject=message.subject
            )

        if self._cfg.directory.is_operator_or_internal(sender):
            # our own hub/agent mailboxes: never treat as a customer
            log.info("Ignoring inbound email from internal address %s", sender)
            return HandlerResult(success=True, action="ignored", data={"sender": sender})

        log.info("Inbound from customer %s subject=%r", sender, message.subject)
        return await self.customer_replies.handle(message.body, sender, message.subject)
