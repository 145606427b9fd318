import logging
from enum import Enum
from typing import Any

from pydantic import ValidationError

from connection_registry import ConnectionRegistry
from exceptions import InvalidMessageError, UnknownConnectionError
from models.schemas import IceCandidatePayload, InboundEvent, SessionDescriptionPayload

logger = logging.getLogger(__name__)

PAYLOAD_MODELS = {
    InboundEvent.OFFER: SessionDescriptionPayload,
    InboundEvent.ANSWER: SessionDescriptionPayload,
    InboundEvent.ICE_CANDIDATE: IceCandidatePayload,
}


class RouteOutcome(str, Enum):
    DELIVERED = "delivered"
    TARGET_UNREACHABLE = "target-unreachable"


class NegotiationRouter:
    """Forwards offer, answer and ice-candidate messages to their target.

    Payloads are never inspected beyond the ``target`` field. Delivery only
    enqueues on the target's outbox, which keeps per-target order.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def route(self, kind, sender_id: str, payload: Any) -> RouteOutcome:
        try:
            kind = InboundEvent(kind)
        except ValueError:
            raise InvalidMessageError(f"Cannot route '{kind}' messages")
        model = PAYLOAD_MODELS.get(kind)
        if model is None:
            raise InvalidMessageError(f"Cannot route '{kind.value}' messages")

        sender = self.registry.get(sender_id)
        if sender.closed:
            raise UnknownConnectionError(sender_id)

        if not isinstance(payload, dict):
            raise InvalidMessageError(f"'{kind.value}' payload must be an object")
        try:
            target_id = model.model_validate(payload).target
        except ValidationError as e:
            raise InvalidMessageError(f"Invalid '{kind.value}' payload: {e.errors()[0]['msg']}")

        target = self.registry.lookup(target_id)
        if target is None:
            logger.debug(f"Dropping {kind.value} from {sender_id}: target {target_id} is not connected")
            return RouteOutcome.TARGET_UNREACHABLE

        data = payload.get("candidate") if kind is InboundEvent.ICE_CANDIDATE else payload
        if not target.deliver(kind.value, data):
            logger.debug(f"Dropping {kind.value} from {sender_id}: target {target_id} is closing")
            return RouteOutcome.TARGET_UNREACHABLE

        logger.debug(f"Routed {kind.value} from {sender_id} to {target_id}")
        return RouteOutcome.DELIVERED
