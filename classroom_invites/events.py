"""Typed notifications for invite activity.

Services publish events on an explicitly passed :class:`EventBus`; callers
subscribe per event type. Handlers run synchronously in publish order.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InviteIssued:
    code: str
    class_id: int
    issued_by_id: int


@dataclass(frozen=True)
class InviteRedeemed:
    code: str
    class_id: int
    user_id: int
    role: str


@dataclass(frozen=True)
class RedemptionRejected:
    code: str
    user_id: int
    reason: str
    message: str


Event = InviteIssued | InviteRedeemed | RedemptionRejected
E = TypeVar("E", InviteIssued, InviteRedeemed, RedemptionRejected)


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``.

        Returns:
            A callable that removes the subscription.
        """
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    def publish(self, event: Event) -> None:
        for handler in list(self._handlers[type(event)]):
            handler(event)


def log_event(event: Event) -> None:
    if isinstance(event, RedemptionRejected):
        logger.info("Redemption of %s by user %s rejected: %s", event.code, event.user_id, event.reason)
    else:
        logger.info("%s: %s", type(event).__name__, event)


def create_event_bus() -> EventBus:
    """Build the application bus with the logging subscriber attached."""
    bus = EventBus()
    for event_type in (InviteIssued, InviteRedeemed, RedemptionRejected):
        bus.subscribe(event_type, log_event)
    return bus
