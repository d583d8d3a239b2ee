"""
Typed event channels for cross-component notifications.

Each channel carries exactly one payload type and is backed by a Django
``Signal``. Subscriptions are explicit: ``subscribe`` hands back an
unsubscribe callable and ``subscribed`` bounds a subscription to a ``with``
block, so no listener outlives the component that registered it.

Usage:
    from apps.core.events import user_updated, UserUpdated

    def on_user_updated(sender, payload, **kwargs):
        ...

    unsubscribe = user_updated.subscribe(on_user_updated)
    user_updated.publish(sender=None, payload=UserUpdated(user_id=1, changes={'role': 'EDITOR'}))
    unsubscribe()
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from django.dispatch import Signal

logger = logging.getLogger(__name__)


Receiver = Callable[..., Any]


@dataclass(frozen=True)
class UserUpdated:
    """A staff user's account or profile changed."""
    user_id: Any
    changes: Dict[str, Any] = field(default_factory=dict)

    @property
    def role_changed(self) -> bool:
        return 'role' in self.changes


@dataclass(frozen=True)
class ArticleTransitioned:
    """An article moved between editorial statuses."""
    article_id: Any
    action: str
    from_status: str
    to_status: str
    at: datetime
    actor_id: Optional[Any] = None


class EventChannel:
    """
    A named channel delivering one payload type to its subscribers.

    Receivers are called as ``receiver(sender=..., payload=..., **kwargs)``.
    Delivery is robust: an exception in one receiver is logged and does not
    reach the publisher or the other receivers.
    """

    def __init__(self, name: str, payload_type: Type):
        self.name = name
        self.payload_type = payload_type
        self._signal = Signal()

    def __repr__(self):
        return f"<EventChannel {self.name} ({self.payload_type.__name__})>"

    def subscribe(self, receiver: Receiver, dispatch_uid: Optional[str] = None) -> Callable[[], bool]:
        """
        Register ``receiver`` and return a callable that removes it.

        Receivers are held strongly; they stay registered until unsubscribed.
        """
        self._signal.connect(receiver, weak=False, dispatch_uid=dispatch_uid)

        def unsubscribe() -> bool:
            return self._signal.disconnect(receiver, dispatch_uid=dispatch_uid)

        return unsubscribe

    @contextmanager
    def subscribed(self, receiver: Receiver):
        """Keep ``receiver`` subscribed for the duration of the block."""
        unsubscribe = self.subscribe(receiver)
        try:
            yield receiver
        finally:
            unsubscribe()

    def has_subscribers(self) -> bool:
        return self._signal.has_listeners()

    def publish(self, sender: Any, payload: Any) -> List[Tuple[Receiver, Any]]:
        """
        Deliver ``payload`` to every subscriber.

        Returns ``[(receiver, result_or_exception), ...]``.

        Raises:
            TypeError: payload is not an instance of the channel's payload type
        """
        if not isinstance(payload, self.payload_type):
            raise TypeError(
                f"{self.name} expects {self.payload_type.__name__}, "
                f"got {type(payload).__name__}"
            )

        responses = self._signal.send_robust(sender=sender, payload=payload)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    "Subscriber %r failed on %s: %s",
                    receiver, self.name, response,
                    exc_info=(type(response), response, response.__traceback__),
                )
        return responses


user_updated = EventChannel('user_updated', UserUpdated)
article_transitioned = EventChannel('article_transitioned', ArticleTransitioned)
