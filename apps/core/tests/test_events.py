"""
Tests for typed event channels.
"""

import logging
from dataclasses import FrozenInstanceError

import pytest
from django.utils import timezone

from apps.core.events import (
    ArticleTransitioned,
    EventChannel,
    UserUpdated,
    article_transitioned,
    user_updated,
)


@pytest.fixture
def channel():
    return EventChannel('test_channel', UserUpdated)


class TestEventChannel:

    def test_delivers_payload(self, channel):
        received = []
        channel.subscribe(lambda sender, payload, **kw: received.append((sender, payload)))

        payload = UserUpdated(user_id=1, changes={'role': 'EDITOR'})
        channel.publish(sender='tests', payload=payload)

        assert received == [('tests', payload)]

    def test_rejects_wrong_payload_type(self, channel):
        with pytest.raises(TypeError):
            channel.publish(sender=None, payload={'user_id': 1})

    def test_unsubscribe(self, channel):
        received = []
        unsubscribe = channel.subscribe(lambda sender, payload, **kw: received.append(payload))

        assert unsubscribe() is True
        channel.publish(sender=None, payload=UserUpdated(user_id=1))

        assert received == []
        assert not channel.has_subscribers()

    def test_subscribed_context_manager(self, channel):
        received = []

        def receiver(sender, payload, **kwargs):
            received.append(payload.user_id)

        with channel.subscribed(receiver):
            assert channel.has_subscribers()
            channel.publish(sender=None, payload=UserUpdated(user_id=1))

        channel.publish(sender=None, payload=UserUpdated(user_id=2))
        assert received == [1]

    def test_failing_subscriber_does_not_break_others(self, channel, caplog):
        received = []

        def broken(sender, payload, **kwargs):
            raise RuntimeError('boom')

        channel.subscribe(broken)
        channel.subscribe(lambda sender, payload, **kw: received.append(payload.user_id))

        with caplog.at_level(logging.ERROR, logger='apps.core.events'):
            responses = channel.publish(sender=None, payload=UserUpdated(user_id=5))

        assert received == [5]
        assert any(isinstance(result, RuntimeError) for _, result in responses)
        assert 'test_channel' in caplog.text

    def test_channels_are_independent(self):
        other = EventChannel('other', UserUpdated)
        received = []

        with other.subscribed(lambda sender, payload, **kw: received.append(payload)):
            user_updated.publish(sender=None, payload=UserUpdated(user_id=3))

        assert received == []


class TestPayloads:

    def test_role_changed(self):
        assert UserUpdated(user_id=1, changes={'role': 'ADMIN'}).role_changed
        assert not UserUpdated(user_id=1, changes={'bio': 'Court reporter'}).role_changed

    def test_article_transitioned_is_frozen(self):
        payload = ArticleTransitioned(
            article_id='a', action='approve', from_status='IN_REVIEW',
            to_status='APPROVED', at=timezone.now(),
        )
        with pytest.raises(FrozenInstanceError):
            payload.action = 'publish'

    def test_article_channel_type(self):
        with pytest.raises(TypeError):
            article_transitioned.publish(sender=None, payload=UserUpdated(user_id=1))
