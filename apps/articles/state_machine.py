"""
Editorial Workflow State Machine.

Defines the closed set of article statuses, the actions that move an
article between them, and the guard that decides whether a given actor may
perform a given action on an article right now.

States:
    DRAFT ──submit──▶ IN_REVIEW ──approve──▶ APPROVED ──publish──▶ PUBLISHED
                        ▲   │                    │                     ▲
                 submit │   │ request_revisions  │ schedule            │ publish_scheduled
                        │   ▼                    ▼                     │ (sweep only)
                   NEEDS_REVISIONS           SCHEDULED ────────────────┘

The guard checks authorization before predecessor state: an actor who may
never perform an action gets a permission error regardless of the article's
status; an actor who may perform it, but not from the current status, gets a
state-conflict error. The guard never mutates anything.

Usage:
    guard = EditorialTransitionGuard()
    target = guard.check(actor, article, TransitionAction.APPROVE)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from apps.core.exceptions import (
    ErrorCode,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from apps.core.models import Role

logger = logging.getLogger(__name__)


class ArticleStatus(Enum):
    """Editorial status of an article."""
    DRAFT = 'DRAFT'
    IN_REVIEW = 'IN_REVIEW'
    NEEDS_REVISIONS = 'NEEDS_REVISIONS'
    APPROVED = 'APPROVED'
    SCHEDULED = 'SCHEDULED'
    PUBLISHED = 'PUBLISHED'

    @classmethod
    def from_string(cls, value: str) -> 'ArticleStatus':
        """Convert string to ArticleStatus."""
        for state in cls:
            if state.value == value:
                return state
        raise ValueError(f"Unknown status: {value}")

    @classmethod
    def choices(cls):
        return [(state.value, state.label) for state in cls]

    @property
    def label(self) -> str:
        return self.value.replace('_', ' ').title()

    @property
    def is_terminal(self) -> bool:
        """PUBLISHED is the end of the editorial workflow."""
        return self is ArticleStatus.PUBLISHED

    @property
    def is_editable(self) -> bool:
        """Content may change in every status except SCHEDULED."""
        return self is not ArticleStatus.SCHEDULED


class TransitionAction(Enum):
    """Actions that change an article's status."""
    SUBMIT = 'submit'
    APPROVE = 'approve'
    REQUEST_REVISIONS = 'request_revisions'
    PUBLISH = 'publish'
    SCHEDULE = 'schedule'
    PUBLISH_SCHEDULED = 'publish_scheduled'

    @classmethod
    def from_string(cls, value: str) -> 'TransitionAction':
        for action in cls:
            if action.value == value:
                return action
        raise ValueError(f"Unknown action: {value}")


@dataclass(frozen=True)
class Actor:
    """
    Whoever requests a transition.

    ``user_id`` is None only for the system actor (the publication sweep).
    """
    user_id: Optional[Any]
    role: Optional[Role]
    is_system: bool = False

    @classmethod
    def for_user(cls, user) -> 'Actor':
        from apps.core.permissions import get_user_role
        return cls(user_id=user.pk, role=get_user_role(user))

    @property
    def is_editor(self) -> bool:
        return self.role in (Role.EDITOR, Role.ADMIN)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def is_author_of(self, article) -> bool:
        return self.user_id is not None and article.author_id == self.user_id


SYSTEM_ACTOR = Actor(user_id=None, role=None, is_system=True)


@dataclass(frozen=True)
class Transition:
    """One row of the transition table."""
    action: TransitionAction
    sources: FrozenSet[ArticleStatus]
    target: ArticleStatus
    roles: FrozenSet[Role] = frozenset()
    author_may: bool = False
    system_only: bool = False

    def permits(self, actor: Actor, article) -> bool:
        """Whether ``actor`` is ever allowed to perform this action on ``article``."""
        if self.system_only:
            return actor.is_system
        if actor.is_system:
            return False
        if actor.role in self.roles:
            return True
        return self.author_may and actor.is_author_of(article)


EDITORIAL_ROLES = frozenset({Role.EDITOR, Role.ADMIN})

TRANSITIONS: Dict[TransitionAction, Transition] = {
    TransitionAction.SUBMIT: Transition(
        action=TransitionAction.SUBMIT,
        sources=frozenset({ArticleStatus.DRAFT, ArticleStatus.NEEDS_REVISIONS}),
        target=ArticleStatus.IN_REVIEW,
        roles=EDITORIAL_ROLES,
        author_may=True,
    ),
    TransitionAction.APPROVE: Transition(
        action=TransitionAction.APPROVE,
        sources=frozenset({ArticleStatus.IN_REVIEW}),
        target=ArticleStatus.APPROVED,
        roles=EDITORIAL_ROLES,
    ),
    TransitionAction.REQUEST_REVISIONS: Transition(
        action=TransitionAction.REQUEST_REVISIONS,
        sources=frozenset({ArticleStatus.IN_REVIEW}),
        target=ArticleStatus.NEEDS_REVISIONS,
        roles=EDITORIAL_ROLES,
    ),
    TransitionAction.PUBLISH: Transition(
        action=TransitionAction.PUBLISH,
        sources=frozenset({ArticleStatus.APPROVED}),
        target=ArticleStatus.PUBLISHED,
        roles=EDITORIAL_ROLES,
    ),
    TransitionAction.SCHEDULE: Transition(
        action=TransitionAction.SCHEDULE,
        sources=frozenset({ArticleStatus.APPROVED}),
        target=ArticleStatus.SCHEDULED,
        roles=EDITORIAL_ROLES,
    ),
    TransitionAction.PUBLISH_SCHEDULED: Transition(
        action=TransitionAction.PUBLISH_SCHEDULED,
        sources=frozenset({ArticleStatus.SCHEDULED}),
        target=ArticleStatus.PUBLISHED,
        system_only=True,
    ),
}


def valid_targets(status: ArticleStatus) -> FrozenSet[ArticleStatus]:
    """Every status reachable from ``status`` in one step, by anyone."""
    return frozenset(t.target for t in TRANSITIONS.values() if status in t.sources)


class TransitionPermissionError(PermissionDeniedError):
    """The actor may not perform this transition."""
    default_detail = "You are not allowed to perform this transition"


class TransitionConflictError(StateConflictError):
    """The article's current status is not a valid predecessor."""
    default_detail = "Transition not allowed from the current status"


class EditorialTransitionGuard:
    """
    Authorization + state-validity check for article status changes and
    editorial comments.
    """

    def __init__(self, transitions: Optional[Dict[TransitionAction, Transition]] = None):
        self.transitions = transitions or TRANSITIONS

    def check(self, actor: Actor, article, action) -> ArticleStatus:
        """
        Validate a requested transition.

        Args:
            actor: Who is asking
            article: Anything with ``status`` and ``author_id``
            action: TransitionAction or its string value

        Returns:
            The status the article would move to.

        Raises:
            TransitionPermissionError: actor may not perform the action
            TransitionConflictError: article's status is not a valid predecessor
        """
        if isinstance(action, str):
            try:
                action = TransitionAction.from_string(action)
            except ValueError:
                raise ValidationError(f"Unknown transition: {action}", field='action') from None

        transition = self.transitions[action]
        current = ArticleStatus.from_string(article.status)

        if not transition.permits(actor, article):
            logger.info(
                "Transition %s on article %s denied for user %s (role %s)",
                action.value, article.pk, actor.user_id, actor.role,
            )
            raise TransitionPermissionError(
                self._permission_message(transition),
                details={'action': action.value, 'role': actor.role.value if actor.role else None},
            )

        if current not in transition.sources:
            raise TransitionConflictError(
                f"Cannot {action.value.replace('_', ' ')} an article in {current.value} status",
                details={
                    'action': action.value,
                    'current_status': current.value,
                    'allowed_from': sorted(s.value for s in transition.sources),
                },
            )

        return transition.target

    def allowed_actions(self, actor: Actor, article) -> List[str]:
        """Actions that would pass ``check`` right now."""
        current = ArticleStatus.from_string(article.status)
        return [
            action.value
            for action, transition in self.transitions.items()
            if current in transition.sources and transition.permits(actor, article)
        ]

    def check_comment(self, actor: Actor, article, is_internal: bool, content: str) -> str:
        """
        Validate creation of an editorial comment.

        Only editors and admins write editorial comments, and only while the
        article is in NEEDS_REVISIONS. Returns the stripped comment text.

        Raises:
            TransitionPermissionError: actor is not an editor/admin
            TransitionConflictError: article is not in NEEDS_REVISIONS
            ValidationError: empty comment
        """
        if actor.is_system or not actor.is_editor:
            kind = 'internal notes' if is_internal else 'revision notes'
            raise TransitionPermissionError(
                f"Only editors and admins can write {kind}",
                code=ErrorCode.PERMISSION_DENIED,
            )

        current = ArticleStatus.from_string(article.status)
        if current is not ArticleStatus.NEEDS_REVISIONS:
            raise TransitionConflictError(
                f"Article is not in {ArticleStatus.NEEDS_REVISIONS.value} status",
                details={'current_status': current.value},
            )

        text = (content or '').strip()
        if not text:
            raise ValidationError("Comment text is required", field='comment')
        return text

    @staticmethod
    def _permission_message(transition: Transition) -> str:
        if transition.system_only:
            return "Scheduled articles are published only by the publication scheduler"
        if transition.author_may:
            return "Only the author, editors and admins can perform this transition"
        return "Only editors and admins can perform this transition"
