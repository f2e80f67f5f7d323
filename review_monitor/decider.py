
# NotificationDecider: turns one change's transition into notifications.

# Pure with respect to I/O: it only reads the change, its prior version and
# the user's toggles. First-load suppression and delivery are the poll
# cycle's job (see watcher.py), so a decision can always be computed and
# then thrown away.

import logging

from review_monitor.config import Preferences
from review_monitor.differ import new_messages
from review_monitor.models import (
    Author,
    Change,
    Decision,
    Message,
    Notification,
    NotificationKind,
    ReviewScore,
    Transition,
)
from review_monitor.parser import parse_comment_count, parse_review_score

log = logging.getLogger(__name__)


def combine_review_events(messages: list[Message]) -> dict[Author, tuple[ReviewScore, int]]:
    """
    Group review signals by message author, keeping first-seen author order.

    The latest score an author gave wins; comment counts add up.
    """
    events: dict[Author, tuple[ReviewScore, int]] = {}
    for message in messages:
        score, comments = events.get(message.author, (ReviewScore.ZERO, 0))
        parsed = parse_review_score(message)
        if parsed is not ReviewScore.ZERO:
            score = parsed
        events[message.author] = (score, comments + parse_comment_count(message))
    return events


def review_event_title(author: Author, score: ReviewScore, comments: int) -> str:
    title = author.name
    if score is not ReviewScore.ZERO:
        title += f" {score.label}"
    if comments:
        title += f" ({comments} {'Comment' if comments == 1 else 'Comments'})"
    return title


class NotificationDecider:

    def __init__(self, preferences: Preferences) -> None:
        self.preferences = preferences

    def should_listen_review_events(self, change: Change) -> bool:
        """Only follow review chatter on changes the user owns or has posted on."""
        return self.preferences.notify_review_events and change.local_user_participates()

    def decide(
        self,
        change: Change,
        transition: Transition,
        prior: Change | None = None,
    ) -> Decision:
        """
        Decide notifications for one change in one cycle.

        A NEW change from someone else only notifies while it still carries
        an unread signal; acknowledgements live in the ledger, which never
        holds keys for changes absent from the previous cycle.
        """
        decision = Decision()

        if transition is Transition.NEW and not change.is_ours:
            if (
                self.preferences.notify_new_incoming_review
                and change.has_unread_signal()
            ):
                decision.notifications.append(self._notification(
                    NotificationKind.NEW_INCOMING_REVIEW,
                    f"New Review by {change.owner.name}",
                    change,
                    image="Avatar",
                ))

        if transition is Transition.CONTINUING and change.is_ours and change.raises_merge_conflict(prior):
            decision.mark_unread = True
            if self.preferences.notify_merge_conflict:
                decision.notifications.append(self._notification(
                    NotificationKind.MERGE_CONFLICT, "Merge Conflict", change, image="Conflict",
                ))

        if self.should_listen_review_events(change):
            decision.notifications.extend(self._review_events(change, prior))

        if decision.notifications:
            log.debug("Change %s (%s): %d notification(s)", change.number, transition.value, len(decision.notifications))
        return decision

    def _review_events(self, change: Change, prior: Change | None) -> list[Notification]:
        messages = new_messages(change, prior)
        if not messages:
            return []

        notifications: list[Notification] = []
        for author, (score, comments) in combine_review_events(messages).items():
            if author.is_local_user or (score is ReviewScore.ZERO and comments == 0):
                continue
            image = f"Review{score.value:+d}" if score is not ReviewScore.ZERO else "Comment"
            notifications.append(self._notification(
                NotificationKind.REVIEW_EVENT,
                review_event_title(author, score, comments),
                change,
                image=image,
            ))
        return notifications

    @staticmethod
    def _notification(kind: NotificationKind, title: str, change: Change, image: str | None = None) -> Notification:
        return Notification(
            kind=kind,
            title=title,
            body=change.subject,
            image=image,
            action_key=change.id,
            change_number=change.number,
        )


def merged_by_other_notification(change: Change) -> Notification:
    return NotificationDecider._notification(
        NotificationKind.MERGED_BY_OTHER, "My Review Merged!", change, image="Merged",
    )
