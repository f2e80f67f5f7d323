from dataclasses import dataclass, field
from enum import Enum, IntEnum


class ReviewScore(IntEnum):
    """Code-Review vote. ZERO means the message carried no score."""
    MINUS_TWO = -2
    MINUS_ONE = -1
    ZERO = 0
    PLUS_ONE = 1
    PLUS_TWO = 2

    @property
    def label(self) -> str:
        return f"Code-Review{self.value:+d}"


class Transition(Enum):
    NEW = "new"
    CONTINUING = "continuing"
    DISAPPEARED = "disappeared"


class NotificationKind(Enum):
    NEW_INCOMING_REVIEW = "new_incoming_review"
    MERGE_CONFLICT = "merge_conflict"
    REVIEW_EVENT = "review_event"
    MERGED_BY_OTHER = "merged_by_other"


@dataclass(frozen=True)
class Author:
    name: str
    is_local_user: bool = False
    account_id: int | None = None
    username: str | None = None


@dataclass(frozen=True)
class Message:
    """One entry of a change's message log. Score and comments live in `text`."""
    author: Author
    text: str


@dataclass(frozen=True)
class Change:
    """
    One reviewable unit as returned by a single fetch.

    Frozen: a snapshot owns its changes and nothing mutates them after
    parsing. `id` is the stable identity used for diffing; `change_id` is
    the secondary key accepted by the detail endpoint.
    """
    id: str
    number: int | None
    subject: str
    owner: Author
    messages: tuple[Message, ...] = ()
    status: str = "NEW"            # NEW | MERGED | ABANDONED
    mergeable: bool | None = None  # False means merge conflict
    change_id: str | None = None
    work_in_progress: bool = False
    submitter: Author | None = None

    @property
    def state_key(self) -> str:
        return self.id

    @property
    def is_ours(self) -> bool:
        return self.owner.is_local_user

    @property
    def is_merged(self) -> bool:
        return self.status == "MERGED"

    @property
    def merged_by(self) -> str | None:
        return self.submitter.name if self.submitter else None

    @property
    def has_merge_conflict(self) -> bool:
        return self.mergeable is False

    def raises_merge_conflict(self, prior: "Change | None") -> bool:
        """True only when the conflict appeared between `prior` and now."""
        if prior is None:
            return False
        return self.has_merge_conflict and not prior.has_merge_conflict

    def has_unread_signal(self) -> bool:
        if not self.messages:
            return True
        return not self.messages[-1].author.is_local_user

    def local_user_participates(self) -> bool:
        return self.is_ours or any(m.author.is_local_user for m in self.messages)


@dataclass
class ViewEntry:
    """Presentation-side state for one visible change."""
    change: Change
    has_new_event: bool = False

    @property
    def key(self) -> str:
        return self.change.state_key

    @property
    def is_ours_not_ready(self) -> bool:
        return self.change.is_ours and self.change.work_in_progress

    def reset_event(self) -> None:
        self.has_new_event = False


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    title: str
    body: str
    image: str | None = None
    action_key: str | None = None   # change id, used to find the entry again
    change_number: int | None = None


@dataclass
class Decision:
    notifications: list[Notification] = field(default_factory=list)
    mark_unread: bool = False

    @property
    def fired(self) -> bool:
        return bool(self.notifications) or self.mark_unread
