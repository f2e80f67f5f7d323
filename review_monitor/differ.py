from dataclasses import dataclass, field

from review_monitor.models import Change, Message, Transition


@dataclass
class DiffEntry:
    change: Change
    transition: Transition
    prior: Change | None = None    # set only for CONTINUING


@dataclass
class SnapshotDiff:
    entries: list[DiffEntry] = field(default_factory=list)
    disappeared: list[Change] = field(default_factory=list)


def reorder_changes(changes: list[Change]) -> list[Change]:
    """
    Stable two-way partition: the local user's own changes first, then
    everybody else's, each group in the order the server returned it.
    """
    ours   = [c for c in changes if c.is_ours]
    others = [c for c in changes if not c.is_ours]
    return ours + others


def diff_snapshots(current: list[Change], previous: list[Change]) -> SnapshotDiff:
    """
    Classify every key of `previous` and `current` as NEW, CONTINUING or
    DISAPPEARED.

    Matching is a linear scan by `id`; a personal review queue holds tens of
    changes, so the quadratic worst case never matters. Callers drop changes
    without an id before diffing.
    """
    result = SnapshotDiff()

    for change in current:
        prior = next((old for old in previous if old.id == change.id), None)
        if prior is None:
            result.entries.append(DiffEntry(change, Transition.NEW))
        else:
            result.entries.append(DiffEntry(change, Transition.CONTINUING, prior))

    current_ids = {c.id for c in current}
    result.disappeared = [old for old in previous if old.id not in current_ids]
    return result


def new_messages(change: Change, prior: Change | None) -> list[Message]:
    """
    Messages appended since `prior` was fetched.

    Gerrit's message log is append-only, so everything past the prior
    count is new. Without a prior snapshot every message counts.
    """
    if prior is None:
        return list(change.messages)
    return list(change.messages[len(prior.messages):])
