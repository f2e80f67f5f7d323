
# Turns Gerrit REST payloads into Change objects and reads review signals
# out of message text.

# Only the ChangeInfo fields the poll cycle looks at are mapped. Everything
# else in the payload is ignored.
#
# Review signals live in the message body Gerrit writes on every review:
#     "Patch Set 3: Code-Review+2\n\n(2 comments)"

import re

from review_monitor.models import Author, Change, Message, ReviewScore

_SCORE_RE   = re.compile(r"\bCode-Review([+-][12]|0)\b")
_COMMENT_RE = re.compile(r"\((\d+) comments?\)", re.IGNORECASE)


def parse_review_score(message: Message) -> ReviewScore:
    """Last Code-Review vote in the message, ZERO if there is none."""
    votes = _SCORE_RE.findall(message.text)
    if not votes:
        return ReviewScore.ZERO
    try:
        return ReviewScore(int(votes[-1]))
    except ValueError:
        return ReviewScore.ZERO


def parse_comment_count(message: Message) -> int:
    match = _COMMENT_RE.search(message.text)
    return int(match.group(1)) if match else 0


def parse_author(data: dict | None, local_user: str) -> Author:
    if not data:
        return Author(name="Gerrit Code Review")
    name     = data.get("name") or data.get("username") or data.get("email") or ""
    username = data.get("username")
    is_local = bool(local_user) and local_user in (username, data.get("email"), data.get("name"))
    return Author(
        name=name,
        is_local_user=is_local,
        account_id=data.get("_account_id"),
        username=username,
    )


def parse_change(data: dict, local_user: str) -> Change:
    """
    Map one ChangeInfo dict. A payload without an `id` yields a Change with
    an empty id; the poll cycle drops those before diffing.
    """
    messages = tuple(
        Message(
            author=parse_author(m.get("author"), local_user),
            text=m.get("message", ""),
        )
        for m in data.get("messages", [])
    )
    submitter = data.get("submitter")

    return Change(
        id=data.get("id") or "",
        number=data.get("_number"),
        subject=data.get("subject", ""),
        owner=parse_author(data.get("owner"), local_user),
        messages=messages,
        status=data.get("status", "NEW"),
        mergeable=data.get("mergeable"),
        change_id=data.get("change_id"),
        work_in_progress=bool(data.get("work_in_progress", False)),
        submitter=parse_author(submitter, local_user) if submitter else None,
    )


def parse_change_list(data: list, local_user: str) -> list[Change]:
    return [parse_change(item, local_user) for item in data if isinstance(item, dict)]
