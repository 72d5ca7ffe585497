"""
Review threads and their message log.

A thread connects one author and one reviewer around one paper; the
(paper, reviewer, author) triple is unique and threads are created lazily
through ``ensure_thread``. Messages are append-only apart from ``is_read``.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime

from journalflow.errors import Forbidden, NotFound, ValidationFailed
from journalflow.identity import Actor
from journalflow.logging import get_logger
from journalflow.models import SENDER_TYPES, Message, ReviewThread
from journalflow.store import EntityStore

logger = get_logger(__name__)


@dataclass
class ThreadView:
    thread: ReviewThread
    messages: list[Message] = field(default_factory=list)
    unread_count: int = 0


def unread_count(messages: list[Message], role: str) -> int:
    """Unread messages sent by the other party."""
    return sum(1 for m in messages if not m.is_read and m.sender_type != role)


def ensure_thread(store: EntityStore, paper_id: int, reviewer_id: int, author_id: int, subject: str) -> ReviewThread:
    key = {"paper_id": paper_id, "reviewer_id": reviewer_id, "author_id": author_id}

    existing = store.get_one("review_threads", key)
    if existing is not None:
        return existing

    thread = store.upsert(
        "review_threads",
        {**key, "subject": subject, "status": "active"},
        list(key),
        ignore_duplicates=True,
    )
    logger.info("thread_opened", thread_id=thread.id, **key)
    return thread


def open_thread(store: EntityStore, paper_id: int, actor: Actor, initial_message: str | None = None) -> ReviewThread:
    """Open (or reuse) the thread between the actor and the other party on a paper.

    Authors reach the lead editor, or failing that the first reviewer who may
    communicate. Reviewers reach the paper's author and must be assigned.
    """
    if not paper_id:
        raise ValidationFailed("Paper ID is required", field="paper_id")

    paper = store.get_one("papers", {"id": paper_id})
    if paper is None:
        raise NotFound("Paper not found", entity="papers", key=paper_id)

    if actor.role == "author":
        if paper.author_id != actor.id:
            raise Forbidden("Only the paper's author can open this thread", actor_id=actor.id, resource="papers")
        candidates = store.get(
            "paper_reviewers",
            {"paper_id": paper_id, "can_communicate": True},
            order_by="is_lead_editor",
            desc=True,
        )
        assignment = next((a for a in candidates if a.reviewer_id is not None), None)
        if assignment is None:
            raise ValidationFailed("No editor assigned to this paper yet", field="paper_id", value=paper_id)
        reviewer_id, author_id = assignment.reviewer_id, actor.id

    elif actor.role == "reviewer":
        assignment = store.get_one(
            "paper_reviewers",
            {"paper_id": paper_id, "reviewer_id": actor.id, "can_communicate": True},
        )
        if assignment is None:
            raise Forbidden("You are not assigned to this paper", actor_id=actor.id, resource="papers")
        reviewer_id, author_id = actor.id, paper.author_id

    else:
        raise Forbidden("Invalid role", actor_id=actor.id, resource="review_threads")

    thread = ensure_thread(store, paper_id, reviewer_id, author_id, f"Discussion: {paper.title}")

    if initial_message:
        post_message(store, thread.id, actor.id, actor.role, initial_message, "feedback")

    return thread


def post_message(
    store: EntityStore,
    thread_id: int,
    sender_id: int,
    sender_role: str,
    content: str,
    message_type: str | None = None,
) -> Message:
    if not thread_id or not content:
        raise ValidationFailed("Thread ID and content required", field="content")
    if sender_role not in SENDER_TYPES:
        raise Forbidden("Only authors and reviewers can post messages", actor_id=sender_id, resource="review_messages")

    thread = store.get_one("review_threads", {"id": thread_id})
    if thread is None:
        raise NotFound("Thread not found", entity="review_threads", key=thread_id)

    party_id = thread.author_id if sender_role == "author" else thread.reviewer_id
    if party_id != sender_id:
        raise Forbidden("You are not a party to this thread", actor_id=sender_id, resource="review_threads")

    message = store.insert(
        "review_messages",
        {
            "thread_id": thread_id,
            "sender_id": sender_id,
            "sender_type": sender_role,
            "content": content,
            "message_type": message_type or "general",
        },
    )
    store.update("review_threads", {"id": thread_id}, {"updated_at": datetime.utcnow()})
    return message


def list_threads(store: EntityStore, party_id: int, role: str) -> list[ThreadView]:
    if role == "author":
        filters = {"author_id": party_id}
    elif role == "reviewer":
        filters = {"reviewer_id": party_id}
    else:
        raise ValidationFailed("Role must be author or reviewer", field="role", value=role)

    threads = store.get("review_threads", filters, order_by="updated_at", desc=True)
    if not threads:
        return []

    by_thread = defaultdict(list)
    for message in store.get("review_messages", {"thread_id": [t.id for t in threads]}, order_by="id"):
        by_thread[message.thread_id].append(message)

    return [
        ThreadView(
            thread=thread,
            messages=by_thread[thread.id],
            unread_count=unread_count(by_thread[thread.id], role),
        )
        for thread in threads
    ]


def mark_thread_read(store: EntityStore, thread_id: int, reader_id: int, reader_role: str) -> int:
    thread = store.get_one("review_threads", {"id": thread_id})
    if thread is None:
        raise NotFound("Thread not found", entity="review_threads", key=thread_id)

    party_id = {"author": thread.author_id, "reviewer": thread.reviewer_id}.get(reader_role)
    if party_id is None or party_id != reader_id:
        raise Forbidden("You are not a party to this thread", actor_id=reader_id, resource="review_threads")

    other = "reviewer" if reader_role == "author" else "author"
    updated = store.update(
        "review_messages",
        {"thread_id": thread_id, "sender_type": other, "is_read": False},
        {"is_read": True},
    )
    return len(updated)
