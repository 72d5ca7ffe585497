"""
Paper revisions.

Authors submit numbered revisions; assigned reviewers adjudicate them.
Version numbers per paper run 1, 2, 3, ... with no gaps. Concurrent
submissions for one paper collide on the unique (paper_id, version_number)
constraint and the loser recomputes its number and retries.

Status transitions are deliberately loose: a reviewer may move a revision
to any known status, including back out of ``approved`` or ``rejected``.
"""

from journalflow.config import get_settings
from journalflow.errors import Conflict, Forbidden, NotFound, ValidationFailed
from journalflow.identity import Actor
from journalflow.logging import get_logger
from journalflow.models import REVISION_STATUSES, Revision
from journalflow.notifications import Notifier, deliver
from journalflow.store import EntityStore

logger = get_logger(__name__)


def can_transition(current: str, new: str) -> bool:
    return new == current or new in REVISION_STATUSES


def next_version_number(store: EntityStore, paper_id: int) -> int:
    latest = store.get("paper_revisions", {"paper_id": paper_id}, order_by="version_number", desc=True, limit=1)
    return (latest[0].version_number if latest else 0) + 1


def submit_revision(
    store: EntityStore,
    notifier: Notifier,
    paper_id: int,
    file_url: str,
    cover_letter: str | None,
    actor: Actor,
    retry_limit: int | None = None,
) -> Revision:
    if not paper_id or not file_url:
        raise ValidationFailed("Paper ID and file URL are required", field="file_url")

    paper = store.get_one("papers", {"id": paper_id})
    if paper is None:
        raise NotFound("Paper not found", entity="papers", key=paper_id)

    if actor.role == "author" and paper.author_id != actor.id:
        raise Forbidden("Not authorized", actor_id=actor.id, resource="papers")

    attempts = retry_limit or get_settings().REVISION_RETRY_LIMIT
    for attempt in range(1, attempts + 1):
        version = next_version_number(store, paper_id)
        try:
            revision = store.insert(
                "paper_revisions",
                {
                    "paper_id": paper_id,
                    "version_number": version,
                    "file_url": file_url,
                    "cover_letter": cover_letter or None,
                    "status": "submitted",
                },
            )
            break
        except Conflict:
            logger.warning("revision_version_taken", paper_id=paper_id, version_number=version, attempt=attempt)
    else:
        raise Conflict("Could not allocate a revision number, try again", collection="paper_revisions")

    store.update("papers", {"id": paper_id}, {"current_revision_id": revision.id})
    logger.info("revision_submitted", paper_id=paper_id, revision_id=revision.id, version_number=revision.version_number)

    for assignment in store.get("paper_reviewers", {"paper_id": paper_id, "status": ["assigned", "accepted", "completed"]}):
        deliver(
            notifier,
            assignment.reviewer_email,
            "revision_submitted",
            {"title": paper.title, "paper_id": paper_id, "version_number": revision.version_number},
        )

    return revision


def update_revision(
    store: EntityStore,
    notifier: Notifier,
    revision_id: int,
    actor: Actor,
    status: str | None = None,
    reviewer_feedback: str | None = None,
) -> Revision:
    """Adjudicate a revision. Only fields that are supplied are written."""
    if not revision_id:
        raise ValidationFailed("Revision ID is required", field="revision_id")

    if actor.role != "reviewer":
        raise Forbidden("Only reviewers can update revisions", actor_id=actor.id, resource="paper_revisions")

    revision = store.get_one("paper_revisions", {"id": revision_id})
    if revision is None:
        raise NotFound("Revision not found", entity="paper_revisions", key=revision_id)

    assignment = store.get_one("paper_reviewers", {"paper_id": revision.paper_id, "reviewer_id": actor.id})
    if assignment is None:
        raise Forbidden("Not assigned to this paper", actor_id=actor.id, resource="papers")

    previous_status = revision.status
    patch = {}
    if status:
        if not can_transition(previous_status, status):
            raise ValidationFailed("Invalid revision status", field="status", value=status)
        patch["status"] = status
    if reviewer_feedback:
        patch["reviewer_feedback"] = reviewer_feedback

    if not patch:
        return revision

    revision = store.update("paper_revisions", {"id": revision_id}, patch)[0]
    logger.info("revision_updated", revision_id=revision_id, reviewer_id=actor.id, **patch)

    if status and status != previous_status:
        paper = store.get_one("papers", {"id": revision.paper_id})
        author = store.get_one("users", {"id": paper.author_id})
        if author is not None:
            deliver(
                notifier,
                author.email,
                "revision_status_changed",
                {
                    "title": paper.title,
                    "paper_id": paper.id,
                    "version_number": revision.version_number,
                    "status": status,
                },
            )

    return revision


def list_revisions(store: EntityStore, actor: Actor, paper_id: int | None = None) -> list[Revision]:
    """Revisions visible to the actor, newest version first."""
    if actor.role == "author":
        paper_ids = {p.id for p in store.get("papers", {"author_id": actor.id})}
    elif actor.role == "reviewer":
        paper_ids = {a.paper_id for a in store.get("paper_reviewers", {"reviewer_id": actor.id})}
    elif actor.role == "admin":
        paper_ids = None
    else:
        raise Forbidden("Invalid role", actor_id=actor.id, resource="paper_revisions")

    if paper_id is not None:
        paper_ids = {paper_id} if paper_ids is None or paper_id in paper_ids else set()

    if paper_ids is not None and not paper_ids:
        return []

    filters = {} if paper_ids is None else {"paper_id": paper_ids}
    return store.get("paper_revisions", filters, order_by="version_number", desc=True)
