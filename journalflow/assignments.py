"""Reviewer rows on a paper: bulk invites, status changes and the reviewer's own queue."""

from datetime import datetime
from typing import Any

from journalflow.errors import Forbidden, NotFound, ValidationFailed
from journalflow.identity import Actor, normalize_email
from journalflow.logging import get_logger
from journalflow.models import ASSIGNMENT_STATUSES, ReviewerAssignment
from journalflow.notifications import Notifier
from journalflow.papers import get_paper
from journalflow.store import EntityStore

logger = get_logger(__name__)


def list_paper_reviewers(store: EntityStore, paper_id: int) -> list[ReviewerAssignment]:
    get_paper(store, paper_id)
    return store.get("paper_reviewers", {"paper_id": paper_id}, order_by="created_at", desc=True)


def add_reviewers(store: EntityStore, paper_id: int, emails: list[str]) -> list[ReviewerAssignment]:
    """Invite reviewers by email. Existing rows for the same email are left untouched."""
    if not emails:
        raise ValidationFailed("At least one email is required", field="emails")
    get_paper(store, paper_id)

    added = []
    for email in dict.fromkeys(normalize_email(e) for e in emails if e and e.strip()):
        user = store.get_one("users", {"email": email})
        added.append(
            store.upsert(
                "paper_reviewers",
                {
                    "paper_id": paper_id,
                    "reviewer_email": email,
                    "reviewer_id": user.id if user else None,
                    "status": "invited",
                },
                ["paper_id", "reviewer_email"],
                ignore_duplicates=True,
            )
        )
    logger.info("reviewers_added", paper_id=paper_id, count=len(added))
    return added


def _get_assignment(store: EntityStore, paper_id: int, assignment_id: int) -> ReviewerAssignment:
    assignment = store.get_one("paper_reviewers", {"id": assignment_id, "paper_id": paper_id})
    if assignment is None:
        raise NotFound("Reviewer not found", entity="paper_reviewers", key=assignment_id)
    return assignment


def update_assignment(store: EntityStore, paper_id: int, assignment_id: int, changes: dict[str, Any]) -> ReviewerAssignment:
    _get_assignment(store, paper_id, assignment_id)

    patch = {}
    status = changes.get("status")
    if status:
        if status not in ASSIGNMENT_STATUSES:
            raise ValidationFailed("Invalid assignment status", field="status", value=status)
        patch["status"] = status
        if status == "accepted":
            patch["accepted_at"] = datetime.utcnow()
        elif status == "completed":
            patch["completed_at"] = datetime.utcnow()
    for key in ("review_notes", "is_lead_editor", "can_communicate"):
        if key in changes:
            patch[key] = changes[key]

    if not patch:
        return _get_assignment(store, paper_id, assignment_id)
    return store.update("paper_reviewers", {"id": assignment_id}, patch)[0]


def remove_assignment(store: EntityStore, paper_id: int, assignment_id: int) -> None:
    if store.delete("paper_reviewers", {"id": assignment_id, "paper_id": paper_id}) == 0:
        raise NotFound("Reviewer not found", entity="paper_reviewers", key=assignment_id)
    logger.info("reviewer_removed", paper_id=paper_id, assignment_id=assignment_id)


def invite_reviewer(store: EntityStore, notifier: Notifier, paper_id: int, assignment_id: int) -> ReviewerAssignment:
    """Email the invitation and stamp ``invited_at``. A failed send is raised to the caller."""
    assignment = _get_assignment(store, paper_id, assignment_id)
    paper = get_paper(store, paper_id)

    abstract = paper.abstract or ""
    if len(abstract) > 300:
        abstract = abstract[:300] + "..."

    notifier.notify(
        assignment.reviewer_email,
        "reviewer_invited",
        {"title": paper.title, "abstract": abstract, "paper_id": paper_id},
    )
    return store.update("paper_reviewers", {"id": assignment_id}, {"invited_at": datetime.utcnow()})[0]


def list_reviewer_assignments(store: EntityStore, actor: Actor) -> list[ReviewerAssignment]:
    if actor.role != "reviewer":
        raise Forbidden("Only reviewers can access this endpoint", actor_id=actor.id, resource="paper_reviewers")
    return store.get("paper_reviewers", {"reviewer_email": actor.email}, order_by="invited_at", desc=True)


def respond_to_assignment(store: EntityStore, actor: Actor, assignment_id: int, accept: bool) -> ReviewerAssignment:
    assignment = store.get_one("paper_reviewers", {"id": assignment_id})
    if assignment is None:
        raise NotFound("Assignment not found", entity="paper_reviewers", key=assignment_id)
    if actor.role != "reviewer" or assignment.reviewer_email != actor.email:
        raise Forbidden("Not your assignment", actor_id=actor.id, resource="paper_reviewers")
    if assignment.status == "completed":
        raise ValidationFailed("Review already completed", field="status", value=assignment.status)

    if accept:
        patch = {"status": "accepted", "accepted_at": datetime.utcnow()}
    else:
        patch = {"status": "declined", "can_communicate": False}
    patch["reviewer_id"] = actor.id
    return store.update("paper_reviewers", {"id": assignment_id}, patch)[0]
