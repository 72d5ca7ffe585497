from datetime import datetime
from typing import Any

from journalflow.errors import Forbidden, NotFound, ValidationFailed
from journalflow.identity import Actor
from journalflow.logging import get_logger
from journalflow.models import PROPOSAL_STATUSES, Proposal
from journalflow.store import EntityStore

logger = get_logger(__name__)

# statuses that count as an editorial decision
UNDECIDED_STATUSES = ("draft", "submitted")


def create_proposal(
    store: EntityStore,
    actor: Actor,
    title: str,
    abstract: str,
    research_area: str,
    keywords: list[str] | None = None,
    methodology_summary: str | None = None,
    expected_contribution: str | None = None,
    is_draft: bool = False,
) -> Proposal:
    if actor.role != "author":
        raise Forbidden("Only authors can submit proposals", actor_id=actor.id, resource="proposals")
    if not title or not abstract or not research_area:
        raise ValidationFailed("Title, abstract, and research area are required", field="title")

    proposal = store.insert(
        "proposals",
        {
            "author_id": actor.id,
            "title": title,
            "abstract": abstract,
            "research_area": research_area,
            "keywords": [k.strip() for k in keywords or [] if k and k.strip()],
            "methodology_summary": methodology_summary or None,
            "expected_contribution": expected_contribution or None,
            "status": "draft" if is_draft else "submitted",
            "submitted_at": None if is_draft else datetime.utcnow(),
        },
    )
    logger.info("proposal_created", proposal_id=proposal.id, author_id=actor.id, status=proposal.status)
    return proposal


def get_proposal_for(store: EntityStore, proposal_id: int, actor: Actor) -> Proposal:
    proposal = store.get_one("proposals", {"id": proposal_id})
    if proposal is None:
        raise NotFound("Proposal not found", entity="proposals", key=proposal_id)
    if actor.role != "admin" and proposal.author_id != actor.id:
        raise Forbidden("Access denied", actor_id=actor.id, resource="proposals")
    return proposal


def submit_proposal(store: EntityStore, proposal_id: int, actor: Actor) -> Proposal:
    """Move the author's draft to submitted. Already-submitted proposals are returned as is."""
    proposal = get_proposal_for(store, proposal_id, actor)
    if proposal.status != "draft":
        return proposal
    return store.update(
        "proposals",
        {"id": proposal_id, "status": "draft"},
        {"status": "submitted", "submitted_at": datetime.utcnow()},
    )[0]


def list_proposals(store: EntityStore, actor: Actor, status: str | None = None) -> list[Proposal]:
    if actor.role == "admin":
        filters = {}
    elif actor.role == "author":
        filters = {"author_id": actor.id}
    else:
        raise Forbidden("Access denied", actor_id=actor.id, resource="proposals")

    if status:
        filters["status"] = status
    return store.get("proposals", filters, order_by="created_at", desc=True)


def update_proposal(store: EntityStore, proposal_id: int, changes: dict[str, Any]) -> Proposal:
    """Apply an editorial decision: status, funding amount and admin notes.

    Only keys present in ``changes`` are written, so ``funding_amount=None``
    clears the amount while an absent key leaves it alone.
    """
    proposal = store.get_one("proposals", {"id": proposal_id})
    if proposal is None:
        raise NotFound("Proposal not found", entity="proposals", key=proposal_id)

    now = datetime.utcnow()
    patch: dict[str, Any] = {"updated_at": now}

    status = changes.get("status")
    if status:
        if status not in PROPOSAL_STATUSES:
            raise ValidationFailed("Invalid proposal status", field="status", value=status)
        if status == "draft" and proposal.status != "draft":
            raise ValidationFailed("A submitted proposal cannot return to draft", field="status", value=status)
        patch["status"] = status
        if status != "draft" and proposal.submitted_at is None:
            patch["submitted_at"] = now
        if status not in UNDECIDED_STATUSES:
            patch["reviewed_at"] = now

    if "funding_amount" in changes:
        patch["funding_amount"] = changes["funding_amount"]
    if "admin_notes" in changes:
        patch["admin_notes"] = changes["admin_notes"]

    proposal = store.update("proposals", {"id": proposal_id}, patch)[0]
    logger.info("proposal_updated", proposal_id=proposal_id, status=proposal.status)
    return proposal
