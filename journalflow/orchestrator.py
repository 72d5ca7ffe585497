"""
Reviewer assignment.

``assign()`` turns a proposal plus a chosen reviewer into a paper, an
assignment row and a communication thread. Each step is idempotent on its
natural key and commits on its own, so there is no rollback across steps:
calling ``assign()`` again after a partial failure converges on the same
end state.

Thread creation and the reviewer notification are best-effort. Their
failures are logged and returned in ``AssignmentResult.warnings``; the
assignment row is authoritative.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from journalflow.errors import Conflict, NotFound, ValidationFailed
from journalflow.expertise import available_profiles
from journalflow.identity import resolve_identity
from journalflow.logging import get_logger
from journalflow.matching import RankedCandidate, rank
from journalflow.models import Paper, Proposal
from journalflow.notifications import Notifier, deliver
from journalflow.store import EntityStore
from journalflow.threads import ensure_thread

logger = get_logger(__name__)


@dataclass
class AssignmentResult:
    paper_id: int
    assignment_id: int
    thread_id: int | None = None
    warnings: list[str] = field(default_factory=list)


def get_proposal(store: EntityStore, proposal_id: int) -> Proposal:
    proposal = store.get_one("proposals", {"id": proposal_id})
    if proposal is None:
        raise NotFound("Proposal not found", entity="proposals", key=proposal_id)
    return proposal


def rank_candidates(store: EntityStore, proposal_id: int) -> list[RankedCandidate]:
    """Rank every available reviewer against a proposal."""
    proposal = get_proposal(store, proposal_id)
    return rank(proposal, available_profiles(store))


def ensure_paper(store: EntityStore, proposal: Proposal) -> Paper:
    """Return the paper for a proposal, creating it under review if absent."""
    existing = store.get_one("papers", {"proposal_id": proposal.id})
    if existing is not None:
        return existing

    paper = store.upsert(
        "papers",
        {
            "proposal_id": proposal.id,
            "title": proposal.title,
            "abstract": proposal.abstract,
            "research_area": proposal.research_area,
            "keywords": proposal.keywords or [],
            "author_id": proposal.author_id,
            "status": "UNDER_REVIEW",
        },
        ["proposal_id"],
        ignore_duplicates=True,
    )
    logger.info("paper_created", paper_id=paper.id, proposal_id=proposal.id)
    return paper


def assign(
    store: EntityStore,
    notifier: Notifier,
    proposal_id: int,
    reviewer_id: int | None,
    is_lead_editor: bool = False,
) -> AssignmentResult:
    if not reviewer_id:
        raise ValidationFailed("Reviewer ID is required", field="reviewer_id")

    reviewer = resolve_identity(store, user_id=reviewer_id)
    proposal = get_proposal(store, proposal_id)

    paper = ensure_paper(store, proposal)

    existing = store.get_one("paper_reviewers", {"paper_id": paper.id, "reviewer_email": reviewer.email})
    newly_assigned = existing is None or existing.status != "assigned"

    assignment = store.upsert(
        "paper_reviewers",
        {
            "paper_id": paper.id,
            "reviewer_id": reviewer.id,
            "reviewer_email": reviewer.email,
            "is_lead_editor": bool(is_lead_editor),
            "can_communicate": True,
            "status": "assigned",
            "invited_at": datetime.utcnow(),
        },
        ["paper_id", "reviewer_email"],
    )
    logger.info(
        "reviewer_assigned",
        paper_id=paper.id,
        reviewer_id=reviewer.id,
        assignment_id=assignment.id,
        is_lead_editor=bool(is_lead_editor),
    )

    result = AssignmentResult(paper_id=paper.id, assignment_id=assignment.id)

    try:
        thread = ensure_thread(
            store,
            paper.id,
            reviewer.id,
            proposal.author_id,
            f"Review: {proposal.title}",
        )
        result.thread_id = thread.id
    except (Conflict, SQLAlchemyError) as exc:
        store.rollback()
        logger.error("thread_creation_failed", paper_id=paper.id, reviewer_id=reviewer.id, exc_info=True)
        result.warnings.append(f"Communication thread was not created: {exc}")

    # conditional on the current status, so a retry is a no-op
    store.update(
        "proposals",
        {"id": proposal.id, "status": "submitted"},
        {"status": "under_review"},
    )

    # repeated calls for an unchanged assignment stay quiet
    if newly_assigned:
        warning = deliver(
            notifier,
            reviewer.email,
            "reviewer_assigned",
            {"title": proposal.title, "paper_id": paper.id},
        )
        if warning:
            result.warnings.append(warning)

    return result
