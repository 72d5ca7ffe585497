"""
Papers outside the assignment flow: direct author submissions and the
publication status lifecycle.

Status only moves forward through DRAFT, SUBMITTED, UNDER_REVIEW and
PUBLISHED. DISPUTED is a side branch reachable from PUBLISHED alone and has
no way out.
"""

from datetime import datetime

from journalflow.errors import Forbidden, NotFound, ValidationFailed
from journalflow.identity import Actor
from journalflow.logging import get_logger
from journalflow.models import PAPER_STATUSES, Paper
from journalflow.store import EntityStore

logger = get_logger(__name__)

PAPER_STATUS_ORDER = ("DRAFT", "SUBMITTED", "UNDER_REVIEW", "PUBLISHED")


def can_transition(current: str, new: str) -> bool:
    if new == current:
        return True
    if new == "DISPUTED":
        return current == "PUBLISHED"
    if current not in PAPER_STATUS_ORDER or new not in PAPER_STATUS_ORDER:
        return False
    return PAPER_STATUS_ORDER.index(new) > PAPER_STATUS_ORDER.index(current)


def get_paper(store: EntityStore, paper_id: int) -> Paper:
    paper = store.get_one("papers", {"id": paper_id})
    if paper is None:
        raise NotFound("Paper not found", entity="papers", key=paper_id)
    return paper


def submit_paper(
    store: EntityStore,
    actor: Actor,
    title: str,
    abstract: str,
    content: str,
    research_area: str | None = None,
    keywords: list[str] | None = None,
) -> Paper:
    if actor.role != "author":
        raise Forbidden("Only authors can submit papers", actor_id=actor.id, resource="papers")
    if not title or not abstract or not content:
        raise ValidationFailed("Title, abstract, and content are required", field="title")

    keywords = [k.strip() for k in keywords or [] if k and k.strip()]
    paper = store.insert(
        "papers",
        {
            "title": title,
            "abstract": abstract,
            "content": content,
            "research_area": research_area or None,
            "keywords": keywords or None,
            "author_id": actor.id,
            "status": "SUBMITTED",
        },
    )
    logger.info("paper_submitted", paper_id=paper.id, author_id=actor.id)
    return paper


def list_submissions(store: EntityStore, actor: Actor) -> list[Paper]:
    return store.get("papers", {"author_id": actor.id}, order_by="created_at", desc=True)


def update_paper_status(store: EntityStore, paper_id: int, status: str) -> Paper:
    if status not in PAPER_STATUSES:
        raise ValidationFailed("Invalid paper status", field="status", value=status)

    paper = get_paper(store, paper_id)
    if paper.status == status:
        return paper
    if not can_transition(paper.status, status):
        raise ValidationFailed(f"Cannot move a paper from {paper.status} to {status}", field="status", value=status)

    patch = {"status": status}
    if status == "PUBLISHED" and paper.published_at is None:
        patch["published_at"] = datetime.utcnow()

    paper = store.update("papers", {"id": paper_id}, patch)[0]
    logger.info("paper_status_changed", paper_id=paper_id, status=status)
    return paper
