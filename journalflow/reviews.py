from datetime import datetime

from journalflow.errors import Forbidden, NotFound, ValidationFailed
from journalflow.identity import resolve_identity
from journalflow.logging import get_logger
from journalflow.models import CONFIDENCE_LEVELS, RECOMMENDATIONS, Review
from journalflow.notifications import Notifier, deliver
from journalflow.store import EntityStore

logger = get_logger(__name__)


def submit_review(
    store: EntityStore,
    notifier: Notifier,
    paper_id: int,
    reviewer_id: int,
    content: str,
    recommendation: str,
    confidence_level: str | None = None,
    is_anonymous: bool | None = None,
) -> Review:
    """Record the reviewer's review of a paper.

    A reviewer holds at most one review per paper: resubmitting overwrites
    the earlier text. The matching assignment is marked completed.
    """
    if not content or not recommendation:
        raise ValidationFailed("Content and recommendation are required", field="content")
    if recommendation not in RECOMMENDATIONS:
        raise ValidationFailed("Invalid recommendation", field="recommendation", value=recommendation)

    confidence_level = confidence_level or "medium"
    if confidence_level not in CONFIDENCE_LEVELS:
        raise ValidationFailed("Invalid confidence level", field="confidence_level", value=confidence_level)

    reviewer = resolve_identity(store, user_id=reviewer_id)

    assignment = store.get_one(
        "paper_reviewers",
        {"paper_id": paper_id, "reviewer_email": reviewer.email},
    )
    if assignment is None:
        raise Forbidden(
            "You are not assigned to review this paper",
            actor_id=reviewer.id,
            resource="papers",
        )

    now = datetime.utcnow()
    review = store.upsert(
        "reviews",
        {
            "paper_id": paper_id,
            "reviewer_id": reviewer.id,
            "content": content,
            "recommendation": recommendation,
            "confidence_level": confidence_level,
            "is_anonymous": True if is_anonymous is None else is_anonymous,
            "updated_at": now,
        },
        ["paper_id", "reviewer_id"],
    )

    store.update(
        "paper_reviewers",
        {"id": assignment.id},
        {
            "status": "completed",
            "completed_at": now,
            "review_id": review.id,
            "reviewer_id": reviewer.id,
        },
    )
    logger.info("review_submitted", paper_id=paper_id, reviewer_id=reviewer.id, review_id=review.id)

    paper = store.get_one("papers", {"id": paper_id})
    author = store.get_one("users", {"id": paper.author_id})
    if author is not None:
        deliver(
            notifier,
            author.email,
            "review_submitted",
            {"title": paper.title, "paper_id": paper_id, "recommendation": recommendation},
        )

    return review


def get_review(store: EntityStore, paper_id: int, reviewer_id: int) -> Review | None:
    return store.get_one("reviews", {"paper_id": paper_id, "reviewer_id": reviewer_id})


def list_paper_reviews(store: EntityStore, paper_id: int) -> list[Review]:
    if store.get_one("papers", {"id": paper_id}) is None:
        raise NotFound("Paper not found", entity="papers", key=paper_id)
    return store.get("reviews", {"paper_id": paper_id}, order_by="created_at")
