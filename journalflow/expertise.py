from datetime import datetime
from typing import Any

from journalflow.errors import Forbidden, ValidationFailed
from journalflow.identity import Actor
from journalflow.matching import DEFAULT_MAX_CONCURRENT_REVIEWS
from journalflow.models import AVAILABILITY_STATUSES, ReviewerExpertise
from journalflow.store import EntityStore


def get_profile(store: EntityStore, user_id: int) -> ReviewerExpertise | None:
    return store.get_one("reviewer_expertise", {"user_id": user_id})


def available_profiles(store: EntityStore) -> list[ReviewerExpertise]:
    return store.get("reviewer_expertise", {"availability_status": "available"}, order_by="id")


def upsert_profile(store: EntityStore, actor: Actor, fields: dict[str, Any]) -> ReviewerExpertise:
    """Create or replace the reviewer's own expertise profile."""
    if actor.role != "reviewer":
        raise Forbidden("Only reviewers can set expertise", actor_id=actor.id, resource="reviewer_expertise")

    availability = fields.get("availability_status") or "available"
    if availability not in AVAILABILITY_STATUSES:
        raise ValidationFailed("Invalid availability status", field="availability_status", value=availability)

    row = {
        "user_id": actor.id,
        "research_areas": fields.get("research_areas") or [],
        "keywords": fields.get("keywords") or [],
        "h_index": fields.get("h_index"),
        "publications_count": fields.get("publications_count"),
        "years_experience": fields.get("years_experience"),
        "institution": fields.get("institution"),
        "bio": fields.get("bio"),
        "availability_status": availability,
        "max_concurrent_reviews": fields.get("max_concurrent_reviews") or DEFAULT_MAX_CONCURRENT_REVIEWS,
        "updated_at": datetime.utcnow(),
    }
    if fields.get("current_reviews_count") is not None:
        row["current_reviews_count"] = fields["current_reviews_count"]

    return store.upsert("reviewer_expertise", row, ["user_id"])
