"""
Independent validations of published work.

Each validation records one attempt to confirm or refute a paper and moves
its ``validation_score``: +1 for CONFIRMED, -1 for DISPUTED, unchanged for
FAILED. A PUBLISHED paper with two or more DISPUTED validations becomes
DISPUTED through the regular paper status lifecycle.
"""

from journalflow.errors import ValidationFailed
from journalflow.identity import Actor
from journalflow.logging import get_logger
from journalflow.models import VALIDATION_RESULTS, VALIDATION_TYPES, Validation
from journalflow.papers import get_paper, update_paper_status
from journalflow.store import EntityStore

logger = get_logger(__name__)

SCORE_CHANGES = {"CONFIRMED": 1, "DISPUTED": -1, "FAILED": 0}

DISPUTE_THRESHOLD = 2


def submit_validation(
    store: EntityStore,
    actor: Actor,
    paper_id: int,
    type: str,
    result: str,
    notes: str | None = None,
) -> Validation:
    if not paper_id or not type or not result:
        raise ValidationFailed("Missing required fields: paper_id, type, result", field="paper_id")
    if type not in VALIDATION_TYPES:
        raise ValidationFailed(
            f"Invalid type. Must be one of: {', '.join(VALIDATION_TYPES)}", field="type", value=type
        )
    if result not in VALIDATION_RESULTS:
        raise ValidationFailed(
            f"Invalid result. Must be one of: {', '.join(VALIDATION_RESULTS)}", field="result", value=result
        )

    paper = get_paper(store, paper_id)
    if paper.status == "DRAFT":
        raise ValidationFailed("Cannot validate a draft paper", field="paper_id", value=paper_id)

    validation = store.insert(
        "validations",
        {
            "paper_id": paper_id,
            "validator_id": actor.id,
            "type": type,
            "result": result,
            "notes": notes or None,
        },
    )
    logger.info(
        "validation_submitted",
        validation_id=validation.id,
        paper_id=paper_id,
        validator_id=actor.id,
        result=result,
    )

    change = SCORE_CHANGES[result]
    if change:
        paper = store.update(
            "papers", {"id": paper_id}, {"validation_score": (paper.validation_score or 0) + change}
        )[0]

    if result == "DISPUTED" and paper.status == "PUBLISHED":
        disputes = store.count("validations", {"paper_id": paper_id, "result": "DISPUTED"})
        if disputes >= DISPUTE_THRESHOLD:
            update_paper_status(store, paper_id, "DISPUTED")
            logger.warning("paper_disputed", paper_id=paper_id, disputes=disputes)

    return validation


def list_validations(
    store: EntityStore,
    paper_id: int | None = None,
    type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Validation], int]:
    """Newest first, with the total count of matching rows for paging."""
    filters = {}
    if paper_id is not None:
        filters["paper_id"] = paper_id
    if type:
        filters["type"] = type

    rows = store.get("validations", filters, order_by="id", desc=True, limit=limit, offset=offset)
    return rows, store.count("validations", filters)
