import pytest

from journalflow.errors import NotFound, ValidationFailed
from journalflow.papers import submit_paper, update_paper_status
from journalflow.validations import list_validations, submit_validation


@pytest.fixture
def paper(store, author):
    return submit_paper(store, author, "Replication of the n-back effect", "Abstract", "Body")


@pytest.fixture
def published(store, paper):
    return update_paper_status(store, paper.id, "PUBLISHED")


def _score(store, paper_id):
    return store.get_one("papers", {"id": paper_id}).validation_score


def test_results_move_the_validation_score(store, reviewer, paper):
    confirmed = submit_validation(store, reviewer, paper.id, "EXPERT_REVIEW", "CONFIRMED", notes="Holds up.")
    assert confirmed.validator_id == reviewer.id
    assert confirmed.notes == "Holds up."
    assert _score(store, paper.id) == 1

    submit_validation(store, reviewer, paper.id, "COMPUTATIONAL_REPLICATION", "FAILED")
    assert _score(store, paper.id) == 1

    failed = submit_validation(store, reviewer, paper.id, "REFUTATION_ATTEMPT", "DISPUTED", notes="")
    assert failed.notes is None
    assert _score(store, paper.id) == 0


def test_second_dispute_marks_published_paper_disputed(store, reviewer, second_reviewer, published):
    submit_validation(store, reviewer, published.id, "REFUTATION_ATTEMPT", "DISPUTED")
    assert store.get_one("papers", {"id": published.id}).status == "PUBLISHED"

    submit_validation(store, second_reviewer, published.id, "MATHEMATICAL_PROOF", "DISPUTED")
    paper = store.get_one("papers", {"id": published.id})
    assert paper.status == "DISPUTED"
    assert paper.validation_score == -2
    assert paper.published_at == published.published_at


def test_disputes_leave_unpublished_paper_alone(store, reviewer, second_reviewer, paper):
    submit_validation(store, reviewer, paper.id, "REFUTATION_ATTEMPT", "DISPUTED")
    submit_validation(store, second_reviewer, paper.id, "REFUTATION_ATTEMPT", "DISPUTED")

    assert store.get_one("papers", {"id": paper.id}).status == "SUBMITTED"


def test_draft_papers_cannot_be_validated(store, author, reviewer):
    draft = store.insert("papers", {"title": "Unfinished", "author_id": author.id, "status": "DRAFT"})

    with pytest.raises(ValidationFailed) as excinfo:
        submit_validation(store, reviewer, draft.id, "EXPERT_REVIEW", "CONFIRMED")
    assert str(excinfo.value) == "Cannot validate a draft paper"
    assert store.get("validations") == []


def test_rejects_unknown_type_result_and_paper(store, reviewer, paper):
    with pytest.raises(ValidationFailed):
        submit_validation(store, reviewer, paper.id, "PEER_PRESSURE", "CONFIRMED")
    with pytest.raises(ValidationFailed):
        submit_validation(store, reviewer, paper.id, "EXPERT_REVIEW", "MAYBE")
    with pytest.raises(ValidationFailed):
        submit_validation(store, reviewer, paper.id, "", "CONFIRMED")
    with pytest.raises(NotFound):
        submit_validation(store, reviewer, 404, "EXPERT_REVIEW", "CONFIRMED")
    assert _score(store, paper.id) == 0


def test_list_filters_and_pages_newest_first(store, reviewer, author, paper):
    other = submit_paper(store, author, "Another", "Abstract", "Body")
    first = submit_validation(store, reviewer, paper.id, "EXPERT_REVIEW", "CONFIRMED")
    second = submit_validation(store, reviewer, paper.id, "MATHEMATICAL_PROOF", "CONFIRMED")
    third = submit_validation(store, reviewer, other.id, "EXPERT_REVIEW", "FAILED")

    rows, total = list_validations(store)
    assert [v.id for v in rows] == [third.id, second.id, first.id]
    assert total == 3

    rows, total = list_validations(store, paper_id=paper.id)
    assert [v.id for v in rows] == [second.id, first.id]
    assert total == 2

    rows, total = list_validations(store, type="EXPERT_REVIEW")
    assert [v.id for v in rows] == [third.id, first.id]

    rows, total = list_validations(store, limit=1, offset=1)
    assert [v.id for v in rows] == [second.id]
    assert total == 3
