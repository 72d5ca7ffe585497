import pytest

from journalflow.errors import Forbidden, NotFound, ValidationFailed
from journalflow.orchestrator import assign
from journalflow.reviews import get_review, list_paper_reviews, submit_review
from tests.conftest import RecordingNotifier


def test_submit_review_completes_assignment_and_notifies_author(store, notifier, assignment, reviewer, author):
    review = submit_review(
        store, notifier, assignment.paper_id, reviewer.id, "Solid design, small sample.", "minor_revisions"
    )

    assert review.reviewer_id == reviewer.id
    assert review.confidence_level == "medium"
    assert review.is_anonymous is True

    row = store.get_one("paper_reviewers", {"id": assignment.assignment_id})
    assert row.status == "completed"
    assert row.completed_at is not None
    assert row.review_id == review.id

    assert [(email, kind) for email, kind, _ in notifier.sent] == [(author.email, "review_submitted")]


def test_resubmitting_overwrites_single_review(store, notifier, assignment, reviewer):
    first = submit_review(store, notifier, assignment.paper_id, reviewer.id, "First pass.", "major_revisions")
    second = submit_review(
        store,
        notifier,
        assignment.paper_id,
        reviewer.id,
        "Second pass.",
        "accept",
        confidence_level="high",
        is_anonymous=False,
    )

    assert first.id == second.id
    assert len(store.get("reviews", {"paper_id": assignment.paper_id})) == 1
    stored = get_review(store, assignment.paper_id, reviewer.id)
    assert stored.content == "Second pass."
    assert stored.recommendation == "accept"
    assert stored.confidence_level == "high"
    assert stored.is_anonymous is False


def test_unassigned_reviewer_is_forbidden(store, notifier, assignment, second_reviewer):
    with pytest.raises(Forbidden):
        submit_review(store, notifier, assignment.paper_id, second_reviewer.id, "Drive-by.", "reject")
    assert store.get("reviews") == []


@pytest.mark.parametrize(
    "content, recommendation, confidence",
    [
        ("", "accept", None),
        ("Fine.", "", None),
        ("Fine.", "ship it", None),
        ("Fine.", "accept", "certain"),
    ],
)
def test_invalid_review_input(store, notifier, assignment, reviewer, content, recommendation, confidence):
    with pytest.raises(ValidationFailed):
        submit_review(store, notifier, assignment.paper_id, reviewer.id, content, recommendation, confidence)


def test_review_submission_survives_notifier_failure(store, assignment, reviewer):
    review = submit_review(store, RecordingNotifier(fail=True), assignment.paper_id, reviewer.id, "Ok.", "accept")
    assert review.id is not None


def test_list_paper_reviews(store, notifier, proposal, reviewer, second_reviewer):
    first = assign(store, notifier, proposal.id, reviewer.id)
    assign(store, notifier, proposal.id, second_reviewer.id)
    submit_review(store, notifier, first.paper_id, reviewer.id, "A", "accept")
    submit_review(store, notifier, first.paper_id, second_reviewer.id, "B", "reject")

    reviews = list_paper_reviews(store, first.paper_id)
    assert [r.reviewer_id for r in reviews] == [reviewer.id, second_reviewer.id]

    with pytest.raises(NotFound):
        list_paper_reviews(store, 4242)
