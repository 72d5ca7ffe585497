import pytest

from journalflow.errors import Forbidden, NotFound, ValidationFailed
from journalflow.orchestrator import assign
from journalflow.papers import submit_paper
from journalflow.threads import ensure_thread, list_threads, mark_thread_read, open_thread, post_message


def test_assignment_already_opened_the_thread(store, assignment, author, reviewer):
    via_author = open_thread(store, assignment.paper_id, author)
    via_reviewer = open_thread(store, assignment.paper_id, reviewer)

    assert via_author.id == via_reviewer.id == assignment.thread_id
    assert len(store.get("review_threads")) == 1


def test_ensure_thread_is_idempotent(store, assignment, author, second_reviewer):
    first = ensure_thread(store, assignment.paper_id, second_reviewer.id, author.id, "Side channel")
    second = ensure_thread(store, assignment.paper_id, second_reviewer.id, author.id, "Other subject")

    assert first.id == second.id
    assert second.subject == "Side channel"


def test_open_thread_posts_initial_message(store, assignment, reviewer):
    thread = open_thread(store, assignment.paper_id, reviewer, initial_message="Can you share the raw data?")

    messages = store.get("review_messages", {"thread_id": thread.id})
    assert len(messages) == 1
    assert messages[0].sender_type == "reviewer"
    assert messages[0].message_type == "feedback"


def test_author_reaches_lead_editor(store, notifier, proposal, reviewer, second_reviewer, author):
    assign(store, notifier, proposal.id, reviewer.id)
    lead = assign(store, notifier, proposal.id, second_reviewer.id, is_lead_editor=True)

    thread = open_thread(store, lead.paper_id, author)
    assert thread.reviewer_id == second_reviewer.id


def test_author_needs_an_assigned_reviewer(store, author):
    paper = submit_paper(store, author, "Solo", "Abstract", "Body")
    with pytest.raises(ValidationFailed):
        open_thread(store, paper.id, author)


def test_open_thread_access_rules(store, assignment, other_author, second_reviewer, admin):
    with pytest.raises(Forbidden):
        open_thread(store, assignment.paper_id, other_author)
    with pytest.raises(Forbidden):
        open_thread(store, assignment.paper_id, second_reviewer)
    with pytest.raises(Forbidden):
        open_thread(store, assignment.paper_id, admin)
    with pytest.raises(NotFound):
        open_thread(store, 777, second_reviewer)


def test_declined_reviewer_cannot_open_thread(store, assignment, reviewer):
    store.update("paper_reviewers", {"id": assignment.assignment_id}, {"can_communicate": False})
    with pytest.raises(Forbidden):
        open_thread(store, assignment.paper_id, reviewer)


def test_post_message_touches_thread(store, assignment, author):
    before = store.get_one("review_threads", {"id": assignment.thread_id}).updated_at

    message = post_message(store, assignment.thread_id, author.id, "author", "Thanks for the notes.")

    assert message.message_type == "general"
    assert message.is_read is False
    after = store.get_one("review_threads", {"id": assignment.thread_id}).updated_at
    assert after >= before


def test_post_message_rejects_outsiders(store, assignment, other_author, admin, reviewer):
    with pytest.raises(Forbidden):
        post_message(store, assignment.thread_id, other_author.id, "author", "Hello?")
    with pytest.raises(Forbidden):
        post_message(store, assignment.thread_id, admin.id, "admin", "Hello?")
    with pytest.raises(ValidationFailed):
        post_message(store, assignment.thread_id, reviewer.id, "reviewer", "")
    with pytest.raises(NotFound):
        post_message(store, 9000, reviewer.id, "reviewer", "Hello?")


def test_unread_counts_only_count_the_other_party(store, assignment, author, reviewer):
    post_message(store, assignment.thread_id, reviewer.id, "reviewer", "Question one")
    post_message(store, assignment.thread_id, reviewer.id, "reviewer", "Question two")
    post_message(store, assignment.thread_id, author.id, "author", "Answer")

    [author_view] = list_threads(store, author.id, "author")
    [reviewer_view] = list_threads(store, reviewer.id, "reviewer")

    assert [m.content for m in author_view.messages] == ["Question one", "Question two", "Answer"]
    assert author_view.unread_count == 2
    assert reviewer_view.unread_count == 1

    assert mark_thread_read(store, assignment.thread_id, author.id, "author") == 2
    assert mark_thread_read(store, assignment.thread_id, author.id, "author") == 0

    [author_view] = list_threads(store, author.id, "author")
    [reviewer_view] = list_threads(store, reviewer.id, "reviewer")
    assert author_view.unread_count == 0
    assert reviewer_view.unread_count == 1


def test_mark_read_requires_party(store, assignment, other_author):
    with pytest.raises(Forbidden):
        mark_thread_read(store, assignment.thread_id, other_author.id, "author")


def test_list_threads_newest_activity_first(store, notifier, proposal, reviewer, second_reviewer, author):
    first = assign(store, notifier, proposal.id, reviewer.id)
    second = assign(store, notifier, proposal.id, second_reviewer.id)
    post_message(store, first.thread_id, author.id, "author", "Bumping this one")

    views = list_threads(store, author.id, "author")
    assert [v.thread.id for v in views][0] == first.thread_id
    assert {v.thread.id for v in views} == {first.thread_id, second.thread_id}


def test_list_threads_rejects_admin(store, admin):
    with pytest.raises(ValidationFailed):
        list_threads(store, admin.id, "admin")
    assert list_threads(store, admin.id, "author") == []
