from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from journalflow.database import Base

USER_ROLES = ("author", "reviewer", "admin")

PROPOSAL_STATUSES = (
    "draft",
    "submitted",
    "under_review",
    "revision_requested",
    "accepted",
    "rejected",
)

PAPER_STATUSES = ("DRAFT", "SUBMITTED", "UNDER_REVIEW", "PUBLISHED", "DISPUTED")

ASSIGNMENT_STATUSES = ("invited", "assigned", "accepted", "declined", "completed")

SENDER_TYPES = ("author", "reviewer")

RECOMMENDATIONS = ("accept", "minor_revisions", "major_revisions", "reject")

CONFIDENCE_LEVELS = ("low", "medium", "high")

REVISION_STATUSES = (
    "submitted",
    "under_review",
    "revision_requested",
    "approved",
    "rejected",
)

AVAILABILITY_STATUSES = ("available", "limited", "unavailable")

VALIDATION_TYPES = (
    "MATHEMATICAL_PROOF",
    "COMPUTATIONAL_REPLICATION",
    "EXPERT_REVIEW",
    "REFUTATION_ATTEMPT",
)

VALIDATION_RESULTS = ("CONFIRMED", "DISPUTED", "FAILED")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)

    role = Column(String, default="author")  # author / reviewer / admin
    institution = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)


class Proposal(Base):
    __tablename__ = "proposals"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    title = Column(String, nullable=False)
    abstract = Column(Text, nullable=False)
    methodology_summary = Column(Text, nullable=True)
    expected_contribution = Column(Text, nullable=True)
    research_area = Column(String, nullable=False)
    keywords = Column(JSON, default=list)

    status = Column(String, default="draft")
    # draft | submitted | under_review | revision_requested | accepted | rejected

    funding_amount = Column(Numeric(12, 2), nullable=True)
    admin_notes = Column(Text, nullable=True)

    submitted_at = Column(DateTime, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("User")


class Paper(Base):
    __tablename__ = "papers"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    abstract = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    research_area = Column(String, nullable=True)
    keywords = Column(JSON, nullable=True)

    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    # one paper per proposal, created on first reviewer assignment
    proposal_id = Column(Integer, ForeignKey("proposals.id"), unique=True, nullable=True)

    status = Column(String, default="DRAFT")
    # DRAFT | SUBMITTED | UNDER_REVIEW | PUBLISHED | DISPUTED

    validation_score = Column(Integer, default=0)
    current_revision_id = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    published_at = Column(DateTime, nullable=True)

    author = relationship("User")
    proposal = relationship("Proposal")


class ReviewerAssignment(Base):
    __tablename__ = "paper_reviewers"
    __table_args__ = (
        UniqueConstraint("paper_id", "reviewer_email", name="uq_paper_reviewers_paper_email"),
    )

    id = Column(Integer, primary_key=True, index=True)

    paper_id = Column(Integer, ForeignKey("papers.id"), nullable=False)
    # null until the email resolves to a user
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewer_email = Column(String, nullable=False)

    is_lead_editor = Column(Boolean, default=False)
    can_communicate = Column(Boolean, default=True)

    status = Column(String, default="invited")
    # invited | assigned | accepted | declined | completed

    review_notes = Column(Text, nullable=True)
    review_id = Column(Integer, ForeignKey("reviews.id"), nullable=True)

    invited_at = Column(DateTime, nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    paper = relationship("Paper")
    reviewer = relationship("User")


class ReviewThread(Base):
    __tablename__ = "review_threads"
    __table_args__ = (
        UniqueConstraint(
            "paper_id", "reviewer_id", "author_id", name="uq_review_threads_parties"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    paper_id = Column(Integer, ForeignKey("papers.id"), nullable=False)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    subject = Column(String, nullable=False)
    status = Column(String, default="active")  # active / closed

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    paper = relationship("Paper")


class Message(Base):
    __tablename__ = "review_messages"

    id = Column(Integer, primary_key=True, index=True)

    thread_id = Column(Integer, ForeignKey("review_threads.id"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    sender_type = Column(String, nullable=False)  # author / reviewer

    content = Column(Text, nullable=False)
    message_type = Column(String, default="general")
    is_read = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("paper_id", "reviewer_id", name="uq_reviews_paper_reviewer"),
    )

    id = Column(Integer, primary_key=True, index=True)

    paper_id = Column(Integer, ForeignKey("papers.id"), nullable=False)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    content = Column(Text, nullable=False)
    recommendation = Column(String, nullable=False)
    # accept | minor_revisions | major_revisions | reject
    confidence_level = Column(String, default="medium")  # low / medium / high
    is_anonymous = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Revision(Base):
    __tablename__ = "paper_revisions"
    __table_args__ = (
        UniqueConstraint("paper_id", "version_number", name="uq_paper_revisions_version"),
    )

    id = Column(Integer, primary_key=True, index=True)

    paper_id = Column(Integer, ForeignKey("papers.id"), nullable=False)
    version_number = Column(Integer, nullable=False)

    file_url = Column(String, nullable=False)
    cover_letter = Column(Text, nullable=True)

    status = Column(String, default="submitted")
    # submitted | under_review | revision_requested | approved | rejected
    reviewer_feedback = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    paper = relationship("Paper")


class ReviewerExpertise(Base):
    __tablename__ = "reviewer_expertise"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    research_areas = Column(JSON, default=list)
    keywords = Column(JSON, default=list)
    h_index = Column(Integer, nullable=True)
    publications_count = Column(Integer, nullable=True)
    years_experience = Column(Integer, nullable=True)
    institution = Column(String, nullable=True)
    bio = Column(Text, nullable=True)

    availability_status = Column(String, default="available")
    # available | limited | unavailable
    current_reviews_count = Column(Integer, default=0)
    max_concurrent_reviews = Column(Integer, default=3)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")


class Validation(Base):
    __tablename__ = "validations"

    id = Column(Integer, primary_key=True, index=True)
    paper_id = Column(Integer, ForeignKey("papers.id"), nullable=False, index=True)
    validator_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    type = Column(String, nullable=False)
    # MATHEMATICAL_PROOF | COMPUTATIONAL_REPLICATION | EXPERT_REVIEW | REFUTATION_ATTEMPT
    result = Column(String, nullable=False)
    # CONFIRMED | DISPUTED | FAILED
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    paper = relationship("Paper")
    validator = relationship("User")
