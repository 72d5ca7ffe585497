from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: str = "author"  # author / reviewer
    institution: str | None = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    institution: str | None = None

    class Config:
        from_attributes = True


# ----------------------------------------
# Proposals
# ----------------------------------------
class ProposalCreate(BaseModel):
    title: str
    abstract: str
    research_area: str
    keywords: list[str] = []
    methodology_summary: str | None = None
    expected_contribution: str | None = None
    is_draft: bool = False


class ProposalUpdate(BaseModel):
    status: str | None = None
    funding_amount: Decimal | None = None
    admin_notes: str | None = None


class ProposalResponse(BaseModel):
    id: int
    author_id: int
    title: str
    abstract: str
    research_area: str
    keywords: list[str] | None = None
    status: str
    funding_amount: Decimal | None = None
    admin_notes: str | None = None
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


# ----------------------------------------
# Reviewer expertise and matching
# ----------------------------------------
class ExpertiseUpdate(BaseModel):
    research_areas: list[str] = []
    keywords: list[str] = []
    h_index: int | None = None
    publications_count: int | None = None
    years_experience: int | None = None
    institution: str | None = None
    bio: str | None = None
    availability_status: str = "available"  # available / limited / unavailable
    current_reviews_count: int | None = None
    max_concurrent_reviews: int | None = None


class ExpertiseResponse(BaseModel):
    user_id: int
    research_areas: list[str] | None = None
    keywords: list[str] | None = None
    h_index: int | None = None
    publications_count: int | None = None
    years_experience: int | None = None
    institution: str | None = None
    bio: str | None = None
    availability_status: str
    current_reviews_count: int | None = None
    max_concurrent_reviews: int | None = None

    class Config:
        from_attributes = True


class RankedCandidateResponse(BaseModel):
    user_id: int
    name: str | None = None
    email: str | None = None
    institution: str | None = None
    research_areas: list[str] = []
    keywords: list[str] = []
    h_index: int | None = None
    years_experience: int | None = None
    current_reviews_count: int | None = None
    max_concurrent_reviews: int | None = None
    score: int
    reasons: list[str]
    has_capacity: bool


class ProposalDetailResponse(BaseModel):
    proposal: ProposalResponse
    matched_reviewers: list[RankedCandidateResponse]


# ----------------------------------------
# Assignments
# ----------------------------------------
class AssignReviewer(BaseModel):
    reviewer_id: int | None = None
    is_lead_editor: bool = False


class AssignmentResponse(BaseModel):
    paper_id: int
    assignment_id: int
    thread_id: int | None = None
    warnings: list[str] = []
    message: str


class AddReviewers(BaseModel):
    emails: list[EmailStr]


class AssignmentUpdate(BaseModel):
    status: str | None = None
    review_notes: str | None = None
    is_lead_editor: bool | None = None
    can_communicate: bool | None = None


class RespondInvite(BaseModel):
    accept: bool


class ReviewerAssignmentResponse(BaseModel):
    id: int
    paper_id: int
    reviewer_id: int | None = None
    reviewer_email: str
    is_lead_editor: bool
    can_communicate: bool
    status: str
    review_id: int | None = None
    review_notes: str | None = None
    invited_at: datetime | None = None
    accepted_at: datetime | None = None
    completed_at: datetime | None = None

    class Config:
        from_attributes = True


# ----------------------------------------
# Papers
# ----------------------------------------
class PaperCreate(BaseModel):
    title: str
    abstract: str
    content: str
    research_area: str | None = None
    keywords: list[str] = []


class PaperStatusUpdate(BaseModel):
    status: str


class PaperResponse(BaseModel):
    id: int
    title: str
    abstract: str | None = None
    author_id: int
    proposal_id: int | None = None
    status: str
    validation_score: int | None = 0
    current_revision_id: int | None = None
    research_area: str | None = None
    keywords: list[str] | None = None
    created_at: datetime | None = None
    published_at: datetime | None = None

    class Config:
        from_attributes = True


# ----------------------------------------
# Reviews
# ----------------------------------------
class ReviewCreate(BaseModel):
    content: str
    recommendation: str
    confidence_level: str | None = None
    is_anonymous: bool | None = None


class ReviewResponse(BaseModel):
    id: int
    paper_id: int
    reviewer_id: int
    content: str
    recommendation: str
    confidence_level: str
    is_anonymous: bool
    created_at: datetime
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


# ----------------------------------------
# Revisions
# ----------------------------------------
class RevisionCreate(BaseModel):
    paper_id: int
    file_url: str
    cover_letter: str | None = None


class RevisionUpdate(BaseModel):
    status: str | None = None
    reviewer_feedback: str | None = None


class RevisionResponse(BaseModel):
    id: int
    paper_id: int
    version_number: int
    file_url: str
    cover_letter: str | None = None
    status: str
    reviewer_feedback: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


# ----------------------------------------
# Threads and messages
# ----------------------------------------
class ThreadCreate(BaseModel):
    paper_id: int
    initial_message: str | None = None


class MessageCreate(BaseModel):
    content: str
    message_type: str | None = None


class MessageResponse(BaseModel):
    id: int
    thread_id: int
    sender_id: int
    sender_type: str
    content: str
    message_type: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ThreadResponse(BaseModel):
    id: int
    paper_id: int
    reviewer_id: int
    author_id: int
    subject: str
    status: str
    created_at: datetime
    updated_at: datetime | None = None
    messages: list[MessageResponse] = []
    unread_count: int = 0

    class Config:
        from_attributes = True


class ThreadListResponse(BaseModel):
    threads: list[ThreadResponse]
    unread_count: int


# ----------------------------------------
# Validations
# ----------------------------------------
class ValidationCreate(BaseModel):
    paper_id: int
    type: str
    result: str
    notes: str | None = None


class ValidationResponse(BaseModel):
    id: int
    paper_id: int
    validator_id: int
    type: str
    result: str
    notes: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class ValidationListResponse(BaseModel):
    validations: list[ValidationResponse]
    total: int
    limit: int
    offset: int
