from contextlib import asynccontextmanager
from datetime import timedelta
from functools import lru_cache

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from journalflow import assignments, expertise, papers, proposals, reviews, revisions, threads, validations
from journalflow.auth import (
    hash_password,
    verify_password,
    create_access_token,
    get_current_actor,
    require_role,
)
from journalflow.config import get_settings
from journalflow.database import get_db, init_db
from journalflow.errors import JournalflowError
from journalflow.identity import Actor, normalize_email
from journalflow.logging import configure_logging, get_logger
from journalflow.matching import RankedCandidate
from journalflow.models import USER_ROLES
from journalflow.notifications import Notifier, get_notifier
from journalflow.orchestrator import assign, get_proposal, rank_candidates
from journalflow.schemas import (
    AddReviewers,
    AssignmentResponse,
    AssignmentUpdate,
    AssignReviewer,
    ExpertiseResponse,
    ExpertiseUpdate,
    MessageCreate,
    MessageResponse,
    PaperCreate,
    PaperResponse,
    PaperStatusUpdate,
    ProposalCreate,
    ProposalDetailResponse,
    ProposalResponse,
    ProposalUpdate,
    RankedCandidateResponse,
    RespondInvite,
    ReviewCreate,
    ReviewerAssignmentResponse,
    ReviewResponse,
    RevisionCreate,
    RevisionResponse,
    RevisionUpdate,
    ThreadCreate,
    ThreadListResponse,
    ThreadResponse,
    UserCreate,
    UserLogin,
    UserResponse,
    ValidationCreate,
    ValidationListResponse,
    ValidationResponse,
)
from journalflow.store import EntityStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # ----------------------------------------
    # Create database tables
    # ----------------------------------------
    init_db()
    yield


# ----------------------------------------
# Create FastAPI app
# ----------------------------------------
app = FastAPI(
    title="Journalflow API",
    description="Peer-review workflow for proposals, papers, reviews and revisions",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(JournalflowError)
def journalflow_error_handler(request: Request, exc: JournalflowError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error_code=exc.error_code, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, **exc.to_dict()},
    )


# ----------------------------------------
# Dependencies
# ----------------------------------------
def get_store(db: Session = Depends(get_db)) -> EntityStore:
    return EntityStore(db)


@lru_cache
def get_mailer() -> Notifier:
    return get_notifier()


def _candidate_response(ranked: RankedCandidate) -> RankedCandidateResponse:
    profile = ranked.candidate
    user = profile.user
    return RankedCandidateResponse(
        user_id=profile.user_id,
        name=user.name if user else None,
        email=user.email if user else None,
        institution=profile.institution,
        research_areas=profile.research_areas or [],
        keywords=profile.keywords or [],
        h_index=profile.h_index,
        years_experience=profile.years_experience,
        current_reviews_count=profile.current_reviews_count,
        max_concurrent_reviews=profile.max_concurrent_reviews,
        score=ranked.score,
        reasons=ranked.reasons,
        has_capacity=ranked.has_capacity,
    )


def _thread_response(view: threads.ThreadView) -> ThreadResponse:
    thread = view.thread
    return ThreadResponse(
        id=thread.id,
        paper_id=thread.paper_id,
        reviewer_id=thread.reviewer_id,
        author_id=thread.author_id,
        subject=thread.subject,
        status=thread.status,
        created_at=thread.created_at,
        updated_at=thread.updated_at,
        messages=[MessageResponse.model_validate(m) for m in view.messages],
        unread_count=view.unread_count,
    )


# ----------------------------------------
# Root
# ----------------------------------------
@app.get("/")
def root():
    return {"message": "Journalflow backend running 🚀"}


# ----------------------------------------
# Signup
# ----------------------------------------
@app.post("/signup")
def signup(user: UserCreate, store: EntityStore = Depends(get_store)):
    if user.role not in ["author", "reviewer"]:
        raise HTTPException(status_code=400, detail="Invalid role")

    email = normalize_email(user.email)
    existing_user = store.get_one("users", {"email": email})
    if existing_user:
        raise HTTPException(status_code=400, detail="Email already registered")

    store.insert(
        "users",
        {
            "name": user.name,
            "email": email,
            "hashed_password": hash_password(user.password),
            "role": user.role,
            "institution": user.institution,
        },
    )

    return {"message": "User created successfully"}


# ----------------------------------------
# Login
# ----------------------------------------
@app.post("/login")
def login(user: UserLogin, store: EntityStore = Depends(get_store)):
    db_user = store.get_one("users", {"email": normalize_email(user.email)})

    if not db_user or not verify_password(
        user.password, db_user.hashed_password
    ):
        raise HTTPException(status_code=400, detail="Invalid email or password")

    access_token = create_access_token(
        data={"sub": db_user.email},
        expires_delta=timedelta(minutes=get_settings().ACCESS_TOKEN_EXPIRE_MINUTES),
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
    }


# ----------------------------------------
# Current user
# ----------------------------------------
@app.get("/me", response_model=UserResponse)
def read_current_user(
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return store.get_one("users", {"id": actor.id})


@app.put("/users/{user_id}/role")
def update_user_role(
    user_id: int,
    role: str,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    if role not in USER_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")

    if not store.update("users", {"id": user_id}, {"role": role}):
        raise HTTPException(status_code=404, detail="User not found")

    return {
        "message": f"User role updated to {role}"
    }


# ----------------------------------------
# Proposals
# ----------------------------------------
@app.post("/proposals", response_model=ProposalResponse)
def create_proposal(
    proposal: ProposalCreate,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return proposals.create_proposal(store, actor, **proposal.model_dump())


@app.get("/proposals", response_model=list[ProposalResponse])
def get_my_proposals(
    status: str | None = None,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return proposals.list_proposals(store, actor, status)


@app.post("/proposals/{proposal_id}/submit", response_model=ProposalResponse)
def submit_proposal(
    proposal_id: int,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return proposals.submit_proposal(store, proposal_id, actor)


@app.get("/admin/proposals/{proposal_id}", response_model=ProposalDetailResponse)
def get_proposal_with_matches(
    proposal_id: int,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    proposal = get_proposal(store, proposal_id)
    return ProposalDetailResponse(
        proposal=ProposalResponse.model_validate(proposal),
        matched_reviewers=[_candidate_response(r) for r in rank_candidates(store, proposal_id)],
    )


@app.get("/admin/proposals/{proposal_id}/candidates", response_model=list[RankedCandidateResponse])
def get_ranked_candidates(
    proposal_id: int,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    return [_candidate_response(r) for r in rank_candidates(store, proposal_id)]


@app.put("/admin/proposals/{proposal_id}", response_model=ProposalResponse)
def update_proposal(
    proposal_id: int,
    changes: ProposalUpdate,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    return proposals.update_proposal(store, proposal_id, changes.model_dump(exclude_unset=True))


@app.post("/admin/proposals/{proposal_id}/assign", response_model=AssignmentResponse)
def assign_reviewer(
    proposal_id: int,
    data: AssignReviewer,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
    mailer: Notifier = Depends(get_mailer),
):
    result = assign(store, mailer, proposal_id, data.reviewer_id, data.is_lead_editor)
    return AssignmentResponse(
        paper_id=result.paper_id,
        assignment_id=result.assignment_id,
        thread_id=result.thread_id,
        warnings=result.warnings,
        message=(
            "Reviewer assigned and communication thread created"
            if result.thread_id is not None
            else "Reviewer assigned"
        ),
    )


# ----------------------------------------
# Papers and their reviewers (admin)
# ----------------------------------------
@app.put("/admin/papers/{paper_id}/status", response_model=PaperResponse)
def update_paper_status(
    paper_id: int,
    data: PaperStatusUpdate,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    return papers.update_paper_status(store, paper_id, data.status)


@app.get("/admin/papers/{paper_id}/reviews", response_model=list[ReviewResponse])
def get_paper_reviews(
    paper_id: int,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    return reviews.list_paper_reviews(store, paper_id)


@app.get("/admin/papers/{paper_id}/reviewers", response_model=list[ReviewerAssignmentResponse])
def get_paper_reviewers(
    paper_id: int,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    return assignments.list_paper_reviewers(store, paper_id)


@app.post("/admin/papers/{paper_id}/reviewers", response_model=list[ReviewerAssignmentResponse], status_code=201)
def add_paper_reviewers(
    paper_id: int,
    data: AddReviewers,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    return assignments.add_reviewers(store, paper_id, data.emails)


@app.patch("/admin/papers/{paper_id}/reviewers/{assignment_id}", response_model=ReviewerAssignmentResponse)
def update_paper_reviewer(
    paper_id: int,
    assignment_id: int,
    changes: AssignmentUpdate,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    return assignments.update_assignment(store, paper_id, assignment_id, changes.model_dump(exclude_unset=True))


@app.delete("/admin/papers/{paper_id}/reviewers/{assignment_id}")
def remove_paper_reviewer(
    paper_id: int,
    assignment_id: int,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
):
    assignments.remove_assignment(store, paper_id, assignment_id)
    return {"success": True}


@app.post("/admin/papers/{paper_id}/reviewers/{assignment_id}/invite", response_model=ReviewerAssignmentResponse)
def invite_paper_reviewer(
    paper_id: int,
    assignment_id: int,
    actor: Actor = Depends(require_role("admin")),
    store: EntityStore = Depends(get_store),
    mailer: Notifier = Depends(get_mailer),
):
    return assignments.invite_reviewer(store, mailer, paper_id, assignment_id)


# ----------------------------------------
# Portal: expertise
# ----------------------------------------
@app.get("/portal/expertise", response_model=ExpertiseResponse | None)
def get_my_expertise(
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return expertise.get_profile(store, actor.id)


@app.put("/portal/expertise", response_model=ExpertiseResponse)
def update_my_expertise(
    data: ExpertiseUpdate,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return expertise.upsert_profile(store, actor, data.model_dump())


# ----------------------------------------
# Portal: submissions
# ----------------------------------------
@app.post("/portal/submissions", response_model=PaperResponse)
def create_submission(
    paper: PaperCreate,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return papers.submit_paper(store, actor, **paper.model_dump())


@app.get("/portal/submissions", response_model=list[PaperResponse])
def get_my_submissions(
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return papers.list_submissions(store, actor)


# ----------------------------------------
# Portal: reviewing
# ----------------------------------------
@app.get("/portal/reviews", response_model=list[ReviewerAssignmentResponse])
def get_my_assignments(
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return assignments.list_reviewer_assignments(store, actor)


@app.post("/portal/assignments/{assignment_id}/respond", response_model=ReviewerAssignmentResponse)
def respond_to_assignment(
    assignment_id: int,
    response: RespondInvite,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return assignments.respond_to_assignment(store, actor, assignment_id, response.accept)


@app.get("/portal/reviews/{paper_id}", response_model=ReviewResponse | None)
def get_my_review(
    paper_id: int,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return reviews.get_review(store, paper_id, actor.id)


@app.post("/portal/reviews/{paper_id}/submit", response_model=ReviewResponse)
def submit_review(
    paper_id: int,
    review: ReviewCreate,
    actor: Actor = Depends(require_role("reviewer")),
    store: EntityStore = Depends(get_store),
    mailer: Notifier = Depends(get_mailer),
):
    return reviews.submit_review(
        store,
        mailer,
        paper_id,
        actor.id,
        review.content,
        review.recommendation,
        review.confidence_level,
        review.is_anonymous,
    )


# ----------------------------------------
# Portal: revisions
# ----------------------------------------
@app.get("/portal/revisions", response_model=list[RevisionResponse])
def get_revisions(
    paper_id: int | None = None,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return revisions.list_revisions(store, actor, paper_id)


@app.post("/portal/revisions", response_model=RevisionResponse)
def submit_revision(
    data: RevisionCreate,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
    mailer: Notifier = Depends(get_mailer),
):
    return revisions.submit_revision(store, mailer, data.paper_id, data.file_url, data.cover_letter, actor)


@app.put("/portal/revisions/{revision_id}", response_model=RevisionResponse)
def adjudicate_revision(
    revision_id: int,
    data: RevisionUpdate,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
    mailer: Notifier = Depends(get_mailer),
):
    return revisions.update_revision(store, mailer, revision_id, actor, data.status, data.reviewer_feedback)


# ----------------------------------------
# Portal: threads and messages
# ----------------------------------------
@app.get("/portal/threads", response_model=ThreadListResponse)
def get_my_threads(
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    views = threads.list_threads(store, actor.id, actor.role)
    return ThreadListResponse(
        threads=[_thread_response(v) for v in views],
        unread_count=sum(v.unread_count for v in views),
    )


@app.post("/portal/threads")
def open_thread(
    data: ThreadCreate,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    thread = threads.open_thread(store, data.paper_id, actor, data.initial_message)
    return {"thread_id": thread.id, "success": True}


@app.post("/portal/threads/{thread_id}/messages", response_model=MessageResponse)
def post_message(
    thread_id: int,
    data: MessageCreate,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return threads.post_message(store, thread_id, actor.id, actor.role, data.content, data.message_type)


@app.post("/portal/threads/{thread_id}/read")
def mark_thread_read(
    thread_id: int,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return {"updated": threads.mark_thread_read(store, thread_id, actor.id, actor.role)}


# ----------------------------------------
# Validations
# ----------------------------------------
@app.post("/validations", response_model=ValidationResponse, status_code=201)
def submit_validation(
    data: ValidationCreate,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return validations.submit_validation(store, actor, data.paper_id, data.type, data.result, data.notes)


@app.get("/validations", response_model=ValidationListResponse)
def get_validations(
    paper_id: int | None = None,
    type: str | None = None,
    limit: int = 50,
    offset: int = 0,
    actor: Actor = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    rows, total = validations.list_validations(store, paper_id, type, limit, offset)
    return ValidationListResponse(
        validations=[ValidationResponse.model_validate(row) for row in rows],
        total=total,
        limit=limit,
        offset=offset,
    )
