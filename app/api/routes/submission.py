from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel

from app.middleware.auth import require_developer, require_evaluator
from app.models.account import Account
from app.models.evaluation import EvaluationEvent
from app.models.status import SubmissionStatus
from app.models.submission import SubmissionDetail, SubmissionForm, SubmissionSummary
from app.service.context import ServiceContext, get_services
from app.service.live.lifecycle import read_status
from app.service.review.workflow import ReviewWorkflow
from app.service.submission.writer import SubmissionWriter
from app.utils.file import read_upload

router = APIRouter(prefix="/submission", tags=["submission"])

# ──────────────────────────────────────────────────────────────────────────────
# Pydantic schemas for docs / responses
# ──────────────────────────────────────────────────────────────────────────────
class UploadResponse(BaseModel):
    submission_id: str
    message: str
    profile_image_url: str
    source_code_url: str


class OwnSubmissionResponse(BaseModel):
    submission: Optional[SubmissionDetail] = None
    status: SubmissionStatus


class SubmissionListResponse(BaseModel):
    message: str
    submissions: List[SubmissionSummary]


class SubmissionReviewResponse(BaseModel):
    submission: SubmissionDetail
    evaluation: Optional[EvaluationEvent] = None

# ──────────────────────────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────────────────────────
@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_submission(
    full_name: str = Form(...),
    phone: str = Form(...),
    location: str = Form(...),
    email: str = Form(...),
    hobby: str = Form(...),
    profile_image: Optional[UploadFile] = File(None),
    source_code: Optional[UploadFile] = File(None),
    user: Account = Depends(require_developer),
    services: ServiceContext = Depends(get_services),
):
    form = SubmissionForm(full_name=full_name, phone=phone, location=location, email=email, hobby=hobby)
    submission = await SubmissionWriter(services).submit(
        user,
        form,
        await read_upload(profile_image),
        await read_upload(source_code),
    )
    return UploadResponse(
        submission_id=submission.id,
        message="Submission saved successfully",
        profile_image_url=submission.profile_image_url,
        source_code_url=submission.source_code_url,
    )


@router.get("/mine", response_model=OwnSubmissionResponse)
async def get_own_submission(
    user: Account = Depends(require_developer),
    services: ServiceContext = Depends(get_services),
):
    submission = services.store.get_submission_for_owner(user.id)
    return OwnSubmissionResponse(
        submission=SubmissionDetail.from_row(submission) if submission else None,
        status=read_status(services.store, user.id),
    )


@router.get("/all", response_model=SubmissionListResponse)
async def get_all_submissions(
    user: Account = Depends(require_evaluator),
    services: ServiceContext = Depends(get_services),
):
    submissions = ReviewWorkflow(services).list_submissions()
    if not submissions:
        return SubmissionListResponse(message="No submissions found", submissions=[])

    return SubmissionListResponse(
        message="All submissions retrieved successfully",
        submissions=[
            SubmissionSummary(
                id=sub.id,
                full_name=sub.full_name,
                email=sub.email,
                profile_image_url=sub.profile_image_url,
                created_at=sub.created_at,
            )
            for sub in submissions
        ],
    )


@router.get("/{submission_id}", response_model=SubmissionReviewResponse)
async def get_submission(
    submission_id: str,
    user: Account = Depends(require_evaluator),
    services: ServiceContext = Depends(get_services),
):
    submission, evaluation = ReviewWorkflow(services).open_review(submission_id)
    return SubmissionReviewResponse(
        submission=SubmissionDetail.from_row(submission),
        evaluation=EvaluationEvent.from_row(evaluation) if evaluation else None,
    )
