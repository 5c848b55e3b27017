from fastapi import APIRouter, BackgroundTasks, Depends

from app.middleware.auth import require_evaluator
from app.models.account import Account
from app.models.evaluation import EvaluationEvent, EvaluationRequest, EvaluationResponse
from app.service.context import ServiceContext, get_services
from app.service.review.workflow import ReviewWorkflow

router = APIRouter(prefix="/evaluation", tags=["evaluation"])


@router.put("/{submission_id}", response_model=EvaluationResponse)
async def record_decision(
    submission_id: str,
    data: EvaluationRequest,
    background_tasks: BackgroundTasks,
    evaluator: Account = Depends(require_evaluator),
    services: ServiceContext = Depends(get_services),
):
    """
    Store (or replace) the decision for a submission. The applicant's email
    is sent after the response; its outcome does not affect this call.
    """
    evaluation = await ReviewWorkflow(services).record_decision(
        evaluator,
        submission_id,
        data.decision,
        data.feedback,
        background_tasks=background_tasks,
    )
    return EvaluationResponse(
        message="Decision saved",
        evaluation=EvaluationEvent.from_row(evaluation),
    )


@router.get("/{submission_id}", response_model=EvaluationResponse)
async def get_evaluation(
    submission_id: str,
    evaluator: Account = Depends(require_evaluator),
    services: ServiceContext = Depends(get_services),
):
    _, evaluation = ReviewWorkflow(services).open_review(submission_id)
    if evaluation is None:
        return EvaluationResponse(message="Not evaluated yet")
    return EvaluationResponse(
        message="Evaluation found",
        evaluation=EvaluationEvent.from_row(evaluation),
    )
