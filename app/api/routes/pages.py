import os
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from app.api.routes.auth import set_session_cookie
from app.config.setting import settings
from app.errors import InvalidCredentials, PortalError
from app.middleware.auth import get_token, require_developer, require_evaluator
from app.models.account import Account, Role
from app.models.evaluation import Decision
from app.models.submission import SubmissionForm
from app.service.context import ServiceContext, get_services
from app.service.live.lifecycle import read_status
from app.service.review.workflow import ReviewWorkflow
from app.service.submission.writer import SubmissionWriter
from app.utils.file import read_upload

template_dir = os.path.join(os.path.dirname(__file__), '..', '..', 'templates')
templates = Jinja2Templates(directory=template_dir)

router = APIRouter(tags=["pages"], include_in_schema=False)

HOME_BY_ROLE = {
    Role.DEVELOPER: "/submit",
    Role.EVALUATOR: "/evaluator",
}


@router.get("/")
async def index():
    return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)


# ── sign in ──────────────────────────────────────────────────────────────────
@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request):
    return templates.TemplateResponse(request, "pages/login.html", {"error": None, "email": ""})


@router.post("/login", response_class=HTMLResponse)
async def login_submit(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    services: ServiceContext = Depends(get_services),
):
    try:
        token = services.identity.sign_in(email, password)
    except InvalidCredentials:
        return templates.TemplateResponse(
            request,
            "pages/login.html",
            {"error": "Invalid credentials", "email": email},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    account = services.store.get_account(token.account_id)
    response = RedirectResponse(HOME_BY_ROLE[account.role], status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, token.id)
    return response


@router.get("/logout")
async def logout_page(request: Request, services: ServiceContext = Depends(get_services)):
    services.identity.sign_out(get_token(request))
    response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(settings.ACCESS_TOKEN_COOKIE)
    return response


# ── developer ────────────────────────────────────────────────────────────────
def _render_submit(
    request: Request,
    user: Account,
    services: ServiceContext,
    form: Optional[SubmissionForm] = None,
    error: Optional[str] = None,
    success: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
):
    return templates.TemplateResponse(
        request,
        "pages/submit.html",
        {
            "user": user,
            "form": form or SubmissionForm(full_name="", phone="", location="", email=user.email, hobby=""),
            "status": read_status(services.store, user.id),
            "error": error,
            "success": success,
        },
        status_code=status_code,
    )


@router.get("/submit", response_class=HTMLResponse)
async def submit_page(
    request: Request,
    user: Account = Depends(require_developer),
    services: ServiceContext = Depends(get_services),
):
    return _render_submit(request, user, services)


@router.post("/submit", response_class=HTMLResponse)
async def submit_form(
    request: Request,
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
    try:
        await SubmissionWriter(services).submit(
            user,
            form,
            await read_upload(profile_image),
            await read_upload(source_code),
        )
    except PortalError as e:
        return _render_submit(request, user, services, form=form, error=e.message, status_code=e.status_code)

    return _render_submit(request, user, services, form=form, success="Submission saved successfully 🎉")


# ── evaluator ────────────────────────────────────────────────────────────────
@router.get("/evaluator", response_class=HTMLResponse)
async def evaluator_dashboard(
    request: Request,
    user: Account = Depends(require_evaluator),
    services: ServiceContext = Depends(get_services),
):
    submissions = ReviewWorkflow(services).list_submissions()
    return templates.TemplateResponse(request, "pages/evaluator.html", {"submissions": submissions})


def _render_review(
    request: Request,
    services: ServiceContext,
    submission_id: str,
    message: Optional[str] = None,
    feedback_draft: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
):
    submission, evaluation = ReviewWorkflow(services).open_review(submission_id)
    return templates.TemplateResponse(
        request,
        "pages/review.html",
        {
            "submission": submission,
            "decision": evaluation.decision.value if evaluation else "",
            "feedback": feedback_draft if feedback_draft is not None else (evaluation.feedback if evaluation else ""),
            "message": message,
        },
        status_code=status_code,
    )


@router.get("/evaluator/review/{submission_id}", response_class=HTMLResponse)
async def review_page(
    request: Request,
    submission_id: str,
    user: Account = Depends(require_evaluator),
    services: ServiceContext = Depends(get_services),
):
    return _render_review(request, services, submission_id)


@router.post("/evaluator/review/{submission_id}", response_class=HTMLResponse)
async def review_decision(
    request: Request,
    submission_id: str,
    background_tasks: BackgroundTasks,
    decision: Decision = Form(...),
    feedback: str = Form(""),
    user: Account = Depends(require_evaluator),
    services: ServiceContext = Depends(get_services),
):
    try:
        await ReviewWorkflow(services).record_decision(
            user,
            submission_id,
            decision,
            feedback,
            background_tasks=background_tasks,
        )
    except PortalError as e:
        if e.status_code == status.HTTP_404_NOT_FOUND:
            raise
        return _render_review(request, services, submission_id, message=f"❌ {e.message}", feedback_draft=feedback, status_code=e.status_code)

    return _render_review(request, services, submission_id, message="✅ Decision saved!")
