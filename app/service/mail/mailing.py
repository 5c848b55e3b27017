from abc import ABC, abstractmethod
import aiohttp
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from starlette.concurrency import run_in_threadpool
from app.config.setting import settings
from app.models.evaluation import Decision
from app.models.submission import Submission
import os
from jinja2 import Environment, FileSystemLoader
import logging

logger = logging.getLogger(__name__)

template_dir = os.path.join(os.path.dirname(__file__), '..', '..', 'templates')
jinja_env = Environment(
    loader=FileSystemLoader(template_dir),
    autoescape=False,  # plain-text mail bodies
    keep_trailing_newline=True,
)

SUBJECTS = {
    Decision.ACCEPTED: "🎉 Welcome to MoonDev!",
    Decision.REJECTED: "MoonDev Application Result",
}


def render_template(template_name_with_folder: str, **context) -> str:
    try:
        template = jinja_env.get_template(template_name_with_folder)
        return template.render(**context)
    except Exception as e:
        logger.error(f"Failed to render Jinja2 template {template_name_with_folder}: {e}")
        raise


def build_decision_email(submission: Submission, decision: Decision, feedback: str) -> tuple[str, str]:
    """Subject and body telling the applicant about *decision*."""
    if decision not in SUBJECTS:
        raise ValueError(f"No email for decision {decision.value}")
    body = render_template(
        f"email/{decision.value}.txt",
        full_name=submission.full_name,
        feedback=feedback,
    )
    return SUBJECTS[decision], body


class MailSender(ABC):
    @abstractmethod
    async def send(self, to_email: str, subject: str, message: str):
        pass


class FunctionMailSender(MailSender):
    """
    Posts ``{to, subject, message}`` to the hosted send-email function with a
    static bearer credential. The response body is ignored.
    """
    def __init__(self, url: str = settings.MAIL_FUNCTION_URL, token: str = settings.MAIL_FUNCTION_TOKEN):
        self.url = url
        self.token = token

    async def send(self, to_email: str, subject: str, message: str):
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
        }
        payload = {"to": to_email, "subject": subject, "message": message}
        async with aiohttp.ClientSession() as session:
            async with session.post(self.url, json=payload, headers=headers) as response:
                response.raise_for_status()
                logger.info(f"Mail function accepted email to {to_email}, status code: {response.status}")


class SendGridMailSender(MailSender):
    def __init__(self, api_key: str = settings.SENDGRID_API_KEY, sender_email: str = settings.MAIL_FROM_EMAIL):
        self.client = SendGridAPIClient(api_key)
        self.sender_email = sender_email

    async def send(self, to_email: str, subject: str, message: str):
        mail = Mail(
            from_email=self.sender_email,
            to_emails=to_email,
            subject=subject,
            plain_text_content=message,
        )
        response = await run_in_threadpool(self.client.send, mail)
        logger.info(f"Email sent to {to_email}, status code: {response.status_code}")


def build_mail_sender() -> MailSender | None:
    backend = settings.MAIL_BACKEND.lower()
    if backend == "function":
        if not settings.MAIL_FUNCTION_URL:
            logger.warning("MAIL_FUNCTION_URL is not set. Emails will not be sent.")
            return None
        return FunctionMailSender()
    if backend == "sendgrid":
        if not settings.SENDGRID_API_KEY or settings.SENDGRID_API_KEY == "YOUR_SENDGRID_API_KEY_HERE":
            logger.warning("SendGrid API key is not set. Emails will not be sent.")
            return None
        return SendGridMailSender()
    return None


class NotificationDispatcher:
    """
    Fire-and-forget decision emails. Nothing raised here ever reaches the
    evaluator: the evaluation is already stored when dispatch runs.
    """
    def __init__(self, sender: MailSender | None):
        self.sender = sender

    async def dispatch(self, submission: Submission, decision: Decision, feedback: str) -> bool:
        if not self.sender:
            logger.info(f"Skipping decision email to {submission.email}: no mail sender configured.")
            return False

        try:
            subject, message = build_decision_email(submission, decision, feedback)
            await self.sender.send(submission.email, subject, message)
            return True
        except Exception as e:
            logger.error(f"Error sending decision email to {submission.email}: {e}")
            return False
