import logging
import time
from typing import Optional

from fastapi import status

from app.errors import UpstreamFailure, ValidationFailure
from app.models.account import Account
from app.models.submission import Submission, SubmissionForm
from app.service.context import ServiceContext
from app.service.image.normalizer import ImageDecodeError, normalize_avatar
from app.utils.file import UploadedArtifact

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".zip"


def _is_selected(artifact: Optional[UploadedArtifact]) -> bool:
    # browsers send an empty part with no filename for an untouched file input
    return artifact is not None and bool(artifact.filename)


def validate_artifacts(avatar: Optional[UploadedArtifact], archive: Optional[UploadedArtifact]):
    """Local checks run before anything leaves the process."""
    if not _is_selected(avatar):
        raise ValidationFailure("Profile picture is required")
    if not _is_selected(archive):
        raise ValidationFailure("Source code ZIP file is required")
    if not archive.filename.endswith(ARCHIVE_SUFFIX):
        raise ValidationFailure("File must be .zip")


def _object_name(user_id: str, extension: str) -> str:
    return f"{user_id}-{int(time.time() * 1000)}.{extension}"


class SubmissionWriter:
    """
    Stores the two artifacts, then the submission row pointing at them.

    Each step aborts the rest on failure with its own message. Objects
    already uploaded stay in storage when a later step fails.
    """

    def __init__(self, services: ServiceContext):
        self.services = services

    async def submit(
        self,
        account: Account,
        form: SubmissionForm,
        avatar: Optional[UploadedArtifact],
        archive: Optional[UploadedArtifact],
    ) -> Submission:
        validate_artifacts(avatar, archive)

        store = self.services.store
        if store.get_submission_for_owner(account.id):
            raise ValidationFailure(
                "You have already submitted an application",
                status_code=status.HTTP_409_CONFLICT,
            )

        try:
            image = await normalize_avatar(avatar.data)
        except ImageDecodeError as e:
            logger.info(f"Rejected avatar {avatar.filename} from {account.id}: {e}")
            raise ValidationFailure("Profile picture could not be read as an image")

        # Upload avatar --------------------------------------------------------
        avatar_path = _object_name(account.id, "jpg")
        try:
            self.services.avatars.upload_file_from_bytes(
                data=image.data,
                dest_name=avatar_path,
                content_type=image.content_type,
            )
            avatar_url = self.services.avatars.get_public_url(avatar_path)
        except Exception as e:
            logger.error(f"Avatar upload failed for {account.id}: {e}")
            raise UpstreamFailure("Image upload failed")

        # Upload archive -------------------------------------------------------
        archive_path = _object_name(account.id, "zip")
        try:
            self.services.source_code.upload_file_from_bytes(
                data=archive.data,
                dest_name=archive_path,
                content_type="application/zip",
            )
            archive_url = self.services.source_code.get_public_url(archive_path)
        except Exception as e:
            logger.error(f"Archive upload failed for {account.id}: {e}")
            raise UpstreamFailure("ZIP upload failed")

        # Save submission to DB ------------------------------------------------
        try:
            submission = await store.insert_submission(
                Submission(
                    user_id=account.id,
                    full_name=form.full_name,
                    phone=form.phone,
                    location=form.location,
                    email=form.email,
                    hobby=form.hobby,
                    profile_image_url=avatar_url,
                    source_code_url=archive_url,
                )
            )
        except Exception as e:
            logger.error(f"Saving submission failed for {account.id}: {e}")
            raise UpstreamFailure("Failed to save submission")

        return submission
