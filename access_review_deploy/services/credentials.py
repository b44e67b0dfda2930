# access_review_deploy/services/credentials.py
from __future__ import annotations

import logging

from botocore.exceptions import BotoCoreError, ClientError

from access_review_deploy.errors import CredentialError
from access_review_deploy.models.deployment import CallerIdentity

logger = logging.getLogger(__name__)

STEP = "validate credentials"


class CredentialValidator:
    """Read-only "who am I" guard run before anything is mutated."""

    def __init__(self, session) -> None:
        self._session = session

    def validate(self) -> CallerIdentity:
        region = self._session.region_name
        logger.info("Validating AWS credentials in %s", region)
        try:
            sts = self._session.client("sts")
            identity = sts.get_caller_identity()
        except (ClientError, BotoCoreError) as e:
            # covers NoCredentialsError, ProfileNotFound and connection failures
            raise CredentialError(f"Failed to validate AWS credentials: {e}", step=STEP) from e

        caller = CallerIdentity(
            account=identity["Account"],
            arn=identity["Arn"],
            user_id=identity.get("UserId", ""),
        )
        logger.info("Authenticated as %s (account %s)", caller.arn, caller.account)
        return caller
