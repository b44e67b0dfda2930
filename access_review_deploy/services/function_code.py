# access_review_deploy/services/function_code.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict

from botocore.exceptions import BotoCoreError, ClientError

from access_review_deploy.errors import CodeUpdateError, InvocationError
from access_review_deploy.models.deployment import PackagedArtifact

logger = logging.getLogger(__name__)


class FunctionCodeUpdater:
    """
    Push the packaged archive as the function's code.

    Runs after every convergence: CloudFormation does not compare code
    content, so a code-only change would otherwise never ship.
    """

    def __init__(self, session):
        self._lambda = session.client("lambda")

    def update(self, function_arn: str, artifact: PackagedArtifact) -> Dict[str, Any]:
        logger.info("Updating code of %s from %s", function_arn, artifact.path)
        try:
            zip_bytes = artifact.path.read_bytes()
            response = self._lambda.update_function_code(
                FunctionName=function_arn,
                ZipFile=zip_bytes,
            )
        except OSError as e:
            raise CodeUpdateError(f"Cannot read archive {artifact.path}: {e}",
                                  step="update function code") from e
        except (ClientError, BotoCoreError) as e:
            raise CodeUpdateError(str(e), step="update function code") from e

        logger.info(
            "Function code updated (CodeSha256 %s, revision %s)",
            response.get("CodeSha256", "N/A"),
            response.get("RevisionId", "N/A"),
        )
        return response


class ReportInvoker:
    """Trigger one access review run right now instead of waiting for the schedule."""

    def __init__(self, session):
        self._lambda = session.client("lambda")

    def invoke(self, function_arn: str) -> Any:
        logger.info("Invoking %s", function_arn)
        try:
            response = self._lambda.invoke(
                FunctionName=function_arn,
                InvocationType="RequestResponse",
                Payload=b"{}",
            )
            raw = response["Payload"].read()
        except (ClientError, BotoCoreError) as e:
            raise InvocationError(str(e), step="invoke function") from e

        payload = json.loads(raw) if raw else None
        if response.get("FunctionError"):
            message = payload.get("errorMessage") if isinstance(payload, dict) else payload
            raise InvocationError(f"{response['FunctionError']}: {message}", step="invoke function")
        return payload
