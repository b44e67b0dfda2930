# access_review_deploy/services/stack.py
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, List

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from access_review_deploy.errors import ConsistencyError, ConvergenceError
from access_review_deploy.models.deployment import (
    BUCKET_OUTPUT_KEY,
    FUNCTION_OUTPUT_KEY,
    ConvergenceAction,
    ConvergenceResult,
    DeploymentConfig,
    StackOutputs,
)

logger = logging.getLogger(__name__)

CONVERGE_STEP = "converge stack"
OUTPUTS_STEP = "resolve stack outputs"

# The template creates an IAM role for the function
CAPABILITIES = ["CAPABILITY_IAM"]

# StatusReason of a FAILED change set when the stack already matches
NO_CHANGES_REASONS = (
    "didn't contain changes",
    "No updates are to be performed",
)

WAITER_DELAY = 5
STACK_WAITER_MAX_ATTEMPTS = 720  # one hour at WAITER_DELAY


def build_parameters(config: DeploymentConfig) -> List[Dict[str, str]]:
    return [
        {"ParameterKey": "RecipientEmail", "ParameterValue": config.recipient_email},
        {"ParameterKey": "ScheduleExpression", "ParameterValue": config.schedule},
    ]


def _is_missing_stack(e: ClientError) -> bool:
    message = e.response.get("Error", {}).get("Message", "")
    return "does not exist" in message


class StackConvergenceDriver:
    """
    Converge a stack to a template through a change set, the way
    `aws cloudformation deploy` does: one call covers first deploy,
    re-deploy and the nothing-to-do case.
    """

    def __init__(self, session, template_file: Path, waiter_delay: int = WAITER_DELAY):
        self._cfn = session.client("cloudformation")
        self.template_file = Path(template_file)
        self.waiter_delay = waiter_delay

    def converge(self, config: DeploymentConfig) -> ConvergenceResult:
        template_body = self._read_template()
        stack_name = config.stack_name
        try:
            change_set_type = (
                ConvergenceAction.UPDATE if self._stack_exists(stack_name) else ConvergenceAction.CREATE
            )
            logger.info("Submitting %s change set for stack %s", change_set_type, stack_name)
            response = self._cfn.create_change_set(
                StackName=stack_name,
                TemplateBody=template_body,
                Parameters=build_parameters(config),
                Capabilities=CAPABILITIES,
                ChangeSetName=f"deploy-{time.strftime('%Y%m%d%H%M%S', time.gmtime())}",
                ChangeSetType=change_set_type,
                Description="Created by access-review-deploy",
            )
            change_set_id = response["Id"]

            if not self._wait_for_change_set(change_set_id, stack_name):
                logger.info("No changes to deploy. Stack %s is up to date", stack_name)
                return ConvergenceResult(stack_name=stack_name, action=ConvergenceAction.NO_CHANGES)

            self._cfn.execute_change_set(ChangeSetName=change_set_id, StackName=stack_name)
            status = self._wait_for_stack(stack_name, change_set_type)
        except (ClientError, BotoCoreError) as e:
            raise ConvergenceError(str(e), step=CONVERGE_STEP) from e

        logger.info("Stack %s reached %s", stack_name, status)
        return ConvergenceResult(stack_name=stack_name, action=change_set_type, status=status)

    def _read_template(self) -> str:
        try:
            return self.template_file.read_text(encoding="utf-8")
        except OSError as e:
            raise ConvergenceError(f"Cannot read template {self.template_file}: {e}",
                                   step=CONVERGE_STEP) from e

    def _stack_exists(self, stack_name: str) -> bool:
        try:
            response = self._cfn.describe_stacks(StackName=stack_name)
        except ClientError as e:
            if _is_missing_stack(e):
                return False
            raise
        stacks = response.get("Stacks", [])
        if not stacks:
            return False
        # created by an earlier change set that was never executed
        return stacks[0].get("StackStatus") != "REVIEW_IN_PROGRESS"

    def _wait_for_change_set(self, change_set_id: str, stack_name: str) -> bool:
        """Return True when the change set is ready to execute, False when it is empty."""
        waiter = self._cfn.get_waiter("change_set_create_complete")
        try:
            waiter.wait(
                ChangeSetName=change_set_id,
                StackName=stack_name,
                WaiterConfig={"Delay": self.waiter_delay},
            )
            return True
        except WaiterError as e:
            detail = self._cfn.describe_change_set(ChangeSetName=change_set_id, StackName=stack_name)
            reason = detail.get("StatusReason", "")
            if detail.get("Status") == "FAILED" and any(r in reason for r in NO_CHANGES_REASONS):
                self._cfn.delete_change_set(ChangeSetName=change_set_id, StackName=stack_name)
                return False
            raise ConvergenceError(reason or str(e), step=CONVERGE_STEP) from e

    def _wait_for_stack(self, stack_name: str, change_set_type: str) -> str:
        waiter_name = (
            "stack_create_complete" if change_set_type == ConvergenceAction.CREATE else "stack_update_complete"
        )
        logger.info("Waiting for stack %s to finish (%s)", stack_name, waiter_name)
        waiter = self._cfn.get_waiter(waiter_name)
        try:
            waiter.wait(
                StackName=stack_name,
                WaiterConfig={"Delay": self.waiter_delay, "MaxAttempts": STACK_WAITER_MAX_ATTEMPTS},
            )
        except WaiterError as e:
            stack = self._describe(stack_name)
            reason = stack.get("StackStatusReason") or str(e)
            raise ConvergenceError(
                f"{stack.get('StackStatus', 'UNKNOWN')}: {reason}", step=CONVERGE_STEP
            ) from e
        return self._describe(stack_name).get("StackStatus", "")

    def _describe(self, stack_name: str) -> dict:
        stacks = self._cfn.describe_stacks(StackName=stack_name).get("Stacks", [])
        return stacks[0] if stacks else {}


class StackOutputResolver:
    """Read the converged stack's outputs. Always a fresh describe call."""

    def __init__(self, session):
        self._cfn = session.client("cloudformation")

    def fetch_outputs(self, stack_name: str) -> Dict[str, str]:
        try:
            stacks = self._cfn.describe_stacks(StackName=stack_name).get("Stacks", [])
        except (ClientError, BotoCoreError) as e:
            raise ConsistencyError(f"Cannot read outputs of stack {stack_name}: {e}",
                                   step=OUTPUTS_STEP) from e
        if not stacks:
            raise ConsistencyError(f"Stack missing: {stack_name}", step=OUTPUTS_STEP)
        outputs = stacks[0].get("Outputs", [])
        return {o["OutputKey"]: o["OutputValue"] for o in outputs}

    def resolve(self, stack_name: str) -> StackOutputs:
        outputs = self.fetch_outputs(stack_name)
        missing = [k for k in (BUCKET_OUTPUT_KEY, FUNCTION_OUTPUT_KEY) if not outputs.get(k)]
        if missing:
            raise ConsistencyError(
                f"Stack {stack_name} has no output {', '.join(missing)}",
                step=OUTPUTS_STEP,
            )
        logger.info("Resolved outputs for %s: bucket=%s function=%s",
                    stack_name, outputs[BUCKET_OUTPUT_KEY], outputs[FUNCTION_OUTPUT_KEY])
        return StackOutputs(
            bucket=outputs[BUCKET_OUTPUT_KEY],
            function_arn=outputs[FUNCTION_OUTPUT_KEY],
            raw=outputs,
        )
