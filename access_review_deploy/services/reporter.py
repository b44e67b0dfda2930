# access_review_deploy/services/reporter.py
import sys
from typing import List, Optional, TextIO

from access_review_deploy.models.deployment import DeploymentConfig, DeploymentResult

RUN_REPORT_COMMAND = "access-review-run"


def run_report_command(config: DeploymentConfig) -> str:
    command = f"{RUN_REPORT_COMMAND} --stack-name {config.stack_name} --region {config.region}"
    if config.profile:
        command += f" --profile {config.profile}"
    return command


class DeploymentReporter:
    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout

    def lines(self, result: DeploymentResult) -> List[str]:
        config = result.config
        return [
            "Deployment completed successfully!",
            f"Stack: {config.stack_name} ({result.convergence.action})",
            f"Lambda function: {result.outputs.function_arn}",
            f"S3 bucket: {result.outputs.bucket}",
            f"Report recipient: {config.recipient_email}",
            f"Schedule: {config.schedule}",
            "",
            "NOTE: On first deployment, check your inbox and verify the recipient "
            "address with Amazon SES before reports can be delivered.",
            "",
            "To run a report immediately:",
            f"  {run_report_command(config)}",
        ]

    def report(self, result: DeploymentResult) -> None:
        for line in self.lines(result):
            print(line, file=self.out)
