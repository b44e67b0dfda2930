# access_review_deploy/models/deployment.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional


DEFAULT_STACK_NAME = "aws-access-review"
DEFAULT_REGION = "us-east-1"
DEFAULT_SCHEDULE = "rate(30 days)"

# Output keys exported by templates/access-review.yaml
BUCKET_OUTPUT_KEY = "AccessReviewS3Bucket"
FUNCTION_OUTPUT_KEY = "AccessReviewLambdaArn"


# Everything the user can choose for a run
@dataclass(frozen=True)
class DeploymentConfig:
    recipient_email: str
    stack_name: str = DEFAULT_STACK_NAME
    region: str = DEFAULT_REGION
    schedule: str = DEFAULT_SCHEDULE  # passed through to EventBridge untouched
    profile: Optional[str] = None     # None -> ambient credential chain


# Build inputs and outputs on the local filesystem
@dataclass(frozen=True)
class DeploymentPaths:
    template_file: Path
    source_dir: Path
    build_dir: Path
    artifact_file: Path

    @classmethod
    def from_root(cls, root: Optional[Path] = None) -> "DeploymentPaths":
        """Fixed layout under `root`, the current working directory by default."""
        root = Path(root) if root is not None else Path.cwd()
        return cls(
            template_file=root / "templates" / "access-review.yaml",
            source_dir=root / "functions" / "access_review",
            build_dir=root / "build",
            artifact_file=root / "lambda_function.zip",
        )


@dataclass(frozen=True)
class CallerIdentity:
    """Fields from STS GetCallerIdentity."""
    account: str
    arn: str
    user_id: str = ""


@dataclass(frozen=True)
class PackagedArtifact:
    path: Path
    size: int         # bytes
    sha256: str       # hex digest of the archive
    file_count: int


# What the change set ended up doing
class ConvergenceAction:
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    NO_CHANGES = "NO_CHANGES"


@dataclass(frozen=True)
class ConvergenceResult:
    stack_name: str
    action: str                   # one of ConvergenceAction
    status: Optional[str] = None  # terminal StackStatus, None when nothing ran


@dataclass(frozen=True)
class StackOutputs:
    """The two outputs later steps depend on, plus everything the stack exported."""
    bucket: str
    function_arn: str
    raw: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DeploymentResult:
    config: DeploymentConfig
    identity: CallerIdentity
    artifact: PackagedArtifact
    convergence: ConvergenceResult
    outputs: StackOutputs


__all__ = [
    "DEFAULT_STACK_NAME",
    "DEFAULT_REGION",
    "DEFAULT_SCHEDULE",
    "BUCKET_OUTPUT_KEY",
    "FUNCTION_OUTPUT_KEY",
    "DeploymentConfig",
    "DeploymentPaths",
    "CallerIdentity",
    "PackagedArtifact",
    "ConvergenceAction",
    "ConvergenceResult",
    "StackOutputs",
    "DeploymentResult",
]
