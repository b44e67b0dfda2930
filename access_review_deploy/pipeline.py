# access_review_deploy/pipeline.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from access_review_deploy.errors import (
    CodeUpdateError,
    ConsistencyError,
    ConvergenceError,
    CredentialError,
    DeployError,
    PackagingError,
)
from access_review_deploy.models.deployment import (
    DeploymentConfig,
    DeploymentPaths,
    DeploymentResult,
)
from access_review_deploy.services.credentials import CredentialValidator
from access_review_deploy.services.function_code import FunctionCodeUpdater
from access_review_deploy.services.packager import ArtifactPackager
from access_review_deploy.services.reporter import DeploymentReporter
from access_review_deploy.services.session import SessionFactory, build_session
from access_review_deploy.services.stack import StackConvergenceDriver, StackOutputResolver

logger = logging.getLogger(__name__)


# Collaborators of one run, injectable for tests
@dataclass
class DeploymentSteps:
    validator: Any
    packager: Any
    driver: Any
    resolver: Any
    updater: Any
    reporter: Any


def build_steps(
    config: DeploymentConfig,
    paths: Optional[DeploymentPaths] = None,
    session_factory: SessionFactory = boto3.Session,
    reporter: Optional[DeploymentReporter] = None,
) -> DeploymentSteps:
    paths = paths or DeploymentPaths.from_root()
    session = build_session(config.region, config.profile, session_factory=session_factory)
    try:
        return DeploymentSteps(
            validator=CredentialValidator(session),
            packager=ArtifactPackager(paths.source_dir, paths.build_dir, paths.artifact_file),
            driver=StackConvergenceDriver(session, paths.template_file),
            resolver=StackOutputResolver(session),
            updater=FunctionCodeUpdater(session),
            reporter=reporter or DeploymentReporter(),
        )
    except BotoCoreError as e:
        # client creation rejects malformed regions before any call is made
        raise CredentialError(f"Failed to create AWS clients in {config.region!r}: {e}",
                              step="validate credentials") from e


class Deployment:
    """
    Run the deployment steps in order and stop at the first failure.

    Every step either returns its product or raises a DeployError of its
    own kind; provider or filesystem exceptions a step lets through are
    mapped to that step's kind here.
    """

    def __init__(self, config: DeploymentConfig, steps: DeploymentSteps):
        self.config = config
        self.steps = steps
        self.completed: List[str] = []

    def run(self) -> DeploymentResult:
        config, steps = self.config, self.steps

        identity = self._run("validate credentials", CredentialError, steps.validator.validate)
        artifact = self._run("package function code", PackagingError, steps.packager.package)
        convergence = self._run("converge stack", ConvergenceError, steps.driver.converge, config)
        outputs = self._run("resolve stack outputs", ConsistencyError,
                            steps.resolver.resolve, config.stack_name)
        self._run("update function code", CodeUpdateError,
                  steps.updater.update, outputs.function_arn, artifact)

        result = DeploymentResult(
            config=config,
            identity=identity,
            artifact=artifact,
            convergence=convergence,
            outputs=outputs,
        )
        steps.reporter.report(result)
        return result

    def _run(self, name: str, error_cls: type, func: Callable, *args) -> Any:
        logger.info("Step: %s", name)
        try:
            value = func(*args)
        except DeployError:
            raise
        except (ClientError, BotoCoreError, OSError) as e:
            raise error_cls(str(e), step=name) from e
        self.completed.append(name)
        return value


def deploy(
    config: DeploymentConfig,
    paths: Optional[DeploymentPaths] = None,
    session_factory: SessionFactory = boto3.Session,
    reporter: Optional[DeploymentReporter] = None,
) -> DeploymentResult:
    steps = build_steps(config, paths, session_factory=session_factory, reporter=reporter)
    return Deployment(config, steps).run()


__all__ = ["DeploymentSteps", "build_steps", "Deployment", "deploy"]
