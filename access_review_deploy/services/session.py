# access_review_deploy/services/session.py
from __future__ import annotations

from typing import Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError

from access_review_deploy.errors import CredentialError


SessionFactory = Callable[..., boto3.Session]


def build_session(
    region: str,
    profile: Optional[str] = None,
    session_factory: SessionFactory = boto3.Session,
) -> boto3.Session:
    """One session per run, scoped to the target region and optional named profile."""
    session_kwargs = {"region_name": region}
    if profile:
        session_kwargs["profile_name"] = profile
    try:
        return session_factory(**session_kwargs)
    except BotoCoreError as e:
        # ProfileNotFound surfaces here, before any client exists
        raise CredentialError(f"Failed to load AWS profile {profile!r}: {e}",
                              step="validate credentials") from e
