# conftest.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest
from botocore.exceptions import ClientError, WaiterError


# -------- fakes --------

class FakeSession:
    def __init__(self, clients: Optional[Dict[str, Any]] = None, region_name: str = "us-east-1", **kwargs):
        self._clients = clients or {}
        self.region_name = region_name
        self.kwargs = kwargs

    def client(self, name: str):
        if name not in self._clients:
            raise AssertionError(f"unexpected client {name}")
        return self._clients[name]


def make_fake_session_factory(clients: Dict[str, Any], seen: Optional[List[dict]] = None):
    def _factory(**kwargs):
        if seen is not None:
            seen.append(kwargs)
        return FakeSession(clients, **kwargs)

    return _factory


class FakeSTS:
    def __init__(self, account_id="123456789012", error: Optional[Exception] = None):
        self._aid, self._err = account_id, error
        self.calls = 0

    def get_caller_identity(self):
        self.calls += 1
        if self._err:
            raise self._err
        return {
            "Account": self._aid,
            "Arn": f"arn:aws:iam::{self._aid}:user/deployer",
            "UserId": "AIDAEXAMPLE",
        }


class FakeWaiter:
    def __init__(self, cfn: "FakeCloudFormation", name: str):
        self._cfn, self.name = cfn, name

    def wait(self, **kwargs):
        self._cfn.calls.append(("wait", self.name))
        if self.name == "change_set_create_complete" and self._cfn.change_set_failure:
            raise WaiterError(
                name="ChangeSetCreateComplete",
                reason="Waiter encountered a terminal failure state",
                last_response={},
            )
        if self.name.startswith("stack_") and self._cfn.stack_failure:
            raise WaiterError(
                name="StackComplete",
                reason="Waiter encountered a terminal failure state",
                last_response={},
            )


class FakeCloudFormation:
    """Just enough of the change-set API for the convergence driver."""

    CHANGE_SET_ID = "arn:aws:cloudformation:us-east-1:123456789012:changeSet/deploy/abc"

    def __init__(
        self,
        outputs: Optional[Dict[str, str]] = None,
        exists: bool = False,
        initial_status: str = "CREATE_COMPLETE",
        change_set_failure: Optional[str] = None,
        stack_failure: Optional[Tuple[str, str]] = None,
        create_error: Optional[Exception] = None,
    ):
        self.outputs = outputs or {}
        self.exists = exists
        self.status = initial_status
        self.change_set_failure = change_set_failure
        self.stack_failure = stack_failure
        self.create_error = create_error
        self.calls: List[tuple] = []
        self.change_set: Dict[str, Any] = {}
        self.executed = False
        self.deleted_change_sets: List[str] = []

    def describe_stacks(self, StackName):
        self.calls.append(("describe_stacks", StackName))
        if not self.exists:
            raise ClientError(
                {"Error": {"Code": "ValidationError", "Message": f"Stack with id {StackName} does not exist"}},
                "DescribeStacks",
            )
        stack = {
            "StackName": StackName,
            "StackStatus": self.status,
            "Outputs": [{"OutputKey": k, "OutputValue": v} for k, v in self.outputs.items()],
        }
        if self.executed and self.stack_failure:
            stack["StackStatus"], stack["StackStatusReason"] = self.stack_failure
        return {"Stacks": [stack]}

    def create_change_set(self, **kwargs):
        self.calls.append(("create_change_set", kwargs["ChangeSetType"]))
        if self.create_error:
            raise self.create_error
        self.change_set = kwargs
        return {"Id": self.CHANGE_SET_ID, "StackId": "arn:aws:cloudformation:stack/x"}

    def get_waiter(self, name):
        return FakeWaiter(self, name)

    def describe_change_set(self, ChangeSetName, StackName):
        return {"Status": "FAILED", "StatusReason": self.change_set_failure}

    def delete_change_set(self, ChangeSetName, StackName):
        self.deleted_change_sets.append(ChangeSetName)

    def execute_change_set(self, ChangeSetName, StackName):
        self.calls.append(("execute_change_set", ChangeSetName))
        self.status = "UPDATE_COMPLETE" if self.change_set.get("ChangeSetType") == "UPDATE" else "CREATE_COMPLETE"
        self.exists = True
        self.executed = True


class FakeLambda:
    def __init__(self, error: Optional[Exception] = None):
        self._err = error
        self.updates: List[dict] = []

    def update_function_code(self, **kwargs):
        if self._err:
            raise self._err
        self.updates.append(kwargs)
        return {"CodeSha256": "abc=", "RevisionId": "rev-1"}


def client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


# -------- fixtures --------

@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def function_source(tmp_path):
    src = tmp_path / "functions" / "access_review"
    (src / "lib").mkdir(parents=True)
    (src / "index.py").write_text("def handler(event, context):\n    return {}\n")
    (src / "lib" / "helpers.py").write_text("VALUE = 1\n")
    return src
