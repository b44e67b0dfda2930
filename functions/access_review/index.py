# functions/access_review/index.py
import csv
import io
import json
import logging
import os
import time
from datetime import datetime, timezone

import boto3

logger = logging.getLogger()
logger.setLevel(logging.INFO)

REPORT_PREFIX = "reports"


def _region() -> str:
    return os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or "us-east-1"


def fetch_credential_report(iam, attempts: int = 10, delay: float = 2.0) -> str:
    # GenerateCredentialReport is asynchronous; poll until COMPLETE
    for _ in range(attempts):
        if iam.generate_credential_report()["State"] == "COMPLETE":
            break
        time.sleep(delay)
    content = iam.get_credential_report()["Content"]
    return content.decode("utf-8") if isinstance(content, bytes) else content


def summarize(report_csv: str) -> dict:
    rows = list(csv.DictReader(io.StringIO(report_csv)))
    no_mfa = [r["user"] for r in rows
              if r.get("password_enabled") == "true" and r.get("mfa_active") != "true"]
    active_keys = [r["user"] for r in rows
                   if r.get("access_key_1_active") == "true" or r.get("access_key_2_active") == "true"]
    return {
        "users": len(rows),
        "console_users_without_mfa": no_mfa,
        "users_with_active_keys": active_keys,
    }


def handler(event, _context):
    bucket = os.environ["REPORT_BUCKET"]
    recipient = os.environ["RECIPIENT_EMAIL"]
    region = _region()

    iam = boto3.client("iam")
    report_csv = fetch_credential_report(iam)
    summary = summarize(report_csv)

    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")
    key = f"{REPORT_PREFIX}/{stamp}/credential-report.csv"
    boto3.client("s3", region_name=region).put_object(
        Bucket=bucket, Key=key, Body=report_csv.encode("utf-8"),
        ContentType="text/csv", ServerSideEncryption="AES256",
    )
    logger.info("Stored credential report at s3://%s/%s", bucket, key)

    body = (
        f"AWS access review ({stamp})\n\n"
        f"{json.dumps(summary, indent=2)}\n\n"
        f"Full report: s3://{bucket}/{key}\n"
    )
    boto3.client("ses", region_name=region).send_email(
        Source=recipient,
        Destination={"ToAddresses": [recipient]},
        Message={
            "Subject": {"Data": "AWS access review report"},
            "Body": {"Text": {"Data": body}},
        },
    )
    logger.info("Sent report summary to %s", recipient)
    return {"report_key": key, "summary": summary}
