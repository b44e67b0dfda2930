from access_review_deploy.config import bind_flag_values, build_run_report_parser, resolve_config
from access_review_deploy.errors import CredentialError, DeployError
from access_review_deploy.pipeline import deploy
from access_review_deploy.services.function_code import ReportInvoker
from access_review_deploy.services.session import build_session
from access_review_deploy.services.stack import StackOutputResolver
from botocore.exceptions import BotoCoreError
import json
import logging
import sys


# run pip install -e .
# then: access-review-deploy --email you@example.com
def _configure_logging():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )


def _fail(error: DeployError) -> int:
    # exactly one diagnostic line, then exit 1
    print(error.diagnostic(), file=sys.stderr)
    return 1


def main(argv=None) -> int:
    """
    deploy or update the access review stack, push the function code
    and print how to run a report on demand
    """
    _configure_logging()
    argv = sys.argv[1:] if argv is None else argv
    try:
        config = resolve_config(argv)
        deploy(config)
    except DeployError as e:
        return _fail(e)
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    return 0


def run_report_main(argv=None) -> int:
    """
    invoke the deployed access review function once
    """
    _configure_logging()
    argv = sys.argv[1:] if argv is None else argv

    try:
        args = build_run_report_parser().parse_args(bind_flag_values(argv))
        session = build_session(args.region, args.profile)
        outputs = StackOutputResolver(session).resolve(args.stack_name)
        payload = ReportInvoker(session).invoke(outputs.function_arn)
    except DeployError as e:
        return _fail(e)
    except BotoCoreError as e:
        # malformed region, caught when the clients are built
        return _fail(CredentialError(str(e), step="validate credentials"))

    print(f"Report triggered for {outputs.function_arn}")
    if payload is not None:
        print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == '__main__':
    sys.exit(main())
