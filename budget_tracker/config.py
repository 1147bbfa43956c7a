"""Stack configuration, read from CDK context and the environment."""

import os
from dataclasses import dataclass
from typing import Optional

import aws_cdk as cdk
from aws_cdk import aws_lambda as _lambda

from budget_tracker.revisions import Revision

DEFAULT_PREFIX = "Budget"
DEFAULT_ARTIFACT_KEY = "dist.zip"
DEFAULT_HANDLER = "dist/handlers/index.lambdaHandler"
DEFAULT_RUNTIME = "nodejs20.x"

RUNTIMES = {
    "nodejs18.x": _lambda.Runtime.NODEJS_18_X,
    "nodejs20.x": _lambda.Runtime.NODEJS_20_X,
    "python3.12": _lambda.Runtime.PYTHON_3_12,
}

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class StackConfig:
    prefix: str = DEFAULT_PREFIX
    revision: Revision = Revision.GATEWAY_WITH_AUTH
    artifact_key: str = DEFAULT_ARTIFACT_KEY
    handler: str = DEFAULT_HANDLER
    runtime: str = DEFAULT_RUNTIME
    default_user_id: str = ""
    include_balance_report: bool = False
    account: Optional[str] = None
    region: Optional[str] = None

    def __post_init__(self):
        if not self.prefix:
            raise ConfigError("stack prefix must not be empty")
        if self.runtime not in RUNTIMES:
            raise ConfigError(f"unsupported runtime {self.runtime!r}, expected one of {sorted(RUNTIMES)}")

    @property
    def bucket_name(self) -> str:
        return f"{self.prefix}-lambda-bucket".lower()

    @property
    def function_name(self) -> str:
        return f"{self.prefix}Lambda"

    @property
    def lambda_runtime(self) -> _lambda.Runtime:
        return RUNTIMES[self.runtime]

    @property
    def env(self) -> cdk.Environment:
        return cdk.Environment(account=self.account, region=self.region)


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def load_config(app: cdk.App, environ=None) -> StackConfig:
    """Build a StackConfig from CDK context, then environment variables, then defaults."""
    environ = os.environ if environ is None else environ

    def setting(context_key, env_key, default=None):
        value = app.node.try_get_context(context_key)
        if value is None:
            value = environ.get(env_key)
        return default if value is None else value

    revision = setting("revision", "BUDGET_REVISION", Revision.GATEWAY_WITH_AUTH.value)
    try:
        revision = Revision.parse(revision)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    return StackConfig(
        prefix=setting("prefix", "BUDGET_STACK_PREFIX", DEFAULT_PREFIX),
        revision=revision,
        runtime=setting("runtime", "BUDGET_LAMBDA_RUNTIME", DEFAULT_RUNTIME),
        default_user_id=setting("defaultUserId", "BUDGET_DEFAULT_USER_ID", ""),
        include_balance_report=_flag(setting("includeBalanceReport", "BUDGET_INCLUDE_BALANCE_REPORT", False)),
        account=environ.get("AWS_CDK_DEFAULT_ACCOUNT", environ.get("CDK_DEFAULT_ACCOUNT")),
        region=environ.get("AWS_CDK_DEFAULT_REGION", environ.get("CDK_DEFAULT_REGION")),
    )
