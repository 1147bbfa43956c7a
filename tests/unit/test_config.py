import aws_cdk as core
import pytest

from budget_tracker.config import ConfigError, StackConfig, load_config
from budget_tracker.revisions import Revision


def test_defaults():
    config = load_config(core.App(), environ={})

    assert config.prefix == "Budget"
    assert config.revision is Revision.GATEWAY_WITH_AUTH
    assert config.bucket_name == "budget-lambda-bucket"
    assert config.function_name == "BudgetLambda"
    assert config.include_balance_report is False
    assert config.account is None


def test_environment_overrides_defaults():
    config = load_config(core.App(), environ={
        "BUDGET_STACK_PREFIX": "Staging",
        "BUDGET_REVISION": "gateway_no_auth",
        "BUDGET_INCLUDE_BALANCE_REPORT": "true",
        "AWS_CDK_DEFAULT_ACCOUNT": "123456789012",
        "CDK_DEFAULT_REGION": "eu-west-1",
    })

    assert config.bucket_name == "staging-lambda-bucket"
    assert config.revision is Revision.GATEWAY_NO_AUTH
    assert config.include_balance_report is True
    assert config.account == "123456789012"
    assert config.region == "eu-west-1"


def test_context_wins_over_environment():
    app = core.App(context={"revision": "open", "prefix": "Ctx"})
    config = load_config(app, environ={"BUDGET_REVISION": "gateway-no-auth", "BUDGET_STACK_PREFIX": "Env"})

    assert config.revision is Revision.OPEN
    assert config.prefix == "Ctx"


def test_unknown_revision():
    with pytest.raises(ConfigError):
        load_config(core.App(), environ={"BUDGET_REVISION": "v9"})


def test_invalid_values():
    with pytest.raises(ConfigError):
        StackConfig(prefix="")
    with pytest.raises(ConfigError):
        StackConfig(runtime="cobol")


def test_explicit_account_wins_over_toolkit_defaults():
    config = load_config(core.App(), environ={
        "CDK_DEFAULT_ACCOUNT": "111111111111",
        "CDK_DEFAULT_REGION": "us-east-1",
        "AWS_CDK_DEFAULT_ACCOUNT": "222222222222",
        "AWS_CDK_DEFAULT_REGION": "eu-west-1",
    })

    assert (config.account, config.region) == ("222222222222", "eu-west-1")


def test_toolkit_defaults_used_when_not_pinned():
    config = load_config(core.App(), environ={
        "CDK_DEFAULT_ACCOUNT": "111111111111",
        "CDK_DEFAULT_REGION": "us-east-1",
    })

    assert (config.account, config.region) == ("111111111111", "us-east-1")


def test_non_string_revision_context():
    with pytest.raises(ConfigError):
        load_config(core.App(context={"revision": 4}), environ={})
