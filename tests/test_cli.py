"""Tests for the CLI entrypoint."""

from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from stackrunner.cli import main
from stackrunner.errors import OperationFailed
from stackrunner.models import OperationKind, OperationResult, TemplateValidation


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def template_path(tmp_path, simple_template):
    path = tmp_path / "queue.json"
    path.write_text(simple_template)
    return str(path)


@pytest.fixture
def mock_operator(make_event):
    """Patch the AWS client and operator; every run succeeds by default."""

    def _succeed(kind, unit, observer=None, cancel=None):
        return OperationResult(
            stack_name=unit.stack_name,
            stack_id=f"arn:aws:cloudformation:us-east-1:123:stack/{unit.stack_name}/uuid",
            kind=kind,
            final_event=make_event(unit.stack_name, kind.success_status, seq=5),
        )

    with (
        patch("stackrunner.cli.CloudFormationClient"),
        patch("stackrunner.cli.StackOperator") as operator_cls,
    ):
        operator = MagicMock()
        operator.run.side_effect = _succeed
        operator_cls.return_value = operator
        yield operator


def test_cli_deploy_success_exit_0(runner, mock_operator, template_path):
    result = runner.invoke(main, ["deploy", template_path, "--format", "json"])

    assert result.exit_code == 0
    kind, unit = mock_operator.run.call_args.args
    assert kind == OperationKind.CREATE
    assert unit.stack_name == "queue"
    assert '"status": "CREATE_COMPLETE"' in result.output


def test_cli_deploy_failure_exit_1(runner, mock_operator, template_path, make_event):
    mock_operator.run.side_effect = OperationFailed(
        "queue", OperationKind.CREATE, make_event("queue", "ROLLBACK_COMPLETE")
    )

    result = runner.invoke(main, ["deploy", template_path, "--format", "json"])

    assert result.exit_code == 1
    assert "Could not create stack: queue" in result.output


def test_cli_deploy_passes_stack_options(runner, mock_operator, template_path):
    runner.invoke(
        main,
        [
            "deploy",
            template_path,
            "--stack-name",
            "orders",
            "--parameter",
            "Env=prod",
            "--capability",
            "CAPABILITY_IAM",
            "--tag",
            "Team=platform",
        ],
    )

    _, unit = mock_operator.run.call_args.args
    assert unit.stack_name == "orders"
    assert unit.parameters == {"Env": "prod"}
    assert unit.capabilities == ("CAPABILITY_IAM",)
    assert unit.tags == {"Team": "platform"}
    assert "observer" in mock_operator.run.call_args.kwargs
    assert "cancel" in mock_operator.run.call_args.kwargs


def test_cli_stack_name_with_many_templates_is_usage_error(
    runner, mock_operator, template_path, tmp_path
):
    other = tmp_path / "other.json"
    other.write_text("{}")

    result = runner.invoke(main, ["deploy", template_path, str(other), "--stack-name", "x"])

    assert result.exit_code == 2
    assert "single template" in result.output
    mock_operator.run.assert_not_called()


def test_cli_rejects_malformed_parameter(runner, mock_operator, template_path):
    result = runner.invoke(main, ["deploy", template_path, "--parameter", "Env"])

    assert result.exit_code == 2
    assert "KEY=VALUE" in result.output


def test_cli_reports_each_finished_stack(
    runner, mock_operator, template_path, tmp_path, make_event
):
    other = tmp_path / "other.json"
    other.write_text("{}")
    succeed = mock_operator.run.side_effect

    def _fail_other(kind, unit, observer=None, cancel=None):
        if unit.stack_name == "other":
            raise OperationFailed("other", kind, make_event("other", "ROLLBACK_COMPLETE"))
        return succeed(kind, unit, observer=observer, cancel=cancel)

    mock_operator.run.side_effect = _fail_other

    result = runner.invoke(main, ["deploy", template_path, str(other), "--format", "json"])

    assert result.exit_code == 1
    assert "queue: CREATE_COMPLETE" in result.output
    assert "other: FAILED" in result.output


def test_cli_update_uses_update_kind(runner, mock_operator, template_path):
    result = runner.invoke(main, ["update", template_path])

    assert result.exit_code == 0
    kind, _ = mock_operator.run.call_args.args
    assert kind == OperationKind.UPDATE


def test_cli_delete_runs_each_stack(runner, mock_operator):
    result = runner.invoke(main, ["delete", "stack-a", "stack-b", "--concurrency", "2"])

    assert result.exit_code == 0
    deleted = sorted(call.args[1].stack_name for call in mock_operator.run.call_args_list)
    assert deleted == ["stack-a", "stack-b"]
    assert all(call.args[0] == OperationKind.DELETE for call in mock_operator.run.call_args_list)


def test_cli_validate(runner, mock_operator, template_path):
    mock_operator.validate.return_value = TemplateValidation(
        description="Single queue", parameters=[], capabilities=[]
    )

    result = runner.invoke(main, ["validate", template_path, "--format", "json"])

    assert result.exit_code == 0
    assert '"status": "VALID"' in result.output
    mock_operator.validate.assert_called_once()


def test_cli_json_format(runner, mock_operator, template_path):
    result = runner.invoke(main, ["deploy", template_path, "--format", "json"])

    assert result.exit_code == 0
    assert '"stack_name": "queue"' in result.output


def test_cli_markdown_format(runner, mock_operator, template_path):
    result = runner.invoke(main, ["deploy", template_path, "--format", "markdown"])

    assert result.exit_code == 0
    assert "| queue |" in result.output


def test_cli_fail_fast_skips_remaining(runner, mock_operator, template_path, tmp_path, make_event):
    other = tmp_path / "other.json"
    other.write_text("{}")
    mock_operator.run.side_effect = OperationFailed(
        "queue", OperationKind.CREATE, make_event("queue", "ROLLBACK_COMPLETE")
    )

    result = runner.invoke(main, ["deploy", template_path, str(other), "--fail-fast"])

    assert result.exit_code == 1
    assert mock_operator.run.call_count == 1


@patch("stackrunner.cli.post_to_slack")
def test_cli_post_slack(mock_slack, runner, mock_operator, template_path, monkeypatch):
    monkeypatch.setenv("STACKRUNNER_SLACK_WEBHOOK", "https://hooks.slack.com/services/T00/B00/xxx")

    runner.invoke(main, ["deploy", template_path, "--post-slack"])

    mock_slack.assert_called_once()
    assert "queue" in mock_slack.call_args.kwargs["report"]


def test_cli_post_slack_requires_webhook(runner, mock_operator, template_path, monkeypatch):
    monkeypatch.delenv("STACKRUNNER_SLACK_WEBHOOK", raising=False)

    result = runner.invoke(main, ["deploy", template_path, "--post-slack"])

    assert result.exit_code == 2
    mock_operator.run.assert_not_called()


def test_cli_post_slack_rejects_bad_webhook(runner, mock_operator, template_path, monkeypatch):
    monkeypatch.setenv("STACKRUNNER_SLACK_WEBHOOK", "https://evil.example.com/hook")

    result = runner.invoke(main, ["deploy", template_path, "--post-slack"])

    assert result.exit_code == 2
    mock_operator.run.assert_not_called()


def test_cli_concurrency_capped(runner, mock_operator, template_path):
    result = runner.invoke(main, ["deploy", template_path, "--concurrency", "100"])

    assert result.exit_code != 0
    assert "100 is not in the range 1<=x<=50" in result.output


def test_cli_missing_template(runner, mock_operator, tmp_path):
    result = runner.invoke(main, ["deploy", str(tmp_path / "missing.json")])

    assert result.exit_code == 2
    mock_operator.run.assert_not_called()
