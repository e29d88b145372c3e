"""CLI entrypoint for stackrunner."""

import functools
import logging
import os
import sys

import click
from rich.console import Console
from rich.logging import RichHandler

from stackrunner.aws.client import CloudFormationClient
from stackrunner.formatter import (
    EventPrinter,
    format_json,
    format_markdown,
    format_table,
    outcome_status,
)
from stackrunner.integrations.slack import post_to_slack, validate_webhook_url
from stackrunner.models import OperationKind, UnitOutcome
from stackrunner.operations import StackOperator
from stackrunner.pipeline import Pipeline
from stackrunner.poller import CompletionPoller
from stackrunner.templates import load_units, parse_key_values, stack_units

FORMATTERS = {
    "table": format_table,
    "json": format_json,
    "markdown": format_markdown,
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    # botocore is noisy at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)


def _key_values(ctx, param, value):
    try:
        return parse_key_values(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


RUN_OPTIONS = [
    click.option(
        "--concurrency",
        type=click.IntRange(1, 50),
        default=1,
        show_default=True,
        help="Max stacks processed at once.",
    ),
    click.option("--fail-fast", is_flag=True, help="Stop starting new stacks after a failure."),
    click.option(
        "--format",
        "output_format",
        type=click.Choice(sorted(FORMATTERS)),
        default="table",
        help="Summary output format.",
    ),
    click.option("--post-slack", is_flag=True, help="Post the summary to a Slack webhook."),
    click.option("--region", default=None, help="AWS region."),
    click.option("-v", "--verbose", is_flag=True, help="Enable debug logging."),
]

TEMPLATE_OPTIONS = [
    click.argument(
        "templates", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False)
    ),
    click.option(
        "--stack-name",
        default=None,
        help="Stack name (single template only). Defaults to the template file name.",
    ),
    click.option(
        "--parameter",
        "parameters",
        multiple=True,
        callback=_key_values,
        help="Stack parameter (KEY=VALUE).",
    ),
    click.option(
        "--capability",
        "capabilities",
        multiple=True,
        type=click.Choice(["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"]),
        help="Acknowledge a template capability.",
    ),
    click.option("--tag", "tags", multiple=True, callback=_key_values, help="Stack tag (KEY=VALUE)."),
]


def _with_options(options):
    def decorator(func):
        for option in reversed(options):
            func = option(func)
        return func

    return decorator


@click.group()
def main():
    """Create, update, delete and validate CloudFormation stacks."""


def _slack_webhook(post_slack: bool) -> str | None:
    if not post_slack:
        return None
    webhook_url = os.environ.get("STACKRUNNER_SLACK_WEBHOOK")
    if not webhook_url:
        click.echo("Error: STACKRUNNER_SLACK_WEBHOOK env var not set.", err=True)
        sys.exit(2)
    try:
        validate_webhook_url(webhook_url)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    return webhook_url


def _echo_outcome(outcome: UnitOutcome) -> None:
    # stderr, so --format json output stays parseable
    click.echo(f"{outcome.unit.stack_name}: {outcome_status(outcome)}", err=True)


def _execute(handler, units, concurrency, fail_fast, output_format, webhook_url):
    pipeline = Pipeline(
        handler, concurrency=concurrency, fail_fast=fail_fast, on_outcome=_echo_outcome
    )
    result = pipeline.run(units)

    click.echo(FORMATTERS[output_format](result))

    if webhook_url:
        post_to_slack(report=format_markdown(result), webhook_url=webhook_url)

    sys.exit(0 if result.ok else 1)


def _run_templates(kind, templates, stack_name, parameters, capabilities, tags, options):
    _configure_logging(options["verbose"])
    webhook_url = _slack_webhook(options["post_slack"])

    try:
        units = load_units(
            templates,
            stack_name=stack_name,
            parameters=parameters,
            capabilities=capabilities,
            tags=tags,
        )
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    client = CloudFormationClient(region=options["region"])
    operator = StackOperator(client, CompletionPoller(client))
    printer = EventPrinter(show_stack=options["concurrency"] > 1)
    handler = functools.partial(operator.run, kind, observer=printer)

    _execute(
        handler,
        units,
        options["concurrency"],
        options["fail_fast"],
        options["output_format"],
        webhook_url,
    )


@main.command()
@_with_options(TEMPLATE_OPTIONS)
@_with_options(RUN_OPTIONS)
def deploy(templates, stack_name, parameters, capabilities, tags, **options):
    """Create a stack from each template and wait for it to complete."""
    _run_templates(
        OperationKind.CREATE, templates, stack_name, parameters, capabilities, tags, options
    )


@main.command()
@_with_options(TEMPLATE_OPTIONS)
@_with_options(RUN_OPTIONS)
def update(templates, stack_name, parameters, capabilities, tags, **options):
    """Update the stack of each template and wait for it to complete."""
    _run_templates(
        OperationKind.UPDATE, templates, stack_name, parameters, capabilities, tags, options
    )


@main.command()
@click.argument("stack_names", nargs=-1, required=True)
@_with_options(RUN_OPTIONS)
def delete(stack_names, concurrency, fail_fast, output_format, post_slack, region, verbose):
    """Delete the named stacks and wait for each deletion to complete."""
    _configure_logging(verbose)
    webhook_url = _slack_webhook(post_slack)

    client = CloudFormationClient(region=region)
    operator = StackOperator(client, CompletionPoller(client))
    printer = EventPrinter(show_stack=concurrency > 1)
    handler = functools.partial(operator.run, OperationKind.DELETE, observer=printer)

    _execute(handler, stack_units(stack_names), concurrency, fail_fast, output_format, webhook_url)


@main.command()
@click.argument("templates", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@_with_options(RUN_OPTIONS)
def validate(templates, concurrency, fail_fast, output_format, post_slack, region, verbose):
    """Validate each template with CloudFormation."""
    _configure_logging(verbose)
    webhook_url = _slack_webhook(post_slack)

    client = CloudFormationClient(region=region)
    operator = StackOperator(client, CompletionPoller(client))

    _execute(
        operator.validate,
        load_units(templates),
        concurrency,
        fail_fast,
        output_format,
        webhook_url,
    )
