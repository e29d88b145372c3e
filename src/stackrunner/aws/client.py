"""Thin boto3 wrapper for CloudFormation stack lifecycle API calls."""

import boto3

from stackrunner.models import DeploymentUnit, StackEvent, TemplateValidation


def _stack_request(unit: DeploymentUnit) -> dict:
    kwargs: dict = {"StackName": unit.stack_name, "TemplateBody": unit.template_body}
    if unit.parameters:
        kwargs["Parameters"] = [
            {"ParameterKey": key, "ParameterValue": value}
            for key, value in unit.parameters.items()
        ]
    if unit.capabilities:
        kwargs["Capabilities"] = list(unit.capabilities)
    if unit.tags:
        kwargs["Tags"] = [{"Key": key, "Value": value} for key, value in unit.tags.items()]
    return kwargs


class CloudFormationClient:
    """Wraps boto3 CloudFormation calls and returns stackrunner dataclasses.

    botocore errors propagate unchanged; callers decide what they mean.
    """

    def __init__(self, region: str | None = None):
        self._client = boto3.client("cloudformation", **({"region_name": region} if region else {}))

    def create_stack(self, unit: DeploymentUnit) -> str:
        """Submit a CreateStack request. Returns the new stack id."""
        response = self._client.create_stack(**_stack_request(unit))
        return response["StackId"]

    def update_stack(self, unit: DeploymentUnit) -> str:
        """Submit an UpdateStack request. Returns the stack id."""
        response = self._client.update_stack(**_stack_request(unit))
        return response["StackId"]

    def get_stack_id(self, stack_name: str) -> str:
        """Resolve a stack name to its id. Raises ClientError if it does not exist."""
        desc = self._client.describe_stacks(StackName=stack_name)
        return desc["Stacks"][0]["StackId"]

    def delete_stack(self, stack: str) -> None:
        """Submit a DeleteStack request for a stack name or id."""
        self._client.delete_stack(StackName=stack)

    def describe_stack_events(self, stack: str) -> list[StackEvent]:
        """Fetch the complete event history of a stack, newest first.

        Deleted stacks are only addressable by stack id.
        """
        events = []
        next_token = None

        while True:
            kwargs: dict = {"StackName": stack}
            if next_token:
                kwargs["NextToken"] = next_token

            resp = self._client.describe_stack_events(**kwargs)

            for event in resp["StackEvents"]:
                events.append(
                    StackEvent(
                        timestamp=event["Timestamp"],
                        logical_id=event["LogicalResourceId"],
                        resource_type=event["ResourceType"],
                        status=event["ResourceStatus"],
                        status_reason=event.get("ResourceStatusReason"),
                        event_id=event.get("EventId"),
                        stack_id=event.get("StackId"),
                    )
                )

            next_token = resp.get("NextToken")
            if not next_token:
                break

        return events

    def validate_template(self, template_body: str) -> TemplateValidation:
        """Run ValidateTemplate against a template body."""
        resp = self._client.validate_template(TemplateBody=template_body)
        return TemplateValidation(
            description=resp.get("Description"),
            parameters=[p["ParameterKey"] for p in resp.get("Parameters", [])],
            capabilities=list(resp.get("Capabilities", [])),
        )
