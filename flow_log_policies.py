"""IAM policy JSON builders for VPC flow logs delivered to CloudWatch Logs."""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

from planning_errors import ConfigurationError

FLOW_LOGS_SERVICE_PRINCIPAL = "vpc-flow-logs.amazonaws.com"

FLOW_LOG_CLOUDWATCH_ACTIONS = [
    "logs:CreateLogStream",
    "logs:PutLogEvents",
    "logs:DescribeLogGroups",
    "logs:DescribeLogStreams",
]


def _build_condition_block(conditions: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    # Each entry looks like {"test": "StringEquals", "variable": "aws:SourceAccount",
    # "values": ["123456789012"]}; entries sharing a test are merged.
    block: dict[str, dict[str, Any]] = {}
    for index, condition in enumerate(conditions):
        missing = [key for key in ("test", "variable", "values") if key not in condition]
        if missing:
            raise ConfigurationError(
                f"flow_log.cloud_watch.iam_role_conditions[{index}] is missing: {', '.join(missing)}"
            )
        values = condition["values"]
        if isinstance(values, str):
            values = [values]
        block.setdefault(condition["test"], {})[condition["variable"]] = list(values)
    return block


def _build_assume_role_statement(conditions: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    statement: dict[str, Any] = {
        "Sid": "AWSVPCFlowLogsAssumeRole",
        "Effect": "Allow",
        "Principal": {"Service": FLOW_LOGS_SERVICE_PRINCIPAL},
        "Action": "sts:AssumeRole",
    }
    if conditions:
        statement["Condition"] = _build_condition_block(conditions)
    return statement


def _build_push_to_cloudwatch_statement() -> dict[str, Any]:
    return {
        "Sid": "AWSVPCFlowLogsPushToCloudWatch",
        "Effect": "Allow",
        "Action": list(FLOW_LOG_CLOUDWATCH_ACTIONS),
        "Resource": "*",
    }


def create_flow_log_assume_role_policy(
    conditions: Sequence[Mapping[str, Any]] = (),
) -> str:
    """Trust policy letting the VPC Flow Logs service assume the delivery role."""
    body = {
        "Version": "2012-10-17",
        "Statement": [_build_assume_role_statement(conditions)],
    }
    return json.dumps(body)


def create_flow_log_cloudwatch_policy() -> str:
    body = {
        "Version": "2012-10-17",
        "Statement": [_build_push_to_cloudwatch_statement()],
    }
    return json.dumps(body)
