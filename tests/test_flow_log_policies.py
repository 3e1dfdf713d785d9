"""Unit tests for the flow log IAM policy builders."""

import json

import pytest

from flow_log_policies import (
    FLOW_LOG_CLOUDWATCH_ACTIONS,
    create_flow_log_assume_role_policy,
    create_flow_log_cloudwatch_policy,
)
from planning_errors import ConfigurationError


def test_assume_role_policy_trusts_flow_logs_service() -> None:
    policy = json.loads(create_flow_log_assume_role_policy())

    assert policy["Version"] == "2012-10-17"
    (statement,) = policy["Statement"]
    assert statement["Principal"] == {"Service": "vpc-flow-logs.amazonaws.com"}
    assert statement["Action"] == "sts:AssumeRole"
    assert "Condition" not in statement


def test_assume_role_conditions_are_grouped_by_test() -> None:
    policy = json.loads(
        create_flow_log_assume_role_policy(
            [
                {"test": "StringEquals", "variable": "aws:SourceAccount", "values": ["123456789012"]},
                {"test": "ArnLike", "variable": "aws:SourceArn", "values": "arn:aws:ec2:*:123456789012:vpc-flow-log/*"},
                {"test": "StringEquals", "variable": "aws:SourceOrgID", "values": ["o-abc"]},
            ]
        )
    )

    assert policy["Statement"][0]["Condition"] == {
        "StringEquals": {
            "aws:SourceAccount": ["123456789012"],
            "aws:SourceOrgID": ["o-abc"],
        },
        "ArnLike": {"aws:SourceArn": ["arn:aws:ec2:*:123456789012:vpc-flow-log/*"]},
    }


def test_incomplete_condition_raises() -> None:
    with pytest.raises(ConfigurationError, match="missing: values"):
        create_flow_log_assume_role_policy([{"test": "StringEquals", "variable": "aws:SourceAccount"}])


def test_cloudwatch_policy_grants_log_delivery_actions() -> None:
    policy = json.loads(create_flow_log_cloudwatch_policy())

    (statement,) = policy["Statement"]
    assert statement["Effect"] == "Allow"
    assert statement["Action"] == FLOW_LOG_CLOUDWATCH_ACTIONS
    assert statement["Resource"] == "*"
