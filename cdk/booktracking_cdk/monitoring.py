"""CloudWatch alarms on Lambda function metrics."""

from typing import Any, Callable, Mapping

from aws_cdk import Duration
from aws_cdk import aws_cloudwatch as cloudwatch
from aws_cdk import aws_lambda as lambda_
from constructs import Construct


def create_alarm(
    scope: Construct,
    node_id: str,
    attributes: Mapping[str, Any],
    function: lambda_.IFunction,
    rn: Callable[[str], str],
) -> cloudwatch.Alarm:
    """Create an alarm on a metric of the given function.

    The metric is dimensioned by FunctionName and the alarm fires when the
    statistic reaches the threshold.
    """
    metric = cloudwatch.Metric(
        namespace=attributes.get("namespace", "AWS/Lambda"),
        metric_name=attributes.get("metricName", "Errors"),
        dimensions_map={"FunctionName": function.function_name},
        statistic=attributes.get("statistic", "Sum"),
        period=Duration.minutes(attributes.get("periodMinutes", 5)),
    )

    props: dict[str, Any] = {}
    if attributes.get("alarmName"):
        props["alarm_name"] = rn(attributes["alarmName"])

    return cloudwatch.Alarm(
        scope,
        node_id,
        metric=metric,
        threshold=attributes["threshold"],
        evaluation_periods=attributes.get("evaluationPeriods", 1),
        comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
        treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING,
        **props,
    )
