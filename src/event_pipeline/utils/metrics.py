"""
Module: metrics.py
Description: CloudWatch custom metrics publishing.

Publishes pipeline metrics to CloudWatch so operators can alert on
aborted batches and on messages lost to retention expiry.

Key Components:
- MetricsClient: CloudWatch metrics client
- put_metric(): Publish individual metrics
- expired_message_reporter(): Queue hook counting messages lost to retention
- Graceful error handling for metrics failures

Dependencies: boto3, typing, logger
"""

from typing import Any, Callable, Optional

import boto3

from event_pipeline.utils.logger import get_logger

logger = get_logger(__name__)

MESSAGES_PROCESSED = "MessagesProcessed"
BATCHES_ABORTED = "BatchesAborted"
MESSAGES_EXPIRED = "MessagesExpired"


class MetricsClient:
    """CloudWatch metrics client."""

    def __init__(self, namespace: str = "EventPipeline", cloudwatch: Optional[Any] = None):
        """
        Initialize metrics client.

        Args:
            namespace: CloudWatch metrics namespace
            cloudwatch: Optional pre-built boto3 CloudWatch client
        """
        self.namespace = namespace
        self.cloudwatch = cloudwatch or boto3.client('cloudwatch')

        logger.info(
            "Metrics client initialized",
            namespace=namespace
        )

    def put_metric(
        self,
        metric_name: str,
        value: float,
        unit: str = 'Count',
        dimensions: Optional[dict] = None
    ) -> None:
        """
        Publish a metric to CloudWatch.

        Args:
            metric_name: Name of the metric
            value: Metric value
            unit: Metric unit (Count, Seconds, etc.)
            dimensions: Optional metric dimensions
        """
        try:
            metric_data = {
                'MetricName': metric_name,
                'Value': value,
                'Unit': unit
            }

            if dimensions:
                metric_data['Dimensions'] = [
                    {'Name': k, 'Value': v}
                    for k, v in dimensions.items()
                ]

            self.cloudwatch.put_metric_data(
                Namespace=self.namespace,
                MetricData=[metric_data]
            )

            logger.debug(
                "Metric published to CloudWatch",
                metric_name=metric_name,
                value=value,
                unit=unit,
                dimensions=dimensions,
                namespace=self.namespace
            )

        except Exception as e:
            # Don't fail processing if metrics fail
            logger.warning(
                "Failed to publish metric",
                metric_name=metric_name,
                value=value,
                error=str(e),
                namespace=self.namespace
            )


def expired_message_reporter(metrics: MetricsClient) -> Callable[[str, int], None]:
    """
    Build an on_expired hook that counts retention losses in CloudWatch.

    Args:
        metrics: Metrics client to publish through

    Returns:
        Callable accepting (message_id, receive_count)
    """
    def report(message_id: str, receive_count: int) -> None:
        metrics.put_metric(MESSAGES_EXPIRED, 1)

    return report
