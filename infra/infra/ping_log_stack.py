import os

from aws_cdk import (
    Stack,
    Duration,
    RemovalPolicy,
    CfnOutput,
    Tags,
    aws_dynamodb as dynamodb,
    aws_lambda as lambda_,
    aws_apigatewayv2 as apigwv2,
    aws_apigatewayv2_integrations as apigwv2_integrations,
    aws_logs as logs,
    aws_cloudwatch as cloudwatch,
)
from constructs import Construct

PING_TABLE_NAME = "shop_ping_log"
LAMBDA_CODE_DIR = os.path.join(os.path.dirname(__file__), "lambda")


class ShopPingLogStack(Stack):

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Common tags for all resources
        Tags.of(self).add("Project", "ShopPingLog")
        Tags.of(self).add("Env", "dev")

        # 1) DynamoDB table, one item per ping keyed on its random id
        ping_table = dynamodb.Table(
            self, "PingLogTable",
            table_name=PING_TABLE_NAME,
            partition_key=dynamodb.Attribute(
                name="id",
                type=dynamodb.AttributeType.STRING
            ),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            point_in_time_recovery=True,
            removal_policy=RemovalPolicy.DESTROY
        )

        # 2) Lambda function
        ping_handler = lambda_.Function(
            self, "PingHandler",
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler="ping_handler.handler",
            code=lambda_.Code.from_asset(LAMBDA_CODE_DIR),
            timeout=Duration.seconds(10),
            log_retention=logs.RetentionDays.ONE_WEEK,
            environment={
                "AWS_SESSION_MODE": "shared",
                "LOG_LEVEL": "INFO"
            }
        )

        # put_item only
        ping_table.grant_write_data(ping_handler)

        # 3) API Gateway HTTP API
        http_api = apigwv2.HttpApi(
            self, "PingHttpApi",
            api_name="shop-ping-log-api"
        )

        ping_integration = apigwv2_integrations.HttpLambdaIntegration(
            "PingIntegration",
            ping_handler
        )

        http_api.add_routes(
            path="/ping",
            methods=[apigwv2.HttpMethod.POST],
            integration=ping_integration
        )

        # 4) CloudWatch alarms: API 5XX and handler errors
        api_5xx_alarm = cloudwatch.Alarm(
            self, "Api5xxAlarm",
            metric=cloudwatch.Metric(
                namespace="AWS/ApiGateway",
                metric_name="5XXError",
                dimensions_map={
                    "ApiId": http_api.api_id,
                    "Stage": "$default"
                },
                statistic="Sum",
                period=Duration.minutes(5)
            ),
            threshold=1,
            evaluation_periods=1,
            treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING
        )

        handler_errors_alarm = cloudwatch.Alarm(
            self, "PingHandlerErrorsAlarm",
            metric=ping_handler.metric_errors(
                statistic="Sum",
                period=Duration.minutes(5)
            ),
            threshold=1,
            evaluation_periods=1,
            treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING
        )

        for alarm in (api_5xx_alarm, handler_errors_alarm):
            Tags.of(alarm).add("Project", "ShopPingLog")
            Tags.of(alarm).add("Env", "dev")

        # 5) CDK Outputs
        CfnOutput(
            self, "PingTableName",
            value=ping_table.table_name,
            description="DynamoDB ping log table"
        )

        CfnOutput(
            self, "ApiEndpointUrl",
            value=http_api.url or "",
            description="HTTP API endpoint URL"
        )

        CfnOutput(
            self, "PingEndpointUrl",
            value=(http_api.url or "") + "ping",
            description="POST {\"device\": ...} here"
        )

        CfnOutput(
            self, "Api5xxAlarmName",
            value=api_5xx_alarm.alarm_name,
            description="CloudWatch Alarm name for API 5XX errors"
        )

        CfnOutput(
            self, "PingHandlerErrorsAlarmName",
            value=handler_errors_alarm.alarm_name,
            description="CloudWatch Alarm name for ping handler errors"
        )
