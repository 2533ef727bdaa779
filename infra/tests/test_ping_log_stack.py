import shutil

import pytest

pytestmark = pytest.mark.skipif(shutil.which("node") is None, reason="aws-cdk-lib needs a Node.js runtime")


@pytest.fixture(scope="module")
def template():
    import aws_cdk as cdk
    from aws_cdk.assertions import Template

    from infra.ping_log_stack import ShopPingLogStack

    app = cdk.App()
    stack = ShopPingLogStack(app, "ShopPingLogTest")
    return Template.from_stack(stack)


def test_table_keyed_on_id(template):
    template.has_resource_properties("AWS::DynamoDB::Table", {
        "TableName": "shop_ping_log",
        "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
        "BillingMode": "PAY_PER_REQUEST",
    })


def test_ping_function(template):
    from aws_cdk.assertions import Match

    template.has_resource_properties("AWS::Lambda::Function", {
        "Runtime": "python3.11",
        "Handler": "ping_handler.handler",
        "Environment": {
            "Variables": Match.object_like({
                "TABLE_NAME": Match.absent(),
                "AWS_SESSION_MODE": "shared",
            })
        },
    })


def test_post_ping_route(template):
    template.has_resource_properties("AWS::ApiGatewayV2::Route", {
        "RouteKey": "POST /ping",
    })


def test_alarms(template):
    template.resource_count_is("AWS::CloudWatch::Alarm", 2)
