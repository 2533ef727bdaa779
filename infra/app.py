#!/usr/bin/env python3
import os

import aws_cdk as cdk

from infra.ping_log_stack import ShopPingLogStack


app = cdk.App()
ShopPingLogStack(app, "ShopPingLogStack",
    env=cdk.Environment(
        account=os.getenv('CDK_DEFAULT_ACCOUNT'),
        region=os.getenv('CDK_DEFAULT_REGION', 'eu-west-3')
    )
)

app.synth()
