#!/usr/bin/env python3
import logging
import os
import aws_cdk as cdk
from infrastructure.lib.build_deploy_stack import BuildDeployStack

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = cdk.App()

env = cdk.Environment(
    account=os.getenv("CDK_DEFAULT_ACCOUNT"),
    region=os.getenv("CDK_DEFAULT_REGION"),
)

build_deploy = BuildDeployStack(
    app,
    "CodepipelineBuildDeployStack",
    env=env,
    description="Docker build and ECS Fargate blue/green deployment pipeline",
)

cdk.Tags.of(build_deploy).add("Project", "CodepipelineBuildDeploy")

app.synth()
