#!/usr/bin/env python3
import logging
import os
import aws_cdk as cdk
from infrastructure.lib.config.accounts import Accounts
from infrastructure.lib.config.settings import PipelineSettings
from infrastructure.lib.pipeline_stack import PipelineStack

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

APP_NAME = "open-cbdc-throughput-test"

app = cdk.App(context={"appName": APP_NAME})
environment_name = app.node.try_get_context("environmentName")

# Pipeline environment
pipeline_env = cdk.Environment(
    account=os.getenv("CDK_DEFAULT_ACCOUNT"),
    region=os.getenv("CDK_DEFAULT_REGION", "us-east-1"),
)

PipelineStack(
    app,
    "PipelineStack",
    settings=PipelineSettings.from_env(),
    accounts=Accounts.load(os.getenv("ACCOUNTS_FILE", ".accounts.env")),
    pipeline_repo=app.node.try_get_context("pipelineRepo") or "codepipeline-opencbdc-terraform-deploy",
    performance_test=bool(app.node.try_get_context("performanceTest")),
    end_to_end_test=bool(app.node.try_get_context("endToEndTest")),
    env=pipeline_env,
    description="Terraform deployment pipeline for the OpenCBDC test controller",
)

# Tags for everything in the app
cdk.Tags.of(app).add("Application", APP_NAME)
if environment_name:
    cdk.Tags.of(app).add("Environment", environment_name)

app.synth()
