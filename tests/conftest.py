import sys
from pathlib import Path

import pytest
from aws_cdk import App, Environment, Stack, pipelines

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.append(project_root)

from infrastructure.lib.config.accounts import Accounts
from infrastructure.lib.config.settings import PipelineSettings

PIPELINE_ENV = Environment(account="123456789012", region="us-east-1")


@pytest.fixture
def accounts():
    return Accounts.from_mapping({"beta": "111111111111"})


@pytest.fixture
def settings():
    return PipelineSettings(
        repo_owner="example-org",
        region="us-east-1",
        codestar_connectionid="abcd-1234",
        s3_terraform="terraform-state-bucket",
        s3_terraform_plan="terraform-plan-bucket",
        s3_artifacts_builds="artifact-bucket",
        base_domain="example.com",
        github_access_token="github-token:token",
    )


@pytest.fixture
def app():
    return App(context={"appName": "test-app"})


def create_pipeline(app: App, stack_id: str = "PipelineStack"):
    """Minimal self-mutating pipeline to fan environments out onto."""
    stack = Stack(app, stack_id, env=PIPELINE_ENV)
    source = pipelines.CodePipelineSource.git_hub("example-org/pipeline", "main")
    pipeline = pipelines.CodePipeline(
        stack,
        "Pipeline",
        synth=pipelines.ShellStep("Synth", input=source, commands=["cdk synth"]),
        cross_account_keys=True,
    )
    return stack, pipeline


@pytest.fixture
def pipeline_factory():
    return create_pipeline
