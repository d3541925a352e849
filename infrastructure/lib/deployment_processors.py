from typing import Dict, Optional

from aws_cdk import (
    aws_codebuild as codebuild,
    aws_iam as iam,
    aws_s3 as s3,
    pipelines,
)

from infrastructure.lib.config.errors import ConfigurationError
from infrastructure.lib.config.settings import PipelineSettings
from infrastructure.lib.pipeline_environment import Deployment, DeploymentProcessor
from infrastructure.lib.steps.load_tests import JMeterTest, SoapUITest
from infrastructure.lib.steps.terraform_build import TerraformBuild

PLAINTEXT = codebuild.BuildEnvironmentVariableType.PLAINTEXT
SECRETS_MANAGER = codebuild.BuildEnvironmentVariableType.SECRETS_MANAGER


def _plain(value: str) -> codebuild.BuildEnvironmentVariable:
    return codebuild.BuildEnvironmentVariable(type=PLAINTEXT, value=value)


class TerraformSteps(DeploymentProcessor):
    """Terraform plan before each regional stage and apply after it."""

    def __init__(
        self,
        source: pipelines.IFileSetProducer,
        role: iam.IRole,
        settings: PipelineSettings,
        infra_repo_owner: str,
        infra_repo_source: str,
        terraform_environment: str = "dev",
    ) -> None:
        self.source = source
        self.role = role
        self.settings = settings
        self.infra_repo_owner = infra_repo_owner
        self.infra_repo_source = infra_repo_source
        self.terraform_environment = terraform_environment

    def _common_env(self, deployment: Deployment) -> Dict[str, codebuild.BuildEnvironmentVariable]:
        settings = self.settings
        env = {
            "s3_terraform": _plain(settings.s3_terraform),
            "s3_terraform_plan": _plain(settings.s3_terraform_plan),
            "s3_artifacts_builds": _plain(settings.s3_artifacts_builds),
            "access_token_suffix": _plain(settings.github_access_token_suffix),
            "account_id": _plain(deployment.account),
            "region": _plain(deployment.region),
        }
        if settings.github_access_token:
            env["github_access_token"] = codebuild.BuildEnvironmentVariable(
                type=SECRETS_MANAGER, value=settings.github_access_token
            )
        return env

    def plan_env(self, deployment: Deployment) -> Dict[str, codebuild.BuildEnvironmentVariable]:
        settings = self.settings
        env = self._common_env(deployment)
        env.update(
            {
                "environment": _plain(self.terraform_environment),
                "lets_encrypt_email": _plain(settings.lets_encrypt_email),
                "base_domain": _plain(settings.base_domain),
                "hosted_zone_id": _plain(settings.hosted_zone_id),
                "cert_arn": _plain(settings.cert_arn),
                "branch": _plain(settings.branch),
                "github_repo_owner": _plain(self.infra_repo_owner),
                "github_repo": _plain(self.infra_repo_source),
            }
        )
        return env

    def on_stage(self, deployment: Deployment, stage: pipelines.StageDeployment) -> None:
        stage.add_pre(
            TerraformBuild(
                "TerraformPlan",
                source=self.source,
                build_spec=codebuild.BuildSpec.from_source_filename("plan-buildspec.yml"),
                role=self.role,
                env_vars=self.plan_env(deployment),
            )
        )
        stage.add_post(
            TerraformBuild(
                "TerraformApply",
                source=self.source,
                build_spec=codebuild.BuildSpec.from_source_filename("deploy-buildspec.yml"),
                role=self.role,
                env_vars=self._common_env(deployment),
            )
        )


class PerformanceTest(DeploymentProcessor):
    """JMeter load test after each stage, aimed at the deployment's endpoint."""

    def __init__(
        self,
        source: pipelines.IFileSetProducer,
        cache_bucket: s3.IBucket,
        threads: int = 300,
        duration: int = 300,
        throughput: int = 6000,
    ) -> None:
        self.source = source
        self.cache_bucket = cache_bucket
        self.threads = threads
        self.duration = duration
        self.throughput = throughput

    def on_stage(self, deployment: Deployment, stage: pipelines.StageDeployment) -> None:
        if deployment.api_url is None:
            raise ConfigurationError(f"Deployment {deployment.stage_name} has no endpoint to load test")
        stage.add_post(
            JMeterTest(
                "PerformanceTest",
                source=self.source,
                endpoint=deployment.api_url,
                cache_bucket=self.cache_bucket,
                threads=self.threads,
                duration=self.duration,
                throughput=self.throughput,
            )
        )


class EndToEndTest(DeploymentProcessor):
    """SoapUI end-to-end test after each stage."""

    def __init__(self, source: pipelines.IFileSetProducer, cache_bucket: s3.IBucket) -> None:
        self.source = source
        self.cache_bucket = cache_bucket

    def on_stage(self, deployment: Deployment, stage: pipelines.StageDeployment) -> None:
        if deployment.api_url is None:
            raise ConfigurationError(f"Deployment {deployment.stage_name} has no endpoint to test")
        stage.add_post(
            SoapUITest(
                "E2ETest",
                source=self.source,
                endpoint=deployment.api_url,
                cache_bucket=self.cache_bucket,
            )
        )


class ManualPromotion(DeploymentProcessor):
    """Manual approval once every region of a wave has deployed."""

    def __init__(self, comment: Optional[str] = None) -> None:
        self.comment = comment

    def on_wave(self, wave: pipelines.Wave) -> None:
        wave.add_post(
            pipelines.ManualApprovalStep(
                f"Promote-{wave.id}",
                comment=self.comment or f"Promote past wave {wave.id}",
            )
        )
