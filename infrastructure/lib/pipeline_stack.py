from dataclasses import asdict
from typing import List, Optional

from aws_cdk import (
    Stack,
    aws_codebuild as codebuild,
    aws_iam as iam,
    aws_s3 as s3,
    pipelines,
    CfnOutput,
)
from constructs import Construct

from infrastructure.lib.codecommit_source import CodeCommitSource
from infrastructure.lib.config.accounts import Accounts
from infrastructure.lib.config.environments import EnvironmentConfig, beta_environment
from infrastructure.lib.config.settings import PipelineSettings
from infrastructure.lib.deployment_processors import (
    EndToEndTest,
    PerformanceTest,
    TerraformSteps,
)
from infrastructure.lib.pipeline_environment import DeploymentProcessor, PipelineEnvironment
from infrastructure.lib.steps.codeguru_review_check import (
    CodeGuruReviewCheck,
    CodeGuruReviewFilter,
)
from infrastructure.lib.steps.maven_build import MavenBuild
from infrastructure.lib.steps.trivy_scan import TrivyScan
from infrastructure.lib.terraform_deployment_stack import DeploymentProps

# SSM parameter holding the contents of .accounts.env for synth in CodeBuild
ACCOUNTS_PARAMETER = "/opencbdc-pipeline/accounts"


class PipelineStack(Stack):
    """
    Self-mutating pipeline that scans and builds the OpenCBDC transaction
    processor and deploys its Terraform infrastructure, one wave at a time,
    to every region of the target environments.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        settings: PipelineSettings,
        accounts: Accounts,
        pipeline_repo: str,
        code_repo_owner: str = "mit-dci",
        code_source_repo: str = "opencbdc-tctl",
        infra_repo: str = "terraform-aws-opencbdc-tctl",
        source_branch: str = "trunk",
        environments: Optional[List[EnvironmentConfig]] = None,
        performance_test: bool = False,
        end_to_end_test: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        infra_repo_owner = settings.require("repo_owner")
        connection_arn = settings.connection_arn(self.account)
        environments = environments if environments is not None else [beta_environment(accounts)]

        admin_role = self.create_admin_role()

        code_source = CodeCommitSource(
            self,
            "CodeSource",
            name=f"opencbdc-test-code-{self.account}",
            code_repo_owner=code_repo_owner,
            code_source_repo=code_source_repo,
            branch_name=source_branch,
        )
        infra_source = CodeCommitSource(
            self,
            "InfraSource",
            name=f"opencbdc-test-infra-{self.account}",
            code_repo_owner=infra_repo_owner,
            code_source_repo=infra_repo,
            branch_name=source_branch,
        )

        cache_bucket = s3.Bucket(
            self,
            "CacheBucket",
            encryption=s3.BucketEncryption.S3_MANAGED,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
        )

        # Static analysis gates the build
        checks = []
        for name, source in [("Code", code_source), ("Infra", infra_source)]:
            checks.append(
                CodeGuruReviewCheck(
                    f"CodeGuru{name}Security",
                    source=source.code_pipeline_source,
                    repository_name=source.repository.repository_name,
                    branch_name=source.branch_name,
                    review_filter=CodeGuruReviewFilter.default_code_security_filter(),
                )
            )
            checks.append(
                CodeGuruReviewCheck(
                    f"CodeGuru{name}Quality",
                    source=source.code_pipeline_source,
                    repository_name=source.repository.repository_name,
                    branch_name=source.branch_name,
                    review_filter=CodeGuruReviewFilter.default_code_quality_filter(),
                )
            )
        checks.append(
            TrivyScan(
                "TrivyCodeScan",
                source=code_source.code_pipeline_source,
                severity=["CRITICAL", "HIGH"],
                checks=["vuln", "config", "secret"],
            )
        )

        build_step = MavenBuild(
            "Build",
            source=code_source.code_pipeline_source,
            cache_bucket=cache_bucket,
        )
        for check in checks:
            build_step.add_step_dependency(check)

        pipeline_source = pipelines.CodePipelineSource.connection(
            f"{infra_repo_owner}/{pipeline_repo}",
            settings.branch,
            connection_arn=connection_arn,
        )

        synth_env = {key: value for key, value in asdict(settings).items() if value}
        synth_step = pipelines.CodeBuildStep(
            "Synth",
            input=pipeline_source,
            additional_inputs={"build": build_step},
            env=synth_env,
            install_commands=[
                "npm install -g aws-cdk",
                "pip install -e .",
            ],
            commands=[
                f"aws ssm get-parameter --name {ACCOUNTS_PARAMETER} --query Parameter.Value --output text > .accounts.env",
                "cdk synth",
            ],
            primary_output_directory="cdk.out",
            build_environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0
            ),
            role_policy_statements=[
                iam.PolicyStatement(
                    actions=["ssm:GetParameter"],
                    resources=[
                        self.format_arn(
                            service="ssm",
                            resource="parameter",
                            resource_name=ACCOUNTS_PARAMETER.lstrip("/"),
                        )
                    ],
                )
            ],
        )

        self.pipeline = pipelines.CodePipeline(
            self,
            "Pipeline",
            pipeline_name="cdk-cbdcdeploy",
            synth=synth_step,
            docker_enabled_for_synth=True,
            cross_account_keys=True,
            publish_assets_in_parallel=False,
        )

        processors: List[DeploymentProcessor] = [
            TerraformSteps(
                source=infra_source.code_pipeline_source,
                role=admin_role,
                settings=settings,
                infra_repo_owner=infra_repo_owner,
                infra_repo_source=infra_repo,
            )
        ]
        if performance_test:
            processors.append(PerformanceTest(source=infra_source.code_pipeline_source, cache_bucket=cache_bucket))
        if end_to_end_test:
            processors.append(EndToEndTest(source=infra_source.code_pipeline_source, cache_bucket=cache_bucket))

        props = DeploymentProps(
            infra_repo_owner=infra_repo_owner,
            infra_repo_source=infra_repo,
            base_domain=settings.base_domain,
        )
        self.environments = [
            PipelineEnvironment(self.pipeline, environment, props, processors=processors)
            for environment in environments
        ]

        self.pipeline.build_pipeline()

        # Outputs
        CfnOutput(
            self,
            "PipelineName",
            value=self.pipeline.pipeline.pipeline_name,
            description="CodePipeline name",
            export_name=f"{self.stack_name}-PipelineName",
        )

        CfnOutput(
            self,
            "ArtifactBucketName",
            value=self.pipeline.pipeline.artifact_bucket.bucket_name,
            description="Pipeline Artifact Bucket",
            export_name=f"{self.stack_name}-ArtifactBucket",
        )

    def create_admin_role(self) -> iam.Role:
        return iam.Role(
            self,
            "CustomAdminRole",
            assumed_by=iam.CompositePrincipal(
                iam.ServicePrincipal("codebuild.amazonaws.com"),
                iam.ServicePrincipal("codepipeline.amazonaws.com"),
            ),
            description="Admin role for deploying Terraform scripts",
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name("AdministratorAccess")
            ],
        )
