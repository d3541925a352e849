import os

from aws_cdk import (
    Stack,
    SecretValue,
    aws_codebuild as codebuild,
    aws_codedeploy as codedeploy,
    aws_codepipeline as codepipeline,
    aws_codepipeline_actions as pipeline_actions,
    aws_ec2 as ec2,
    aws_ecr as ecr,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_secretsmanager as secretsmanager,
    custom_resources as cr,
    CfnOutput,
    Duration,
)
from constructs import Construct

from infrastructure.lib.config.errors import require_context

TRIGGER_BUILD_CODE = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "..", "..", "src", "functions", "trigger_build"
)


class BuildDeployStack(Stack):
    """
    Container build and blue/green deployment of a web service on Fargate.

    Pipeline: GitHub source -> unit tests -> Docker image build -> CodeDeploy
    blue/green rollout behind a public ALB. An initial image build is kicked
    off at deploy time so the service has something to run before the first
    pipeline execution.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        source_repo: str = "simple-code-repo",
        source_branch: str = "main",
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        github_username = require_context(self, "githubUsername")
        github_pat = require_context(self, "githubPAT")

        github_pat_secret = secretsmanager.Secret(
            self,
            "GithubPATSecret",
            secret_name="github-pat-secret",
            secret_object_value={"token": SecretValue.unsafe_plain_text(github_pat)},
        )

        image_repo = ecr.Repository(self, "ImageRepo")

        # Task definition for the Fargate service
        fargate_task_def = ecs.FargateTaskDefinition(self, "FargateTaskDef")
        fargate_task_def.add_container(
            "container",
            container_name="web",
            image=ecs.ContainerImage.from_ecr_repository(image_repo),
            port_mappings=[ecs.PortMapping(container_port=80)],
        )

        # Builds and pushes the Docker image
        build_image = codebuild.Project(
            self,
            "BuildImage",
            build_spec=codebuild.BuildSpec.from_source_filename("app/buildspec.yaml"),
            source=codebuild.Source.git_hub(
                owner=github_username,
                repo=source_repo,
                branch_or_ref=source_branch,
            ),
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
                privileged=True,
            ),
            environment_variables={
                "AWS_ACCOUNT_ID": codebuild.BuildEnvironmentVariable(value=self.account),
                "REGION": codebuild.BuildEnvironmentVariable(value=self.region),
                "IMAGE_TAG": codebuild.BuildEnvironmentVariable(value="latest"),
                "IMAGE_REPO_NAME": codebuild.BuildEnvironmentVariable(value=image_repo.repository_name),
                "REPOSITORY_URI": codebuild.BuildEnvironmentVariable(value=image_repo.repository_uri),
                "TASK_DEFINITION_ARN": codebuild.BuildEnvironmentVariable(
                    value=fargate_task_def.task_definition_arn
                ),
                "TASK_ROLE_ARN": codebuild.BuildEnvironmentVariable(value=fargate_task_def.task_role.role_arn),
                "EXECUTION_ROLE_ARN": codebuild.BuildEnvironmentVariable(
                    value=fargate_task_def.obtain_execution_role().role_arn
                ),
            },
        )
        image_repo.grant_pull_push(build_image)

        # Runs the unit tests
        build_test = codebuild.PipelineProject(
            self,
            "BuildTest",
            build_spec=codebuild.BuildSpec.from_source_filename("buildspec.yaml"),
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.AMAZON_LINUX_2_5
            ),
        )

        # Starts the image build once at deploy time
        trigger_build_fn = lambda_.Function(
            self,
            "BuildLambda",
            runtime=lambda_.Runtime.PYTHON_3_11,
            architecture=lambda_.Architecture.ARM_64,
            handler="trigger_build.handler",
            code=lambda_.Code.from_asset(TRIGGER_BUILD_CODE),
            timeout=Duration.seconds(30),
            environment={
                "CODEBUILD_PROJECT_NAME": build_image.project_name,
            },
            initial_policy=[
                iam.PolicyStatement(
                    actions=["codebuild:StartBuild"],
                    resources=[build_image.project_arn],
                )
            ],
        )

        invoke_call = cr.AwsSdkCall(
            service="Lambda",
            action="invoke",
            physical_resource_id=cr.PhysicalResourceId.of("BuildLambdaTrigger"),
            parameters={
                "FunctionName": trigger_build_fn.function_name,
                "InvocationType": "Event",
            },
        )
        trigger_lambda = cr.AwsCustomResource(
            self,
            "BuildLambdaTrigger",
            install_latest_aws_sdk=False,
            policy=cr.AwsCustomResourcePolicy.from_statements(
                [
                    iam.PolicyStatement(
                        actions=["lambda:InvokeFunction"],
                        resources=[trigger_build_fn.function_arn],
                    )
                ]
            ),
            on_create=invoke_call,
            on_update=invoke_call,
        )

        cluster_vpc = ec2.Vpc(
            self,
            "ClusterVpc",
            ip_addresses=ec2.IpAddresses.cidr("10.50.0.0/16"),
        )
        # Image build starts before the cluster comes up
        cluster_vpc.node.add_dependency(trigger_lambda)

        target_group_blue = elbv2.ApplicationTargetGroup(
            self,
            "BlueTargetGroup",
            target_group_name="alb-blue-tg",
            target_type=elbv2.TargetType.IP,
            port=80,
            vpc=cluster_vpc,
        )

        target_group_green = elbv2.ApplicationTargetGroup(
            self,
            "GreenTargetGroup",
            target_group_name="alb-green-tg",
            target_type=elbv2.TargetType.IP,
            port=80,
            vpc=cluster_vpc,
        )

        alb_sg = ec2.SecurityGroup(
            self,
            "SecurityGroup",
            vpc=cluster_vpc,
            allow_all_outbound=True,
        )
        alb_sg.add_ingress_rule(
            ec2.Peer.any_ipv4(),
            ec2.Port.tcp(80),
            "Allows access on port 80/http",
            False,
        )

        public_alb = elbv2.ApplicationLoadBalancer(
            self,
            "PublicAlb",
            vpc=cluster_vpc,
            internet_facing=True,
            security_group=alb_sg,
        )

        alb_listener = public_alb.add_listener(
            "AlbListener80",
            open=False,
            port=80,
            default_target_groups=[target_group_blue],
        )

        fargate_service = ecs.FargateService(
            self,
            "FargateService",
            desired_count=1,
            service_name="fargate-frontend-service",
            task_definition=fargate_task_def,
            cluster=ecs.Cluster(
                self,
                "EcsCluster",
                enable_fargate_capacity_providers=True,
                vpc=cluster_vpc,
            ),
            deployment_controller=ecs.DeploymentController(
                type=ecs.DeploymentControllerType.CODE_DEPLOY
            ),
        )
        fargate_service.attach_to_application_target_group(target_group_blue)

        deployment_group = codedeploy.EcsDeploymentGroup(
            self,
            "CodeDeployGroup",
            service=fargate_service,
            blue_green_deployment_config=codedeploy.EcsBlueGreenDeploymentConfig(
                listener=alb_listener,
                blue_target_group=target_group_blue,
                green_target_group=target_group_green,
            ),
        )

        source_artifact = codepipeline.Artifact("SourceArtifact")
        build_artifact = codepipeline.Artifact("BuildArtifact")

        self.pipeline = codepipeline.Pipeline(
            self,
            "BuildDeployPipeline",
            pipeline_name="ImageBuildDeployPipeline",
            stages=[
                codepipeline.StageProps(
                    stage_name="Source",
                    actions=[
                        pipeline_actions.GitHubSourceAction(
                            action_name="GitHub_Source",
                            owner=github_username,
                            repo=source_repo,
                            branch=source_branch,
                            oauth_token=github_pat_secret.secret_value_from_json("token"),
                            output=source_artifact,
                            run_order=1,
                        )
                    ],
                ),
                codepipeline.StageProps(
                    stage_name="Test",
                    actions=[
                        pipeline_actions.CodeBuildAction(
                            action_name="UnitTests",
                            input=source_artifact,
                            project=build_test,
                        )
                    ],
                ),
                codepipeline.StageProps(
                    stage_name="Build",
                    actions=[
                        pipeline_actions.CodeBuildAction(
                            action_name="DockerBuildPush",
                            input=source_artifact,
                            project=build_image,
                            outputs=[build_artifact],
                        )
                    ],
                ),
                codepipeline.StageProps(
                    stage_name="Deploy",
                    actions=[
                        pipeline_actions.CodeDeployEcsDeployAction(
                            action_name="EcsFargateDeploy",
                            app_spec_template_input=build_artifact,
                            task_definition_template_input=build_artifact,
                            deployment_group=deployment_group,
                        )
                    ],
                ),
            ],
        )

        # Outputs
        CfnOutput(
            self,
            "PublicAlbEndpoint",
            value=f"http://{public_alb.load_balancer_dns_name}",
            description="Public ALB endpoint",
        )
