from typing import Mapping

import jsii
from aws_cdk import (
    aws_codebuild as codebuild,
    aws_codepipeline_actions as pipeline_actions,
    aws_iam as iam,
    pipelines,
)


@jsii.implements(pipelines.ICodePipelineActionFactory)
class TerraformBuild(pipelines.Step):
    """
    Runs a Terraform buildspec from the infrastructure repository.

    The buildspec lives in the source artifact, so the step is rendered as a
    plain CodeBuild action rather than a `CodeBuildStep` (which can only merge
    buildspecs it knows at synth time).
    """

    def __init__(
        self,
        id: str,
        source: pipelines.IFileSetProducer,
        build_spec: codebuild.BuildSpec,
        role: iam.IRole,
        env_vars: Mapping[str, codebuild.BuildEnvironmentVariable],
    ) -> None:
        super().__init__(id)
        self.source = source
        self.build_spec = build_spec
        self.role = role
        self.env_vars = dict(env_vars)
        self._add_dependency_file_set(source.primary_output)

    def produce_action(self, stage, *, scope, action_name, run_order, artifacts, **kwargs):
        project = codebuild.PipelineProject(
            scope,
            action_name,
            build_spec=self.build_spec,
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
                privileged=False,
                compute_type=codebuild.ComputeType.MEDIUM,
            ),
            environment_variables=self.env_vars,
            role=self.role,
        )
        stage.add_action(
            pipeline_actions.CodeBuildAction(
                action_name=action_name,
                run_order=run_order,
                project=project,
                input=artifacts.to_code_pipeline(self.source.primary_output),
            )
        )
        return pipelines.CodePipelineActionFactoryResult(run_orders_consumed=1)
