"""
Fan-out of one deployment environment into pipeline waves.

An environment is a list of waves; each wave is a list of regions. Waves
run one after another and the regions inside a wave deploy in parallel,
one `Deployment` stage per region.
"""

import logging
from typing import List, Optional, Sequence, Type

from aws_cdk import (
    Environment,
    Stack,
    Stage,
    Tags,
    CfnOutput,
    pipelines,
)
from constructs import Construct

from infrastructure.lib.config.environments import EnvironmentConfig
from infrastructure.lib.config.errors import require_context
from infrastructure.lib.terraform_deployment_stack import (
    DeploymentProps,
    TerraformDeploymentStack,
)

logger = logging.getLogger(__name__)


class Deployment(Stage):
    """One region of one environment: a stage holding the workload stack."""

    def __init__(
        self,
        scope: Construct,
        environment_name: str,
        props: DeploymentProps,
        env: Environment,
        stack_class: Type[Stack] = TerraformDeploymentStack,
    ) -> None:
        super().__init__(scope, f"{environment_name}-{env.region}", env=env)

        app_name = require_context(self, "appName")

        self.environment_name = environment_name
        self.stack = stack_class(self, app_name, props)
        self.api_url: Optional[CfnOutput] = getattr(self.stack, "api_url", None)

        Tags.of(self).add("Environment", environment_name)
        Tags.of(self).add("Application", app_name)


class DeploymentProcessor:
    """
    Hooks run while an environment is fanned out.

    `on_stage` is called right after a deployment is attached to its wave,
    `on_wave` once all regions of the wave are attached. Both do nothing by
    default; subclasses override the ones they need.
    """

    def on_stage(self, deployment: Deployment, stage: pipelines.StageDeployment) -> None:
        pass

    def on_wave(self, wave: pipelines.Wave) -> None:
        pass


class PipelineEnvironment:
    """Adds one wave per environment wave and one stage per region to a pipeline."""

    def __init__(
        self,
        pipeline: pipelines.CodePipeline,
        environment: EnvironmentConfig,
        props: DeploymentProps,
        processors: Sequence[DeploymentProcessor] = (),
        stack_class: Type[Stack] = TerraformDeploymentStack,
    ) -> None:
        # Nothing is added to the pipeline unless the whole environment is valid
        account_id = environment.validate()
        require_context(pipeline, "appName")

        self.environment = environment
        self.waves: List[pipelines.Wave] = []
        self.deployments: List[Deployment] = []

        for i, regions in enumerate(environment.waves):
            wave = pipeline.add_wave(f"{environment.name}-{i}")
            self.waves.append(wave)
            logger.info(f"Wave {environment.name}-{i}: {', '.join(regions)}")

            for region in regions:
                deployment = Deployment(
                    pipeline,
                    environment.name,
                    props,
                    Environment(account=account_id, region=region),
                    stack_class=stack_class,
                )
                stage = wave.add_stage(deployment)
                self.deployments.append(deployment)
                for processor in processors:
                    processor.on_stage(deployment, stage)

            for processor in processors:
                processor.on_wave(wave)
