from dataclasses import dataclass

from aws_cdk import (
    Stack,
    aws_ssm as ssm,
    CfnOutput,
)
from constructs import Construct


@dataclass(frozen=True)
class DeploymentProps:
    infra_repo_owner: str
    infra_repo_source: str
    base_domain: str
    environment: str = "dev"


class TerraformDeploymentStack(Stack):
    """
    Per-region stack for a Terraform-managed workload.

    Terraform itself runs in the pipeline (see `TerraformSteps`); this stack
    publishes the endpoint the workload will answer on so that post-deployment
    tests can read it from the stack outputs.
    """

    def __init__(self, scope: Construct, construct_id: str, props: DeploymentProps, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        endpoint = f"test-controller.{props.base_domain}:8443/auth"

        # Discoverable outside the pipeline as well
        self.endpoint_parameter = ssm.StringParameter(
            self,
            "EndpointParameter",
            parameter_name=f"/{construct_id}/{props.environment}/endpoint",
            string_value=endpoint,
            description=f"Service endpoint for {props.infra_repo_owner}/{props.infra_repo_source}",
        )

        self.api_url = CfnOutput(
            self,
            "endpointUrl",
            value=endpoint,
            description="Service endpoint",
        )
