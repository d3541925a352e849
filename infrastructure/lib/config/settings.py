import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from infrastructure.lib.config.errors import ConfigurationError


@dataclass(frozen=True)
class PipelineSettings:
    """
    Values the pipelines read from the process environment at synth time.

    The variable names match the ones the Terraform buildspecs expect, so
    they are passed through to CodeBuild unchanged.
    `github_access_token` is a Secrets Manager reference
    (`secret-id:json-key`), not the token itself.
    """

    repo_owner: str = ""
    branch: str = "trunk"
    region: str = ""
    codestar_connectionid: str = ""
    s3_terraform: str = ""
    s3_terraform_plan: str = ""
    s3_artifacts_builds: str = ""
    lets_encrypt_email: str = ""
    base_domain: str = ""
    hosted_zone_id: str = ""
    cert_arn: str = ""
    github_access_token: str = ""
    github_access_token_suffix: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineSettings":
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            value = environ.get(f.name)
            if value:
                values[f.name] = value
        return cls(**values)

    def require(self, name: str) -> str:
        value = getattr(self, name)
        if not value:
            raise ConfigurationError(
                f"Missing required environment variable '{name}'"
            )
        return value

    def connection_arn(self, account: str) -> str:
        region = self.require("region")
        connection_id = self.require("codestar_connectionid")
        return f"arn:aws:codestar-connections:{region}:{account}:connection/{connection_id}"
