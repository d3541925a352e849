from typing import Sequence

from aws_cdk import (
    aws_codebuild as codebuild,
    pipelines,
)

TRIVY_VERSION = "0.50.1"


class TrivyScan(pipelines.CodeBuildStep):
    """Scans the source tree with Trivy; any finding at `severity` fails the step."""

    def __init__(
        self,
        id: str,
        source: pipelines.IFileSetProducer,
        severity: Sequence[str] = ("CRITICAL", "HIGH"),
        checks: Sequence[str] = ("vuln", "config", "secret"),
    ) -> None:
        if not severity:
            raise ValueError("TrivyScan needs at least one severity")
        if not checks:
            raise ValueError("TrivyScan needs at least one check")
        super().__init__(
            id,
            input=source,
            env={
                "TRIVY_SEVERITY": ",".join(severity),
                "TRIVY_SCANNERS": ",".join(checks),
            },
            install_commands=[
                f"curl -sfL https://raw.githubusercontent.com/aquasecurity/trivy/main/contrib/install.sh"
                f" | sh -s -- -b /usr/local/bin v{TRIVY_VERSION}",
            ],
            commands=[
                "trivy filesystem --exit-code 1 --no-progress"
                " --severity \"$TRIVY_SEVERITY\" --scanners \"$TRIVY_SCANNERS\" .",
            ],
            build_environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
            ),
        )
        self.severity = list(severity)
        self.checks = list(checks)
