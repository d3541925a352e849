from aws_cdk import (
    aws_codebuild as codebuild,
    aws_s3 as s3,
    pipelines,
)


class MavenBuild(pipelines.CodeBuildStep):
    """Packages the application with Maven, caching ~/.m2 in S3."""

    def __init__(
        self,
        id: str,
        source: pipelines.IFileSetProducer,
        cache_bucket: s3.IBucket,
        goals: str = "package",
    ) -> None:
        super().__init__(
            id,
            input=source,
            commands=[],
            build_environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
                compute_type=codebuild.ComputeType.MEDIUM,
            ),
            partial_build_spec=codebuild.BuildSpec.from_object(
                {
                    "version": "0.2",
                    "phases": {
                        "install": {"runtime-versions": {"java": "corretto17"}},
                        "build": {
                            "commands": [
                                f"mvn -B -Dmaven.repo.local=/root/.m2/repository {goals}",
                            ]
                        },
                    },
                    "cache": {"paths": ["/root/.m2/**/*"]},
                }
            ),
            cache=codebuild.Cache.bucket(cache_bucket, prefix="maven"),
            primary_output_directory=".",
        )
