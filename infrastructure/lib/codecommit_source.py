from typing import Optional

import yaml
from aws_cdk import (
    Duration,
    aws_codebuild as codebuild,
    aws_codecommit as codecommit,
    aws_codegurureviewer as codegurureviewer,
    aws_events as events,
    aws_events_targets as targets,
    pipelines,
)
from constructs import Construct

MIRROR_BUILDSPEC = """
version: '0.2'
phases:
  install:
    commands:
      - pip install git-remote-codecommit
  build:
    commands:
      - git clone --branch "$BRANCH_NAME" --single-branch "https://github.com/$GITHUB_OWNER/$GITHUB_REPO.git" src
      - cd src && git push "codecommit::$AWS_REGION://$REPOSITORY_NAME" "HEAD:refs/heads/$BRANCH_NAME"
"""


class CodeCommitSource(Construct):
    """
    CodeCommit copy of a GitHub repository, usable as a pipeline source.

    A CodeBuild project mirrors the GitHub branch into the repository on a
    schedule. The repository is associated with CodeGuru Reviewer unless
    `associate_code_guru` is false.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        name: str,
        code_repo_owner: str,
        code_source_repo: str,
        branch_name: str,
        associate_code_guru: bool = True,
        mirror_schedule: Optional[Duration] = Duration.hours(1),
    ) -> None:
        super().__init__(scope, construct_id)

        self.branch_name = branch_name

        self.repository = codecommit.Repository(
            self,
            "Repository",
            repository_name=name,
            description=f"Mirror of github.com/{code_repo_owner}/{code_source_repo}",
        )

        self.mirror_project = codebuild.Project(
            self,
            "Mirror",
            build_spec=codebuild.BuildSpec.from_object(yaml.safe_load(MIRROR_BUILDSPEC)),
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0
            ),
            environment_variables={
                "GITHUB_OWNER": codebuild.BuildEnvironmentVariable(value=code_repo_owner),
                "GITHUB_REPO": codebuild.BuildEnvironmentVariable(value=code_source_repo),
                "BRANCH_NAME": codebuild.BuildEnvironmentVariable(value=branch_name),
                "REPOSITORY_NAME": codebuild.BuildEnvironmentVariable(
                    value=self.repository.repository_name
                ),
            },
        )
        self.repository.grant_pull_push(self.mirror_project)

        if mirror_schedule is not None:
            events.Rule(
                self,
                "MirrorSchedule",
                description=f"Mirror {code_repo_owner}/{code_source_repo} into CodeCommit",
                schedule=events.Schedule.rate(mirror_schedule),
                targets=[targets.CodeBuildProject(self.mirror_project)],
            )

        if associate_code_guru:
            codegurureviewer.CfnRepositoryAssociation(
                self,
                "CfnRepositoryAssociation",
                name=self.repository.repository_name,
                type="CodeCommit",
            )

        self.code_pipeline_source = pipelines.CodePipelineSource.code_commit(
            self.repository, branch_name
        )
