import json
from typing import List, Sequence

from aws_cdk import (
    aws_codebuild as codebuild,
    aws_iam as iam,
    pipelines,
)

SEVERITIES = ["Info", "Low", "Medium", "High", "Critical"]

QUALITY_CATEGORIES = [
    "AWSBestPractices",
    "AWSCloudFormationIssues",
    "CodeInconsistencies",
    "CodeMaintenanceIssues",
    "ConcurrencyIssues",
    "DuplicateCode",
    "InputValidations",
    "JavaBestPractices",
    "PythonBestPractices",
    "ResourceLeaks",
]


class CodeGuruReviewFilter:
    """Selects which CodeGuru recommendations fail the check."""

    def __init__(self, recommendation_categories: Sequence[str], min_severity: str):
        if min_severity not in SEVERITIES:
            raise ValueError(f"Unsupported CodeGuru severity: {min_severity}")
        self.recommendation_categories = list(recommendation_categories)
        self.min_severity = min_severity

    @property
    def severities(self) -> List[str]:
        return SEVERITIES[SEVERITIES.index(self.min_severity):]

    def to_jq(self) -> str:
        """jq program that counts the recommendations matching this filter."""
        categories = json.dumps(self.recommendation_categories)
        severities = json.dumps(self.severities)
        return (
            "[.RecommendationSummaries[]"
            f" | select(.RecommendationCategory as $c | {categories} | index($c))"
            f" | select(.Severity as $s | {severities} | index($s))]"
            " | length"
        )

    @classmethod
    def default_code_security_filter(cls) -> "CodeGuruReviewFilter":
        return cls(recommendation_categories=["SecurityIssues"], min_severity="Low")

    @classmethod
    def default_code_quality_filter(cls) -> "CodeGuruReviewFilter":
        return cls(recommendation_categories=QUALITY_CATEGORIES, min_severity="High")


class CodeGuruReviewCheck(pipelines.CodeBuildStep):
    """
    Runs a CodeGuru Reviewer repository analysis on the source branch and
    fails when any recommendation passes the filter.

    When `review_required` is false, a repository without a CodeGuru
    association is skipped instead of failing the step.
    """

    def __init__(
        self,
        id: str,
        source: pipelines.CodePipelineSource,
        repository_name: str,
        branch_name: str,
        review_filter: CodeGuruReviewFilter,
        review_required: bool = False,
    ) -> None:
        review_type = {"RepositoryAnalysis": {"RepositoryHead": {"BranchName": branch_name}}}
        super().__init__(
            id,
            input=source,
            env={
                "REPOSITORY_NAME": repository_name,
                "REVIEW_TYPE": json.dumps(review_type),
                "REVIEW_REQUIRED": "true" if review_required else "false",
                "FINDINGS_FILTER": review_filter.to_jq(),
            },
            commands=[
                "ASSOCIATION_ARN=$(aws codeguru-reviewer list-repository-associations"
                " --names \"$REPOSITORY_NAME\" --provider-types CodeCommit"
                " --query 'RepositoryAssociationSummaries[0].AssociationArn' --output text)",
                "if [ -z \"$ASSOCIATION_ARN\" ] || [ \"$ASSOCIATION_ARN\" = \"None\" ]; then"
                " echo \"No CodeGuru association for $REPOSITORY_NAME\";"
                " test \"$REVIEW_REQUIRED\" = \"false\";"
                " fi",
                "if [ -n \"$ASSOCIATION_ARN\" ] && [ \"$ASSOCIATION_ARN\" != \"None\" ]; then"
                " REVIEW_ARN=$(aws codeguru-reviewer create-code-review"
                " --name \"$REPOSITORY_NAME-$CODEBUILD_BUILD_NUMBER\""
                " --repository-association-arn \"$ASSOCIATION_ARN\""
                " --type \"$REVIEW_TYPE\""
                " --query 'CodeReview.CodeReviewArn' --output text);"
                " aws codeguru-reviewer wait code-review-completed --code-review-arn \"$REVIEW_ARN\";"
                " aws codeguru-reviewer list-recommendations --code-review-arn \"$REVIEW_ARN\" > recommendations.json;"
                " FINDINGS=$(jq \"$FINDINGS_FILTER\" recommendations.json);"
                " echo \"$FINDINGS recommendation(s) matched\";"
                " test \"$FINDINGS\" -eq 0;"
                " fi",
            ],
            build_environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
            ),
            role_policy_statements=[
                iam.PolicyStatement(
                    actions=[
                        "codeguru-reviewer:ListRepositoryAssociations",
                        "codeguru-reviewer:CreateCodeReview",
                        "codeguru-reviewer:DescribeCodeReview",
                        "codeguru-reviewer:ListRecommendations",
                    ],
                    resources=["*"],
                ),
            ],
        )
        self.review_filter = review_filter
        self.review_required = review_required
