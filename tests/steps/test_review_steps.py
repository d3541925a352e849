import pytest
from aws_cdk import App, CfnOutput, Environment, Stack, aws_s3 as s3, pipelines

from infrastructure.lib.steps.codeguru_review_check import (
    QUALITY_CATEGORIES,
    CodeGuruReviewCheck,
    CodeGuruReviewFilter,
)
from infrastructure.lib.steps.load_tests import JMeterTest, SoapUITest
from infrastructure.lib.steps.trivy_scan import TrivyScan

def code_source():
    return pipelines.CodePipelineSource.git_hub("example-org/code", "trunk")


class TestCodeGuruReviewFilter:
    """Test suite for CodeGuru recommendation filters."""

    def test_security_filter_fails_on_low_and_above(self):
        # When
        review_filter = CodeGuruReviewFilter.default_code_security_filter()

        # Then
        assert review_filter.recommendation_categories == ["SecurityIssues"]
        assert review_filter.severities == ["Low", "Medium", "High", "Critical"]

    def test_quality_filter_covers_non_security_categories(self):
        # When
        review_filter = CodeGuruReviewFilter.default_code_quality_filter()

        # Then
        assert review_filter.recommendation_categories == QUALITY_CATEGORIES
        assert "SecurityIssues" not in review_filter.recommendation_categories
        assert review_filter.severities == ["High", "Critical"]

    def test_jq_program_counts_matching_recommendations(self):
        # When
        program = CodeGuruReviewFilter(["SecurityIssues"], "High").to_jq()

        # Then
        assert program.startswith("[.RecommendationSummaries[]")
        assert '["SecurityIssues"]' in program
        assert '["High", "Critical"]' in program
        assert program.endswith("| length")

    def test_unknown_severity_is_rejected(self):
        with pytest.raises(ValueError, match="Unsupported CodeGuru severity: Severe"):
            CodeGuruReviewFilter(["SecurityIssues"], "Severe")


class TestCodeGuruReviewCheck:
    """Test suite for the CodeGuru review step."""

    def test_review_parameters_passed_as_environment(self):
        # When
        step = CodeGuruReviewCheck(
            "CodeGuruSecurity",
            source=code_source(),
            repository_name="code-repo",
            branch_name="trunk",
            review_filter=CodeGuruReviewFilter.default_code_security_filter(),
        )

        # Then
        assert step.env["REPOSITORY_NAME"] == "code-repo"
        assert step.env["REVIEW_REQUIRED"] == "false"
        assert '"BranchName": "trunk"' in step.env["REVIEW_TYPE"]
        assert step.review_required is False
        assert any("create-code-review" in command for command in step.commands)


class TestTrivyScan:
    """Test suite for the Trivy scan step."""

    def test_severity_and_checks_passed_to_trivy(self):
        # When
        step = TrivyScan("TrivyScan", source=code_source(), severity=["CRITICAL", "HIGH"], checks=["vuln", "secret"])

        # Then
        assert step.env["TRIVY_SEVERITY"] == "CRITICAL,HIGH"
        assert step.env["TRIVY_SCANNERS"] == "vuln,secret"
        assert "--exit-code 1" in step.commands[0]

    def test_empty_severity_is_rejected(self):
        with pytest.raises(ValueError, match="severity"):
            TrivyScan("TrivyScan", source=code_source(), severity=[])


class TestLoadTests:
    """Test suite for the post-deployment test steps."""

    def create_endpoint(self):
        app = App()
        stack = Stack(app, "Service", env=Environment(account="111111111111", region="us-west-1"))
        endpoint = CfnOutput(stack, "endpointUrl", value="service.example.com")
        cache_bucket = s3.Bucket(stack, "Cache")
        return endpoint, cache_bucket

    def test_jmeter_parameters_and_endpoint(self):
        # Given
        endpoint, cache_bucket = self.create_endpoint()

        # When
        step = JMeterTest(
            "PerformanceTest",
            source=code_source(),
            endpoint=endpoint,
            cache_bucket=cache_bucket,
            threads=300,
            duration=300,
            throughput=6000,
        )

        # Then
        assert step.env["THREADS"] == "300"
        assert step.env["DURATION"] == "300"
        assert step.env["THROUGHPUT"] == "6000"
        assert "ENDPOINT" in step.env_from_cfn_outputs

    def test_jmeter_rejects_non_positive_load(self):
        # Given
        endpoint, cache_bucket = self.create_endpoint()

        # When/Then
        with pytest.raises(ValueError, match="positive"):
            JMeterTest("PerformanceTest", source=code_source(), endpoint=endpoint, cache_bucket=cache_bucket, threads=0)

    def test_soapui_reads_endpoint_from_stack_output(self):
        # Given
        endpoint, cache_bucket = self.create_endpoint()

        # When
        step = SoapUITest("E2ETest", source=code_source(), endpoint=endpoint, cache_bucket=cache_bucket)

        # Then
        assert "ENDPOINT" in step.env_from_cfn_outputs
        assert "testrunner.sh" in step.commands[0]
