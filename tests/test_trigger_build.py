import pytest
from unittest.mock import patch
from botocore.exceptions import ClientError

from src.functions.trigger_build.trigger_build import handler


@pytest.fixture
def mock_codebuild(monkeypatch):
    """Fixture to provide access to the mocked CodeBuild client"""
    monkeypatch.setenv("CODEBUILD_PROJECT_NAME", "BuildImageProject")
    with patch("src.functions.trigger_build.trigger_build.boto3.client") as mock_client:
        yield mock_client.return_value


def test_trigger_build_starts_project(mock_codebuild):
    # Arrange
    mock_codebuild.start_build.return_value = {"build": {"id": "BuildImageProject:1234"}}

    # Act
    response = handler({}, None)

    # Assert
    mock_codebuild.start_build.assert_called_once_with(projectName="BuildImageProject")
    assert response == {"projectName": "BuildImageProject", "buildId": "BuildImageProject:1234"}


def test_trigger_build_propagates_client_errors(mock_codebuild):
    # Arrange
    mock_codebuild.start_build.side_effect = ClientError(
        {"Error": {"Code": "ResourceNotFoundException", "Message": "Project not found"}},
        "StartBuild",
    )

    # Act / Assert
    with pytest.raises(ClientError):
        handler({}, None)
