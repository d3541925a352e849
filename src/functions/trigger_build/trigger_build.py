import logging
import os
from typing import Any, Dict

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Starts the image build project named in CODEBUILD_PROJECT_NAME."""
    codebuild = boto3.client("codebuild")
    project_name = os.environ["CODEBUILD_PROJECT_NAME"]

    try:
        response = codebuild.start_build(projectName=project_name)
    except ClientError as e:
        logger.error(f"Failed to start build for {project_name}: {e}")
        raise

    build_id = response["build"]["id"]
    logger.info(f"Started build {build_id}")
    return {"projectName": project_name, "buildId": build_id}
