from setuptools import setup, find_namespace_packages

setup(
    name="codepipeline-multiregion-deploy",
    version="0.1.0",
    packages=find_namespace_packages(include=["infrastructure", "infrastructure.*"]),
    install_requires=[
        "aws-cdk-lib>=2.100.0",
        "constructs>=10.0.0",
        "jsii>=1.90.0",
        "boto3>=1.26.0",
        "python-dotenv>=1.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0.0"],
    },
    python_requires=">=3.9",
)
