from constructs import Construct


class ConfigurationError(ValueError):
    """Raised at synthesis time when a required setting is missing."""


def require_context(scope: Construct, key: str):
    value = scope.node.try_get_context(key)
    if value is None or value == "":
        raise ConfigurationError(
            f"Missing required context value '{key}'. Pass it with `cdk synth -c {key}=...` or set it in cdk.json"
        )
    return value
