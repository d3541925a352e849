from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from infrastructure.lib.config.accounts import Account, Accounts
from infrastructure.lib.config.errors import ConfigurationError

# A wave is a list of region codes deployed in parallel
Wave = Sequence[str]


@dataclass(frozen=True)
class EnvironmentConfig:
    """A named deployment target: one account and an ordered list of waves."""

    name: str
    account: Optional[Account]
    waves: Sequence[Wave] = field(default_factory=list)

    @property
    def account_id(self) -> Optional[str]:
        if self.account is None or not self.account.account_id:
            return None
        return self.account.account_id

    @property
    def regions(self) -> List[str]:
        return [region for wave in self.waves for region in wave]

    def require_account_id(self) -> str:
        if not self.account_id:
            raise ConfigurationError(
                f"Missing accountId for environment '{self.name}'. "
                "Do you need to update '.accounts.env'?"
            )
        return self.account_id

    def validate(self) -> str:
        """Checks the whole environment up front and returns its account id."""
        account_id = self.require_account_id()
        seen = set()
        for i, regions in enumerate(self.waves):
            if not regions:
                raise ConfigurationError(
                    f"Wave {i} of environment '{self.name}' has no regions"
                )
            for region in regions:
                if region in seen:
                    raise ConfigurationError(
                        f"Region '{region}' appears more than once in environment '{self.name}'"
                    )
                seen.add(region)
        return account_id


# Beta is 1 wave with 1 region
BETA_WAVES = [
    ["us-west-1"],
]


def environment_from_accounts(
    accounts: Accounts, name: str, waves: Sequence[Wave]
) -> EnvironmentConfig:
    return EnvironmentConfig(
        name=name,
        account=accounts.get(name),
        waves=[list(wave) for wave in waves],
    )


def beta_environment(accounts: Accounts) -> EnvironmentConfig:
    return environment_from_accounts(accounts, "Beta", BETA_WAVES)
