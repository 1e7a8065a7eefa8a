import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from iamfetch.core.exceptions import AccountParseError

ACCOUNT_STRING_PATTERN = re.compile(r"(([\w-]+)-)?(\d+)", re.ASCII)


class Account(BaseModel):
    """An AWS account id and its optional alias, rendered as 'alias-id' or 'id'."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(pattern=r"^[0-9]+$")
    alias: Optional[str] = None

    @classmethod
    def parse(cls, s: str) -> "Account":
        """Parse '<alias>-<digits>' or '<digits>'. The alias is everything before the final '-digits'."""
        match = ACCOUNT_STRING_PATTERN.fullmatch(s or "")
        if not match:
            raise AccountParseError(f"Can't create account name from {s!r}")
        return cls(id=match.group(3), alias=match.group(2) or None)

    def render(self) -> str:
        if self.alias:
            return f"{self.alias}-{self.id}"
        return self.id

    def __str__(self) -> str:
        return self.render()

    @property
    def policy_arn_prefix(self) -> str:
        return f"arn:aws:iam::{self.id}:policy/"

    def arn_for(self, key: str, path: str, name: str) -> str:
        return f"arn:aws:iam::{self.id}:{key}{path}{name}"

    def policy_arn_from_string(self, name_or_arn: str) -> str:
        """Expand a bare policy name to this account's policy ARN. Full ARNs are returned as-is."""
        if name_or_arn.startswith("arn:"):
            return name_or_arn
        return f"{self.policy_arn_prefix}{name_or_arn}"

    def normalise_policy_arn(self, arn: str) -> str:
        """Strip this account's policy ARN prefix. AWS managed and cross-account ARNs are kept whole."""
        if arn.startswith(self.policy_arn_prefix):
            return arn[len(self.policy_arn_prefix):]
        return arn
