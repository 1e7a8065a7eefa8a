from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from iamfetch.models.account import Account
from iamfetch.models.policy_document import PolicyDocument


class AwsResource(BaseModel):
    """
    Base for every resource kind in a snapshot.

    Subclasses expose the same four accessors (service, resource type, name
    and path) so that identifiers can be assembled without caring which kind
    of resource is involved. Name and path are never serialized; downstream
    writers encode them in the file layout instead.
    """
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    SERVICE: ClassVar[str] = "iam"
    RESOURCE_TYPE: ClassVar[str] = ""

    @property
    def service(self) -> str:
        return self.SERVICE

    @property
    def resource_type(self) -> str:
        return self.RESOURCE_TYPE

    @property
    def resource_name(self) -> str:
        raise NotImplementedError

    @property
    def resource_path(self) -> str:
        raise NotImplementedError


class IamResource(AwsResource):
    name: str = Field(..., exclude=True)
    path: str = Field("/", exclude=True)

    @property
    def resource_name(self) -> str:
        return self.name

    @property
    def resource_path(self) -> str:
        return self.path


class InlinePolicy(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    name: str
    policy: PolicyDocument


class User(IamResource):
    RESOURCE_TYPE: ClassVar[str] = "user"

    groups: List[str] = Field(default_factory=list)
    inline_policies: List[InlinePolicy] = Field(default_factory=list)
    policies: List[str] = Field(default_factory=list)
    tags: Dict[str, str] = Field(default_factory=dict)


class Group(IamResource):
    RESOURCE_TYPE: ClassVar[str] = "group"

    inline_policies: List[InlinePolicy] = Field(default_factory=list)
    policies: List[str] = Field(default_factory=list)


class Role(IamResource):
    RESOURCE_TYPE: ClassVar[str] = "role"

    description: Optional[str] = None
    assume_role_policy_document: Optional[PolicyDocument] = None
    inline_policies: List[InlinePolicy] = Field(default_factory=list)
    policies: List[str] = Field(default_factory=list)
    max_session_duration: Optional[int] = None


class Policy(IamResource):
    RESOURCE_TYPE: ClassVar[str] = "policy"

    description: Optional[str] = None
    policy: Optional[PolicyDocument] = None
    tags: Dict[str, str] = Field(default_factory=dict)

    # AWS caps stored versions per policy; kept so that callers can prune
    # before pushing a new version. Not part of the serialized form.
    number_of_versions: int = Field(0, exclude=True)
    oldest_version_id: Optional[str] = Field(None, exclude=True)
    nondefault_version_ids: List[str] = Field(default_factory=list, exclude=True)


class InstanceProfile(IamResource):
    RESOURCE_TYPE: ClassVar[str] = "instance-profile"

    roles: List[str] = Field(default_factory=list)


class BucketPolicy(AwsResource):
    SERVICE: ClassVar[str] = "s3"

    bucket_name: str = Field(..., exclude=True)
    policy: PolicyDocument

    @property
    def resource_name(self) -> str:
        return self.bucket_name

    @property
    def resource_path(self) -> str:
        return "/"


def arn(resource: AwsResource, account: Account) -> str:
    """Canonical identifier for a resource in the given account."""
    return account.arn_for(resource.resource_type, resource.resource_path, resource.resource_name)
