from typing import Dict, List, Optional, Tuple, TypeVar

from iamfetch.core.exceptions import DuplicateResourceError, SnapshotFrozenError
from iamfetch.models.account import Account
from iamfetch.models.resources import (
    BucketPolicy,
    Group,
    IamResource,
    InstanceProfile,
    Policy,
    Role,
    User,
)

R = TypeVar("R", bound=IamResource)


class _ResourceCollection:
    """Insertion-ordered resources of one kind, unique by key."""

    def __init__(self, kind: str):
        self.kind = kind
        self._items: List = []
        self._index: Dict[Tuple[str, ...], object] = {}

    def add(self, key: Tuple[str, ...], item) -> None:
        if key in self._index:
            raise DuplicateResourceError(f"Duplicate {self.kind} {'/'.join(key)}")
        self._index[key] = item
        self._items.append(item)

    def get(self, key: Tuple[str, ...]):
        return self._index.get(key)

    def items(self) -> tuple:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)


class AccountData:
    """
    Snapshot of one account's IAM and bucket policy configuration.

    Built up while a fetch runs, then frozen. Each collection is only ever
    appended to by a single fetch task, so no locking is done here.
    """

    def __init__(self, account: Account):
        self.account = account
        self._users = _ResourceCollection("user")
        self._groups = _ResourceCollection("group")
        self._roles = _ResourceCollection("role")
        self._policies = _ResourceCollection("policy")
        self._instance_profiles = _ResourceCollection("instance profile")
        self._bucket_policies = _ResourceCollection("bucket policy")
        self._frozen = False

    @classmethod
    def from_account_string(cls, account: str) -> "AccountData":
        return cls(Account.parse(account))

    # --- Read accessors ---

    @property
    def users(self) -> Tuple[User, ...]:
        return self._users.items()

    @property
    def groups(self) -> Tuple[Group, ...]:
        return self._groups.items()

    @property
    def roles(self) -> Tuple[Role, ...]:
        return self._roles.items()

    @property
    def policies(self) -> Tuple[Policy, ...]:
        return self._policies.items()

    @property
    def instance_profiles(self) -> Tuple[InstanceProfile, ...]:
        return self._instance_profiles.items()

    @property
    def bucket_policies(self) -> Tuple[BucketPolicy, ...]:
        return self._bucket_policies.items()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    # --- Mutation (fetch only) ---

    def _check_mutable(self) -> None:
        if self._frozen:
            raise SnapshotFrozenError(f"Snapshot for account {self.account} is read-only")

    def _add(self, collection: _ResourceCollection, resource: R) -> None:
        self._check_mutable()
        collection.add((resource.name, resource.path), resource)

    def add_user(self, user: User) -> None:
        self._add(self._users, user)

    def add_group(self, group: Group) -> None:
        self._add(self._groups, group)

    def add_role(self, role: Role) -> None:
        self._add(self._roles, role)

    def add_policy(self, policy: Policy) -> None:
        self._add(self._policies, policy)

    def add_instance_profile(self, profile: InstanceProfile) -> None:
        self._add(self._instance_profiles, profile)

    def add_bucket_policy(self, bucket_policy: BucketPolicy) -> None:
        self._check_mutable()
        self._bucket_policies.add((bucket_policy.bucket_name,), bucket_policy)

    # --- Lookups ---

    @staticmethod
    def _find(collection: _ResourceCollection, *key: str) -> Tuple[bool, Optional[object]]:
        found = collection.get(key)
        return found is not None, found

    def find_user_by_name(self, name: str, path: str) -> Tuple[bool, Optional[User]]:
        return self._find(self._users, name, path)

    def find_group_by_name(self, name: str, path: str) -> Tuple[bool, Optional[Group]]:
        return self._find(self._groups, name, path)

    def find_role_by_name(self, name: str, path: str) -> Tuple[bool, Optional[Role]]:
        return self._find(self._roles, name, path)

    def find_policy_by_name(self, name: str, path: str) -> Tuple[bool, Optional[Policy]]:
        return self._find(self._policies, name, path)

    def find_instance_profile_by_name(self, name: str, path: str) -> Tuple[bool, Optional[InstanceProfile]]:
        return self._find(self._instance_profiles, name, path)

    def find_bucket_policy_by_bucket_name(self, name: str) -> Tuple[bool, Optional[BucketPolicy]]:
        return self._find(self._bucket_policies, name)

    def summary(self) -> Dict[str, int]:
        return {
            "users": len(self._users),
            "groups": len(self._groups),
            "roles": len(self._roles),
            "policies": len(self._policies),
            "instance_profiles": len(self._instance_profiles),
            "bucket_policies": len(self._bucket_policies),
        }
