"""Role vocabulary shared by the action policy and the persistence layer."""

from enum import Enum


class Role(str, Enum):
    """Acting role. Numeric ids match the stored user.role column."""

    ADMIN = "admin"
    OWNER = "owner"
    STAFF = "staff"
    USER = "user"

    @classmethod
    def from_id(cls, role_id: int) -> "Role":
        for role, value in _ROLE_IDS.items():
            if value == role_id:
                return role
        raise ValueError(f"Unknown role id: {role_id}")

    @classmethod
    def parse(cls, value: "str | int | Role | None") -> "Role":
        """
        Resolve a role from a name, a numeric id, or a numeric string.

        Anything that cannot be resolved falls back to USER, the least
        privileged role.
        """
        if isinstance(value, Role):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls.from_id(value)
            except ValueError:
                return cls.USER
        if isinstance(value, str):
            text = value.strip().lower()
            if text.isdigit():
                return cls.parse(int(text))
            try:
                return cls(text)
            except ValueError:
                return cls.USER
        return cls.USER


_ROLE_IDS = {
    Role.ADMIN: 0,
    Role.OWNER: 1,
    Role.STAFF: 2,
    Role.USER: 3,
}
