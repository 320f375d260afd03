"""Data types for the users table."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class NewUser:
    """A user record that has not been persisted yet."""
    name: str
    email: str
    address: str


@dataclass(frozen=True)
class User:
    """A persisted row of the users table."""
    id: int
    name: str
    email: str
    address: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "User":
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            address=row["address"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UserSummary:
    """The id and name pair used when enumerating profile resources."""
    id: int
    name: str

    @property
    def uri(self) -> str:
        return f"user://{self.id}/profile"

    @property
    def label(self) -> str:
        return f"User {self.id} - {self.name}"
