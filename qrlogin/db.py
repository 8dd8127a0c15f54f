from dataclasses import asdict, dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class User:
    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    is_admin: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class InMemoryDB:
    def __init__(self, users: Optional[Dict[str, User]] = None):
        # user_id -> User
        self.users: Dict[str, User] = dict(users) if users is not None else {
            "alice": User(id="alice", username="alice", email="alice@example.com", first_name="Alice", last_name="Doe", is_admin=True),
            "bob": User(id="bob", username="bob", email="bob@example.com", first_name="Bob", last_name="Smith"),
        }

    def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def add_user(self, user: User) -> None:
        self.users[user.id] = user
