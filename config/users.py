"""
Annuaire des utilisateurs de la caisse.

Les identifiants sont en clair et fixés à la configuration: il n'existe pas de
table d'utilisateurs. Un seul compte administrateur, exempté de la session
quotidienne.
"""
import json
from dataclasses import dataclass
from typing import Iterable, List, Optional

from config import settings


@dataclass(frozen=True)
class UserAccount:
    username: str
    password: str
    is_admin: bool = False


DEFAULT_USERS: List[UserAccount] = [
    UserAccount(username="Hamza", password="007H", is_admin=True),
    UserAccount(username="Ahlem", password="123"),
    UserAccount(username="Islem", password="456"),
]


class UserDirectory:
    """
    Liste fixe des comptes autorisés (username -> mot de passe + rôle).
    """

    def __init__(self, accounts: Iterable[UserAccount]):
        self._accounts = {}
        for account in accounts:
            if account.username in self._accounts:
                raise ValueError(f"Utilisateur en double: {account.username}")
            self._accounts[account.username] = account

        admins = [a for a in self._accounts.values() if a.is_admin]
        if len(admins) != 1:
            raise ValueError(
                f"L'annuaire doit contenir exactement un administrateur ({len(admins)} trouvé(s))"
            )
        self._admin = admins[0]

    def authenticate(self, username: str, password: str) -> Optional[UserAccount]:
        account = self._accounts.get(username)
        if account is not None and account.password == password:
            return account
        return None

    def get(self, username: str) -> Optional[UserAccount]:
        return self._accounts.get(username)

    def is_admin(self, username: str) -> bool:
        return username == self._admin.username

    @property
    def admin(self) -> UserAccount:
        return self._admin

    @property
    def usernames(self) -> List[str]:
        return list(self._accounts)


def parse_users(raw: str) -> List[UserAccount]:
    """
    Lit une liste JSON de comptes, ex.:
    [{"username": "Hamza", "password": "007H", "is_admin": true}]
    """
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("APP_USERS doit être une liste JSON")
    return [
        UserAccount(
            username=str(item["username"]),
            password=str(item["password"]),
            is_admin=bool(item.get("is_admin", False)),
        )
        for item in data
    ]


def load_user_directory(raw: Optional[str] = None) -> UserDirectory:
    raw = raw if raw is not None else settings.APP_USERS
    if raw:
        return UserDirectory(parse_users(raw))
    return UserDirectory(DEFAULT_USERS)
