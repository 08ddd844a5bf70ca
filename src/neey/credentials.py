"""API key storage.

Secrets are addressed by opaque service + account identifiers. Loading an
unset secret returns None rather than raising. None of these backends encrypt
anything; hardware-backed secure storage belongs to the host platform.
"""

import os
from abc import ABC, abstractmethod

from .config import API_KEY_ENV_VAR, CREDENTIAL_ACCOUNT, CREDENTIAL_SERVICE
from .storage import KeyValueStore


class CredentialStore(ABC):
    """Abstract named-secret storage."""

    @abstractmethod
    async def save(self, secret: str, service: str, account: str) -> None:
        """Store ``secret`` for service/account, replacing any previous one."""

    @abstractmethod
    async def load(self, service: str, account: str) -> str | None:
        """Return the secret, or None when unset."""

    @abstractmethod
    async def delete(self, service: str, account: str) -> None:
        """Forget the secret; a missing secret is not an error."""


class InMemoryCredentialStore(CredentialStore):
    """Dict-backed secrets, lost on exit."""

    def __init__(self) -> None:
        self._secrets: dict[tuple[str, str], str] = {}

    async def save(self, secret: str, service: str, account: str) -> None:
        self._secrets[(service, account)] = secret

    async def load(self, service: str, account: str) -> str | None:
        return self._secrets.get((service, account))

    async def delete(self, service: str, account: str) -> None:
        self._secrets.pop((service, account), None)


class KeyValueCredentialStore(CredentialStore):
    """Secrets kept as plain values in a key-value store."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    @staticmethod
    def _key(service: str, account: str) -> str:
        return f"credential:{service}:{account}"

    async def save(self, secret: str, service: str, account: str) -> None:
        await self._store.set(self._key(service, account), secret)

    async def load(self, service: str, account: str) -> str | None:
        return await self._store.get(self._key(service, account))

    async def delete(self, service: str, account: str) -> None:
        await self._store.delete(self._key(service, account))


class EnvironmentCredentialStore(CredentialStore):
    """Reads known secrets from environment variables before a fallback store.

    Saves and deletes only touch the fallback; the environment is read-only.
    """

    def __init__(
        self,
        fallback: CredentialStore,
        env_vars: dict[tuple[str, str], str] | None = None,
    ):
        self._fallback = fallback
        self._env_vars = env_vars if env_vars is not None else {
            (CREDENTIAL_SERVICE, CREDENTIAL_ACCOUNT): API_KEY_ENV_VAR,
        }

    async def save(self, secret: str, service: str, account: str) -> None:
        await self._fallback.save(secret, service, account)

    async def load(self, service: str, account: str) -> str | None:
        env_var = self._env_vars.get((service, account))
        if env_var:
            value = os.getenv(env_var)
            if value:
                return value
        return await self._fallback.load(service, account)

    async def delete(self, service: str, account: str) -> None:
        await self._fallback.delete(service, account)
