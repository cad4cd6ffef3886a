"""
HashiCorp Vault client for the application's two secrets.

AppRole authentication against a KV v2 mount. Every secret lives under the
'orgdesk/' prefix: the database URL at orgdesk/database (field 'url') and the
access-token signing key at orgdesk/auth (field 'jwt_secret').

Values are read once per process and cached.
"""

import os
import logging
from typing import Dict

import hvac
from hvac.exceptions import InvalidPath, Unauthorized, Forbidden

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "orgdesk"

_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, str] = {}


class VaultError(Exception):
    """Vault unreachable, misconfigured or refusing access. The app cannot start."""


class VaultClient:
    """
    Vault client configured from VAULT_ADDR, VAULT_ROLE_ID, VAULT_SECRET_ID
    and optional VAULT_NAMESPACE.

    Construction authenticates immediately and raises VaultError on any
    missing setting or rejected login.
    """

    def __init__(self, vault_addr: str | None = None, vault_namespace: str | None = None):
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        namespace = vault_namespace or os.getenv("VAULT_NAMESPACE")
        role_id = os.getenv("VAULT_ROLE_ID")
        secret_id = os.getenv("VAULT_SECRET_ID")

        missing = [
            name for name, value in (
                ("VAULT_ADDR", self.vault_addr),
                ("VAULT_ROLE_ID", role_id),
                ("VAULT_SECRET_ID", secret_id),
            ) if not value
        ]
        if missing:
            raise VaultError(f"Missing Vault configuration: {', '.join(missing)}")

        self.client = hvac.Client(url=self.vault_addr, namespace=namespace) if namespace \
            else hvac.Client(url=self.vault_addr)

        try:
            login = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except (Unauthorized, Forbidden) as e:
            raise VaultError(f"AppRole login rejected: {e}") from e
        self.client.token = login["auth"]["client_token"]

        if not self.client.is_authenticated():
            raise VaultError("Vault token not accepted after AppRole login")

        logger.info("Vault client authenticated against %s", self.vault_addr)

    def read_field(self, path: str, field: str) -> str:
        """
        One field of the KV v2 secret at 'orgdesk/<path>'.

        Raises:
            VaultError: Path missing, access denied, or field absent
        """
        full_path = f"{_SECRET_PREFIX}/{path}"

        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath as e:
            raise VaultError(f"Secret '{full_path}' does not exist") from e
        except (Unauthorized, Forbidden) as e:
            logger.error("Access denied reading %s", full_path)
            raise VaultError(f"Access denied to secret '{full_path}'") from e

        data = response["data"]["data"]
        if field not in data:
            raise VaultError(f"Secret '{full_path}' has no field '{field}'")
        return data[field]


def _client() -> VaultClient:
    global _vault_client_instance
    if _vault_client_instance is None:
        _vault_client_instance = VaultClient()
    return _vault_client_instance


def _cached_secret(path: str, field: str) -> str:
    key = f"{path}/{field}"
    if key not in _secret_cache:
        _secret_cache[key] = _client().read_field(path, field)
    return _secret_cache[key]


def clear_secret_cache() -> None:
    """Forget cached secrets and the client, forcing a fresh login on next read."""
    global _vault_client_instance
    _secret_cache.clear()
    _vault_client_instance = None


def get_database_url() -> str:
    """PostgreSQL connection URL."""
    return _cached_secret("database", "url")


def get_jwt_secret() -> str:
    """Key access tokens are signed with."""
    return _cached_secret("auth", "jwt_secret")
