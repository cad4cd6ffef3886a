# Infrastructure clients
from clients.vault_client import (
    VaultClient,
    VaultError,
    clear_secret_cache,
    get_database_url,
    get_jwt_secret,
)
from clients.postgres_client import PostgresClient, Transaction
