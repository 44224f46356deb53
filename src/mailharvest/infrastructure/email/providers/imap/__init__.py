from mailharvest.infrastructure.email.providers.imap.auth import ImapCredentials, credentials_from_env
from mailharvest.infrastructure.email.providers.imap.client import ImapMailClient

__all__ = ["ImapMailClient", "ImapCredentials", "credentials_from_env"]
