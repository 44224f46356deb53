from __future__ import annotations

import imaplib
import os
import re
from dataclasses import dataclass

DEFAULT_IMAP_PORT = 993


@dataclass(frozen=True)
class ImapCredentials:
    """
    Represents credentials for a single mailbox owner.
    """
    login: str
    password: str


class ImapAuthenticator:
    """
    Responsible ONLY for establishing an authenticated IMAP connection.
    No folder logic, no fetching, no parsing.
    """

    def __init__(
        self,
        creds: ImapCredentials,
        host: str,
        port: int = DEFAULT_IMAP_PORT,
        timeout: float | None = None,
    ) -> None:
        self.creds = creds
        self.host = host
        self.port = port
        self.timeout = timeout

    def login(self) -> imaplib.IMAP4_SSL:
        """
        Returns an authenticated IMAP4_SSL connection.
        """
        conn = imaplib.IMAP4_SSL(host=self.host, port=self.port, timeout=self.timeout)
        conn.login(self.creds.login, self.creds.password)
        return conn


def _env_name(owner: str) -> str:
    """agents@example.com -> AGENTS"""
    local = owner.split("@")[0]
    return re.sub(r"[^A-Za-z0-9]", "_", local).upper()


def credentials_from_env(owner: str) -> ImapCredentials:
    """
    Look up the password of ``owner`` in the environment:

       IMAP_<NAME>_PASSWORD=xxx   # NAME is the upper-cased local part
       IMAP_<NAME>_LOGIN=...      # Optional, defaults to the owner
       IMAP_PASSWORD=xxx          # Fallback shared by all owners
    """
    name = _env_name(owner)
    password = os.getenv(f"IMAP_{name}_PASSWORD") or os.getenv("IMAP_PASSWORD")
    if not password:
        raise KeyError(f"No IMAP password for {owner} (set IMAP_{name}_PASSWORD or IMAP_PASSWORD)")
    login = os.getenv(f"IMAP_{name}_LOGIN", owner)
    return ImapCredentials(login=login, password=password)
