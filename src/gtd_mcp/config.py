"""Configuration module for gtdmcp.

Loads process configuration from environment variables with sensible defaults.
Bucket definitions live in a separate settings file (see gtd_mcp.settings).
"""

import os
from dataclasses import dataclass
from pathlib import Path

TRUE_VALUES = ("1", "true", "yes")


@dataclass
class Config:
    """Application configuration."""

    vault_root: Path
    settings_path: Path
    port: int
    auth_token: str | None
    read_only: bool
    sync_interval: int  # Seconds between vault polls, 0 disables

    @classmethod
    def from_env(cls, read_only_override: bool | None = None) -> "Config":
        """Load configuration from environment variables.

        Args:
            read_only_override: If provided, overrides the GTD_READ_ONLY env var.
        """
        default_root = str(Path.home() / "vault")
        vault_root = Path(os.getenv("GTD_VAULT_ROOT", default_root)).expanduser()

        default_settings = str(vault_root / ".gtd" / "settings.yaml")
        settings_path = Path(os.getenv("GTD_SETTINGS", default_settings)).expanduser()

        port_str = os.getenv("GTD_PORT", "8080")
        try:
            port = int(port_str)
            if not 1 <= port <= 65535:
                raise ValueError(f"Port must be between 1 and 65535, got {port}")
        except ValueError as e:
            raise ValueError(f"Invalid GTD_PORT value '{port_str}': {e}") from e

        # Auth token - must be at least 32 characters if set
        auth_token = os.getenv("GTD_AUTH_TOKEN")
        if auth_token is not None and len(auth_token) < 32:
            raise ValueError("GTD_AUTH_TOKEN must be at least 32 characters for security")

        # Read-only mode - CLI flag takes precedence over env var
        if read_only_override is not None:
            read_only = read_only_override
        else:
            read_only = os.getenv("GTD_READ_ONLY", "").lower() in TRUE_VALUES

        interval_str = os.getenv("GTD_SYNC_INTERVAL", "5")
        try:
            sync_interval = int(interval_str)
            if sync_interval < 0:
                raise ValueError(f"Sync interval must be >= 0, got {sync_interval}")
        except ValueError as e:
            raise ValueError(f"Invalid GTD_SYNC_INTERVAL value '{interval_str}': {e}") from e

        return cls(
            vault_root=vault_root,
            settings_path=settings_path,
            port=port,
            auth_token=auth_token,
            read_only=read_only,
            sync_interval=sync_interval,
        )
