from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]

    cors_origin_regex: str | None = None
    trusted_hosts: list[str] = ["*"]
    root_path: str = ""

    # Supabase
    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str

    things_table: str = "things"
    tags_table: str = "tags"
    profiles_table: str = "profiles"
    legacy_things_table: str = "legacy_things"

    # Attachments and archive exchange
    attachment_dir: str = "/app/data/attachments"
    scratch_dir: str | None = None  # parent of import workspaces, system temp dir when unset
    files_path: str = "/api/v1/files"

    # External link classification
    probe_timeout: float = 20.0
    probe_concurrency: int = 10
    pretty_url_length: int = 40

    # Tag garbage collection (seconds, 0 disables the periodic sweep)
    tag_cleanup_interval: int = 3600

    # Legacy single-tenant data
    legacy_attachment_dir: str = "/app/data/legacy_attachments"
    legacy_export_path: str = "/tmp/old_data_export.tar"
    # User ids allowed to run the migration; empty lets any signed-in user
    migration_admin_ids: list[str] = []


settings = Settings()
