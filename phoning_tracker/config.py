import os
from dataclasses import dataclass

DEFAULT_DB_PATH = os.path.join(os.path.dirname(__file__), "phoning.db")
STORAGE_KEY = "phoning-restos-v2"


@dataclass
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    db_path: str = DEFAULT_DB_PATH
    remote_table: str = "restaurants"
    auth_redirect_url: str = ""
    cors_allow_origins: str = ""
    port: int = 5050
    log_level: str = "INFO"

    @property
    def remote_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls) -> "Settings":
        try:
            port = int(os.environ.get("PHONING_PORT", "5050"))
        except ValueError:
            port = 5050
        return cls(
            supabase_url=os.environ.get("SUPABASE_URL", ""),
            supabase_key=os.environ.get("SUPABASE_KEY", ""),
            db_path=os.environ.get("PHONING_DB_PATH") or DEFAULT_DB_PATH,
            remote_table=os.environ.get("PHONING_REMOTE_TABLE") or "restaurants",
            auth_redirect_url=os.environ.get("PHONING_AUTH_REDIRECT_URL", ""),
            cors_allow_origins=os.environ.get("CORS_ALLOW_ORIGINS", ""),
            port=port,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
