from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Hosting Control Panel"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Filesystem layout; plugins live in <gui_root_dir>/plugins
    gui_root_dir: Path = Path(".")
    templates_dir: Path = Path(__file__).parent / "templates"
    plugins_config_file: Path = Path("data/plugins_config.json")
    plugins_enabled_by_default: bool = False

    # Admin access
    admin_api_key: str = ""
    admin_name: str = "admin"

    # Login page
    maintenance_mode: bool = False
    maintenance_message: str | None = None
    lost_password: bool = True
    panel_ssl_enabled: bool = False
    base_server_vhost_prefix: str = "http://"
    base_server_vhost_http_port: int = 80
    base_server_vhost_https_port: int = 443

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PANEL_",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def plugins_dir(self) -> Path:
        return self.gui_root_dir / "plugins"


@lru_cache
def get_settings() -> Settings:
    return Settings()
