"""Configuration schema using Pydantic.

Single data model and defaults for a moodlekit client, persisted to ~/.moodlekit/config.json.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SiteConfig(BaseModel):
    """The Moodle site being talked to (mirrors M.cfg in the browser)."""
    wwwroot: str = "http://localhost"
    sesskey: str = ""
    theme: str = "boost"
    themerev: int = -1  # -1 disables theme image caching server-side
    slasharguments: bool = True
    lang: str = "en"

    def public_globals(self) -> dict[str, object]:
        """Values exposed to templates as globals.config."""
        return {
            "wwwroot": self.wwwroot.rstrip("/"),
            "sesskey": self.sesskey,
            "theme": self.theme,
            "themerev": self.themerev,
            "slasharguments": 1 if self.slasharguments else 0,
            "lang": self.lang,
        }


class AjaxConfig(BaseModel):
    """Batched AJAX endpoint configuration."""
    service_path: str = "/lib/ajax/service.php"
    nologin_service_path: str = "/lib/ajax/service-nologin.php"
    timeout_seconds: float = 30.0
    session_cookie_name: str = "MoodleSession"
    session_cookie: str = ""  # Value of the session cookie (optional)


class SessionConfig(BaseModel):
    """Session keepalive configuration."""
    session_timeout: int = 7200  # Server $CFG->sessiontimeout, seconds
    keepalive_frequency: int = 0  # Seconds between touches; 0 selects check mode
    warning_floor_seconds: int = 900


class TemplatesConfig(BaseModel):
    """Template renderer configuration."""
    icon_template: str = "core/pix_icon"
    icon_class: str = "smallicon"


class StringsConfig(BaseModel):
    """String resolver configuration."""
    send_params: bool = False  # Forward {{#str}} params as stringparams on the wire
    cache: bool = True


class Config(BaseSettings):
    """Root configuration for moodlekit."""
    site: SiteConfig = Field(default_factory=SiteConfig)
    ajax: AjaxConfig = Field(default_factory=AjaxConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)
    strings: StringsConfig = Field(default_factory=StringsConfig)

    @property
    def service_url(self) -> str:
        """Absolute URL of the batched AJAX endpoint."""
        return f"{self.site.wwwroot.rstrip('/')}{self.ajax.service_path}"

    model_config = SettingsConfigDict(
        env_prefix="MOODLEKIT_",
        env_nested_delimiter="__",
    )
