from datetime import timedelta
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from spring_ioc.domain.tags import Value


class AppSettings(BaseModel):
    """Settings the application bootstrap reads from the property store.

    Bound like any user model; every field names its key explicitly so the
    model binds from the root of the store.
    """

    model_config = ConfigDict(frozen=True)

    name: Annotated[str, Value("${spring.application.name:=}")] = Field(
        default="", description="Application name shown in logs"
    )
    profile: Annotated[str, Value("${spring.profiles.active:=}")] = Field(
        default="", description="Active profile, selects application-<profile> files"
    )
    config_locations: Annotated[List[str], Value("${spring.config.locations:=config/}")] = Field(
        default_factory=lambda: ["config/"], description="Directories searched for configuration files"
    )
    config_extensions: Annotated[
        List[str], Value("${spring.config.extensions:=.properties,.prop,.yaml,.yml,.toml,.tml,.json}")
    ] = Field(
        default_factory=lambda: [".properties", ".prop", ".yaml", ".yml", ".toml", ".tml", ".json"],
        description="Configuration file extensions, later ones override earlier ones",
    )
    banner_visible: Annotated[bool, Value("${spring.banner.visible:=true}")] = Field(
        default=True, description="Print the banner on start"
    )
    pid_file: Annotated[str, Value("${spring.pid.file:=}")] = Field(
        default="", description="File receiving the process id, empty to skip"
    )
    shutdown_grace: Annotated[Optional[timedelta], Value("${spring.shutdown.grace}")] = Field(
        default=None, description="Time allowed for background tasks and destroyers on shutdown"
    )

    @property
    def profiles(self) -> List[str]:
        """Active profiles parsed from the comma separated ``profile`` value."""
        return [item.strip() for item in self.profile.split(",") if item.strip()]
