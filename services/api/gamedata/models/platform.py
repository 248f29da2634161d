"""Global platform directory record (RAWG platform id lookup)."""

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from gamedata.models.game import PlatformInfo

PLATFORM_CACHE_VERSION = "v1"
PLATFORM_DIRECTORY_KEY = f"rawg:platforms:{PLATFORM_CACHE_VERSION}"


class PlatformDirectoryRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str = PLATFORM_CACHE_VERSION
    fetched_at: AwareDatetime = Field(alias="fetchedAt")
    expires_at: AwareDatetime = Field(alias="expiresAt")
    platforms: list[PlatformInfo]
