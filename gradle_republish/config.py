"""Runtime configuration — env-driven settings.

Reads from a .env file and GRADLE_REPUBLISH_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from gradle_republish.core.layout import PUBLISH_GROUP
from gradle_republish.providers.distributions import DEFAULT_BASE_URL, DEFAULT_SNAPSHOT_BASE_URL


class RepublishConfig(BaseSettings):
    """Configuration with environment variable overrides.

    All settings can be overridden via GRADLE_REPUBLISH_* environment
    variables or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export GRADLE_REPUBLISH_LOG_LEVEL=DEBUG
        export GRADLE_REPUBLISH_CACHE_DIR=/var/cache/gradle-republish
        export GRADLE_REPUBLISH_REPOSITORY_URL=https://repo.example.com/releases

    Or via .env file::

        GRADLE_REPUBLISH_PUBLISH_WORKERS=8
        GRADLE_REPUBLISH_JDK_HOMES='["/opt/jdk-8", "/opt/jdk-18"]'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GRADLE_REPUBLISH_",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"

    # Storage paths
    cache_dir: Path = Path(".gradle-republish/cache")
    local_repository: Path = Path(".gradle-republish/repository")

    # Distribution source
    distribution_base_url: str = DEFAULT_BASE_URL
    snapshot_distribution_base_url: str = DEFAULT_SNAPSHOT_BASE_URL
    distribution_type: str = "bin"
    request_timeout_seconds: float = 60.0
    # Negative waits indefinitely for another process extracting the same version
    extraction_lock_timeout_seconds: float = -1

    # Publishing
    publish_workers: int = 4
    publish_group: str = PUBLISH_GROUP
    license_name: str = "Apache License, Version 2.0"
    license_url: str = "https://www.apache.org/licenses/LICENSE-2.0.txt"
    repository_url: str = ""
    repository_username: str = ""
    repository_password: SecretStr = SecretStr("")
    properties_file: Path = Path.home() / ".gradle" / "gradle.properties"

    # Toolchains
    jdk_homes: list[Path] = []

    @property
    def default_repository(self) -> str:
        """Remote URL if configured, otherwise the local repository path."""
        return self.repository_url or str(self.local_repository)


# Module-level singleton — import as `from gradle_republish.config import config`
config = RepublishConfig()
