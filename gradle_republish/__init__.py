"""gradle-republish: the Gradle API as ordinary Maven artifacts.

Republishes pieces of a Gradle distribution (API, test kit, wrapper,
launcher, Kotlin DSL, sources) as independently versioned artifacts under
``name.remal.gradle-api``:
  - Version compatibility resolution (JVM level + runtime flags per version)
  - Crash-safe, cached distribution extraction with deterministic jars
  - Idempotent Maven-layout publishing with checksum sidecars and POMs
  - Execution planning against provisioned JVMs
"""

__version__ = "0.1.0"
__description__ = "Republish Gradle distribution APIs as Maven artifacts"

from gradle_republish.core.extractor import DistributionExtractor
from gradle_republish.core.planner import ExecutionPlanner
from gradle_republish.core.publisher import RepositoryPublisher
from gradle_republish.core.republisher import Republisher
from gradle_republish.core.resolver import VersionCompatibilityResolver

__all__ = [
    "VersionCompatibilityResolver",
    "DistributionExtractor",
    "RepositoryPublisher",
    "ExecutionPlanner",
    "Republisher",
    "__version__",
]
