"""External collaborators — distribution sources, repository transports, JVMs.

Each concern is a ``typing.Protocol`` with default implementations, so the
core engine can be driven by fakes in tests and by real services in
production.
"""

from gradle_republish.providers.distributions import (
    DistributionSource,
    HttpDistributionSource,
    LocalDistributionSource,
)
from gradle_republish.providers.repositories import (
    HttpTransport,
    LocalFileTransport,
    RepositoryTransport,
    TransportError,
)
from gradle_republish.providers.toolchains import (
    JvmInstallation,
    JvmProvisioner,
    LocalJvmProvisioner,
)

__all__ = [
    "DistributionSource",
    "HttpDistributionSource",
    "LocalDistributionSource",
    "RepositoryTransport",
    "LocalFileTransport",
    "HttpTransport",
    "TransportError",
    "JvmInstallation",
    "JvmProvisioner",
    "LocalJvmProvisioner",
]
