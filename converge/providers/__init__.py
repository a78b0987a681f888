"""
Providers concretos: adaptadores entre el core y el sistema operativo.

Implementan el contrato de converge.core.infra (read_state/apply_state/refresh).
"""

from typing import Optional

from converge.core.infra.contracts import ProviderRegistry
from converge.core.runtime.facts import Facts
from converge.providers.accounts import GroupProvider, UserProvider
from converge.providers.files import DirectoryProvider, FileProvider, SymlinkProvider
from converge.providers.package import PackageProvider
from converge.providers.selinux import SelbooleanProvider
from converge.providers.service import ServiceProvider
from converge.providers.sync import SyncProvider


def default_providers(facts: Optional[Facts] = None) -> ProviderRegistry:
    """Registro con un provider por cada tipo de recurso soportado."""
    return ProviderRegistry([
        FileProvider(),
        DirectoryProvider(),
        SymlinkProvider(),
        GroupProvider(),
        UserProvider(),
        ServiceProvider(),
        PackageProvider(facts),
        SelbooleanProvider(),
        SyncProvider(),
    ])


__all__ = [
    "DirectoryProvider",
    "FileProvider",
    "GroupProvider",
    "PackageProvider",
    "SelbooleanProvider",
    "ServiceProvider",
    "SymlinkProvider",
    "SyncProvider",
    "UserProvider",
    "default_providers",
]
