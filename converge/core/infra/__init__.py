"""
Contratos y base para providers de capacidad.

Los providers (file, service, user, package, selboolean, sync) implementan estos
contratos; el core no depende de ningún provider concreto.
"""

from converge.core.infra.base import BaseProvider
from converge.core.infra.contracts import ProviderContract, ProviderRegistry

__all__ = ["BaseProvider", "ProviderContract", "ProviderRegistry"]
