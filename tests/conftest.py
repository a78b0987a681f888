from typing import Dict, List

import pytest

from converge.core.infra.contracts import ProviderRegistry
from converge.core.resource.registry import ResourceRegistry

from tests.helpers.providers import Call, FakeProvider


@pytest.fixture
def journal() -> List[Call]:
    return []


@pytest.fixture
def fakes(journal: List[Call]) -> Dict[str, FakeProvider]:
    return {
        "group": FakeProvider("group", ("ensure", "gid"), journal),
        "user": FakeProvider("user", ("ensure", "uid", "gid"), journal),
        "directory": FakeProvider("directory", ("ensure", "mode", "owner"), journal),
        "file": FakeProvider("file", ("ensure", "content", "mode"), journal),
        "service": FakeProvider("service", ("ensure", "enable"), journal),
        "package": FakeProvider("package", ("ensure",), journal),
    }


@pytest.fixture
def providers(fakes: Dict[str, FakeProvider]) -> ProviderRegistry:
    return ProviderRegistry(fakes.values())


@pytest.fixture
def registry() -> ResourceRegistry:
    return ResourceRegistry()
