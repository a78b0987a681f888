import pytest

from converge.providers import command

from tests.helpers.commands import FakeCommands


@pytest.fixture
def commands(monkeypatch: pytest.MonkeyPatch) -> FakeCommands:
    fake = FakeCommands()
    monkeypatch.setattr(command, "run", fake)
    return fake
