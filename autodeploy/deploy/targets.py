"""Repository to playbook tag resolution."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from autodeploy.errors import UnknownRepository


class TargetResolver:
    """Read-only repository -> tag table, fixed at construction."""

    def __init__(self, targets: Mapping[str, str]) -> None:
        self._targets: Mapping[str, str] = MappingProxyType(dict(targets))

    @property
    def targets(self) -> Mapping[str, str]:
        return self._targets

    def resolve(self, repository: str) -> str:
        try:
            return self._targets[repository]
        except KeyError:
            raise UnknownRepository(
                f"{repository} is not set up for automated deployment"
            ) from None

    def __contains__(self, repository: object) -> bool:
        return repository in self._targets

    def __len__(self) -> int:
        return len(self._targets)
