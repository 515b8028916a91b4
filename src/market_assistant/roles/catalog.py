"""Read-only catalog of analyst roles.

The catalog is populated once at startup, either from the built-in
:data:`~market_assistant.roles.definitions.DEFAULT_ROLE_DEFINITIONS` table or
from a JSON file, and exposes no mutation API.  It is the only process-wide
shared state of the core, so concurrent pipelines may share one instance.

Usage::

    catalog = default_catalog()
    role = catalog.get("selection_analyst")
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from market_assistant.domain.exceptions import UnknownRoleError
from market_assistant.domain.schemas import OUTPUT_SCHEMAS
from market_assistant.domain.values import AnalystRole, SamplingParams
from market_assistant.roles.definitions import DEFAULT_ROLE_DEFINITIONS, RoleDefinition

logger = logging.getLogger(__name__)


def build_role(definition: RoleDefinition) -> AnalystRole:
    """Turn a :class:`RoleDefinition` into an immutable :class:`AnalystRole`.

    Raises
    ------
    ValueError
        If the definition references an unknown output schema or carries
        out-of-range sampling parameters.
    """
    schema = None
    if definition.output_schema:
        schema = OUTPUT_SCHEMAS.get(definition.output_schema)
        if schema is None:
            raise ValueError(
                f"Role {definition.name!r} references unknown output schema "
                f"{definition.output_schema!r}; known: {', '.join(sorted(OUTPUT_SCHEMAS))}"
            )
    sampling = SamplingParams(
        temperature=definition.temperature,
        top_p=definition.top_p,
        top_k=definition.top_k,
        max_output_tokens=definition.max_output_tokens,
    )
    return AnalystRole(
        name=definition.name,
        instructions=definition.instructions,
        sampling=sampling,
        output_schema=schema,
        description=definition.description,
    )


class AnalystRoleCatalog(Mapping[str, AnalystRole]):
    """Immutable ``name -> AnalystRole`` map.

    Parameters
    ----------
    roles:
        Roles to register.  Names must be unique.

    Raises
    ------
    ValueError
        If two roles share a name.
    """

    def __init__(self, roles: Iterable[AnalystRole]) -> None:
        table: dict[str, AnalystRole] = {}
        for role in roles:
            if role.name in table:
                raise ValueError(f"Duplicate analyst role name {role.name!r}")
            table[role.name] = role
        self._roles: Mapping[str, AnalystRole] = MappingProxyType(table)
        logger.debug("AnalystRoleCatalog: %d roles registered", len(table))

    @classmethod
    def from_definitions(cls, definitions: Iterable[RoleDefinition]) -> AnalystRoleCatalog:
        return cls(build_role(d) for d in definitions)

    # -- lookup ---------------------------------------------------------------

    def get(self, name: str) -> AnalystRole:  # type: ignore[override]
        """Return the role named *name*.

        Unlike :meth:`dict.get` there is no default: an unknown name is a
        programmer error.

        Raises
        ------
        UnknownRoleError
            If *name* is not registered.
        """
        try:
            return self._roles[name]
        except KeyError:
            raise UnknownRoleError(name, self.names()) from None

    def all(self) -> list[AnalystRole]:
        """All roles, in registration order."""
        return list(self._roles.values())

    def names(self) -> tuple[str, ...]:
        return tuple(self._roles)

    # -- Mapping protocol -----------------------------------------------------

    def __getitem__(self, name: str) -> AnalystRole:
        return self.get(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._roles)

    def __len__(self) -> int:
        return len(self._roles)

    def __contains__(self, name: object) -> bool:
        return name in self._roles

    def __repr__(self) -> str:
        return f"AnalystRoleCatalog({', '.join(self._roles)})"


def load_role_definitions(path: str | Path) -> list[RoleDefinition]:
    """Read role definitions from a JSON file.

    The file holds either a list of role objects or ``{"roles": [...]}``.
    Each object uses the :class:`RoleDefinition` field names; output schemas
    are referenced by name (``"StockCriteria"``, ``"SelectionResult"``,
    ``"CoordinatorResult"``).
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, dict):
        data = data.get("roles", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of role definitions")
    definitions = [RoleDefinition.from_dict(item) for item in data]
    logger.info("Loaded %d role definitions from %s", len(definitions), path)
    return definitions


@lru_cache(maxsize=1)
def default_catalog() -> AnalystRoleCatalog:
    """Process-wide catalog built from the built-in role table."""
    return AnalystRoleCatalog.from_definitions(DEFAULT_ROLE_DEFINITIONS)
