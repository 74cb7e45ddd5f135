"""Type catalog loaded from collectd's types.db.

Each non-comment line declares one type and its ordered data sources:

    if_octets  rx:DERIVE:0:U, tx:DERIVE:0:U

The catalog is built once at startup and is read-only afterwards, so it
can be shared between tasks without locking.
"""

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

from metricrelay.core.errors import TypesDBError
from metricrelay.core.models import DataSource, DataSourceKind, TypeDefinition

LOG = logging.getLogger(__name__)

_UNBOUNDED = "U"


def _parse_bound(raw: str, source: str, line_no: int) -> float | None:
    if raw == _UNBOUNDED:
        return None
    try:
        return float(raw)
    except ValueError:
        raise TypesDBError(f"invalid bound {raw!r}", source, line_no) from None


def _parse_data_source(spec: str, source: str, line_no: int) -> DataSource:
    """Parse a single ``name:KIND:min:max`` declaration."""
    parts = spec.strip().split(":")
    if len(parts) != 4 or not parts[0]:
        raise TypesDBError(f"invalid data source {spec.strip()!r}", source, line_no)
    name, kind_name, lower, upper = parts
    try:
        kind = DataSourceKind[kind_name.upper()]
    except KeyError:
        raise TypesDBError(
            f"unknown data source kind {kind_name!r}", source, line_no
        ) from None
    return DataSource(
        name=name,
        kind=kind,
        min=_parse_bound(lower, source, line_no),
        max=_parse_bound(upper, source, line_no),
    )


def _parse_line(line: str, source: str, line_no: int) -> TypeDefinition:
    fields = line.split(None, 1)
    if len(fields) != 2:
        raise TypesDBError("type without data sources", source, line_no)
    type_name, rest = fields
    specs = [s for s in rest.split(",") if s.strip()]
    if not specs:
        raise TypesDBError("type without data sources", source, line_no)
    return TypeDefinition(
        name=type_name,
        data_sources=tuple(_parse_data_source(s, source, line_no) for s in specs),
    )


class TypeCatalog:
    """Read-only mapping from a type name to its TypeDefinition.

    Example:
        ```python
        catalog = TypeCatalog.from_file("/usr/share/collectd/types.db")
        catalog.lookup("if_octets").names  # ("rx", "tx")
        ```
    """

    def __init__(self, definitions: Mapping[str, TypeDefinition] | None = None) -> None:
        self._definitions: Mapping[str, TypeDefinition] = MappingProxyType(
            dict(definitions or {})
        )

    @classmethod
    def parse(cls, text: str, source: str = "<string>") -> "TypeCatalog":
        """Build a catalog from types.db content.

        Args:
            text: Content in types.db format.
            source: Name used in error messages.

        Raises:
            TypesDBError: If a line is malformed.
        """
        definitions: dict[str, TypeDefinition] = {}
        for line_no, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            definition = _parse_line(line, source, line_no)
            # later declarations override earlier ones, as collectd does
            definitions[definition.name] = definition
        return cls(definitions)

    @classmethod
    def from_file(cls, path: str | Path) -> "TypeCatalog":
        """Load a catalog from a types.db file.

        Raises:
            TypesDBError: If the file cannot be read or is malformed.
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise TypesDBError(f"cannot read types.db: {exc}", str(path)) from exc
        catalog = cls.parse(text, source=str(path))
        LOG.info("loaded %d types from %s", len(catalog), path)
        return catalog

    def lookup(self, type_name: str) -> TypeDefinition | None:
        """Return the definition for type_name, None if unknown."""
        return self._definitions.get(type_name)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)
