"""
Endpoint Catalog

Read-only database of Midas Pro Series OSC endpoints, loaded once from the
bundled JSON tables (general controls and internal FX parameters).
"""

import json
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .config import DATA_DIR
from .errors import DataLoadError

MAIN_TABLE = "pro-series-endpoints.json"
FX_TABLE = "pro-series-internal-fx-parameters-endpoints.json"

# Marker used in the reverse-engineered data for undocumented endpoints
UNDOCUMENTED = "(unknown)"


class MessageType(str, Enum):
    FADER = "enPPCFaderMessage"
    ROTARY = "enPPCRotaryMessage"
    SWITCH = "enPPCSwitchMessage"
    STRING = "enPPCStringMessage"
    METER = "enPPCMeterMessage"
    OTHER = "enPPCOtherMessage"

    @property
    def short_name(self) -> str:
        """Display name without the ``enPPC``/``Message`` decoration."""
        return self.value.replace("enPPC", "").replace("Message", "")


class ArgumentType(str, Enum):
    FLOAT = "float"
    INTEGER = "integer"
    STRING = "string"


class EndpointSpec(BaseModel):
    """Specification of one addressable console parameter."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    multi_path: bool = Field(alias="multiPath")
    type: MessageType
    argument_type: Optional[ArgumentType] = Field(alias="argumentType")
    description: str = ""
    is_absolute: Optional[bool] = Field(default=None, alias="isAbsolute")

    @property
    def read_only(self) -> bool:
        return self.argument_type is None

    @property
    def documented(self) -> bool:
        return bool(self.description) and UNDOCUMENTED not in self.description


EndpointTable = Dict[str, Dict[str, EndpointSpec]]

_table_adapter = TypeAdapter(EndpointTable)


class GroupInfo(BaseModel):
    name: str
    endpoint_count: int
    message_types: Dict[str, int]


class EndpointEntry(BaseModel):
    endpoint: str
    spec: EndpointSpec


class SearchResult(BaseModel):
    group: str
    endpoint: str
    spec: EndpointSpec
    osc_path: str


class CatalogStats(BaseModel):
    total_groups: int
    total_endpoints: int
    documented_endpoints: int
    by_message_type: Dict[str, int]


def load_table(path: Path) -> EndpointTable:
    """
    Load and validate one endpoint table.

    Args:
        path: JSON file shaped as group -> endpoint -> spec

    Returns:
        Validated table, in file order

    Raises:
        DataLoadError: If the file is missing, not JSON, or not a valid table
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise DataLoadError(f"Endpoint table not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise DataLoadError(f"Could not read endpoint table {path}: {e}") from e

    try:
        table = _table_adapter.validate_python(raw)
    except ValidationError as e:
        raise DataLoadError(
            f"Malformed endpoint table {path}: {e.error_count()} validation errors"
        ) from e

    logger.info(f"Loaded {sum(len(g) for g in table.values())} endpoints from {path.name}")
    return table


class EndpointCatalog:
    """
    Merged, read-only view over the endpoint tables.

    Build once at startup with ``EndpointCatalog.load()`` and pass the
    instance to whatever needs it.

    Example:
        catalog = EndpointCatalog.load()
        catalog.build_path("VirtualMicInputs", "enFader", 2)
        # -> "/enPPCFaderMessage/VirtualMicInputs/enFader/2"
    """

    def __init__(self, *tables: EndpointTable):
        """
        Merge tables in order. A group present in more than one table is
        taken from the last one.
        """
        self._groups: EndpointTable = {}
        for table in tables:
            for group, endpoints in table.items():
                if group in self._groups:
                    logger.warning(
                        f"Group '{group}' defined in more than one table, keeping the last one"
                    )
                self._groups[group] = dict(endpoints)

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> "EndpointCatalog":
        """
        Load the main and FX tables from ``data_dir``.

        Raises:
            DataLoadError: If either table is missing or malformed
        """
        data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
        main = load_table(data_dir / MAIN_TABLE)
        fx = load_table(data_dir / FX_TABLE)
        catalog = cls(main, fx)
        logger.info(
            f"Endpoint catalog ready: {len(catalog._groups)} groups from {data_dir}"
        )
        return catalog

    def group_names(self) -> List[str]:
        return list(self._groups)

    def list_groups(self) -> List[GroupInfo]:
        groups = []
        for name, endpoints in self._groups.items():
            message_types: Dict[str, int] = {}
            for spec in endpoints.values():
                message_types[spec.type.value] = message_types.get(spec.type.value, 0) + 1
            groups.append(
                GroupInfo(name=name, endpoint_count=len(endpoints), message_types=message_types)
            )
        return groups

    def list_endpoints(self, group: str) -> Optional[List[EndpointEntry]]:
        endpoints = self._groups.get(group)
        if endpoints is None:
            return None
        return [EndpointEntry(endpoint=name, spec=spec) for name, spec in endpoints.items()]

    def get_endpoint_info(self, group: str, endpoint: str) -> Optional[EndpointSpec]:
        return self._groups.get(group, {}).get(endpoint)

    def build_path(
        self, group: str, endpoint: str, index: Optional[int] = None
    ) -> Optional[str]:
        """
        Build the OSC address for an endpoint.

        The index suffix is appended only for multi-path endpoints. A
        multi-path endpoint built without an index gets no suffix; callers
        that need an instance must check ``multi_path`` themselves.

        Returns:
            ``/{type}/{group}/{endpoint}[/{index}]``, or None if unknown
        """
        spec = self.get_endpoint_info(group, endpoint)
        if spec is None:
            return None

        path = f"/{spec.type.value}/{group}/{endpoint}"
        if spec.multi_path and index is not None:
            path += f"/{index}"
        return path

    def search(
        self,
        query: str,
        group: Optional[str] = None,
        message_type: Optional[MessageType] = None,
    ) -> List[SearchResult]:
        """
        Keyword search over group, endpoint name, description and type.

        Every whitespace-separated term must appear (case-insensitive
        substring). Results come back in catalog order.
        """
        terms = query.lower().split()
        if message_type is not None:
            message_type = MessageType(message_type)
        results = []

        for group_name, endpoints in self._groups.items():
            if group is not None and group_name != group:
                continue

            for endpoint_name, spec in endpoints.items():
                if message_type is not None and spec.type != message_type:
                    continue

                searchable = " ".join(
                    [group_name, endpoint_name, spec.description, spec.type.value]
                ).lower()

                if all(term in searchable for term in terms):
                    results.append(
                        SearchResult(
                            group=group_name,
                            endpoint=endpoint_name,
                            spec=spec,
                            osc_path=f"/{spec.type.value}/{group_name}/{endpoint_name}",
                        )
                    )

        logger.debug(f"Search '{query}' matched {len(results)} endpoints")
        return results

    def get_stats(self) -> CatalogStats:
        total = 0
        documented = 0
        by_type: Dict[str, int] = {}

        for endpoints in self._groups.values():
            for spec in endpoints.values():
                total += 1
                by_type[spec.type.value] = by_type.get(spec.type.value, 0) + 1
                if spec.documented:
                    documented += 1

        return CatalogStats(
            total_groups=len(self._groups),
            total_endpoints=total,
            documented_endpoints=documented,
            by_message_type=by_type,
        )
