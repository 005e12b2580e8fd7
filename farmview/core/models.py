"""Farm, block and history entities mapped to hosted table rows.

Attribute names are English; the hosted schema keeps its Portuguese column
names. Every entity owns a ``COLUMNS`` table translating one into the other.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar

from loguru import logger

DEFAULT_BLOCK_COLOR = "#10B981"
DEFAULT_TRANSPARENCY = 0.4


def parse_coordinates(raw: Any) -> list[list[float]]:
    """Parse stored block coordinates into an open lon/lat ring.

    Parameters
    ----------
    raw : Any
        List of ``[lon, lat]`` pairs or the same list serialized as JSON text.

    Returns
    -------
    list[list[float]]
        Vertex list without the repeated closing vertex.

    Raises
    ------
    ValueError
        Raised when the payload is not a list of numeric pairs.
    """
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Coordinates are not valid JSON: {exc}") from exc
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"Coordinates must be a list, got {type(raw).__name__}")

    coords = []
    for item in raw:
        if not isinstance(item, (list, tuple)) or len(item) < 2:
            raise ValueError(f"Invalid vertex: {item!r}")
        try:
            coords.append([float(item[0]), float(item[1])])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid vertex: {item!r}") from exc

    if len(coords) > 1 and coords[0] == coords[-1]:
        coords.pop()
    return coords


class _RowModel:
    """Column mapping shared by all hosted-table entities."""

    COLUMNS: ClassVar[dict[str, str]] = {}
    SERVER_FIELDS: ClassVar[tuple[str, ...]] = ("id", "created_at", "updated_at")

    @classmethod
    def columns_for(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Translate attribute-keyed values into a column-keyed payload.

        Keys without a column are dropped.
        """
        payload = {}
        for key, value in values.items():
            column = cls.COLUMNS.get(key)
            if column is None:
                logger.debug(f"{cls.__name__}: no column for '{key}', skipped")
                continue
            payload[column] = cls._encode(key, value)
        return payload

    @classmethod
    def _encode(cls, key: str, value: Any) -> Any:
        return value

    @classmethod
    def _decode(cls, key: str, value: Any) -> Any:
        return value

    @classmethod
    def from_row(cls, row: dict[str, Any]):
        """Build the entity from one hosted-table row."""
        kwargs = {}
        for attr, column in cls.COLUMNS.items():
            if column in row:
                kwargs[attr] = cls._decode(attr, row[column])
        return cls(**kwargs)

    def to_row(self, include_server_fields: bool = False) -> dict[str, Any]:
        """Serialize to a column-keyed row.

        Parameters
        ----------
        include_server_fields : bool, optional
            Keep ``id`` and timestamps, which the backend normally assigns.
        """
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        if not include_server_fields:
            for name in self.SERVER_FIELDS:
                values.pop(name, None)
        return self.columns_for(values)


@dataclass
class Farm(_RowModel):
    """Top-level property owning zero or more blocks."""

    COLUMNS: ClassVar[dict[str, str]] = {
        "id": "id",
        "name": "nome",
        "location": "localizacao",
        "total_area": "area_total",
        "cane_variety": "tipo_cana",
        "postal_code": "cep",
        "farm_number": "numero_fazenda",
        "latitude": "latitude",
        "longitude": "longitude",
        "client_id": "cliente_id",
        "created_at": "criado_em",
        "updated_at": "atualizado_em",
    }

    name: str = ""
    id: str | None = None
    location: str | None = None
    total_area: float | None = None
    cane_variety: str | None = None
    postal_code: str | None = None
    farm_number: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    client_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def display_name(self) -> str:
        if self.location:
            return f"{self.name} - {self.location}"
        return self.name


@dataclass
class LastApplication:
    """Most recent product application recorded on a block."""

    product: str
    liters: float = 0.0
    value: float = 0.0
    date: str | None = None

    @classmethod
    def from_json(cls, raw: Any) -> "LastApplication | None":
        if raw is None:
            return None
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Unreadable last application payload: {raw!r}")
                return None
        if not isinstance(raw, dict) or not raw.get("produto"):
            return None
        return cls(
            product=str(raw["produto"]),
            liters=float(raw.get("litros") or 0.0),
            value=float(raw.get("valor") or 0.0),
            date=raw.get("data") or None,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "produto": self.product,
            "litros": self.liters,
            "valor": self.value,
            "data": self.date,
        }


@dataclass
class Block(_RowModel):
    """Mapped field subdivision with agronomic metadata."""

    COLUMNS: ClassVar[dict[str, str]] = {
        "id": "id",
        "farm_id": "fazenda_id",
        "name": "nome",
        "color": "cor",
        "transparency": "transparencia",
        "coordinates": "coordenadas",
        "area_m2": "area_m2",
        "area_acres": "area_acres",
        "perimeter": "perimetro",
        "planting_date": "data_plantio",
        "cane_variety": "tipo_cana",
        "next_application": "proxima_aplicacao",
        "next_harvest": "proxima_colheita",
        "has_drain": "possui_dreno",
        "last_application": "ultima_aplicacao",
        "ndvi_history": "ndvi_historico",
        "created_at": "criado_em",
        "updated_at": "atualizado_em",
    }

    name: str = ""
    id: str | None = None
    farm_id: str | None = None
    color: str = DEFAULT_BLOCK_COLOR
    transparency: float = DEFAULT_TRANSPARENCY
    coordinates: list[list[float]] = field(default_factory=list)
    area_m2: float | None = None
    area_acres: float | None = None
    perimeter: float | None = None
    planting_date: str | None = None
    cane_variety: str | None = None
    next_application: str | None = None
    next_harvest: str | None = None
    has_drain: bool = False
    last_application: LastApplication | None = None
    ndvi_history: list = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def _encode(cls, key: str, value: Any) -> Any:
        if key == "last_application" and isinstance(value, LastApplication):
            return value.to_json()
        if key == "coordinates" and value is not None:
            return [[float(lon), float(lat)] for lon, lat in value]
        return value

    @classmethod
    def _decode(cls, key: str, value: Any) -> Any:
        if key == "coordinates":
            try:
                return parse_coordinates(value)
            except ValueError as exc:
                logger.warning(f"Discarding unreadable block coordinates: {exc}")
                return []
        if key == "last_application":
            return LastApplication.from_json(value)
        if key == "color":
            return value or DEFAULT_BLOCK_COLOR
        if key == "transparency":
            return DEFAULT_TRANSPARENCY if value is None else float(value)
        if key == "has_drain":
            return bool(value)
        if key == "ndvi_history":
            return list(value or [])
        return value


@dataclass
class BlockHistory(_RowModel):
    """Audit row written after every block mutation."""

    COLUMNS: ClassVar[dict[str, str]] = {
        "id": "id",
        "block_id": "bloco_id",
        "change": "alteracao",
        "previous": "dados_anteriores",
        "new": "dados_novos",
        "user_id": "usuario_id",
        "created_at": "criado_em",
    }

    change: str = "update"
    id: str | None = None
    block_id: str | None = None
    previous: dict | None = None
    new: dict | None = None
    user_id: str | None = None
    created_at: str | None = None


@dataclass
class ApplicationRecord(_RowModel):
    """One chemical application logged against a block."""

    COLUMNS: ClassVar[dict[str, str]] = {
        "id": "id",
        "product": "produto",
        "quantity": "quantidade",
        "value": "valor",
        "target_block": "bloco_alvo",
        "block_id": "bloco_id",
        "application_date": "data_aplicacao",
        "next_application": "proxima_aplicacao",
        "acres_applied": "acres_aplicados",
        "created_at": "criado_em",
    }
    SERVER_FIELDS: ClassVar[tuple[str, ...]] = ("id", "created_at")

    product: str = ""
    quantity: float = 0.0
    value: float = 0.0
    target_block: str = ""
    acres_applied: float = 0.0
    application_date: str | None = None
    next_application: str | None = None
    block_id: str | None = None
    id: str | None = None
    created_at: str | None = None

    @classmethod
    def _decode(cls, key: str, value: Any) -> Any:
        if key in ("quantity", "value", "acres_applied"):
            return float(value or 0.0)
        return value


@dataclass
class TeamMember:
    """Team roster entry, persisted locally."""

    full_name: str
    email: str
    phone: str
    role: str
    password_hash: str = ""
    id: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TeamMember":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
