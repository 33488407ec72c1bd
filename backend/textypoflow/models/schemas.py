"""Pydantic schemas for API request/response models.

Node and edge bodies stay free-form dicts: the engine's graph model parses
them, and keeps the keys it does not know.
"""
from typing import Any

from pydantic import BaseModel


class GraphSchema(BaseModel):
    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]


class NodeCreateRequest(BaseModel):
    node_type: str | None = None
    preset_id: str | None = None  # either this or node_type
    id: str | None = None
    position: dict[str, float] = {}
    data: dict[str, Any] = {}


class ConnectRequest(BaseModel):
    node_type: str | None = None
    preset_id: str | None = None
    data: dict[str, Any] = {}


class EdgeCreateRequest(BaseModel):
    source: str
    target: str


class EdgeTypeRequest(BaseModel):
    edge_type: str | None = None  # None = toggle


class RunResponse(BaseModel):
    status: str
    run_id: str | None = None


class RunStatusResponse(BaseModel):
    state: str
    run_id: str | None = None
    history_size: int


class ValidationResponse(BaseModel):
    valid: bool
    errors: list[str] = []


class FieldDefinition(BaseModel):
    dtype: str
    default: Any = None
    choices: list[Any] | None = None
    editable: bool = True


class NodeDefinitionResponse(BaseModel):
    node_type: str
    display_name: str
    description: str
    fields: dict[str, FieldDefinition]
    defaults: dict[str, Any]
