"""REST API routes."""
import asyncio
import uuid
from typing import Any

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse

from ..engine.executor import EngineBusyError
from ..engine.graph import Graph, NodeType
from ..engine.session import EditorSession, get_session
from ..engine.validator import validate_graph
from ..engine.workspace import new_node
from ..engine.workflow_file import (
    WorkflowFormatError, export_filename, export_workflow, import_workflow,
)
from ..models.schemas import (
    ConnectRequest, EdgeCreateRequest, EdgeTypeRequest, GraphSchema,
    NodeCreateRequest, NodeDefinitionResponse, RunResponse, RunStatusResponse,
    ValidationResponse,
)
from ..nodes.display import extract_html_content, normalize_html
from ..nodes.presets import get_preset, preset_categories
from ..nodes.registry import NodeRegistry

router = APIRouter(prefix="/api")

# Keep references so background runs are not garbage-collected mid-flight
_background_runs: set[asyncio.Task] = set()


def _graph_response(session: EditorSession) -> dict[str, Any]:
    return {**session.workspace.graph.to_dict(), "edgeType": session.workspace.edge_type}


def _resolve_node_spec(
    node_type: str | None, preset_id: str | None, data: dict[str, Any],
) -> tuple[str, dict[str, Any]]:
    """Turn a create request into (node_type, data), expanding a preset."""
    if preset_id is None:
        if node_type is None:
            raise HTTPException(status_code=400, detail="Either node_type or preset_id is required")
        return node_type, data
    try:
        preset = get_preset(preset_id)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e.args[0]))
    if node_type is not None and node_type != preset.node_type.value:
        raise HTTPException(
            status_code=400,
            detail=f"Preset {preset_id} creates {preset.node_type.value} nodes, not {node_type}",
        )
    return preset.node_type.value, {**preset.node_data(), **data}


@router.get("/nodes", response_model=dict[str, NodeDefinitionResponse])
async def list_nodes():
    """Return all registered node definitions."""
    result = {}
    for name, defn in NodeRegistry.all_definitions().items():
        result[name] = {
            "node_type": defn.node_type,
            "display_name": defn.display_name,
            "description": defn.description,
            "fields": {
                k: {
                    "dtype": v.dtype.value,
                    "default": v.default,
                    "choices": v.choices,
                    "editable": v.editable,
                }
                for k, v in defn.fields.items()
            },
            "defaults": defn.defaults,
        }
    return result


@router.get("/presets")
async def list_presets():
    """Return the preset processor templates grouped by category."""
    return preset_categories()


# -- live graph ---------------------------------------------------------------

@router.get("/graph")
async def get_graph():
    return _graph_response(get_session())


@router.put("/graph")
async def replace_graph(graph: GraphSchema):
    session = get_session()
    try:
        parsed = Graph.from_dict(graph.model_dump())
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid graph: {e}")
    session.workspace.replace(parsed)
    return _graph_response(session)


@router.post("/graph/nodes")
async def add_node(request: NodeCreateRequest):
    session = get_session()
    try:
        node_type, data = _resolve_node_spec(request.node_type, request.preset_id, request.data)
        node = new_node(node_type, request.id, request.position, data)
        session.workspace.add_node(node)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e.args[0]))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return node.to_dict()


@router.patch("/graph/nodes/{node_id}")
async def update_node(node_id: str, changes: dict[str, Any]):
    session = get_session()
    try:
        node = session.workspace.update_node(node_id, changes)
    except KeyError:
        raise HTTPException(status_code=404, detail="Node not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return node.to_dict()


@router.delete("/graph/nodes/{node_id}")
async def delete_node(node_id: str):
    try:
        get_session().workspace.remove_node(node_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Node not found")
    return {"status": "deleted"}


@router.get("/graph/nodes/{node_id}/preview", response_class=HTMLResponse)
async def preview_node(node_id: str):
    """Render a Display node's HTML content as a standalone document."""
    try:
        node = get_session().workspace.get_node(node_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Node not found")
    html = None
    if node.type == NodeType.DISPLAY:
        html = extract_html_content(node.data.content or "")
    if html is None:
        raise HTTPException(status_code=400, detail="Node has no HTML content to preview")
    return HTMLResponse(normalize_html(html))


@router.post("/graph/nodes/{node_id}/connect")
async def add_downstream_node(node_id: str, request: ConnectRequest):
    """Create a node downstream of ``node_id`` and connect the two."""
    session = get_session()
    try:
        session.workspace.get_node(node_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Node not found")
    node_type, data = _resolve_node_spec(request.node_type, request.preset_id, request.data)
    try:
        node, edge = session.workspace.add_downstream(node_id, node_type, data)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e.args[0]))
    return {"node": node.to_dict(), "edge": edge.to_dict()}


@router.post("/graph/edges")
async def add_edge(request: EdgeCreateRequest):
    try:
        edge = get_session().workspace.connect(request.source, request.target)
    except KeyError:
        raise HTTPException(status_code=404, detail="Node not found")
    return edge.to_dict()


@router.delete("/graph/edges/{edge_id}")
async def delete_edge(edge_id: str):
    try:
        get_session().workspace.remove_edge(edge_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Edge not found")
    return {"status": "deleted"}


@router.post("/graph/edge-type")
async def set_edge_type(request: EdgeTypeRequest):
    workspace = get_session().workspace
    try:
        if request.edge_type is None:
            workspace.toggle_edge_type()
        else:
            workspace.set_edge_type(request.edge_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"edgeType": workspace.edge_type}


@router.post("/graph/clear")
async def clear_graph():
    session = get_session()
    session.workspace.clear()
    return _graph_response(session)


@router.post("/graph/validate", response_model=ValidationResponse)
async def validate():
    errors = validate_graph(get_session().workspace.graph)
    return ValidationResponse(valid=not errors, errors=errors)


# -- runs ---------------------------------------------------------------------

@router.post("/run")
async def start_run(wait: bool = False):
    """Run the live graph.

    Returns immediately with the run id; status arrives over the WebSocket.
    With ``wait=true`` the response is sent after the run, with its snapshot.
    """
    session = get_session()
    run_id = uuid.uuid4().hex
    try:
        # Claims the engine now, so a second request gets 409 even if this
        # run has not been scheduled yet
        job = session.engine.start(session.workspace.graph, run_id=run_id)
    except EngineBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if wait:
        snapshot = await job
        if snapshot is None:
            return {"status": "failed", "run_id": run_id, "snapshot": None}
        return {"status": "completed", "run_id": run_id, "snapshot": snapshot.to_dict()}

    task = asyncio.create_task(job)
    _background_runs.add(task)
    task.add_done_callback(_background_runs.discard)
    return RunResponse(status="started", run_id=run_id)


@router.get("/run", response_model=RunStatusResponse)
async def get_run_status():
    session = get_session()
    return RunStatusResponse(
        state=session.engine.state.value,
        run_id=session.engine.current_run_id,
        history_size=len(session.history),
    )


# -- history ------------------------------------------------------------------

@router.get("/history")
async def list_history():
    return [snapshot.to_dict() for snapshot in get_session().history.list()]


@router.get("/history/{snapshot_id}")
async def get_history_entry(snapshot_id: str):
    try:
        return get_session().history.get(snapshot_id).to_dict()
    except KeyError:
        raise HTTPException(status_code=404, detail="History entry not found")


@router.post("/history/{snapshot_id}/restore")
async def restore_history_entry(snapshot_id: str):
    session = get_session()
    try:
        snapshot = session.history.get(snapshot_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="History entry not found")
    session.workspace.restore(snapshot)
    return _graph_response(session)


# -- workflow files -----------------------------------------------------------

@router.get("/workflow/export")
async def export_current_workflow():
    workspace = get_session().workspace
    return JSONResponse(
        export_workflow(workspace.graph, workspace.edge_type),
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


def _import(document: bytes) -> dict[str, Any]:
    session = get_session()
    try:
        graph, edge_type = import_workflow(document)
    except WorkflowFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))
    session.workspace.replace(graph, edge_type)
    return _graph_response(session)


@router.post("/workflow/import")
async def import_workflow_body(request: Request):
    """Load a workflow document sent as the raw JSON request body."""
    return _import(await request.body())


@router.post("/workflow/upload")
async def upload_workflow(file: UploadFile = File(...)):
    """Load a workflow file uploaded from the file chooser."""
    if file.filename and not file.filename.endswith(".json"):
        raise HTTPException(status_code=400, detail="Only JSON workflow files are supported")
    return _import(await file.read())
