import os
import uuid
import logging
from datetime import datetime
from pathlib import Path

from fastapi import Body, Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from dotenv import load_dotenv

load_dotenv()

from tool_room.db.deps import get_inventory_store
from tool_room.db.migrations import ensure_schema, seed_sample_data
from tool_room.db.session import SessionLocalInventory, engine_inventory
from tool_room.db.store import InventoryStore
from tool_room.schemas.assignments import CheckinRequest, CheckoutRequest
from tool_room.schemas.directory import ProjectUpsert, WorkerUpsert
from tool_room.schemas.tools import ToolCreate, ToolUpsert
from tool_room.services import assignment_service, catalog_service, projection_service
from tool_room.services.errors import InventoryError

BASE_DIR = Path(__file__).resolve().parent
UPLOADS_DIR = Path(os.environ.get("TOOL_ROOM_UPLOADS_DIR") or BASE_DIR / "static" / "uploads" / "tools")
API_LOGGER = logging.getLogger("tool_room.api")

app = FastAPI(title="Tool Room Inventory")


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in str(raw).split(",") if item.strip()]


def _env_flag(name: str, default: str = "false") -> bool:
    return str(os.environ.get(name, default)).strip().lower() in {"1", "true", "yes", "on"}


_CORS_ALLOW_ORIGINS = _parse_csv_env(
    "CORS_ALLOW_ORIGINS",
    "http://127.0.0.1,http://localhost,http://127.0.0.1:8082,http://localhost:8082",
)
_CORS_ALLOW_CREDENTIALS = _env_flag("CORS_ALLOW_CREDENTIALS", "true")
if "*" in _CORS_ALLOW_ORIGINS:
    # Browsers reject wildcard origins with credentials; force safe behavior.
    _CORS_ALLOW_CREDENTIALS = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ALLOW_ORIGINS,
    allow_credentials=_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.on_event("startup")
def prepare_database():
    ensure_schema(engine_inventory)
    if _env_flag("TOOL_ROOM_SEED_SAMPLE_DATA"):
        db = SessionLocalInventory()
        try:
            seed_sample_data(db)
        finally:
            db.close()


@app.exception_handler(InventoryError)
def handle_inventory_error(request: Request, exc: InventoryError):
    payload = {"detail": exc.message}
    tool_id = getattr(exc, "tool_id", None)
    if tool_id is not None:
        payload["toolId"] = tool_id
    return JSONResponse(status_code=exc.status_code, content=payload)


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request payload.", "errors": jsonable_encoder(exc.errors())},
    )


@app.get("/healthz")
def healthcheck():
    return {"status": "ok"}


@app.get("/api/health")
def healthcheck_api(store: InventoryStore = Depends(get_inventory_store)):
    try:
        store.session.execute(text("SELECT 1"))
    except Exception as exc:
        API_LOGGER.warning("Health check failed: %s", exc)
        raise HTTPException(status_code=503, detail="db_unavailable") from exc
    return {"status": "OK", "timestamp": datetime.now()}


@app.get("/api/tools")
def get_tools(
    category: str | None = Query(None),
    status: str | None = Query(None),
    store: InventoryStore = Depends(get_inventory_store),
):
    return projection_service.list_tools(store, category=category, status=status)


@app.post("/api/tools/upload-image")
def upload_tool_image(file: UploadFile = File(...)):
    if file.content_type not in {"image/jpeg", "image/png", "image/webp", "image/gif"}:
        raise HTTPException(status_code=400, detail="Unsupported file type. Please upload an image (jpg, png, webp, gif).")

    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    ext = os.path.splitext(file.filename or "")[1]
    filename = f"tool-{uuid.uuid4().hex}{ext}"
    target = UPLOADS_DIR / filename

    with target.open("wb") as output:
        output.write(file.file.read())

    return {"path": f"/uploads/tools/{filename}"}


@app.get("/api/tools/{tool_id}")
def get_tool(tool_id: int, store: InventoryStore = Depends(get_inventory_store)):
    return projection_service.get_tool(store, tool_id)


@app.post("/api/tools", status_code=201)
def create_tool(payload: ToolCreate, store: InventoryStore = Depends(get_inventory_store)):
    return catalog_service.create_tool(store, payload.changed_fields())


@app.put("/api/tools/{tool_id}")
def update_tool(tool_id: int, payload: ToolUpsert, store: InventoryStore = Depends(get_inventory_store)):
    return catalog_service.update_tool(store, tool_id, payload.changed_fields())


@app.delete("/api/tools/{tool_id}")
def delete_tool(tool_id: int, store: InventoryStore = Depends(get_inventory_store)):
    catalog_service.delete_tool(store, tool_id)
    return {"message": "Tool deleted successfully"}


@app.get("/api/workers")
def get_workers(store: InventoryStore = Depends(get_inventory_store)):
    return projection_service.list_workers(store)


@app.get("/api/workers/{worker_id}")
def get_worker(worker_id: int, store: InventoryStore = Depends(get_inventory_store)):
    return projection_service.get_worker(store, worker_id)


@app.post("/api/workers", status_code=201)
def create_worker(payload: WorkerUpsert, store: InventoryStore = Depends(get_inventory_store)):
    return catalog_service.create_worker(store, payload.name, payload.employeeId)


@app.put("/api/workers/{worker_id}")
def update_worker(worker_id: int, payload: WorkerUpsert, store: InventoryStore = Depends(get_inventory_store)):
    return catalog_service.update_worker(store, worker_id, payload.name, payload.employeeId)


@app.delete("/api/workers/{worker_id}")
def delete_worker(worker_id: int, store: InventoryStore = Depends(get_inventory_store)):
    catalog_service.delete_worker(store, worker_id)
    return {"message": "Worker deleted successfully"}


@app.get("/api/projects")
def get_projects(store: InventoryStore = Depends(get_inventory_store)):
    return projection_service.list_projects(store)


@app.get("/api/projects/{project_id}")
def get_project(project_id: int, store: InventoryStore = Depends(get_inventory_store)):
    return projection_service.get_project(store, project_id)


@app.post("/api/projects", status_code=201)
def create_project(payload: ProjectUpsert, store: InventoryStore = Depends(get_inventory_store)):
    return catalog_service.create_project(store, payload.name)


@app.put("/api/projects/{project_id}")
def update_project(project_id: int, payload: ProjectUpsert, store: InventoryStore = Depends(get_inventory_store)):
    return catalog_service.update_project(store, project_id, payload.name)


@app.delete("/api/projects/{project_id}")
def delete_project(project_id: int, store: InventoryStore = Depends(get_inventory_store)):
    catalog_service.delete_project(store, project_id)
    return {"message": "Project deleted successfully"}


@app.get("/api/assignments")
def get_assignments(
    status: str | None = Query(None),
    order: str = Query("desc"),
    store: InventoryStore = Depends(get_inventory_store),
):
    if order not in {"asc", "desc"}:
        raise HTTPException(status_code=400, detail="order must be asc or desc.")
    feed = projection_service.list_assignments(store, status=status, newest_first=order == "desc")
    return list(feed)


@app.get("/api/assignments/{assignment_id}")
def get_assignment(assignment_id: int, store: InventoryStore = Depends(get_inventory_store)):
    return projection_service.get_assignment(store, assignment_id)


@app.post("/api/assignments", status_code=201)
def create_assignment(payload: CheckoutRequest, store: InventoryStore = Depends(get_inventory_store)):
    return assignment_service.checkout(
        store,
        payload.checkoutDate,
        payload.workerId,
        payload.projectId,
        payload.tools,
    )


@app.put("/api/assignments/{assignment_id}/checkin")
def checkin_assignment(
    assignment_id: int,
    payload: CheckinRequest | None = Body(None),
    store: InventoryStore = Depends(get_inventory_store),
):
    payload = payload or CheckinRequest()
    return assignment_service.checkin(
        store,
        assignment_id,
        checkin_notes=payload.checkinNotes,
        tool_conditions=payload.toolConditions,
    )


app.mount("/uploads/tools", StaticFiles(directory=str(UPLOADS_DIR), check_dir=False), name="uploads")


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("TOOL_ROOM_PORT") or "3000"))
