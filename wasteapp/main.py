import logging
from typing import List, Optional

from fastapi import FastAPI, APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .auth import (
    current_identity, get_current_user, get_store, resolve_identity, bind_identity, logout,
)
from .config import Settings, settings as default_settings
from .crud import SqlStore
from .database import make_engine, init_db
from .errors import ServiceError
from .models import User
from .schemas import (
    LoginRequest, LoginResponse, MeResponse, UserRead, MessageResponse, CreatedResponse,
    BinCreate, BinRead,
    ComplaintCreate, ComplaintStatusUpdate, ComplaintView,
    ScheduleCreate, ScheduleStatusUpdate, ScheduleAssign, ScheduleView,
    WorkerRead, DashboardSummary,
)
from .seed import seed
from .services import Services
from .store import Store, MemoryStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_services(request: Request) -> Services:
    return request.app.state.services


# -------------------------
# Auth
# -------------------------

@router.post("/auth/login", response_model=LoginResponse)
def login(payload: LoginRequest, request: Request,
          identity: Optional[User] = Depends(current_identity),
          store: Store = Depends(get_store)):
    user = resolve_identity(store, identity, payload.username)
    bind_identity(request, user)
    logger.info("User '%s' logged in", user.username)
    return {"user": user, "message": "Logged in successfully"}

@router.post("/auth/logout", response_model=MessageResponse)
def auth_logout(request: Request):
    logout(request)
    return {"message": "Logged out successfully"}

@router.get("/auth/me", response_model=MeResponse)
def auth_me(current: User = Depends(get_current_user)):
    return {"user": current}


# -------------------------
# Bins
# -------------------------

@router.get("/bins", response_model=List[BinRead])
def bins_list(svc: Services = Depends(get_services)):
    return svc.bins.list_active()

@router.get("/bins/all", response_model=List[BinRead])
def bins_list_all(identity: Optional[User] = Depends(current_identity),
                  svc: Services = Depends(get_services)):
    return svc.bins.list_all(identity)

@router.post("/bins", response_model=CreatedResponse)
def bins_create(payload: BinCreate,
                identity: Optional[User] = Depends(current_identity),
                svc: Services = Depends(get_services)):
    bin_id = svc.bins.create(identity, payload.type, payload.latitude, payload.longitude, payload.location_name)
    return {"id": bin_id, "message": "Bin created successfully"}

@router.delete("/bins/{bin_id}", response_model=MessageResponse)
def bins_delete(bin_id: int,
                identity: Optional[User] = Depends(current_identity),
                svc: Services = Depends(get_services)):
    svc.bins.soft_delete(identity, bin_id)
    return {"message": "Bin deleted successfully"}


# -------------------------
# Complaints
# -------------------------

@router.get("/complaints", response_model=List[ComplaintView])
def complaints_list(identity: Optional[User] = Depends(current_identity),
                    svc: Services = Depends(get_services)):
    return svc.complaints.list(identity)

@router.post("/complaints", response_model=CreatedResponse)
def complaints_create(payload: ComplaintCreate,
                      identity: Optional[User] = Depends(current_identity),
                      svc: Services = Depends(get_services)):
    complaint_id = svc.complaints.create(identity, **payload.model_dump())
    return {"id": complaint_id, "message": "Complaint submitted successfully"}

@router.put("/complaints/{complaint_id}", response_model=MessageResponse)
def complaints_update(complaint_id: int, payload: ComplaintStatusUpdate,
                      identity: Optional[User] = Depends(current_identity),
                      svc: Services = Depends(get_services)):
    svc.complaints.update_status(identity, complaint_id, payload.status)
    return {"message": "Complaint updated successfully"}


# -------------------------
# Schedules
# -------------------------

@router.get("/schedules", response_model=List[ScheduleView])
def schedules_list(identity: Optional[User] = Depends(current_identity),
                   svc: Services = Depends(get_services)):
    return svc.schedules.list(identity)

@router.post("/schedules", response_model=CreatedResponse)
def schedules_create(payload: ScheduleCreate,
                     identity: Optional[User] = Depends(current_identity),
                     svc: Services = Depends(get_services)):
    schedule_id = svc.schedules.create(identity, **payload.model_dump())
    return {"id": schedule_id, "message": "Schedule created successfully"}

@router.put("/schedules/{schedule_id}", response_model=MessageResponse)
def schedules_update(schedule_id: int, payload: ScheduleStatusUpdate,
                     identity: Optional[User] = Depends(current_identity),
                     svc: Services = Depends(get_services)):
    svc.schedules.update_status(identity, schedule_id, payload.status, payload.collector_name)
    return {"message": "Schedule updated successfully"}

@router.put("/schedules/{schedule_id}/assign", response_model=MessageResponse)
def schedules_assign(schedule_id: int, payload: ScheduleAssign,
                     identity: Optional[User] = Depends(current_identity),
                     svc: Services = Depends(get_services)):
    svc.schedules.assign_worker(identity, schedule_id, payload.assigned_worker_id, payload.admin_notes)
    return {"message": "Worker assigned successfully"}


# -------------------------
# Workers, users, dashboard
# -------------------------

@router.get("/workers", response_model=List[WorkerRead])
def workers_list(identity: Optional[User] = Depends(current_identity),
                 svc: Services = Depends(get_services)):
    return svc.workers.list_workers(identity)

@router.get("/users", response_model=List[UserRead])
def users_list(identity: Optional[User] = Depends(current_identity),
               svc: Services = Depends(get_services)):
    return svc.users.list_users(identity)

@router.get("/dashboard", response_model=DashboardSummary)
def dashboard(identity: Optional[User] = Depends(current_identity),
              svc: Services = Depends(get_services)):
    return svc.dashboard.summary(identity)


# -------------------------
# App factory
# -------------------------

def build_store(cfg: Settings) -> Store:
    if cfg.STORE == "memory":
        logger.info("Using in-memory store")
        return MemoryStore()
    engine = make_engine(cfg.DATABASE_URL)
    init_db(engine)
    return SqlStore(engine)


def _attach_store(app: FastAPI, store: Store):
    app.state.store = store
    app.state.services = Services(store)


def create_app(store: Optional[Store] = None, settings: Optional[Settings] = None) -> FastAPI:
    cfg = settings or default_settings
    logging.basicConfig(
        level=cfg.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=cfg.PROJECT_NAME, version=cfg.VERSION)

    app.add_middleware(
        SessionMiddleware,
        secret_key=cfg.SESSION_SECRET,
        max_age=cfg.SESSION_MAX_AGE,
        same_site="lax",
        https_only=cfg.HTTPS_ONLY,
    )

    # CORS
    if cfg.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cfg.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{where}: {first.get('msg')}" if where else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    if store is not None:
        _attach_store(app, store)
    else:
        @app.on_event("startup")
        def on_startup():
            s = build_store(cfg)
            if cfg.SEED_DATA:
                seed(s, cfg)
            _attach_store(app, s)

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.getenv("PORT", 3000))
    uvicorn.run(app, host="0.0.0.0", port=port)
