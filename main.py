import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from core.database import engine, Base
from services.exceptions import WorkflowError

# Import all models to register them
from models.parties import Armazem, Cliente, Representante  # noqa: F401
from models.agendamento import Agendamento  # noqa: F401
from models.carregamento import Carregamento, FotoCarregamento  # noqa: F401
from models.user import User  # noqa: F401
from models.audit_log import AuditLog  # noqa: F401

# Import routers
from api import auth, carregamentos, files, audit

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="NEXOR",
    description="Logistics management: warehouse loading workflow",
    version="1.0.0"
)

# Register routers
app.include_router(auth.router)
app.include_router(carregamentos.router)
app.include_router(files.router)
app.include_router(audit.router, prefix="/api")


@app.exception_handler(WorkflowError)
def handle_workflow_error(request: Request, exc: WorkflowError):
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


@app.get("/health")
def health_check():
    """Health check endpoint for Docker and Kubernetes."""
    return {
        "status": "healthy",
        "service": "NEXOR",
        "version": "1.0.0"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
