"""FastAPI dependencies and domain-error translation shared by routers."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, Request

from .exceptions import (
    ConflictError,
    ExternalServiceError,
    JobValidationError,
    NotFoundError,
    PersistenceError,
)
from .services.orchestration.runtime import AgentRuntime


def get_runtime(request: Request) -> AgentRuntime:
    """Return the per-process runtime built in the app lifespan."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Agent runtime not initialized")
    return runtime


@contextmanager
def http_errors() -> Iterator[None]:
    """Translate domain exceptions raised inside the block into HTTP errors."""
    try:
        yield
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except JobValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except (ExternalServiceError, PersistenceError) as exc:
        raise HTTPException(status_code=503, detail=str(exc))
