from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from food_search.config import CORS_ORIGINS, EMBEDDING_MODEL, LOG_LEVEL
from food_search.db import dispose_engine, get_engine
from food_search.errors import (
    ConfigurationError,
    InvalidQueryError,
    MissingCredentialError,
    ProviderNotReadyError,
)
from food_search.logging_config import get_logger, setup_logging
from food_search.registry import ProviderRegistry
from food_search.search import SearchService

logger = get_logger("food_search.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(LOG_LEVEL)
    registry = ProviderRegistry()
    app.state.search_service = SearchService(get_engine(), registry)

    # start loading the default model now; requests get 503 until it is ready
    try:
        registry.warm(EMBEDDING_MODEL)
    except ConfigurationError as e:
        logger.error("Default model %s unusable: %s", EMBEDDING_MODEL, e)

    yield
    await dispose_engine()


app = FastAPI(title="Food Search", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------

class SearchRequest(BaseModel):
    query: Optional[str] = None
    model: Optional[str] = None
    locale: Optional[str] = None
    top_k: Optional[int] = None


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ---------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------

@app.get("/health")
def health(service: SearchService = Depends(get_search_service)) -> Dict[str, Any]:
    return {
        "ok": True,
        "default_model": service.default_model,
        "ready": service.registry.ready_models(),
    }


@app.post("/search", response_model=None)
async def search(
    req: Optional[SearchRequest] = None,
    service: SearchService = Depends(get_search_service),
):
    if req is None or not req.query or not req.query.strip():
        return Response(status_code=400)

    model_id = service.resolve_model(req.model)
    try:
        matches = await service.search(req.query, model_id, req.locale, req.top_k)
    except InvalidQueryError:
        return Response(status_code=400)
    except ProviderNotReadyError as e:
        return _error(503, str(e))
    except MissingCredentialError as e:
        logger.warning("Search rejected | model=%s: %s", model_id, e)
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Search failed | model=%s locale=%s", model_id, req.locale)
        return _error(500, str(e))

    results: List[Dict[str, Any]] = [m.as_dict() for m in matches]
    return results
