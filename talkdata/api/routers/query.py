"""POST /query -- natural-language question in, chat-ready answer out."""
from __future__ import annotations

from pydantic import BaseModel, Field
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse

from talkdata.copilot.service import QueryService
from talkdata.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class QueryRequest(BaseModel):
    query: str | None = Field(None, max_length=1000, description="Natural-language question")


def get_service(request: Request) -> QueryService:
    return request.app.state.service


@router.post("/query")
def query_endpoint(
    background: BackgroundTasks,
    req: QueryRequest | None = None,
    service: QueryService = Depends(get_service),
):
    """Full pipeline: question -> SQL -> guard -> execute -> answer.

    Translation misses, guard rejections and SQL errors are still HTTP 200;
    the body's ``error`` / ``result.error`` fields carry them.
    A missing body or query is 400 ``{error: "missing query"}``; a malformed
    one is 400 ``{error: "invalid query: ..."}`` (see the app's validation
    handler).
    """
    if req is None or not req.query or not req.query.strip():
        return JSONResponse(status_code=400, content={"error": "missing query"})

    response = service.ask(req.query.strip(), defer=background.add_task)
    return JSONResponse(content=response.to_wire())
