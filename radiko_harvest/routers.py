from typing import Annotated
from fastapi import APIRouter, Depends, Request, Response
import logging

from radiko_harvest.dependencies import get_artifact_reader
from radiko_harvest.services.read_service import ArtifactReader


logger = logging.getLogger(__name__)

main_router = APIRouter()


async def reject_non_get(request: Request, call_next):
    """
    Answer any non-GET request with a bare 405 before routing

    Runs as app middleware so that methods the router does not know
    (TRACE, PROPFIND, ...) get the same empty body as POST or HEAD.
    """
    if request.method.upper() != "GET":
        return Response(status_code=405)
    return await call_next(request)


def _raw_path(request: Request) -> str:
    """Request path as sent by the client, without percent-decoding"""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return request.url.path


@main_router.get("/{key:path}", include_in_schema=False)
async def read_artifact(
    request: Request,
    reader: Annotated[ArtifactReader, Depends(get_artifact_reader)]
) -> Response:
    """
    Serve a stored artifact

    The path minus its leading '/' is the store key, used verbatim.
    """
    result = await reader.handle(request.method, _raw_path(request))
    if result.status_code != 200:
        logger.debug(f"{request.method} {request.url.path} -> {result.status_code}")
    return Response(
        content=result.body,
        status_code=result.status_code,
        headers=result.headers,
    )
