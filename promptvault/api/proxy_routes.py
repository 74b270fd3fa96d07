import httpx
from fastapi import APIRouter, Depends, Header, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from promptvault.deps import get_db, get_http_client
from promptvault.errors import ValidationError
from promptvault.proxy.dispatcher import ProxyDispatcher

router = APIRouter(tags=["proxy"])


@router.post("/ai-proxy")
async def ai_proxy(
    request: Request,
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Forward `{provider, endpoint, method, body}` to the provider using the
    caller's active stored key. Upstream 2xx bodies pass through unchanged.
    """
    try:
        raw = await request.json()
    except ValueError:
        raise ValidationError("Request body must be a JSON object")

    result = await ProxyDispatcher(db, client).dispatch(raw, authorization)
    if result.status_code == status.HTTP_204_NO_CONTENT or result.body is None:
        return Response(status_code=result.status_code)
    return JSONResponse(status_code=result.status_code, content=result.body)
