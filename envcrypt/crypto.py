from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from envcrypt.errors import Err
from envcrypt.service import EncryptionService

router = APIRouter()


# --- Models ---
class EncryptionRequest(BaseModel):
    env: str = ""
    api_key: str = Field("", alias="apiKey")


class EncryptionResponse(BaseModel):
    sessionKey: str


class ErrorResponse(BaseModel):
    error: str


def get_service(request: Request) -> EncryptionService:
    return request.app.state.encryption_service


@router.post(
    "/encrypt",
    response_model=EncryptionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def encrypt(data: EncryptionRequest, request: Request):
    """Encrypt an API key with the public key of the requested environment."""
    result = get_service(request).encrypt(data.env, data.api_key)
    if isinstance(result, Err):
        return JSONResponse(
            status_code=result.reason.status_code,
            content=ErrorResponse(error=result.reason.message).model_dump(),
        )
    return EncryptionResponse(sessionKey=result.value)
