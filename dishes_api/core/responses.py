from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from dishes_api.core.envelope import ServiceResult
from dishes_api.core.errors import ErrorKind

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DUPLICATE: status.HTTP_409_CONFLICT,
    ErrorKind.UPLOAD_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def envelope_response(result: ServiceResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if result.success:
        code = success_status
    else:
        code = STATUS_BY_KIND[result.kind or ErrorKind.INTERNAL]
    return JSONResponse(status_code=code, content=jsonable_encoder(result.to_dict()))
