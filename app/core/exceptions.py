"""
HTTP error types raised by services and routers.
"""
from typing import Any
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    def __init__(self, detail: Any = "Recurso no encontrado"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    def __init__(self, detail: Any = "Solicitud inválida"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: Any = "No autenticado"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(HTTPException):
    def __init__(self, detail: Any = "No autorizado"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
