"""
Version 1 of the donations API.

Routes will be: /api/v1/auth, /api/v1/usuarios, /api/v1/campanas, ...
"""
from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.api.v1.usuarios import router as usuarios_router
from app.api.v1.campanas import router as campanas_router
from app.api.v1.metodos_pago import router as metodos_pago_router
from app.api.v1.donaciones import router as donaciones_router
from app.api.v1.suscripciones import router as suscripciones_router
from app.api.v1.recompensas import router as recompensas_router
from app.api.v1.comprobantes import router as comprobantes_router
from app.api.v1.facturas import router as facturas_router
from app.api.v1.configuraciones import router as configuraciones_router
from app.api.v1.estadisticas import router as estadisticas_router

api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(usuarios_router)
api_router.include_router(campanas_router)
api_router.include_router(metodos_pago_router)
api_router.include_router(donaciones_router)
api_router.include_router(suscripciones_router)
api_router.include_router(recompensas_router)
api_router.include_router(comprobantes_router)
api_router.include_router(facturas_router)
api_router.include_router(configuraciones_router)
api_router.include_router(estadisticas_router)

__all__ = [
    "api_router",
]
