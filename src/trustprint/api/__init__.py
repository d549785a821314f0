from fastapi import APIRouter


def register_routers(router: APIRouter) -> None:
    from trustprint.api.modules.fingerprint.routes import router as fingerprint_router

    router.include_router(fingerprint_router, prefix="/fingerprint", tags=["Fingerprint"])
