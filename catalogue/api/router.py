from fastapi import APIRouter

from catalogue.api.catalogue.routes import router as catalogue_router

router = APIRouter()
router.include_router(catalogue_router)
