# backend/studio_booking/routers/services.py
# Read-only: the catalog is configuration, not data

from fastapi import APIRouter, Depends, HTTPException

from ..schemas.services import ServiceRead
from ..services.catalog import ServiceCatalog, get_service_catalog

router = APIRouter(prefix="/services", tags=["services"])


@router.get("/", response_model=list[ServiceRead])
def list_services(catalog: ServiceCatalog = Depends(get_service_catalog)):
    return catalog.all()


@router.get("/{service_id}", response_model=ServiceRead)
def get_service(service_id: str, catalog: ServiceCatalog = Depends(get_service_catalog)):
    service = catalog.get(service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Not found")
    return service
