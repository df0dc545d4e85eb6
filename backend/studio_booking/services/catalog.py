# backend/studio_booking/services/catalog.py
"""
Service catalog.

Bookings never reference the catalog after creation: the chosen service is
copied onto the appointment as a ServiceSnapshot, so later price or duration
changes do not rewrite past bookings.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import TypeAdapter

from ..config import settings
from ..schemas.services import ServiceRead

logger = logging.getLogger(__name__)

DEFAULT_SERVICES: list[dict] = [
    {
        "id": "consultation",
        "name": "Consultation Stratégique",
        "category": "Conseil",
        "duration": 60,
        "price": 150,
        "description": "Analyse de vos besoins et recommandations personnalisées",
        "features": ["Audit technique", "Stratégie digitale", "Roadmap projet", "Devis détaillé"],
        "recommended": True,
    },
    {
        "id": "audit",
        "name": "Audit Technique Complet",
        "category": "Audit",
        "duration": 120,
        "price": 300,
        "description": "Analyse approfondie de votre infrastructure existante",
        "features": ["Audit sécurité", "Performance", "SEO technique", "Rapport détaillé"],
    },
    {
        "id": "formation",
        "name": "Formation Équipe",
        "category": "Formation",
        "duration": 180,
        "price": 500,
        "description": "Formation personnalisée pour vos équipes",
        "features": ["Formation sur mesure", "Support documentation", "Suivi 30 jours"],
    },
    {
        "id": "workshop",
        "name": "Workshop Innovation",
        "category": "Workshop",
        "duration": 240,
        "price": 800,
        "description": "Atelier collaboratif pour définir votre vision digitale",
        "features": ["Brainstorming", "Prototypage", "Plan d'action", "Présentation finale"],
    },
]

_services_adapter = TypeAdapter(list[ServiceRead])


class ServiceCatalog:
    """Read-only mapping of service id → ServiceRead."""

    def __init__(self, services: list[ServiceRead]):
        self._services = {service.id: service for service in services}

    @classmethod
    def from_data(cls, data: list[dict]) -> "ServiceCatalog":
        return cls(_services_adapter.validate_python(data))

    def get(self, service_id: str) -> ServiceRead | None:
        return self._services.get(service_id)

    def all(self) -> list[ServiceRead]:
        return list(self._services.values())

    def __contains__(self, service_id: str) -> bool:
        return service_id in self._services

    def __len__(self) -> int:
        return len(self._services)


@lru_cache
def get_service_catalog() -> ServiceCatalog:
    """
    Load the catalog once per process.

    SERVICE_CATALOG_PATH points to a JSON list of services; without it the
    built-in studio services are used.
    """
    path = settings.service_catalog_path
    if not path:
        return ServiceCatalog.from_data(DEFAULT_SERVICES)

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    catalog = ServiceCatalog.from_data(data)
    logger.info(f"Service catalog loaded from {path}: {len(catalog)} services")
    return catalog
