# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Entity repositories on top of the SPPG-scoped MongoDB service.

Documents are stored with camelCase keys (the entity aliases) and calendar
dates as ISO strings.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from models.entities import (
    DemoRequest,
    DistributionSchedule,
    InventoryItem,
    MenuPlan,
    NutritionMenu,
    NutritionProgram,
    SchoolBeneficiary,
    Sppg
)
from services.mongodb import MongoDBService

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)

MENUS = "nutrition_menus"
INVENTORY = "inventory_items"
CALCULATIONS = "menu_calculations"
SCHEDULES = "distribution_schedules"
SCHOOLS = "school_beneficiaries"
PROGRAMS = "nutrition_programs"
MENU_PLANS = "menu_plans"
DEMO_REQUESTS = "demo_requests"
SPPGS = "sppgs"


def _encode(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    if isinstance(value, date) and not isinstance(value, datetime):
        return value.isoformat()
    return value


def to_document(entity: BaseModel, exclude: Optional[set] = None) -> Dict[str, Any]:
    """Dump an entity to a MongoDB-ready document."""
    return _encode(entity.model_dump(by_alias=True, exclude=exclude))


def from_document(model: Type[M], document: Dict[str, Any]) -> M:
    return model.model_validate(document)


class Repository(Generic[M]):
    """Typed access to one tenant-scoped collection."""

    def __init__(self, mongodb: MongoDBService, collection: str, model: Type[M]):
        self.mongodb = mongodb
        self.collection = collection
        self.model = model

    def get(self, sppg_id: str, entity_id: str) -> Optional[M]:
        document = self.mongodb.find_one_by_sppg(self.collection, sppg_id, entity_id)
        return from_document(self.model, document) if document else None

    def list(self, sppg_id: str, filters: Dict = None) -> List[M]:
        return [
            from_document(self.model, doc)
            for doc in self.mongodb.find_by_sppg(self.collection, sppg_id, filters)
        ]

    def create(self, entity: M, user_id: str) -> str:
        return self.mongodb.create(self.collection, to_document(entity), user_id)

    def save(self, entity: M, user_id: str) -> bool:
        """Persist every field of an existing entity."""
        document = to_document(entity, exclude={"id", "created_at", "created_by"})
        return self.mongodb.update_by_sppg(self.collection, entity.sppg_id, entity.id, document, user_id)


class MenuRepository(Repository[NutritionMenu]):
    """Menus with their ingredients joined to inventory items."""

    def __init__(self, mongodb: MongoDBService):
        super().__init__(mongodb, MENUS, NutritionMenu)

    def get_with_ingredients(self, sppg_id: str, menu_id: str) -> Optional[NutritionMenu]:
        menu = self.get(sppg_id, menu_id)
        if menu is None:
            return None

        item_ids = [ingredient.inventory_item_id for ingredient in menu.ingredients]
        items = {}
        for item_id in set(item_ids):
            document = self.mongodb.find_one_by_sppg(INVENTORY, sppg_id, item_id)
            if document:
                items[item_id] = from_document(InventoryItem, document)

        for ingredient in menu.ingredients:
            ingredient.inventory_item = items.get(ingredient.inventory_item_id)

        logger.debug(
            "Loaded menu with ingredients",
            extra={"menu_id": menu_id, "sppg_id": sppg_id, "joined_items": len(items)}
        )
        return menu

    def save_calculation(self, sppg_id: str, menu_id: str, kind: str,
                         result: Dict[str, Any], user_id: str) -> None:
        """Upsert the latest nutrition or cost calculation of a menu."""
        document = _encode({"menuId": menu_id, "kind": kind, "result": result})
        self.mongodb.upsert_by_sppg(CALCULATIONS, sppg_id, {"menuId": menu_id, "kind": kind}, document, user_id)

    def get_calculation(self, sppg_id: str, menu_id: str, kind: str) -> Optional[Dict[str, Any]]:
        """Latest stored calculation of a menu, as a raw document."""
        documents = self.mongodb.find_by_sppg(CALCULATIONS, sppg_id, {"menuId": menu_id, "kind": kind})
        return documents[0] if documents else None

    def update_fields(self, sppg_id: str, menu_id: str, updates: Dict[str, Any], user_id: str) -> bool:
        return self.mongodb.update_by_sppg(MENUS, sppg_id, menu_id, updates, user_id)


class ScheduleRepository(Repository[DistributionSchedule]):

    def __init__(self, mongodb: MongoDBService):
        super().__init__(mongodb, SCHEDULES, DistributionSchedule)

    def find_vehicle_bookings(self, sppg_id: str, vehicle_id: str, distribution_date: date,
                              exclude_schedule_id: str) -> List[DistributionSchedule]:
        """Other open schedules on the same date that already use a vehicle."""
        filters = {
            "vehicleAssignments.vehicleId": vehicle_id,
            "distributionDate": distribution_date.isoformat(),
            "status": {"$in": ["PLANNED", "PREPARED", "IN_PROGRESS", "DELAYED"]}
        }
        return [schedule for schedule in self.list(sppg_id, filters) if schedule.id != exclude_schedule_id]


class SchoolRepository(Repository[SchoolBeneficiary]):

    def __init__(self, mongodb: MongoDBService):
        super().__init__(mongodb, SCHOOLS, SchoolBeneficiary)


class ProgramRepository(Repository[NutritionProgram]):

    def __init__(self, mongodb: MongoDBService):
        super().__init__(mongodb, PROGRAMS, NutritionProgram)


class MenuPlanRepository(Repository[MenuPlan]):

    def __init__(self, mongodb: MongoDBService):
        super().__init__(mongodb, MENU_PLANS, MenuPlan)

    def find_active_for_program(self, sppg_id: str, program_id: str) -> List[MenuPlan]:
        return self.list(sppg_id, {"programId": program_id, "status": "ACTIVE"})


class SppgRepository:
    """Platform registry of SPPG tenants."""

    def __init__(self, mongodb: MongoDBService):
        self.mongodb = mongodb

    def get(self, sppg_id: str) -> Optional[Sppg]:
        document = self.mongodb.find_one(SPPGS, sppg_id)
        return from_document(Sppg, document) if document else None


class DemoRequestRepository:
    """Platform-level demo requests (not tenant-scoped)."""

    def __init__(self, mongodb: MongoDBService):
        self.mongodb = mongodb

    def get(self, request_id: str) -> Optional[DemoRequest]:
        document = self.mongodb.find_one(DEMO_REQUESTS, request_id)
        return from_document(DemoRequest, document) if document else None

    def create(self, demo_request: DemoRequest, user_id: str) -> str:
        return self.mongodb.create(DEMO_REQUESTS, to_document(demo_request), user_id)

    def save(self, demo_request: DemoRequest, user_id: str) -> bool:
        document = to_document(demo_request, exclude={"id", "created_at"})
        return self.mongodb.update_one(DEMO_REQUESTS, demo_request.id, document, user_id)

    def list_created_between(self, start: datetime, end: datetime) -> List[DemoRequest]:
        documents = self.mongodb.find(DEMO_REQUESTS, {"createdAt": {"$gte": start, "$lte": end}})
        return [from_document(DemoRequest, doc) for doc in documents]
