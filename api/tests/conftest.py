# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import copy
import pytest
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock
from bson import ObjectId

# Set test environment before the application module is imported
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'bagizi_test'

from models.entities import (
    DemoRequest,
    DistributionDelivery,
    DistributionSchedule,
    InventoryItem,
    MenuAssignment,
    MenuIngredient,
    MenuPlan,
    NutritionMenu,
    NutritionProgram,
    SchoolBeneficiary,
    Sppg,
    UserContext,
    VehicleAssignment
)
from models.enums import UserRole
from domain.authorization import get_role_permissions
from services.auth import AuthService, generate_key_pair
from services.mongodb import MongoDBService, PaginationResult
from services.repositories import SPPGS, to_document

SPPG_ID = str(ObjectId())
OTHER_SPPG_ID = str(ObjectId())
USER_ID = str(ObjectId())
PROGRAM_ID = str(ObjectId())


@pytest.fixture(scope="session")
def auth_service():
    """AuthService with a throwaway key pair shared by the whole run."""
    private_key, public_key = generate_key_pair()
    return AuthService(private_key=private_key, public_key=public_key)


@pytest.fixture
def sppg():
    return Sppg(id=SPPG_ID, code="SPPG-JKT-001", name="SPPG Jakarta Timur")


@pytest.fixture
def mock_mongo(sppg):
    """
    MongoDBService double backed by an in-memory document map.

    Lookups by id go through ``mock_mongo.documents[collection][id]``; list
    queries return nothing unless a test configures them.
    """
    mongo = MagicMock(spec=MongoDBService)
    documents = {SPPGS: {sppg.id: to_document(sppg)}}

    def find_one(collection, doc_id):
        return copy.deepcopy(documents.get(collection, {}).get(doc_id))

    def find_one_by_sppg(collection, sppg_id, doc_id, include_deleted=False):
        document = documents.get(collection, {}).get(doc_id)
        if document is None or document.get("sppgId") != sppg_id:
            return None
        return copy.deepcopy(document)

    def create(collection, document, user_id):
        return document.get("id") or str(ObjectId())

    mongo.find_one.side_effect = find_one
    mongo.find_one_by_sppg.side_effect = find_one_by_sppg
    mongo.create.side_effect = create
    mongo.find_by_sppg.return_value = []
    mongo.find.return_value = []
    mongo.update_by_sppg.return_value = True
    mongo.update_one.return_value = True
    mongo.paginate_by_sppg.return_value = PaginationResult([], 0, 1, 20)
    mongo.health_check.return_value = {"status": "healthy", "ping": True, "version": "7.0.0",
                                       "database": "bagizi_test"}
    mongo.documents = documents
    return mongo


@pytest.fixture
def store(mock_mongo):
    """Put an entity into the in-memory collections and return it."""
    def _store(collection, entity):
        mock_mongo.documents.setdefault(collection, {})[entity.id] = to_document(entity)
        return entity
    return _store


@pytest.fixture
def app(mock_mongo, auth_service):
    from app import create_app

    application = create_app(mongodb_service=mock_mongo, auth_service=auth_service)
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def auth_headers(auth_service):
    """Build bearer headers for a role; SPPG users default to the test SPPG."""
    def _headers(role=UserRole.SPPG_KEPALA.value, sppg_id=SPPG_ID, user_id=USER_ID):
        token = auth_service.issue_access_token(user_id, role, sppg_id)["access_token"]
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def user_context():
    """Factory for UserContext with role-derived permissions."""
    def _context(role=UserRole.SPPG_KEPALA.value, sppg_id=SPPG_ID, user_id=USER_ID):
        return UserContext(
            user_id=user_id,
            role=role,
            sppg_id=sppg_id,
            permissions=get_role_permissions(role)
        )
    return _context


@pytest.fixture
def inventory_item():
    def _item(**overrides):
        data = {
            "sppg_id": SPPG_ID,
            "item_name": "Beras Putih",
            "unit": "gram",
            "cost_per_unit": 12,
            "calories": 360,
            "protein": 7,
            "carbohydrates": 79,
            "fat": 1,
            "fiber": 2
        }
        data.update(overrides)
        return InventoryItem(**data)
    return _item


@pytest.fixture
def make_menu(inventory_item):
    """Menu with rice and chicken joined to their inventory items."""
    def _menu(**overrides):
        rice = inventory_item()
        chicken = inventory_item(item_name="Daging Ayam", cost_per_unit=40, calories=239,
                                 protein=27, carbohydrates=0, fat=14, fiber=0)
        data = {
            "sppg_id": SPPG_ID,
            "program_id": PROGRAM_ID,
            "menu_name": "Nasi Ayam Sayur",
            "menu_code": "MNU-001",
            "serving_size": 100,
            "batch_size": 100,
            "ingredients": [
                MenuIngredient(inventory_item_id=rice.id, quantity=150, inventory_item=rice),
                MenuIngredient(inventory_item_id=chicken.id, quantity=80, inventory_item=chicken)
            ]
        }
        data.update(overrides)
        return NutritionMenu(**data)
    return _menu


@pytest.fixture
def make_program():
    def _program(**overrides):
        data = {
            "id": PROGRAM_ID,
            "sppg_id": SPPG_ID,
            "name": "Program Makan Bergizi Sekolah",
            "program_code": "PMB-2026",
            "program_type": "SUPPLEMENTARY_FEEDING",
            "target_group": "SCHOOL_CHILDREN",
            "calorie_target": 700,
            "protein_target": 20,
            "start_date": date(2026, 1, 5),
            "end_date": date(2026, 12, 18),
            "target_recipients": 1500,
            "implementation_area": "Jakarta Timur"
        }
        data.update(overrides)
        return NutritionProgram(**data)
    return _program


@pytest.fixture
def make_schedule():
    def _schedule(**overrides):
        data = {
            "sppg_id": SPPG_ID,
            "distribution_date": datetime.now(timezone.utc).date() + timedelta(days=2),
            "wave": "MORNING",
            "target_categories": ["ELEMENTARY_GRADE_1_3"],
            "estimated_beneficiaries": 200,
            "menu_name": "Nasi Ayam Sayur",
            "portion_size": 350,
            "total_portions": 210,
            "packaging_type": "Ompreng",
            "packaging_cost": 105000,
            "delivery_method": "Mobil boks",
            "distribution_team": ["driver-1", "helper-1"],
            "fuel_cost": 50000
        }
        data.update(overrides)
        return DistributionSchedule(**data)
    return _schedule


@pytest.fixture
def vehicle_assignment():
    def _assignment(vehicle_id="VH-01"):
        departure = datetime.now(timezone.utc) + timedelta(days=2)
        return VehicleAssignment(
            vehicle_id=vehicle_id,
            estimated_departure=departure,
            estimated_arrival=departure + timedelta(hours=1)
        )
    return _assignment


@pytest.fixture
def delivery():
    def _delivery(status="DELIVERED"):
        return DistributionDelivery(target_name="SDN 01 Cakung", portions_planned=100,
                                    portions_delivered=100, status=status)
    return _delivery


@pytest.fixture
def make_school():
    def _school(**overrides):
        data = {
            "sppg_id": SPPG_ID,
            "program_id": PROGRAM_ID,
            "school_name": "SDN 01 Cakung",
            "school_code": "SD-001",
            "school_type": "SD",
            "principal_name": "Ibu Siti Aminah",
            "contact_phone": "081234567890",
            "school_address": "Jl. Raya Cakung No. 1, Jakarta Timur",
            "total_students": 300,
            "target_students": 280,
            "active_students": 280,
            "students_7_to_12": 300
        }
        data.update(overrides)
        return SchoolBeneficiary(**data)
    return _school


@pytest.fixture
def make_plan():
    def _plan(assignments=None, **overrides):
        if assignments is None:
            assignments = [
                MenuAssignment(menu_id=str(ObjectId()), assigned_date=date(2026, 11, 2),
                               planned_portions=200, estimated_cost=2000000),
                MenuAssignment(menu_id=str(ObjectId()), assigned_date=date(2026, 11, 3),
                               planned_portions=200, estimated_cost=2200000)
            ]
        data = {
            "sppg_id": SPPG_ID,
            "program_id": PROGRAM_ID,
            "name": "Rencana Menu November",
            "start_date": date(2026, 11, 2),
            "end_date": date(2026, 11, 6),
            "assignments": assignments
        }
        data.update(overrides)
        return MenuPlan(**data)
    return _plan


@pytest.fixture
def make_demo_request():
    def _demo_request(**overrides):
        data = {
            "organization_name": "Yayasan Gizi Nusantara",
            "organization_type": "YAYASAN",
            "pic_name": "Budi Santoso",
            "pic_email": "budi@gizinusantara.org",
            "pic_phone": "081298765432",
            "target_beneficiaries": 500
        }
        data.update(overrides)
        return DemoRequest(**data)
    return _demo_request


@pytest.fixture
def sample_school_payload():
    return {
        "program_id": PROGRAM_ID,
        "school_name": "SDN 02 Pulo Gebang",
        "school_type": "SD",
        "principal_name": "Bapak Ahmad Fauzi",
        "contact_phone": "081311112222",
        "school_address": "Jl. Pulo Gebang Raya No. 2",
        "total_students": 250,
        "target_students": 240,
        "active_students": 240,
        "students_7_to_12": 250
    }
