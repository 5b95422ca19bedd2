# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for Pydantic models.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from pydantic import ValidationError
from bson import ObjectId

from models.entities import AuditLog, DemoRequest, UserContext
from models.requests import (
    AssignVehicleRequest,
    CreateDemoRequestRequest,
    CreateProgramRequest,
    CreateScheduleRequest,
    CreateSchoolRequest,
    PaginationParams,
    RejectDemoRequestRequest,
    UpdateScheduleStatusRequest
)
from services.repositories import to_document
from utils.request import to_api_dict


class TestEntityDefaults:
    """Defaults and serialization of stored entities."""

    def test_defaults_are_plain_values(self, make_plan):
        plan = make_plan()

        assert plan.status == "DRAFT"
        assert type(plan.status) is str
        assert plan.schema_version == 1
        assert isinstance(plan.created_at, datetime)

    def test_document_uses_camel_case(self, make_schedule):
        schedule = make_schedule()

        document = to_document(schedule)

        assert document["sppgId"] == schedule.sppg_id
        assert document["distributionDate"] == schedule.distribution_date.isoformat()
        assert document["estimatedBeneficiaries"] == 200
        assert "sppg_id" not in document

    def test_api_dict_uses_field_names(self, make_schedule):
        schedule = make_schedule()

        data = to_api_dict(schedule)

        assert data["sppg_id"] == schedule.sppg_id
        assert data["status"] == "PLANNED"
        assert data["vehicle_assignments"] == []

    def test_document_round_trip(self, make_menu):
        menu = make_menu()

        restored = type(menu).model_validate(to_document(menu))

        assert restored.id == menu.id
        assert restored.ingredients[0].inventory_item.item_name == "Beras Putih"


class TestProgramModel:

    def test_program_code_pattern(self, make_program):
        with pytest.raises(ValidationError) as exc_info:
            make_program(program_code="pmb-2026")

        assert "Program code must contain only uppercase letters" in str(exc_info.value)

    def test_target_ranges(self, make_program):
        with pytest.raises(ValidationError):
            make_program(calorie_target=6000)

    @pytest.fixture
    def program_payload(self):
        return {
            "name": "Program Makan Bergizi Gratis",
            "program_code": "MBG-2027",
            "program_type": "SUPPLEMENTARY_FEEDING",
            "target_group": "SCHOOL_CHILDREN",
            "start_date": date(2027, 1, 4),
            "target_recipients": 2000,
            "implementation_area": "Jakarta Timur"
        }

    @pytest.mark.parametrize("meals_per_day", [0, 6])
    def test_meals_per_day_bounds(self, program_payload, meals_per_day):
        with pytest.raises(ValidationError) as exc_info:
            CreateProgramRequest(meals_per_day=meals_per_day, **program_payload)

        assert exc_info.value.errors()[0]["loc"] == ("meals_per_day",)

    @pytest.mark.parametrize("target_recipients", [0, 100001])
    def test_target_recipients_bounds(self, program_payload, target_recipients):
        program_payload["target_recipients"] = target_recipients

        with pytest.raises(ValidationError) as exc_info:
            CreateProgramRequest(**program_payload)

        assert exc_info.value.errors()[0]["loc"] == ("target_recipients",)

    def test_bounds_are_inclusive(self, program_payload):
        program_payload["target_recipients"] = 100000

        request = CreateProgramRequest(meals_per_day=5, **program_payload)

        assert request.meals_per_day == 5


class TestScheduleRequests:

    @pytest.fixture
    def payload(self):
        return {
            "distribution_date": date.today() + timedelta(days=3),
            "wave": "MORNING",
            "target_categories": ["ELEMENTARY_GRADE_1_3"],
            "estimated_beneficiaries": 200,
            "menu_name": "Nasi Ayam Sayur",
            "portion_size": 350,
            "total_portions": 200,
            "packaging_type": "Ompreng",
            "delivery_method": "Mobil boks",
            "distribution_team": ["driver-1"]
        }

    def test_valid_schedule(self, payload):
        request = CreateScheduleRequest(**payload)

        assert request.wave == "MORNING"
        assert request.target_categories == ["ELEMENTARY_GRADE_1_3"]

    def test_portions_cover_beneficiaries(self, payload):
        payload["total_portions"] = 150

        with pytest.raises(ValidationError) as exc_info:
            CreateScheduleRequest(**payload)

        assert "Total portions must be greater than or equal" in str(exc_info.value)

    def test_unknown_category(self, payload):
        payload["target_categories"] = ["ASTRONAUT"]

        with pytest.raises(ValidationError):
            CreateScheduleRequest(**payload)

    def test_too_many_categories(self, payload):
        payload["target_categories"] = ["ELEMENTARY_GRADE_1_3"] * 11

        with pytest.raises(ValidationError) as exc_info:
            CreateScheduleRequest(**payload)

        assert exc_info.value.errors()[0]["loc"] == ("target_categories",)

    def test_status_reason_minimum_length(self):
        with pytest.raises(ValidationError):
            UpdateScheduleStatusRequest(status="CANCELLED", reason="Hujan")

        request = UpdateScheduleStatusRequest(status="CANCELLED", reason="Banjir di jalur distribusi")
        assert request.status == "CANCELLED"


class TestAssignVehicleRequest:

    DEPARTURE = datetime(2026, 11, 2, 6, 0, tzinfo=timezone.utc)

    def test_naive_times_are_utc(self):
        request = AssignVehicleRequest(
            vehicle_id="VH-07",
            estimated_departure="2026-11-02T06:00:00+00:00",
            estimated_arrival="2026-11-02T08:00:00"
        )

        assert request.estimated_departure == self.DEPARTURE
        assert request.estimated_arrival == datetime(2026, 11, 2, 8, 0, tzinfo=timezone.utc)

    def test_mixed_offsets_are_compared_as_instants(self):
        with pytest.raises(ValidationError) as exc_info:
            AssignVehicleRequest(
                vehicle_id="VH-07",
                estimated_departure="2026-11-02T06:00:00+00:00",
                estimated_arrival="2026-11-02T08:00:00+07:00"
            )

        assert "Estimated arrival must be after estimated departure" in str(exc_info.value)

    def test_travel_time_limit(self):
        with pytest.raises(ValidationError) as exc_info:
            AssignVehicleRequest(
                vehicle_id="VH-07",
                estimated_departure=self.DEPARTURE,
                estimated_arrival=self.DEPARTURE + timedelta(hours=24, minutes=1)
            )

        assert "Travel time cannot exceed 24 hours" in str(exc_info.value)

    def test_full_day_is_allowed(self):
        request = AssignVehicleRequest(
            vehicle_id="VH-07",
            estimated_departure=self.DEPARTURE,
            estimated_arrival=self.DEPARTURE + timedelta(hours=24)
        )

        assert request.estimated_arrival - request.estimated_departure == timedelta(hours=24)


class TestDemoRequestModels:

    @pytest.fixture
    def form(self):
        return {
            "organization_name": "Yayasan Gizi Nusantara",
            "organization_type": "YAYASAN",
            "pic_name": "Budi Santoso",
            "pic_email": "Budi@GiziNusantara.org",
            "pic_phone": "0812-9876-5432"
        }

    def test_email_is_normalised(self, form):
        request = CreateDemoRequestRequest(**form)

        assert request.pic_email == "budi@gizinusantara.org"
        assert request.demo_type == "STANDARD"
        assert request.estimated_duration == 14

    def test_invalid_email(self, form):
        form["pic_email"] = "budi-at-example"

        with pytest.raises(ValidationError) as exc_info:
            CreateDemoRequestRequest(**form)

        assert "Invalid email format" in str(exc_info.value)

    def test_invalid_phone(self, form):
        form["pic_phone"] = "0812-ABC-5432"

        with pytest.raises(ValidationError):
            CreateDemoRequestRequest(**form)

    def test_duration_bounds(self, form):
        with pytest.raises(ValidationError):
            CreateDemoRequestRequest(**form, estimated_duration=120)

    def test_stored_request_from_form(self, form):
        demo = DemoRequest(**CreateDemoRequestRequest(**form).model_dump())

        assert demo.status == "SUBMITTED"
        assert demo.is_converted is False

    def test_append_note(self, make_demo_request):
        demo = make_demo_request()

        demo.append_note("Telepon pertama")
        demo.append_note("Kirim proposal")

        assert demo.notes == "Telepon pertama\n\nKirim proposal"

    def test_rejection_reason_length(self):
        with pytest.raises(ValidationError):
            RejectDemoRequestRequest(rejection_reason="Tidak")


class TestSchoolRequest:

    def test_phone_format(self, sample_school_payload):
        sample_school_payload["contact_phone"] = "phone-number-x"

        with pytest.raises(ValidationError):
            CreateSchoolRequest(**sample_school_payload)

    def test_whitespace_is_stripped(self, sample_school_payload):
        sample_school_payload["school_name"] = "  SDN 02 Pulo Gebang  "

        assert CreateSchoolRequest(**sample_school_payload).school_name == "SDN 02 Pulo Gebang"


class TestAuditLogModel:

    def test_valid_audit_log(self):
        log = AuditLog(user_id=str(ObjectId()), entity="distribution_schedule",
                       entity_id=str(ObjectId()), action="status_change")

        assert log.schema_version == 1
        assert log.sppg_id is None

    def test_invalid_entity(self):
        with pytest.raises(ValidationError) as exc_info:
            AuditLog(user_id="u1", entity="warehouse", entity_id="e1", action="create")

        assert "Invalid entity type" in str(exc_info.value)

    def test_invalid_action(self):
        with pytest.raises(ValidationError):
            AuditLog(user_id="u1", entity="menu", entity_id="e1", action="launch")


class TestUserContext:

    def test_all_grants_everything(self):
        context = UserContext(user_id="u1", role="PLATFORM_SUPERADMIN", permissions=["ALL"])

        assert context.has_permission("DISTRIBUTION_MANAGE") is True
        assert context.is_platform_user() is True

    def test_sppg_user(self):
        context = UserContext(user_id="u1", role="SPPG_VIEWER", sppg_id="s1", permissions=["READ"])

        assert context.has_permission("WRITE") is False
        assert context.has_any_permission(["WRITE", "READ"]) is True
        assert context.is_platform_user() is False


class TestPaginationParams:

    def test_defaults(self):
        params = PaginationParams()

        assert params.page == 1
        assert params.page_size == 20

    def test_page_size_limit(self):
        with pytest.raises(ValidationError):
            PaginationParams(page_size=500)
