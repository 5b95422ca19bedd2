# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for HAL response formatting utilities.
"""

import pytest
from services.hal import (
    HalLinkBuilder, PaginationLinkBuilder, AffordanceLinkBuilder,
    HalResponseBuilder, HalFormatter, create_hal_formatter
)
from models.responses import HalLink

BASE_URL = "https://api.bagizi.id"
SCHEDULE_PATH = f"{BASE_URL}/api/sppg/distribution/schedules/sch-1"


class TestHalLinkBuilder:
    """Test HAL link builder functionality."""

    def test_build_basic_link(self):
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_link("/api/sppg/menus/123")

        assert isinstance(link, HalLink)
        assert link.href == "https://api.bagizi.id/api/sppg/menus/123"
        assert link.method == "GET"
        assert link.type is None
        assert link.templated is None

    def test_trailing_slash_in_base_url(self):
        builder = HalLinkBuilder("https://api.bagizi.id/")

        assert builder.build_link("api/sppg/schools").href == "https://api.bagizi.id/api/sppg/schools"

    def test_build_action_link(self):
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_action_link("/api/sppg/menus/123", "calculate-cost")

        assert link.href == "https://api.bagizi.id/api/sppg/menus/123/calculate-cost"
        assert link.method == "POST"
        assert link.type == "application/json"
        assert link.title == "Calculate Cost"


class TestPaginationLinkBuilder:

    def test_middle_page(self):
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links("/api/sppg/schools", 2, 3, 20, {"search": "cakung", "type": None})

        assert set(links) == {"self", "first", "prev", "next", "last"}
        assert links["self"].href == f"{BASE_URL}/api/sppg/schools?search=cakung&page=2&page_size=20"
        assert links["last"].href.endswith("page=3&page_size=20")

    def test_single_page(self):
        links = PaginationLinkBuilder(BASE_URL).build_pagination_links("/api/sppg/schools", 1, 1, 20)

        assert set(links) == {"self"}


class TestScheduleAffordances:

    @pytest.fixture
    def builder(self):
        return AffordanceLinkBuilder(BASE_URL)

    def test_enabled_actions_become_status_links(self, builder):
        actions = [
            {"target_status": "IN_PROGRESS", "label": "Mulai Distribusi", "enabled": False},
            {"target_status": "CANCELLED", "label": "Batalkan", "enabled": True},
        ]

        links = builder.build_schedule_affordances("sch-1", actions, True, ["READ", "DISTRIBUTION_MANAGE"])

        assert "status:IN_PROGRESS" not in links
        assert links["status:CANCELLED"].href == f"{SCHEDULE_PATH}/status"
        assert links["status:CANCELLED"].method == "PATCH"
        assert links["assign_vehicle"].href == f"{SCHEDULE_PATH}/vehicles"

    def test_read_only_user_gets_navigation_links(self, builder):
        actions = [{"target_status": "PREPARED", "label": "Siapkan Distribusi", "enabled": True}]

        links = builder.build_schedule_affordances("sch-1", actions, True, ["READ"])

        assert set(links) == {"self", "actions"}

    def test_vehicle_link_follows_flag(self, builder):
        links = builder.build_schedule_affordances("sch-1", [], False, ["ALL"])

        assert "assign_vehicle" not in links


class TestOtherAffordances:

    @pytest.fixture
    def builder(self):
        return AffordanceLinkBuilder(BASE_URL)

    def test_menu_links_need_menu_manage(self, builder):
        assert set(builder.build_menu_affordances("m1", ["READ"])) == {"self"}
        assert set(builder.build_menu_affordances("m1", ["MENU_MANAGE"])) == {
            "self", "calculate_nutrition", "calculate_cost"
        }

    @pytest.mark.parametrize("status,can_review,expected", [
        ("DRAFT", False, {"self", "metrics", "submit"}),
        ("PENDING_REVIEW", True, {"self", "metrics", "approve", "reject"}),
        ("PENDING_REVIEW", False, {"self", "metrics"}),
        ("APPROVED", True, {"self", "metrics", "publish"}),
        ("ACTIVE", True, {"self", "metrics"}),
    ])
    def test_menu_plan_links(self, builder, status, can_review, expected):
        assert set(builder.build_menu_plan_affordances("p1", status, can_review)) == expected

    def test_demo_request_links(self, builder):
        links = builder.build_demo_request_affordances("d1", ["view", "edit", "assign", "convert"])

        assert set(links) == {"self", "analytics", "assign", "convert", "attendance"}
        assert links["convert"].href == f"{BASE_URL}/api/admin/demo-requests/d1/convert"

    def test_demo_request_delete_link(self, builder):
        links = builder.build_demo_request_affordances("d1", ["view", "edit", "delete"])

        assert links["delete"].method == "DELETE"
        assert links["delete"].href == f"{BASE_URL}/api/admin/demo-requests/d1"
        assert "attendance" not in links


class TestHalResponseBuilder:

    def test_collection_response(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_collection_response([{"id": "a"}], 41, 1, 20, "/api/sppg/schools")

        assert response["total"] == 41
        assert response["total_pages"] == 3
        assert response["_embedded"]["items"] == [{"id": "a"}]
        assert "next" in response["_links"]

    def test_empty_collection_has_one_page(self):
        response = HalResponseBuilder(BASE_URL).build_collection_response([], 0, 1, 20, "/api/sppg/schools")

        assert response["total_pages"] == 1

    def test_error_response(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_error_response(
            "resource-conflict", "Resource Conflict", 409, "Invalid status transition",
            "/api/sppg/distribution/schedules/sch-1/status",
            extensions={"allowed_transitions": ["PREPARED", "CANCELLED"], "status": 500}
        )

        assert response["type"] == "https://api.bagizi.id/problems/resource-conflict"
        assert response["status"] == 409
        assert response["allowed_transitions"] == ["PREPARED", "CANCELLED"]
        assert response["_links"]["help"]["href"] == f"{BASE_URL}/docs/errors#resource-conflict"
        assert "schema" not in response["_links"]

    def test_validation_error_links_schema(self):
        formatter = HalFormatter(BASE_URL)

        response = formatter.format_validation_error("Invalid request body", "/api/sppg/schools",
                                                     [{"field": "total_students"}])

        assert response["status"] == 400
        assert response["errors"] == [{"field": "total_students"}]
        assert response["_links"]["schema"]["href"] == f"{BASE_URL}/openapi/openapi.json"


class TestHalFormatter:

    @pytest.fixture
    def formatter(self):
        return create_hal_formatter(BASE_URL)

    def test_format_schedule(self, formatter):
        schedule = {"id": "sch-1", "status": "PLANNED"}
        actions = [{"target_status": "PREPARED", "label": "Siapkan Distribusi", "enabled": True}]

        response = formatter.format_schedule(schedule, actions, True, ["DISTRIBUTION_MANAGE"])

        assert response["status"] == "PLANNED"
        assert response["_links"]["self"] == {"href": SCHEDULE_PATH, "method": "GET", "title": "Self"}
        assert "status:PREPARED" in response["_links"]
        assert "_links" not in schedule

    def test_format_demo_request_lists_actions(self, formatter):
        response = formatter.format_demo_request({"id": "d1", "status": "CONVERTED"}, ["view"])

        assert response["allowed_actions"] == ["view"]
        assert set(response["_links"]) == {"self", "analytics"}

    def test_format_school_collection(self, formatter):
        response = formatter.format_school_collection(
            [{"id": "s1"}, {"id": "s2"}], 2, 1, 20, ["SCHOOL_MANAGE"], {"program_id": "p1"}
        )

        items = response["_embedded"]["items"]
        assert [item["id"] for item in items] == ["s1", "s2"]
        assert "validate" in items[0]["_links"]
        assert response["_links"]["self"]["href"].endswith("program_id=p1&page=1&page_size=20")
