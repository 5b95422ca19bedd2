# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Integration tests for the menu plan review endpoints.
"""

from datetime import date
from bson import ObjectId

from models.enums import UserRole
from services.repositories import MENU_PLANS, to_document

from conftest import PROGRAM_ID, SPPG_ID, USER_ID

BASE_PATH = '/api/sppg/menu-plans'


class TestReadPlan:

    def test_get_plan(self, client, auth_headers, store, make_plan):
        plan = store(MENU_PLANS, make_plan())

        response = client.get(f'{BASE_PATH}/{plan.id}', headers=auth_headers(UserRole.SPPG_AHLI_GIZI.value))

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "DRAFT"
        assert len(data["assignments"]) == 2
        assert set(data["_links"]) == {"self", "metrics", "submit"}

    def test_metrics(self, client, auth_headers, store, make_plan):
        plan = store(MENU_PLANS, make_plan())

        data = client.get(f'{BASE_PATH}/{plan.id}/metrics', headers=auth_headers()).get_json()

        assert data["plan_id"] == plan.id
        assert data["total_days"] == 5
        assert data["total_planned_portions"] == 400
        assert data["total_estimated_cost"] == 4200000
        assert data["coverage_percentage"] == 40

    def test_unknown_plan(self, client, auth_headers):
        response = client.get(f'{BASE_PATH}/{ObjectId()}', headers=auth_headers())

        assert response.status_code == 404


class TestSubmitPlan:

    def test_submit(self, client, auth_headers, store, mock_mongo, make_plan):
        plan = store(MENU_PLANS, make_plan())

        response = client.post(f'{BASE_PATH}/{plan.id}/submit', headers=auth_headers(UserRole.SPPG_AHLI_GIZI.value))

        assert response.status_code == 200
        assert response.get_json()["status"] == "PENDING_REVIEW"
        collection, sppg_id, plan_id, document, user_id = mock_mongo.update_by_sppg.call_args.args
        assert (collection, sppg_id, plan_id, user_id) == (MENU_PLANS, SPPG_ID, plan.id, USER_ID)
        assert document["status"] == "PENDING_REVIEW"
        assert document["submittedBy"] == USER_ID

    def test_submit_empty_plan(self, client, auth_headers, store, make_plan):
        plan = store(MENU_PLANS, make_plan(assignments=[]))

        response = client.post(f'{BASE_PATH}/{plan.id}/submit', headers=auth_headers())

        assert response.status_code == 422
        assert response.get_json()["detail"] == (
            "Cannot submit empty plan. Please add at least one menu assignment."
        )


class TestReviewPlan:

    def test_nutritionist_cannot_approve(self, client, auth_headers, store, make_plan):
        plan = store(MENU_PLANS, make_plan(status="PENDING_REVIEW"))

        response = client.post(f'{BASE_PATH}/{plan.id}/approve', headers=auth_headers(UserRole.SPPG_AHLI_GIZI.value))

        assert response.status_code == 403
        assert response.get_json()["detail"] == "Only SPPG Kepala or Admin can approve plans"

    def test_approve_with_notes(self, client, auth_headers, store, make_plan):
        plan = store(MENU_PLANS, make_plan(status="PENDING_REVIEW", description="Menu bulan November"))

        response = client.post(f'{BASE_PATH}/{plan.id}/approve', json={"notes": "Porsi sayur cukup"},
                               headers=auth_headers())

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "APPROVED"
        assert data["approved_by"] == USER_ID
        assert data["description"] == "Menu bulan November\n\nApproval Notes: Porsi sayur cukup"
        assert "publish" in data["_links"]

    def test_approve_draft_conflicts(self, client, auth_headers, store, mock_mongo, make_plan):
        plan = store(MENU_PLANS, make_plan())

        response = client.post(f'{BASE_PATH}/{plan.id}/approve', headers=auth_headers())

        assert response.status_code == 409
        data = response.get_json()
        assert data["detail"].startswith("Cannot approve plan with status DRAFT")
        assert data["current_status"] == "DRAFT"
        assert data["allowed_transitions"] == ["PENDING_REVIEW"]
        mock_mongo.update_by_sppg.assert_not_called()

    def test_submit_approved_plan_conflicts(self, client, auth_headers, store, make_plan):
        plan = store(MENU_PLANS, make_plan(status="APPROVED"))

        response = client.post(f'{BASE_PATH}/{plan.id}/submit', headers=auth_headers())

        assert response.status_code == 409
        assert response.get_json()["allowed_transitions"] == ["ACTIVE"]

    def test_publish_pending_plan_conflicts(self, client, auth_headers, store, make_plan):
        plan = store(MENU_PLANS, make_plan(status="PENDING_REVIEW"))

        response = client.post(f'{BASE_PATH}/{plan.id}/publish', headers=auth_headers())

        assert response.status_code == 409
        assert response.get_json()["allowed_transitions"] == ["APPROVED", "DRAFT"]

    def test_reject(self, client, auth_headers, store, make_plan):
        plan = store(MENU_PLANS, make_plan(status="PENDING_REVIEW"))

        response = client.post(f'{BASE_PATH}/{plan.id}/reject',
                               json={"rejection_reason": "Biaya per porsi melebihi anggaran"},
                               headers=auth_headers(UserRole.SPPG_ADMIN.value))

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "DRAFT"
        assert data["rejection_reason"] == "Biaya per porsi melebihi anggaran"

    def test_reject_needs_reason(self, client, auth_headers, store, make_plan):
        plan = store(MENU_PLANS, make_plan(status="PENDING_REVIEW"))

        response = client.post(f'{BASE_PATH}/{plan.id}/reject', json={}, headers=auth_headers())

        assert response.status_code == 400


class TestPublishPlan:

    def test_publish(self, client, auth_headers, store, mock_mongo, make_plan):
        plan = store(MENU_PLANS, make_plan(status="APPROVED"))

        response = client.post(f'{BASE_PATH}/{plan.id}/publish', headers=auth_headers())

        assert response.status_code == 200
        assert response.get_json()["status"] == "ACTIVE"
        assert mock_mongo.find_by_sppg.call_args.args == (
            MENU_PLANS, SPPG_ID, {"programId": PROGRAM_ID, "status": "ACTIVE"}
        )

    def test_overlapping_active_plan(self, client, auth_headers, store, mock_mongo, make_plan):
        plan = store(MENU_PLANS, make_plan(status="APPROVED"))
        active = make_plan(status="ACTIVE", name="Rencana Menu Akhir Oktober",
                           start_date=date(2026, 10, 26), end_date=date(2026, 11, 3))
        mock_mongo.find_by_sppg.return_value = [to_document(active)]

        response = client.post(f'{BASE_PATH}/{plan.id}/publish', headers=auth_headers())

        assert response.status_code == 409
        assert response.get_json()["overlapping_plans"] == [{
            "id": active.id,
            "name": "Rencana Menu Akhir Oktober",
            "start_date": "2026-10-26",
            "end_date": "2026-11-03"
        }]
        mock_mongo.update_by_sppg.assert_not_called()
