# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Integration tests for the distribution schedule endpoints.
"""

import pytest
from datetime import datetime, timedelta, timezone
from bson import ObjectId

from models.enums import UserRole
from services.repositories import CALCULATIONS, SCHEDULES

from conftest import SPPG_ID

BASE_PATH = '/api/sppg/distribution/schedules'


def _today():
    return datetime.now(timezone.utc).date()


@pytest.fixture
def schedule_payload():
    return {
        "distribution_date": (_today() + timedelta(days=3)).isoformat(),
        "wave": "MORNING",
        "target_categories": ["ELEMENTARY_GRADE_1_3", "ELEMENTARY_GRADE_4_6"],
        "estimated_beneficiaries": 250,
        "menu_name": "Nasi Ayam Sayur",
        "portion_size": 350,
        "total_portions": 260,
        "packaging_type": "Ompreng",
        "delivery_method": "Mobil boks",
        "distribution_team": ["driver-1", "helper-1"]
    }


class TestCreateSchedule:

    def test_create_schedule(self, client, auth_headers, mock_mongo, schedule_payload):
        response = client.post(BASE_PATH, json=schedule_payload, headers=auth_headers())

        assert response.status_code == 201
        data = response.get_json()
        assert data["status"] == "PLANNED"
        assert data["sppg_id"] == SPPG_ID
        assert data["total_portions"] == 260
        assert "assign_vehicle" in data["_links"]
        assert "status:CANCELLED" in data["_links"]
        assert "status:PREPARED" in data["_links"]

        collections = [call.args[0] for call in mock_mongo.create.call_args_list]
        assert collections == [SCHEDULES, "audit_logs"]

    def test_past_date(self, client, auth_headers, schedule_payload):
        schedule_payload["distribution_date"] = (_today() - timedelta(days=1)).isoformat()

        response = client.post(BASE_PATH, json=schedule_payload, headers=auth_headers())

        assert response.status_code == 422
        assert response.get_json()["errors"] == ["Tanggal distribusi tidak boleh di masa lalu"]

    def test_unknown_menu(self, client, auth_headers, schedule_payload):
        schedule_payload["menu_id"] = str(ObjectId())

        response = client.post(BASE_PATH, json=schedule_payload, headers=auth_headers())

        assert response.status_code == 404

    def test_portions_below_beneficiaries(self, client, auth_headers, schedule_payload):
        schedule_payload["total_portions"] = 100

        response = client.post(BASE_PATH, json=schedule_payload, headers=auth_headers())

        assert response.status_code == 400
        assert response.get_json()["type"].endswith("/validation-error")

    def test_admin_cannot_manage_distribution(self, client, auth_headers, schedule_payload):
        response = client.post(BASE_PATH, json=schedule_payload,
                               headers=auth_headers(UserRole.SPPG_ADMIN.value))

        assert response.status_code == 403


class TestReadSchedule:

    def test_get_schedule(self, client, auth_headers, store, make_schedule):
        schedule = store(SCHEDULES, make_schedule())

        response = client.get(f'{BASE_PATH}/{schedule.id}', headers=auth_headers(UserRole.SPPG_VIEWER.value))

        assert response.status_code == 200
        data = response.get_json()
        assert data["id"] == schedule.id
        assert set(data["_links"]) == {"self", "actions"}

    def test_schedule_of_other_sppg_is_hidden(self, client, auth_headers, store, make_schedule):
        schedule = store(SCHEDULES, make_schedule(sppg_id=str(ObjectId())))

        response = client.get(f'{BASE_PATH}/{schedule.id}', headers=auth_headers())

        assert response.status_code == 404

    def test_actions(self, client, auth_headers, store, make_schedule):
        schedule = store(SCHEDULES, make_schedule())

        response = client.get(f'{BASE_PATH}/{schedule.id}/actions', headers=auth_headers())

        assert response.status_code == 200
        data = response.get_json()
        assert data["allowed_transitions"] == ["PREPARED", "CANCELLED"]
        prepare, cancel = data["actions"]
        assert prepare["enabled"] is True
        assert prepare["label"] == "Siapkan Distribusi"
        assert cancel["requires_reason"] is True


class TestUpdateStatus:

    def test_invalid_transition_is_conflict(self, client, auth_headers, store, make_schedule):
        schedule = store(SCHEDULES, make_schedule())

        response = client.patch(f'{BASE_PATH}/{schedule.id}/status', json={"status": "COMPLETED"},
                                headers=auth_headers())

        assert response.status_code == 409
        data = response.get_json()
        assert data["allowed_transitions"] == ["PREPARED", "CANCELLED"]
        assert data["errors"] == ["Tidak dapat mengubah status dari PLANNED ke COMPLETED"]

    def test_failed_precondition(self, client, auth_headers, store, make_schedule):
        schedule = store(SCHEDULES, make_schedule())

        response = client.patch(f'{BASE_PATH}/{schedule.id}/status', json={"status": "PREPARED"},
                                headers=auth_headers())

        assert response.status_code == 422
        assert response.get_json()["errors"] == ["Minimal harus ada 1 kendaraan yang ditugaskan"]

    def test_prepare_schedule(self, client, auth_headers, store, mock_mongo, make_schedule, vehicle_assignment):
        schedule = store(SCHEDULES, make_schedule(vehicle_assignments=[vehicle_assignment()]))

        response = client.patch(f'{BASE_PATH}/{schedule.id}/status', json={"status": "PREPARED"},
                                headers=auth_headers())

        assert response.status_code == 200
        assert response.get_json()["status"] == "PREPARED"

        collection, sppg_id, schedule_id, document, _ = mock_mongo.update_by_sppg.call_args.args
        assert (collection, sppg_id, schedule_id) == (SCHEDULES, SPPG_ID, schedule.id)
        assert document["status"] == "PREPARED"

    def test_cancel_stores_reason(self, client, auth_headers, store, mock_mongo, make_schedule):
        schedule = store(SCHEDULES, make_schedule())

        response = client.patch(f'{BASE_PATH}/{schedule.id}/status',
                                json={"status": "CANCELLED", "reason": "Sekolah diliburkan karena banjir"},
                                headers=auth_headers())

        assert response.status_code == 200
        document = mock_mongo.update_by_sppg.call_args.args[3]
        assert document["cancellationReason"] == "Sekolah diliburkan karena banjir"

    def test_unknown_status(self, client, auth_headers, store, make_schedule):
        schedule = store(SCHEDULES, make_schedule())

        response = client.patch(f'{BASE_PATH}/{schedule.id}/status', json={"status": "LOST"},
                                headers=auth_headers())

        assert response.status_code == 400


class TestAssignVehicle:

    @pytest.fixture
    def vehicle_payload(self):
        departure = datetime.now(timezone.utc) + timedelta(days=2)
        return {
            "vehicle_id": "VH-07",
            "driver_id": "driver-7",
            "estimated_departure": departure.isoformat(),
            "estimated_arrival": (departure + timedelta(hours=2)).isoformat()
        }

    def test_assign_vehicle(self, client, auth_headers, store, mock_mongo, make_schedule, vehicle_payload):
        schedule = store(SCHEDULES, make_schedule())

        response = client.post(f'{BASE_PATH}/{schedule.id}/vehicles', json=vehicle_payload, headers=auth_headers())

        assert response.status_code == 200
        assignments = response.get_json()["vehicle_assignments"]
        assert [a["vehicle_id"] for a in assignments] == ["VH-07"]

        filters = mock_mongo.find_by_sppg.call_args.args[2]
        assert filters["vehicleAssignments.vehicleId"] == "VH-07"
        assert filters["distributionDate"] == schedule.distribution_date.isoformat()

    def test_vehicle_booked_elsewhere(self, client, auth_headers, store, mock_mongo, make_schedule,
                                      vehicle_assignment, vehicle_payload):
        schedule = store(SCHEDULES, make_schedule())
        other = make_schedule(vehicle_assignments=[vehicle_assignment("VH-07")])
        mock_mongo.find_by_sppg.return_value = [other.model_dump(by_alias=True)]

        response = client.post(f'{BASE_PATH}/{schedule.id}/vehicles', json=vehicle_payload, headers=auth_headers())

        assert response.status_code == 422
        assert response.get_json()["errors"] == [
            f"Kendaraan sudah digunakan pada jadwal {other.id} di tanggal yang sama"
        ]

    def test_arrival_before_departure(self, client, auth_headers, store, make_schedule, vehicle_payload):
        schedule = store(SCHEDULES, make_schedule())
        vehicle_payload["estimated_arrival"], vehicle_payload["estimated_departure"] = (
            vehicle_payload["estimated_departure"], vehicle_payload["estimated_arrival"]
        )

        response = client.post(f'{BASE_PATH}/{schedule.id}/vehicles', json=vehicle_payload, headers=auth_headers())

        assert response.status_code == 400

    def test_naive_arrival_with_aware_departure(self, client, auth_headers, store, make_schedule,
                                                vehicle_payload):
        schedule = store(SCHEDULES, make_schedule())
        departure = datetime.fromisoformat(vehicle_payload["estimated_departure"])
        vehicle_payload["estimated_arrival"] = (departure + timedelta(hours=2)).replace(tzinfo=None).isoformat()

        response = client.post(f'{BASE_PATH}/{schedule.id}/vehicles', json=vehicle_payload, headers=auth_headers())

        assert response.status_code == 200
        assert response.get_json()["vehicle_assignments"][0]["vehicle_id"] == "VH-07"

    def test_naive_arrival_before_departure(self, client, auth_headers, store, make_schedule, vehicle_payload):
        schedule = store(SCHEDULES, make_schedule())
        departure = datetime.fromisoformat(vehicle_payload["estimated_departure"])
        vehicle_payload["estimated_arrival"] = (departure - timedelta(hours=1)).replace(tzinfo=None).isoformat()

        response = client.post(f'{BASE_PATH}/{schedule.id}/vehicles', json=vehicle_payload, headers=auth_headers())

        assert response.status_code == 400

    def test_travel_time_over_a_day(self, client, auth_headers, store, make_schedule, vehicle_payload):
        schedule = store(SCHEDULES, make_schedule())
        departure = datetime.fromisoformat(vehicle_payload["estimated_departure"])
        vehicle_payload["estimated_arrival"] = (departure + timedelta(hours=25)).isoformat()

        response = client.post(f'{BASE_PATH}/{schedule.id}/vehicles', json=vehicle_payload, headers=auth_headers())

        assert response.status_code == 400


class TestCostAnalysis:

    def test_cost_analysis(self, client, auth_headers, store, mock_mongo, make_schedule):
        menu_id = str(ObjectId())
        schedule = store(SCHEDULES, make_schedule(menu_id=menu_id))

        def find_by_sppg(collection, sppg_id, filters=None):
            if collection == CALCULATIONS:
                return [{"menuId": menu_id, "kind": "cost", "result": {"cost_per_portion": 10000}}]
            return []

        mock_mongo.find_by_sppg.side_effect = find_by_sppg

        response = client.get(
            f'{BASE_PATH}/{schedule.id}/cost-analysis?actual_production_cost=2310000&transport_cost=100000',
            headers=auth_headers(UserRole.SPPG_AKUNTAN.value)
        )

        assert response.status_code == 200
        data = response.get_json()
        costs = data["costs"]
        assert costs["production"]["estimated"] == 2100000
        assert costs["production"]["total"] == 2310000
        assert costs["distribution"]["total"] == 255000
        assert costs["grand_total"] == 2565000
        assert data["variance"]["amount"] == 210000
        assert data["variance"]["percentage"] == pytest.approx(10)
        assert data["budget_status"] == {"label": "Sedikit Over Budget", "color": "warning"}
        assert data["trends"]["trend"] == "stable"

    def test_without_actual_costs(self, client, auth_headers, store, make_schedule):
        schedule = store(SCHEDULES, make_schedule())

        response = client.get(f'{BASE_PATH}/{schedule.id}/cost-analysis', headers=auth_headers())

        data = response.get_json()
        assert data["variance"] is None
        assert data["budget_status"] is None
        assert data["costs"]["grand_total"] == 155000

    def test_negative_cost_rejected(self, client, auth_headers, store, make_schedule):
        schedule = store(SCHEDULES, make_schedule())

        response = client.get(f'{BASE_PATH}/{schedule.id}/cost-analysis?transport_cost=-5',
                              headers=auth_headers())

        assert response.status_code == 400
