# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin, urlencode
import math

from models.responses import HalLink
from models.enums import MenuPlanStatus, PermissionType

PROBLEM_BASE_URI = "https://api.bagizi.id/problems"


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        return self.build_link(collection_path, title="Collection")

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "POST",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        return self.build_link(
            f"{resource_path}/{action}",
            method=method,
            content_type="application/json",
            title=title or action.replace('-', ' ').title()
        )


class PaginationLinkBuilder:
    """Builder for pagination links in HAL collections."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def _page_link(self, base_path: str, params: Dict[str, Any], page: int,
                   page_size: int, title: str) -> HalLink:
        query = urlencode({**params, 'page': page, 'page_size': page_size})
        return self.link_builder.build_link(f"{base_path}?{query}", title=title)

    def build_pagination_links(
        self,
        base_path: str,
        current_page: int,
        total_pages: int,
        page_size: int,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, HalLink]:
        """Build self/first/prev/next/last links for a collection page."""
        params = {k: v for k, v in (query_params or {}).items() if v is not None}
        links = {'self': self._page_link(base_path, params, current_page, page_size, "Current page")}

        if current_page > 1:
            links['first'] = self._page_link(base_path, params, 1, page_size, "First page")
            links['prev'] = self._page_link(base_path, params, current_page - 1, page_size, "Previous page")

        if current_page < total_pages:
            links['next'] = self._page_link(base_path, params, current_page + 1, page_size, "Next page")
            links['last'] = self._page_link(base_path, params, total_pages, page_size, "Last page")

        return links


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on permissions and state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_menu_affordances(self, menu_id: str, user_permissions: List[str]) -> Dict[str, HalLink]:
        links = {}
        base_path = f"/api/sppg/menus/{menu_id}"

        links['self'] = self.link_builder.build_self_link(base_path)

        if _granted(user_permissions, PermissionType.MENU_MANAGE):
            links['calculate_nutrition'] = self.link_builder.build_action_link(
                base_path, "calculate-nutrition", title="Hitung Nutrisi"
            )
            links['calculate_cost'] = self.link_builder.build_action_link(
                base_path, "calculate-cost", title="Hitung Biaya"
            )

        return links

    def build_schedule_affordances(
        self,
        schedule_id: str,
        available_actions: List[Dict[str, Any]],
        can_assign_vehicle: bool,
        user_permissions: List[str]
    ) -> Dict[str, HalLink]:
        """
        Build links for a distribution schedule.

        One ``status:<TARGET>`` link is emitted per enabled status action;
        disabled actions are left out.
        """
        links = {}
        base_path = f"/api/sppg/distribution/schedules/{schedule_id}"

        links['self'] = self.link_builder.build_self_link(base_path)
        links['actions'] = self.link_builder.build_link(f"{base_path}/actions", title="Available actions")

        if not _granted(user_permissions, PermissionType.DISTRIBUTION_MANAGE):
            return links

        for action in available_actions:
            if not action.get("enabled", True):
                continue
            links[f"status:{action['target_status']}"] = self.link_builder.build_link(
                f"{base_path}/status",
                method="PATCH",
                content_type="application/json",
                title=action["label"]
            )

        if can_assign_vehicle:
            links['assign_vehicle'] = self.link_builder.build_action_link(
                base_path, "vehicles", title="Tugaskan Kendaraan"
            )

        return links

    def build_demo_request_affordances(self, request_id: str, allowed_actions: List[str]) -> Dict[str, HalLink]:
        """Build links for the workflow actions the request's status allows."""
        links = {}
        base_path = f"/api/admin/demo-requests/{request_id}"

        links['self'] = self.link_builder.build_self_link(base_path)
        links['analytics'] = self.link_builder.build_link(
            "/api/admin/demo-requests/analytics", title="Demo analytics"
        )

        for action in allowed_actions:
            if action in ("view", "edit"):
                continue
            if action == "delete":
                links['delete'] = self.link_builder.build_link(base_path, method="DELETE", title="Delete")
            else:
                links[action] = self.link_builder.build_action_link(base_path, action)

        if "convert" in allowed_actions:
            links['attendance'] = self.link_builder.build_action_link(
                base_path, "attendance", title="Record attendance"
            )

        return links

    def build_menu_plan_affordances(
        self,
        plan_id: str,
        plan_status: str,
        can_review: bool
    ) -> Dict[str, HalLink]:
        links = {}
        base_path = f"/api/sppg/menu-plans/{plan_id}"

        links['self'] = self.link_builder.build_self_link(base_path)
        links['metrics'] = self.link_builder.build_link(f"{base_path}/metrics", title="Plan metrics")

        if plan_status == MenuPlanStatus.DRAFT:
            links['submit'] = self.link_builder.build_action_link(base_path, "submit", title="Submit for review")
        elif plan_status == MenuPlanStatus.PENDING_REVIEW and can_review:
            links['approve'] = self.link_builder.build_action_link(base_path, "approve")
            links['reject'] = self.link_builder.build_action_link(base_path, "reject")
        elif plan_status == MenuPlanStatus.APPROVED and can_review:
            links['publish'] = self.link_builder.build_action_link(base_path, "publish")

        return links

    def build_school_affordances(self, school_id: str, user_permissions: List[str]) -> Dict[str, HalLink]:
        links = {
            'self': self.link_builder.build_self_link(f"/api/sppg/schools/{school_id}"),
            'collection': self.link_builder.build_collection_link("/api/sppg/schools")
        }
        if _granted(user_permissions, PermissionType.SCHOOL_MANAGE):
            links['validate'] = self.link_builder.build_link(
                "/api/sppg/schools/validate", method="POST", content_type="application/json",
                title="Validate school data"
            )
        return links


def _granted(user_permissions: List[str], permission: PermissionType) -> bool:
    return PermissionType.ALL.value in user_permissions or permission.value in user_permissions


def _dump_links(links: Dict[str, HalLink]) -> Dict[str, Dict[str, Any]]:
    return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.pagination_builder = PaginationLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        response = dict(data)
        response['_links'] = _dump_links(links)
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response with pagination links."""
        total_pages = max(1, math.ceil(total / page_size)) if page_size > 0 else 1

        pagination_links = self.pagination_builder.build_pagination_links(
            collection_path,
            page,
            total_pages,
            page_size,
            query_params
        )

        return {
            'total': total,
            'page': page,
            'page_size': page_size,
            'total_pages': total_pages,
            '_links': _dump_links(pagination_links),
            '_embedded': {
                'items': items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Any]] = None,
        extensions: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URI}/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        if extensions:
            for key, value in extensions.items():
                error_response.setdefault(key, value)

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }
        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link("/openapi/openapi.json", title="API schema")

        error_response['_links'] = _dump_links(links)
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    @property
    def affordances(self) -> AffordanceLinkBuilder:
        return self.builder.affordance_builder

    def format_menu_calculation(self, menu_id: str, data: Dict[str, Any],
                                user_permissions: List[str]) -> Dict[str, Any]:
        links = self.affordances.build_menu_affordances(menu_id, user_permissions)
        return self.builder.build_resource_response(data, links)

    def format_schedule(
        self,
        schedule: Dict[str, Any],
        available_actions: List[Dict[str, Any]],
        can_assign_vehicle: bool,
        user_permissions: List[str]
    ) -> Dict[str, Any]:
        links = self.affordances.build_schedule_affordances(
            schedule['id'], available_actions, can_assign_vehicle, user_permissions
        )
        return self.builder.build_resource_response(schedule, links)

    def format_demo_request(self, demo_request: Dict[str, Any], allowed_actions: List[str]) -> Dict[str, Any]:
        links = self.affordances.build_demo_request_affordances(demo_request['id'], allowed_actions)
        response = self.builder.build_resource_response(demo_request, links)
        response['allowed_actions'] = allowed_actions
        return response

    def format_menu_plan(self, plan: Dict[str, Any], can_review: bool) -> Dict[str, Any]:
        links = self.affordances.build_menu_plan_affordances(plan['id'], plan['status'], can_review)
        return self.builder.build_resource_response(plan, links)

    def format_school(self, school: Dict[str, Any], user_permissions: List[str]) -> Dict[str, Any]:
        links = self.affordances.build_school_affordances(school['id'], user_permissions)
        return self.builder.build_resource_response(school, links)

    def format_school_collection(
        self,
        schools: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        user_permissions: List[str],
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        items = [self.format_school(school, user_permissions) for school in schools]
        return self.builder.build_collection_response(
            items, total, page, page_size, "/api/sppg/schools", filters
        )

    def format_resource(self, data: Dict[str, Any], path: str) -> Dict[str, Any]:
        """Format a resource that only carries a self link."""
        return self.builder.build_resource_response(data, {'self': self.builder.link_builder.build_self_link(path)})

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Any]
    ) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "validation-error", "Validation Error", 400, detail, instance, validation_errors
        )

    def format_authentication_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "authentication-required", "Authentication Required", 401, detail, instance
        )

    def format_authorization_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "insufficient-permissions", "Insufficient Permissions", 403, detail, instance
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "resource-not-found", "Resource Not Found", 404, detail, instance
        )

    def format_conflict_error(self, detail: str, instance: str,
                              extensions: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "resource-conflict", "Resource Conflict", 409, detail, instance, extensions=extensions
        )

    def format_business_rule_error(
        self,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Any]] = None,
        extensions: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format a workflow or business rule violation (422)."""
        return self.builder.build_error_response(
            "business-rule-violation", "Business Rule Violation", 422, detail, instance,
            validation_errors, extensions
        )

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "internal-server-error", "Internal Server Error", 500, detail, instance
        )


def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
