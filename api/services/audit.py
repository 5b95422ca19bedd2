# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Audit service for action logging with OpenTelemetry correlation.
"""

import logging
from typing import Dict, List, Optional, Any
from opentelemetry import trace

from .mongodb import MongoDBService
from models.entities import AuditLog, UserContext

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

IGNORED_CHANGE_FIELDS = ("updatedAt", "updatedBy", "_id", "id")


class AuditService:
    """Writes audit entries for every workflow transition and calculation."""

    def __init__(self, mongo_service: MongoDBService):
        self.mongo_service = mongo_service
        self.collection_name = "audit_logs"

    def log_action(
        self,
        user_context: UserContext,
        entity: str,
        entity_id: str,
        action: str,
        description: Optional[str] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        sppg_id: Optional[str] = None
    ) -> str:
        """
        Log an audit trail entry with trace correlation and structured logging.

        Args:
            user_context: Acting user with request details
            entity: Type of entity being acted upon
            entity_id: ID of the specific entity
            action: Action being performed
            description: Human-readable summary
            before: State before the action (optional)
            after: State after the action (optional)
            sppg_id: Tenant scope, defaults to the user's SPPG

        Returns:
            str: ID of the created audit log entry
        """
        with tracer.start_as_current_span("audit.log_action") as span:
            span_context = span.get_span_context()

            entry = AuditLog(
                user_id=user_context.user_id,
                sppg_id=sppg_id or user_context.sppg_id,
                entity=entity,
                entity_id=entity_id,
                action=action,
                description=description,
                before=before,
                after=after,
                ip_address=user_context.ip_address,
                user_agent=user_context.user_agent
            )

            if span_context.is_valid:
                entry.trace_id = format(span_context.trace_id, "032x")
                entry.span_id = format(span_context.span_id, "016x")

            span.set_attributes({
                "audit.entity": entity,
                "audit.action": action,
                "audit.user_id": user_context.user_id,
                "audit.entity_id": entity_id
            })

            try:
                audit_id = self.mongo_service.create(
                    self.collection_name,
                    entry.model_dump(by_alias=True),
                    user_context.user_id
                )
            except Exception as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                logger.error(
                    "Failed to create audit trail entry",
                    extra={"entity": entity, "entity_id": entity_id, "action": action,
                           "user_id": user_context.user_id, "error": str(e)},
                    exc_info=True
                )
                raise

            changes_count = len(self.calculate_changes(before, after)) if before and after else 0

            logger.info(
                "Audit trail entry created",
                extra={
                    "audit_id": audit_id,
                    "entity": entity,
                    "entity_id": entity_id,
                    "action": action,
                    "user_id": user_context.user_id,
                    "sppg_id": entry.sppg_id,
                    "trace_id": entry.trace_id,
                    "changes_count": changes_count,
                    "audit_category": "business_action"
                }
            )

            return audit_id

    @staticmethod
    def calculate_changes(before: Dict[str, Any], after: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Field-level differences between two document states."""
        changes = []

        for key in sorted(set(before.keys()) | set(after.keys())):
            if key in IGNORED_CHANGE_FIELDS:
                continue

            old_value = before.get(key)
            new_value = after.get(key)
            if old_value != new_value:
                changes.append({"field": key, "old_value": old_value, "new_value": new_value})

        return changes
