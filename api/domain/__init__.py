# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the Bagizi SPPG platform.

This package contains pure business logic functions with no side effects:
nutrition and cost aggregation, workflow status guards, and cross-field
validation. Everything here is testable without a database or HTTP context.
"""
