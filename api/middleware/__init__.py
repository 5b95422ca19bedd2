# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains middleware components for authentication, tenant
scoping, request parsing and problem+json error handling in the Bagizi
SPPG API.
"""
