#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create the MongoDB indexes used by the SPPG rules service.

Reads MONGODB_URI and MONGODB_DATABASE from the environment. Safe to run
repeatedly; existing indexes are left in place.
"""

import sys
import os
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from observability.config import setup_structured_logging
from services.mongodb import close_mongodb_connection, get_mongodb_service

logger = logging.getLogger("bagizi.scripts.create_indexes")


def main() -> int:
    setup_structured_logging(os.getenv('ENVIRONMENT', 'development'))
    mongodb_service = get_mongodb_service()

    try:
        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error("MongoDB is not reachable", extra={"health": health})
            return 1

        logger.info(
            "Connected to MongoDB",
            extra={"mongodb_version": health.get('version'), "database": health.get('database')}
        )
        mongodb_service.create_indexes()
        return 0
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    sys.exit(main())
