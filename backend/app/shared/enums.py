from __future__ import annotations

from enum import Enum


class Env(str, Enum):
    dev = "dev"
    prod = "prod"
    test = "test"


class Role(str, Enum):
    GP = "gp"
    OPERATIONS = "operations"
    ADMIN = "admin"


STAFF_ROLES: frozenset[Role] = frozenset({Role.OPERATIONS, Role.ADMIN})
