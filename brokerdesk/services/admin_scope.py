# brokerdesk/services/admin_scope.py

"""
Role-scoped visibility for admin listings.

An authenticated admin is represented by one of three identity variants. Every
admin-facing listing narrows its rows through ``scope_filter`` so that a middle
admin only ever sees entities owned by users in their assigned countries.

Normal admins currently get the same unfiltered view as super admins. That
mirrors how the back-office has always behaved and is tracked as an open
product question; callers that need tighter scoping must not rely on this
module to restrict normal admins.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, TypeVar, Union, assert_never

T = TypeVar("T")


class AdminRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    MIDDLE_ADMIN = "middle_admin"
    NORMAL_ADMIN = "normal_admin"


@dataclass(frozen=True)
class SuperAdmin:
    admin_id: int

    def filter(self, entities: Iterable[T], country_of: Callable[[T], Optional[str]]) -> list[T]:
        return scope_filter(self, entities, country_of)

    def can_see(self, country: Optional[str]) -> bool:
        return can_see_country(self, country)


@dataclass(frozen=True)
class MiddleAdmin:
    admin_id: int
    countries: frozenset[str] = field(default_factory=frozenset)

    def filter(self, entities: Iterable[T], country_of: Callable[[T], Optional[str]]) -> list[T]:
        return scope_filter(self, entities, country_of)

    def can_see(self, country: Optional[str]) -> bool:
        return can_see_country(self, country)


@dataclass(frozen=True)
class NormalAdmin:
    admin_id: int

    def filter(self, entities: Iterable[T], country_of: Callable[[T], Optional[str]]) -> list[T]:
        return scope_filter(self, entities, country_of)

    def can_see(self, country: Optional[str]) -> bool:
        return can_see_country(self, country)


AdminIdentity = Union[SuperAdmin, MiddleAdmin, NormalAdmin]


def identity_for(admin_id: int, role: str, countries: Iterable[str] = ()) -> AdminIdentity:
    """
    Builds the identity variant for a stored admin role.
    Raises ValueError for a role string this service does not know.
    """
    match AdminRole(role):
        case AdminRole.SUPER_ADMIN:
            return SuperAdmin(admin_id)
        case AdminRole.MIDDLE_ADMIN:
            return MiddleAdmin(admin_id, frozenset(countries))
        case AdminRole.NORMAL_ADMIN:
            return NormalAdmin(admin_id)
        case unreachable:
            assert_never(unreachable)


def can_see_country(identity: AdminIdentity, country: Optional[str]) -> bool:
    match identity:
        case SuperAdmin():
            return True
        case MiddleAdmin(countries=countries):
            # Entities without a resolvable country are hidden from middle admins
            return country is not None and country in countries
        case NormalAdmin():
            return True
        case unreachable:
            assert_never(unreachable)


def scope_filter(
    identity: AdminIdentity,
    entities: Iterable[T],
    country_of: Callable[[T], Optional[str]],
) -> list[T]:
    """Returns the subset of ``entities`` the admin may see, preserving order."""
    match identity:
        case SuperAdmin() | NormalAdmin():
            return list(entities)
        case MiddleAdmin():
            return [entity for entity in entities if can_see_country(identity, country_of(entity))]
        case unreachable:
            assert_never(unreachable)


def is_super_admin(identity: AdminIdentity) -> bool:
    return isinstance(identity, SuperAdmin)
