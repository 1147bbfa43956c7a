from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from budget_tracker.descriptors import GlobalIndexSpec, KeyType, LogicalTable
from budget_tracker.routing import AccessPolicy


class Revision(Enum):
    OPEN = "open"
    GATEWAY_NO_AUTH = "gateway-no-auth"
    GATEWAY_WITH_INDEXES = "gateway-with-indexes"
    GATEWAY_WITH_AUTH = "gateway-with-auth"

    @classmethod
    def parse(cls, value) -> "Revision":
        normalized = str(value).strip().lower().replace("_", "-")
        for revision in cls:
            if revision.value == normalized:
                return revision
        raise ValueError(f"unknown revision {value!r}, expected one of {[r.value for r in cls]}")


@dataclass(frozen=True)
class RouteSpec:
    path: str
    verb: str
    policy: Optional[AccessPolicy] = None


@dataclass(frozen=True)
class RevisionProfile:
    revision: Revision
    function_url: bool
    gateway: bool
    authorizer: bool
    default_user_id: bool
    tables: Tuple[LogicalTable, ...]
    routes: Tuple[RouteSpec, ...]

    @property
    def default_policy(self) -> AccessPolicy:
        return AccessPolicy.PROTECTED if self.authorizer else AccessPolicy.PUBLIC


TRANSACTION_INDEXES = (
    GlobalIndexSpec(
        index_name="userId-transactionDate",
        partition_key_name="userId",
        sort_key_name="transactionDate",
        sort_key_type=KeyType.NUMBER,
    ),
    GlobalIndexSpec(
        index_name="userId-categoryId",
        partition_key_name="userId",
        sort_key_name="categoryId",
    ),
)

CORE_ROUTES = (
    RouteSpec("/", "GET"),
    RouteSpec("/settings", "GET"),
    RouteSpec("/settings", "PATCH"),
    RouteSpec("/categories", "GET"),
    RouteSpec("/categories", "POST"),
    RouteSpec("/categories/{categoryId}", "PATCH"),
    RouteSpec("/categories/{categoryId}", "DELETE"),
    RouteSpec("/transactions", "GET"),
    RouteSpec("/transactions", "POST"),
    RouteSpec("/transactions/{transactionId}", "PATCH"),
    RouteSpec("/transactions/{transactionId}", "DELETE"),
)

BALANCE_REPORT = RouteSpec("/reports/balance", "GET")

REPORT_ROUTES = (
    RouteSpec("/reports/history-periods", "GET"),
    RouteSpec("/reports/history-data", "GET"),
    BALANCE_REPORT,
    RouteSpec("/reports/categories-overview", "GET"),
)

AUTHORIZED_REPORT_ROUTES = (
    RouteSpec("/reports/history-data", "GET"),
    RouteSpec("/reports/categories-overview", "GET"),
)

WEBHOOK_ROUTES = (
    RouteSpec("/webhooks/clerk", "POST", AccessPolicy.PUBLIC),
)


def build_tables(indexes: bool, settings_sort_key: bool) -> Tuple[LogicalTable, ...]:
    return (
        LogicalTable(
            id="Transactions",
            partition_key_name="userId",
            sort_key_name="id",
            secondary_indexes=TRANSACTION_INDEXES if indexes else (),
        ),
        LogicalTable(id="Categories", partition_key_name="userId", sort_key_name="id"),
        LogicalTable(
            id="Settings",
            partition_key_name="userId",
            sort_key_name="id" if settings_sort_key else None,
        ),
    )


def profile_for(revision: Revision, include_balance_report: bool = False) -> RevisionProfile:
    if revision is Revision.OPEN:
        return RevisionProfile(
            revision=revision,
            function_url=True,
            gateway=False,
            authorizer=False,
            default_user_id=False,
            tables=build_tables(indexes=False, settings_sort_key=True),
            routes=(),
        )
    if revision is Revision.GATEWAY_NO_AUTH:
        return RevisionProfile(
            revision=revision,
            function_url=False,
            gateway=True,
            authorizer=False,
            default_user_id=False,
            tables=build_tables(indexes=False, settings_sort_key=True),
            routes=CORE_ROUTES,
        )
    if revision is Revision.GATEWAY_WITH_INDEXES:
        return RevisionProfile(
            revision=revision,
            function_url=False,
            gateway=True,
            authorizer=False,
            default_user_id=True,
            tables=build_tables(indexes=True, settings_sort_key=True),
            routes=CORE_ROUTES + REPORT_ROUTES,
        )

    reports = AUTHORIZED_REPORT_ROUTES
    if include_balance_report:
        reports = reports + (BALANCE_REPORT,)
    return RevisionProfile(
        revision=revision,
        function_url=False,
        gateway=True,
        authorizer=True,
        default_user_id=False,
        tables=build_tables(indexes=True, settings_sort_key=False),
        routes=CORE_ROUTES + reports + WEBHOOK_ROUTES,
    )
