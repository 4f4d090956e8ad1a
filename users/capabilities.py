"""
Users — Role Capability Matrix

Each role maps to one frozen Capabilities value. Services and
permission classes ask the value, never the role name.

@file users/capabilities.py
"""

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class Capabilities:
    can_create: bool = False
    can_read: bool = False
    can_update: bool = False
    can_delete: bool = False
    can_manage_users: bool = False
    can_access_financial: bool = False
    can_access_inventory: bool = False
    can_access_purchases: bool = False
    can_access_movements: bool = False
    can_access_logs: bool = False
    can_access_all_units: bool = False
    can_access_items: bool = False
    can_manage_suppliers: bool = False
    can_access_requests: bool = False
    can_approve_requests: bool = False
    can_manage_units: bool = False
    can_access_cd_stock: bool = False

    # Workflow capabilities
    can_create_requests: bool = False
    can_endorse_requests: bool = False
    can_review_requests: bool = False
    can_receive_transit: bool = False
    can_manage_purchases: bool = False
    can_receive_purchases: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def has(self, name: str) -> bool:
        return bool(getattr(self, name, False))


class Role:
    ADMIN = 'admin'
    MANAGER = 'manager'
    FINANCIAL_OPERATOR = 'financial_operator'
    ADMINISTRATIVE_OPERATOR = 'administrative_operator'
    WAREHOUSE_OPERATOR = 'warehouse_operator'


NO_CAPABILITIES = Capabilities()

ROLE_CAPABILITIES: dict[str, Capabilities] = {
    Role.ADMIN: Capabilities(
        can_create=True,
        can_read=True,
        can_update=True,
        can_delete=True,
        can_manage_users=True,
        can_access_financial=True,
        can_access_inventory=True,
        can_access_purchases=True,
        can_access_movements=True,
        can_access_logs=True,
        can_access_all_units=True,
        can_access_items=True,
        can_manage_suppliers=True,
        can_access_requests=True,
        can_approve_requests=True,
        can_manage_units=True,
        can_access_cd_stock=True,
        can_create_requests=True,
        can_endorse_requests=True,
        can_review_requests=True,
        can_receive_transit=True,
        can_manage_purchases=True,
        can_receive_purchases=True,
    ),
    Role.MANAGER: Capabilities(
        can_create=True,
        can_read=True,
        can_update=True,
        can_manage_users=True,
        can_access_financial=True,
        can_access_inventory=True,
        can_access_purchases=True,
        can_access_movements=True,
        can_access_logs=True,
        can_access_all_units=True,
        can_access_items=True,
        can_manage_suppliers=True,
        can_access_requests=True,
        can_approve_requests=True,
        can_manage_units=True,
        can_create_requests=True,
        can_endorse_requests=True,
        can_receive_transit=True,
        can_manage_purchases=True,
    ),
    Role.FINANCIAL_OPERATOR: Capabilities(
        can_create=True,
        can_read=True,
        can_update=True,
        can_access_financial=True,
        can_access_purchases=True,
        can_access_requests=True,
        can_manage_purchases=True,
    ),
    Role.ADMINISTRATIVE_OPERATOR: Capabilities(
        can_create=True,
        can_read=True,
        can_update=True,
        can_access_inventory=True,
        can_access_purchases=True,
        can_access_requests=True,
        can_create_requests=True,
        can_receive_transit=True,
        can_manage_purchases=True,
    ),
    Role.WAREHOUSE_OPERATOR: Capabilities(
        can_read=True,
        can_update=True,
        can_access_inventory=True,
        can_access_all_units=True,
        can_access_items=True,
        can_manage_suppliers=True,
        can_access_requests=True,
        can_approve_requests=True,
        can_access_cd_stock=True,
        can_review_requests=True,
        can_receive_transit=True,
        can_receive_purchases=True,
    ),
}


def capabilities_for(role: str | None) -> Capabilities:
    return ROLE_CAPABILITIES.get(role, NO_CAPABILITIES)
