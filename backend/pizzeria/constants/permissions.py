"""Central enum-like definitions to avoid typos in permission/service strings.
Staff accounts receive one of the presets below inside their JWT claims.
"""
from __future__ import annotations
from typing import List, Dict

SERVICE_ACTIONS = {
    'STORE': ['MANAGE'],
    'ORDERS': ['READ', 'MANAGE'],
    'PAYMENTS': ['CONFIRM'],
    'REVIEWS': ['READ'],
    'STATS': ['READ'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            codes.append(f"{svc}.{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

ROLE_PRESETS: Dict[str, List[str]] = {
    # Kitchen / counter staff: day-to-day order handling and the open/closed switch
    'Staff': ['STORE.MANAGE', 'ORDERS.READ', 'ORDERS.MANAGE', 'PAYMENTS.CONFIRM'],
    'Admin': ['*'],
}


def expand_role(role: str) -> List[str]:
    codes = ROLE_PRESETS.get(role, [])
    if '*' in codes:
        return list(ALL_PERMISSION_CODES)
    return list(codes)
