"""
Side effects of confirming a client order.

The first time an order reaches 'confirmed', one project per distinct
client/product/year is created and the other managers are told about them.
Project creation is part of the order's transaction; notifications are
best-effort and never undo the confirmation.
"""

import logging
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from praetor.models import ClientOrder, OrderStatus, Project
from praetor.repositories import CatalogRepository
from praetor.services.notification_service import enqueue_notification, list_manager_ids

logger = logging.getLogger(__name__)

# Project color palette for auto-created projects
PROJECT_COLORS = [
    '#3b82f6',  # blue
    '#10b981',  # emerald
    '#8b5cf6',  # violet
    '#f59e0b',  # amber
    '#ef4444',  # red
    '#06b6d4',  # cyan
    '#ec4899',  # pink
    '#84cc16',  # lime
    '#6366f1',  # indigo
    '#f97316',  # orange
]

NEW_PROJECTS_NOTIFICATION = 'new_projects'


@dataclass
class ConfirmationResult:
    triggered: bool = False
    created_projects: List[Project] = field(default_factory=list)
    notified_user_ids: List[int] = field(default_factory=list)

    @property
    def project_names(self) -> List[str]:
        return [p.name for p in self.created_projects]


def project_color(project_name: str) -> str:
    """Stable palette pick for a project name."""
    return PROJECT_COLORS[zlib.crc32(project_name.encode('utf-8')) % len(PROJECT_COLORS)]


def project_name_for(client_code: str, product_code: str, order_created_at: datetime) -> str:
    return f"{client_code}_{product_code}_{order_created_at.year}"


def should_dispatch(previous_status: Optional[str], new_status: Optional[str]) -> bool:
    """Only the first transition into 'confirmed' has side effects."""
    confirmed = OrderStatus.CONFIRMED.value
    return previous_status != confirmed and new_status == confirmed


def dispatch_order_confirmation(
    session: Session,
    order: ClientOrder,
    previous_status: Optional[str],
    actor_id: Optional[int],
    catalog: Optional[CatalogRepository] = None
) -> ConfirmationResult:
    """
    Create projects for a freshly confirmed order and notify managers.

    Must run inside the transaction that writes the new status; the caller
    commits. Errors while creating projects propagate so the caller rolls
    back the confirmation as a whole.
    """
    result = ConfirmationResult()
    if not should_dispatch(previous_status, order.status):
        return result
    result.triggered = True

    catalog = catalog or CatalogRepository(session)
    client_code = catalog.get_client_code(order.client_id) or str(order.client_id)
    product_codes = catalog.get_product_codes(item.product_id for item in order.items)
    created_at = order.created_at or datetime.now(timezone.utc)

    for item in order.items:
        product_code = product_codes.get(item.product_id) or str(item.product_id)
        name = project_name_for(client_code, product_code, created_at)

        existing = session.query(Project.id).filter(
            Project.name == name,
            Project.client_id == order.client_id
        ).first()
        if existing or name in result.project_names:
            continue

        project = Project(
            name=name,
            client_id=order.client_id,
            color=project_color(name),
            description=item.note or None,
            is_disabled=False,
        )
        session.add(project)
        session.flush()
        result.created_projects.append(project)

    logger.info(
        f"Order {order.id} confirmed: {len(result.created_projects)} project(s) created"
    )

    result.notified_user_ids = _notify_managers(session, order, result.project_names, actor_id)

    return result


def _notify_managers(session: Session, order: ClientOrder, project_names: List[str], actor_id: Optional[int]) -> List[int]:
    """Queue one notification per manager inside a savepoint; failures are logged only."""
    count = len(project_names)
    title = f"{count} new project{'' if count == 1 else 's'} available"
    try:
        with session.begin_nested():
            manager_ids = list_manager_ids(session, excluding_user_id=actor_id)
            for manager_id in manager_ids:
                enqueue_notification(
                    session,
                    user_id=manager_id,
                    type=NEW_PROJECTS_NOTIFICATION,
                    title=title,
                    message='New projects created from order confirmation',
                    data={
                        'projectNames': project_names,
                        'orderId': order.id,
                        'clientName': order.client_name,
                    },
                )
        return manager_ids
    except Exception as e:
        logger.warning(f"Failed to notify managers about order {order.id}: {e}")
        return []
